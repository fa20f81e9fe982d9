"""Local file-backed state store.

Each set record is a JSON file named after the record name, e.g.
~/.local/state/configset/sets/configset.v1.web.json. Writes go through a
temporary file in the same directory followed by os.replace().
"""

import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from configset.core.paths import ensure_dir, get_sets_dir
from configset.models.set_info import SetInfo
from configset.store.base import RECORD_NAME_PREFIX, SetInfoStore, StateStoreError, record_name

logger = logging.getLogger(__name__)


class FileSetInfoStore(SetInfoStore):
    """Stores set records as JSON files in a local directory.

    Attributes:
        sets_dir: Directory containing the record files.
    """

    SUFFIX = ".json"

    def __init__(self, sets_dir: Path | None = None) -> None:
        """Initialize FileSetInfoStore.

        Args:
            sets_dir: Optional override for the records directory.
                      Default: ~/.local/state/configset/sets
        """
        self._sets_dir = sets_dir if sets_dir is not None else get_sets_dir()

    @property
    def sets_dir(self) -> Path:
        """Directory containing the record files."""
        return self._sets_dir

    def path_for(self, name: str) -> Path:
        """Path of the record file for a set name."""
        return self._sets_dir / f"{record_name(name)}{self.SUFFIX}"

    def _read(self, path: Path) -> SetInfo:
        try:
            return SetInfo.from_json(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StateStoreError(f"Failed to read {path}: {e}") from e
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            raise StateStoreError(f"Failed to parse {path}: {e}") from e

    def _write(self, path: Path, info: SetInfo) -> None:
        try:
            ensure_dir(self._sets_dir, "state")
        except RuntimeError as e:
            raise StateStoreError(str(e)) from e

        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._sets_dir,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                f.write(info.to_json())
            os.replace(str(tmp_path), str(path))
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise StateStoreError(f"Failed to write {path}: {e}") from e

    def get(self, name: str) -> SetInfo | None:
        path = self.path_for(name)
        if not path.exists():
            return None
        return self._read(path)

    def list(self) -> list[SetInfo]:
        if not self._sets_dir.exists():
            return []
        pattern = f"{RECORD_NAME_PREFIX}*{self.SUFFIX}"
        return [self._read(path) for path in sorted(self._sets_dir.glob(pattern))]

    def create(self, name: str, info: SetInfo) -> None:
        path = self.path_for(name)
        if path.exists():
            raise StateStoreError(f"Set info for '{name}' already exists")
        self._write(path, info)
        logger.debug("Created set info %s with %d resource(s)", name, len(info.resources))

    def update(self, name: str, info: SetInfo) -> None:
        self._write(self.path_for(name), info)
        logger.debug("Updated set info %s with %d resource(s)", name, len(info.resources))

    def delete(self, name: str) -> None:
        try:
            self.path_for(name).unlink(missing_ok=True)
        except OSError as e:
            raise StateStoreError(f"Failed to delete set info '{name}': {e}") from e
        logger.debug("Deleted set info %s", name)
