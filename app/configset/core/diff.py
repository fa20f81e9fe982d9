"""Diff export of run results.

This module turns the before/after snapshots of a run into two directory
trees ("old" and "new") and hands them to an external diff program.

File names are derived from the object identity so that the same object
lands under the same name on both sides:

    <prefix><namespace>_<name>_<group>_<version>_<kind>.yaml
"""

from __future__ import annotations

import copy
import logging
import os
import shutil
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Any

import yaml

from configset.models.resource import object_metadata, split_api_version
from configset.models.result import ObjectResult
from configset.utils.shell import run_shell

logger = logging.getLogger(__name__)

# Environment variable selecting the diff program (shared with kubectl).
DIFF_PROGRAM_ENV = "KUBECTL_EXTERNAL_DIFF"
DEFAULT_DIFF_PROGRAM = "diff -N -u"


class DiffError(Exception):
    """Raised when diff files cannot be written or the program cannot run."""


@dataclass(frozen=True, slots=True)
class DiffOptions:
    """Options for exporting results to a Differ.

    Attributes:
        prefix: Prefix prepended to every file name.
        strip_managed_fields: Drop metadata.managedFields before writing.
        strip_generation: Drop metadata.generation before writing.
    """

    prefix: str = ""
    strip_managed_fields: bool = False
    strip_generation: bool = False


def resolve_diff_program(configured: str | None = None) -> str:
    """Pick the diff program command line.

    Priority:
    1. KUBECTL_EXTERNAL_DIFF environment variable
    2. Configured program
    3. "diff -N -u"
    """
    return os.environ.get(DIFF_PROGRAM_ENV) or configured or DEFAULT_DIFF_PROGRAM


class Differ:
    """Temporary old/new directory pair compared by an external program.

    Example:
        >>> with Differ() as differ:
        ...     differ.add_old("cm.yaml", b"data: 1\\n")
        ...     differ.add_new("cm.yaml", b"data: 2\\n")
        ...     exit_code = differ.run("diff -u")
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        """Create the old/new directories.

        Args:
            base_dir: Parent for the temporary directory. Defaults to the system temp dir.

        Raises:
            DiffError: If the directories cannot be created.
        """
        try:
            self._base = Path(tempfile.mkdtemp(prefix="configset-diff-", dir=base_dir))
            self.old_dir.mkdir(mode=0o700)
            self.new_dir.mkdir(mode=0o700)
        except OSError as e:
            raise DiffError(f"Failed to create diff directories: {e}") from e

    @property
    def base_dir(self) -> Path:
        """Temporary directory holding old/ and new/."""
        return self._base

    @property
    def old_dir(self) -> Path:
        """Directory with the snapshots before the run."""
        return self._base / "old"

    @property
    def new_dir(self) -> Path:
        """Directory with the snapshots after the run."""
        return self._base / "new"

    def _write(self, directory: Path, name: str, data: bytes) -> None:
        path = directory / name
        try:
            path.write_bytes(data)
            path.chmod(0o600)
        except OSError as e:
            raise DiffError(f"Failed to write {path}: {e}") from e

    def add_old(self, name: str, data: bytes) -> None:
        """Add a file to the old side."""
        self._write(self.old_dir, name, data)

    def add_new(self, name: str, data: bytes) -> None:
        """Add a file to the new side."""
        self._write(self.new_dir, name, data)

    def run(self, command: str) -> int:
        """Run "<command> <old> <new>" through the shell.

        The program inherits stdout and stderr; its exit code is returned
        unmodified (diff programs commonly exit 1 when files differ).

        Raises:
            DiffError: If the program cannot be started.
        """
        logger.debug("Running diff program: %s", command)
        try:
            return run_shell(command, str(self.old_dir), str(self.new_dir))
        except OSError as e:
            raise DiffError(f"Failed to run diff program '{command}': {e}") from e

    def cleanup(self) -> None:
        """Remove the temporary directories."""
        shutil.rmtree(self._base, ignore_errors=True)

    def __enter__(self) -> Differ:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()


def diff_filename(obj: dict[str, Any], prefix: str = "") -> str:
    """Derive the diff file name of an object from its identity."""
    metadata = object_metadata(obj)
    group, version = split_api_version(str(obj.get("apiVersion", "")))
    return (
        f"{prefix}{metadata.get('namespace') or ''}_{metadata.get('name') or ''}"
        f"_{group}_{version}_{obj.get('kind', '')}.yaml"
    )


def prepare_snapshot(obj: dict[str, Any], options: DiffOptions) -> dict[str, Any]:
    """Return a copy of obj with bookkeeping fields stripped per options."""
    snapshot = copy.deepcopy(obj)
    metadata = snapshot.get("metadata")
    if isinstance(metadata, dict):
        if options.strip_managed_fields:
            metadata.pop("managedFields", None)
        if options.strip_generation:
            metadata.pop("generation", None)
    return snapshot


def _to_yaml(obj: dict[str, Any]) -> bytes:
    return yaml.safe_dump(obj, default_flow_style=False, sort_keys=True).encode("utf-8")


def add_results_to_differ(
    results: Iterable[ObjectResult],
    differ: Differ,
    options: DiffOptions | None = None,
) -> int:
    """Write the snapshots of successful results into a Differ.

    Failed results and results with neither a live nor an updated snapshot
    are skipped. The live snapshot goes to the old side and the updated
    snapshot to the new side, both under the same file name.

    Args:
        results: Results of an apply or delete run.
        differ: Target Differ.
        options: Export options.

    Returns:
        Number of results written.

    Raises:
        DiffError: If a file cannot be written.
    """
    options = options or DiffOptions()
    written = 0

    for result in results:
        if result.failed or (result.live is None and result.updated is None):
            continue

        name = diff_filename(result.live or result.updated or {}, options.prefix)

        if result.live is not None:
            differ.add_old(name, _to_yaml(prepare_snapshot(result.live, options)))
        if result.updated is not None:
            differ.add_new(name, _to_yaml(prepare_snapshot(result.updated, options)))
        written += 1

    logger.debug("Exported %d result(s) for diffing", written)
    return written
