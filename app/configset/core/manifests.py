"""Manifest file loading.

This module reads the desired objects of a config set from YAML or JSON
manifest files. Files may hold several documents, and List objects are
flattened into their items. Object order is file order, then document
order, which is the order objects are applied in.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, TextIO

import yaml

from configset.models.resource import NAMESPACE_KIND, object_metadata

logger = logging.getLogger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")
STDIN_PATH = "-"


class ManifestError(Exception):
    """Base exception for manifest-related errors."""


class ManifestNotFoundError(ManifestError):
    """Raised when a manifest path does not exist."""


class ManifestParseError(ManifestError):
    """Raised when a manifest file cannot be parsed."""


class ManifestValidationError(ManifestError):
    """Raised when a manifest document is not an addressable object."""


def _expand_path(path: Path, recursive: bool) -> list[Path]:
    """Expand a file or directory into manifest files, sorted by name."""
    if not path.exists():
        raise ManifestNotFoundError(f"Manifest not found: {path}")
    if path.is_file():
        return [path]
    pattern = "**/*" if recursive else "*"
    return sorted(
        p for p in path.glob(pattern) if p.is_file() and p.suffix.lower() in MANIFEST_SUFFIXES
    )


def _flatten(document: Any, source: str) -> Iterator[dict[str, Any]]:
    """Yield the objects of a document, flattening List kinds."""
    if document is None:
        return
    if not isinstance(document, dict):
        raise ManifestValidationError(f"{source}: document is not a mapping")
    kind = str(document.get("kind", ""))
    if kind.endswith("List") and isinstance(document.get("items"), list):
        for item in document["items"]:
            yield from _flatten(item, source)
        return
    yield document


def _validate(obj: dict[str, Any], source: str) -> None:
    if not obj.get("apiVersion"):
        raise ManifestValidationError(f"{source}: object is missing 'apiVersion'")
    if not obj.get("kind"):
        raise ManifestValidationError(f"{source}: object is missing 'kind'")
    if not object_metadata(obj).get("name"):
        raise ManifestValidationError(f"{source}: {obj['kind']} is missing 'metadata.name'")


def parse_documents(stream: str | TextIO, source: str) -> list[dict[str, Any]]:
    """Parse all objects from a YAML/JSON stream.

    Args:
        stream: Text or text stream to parse.
        source: Name used in error messages.

    Returns:
        List of objects in document order.

    Raises:
        ManifestParseError: If the YAML syntax or text encoding is invalid.
        ManifestValidationError: If a document is not an addressable object.
    """
    try:
        documents = list(yaml.safe_load_all(stream))
    except yaml.YAMLError as e:
        raise ManifestParseError(f"{source}: invalid YAML: {e}") from e
    except UnicodeDecodeError as e:
        raise ManifestParseError(f"{source}: not valid UTF-8: {e}") from e

    objects: list[dict[str, Any]] = []
    for document in documents:
        for obj in _flatten(document, source):
            _validate(obj, source)
            objects.append(obj)
    return objects


def apply_default_namespace(obj: dict[str, Any], namespace: str) -> dict[str, Any]:
    """Set the namespace of an object that has none.

    Namespace objects are left untouched.
    """
    if obj.get("kind") == NAMESPACE_KIND:
        return obj
    metadata = obj.setdefault("metadata", {})
    if not metadata.get("namespace"):
        metadata["namespace"] = namespace
    return obj


def load_objects(
    paths: Iterable[str | Path],
    *,
    recursive: bool = False,
    default_namespace: str = "default",
) -> list[dict[str, Any]]:
    """Load desired objects from manifest files and directories.

    Args:
        paths: Files, directories, or "-" for standard input.
        recursive: Descend into subdirectories of directory paths.
        default_namespace: Namespace set on objects that have none.

    Returns:
        Objects in load order.

    Raises:
        ManifestNotFoundError: If a path does not exist.
        ManifestParseError: If a file cannot be read or parsed.
        ManifestValidationError: If a document is not an addressable object.
    """
    objects: list[dict[str, Any]] = []

    for raw_path in paths:
        if str(raw_path) == STDIN_PATH:
            objects.extend(parse_documents(sys.stdin, "<stdin>"))
            continue

        for file_path in _expand_path(Path(raw_path), recursive):
            try:
                text = file_path.read_text(encoding="utf-8")
            except OSError as e:
                raise ManifestParseError(f"Failed to read {file_path}: {e}") from e
            except UnicodeDecodeError as e:
                raise ManifestParseError(f"{file_path}: not valid UTF-8: {e}") from e
            loaded = parse_documents(text, str(file_path))
            logger.debug("Loaded %d object(s) from %s", len(loaded), file_path)
            objects.extend(loaded)

    return [apply_default_namespace(obj, default_namespace) for obj in objects]
