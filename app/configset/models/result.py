"""Per-object run results.

This module defines the outcome records emitted by the reconciliation
engine for every object it touches during an apply or delete run.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from configset.models.resource import ResourceRef, object_metadata


class ObjectAction(str, Enum):
    """Operation performed on an object during a run.

    Attributes:
        UPDATE: The object was applied (created or updated).
        DELETE: The object was deleted (pruned or removed with its set).
    """

    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class ObjectResult:
    """Outcome of a single object operation.

    Attributes:
        action: Operation that was attempted.
        config: Desired object (update) or addressable stub (delete).
        live: Snapshot observed before the operation, None if absent.
        updated: Snapshot returned by the operation, None for deletes and failures.
        error: Exception raised by the operation, None on success.
    """

    action: ObjectAction
    config: dict[str, Any]
    live: dict[str, Any] | None = None
    updated: dict[str, Any] | None = None
    error: Exception | None = None

    @property
    def ref(self) -> ResourceRef:
        """Identity of the object, preferring the most recent snapshot.

        Raises:
            ValueError: If the object has no kind or no name.
        """
        return ResourceRef.from_object(self.updated or self.live or self.config)

    @property
    def coordinates(self) -> tuple[str, str, str, str]:
        """Return (apiVersion, kind, namespace, name) without validation.

        Unlike ref, this never raises, so it is safe for reporting results
        of malformed objects.
        """
        obj = self.updated or self.live or self.config
        metadata = object_metadata(obj)
        return (
            str(obj.get("apiVersion", "")),
            str(obj.get("kind", "")),
            str(metadata.get("namespace") or ""),
            str(metadata.get("name") or ""),
        )

    @property
    def failed(self) -> bool:
        """Check if the operation failed."""
        return self.error is not None

    @property
    def succeeded(self) -> bool:
        """Check if the operation completed successfully."""
        return self.error is None


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """All object results of one apply or delete run, in emission order.

    Attributes:
        results: Tuple of per-object results.
    """

    results: tuple[ObjectResult, ...] = ()

    @property
    def had_errors(self) -> bool:
        """Check if any object operation failed."""
        return any(r.failed for r in self.results)

    @property
    def failed(self) -> tuple[ObjectResult, ...]:
        """Results whose operation failed."""
        return tuple(r for r in self.results if r.failed)

    @property
    def updated(self) -> tuple[ObjectResult, ...]:
        """Successful update results."""
        return tuple(
            r for r in self.results if r.succeeded and r.action == ObjectAction.UPDATE
        )

    @property
    def deleted(self) -> tuple[ObjectResult, ...]:
        """Successful delete results."""
        return tuple(
            r for r in self.results if r.succeeded and r.action == ObjectAction.DELETE
        )

    def __len__(self) -> int:
        return len(self.results)
