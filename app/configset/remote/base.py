"""Abstract base class for remote object clients.

This module defines the RemoteObjectClient interface that the
reconciliation engine and the Secret-backed state store consume, along
with the error taxonomy every implementation must raise.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from configset.models.resource import ResourceRef

DEFAULT_FIELD_OWNER = "configset"


class RemoteError(Exception):
    """Base exception for remote object operations.

    Attributes:
        status: HTTP-style status code reported by the remote side, if any.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class NotFoundError(RemoteError):
    """Raised when the addressed object does not exist."""


class ConflictError(RemoteError):
    """Raised when an apply conflicts with fields owned by another writer."""


@dataclass(frozen=True, slots=True)
class ApplyOptions:
    """Options for a server-side apply.

    Attributes:
        field_owner: Owner token the applied fields are recorded under.
        dry_run: If True, the remote side validates without persisting.
        force_conflicts: If True, take ownership of conflicting fields.
    """

    field_owner: str = DEFAULT_FIELD_OWNER
    dry_run: bool = False
    force_conflicts: bool = False


class RemoteObjectClient(ABC):
    """Abstract base class for remote object stores.

    Implementations perform single-object operations only. Retrying
    transient transport failures is their own concern; every failure that
    reaches the caller must be a RemoteError (or a subclass).
    """

    @abstractmethod
    def get(self, ref: ResourceRef) -> dict[str, Any]:
        """Fetch the live object addressed by ref.

        Args:
            ref: Object to fetch. Only kind, apiVersion, namespace and name are used.

        Returns:
            The live object.

        Raises:
            NotFoundError: If the object does not exist.
            RemoteError: On any other failure.
        """

    @abstractmethod
    def apply(self, obj: dict[str, Any], options: ApplyOptions) -> dict[str, Any]:
        """Apply an object with optimistic-merge semantics.

        Args:
            obj: Desired object.
            options: Owner token, dry-run and conflict override flags.

        Returns:
            The object as stored (or as it would be stored, on dry-run).

        Raises:
            ConflictError: If fields are owned by another writer and not forced.
            RemoteError: On any other failure.
        """

    @abstractmethod
    def delete(self, ref: ResourceRef, dry_run: bool = False) -> None:
        """Delete the object addressed by ref.

        Args:
            ref: Object to delete.
            dry_run: If True, the remote side validates without deleting.

        Raises:
            NotFoundError: If the object does not exist.
            RemoteError: On any other failure.
        """

    @abstractmethod
    def create(self, obj: dict[str, Any], field_owner: str) -> dict[str, Any]:
        """Create a new object.

        Raises:
            ConflictError: If the object already exists.
            RemoteError: On any other failure.
        """

    @abstractmethod
    def list(
        self,
        api_version: str,
        kind: str,
        namespace: str = "",
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        """List objects of a kind, optionally filtered by namespace and labels.

        Raises:
            RemoteError: On any failure.
        """
