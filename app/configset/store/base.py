"""Abstract base class for config set state stores.

A state store persists exactly one SetInfo record per set name. Merging
resource lists is the engine's job; stores always replace a record
wholesale.
"""

from abc import ABC, abstractmethod

from configset.models.set_info import SetInfo

# Stable prefix of persisted record names; the suffix is the set name.
RECORD_NAME_PREFIX = "configset.v1."


class StateStoreError(Exception):
    """Raised when a set record cannot be read or written."""


def record_name(name: str) -> str:
    """Return the persisted record name for a set name."""
    return f"{RECORD_NAME_PREFIX}{name}"


class SetInfoStore(ABC):
    """Abstract base class for SetInfo persistence backends."""

    @abstractmethod
    def get(self, name: str) -> SetInfo | None:
        """Load the record for a set.

        Args:
            name: Config set name.

        Returns:
            The stored SetInfo, or None if the set has no record.

        Raises:
            StateStoreError: If the record cannot be read or parsed.
        """

    @abstractmethod
    def list(self) -> list[SetInfo]:
        """Load all stored records.

        Raises:
            StateStoreError: If any record cannot be read or parsed.
        """

    @abstractmethod
    def create(self, name: str, info: SetInfo) -> None:
        """Store a record for a set that has none yet.

        Raises:
            StateStoreError: If the record exists or cannot be written.
        """

    @abstractmethod
    def update(self, name: str, info: SetInfo) -> None:
        """Create or fully replace the record for a set.

        Raises:
            StateStoreError: If the record cannot be written.
        """

    @abstractmethod
    def delete(self, name: str) -> None:
        """Remove the record for a set. A missing record is not an error.

        Raises:
            StateStoreError: If the record cannot be removed.
        """
