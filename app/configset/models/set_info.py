"""Config set record model.

This module defines the SetInfo record that captures which resources
were last applied together under a set name. It is the only state the
reconciliation engine persists between runs.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from configset.models.resource import ResourceRef

_SET_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9.]*[a-z0-9])?$")

# Maximum set name length (Secret name limit minus the record prefix).
MAX_SET_NAME_LENGTH = 240


def validate_set_name(name: str) -> str:
    """Validate a config set name.

    Set names are embedded into Secret and file names, so they must be
    lowercase DNS-subdomain fragments.

    Args:
        name: Set name to validate.

    Returns:
        The validated name.

    Raises:
        ValueError: If the name is empty or malformed.
    """
    if not name:
        msg = "Config set name cannot be empty"
        raise ValueError(msg)
    if len(name) > MAX_SET_NAME_LENGTH or not _SET_NAME_PATTERN.match(name):
        msg = (
            f"Invalid config set name '{name}': must consist of lowercase "
            "alphanumeric characters, '-' or '.', and start and end with an "
            "alphanumeric character"
        )
        raise ValueError(msg)
    return name


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as an RFC 3339 UTC timestamp with second precision."""
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True, slots=True)
class SetInfo:
    """Record of the resources that belong to a config set.

    Attributes:
        name: Config set name.
        resources: Tracked resources in apply order.
        updated_at: RFC 3339 timestamp of the last write.
    """

    name: str
    resources: tuple[ResourceRef, ...] = ()
    updated_at: str = ""

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.name:
            msg = "Config set name cannot be empty"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage.

        Returns:
            Dictionary representation of the record.
        """
        return {
            "name": self.name,
            "resources": [ref.to_dict() for ref in self.resources],
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SetInfo:
        """Deserialize from dictionary.

        Args:
            data: Dictionary containing record data.

        Returns:
            SetInfo instance.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If any field is invalid.
        """
        items = data.get("resources") or []
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            msg = "Set info resources must be a list of objects"
            raise ValueError(msg)
        resources = tuple(ResourceRef.from_dict(item) for item in items)
        return cls(
            name=data["name"],
            resources=resources,
            updated_at=data.get("updatedAt", ""),
        )

    def to_json(self) -> str:
        """Serialize to a compact JSON document."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str | bytes) -> SetInfo:
        """Deserialize from a JSON document.

        Raises:
            json.JSONDecodeError: If the document is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            msg = "Set info document must be a JSON object"
            raise ValueError(msg)
        return cls.from_dict(data)


def create_set_info(
    name: str,
    resources: Iterable[ResourceRef],
    now: datetime | None = None,
) -> SetInfo:
    """Factory function to create a SetInfo stamped with the current time.

    Args:
        name: Config set name.
        resources: Tracked resources in order.
        now: Timestamp to record. Defaults to the current UTC time.

    Returns:
        New SetInfo record.
    """
    moment = now if now is not None else datetime.now(UTC)
    return SetInfo(
        name=name,
        resources=tuple(resources),
        updated_at=format_timestamp(moment),
    )
