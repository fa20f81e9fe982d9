"""Resource identity models.

This module defines the ResourceRef data structure that identifies a
remote declarative object (e.g., a Kubernetes resource) and the helpers
used to read identity fields out of an object payload.

Remote objects themselves are plain mappings (the decoded JSON/YAML
document). Only the identity fields are ever interpreted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Namespaces are cluster-scoped and never receive a default namespace.
NAMESPACE_KIND = "Namespace"


def split_api_version(api_version: str) -> tuple[str, str]:
    """Split an apiVersion string into group and version.

    Args:
        api_version: apiVersion string (e.g., "apps/v1" or "v1").

    Returns:
        Tuple of (group, version). The core group is an empty string.
    """
    if "/" in api_version:
        group, _, version = api_version.partition("/")
        return group, version
    return "", api_version


def object_metadata(obj: dict[str, Any]) -> dict[str, Any]:
    """Return the metadata mapping of an object, or an empty dict."""
    metadata = obj.get("metadata")
    if isinstance(metadata, dict):
        return metadata
    return {}


@dataclass(frozen=True, slots=True)
class ResourceRef:
    """Stable identity of a tracked remote object.

    The uid is the identity used for set membership. Names can be reused
    after an object is deleted, a uid cannot, so two refs describe the
    same tracked object only if their uids match. Refs without a uid fall
    back to matching by coordinates.

    Attributes:
        api_version: apiVersion of the object (e.g., "apps/v1").
        kind: Object kind (e.g., "Deployment").
        namespace: Namespace of the object, empty for cluster-scoped objects.
        name: Object name.
        uid: Server-assigned unique identifier, empty if not yet known.
    """

    api_version: str
    kind: str
    namespace: str
    name: str
    uid: str = ""

    def __post_init__(self) -> None:
        """Validate ref data after initialization."""
        if not self.kind:
            msg = "Resource kind cannot be empty"
            raise ValueError(msg)
        if not self.name:
            msg = "Resource name cannot be empty"
            raise ValueError(msg)

    @property
    def group(self) -> str:
        """API group of the object (empty for the core group)."""
        return split_api_version(self.api_version)[0]

    @property
    def version(self) -> str:
        """API version of the object without the group."""
        return split_api_version(self.api_version)[1]

    @property
    def display_name(self) -> str:
        """Human-readable namespace/name coordinate."""
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    @property
    def coordinates(self) -> tuple[str, str, str, str]:
        """(apiVersion, kind, namespace, name) of the object."""
        return (self.api_version, self.kind, self.namespace, self.name)

    def to_stub(self) -> dict[str, Any]:
        """Build the minimal addressable object for this ref.

        Returns:
            Object mapping with apiVersion, kind, and metadata name/namespace.
        """
        metadata: dict[str, Any] = {"name": self.name}
        if self.namespace:
            metadata["namespace"] = self.namespace
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": metadata,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage.

        Returns:
            Dictionary representation of the ref.
        """
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "namespace": self.namespace,
            "name": self.name,
            "uid": self.uid,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceRef:
        """Deserialize from dictionary.

        Args:
            data: Dictionary containing ref data.

        Returns:
            ResourceRef instance.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If kind or name is empty.
        """
        return cls(
            api_version=data["apiVersion"],
            kind=data["kind"],
            namespace=data.get("namespace", ""),
            name=data["name"],
            uid=data.get("uid", ""),
        )

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> ResourceRef:
        """Build a ref from an object payload.

        Args:
            obj: Object mapping with apiVersion, kind and metadata.

        Returns:
            ResourceRef describing the object.

        Raises:
            ValueError: If the object has no kind or no name.
        """
        metadata = object_metadata(obj)
        return cls(
            api_version=str(obj.get("apiVersion", "")),
            kind=str(obj.get("kind", "")),
            namespace=str(metadata.get("namespace") or ""),
            name=str(metadata.get("name") or ""),
            uid=str(metadata.get("uid") or ""),
        )
