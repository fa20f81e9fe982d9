"""Kubernetes REST API client.

Implements RemoteObjectClient on top of the Kubernetes HTTP API using
httpx. Objects are handled as plain JSON mappings; the REST path of a
kind is resolved through API discovery and cached per group-version.

Server-side apply is used for every write:
- PATCH with Content-Type application/apply-patch+yaml
- fieldManager=<owner>, force=true when conflicts are overridden
- dryRun=All on dry-run requests
"""

from __future__ import annotations

import json
import logging
import ssl
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import httpx

from configset.models.resource import ResourceRef, split_api_version
from configset.remote.base import (
    ApplyOptions,
    ConflictError,
    NotFoundError,
    RemoteError,
    RemoteObjectClient,
)

logger = logging.getLogger(__name__)

APPLY_PATCH_CONTENT_TYPE = "application/apply-patch+yaml"


@dataclass(frozen=True, slots=True)
class APIResource:
    """REST mapping of a kind discovered from the API server.

    Attributes:
        prefix: Group-version path prefix (e.g., "/apis/apps/v1").
        plural: Plural resource name used in URLs (e.g., "deployments").
        namespaced: Whether objects of this kind live in a namespace.
    """

    prefix: str
    plural: str
    namespaced: bool


def group_version_path(api_version: str) -> str:
    """Return the REST path prefix for an apiVersion.

    Args:
        api_version: apiVersion string (e.g., "v1" or "apps/v1").

    Returns:
        "/api/v1" for the core group, "/apis/<group>/<version>" otherwise.
    """
    group, version = split_api_version(api_version)
    if not group:
        return f"/api/{version}"
    return f"/apis/{group}/{version}"


class KubeClient(RemoteObjectClient):
    """Kubernetes API client speaking JSON over HTTPS.

    Example:
        >>> with KubeClient("https://127.0.0.1:6443", token="...") as client:
        ...     live = client.get(ResourceRef("v1", "ConfigMap", "default", "app"))
    """

    def __init__(
        self,
        server: str,
        token: str | None = None,
        *,
        certificate_authority: str | None = None,
        insecure_skip_tls_verify: bool = False,
        default_namespace: str = "default",
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            server: API server base URL.
            token: Bearer token for authentication.
            certificate_authority: Path to a CA bundle for TLS verification.
            insecure_skip_tls_verify: Disable TLS verification.
            default_namespace: Namespace used for namespaced refs without one.
            timeout: Request timeout in seconds.
            http_client: Preconfigured httpx client (overrides all transport options).
        """
        self._server = server.rstrip("/")
        self._default_namespace = default_namespace
        self._resources: dict[str, dict[str, APIResource]] = {}

        if http_client is not None:
            self._client = http_client
        else:
            headers = {"Accept": "application/json"}
            if token:
                headers["Authorization"] = f"Bearer {token}"
            self._client = httpx.Client(
                base_url=self._server,
                headers=headers,
                verify=self._build_verify(certificate_authority, insecure_skip_tls_verify),
                timeout=timeout,
            )

    @staticmethod
    def _build_verify(
        certificate_authority: str | None,
        insecure_skip_tls_verify: bool,
    ) -> ssl.SSLContext | bool:
        """Build the TLS verification setting for httpx."""
        if insecure_skip_tls_verify:
            return False
        if certificate_authority:
            return ssl.create_default_context(cafile=certificate_authority)
        return True

    @property
    def server(self) -> str:
        """API server base URL."""
        return self._server

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> KubeClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
        content_type: str = "application/json",
    ) -> dict[str, Any]:
        """Send a request and decode the JSON response.

        Raises:
            NotFoundError: On HTTP 404.
            ConflictError: On HTTP 409.
            RemoteError: On any other HTTP error or transport failure.
        """
        headers: dict[str, str] = {}
        content: bytes | None = None
        if body is not None:
            content = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = content_type

        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = self._client.request(
                method,
                path,
                params=params,
                content=content,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise RemoteError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            message = self._error_message(response)
            if response.status_code == 404:
                raise NotFoundError(message, status=404)
            if response.status_code == 409:
                raise ConflictError(message, status=409)
            raise RemoteError(message, status=response.status_code)

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(f"{method} {path}: invalid JSON response: {e}") from e
        if not isinstance(data, dict):
            raise RemoteError(f"{method} {path}: unexpected response type")
        return data

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract the Status message from an error response."""
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        text = response.text.strip()
        return text or f"HTTP {response.status_code}"

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def _discover(self, api_version: str) -> dict[str, APIResource]:
        """Load and cache the kinds served under a group-version."""
        cached = self._resources.get(api_version)
        if cached is not None:
            return cached

        prefix = group_version_path(api_version)
        data = self._request("GET", prefix)

        resources: dict[str, APIResource] = {}
        for item in data.get("resources", []):
            name = item.get("name", "")
            # Subresources (e.g., "deployments/status") share the parent kind.
            if not name or "/" in name:
                continue
            resources[item["kind"]] = APIResource(
                prefix=prefix,
                plural=name,
                namespaced=bool(item.get("namespaced", False)),
            )

        logger.debug("Discovered %d kinds under %s", len(resources), api_version)
        self._resources[api_version] = resources
        return resources

    def resolve(self, api_version: str, kind: str) -> APIResource:
        """Resolve the REST mapping for a kind.

        Raises:
            RemoteError: If the group-version does not serve the kind.
        """
        try:
            resources = self._discover(api_version)
        except NotFoundError as e:
            raise RemoteError(f"API version {api_version} is not served by the server") from e
        resource = resources.get(kind)
        if resource is None:
            raise RemoteError(f"Kind {kind} is not served under {api_version}")
        return resource

    def _collection_path(self, resource: APIResource, namespace: str) -> str:
        if resource.namespaced:
            ns = namespace or self._default_namespace
            return f"{resource.prefix}/namespaces/{ns}/{resource.plural}"
        return f"{resource.prefix}/{resource.plural}"

    def _object_path(self, ref: ResourceRef) -> str:
        resource = self.resolve(ref.api_version, ref.kind)
        return f"{self._collection_path(resource, ref.namespace)}/{ref.name}"

    # -------------------------------------------------------------------------
    # RemoteObjectClient
    # -------------------------------------------------------------------------

    def get(self, ref: ResourceRef) -> dict[str, Any]:
        return self._request("GET", self._object_path(ref))

    def apply(self, obj: dict[str, Any], options: ApplyOptions) -> dict[str, Any]:
        ref = ResourceRef.from_object(obj)
        resource = self.resolve(ref.api_version, ref.kind)
        body = obj
        if not resource.namespaced and ref.namespace:
            # Cluster-scoped objects are rejected if they carry a namespace.
            metadata = {k: v for k, v in obj["metadata"].items() if k != "namespace"}
            body = {**obj, "metadata": metadata}

        params = {"fieldManager": options.field_owner}
        if options.force_conflicts:
            params["force"] = "true"
        if options.dry_run:
            params["dryRun"] = "All"
        return self._request(
            "PATCH",
            f"{self._collection_path(resource, ref.namespace)}/{ref.name}",
            params=params,
            body=body,
            content_type=APPLY_PATCH_CONTENT_TYPE,
        )

    def delete(self, ref: ResourceRef, dry_run: bool = False) -> None:
        params = {"dryRun": "All"} if dry_run else None
        body: dict[str, Any] | None = None
        if ref.uid:
            # Never delete a different object that reuses the tracked name.
            body = {
                "apiVersion": "v1",
                "kind": "DeleteOptions",
                "preconditions": {"uid": ref.uid},
            }
        self._request("DELETE", self._object_path(ref), params=params, body=body)

    def create(self, obj: dict[str, Any], field_owner: str) -> dict[str, Any]:
        ref = ResourceRef.from_object(obj)
        resource = self.resolve(ref.api_version, ref.kind)
        return self._request(
            "POST",
            self._collection_path(resource, ref.namespace),
            params={"fieldManager": field_owner},
            body=obj,
        )

    def list(
        self,
        api_version: str,
        kind: str,
        namespace: str = "",
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        resource = self.resolve(api_version, kind)
        params = {"labelSelector": label_selector} if label_selector else None
        data = self._request("GET", self._collection_path(resource, namespace), params=params)

        items: list[dict[str, Any]] = []
        for item in data.get("items") or []:
            # List responses omit apiVersion/kind on the items.
            items.append({"apiVersion": api_version, "kind": kind, **item})
        return items
