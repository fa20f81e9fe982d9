"""Unit tests for the Kubernetes REST client.

Requests are served by an httpx.MockTransport that emulates discovery
and a handful of object endpoints.
"""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from configset.models.resource import ResourceRef
from configset.remote.base import ApplyOptions, ConflictError, NotFoundError, RemoteError
from configset.remote.kube import APPLY_PATCH_CONTENT_TYPE, KubeClient, group_version_path

CORE_DISCOVERY = {
    "kind": "APIResourceList",
    "groupVersion": "v1",
    "resources": [
        {"name": "configmaps", "kind": "ConfigMap", "namespaced": True},
        {"name": "namespaces", "kind": "Namespace", "namespaced": False},
        {"name": "namespaces/status", "kind": "Namespace", "namespaced": False},
        {"name": "secrets", "kind": "Secret", "namespaced": True},
    ],
}

APPS_DISCOVERY = {
    "kind": "APIResourceList",
    "groupVersion": "apps/v1",
    "resources": [
        {"name": "deployments", "kind": "Deployment", "namespaced": True},
        {"name": "deployments/scale", "kind": "Scale", "namespaced": True},
    ],
}

Handler = Callable[[httpx.Request], httpx.Response]


def make_client(handler: Handler, requests: list[httpx.Request] | None = None) -> KubeClient:
    def recording(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if request.url.path == "/api/v1":
            return httpx.Response(200, json=CORE_DISCOVERY)
        if request.url.path == "/apis/apps/v1":
            return httpx.Response(200, json=APPS_DISCOVERY)
        return handler(request)

    http_client = httpx.Client(
        base_url="https://k8s.test",
        transport=httpx.MockTransport(recording),
    )
    return KubeClient("https://k8s.test", http_client=http_client, default_namespace="dev")


def status(code: int, message: str) -> httpx.Response:
    return httpx.Response(
        code,
        json={"kind": "Status", "status": "Failure", "message": message, "code": code},
    )


def config_map_ref(**kwargs: Any) -> ResourceRef:
    namespace = kwargs.get("namespace", "default")
    return ResourceRef("v1", "ConfigMap", namespace, "a", kwargs.get("uid", ""))


class TestGroupVersionPath:
    """Tests for group_version_path function."""

    def test_core(self) -> None:
        """Core group lives under /api."""
        assert group_version_path("v1") == "/api/v1"

    def test_named_group(self) -> None:
        """Named groups live under /apis."""
        assert group_version_path("apps/v1") == "/apis/apps/v1"


class TestDiscovery:
    """Tests for kind resolution."""

    def test_resolve_namespaced(self) -> None:
        """Namespaced kinds resolve to their plural under the group prefix."""
        client = make_client(lambda r: httpx.Response(404))

        resource = client.resolve("apps/v1", "Deployment")

        assert resource.prefix == "/apis/apps/v1"
        assert resource.plural == "deployments"
        assert resource.namespaced

    def test_subresources_are_skipped(self) -> None:
        """Subresource entries never shadow the parent kind."""
        client = make_client(lambda r: httpx.Response(404))

        assert client.resolve("v1", "Namespace").plural == "namespaces"

    def test_discovery_is_cached(self) -> None:
        """Each group-version is discovered once."""
        requests: list[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json={}), requests)

        client.resolve("v1", "ConfigMap")
        client.resolve("v1", "Secret")

        assert [r.url.path for r in requests] == ["/api/v1"]

    def test_unknown_kind(self) -> None:
        """Kinds not served by the group-version raise RemoteError."""
        client = make_client(lambda r: httpx.Response(404))

        with pytest.raises(RemoteError, match="Kind Widget is not served"):
            client.resolve("v1", "Widget")

    def test_unknown_group_version(self) -> None:
        """Unserved group-versions raise RemoteError, not NotFoundError."""
        client = make_client(lambda r: status(404, "not found"))

        with pytest.raises(RemoteError, match="not served") as exc_info:
            client.resolve("example.com/v1", "Widget")

        assert not isinstance(exc_info.value, NotFoundError)


class TestGet:
    """Tests for KubeClient.get."""

    def test_get_namespaced(self) -> None:
        """get fetches the object path in its namespace."""
        requests: list[httpx.Request] = []
        live = {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "a", "uid": "u1"}}
        client = make_client(lambda r: httpx.Response(200, json=live), requests)

        assert client.get(config_map_ref()) == live
        assert requests[-1].method == "GET"
        assert requests[-1].url.path == "/api/v1/namespaces/default/configmaps/a"

    def test_get_uses_default_namespace(self) -> None:
        """Namespaced refs without a namespace use the client default."""
        requests: list[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json={}), requests)

        client.get(config_map_ref(namespace=""))

        assert requests[-1].url.path == "/api/v1/namespaces/dev/configmaps/a"

    def test_get_cluster_scoped(self) -> None:
        """Cluster-scoped kinds have no namespace segment."""
        requests: list[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json={}), requests)

        client.get(ResourceRef("v1", "Namespace", "", "apps"))

        assert requests[-1].url.path == "/api/v1/namespaces/apps"

    def test_get_not_found(self) -> None:
        """HTTP 404 raises NotFoundError with the Status message."""
        client = make_client(lambda r: status(404, 'configmaps "a" not found'))

        with pytest.raises(NotFoundError, match='configmaps "a" not found') as exc_info:
            client.get(config_map_ref())

        assert exc_info.value.status == 404

    def test_server_error(self) -> None:
        """Other HTTP errors raise RemoteError with the status code."""
        client = make_client(lambda r: status(500, "etcdserver: request timed out"))

        with pytest.raises(RemoteError, match="request timed out") as exc_info:
            client.get(config_map_ref())

        assert exc_info.value.status == 500

    def test_transport_error(self) -> None:
        """Transport failures raise RemoteError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(RemoteError, match="connection refused"):
            client.get(config_map_ref())

    def test_non_json_error_body(self) -> None:
        """Plain-text error bodies are used as the message."""
        client = make_client(lambda r: httpx.Response(403, text="forbidden"))

        with pytest.raises(RemoteError, match="forbidden"):
            client.get(config_map_ref())


class TestApply:
    """Tests for KubeClient.apply."""

    @pytest.fixture
    def obj(self) -> dict[str, Any]:
        """Desired Deployment."""
        return {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {"name": "web", "namespace": "apps"},
            "spec": {"replicas": 2},
        }

    def test_apply_sends_server_side_apply_patch(self, obj: dict[str, Any]) -> None:
        """apply PATCHes with the apply-patch content type and field manager."""
        requests: list[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json=json.loads(r.content)), requests)

        result = client.apply(obj, ApplyOptions(field_owner="team-a"))

        request = requests[-1]
        assert request.method == "PATCH"
        assert request.url.path == "/apis/apps/v1/namespaces/apps/deployments/web"
        assert request.headers["Content-Type"] == APPLY_PATCH_CONTENT_TYPE
        assert request.url.params["fieldManager"] == "team-a"
        assert "force" not in request.url.params
        assert "dryRun" not in request.url.params
        assert json.loads(request.content) == obj
        assert result == obj

    def test_apply_force_and_dry_run(self, obj: dict[str, Any]) -> None:
        """Force and dry-run flags map to query parameters."""
        requests: list[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json={}), requests)

        client.apply(obj, ApplyOptions(dry_run=True, force_conflicts=True))

        assert requests[-1].url.params["force"] == "true"
        assert requests[-1].url.params["dryRun"] == "All"

    def test_apply_conflict(self, obj: dict[str, Any]) -> None:
        """HTTP 409 raises ConflictError."""
        client = make_client(lambda r: status(409, "Apply failed with 1 conflict"))

        with pytest.raises(ConflictError, match="1 conflict"):
            client.apply(obj, ApplyOptions())


class TestDelete:
    """Tests for KubeClient.delete."""

    def test_delete_with_uid_precondition(self) -> None:
        """Refs with a uid send a DeleteOptions precondition."""
        requests: list[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json={}), requests)

        client.delete(config_map_ref(uid="u1"))

        request = requests[-1]
        assert request.method == "DELETE"
        assert json.loads(request.content)["preconditions"] == {"uid": "u1"}
        assert "dryRun" not in request.url.params

    def test_delete_without_uid(self) -> None:
        """Refs without a uid send no body."""
        requests: list[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json={}), requests)

        client.delete(config_map_ref(), dry_run=True)

        assert requests[-1].content == b""
        assert requests[-1].url.params["dryRun"] == "All"

    def test_delete_not_found(self) -> None:
        """Deleting a missing object raises NotFoundError."""
        client = make_client(lambda r: status(404, "not found"))

        with pytest.raises(NotFoundError):
            client.delete(config_map_ref())


class TestCreateAndList:
    """Tests for KubeClient.create and KubeClient.list."""

    def test_create_posts_to_collection(self) -> None:
        """create POSTs to the collection path."""
        requests: list[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(201, json=json.loads(r.content)), requests)
        secret = {"apiVersion": "v1", "kind": "Secret", "metadata": {"name": "s", "namespace": "ops"}}

        client.create(secret, "owner")

        assert requests[-1].method == "POST"
        assert requests[-1].url.path == "/api/v1/namespaces/ops/secrets"
        assert requests[-1].url.params["fieldManager"] == "owner"

    def test_create_conflict(self) -> None:
        """Creating an existing object raises ConflictError."""
        client = make_client(lambda r: status(409, "already exists"))
        secret = {"apiVersion": "v1", "kind": "Secret", "metadata": {"name": "s", "namespace": "ops"}}

        with pytest.raises(ConflictError):
            client.create(secret, "owner")

    def test_list_adds_type_fields(self) -> None:
        """Listed items get apiVersion and kind filled in."""
        requests: list[httpx.Request] = []
        body = {"kind": "SecretList", "items": [{"metadata": {"name": "s1"}}]}
        client = make_client(lambda r: httpx.Response(200, json=body), requests)

        items = client.list("v1", "Secret", namespace="ops", label_selector="app=web")

        assert items == [{"apiVersion": "v1", "kind": "Secret", "metadata": {"name": "s1"}}]
        assert requests[-1].url.path == "/api/v1/namespaces/ops/secrets"
        assert requests[-1].url.params["labelSelector"] == "app=web"

    def test_list_null_items(self) -> None:
        """A null item list yields no objects."""
        client = make_client(lambda r: httpx.Response(200, json={"items": None}))

        assert client.list("v1", "Secret", namespace="ops") == []


class TestClientSetup:
    """Tests for client construction."""

    def test_bearer_token_header(self) -> None:
        """The token is sent as a bearer Authorization header."""
        with KubeClient("https://k8s.test/", token="s3cr3t", insecure_skip_tls_verify=True) as client:
            assert client.server == "https://k8s.test"
            assert client._client.headers["Authorization"] == "Bearer s3cr3t"  # noqa: SLF001


class TestClusterScopedApply:
    """Tests for applying cluster-scoped objects."""

    def test_namespace_is_dropped(self) -> None:
        """A defaulted namespace is removed from cluster-scoped objects."""
        requests: list[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json={}), requests)
        obj = {
            "apiVersion": "v1",
            "kind": "Namespace",
            "metadata": {"name": "apps", "namespace": "dev"},
        }

        client.apply(obj, ApplyOptions())

        assert requests[-1].url.path == "/api/v1/namespaces/apps"
        assert json.loads(requests[-1].content)["metadata"] == {"name": "apps"}
        assert obj["metadata"]["namespace"] == "dev"
