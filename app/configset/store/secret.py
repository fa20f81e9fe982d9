"""Secret-backed state store.

Each set record lives in a Secret named configset.v1.<name> in the
working namespace. The record JSON is stored under the "data" key and
the Secret is labelled so that all records can be listed at once.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any

from configset.models.resource import ResourceRef
from configset.models.set_info import SetInfo
from configset.remote.base import (
    ApplyOptions,
    NotFoundError,
    RemoteError,
    RemoteObjectClient,
)
from configset.store.base import SetInfoStore, StateStoreError, record_name

logger = logging.getLogger(__name__)

SECRET_DATA_KEY = "data"
SECRET_FIELD_OWNER = "configset/secret-store"
SET_INFO_LABEL_KEY = "configset/is-set-info"


class SecretSetInfoStore(SetInfoStore):
    """Stores set records as Secrets through a RemoteObjectClient.

    Attributes:
        namespace: Namespace holding the record Secrets.
    """

    def __init__(self, client: RemoteObjectClient, namespace: str) -> None:
        """Initialize SecretSetInfoStore.

        Args:
            client: Client used to read and write Secrets.
            namespace: Namespace holding the record Secrets.
        """
        self._client = client
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        """Namespace holding the record Secrets."""
        return self._namespace

    def _ref(self, name: str) -> ResourceRef:
        return ResourceRef("v1", "Secret", self._namespace, record_name(name))

    def _secret(self, name: str, info: SetInfo) -> dict[str, Any]:
        """Build the Secret that holds a record."""
        encoded = base64.b64encode(info.to_json().encode("utf-8")).decode("ascii")
        return {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {
                "namespace": self._namespace,
                "name": record_name(name),
                "labels": {SET_INFO_LABEL_KEY: "true"},
            },
            "data": {SECRET_DATA_KEY: encoded},
        }

    @staticmethod
    def _decode(secret: dict[str, Any]) -> SetInfo:
        """Decode the record stored in a Secret.

        Raises:
            StateStoreError: If the Secret does not hold a valid record.
        """
        name = secret.get("metadata", {}).get("name", "<unknown>")
        raw = (secret.get("data") or {}).get(SECRET_DATA_KEY)
        if raw is None:
            raise StateStoreError(f"Secret {name} has no '{SECRET_DATA_KEY}' key")
        try:
            return SetInfo.from_json(base64.b64decode(raw, validate=True))
        except (binascii.Error, json.JSONDecodeError, KeyError, ValueError) as e:
            raise StateStoreError(f"Failed to parse secret {name}: {e}") from e

    def get(self, name: str) -> SetInfo | None:
        try:
            secret = self._client.get(self._ref(name))
        except NotFoundError:
            return None
        except RemoteError as e:
            raise StateStoreError(f"Failed to get secret: {e}") from e
        return self._decode(secret)

    def list(self) -> list[SetInfo]:
        try:
            secrets = self._client.list(
                "v1",
                "Secret",
                namespace=self._namespace,
                label_selector=SET_INFO_LABEL_KEY,
            )
        except RemoteError as e:
            raise StateStoreError(f"Failed to list secrets: {e}") from e
        return [self._decode(secret) for secret in secrets]

    def create(self, name: str, info: SetInfo) -> None:
        try:
            self._client.create(self._secret(name, info), SECRET_FIELD_OWNER)
        except RemoteError as e:
            raise StateStoreError(f"Failed to create secret: {e}") from e
        logger.debug("Created secret %s/%s", self._namespace, record_name(name))

    def update(self, name: str, info: SetInfo) -> None:
        options = ApplyOptions(field_owner=SECRET_FIELD_OWNER, force_conflicts=True)
        try:
            self._client.apply(self._secret(name, info), options)
        except RemoteError as e:
            raise StateStoreError(f"Failed to update secret: {e}") from e
        logger.debug("Updated secret %s/%s", self._namespace, record_name(name))

    def delete(self, name: str) -> None:
        try:
            self._client.delete(self._ref(name))
        except NotFoundError:
            return
        except RemoteError as e:
            raise StateStoreError(f"Failed to delete secret: {e}") from e
        logger.debug("Deleted secret %s/%s", self._namespace, record_name(name))
