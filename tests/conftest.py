"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
from configset.core.engine import ReconciliationEngine
from configset.store.file import FileSetInfoStore
from fakes import FakeObjectClient, config_map

FIXED_NOW = datetime(2026, 1, 15, 10, 30, 0, tzinfo=UTC)


@pytest.fixture
def fake_client() -> FakeObjectClient:
    """Empty in-memory remote object store."""
    return FakeObjectClient()


@pytest.fixture
def file_store(tmp_path: Path) -> FileSetInfoStore:
    """File-backed state store in a temporary directory."""
    return FileSetInfoStore(tmp_path / "sets")


@pytest.fixture
def engine(fake_client: FakeObjectClient, file_store: FileSetInfoStore) -> ReconciliationEngine:
    """Engine wired to the fake client and the temporary file store."""
    return ReconciliationEngine(fake_client, file_store, clock=lambda: FIXED_NOW)


@pytest.fixture
def abc_objects() -> list[dict[str, Any]]:
    """Three ConfigMaps named a, b and c."""
    return [config_map("a"), config_map("b"), config_map("c")]


@pytest.fixture
def sample_manifest_yaml() -> str:
    """Multi-document manifest with a Namespace and two namespaced objects."""
    return """apiVersion: v1
kind: Namespace
metadata:
  name: apps
---
apiVersion: v1
kind: ConfigMap
metadata:
  name: settings
data:
  mode: production
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
  namespace: apps
spec:
  replicas: 2
"""
