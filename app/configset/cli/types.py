"""Shared helpers for CLI commands.

This module builds the settings, remote client, state store and engine
used by the subcommands, so that commands only deal with presentation.
"""

from __future__ import annotations

from pathlib import Path

import typer

from configset.core.config import ConfigError, Settings, load_settings
from configset.core.engine import ReconciliationEngine
from configset.remote.base import RemoteObjectClient
from configset.remote.kube import KubeClient
from configset.store.base import SetInfoStore
from configset.store.file import FileSetInfoStore
from configset.store.secret import SecretSetInfoStore
from configset.utils.formatting import print_error, print_info


def get_settings(ctx: typer.Context) -> Settings:
    """Load settings honoring the global --config and --namespace options.

    Args:
        ctx: Typer context carrying the global options.

    Returns:
        Loaded settings.

    Raises:
        typer.Exit: If the configuration cannot be loaded.
    """
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    config_path: Path | None = obj.get("config_path")
    namespace: str | None = obj.get("namespace")

    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if namespace:
        cluster = settings.cluster.model_copy(update={"namespace": namespace})
        settings = settings.model_copy(update={"cluster": cluster})
    return settings


def create_client(settings: Settings) -> KubeClient:
    """Create the API client from settings.

    Raises:
        ConfigError: If no server is configured or the token cannot be read.
    """
    cluster = settings.cluster
    if not cluster.server:
        msg = "No API server configured (set cluster.server or CONFIGSET_SERVER)"
        raise ConfigError(msg)
    return KubeClient(
        cluster.server,
        token=cluster.resolve_token(),
        certificate_authority=cluster.certificate_authority,
        insecure_skip_tls_verify=cluster.insecure_skip_tls_verify,
        default_namespace=cluster.effective_namespace,
        timeout=cluster.timeout_seconds,
    )


def create_store(settings: Settings, client: RemoteObjectClient | None = None) -> SetInfoStore:
    """Create the state store selected in settings.

    Args:
        settings: Loaded settings.
        client: Client for the Secret backend. Created from settings if None.

    Raises:
        ConfigError: If the Secret backend has no server configured.
    """
    if settings.store.backend == "file":
        directory = settings.store.directory
        return FileSetInfoStore(Path(directory).expanduser() if directory else None)
    if client is None:
        client = create_client(settings)
    return SecretSetInfoStore(client, settings.cluster.effective_namespace)


def create_engine(
    settings: Settings,
    client: RemoteObjectClient | None = None,
) -> ReconciliationEngine:
    """Create the reconciliation engine from settings.

    Args:
        settings: Loaded settings.
        client: Remote client to use. Created from settings if None.

    Raises:
        ConfigError: If the client or store cannot be configured.
    """
    if client is None:
        client = create_client(settings)
    store = create_store(settings, client)
    return ReconciliationEngine(client, store, field_owner=settings.apply.field_owner)


def require_engine(ctx: typer.Context, settings: Settings) -> ReconciliationEngine:
    """Create the engine or exit with a helpful error message.

    The API client is closed when the command context closes.

    Raises:
        typer.Exit: If the engine cannot be configured.
    """
    client = _require_client(settings)
    ctx.call_on_close(client.close)
    return create_engine(settings, client)


def require_store(ctx: typer.Context, settings: Settings) -> SetInfoStore:
    """Create the state store or exit with a helpful error message.

    The API client of the Secret backend is closed when the command context
    closes.

    Raises:
        typer.Exit: If the store cannot be configured.
    """
    if settings.store.backend == "file":
        return create_store(settings)
    client = _require_client(settings)
    ctx.call_on_close(client.close)
    return create_store(settings, client)


def _require_client(settings: Settings) -> KubeClient:
    try:
        return create_client(settings)
    except ConfigError as e:
        print_error(str(e))
        print_info("Configure the cluster in ~/.config/configset/config.toml.")
        raise typer.Exit(code=1) from e
