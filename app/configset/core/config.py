"""Configuration loading for configset.

Settings come from three layers:
1. ~/.config/configset/config.toml (optional)
2. Environment variables (CONFIGSET_SERVER, CONFIGSET_TOKEN,
   CONFIGSET_NAMESPACE, CONFIGSET_STORE), overriding the file
3. In-cluster service account, filling in only when no server is set

Example config.toml:

    [cluster]
    server = "https://127.0.0.1:6443"
    token_file = "~/.kube/token"
    certificate_authority = "~/.kube/ca.crt"
    namespace = "apps"

    [store]
    backend = "secret"

    [diff]
    program = "colordiff -N -u"
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from configset.core.paths import get_config_path
from configset.remote.base import DEFAULT_FIELD_OWNER

# Store backend type alias
StoreBackend = Literal["secret", "file"]

DEFAULT_NAMESPACE = "default"
SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "CONFIGSET_SERVER": ("cluster", "server"),
    "CONFIGSET_TOKEN": ("cluster", "token"),
    "CONFIGSET_NAMESPACE": ("cluster", "namespace"),
    "CONFIGSET_STORE": ("store", "backend"),
}


class ClusterSettings(BaseModel):
    """Connection settings for the API server.

    Attributes:
        server: API server URL.
        token: Bearer token.
        token_file: File holding the bearer token (used when token is unset).
        certificate_authority: CA bundle path for TLS verification.
        insecure_skip_tls_verify: Disable TLS verification.
        namespace: Working namespace (objects without one, Secret store).
        timeout_seconds: Request timeout.
    """

    model_config = ConfigDict(extra="forbid")

    server: Annotated[str | None, Field(description="API server URL")] = None
    token: Annotated[str | None, Field(description="Bearer token")] = None
    token_file: Annotated[str | None, Field(description="Bearer token file")] = None
    certificate_authority: Annotated[str | None, Field(description="CA bundle path")] = None
    insecure_skip_tls_verify: Annotated[
        bool,
        Field(description="Skip TLS certificate verification"),
    ] = False
    namespace: Annotated[str | None, Field(description="Working namespace")] = None
    timeout_seconds: Annotated[
        float,
        Field(gt=0, le=600, description="Request timeout in seconds"),
    ] = 30.0

    @property
    def effective_namespace(self) -> str:
        """Configured namespace, or "default"."""
        return self.namespace or DEFAULT_NAMESPACE

    def resolve_token(self) -> str | None:
        """Return the bearer token, reading token_file if needed.

        Raises:
            ConfigError: If the token file cannot be read.
        """
        if self.token:
            return self.token
        if not self.token_file:
            return None
        path = Path(self.token_file).expanduser()
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ConfigError(f"Failed to read token file {path}: {e}") from e


class ApplySettings(BaseModel):
    """Apply settings.

    Attributes:
        field_owner: Owner token recorded on applied fields.
    """

    model_config = ConfigDict(extra="forbid")

    field_owner: Annotated[
        str,
        Field(min_length=1, description="Server-side apply field manager"),
    ] = DEFAULT_FIELD_OWNER


class StoreSettings(BaseModel):
    """State store settings.

    Attributes:
        backend: "secret" (in-cluster Secrets) or "file" (local state dir).
        directory: Records directory for the file backend.
    """

    model_config = ConfigDict(extra="forbid")

    backend: Annotated[StoreBackend, Field(description="State store backend")] = "secret"
    directory: Annotated[str | None, Field(description="File backend directory")] = None


class DiffSettings(BaseModel):
    """Diff settings.

    Attributes:
        program: Diff command line; KUBECTL_EXTERNAL_DIFF takes precedence.
    """

    model_config = ConfigDict(extra="forbid")

    program: Annotated[str | None, Field(description="External diff command")] = None


class Settings(BaseModel):
    """Top-level configset settings."""

    model_config = ConfigDict(extra="forbid")

    cluster: ClusterSettings = Field(default_factory=ClusterSettings)
    apply: ApplySettings = Field(default_factory=ApplySettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    diff: DiffSettings = Field(default_factory=DiffSettings)


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when an explicitly requested config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


class ConfigValidationError(ConfigError):
    """Raised when the config content is invalid."""


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config {path}: {e}") from e


def _apply_in_cluster(data: dict[str, Any], environ: Mapping[str, str], sa_dir: Path) -> None:
    """Fill cluster settings from the pod service account when no server is set."""
    cluster = data.setdefault("cluster", {})
    if not isinstance(cluster, dict) or cluster.get("server"):
        return
    host = environ.get("KUBERNETES_SERVICE_HOST")
    port = environ.get("KUBERNETES_SERVICE_PORT", "443")
    if not host:
        return

    if ":" in host:
        host = f"[{host}]"
    cluster["server"] = f"https://{host}:{port}"
    if not cluster.get("token") and not cluster.get("token_file"):
        if (sa_dir / "token").exists():
            cluster["token_file"] = str(sa_dir / "token")
    if not cluster.get("certificate_authority") and (sa_dir / "ca.crt").exists():
        cluster["certificate_authority"] = str(sa_dir / "ca.crt")
    if not cluster.get("namespace") and (sa_dir / "namespace").exists():
        try:
            cluster["namespace"] = (sa_dir / "namespace").read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ConfigError(f"Failed to read service account namespace: {e}") from e


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    service_account_dir: Path = SERVICE_ACCOUNT_DIR,
) -> Settings:
    """Load settings from the config file and environment.

    Args:
        path: Config file path. If None, uses the default path and tolerates
              its absence; an explicit path must exist.
        environ: Environment mapping. Defaults to os.environ.
        service_account_dir: Service account mount used for in-cluster defaults.

    Returns:
        Validated Settings.

    Raises:
        ConfigNotFoundError: If an explicit path does not exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    env = os.environ if environ is None else environ
    config_path = path or get_config_path()

    data: dict[str, Any] = {}
    if config_path.exists():
        data = _read_toml(config_path)
    elif path is not None:
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(env_var)
        if value:
            section_data = data.setdefault(section, {})
            if isinstance(section_data, dict):
                section_data[key] = value

    _apply_in_cluster(data, env, service_account_dir)

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid config content: {e}") from e
