"""Remote object clients for configset.

This package contains the client interface consumed by the engine and
its Kubernetes implementation.
"""

from configset.remote.base import (
    ApplyOptions,
    ConflictError,
    NotFoundError,
    RemoteError,
    RemoteObjectClient,
)
from configset.remote.kube import KubeClient

__all__ = [
    "ApplyOptions",
    "ConflictError",
    "KubeClient",
    "NotFoundError",
    "RemoteError",
    "RemoteObjectClient",
]
