"""State stores for config set records.

This package contains the store interface and its Secret and local file
implementations.
"""

from configset.store.base import (
    RECORD_NAME_PREFIX,
    SetInfoStore,
    StateStoreError,
    record_name,
)
from configset.store.file import FileSetInfoStore
from configset.store.secret import SecretSetInfoStore

__all__ = [
    "RECORD_NAME_PREFIX",
    "FileSetInfoStore",
    "SecretSetInfoStore",
    "SetInfoStore",
    "StateStoreError",
    "record_name",
]
