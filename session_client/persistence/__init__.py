"""
Persistence module - Credential storage

Provides:
- CredentialStore: async get/set/delete per named secret
- MemoryCredentialStore / FileCredentialStore
- JSONStore: atomic key/value JSON file
"""

from .json_store import JSONStore, JSONStoreError, JSONStoreIOError, JSONStoreFormatError
from .credential_store import (
    CredentialStore,
    CredentialStoreError,
    StoreUnavailableError,
    MemoryCredentialStore,
    FileCredentialStore,
)

__all__ = [
    "JSONStore",
    "JSONStoreError",
    "JSONStoreIOError",
    "JSONStoreFormatError",
    "CredentialStore",
    "CredentialStoreError",
    "StoreUnavailableError",
    "MemoryCredentialStore",
    "FileCredentialStore",
]
