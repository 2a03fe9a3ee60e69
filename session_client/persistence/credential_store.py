"""
Credential Store - Named secret persistence

Module: persistence.credential_store
Date: 2026-10-18
Version: 0.1.0-alpha

CHANGELOG:
[2026-10-18 v0.1.0-alpha] Initial implementation
  - Async get/set/delete per named secret
  - In-memory store (tests, ephemeral sessions)
  - File store on top of JSONStore (I/O in thread pool)
  - StoreUnavailableError distinct from "credential absent"

ARCHITECTURE:
CredentialStore is the only mutable shared resource of the session:
  - RequestPipeline reads accessToken, rotates both on refresh
  - SessionGate reads accessToken, deletes both on expiry
  - AuthClient writes the initial pair on login/registration

Every operation touches exactly one name. None means "not held".

SECURITY NOTES:
- Values are never logged
- An unreadable medium raises StoreUnavailableError, never returns None
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from .json_store import JSONStore, JSONStoreError


class CredentialStoreError(Exception):
    """Base credential store error"""
    pass


class StoreUnavailableError(CredentialStoreError):
    """The underlying medium could not be read or written"""
    pass


class CredentialStore(ABC):
    """
    Async key/value persistence for named secrets.

    Subclasses implement _get/_set/_delete; this class validates names
    and logs operations.
    """

    def __init__(self):
        self.logger = logging.getLogger("persistence.credential_store")

    async def get(self, name: str) -> Optional[str]:
        """
        Read a credential

        Args:
            name: Credential name (e.g. "accessToken")

        Returns:
            Stored value, or None if not held

        Raises:
            StoreUnavailableError: If the medium cannot be read
        """
        self._check_name(name)
        return await self._get(name)

    async def set(self, name: str, value: str) -> None:
        """
        Store a credential, overwriting any previous value

        Raises:
            ValueError: If value is empty
            StoreUnavailableError: If the medium cannot be written
        """
        self._check_name(name)
        if not value or not isinstance(value, str):
            raise ValueError(f"Credential {name} must be a non-empty string")
        await self._set(name, value)
        self.logger.debug(f"Stored credential {name}")

    async def delete(self, name: str) -> None:
        """
        Remove a credential (no-op if not held)

        Raises:
            StoreUnavailableError: If the medium cannot be written
        """
        self._check_name(name)
        await self._delete(name)
        self.logger.debug(f"Deleted credential {name}")

    @staticmethod
    def _check_name(name: str) -> None:
        if not name or not isinstance(name, str):
            raise ValueError("Credential name must be a non-empty string")

    @abstractmethod
    async def _get(self, name: str) -> Optional[str]:
        pass

    @abstractmethod
    async def _set(self, name: str, value: str) -> None:
        pass

    @abstractmethod
    async def _delete(self, name: str) -> None:
        pass


class MemoryCredentialStore(CredentialStore):
    """
    Process-local store.

    Set `available = False` to simulate a locked medium: every
    operation then raises StoreUnavailableError.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__()
        self._values: Dict[str, str] = dict(initial or {})
        self.available = True

    def snapshot(self) -> Dict[str, str]:
        """Copy of current contents"""
        return dict(self._values)

    def _ensure_available(self) -> None:
        if not self.available:
            raise StoreUnavailableError("Memory credential store is unavailable")

    async def _get(self, name: str) -> Optional[str]:
        self._ensure_available()
        return self._values.get(name)

    async def _set(self, name: str, value: str) -> None:
        self._ensure_available()
        self._values[name] = value

    async def _delete(self, name: str) -> None:
        self._ensure_available()
        self._values.pop(name, None)


class FileCredentialStore(CredentialStore):
    """
    Durable store backed by a 0600 JSON file.

    Survives process restarts. File I/O runs in the default thread pool
    executor; one asyncio.Lock serializes the read-modify-write cycles
    so writes to different names never overwrite each other.
    """

    def __init__(self, file_path: str):
        super().__init__()
        self.store = JSONStore(file_path)
        self._io_lock = asyncio.Lock()
        self.logger.info(f"FileCredentialStore initialized (file={self.store.file_path})")

    async def _run_io(self, func, *args):
        """Run a blocking JSONStore call in the thread pool"""
        async with self._io_lock:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, func, *args)

    async def _get(self, name: str) -> Optional[str]:
        try:
            value = await self._run_io(self.store.get_value, name)
        except JSONStoreError as e:
            raise StoreUnavailableError(f"Cannot read credential {name}: {e}") from e
        if value is not None and not isinstance(value, str):
            raise StoreUnavailableError(f"Credential {name} has unexpected type {type(value).__name__}")
        return value

    async def _set(self, name: str, value: str) -> None:
        try:
            await self._run_io(self.store.set_value, name, value)
        except JSONStoreError as e:
            raise StoreUnavailableError(f"Cannot write credential {name}: {e}") from e

    async def _delete(self, name: str) -> None:
        try:
            await self._run_io(self.store.delete_value, name)
        except JSONStoreError as e:
            raise StoreUnavailableError(f"Cannot delete credential {name}: {e}") from e
