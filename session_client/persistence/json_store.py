"""
JSON Store - Durable key/value file

Module: persistence.json_store
Date: 2026-10-18
Version: 0.1.0-alpha

CHANGELOG:
[2026-10-18 v0.1.0-alpha] Initial implementation
  - Flat key/value JSON document
  - Atomic writes (temp file + rename)
  - Lazy file creation with 0600 permissions

ARCHITECTURE:
JSONStore backs FileCredentialStore:
  - One JSON object per file, string keys
  - Every mutation is read-modify-write of a single key
  - The file is only created on first write

SECURITY NOTES:
- Temp file is created 0600, the final file is chmod 0600 after rename
- Directory created with 0700
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional


class JSONStoreError(Exception):
    """Base JSON store error"""
    pass


class JSONStoreIOError(JSONStoreError):
    """File I/O error"""
    pass


class JSONStoreFormatError(JSONStoreError):
    """JSON format error"""
    pass


class JSONStore:
    """
    Key/value persistence in a single JSON file.

    Handles:
    - Missing file (reads as empty document)
    - Atomic writes (temp file + rename)
    - Restrictive permissions
    """

    def __init__(self, file_path: str):
        """
        Initialize JSON store

        Args:
            file_path: Path to JSON file (created on first write)
        """
        self.logger = logging.getLogger(f"persistence.{self.__class__.__name__}")
        self.file_path = Path(file_path).expanduser()

    def load(self) -> Dict[str, Any]:
        """
        Load the whole document

        Returns:
            Parsed JSON object ({} if the file does not exist yet)

        Raises:
            JSONStoreIOError: If file cannot be read
            JSONStoreFormatError: If content is not a JSON object
        """
        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            raise JSONStoreFormatError(f"Invalid JSON in {self.file_path}: {e}")
        except OSError as e:
            raise JSONStoreIOError(f"Failed to read {self.file_path}: {e}")

        if not isinstance(data, dict):
            raise JSONStoreFormatError(
                f"Expected JSON object in {self.file_path}, got {type(data).__name__}"
            )
        return data

    def save(self, data: Dict[str, Any]) -> None:
        """
        Replace the whole document (atomic write)

        Raises:
            JSONStoreIOError: If write fails
        """
        self._write_atomic(data)

    def get_value(self, key: str) -> Optional[Any]:
        """Read one key, None if absent"""
        return self.load().get(key)

    def set_value(self, key: str, value: Any) -> None:
        """Write one key, overwriting any previous value"""
        data = self.load()
        data[key] = value
        self._write_atomic(data)

    def delete_value(self, key: str) -> bool:
        """
        Remove one key

        Returns:
            True if the key existed
        """
        data = self.load()
        if key not in data:
            return False
        del data[key]
        self._write_atomic(data)
        return True

    def _write_atomic(self, data: Dict[str, Any]) -> None:
        """
        Atomic write: write to temp file, then rename

        Raises:
            JSONStoreIOError: If write fails
        """
        temp_path = self.file_path.with_suffix('.tmp')
        try:
            self.file_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

            fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                # O_CREAT mode is ignored for a leftover temp file
                os.fchmod(f.fileno(), 0o600)
                json.dump(data, f, indent=2)

            temp_path.replace(self.file_path)
            self.file_path.chmod(0o600)
        except (OSError, TypeError, ValueError) as e:
            raise JSONStoreIOError(f"Failed to write {self.file_path}: {e}")

        self.logger.debug(f"Wrote {len(data)} keys to {self.file_path}")
