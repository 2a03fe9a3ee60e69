"""
Unit Tests - CredentialStore

Module: tests.test_credential_store
Date: 2026-10-18

Covers:
- get/set/delete per named secret
- FileCredentialStore durability and permissions
- FileCredentialStore I/O off the event loop, serialized writes
- StoreUnavailableError is never "absent"
"""

import asyncio
import json
import os
import shutil
import tempfile
import unittest
from unittest import mock

from session_client.persistence.credential_store import (
    FileCredentialStore,
    MemoryCredentialStore,
    StoreUnavailableError,
)
from session_client.persistence.json_store import JSONStore, JSONStoreFormatError


class TestMemoryCredentialStore(unittest.TestCase):

    def test_get_set_delete(self):
        async def test():
            store = MemoryCredentialStore()
            self.assertIsNone(await store.get("accessToken"))

            await store.set("accessToken", "a1")
            self.assertEqual(await store.get("accessToken"), "a1")

            await store.set("accessToken", "a2")
            self.assertEqual(await store.get("accessToken"), "a2")

            await store.delete("accessToken")
            self.assertIsNone(await store.get("accessToken"))

        asyncio.run(test())

    def test_names_are_independent(self):
        async def test():
            store = MemoryCredentialStore({"accessToken": "a", "refreshToken": "r"})
            await store.delete("accessToken")
            self.assertEqual(await store.get("refreshToken"), "r")

        asyncio.run(test())

    def test_delete_absent_is_noop(self):
        asyncio.run(MemoryCredentialStore().delete("refreshToken"))

    def test_unavailable_raises(self):
        """Given a locked medium, Then every operation raises StoreUnavailableError"""
        async def test():
            store = MemoryCredentialStore({"accessToken": "a"})
            store.available = False
            with self.assertRaises(StoreUnavailableError):
                await store.get("accessToken")
            with self.assertRaises(StoreUnavailableError):
                await store.set("accessToken", "b")
            with self.assertRaises(StoreUnavailableError):
                await store.delete("accessToken")

        asyncio.run(test())

    def test_invalid_arguments(self):
        async def test():
            store = MemoryCredentialStore()
            with self.assertRaises(ValueError):
                await store.set("accessToken", "")
            with self.assertRaises(ValueError):
                await store.get("")

        asyncio.run(test())


class TestFileCredentialStore(unittest.TestCase):

    def setUp(self):
        """Setup before each test"""
        self.test_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.test_dir, "nested", "credentials.json")

    def tearDown(self):
        """Cleanup after each test"""
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_missing_file_reads_as_absent(self):
        store = FileCredentialStore(self.path)
        self.assertIsNone(asyncio.run(store.get("accessToken")))
        self.assertFalse(os.path.exists(self.path))

    def test_persists_across_instances(self):
        async def test():
            await FileCredentialStore(self.path).set("accessToken", "a1")
            await FileCredentialStore(self.path).set("refreshToken", "r1")

            reopened = FileCredentialStore(self.path)
            self.assertEqual(await reopened.get("accessToken"), "a1")
            self.assertEqual(await reopened.get("refreshToken"), "r1")

            await reopened.delete("accessToken")
            self.assertIsNone(await FileCredentialStore(self.path).get("accessToken"))
            self.assertEqual(await FileCredentialStore(self.path).get("refreshToken"), "r1")

        asyncio.run(test())

    def test_file_permissions(self):
        asyncio.run(FileCredentialStore(self.path).set("accessToken", "a1"))
        mode = os.stat(self.path).st_mode & 0o777
        self.assertEqual(mode, 0o600)
        self.assertFalse(os.path.exists(self.path.replace(".json", ".tmp")))

    def test_temp_file_created_private(self):
        """
        Given: a permissive umask and a leftover world-readable temp file
        When: a credential is written
        Then: the temp file is already 0600 while the tokens are written to it
        """
        os.makedirs(os.path.dirname(self.path))
        temp_path = self.path.replace(".json", ".tmp")
        with open(temp_path, "w") as f:
            f.write("stale")
        os.chmod(temp_path, 0o644)

        modes = []
        real_dump = json.dump

        def recording_dump(data, fp, **kwargs):
            modes.append(os.stat(temp_path).st_mode & 0o777)
            return real_dump(data, fp, **kwargs)

        old_umask = os.umask(0o022)
        try:
            with mock.patch("session_client.persistence.json_store.json.dump", side_effect=recording_dump):
                asyncio.run(FileCredentialStore(self.path).set("accessToken", "a1"))
        finally:
            os.umask(old_umask)

        self.assertEqual(modes, [0o600])
        self.assertEqual(asyncio.run(FileCredentialStore(self.path).get("accessToken")), "a1")

    def test_operations_yield_to_event_loop(self):
        """
        Given: a ticker task running beside the store
        When: many file operations are awaited
        Then: the ticker keeps running, so file I/O does not block the loop
        """
        async def test():
            store = FileCredentialStore(self.path)
            ticks = 0
            stop = asyncio.Event()

            async def ticker():
                nonlocal ticks
                while not stop.is_set():
                    ticks += 1
                    await asyncio.sleep(0)

            task = asyncio.create_task(ticker())
            for i in range(20):
                await store.set("accessToken", f"a{i}")
                await store.get("accessToken")
            stop.set()
            await task

            self.assertGreater(ticks, 0)

        asyncio.run(test())

    def test_concurrent_writes_to_different_names(self):
        """
        Given: interleaved writes of both credentials to the same file
        When: they run concurrently
        Then: no write is lost
        """
        async def test():
            store = FileCredentialStore(self.path)
            await asyncio.gather(*[
                store.set(name, f"{name}-{i}")
                for i in range(10)
                for name in ("accessToken", "refreshToken")
            ])

            reopened = FileCredentialStore(self.path)
            self.assertEqual(await reopened.get("accessToken"), "accessToken-9")
            self.assertEqual(await reopened.get("refreshToken"), "refreshToken-9")

        asyncio.run(test())

    def test_corrupt_file_is_unavailable_not_absent(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as f:
            f.write("{not json")

        store = FileCredentialStore(self.path)
        with self.assertRaises(StoreUnavailableError):
            asyncio.run(store.get("accessToken"))

    def test_non_string_value_is_unavailable(self):
        JSONStore(self.path).save({"accessToken": 42})
        with self.assertRaises(StoreUnavailableError):
            asyncio.run(FileCredentialStore(self.path).get("accessToken"))


class TestJSONStore(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.test_dir, "store.json")

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_non_object_document_rejected(self):
        with open(self.path, "w") as f:
            f.write("[1, 2]")
        with self.assertRaises(JSONStoreFormatError):
            JSONStore(self.path).load()

    def test_delete_value_reports_presence(self):
        store = JSONStore(self.path)
        store.set_value("k", "v")
        self.assertTrue(store.delete_value("k"))
        self.assertFalse(store.delete_value("k"))
        self.assertEqual(store.load(), {})


if __name__ == "__main__":
    unittest.main(verbosity=2)
