"""
Integration Tests - AuthClient

Module: tests.test_auth_client
Date: 2026-10-18

Covers:
- Login/registration/OTP store the initial pair directly
- Rejected credentials raise AuthenticationError
- Logout revokes the refresh token server-side and always clears the store
- Gate follows every transition through the event bus
"""

import asyncio
import unittest

from session_client.core.config import SessionConfig
from session_client.core.session_gate import SessionGate, SessionVerdict
from session_client.events.session_events import SessionEventBus
from session_client.persistence.credential_store import MemoryCredentialStore
from session_client.security.auth_client import AuthClient, AuthenticationError
from session_client.transport.request_pipeline import RequestPipeline
from tests.fake_backend import running_backend


class TestAuthClient(unittest.TestCase):

    def test_login_then_authenticated_request(self):
        """
        Given: a logged-out client with a mounted gate
        When: the user logs in
        Then: the pair is stored, the gate reports AUTHENTICATED,
              and feature requests carry the new token
        """
        async def test():
            async with running_backend() as backend:
                store = MemoryCredentialStore()
                bus = SessionEventBus()
                gate = SessionGate(store, bus)
                await gate.mount()
                self.assertIs(gate.verdict, SessionVerdict.UNAUTHENTICATED)

                config = SessionConfig(base_url=backend.base_url)
                async with RequestPipeline(store, config, session_events=bus) as api:
                    auth = AuthClient(api, store, bus)
                    body = await auth.login("farmer@example.com", "s3cret")

                    self.assertEqual(body["user"], {"email": "farmer@example.com"})
                    self.assertEqual(store.snapshot()["accessToken"], body["accessToken"])
                    self.assertEqual(store.snapshot()["refreshToken"], body["refreshToken"])
                    self.assertIs(await gate.settle(), SessionVerdict.AUTHENTICATED)

                    response = await api.get("/fields")
                    self.assertEqual(response.status, 200)
                    self.assertEqual(backend.refresh_calls, 0)

                gate.unmount()

        asyncio.run(test())

    def test_login_rejected(self):
        async def test():
            async with running_backend() as backend:
                store = MemoryCredentialStore()
                async with RequestPipeline(store, SessionConfig(base_url=backend.base_url)) as api:
                    auth = AuthClient(api, store)
                    with self.assertRaises(AuthenticationError) as ctx:
                        await auth.login("farmer@example.com", "wrong")

                self.assertEqual(ctx.exception.status, 401)
                self.assertEqual(str(ctx.exception), "Invalid credentials")
                self.assertEqual(store.snapshot(), {})
                self.assertEqual(backend.refresh_calls, 0)

        asyncio.run(test())

    def test_login_requires_credentials(self):
        async def test():
            store = MemoryCredentialStore()
            async with RequestPipeline(store) as api:
                with self.assertRaises(ValueError):
                    await AuthClient(api, store).login("", "")

        asyncio.run(test())

    def test_register(self):
        async def test():
            async with running_backend() as backend:
                store = MemoryCredentialStore()
                async with RequestPipeline(store, SessionConfig(base_url=backend.base_url)) as api:
                    auth = AuthClient(api, store)
                    await auth.register(email="new@example.com", password="pw", name="New Farmer")
                    self.assertIn(store.snapshot()["accessToken"], backend.valid_access)

                    with self.assertRaises(AuthenticationError) as ctx:
                        await auth.register(email="new@example.com", password="pw")
                    self.assertEqual(ctx.exception.status, 409)

        asyncio.run(test())

    def test_otp_flow(self):
        async def test():
            async with running_backend() as backend:
                store = MemoryCredentialStore()
                async with RequestPipeline(store, SessionConfig(base_url=backend.base_url)) as api:
                    auth = AuthClient(api, store)

                    sent = await auth.send_otp("+919800000000")
                    self.assertTrue(sent["sent"])
                    self.assertEqual(store.snapshot(), {})

                    with self.assertRaises(AuthenticationError):
                        await auth.verify_otp("+919800000000", "000000")

                    await auth.verify_otp("+919800000000", "123456")
                    self.assertIn(store.snapshot()["refreshToken"], backend.valid_refresh)

        asyncio.run(test())

    def test_logout(self):
        async def test():
            async with running_backend() as backend:
                access, refresh = backend.issue_pair()
                store = MemoryCredentialStore({"accessToken": access, "refreshToken": refresh})
                bus = SessionEventBus()
                gate = SessionGate(store, bus)
                await gate.mount()
                self.assertIs(gate.verdict, SessionVerdict.AUTHENTICATED)

                async with RequestPipeline(store, SessionConfig(base_url=backend.base_url)) as api:
                    await AuthClient(api, store, bus).logout()

                self.assertEqual(backend.revoked_refresh, [refresh])
                self.assertNotIn(refresh, backend.valid_refresh)
                self.assertEqual(backend.logout_authorization, [f"Bearer {access}"])
                self.assertEqual(store.snapshot(), {})
                self.assertIs(await gate.settle(), SessionVerdict.UNAUTHENTICATED)
                gate.unmount()

        asyncio.run(test())

    def test_logout_clears_locally_when_revocation_rejected(self):
        """
        Given: a backend whose logout endpoint fails
        When: the user logs out
        Then: no error is raised and both credentials are still deleted
        """
        async def test():
            async with running_backend() as backend:
                backend.logout_status = 500
                access, refresh = backend.issue_pair()
                store = MemoryCredentialStore({"accessToken": access, "refreshToken": refresh})

                async with RequestPipeline(store, SessionConfig(base_url=backend.base_url)) as api:
                    await AuthClient(api, store).logout()

                self.assertEqual(len(backend.logout_authorization), 1)
                self.assertEqual(backend.revoked_refresh, [])
                self.assertEqual(store.snapshot(), {})

        asyncio.run(test())

    def test_logout_clears_locally_when_backend_unreachable(self):
        async def test():
            store = MemoryCredentialStore({"accessToken": "a", "refreshToken": "r"})
            bus = SessionEventBus()
            notified = []
            bus.subscribe(lambda: notified.append(True))

            config = SessionConfig(base_url="http://127.0.0.1:1/api/v1")
            async with RequestPipeline(store, config) as api:
                await AuthClient(api, store, bus).logout()

            self.assertEqual(store.snapshot(), {})
            self.assertEqual(notified, [True])

        asyncio.run(test())

    def test_logout_without_refresh_token_skips_revocation(self):
        async def test():
            async with running_backend() as backend:
                access, _ = backend.issue_pair()
                store = MemoryCredentialStore({"accessToken": access})

                async with RequestPipeline(store, SessionConfig(base_url=backend.base_url)) as api:
                    await AuthClient(api, store).logout()

                self.assertEqual(backend.logout_authorization, [])
                self.assertEqual(store.snapshot(), {})

        asyncio.run(test())

    def test_check_connection(self):
        async def test():
            async with running_backend() as backend:
                store = MemoryCredentialStore()
                async with RequestPipeline(store, SessionConfig(base_url=backend.base_url)) as api:
                    self.assertTrue(await AuthClient(api, store).check_connection())

                config = SessionConfig(base_url="http://127.0.0.1:1/api/v1")
                async with RequestPipeline(store, config) as api:
                    self.assertFalse(await AuthClient(api, store).check_connection())

        asyncio.run(test())


if __name__ == "__main__":
    unittest.main(verbosity=2)
