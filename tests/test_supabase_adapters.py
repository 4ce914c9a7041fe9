import asyncio
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from supabase import AuthError

from gpspay.errors import AccountServiceError, RecordStoreError
from gpspay.services.account_service import SupabaseAccountService
from gpspay.services.record_store import SupabaseRecordStore
from gpspay.services.remote import call_with_timeout


class ApiAuthError(AuthError):

    def __init__(self, message):
        Exception.__init__(self, message)
        self.message = message


def sb_session(user_id="u-1", email="a@b.com", **metadata):
    user = SimpleNamespace(id=user_id, email=email, user_metadata=metadata)
    return SimpleNamespace(access_token="at", refresh_token="rt", expires_at=123, user=user)


class TestCallWithTimeout(unittest.IsolatedAsyncioTestCase):

    async def test_returns_result(self):
        async def quick():
            return 42

        self.assertEqual(await call_with_timeout(quick(), RecordStoreError, "Select", timeout=1), 42)

    async def test_timeout_becomes_domain_error(self):
        with self.assertRaises(RecordStoreError) as ctx:
            await call_with_timeout(asyncio.sleep(1), RecordStoreError, "Insert on profile", timeout=0.01)
        self.assertEqual(ctx.exception.message, "Insert on profile timed out after 0.01s")


class TestSupabaseAccountService(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.client = MagicMock()
        self.auth = self.client.auth

    async def test_sign_up_passes_metadata_and_redirect(self):
        self.auth.sign_up = AsyncMock(return_value=SimpleNamespace(user=SimpleNamespace(id="u-1")))
        service = SupabaseAccountService(self.client)

        user_id = await service.sign_up("a@b.com", "secret1", {"user_type": "toll"},
                                        redirect_to="http://site/auth/callback")

        self.assertEqual(user_id, "u-1")
        self.auth.sign_up.assert_awaited_once_with({
            "email": "a@b.com",
            "password": "secret1",
            "options": {"data": {"user_type": "toll"}, "email_redirect_to": "http://site/auth/callback"},
        })

    async def test_auth_error_message_is_kept(self):
        self.auth.sign_up = AsyncMock(side_effect=ApiAuthError("User already registered"))
        service = SupabaseAccountService(self.client)

        with self.assertRaises(AccountServiceError) as ctx:
            await service.sign_up("a@b.com", "secret1", {})
        self.assertEqual(ctx.exception.message, "User already registered")

    async def test_sign_up_without_user(self):
        self.auth.sign_up = AsyncMock(return_value=SimpleNamespace(user=None))
        with self.assertRaises(AccountServiceError):
            await SupabaseAccountService(self.client).sign_up("a@b.com", "secret1", {})

    async def test_sign_in_converts_session(self):
        self.auth.sign_in_with_password = AsyncMock(
            return_value=SimpleNamespace(session=sb_session(user_type="restaurant"))
        )

        session = await SupabaseAccountService(self.client).sign_in("a@b.com", "secret1")

        self.assertEqual(session.access_token, "at")
        self.assertEqual(session.user.business_type, "restaurant")

    async def test_get_session_restores_from_tokens(self):
        self.auth.set_session = AsyncMock(return_value=SimpleNamespace(session=sb_session()))
        service = SupabaseAccountService(self.client, access_token="at", refresh_token="rt")

        session = await service.get_session()

        self.auth.set_session.assert_awaited_once_with("at", "rt")
        self.assertEqual(session.user.id, "u-1")

    async def test_get_session_with_access_token_only(self):
        user = SimpleNamespace(id="u-2", email="c@d.com", user_metadata={"user_type": "other"})
        self.auth.get_user = AsyncMock(return_value=SimpleNamespace(user=user))
        service = SupabaseAccountService(self.client, access_token="at")

        session = await service.get_session()

        self.assertEqual(session.access_token, "at")
        self.assertEqual(session.user.business_type, "other")

    async def test_session_change_listener(self):
        subscription = MagicMock()
        self.auth.on_auth_state_change = MagicMock(return_value=subscription)
        seen = []

        unsubscribe = SupabaseAccountService(self.client).on_session_change(seen.append)
        listener = self.auth.on_auth_state_change.call_args[0][0]
        listener("SIGNED_IN", sb_session())
        listener("SIGNED_OUT", None)

        self.assertEqual(seen[0].user.id, "u-1")
        self.assertIsNone(seen[1])
        self.assertIs(unsubscribe, subscription.unsubscribe)

    async def test_exchange_code(self):
        self.auth.exchange_code_for_session = AsyncMock(return_value=SimpleNamespace(session=sb_session()))

        await SupabaseAccountService(self.client).exchange_code_for_session("abc")

        self.auth.exchange_code_for_session.assert_awaited_once_with({"auth_code": "abc"})


class TestSupabaseRecordStore(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.client = MagicMock()
        self.query = MagicMock()
        self.client.table.return_value = self.query
        for method in ("insert", "upsert", "select", "update", "eq", "order"):
            getattr(self.query, method).return_value = self.query

    async def test_insert_returns_row(self):
        self.query.execute = AsyncMock(return_value=SimpleNamespace(data=[{"id": 1, "name": "NH48"}]))

        row = await SupabaseRecordStore(self.client).insert("toll_booths", {"name": "NH48"})

        self.client.table.assert_called_with("toll_booths")
        self.assertEqual(row["id"], 1)

    async def test_select_applies_filters_and_order(self):
        self.query.execute = AsyncMock(return_value=SimpleNamespace(data=[]))

        rows = await SupabaseRecordStore(self.client).select(
            "transactions", {"profile_id": "p-1"}, order_by="transaction_date", descending=True
        )

        self.assertEqual(rows, [])
        self.query.eq.assert_called_once_with("profile_id", "p-1")
        self.query.order.assert_called_once_with("transaction_date", desc=True)

    async def test_errors_become_record_store_errors(self):
        self.query.execute = AsyncMock(side_effect=RuntimeError("permission denied"))

        with self.assertRaises(RecordStoreError) as ctx:
            await SupabaseRecordStore(self.client).upsert("profile", {"id": "u-1"})
        self.assertEqual(ctx.exception.message, "permission denied")

    async def test_update_without_rows(self):
        self.query.execute = AsyncMock(return_value=SimpleNamespace(data=[]))

        with self.assertRaises(RecordStoreError):
            await SupabaseRecordStore(self.client).update("toll_profiles", "p-1", {"upi_id": "x@upi"})


if __name__ == "__main__":
    unittest.main()
