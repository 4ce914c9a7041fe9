import unittest

from gpspay.errors import AccountServiceError
from gpspay.services.session_context import SessionContext
from tests.fakes import FakeAccountService, make_session


class TestSessionContext(unittest.IsolatedAsyncioTestCase):

    async def test_initialize_loads_current_session(self):
        session = make_session(user_type="toll")
        context = SessionContext(FakeAccountService(session=session))

        self.assertTrue(context.is_loading)
        self.assertEqual(await context.initialize(), session)
        self.assertFalse(context.is_loading)
        self.assertTrue(context.is_authenticated)
        self.assertEqual(context.session.user.business_type, "toll")

    async def test_initialize_fails_open(self):
        service = FakeAccountService(get_session_error=AccountServiceError("network down"))
        context = SessionContext(service)

        self.assertIsNone(await context.initialize())
        self.assertFalse(context.is_authenticated)
        self.assertFalse(context.is_loading)

    async def test_change_events_replace_session_and_notify_observers(self):
        service = FakeAccountService()
        context = SessionContext(service)
        await context.initialize()

        seen_a, seen_b = [], []
        context.subscribe(seen_a.append)
        unsubscribe_b = context.subscribe(seen_b.append)

        first = make_session("user-1")
        service.emit(first)
        self.assertIs(context.session, first)

        unsubscribe_b()
        service.emit(None)

        self.assertEqual(seen_a, [first, None])
        self.assertEqual(seen_b, [first])
        self.assertIsNone(context.session)

    async def test_failing_observer_does_not_block_others(self):
        service = FakeAccountService()
        context = SessionContext(service)
        await context.initialize()

        def broken(session):
            raise RuntimeError("boom")

        seen = []
        context.subscribe(broken)
        context.subscribe(seen.append)
        service.emit(make_session())

        self.assertEqual(len(seen), 1)

    async def test_close_unsubscribes(self):
        service = FakeAccountService()
        context = SessionContext(service)
        await context.initialize()
        self.assertEqual(len(service.listeners), 1)

        seen = []
        context.subscribe(seen.append)
        context.close()
        context.close()

        self.assertEqual(service.listeners, [])
        service.emit(make_session())
        self.assertEqual(seen, [])


if __name__ == "__main__":
    unittest.main()
