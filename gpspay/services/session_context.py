"""
Session context: the single holder of "who is signed in".
"""
from typing import Callable, List, Optional

from gpspay.logging_config import get_logger
from gpspay.models import Session
from gpspay.services.account_service import AccountService, SessionCallback

logger = get_logger(__name__)


class SessionContext:
    """
    Owns the current session for one client.

    Sessions are immutable and swapped by a single assignment, so readers
    see either the old session or the new one. Observers registered with
    ``subscribe`` hear about every change until they unsubscribe or the
    context is closed.
    """

    def __init__(self, account_service: AccountService):
        self.account_service = account_service
        self._session: Optional[Session] = None
        self._observers: List[SessionCallback] = []
        self._unsubscribe_remote: Optional[Callable[[], None]] = None
        self.is_loading = True

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    async def initialize(self) -> Optional[Session]:
        """Fetch the current session once and start listening for changes."""
        try:
            self._session = await self.account_service.get_session()
        except Exception as e:
            # No session is a valid state; never fail the caller here
            logger.warning("session_fetch_failed", error=str(e))
            self._session = None
        finally:
            self.is_loading = False

        if self._unsubscribe_remote is None:
            self._unsubscribe_remote = self.account_service.on_session_change(self._on_change)
        return self._session

    def _on_change(self, session: Optional[Session]):
        self._session = session
        for observer in list(self._observers):
            try:
                observer(session)
            except Exception as e:
                logger.error("session_observer_failed", error=str(e))

    def subscribe(self, callback: SessionCallback) -> Callable[[], None]:
        self._observers.append(callback)

        def unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def close(self):
        """Stop listening to the account service and drop all observers."""
        if self._unsubscribe_remote is not None:
            self._unsubscribe_remote()
            self._unsubscribe_remote = None
        self._observers.clear()
