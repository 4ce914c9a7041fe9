"""
Account service: the identity provider the app signs users up and in with.

``AccountService`` is the contract the rest of the app depends on;
``SupabaseAccountService`` implements it on top of Supabase Auth.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from supabase import AsyncClient, AuthError

from gpspay.errors import AccountServiceError
from gpspay.logging_config import get_logger
from gpspay.models import Session, SessionUser
from gpspay.services.remote import call_with_timeout
from gpspay.supabase import create_auth_client

logger = get_logger(__name__)

SessionCallback = Callable[[Optional[Session]], None]
Unsubscribe = Callable[[], None]


class AccountService(ABC):
    """Identity operations consumed by the wizard, session context and routers."""

    @abstractmethod
    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: Dict[str, Any],
        redirect_to: Optional[str] = None,
    ) -> str:
        """Create an account. Returns the new user id."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Session:
        """Password sign-in."""

    @abstractmethod
    async def get_session(self) -> Optional[Session]:
        """Return the current session, or None."""

    @abstractmethod
    def on_session_change(self, callback: SessionCallback) -> Unsubscribe:
        """Register for session changes. Returns a function that unregisters."""

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session."""

    @abstractmethod
    async def exchange_code_for_session(self, code: str) -> Session:
        """Trade a one-time email-verification code for a session."""


def _to_session(sb_session) -> Optional[Session]:
    if sb_session is None:
        return None
    user = sb_session.user
    return Session(
        access_token=sb_session.access_token,
        refresh_token=sb_session.refresh_token,
        expires_at=sb_session.expires_at,
        user=SessionUser(
            id=str(user.id),
            email=user.email,
            user_metadata=dict(user.user_metadata or {}),
        ),
    )


class SupabaseAccountService(AccountService):
    """
    Supabase Auth implementation.

    Each instance wraps its own client, so a session restored from a bearer
    token never leaks into another request.
    """

    def __init__(
        self,
        client: AsyncClient,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
    ):
        self.client = client
        self.access_token = access_token
        self.refresh_token = refresh_token

    @classmethod
    async def create(
        cls,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
    ) -> "SupabaseAccountService":
        client = await create_auth_client()
        return cls(client, access_token=access_token, refresh_token=refresh_token)

    async def _call(self, awaitable, action: str):
        try:
            return await call_with_timeout(awaitable, AccountServiceError, action)
        except AuthError as e:
            raise AccountServiceError(e.message) from e

    async def sign_up(self, email, password, metadata, redirect_to=None) -> str:
        options: Dict[str, Any] = {"data": metadata}
        if redirect_to:
            options["email_redirect_to"] = redirect_to

        res = await self._call(
            self.client.auth.sign_up({"email": email, "password": password, "options": options}),
            "Sign up",
        )
        if not res.user:
            raise AccountServiceError("User registration failed")

        logger.info("account_signed_up", user_id=str(res.user.id),
                    user_type=metadata.get("user_type"))
        return str(res.user.id)

    async def sign_in(self, email: str, password: str) -> Session:
        res = await self._call(
            self.client.auth.sign_in_with_password({"email": email, "password": password}),
            "Sign in",
        )
        session = _to_session(res.session)
        if session is None:
            raise AccountServiceError("Sign in did not return a session")
        return session

    async def get_session(self) -> Optional[Session]:
        if self.access_token and self.refresh_token:
            res = await self._call(
                self.client.auth.set_session(self.access_token, self.refresh_token),
                "Session restore",
            )
            return _to_session(res.session)

        if self.access_token:
            res = await self._call(self.client.auth.get_user(self.access_token), "Session lookup")
            if not res or not res.user:
                return None
            return Session(
                access_token=self.access_token,
                user=SessionUser(
                    id=str(res.user.id),
                    email=res.user.email,
                    user_metadata=dict(res.user.user_metadata or {}),
                ),
            )

        return _to_session(await self._call(self.client.auth.get_session(), "Session lookup"))

    def on_session_change(self, callback: SessionCallback) -> Unsubscribe:
        def _listener(event, sb_session):
            logger.debug("auth_state_changed", auth_event=str(event))
            callback(_to_session(sb_session))

        subscription = self.client.auth.on_auth_state_change(_listener)
        return subscription.unsubscribe

    async def sign_out(self) -> None:
        await self._call(self.client.auth.sign_out(), "Sign out")

    async def exchange_code_for_session(self, code: str) -> Session:
        res = await self._call(
            self.client.auth.exchange_code_for_session({"auth_code": code}),
            "Code exchange",
        )
        session = _to_session(res.session)
        if session is None:
            raise AccountServiceError("Code exchange did not return a session")
        return session
