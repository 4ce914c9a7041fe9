from typing import AsyncGenerator, Awaitable, Callable, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .logging_config import get_logger
from .models import Session
from .services.account_service import AccountService, SupabaseAccountService
from .services.draft_store import DraftStore
from .services.reconciliation import ReconciliationQueue
from .services.record_store import RecordStore, SupabaseRecordStore
from .services.session_context import SessionContext
from .services.wizard import WizardRegistry

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)

AccountServiceFactory = Callable[[Optional[str], Optional[str]], Awaitable[AccountService]]


def get_wizard_registry(request: Request) -> WizardRegistry:
    return request.app.state.wizards


def get_draft_store(request: Request) -> DraftStore:
    return request.app.state.draft_store


def get_reconciliation_queue(draft_store: DraftStore = Depends(get_draft_store)) -> ReconciliationQueue:
    return ReconciliationQueue(draft_store)


def get_account_service_factory() -> AccountServiceFactory:
    """
    Factory for per-request account services.

    Each request gets its own client so one user's session never ends up
    in another user's request.
    """
    return SupabaseAccountService.create


async def get_account_service(
    factory: AccountServiceFactory = Depends(get_account_service_factory),
) -> AccountService:
    try:
        return await factory(None, None)
    except ValueError as e:
        logger.error("account_service_unavailable", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service is not configured",
        )


async def get_record_store() -> RecordStore:
    try:
        return await SupabaseRecordStore.create()
    except ValueError as e:
        logger.error("record_store_unavailable", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Record store is not configured",
        )


async def get_session_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    refresh_token: Optional[str] = Header(default=None, alias="X-Refresh-Token"),
    factory: AccountServiceFactory = Depends(get_account_service_factory),
) -> AsyncGenerator[SessionContext, None]:
    """
    Session context for the current request.

    The context is initialized from the bearer token (and optional refresh
    token) and closed when the request finishes.
    """
    access_token = credentials.credentials if credentials else None
    try:
        account_service = await factory(access_token, refresh_token)
    except ValueError as e:
        logger.error("account_service_unavailable", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service is not configured",
        )

    context = SessionContext(account_service)
    await context.initialize()
    try:
        yield context
    finally:
        context.close()


def require_session(context: SessionContext = Depends(get_session_context)) -> Session:
    """
    Dependency to get the current authenticated session.
    """
    if context.session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Not authenticated", "next": "/login"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return context.session


def require_roles(allowed_roles: list):
    """
    Dependency factory to require specific roles from user metadata.

    Usage:
        @router.get("/admin")
        def admin_route(session: Session = Depends(require_roles(["admin"]))):
            ...
    """
    def role_checker(session: Session = Depends(require_session)) -> Session:
        if session.user.user_metadata.get("role") not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required roles: {allowed_roles}",
            )
        return session
    return role_checker
