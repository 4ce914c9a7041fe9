# gpspay/routers/auth.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from gpspay.config import settings
from gpspay.deps import get_account_service, get_session_context
from gpspay.errors import AccountServiceError
from gpspay.logging_config import get_logger
from gpspay.models import Session
from gpspay.schemas_pkg.auth import (
    LoginPageResponse,
    LoginRequest,
    LoginResponse,
    SessionResponse,
    SessionUserOut,
)
from gpspay.services.account_service import AccountService
from gpspay.services.session_context import SessionContext

# ⚠ main.py already mounts this with prefix="/v1/auth"
router = APIRouter(tags=["Auth"])

# Email verification links land here; mounted without a prefix
callback_router = APIRouter(tags=["Auth"])

logger = get_logger(__name__)

VERIFIED_MESSAGE = "Email verified successfully! You can now log in."


def _user_out(session: Session) -> SessionUserOut:
    return SessionUserOut(
        id=session.user.id,
        email=session.user.email,
        user_type=session.user.business_type,
    )


# -------------------------------------------
# Login page state
# -------------------------------------------
@router.get("/login", response_model=LoginPageResponse)
async def login_page(
    verified: Optional[str] = None,
    context: SessionContext = Depends(get_session_context),
):
    return LoginPageResponse(
        success_message=VERIFIED_MESSAGE if verified == "true" else None,
        next="/dashboard" if context.is_authenticated else None,
    )


# -------------------------------------------
# Password login
# -------------------------------------------
@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    account_service: AccountService = Depends(get_account_service),
):
    try:
        session = await account_service.sign_in(request.email, request.password)
    except AccountServiceError as e:
        logger.info("login_failed", error=e.message)
        raise HTTPException(status_code=400, detail=e.message or "An error occurred during login")

    logger.info("login_succeeded", user_id=session.user.id)
    return LoginResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_at=session.expires_at,
        user=_user_out(session),
    )


@router.post("/logout")
async def logout(context: SessionContext = Depends(get_session_context)):
    try:
        await context.account_service.sign_out()
    except AccountServiceError as e:
        logger.error("sign_out_failed", error=e.message)
        raise HTTPException(status_code=400, detail=e.message)

    return {"message": "Signed out", "next": "/"}


@router.get("/session", response_model=SessionResponse)
async def current_session(context: SessionContext = Depends(get_session_context)):
    if context.session is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(authenticated=True, user=_user_out(context.session))


# -------------------------------------------
# Email verification callback
# -------------------------------------------
@callback_router.get("/auth/callback")
async def auth_callback(
    code: Optional[str] = None,
    account_service: AccountService = Depends(get_account_service),
):
    if code:
        # Exchange the code for a session
        try:
            await account_service.exchange_code_for_session(code)
        except AccountServiceError as e:
            logger.warning("code_exchange_failed", error=e.message)

    # Redirect to login page with a success flag
    return RedirectResponse(f"{settings.SITE_URL}/login?verified=true", status_code=303)
