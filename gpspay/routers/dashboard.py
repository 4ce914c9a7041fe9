# gpspay/routers/dashboard.py
from fastapi import APIRouter, Depends

from gpspay.deps import get_draft_store, require_session
from gpspay.models import Session
from gpspay.services.dashboard import build_dashboard
from gpspay.services.draft_store import DraftStore

router = APIRouter(tags=["Dashboard"])


@router.get("")
async def get_dashboard(
    session: Session = Depends(require_session),
    draft_store: DraftStore = Depends(get_draft_store),
):
    """
    Signed-in identity plus any registration drafts saved for this user.
    Requires Authorization: Bearer <access_token>.
    """
    return await build_dashboard(session, draft_store)
