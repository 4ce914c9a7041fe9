"""
Dashboard view: session identity plus whatever drafts are on file.
"""
from typing import Any, Dict

from gpspay.models import DRAFT_KEYS, BusinessType, Session
from gpspay.services.draft_store import DraftStore


async def build_dashboard(session: Session, draft_store: DraftStore) -> Dict[str, Any]:
    user = session.user
    drafts = {
        business_type.value: await draft_store.load(key, owner=user.id)
        for business_type, key in DRAFT_KEYS.items()
    }

    data: Dict[str, Any] = {
        "email": user.email,
        "user_type": user.business_type,
        "restaurant": drafts[BusinessType.RESTAURANT.value],
        "toll": drafts[BusinessType.TOLL.value],
        "other": drafts[BusinessType.OTHER.value],
    }

    if not any(drafts.values()):
        data["message"] = "No data found for your account."
        data["next"] = "/register"
    return data
