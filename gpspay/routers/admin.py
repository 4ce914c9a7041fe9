# gpspay/routers/admin.py
from fastapi import APIRouter, Depends

from gpspay.deps import get_reconciliation_queue, get_record_store, require_roles
from gpspay.models import Session
from gpspay.schemas_pkg.admin import ReconcileResponse
from gpspay.services.reconciliation import ReconciliationQueue
from gpspay.services.record_store import RecordStore

router = APIRouter(tags=["Admin"])


@router.get("/reconcile")
async def list_pending(
    session: Session = Depends(require_roles(["admin"])),
    queue: ReconciliationQueue = Depends(get_reconciliation_queue),
):
    """
    Profile writes that failed after sign-up and are waiting to be replayed.
    """
    pending = await queue.pending()
    return {"pending": pending, "count": len(pending)}


@router.post("/reconcile", response_model=ReconcileResponse)
async def retry_pending(
    session: Session = Depends(require_roles(["admin"])),
    queue: ReconciliationQueue = Depends(get_reconciliation_queue),
    record_store: RecordStore = Depends(get_record_store),
):
    return await queue.retry(record_store)
