"""
Queue of profile writes that failed after the account was created.

Entries are list items in the draft store. ``retry`` removes only the
entries it replayed, so writes queued while a retry is running survive it.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from gpspay.errors import RecordStoreError
from gpspay.logging_config import get_logger
from gpspay.services.draft_store import DraftStore
from gpspay.services.record_store import RecordStore

logger = get_logger(__name__)

QUEUE_KEY = "pending_reconciliation"


class ReconciliationQueue:

    def __init__(self, draft_store: DraftStore):
        self.draft_store = draft_store

    async def pending(self) -> List[Dict[str, Any]]:
        return [entry for _, entry in await self.draft_store.items(QUEUE_KEY)]

    async def enqueue(
        self,
        table: str,
        operation: str,
        record: Dict[str, Any],
        error: str,
        user_id: Optional[str] = None,
    ):
        await self.draft_store.append(QUEUE_KEY, {
            "id": uuid.uuid4().hex,
            "table": table,
            "operation": operation,
            "record": record,
            "error": error,
            "user_id": user_id,
            "queued_at": datetime.now(timezone.utc).isoformat(),
        })
        logger.warning("reconciliation_enqueued", table=table, operation=operation, user_id=user_id)

    async def _record_failure(self, raw: str, entry: Dict[str, Any], error: str):
        if entry.get("error") == error:
            return
        # Swap in the latest error unless another retry already took the entry
        if await self.draft_store.remove(QUEUE_KEY, raw):
            await self.draft_store.append(QUEUE_KEY, {**entry, "error": error})

    async def retry(self, record_store: RecordStore) -> Dict[str, int]:
        """Replay every queued write; entries that fail again stay queued."""
        items = await self.draft_store.items(QUEUE_KEY)
        reconciled = 0

        for raw, entry in items:
            write = record_store.upsert if entry["operation"] == "upsert" else record_store.insert
            try:
                await write(entry["table"], entry["record"])
            except RecordStoreError as e:
                logger.info("reconciliation_write_failed", entry_id=entry.get("id"),
                            table=entry["table"], error=e.message)
                await self._record_failure(raw, entry, e.message)
                continue

            await self.draft_store.remove(QUEUE_KEY, raw)
            reconciled += 1

        remaining = len(await self.draft_store.items(QUEUE_KEY))
        logger.info("reconciliation_retried", attempted=len(items), reconciled=reconciled,
                    remaining=remaining)
        return {"attempted": len(items), "reconciled": reconciled, "remaining": remaining}
