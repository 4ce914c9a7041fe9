"""
Record store: table reads and writes against Supabase PostgREST.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from supabase import AsyncClient

from gpspay.errors import RecordStoreError
from gpspay.logging_config import get_logger
from gpspay.services.remote import call_with_timeout
from gpspay.supabase import get_supabase_data_client

logger = get_logger(__name__)

Record = Dict[str, Any]


class RecordStore(ABC):
    """Table-scoped record operations."""

    @abstractmethod
    async def insert(self, table: str, record: Record) -> Record:
        ...

    @abstractmethod
    async def upsert(self, table: str, record: Record) -> Record:
        ...

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        columns: str = "*",
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Record]:
        """Rows matching every ``column == value`` pair in ``filters``."""

    @abstractmethod
    async def update(self, table: str, record_id: Any, patch: Record) -> Record:
        ...


class SupabaseRecordStore(RecordStore):

    def __init__(self, client: AsyncClient):
        self.client = client

    @classmethod
    async def create(cls) -> "SupabaseRecordStore":
        return cls(await get_supabase_data_client())

    async def _execute(self, query, table: str, action: str) -> List[Record]:
        try:
            res = await call_with_timeout(query.execute(), RecordStoreError, f"{action} on {table}")
        except RecordStoreError:
            raise
        except Exception as e:
            # PostgREST APIError and transport errors
            logger.error("record_store_failed", table=table, action=action, error=str(e))
            raise RecordStoreError(getattr(e, "message", None) or str(e)) from e
        return res.data or []

    @staticmethod
    def _single(rows: List[Record], table: str) -> Record:
        if not rows:
            raise RecordStoreError(f"No row returned from {table}")
        return rows[0]

    async def insert(self, table: str, record: Record) -> Record:
        rows = await self._execute(self.client.table(table).insert(record), table, "Insert")
        return self._single(rows, table)

    async def upsert(self, table: str, record: Record) -> Record:
        rows = await self._execute(self.client.table(table).upsert(record), table, "Upsert")
        return self._single(rows, table)

    async def select(self, table, filters=None, columns="*", order_by=None, descending=False):
        query = self.client.table(table).select(columns)
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        if order_by:
            query = query.order(order_by, desc=descending)
        return await self._execute(query, table, "Select")

    async def update(self, table: str, record_id: Any, patch: Record) -> Record:
        query = self.client.table(table).update(patch).eq("id", record_id)
        rows = await self._execute(query, table, "Update")
        return self._single(rows, table)
