"""
Draft store: JSON snapshots of completed registrations.

Drafts let the dashboard show what a merchant entered before the backend
record is authoritative. Values live in Redis when it is reachable and in
process memory otherwise.
"""
import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

from gpspay.core.redis import RedisManager
from gpspay.errors import LocalStorageError
from gpspay.logging_config import get_logger

logger = get_logger(__name__)


class DraftStore:

    def __init__(self, redis_manager: Optional[RedisManager] = None):
        self.redis_manager = redis_manager
        self._memory: Dict[str, str] = {}
        self._lists: Dict[str, List[str]] = {}
        self._lists_lock = asyncio.Lock()

    @staticmethod
    def _key(key: str, owner: Optional[str]) -> str:
        return f"{owner}:{key}" if owner else key

    @property
    def _use_redis(self) -> bool:
        return bool(self.redis_manager and self.redis_manager.is_available)

    async def _read_raw(self, full_key: str) -> Optional[str]:
        if not self._use_redis:
            return self._memory.get(full_key)
        try:
            return await self.redis_manager.get(full_key)
        except Exception as e:
            raise LocalStorageError(f"Failed to read draft {full_key}: {e}") from e

    async def _write_raw(self, full_key: str, raw: str):
        if not self._use_redis:
            self._memory[full_key] = raw
            return
        try:
            await self.redis_manager.set(full_key, raw)
        except Exception as e:
            raise LocalStorageError(f"Failed to write draft {full_key}: {e}") from e

    async def save(self, key: str, value: Any, owner: Optional[str] = None):
        """Store ``value`` under ``key``, replacing whatever was there."""
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise LocalStorageError(f"Draft {key} is not JSON serializable: {e}") from e

        await self._write_raw(self._key(key, owner), raw)
        logger.info("draft_saved", key=key, owner=owner)

    async def load(self, key: str, owner: Optional[str] = None) -> Optional[Any]:
        """
        Return the last value saved under ``key``.

        Missing, unreadable and malformed entries all come back as None; the
        reason is logged rather than raised.
        """
        full_key = self._key(key, owner)
        try:
            raw = await self._read_raw(full_key)
            if raw is None:
                return None
            return json.loads(raw)
        except (LocalStorageError, ValueError) as e:
            logger.warning("draft_load_failed", key=key, owner=owner, error=str(e))
            return None

    async def delete(self, key: str, owner: Optional[str] = None):
        full_key = self._key(key, owner)
        if not self._use_redis:
            self._memory.pop(full_key, None)
            return
        try:
            await self.redis_manager.delete(full_key)
        except Exception as e:
            raise LocalStorageError(f"Failed to delete draft {full_key}: {e}") from e

    # ---------------------------------------------
    # Append-only lists
    # ---------------------------------------------
    # Each item is stored on its own, so concurrent writers never
    # overwrite one another's items.
    async def append(self, key: str, value: Any, owner: Optional[str] = None):
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise LocalStorageError(f"Item for {key} is not JSON serializable: {e}") from e

        full_key = self._key(key, owner)
        if not self._use_redis:
            async with self._lists_lock:
                self._lists.setdefault(full_key, []).append(raw)
            return
        try:
            await self.redis_manager.rpush(full_key, raw)
        except Exception as e:
            raise LocalStorageError(f"Failed to append to {full_key}: {e}") from e

    async def items(self, key: str, owner: Optional[str] = None) -> List[Tuple[str, Any]]:
        """
        ``(raw, value)`` pairs in insertion order.

        ``raw`` identifies the item for ``remove``. Malformed items are
        skipped and logged.
        """
        full_key = self._key(key, owner)
        if not self._use_redis:
            async with self._lists_lock:
                raws = list(self._lists.get(full_key, []))
        else:
            try:
                raws = await self.redis_manager.lrange(full_key)
            except Exception as e:
                logger.warning("draft_list_load_failed", key=key, owner=owner, error=str(e))
                return []

        pairs = []
        for raw in raws:
            try:
                pairs.append((raw, json.loads(raw)))
            except ValueError as e:
                logger.warning("draft_list_item_malformed", key=key, owner=owner, error=str(e))
        return pairs

    async def remove(self, key: str, raw: str, owner: Optional[str] = None) -> bool:
        """Remove one item previously returned by ``items``. False if it was already gone."""
        full_key = self._key(key, owner)
        if not self._use_redis:
            async with self._lists_lock:
                stored = self._lists.get(full_key, [])
                if raw not in stored:
                    return False
                stored.remove(raw)
                return True
        try:
            return await self.redis_manager.lrem(full_key, raw) > 0
        except Exception as e:
            raise LocalStorageError(f"Failed to remove from {full_key}: {e}") from e
