"""
Helpers shared by the Supabase adapters.
"""
import asyncio
from typing import Awaitable, Type, TypeVar

from gpspay.config import settings
from gpspay.errors import GPSPayError

T = TypeVar("T")


async def call_with_timeout(
    awaitable: Awaitable[T],
    error_cls: Type[GPSPayError],
    action: str,
    timeout: float = None,
) -> T:
    """
    Await a remote call, cancelling it once the timeout expires.

    A timeout is reported as ``error_cls`` so callers only ever handle the
    domain error taxonomy.
    """
    timeout = timeout or settings.REMOTE_CALL_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        raise error_cls(f"{action} timed out after {timeout:g}s")
