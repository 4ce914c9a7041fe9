"""
Request tracking middleware.

Every request gets a request id, echoed back in ``X-Request-ID``. Wizard
requests also carry the wizard id (or the business type being opened) in
their log context, so one merchant's registration can be followed end to end.
"""
import re
import time
import uuid
from typing import Callable, Dict

from fastapi import Request, Response
from structlog.contextvars import bind_contextvars, clear_contextvars

from gpspay.logging_config import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

WIZARD_PATH = re.compile(r"^/v1/register/wizards/(?P<wizard_id>[^/]+)")
OPEN_WIZARD_PATH = re.compile(r"^/v1/register/(?P<business_type>restaurant|toll|other)/?$")

# Polled by load balancers; only logged at debug level
QUIET_PATHS = ("/health",)


def request_context(path: str) -> Dict[str, str]:
    """Log context derived from the request path."""
    match = WIZARD_PATH.match(path)
    if match:
        return {"wizard_id": match.group("wizard_id")}
    match = OPEN_WIZARD_PATH.match(path)
    if match:
        return {"business_type": match.group("business_type")}
    return {}


async def request_id_middleware(request: Request, call_next: Callable) -> Response:
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    path = request.url.path

    clear_contextvars()
    bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=path,
        **request_context(path),
    )
    request.state.request_id = request_id

    log = logger.debug if path.startswith(QUIET_PATHS) else logger.info
    start = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as exc:
        logger.error(
            "request_failed",
            exc_info=exc,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        raise
    else:
        log(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        clear_contextvars()
