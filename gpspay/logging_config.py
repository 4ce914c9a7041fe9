"""
Structured logging configuration using structlog.

Production renders JSON lines; development gets the coloured console
renderer. Both share the same processor chain.
"""
import structlog
import logging
import sys
from typing import Any, Dict

from gpspay.config import settings

# The supabase client logs every HTTP request at INFO through these
NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


def add_app_context(logger: Any, method_name: str, event_dict: Dict) -> Dict:
    """Add application context to log entries."""
    event_dict['app'] = 'gps-pay'
    event_dict['environment'] = settings.ENVIRONMENT
    event_dict['version'] = settings.APP_VERSION
    return event_dict


def _renderers():
    if settings.ENVIRONMENT == "production":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    # ConsoleRenderer formats exceptions itself
    return [structlog.dev.ConsoleRenderer()]


def configure_logging():
    """Configure stdlib logging and structlog with processors."""
    level = logging.DEBUG if settings.DEBUG else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_app_context,
            structlog.processors.TimeStamper(fmt="iso"),
            *_renderers(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


def get_logger(name: str = __name__):
    return structlog.get_logger(name)
