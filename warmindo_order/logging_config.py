"""
Logging configuration for the warmindo storefront.

Usage:
    from warmindo_order.logging_config import setup_logging
    setup_logging()  # once, at startup

Every record gets a ``request_id`` attribute ("-" outside a request), so
lines logged by the services can be matched to the X-Request-ID the client
saw.

Environment variables:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: INFO)
"""
import logging
import os
import sys
from typing import Optional

from .middleware import get_request_id

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"
VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Libraries that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3", "sqlalchemy.engine")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root handler and the ``warmindo_order`` logger level.

    Args:
        level: Log level name; falls back to LOG_LEVEL, then INFO. Unknown
               names are treated as INFO.
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if level not in VALID_LEVELS:
        level = "INFO"
    numeric_level = getattr(logging, level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(RequestIdFilter())
    logging.basicConfig(level=numeric_level, handlers=[handler])

    logging.getLogger("warmindo_order").setLevel(numeric_level)

    noisy_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    logging.getLogger(__name__).debug("Logging configured at %s level", level)
