"""
Error types shared by the storefront services.

Four kinds of failure reach the screens:

- ``ValidationFailed``: bad input caught before any backend call. Reported
  next to the offending field; never retried.
- ``BackendError``: a database, storage or RPC call failed. Carries the
  backend's error code so callers can pick a fallback (relation or function
  missing) or retry once (rate limited).
- ``NotFound``: a lookup by id or payment code matched nothing.
- ``Superseded``: a newer lookup from the same session finished first; the
  older result must not be shown.
"""

import logging
import time
from typing import Any, Callable, Optional, TypeVar

from . import config

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgREST codes for a view/table or function missing from the schema cache
RELATION_NOT_FOUND = "PGRST205"
FUNCTION_NOT_FOUND = "PGRST202"
RATE_LIMITED = "429"


class ValidationFailed(Exception):
    """Input rejected before reaching the backend."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class NotFound(Exception):
    """Lookup matched no record."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BackendError(Exception):
    """A call to the managed backend failed."""

    def __init__(self, message: str, code: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.detail = detail

    @property
    def is_rate_limited(self) -> bool:
        return self.code == RATE_LIMITED or "rate limit" in (self.message or "").lower()

    @property
    def is_missing_relation(self) -> bool:
        return self.code == RELATION_NOT_FOUND

    @property
    def is_missing_function(self) -> bool:
        return self.code == FUNCTION_NOT_FOUND

    def __repr__(self) -> str:
        return f"BackendError(code={self.code!r}, message={self.message!r})"


def with_rate_limit_retry(
    fn: Callable[..., T],
    *args: Any,
    delay: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """
    Call ``fn`` and re-call it once if the backend signals rate limiting.

    Any other BackendError, and a second rate-limit failure, propagate to
    the caller so the user can retry by hand.
    """
    if delay is None:
        delay = config.RATE_LIMIT_RETRY_DELAY
    try:
        return fn(*args, **kwargs)
    except BackendError as exc:
        if not exc.is_rate_limited:
            raise
        logger.warning("Backend rate limited (%s); retrying once in %.1fs", exc.code, delay)
        sleep(delay)
        return fn(*args, **kwargs)


class Superseded(Exception):
    """A newer request from the same session replaced this one."""

    def __init__(self, message: str = "Permintaan digantikan oleh permintaan yang lebih baru"):
        super().__init__(message)
        self.message = message
