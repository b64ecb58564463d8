"""
Rate limiting for the chat endpoints (menu assistant and recommendation bridge).

Limits are keyed by the caller's session header when present, otherwise by
client IP. Storage is in-memory; for multiple workers use Redis:
Limiter(key_func=..., storage_uri="redis://...").
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import RATE_LIMIT_ENABLED, SESSION_HEADER


def get_session_id_or_ip(request: Request) -> str:
    """Get rate limit key from the session header or fall back to IP."""
    session_id = request.headers.get(SESSION_HEADER)
    if session_id:
        return f"session:{session_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=get_session_id_or_ip, enabled=RATE_LIMIT_ENABLED)
