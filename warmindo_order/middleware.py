"""
FastAPI middleware for the storefront.

``RequestIDMiddleware`` tags every request with an id: the caller's
``X-Request-ID`` when sent, a fresh uuid4 otherwise. The id is stored on
``request.state``, echoed in the response header and kept in a context
variable so that log records emitted while serving the request carry it
(see logging_config.RequestIdFilter).
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

_current_request_id: ContextVar[Optional[str]] = ContextVar("current_request_id", default=None)


def get_request_id() -> Optional[str]:
    """Id of the request being served, or None outside a request."""
    return _current_request_id.get()


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = _current_request_id.set(request_id)
        try:
            logger.debug("%s %s", request.method, request.url.path)
            response = await call_next(request)
        finally:
            _current_request_id.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
