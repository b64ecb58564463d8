"""
Application factory for the Warmindo storefront API.

Builds the FastAPI app: middleware, rate limiting, exception handlers that
turn service errors into JSON notices, the screen routers (under /api/v1 and
at root) and the recommendation bridge mounted at /functions/v1.
"""

import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .chat_bridge import create_bridge_app
from .config import CORS_ORIGINS, STORE_NAME
from .errors import BackendError, NotFound, Superseded, ValidationFailed
from .middleware import RequestIDMiddleware
from .rate_limit import limiter
from .routes import (
    cart_router,
    checkout_router,
    intake_router,
    menu_router,
    payment_router,
    queue_router,
    receipt_router,
)
from .schemas.common import ErrorResponse, Notice

logger = logging.getLogger(__name__)

ROUTERS = (
    intake_router,
    menu_router,
    cart_router,
    checkout_router,
    payment_router,
    queue_router,
    receipt_router,
)

BACKEND_FAILURE = "Terjadi kesalahan pada server. Silakan coba lagi."


def _error_response(
    status_code: int,
    detail: str,
    field: Optional[str] = None,
    code: Optional[str] = None,
    notice: Optional[str] = None,
) -> JSONResponse:
    body = ErrorResponse(
        detail=detail,
        field=field,
        code=code,
        notices=[Notice(level="error", message=notice or detail)],
    )
    return JSONResponse(body.model_dump(), status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationFailed)
    async def validation_failed(request: Request, exc: ValidationFailed):
        return _error_response(400, exc.message, field=exc.field)

    @app.exception_handler(NotFound)
    async def not_found(request: Request, exc: NotFound):
        return _error_response(404, exc.message)

    @app.exception_handler(Superseded)
    async def superseded(request: Request, exc: Superseded):
        return _error_response(409, exc.message)

    @app.exception_handler(BackendError)
    async def backend_error(request: Request, exc: BackendError):
        logger.error(
            "Backend error on %s %s [%s]: %r",
            request.method,
            request.url.path,
            getattr(request.state, "request_id", "-"),
            exc,
        )
        return _error_response(502, exc.message, code=exc.code, notice=BACKEND_FAILURE)


def create_app(bridge: Optional[FastAPI] = None) -> FastAPI:
    """
    Create the storefront FastAPI application.

    Args:
        bridge: recommendation bridge app to mount (built with the shared
            backend when omitted)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=f"{STORE_NAME} Storefront API",
        description="Customer ordering: intake, menu, cart, checkout, payment, queue",
        version="1.0.0",
    )

    # Request ID middleware (before other middleware)
    app.add_middleware(RequestIDMiddleware)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_v1 = APIRouter(prefix="/api/v1")
    for router in ROUTERS:
        api_v1.include_router(router)
    app.include_router(api_v1)

    # Also mount at root
    for router in ROUTERS:
        app.include_router(router)

    app.mount("/functions/v1", bridge or create_bridge_app())

    @app.get("/health", tags=["Health"])
    def health_check():
        return {"status": "healthy", "store": STORE_NAME}

    logger.info("Application created")
    return app
