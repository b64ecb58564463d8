"""
Recommendation Bridge
=====================

A stand-alone FastAPI app serving ``POST /chat-rekomendasi``: given a
customer's message it reads the menu snapshot and asks the chat model for
recommendations. It is stateless per call and mounted by the storefront at
``/functions/v1``, but can be served on its own.

Contract:
---------
Request:  ``{"message": str, "limit": int = 15}``
Success:  ``{"reply": str}``
Errors:   ``{"error": str, "detail"?: str}`` with 400 (bad input, checked
          before any database or model call), 405 (method other than POST)
          or 500 (menu read, configuration or model failure)

An empty menu yields a canned reply without calling the model. CORS is open
to any origin for POST and preflight.
"""

import logging
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import DEFAULT_MENU_LIMIT, get_rate_limit_chat
from .errors import BackendError
from .gateway import Backend
from .rate_limit import limiter
from .services.catalog import fetch_menu_snapshot
from .services.recommendation import LlmRecommender, RecommendationProvider

logger = logging.getLogger(__name__)

ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def _error(status_code: int, error: str, detail: Optional[str] = None) -> JSONResponse:
    body = {"error": error}
    if detail is not None:
        body["detail"] = detail
    return JSONResponse(body, status_code=status_code)


def _menu_limit(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return DEFAULT_MENU_LIMIT
    return value


def create_bridge_app(
    backend_factory: Optional[Callable[[], Backend]] = None,
    provider: Optional[RecommendationProvider] = None,
) -> FastAPI:
    """
    Create the recommendation bridge app.

    Args:
        backend_factory: returns the backend to read the menu from
            (defaults to the storefront's shared backend)
        provider: recommendation provider (defaults to the chat model)
    """
    if backend_factory is None:
        from .deps import get_backend as backend_factory

    recommender = provider or LlmRecommender()

    app = FastAPI(
        title="Warmindo Recommendation Bridge",
        description="Menu recommendations from the chat model",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=ALLOWED_HEADERS,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            response = _error(405, "Method not allowed")
            response.headers.update(exc.headers or {})
            return response
        return await http_exception_handler(request, exc)

    def answer(message: str, limit: int) -> str:
        try:
            menu = fetch_menu_snapshot(backend_factory(), limit)
        except BackendError as exc:
            logger.error("Menu snapshot failed: %s", exc.message)
            raise RuntimeError("Failed to fetch menu data") from exc
        logger.info("Recommending from %d menu items", len(menu))
        return recommender.recommend(message, menu)

    @app.options("/chat-rekomendasi")
    def preflight():
        return PlainTextResponse("ok")

    @app.post("/chat-rekomendasi")
    @limiter.limit(get_rate_limit_chat)
    async def chat_rekomendasi(request: Request):
        try:
            body = await request.json()
        except ValueError:
            return _error(400, "Message is required")

        message = body.get("message") if isinstance(body, dict) else None
        if not message or not isinstance(message, str):
            return _error(400, "Message is required")

        try:
            reply = await run_in_threadpool(answer, message, _menu_limit(body.get("limit")))
        except Exception as exc:
            logger.error("Recommendation failed: %s", exc, exc_info=True)
            return _error(500, "Internal server error", str(exc))

        return {"reply": reply}

    return app
