"""
Route Dependencies
==================

FastAPI dependencies that wire the screen controllers to the backend and to
the caller's client-side storage.

Caller Identity:
----------------
- ``X-Device-Id``: selects the durable store (the cart survives restarts
  of the browser tab).
- ``X-Session-Id``: selects the session store (pre-order, payment settings
  cache) and the per-session request sequencer.

Both headers are required by the screens that use them; a missing header is
a 400.

Testing:
--------
Override ``get_backend`` (and ``get_recommendation_provider`` for the menu
assistant) through ``app.dependency_overrides``.
"""

import threading
from typing import Optional

from fastapi import Depends, Header, HTTPException

from .client_store import CartRepository, KeyValueStore, PreOrderRepository, StoreRegistry
from .config import DEVICE_HEADER, SESSION_HEADER
from .db import get_session_factory
from .gateway import Backend, SqlBackend
from .services.cart import CartController
from .services.catalog import MenuController
from .services.checkout import CheckoutController
from .services.helpers import RequestSequencer
from .services.intake import IntakeController
from .services.payment import PaymentController, PaymentSettingsCache
from .services.queue import QueueController
from .services.receipt import ReceiptController
from .services.recommendation import (
    MenuAssistant,
    RecommendationProvider,
    get_recommendation_provider as _make_provider,
)

STORES = StoreRegistry()

_backend: Optional[Backend] = None
_backend_lock = threading.Lock()


def get_backend() -> Backend:
    """Return the shared SqlBackend, creating it on first use."""
    global _backend
    with _backend_lock:
        if _backend is None:
            _backend = SqlBackend(get_session_factory())
        return _backend


def get_recommendation_provider() -> RecommendationProvider:
    return _make_provider()


def device_id(x_device_id: Optional[str] = Header(None, alias=DEVICE_HEADER)) -> str:
    if not x_device_id:
        raise HTTPException(status_code=400, detail=f"Missing {DEVICE_HEADER} header")
    return x_device_id


def session_id(x_session_id: Optional[str] = Header(None, alias=SESSION_HEADER)) -> str:
    if not x_session_id:
        raise HTTPException(status_code=400, detail=f"Missing {SESSION_HEADER} header")
    return x_session_id


def get_session_store(sid: str = Depends(session_id)) -> KeyValueStore:
    return STORES.session(sid)


def get_carts(did: str = Depends(device_id)) -> CartRepository:
    return CartRepository(STORES.durable(did))


def get_pre_orders(store: KeyValueStore = Depends(get_session_store)) -> PreOrderRepository:
    return PreOrderRepository(store)


def get_sequencer(sid: str = Depends(session_id)) -> RequestSequencer:
    return STORES.session_attachment(sid, "sequencer", RequestSequencer)


# =============================================================================
# Screen Controllers
# =============================================================================

def get_intake(
    backend: Backend = Depends(get_backend),
    pre_orders: PreOrderRepository = Depends(get_pre_orders),
) -> IntakeController:
    return IntakeController(backend, pre_orders)


def get_menu_controller(
    backend: Backend = Depends(get_backend),
    pre_orders: PreOrderRepository = Depends(get_pre_orders),
    carts: CartRepository = Depends(get_carts),
) -> MenuController:
    return MenuController(backend, pre_orders, carts)


def get_assistant(
    backend: Backend = Depends(get_backend),
    provider: RecommendationProvider = Depends(get_recommendation_provider),
) -> MenuAssistant:
    return MenuAssistant(backend, provider)


def get_cart_controller(
    backend: Backend = Depends(get_backend),
    carts: CartRepository = Depends(get_carts),
) -> CartController:
    return CartController(backend, carts)


def get_checkout(
    backend: Backend = Depends(get_backend),
    carts: CartRepository = Depends(get_carts),
    pre_orders: PreOrderRepository = Depends(get_pre_orders),
) -> CheckoutController:
    return CheckoutController(backend, carts, pre_orders)


def get_payment(
    backend: Backend = Depends(get_backend),
    store: KeyValueStore = Depends(get_session_store),
    sequencer: RequestSequencer = Depends(get_sequencer),
) -> PaymentController:
    return PaymentController(backend, PaymentSettingsCache(backend, store), sequencer)


def get_receipt(backend: Backend = Depends(get_backend)) -> ReceiptController:
    return ReceiptController(backend)


def get_queue_controller(backend: Backend = Depends(get_backend)) -> QueueController:
    return QueueController(backend)
