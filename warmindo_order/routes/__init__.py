"""
Routes Package for Warmindo Order
=================================

One APIRouter per storefront screen:

- intake.py: pre-order form and free tables (/order-start)
- menu.py: menu screen and the menu assistant (/menu)
- cart.py: cart lines (/cart)
- checkout.py: order placement (/checkout)
- payment.py: payment lookup and proof upload (/pay)
- queue.py: live queue, plain and as server-sent events (/queue)
- receipt.py: receipt view (/receipt)

Router Registration:
--------------------
All routers are registered by app_factory.create_app under two prefixes:
1. /api/v1/* - Versioned API (recommended)
2. /* - Root paths

The recommendation bridge is a separate app (chat_bridge.py) mounted at
/functions/v1.

Error Handling:
---------------
Routes let service exceptions propagate; app_factory maps them:
- ValidationFailed: 400 with the offending field
- NotFound: 404
- Superseded: 409
- BackendError: 502
- RateLimitExceeded: 429
"""

from .intake import intake_router
from .menu import menu_router
from .cart import cart_router
from .checkout import checkout_router
from .payment import payment_router
from .queue import queue_router
from .receipt import receipt_router

__all__ = [
    "intake_router",
    "menu_router",
    "cart_router",
    "checkout_router",
    "payment_router",
    "queue_router",
    "receipt_router",
]
