"""
Services Package for Warmindo Order
===================================

One controller per storefront screen plus the shared pieces they use. Each
controller receives the backend and the caller's storage repositories; none
of them reach for globals.

Available Services:
-------------------
- **intake**: pre-order form and free tables
- **catalog**: menu screen and the menu snapshot for recommendations
- **cart**: cart lines and quantities
- **checkout**: order placement
- **payment**: payment lookup, instructions and proof upload
- **queue**: today's queue, its fallback read and the live watcher
- **receipt**: receipt view and share link
- **recommendation**: recommendation providers and the menu assistant
- **helpers**: request sequencing and shared constants

Usage:
------
    from warmindo_order.services.cart import CartController
    from warmindo_order.services.queue import QueueWatcher
"""

from . import helpers
from . import intake
from . import catalog
from . import cart
from . import checkout
from . import payment
from . import queue
from . import receipt
from . import recommendation

__all__ = [
    "helpers",
    "intake",
    "catalog",
    "cart",
    "checkout",
    "payment",
    "queue",
    "receipt",
    "recommendation",
]
