"""
Shared helpers for the screen controllers.
"""

import itertools
import logging
import threading
from typing import Any, Dict, List

from ..client_store import CartLine, cart_count, cart_total
from ..schemas.cart import CartLineOut, CartOut

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "https://placehold.co/400x300?text=No+Image"

PAYMENT_METHODS = ("cash", "qris", "transfer", "ewallet")
NON_CASH_METHODS = ("qris", "transfer", "ewallet")

# Statuses at which an order counts as paid on the payment screen
PAID_OR_LATER_STATUSES = (
    "paid", "processing", "confirmed", "prep", "ready", "served", "completed",
)


class RequestSequencer:
    """
    Numbers requests so that only the newest one may update visible state.

    Usage:
        token = sequencer.next()
        result = slow_call()
        if sequencer.is_latest(token):
            show(result)
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._latest = next(self._counter)
            return self._latest

    def is_latest(self, token: int) -> bool:
        with self._lock:
            return token == self._latest


def cart_out(lines: List[CartLine]) -> CartOut:
    return CartOut(
        lines=[
            CartLineOut(
                menu_id=line.menu_id,
                name=line.name,
                price=line.price,
                quantity=line.quantity,
                subtotal=line.subtotal,
                note=line.note,
            )
            for line in lines
        ],
        total=cart_total(lines),
        count=cart_count(lines),
    )


def index_by(rows: List[Dict[str, Any]], key: str) -> Dict[Any, Dict[str, Any]]:
    return {row[key]: row for row in rows if row.get(key) is not None}
