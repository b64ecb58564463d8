"""
Checkout Service
================

Turns the cart plus the pre-order into a persisted order.

Flow:
-----
1. Re-check preconditions (non-empty cart, saved pre-order, known payment
   method) before any backend call.
2. Insert the order (``source="web"``, status ``placed``). The backend
   assigns id, payment code and queue number.
3. Insert one ``order_items`` row per cart line, renaming the cart fields to
   the table's columns (``quantity -> qty``, ``price -> unit_price``).
4. Clear cart and pre-order and send the customer to the receipt.

The two inserts are separate calls. If the items insert fails after the
order insert succeeded, the order stays without items; the cart and
pre-order are kept so the customer can retry.
"""

import logging
from typing import Any, Dict, List

from ..client_store import CartLine, CartRepository, PreOrder, PreOrderRepository, cart_total
from ..errors import BackendError, ValidationFailed, with_rate_limit_retry
from ..gateway import Backend
from ..schemas.orders import CheckoutOut, CheckoutSummaryOut
from .cart import EMPTY_CART_NOTICE
from .helpers import PAYMENT_METHODS, cart_out
from .intake import pre_order_out

logger = logging.getLogger(__name__)

INCOMPLETE_CHECKOUT = "Keranjang kosong atau informasi pemesanan tidak lengkap"


def order_item_rows(order_id: str, lines: List[CartLine]) -> List[Dict[str, Any]]:
    """Map cart lines onto ``order_items`` columns."""
    return [
        {
            "order_id": order_id,
            "menu_id": line.menu_id,
            "qty": line.quantity,
            "unit_price": line.price,
            "note": line.note,
        }
        for line in lines
    ]


def order_row(pre_order: PreOrder, payment_method: str, total: int) -> Dict[str, Any]:
    return {
        "source": "web",
        "service_type": pre_order.service_type,
        "table_no": pre_order.table_no or None,
        "guest_name": pre_order.guest_name or None,
        "contact": pre_order.contact or None,
        "payment_method": payment_method,
        "total_amount": total,
        "active": True,
        "status": "placed",
    }


class CheckoutController:
    def __init__(self, backend: Backend, carts: CartRepository, pre_orders: PreOrderRepository):
        self.backend = backend
        self.carts = carts
        self.pre_orders = pre_orders

    def summary(self) -> CheckoutSummaryOut:
        lines = self.carts.load()
        pre_order = self.pre_orders.load()
        if pre_order is None:
            result = CheckoutSummaryOut(redirect="order-start")
            result.notify("error", INCOMPLETE_CHECKOUT)
            return result
        if not lines:
            result = CheckoutSummaryOut(redirect="menu")
            result.notify("warning", EMPTY_CART_NOTICE)
            return result
        return CheckoutSummaryOut(pre_order=pre_order_out(pre_order), cart=cart_out(lines))

    def submit(self, payment_method: str) -> CheckoutOut:
        """
        Place the order.

        Raises:
            ValidationFailed: empty cart, missing pre-order or unknown method
            BackendError: either insert failed; cart and pre-order are kept
        """
        lines = self.carts.load()
        pre_order = self.pre_orders.load()

        if not lines:
            raise ValidationFailed("Keranjang kosong", field="cart")
        if pre_order is None:
            raise ValidationFailed(INCOMPLETE_CHECKOUT, field="pre_order")
        if payment_method not in PAYMENT_METHODS:
            raise ValidationFailed("Metode pembayaran tidak dikenal", field="payment_method")

        total = cart_total(lines)
        order = with_rate_limit_retry(
            self.backend.insert_order, order_row(pre_order, payment_method, total)
        )

        try:
            with_rate_limit_retry(self.backend.insert_order_items, order_item_rows(order["id"], lines))
        except BackendError:
            logger.error("Order %s was created but its items were not; cart kept for retry", order["id"])
            raise

        self.carts.clear()
        self.pre_orders.clear()
        logger.info("Checkout complete: order %s, %d lines, total %d", order["id"], len(lines), total)

        result = CheckoutOut(order_id=order["id"], redirect=f"receipt?id={order['id']}")
        result.notify("success", "Pesanan berhasil dibuat! 🎉")
        return result
