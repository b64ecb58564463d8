"""
Order Schemas for Warmindo Order
================================

Models for checkout, the receipt and the order panel of the payment screen.

Order Lifecycle:
----------------
``placed -> paid/confirmed -> prep -> ready -> served -> completed``, with
``canceled`` reachable from any state before completion. The storefront only
creates orders in ``placed``; every later transition comes from staff or
payment verification and is only read here.

Amounts:
--------
All prices and totals are whole rupiah (int).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from ..formatting import payment_method_label, rupiah, service_type_label, status_label
from .cart import CartOut, PreOrderOut
from .common import ScreenResponse


class CheckoutRequest(BaseModel):
    payment_method: str


class CheckoutSummaryOut(ScreenResponse):
    pre_order: Optional[PreOrderOut] = None
    cart: Optional[CartOut] = None


class CheckoutOut(ScreenResponse):
    order_id: Optional[str] = None


class OrderItemOut(BaseModel):
    """
    One line of a persisted order.

    Accepts the backend row shape (``qty``, ``unit_price`` and the joined
    ``menus.name``) and exposes display-friendly names.
    """
    name: str
    quantity: int
    unit_price: int
    subtotal: int
    note: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def from_backend_row(cls, data: Any):
        if not isinstance(data, dict) or "qty" not in data:
            return data
        menu = data.get("menus") or {}
        quantity = _as_int(data.get("qty"))
        unit_price = _as_int(data.get("unit_price"))
        return {
            "name": menu.get("name") or "Menu Tidak Diketahui",
            "quantity": quantity,
            "unit_price": unit_price,
            "subtotal": quantity * unit_price,
            "note": data.get("note"),
        }


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    source: Optional[str] = None
    service_type: Optional[str] = None
    service_label: Optional[str] = None
    table_no: Optional[str] = None
    status: str
    status_label: Optional[str] = None
    guest_name: Optional[str] = None
    contact: Optional[str] = None
    payment_method: Optional[str] = None
    payment_method_label: Optional[str] = None
    payment_code: Optional[str] = None
    queue_no: Optional[int] = None
    total_amount: int = 0
    total_display: Optional[str] = None
    proof_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReceiptOut(ScreenResponse):
    order: Optional[OrderOut] = None
    items: List[OrderItemOut] = []
    short_id: Optional[str] = None
    pay_url: Optional[str] = None
    share_url: Optional[str] = None


def _as_int(value: Any) -> int:
    """Numeric columns may arrive as int, float, Decimal or string."""
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def order_out(order: Dict[str, Any]) -> OrderOut:
    """Build an OrderOut with display labels from a backend order row."""
    fields = {key: order[key] for key in OrderOut.model_fields if key in order}
    fields["total_amount"] = _as_int(order.get("total_amount"))
    return OrderOut(
        **fields,
        service_label=service_type_label(order.get("service_type")),
        status_label=status_label(order.get("status")),
        payment_method_label=payment_method_label(order.get("payment_method")),
        total_display=rupiah(fields["total_amount"]),
    )
