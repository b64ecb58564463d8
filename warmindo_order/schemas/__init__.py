"""
Pydantic Schemas for Warmindo Order
===================================

Request and response models for the storefront screens, organized by screen:

- common.py: Notice, ScreenResponse (notices + redirect), ErrorResponse
- cart.py: intake (pre-order, tables) and cart models
- menu.py: menu cards, category filter, assistant chat
- orders.py: checkout and receipt, order/item views
- payment.py: payment panels and instructions
- queue.py: live queue rows and aggregates

Every screen response extends ScreenResponse so the UI handles toasts and
navigation the same way everywhere.
"""

from .common import ErrorResponse, Notice, ScreenResponse
from .cart import (
    CartAddRequest,
    CartLineOut,
    CartOut,
    CartQuantityRequest,
    PreOrderIn,
    PreOrderOut,
    TableOut,
    TablesOut,
)
from .menu import AssistantReply, AssistantRequest, CategoryOut, MenuCardOut, MenuScreenOut
from .orders import (
    CheckoutOut,
    CheckoutRequest,
    CheckoutSummaryOut,
    OrderItemOut,
    OrderOut,
    ReceiptOut,
)
from .payment import PaymentInstructions, PaymentLookupOut, PaymentPanel, ProofSubmitOut
from .queue import QueueOut, QueueRowOut, QueueSummary

__all__ = [
    # Common
    "ErrorResponse",
    "Notice",
    "ScreenResponse",
    # Intake / cart
    "CartAddRequest",
    "CartLineOut",
    "CartOut",
    "CartQuantityRequest",
    "PreOrderIn",
    "PreOrderOut",
    "TableOut",
    "TablesOut",
    # Menu
    "AssistantReply",
    "AssistantRequest",
    "CategoryOut",
    "MenuCardOut",
    "MenuScreenOut",
    # Orders
    "CheckoutOut",
    "CheckoutRequest",
    "CheckoutSummaryOut",
    "OrderItemOut",
    "OrderOut",
    "ReceiptOut",
    # Payment
    "PaymentInstructions",
    "PaymentLookupOut",
    "PaymentPanel",
    "ProofSubmitOut",
    # Queue
    "QueueOut",
    "QueueRowOut",
    "QueueSummary",
]
