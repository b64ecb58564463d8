"""
Payment Schemas for Warmindo Order
==================================

The payment screen shows one of four panels for the order found by its
payment code:

- ``paid``: the order is already paid (or further along); nothing to do.
- ``cash``: pay at the counter; shows the total, no upload.
- ``instructions``: QRIS image, bank account or e-wallet number with copy
  values, plus the proof upload control.
- ``pending``: a proof was uploaded and awaits staff verification.
"""

from typing import List, Optional

from pydantic import BaseModel

from .common import ScreenResponse
from .orders import OrderItemOut, OrderOut


class PaymentInstructions(BaseModel):
    method: str
    method_label: str
    configured: bool = True
    warning: Optional[str] = None
    # qris
    image_url: Optional[str] = None
    caption: Optional[str] = None
    # transfer
    bank_name: Optional[str] = None
    account_no: Optional[str] = None
    account_name: Optional[str] = None
    reference: Optional[str] = None
    # ewallet
    provider: Optional[str] = None
    number: Optional[str] = None
    name: Optional[str] = None
    # values the UI offers a copy-to-clipboard button for
    copy_values: List[str] = []


class PaymentPanel(BaseModel):
    state: str  # paid / cash / instructions / pending
    title: str
    message: str
    total_display: Optional[str] = None
    upload_enabled: bool = False
    instructions: Optional[PaymentInstructions] = None


class PaymentLookupOut(ScreenResponse):
    order: Optional[OrderOut] = None
    items: List[OrderItemOut] = []
    panel: Optional[PaymentPanel] = None
    receipt_url: Optional[str] = None


class ProofSubmitOut(ScreenResponse):
    order: Optional[OrderOut] = None
    panel: Optional[PaymentPanel] = None
    proof_url: Optional[str] = None
