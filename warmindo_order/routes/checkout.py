"""
Checkout Routes
===============

- GET  /checkout: pre-order and cart summary (redirects when incomplete)
- POST /checkout: place the order
"""

import logging

from fastapi import APIRouter, Depends

from ..deps import get_checkout
from ..schemas.orders import CheckoutOut, CheckoutRequest, CheckoutSummaryOut
from ..services.checkout import CheckoutController

logger = logging.getLogger(__name__)

checkout_router = APIRouter(prefix="/checkout", tags=["Checkout"])


@checkout_router.get("", response_model=CheckoutSummaryOut)
def checkout_summary(controller: CheckoutController = Depends(get_checkout)) -> CheckoutSummaryOut:
    return controller.summary()


@checkout_router.post("", response_model=CheckoutOut)
def place_order(
    body: CheckoutRequest,
    controller: CheckoutController = Depends(get_checkout),
) -> CheckoutOut:
    return controller.submit(body.payment_method)
