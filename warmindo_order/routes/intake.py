"""
Order Intake Routes
===================

- GET  /order-start/tables: free tables for dine-in
- GET  /order-start: the saved pre-order, if any
- POST /order-start: validate and save the pre-order
"""

import logging

from fastapi import APIRouter, Depends

from ..deps import get_intake
from ..schemas.cart import PreOrderIn, PreOrderOut, TablesOut
from ..schemas.common import ScreenResponse
from ..services.intake import IntakeController

logger = logging.getLogger(__name__)

intake_router = APIRouter(prefix="/order-start", tags=["Order Intake"])


@intake_router.get("/tables", response_model=TablesOut)
def list_free_tables(controller: IntakeController = Depends(get_intake)) -> TablesOut:
    return controller.load_free_tables()


@intake_router.get("", response_model=PreOrderOut)
def get_pre_order(controller: IntakeController = Depends(get_intake)) -> PreOrderOut:
    return controller.current()


@intake_router.post("", response_model=ScreenResponse)
def submit_pre_order(
    form: PreOrderIn,
    controller: IntakeController = Depends(get_intake),
) -> ScreenResponse:
    return controller.submit(form)
