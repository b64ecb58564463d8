"""Receipt route: GET /receipt/{order_id}."""

from fastapi import APIRouter, Depends, Request

from ..deps import get_receipt
from ..schemas.orders import ReceiptOut
from ..services.receipt import ReceiptController

receipt_router = APIRouter(prefix="/receipt", tags=["Receipt"])


@receipt_router.get("/{order_id}", response_model=ReceiptOut)
def view_receipt(
    order_id: str,
    request: Request,
    controller: ReceiptController = Depends(get_receipt),
) -> ReceiptOut:
    return controller.load(order_id, receipt_link=str(request.url))
