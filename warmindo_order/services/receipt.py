"""Receipt view: the order, its items, the pay link and a WhatsApp share link."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from .. import config
from ..errors import with_rate_limit_retry
from ..formatting import rupiah
from ..gateway import Backend
from ..schemas.orders import OrderItemOut, ReceiptOut, order_out

logger = logging.getLogger(__name__)


def share_message(order: Dict[str, Any], receipt_link: Optional[str] = None) -> str:
    message = (
        f"🍜 *{config.STORE_NAME} - Struk Pesanan*\n\n"
        f"Kode Pembayaran: *{order.get('payment_code')}*\n"
        f"Nomor Antrian: *#{order.get('queue_no')}*\n"
        f"Total: *{rupiah(order.get('total_amount'))}*"
    )
    if receipt_link:
        message += f"\n\nLihat detail: {receipt_link}"
    return message


def whatsapp_share_url(order: Dict[str, Any], receipt_link: Optional[str] = None) -> str:
    return "https://wa.me/?text=" + quote(share_message(order, receipt_link), safe="")


class ReceiptController:
    def __init__(self, backend: Backend):
        self.backend = backend

    def load(self, order_id: str, receipt_link: Optional[str] = None) -> ReceiptOut:
        order = with_rate_limit_retry(self.backend.get_order, order_id)
        if order is None:
            return ReceiptOut().notify("error", "Pesanan tidak ditemukan")

        items = with_rate_limit_retry(self.backend.get_order_items, order_id)
        order["total_amount"] = int(float(order.get("total_amount") or 0))

        result = ReceiptOut(
            order=order_out(order),
            items=[OrderItemOut.model_validate(item) for item in items],
            short_id=str(order["id"])[:8].upper(),
            share_url=whatsapp_share_url(order, receipt_link),
        )
        if order.get("payment_code"):
            result.pay_url = f"pay?code={order['payment_code']}"
        else:
            result.notify("warning", "Kode pembayaran tidak tersedia")
        return result
