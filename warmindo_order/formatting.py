"""Display helpers: rupiah amounts, timestamps and Indonesian labels."""

from datetime import datetime
from typing import Optional

STATUS_LABELS = {
    "placed": "Dipesan",
    "paid": "Dibayar",
    "confirmed": "Dikonfirmasi",
    "prep": "Diproses",
    "ready": "Siap",
    "served": "Disajikan",
    "completed": "Selesai",
    "canceled": "Dibatalkan",
}

PAYMENT_METHOD_LABELS = {
    "cash": "Tunai",
    "qris": "QRIS",
    "transfer": "Transfer Bank",
    "ewallet": "e-Wallet",
}

SERVICE_TYPE_LABELS = {
    "dine_in": "Makan di Tempat",
    "takeaway": "Bungkus",
}


def group_thousands(amount: int) -> str:
    """15000 -> '15.000' (id-ID grouping)."""
    sign = "-" if amount < 0 else ""
    return sign + f"{abs(int(amount)):,}".replace(",", ".")


def rupiah(amount: Optional[int]) -> str:
    return f"Rp {group_thousands(amount or 0)}"


def status_label(status: Optional[str]) -> str:
    return STATUS_LABELS.get(status, status or "")


def payment_method_label(method: Optional[str]) -> str:
    return PAYMENT_METHOD_LABELS.get(method, method or "")


def service_type_label(service_type: Optional[str]) -> str:
    return SERVICE_TYPE_LABELS.get(service_type, service_type or "")


def format_time(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return f"{value.hour:02d}.{value.minute:02d}"
