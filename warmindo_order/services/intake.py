"""
Order Intake Service
====================

The first screen: the guest says who they are and whether they eat here or
take away. The result, the pre-order, lives only in session storage until
checkout consumes it.

Validation Rules:
-----------------
- At least one of name or contact is required.
- ``dine_in`` requires a free table; ``takeaway`` drops any table.

Free Tables:
------------
Tables are read directly (status ``empty``). When that returns nothing (row
level security can hide rows from the anonymous role) the ``get_free_tables``
server function is asked instead; if that also fails or is empty the guest
is told every table is taken.
"""

import logging
from typing import Any, Dict, List, Optional

from .. import config
from ..client_store import PreOrder, PreOrderRepository, SERVICE_TYPES
from ..errors import BackendError, ValidationFailed, with_rate_limit_retry
from ..formatting import service_type_label
from ..gateway import Backend
from ..schemas.cart import PreOrderIn, PreOrderOut, TableOut, TablesOut
from ..schemas.common import ScreenResponse

logger = logging.getLogger(__name__)

NO_FREE_TABLES = "Mohon maaf, saat ini semua meja sedang terisi"


def _table_out(row: Dict[str, Any]) -> Optional[TableOut]:
    label = row.get("label") or row.get("table_no")
    if not label:
        return None
    capacity = row.get("capacity") or row.get("cap")
    display = f"Meja {label}" + (f" · {capacity} org" if capacity else "")
    return TableOut(label=str(label), capacity=capacity, display=display)


def pre_order_out(pre_order: PreOrder) -> PreOrderOut:
    return PreOrderOut(
        guest_name=pre_order.guest_name,
        contact=pre_order.contact,
        service_type=pre_order.service_type,
        service_label=service_type_label(pre_order.service_type),
        table_no=pre_order.table_no,
    )


class IntakeController:
    def __init__(self, backend: Backend, pre_orders: PreOrderRepository):
        self.backend = backend
        self.pre_orders = pre_orders

    def load_free_tables(self) -> TablesOut:
        rows = with_rate_limit_retry(self.backend.list_empty_tables)
        tables = [t for t in (_table_out(r) for r in rows) if t]
        if tables:
            return TablesOut(tables=tables)

        logger.debug("Direct table select returned no rows; trying get_free_tables")
        try:
            rpc_rows = self.backend.get_free_tables(config.FREE_TABLES_LIMIT)
        except BackendError as exc:
            logger.error("get_free_tables failed: %s", exc.message)
            rpc_rows = []

        tables = [t for t in (_table_out(r) for r in rpc_rows or []) if t]
        result = TablesOut(tables=tables)
        if not tables:
            result.notify("warning", NO_FREE_TABLES)
        return result

    def current(self) -> PreOrderOut:
        pre_order = self.pre_orders.load()
        if pre_order is None:
            return PreOrderOut()
        return pre_order_out(pre_order)

    def submit(self, form: PreOrderIn) -> ScreenResponse:
        """
        Validate the intake form and save the pre-order.

        Raises:
            ValidationFailed: missing name and contact, unknown service type,
                or dine-in without a table
        """
        guest_name = form.guest_name.strip()
        contact = form.contact.strip()
        service_type = form.service_type.strip()
        table_no = form.table_no.strip() if service_type == "dine_in" else ""

        if not guest_name and not contact:
            raise ValidationFailed("Minimal Nama atau Nomor Kontak harus diisi", field="guest_name")
        if service_type not in SERVICE_TYPES:
            raise ValidationFailed("Jenis layanan tidak dikenal", field="service_type")
        if service_type == "dine_in" and not table_no:
            raise ValidationFailed(
                "Silakan pilih nomor meja untuk layanan Makan di Tempat", field="table_no"
            )

        self.pre_orders.save(PreOrder(
            guest_name=guest_name,
            contact=contact,
            service_type=service_type,
            table_no=table_no,
        ))
        logger.info("Pre-order saved (%s%s)", service_type, f", table {table_no}" if table_no else "")

        response = ScreenResponse(redirect="menu")
        return response.notify("success", "Informasi tersimpan! Menuju menu...")
