"""
Backend Gateway for Warmindo Order
==================================

Every read and write the storefront makes goes through a ``Backend``. The
screens never touch SQLAlchemy, storage or the change feed directly, so a
test can hand them an in-memory fake and production hands them
``SqlBackend``.

Rows are plain dicts shaped like the managed backend returns them:

- orders: every ``orders`` column
- order items: ``order_items`` columns plus ``menus: {"name": ...}``
- catalog join rows: ``menus`` columns plus ``menu_categories: {"name": ...}``
- catalog RPC rows: ``id, name, description, price, category_name, is_active``

Error Mapping:
--------------
Database failures surface as ``BackendError``. Missing tables/views map to
``RELATION_NOT_FOUND`` and missing functions to ``FUNCTION_NOT_FOUND`` so the
queue and catalog flows can pick their fallback paths; other failures keep
the driver's SQLSTATE when one is available.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, sessionmaker

from .errors import BackendError, FUNCTION_NOT_FOUND, RELATION_NOT_FOUND
from .models import DiningTable, Menu, MenuCategory, Order, OrderItem, Setting
from .realtime import ChangeFeed
from .storage import ObjectStorage

logger = logging.getLogger(__name__)

# Statuses the queue no longer shows
TERMINAL_STATUSES = ("completed", "canceled")

ORDER_COLUMNS = (
    "id", "source", "service_type", "table_no", "status", "guest_name",
    "contact", "payment_method", "payment_code", "queue_no", "total_amount",
    "proof_url", "created_at", "updated_at", "active",
)

# Postgres SQLSTATEs for the missing-object cases
_UNDEFINED_TABLE = "42P01"
_UNDEFINED_FUNCTION = "42883"


class Backend(ABC):
    """Everything the storefront asks of the managed backend."""

    storage: ObjectStorage
    changes: ChangeFeed

    # --- catalog ---------------------------------------------------------
    @abstractmethod
    def list_active_menus(self) -> List[Dict[str, Any]]:
        """Active menus ordered by name."""

    @abstractmethod
    def list_categories(self) -> List[Dict[str, Any]]:
        """Categories ordered by name."""

    @abstractmethod
    def menu_catalog(self, limit: int, only_active: bool = True) -> List[Dict[str, Any]]:
        """The aggregated catalog lookup (server function)."""

    @abstractmethod
    def menu_catalog_join(self, limit: int) -> List[Dict[str, Any]]:
        """Active menus joined to their category."""

    # --- tables ----------------------------------------------------------
    @abstractmethod
    def list_empty_tables(self) -> List[Dict[str, Any]]:
        """Tables whose status is ``empty``, ordered by label."""

    @abstractmethod
    def get_free_tables(self, limit: int) -> List[Dict[str, Any]]:
        """Free tables through the server function."""

    # --- orders ----------------------------------------------------------
    @abstractmethod
    def insert_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one order and return it with server-assigned fields."""

    @abstractmethod
    def insert_order_items(self, rows: List[Dict[str, Any]]) -> None:
        """Insert order item rows (persistence column names)."""

    @abstractmethod
    def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def find_order_by_code(self, payment_code: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def get_order_items(self, order_id: str) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def update_order_proof_url(self, payment_code: str, proof_url: str) -> Any:
        """Attach a proof URL through the server function."""

    # --- settings --------------------------------------------------------
    @abstractmethod
    def get_settings(self, keys: Iterable[str]) -> List[Dict[str, Any]]:
        ...

    # --- queue -----------------------------------------------------------
    @abstractmethod
    def queue_today(self) -> List[Dict[str, Any]]:
        """Rows of the precomputed queue view ordered by queue number."""

    @abstractmethod
    def open_orders_since(self, since: datetime) -> List[Dict[str, Any]]:
        """Non-terminal orders created at or after ``since``."""


def order_to_dict(order: Order) -> Dict[str, Any]:
    return {column: getattr(order, column) for column in ORDER_COLUMNS}


def translate_db_error(exc: SQLAlchemyError) -> BackendError:
    """Map a SQLAlchemy error onto the backend's error codes."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    message = str(orig or exc).strip()
    lowered = message.lower()

    if sqlstate == _UNDEFINED_TABLE or "no such table" in lowered:
        code = RELATION_NOT_FOUND
    elif sqlstate == _UNDEFINED_FUNCTION or "no such function" in lowered:
        code = FUNCTION_NOT_FOUND
    else:
        code = sqlstate
    return BackendError(message.splitlines()[0] if message else "Database error", code=code)


class SqlBackend(Backend):
    """
    Backend over the storefront database via SQLAlchemy.

    Args:
        session_factory: sessionmaker bound to the storefront database
        storage: object storage client (defaults to the configured project)
        changes: change feed to publish writes on (a private one by default)
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        storage: Optional[ObjectStorage] = None,
        changes: Optional[ChangeFeed] = None,
    ):
        self._session_factory = session_factory
        self.storage = storage or ObjectStorage()
        self.changes = changes or ChangeFeed()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            raise translate_db_error(exc) from exc
        finally:
            db.close()

    # --- catalog ---------------------------------------------------------

    def list_active_menus(self) -> List[Dict[str, Any]]:
        with self._session() as db:
            menus = db.execute(
                select(Menu).where(Menu.is_active.is_(True)).order_by(Menu.name)
            ).scalars().all()
            return [
                {
                    "id": m.id,
                    "name": m.name,
                    "description": m.description,
                    "price": m.price,
                    "is_active": m.is_active,
                    "category_id": m.category_id,
                    "photo_url": m.photo_url,
                }
                for m in menus
            ]

    def list_categories(self) -> List[Dict[str, Any]]:
        with self._session() as db:
            rows = db.execute(select(MenuCategory).order_by(MenuCategory.name)).scalars().all()
            return [{"id": c.id, "name": c.name} for c in rows]

    def menu_catalog(self, limit: int, only_active: bool = True) -> List[Dict[str, Any]]:
        with self._session() as db:
            result = db.execute(
                text("SELECT * FROM menu_catalog(:p_limit, :p_only_active)"),
                {"p_limit": limit, "p_only_active": only_active},
            )
            return [dict(row) for row in result.mappings()]

    def menu_catalog_join(self, limit: int) -> List[Dict[str, Any]]:
        with self._session() as db:
            rows = db.execute(
                select(Menu, MenuCategory.name)
                .join(MenuCategory, Menu.category_id == MenuCategory.id)
                .where(Menu.is_active.is_(True))
                .limit(limit)
            ).all()
            return [
                {
                    "id": menu.id,
                    "name": menu.name,
                    "description": menu.description,
                    "price": menu.price,
                    "is_active": menu.is_active,
                    "category_id": menu.category_id,
                    "menu_categories": {"name": category_name},
                }
                for menu, category_name in rows
            ]

    # --- tables ----------------------------------------------------------

    def list_empty_tables(self) -> List[Dict[str, Any]]:
        with self._session() as db:
            tables = db.execute(
                select(DiningTable).where(DiningTable.status == "empty").order_by(DiningTable.label)
            ).scalars().all()
            return [{"label": t.label, "status": t.status, "capacity": t.capacity} for t in tables]

    def get_free_tables(self, limit: int) -> List[Dict[str, Any]]:
        with self._session() as db:
            result = db.execute(text("SELECT * FROM get_free_tables(:p_limit)"), {"p_limit": limit})
            return [dict(row) for row in result.mappings()]

    # --- orders ----------------------------------------------------------

    def insert_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        with self._session() as db:
            order = Order(**data)
            db.add(order)
            db.commit()
            db.refresh(order)
            record = order_to_dict(order)
        logger.info("Order %s inserted (queue #%s)", record["id"], record["queue_no"])
        self.changes.publish("orders", "INSERT", record)
        return record

    def insert_order_items(self, rows: List[Dict[str, Any]]) -> None:
        with self._session() as db:
            db.add_all([OrderItem(**row) for row in rows])
            db.commit()
        logger.debug("Inserted %d order items", len(rows))

    def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        with self._session() as db:
            order = db.get(Order, order_id)
            return order_to_dict(order) if order else None

    def find_order_by_code(self, payment_code: str) -> Optional[Dict[str, Any]]:
        with self._session() as db:
            order = db.execute(
                select(Order).where(Order.payment_code == payment_code)
            ).scalars().first()
            return order_to_dict(order) if order else None

    def get_order_items(self, order_id: str) -> List[Dict[str, Any]]:
        with self._session() as db:
            items = db.execute(
                select(OrderItem)
                .options(joinedload(OrderItem.menu))
                .where(OrderItem.order_id == order_id)
                .order_by(OrderItem.id)
            ).scalars().all()
            return [
                {
                    "id": item.id,
                    "order_id": item.order_id,
                    "menu_id": item.menu_id,
                    "qty": item.qty,
                    "unit_price": item.unit_price,
                    "note": item.note,
                    "menus": {"name": item.menu.name} if item.menu else None,
                }
                for item in items
            ]

    def update_order_proof_url(self, payment_code: str, proof_url: str) -> Any:
        with self._session() as db:
            result = db.execute(
                text("SELECT update_order_proof_url(:p_payment_code, :p_proof_url)"),
                {"p_payment_code": payment_code, "p_proof_url": proof_url},
            ).scalar()
            db.commit()
        record = {"payment_code": payment_code, "proof_url": proof_url}
        self.changes.publish("orders", "UPDATE", record)
        self.changes.publish("payments", "INSERT", record)
        return result

    # --- settings --------------------------------------------------------

    def get_settings(self, keys: Iterable[str]) -> List[Dict[str, Any]]:
        with self._session() as db:
            rows = db.execute(select(Setting).where(Setting.key.in_(list(keys)))).scalars().all()
            return [
                {
                    "key": s.key,
                    "value": s.value,
                    "image_path": s.image_path,
                    "updated_at": s.updated_at,
                    "updated_by": s.updated_by,
                }
                for s in rows
            ]

    # --- queue -----------------------------------------------------------

    def queue_today(self) -> List[Dict[str, Any]]:
        with self._session() as db:
            result = db.execute(text("SELECT * FROM vw_queue_today ORDER BY queue_no ASC"))
            return [dict(row) for row in result.mappings()]

    def open_orders_since(self, since: datetime) -> List[Dict[str, Any]]:
        with self._session() as db:
            orders = db.execute(
                select(Order)
                .where(Order.created_at >= since)
                .where(Order.status.not_in(TERMINAL_STATUSES))
                .order_by(Order.queue_no.asc(), Order.created_at.asc())
            ).scalars().all()
            return [order_to_dict(o) for o in orders]
