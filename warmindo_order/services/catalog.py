"""
Menu Catalog Service
====================

Two readers of the same menu data:

1. The menu screen: active menus and categories, filtered and sorted for
   display, with the cart badge count.
2. The menu snapshot used by recommendations: up to ``limit`` active items,
   read through the ``menu_catalog`` server function and falling back to a
   join over ``menus`` and ``menu_categories`` when the function fails.

The two backend row shapes of the snapshot are adapted into one
``MenuEntry`` by ``adapt_catalog_row`` and ``adapt_join_row``; nothing
downstream branches on where a row came from.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .. import config
from ..client_store import CartRepository, PreOrderRepository, cart_count
from ..errors import BackendError, ValidationFailed, with_rate_limit_retry
from ..formatting import rupiah
from ..gateway import Backend
from ..schemas.menu import SORT_OPTIONS, CategoryOut, MenuCardOut, MenuScreenOut
from .helpers import PLACEHOLDER_IMAGE, index_by

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = f"Menu lezat dari {config.STORE_NAME}"
MISSING_PRE_ORDER = "Silakan isi informasi pemesanan terlebih dahulu"


# =============================================================================
# Menu Snapshot
# =============================================================================

@dataclass
class MenuEntry:
    id: str
    name: str
    description: Optional[str]
    price: int
    category: Optional[str]
    active: bool = True


def _price(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def adapt_catalog_row(row: Dict[str, Any]) -> MenuEntry:
    """Adapt a ``menu_catalog`` server-function row."""
    return MenuEntry(
        id=str(row.get("id")),
        name=row.get("name") or "",
        description=row.get("description"),
        price=_price(row.get("price")),
        category=row.get("category_name"),
        active=bool(row.get("is_active", True)),
    )


def adapt_join_row(row: Dict[str, Any]) -> MenuEntry:
    """Adapt a ``menus`` row carrying its joined ``menu_categories`` record."""
    category = row.get("menu_categories") or {}
    return MenuEntry(
        id=str(row.get("id")),
        name=row.get("name") or "",
        description=row.get("description"),
        price=_price(row.get("price")),
        category=category.get("name"),
        active=bool(row.get("is_active", True)),
    )


def fetch_menu_snapshot(backend: Backend, limit: int = config.DEFAULT_MENU_LIMIT) -> List[MenuEntry]:
    """
    Read up to ``limit`` active menu items for recommendations.

    Raises:
        BackendError: when the join fallback fails as well
    """
    try:
        rows = backend.menu_catalog(limit, only_active=True)
        return [adapt_catalog_row(r) for r in rows or []]
    except BackendError as exc:
        logger.warning("menu_catalog failed, using direct query: %s", exc.message)

    rows = backend.menu_catalog_join(limit)
    return [adapt_join_row(r) for r in rows or []]


# =============================================================================
# Menu Screen
# =============================================================================

def sort_menus(menus: List[Dict[str, Any]], sort: str) -> List[Dict[str, Any]]:
    if sort == "newest":
        return list(reversed(menus))
    if sort == "price-asc":
        return sorted(menus, key=lambda m: _price(m.get("price")))
    if sort == "price-desc":
        return sorted(menus, key=lambda m: _price(m.get("price")), reverse=True)
    return list(menus)


class MenuController:
    def __init__(self, backend: Backend, pre_orders: PreOrderRepository, carts: CartRepository):
        self.backend = backend
        self.pre_orders = pre_orders
        self.carts = carts

    def photo_url(self, photo: Optional[str]) -> str:
        if not photo:
            return PLACEHOLDER_IMAGE
        if photo.startswith(("http://", "https://")):
            return photo
        return self.backend.storage.public_url(config.MENU_IMAGES_BUCKET, photo)

    def screen(self, category_id: Optional[str] = None, sort: str = "popular") -> MenuScreenOut:
        if sort not in SORT_OPTIONS:
            raise ValidationFailed(f"Urutan tidak dikenal: {sort}", field="sort")

        badge = cart_count(self.carts.load())
        if self.pre_orders.load() is None:
            result = MenuScreenOut(cart_count=badge, redirect="order-start")
            result.notify("error", MISSING_PRE_ORDER)
            return result

        menus = with_rate_limit_retry(self.backend.list_active_menus)
        categories = with_rate_limit_retry(self.backend.list_categories)
        category_names = {cid: row["name"] for cid, row in index_by(categories, "id").items()}

        if category_id:
            menus = [m for m in menus if str(m.get("category_id")) == str(category_id)]

        cards = [
            MenuCardOut(
                id=str(m["id"]),
                name=m["name"],
                description=m.get("description") or DEFAULT_DESCRIPTION,
                price=_price(m.get("price")),
                price_display=rupiah(_price(m.get("price"))),
                category_id=str(m["category_id"]) if m.get("category_id") else None,
                category_name=category_names.get(m.get("category_id")),
                photo_url=self.photo_url(m.get("photo_url")),
            )
            for m in sort_menus(menus, sort)
        ]

        return MenuScreenOut(
            categories=[CategoryOut(id=str(c["id"]), name=c["name"]) for c in categories],
            menus=cards,
            cart_count=badge,
        )
