"""
Cart Service
============

The cart is a list of lines keyed by menu id, persisted after every change
in the device's durable storage.

Rules:
------
- Adding a menu already in the cart increments its quantity; otherwise a new
  line is appended with a snapshot of the current name and price.
- A quantity change that leaves the line at 0 or below removes it.
- Emptying the cart sends the customer back to the menu with a notice,
  since checkout needs at least one line.
"""

import logging
from typing import List

from ..client_store import CartLine, CartRepository
from ..errors import NotFound, with_rate_limit_retry
from ..gateway import Backend
from ..schemas.cart import CartOut
from .helpers import cart_out

logger = logging.getLogger(__name__)

EMPTY_CART_NOTICE = "Keranjang kosong! Mengarahkan ke menu..."


class CartController:
    def __init__(self, backend: Backend, carts: CartRepository):
        self.backend = backend
        self.carts = carts

    def view(self) -> CartOut:
        return cart_out(self.carts.load())

    def add(self, menu_id: str) -> CartOut:
        menus = with_rate_limit_retry(self.backend.list_active_menus)
        menu = next((m for m in menus if str(m["id"]) == str(menu_id)), None)
        lines = self.carts.load()
        if menu is None:
            logger.warning("Add to cart ignored: unknown menu %s", menu_id)
            return cart_out(lines).notify("error", "Menu tidak ditemukan")

        existing = next((line for line in lines if line.menu_id == str(menu_id)), None)
        if existing:
            existing.quantity += 1
            message = f"{menu['name']} ditambahkan ({existing.quantity}x)"
        else:
            lines.append(CartLine(
                menu_id=str(menu_id),
                name=menu["name"],
                price=int(menu["price"]),
                quantity=1,
            ))
            message = f"{menu['name']} ditambahkan ke keranjang"

        self.carts.save(lines)
        return cart_out(lines).notify("success", message)

    def change_quantity(self, index: int, delta: int) -> CartOut:
        lines = self._lines_with_index(index)
        line = lines[index]
        line.quantity += delta
        if line.quantity <= 0:
            del lines[index]
            logger.debug("Removed %s from cart (quantity reached 0)", line.menu_id)

        self.carts.save(lines)
        return self._after_mutation(lines)

    def remove(self, index: int) -> CartOut:
        lines = self._lines_with_index(index)
        removed = lines.pop(index)
        self.carts.save(lines)

        result = cart_out(lines).notify("info", f"{removed.name} dihapus dari keranjang")
        if not lines:
            result.notify("warning", EMPTY_CART_NOTICE)
            result.redirect = "menu"
        return result

    def _lines_with_index(self, index: int) -> List[CartLine]:
        lines = self.carts.load()
        if index < 0 or index >= len(lines):
            raise NotFound("Item keranjang tidak ditemukan")
        return lines

    def _after_mutation(self, lines: List[CartLine]) -> CartOut:
        result = cart_out(lines)
        if not lines:
            result.notify("warning", EMPTY_CART_NOTICE)
            result.redirect = "menu"
        return result
