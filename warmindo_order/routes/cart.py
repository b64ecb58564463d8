"""
Cart Routes
===========

Lines are addressed by their position in the cart, as shown to the customer.

- GET    /cart
- POST   /cart/items            add one of a menu
- PATCH  /cart/items/{index}    change quantity by delta
- DELETE /cart/items/{index}    remove the line
"""

from fastapi import APIRouter, Depends

from ..deps import get_cart_controller
from ..schemas.cart import CartAddRequest, CartOut, CartQuantityRequest
from ..services.cart import CartController

cart_router = APIRouter(prefix="/cart", tags=["Cart"])


@cart_router.get("", response_model=CartOut)
def view_cart(controller: CartController = Depends(get_cart_controller)) -> CartOut:
    return controller.view()


@cart_router.post("/items", response_model=CartOut)
def add_to_cart(
    body: CartAddRequest,
    controller: CartController = Depends(get_cart_controller),
) -> CartOut:
    return controller.add(body.menu_id)


@cart_router.patch("/items/{index}", response_model=CartOut)
def change_quantity(
    index: int,
    body: CartQuantityRequest,
    controller: CartController = Depends(get_cart_controller),
) -> CartOut:
    return controller.change_quantity(index, body.delta)


@cart_router.delete("/items/{index}", response_model=CartOut)
def remove_from_cart(index: int, controller: CartController = Depends(get_cart_controller)) -> CartOut:
    return controller.remove(index)
