"""
Tests for checkout: preconditions, the two inserts, and what survives a
failure.
"""
import pytest

from warmindo_order.client_store import CartLine
from warmindo_order.errors import BackendError, ValidationFailed
from warmindo_order.services.cart import EMPTY_CART_NOTICE
from warmindo_order.services.checkout import (
    INCOMPLETE_CHECKOUT,
    CheckoutController,
    order_item_rows,
)


@pytest.fixture
def checkout(backend, carts, pre_orders):
    return CheckoutController(backend, carts, pre_orders)


class TestPreconditions:
    def test_empty_cart_rejected_before_backend_call(self, backend, checkout, saved_pre_order):
        with pytest.raises(ValidationFailed) as exc_info:
            checkout.submit("cash")
        assert exc_info.value.field == "cart"
        assert backend.calls == []

    def test_missing_pre_order_rejected(self, backend, checkout, filled_cart):
        with pytest.raises(ValidationFailed) as exc_info:
            checkout.submit("cash")
        assert exc_info.value.field == "pre_order"
        assert backend.calls == []

    def test_unknown_payment_method_rejected(self, backend, checkout, filled_cart, saved_pre_order):
        with pytest.raises(ValidationFailed) as exc_info:
            checkout.submit("crypto")
        assert exc_info.value.field == "payment_method"
        assert backend.calls == []


class TestSubmit:
    def test_success_persists_order_and_items(self, backend, checkout, carts, pre_orders,
                                              filled_cart, saved_pre_order):
        result = checkout.submit("qris")

        order = backend.orders[result.order_id]
        assert order["source"] == "web"
        assert order["status"] == "placed"
        assert order["payment_method"] == "qris"
        assert order["total_amount"] == 29000
        assert order["guest_name"] == "Sari"
        assert order["table_no"] == "A1"

        assert [(i["menu_id"], i["qty"], i["unit_price"]) for i in backend.order_items] == [
            ("m-goreng", 2, 12000),
            ("m-esteh", 1, 5000),
        ]
        assert all(i["order_id"] == result.order_id for i in backend.order_items)
        assert result.redirect == f"receipt?id={result.order_id}"

    def test_success_clears_cart_and_pre_order(self, checkout, carts, pre_orders,
                                                filled_cart, saved_pre_order):
        checkout.submit("cash")
        assert carts.load() == []
        assert pre_orders.load() is None

    def test_order_insert_failure_keeps_state(self, backend, checkout, carts, pre_orders,
                                              filled_cart, saved_pre_order):
        backend.fail["insert_order"] = BackendError("db down")

        with pytest.raises(BackendError):
            checkout.submit("cash")

        assert carts.load() == filled_cart
        assert pre_orders.load() == saved_pre_order
        assert backend.call_count("insert_order_items") == 0

    def test_items_failure_leaves_order_and_keeps_state(self, backend, checkout, carts, pre_orders,
                                                        filled_cart, saved_pre_order):
        backend.fail["insert_order_items"] = BackendError("fk violation", code="23503")

        with pytest.raises(BackendError):
            checkout.submit("cash")

        assert len(backend.orders) == 1
        assert backend.order_items == []
        assert carts.load() == filled_cart
        assert pre_orders.load() == saved_pre_order

    def test_rate_limited_insert_retried(self, backend, checkout, filled_cart, saved_pre_order):
        backend.fail["insert_order"] = [BackendError("Rate limit exceeded")]

        checkout.submit("cash")

        assert backend.call_count("insert_order") == 2
        assert len(backend.orders) == 1


class TestSummary:
    def test_missing_pre_order_redirects_to_intake(self, checkout, filled_cart):
        result = checkout.summary()
        assert result.redirect == "order-start"
        assert result.notices[0].message == INCOMPLETE_CHECKOUT

    def test_empty_cart_redirects_to_menu(self, checkout, saved_pre_order):
        result = checkout.summary()
        assert result.redirect == "menu"
        assert result.notices[0].level == "warning"
        assert result.notices[0].message == EMPTY_CART_NOTICE
        assert result.cart is None

    def test_complete_summary(self, checkout, filled_cart, saved_pre_order):
        result = checkout.summary()
        assert result.redirect is None
        assert result.cart.total == 29000
        assert result.pre_order.guest_name == "Sari"


def test_order_item_rows_rename_fields():
    rows = order_item_rows("o1", [CartLine(menu_id="m1", name="A", price=7000, quantity=3, note="pedas")])
    assert rows == [{"order_id": "o1", "menu_id": "m1", "qty": 3, "unit_price": 7000, "note": "pedas"}]
