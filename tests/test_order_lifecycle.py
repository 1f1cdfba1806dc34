"""Tests for order placement and status changes."""

from decimal import Decimal

import pytest

from models.cart import Cart, CartItem
from models.order import Order, OrderStatus
from models.package import Package
from models.product import Product
from models.stock import StockMovement
from utils.catalog import ItemKind, RequestedItem
from utils.errors import (
    CouponInactive, CouponUsageExceeded, IllegalTransition, InsufficientStock, ValidationFailed,
)
from utils.order_lifecycle import (
    GuestContact, GuestCustomer, RegisteredCustomer, build_order_events, change_status, place_order,
)


@pytest.fixture
def guest():
    return GuestCustomer(GuestContact(
        first_name="Mona", last_name="Adel", email="mona@example.com", phone="01111111111",
        governorate="Giza", city="Dokki", address="5 Tahrir St",
    ))


def product_line(product, qty):
    return RequestedItem(ItemKind.PRODUCT, product.id, qty)


def package_line(package, qty):
    return RequestedItem(ItemKind.PACKAGE, package.id, qty)


class TestPlaceOrder:
    def test_half_off_scenario(self, db, guest, product, coupon):
        placed = place_order(db, guest, [product_line(product, 2)], coupon_code="HALF")
        order = placed.order

        assert order.subtotal_amount == Decimal("200.00")
        assert order.total_amount == Decimal("100.00")
        assert order.coupon_code == "HALF"
        assert order.coupon_discount_amount == Decimal("100.00")
        assert order.status == OrderStatus.PENDING
        assert order.guest_email == "mona@example.com"

        db.refresh(product)
        db.refresh(coupon)
        assert product.stock == 8
        assert coupon.used_count == 1

    def test_package_scenario(self, db, guest):
        component = Product(name="Pulse Oximeter", price=Decimal("40.00"), stock=5)
        pkg = Package(name="Home Care Kit", price=Decimal("90.00"), stock=5)
        pkg.set_included_products([component])
        db.add(pkg)
        db.commit()

        place_order(db, guest, [package_line(pkg, 3)])

        db.refresh(pkg)
        db.refresh(component)
        assert pkg.stock == 2
        assert component.stock == 2

    def test_order_lines_snapshot_catalog(self, db, guest, product, second_product, package):
        order = place_order(db, guest, [package_line(package, 1), product_line(product, 1)]).order
        pkg_line, prod_line = order.items
        assert pkg_line.name == "Starter Kit"
        assert pkg_line.unit_price == Decimal("120.00")
        assert pkg_line.component_product_ids == [product.id, second_product.id]
        assert prod_line.component_product_ids is None

    def test_registered_checkout_empties_cart(self, db, user, product, coupon):
        db.add(Cart(user_id=user.id, coupon_code="HALF", items=[CartItem(product_id=product.id, qty=2)]))
        db.commit()

        order = place_order(db, RegisteredCustomer(user)).order

        assert order.user_id == user.id
        assert order.total_amount == Decimal("100.00")
        cart = db.query(Cart).filter(Cart.user_id == user.id).one()
        assert cart.items == []
        assert cart.coupon_code is None
        db.refresh(user)
        assert [o.id for o in user.orders] == [order.id]

    def test_empty_cart_rejected(self, db, user):
        with pytest.raises(ValidationFailed) as exc:
            place_order(db, RegisteredCustomer(user))
        assert exc.value.message == "No items in cart"

    def test_guest_without_items_rejected(self, db, guest):
        with pytest.raises(ValidationFailed):
            place_order(db, guest, [])

    def test_failed_check_leaves_nothing_behind(self, db, guest, product, coupon):
        with pytest.raises(InsufficientStock):
            place_order(db, guest, [product_line(product, 11)], coupon_code="HALF")

        assert db.query(Order).count() == 0
        assert db.query(StockMovement).count() == 0
        db.refresh(product)
        db.refresh(coupon)
        assert product.stock == 10
        assert coupon.used_count == 0

    def test_combined_demand_rolls_back(self, db, guest, product, second_product, package):
        # Each line fits on its own, together they need 5 thermometers out of 4
        with pytest.raises(InsufficientStock):
            place_order(db, guest, [product_line(second_product, 3), package_line(package, 2)])

        assert db.query(Order).count() == 0
        db.refresh(second_product)
        db.refresh(package)
        db.refresh(product)
        assert (second_product.stock, package.stock, product.stock) == (4, 5, 10)

    def test_checkout_rejects_inactive_coupon(self, db, guest, product, make_coupon):
        make_coupon(code="OFF", is_active=False)
        with pytest.raises(CouponInactive):
            place_order(db, guest, [product_line(product, 1)], coupon_code="OFF")
        assert db.query(Order).count() == 0

    def test_usage_cap(self, db, guest, product, make_coupon):
        once = make_coupon(code="ONCE", max_usage=1)
        place_order(db, guest, [product_line(product, 1)], coupon_code="ONCE")

        with pytest.raises(CouponUsageExceeded):
            place_order(db, guest, [product_line(product, 1)], coupon_code="ONCE")

        db.refresh(once)
        db.refresh(product)
        assert once.used_count == 1
        assert product.stock == 9
        assert db.query(Order).count() == 1


class TestChangeStatus:
    @pytest.fixture
    def order(self, db, guest, product, package):
        return place_order(db, guest, [product_line(product, 2), package_line(package, 1)]).order

    def test_any_transition_before_cancel(self, db, order):
        assert change_status(db, order, "Shipped") == (OrderStatus.PENDING, OrderStatus.SHIPPED)
        assert change_status(db, order, "Pending") == (OrderStatus.SHIPPED, OrderStatus.PENDING)
        assert change_status(db, order, OrderStatus.COMPLETED)[1] == OrderStatus.COMPLETED

    def test_cancel_restores_stock(self, db, order, product, second_product, package):
        change_status(db, order, "Cancelled")

        db.refresh(product)
        db.refresh(second_product)
        db.refresh(package)
        assert (product.stock, second_product.stock, package.stock) == (10, 4, 5)
        assert order.status == OrderStatus.CANCELLED

    def test_cannot_leave_cancelled(self, db, order):
        change_status(db, order, "Cancelled")
        with pytest.raises(IllegalTransition) as exc:
            change_status(db, order, "Shipped")
        assert "un-cancel" in exc.value.message
        db.refresh(order)
        assert order.status == OrderStatus.CANCELLED

    def test_cancelling_twice_restores_once(self, db, order, product):
        change_status(db, order, "Cancelled")
        change_status(db, order, "Cancelled")
        db.refresh(product)
        assert product.stock == 10
        assert db.query(StockMovement).filter(StockMovement.type == "CANCEL_IN").count() == 4

    def test_cancel_uses_components_from_order_time(self, db, order, product, second_product, package):
        # Thermometer dropped from the kit after the order was placed
        package.set_included_products([product])
        db.commit()

        change_status(db, order, "Cancelled")
        db.refresh(second_product)
        assert second_product.stock == 4

    def test_unknown_status(self, db, order):
        with pytest.raises(ValidationFailed):
            change_status(db, order, "Lost")


class TestOrderEvents:
    def test_customer_and_admin_events(self, db, guest, product, second_product, package, coupon):
        order = place_order(db, guest, [package_line(package, 1)], coupon_code="HALF").order
        customer_event, admin_event = build_order_events(db, order)

        assert customer_event["type"] == "order.confirmation"
        assert customer_event["recipient"] == "mona@example.com"
        assert customer_event["total_amount"] == 60.0
        assert customer_event["coupon_code"] == "HALF"
        assert customer_event["items"] == [{"name": "Starter Kit", "quantity": 1, "price": 120.0}]

        assert admin_event["type"] == "order.admin_notification"
        assert admin_event["subtotal_amount"] == 120.0
        assert admin_event["discount_amount"] == 60.0
        assert admin_event["customer"]["type"] == "guest"
        assert admin_event["customer"]["address"] == "5 Tahrir St, Dokki, Giza"
        assert admin_event["items"][0]["contents"] == ["Stethoscope", "Thermometer"]
