"""Order placement and the order status state machine.

Placement runs as one transaction:

1. resolve line items against the catalog (client prices are ignored)
2. check stock for every line, failing on the first shortfall
3. price with the coupon, rejecting any coupon failure
4. persist the order snapshot
5. reserve stock (conditional UPDATEs)
6. registered customers: empty the cart and detach its coupon
7. count the coupon use (conditional UPDATE)

Anything failing rolls the whole transaction back, so a rejected checkout
leaves no order and no stock change. Notifications are built from the
committed order and sent by the caller.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from sqlalchemy import update
from sqlalchemy.orm import Session

from config import settings
from models.cart import Cart
from models.order import Order, OrderItem, OrderStatus
from models.product import Product
from models.users import User
from utils import stock_ledger
from utils.catalog import ItemKind, LineItem, RequestedItem, resolve_line_items
from utils.coupons import redeem
from utils.errors import IllegalTransition, ValidationFailed
from utils.money import to_decimal
from utils.pricing import Quote, price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuestContact:
    first_name: str
    last_name: str
    email: str
    phone: str
    governorate: str
    city: str
    address: str

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    @property
    def full_address(self):
        return f"{self.address}, {self.city}, {self.governorate}"


@dataclass(frozen=True)
class GuestCustomer:
    contact: GuestContact


@dataclass(frozen=True)
class RegisteredCustomer:
    user: User


Customer = Union[GuestCustomer, RegisteredCustomer]


@dataclass(frozen=True)
class PlacedOrder:
    order: Order
    quote: Quote


def get_or_create_cart(db: Session, user: User) -> Cart:
    cart = db.query(Cart).filter(Cart.user_id == user.id).first()
    if not cart:
        cart = Cart(user_id=user.id)
        db.add(cart)
        db.commit()
        db.refresh(cart)
    return cart


def cart_requested_items(cart: Cart) -> List[RequestedItem]:
    requested = []
    for line in cart.items:
        if line.product_id is not None:
            requested.append(RequestedItem(ItemKind.PRODUCT, line.product_id, line.qty))
        else:
            requested.append(RequestedItem(ItemKind.PACKAGE, line.package_id, line.qty))
    return requested


def _order_item(item: LineItem) -> OrderItem:
    is_package = item.kind == ItemKind.PACKAGE
    return OrderItem(
        product_id=None if is_package else item.reference_id,
        package_id=item.reference_id if is_package else None,
        name=item.name,
        qty=item.quantity,
        unit_price=item.unit_price,
        component_product_ids=list(item.component_ids) if is_package else None,
    )


def _new_order(customer: Customer, quote: Quote) -> Order:
    order = Order(
        status=OrderStatus.PENDING,
        subtotal_amount=quote.subtotal,
        total_amount=quote.total,
        items=[_order_item(item) for item in quote.line_items],
    )
    if quote.coupon is not None:
        order.coupon_code = quote.coupon.code
        order.coupon_discount_amount = quote.discount_amount

    if isinstance(customer, RegisteredCustomer):
        order.user_id = customer.user.id
    else:
        contact = customer.contact
        order.guest_first_name = contact.first_name
        order.guest_last_name = contact.last_name
        order.guest_email = contact.email
        order.guest_phone = contact.phone
        order.guest_governorate = contact.governorate
        order.guest_city = contact.city
        order.guest_address = contact.address
    return order


def place_order(
    db: Session,
    customer: Customer,
    requested: Optional[Sequence[RequestedItem]] = None,
    coupon_code: Optional[str] = None,
) -> PlacedOrder:
    """Create an order for ``customer``.

    Registered customers check out their stored cart and cart coupon;
    ``requested`` and ``coupon_code`` are only read for guests.
    """
    cart = None
    if isinstance(customer, RegisteredCustomer):
        cart = get_or_create_cart(db, customer.user)
        requested = cart_requested_items(cart)
        coupon_code = cart.coupon_code
        if not requested:
            raise ValidationFailed("No items in cart")
    elif not requested:
        raise ValidationFailed("Guest order requires guestInfo and items")

    try:
        line_items = resolve_line_items(db, requested)
        stock_ledger.check_availability(db, line_items)
        quote = price(db, line_items, coupon_code, strict=True)

        order = _new_order(customer, quote)
        db.add(order)
        db.flush()

        user_id = order.user_id
        stock_ledger.apply(db, line_items, stock_ledger.RESERVE,
                           order_id=order.id, user_id=user_id, reason=f"Order #{order.id}")

        if cart is not None:
            cart.items.clear()
            cart.coupon_code = None

        if quote.coupon is not None:
            redeem(db, quote.coupon)

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info("Order %s placed: total=%s coupon=%s guest=%s",
                order.id, order.total_amount, order.coupon_code, order.is_guest)
    return PlacedOrder(order=order, quote=quote)


def order_line_items(order: Order) -> List[LineItem]:
    """Rebuild ledger lines from the order snapshot."""
    line_items = []
    for it in order.items:
        if it.package_id is not None:
            kind, ref = ItemKind.PACKAGE, it.package_id
        elif it.product_id is not None:
            kind, ref = ItemKind.PRODUCT, it.product_id
        else:
            logger.warning("Order %s line %s has no catalog reference, skipping", order.id, it.id)
            continue
        line_items.append(LineItem(
            kind=kind,
            reference_id=ref,
            quantity=it.qty,
            unit_price=to_decimal(it.unit_price),
            name=it.name,
            component_ids=tuple(it.component_product_ids or ()),
        ))
    return line_items


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationFailed(f"Invalid status '{value}'. Allowed: {allowed}")


def change_status(db: Session, order: Order, new_status, actor_id: Optional[int] = None) -> Tuple[OrderStatus, OrderStatus]:
    """Move ``order`` to ``new_status``; returns (old, new).

    Any status may follow any other, except that a cancelled order stays
    cancelled. Entering Cancelled puts the ordered stock back.
    """
    new_status = parse_status(new_status)
    old_status = order.status

    if old_status == OrderStatus.CANCELLED:
        if new_status == OrderStatus.CANCELLED:
            return old_status, new_status
        raise IllegalTransition("Cannot un-cancel an order directly. Please create a new order.")

    try:
        # Guarded UPDATE: of two concurrent cancellations only one restores stock
        result = db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status != OrderStatus.CANCELLED)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            db.refresh(order)
            if new_status == OrderStatus.CANCELLED:
                return order.status, new_status
            raise IllegalTransition("Cannot un-cancel an order directly. Please create a new order.")

        if new_status == OrderStatus.CANCELLED:
            stock_ledger.apply(db, order_line_items(order), stock_ledger.RESTORE,
                               order_id=order.id, user_id=actor_id, reason=f"Order #{order.id} cancelled")
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info("Order %s status %s -> %s", order.id, old_status.value, new_status.value)
    return old_status, new_status


def _money(value) -> float:
    return float(to_decimal(value))


def build_order_events(db: Session, order: Order) -> Tuple[dict, dict]:
    """Customer confirmation and admin notification payloads for ``order``."""
    component_ids = {pid for it in order.items for pid in (it.component_product_ids or [])}
    names = {}
    if component_ids:
        names = dict(db.query(Product.id, Product.name).filter(Product.id.in_(component_ids)).all())

    items = []
    for it in order.items:
        line = {"name": it.name, "quantity": it.qty, "price": _money(it.unit_price)}
        if it.component_product_ids:
            line["contents"] = [names.get(pid, "Unknown") for pid in it.component_product_ids]
        items.append(line)

    if order.is_guest:
        customer = {
            "type": "guest",
            "name": f"{order.guest_first_name} {order.guest_last_name}",
            "email": order.guest_email,
            "phone": order.guest_phone,
            "address": f"{order.guest_address}, {order.guest_city}, {order.guest_governorate}",
        }
    else:
        user = order.user
        customer = {
            "type": "registered",
            "user_id": user.id,
            "name": user.full_name,
            "email": user.email,
            "phone": user.phone,
            "address": ", ".join(p for p in (user.address, user.city, user.governorate) if p),
        }

    base = {
        "order_id": order.id,
        "store": settings.STORE_NAME,
        "currency": settings.CURRENCY,
        "total_amount": _money(order.total_amount),
        "coupon_code": order.coupon_code,
    }
    customer_event = {
        **base,
        "type": "order.confirmation",
        "recipient": customer["email"],
        # Customers see package names only
        "items": [{k: v for k, v in line.items() if k != "contents"} for line in items],
    }
    admin_event = {
        **base,
        "type": "order.admin_notification",
        "subtotal_amount": _money(order.subtotal_amount),
        "discount_amount": _money(order.coupon_discount_amount) if order.coupon_code else 0.0,
        "customer": customer,
        "items": items,
    }
    return customer_event, admin_event
