# backend/routes/orders.py
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, Request, status
from pydantic import ValidationError
from sqlalchemy.orm import Session, joinedload

from database import get_db
import logging
from utils.tokenJWT import get_current_user, get_optional_user, is_admin_request, require_admin
from utils.audit import client_ip, write_log
from utils.errors import NotFound, Unauthorized, ValidationFailed
from utils.money import to_decimal
from utils.notifier import order_notifier
from utils.order_lifecycle import (
    GuestContact, GuestCustomer, RegisteredCustomer, build_order_events, change_status, place_order,
)
from models.users import User
from models.order import Order
from schemas.order import (
    OrderResponse, OrdersPage, OrderStatusPatch, OrderItemOut,
    OrderCreatePayload, CouponAppliedOut, CustomerOut,
)

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)

def _customer_out(order: Order) -> CustomerOut:
    if order.is_guest:
        return CustomerOut(
            type="guest",
            name=f"{order.guest_first_name} {order.guest_last_name}",
            email=order.guest_email,
            phone=order.guest_phone,
            address=f"{order.guest_address}, {order.guest_city}, {order.guest_governorate}",
        )
    user = order.user
    return CustomerOut(
        type="registered",
        user_id=user.id,
        name=user.full_name or user.email,
        email=user.email,
        phone=user.phone,
        address=", ".join(p for p in (user.address, user.city, user.governorate) if p) or None,
    )

# Map Order model to OrderResponse schema
def _order_to_out(order: Order, with_customer: bool = False) -> OrderResponse:
    items: List[OrderItemOut] = []
    for it in order.items:
        unit_price = to_decimal(it.unit_price)
        items.append(OrderItemOut(
            kind="package" if it.package_id is not None else "product",
            product_id=it.product_id,
            package_id=it.package_id,
            name=it.name,
            qty=it.qty,
            unit_price=unit_price,
            line_total=unit_price * it.qty,
        ))
    coupon = None
    if order.coupon_code:
        coupon = CouponAppliedOut(code=order.coupon_code, discount_amount=order.coupon_discount_amount or 0)
    return OrderResponse(
        id=order.id,
        status=order.status,
        subtotal_amount=order.subtotal_amount,
        total_amount=order.total_amount,
        coupon_applied=coupon,
        created_at=order.created_at,
        customer=_customer_out(order) if with_customer else None,
        items=items,
    )

def _orders_query(db: Session):
    return db.query(Order).options(
        joinedload(Order.items), joinedload(Order.user)
    ).order_by(Order.created_at.desc(), Order.id.desc())

def _page(query, page: int, page_size: int, with_customer: bool = False):
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * page_size).limit(page_size).all()
    items = [_order_to_out(o, with_customer=with_customer) for o in rows]
    return {"items": items, "total": total, "page": page, "page_size": page_size}

# Checkout: registered customers order their cart, guests send items + contact info
@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Optional[OrderCreatePayload] = Body(default=None),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    payload = payload or OrderCreatePayload()

    if current_user is not None:
        placed = place_order(db, RegisteredCustomer(current_user))
    else:
        if payload.guest_info is None or not payload.items:
            raise ValidationFailed("Guest order requires guestInfo and items")
        contact = GuestContact(**payload.guest_info.model_dump())
        placed = place_order(
            db,
            GuestCustomer(contact),
            requested=[ref.to_requested() for ref in payload.items],
            coupon_code=payload.coupon_code,
        )

    order = placed.order
    out = _order_to_out(order, with_customer=True)

    # Notifications are fire-and-forget; they run after the response is sent
    try:
        customer_event, admin_event = build_order_events(db, order)
        background_tasks.add_task(order_notifier.send_order_events, customer_event, admin_event)
    except Exception:
        logger.exception("Could not prepare notifications for order %s", order.id)

    write_log(
        db,
        user_id=current_user.id if current_user else None,
        action="ORDER_CREATE",
        resource="orders",
        resource_id=order.id,
        status="SUCCESS",
        ip=client_ip(request),
        meta={
            "guest": current_user is None,
            "total": order.total_amount,
            "coupon": order.coupon_code,
            "items": len(order.items),
        },
    )
    return out


# List the caller's orders, newest first
@router.get("", response_model=OrdersPage)
def list_my_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    q = _orders_query(db).filter(Order.user_id == current_user.id)
    return _page(q, page, page_size)


# All orders with customer details (Admin only)
@router.get("/all", response_model=OrdersPage)
def list_all_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    return _page(_orders_query(db), page, page_size, with_customer=True)


# Get details of a specific order (owner or admin)
@router.get("/{order_id}", response_model=OrderResponse)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
    admin: bool = Depends(is_admin_request),
):
    if current_user is None and not admin:
        raise Unauthorized("Not authorized, no token")
    o = _orders_query(db).filter(Order.id == order_id).first()
    if not o or (not admin and o.user_id != current_user.id):
        raise NotFound("Order not found")
    return _order_to_out(o, with_customer=admin)


# Change order status (Admin only). The body must contain status and nothing else.
@router.put("/{order_id}", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    request: Request,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    try:
        patch = OrderStatusPatch.model_validate(payload)
    except ValidationError as e:
        if any(err["type"] == "extra_forbidden" for err in e.errors()):
            raise ValidationFailed("Only status updates are allowed")
        raise ValidationFailed(f"Invalid status: {payload.get('status')!r}")

    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFound("Order not found")

    old_status, new_status = change_status(db, order, patch.status)

    write_log(db, user_id=None, action="ORDER_STATUS_CHANGE", resource="orders", resource_id=order.id,
              status="SUCCESS", ip=client_ip(request),
              meta={"old": old_status, "new": new_status})

    order_with_relations = _orders_query(db).filter(Order.id == order.id).first()
    return _order_to_out(order_with_relations, with_customer=True)
