# backend/routes/guest.py
# Stateless helpers for guest shoppers: the client keeps the cart,
# the server only validates and prices it.
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from utils.catalog import availability, requested_item, resolve, resolve_line_items
from utils.coupons import evaluate_code
from utils.errors import InsufficientStock, NotFound, ValidationFailed
from utils.pricing import price
from schemas.common import CouponSummaryOut, ItemRef, MessageOut
from schemas.guest import (
    GuestCartRequest, GuestTotalsOut, GuestViewCartOut, GuestCartItemOut,
    GuestQuantityCheck, GuestQuantityOut, GuestCouponApply, GuestCouponOut,
)
from utils.money import ZERO, round_money

router = APIRouter(prefix="/guest", tags=["Guest"])

def _check_stock(db: Session, refs: List[ItemRef]):
    # Every line must fit in what is available now
    for ref in refs:
        requested = ref.to_requested()
        snap = resolve(db, requested.kind, requested.reference_id)
        available = availability(db, snap)
        if requested.quantity > available:
            raise InsufficientStock(snap.name, available)

# Price the client cart; a bad coupon is reported, not fatal
@router.post("/calculate-cart", response_model=GuestTotalsOut)
def calculate_cart(payload: GuestCartRequest, db: Session = Depends(get_db)):
    _check_stock(db, payload.items)
    line_items = resolve_line_items(db, [ref.to_requested() for ref in payload.items])
    quote = price(db, line_items, payload.coupon_code, strict=False)

    coupon = None
    if quote.coupon is not None:
        coupon = CouponSummaryOut(
            code=quote.coupon.code,
            discount_percentage=quote.coupon.discount_percentage,
            discount_amount=quote.discount_amount,
        )
    return GuestTotalsOut(
        subtotal=quote.subtotal,
        discount_amount=quote.discount_amount,
        total=quote.total,
        coupon=coupon,
        coupon_message=quote.coupon_error.message if quote.coupon_error else None,
    )

# Hydrate client cart lines with current name, price and stock
@router.post("/view-cart", response_model=GuestViewCartOut)
def view_cart(payload: GuestCartRequest, db: Session = Depends(get_db)):
    items = []
    subtotal = ZERO
    for ref in payload.items:
        requested = ref.to_requested()
        try:
            snap = resolve(db, requested.kind, requested.reference_id)
        except NotFound:
            # Removed from the catalog since the client stored it
            continue
        line_total = snap.price * requested.quantity
        subtotal += line_total
        items.append(GuestCartItemOut(
            kind=snap.kind.value,
            id=snap.id,
            name=snap.name,
            price=snap.price,
            stock=availability(db, snap),
            quantity=requested.quantity,
            total_price=round_money(line_total),
        ))
    return GuestViewCartOut(items=items, subtotal=round_money(subtotal))

@router.post("/add-to-cart", response_model=GuestCartItemOut)
def add_to_cart(payload: ItemRef, db: Session = Depends(get_db)):
    requested = payload.to_requested()
    snap = resolve(db, requested.kind, requested.reference_id)
    available = availability(db, snap)
    if requested.quantity > available:
        raise InsufficientStock(snap.name, available)
    return GuestCartItemOut(
        kind=snap.kind.value,
        id=snap.id,
        name=snap.name,
        price=snap.price,
        stock=available,
        quantity=requested.quantity,
        total_price=round_money(snap.price * requested.quantity),
    )

@router.post("/update-quantity", response_model=GuestQuantityOut)
def update_quantity(payload: GuestQuantityCheck, db: Session = Depends(get_db)):
    if payload.quantity < 1:
        raise ValidationFailed("Quantity can't go lower than one")
    requested = requested_item(payload.product_id, payload.package_id, payload.quantity)
    snap = resolve(db, requested.kind, requested.reference_id)
    available = availability(db, snap)
    if payload.quantity > available:
        raise InsufficientStock(snap.name, available)
    return {"message": "Quantity valid", "quantity": payload.quantity}

# Strict coupon check against the supplied items
@router.post("/apply-coupon", response_model=GuestCouponOut)
def apply_coupon(payload: GuestCouponApply, db: Session = Depends(get_db)):
    line_items = resolve_line_items(db, [ref.to_requested() for ref in payload.items])
    evaluation = evaluate_code(db, payload.code, line_items)
    return GuestCouponOut(
        message="Coupon applied successfully",
        coupon=CouponSummaryOut(
            code=evaluation.coupon.code,
            discount_percentage=evaluation.coupon.discount_percentage,
            discount_amount=round_money(evaluation.discount_amount),
        ),
    )

@router.post("/remove-coupon", response_model=MessageOut)
def remove_coupon():
    return {"message": "Coupon removed successfully"}

@router.post("/clear-cart", response_model=MessageOut)
def clear_cart():
    return {"message": "Cart cleared"}
