# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import client_ip, write_log
from utils.catalog import ItemKind, availability, requested_item, resolve, resolve_line_items
from utils.coupons import evaluate_code
from utils.errors import InsufficientStock, NotFound, ValidationFailed
from utils.order_lifecycle import cart_requested_items, get_or_create_cart
from utils.pricing import price
from models.users import User
from models.cart import Cart, CartItem
from schemas.cart import CartAddItem, CartUpdateItem, CartCouponApply, CartOut, CartItemOut
from schemas.common import CouponSummaryOut, MessageOut

router = APIRouter(prefix="/cart", tags=["Cart"])

def _cart_lines(db: Session, cart: Cart):
    # Lines whose catalog entry disappeared are dropped from the cart
    live, stale = [], []
    for line in cart.items:
        if line.product is None and line.package is None:
            stale.append(line)
        else:
            live.append(line)
    for line in stale:
        cart.items.remove(line)
    if stale:
        db.commit()
    return live

def _cart_to_out(db: Session, cart: Cart, message: str = None) -> CartOut:
    lines = _cart_lines(db, cart)
    line_items = resolve_line_items(db, cart_requested_items(cart))

    # Preview pricing: a coupon that no longer applies is detached, not an error
    quote = price(db, line_items, cart.coupon_code, strict=False)
    coupon_message = None
    if quote.coupon_error is not None:
        coupon_message = quote.coupon_error.message
        cart.coupon_code = None
        db.commit()

    items_out = []
    for line, item in zip(lines, quote.line_items):
        items_out.append(CartItemOut(
            id=line.id,
            kind=item.kind.value,
            product_id=line.product_id,
            package_id=line.package_id,
            name=item.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.line_total,
        ))

    coupon = None
    if quote.coupon is not None:
        coupon = CouponSummaryOut(
            code=quote.coupon.code,
            discount_percentage=quote.coupon.discount_percentage,
            discount_amount=quote.discount_amount,
        )

    return CartOut(
        items=items_out,
        subtotal=quote.subtotal,
        discount_amount=quote.discount_amount,
        total=quote.total,
        coupon=coupon,
        coupon_message=coupon_message,
        message=message,
    )

def _find_line(cart: Cart, item_id: int) -> CartItem:
    for line in cart.items:
        if line.id == item_id:
            return line
    raise NotFound("Item not found in cart")

@router.get("", response_model=CartOut)
def get_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = get_or_create_cart(db, current_user)
    return _cart_to_out(db, cart)

@router.post("", response_model=CartOut)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = get_or_create_cart(db, current_user)
    requested = requested_item(payload.product_id, payload.package_id, payload.quantity)
    snap = resolve(db, requested.kind, requested.reference_id)

    if requested.kind == ItemKind.PRODUCT:
        line = next((it for it in cart.items if it.product_id == snap.id), None)
    else:
        line = next((it for it in cart.items if it.package_id == snap.id), None)

    new_qty = payload.quantity + (line.qty if line else 0)
    available = availability(db, snap)
    if new_qty > available:
        raise InsufficientStock(snap.name, available)

    if line:
        line.qty = new_qty
    else:
        cart.items.append(CartItem(
            product_id=snap.id if requested.kind == ItemKind.PRODUCT else None,
            package_id=snap.id if requested.kind == ItemKind.PACKAGE else None,
            qty=new_qty,
        ))
    db.commit()
    db.refresh(cart)

    out = _cart_to_out(db, cart)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_ADD",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"kind": snap.kind.value, "item_id": snap.id, "qty": payload.quantity, "total": out.total},
    )
    return out

@router.put("/{item_id}", response_model=CartOut)
def update_cart_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = get_or_create_cart(db, current_user)
    line = _find_line(cart, item_id)

    # payload.quantity is the change, not the new quantity
    new_qty = line.qty + payload.quantity
    if new_qty < 1:
        raise ValidationFailed("Quantity can't go lower than one")

    kind = ItemKind.PRODUCT if line.product_id is not None else ItemKind.PACKAGE
    snap = resolve(db, kind, line.product_id or line.package_id)
    available = availability(db, snap)
    message = None
    if new_qty > available:
        if available < 1:
            raise InsufficientStock(snap.name, available)
        new_qty = available
        message = "Quantity updated to maximum available stock"

    line.qty = new_qty
    db.commit()
    db.refresh(cart)

    out = _cart_to_out(db, cart, message=message)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_UPDATE",
        resource="cart",
        resource_id=item_id,
        status="SUCCESS",
        ip=client_ip(request),
        meta={"change": payload.quantity, "qty": new_qty, "clamped": message is not None, "total": out.total},
    )
    return out

@router.delete("/{item_id}", response_model=CartOut)
def delete_cart_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = get_or_create_cart(db, current_user)
    line = _find_line(cart, item_id)

    cart.items.remove(line)
    db.commit()
    db.refresh(cart)

    out = _cart_to_out(db, cart)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_DELETE",
        resource="cart",
        resource_id=item_id,
        status="SUCCESS",
        ip=client_ip(request),
        meta={"cart_items": len(out.items), "total": out.total},
    )
    return out

@router.delete("", response_model=MessageOut)
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = get_or_create_cart(db, current_user)
    cart.items.clear()
    db.commit()
    write_log(db, user_id=current_user.id, action="CART_CLEAR", resource="cart", ip=client_ip(request))
    return {"message": "Cart cleared"}

@router.post("/apply-coupon", response_model=CartOut)
def apply_coupon(
    payload: CartCouponApply,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = get_or_create_cart(db, current_user)
    line_items = resolve_line_items(db, cart_requested_items(cart))

    # Strict check against the current cart; failures surface to the client
    evaluation = evaluate_code(db, payload.code, line_items)
    cart.coupon_code = evaluation.coupon.code
    db.commit()
    db.refresh(cart)

    out = _cart_to_out(db, cart, message="Coupon applied successfully")
    write_log(
        db,
        user_id=current_user.id,
        action="CART_COUPON_APPLY",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"code": evaluation.coupon.code, "discount": out.discount_amount},
    )
    return out

@router.post("/remove-coupon", response_model=MessageOut)
def remove_coupon(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = get_or_create_cart(db, current_user)
    code = cart.coupon_code
    cart.coupon_code = None
    db.commit()
    write_log(db, user_id=current_user.id, action="CART_COUPON_REMOVE", resource="cart",
              ip=client_ip(request), meta={"code": code})
    return {"message": "Coupon removed successfully"}
