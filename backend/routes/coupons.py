# backend/routes/coupons.py
from typing import List
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import require_admin
from utils.audit import client_ip, write_log
from utils.errors import NotFound, ValidationFailed
from models.coupon import Coupon, normalize_code
from models.product import Product
from models.package import Package
from schemas.coupon import CouponCreate, CouponUpdate, CouponOut
from schemas.common import MessageOut

router = APIRouter(prefix="/coupons", tags=["Coupons"], dependencies=[Depends(require_admin)])

def _load_all(db: Session, model, ids: List[int]):
    ids = list(dict.fromkeys(ids))
    rows = db.query(model).filter(model.id.in_(ids)).all() if ids else []
    missing = set(ids) - {r.id for r in rows}
    if missing:
        raise NotFound(f"{model.__name__} not found: {', '.join(str(i) for i in sorted(missing))}")
    return rows

def _ensure_code_free(db: Session, code: str, exclude_id: int = None):
    q = db.query(Coupon).filter(Coupon.code == normalize_code(code))
    if exclude_id is not None:
        q = q.filter(Coupon.id != exclude_id)
    if q.first():
        raise ValidationFailed("Coupon with this code already exists")

def _coupon_to_out(coupon: Coupon) -> CouponOut:
    return CouponOut(
        id=coupon.id,
        code=coupon.code,
        discount_percentage=coupon.discount_percentage,
        max_usage=coupon.max_usage,
        max_discount_value=coupon.max_discount_value,
        used_count=coupon.used_count,
        is_active=coupon.is_active,
        applicable_product_ids=sorted(coupon.applicable_product_ids),
        applicable_package_ids=sorted(coupon.applicable_package_ids),
        created_at=coupon.created_at,
    )

def _get_coupon(db: Session, coupon_id: int) -> Coupon:
    coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
    if not coupon:
        raise NotFound("Coupon not found")
    return coupon

@router.post("", response_model=CouponOut, status_code=status.HTTP_201_CREATED)
def create_coupon(payload: CouponCreate, request: Request, db: Session = Depends(get_db)):
    _ensure_code_free(db, payload.code)
    coupon = Coupon(
        code=payload.code,
        discount_percentage=payload.discount_percentage,
        max_usage=payload.max_usage,
        max_discount_value=payload.max_discount_value,
        is_active=payload.is_active,
        used_count=0,
        applicable_products=_load_all(db, Product, payload.applicable_product_ids),
        applicable_packages=_load_all(db, Package, payload.applicable_package_ids),
    )
    db.add(coupon)
    db.commit()
    db.refresh(coupon)

    write_log(db, user_id=None, action="COUPON_CREATE", resource="coupons", resource_id=coupon.id,
              ip=client_ip(request), meta={"code": coupon.code})
    return _coupon_to_out(coupon)

# Newest first
@router.get("", response_model=List[CouponOut])
def list_coupons(db: Session = Depends(get_db)):
    coupons = db.query(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()
    return [_coupon_to_out(c) for c in coupons]

@router.get("/{coupon_id}", response_model=CouponOut)
def get_coupon(coupon_id: int, db: Session = Depends(get_db)):
    return _coupon_to_out(_get_coupon(db, coupon_id))

@router.put("/{coupon_id}", response_model=CouponOut)
def update_coupon(coupon_id: int, payload: CouponUpdate, request: Request, db: Session = Depends(get_db)):
    coupon = _get_coupon(db, coupon_id)
    changes = payload.model_dump(exclude_unset=True)

    # Fields explicitly sent as null clear nullable caps; others must keep a value
    for field in ("code", "discount_percentage", "is_active"):
        if field in changes and changes[field] is None:
            raise ValidationFailed(f"{field} cannot be null")
    # used_count never exceeds max_usage
    if changes.get("max_usage") is not None and changes["max_usage"] < (coupon.used_count or 0):
        raise ValidationFailed(f"max_usage cannot be lower than used_count ({coupon.used_count})")

    if "code" in changes:
        _ensure_code_free(db, changes["code"], exclude_id=coupon.id)
        coupon.code = changes["code"]
    for field in ("discount_percentage", "max_usage", "max_discount_value", "is_active"):
        if field in changes:
            setattr(coupon, field, changes[field])
    if changes.get("applicable_product_ids") is not None:
        coupon.applicable_products = _load_all(db, Product, changes["applicable_product_ids"])
    if changes.get("applicable_package_ids") is not None:
        coupon.applicable_packages = _load_all(db, Package, changes["applicable_package_ids"])

    db.commit()
    db.refresh(coupon)
    write_log(db, user_id=None, action="COUPON_UPDATE", resource="coupons", resource_id=coupon.id,
              ip=client_ip(request), meta={"fields": sorted(changes)})
    return _coupon_to_out(coupon)

# Orders keep their own code/amount snapshot, so deleting never touches them
@router.delete("/{coupon_id}", response_model=MessageOut)
def delete_coupon(coupon_id: int, request: Request, db: Session = Depends(get_db)):
    coupon = _get_coupon(db, coupon_id)
    code = coupon.code
    db.delete(coupon)
    db.commit()
    write_log(db, user_id=None, action="COUPON_DELETE", resource="coupons", resource_id=coupon_id,
              ip=client_ip(request), meta={"code": code})
    return {"message": "Coupon deleted successfully"}
