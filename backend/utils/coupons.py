"""Coupon lookup, eligibility rules and usage accounting."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from models.coupon import Coupon, normalize_code
from utils.catalog import ItemKind, LineItem
from utils.errors import CouponInactive, CouponNotApplicable, CouponNotFound, CouponUsageExceeded
from utils.money import ZERO, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CouponEvaluation:
    coupon: Coupon
    # Unrounded; rounding happens once, in the pricing step
    discount_amount: Decimal
    applicably_hit: bool


def get_coupon(db: Session, code: Optional[str]) -> Coupon:
    normalized = normalize_code(code)
    coupon = None
    if normalized:
        coupon = db.query(Coupon).filter(Coupon.code == normalized).populate_existing().first()
    if coupon is None:
        raise CouponNotFound(normalized)
    return coupon


def ensure_redeemable(coupon: Coupon) -> None:
    if not coupon.is_active:
        raise CouponInactive(coupon.code)
    if coupon.usage_exhausted:
        raise CouponUsageExceeded(coupon.code)


def applies_to(coupon: Coupon, item: LineItem) -> bool:
    if item.kind == ItemKind.PRODUCT:
        allowed = coupon.applicable_product_ids
    else:
        allowed = coupon.applicable_package_ids
    return not allowed or item.reference_id in allowed


def evaluate(coupon: Coupon, line_items: Iterable[LineItem]) -> CouponEvaluation:
    """Compute the discount a redeemable coupon grants on ``line_items``.

    Raises CouponInactive / CouponUsageExceeded for coupons that cannot be
    redeemed, and CouponNotApplicable when the coupon is scoped to specific
    items and none of them is in the cart.
    """
    ensure_redeemable(coupon)

    percentage = to_decimal(coupon.discount_percentage)
    discount = ZERO
    hit = False
    for item in line_items:
        if applies_to(coupon, item):
            hit = True
            discount += item.line_total * percentage / Decimal(100)

    if coupon.is_scoped and not hit:
        raise CouponNotApplicable(coupon.code)

    if coupon.max_discount_value is not None:
        cap = to_decimal(coupon.max_discount_value)
        if discount > cap:
            discount = cap

    return CouponEvaluation(coupon=coupon, discount_amount=discount, applicably_hit=hit)


def evaluate_code(db: Session, code: str, line_items: Iterable[LineItem]) -> CouponEvaluation:
    return evaluate(get_coupon(db, code), line_items)


def redeem(db: Session, coupon: Coupon) -> None:
    """Count one use of ``coupon`` inside the caller's transaction.

    The cap is re-checked by the UPDATE itself so two concurrent checkouts
    cannot both take the last use.
    """
    result = db.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon.id,
            Coupon.is_active.is_(True),
            or_(Coupon.max_usage.is_(None), Coupon.used_count < Coupon.max_usage),
        )
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    # Plain UPDATE so rowcount is reliable; reload the counter afterwards
    db.expire(coupon, ["used_count", "is_active"])
    if result.rowcount != 1:
        logger.info("Coupon %s lost redemption race (used %s/%s)", coupon.code, coupon.used_count, coupon.max_usage)
        if not coupon.is_active:
            raise CouponInactive(coupon.code)
        raise CouponUsageExceeded(coupon.code)
