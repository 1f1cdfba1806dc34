"""Subtotal / discount / total computation shared by every cart and checkout path."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from models.coupon import Coupon
from utils.catalog import LineItem
from utils.coupons import evaluate_code
from utils.errors import CouponError
from utils.money import ZERO, round_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Quote:
    line_items: List[LineItem]
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    coupon: Optional[Coupon] = None
    # Why a coupon was dropped from a preview
    coupon_error: Optional[CouponError] = None

    @property
    def coupon_code(self) -> Optional[str]:
        return self.coupon.code if self.coupon is not None else None


def price(db: Session, line_items: Sequence[LineItem], coupon_code: Optional[str] = None, strict: bool = True) -> Quote:
    """Price ``line_items`` with an optional coupon.

    ``strict`` is the checkout behaviour: any coupon failure propagates. With
    ``strict=False`` (cart previews) a coupon failure is reported on the quote
    and the items are priced without discount.
    """
    subtotal = sum((item.line_total for item in line_items), ZERO)
    discount = ZERO
    coupon = None
    coupon_error = None

    if coupon_code:
        try:
            evaluation = evaluate_code(db, coupon_code, line_items)
        except CouponError as exc:
            if strict:
                raise
            logger.info("Dropping coupon %s from preview: %s", coupon_code, exc.message)
            coupon_error = exc
        else:
            coupon = evaluation.coupon
            discount = evaluation.discount_amount

    # Rounded once, at the end, from the unrounded discount
    total = max(ZERO, subtotal - discount)
    return Quote(
        line_items=list(line_items),
        subtotal=round_money(subtotal),
        discount_amount=round_money(discount),
        total=round_money(total),
        coupon=coupon,
        coupon_error=coupon_error,
    )
