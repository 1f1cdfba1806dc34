from pydantic import BaseModel, Field
from typing import List, Optional

from schemas.common import CouponSummaryOut, ItemRef


# Client-held cart sent for pricing
class GuestCartRequest(BaseModel):
    items: List[ItemRef]
    coupon_code: Optional[str] = None


class GuestTotalsOut(BaseModel):
    subtotal: float
    discount_amount: float
    total: float
    coupon: Optional[CouponSummaryOut] = None
    coupon_message: Optional[str] = None


# Hydrated line for rendering the client cart
class GuestCartItemOut(BaseModel):
    kind: str
    id: int
    name: str
    price: float
    stock: int
    quantity: int
    total_price: float


class GuestViewCartOut(BaseModel):
    items: List[GuestCartItemOut]
    subtotal: float


# Quantity check for a single item, quantity is absolute here
class GuestQuantityCheck(BaseModel):
    product_id: Optional[int] = None
    package_id: Optional[int] = None
    quantity: int


class GuestQuantityOut(BaseModel):
    message: str
    quantity: int


class GuestCouponApply(BaseModel):
    code: str = Field(min_length=1)
    items: List[ItemRef]


class GuestCouponOut(BaseModel):
    message: str
    coupon: CouponSummaryOut
