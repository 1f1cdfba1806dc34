from pydantic import BaseModel, Field
from typing import List, Optional

from schemas.common import CouponSummaryOut

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: Optional[int] = None
    package_id: Optional[int] = None
    quantity: int = Field(default=1, ge=1)

# Request schema for changing a cart line; quantity is a signed change
class CartUpdateItem(BaseModel):
    quantity: int

# Request schema for attaching a coupon to the cart
class CartCouponApply(BaseModel):
    code: str = Field(min_length=1)

# Response schema for a single cart line item
class CartItemOut(BaseModel):
    id: int
    kind: str
    product_id: Optional[int] = None
    package_id: Optional[int] = None
    name: str
    quantity: int
    unit_price: float
    line_total: float

# Response schema for the entire cart summary
class CartOut(BaseModel):
    items: List[CartItemOut]
    subtotal: float
    discount_amount: float
    total: float
    coupon: Optional[CouponSummaryOut] = None
    # Why the stored coupon was detached during this view
    coupon_message: Optional[str] = None
    message: Optional[str] = None
