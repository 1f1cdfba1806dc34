from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional
from datetime import datetime

from models.order import OrderStatus
from schemas.common import ItemRef


# Contact snapshot required for guest checkout
class GuestInfo(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    governorate: str = Field(min_length=1)
    city: str = Field(min_length=1)
    address: str = Field(min_length=1)


# Checkout body. Registered customers send an empty body (their cart is used);
# guests send guest_info and items.
class OrderCreatePayload(BaseModel):
    guest_info: Optional[GuestInfo] = None
    items: Optional[List[ItemRef]] = None
    coupon_code: Optional[str] = None


# Output schema for an individual order line item
class OrderItemOut(BaseModel):
    kind: str
    product_id: Optional[int] = None
    package_id: Optional[int] = None
    name: str
    qty: int
    unit_price: float
    line_total: float


class CouponAppliedOut(BaseModel):
    code: str
    discount_amount: float


class CustomerOut(BaseModel):
    type: str
    user_id: Optional[int] = None
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None


# Output schema representing the full order details
class OrderResponse(BaseModel):
    id: int
    status: OrderStatus
    subtotal_amount: float
    total_amount: float
    coupon_applied: Optional[CouponAppliedOut] = None
    created_at: Optional[datetime] = None
    customer: Optional[CustomerOut] = None
    items: List[OrderItemOut]


# Schema for paginated order lists
class OrdersPage(BaseModel):
    items: List[OrderResponse]
    total: int
    page: int
    page_size: int


# Schema for updating order status; any other field is rejected
class OrderStatusPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
