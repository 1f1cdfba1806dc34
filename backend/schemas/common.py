from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from utils.catalog import RequestedItem, requested_item


# Item reference sent by clients. Any price field in the payload is ignored.
class ItemRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product_id: Optional[int] = None
    package_id: Optional[int] = None
    quantity: int = Field(default=1, ge=1)

    def to_requested(self) -> RequestedItem:
        return requested_item(self.product_id, self.package_id, self.quantity)


# Plain acknowledgement / error body
class MessageOut(BaseModel):
    message: str


# Applied coupon as shown next to a cart or order
class CouponSummaryOut(BaseModel):
    code: str
    discount_percentage: float
    discount_amount: float
