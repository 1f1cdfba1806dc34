from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


class CouponCreate(BaseModel):
    code: str = Field(min_length=1)
    discount_percentage: float = Field(ge=0, le=100)
    max_usage: Optional[int] = Field(default=None, ge=0)
    max_discount_value: Optional[float] = Field(default=None, ge=0)
    applicable_product_ids: List[int] = Field(default_factory=list)
    applicable_package_ids: List[int] = Field(default_factory=list)
    is_active: bool = True


# Partial update: only fields present in the body are written
class CouponUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1)
    discount_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    max_usage: Optional[int] = Field(default=None, ge=0)
    max_discount_value: Optional[float] = Field(default=None, ge=0)
    applicable_product_ids: Optional[List[int]] = None
    applicable_package_ids: Optional[List[int]] = None
    is_active: Optional[bool] = None


class CouponOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    discount_percentage: float
    max_usage: Optional[int] = None
    max_discount_value: Optional[float] = None
    used_count: int
    is_active: bool
    applicable_product_ids: List[int]
    applicable_package_ids: List[int]
    created_at: Optional[datetime] = None
