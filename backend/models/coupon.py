# backend/models/coupon.py
from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, Table, CheckConstraint, func
)
from sqlalchemy.orm import relationship, validates
from database import Base

# Allow-lists, one per item kind; an empty list means "every item of that kind"
coupon_products = Table(
    "coupon_products",
    Base.metadata,
    Column("coupon_id", Integer, ForeignKey("coupons.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
)

coupon_packages = Table(
    "coupon_packages",
    Base.metadata,
    Column("coupon_id", Integer, ForeignKey("coupons.id", ondelete="CASCADE"), primary_key=True),
    Column("package_id", Integer, ForeignKey("packages.id", ondelete="CASCADE"), primary_key=True),
)


def normalize_code(code):
    return (code or "").strip().upper()


# Percentage discount code with optional usage cap and discount cap
class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False, index=True)
    discount_percentage = Column(
        Numeric(5, 2),
        CheckConstraint("discount_percentage >= 0 AND discount_percentage <= 100"),
        nullable=False,
    )
    max_usage = Column(Integer, nullable=True)  # None = unlimited
    max_discount_value = Column(Numeric(12, 2), nullable=True)  # None = uncapped
    used_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    applicable_products = relationship("Product", secondary=coupon_products, lazy="selectin")
    applicable_packages = relationship("Package", secondary=coupon_packages, lazy="selectin")

    @validates("code")
    def _normalize_code(self, key, value):
        return normalize_code(value)

    @property
    def applicable_product_ids(self):
        return {p.id for p in self.applicable_products}

    @property
    def applicable_package_ids(self):
        return {p.id for p in self.applicable_packages}

    @property
    def is_scoped(self):
        return bool(self.applicable_products or self.applicable_packages)

    @property
    def usage_exhausted(self):
        return self.max_usage is not None and (self.used_count or 0) >= self.max_usage
