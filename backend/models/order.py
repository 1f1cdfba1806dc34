from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, JSON, Enum, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base
import enum

# Order lifecycle states
class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    SHIPPED = "Shipped"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"

# Price-and-coupon snapshot of a checkout. Only the status changes afterwards.
class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    # Customer identity: a registered user OR the guest contact snapshot below
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    guest_first_name = Column(String, nullable=True)
    guest_last_name = Column(String, nullable=True)
    guest_email = Column(String, nullable=True)
    guest_phone = Column(String, nullable=True)
    guest_governorate = Column(String, nullable=True)
    guest_city = Column(String, nullable=True)
    guest_address = Column(String, nullable=True)

    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    subtotal_amount = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)

    # Coupon snapshot, absent when no coupon was used
    coupon_code = Column(String, nullable=True)
    coupon_discount_amount = Column(Numeric(12, 2), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("(user_id IS NULL) <> (guest_email IS NULL)", name="ck_order_one_customer"),
    )

    @property
    def is_guest(self):
        return self.user_id is None


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=True)
    name = Column(String, nullable=False)
    qty = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    # Package components at purchase time, in package order
    component_product_ids = Column(JSON, nullable=True)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
    package = relationship("Package")
