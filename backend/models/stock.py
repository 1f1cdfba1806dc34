# backend/models/stock.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from database import Base

class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    # Exactly one of product / package is affected by a movement
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True, index=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Signed quantity: negative leaves the shelf, positive returns to it
    qty = Column(Integer, nullable=False)

    reason = Column(String, nullable=True)
    # Movement classification (ORDER_OUT, CANCEL_IN)
    type = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    product = relationship("Product")
    package = relationship("Package")
