# backend/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Represents the user's shopping cart (one per user)
class Cart(Base):
    __tablename__ = "carts" # Table name

    id = Column(Integer, primary_key=True, index=True) # Primary key
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True, nullable=False) # Owner
    coupon_code = Column(String, nullable=True) # Coupon attached to the cart, if any
    created_at = Column(DateTime, server_default=func.now()) # Creation timestamp

    user = relationship("User", back_populates="cart")
    # Lines in insertion order
    items = relationship("CartItem", back_populates="cart", order_by="CartItem.id", cascade="all, delete-orphan")


# A single cart line: exactly one of product or package, plus a quantity.
# No price is stored; the cart is always priced from the catalog.
class CartItem(Base):
    __tablename__ = "cart_items" # Table name

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), index=True, nullable=False) # Parent cart
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=True)
    package_id = Column(Integer, ForeignKey("packages.id"), index=True, nullable=True)
    qty = Column(Integer, nullable=False, default=1)

    cart = relationship("Cart", back_populates="items") # Relationship back to Cart
    product = relationship("Product")
    package = relationship("Package")

    __table_args__ = (
        # One line per item in a cart
        UniqueConstraint("cart_id", "product_id", name="uq_cartitem_cart_product"),
        UniqueConstraint("cart_id", "package_id", name="uq_cartitem_cart_package"),
        CheckConstraint("(product_id IS NULL) <> (package_id IS NULL)", name="ck_cartitem_one_ref"),
        CheckConstraint("qty >= 1", name="ck_cartitem_qty_positive"),
    )
