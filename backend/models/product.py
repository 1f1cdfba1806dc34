# backend/models/product.py
from sqlalchemy import Column, Integer, String, Numeric, CheckConstraint
from database import Base

# Model Product
# A single sellable item. Price and stock are authoritative here;
# carts and orders never carry their own copy of the current price.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String)
    image = Column(String, nullable=True)

    price = Column(Numeric(12, 2), CheckConstraint("price >= 0"), nullable=False, default=0)
    stock = Column(Integer, CheckConstraint("stock >= 0"), nullable=False, default=0)
