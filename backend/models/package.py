# backend/models/package.py
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, CheckConstraint, DateTime, func
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship
from database import Base

# A bundle of products sold as one item.
# Package stock is its own counter, kept in lockstep with the stock of every
# included product: one package unit consumes one unit of each component.
class Package(Base):
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String)
    image = Column(String, nullable=True)

    price = Column(Numeric(12, 2), CheckConstraint("price >= 0"), nullable=False, default=0)
    stock = Column(Integer, CheckConstraint("stock >= 0"), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Components in their stored order; position is maintained by ordering_list
    components = relationship(
        "PackageProduct",
        back_populates="package",
        order_by="PackageProduct.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )

    @property
    def included_products(self):
        return [c.product for c in self.components]

    @property
    def included_product_ids(self):
        return [c.product_id for c in self.components]

    def set_included_products(self, products):
        self.components = [PackageProduct(product=p) for p in products]


# Association row: one included product at a given position in the package
class PackageProduct(Base):
    __tablename__ = "package_products"

    id = Column(Integer, primary_key=True, index=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    package = relationship("Package", back_populates="components")
    product = relationship("Product")
