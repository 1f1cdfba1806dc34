# backend/schemas/catalog.py
from pydantic import BaseModel, ConfigDict
from typing import Optional, List


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ProductOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    price: float
    stock: int


class PackageOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    price: float
    stock: int
    included_products: List[ProductOut]


# Paginated responses for catalog listings
class ProductListPage(ORMBase):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int


class PackageListPage(ORMBase):
    items: List[PackageOut]
    total: int
    page: int
    page_size: int
