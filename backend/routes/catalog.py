# backend/routes/catalog.py
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, selectinload

from database import get_db
from utils.errors import NotFound
from models.product import Product
from models.package import Package, PackageProduct
from schemas.catalog import ProductOut, PackageOut, ProductListPage, PackageListPage

router = APIRouter(tags=["Catalog"])

def _sorted(query, model, sort_by: str, order: str):
    allowed = {
        "name": model.name,
        "price": model.price,
        "stock": model.stock,
    }
    sort_col = allowed.get(sort_by, model.name)
    if order == "desc":
        return query.order_by(sort_col.desc(), model.id.desc())
    return query.order_by(sort_col.asc(), model.id.asc())

# Public product listing with name search
@router.get("/products", response_model=ProductListPage)
def list_products(
    q: Optional[str] = Query(None, description="Search by name"),
    in_stock: bool = Query(False, description="Only products with stock left"),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    sort_by: Literal["name", "price", "stock"] = "name",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
):
    query = db.query(Product)
    if q:
        query = query.filter(Product.name.ilike(f"%{q}%"))
    if in_stock:
        query = query.filter(Product.stock > 0)

    total = query.count()
    items: List[Product] = _sorted(query, Product, sort_by, order).offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}

@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFound(f"Product not found: {product_id}")
    return product

@router.get("/packages", response_model=PackageListPage)
def list_packages(
    q: Optional[str] = Query(None, description="Search by name"),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    sort_by: Literal["name", "price", "stock"] = "name",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
):
    query = db.query(Package).options(
        selectinload(Package.components).selectinload(PackageProduct.product)
    )
    if q:
        query = query.filter(Package.name.ilike(f"%{q}%"))

    total = query.count()
    items: List[Package] = _sorted(query, Package, sort_by, order).offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}

@router.get("/packages/{package_id}", response_model=PackageOut)
def get_package(package_id: int, db: Session = Depends(get_db)):
    package = db.query(Package).filter(Package.id == package_id).first()
    if not package:
        raise NotFound(f"Package not found: {package_id}")
    return package
