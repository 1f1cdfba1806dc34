"""Authoritative price and stock lookups for products and packages.

Every pricing or stock decision goes through :func:`resolve`, which reloads
the row from the database. Prices sent by clients are never read.
"""

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from models.package import Package
from models.product import Product
from utils.errors import NotFound, ValidationFailed
from utils.money import to_decimal


class ItemKind(str, enum.Enum):
    PRODUCT = "product"
    PACKAGE = "package"


@dataclass(frozen=True)
class CatalogSnapshot:
    kind: ItemKind
    id: int
    name: str
    price: Decimal
    stock: int
    # Included product ids in package order (empty for products)
    component_ids: Tuple[int, ...] = ()


@dataclass(frozen=True)
class RequestedItem:
    """An item reference as supplied by a cart line or a guest payload."""

    kind: ItemKind
    reference_id: int
    quantity: int


@dataclass(frozen=True)
class LineItem:
    """A catalog-priced (kind, id, quantity) tuple."""

    kind: ItemKind
    reference_id: int
    quantity: int
    unit_price: Decimal
    name: str
    component_ids: Tuple[int, ...] = field(default=())

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


def _model_for(kind: ItemKind):
    return Product if kind == ItemKind.PRODUCT else Package


def load_item(db: Session, kind: ItemKind, item_id: int):
    """Fetch the current product/package row or raise NotFound."""
    obj = db.get(_model_for(kind), item_id, populate_existing=True)
    if obj is None:
        raise NotFound(f"{kind.value.capitalize()} not found: {item_id}")
    return obj


def resolve(db: Session, kind: ItemKind, item_id: int) -> CatalogSnapshot:
    obj = load_item(db, kind, item_id)
    component_ids: Tuple[int, ...] = ()
    if kind == ItemKind.PACKAGE:
        component_ids = tuple(obj.included_product_ids)
    return CatalogSnapshot(
        kind=kind,
        id=obj.id,
        name=obj.name,
        price=to_decimal(obj.price),
        stock=obj.stock or 0,
        component_ids=component_ids,
    )


def availability(db: Session, snapshot: CatalogSnapshot) -> int:
    """Units that can be sold right now.

    For packages this is the limiting resource across the package counter and
    every included product.
    """
    available = snapshot.stock
    for product_id in snapshot.component_ids:
        component = db.get(Product, product_id, populate_existing=True)
        available = min(available, component.stock if component else 0)
    return max(available, 0)


def ensure_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationFailed("Quantity must be a positive integer")
    return quantity


def resolve_line_items(db: Session, requested: Iterable[RequestedItem]) -> List[LineItem]:
    line_items = []
    for item in requested:
        ensure_quantity(item.quantity)
        snap = resolve(db, item.kind, item.reference_id)
        line_items.append(LineItem(
            kind=snap.kind,
            reference_id=snap.id,
            quantity=item.quantity,
            unit_price=snap.price,
            name=snap.name,
            component_ids=snap.component_ids,
        ))
    return line_items


def requested_item(product_id: Optional[int], package_id: Optional[int], quantity: int) -> RequestedItem:
    """Build a RequestedItem from the product_id/package_id pair used in payloads."""
    if (product_id is None) == (package_id is None):
        raise ValidationFailed("Must provide productId or packageId")
    if product_id is not None:
        return RequestedItem(ItemKind.PRODUCT, product_id, quantity)
    return RequestedItem(ItemKind.PACKAGE, package_id, quantity)
