"""Stock checks and signed stock deltas for products and packages.

A package line moves the package counter and the counter of every included
product by the same quantity. Deductions are single conditional UPDATEs
(``stock = stock - q WHERE stock >= q``), so a concurrent checkout that got
there first makes the second one fail instead of overselling.
"""

import logging
from typing import Iterable, Iterator, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from models.package import Package
from models.product import Product
from models.stock import StockMovement
from utils.catalog import ItemKind, LineItem, load_item
from utils.errors import InsufficientStock, NotFound

logger = logging.getLogger(__name__)

RESERVE = -1
RESTORE = 1

MOVEMENT_TYPES = {RESERVE: "ORDER_OUT", RESTORE: "CANCEL_IN"}


def check_availability(db: Session, line_items: Iterable[LineItem]) -> None:
    """Raise InsufficientStock for the first short resource, scanning in order.

    For a package the package counter is checked before its components, and
    components in their stored order.
    """
    for item in line_items:
        if item.kind == ItemKind.PRODUCT:
            product = load_item(db, ItemKind.PRODUCT, item.reference_id)
            if product.stock < item.quantity:
                raise InsufficientStock(product.name, product.stock)
            continue

        pkg = load_item(db, ItemKind.PACKAGE, item.reference_id)
        if pkg.stock < item.quantity:
            raise InsufficientStock(pkg.name, pkg.stock)
        for product_id in item.component_ids:
            component = db.get(Product, product_id, populate_existing=True)
            if component is None:
                raise NotFound(f"Product not found: {product_id}")
            if component.stock < item.quantity:
                raise InsufficientStock(component.name, component.stock, package_name=pkg.name)


def _targets(item: LineItem) -> Iterator[Tuple[type, int, Optional[str]]]:
    # (model, id, enclosing package name)
    if item.kind == ItemKind.PRODUCT:
        yield Product, item.reference_id, None
        return
    yield Package, item.reference_id, None
    for product_id in item.component_ids:
        yield Product, product_id, item.name


def _shift(db: Session, model, row_id: int, delta: int) -> bool:
    stmt = update(model).where(model.id == row_id)
    if delta < 0:
        stmt = stmt.where(model.stock >= -delta)
    result = db.execute(
        stmt.values(stock=model.stock + delta).execution_options(synchronize_session=False)
    )
    # Keep loaded instances in this session in step with the row
    instance = db.identity_map.get(identity_key(model, row_id))
    if instance is not None:
        db.expire(instance, ["stock"])
    return result.rowcount == 1


def apply(
    db: Session,
    line_items: Iterable[LineItem],
    sign: int,
    *,
    order_id: Optional[int] = None,
    user_id: Optional[int] = None,
    reason: Optional[str] = None,
) -> None:
    """Move stock by ``sign * quantity`` for every line (packages expanded).

    RESERVE fails with InsufficientStock if any row would go negative; the
    caller owns the transaction and must roll back. RESTORE is unconditional;
    rows deleted since the order was placed are skipped.
    """
    if sign not in MOVEMENT_TYPES:
        raise ValueError(f"sign must be {RESERVE} or {RESTORE}, got {sign}")

    for item in line_items:
        delta = sign * item.quantity
        for model, row_id, package_name in _targets(item):
            if _shift(db, model, row_id, delta):
                db.add(StockMovement(
                    product_id=row_id if model is Product else None,
                    package_id=row_id if model is Package else None,
                    order_id=order_id,
                    user_id=user_id,
                    qty=delta,
                    type=MOVEMENT_TYPES[sign],
                    reason=reason,
                ))
                continue

            row = db.get(model, row_id, populate_existing=True)
            if sign == RESTORE:
                logger.warning("Cannot restore %s x%s: %s %s no longer exists",
                               item.name, item.quantity, model.__tablename__, row_id)
                continue
            if row is None:
                raise NotFound(f"{model.__name__} not found: {row_id}")
            raise InsufficientStock(row.name, row.stock, package_name=package_name)
