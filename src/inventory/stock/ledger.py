"""Inventory ledger — the only writer of stock quantities.

Order decrements check every line before touching any record, so an order
that cannot be covered in full changes nothing. Both entry points run
inside the caller's unit of work; the order handlers call them with the
order write in the same transaction.
"""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from inventory.stock.stock import StockLine, StockRecord
from shared.config import get_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProductStock:
    """All size variants of one product with their combined quantity."""

    product_id: str
    variants: list[StockRecord]

    @property
    def total_quantity(self) -> int:
        return sum(v.stock_quantity for v in self.variants)

    @property
    def in_stock(self) -> bool:
        return any(v.in_stock for v in self.variants)


def merge_lines(items: Iterable) -> list[StockLine]:
    """Sum quantities per variant, in a stable (product, size) order."""
    totals: dict[tuple[str, str], int] = {}
    for item in items:
        if item.quantity < 1:
            raise ValidationError({"quantity": [f"Quantity must be at least 1 for {item.product_id} ({item.size})"]})
        key = (str(item.product_id), item.size)
        totals[key] = totals.get(key, 0) + item.quantity
    return [StockLine(product_id=p, size=s, quantity=q) for (p, s), q in sorted(totals.items())]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def find_record(product_id, size) -> StockRecord | None:
    repo = current_domain.repository_for(StockRecord)
    records = repo._dao.query.filter(product_id=str(product_id), size=size).all().items
    return records[0] if records else None


def get_record(product_id, size) -> StockRecord:
    record = find_record(product_id, size)
    if record is None:
        raise ObjectNotFoundError(f"StockRecord {product_id}/{size} does not exist")
    return record


def product_stock(product_id) -> ProductStock:
    repo = current_domain.repository_for(StockRecord)
    variants = sorted(repo._dao.query.filter(product_id=str(product_id)).all().items, key=lambda v: v.size)
    if not variants:
        raise ObjectNotFoundError(f"Product {product_id} has no stock records")
    return ProductStock(product_id=str(product_id), variants=list(variants))


def low_stock(threshold: int | None = None) -> list[StockRecord]:
    """Variants at or below the threshold, emptiest first."""
    limit = get_settings().low_stock_threshold if threshold is None else threshold
    repo = current_domain.repository_for(StockRecord)
    records = repo._dao.query.filter(stock_quantity__lte=limit).all().items
    return sorted(records, key=lambda r: (r.stock_quantity, str(r.product_id), r.size))


# ---------------------------------------------------------------------------
# Order reconciliation
# ---------------------------------------------------------------------------
def _load_lines(lines: list[StockLine]) -> list[tuple[StockLine, StockRecord]]:
    return [(line, get_record(line.product_id, line.size)) for line in lines]


def decrement_for_order(items: Iterable, order_id=None) -> dict[tuple[str, str], int]:
    """Take stock for every line of an order, all or nothing.

    Returns the new quantity per (product_id, size). Raises
    InsufficientStock naming the first variant that cannot be covered;
    in that case no record is changed.
    """
    lines = merge_lines(items)
    if not lines:
        raise ValidationError({"items": ["At least one item is required"]})

    loaded = _load_lines(lines)
    for line, record in loaded:
        record.ensure_available(line.quantity)

    threshold = get_settings().low_stock_threshold
    repo = current_domain.repository_for(StockRecord)
    new_quantities: dict[tuple[str, str], int] = {}
    for line, record in loaded:
        new_quantities[(line.product_id, line.size)] = record.take(line.quantity, order_id, threshold)
        repo.add(record)

    logger.info("Stock decremented for order", order_id=order_id, lines=len(lines))
    return new_quantities


def restore_for_order(items: Iterable, order_id=None) -> dict[tuple[str, str], int]:
    """Put back stock previously taken by ``decrement_for_order``."""
    lines = merge_lines(items)
    loaded = _load_lines(lines)

    repo = current_domain.repository_for(StockRecord)
    new_quantities: dict[tuple[str, str], int] = {}
    for line, record in loaded:
        new_quantities[(line.product_id, line.size)] = record.put_back(line.quantity, order_id)
        repo.add(record)

    logger.info("Stock restored for order", order_id=order_id, lines=len(lines))
    return new_quantities
