"""Domain events for the StockRecord aggregate.

Versioned, immutable facts about stock movements. Handlers and projectors
see them once the unit of work that raised them commits.
"""

from protean.fields import DateTime, Identifier, Integer, String

from shared.domain import shopcore


@shopcore.event(part_of="StockRecord")
class VariantRegistered:
    """A product size variant was added to the ledger."""

    __version__ = 1

    stock_record_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(required=True)
    stock_quantity = Integer(required=True)
    registered_at = DateTime(required=True)


@shopcore.event(part_of="StockRecord")
class StockAdjusted:
    """Staff changed a variant's stock by an Add or Set operation."""

    __version__ = 1

    stock_record_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(required=True)
    operation = String(required=True)
    amount = Integer(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    adjusted_at = DateTime(required=True)


@shopcore.event(part_of="StockRecord")
class StockDecremented:
    """Stock was taken for an order."""

    __version__ = 1

    stock_record_id = Identifier(required=True)
    order_id = Identifier()
    product_id = Identifier(required=True)
    size = String(required=True)
    quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    decremented_at = DateTime(required=True)


@shopcore.event(part_of="StockRecord")
class StockRestored:
    """Stock taken for an order was put back (order cancelled)."""

    __version__ = 1

    stock_record_id = Identifier(required=True)
    order_id = Identifier()
    product_id = Identifier(required=True)
    size = String(required=True)
    quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    restored_at = DateTime(required=True)


@shopcore.event(part_of="StockRecord")
class LowStockDetected:
    """A variant dropped to or below the low-stock threshold after a decrement."""

    __version__ = 1

    stock_record_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(required=True)
    current_quantity = Integer(required=True)
    threshold = Integer(required=True)
    detected_at = DateTime(required=True)
