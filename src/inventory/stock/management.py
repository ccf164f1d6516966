"""Stock management — staff commands and handler."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from inventory.stock.ledger import find_record, get_record
from inventory.stock.stock import AdjustmentOperation, StockRecord
from shared.config import get_settings
from shared.domain import shopcore

logger = structlog.get_logger(__name__)


@shopcore.command(part_of="StockRecord")
class RegisterVariant:
    """Start tracking stock for a product size."""

    product_id = Identifier(required=True)
    size = String(required=True, max_length=50)
    price = Float(required=True)
    original_price = Float()
    stock_quantity = Integer(default=0)


@shopcore.command(part_of="StockRecord")
class AdjustStock:
    """Add to (relative) or set (absolute) a variant's stock."""

    product_id = Identifier(required=True)
    size = String(required=True, max_length=50)
    operation = String(required=True, choices=AdjustmentOperation)
    amount = Integer(required=True)


@shopcore.command_handler(part_of=StockRecord)
class StockManagementHandler:
    @handle(RegisterVariant)
    def register_variant(self, command):
        record = StockRecord.register(
            product_id=command.product_id,
            size=command.size,
            price=command.price,
            original_price=command.original_price,
            stock_quantity=command.stock_quantity or 0,
        )
        if find_record(record.product_id, record.size) is not None:
            raise ValidationError({"size": [f"Size {record.size} is already registered for {record.product_id}"]})

        current_domain.repository_for(StockRecord).add(record)
        logger.info(
            "Stock variant registered",
            product_id=record.product_id,
            size=record.size,
            stock_quantity=record.stock_quantity,
        )
        return str(record.id)

    @handle(AdjustStock)
    def adjust_stock(self, command):
        record = get_record(command.product_id, command.size)
        new_quantity = record.adjust(command.operation, command.amount, get_settings().low_stock_threshold)
        current_domain.repository_for(StockRecord).add(record)

        logger.info(
            "Stock adjusted",
            product_id=str(command.product_id),
            size=command.size,
            operation=command.operation,
            amount=command.amount,
            new_quantity=new_quantity,
        )
        return new_quantity
