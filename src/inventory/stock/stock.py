"""StockRecord aggregate — stock for one product size variant.

``stock_quantity`` never goes below zero: any change that would take it
there is rejected with ``InsufficientStock`` before anything is written,
never clamped. ``original_price`` is the MRP shown struck through next to
``price`` and can never be lower than it. Every change appends a
``StockMovement`` to the record's journal.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from inventory.stock.events import (
    LowStockDetected,
    StockAdjusted,
    StockDecremented,
    StockRestored,
    VariantRegistered,
)
from shared.domain import shopcore
from shared.errors import InsufficientStock
from shared.money import money

DEFAULT_LOW_STOCK_THRESHOLD = 10


class AdjustmentOperation(Enum):
    ADD = "Add"
    SET = "Set"


class MovementReason(Enum):
    REGISTERED = "Registered"
    ADJUSTED = "Adjusted"
    ORDER_PLACED = "Order_Placed"
    ORDER_CANCELLED = "Order_Cancelled"


@dataclass(frozen=True)
class StockLine:
    """A quantity of one product size, as carried by an order line."""

    product_id: str
    size: str
    quantity: int


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@shopcore.entity(part_of="StockRecord")
class StockMovement:
    """Append-only journal entry for one stock change."""

    delta = Integer(required=True)
    resulting_quantity = Integer(required=True, min_value=0)
    reason = String(required=True, choices=MovementReason)
    order_id = Identifier()
    recorded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@shopcore.aggregate
class StockRecord:
    product_id: Identifier(required=True)
    size: String(required=True, max_length=50)
    price: Float(required=True, min_value=0.0)
    original_price: Float(required=True, min_value=0.0)
    stock_quantity: Integer(default=0, min_value=0)
    movements: HasMany(StockMovement)
    created_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, product_id, size, price, original_price=None, stock_quantity=0):
        """Start tracking stock for a new size variant."""
        errors: dict[str, list[str]] = {}

        size = (size or "").strip()
        if not size:
            errors["size"] = ["Size is required"]

        price = money(price)
        original_price = money(original_price) if original_price is not None else price
        if price < 0:
            errors["price"] = ["Price cannot be negative"]
        if original_price < price:
            errors["original_price"] = ["Original price cannot be lower than price"]
        if stock_quantity < 0:
            errors["stock_quantity"] = ["Stock quantity cannot be negative"]

        if errors:
            raise ValidationError(errors)

        now = datetime.now(UTC)
        record = cls(
            product_id=str(product_id),
            size=size,
            price=float(price),
            original_price=float(original_price),
            stock_quantity=stock_quantity,
            created_at=now,
            updated_at=now,
        )
        record._journal(stock_quantity, MovementReason.REGISTERED, now)
        record.raise_(
            VariantRegistered(
                stock_record_id=str(record.id),
                product_id=record.product_id,
                size=record.size,
                stock_quantity=record.stock_quantity,
                registered_at=now,
            )
        )
        return record

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0

    @property
    def unit_price(self):
        return money(self.price)

    @property
    def journal(self) -> list[StockMovement]:
        return sorted(self.movements, key=lambda m: m.recorded_at)

    # -------------------------------------------------------------------
    # Stock changes
    # -------------------------------------------------------------------
    def adjust(self, operation, amount, low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD) -> int:
        """Apply an Add (relative) or Set (absolute) change and return the new quantity."""
        operation = AdjustmentOperation(operation)
        previous = self.stock_quantity

        if operation == AdjustmentOperation.SET:
            if amount < 0:
                raise ValidationError({"amount": ["Stock quantity cannot be set to a negative value"]})
            new_quantity = amount
        else:
            new_quantity = previous + amount
            if new_quantity < 0:
                raise InsufficientStock(str(self.product_id), self.size, requested=-amount, available=previous)

        now = datetime.now(UTC)
        self._set_quantity(new_quantity, MovementReason.ADJUSTED, now)
        self.raise_(
            StockAdjusted(
                stock_record_id=str(self.id),
                product_id=str(self.product_id),
                size=self.size,
                operation=operation.value,
                amount=amount,
                previous_quantity=previous,
                new_quantity=new_quantity,
                adjusted_at=now,
            )
        )
        if new_quantity < previous:
            self._check_low_stock(low_stock_threshold, now)
        return new_quantity

    def ensure_available(self, quantity: int) -> None:
        if quantity > self.stock_quantity:
            raise InsufficientStock(
                str(self.product_id), self.size, requested=quantity, available=self.stock_quantity
            )

    def take(self, quantity: int, order_id=None, low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD) -> int:
        """Take stock for an order line."""
        self.ensure_available(quantity)

        now = datetime.now(UTC)
        self._set_quantity(self.stock_quantity - quantity, MovementReason.ORDER_PLACED, now, order_id)
        self.raise_(
            StockDecremented(
                stock_record_id=str(self.id),
                order_id=order_id,
                product_id=str(self.product_id),
                size=self.size,
                quantity=quantity,
                new_quantity=self.stock_quantity,
                decremented_at=now,
            )
        )
        self._check_low_stock(low_stock_threshold, now)
        return self.stock_quantity

    def put_back(self, quantity: int, order_id=None) -> int:
        """Return stock previously taken for an order line."""
        now = datetime.now(UTC)
        self._set_quantity(self.stock_quantity + quantity, MovementReason.ORDER_CANCELLED, now, order_id)
        self.raise_(
            StockRestored(
                stock_record_id=str(self.id),
                order_id=order_id,
                product_id=str(self.product_id),
                size=self.size,
                quantity=quantity,
                new_quantity=self.stock_quantity,
                restored_at=now,
            )
        )
        return self.stock_quantity

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _set_quantity(self, new_quantity, reason, now, order_id=None):
        delta = new_quantity - self.stock_quantity
        self.stock_quantity = new_quantity
        self.updated_at = now
        self._journal(delta, reason, now, order_id)

    def _journal(self, delta, reason, now, order_id=None):
        self.add_movements(
            StockMovement(
                delta=delta,
                resulting_quantity=self.stock_quantity,
                reason=reason.value,
                order_id=order_id,
                recorded_at=now,
            )
        )

    def _check_low_stock(self, threshold, now):
        """Raise LowStockDetected if the quantity is at or below the threshold."""
        if self.stock_quantity > threshold:
            return
        self.raise_(
            LowStockDetected(
                stock_record_id=str(self.id),
                product_id=str(self.product_id),
                size=self.size,
                current_quantity=self.stock_quantity,
                threshold=threshold,
                detected_at=now,
            )
        )
