"""Order aggregate — the core of the ordering domain.

An order's status only moves along the edges of ``_VALID_TRANSITIONS``.
Every accepted move appends a status change and stamps the matching
timestamp at that moment; rejected moves write nothing.

State Machine:
    Pending → Processing → Shipped → Out for Delivery → Delivered
    Shipped → Delivered
    Pending/Processing/Shipped/Out for Delivery → Cancelled
    Delivered, Cancelled are terminal
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from ordering.order.events import OrderCreated, OrderStatusChanged
from shared.domain import shopcore
from shared.errors import InvalidTransition, MissingTrackingInfo, PaymentRequired
from shared.money import minor_units, money

TRACKING_FIELD_MAX_LENGTH = 100


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class PaymentMethod(Enum):
    COD = "COD"
    PREPAID = "Prepaid"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Timestamp field stamped when an order enters the status
_STATUS_TIMESTAMPS = {
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.OUT_FOR_DELIVERY: "out_for_delivery_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}

_ADDRESS_FIELDS = ("name", "phone", "address", "city", "state", "pincode")


def allowed_transitions(status: OrderStatus) -> set[OrderStatus]:
    return set(_VALID_TRANSITIONS[status])


def order_number_for(order_id, prefix: str = "OZME") -> str:
    """Human-facing order number, derived from the id so it never changes.

    Eight characters are not guaranteed unique across all orders; lookups
    by number return the oldest match.
    """
    return f"{prefix}-{str(order_id).replace('-', '')[-8:].upper()}"


@dataclass(frozen=True)
class PricedLine:
    """An order line with its unit price already resolved."""

    product_id: str
    size: str
    quantity: int
    unit_price: Decimal


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@shopcore.value_object(part_of="Order")
class ShippingAddress:
    """Delivery address captured at checkout; immutable once on an order."""

    name = String(required=True, max_length=255)
    phone = String(required=True, max_length=20)
    address = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    pincode = String(required=True, max_length=20)
    country = String(max_length=100, default="India")

    @classmethod
    def from_dict(cls, data: dict) -> "ShippingAddress":
        errors: dict[str, list[str]] = {}
        values = {}
        for field in _ADDRESS_FIELDS:
            value = str(data.get(field) or "").strip()
            if not value:
                errors[f"shipping_address.{field}"] = [f"{field.capitalize()} is required"]
            values[field] = value
        values["country"] = str(data.get("country") or "India").strip()

        if errors:
            raise ValidationError(errors)
        return cls(**values)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@shopcore.entity(part_of="Order")
class OrderItem:
    """A line item with the price the customer was charged, frozen at checkout."""

    position = Integer(required=True)
    product_id = Identifier(required=True)
    size = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)

    @property
    def line_total(self) -> Decimal:
        return money(money(self.unit_price) * self.quantity)


@shopcore.entity(part_of="Order")
class StatusChange:
    """Append-only record of a status the order entered."""

    sequence = Integer(required=True)
    status = String(required=True, choices=OrderStatus)
    recorded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@shopcore.aggregate
class Order:
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    payment_method = String(required=True, choices=PaymentMethod)

    subtotal = Float(required=True, min_value=0.0)
    discount_amount = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    total_amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="INR")
    coupon_code = String(max_length=50)

    shipping_address = ValueObject(ShippingAddress)
    line_items = HasMany(OrderItem)
    status_history = HasMany(StatusChange)

    order_status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_transaction_id = String(max_length=100)
    courier_name = String(max_length=TRACKING_FIELD_MAX_LENGTH)
    tracking_number = String(max_length=TRACKING_FIELD_MAX_LENGTH)

    stock_decremented = Boolean(default=False)
    coupon_consumed = Boolean(default=False)

    created_at = DateTime()
    updated_at = DateTime()
    shipped_at = DateTime()
    out_for_delivery_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id,
        lines: list[PricedLine],
        shipping_address: ShippingAddress,
        payment_method: str,
        discount_amount=Decimal("0"),
        shipping_cost=Decimal("0"),
        coupon_code=None,
        currency="INR",
        order_number_prefix="OZME",
    ) -> "Order":
        """Build a new Pending order and raise ``OrderCreated``."""
        if not lines:
            raise ValidationError({"items": ["At least one item is required"]})
        if payment_method not in {m.value for m in PaymentMethod}:
            raise ValidationError({"payment_method": ["Payment method must be COD or Prepaid"]})

        subtotal = money(sum((money(line.unit_price) * line.quantity for line in lines), Decimal("0")))
        discount_amount = money(discount_amount)
        shipping_cost = money(shipping_cost)
        if discount_amount > subtotal:
            raise ValidationError({"discount_amount": ["Discount cannot exceed the subtotal"]})
        total = subtotal - discount_amount + shipping_cost

        now = datetime.now(UTC)
        order = cls(
            order_number="pending",
            customer_id=str(customer_id),
            payment_method=payment_method,
            subtotal=float(subtotal),
            discount_amount=float(discount_amount),
            shipping_cost=float(shipping_cost),
            total_amount=float(total),
            currency=currency,
            coupon_code=coupon_code,
            shipping_address=shipping_address,
            order_status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            stock_decremented=False,
            coupon_consumed=False,
            created_at=now,
            updated_at=now,
        )
        order.order_number = order_number_for(order.id, order_number_prefix)

        for position, line in enumerate(lines):
            order.add_line_items(
                OrderItem(
                    position=position,
                    product_id=line.product_id,
                    size=line.size,
                    quantity=line.quantity,
                    unit_price=float(money(line.unit_price)),
                )
            )
        order._record_status(OrderStatus.PENDING, now)

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=order.customer_id,
                payment_method=order.payment_method,
                subtotal=order.subtotal,
                discount_amount=order.discount_amount,
                shipping_cost=order.shipping_cost,
                total_amount=order.total_amount,
                currency=order.currency,
                coupon_code=order.coupon_code,
                item_count=len(lines),
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def status(self) -> OrderStatus:
        return OrderStatus(self.order_status)

    @property
    def items(self) -> list[OrderItem]:
        return sorted(self.line_items, key=lambda item: item.position)

    @property
    def timeline(self) -> list[StatusChange]:
        return sorted(self.status_history, key=lambda change: change.sequence)

    @property
    def is_prepaid(self) -> bool:
        return self.payment_method == PaymentMethod.PREPAID.value

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    @property
    def total_minor_units(self) -> int:
        """Total in the currency's minor unit (paise), as the gateway reports amounts."""
        return minor_units(self.total_amount)

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def assert_can_transition(self, target: OrderStatus, tracking_number=None, courier_name=None) -> None:
        """Raise if the order cannot move to ``target`` with the given details."""
        current = self.status
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(current.value, target.value)

        if current == OrderStatus.PENDING and target == OrderStatus.PROCESSING:
            if self.is_prepaid and not self.is_paid:
                raise PaymentRequired(current.value, target.value)

        if target == OrderStatus.SHIPPED:
            missing = []
            if not (tracking_number or "").strip():
                missing.append("tracking_number")
            if not (courier_name or "").strip():
                missing.append("courier_name")
            if missing:
                raise MissingTrackingInfo(missing)

            errors = {}
            if len(tracking_number.strip()) > TRACKING_FIELD_MAX_LENGTH:
                errors["tracking_number"] = [f"Tracking number cannot exceed {TRACKING_FIELD_MAX_LENGTH} characters"]
            if len(courier_name.strip()) > TRACKING_FIELD_MAX_LENGTH:
                errors["courier_name"] = [f"Courier name cannot exceed {TRACKING_FIELD_MAX_LENGTH} characters"]
            if errors:
                raise ValidationError(errors)

    def transition_to(self, target: OrderStatus, tracking_number=None, courier_name=None) -> OrderStatus:
        """Move to ``target``, record the status change and stamp its timestamp.

        Returns the status the order left.
        """
        self.assert_can_transition(target, tracking_number, courier_name)
        now = datetime.now(UTC)
        previous = self.status

        self.order_status = target.value
        if target == OrderStatus.SHIPPED:
            self.tracking_number = tracking_number.strip()
            self.courier_name = courier_name.strip()
        timestamp_field = _STATUS_TIMESTAMPS.get(target)
        if timestamp_field:
            setattr(self, timestamp_field, now)
        self.updated_at = now
        self._record_status(target, now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                from_status=previous.value,
                to_status=target.value,
                tracking_number=self.tracking_number,
                courier_name=self.courier_name,
                changed_at=now,
            )
        )
        return previous

    def _record_status(self, status: OrderStatus, now: datetime) -> None:
        self.add_status_history(StatusChange(sequence=len(self.status_history), status=status.value, recorded_at=now))

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def mark_paid(self, transaction_id: str) -> None:
        self.payment_status = PaymentStatus.PAID.value
        self.payment_transaction_id = transaction_id
        self.updated_at = datetime.now(UTC)

    def mark_payment_failed(self, transaction_id: str) -> None:
        self.payment_status = PaymentStatus.FAILED.value
        self.payment_transaction_id = transaction_id
        self.updated_at = datetime.now(UTC)

    def mark_payment_pending(self, transaction_id: str) -> None:
        """Remember the attempt the gateway is still settling; the order stays unpaid."""
        self.payment_status = PaymentStatus.PENDING.value
        self.payment_transaction_id = transaction_id
        self.updated_at = datetime.now(UTC)
