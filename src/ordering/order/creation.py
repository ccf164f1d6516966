"""Order creation — command and handler.

Pricing, coupon validation, stock decrement and the order insert share one
unit of work. Every check runs before anything is changed, so a failing
step leaves stock, coupons and orders untouched.
"""

import json
from decimal import Decimal

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from inventory.stock.ledger import decrement_for_order, get_record, merge_lines
from ordering.coupon.redemption import consume
from ordering.coupon.validation import CouponValidator
from ordering.order.order import Order, PaymentMethod, PricedLine, ShippingAddress
from shared.config import get_settings
from shared.domain import shopcore
from shared.errors import CouponRejected, RejectionReason

logger = structlog.get_logger(__name__)


@shopcore.command(part_of="Order")
class CreateOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, size, quantity}
    shipping_address = Text(required=True)  # JSON: address dict
    payment_method = String(max_length=20, default=PaymentMethod.COD.value)
    coupon_code = String(max_length=50)


def _load_json(value):
    return json.loads(value) if isinstance(value, str) else value


def _parse_items(items_data) -> list[PricedLine]:
    errors: dict[str, list[str]] = {}
    if not items_data:
        errors["items"] = ["At least one item is required"]

    parsed = []
    for index, item in enumerate(items_data or []):
        size = str(item.get("size") or "").strip()
        try:
            quantity = int(item.get("quantity", 0))
        except (TypeError, ValueError):
            quantity = 0
        if quantity < 1:
            errors[f"items.{index}.quantity"] = ["Quantity must be at least 1"]
        if not size:
            errors[f"items.{index}.size"] = ["Size is required"]
        parsed.append((str(item.get("product_id") or ""), size, quantity))

    if errors:
        raise ValidationError(errors)
    return [
        PricedLine(product_id=product_id, size=size, quantity=quantity, unit_price=get_record(product_id, size).unit_price)
        for product_id, size, quantity in parsed
    ]


@shopcore.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        settings = get_settings()
        lines = _parse_items(_load_json(command.items))
        address = ShippingAddress.from_dict(_load_json(command.shipping_address) or {})
        subtotal = sum((line.unit_price * line.quantity for line in lines), Decimal("0"))

        discount = Decimal("0")
        coupon_code = None
        if command.coupon_code and command.coupon_code.strip():
            quote = CouponValidator().validate(command.coupon_code, subtotal, str(command.customer_id))
            discount = quote.discount_amount
            coupon_code = quote.code

        order = Order.create(
            customer_id=command.customer_id,
            lines=lines,
            shipping_address=address,
            payment_method=command.payment_method or PaymentMethod.COD.value,
            discount_amount=discount,
            shipping_cost=settings.shipping_cost,
            coupon_code=coupon_code,
            currency=settings.currency,
            order_number_prefix=settings.order_number_prefix,
        )

        # Raises InsufficientStock before any record changes
        decrement_for_order(merge_lines(order.items), order_id=str(order.id))
        order.stock_decremented = True

        # Prepaid orders take their coupon use when the payment is verified
        if coupon_code and order.payment_method == PaymentMethod.COD.value:
            if not consume(coupon_code, order.customer_id, str(order.id)):
                raise CouponRejected(coupon_code, RejectionReason.GLOBAL_LIMIT_REACHED)
            order.coupon_consumed = True

        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order created",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=order.customer_id,
            payment_method=order.payment_method,
            total_amount=order.total_amount,
            coupon_code=coupon_code,
        )
        return str(order.id)
