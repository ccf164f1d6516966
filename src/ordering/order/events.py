"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from shared.domain import shopcore


@shopcore.event(part_of="Order")
class OrderCreated:
    """A customer placed an order; stock for it has been taken."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    payment_method = String(required=True)
    subtotal = Float(required=True)
    discount_amount = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    total_amount = Float(required=True)
    currency = String(max_length=3)
    coupon_code = String()
    item_count = Integer(required=True)
    created_at = DateTime(required=True)


@shopcore.event(part_of="Order")
class OrderStatusChanged:
    """An order moved from one lifecycle status to another."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    tracking_number = String()
    courier_name = String()
    changed_at = DateTime(required=True)


@shopcore.event(part_of="Order")
class OrderPaymentConfirmed:
    """The gateway reported a verified payment covering the order total."""

    __version__ = 1

    order_id = Identifier(required=True)
    transaction_id = String(required=True)
    amount = Float(required=True)
    confirmed_at = DateTime(required=True)


@shopcore.event(part_of="Order")
class OrderPaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    transaction_id = String(required=True)
    reason = String()
    failed_at = DateTime(required=True)
