"""Payment outcomes applied to orders.

Called by the payments context from inside its own unit of work, so the
payment record, coupon use and status change commit together. Callers
persist the returned order.
"""

from datetime import UTC, datetime

import structlog

from ordering.coupon.redemption import consume
from ordering.order.events import OrderPaymentConfirmed, OrderPaymentFailed
from ordering.order.order import Order, OrderStatus
from ordering.order.transition import apply_transition

logger = structlog.get_logger(__name__)


def record_payment_success(order: Order, transaction_id: str) -> Order:
    """Mark the order paid, take its coupon use and move it to Processing."""
    order.mark_paid(transaction_id)
    order.raise_(
        OrderPaymentConfirmed(
            order_id=str(order.id),
            transaction_id=transaction_id,
            amount=order.total_amount,
            confirmed_at=datetime.now(UTC),
        )
    )

    if order.status == OrderStatus.CANCELLED:
        # A cancelled order gave its stock back; it does not take a coupon use either
        logger.warning(
            "Payment confirmed for a cancelled order",
            order_id=str(order.id),
            transaction_id=transaction_id,
            coupon_code=order.coupon_code,
        )
        return order

    if order.coupon_code and not order.coupon_consumed:
        if consume(order.coupon_code, order.customer_id, str(order.id)):
            order.coupon_consumed = True
        else:
            # The customer has paid; the order stands without a coupon use
            logger.warning(
                "Coupon limit reached before payment confirmation",
                order_id=str(order.id),
                coupon_code=order.coupon_code,
            )

    if order.status == OrderStatus.PENDING:
        apply_transition(order, OrderStatus.PROCESSING)
    else:
        logger.warning(
            "Payment confirmed for order outside Pending",
            order_id=str(order.id),
            order_status=order.order_status,
        )

    logger.info("Order payment confirmed", order_id=str(order.id), transaction_id=transaction_id)
    return order


def record_payment_failure(order: Order, transaction_id: str, reason: str) -> Order:
    """Mark the payment failed; the order stays Pending so the customer can retry."""
    if order.is_paid:
        logger.warning(
            "Ignoring payment failure for a paid order",
            order_id=str(order.id),
            transaction_id=transaction_id,
            reason=reason,
        )
        return order

    order.mark_payment_failed(transaction_id)
    order.raise_(
        OrderPaymentFailed(
            order_id=str(order.id),
            transaction_id=transaction_id,
            reason=reason,
            failed_at=datetime.now(UTC),
        )
    )

    logger.warning("Order payment failed", order_id=str(order.id), transaction_id=transaction_id, reason=reason)
    return order


def record_payment_pending(order: Order, transaction_id: str) -> Order:
    """Note the attempt the gateway is still settling; nothing else changes."""
    if order.is_paid:
        return order
    order.mark_payment_pending(transaction_id)
    logger.info("Order payment pending", order_id=str(order.id), transaction_id=transaction_id)
    return order
