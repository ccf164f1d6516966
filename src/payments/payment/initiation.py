"""Payment initiation — command and handler.

Records a payment transaction for a Prepaid order and registers it with
the gateway. The gateway call happens after the record is committed so no
unit of work is held open across the network.
"""

from dataclasses import dataclass
from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.order.order import Order, OrderStatus
from ordering.order.transition import load_order
from payments.gateway import get_gateway
from payments.gateway.port import PaymentSession, PaymentStatusResult
from payments.gateway.retry import retry_with_backoff
from payments.payment.transaction import PaymentTransaction
from shared.config import get_settings
from shared.domain import dispatch, shopcore

logger = structlog.get_logger(__name__)


@shopcore.command(part_of="PaymentTransaction")
class InitiatePayment:
    """Start a gateway payment for a Prepaid order."""

    order_id = Identifier(required=True)
    mobile_number = String(max_length=20)


@dataclass(frozen=True)
class PaymentStatusView:
    transaction: PaymentTransaction
    gateway: PaymentStatusResult


def new_merchant_transaction_id(order: Order) -> str:
    return f"{order.order_number}-{uuid4().hex[:10].upper()}"


def load_transaction(merchant_transaction_id: str) -> PaymentTransaction:
    try:
        return current_domain.repository_for(PaymentTransaction).get(merchant_transaction_id)
    except ObjectNotFoundError:
        raise ObjectNotFoundError(f"PaymentTransaction {merchant_transaction_id} does not exist") from None


@shopcore.command_handler(part_of=PaymentTransaction)
class PaymentInitiationHandler:
    @handle(InitiatePayment)
    def initiate(self, command):
        order = load_order(command.order_id)
        if not order.is_prepaid:
            raise ValidationError({"payment_method": ["Only Prepaid orders are paid through the gateway"]})
        if order.is_paid:
            raise ValidationError({"payment_status": ["Order is already paid"]})
        if order.status != OrderStatus.PENDING:
            raise ValidationError({"order_status": [f"Cannot take payment for a {order.order_status} order"]})

        transaction = PaymentTransaction.initiate(
            merchant_transaction_id=new_merchant_transaction_id(order),
            order_id=str(order.id),
            amount_requested=order.total_minor_units,
        )
        current_domain.repository_for(PaymentTransaction).add(transaction)
        return transaction.merchant_transaction_id


def initiate_payment(order_id: str, mobile_number: str | None = None) -> PaymentSession:
    """Record the attempt, then register it with the gateway."""
    merchant_transaction_id = dispatch(InitiatePayment(order_id=order_id, mobile_number=mobile_number))
    transaction = load_transaction(merchant_transaction_id)
    order = load_order(transaction.order_id)
    settings = get_settings()
    gateway = get_gateway()

    payment_session = retry_with_backoff(
        lambda: gateway.initiate_payment(
            merchant_transaction_id=merchant_transaction_id,
            amount_minor=transaction.amount_requested,
            user_id=str(order.customer_id),
            redirect_url=settings.gateway_redirect_url,
            callback_url=settings.gateway_callback_url,
            mobile_number=mobile_number or order.shipping_address.phone,
        )
    )

    logger.info(
        "Payment initiated for order",
        order_id=str(order.id),
        merchant_transaction_id=merchant_transaction_id,
        amount_minor=transaction.amount_requested,
    )
    return payment_session


def payment_status(merchant_transaction_id: str) -> PaymentStatusView:
    """Local record of a payment alongside what the gateway reports now."""
    transaction = load_transaction(merchant_transaction_id)
    gateway = get_gateway()
    result = retry_with_backoff(lambda: gateway.fetch_status(merchant_transaction_id))
    return PaymentStatusView(transaction=transaction, gateway=result)
