"""Payment callback processing.

The gateway posts ``{"response": "<base64 JSON>"}`` with an ``X-VERIFY``
header. A callback is applied at most once per merchant transaction:
replays get ``already_processed`` back and touch nothing. A pending report
is recorded and acknowledged but leaves the transaction open, so the final
success or failure that follows is still applied. Every callback gets an
:class:`Ack`; the gateway is never told to retry because of our own rules.
"""

import json
from dataclasses import dataclass

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain
from sqlalchemy.exc import SQLAlchemyError

from ordering.order.order import Order
from ordering.order.payment import record_payment_failure, record_payment_pending, record_payment_success
from payments.gateway import get_gateway
from payments.gateway.signing import decode_payload
from payments.payment.transaction import CallbackOutcome, PaymentTransaction
from shared.domain import dispatch, shopcore
from shared.errors import InvalidSignature

logger = structlog.get_logger(__name__)

PAYMENT_SUCCESS = "PAYMENT_SUCCESS"
PAYMENT_PENDING = "PAYMENT_PENDING"
PENDING_STATE = "PENDING"


@dataclass(frozen=True)
class Ack:
    status: str  # processed | pending | already_processed | rejected | error
    outcome: str | None = None
    merchant_transaction_id: str | None = None
    detail: str | None = None


@dataclass(frozen=True)
class CallbackPayload:
    success: bool
    code: str
    merchant_transaction_id: str
    gateway_transaction_id: str | None
    amount: int | None
    state: str | None

    @classmethod
    def parse(cls, document: dict) -> "CallbackPayload":
        data = document.get("data")
        if not isinstance(data, dict) or not data.get("merchantTransactionId"):
            raise ValueError("Callback payload has no merchantTransactionId")
        amount = data.get("amount")
        if amount is not None and not isinstance(amount, int):
            raise ValueError("Callback amount must be an integer in minor units")
        return cls(
            success=bool(document.get("success")),
            code=str(document.get("code") or ""),
            merchant_transaction_id=str(data["merchantTransactionId"]),
            gateway_transaction_id=data.get("transactionId"),
            amount=amount,
            state=data.get("state"),
        )


def _extract_response(raw_body: bytes | str) -> str:
    body = json.loads(raw_body)
    encoded = body.get("response") if isinstance(body, dict) else None
    if not isinstance(encoded, str) or not encoded:
        raise ValueError("Callback body has no response field")
    return encoded


@shopcore.command(part_of="PaymentTransaction")
class ProcessPaymentCallback:
    """A verified gateway callback, decoded."""

    merchant_transaction_id = Identifier(required=True)
    success = Boolean(default=False)
    code = String(max_length=50)
    gateway_transaction_id = String(max_length=100)
    amount = Integer()
    state = String(max_length=50)
    signature = String(max_length=200)


def reports_success(command) -> bool:
    return bool(command.success) and command.code == PAYMENT_SUCCESS


def reports_pending(command) -> bool:
    return not reports_success(command) and (command.code == PAYMENT_PENDING or command.state == PENDING_STATE)


@shopcore.command_handler(part_of=PaymentTransaction)
class PaymentCallbackHandler:
    @handle(ProcessPaymentCallback)
    def process_callback(self, command):
        merchant_transaction_id = str(command.merchant_transaction_id)
        repo = current_domain.repository_for(PaymentTransaction)

        try:
            transaction = repo.get(merchant_transaction_id)
        except ObjectNotFoundError:
            transaction = PaymentTransaction.unsolicited(merchant_transaction_id)

        if transaction.processed:
            logger.info(
                "Payment callback already processed",
                merchant_transaction_id=merchant_transaction_id,
                outcome=transaction.outcome,
            )
            return Ack(
                status="already_processed",
                outcome=transaction.outcome,
                merchant_transaction_id=merchant_transaction_id,
            )

        transaction.record_callback(
            gateway_transaction_id=command.gateway_transaction_id,
            amount=command.amount,
            code=command.code,
            state=command.state,
            signature=command.signature,
        )
        outcome = self._apply_to_order(transaction, command)
        if outcome == CallbackOutcome.PENDING:
            transaction.mark_pending()
            status = "pending"
        else:
            transaction.mark_processed(outcome)
            status = "processed"
        repo.add(transaction)

        logger.info(
            "Payment callback processed",
            merchant_transaction_id=merchant_transaction_id,
            order_id=transaction.order_id,
            outcome=outcome.value,
        )
        return Ack(status=status, outcome=outcome.value, merchant_transaction_id=merchant_transaction_id)

    def _apply_to_order(self, transaction: PaymentTransaction, command) -> CallbackOutcome:
        if transaction.order_id is None:
            logger.warning(
                "Payment callback for unknown transaction",
                merchant_transaction_id=transaction.merchant_transaction_id,
            )
            return CallbackOutcome.ORDER_NOT_FOUND

        order_repo = current_domain.repository_for(Order)
        try:
            order = order_repo.get(str(transaction.order_id))
        except ObjectNotFoundError:
            logger.warning("Payment callback for missing order", order_id=transaction.order_id)
            return CallbackOutcome.ORDER_NOT_FOUND

        gateway_transaction_id = command.gateway_transaction_id or transaction.merchant_transaction_id

        if reports_pending(command):
            record_payment_pending(order, gateway_transaction_id)
            order_repo.add(order)
            return CallbackOutcome.PENDING

        if not reports_success(command):
            record_payment_failure(order, gateway_transaction_id, command.code or "UNKNOWN")
            order_repo.add(order)
            return CallbackOutcome.FAILED

        if command.amount != order.total_minor_units:
            logger.warning(
                "Payment amount does not match order total",
                order_id=str(order.id),
                reported=command.amount,
                expected=order.total_minor_units,
            )
            record_payment_failure(order, gateway_transaction_id, "amount_mismatch")
            order_repo.add(order)
            return CallbackOutcome.AMOUNT_MISMATCH

        record_payment_success(order, gateway_transaction_id)
        order_repo.add(order)
        return CallbackOutcome.PAID


def handle_payment_callback(raw_body: bytes | str, signature: str | None) -> Ack:
    """Verify, decode and apply one gateway callback."""
    try:
        encoded = _extract_response(raw_body)
    except ValueError:
        logger.warning("Rejected payment callback with malformed body")
        return Ack(status="rejected", detail="malformed body")

    try:
        get_gateway().verify_callback(encoded, signature)
    except InvalidSignature as exc:
        logger.warning("Rejected payment callback with invalid signature", reason=str(exc))
        return Ack(status="rejected", detail="invalid signature")

    try:
        payload = CallbackPayload.parse(decode_payload(encoded))
    except ValueError as exc:
        logger.warning("Rejected payment callback with malformed payload", reason=str(exc))
        return Ack(status="rejected", detail="malformed payload")

    command = ProcessPaymentCallback(
        merchant_transaction_id=payload.merchant_transaction_id,
        success=payload.success,
        code=payload.code,
        gateway_transaction_id=payload.gateway_transaction_id,
        amount=payload.amount,
        state=payload.state,
        signature=signature,
    )
    try:
        return dispatch(command)
    except SQLAlchemyError:
        logger.exception(
            "Payment callback could not be stored",
            merchant_transaction_id=payload.merchant_transaction_id,
        )
        return Ack(status="error", merchant_transaction_id=payload.merchant_transaction_id, detail="storage error")
