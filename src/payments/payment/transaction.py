"""Payment transactions — one record per payment attempt on the gateway.

The record is created when a payment is initiated and completed by the
gateway's callback. ``processed`` flips to true exactly once; a callback
that finds it set changes nothing. A pending report is stored but leaves
the transaction open for the final outcome.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from payments.payment.events import PaymentCallbackProcessed, PaymentInitiated
from shared.domain import shopcore


class CallbackOutcome(Enum):
    PAID = "paid"
    FAILED = "failed"
    PENDING = "pending"
    AMOUNT_MISMATCH = "amount_mismatch"
    ORDER_NOT_FOUND = "order_not_found"


@shopcore.aggregate
class PaymentTransaction:
    merchant_transaction_id = Identifier(identifier=True)
    order_id = Identifier()
    amount_requested = Integer()

    gateway_transaction_id = String(max_length=100)
    amount = Integer()
    code = String(max_length=50)
    state = String(max_length=50)
    signature = String(max_length=200)
    verified = Boolean(default=False)

    outcome = String(max_length=30)
    processed = Boolean(default=False)
    created_at = DateTime()
    processed_at = DateTime()

    @classmethod
    def initiate(cls, merchant_transaction_id: str, order_id: str, amount_requested: int) -> "PaymentTransaction":
        now = datetime.now(UTC)
        transaction = cls(
            merchant_transaction_id=merchant_transaction_id,
            order_id=order_id,
            amount_requested=amount_requested,
            verified=False,
            processed=False,
            created_at=now,
        )
        transaction.raise_(
            PaymentInitiated(
                merchant_transaction_id=merchant_transaction_id,
                order_id=order_id,
                amount_minor=amount_requested,
                initiated_at=now,
            )
        )
        return transaction

    @classmethod
    def unsolicited(cls, merchant_transaction_id: str) -> "PaymentTransaction":
        """Record for a callback naming a transaction we never started."""
        return cls(
            merchant_transaction_id=merchant_transaction_id,
            verified=False,
            processed=False,
            created_at=datetime.now(UTC),
        )

    def record_callback(self, gateway_transaction_id, amount, code, state, signature) -> None:
        """Store what a verified callback reported."""
        self.gateway_transaction_id = gateway_transaction_id
        self.amount = amount
        self.code = code
        self.state = state
        self.signature = signature
        self.verified = True

    def mark_pending(self) -> None:
        self.outcome = CallbackOutcome.PENDING.value

    def mark_processed(self, outcome: CallbackOutcome) -> None:
        now = datetime.now(UTC)
        self.outcome = outcome.value
        self.processed = True
        self.processed_at = now
        self.raise_(
            PaymentCallbackProcessed(
                merchant_transaction_id=self.merchant_transaction_id,
                order_id=self.order_id,
                gateway_transaction_id=self.gateway_transaction_id,
                code=self.code,
                outcome=outcome.value,
                processed_at=now,
            )
        )
