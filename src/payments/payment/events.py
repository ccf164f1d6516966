"""Domain events for payment transactions."""

from protean.fields import DateTime, Identifier, Integer, String

from shared.domain import shopcore


@shopcore.event(part_of="PaymentTransaction")
class PaymentInitiated:
    __version__ = 1

    merchant_transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount_minor = Integer(required=True)
    initiated_at = DateTime(required=True)


@shopcore.event(part_of="PaymentTransaction")
class PaymentCallbackProcessed:
    """A verified gateway callback was applied to its order."""

    __version__ = 1

    merchant_transaction_id = Identifier(required=True)
    order_id = Identifier()
    gateway_transaction_id = String()
    code = String()
    outcome = String(required=True)
    processed_at = DateTime(required=True)
