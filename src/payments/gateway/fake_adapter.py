"""Configurable fake payment gateway for development and testing.

This adapter simulates the gateway without any external calls. It signs
and verifies with a real salt key, so tests can build callbacks that pass
or fail verification exactly as production ones would.
"""

from payments.gateway.port import PaymentGateway, PaymentSession, PaymentStatusResult
from payments.gateway.signing import verify_signature

FAKE_SALT_INDEX = "1"
FAKE_SALT_KEY = "fake-salt-key"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, salt_keys: dict[str, str] | None = None) -> None:
        self.salt_keys = salt_keys or {FAKE_SALT_INDEX: FAKE_SALT_KEY}
        self.should_succeed: bool = True
        self.failure_code: str = "PAYMENT_ERROR"
        self.calls: list[dict] = []
        self._amounts: dict[str, int] = {}

    def configure(self, should_succeed: bool, failure_code: str = "PAYMENT_ERROR") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_code = failure_code

    def initiate_payment(
        self,
        merchant_transaction_id: str,
        amount_minor: int,
        user_id: str,
        redirect_url: str,
        callback_url: str,
        mobile_number: str | None = None,
    ) -> PaymentSession:
        self.calls.append(
            {
                "method": "initiate_payment",
                "merchant_transaction_id": merchant_transaction_id,
                "amount_minor": amount_minor,
                "user_id": user_id,
                "redirect_url": redirect_url,
                "callback_url": callback_url,
                "mobile_number": mobile_number,
            }
        )
        self._amounts[merchant_transaction_id] = amount_minor
        return PaymentSession(
            merchant_transaction_id=merchant_transaction_id,
            redirect_url=f"https://fake-gateway.local/pay/{merchant_transaction_id}",
            gateway_code="PAYMENT_INITIATED",
        )

    def fetch_status(self, merchant_transaction_id: str) -> PaymentStatusResult:
        self.calls.append({"method": "fetch_status", "merchant_transaction_id": merchant_transaction_id})
        if self.should_succeed:
            return PaymentStatusResult(
                merchant_transaction_id=merchant_transaction_id,
                code="PAYMENT_SUCCESS",
                state="COMPLETED",
                transaction_id=f"fake_txn_{merchant_transaction_id}",
                amount=self._amounts.get(merchant_transaction_id),
                success=True,
            )
        return PaymentStatusResult(
            merchant_transaction_id=merchant_transaction_id,
            code=self.failure_code,
            state="FAILED",
        )

    def verify_callback(self, base64_payload: str, signature: str | None) -> None:
        verify_signature(base64_payload, signature, "", self.salt_keys)
