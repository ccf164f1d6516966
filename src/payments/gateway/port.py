"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and PhonePeGateway
(production) without changing any domain or application code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentSession:
    """A payment the gateway accepted; the customer continues at ``redirect_url``."""

    merchant_transaction_id: str
    redirect_url: str
    gateway_code: str | None = None


@dataclass(frozen=True)
class PaymentStatusResult:
    """Gateway's view of a payment."""

    merchant_transaction_id: str
    code: str
    state: str | None = None
    transaction_id: str | None = None
    amount: int | None = None
    success: bool = False

    @property
    def is_paid(self) -> bool:
        return self.success and self.code == "PAYMENT_SUCCESS"


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def initiate_payment(
        self,
        merchant_transaction_id: str,
        amount_minor: int,
        user_id: str,
        redirect_url: str,
        callback_url: str,
        mobile_number: str | None = None,
    ) -> PaymentSession:
        """Register a payment with the gateway and return where to send the customer."""
        ...

    @abstractmethod
    def fetch_status(self, merchant_transaction_id: str) -> PaymentStatusResult:
        """Ask the gateway for the current state of a payment."""
        ...

    @abstractmethod
    def verify_callback(self, base64_payload: str, signature: str | None) -> None:
        """Raise ``InvalidSignature`` unless the callback came from the gateway."""
        ...
