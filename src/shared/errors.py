"""Exception taxonomy shared by every bounded context.

Domain rule violations are raised as typed exceptions so callers (checkout,
admin UI, webhook handler) can render a specific message. None of them are
retried automatically; they need new input or a different action.

Bad input shape is reported with Protean's ``ValidationError`` and missing
records with its ``ObjectNotFoundError``, the same exceptions the
framework raises for field and repository failures.
"""

from enum import Enum


class DomainError(Exception):
    """Base exception for all core rule violations."""

    pass


class RejectionReason(Enum):
    NOT_FOUND = "NotFound"
    EXPIRED = "Expired"
    INACTIVE = "Inactive"
    BELOW_MINIMUM = "BelowMinimum"
    GLOBAL_LIMIT_REACHED = "GlobalLimitReached"
    USER_LIMIT_REACHED = "UserLimitReached"


class CouponRejected(DomainError):
    """Raised when a coupon cannot be applied to an order."""

    def __init__(self, code: str, reason: RejectionReason):
        self.code = code
        self.reason = reason
        super().__init__(f"Coupon {code} rejected: {reason.value}")


class InsufficientStock(DomainError):
    """Raised when a stock change would take a variant below zero."""

    def __init__(self, product_id: str, size: str, requested: int | None = None, available: int | None = None):
        self.product_id = product_id
        self.size = size
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for {product_id} ({size})")


class InvalidTransition(DomainError):
    """Raised when an order cannot move from its current status to the target."""

    def __init__(self, from_status: str, to_status: str, detail: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.detail = detail
        msg = f"Cannot transition from {from_status} to {to_status}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class PaymentRequired(InvalidTransition):
    """Raised when a prepaid order is moved forward before payment is captured."""

    def __init__(self, from_status: str, to_status: str):
        super().__init__(from_status, to_status, detail="payment has not been captured")


class MissingTrackingInfo(DomainError):
    """Raised when an order is shipped without a tracking number and courier."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing tracking information: {', '.join(missing)}")


class InvalidSignature(DomainError):
    """Raised when a payment callback signature does not match its body."""

    pass


class GatewayError(DomainError):
    """Raised when the payment gateway answers with a non-2xx response."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"Payment gateway returned HTTP {status}")
