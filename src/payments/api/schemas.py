"""Pydantic request/response schemas for the Payments API.

These are external contracts (anti-corruption layer) — separate from
internal commands.
"""

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class InitiatePaymentRequest(BaseModel):
    order_id: str
    mobile_number: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class PaymentSessionResponse(BaseModel):
    merchant_transaction_id: str
    redirect_url: str


class CallbackAckResponse(BaseModel):
    status: str
    outcome: str | None = None
    merchant_transaction_id: str | None = None
    detail: str | None = None


class PaymentStatusResponse(BaseModel):
    merchant_transaction_id: str
    order_id: str | None = None
    processed: bool
    outcome: str | None = None
    gateway_code: str
    gateway_state: str | None = None
    gateway_transaction_id: str | None = None
    amount: int | None = None
