"""FastAPI routes for the Payments domain — initiation, status and gateway callbacks.

Gateway calls block, so these endpoints run their work in the threadpool
with the domain context pushed there.
"""

from dataclasses import asdict

from fastapi import APIRouter, Header, Request
from fastapi.concurrency import run_in_threadpool

from payments.api.schemas import (
    CallbackAckResponse,
    InitiatePaymentRequest,
    PaymentSessionResponse,
    PaymentStatusResponse,
)
from payments.payment.callback import handle_payment_callback
from payments.payment.initiation import initiate_payment, payment_status
from shared.domain import in_domain_context

payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/initiate", status_code=201, response_model=PaymentSessionResponse)
async def initiate(body: InitiatePaymentRequest) -> PaymentSessionResponse:
    """Start a gateway payment for a Prepaid order."""
    session = await run_in_threadpool(in_domain_context, initiate_payment, body.order_id, body.mobile_number)
    return PaymentSessionResponse(
        merchant_transaction_id=session.merchant_transaction_id,
        redirect_url=session.redirect_url,
    )


@payment_router.post("/callback", response_model=CallbackAckResponse)
async def payment_callback(request: Request, x_verify: str | None = Header(default=None)) -> CallbackAckResponse:
    """Gateway server-to-server callback. Always answered with 200."""
    raw_body = await request.body()
    ack = await run_in_threadpool(in_domain_context, handle_payment_callback, raw_body, x_verify)
    return CallbackAckResponse(**asdict(ack))


@payment_router.get("/{merchant_transaction_id}/status", response_model=PaymentStatusResponse)
async def status(merchant_transaction_id: str) -> PaymentStatusResponse:
    view = await run_in_threadpool(in_domain_context, payment_status, merchant_transaction_id)
    return PaymentStatusResponse(
        merchant_transaction_id=view.transaction.merchant_transaction_id,
        order_id=view.transaction.order_id,
        processed=view.transaction.processed,
        outcome=view.transaction.outcome,
        gateway_code=view.gateway.code,
        gateway_state=view.gateway.state,
        gateway_transaction_id=view.gateway.transaction_id,
        amount=view.gateway.amount,
    )
