"""FastAPI integration: translate core exceptions into HTTP responses.

Protean's own handlers answer ``ValidationError`` (400) and
``ObjectNotFoundError`` (404); the rules of this core map to the codes
below.
"""

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers as register_protean_handlers

from shared.errors import (
    CouponRejected,
    DomainError,
    GatewayError,
    InsufficientStock,
    InvalidSignature,
    InvalidTransition,
    MissingTrackingInfo,
)

logger = structlog.get_logger(__name__)

# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    InvalidSignature: 401,
    InsufficientStock: 409,
    InvalidTransition: 409,
    CouponRejected: 422,
    MissingTrackingInfo: 422,
    GatewayError: 502,
}


def _status_for(exc: DomainError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


def error_body(exc: DomainError) -> dict:
    body: dict = {"error": type(exc).__name__, "detail": str(exc)}

    if isinstance(exc, CouponRejected):
        body.update(code=exc.code, reason=exc.reason.value)
    elif isinstance(exc, InsufficientStock):
        body.update(product_id=exc.product_id, size=exc.size, requested=exc.requested, available=exc.available)
    elif isinstance(exc, InvalidTransition):
        body.update(from_status=exc.from_status, to_status=exc.to_status)
    elif isinstance(exc, MissingTrackingInfo):
        body["missing"] = exc.missing
    elif isinstance(exc, GatewayError):
        body["gateway_status"] = exc.status
    return body


def register_exception_handlers(app: FastAPI) -> None:
    register_protean_handlers(app)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.warning("Request failed", path=request.url.path, error=type(exc).__name__, detail=str(exc))
        return JSONResponse(status_code=status_code, content=error_body(exc))

    @app.exception_handler(httpx.TransportError)
    async def gateway_unavailable_handler(request: Request, exc: httpx.TransportError) -> JSONResponse:
        logger.warning("Payment gateway unreachable", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=504,
            content={"error": "GatewayUnavailable", "detail": "Payment gateway did not respond"},
        )
