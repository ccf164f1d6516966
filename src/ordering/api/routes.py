"""FastAPI routes for the Ordering domain — orders and coupons."""

import json

from fastapi import APIRouter

from ordering.api.schemas import (
    CouponQuoteResponse,
    CouponResponse,
    CreateCouponRequest,
    CreateOrderRequest,
    OrderListResponse,
    OrderResponse,
    TransitionOrderRequest,
    UpdateCouponRequest,
    ValidateCouponRequest,
)
from ordering.coupon.management import (
    CreateCoupon,
    DeactivateCoupon,
    UpdateCoupon,
    check_coupon,
    list_coupons,
    load_coupon,
)
from ordering.order.creation import CreateOrder
from ordering.order.tracking import get_order, list_orders, track_order
from ordering.order.transition import TransitionOrder
from shared.domain import dispatch


def _float_or_none(value):
    return float(value) if value is not None else None


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def create_order(body: CreateOrderRequest) -> OrderResponse:
    command = CreateOrder(
        customer_id=body.customer_id,
        items=json.dumps([item.model_dump() for item in body.items]),
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        payment_method=body.payment_method,
        coupon_code=body.coupon_code,
    )
    order_id = dispatch(command)
    return OrderResponse.model_validate(get_order(order_id))


@order_router.get("", response_model=OrderListResponse)
async def list_all_orders(
    status: str | None = None,
    customer_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> OrderListResponse:
    orders = list_orders(status=status, customer_id=customer_id, limit=limit, offset=offset)
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders], count=len(orders))


@order_router.get("/track/{identifier}", response_model=OrderResponse)
async def track(identifier: str) -> OrderResponse:
    return OrderResponse.model_validate(track_order(identifier))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_one_order(order_id: str) -> OrderResponse:
    return OrderResponse.model_validate(get_order(order_id))


@order_router.patch("/{order_id}/status", response_model=OrderResponse)
async def transition_order(order_id: str, body: TransitionOrderRequest) -> OrderResponse:
    command = TransitionOrder(
        order_id=order_id,
        target_status=body.order_status,
        tracking_number=body.tracking_number,
        courier_name=body.courier_name,
    )
    dispatch(command)
    return OrderResponse.model_validate(get_order(order_id))


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201, response_model=CouponResponse)
async def create_coupon(body: CreateCouponRequest) -> CouponResponse:
    command = CreateCoupon(
        code=body.code,
        discount_type=body.discount_type,
        value=float(body.value),
        max_discount=float(body.max_discount),
        usage_limit=body.usage_limit,
        expires_at=body.expires_at,
        min_order=float(body.min_order),
        per_user_limit=body.per_user_limit,
        description=body.description,
        status=body.status,
    )
    code = dispatch(command)
    return CouponResponse.model_validate(load_coupon(code))


@coupon_router.get("", response_model=list[CouponResponse])
async def list_all_coupons(status: str | None = None) -> list[CouponResponse]:
    return [CouponResponse.model_validate(c) for c in list_coupons(status=status)]


@coupon_router.post("/validate", response_model=CouponQuoteResponse)
async def validate_coupon(body: ValidateCouponRequest) -> CouponQuoteResponse:
    quote = check_coupon(body.code, body.order_subtotal, body.user_id)
    return CouponQuoteResponse(code=quote.code, discount_amount=quote.discount_amount)


@coupon_router.put("/{code}", response_model=CouponResponse)
async def update_coupon(code: str, body: UpdateCouponRequest) -> CouponResponse:
    command = UpdateCoupon(
        code=code,
        discount_type=body.discount_type,
        value=_float_or_none(body.value),
        max_discount=_float_or_none(body.max_discount),
        min_order=_float_or_none(body.min_order),
        usage_limit=body.usage_limit,
        per_user_limit=body.per_user_limit,
        expires_at=body.expires_at,
        status=body.status,
        description=body.description,
    )
    updated = dispatch(command)
    return CouponResponse.model_validate(load_coupon(updated))


@coupon_router.post("/{code}/deactivate", response_model=CouponResponse)
async def deactivate_coupon(code: str) -> CouponResponse:
    deactivated = dispatch(DeactivateCoupon(code=code))
    return CouponResponse.model_validate(load_coupon(deactivated))
