"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal commands and aggregates.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str
    country: str = "India"


class OrderItemSchema(BaseModel):
    product_id: str
    size: str
    quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    customer_id: str
    items: list[OrderItemSchema] = Field(min_length=1)
    shipping_address: AddressSchema
    payment_method: str = Field(default="COD", pattern="^(COD|Prepaid)$")
    coupon_code: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [{"product_id": "prod-001", "size": "50ml", "quantity": 2}],
                    "shipping_address": {
                        "name": "Asha Rao",
                        "phone": "9876543210",
                        "address": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "pincode": "560001",
                        "country": "India",
                    },
                    "payment_method": "COD",
                    "coupon_code": "SAVE20",
                }
            ]
        }
    }


class TransitionOrderRequest(BaseModel):
    order_status: str
    tracking_number: str | None = None
    courier_name: str | None = None


# ---------------------------------------------------------------------------
# Coupon Request Schemas
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str
    discount_type: str = Field(pattern="^(Percentage|Fixed Amount)$")
    value: Decimal = Field(ge=0)
    max_discount: Decimal = Field(ge=0)
    usage_limit: int = Field(ge=1)
    expires_at: datetime
    min_order: Decimal = Field(default=Decimal("0"), ge=0)
    per_user_limit: int = Field(default=1, ge=1)
    description: str | None = None
    status: str = Field(default="Active", pattern="^(Active|Inactive)$")


class UpdateCouponRequest(BaseModel):
    discount_type: str | None = Field(default=None, pattern="^(Percentage|Fixed Amount)$")
    value: Decimal | None = Field(default=None, ge=0)
    max_discount: Decimal | None = Field(default=None, ge=0)
    min_order: Decimal | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    per_user_limit: int | None = Field(default=None, ge=1)
    expires_at: datetime | None = None
    status: str | None = Field(default=None, pattern="^(Active|Inactive)$")
    description: str | None = None


class ValidateCouponRequest(BaseModel):
    code: str
    order_subtotal: Decimal = Field(ge=0)
    user_id: str


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    size: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class TimelineEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str
    recorded_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_number: str
    customer_id: str
    payment_method: str
    order_status: str
    payment_status: str
    subtotal: Decimal
    discount_amount: Decimal
    shipping_cost: Decimal
    total_amount: Decimal
    currency: str
    coupon_code: str | None = None
    courier_name: str | None = None
    tracking_number: str | None = None
    shipping_address: AddressSchema
    items: list[OrderItemResponse]
    timeline: list[TimelineEntryResponse]
    created_at: datetime
    updated_at: datetime
    shipped_at: datetime | None = None
    out_for_delivery_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    count: int


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    discount_type: str
    value: Decimal
    min_order: Decimal
    max_discount: Decimal
    usage_limit: int
    per_user_limit: int
    used_count: int
    expires_at: datetime
    status: str
    description: str | None = None


class CouponQuoteResponse(BaseModel):
    code: str
    discount_amount: Decimal
