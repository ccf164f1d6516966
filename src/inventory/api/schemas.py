"""Pydantic request/response schemas for the Inventory API.

These are external contracts (anti-corruption layer) — separate from
the stock records the ledger writes.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class RegisterVariantRequest(BaseModel):
    product_id: str
    size: str = Field(min_length=1, max_length=50)
    price: Decimal = Field(ge=0)
    original_price: Decimal | None = Field(default=None, ge=0)
    stock_quantity: int = Field(ge=0, default=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "size": "50ml",
                    "price": "1299.00",
                    "original_price": "1599.00",
                    "stock_quantity": 25,
                }
            ]
        }
    }


class AdjustStockRequest(BaseModel):
    operation: str = Field(pattern="^(Add|Set)$")
    amount: int


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StockRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    size: str
    price: Decimal
    original_price: Decimal
    stock_quantity: int
    in_stock: bool


class ProductStockResponse(BaseModel):
    product_id: str
    total_quantity: int
    in_stock: bool
    variants: list[StockRecordResponse]


class LowStockResponse(BaseModel):
    threshold: int
    items: list[StockRecordResponse]


class StockQuantityResponse(BaseModel):
    product_id: str
    size: str
    stock_quantity: int


class LowStockAlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    size: str
    current_quantity: int
    threshold: int
    is_critical: bool
    detected_at: datetime | None = None
