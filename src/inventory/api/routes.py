"""FastAPI routes for the Inventory domain — per-size stock."""

from fastapi import APIRouter
from protean.utils.globals import current_domain

from inventory.api.schemas import (
    AdjustStockRequest,
    LowStockAlertResponse,
    LowStockResponse,
    ProductStockResponse,
    RegisterVariantRequest,
    StockQuantityResponse,
    StockRecordResponse,
)
from inventory.projections.low_stock_report import LowStockReport
from inventory.stock.ledger import low_stock as low_stock_records
from inventory.stock.ledger import product_stock as load_product_stock
from inventory.stock.management import AdjustStock, RegisterVariant
from inventory.stock.stock import StockRecord
from shared.config import get_settings
from shared.domain import dispatch

inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


@inventory_router.post("", status_code=201, response_model=StockRecordResponse)
async def register_variant(body: RegisterVariantRequest) -> StockRecordResponse:
    command = RegisterVariant(
        product_id=body.product_id,
        size=body.size,
        price=float(body.price),
        original_price=float(body.original_price) if body.original_price is not None else None,
        stock_quantity=body.stock_quantity,
    )
    record_id = dispatch(command)
    return StockRecordResponse.model_validate(current_domain.repository_for(StockRecord).get(record_id))


@inventory_router.get("/low-stock", response_model=LowStockResponse)
async def low_stock(threshold: int | None = None) -> LowStockResponse:
    limit = get_settings().low_stock_threshold if threshold is None else threshold
    return LowStockResponse(
        threshold=limit,
        items=[StockRecordResponse.model_validate(r) for r in low_stock_records(threshold=limit)],
    )


@inventory_router.get("/low-stock/alerts", response_model=list[LowStockAlertResponse])
async def low_stock_alerts() -> list[LowStockAlertResponse]:
    """Variants flagged by stock movements, critical ones first."""
    alerts = current_domain.repository_for(LowStockReport)._dao.query.all().items
    alerts = sorted(alerts, key=lambda a: (a.current_quantity, str(a.product_id), a.size))
    return [LowStockAlertResponse.model_validate(a) for a in alerts]


@inventory_router.get("/{product_id}", response_model=ProductStockResponse)
async def product_stock(product_id: str) -> ProductStockResponse:
    stock = load_product_stock(product_id)
    return ProductStockResponse(
        product_id=stock.product_id,
        total_quantity=stock.total_quantity,
        in_stock=stock.in_stock,
        variants=[StockRecordResponse.model_validate(v) for v in stock.variants],
    )


@inventory_router.post("/{product_id}/{size}/adjust", response_model=StockQuantityResponse)
async def adjust_stock(product_id: str, size: str, body: AdjustStockRequest) -> StockQuantityResponse:
    new_quantity = dispatch(AdjustStock(product_id=product_id, size=size, operation=body.operation, amount=body.amount))
    return StockQuantityResponse(product_id=product_id, size=size, stock_quantity=new_quantity)
