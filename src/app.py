"""ShopCore FastAPI application.

Order fulfillment, inventory, coupons and payment reconciliation behind
one HTTP surface. Commands are processed synchronously per request.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# SHOPCORE_DATABASE_URL picks the provider (sqlite, postgresql or memory).
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.config import get_settings
from shared.domain import init_domain, shopcore
from shared.logging import add_context, clear_context, configure_logging

configure_logging()
init_domain()

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="ShopCore API",
    description="Order fulfillment & payment reconciliation",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the domain context and bind the request path to every log line."""
    clear_context()
    add_context(method=request.method, path=request.url.path)
    try:
        with shopcore.domain_context():
            return await call_next(request)
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from inventory.api import inventory_router  # noqa: E402
from ordering.api.routes import coupon_router, order_router  # noqa: E402
from payments.api.routes import payment_router  # noqa: E402
from shared.api import register_exception_handlers  # noqa: E402

app.include_router(order_router)
app.include_router(coupon_router)
app.include_router(inventory_router)
app.include_router(payment_router)
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "env": get_settings().env,
            "domain": shopcore.name,
            "contexts": ["inventory", "ordering", "payments"],
        }
    )
