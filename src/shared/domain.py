"""ShopCore domain — order fulfillment, inventory, coupons and payments.

One Protean domain spans the inventory, ordering and payments contexts so
an order, the stock it takes, the coupon it uses and the payment that
settles it commit in the same unit of work.

Commands that change state go through :func:`dispatch`, which admits one
writer at a time. Stock decrements, coupon redemptions and order
transitions are read-modify-write sequences on shared records; running
them one after another is what keeps them from interleaving.
"""

import threading

import structlog
from protean.domain import Domain
from protean.utils.globals import current_domain

from shared.config import Settings, get_settings

shopcore = Domain(name="shopcore")

logger = structlog.get_logger(__name__)

_writer = threading.RLock()
_initialized = False


def database_config(url: str) -> dict:
    """Protean provider settings for a ``SHOPCORE_DATABASE_URL`` value."""
    if url.startswith("memory"):
        return {"provider": "memory"}
    if url.startswith("sqlite"):
        return {"provider": "sqlite", "database_uri": url}
    if url.startswith("postgresql"):
        return {"provider": "postgresql", "database_uri": url}
    raise ValueError(f"Unsupported database url: {url}")


def init_domain(settings: Settings | None = None) -> Domain:
    """Register every element and initialize the domain once per process."""
    global _initialized
    if _initialized:
        return shopcore

    settings = settings or get_settings()

    # Elements register themselves on the domain when imported
    import inventory.projections.low_stock_report  # noqa: F401
    import inventory.stock.management  # noqa: F401
    import ordering.coupon.management  # noqa: F401
    import ordering.order.creation  # noqa: F401
    import ordering.order.transition  # noqa: F401
    import payments.payment.callback  # noqa: F401
    import payments.payment.initiation  # noqa: F401

    shopcore.config["databases"]["default"] = database_config(settings.database_url)
    shopcore.config["event_processing"] = "sync"
    shopcore.config["command_processing"] = "sync"
    shopcore.init(traverse=False)

    _initialized = True
    logger.info("Domain initialized", provider=shopcore.config["databases"]["default"]["provider"])
    return shopcore


def dispatch(command):
    """Process a command synchronously and return what its handler returns."""
    with _writer:
        return current_domain.process(command, asynchronous=False)


def in_domain_context(fn, *args, **kwargs):
    """Call ``fn`` with the domain context pushed, for work handed to another thread."""
    with shopcore.domain_context():
        return fn(*args, **kwargs)
