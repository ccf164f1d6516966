"""Coupon consumption.

Runs inside the unit of work of the order being confirmed. The global
limit and the customer's own limit are checked in the same step that
records the use, and commands are processed one writer at a time, so two
confirmations can never both take the last use.
"""

import structlog
from protean.utils.globals import current_domain

from ordering.coupon.coupon import Coupon, normalize_code
from ordering.coupon.validation import find_coupon

logger = structlog.get_logger(__name__)


def consume(code: str, user_id: str, order_id: str) -> bool:
    """Take one use of ``code`` for ``order_id``; False when none is left for this customer."""
    normalized = normalize_code(code)
    coupon = find_coupon(normalized)
    if coupon is None:
        logger.warning("Coupon consumption refused", code=normalized, order_id=order_id, reason="not_found")
        return False

    if coupon.used_count >= coupon.usage_limit:
        logger.warning("Coupon consumption refused", code=normalized, order_id=order_id, reason="global_limit")
        return False
    if coupon.redemptions_by(user_id) >= coupon.per_user_limit:
        logger.warning(
            "Coupon consumption refused",
            code=normalized,
            order_id=order_id,
            user_id=user_id,
            reason="user_limit",
        )
        return False

    coupon.redeem(user_id, order_id)
    current_domain.repository_for(Coupon).add(coupon)

    logger.info("Coupon consumed", code=normalized, order_id=order_id, used_count=coupon.used_count)
    return True
