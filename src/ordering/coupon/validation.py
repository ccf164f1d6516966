"""Coupon validation — decides whether a code applies and what it is worth.

Validation never changes a coupon. Checks run in a fixed order and the
first failing one is reported, so a customer always sees the most basic
reason a code was refused.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

import structlog
from protean.utils.globals import current_domain

from ordering.coupon.coupon import Coupon, DiscountType, normalize_code
from shared.errors import CouponRejected, RejectionReason
from shared.money import money

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CouponQuote:
    """Accepted coupon and the discount it yields on the quoted subtotal."""

    code: str
    discount_amount: Decimal


def calculate_discount(discount_type: str, value, max_discount, subtotal) -> Decimal:
    """Discount for a subtotal, capped at ``max_discount`` and the subtotal itself."""
    value = Decimal(str(value))
    subtotal = Decimal(str(subtotal))

    if discount_type == DiscountType.PERCENTAGE.value:
        discount = subtotal * value / Decimal("100")
    else:
        discount = value

    discount = min(discount, Decimal(str(max_discount)), subtotal)
    return money(max(discount, Decimal("0")))


def find_coupon(code: str) -> Coupon | None:
    repo = current_domain.repository_for(Coupon)
    coupons = repo._dao.query.filter(code=normalize_code(code)).all().items
    return coupons[0] if coupons else None


class CouponValidator:
    def validate(self, code: str, order_subtotal, user_id: str, now: datetime | None = None) -> CouponQuote:
        """Return the discount for ``code`` or raise ``CouponRejected``."""
        now = now or datetime.now(UTC)
        normalized = normalize_code(code)
        subtotal = Decimal(str(order_subtotal))

        coupon = find_coupon(normalized)
        reason = self._rejection_reason(coupon, subtotal, user_id, now)
        if reason is not None:
            logger.info("Coupon rejected", code=normalized, reason=reason.value, user_id=user_id)
            raise CouponRejected(normalized, reason)

        discount = calculate_discount(coupon.discount_type, coupon.value, coupon.max_discount, subtotal)
        logger.debug("Coupon accepted", code=normalized, discount=str(discount), user_id=user_id)
        return CouponQuote(code=coupon.code, discount_amount=discount)

    def _rejection_reason(self, coupon, subtotal, user_id, now) -> RejectionReason | None:
        if coupon is None:
            return RejectionReason.NOT_FOUND
        if not coupon.is_active:
            return RejectionReason.INACTIVE
        if coupon.is_expired(now):
            return RejectionReason.EXPIRED
        if subtotal < money(coupon.min_order):
            return RejectionReason.BELOW_MINIMUM
        if coupon.used_count >= coupon.usage_limit:
            return RejectionReason.GLOBAL_LIMIT_REACHED
        if coupon.redemptions_by(user_id) >= coupon.per_user_limit:
            return RejectionReason.USER_LIMIT_REACHED
        return None
