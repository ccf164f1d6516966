"""Coupon management — staff commands and handler."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, Integer, String
from protean.utils.globals import current_domain

from ordering.coupon.coupon import Coupon, CouponStatus
from ordering.coupon.validation import CouponQuote, CouponValidator, find_coupon
from shared.domain import shopcore

logger = structlog.get_logger(__name__)

_TERM_FIELDS = (
    "discount_type",
    "value",
    "max_discount",
    "min_order",
    "usage_limit",
    "per_user_limit",
    "expires_at",
    "status",
    "description",
)


@shopcore.command(part_of="Coupon")
class CreateCoupon:
    """Create a new discount code."""

    code = String(required=True, max_length=50)
    discount_type = String(required=True)
    value = Float(required=True)
    max_discount = Float(required=True)
    usage_limit = Integer(required=True)
    expires_at = DateTime(required=True)
    min_order = Float(default=0.0)
    per_user_limit = Integer(default=1)
    description = String(max_length=200)
    status = String(default=CouponStatus.ACTIVE.value)


@shopcore.command(part_of="Coupon")
class UpdateCoupon:
    """Edit a coupon's terms; fields left unset keep their value."""

    code = String(required=True, max_length=50)
    discount_type = String()
    value = Float()
    max_discount = Float()
    min_order = Float()
    usage_limit = Integer()
    per_user_limit = Integer()
    expires_at = DateTime()
    status = String()
    description = String(max_length=200)


@shopcore.command(part_of="Coupon")
class DeactivateCoupon:
    code = String(required=True, max_length=50)


def load_coupon(code: str) -> Coupon:
    coupon = find_coupon(code)
    if coupon is None:
        raise ObjectNotFoundError(f"Coupon {code} does not exist")
    return coupon


@shopcore.command_handler(part_of=Coupon)
class CouponManagementHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        coupon = Coupon.create(
            code=command.code,
            discount_type=command.discount_type,
            value=command.value,
            max_discount=command.max_discount,
            usage_limit=command.usage_limit,
            expires_at=command.expires_at,
            min_order=command.min_order or 0,
            per_user_limit=command.per_user_limit or 1,
            description=command.description,
            status=command.status or CouponStatus.ACTIVE.value,
        )
        if find_coupon(coupon.code) is not None:
            raise ValidationError({"code": [f"Coupon code {coupon.code} already exists"]})

        current_domain.repository_for(Coupon).add(coupon)
        logger.info("Coupon created", code=coupon.code, discount_type=coupon.discount_type)
        return coupon.code

    @handle(UpdateCoupon)
    def update_coupon(self, command):
        coupon = load_coupon(command.code)
        changed_fields = coupon.update_terms(**{name: getattr(command, name) for name in _TERM_FIELDS})
        current_domain.repository_for(Coupon).add(coupon)

        logger.info("Coupon updated", code=coupon.code, changed_fields=changed_fields)
        return coupon.code

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        coupon = load_coupon(command.code)
        coupon.deactivate()
        current_domain.repository_for(Coupon).add(coupon)

        logger.info("Coupon deactivated", code=coupon.code)
        return coupon.code


def list_coupons(status: str | None = None) -> list[Coupon]:
    """Newest coupons first, optionally only those with ``status``."""
    repo = current_domain.repository_for(Coupon)
    query = repo._dao.query
    if status is not None:
        query = query.filter(status=status)
    coupons = query.all().items
    return sorted(coupons, key=lambda c: (c.created_at, c.code), reverse=True)


def check_coupon(code: str, order_subtotal, user_id: str) -> CouponQuote:
    """Quote a coupon for a cart without consuming it."""
    return CouponValidator().validate(code, order_subtotal, user_id)
