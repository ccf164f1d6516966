"""Domain events for the Coupon aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from shared.domain import shopcore


@shopcore.event(part_of="Coupon")
class CouponCreated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    value = Float(required=True)
    usage_limit = Integer(required=True)
    created_at = DateTime(required=True)


@shopcore.event(part_of="Coupon")
class CouponUpdated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    changed_fields = Text()  # JSON list of field names
    updated_at = DateTime(required=True)


@shopcore.event(part_of="Coupon")
class CouponDeactivated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    deactivated_at = DateTime(required=True)


@shopcore.event(part_of="Coupon")
class CouponConsumed:
    """One use of a coupon was taken by a confirmed order."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    used_count = Integer(required=True)
    consumed_at = DateTime(required=True)
