"""Coupon aggregate — discount codes with global and per-customer usage limits.

``used_count`` only moves through :meth:`Coupon.redeem`, which checks the
global limit and the customer's own redemptions in the same step it
records the use.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from ordering.coupon.events import CouponConsumed, CouponCreated, CouponDeactivated, CouponUpdated
from shared.domain import shopcore
from shared.money import money

CODE_MIN_LENGTH = 3
CODE_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 200


class DiscountType(Enum):
    PERCENTAGE = "Percentage"
    FIXED_AMOUNT = "Fixed Amount"


class CouponStatus(Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def _validate_terms(
    discount_type,
    value,
    min_order,
    max_discount,
    usage_limit,
    per_user_limit,
    errors: dict[str, list[str]],
) -> None:
    if discount_type not in {t.value for t in DiscountType}:
        errors["discount_type"] = [f"Discount type must be one of: {', '.join(t.value for t in DiscountType)}"]
    if value < 0:
        errors["value"] = ["Discount value cannot be negative"]
    elif discount_type == DiscountType.PERCENTAGE.value and value > 100:
        errors["value"] = ["Percentage discount cannot exceed 100"]
    if min_order < 0:
        errors["min_order"] = ["Minimum order cannot be negative"]
    if max_discount < 0:
        errors["max_discount"] = ["Maximum discount cannot be negative"]
    if usage_limit < 1:
        errors["usage_limit"] = ["Usage limit must be at least 1"]
    if per_user_limit < 1:
        errors["per_user_limit"] = ["Per-user limit must be at least 1"]


def _changed(changes: dict, name: str, current):
    value = changes.get(name)
    return current if value is None else value


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@shopcore.entity(part_of="Coupon")
class CouponRedemption:
    """One consumed use of a coupon by a customer for an order."""

    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    redeemed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@shopcore.aggregate
class Coupon:
    code: String(required=True, max_length=CODE_MAX_LENGTH, unique=True)
    discount_type: String(required=True, choices=DiscountType)
    value: Float(required=True)
    min_order: Float(default=0.0)
    max_discount: Float(required=True)
    usage_limit: Integer(required=True)
    per_user_limit: Integer(default=1)
    used_count: Integer(default=0)
    expires_at: DateTime(required=True)
    status: String(choices=CouponStatus, default=CouponStatus.ACTIVE.value)
    description: String(max_length=DESCRIPTION_MAX_LENGTH)
    redemptions: HasMany(CouponRedemption)
    created_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        discount_type,
        value,
        max_discount,
        usage_limit,
        expires_at,
        min_order=0,
        per_user_limit=1,
        description=None,
        status=CouponStatus.ACTIVE.value,
    ):
        errors: dict[str, list[str]] = {}

        code = normalize_code(code)
        if not CODE_MIN_LENGTH <= len(code) <= CODE_MAX_LENGTH:
            errors["code"] = [f"Coupon code must be {CODE_MIN_LENGTH}-{CODE_MAX_LENGTH} characters"]

        value = money(value)
        min_order = money(min_order)
        max_discount = money(max_discount)
        _validate_terms(discount_type, value, min_order, max_discount, usage_limit, per_user_limit, errors)

        if expires_at is None or expires_at.tzinfo is None:
            errors["expires_at"] = ["Expiry date must be a timezone-aware datetime"]
        if status not in {s.value for s in CouponStatus}:
            errors["status"] = ["Status must be Active or Inactive"]
        if description and len(description) > DESCRIPTION_MAX_LENGTH:
            errors["description"] = [f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters"]

        if errors:
            raise ValidationError(errors)

        now = datetime.now(UTC)
        coupon = cls(
            code=code,
            discount_type=discount_type,
            value=float(value),
            min_order=float(min_order),
            max_discount=float(max_discount),
            usage_limit=usage_limit,
            per_user_limit=per_user_limit,
            used_count=0,
            expires_at=expires_at,
            status=status,
            description=description,
            created_at=now,
            updated_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                discount_type=coupon.discount_type,
                value=coupon.value,
                usage_limit=coupon.usage_limit,
                created_at=now,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Staff edits
    # -------------------------------------------------------------------
    def update_terms(self, **changes) -> list[str]:
        """Apply staff edits; fields passed as None keep their current value.

        Returns the names of the fields that were supplied.
        """
        proposed = {
            "discount_type": _changed(changes, "discount_type", self.discount_type),
            "value": money(_changed(changes, "value", self.value)),
            "min_order": money(_changed(changes, "min_order", self.min_order)),
            "max_discount": money(_changed(changes, "max_discount", self.max_discount)),
            "usage_limit": _changed(changes, "usage_limit", self.usage_limit),
            "per_user_limit": _changed(changes, "per_user_limit", self.per_user_limit),
        }

        errors: dict[str, list[str]] = {}
        _validate_terms(errors=errors, **proposed)
        if "usage_limit" not in errors and proposed["usage_limit"] < self.used_count:
            errors["usage_limit"] = [f"Usage limit cannot be lower than the {self.used_count} uses already made"]

        expires_at = changes.get("expires_at")
        if expires_at is not None and expires_at.tzinfo is None:
            errors["expires_at"] = ["Expiry date must be a timezone-aware datetime"]
        status = changes.get("status")
        if status is not None and status not in {s.value for s in CouponStatus}:
            errors["status"] = ["Status must be Active or Inactive"]
        description = changes.get("description")
        if description and len(description) > DESCRIPTION_MAX_LENGTH:
            errors["description"] = [f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters"]

        if errors:
            raise ValidationError(errors)

        self.discount_type = proposed["discount_type"]
        self.value = float(proposed["value"])
        self.min_order = float(proposed["min_order"])
        self.max_discount = float(proposed["max_discount"])
        self.usage_limit = proposed["usage_limit"]
        self.per_user_limit = proposed["per_user_limit"]
        if expires_at is not None:
            self.expires_at = expires_at
        if status is not None:
            self.status = status
        if description is not None:
            self.description = description

        changed_fields = sorted(name for name, value in changes.items() if value is not None)
        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            CouponUpdated(
                coupon_id=str(self.id),
                code=self.code,
                changed_fields=json.dumps(changed_fields),
                updated_at=now,
            )
        )
        return changed_fields

    def deactivate(self) -> None:
        if not self.is_active:
            return
        now = datetime.now(UTC)
        self.status = CouponStatus.INACTIVE.value
        self.updated_at = now
        self.raise_(CouponDeactivated(coupon_id=str(self.id), code=self.code, deactivated_at=now))

    # -------------------------------------------------------------------
    # Usage
    # -------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return self.status == CouponStatus.ACTIVE.value

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    @property
    def remaining_uses(self) -> int:
        return self.usage_limit - self.used_count

    def redemptions_by(self, user_id) -> int:
        return sum(1 for r in self.redemptions if str(r.user_id) == str(user_id))

    def can_redeem(self, user_id) -> bool:
        return self.used_count < self.usage_limit and self.redemptions_by(user_id) < self.per_user_limit

    def redeem(self, user_id, order_id) -> bool:
        """Take one use for ``order_id``; False when the global or the customer's limit is used up."""
        if not self.can_redeem(user_id):
            return False

        now = datetime.now(UTC)
        self.used_count += 1
        self.updated_at = now
        self.add_redemptions(CouponRedemption(user_id=str(user_id), order_id=str(order_id), redeemed_at=now))
        self.raise_(
            CouponConsumed(
                coupon_id=str(self.id),
                code=self.code,
                user_id=str(user_id),
                order_id=str(order_id),
                used_count=self.used_count,
                consumed_at=now,
            )
        )
        return True
