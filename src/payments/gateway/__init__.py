"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- PhonePeGateway for production, when a merchant id is configured
"""

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.phonepe_adapter import PhonePeGateway
from payments.gateway.port import PaymentGateway
from shared.config import get_settings

_current_gateway: PaymentGateway | None = None


def build_gateway(settings=None) -> PaymentGateway:
    """Gateway for the given settings; FakeGateway when no merchant is configured."""
    settings = settings or get_settings()
    if not settings.gateway_merchant_id:
        return FakeGateway(salt_keys=settings.gateway_salt_keys or None)
    return PhonePeGateway(
        base_url=settings.gateway_base_url,
        merchant_id=settings.gateway_merchant_id,
        salt_keys=settings.gateway_salt_keys,
        salt_index=settings.gateway_salt_index,
        timeout=settings.gateway_timeout_seconds,
    )


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
