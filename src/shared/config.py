"""Application configuration.

Values come from ``SHOPCORE_*`` environment variables and an optional
``.env`` file. ``SHOPCORE_ENV`` picks the logging profile: ``test`` runs
quiet, ``production`` and ``staging`` log JSON.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the fulfillment core."""

    env: str = "development"
    log_level: Optional[str] = None

    # Persistence
    database_url: str = "sqlite:///shopcore.db"

    # Inventory
    low_stock_threshold: int = Field(default=10, ge=0)

    # Checkout
    shipping_cost: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = "INR"
    order_number_prefix: str = "OZME"

    # Payment gateway (Pay Page checksum flow)
    gateway_base_url: str = "https://api.phonepe.com/apis/hermes"
    gateway_merchant_id: str = ""
    gateway_salt_keys: dict[str, str] = Field(default_factory=dict)
    gateway_salt_index: str = "1"
    gateway_timeout_seconds: float = Field(default=10.0, gt=0)
    gateway_redirect_url: str = "http://localhost:5173/checkout/success"
    gateway_callback_url: str = "http://localhost:8000/payments/callback"

    model_config = SettingsConfigDict(
        env_prefix="SHOPCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def active_salt_key(self) -> str:
        return self.gateway_salt_keys.get(self.gateway_salt_index, "")


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the Settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings_for_test(**overrides) -> Settings:
    """For testing only: replace the Settings instance with overridden values."""
    global _settings
    _settings = Settings(**overrides)
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
