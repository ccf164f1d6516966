import json
import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Initialize the domain on the in-memory provider and push its context. The
    activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["SHOPCORE_ENV"] = session.config.option.env
    os.environ["SHOPCORE_DATABASE_URL"] = "memory://"

    from shared.domain import init_domain, shopcore

    init_domain()
    shopcore.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def settings():
    from payments.gateway.fake_adapter import FAKE_SALT_INDEX, FAKE_SALT_KEY
    from shared.config import reset_settings, set_settings_for_test

    configured = set_settings_for_test(
        env="test",
        database_url="memory://",
        low_stock_threshold=10,
        gateway_salt_keys={FAKE_SALT_INDEX: FAKE_SALT_KEY},
        gateway_salt_index=FAKE_SALT_INDEX,
    )
    yield configured
    reset_settings()


@pytest.fixture(autouse=True)
def gateway(settings):
    from payments.gateway import reset_gateway, set_gateway
    from payments.gateway.fake_adapter import FakeGateway

    fake = FakeGateway(salt_keys=settings.gateway_salt_keys)
    set_gateway(fake)
    yield fake
    reset_gateway()


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Clear all brokers
    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient

    from app import app

    return TestClient(app)


@pytest.fixture()
def stored_events():
    """Events of one type written to an aggregate's stream, oldest first."""
    from protean import current_domain

    def _read(stream: str, event_name: str):
        messages = current_domain.event_store.store.read(f"shopcore::{stream}")
        return [
            m
            for m in messages
            if m.metadata and m.metadata.headers and str(m.metadata.headers.type).endswith(f".{event_name}.v1")
        ]

    return _read


# ---------------------------------------------------------------------------
# Shared factories
# ---------------------------------------------------------------------------
@pytest.fixture()
def address():
    return {
        "name": "Asha Rao",
        "phone": "9876543210",
        "address": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "pincode": "560001",
    }


@pytest.fixture()
def register_variant():
    from inventory.stock.management import RegisterVariant
    from shared.domain import dispatch

    def _register(product_id, size, price, original_price=None, stock_quantity=0):
        return dispatch(
            RegisterVariant(
                product_id=product_id,
                size=size,
                price=price,
                original_price=original_price,
                stock_quantity=stock_quantity,
            )
        )

    return _register


@pytest.fixture()
def stock_of():
    from inventory.stock.ledger import get_record

    def _quantity(product_id, size):
        return get_record(product_id, size).stock_quantity

    return _quantity


@pytest.fixture()
def catalog(register_variant):
    """Two sizes of one fragrance: 50ml at 500.00 and 100ml at 900.00."""
    register_variant("prod-001", "50ml", 500.0, 650.0, stock_quantity=20)
    register_variant("prod-001", "100ml", 900.0, 1100.0, stock_quantity=20)


@pytest.fixture()
def make_coupon():
    from datetime import UTC, datetime, timedelta

    from ordering.coupon.management import CreateCoupon, load_coupon
    from shared.domain import dispatch

    def _make(**overrides):
        defaults = {
            "code": "SAVE20",
            "discount_type": "Percentage",
            "value": 20.0,
            "max_discount": 100.0,
            "usage_limit": 2,
            "per_user_limit": 1,
            "min_order": 500.0,
            "expires_at": datetime.now(UTC) + timedelta(days=30),
        }
        defaults.update(overrides)
        return load_coupon(dispatch(CreateCoupon(**defaults)))

    return _make


@pytest.fixture()
def place_order(catalog, address):
    from ordering.order.creation import CreateOrder
    from ordering.order.tracking import get_order
    from shared.domain import dispatch

    def _place(items=None, **overrides):
        lines = items or [("prod-001", "50ml", 2)]
        defaults = {
            "customer_id": "cust-001",
            "items": json.dumps([{"product_id": p, "size": s, "quantity": q} for p, s, q in lines]),
            "shipping_address": json.dumps(address),
            "payment_method": "COD",
            "coupon_code": None,
        }
        defaults.update(overrides)
        return get_order(dispatch(CreateOrder(**defaults)))

    return _place
