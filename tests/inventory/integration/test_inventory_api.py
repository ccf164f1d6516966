"""Integration tests for Inventory API endpoints via TestClient."""

from decimal import Decimal


def _register(client, **overrides):
    """Helper: POST /inventory and return the response body."""
    defaults = {
        "product_id": "prod-001",
        "size": "50ml",
        "price": "500.00",
        "original_price": "650.00",
        "stock_quantity": 20,
    }
    defaults.update(overrides)
    response = client.post("/inventory", json=defaults)
    assert response.status_code == 201
    return response.json()


class TestRegisterVariantEndpoint:
    def test_register_variant(self, client, stock_of):
        data = _register(client)
        assert data["product_id"] == "prod-001"
        assert data["size"] == "50ml"
        assert Decimal(data["price"]) == Decimal("500.00")
        assert data["in_stock"] is True

        assert stock_of("prod-001", "50ml") == 20

    def test_duplicate_variant_returns_400(self, client):
        _register(client)
        response = client.post(
            "/inventory",
            json={"product_id": "prod-001", "size": "50ml", "price": "500.00"},
        )
        assert response.status_code == 400

    def test_original_price_below_price_returns_400(self, client):
        response = client.post(
            "/inventory",
            json={"product_id": "prod-001", "size": "50ml", "price": "500.00", "original_price": "400.00"},
        )
        assert response.status_code == 400

    def test_negative_stock_rejected_by_schema(self, client):
        response = client.post(
            "/inventory",
            json={"product_id": "prod-001", "size": "50ml", "price": "500.00", "stock_quantity": -1},
        )
        assert response.status_code == 422


class TestProductStockEndpoint:
    def test_lists_variants_with_total(self, client):
        _register(client, size="50ml", stock_quantity=20)
        _register(client, size="100ml", price="900.00", original_price="1100.00", stock_quantity=0)

        response = client.get("/inventory/prod-001")
        assert response.status_code == 200
        data = response.json()
        assert data["total_quantity"] == 20
        assert data["in_stock"] is True
        assert {v["size"]: v["in_stock"] for v in data["variants"]} == {"50ml": True, "100ml": False}

    def test_unknown_product_returns_404(self, client):
        response = client.get("/inventory/prod-404")
        assert response.status_code == 404


class TestAdjustStockEndpoint:
    def test_add(self, client):
        _register(client, stock_quantity=20)
        response = client.post("/inventory/prod-001/50ml/adjust", json={"operation": "Add", "amount": 5})
        assert response.status_code == 200
        assert response.json() == {"product_id": "prod-001", "size": "50ml", "stock_quantity": 25}

    def test_set(self, client):
        _register(client, stock_quantity=20)
        response = client.post("/inventory/prod-001/50ml/adjust", json={"operation": "Set", "amount": 0})
        assert response.status_code == 200
        assert response.json()["stock_quantity"] == 0

    def test_below_zero_returns_409(self, client):
        _register(client, stock_quantity=3)
        response = client.post("/inventory/prod-001/50ml/adjust", json={"operation": "Add", "amount": -4})
        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "InsufficientStock"
        assert data["available"] == 3

    def test_unknown_operation_rejected_by_schema(self, client):
        _register(client)
        response = client.post("/inventory/prod-001/50ml/adjust", json={"operation": "Double", "amount": 2})
        assert response.status_code == 422

    def test_unknown_variant_returns_404(self, client):
        response = client.post("/inventory/prod-001/75ml/adjust", json={"operation": "Add", "amount": 1})
        assert response.status_code == 404


class TestLowStockEndpoint:
    def test_default_threshold(self, client):
        _register(client, size="50ml", stock_quantity=4)
        _register(client, size="100ml", price="900.00", original_price="1100.00", stock_quantity=40)

        response = client.get("/inventory/low-stock")
        assert response.status_code == 200
        data = response.json()
        assert data["threshold"] == 10
        assert [item["size"] for item in data["items"]] == ["50ml"]

    def test_explicit_threshold(self, client):
        _register(client, size="50ml", stock_quantity=4)
        _register(client, size="100ml", price="900.00", original_price="1100.00", stock_quantity=40)

        response = client.get("/inventory/low-stock", params={"threshold": 50})
        assert [item["size"] for item in response.json()["items"]] == ["50ml", "100ml"]


class TestLowStockAlertsEndpoint:
    def test_alert_listed_after_stock_drops(self, client):
        _register(client, stock_quantity=20)
        client.post("/inventory/prod-001/50ml/adjust", json={"operation": "Set", "amount": 0})

        response = client.get("/inventory/low-stock/alerts")
        assert response.status_code == 200
        alerts = response.json()
        assert len(alerts) == 1
        assert alerts[0]["size"] == "50ml"
        assert alerts[0]["is_critical"] is True

    def test_no_alerts_when_stock_is_healthy(self, client):
        _register(client, stock_quantity=20)
        assert client.get("/inventory/low-stock/alerts").json() == []
