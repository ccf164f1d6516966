"""Application tests for stock management and the inventory ledger."""

import pytest
from inventory.projections.low_stock_report import LowStockReport
from inventory.stock.ledger import (
    decrement_for_order,
    get_record,
    low_stock,
    product_stock,
    restore_for_order,
)
from inventory.stock.management import AdjustStock
from inventory.stock.stock import StockLine
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain
from shared.domain import dispatch
from shared.errors import InsufficientStock


def _adjust(operation, amount, product_id="prod-001", size="50ml"):
    return dispatch(AdjustStock(product_id=product_id, size=size, operation=operation, amount=amount))


def _decrement(lines, order_id=None):
    with UnitOfWork():
        return decrement_for_order(lines, order_id=order_id)


def _restore(lines, order_id=None):
    with UnitOfWork():
        return restore_for_order(lines, order_id=order_id)


def _report():
    return current_domain.repository_for(LowStockReport)._dao.query.all().items


class TestRegisterVariant:
    def test_registered_variant_is_readable(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=15)
        record = get_record("prod-001", "50ml")
        assert record.stock_quantity == 15
        assert record.in_stock is True

    def test_duplicate_variant_rejected(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=15)
        with pytest.raises(ValidationError) as exc_info:
            register_variant("prod-001", "50ml", 500.0)
        assert "size" in exc_info.value.messages

    def test_unknown_variant_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            get_record("prod-404", "50ml")

    def test_registration_is_stored_as_event(self, register_variant, stored_events):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=15)
        assert len(stored_events("stock_record", "VariantRegistered")) == 1


class TestAdjust:
    def test_add_increases_quantity(self, register_variant, stock_of):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=20)
        assert _adjust("Add", 5) == 25
        assert stock_of("prod-001", "50ml") == 25

    def test_add_negative_amount_decreases_quantity(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=20)
        assert _adjust("Add", -8) == 12

    def test_set_replaces_quantity(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=20)
        assert _adjust("Set", 3) == 3

    def test_add_below_zero_raises_and_leaves_quantity(self, register_variant, stock_of):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=4)
        with pytest.raises(InsufficientStock) as exc_info:
            _adjust("Add", -5)
        assert exc_info.value.product_id == "prod-001"
        assert exc_info.value.size == "50ml"
        assert stock_of("prod-001", "50ml") == 4

    def test_set_negative_rejected(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=20)
        with pytest.raises(ValidationError):
            _adjust("Set", -1)

    def test_unknown_operation_rejected(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=20)
        with pytest.raises(ValidationError):
            _adjust("Multiply", 2)

    def test_unknown_variant_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            _adjust("Add", 1, product_id="prod-404")

    def test_adjust_stores_event(self, register_variant, stored_events):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=20)
        _adjust("Add", 5)
        adjusted = stored_events("stock_record", "StockAdjusted")
        assert len(adjusted) == 1
        assert adjusted[0].data["previous_quantity"] == 20
        assert adjusted[0].data["new_quantity"] == 25


class TestDecrementForOrder:
    def test_decrements_every_line(self, register_variant, stock_of):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=20)
        register_variant("prod-001", "100ml", 900.0, stock_quantity=20)

        result = _decrement([StockLine("prod-001", "50ml", 2), StockLine("prod-001", "100ml", 3)], "ord-001")

        assert result == {("prod-001", "50ml"): 18, ("prod-001", "100ml"): 17}
        assert stock_of("prod-001", "50ml") == 18
        assert stock_of("prod-001", "100ml") == 17

    def test_duplicate_lines_are_merged(self, register_variant, stock_of):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=5)
        _decrement([StockLine("prod-001", "50ml", 2), StockLine("prod-001", "50ml", 3)])
        assert stock_of("prod-001", "50ml") == 0

    def test_insufficient_line_changes_no_line(self, register_variant, stock_of):
        register_variant("prod-001", "100ml", 900.0, stock_quantity=20)
        register_variant("prod-001", "50ml", 500.0, stock_quantity=1)

        with pytest.raises(InsufficientStock) as exc_info:
            _decrement([StockLine("prod-001", "100ml", 2), StockLine("prod-001", "50ml", 2)])

        assert exc_info.value.size == "50ml"
        assert exc_info.value.requested == 2
        assert exc_info.value.available == 1
        assert stock_of("prod-001", "100ml") == 20
        assert stock_of("prod-001", "50ml") == 1

    def test_unknown_variant_not_found(self, register_variant, stock_of):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=20)
        with pytest.raises(ObjectNotFoundError):
            _decrement([StockLine("prod-001", "50ml", 1), StockLine("prod-404", "50ml", 1)])
        assert stock_of("prod-001", "50ml") == 20

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError):
            _decrement([])

    def test_decrement_stores_event(self, register_variant, stored_events):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=20)
        _decrement([StockLine("prod-001", "50ml", 2)], order_id="ord-001")
        decremented = stored_events("stock_record", "StockDecremented")
        assert len(decremented) == 1
        assert decremented[0].data["order_id"] == "ord-001"
        assert decremented[0].data["new_quantity"] == 18


class TestRestoreForOrder:
    def test_restore_reverses_decrement(self, register_variant, stock_of):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=7)
        register_variant("prod-001", "100ml", 900.0, stock_quantity=3)
        items = [StockLine("prod-001", "50ml", 4), StockLine("prod-001", "100ml", 3)]

        _decrement(items, "ord-001")
        _restore(items, "ord-001")

        assert stock_of("prod-001", "50ml") == 7
        assert stock_of("prod-001", "100ml") == 3


class TestLowStock:
    def test_report_entry_when_decrement_reaches_threshold(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=12)

        _decrement([StockLine("prod-001", "50ml", 2)])

        entries = _report()
        assert len(entries) == 1
        assert entries[0].current_quantity == 10
        assert entries[0].threshold == 10
        assert entries[0].is_critical is False

    def test_no_entry_above_threshold(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=20)
        _decrement([StockLine("prod-001", "50ml", 2)])
        assert _report() == []

    def test_lowering_set_reports(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=20)
        _adjust("Set", 0)
        entries = _report()
        assert [e.current_quantity for e in entries] == [0]
        assert entries[0].is_critical is True

    def test_raising_add_does_not_report(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=2)
        _adjust("Add", 3)
        assert _report() == []

    def test_restock_above_threshold_clears_entry(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=12)
        _adjust("Set", 4)
        assert len(_report()) == 1

        _adjust("Add", 20)
        assert _report() == []

    def test_low_stock_query_lists_emptiest_first(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=8)
        register_variant("prod-001", "100ml", 900.0, stock_quantity=0)
        register_variant("prod-001", "200ml", 1500.0, stock_quantity=30)

        records = low_stock()

        assert [(r.size, r.stock_quantity) for r in records] == [("100ml", 0), ("50ml", 8)]


class TestQueries:
    def test_product_stock_totals_variants(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=8)
        register_variant("prod-001", "100ml", 900.0, stock_quantity=0)

        stock = product_stock("prod-001")

        assert stock.total_quantity == 8
        assert {v.size for v in stock.variants} == {"50ml", "100ml"}

    def test_unknown_product_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            product_stock("prod-404")


class TestMovementJournal:
    def test_every_change_is_journalled(self, register_variant):
        register_variant("prod-001", "50ml", 500.0, stock_quantity=10)
        _adjust("Add", 5)
        _decrement([StockLine("prod-001", "50ml", 3)], "ord-001")
        _restore([StockLine("prod-001", "50ml", 3)], "ord-001")

        movements = get_record("prod-001", "50ml").movements

        journal = {m.reason: (m.delta, m.resulting_quantity, m.order_id) for m in movements}
        assert journal == {
            "Registered": (10, 10, None),
            "Adjusted": (5, 15, None),
            "Order_Placed": (-3, 12, "ord-001"),
            "Order_Cancelled": (3, 15, "ord-001"),
        }
