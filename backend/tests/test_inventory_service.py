from decimal import Decimal

import pytest

from posledger.extensions import db
from posledger.errors import NotFound, ValidationError
from posledger.models import AuditRecord, StockItem
from posledger.services import inventory_service


def _history(item_id):
    return inventory_service.get_history(item_id)


class TestCreate:
    def test_create_appends_create_record(self, item_a):
        history = _history(item_a.id)
        assert len(history) == 1
        assert history[0].action == "create"
        assert history[0].user == "admin"
        assert history[0].previous_quantity == Decimal("0")
        assert history[0].new_quantity == Decimal("10")

    def test_defaults(self, item_a):
        assert item_a.unit == "item"
        assert item_a.currency == "BS"
        assert item_a.includes_tax is False

    def test_missing_fields(self, db_session):
        with pytest.raises(ValidationError) as exc:
            inventory_service.create_item({"name": "Thing"}, "admin")
        assert "barcode" in exc.value.details["missing"]
        assert db_session.query(StockItem).count() == 0

    def test_negative_quantity_rejected(self, make_item):
        with pytest.raises(ValidationError):
            make_item(quantity=-1)

    def test_fractional_quantity_for_unit_item_rejected(self, make_item):
        with pytest.raises(ValidationError):
            make_item(quantity="1.5", unit="item")

    def test_fractional_quantity_for_weight_allowed(self, make_item):
        item = make_item(quantity="2.5", unit="weight")
        assert item.quantity == Decimal("2.5")

    def test_discount_clamped(self, make_item):
        assert make_item(barcode="x1", discount_percent=150).discount_percent == Decimal("100")
        assert make_item(barcode="x2", discount_percent=-5).discount_percent == Decimal("0")

    def test_acting_user_required(self, db_session):
        with pytest.raises(ValidationError):
            inventory_service.create_item({"name": "X"}, " ")


class TestUpdate:
    def test_quantity_change_records_before_and_after(self, item_a):
        inventory_service.update_item(item_a.id, {"quantity": 7}, "admin", notes="recount")

        history = _history(item_a.id)
        assert len(history) == 2
        record = history[-1]
        assert record.action == "update"
        assert record.previous_quantity == Decimal("10")
        assert record.new_quantity == Decimal("7")
        assert "10 -> 7 (-3)" in record.details
        assert "recount" in record.details

    def test_notes_only_update_has_no_quantities(self, item_a):
        inventory_service.update_item(item_a.id, {"name": "Item A2"}, "admin", notes="renamed")

        record = _history(item_a.id)[-1]
        assert record.details == "Update: renamed"
        assert record.previous_quantity is None
        assert record.new_quantity is None

    def test_silent_update_appends_nothing(self, item_a):
        updated = inventory_service.update_item(item_a.id, {"selling_price_cents": 1200}, "admin")
        assert updated.selling_price_cents == 1200
        assert len(_history(item_a.id)) == 1

    def test_missing_fields_are_kept(self, item_a):
        updated = inventory_service.update_item(item_a.id, {"barcode": "A-002"}, "admin")
        assert updated.name == "Item A"
        assert updated.quantity == Decimal("10")

    def test_unknown_item(self, db_session):
        with pytest.raises(NotFound):
            inventory_service.update_item("nope", {"quantity": 1}, "admin")

    def test_invalid_update_changes_nothing(self, item_a):
        with pytest.raises(ValidationError):
            inventory_service.update_item(item_a.id, {"quantity": -2}, "admin")
        assert inventory_service.get_item(item_a.id).quantity == Decimal("10")
        assert len(_history(item_a.id)) == 1

    def test_version_bumps_on_write(self, item_a):
        before = item_a.version_id
        updated = inventory_service.update_item(item_a.id, {"quantity": 4}, "admin")
        assert updated.version_id == before + 1


class TestAdjust:
    def test_sale_decrements(self, item_a):
        item = inventory_service.adjust_quantity(item_a.id, -3, "cashier", "sale")
        assert item.quantity == Decimal("7")

        record = _history(item_a.id)[-1]
        assert record.action == "sale"
        assert (record.previous_quantity, record.new_quantity) == (Decimal("10"), Decimal("7"))

    def test_return_increments(self, item_a):
        inventory_service.adjust_quantity(item_a.id, 2, "cashier", "return")
        assert inventory_service.get_item(item_a.id).quantity == Decimal("12")
        assert _history(item_a.id)[-1].action == "return"

    def test_oversell_clamps_at_zero(self, item_a):
        item = inventory_service.adjust_quantity(item_a.id, -15, "cashier", "sale")
        assert item.quantity == Decimal("0")

        record = _history(item_a.id)[-1]
        assert record.new_quantity == Decimal("0")
        assert "clamped at 0" in record.details

    def test_unknown_reason(self, item_a):
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(item_a.id, -1, "cashier", "shrink")

    def test_one_record_per_mutation(self, item_a):
        inventory_service.adjust_quantity(item_a.id, -1, "cashier", "sale")
        inventory_service.adjust_quantity(item_a.id, -20, "cashier", "sale")
        inventory_service.adjust_quantity(item_a.id, 4, "cashier", "return")
        inventory_service.update_item(item_a.id, {"quantity": 1}, "admin")

        history = _history(item_a.id)
        assert len(history) == 5
        for prev, cur in zip(history, history[1:]):
            assert cur.previous_quantity == prev.new_quantity
        assert all(r.new_quantity >= 0 for r in history)
        assert inventory_service.get_item(item_a.id).quantity == history[-1].new_quantity


class TestDelete:
    def test_delete_removes_item_and_history(self, item_a, db_session):
        assert inventory_service.delete_item(item_a.id, "admin") is True
        assert inventory_service.find_item(item_a.id) is None
        assert db_session.query(AuditRecord).count() == 0

    def test_delete_removes_unloaded_history(self, item_a, db_session):
        inventory_service.adjust_quantity(item_a.id, -1, "cashier", "sale")
        db_session.expire_all()

        inventory_service.delete_item(item_a.id, "admin")
        assert db_session.query(AuditRecord).filter_by(item_id=item_a.id).count() == 0

    def test_delete_is_idempotent(self, item_a):
        assert inventory_service.delete_item(item_a.id, "admin") is True
        assert inventory_service.delete_item(item_a.id, "admin") is False


class TestQueries:
    def test_search_by_field(self, item_a, item_b):
        assert [i.name for i in inventory_service.search_items("item")] == ["Item A", "Item B"]
        assert [i.name for i in inventory_service.search_items("b-0", field="barcode")] == ["Item B"]
        assert inventory_service.search_items("b-0", field="name") == []
        assert len(inventory_service.search_items("")) == 2

    def test_search_bad_field(self, db_session):
        with pytest.raises(ValidationError):
            inventory_service.search_items("x", field="price")

    def test_summary(self, item_a, item_b):
        summary = inventory_service.get_inventory_summary()
        assert summary["item_count"] == 2
        assert summary["units_on_hand"] == "15"
        assert summary["inventory_value_cost_cents"] == 15 * 500
        assert summary["inventory_value_retail_cents"] == 10 * 1000 + 5 * 2000
        assert [row["name"] for row in summary["low_stock"]] == ["Item B"]
        assert summary["out_of_stock_count"] == 0

    def test_seed_default_items_is_idempotent(self, db_session):
        created = inventory_service.seed_default_items("admin")
        assert len(created) == 3
        assert inventory_service.seed_default_items("admin") == []
        assert db.session.query(StockItem).count() == 3
