# Overview: Pytest coverage for the stock ledger; movements, clamping, replay and status.

"""
Stock Ledger Tests

Verifies:
1. Entries and exits append one ledger row and move the cached level
2. Exits larger than the stock on hand are refused unless allow_partial
3. Validation failures leave both the ledger and the product untouched
4. Random sequences follow in/clamped-out arithmetic and replay to the cached level
5. Status is derived from (level, min_stock_alert) on every read
6. Status never moves backward as the level rises
"""

import random

import pytest

from pantry.errors import NotFoundError, ValidationError
from pantry.models import StockTransaction
from pantry.services import stock_service
from pantry.services.permission_service import PermissionDeniedError
from pantry.services.stock_service import InsufficientStockError


def _ledger(db_session, product_id):
    return (
        db_session.query(StockTransaction)
        .filter_by(product_id=product_id)
        .order_by(StockTransaction.id.asc())
        .all()
    )


class TestStockStatus:
    @pytest.mark.parametrize(
        "level,minimum,expected",
        [
            (0, 5, "empty"),
            (0, 0, "empty"),
            (3, 5, "low"),
            (5, 5, "low"),
            (5.5, 5, "ok"),
            (1, 0, "ok"),
            (None, None, "empty"),
        ],
    )
    def test_stock_status(self, level, minimum, expected):
        assert stock_service.stock_status(level, minimum) == expected

    @pytest.mark.parametrize("minimum", [0, 0.5, 1, 5, 12.25, None])
    def test_status_never_drops_as_level_rises(self, minimum):
        rank = {"empty": 0, "low": 1, "ok": 2}
        levels = sorted({0, 0.25, 0.5, 1, 4.99, 5, 5.01, 12.25, 12.5, 20, 1000}
                        | {round(i * 0.1, 1) for i in range(150)})

        ranks = [rank[stock_service.stock_status(level, minimum)] for level in levels]

        assert all(a <= b for a, b in zip(ranks, ranks[1:]))
        assert ranks[0] == rank["empty"]
        assert ranks[-1] == rank["ok"]

    def test_apply_movement_clamps_out_at_zero(self):
        assert stock_service.apply_movement(3, "out", 5) == 0
        assert stock_service.apply_movement(3, "in", 0.5) == 3.5

    def test_fractional_quantities_do_not_accumulate_noise(self):
        level = 0.0
        for _ in range(3):
            level = stock_service.apply_movement(level, "in", 0.1)
        assert level == 0.3

    def test_spanish_movement_aliases(self):
        assert stock_service.normalize_movement_type("Entrada") == "in"
        assert stock_service.normalize_movement_type("salida") == "out"
        with pytest.raises(ValidationError):
            stock_service.normalize_movement_type("transfer")


class TestRecordMovement:
    def test_opening_stock_is_a_ledger_entry(self, db_session, pollo):
        rows = _ledger(db_session, pollo.id)
        assert len(rows) == 1
        assert rows[0].movement_type == "in"
        assert rows[0].quantity == 20
        assert rows[0].previous_stock == 0
        assert rows[0].new_stock == 20
        assert rows[0].reason == "Inventario inicial"

    def test_in_then_out(self, db_session, supplier, pollo):
        product, tx = stock_service.record_movement(supplier, pollo.id, "in", 10, reason="Compra/Recepción")
        assert product.stock_level == 30
        assert tx.previous_stock == 20 and tx.new_stock == 30
        assert tx.actor_user_id == supplier.user_id
        assert tx.actor_name == supplier.name

        product, tx = stock_service.record_movement(supplier, pollo.id, "out", 12.5)
        assert product.stock_level == 17.5
        assert tx.reason == "Salida de inventario"
        assert product.last_restock_at is not None

    def test_out_larger_than_stock_is_refused(self, db_session, supplier, pollo):
        with pytest.raises(InsufficientStockError) as exc:
            stock_service.record_movement(supplier, pollo.id, "out", 25)

        assert exc.value.details["current_stock"] == 20
        assert exc.value.details["requested"] == 25
        db_session.expire_all()
        assert db_session.get(type(pollo), pollo.id).stock_level == 20
        assert len(_ledger(db_session, pollo.id)) == 1

    def test_out_with_allow_partial_clamps_to_zero(self, db_session, supplier, pollo):
        product, tx = stock_service.record_movement(supplier, pollo.id, "out", 25, allow_partial=True)
        assert product.stock_level == 0
        assert tx.new_stock == 0
        assert stock_service.stock_status(product.stock_level, product.min_stock_alert) == "empty"

    @pytest.mark.parametrize("quantity", [0, -1, "abc", None, True, float("nan")])
    def test_invalid_quantity_changes_nothing(self, db_session, supplier, pollo, quantity):
        with pytest.raises(ValidationError):
            stock_service.record_movement(supplier, pollo.id, "in", quantity)
        db_session.expire_all()
        assert db_session.get(type(pollo), pollo.id).stock_level == 20
        assert len(_ledger(db_session, pollo.id)) == 1

    def test_unknown_type_is_rejected(self, db_session, supplier, pollo):
        with pytest.raises(ValidationError):
            stock_service.record_movement(supplier, pollo.id, "sideways", 1)

    def test_missing_product(self, db_session, supplier):
        with pytest.raises(NotFoundError):
            stock_service.record_movement(supplier, 99999, "in", 1)

    def test_restaurant_cannot_record_movements(self, db_session, restaurant, pollo):
        with pytest.raises(PermissionDeniedError):
            stock_service.record_movement(restaurant, pollo.id, "in", 1)

    def test_low_stock_transition(self, db_session, supplier, pollo):
        product, _ = stock_service.record_movement(supplier, pollo.id, "out", 15)
        assert product.stock_level == 5
        assert stock_service.stock_status(product.stock_level, product.min_stock_alert) == "low"
        assert product.to_dict()["stock_status"] == "low"


class TestLedgerReplay:
    def test_random_sequences_replay_to_cached_level(self, db_session, supplier, pollo):
        rng = random.Random(20261019)
        expected = 20.0
        for _ in range(60):
            movement_type = rng.choice(["in", "out"])
            quantity = round(rng.uniform(0.25, 15), 2)
            try:
                product, tx = stock_service.record_movement(supplier, pollo.id, movement_type, quantity)
            except InsufficientStockError:
                product, tx = stock_service.record_movement(
                    supplier, pollo.id, movement_type, quantity, allow_partial=True,
                )

            previous = expected
            if movement_type == "in":
                expected = expected + quantity
            else:
                expected = max(0.0, expected - quantity)
            assert tx.previous_stock == pytest.approx(previous, abs=1e-4)
            assert tx.new_stock == pytest.approx(expected, abs=1e-4)
            assert product.stock_level == pytest.approx(expected, abs=1e-4)

        db_session.expire_all()
        product = db_session.get(type(pollo), pollo.id)
        assert product.stock_level >= 0
        assert product.stock_level == pytest.approx(expected, abs=1e-4)
        assert stock_service.replay_stock_level(pollo.id) == pytest.approx(product.stock_level)
        assert stock_service.verify_stock_levels() == []

        rows = _ledger(db_session, pollo.id)
        for previous, current in zip(rows, rows[1:]):
            assert current.previous_stock == pytest.approx(previous.new_stock)

    def test_verify_reports_tampered_cache(self, db_session, pollo):
        pollo.stock_level = 999
        db_session.commit()

        mismatches = stock_service.verify_stock_levels(org_id=pollo.org_id)
        assert len(mismatches) == 1
        assert mismatches[0]["product_id"] == pollo.id
        assert mismatches[0]["replayed"] == 20


class TestLedgerQueries:
    def test_transactions_newest_first(self, db_session, supplier, pollo, tortillas):
        stock_service.record_movement(supplier, pollo.id, "in", 1)
        stock_service.record_movement(supplier, tortillas.id, "out", 2)

        items, total = stock_service.list_stock_transactions(supplier)
        assert total == 4
        assert items[0].product_id == tortillas.id
        assert items[0].movement_type == "out"

        items, total = stock_service.list_stock_transactions(supplier, product_id=pollo.id)
        assert total == 2
        assert {tx.product_id for tx in items} == {pollo.id}

        items, total = stock_service.list_stock_transactions(supplier, movement_type="out")
        assert total == 1

    def test_summary_counts_active_products(self, db_session, supplier, pollo, tortillas, cebolla):
        stock_service.record_movement(supplier, tortillas.id, "out", 45)
        summary = stock_service.stock_summary(supplier)
        assert summary == {"total": 3, "ok": 1, "low": 1, "empty": 1}
