# Overview: Pytest coverage for the fulfillment workflow; line transitions and supplier views.

"""
Fulfillment Workflow Tests

Verifies:
- pending -> found / not_found / substituted, and nothing else
- substitution needs a note; a blank note leaves the line pending
- per-line version checks (stale expected_version -> 409-style conflict)
- completed/delivered orders are frozen
- grouping by provider id with the unassigned bucket last
"""

import pytest

from pantry.errors import ConflictError, NotFoundError, ValidationError
from pantry.models import Order, OrderLine
from pantry.services import catalog_service, fulfillment_service, order_service
from pantry.services.fulfillment_service import UNASSIGNED
from pantry.services.order_service import InvalidTransitionError
from pantry.services.permission_service import PermissionDeniedError


def _submit(actor, *items, **kwargs):
    draft = order_service.build_draft(actor, list(items))
    return order_service.submit_order(actor, draft, **kwargs)


@pytest.fixture
def order(db_session, restaurant, pollo, tortillas, cebolla):
    return _submit(
        restaurant,
        {"product_id": pollo.id, "quantity": 3},
        {"product_id": tortillas.id, "quantity": 10},
        {"product_id": cebolla.id, "quantity": 2},
    )


class TestLineTransitions:
    def test_mark_found(self, db_session, supplier, order, pollo):
        line = fulfillment_service.mark_found(supplier, order.id, pollo.id)
        assert line.status == "found"
        assert line.updated_by_user_id == supplier.user_id
        assert line.updated_at is not None

        db_session.expire_all()
        stored = db_session.get(Order, order.id)
        assert stored.updated_by_user_id == supplier.user_id
        assert stored.status == "pending"

    def test_mark_not_found(self, db_session, supplier, order, tortillas):
        line = fulfillment_service.mark_not_found(supplier, order.id, tortillas.id)
        assert line.status == "not_found"

    def test_substitute_records_note(self, db_session, supplier, order, pollo):
        line = fulfillment_service.substitute(supplier, order.id, pollo.id, "  Muslos en lugar de pollo entero ")
        assert line.status == "substituted"
        assert line.substitution_note == "Muslos en lugar de pollo entero"

    @pytest.mark.parametrize("note", ["", "   ", None])
    def test_substitute_requires_note(self, db_session, supplier, order, pollo, note):
        with pytest.raises(ValidationError):
            fulfillment_service.substitute(supplier, order.id, pollo.id, note)
        db_session.expire_all()
        line = db_session.query(OrderLine).filter_by(order_id=order.id, product_id=pollo.id).one()
        assert line.status == "pending"
        assert line.substitution_note is None

    def test_resolved_lines_cannot_transition_again(self, db_session, supplier, order, pollo):
        fulfillment_service.mark_found(supplier, order.id, pollo.id)
        with pytest.raises(InvalidTransitionError):
            fulfillment_service.mark_not_found(supplier, order.id, pollo.id)
        with pytest.raises(InvalidTransitionError):
            fulfillment_service.substitute(supplier, order.id, pollo.id, "otro")

    def test_unknown_line(self, db_session, supplier, order, admin):
        stranger = catalog_service.create_product(admin, name="Cilantro")
        with pytest.raises(NotFoundError):
            fulfillment_service.mark_found(supplier, order.id, stranger.id)

    def test_restaurant_cannot_fulfill(self, db_session, restaurant, order, pollo):
        with pytest.raises(PermissionDeniedError):
            fulfillment_service.mark_found(restaurant, order.id, pollo.id)

    def test_frozen_after_completion(self, db_session, supplier, order, pollo, tortillas, cebolla, costco):
        for product in (pollo, tortillas, cebolla):
            fulfillment_service.mark_found(supplier, order.id, product.id)
        order_service.advance_order_status(supplier, order.id, "completed")

        with pytest.raises(InvalidTransitionError):
            fulfillment_service.reassign_provider(supplier, order.id, pollo.id, costco.id)


class TestVersionChecks:
    def test_stale_expected_version_conflicts(self, db_session, supplier, order, pollo):
        line = order.line_for(pollo.id)
        version = line.version_id

        fulfillment_service.mark_found(supplier, order.id, pollo.id, expected_version=version)

        with pytest.raises(ConflictError):
            fulfillment_service.reassign_provider(
                supplier, order.id, pollo.id, None, expected_version=version,
            )

    def test_different_lines_do_not_conflict(self, db_session, supplier, admin, order, pollo, tortillas):
        pollo_version = order.line_for(pollo.id).version_id
        tortillas_version = order.line_for(tortillas.id).version_id

        fulfillment_service.mark_found(supplier, order.id, pollo.id, expected_version=pollo_version)
        line = fulfillment_service.mark_not_found(
            admin, order.id, tortillas.id, expected_version=tortillas_version,
        )
        assert line.status == "not_found"

    def test_version_increments(self, db_session, supplier, order, pollo, costco):
        before = order.line_for(pollo.id).version_id
        line = fulfillment_service.reassign_provider(supplier, order.id, pollo.id, costco.id)
        assert line.version_id == before + 1


class TestReassignProvider:
    def test_reassign_in_any_state(self, db_session, supplier, order, pollo, costco):
        fulfillment_service.mark_found(supplier, order.id, pollo.id)
        line = fulfillment_service.reassign_provider(supplier, order.id, pollo.id, costco.id)
        assert line.status == "found"
        assert line.selected_provider_id == costco.id
        assert line.selected_provider_name == "Costco"

    def test_unassign(self, db_session, supplier, order, pollo):
        line = fulfillment_service.reassign_provider(supplier, order.id, pollo.id, None)
        assert line.selected_provider_id is None

    def test_foreign_provider_rejected(self, db_session, supplier, order, pollo, foreign_provider):
        with pytest.raises(NotFoundError):
            fulfillment_service.reassign_provider(supplier, order.id, pollo.id, foreign_provider.id)


class TestSupplierViews:
    def test_grouping_by_provider(self, db_session, supplier, restaurant, order, pollo, tortillas, cebolla, costco):
        urgent = _submit(restaurant, {"product_id": pollo.id, "quantity": 1}, is_urgent=True)
        fulfillment_service.mark_found(supplier, order.id, tortillas.id)

        buckets = fulfillment_service.pending_grouped_by_provider(supplier)
        assert [b.provider_name for b in buckets] == ["Walmart", UNASSIGNED]

        walmart_bucket = buckets[0]
        # urgent order first; resolved tortillas line left out
        assert [(i["order_id"], i["product_name"]) for i in walmart_bucket.items] == [
            (urgent.id, "Pollo entero"),
            (order.id, "Pollo entero"),
        ]
        assert walmart_bucket.items[0]["is_urgent"] is True
        assert walmart_bucket.items[1]["restaurant_name"] == "Sucursal Centro"
        assert walmart_bucket.to_dict()["count"] == 2

        assert [i["product_name"] for i in buckets[-1].items] == ["Cebolla"]

        fulfillment_service.reassign_provider(supplier, order.id, cebolla.id, costco.id)
        names = [b.provider_name for b in fulfillment_service.pending_grouped_by_provider(supplier)]
        assert names == ["Costco", "Walmart"]

    def test_buckets_keyed_by_id_use_current_name(self, db_session, admin, supplier, order, walmart):
        catalog_service.update_provider(admin, walmart.id, name="Walmart Supercenter")
        buckets = fulfillment_service.pending_grouped_by_provider(supplier)
        assert buckets[0].provider_id == walmart.id
        assert buckets[0].provider_name == "Walmart Supercenter"

    def test_non_pending_orders_are_skipped(self, db_session, supplier, order):
        order_service.advance_order_status(supplier, order.id, "processing")
        assert fulfillment_service.pending_grouped_by_provider(supplier) == []

    def test_urgent_orders(self, db_session, supplier, restaurant, order, pollo):
        urgent = _submit(restaurant, {"product_id": pollo.id, "quantity": 1}, is_urgent=True)
        fulfillment_service.mark_found(supplier, urgent.id, pollo.id)

        assert [o.id for o in fulfillment_service.urgent_orders(supplier)] == [urgent.id]

    def test_unassigned_line_items(self, db_session, supplier, order, cebolla):
        items = fulfillment_service.unassigned_line_items(supplier)
        assert [(i["order_id"], i["product_id"]) for i in items] == [(order.id, cebolla.id)]

    def test_restaurant_cannot_see_supplier_views(self, db_session, restaurant, order):
        with pytest.raises(PermissionDeniedError):
            fulfillment_service.pending_grouped_by_provider(restaurant)
