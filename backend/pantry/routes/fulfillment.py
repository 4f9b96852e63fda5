# Overview: Flask API routes for fulfillment; supplier views and per-line resolution.

# backend/pantry/routes/fulfillment.py
"""
Fulfillment workflow routes (suppliers and admins).

Line items are addressed by (order_id, product_id). Every mutation accepts an
optional expected_version; a stale version returns 409 so a supplier never
silently overwrites another supplier's work on the same line.
"""
from flask import Blueprint, request, jsonify, g

from ..services import fulfillment_service
from ..services.order_service import parse_order_quantity
from ..validation import parse_id
from ..decorators import require_auth, require_permission

fulfillment_bp = Blueprint("fulfillment", __name__, url_prefix="/api/fulfillment")


def _expected_version(data: dict) -> int | None:
    value = data.get("expected_version")
    if value is None:
        return None
    return parse_order_quantity(value, "expected_version")


@fulfillment_bp.get("/by-provider")
@require_auth
@require_permission("VIEW_ALL_ORDERS")
def grouped_by_provider():
    """Pending line items grouped by provider; unassigned bucket last."""
    buckets = fulfillment_service.pending_grouped_by_provider(g.actor)
    return jsonify({"groups": [b.to_dict() for b in buckets]}), 200


@fulfillment_bp.get("/urgent")
@require_auth
@require_permission("VIEW_ALL_ORDERS")
def urgent():
    orders = fulfillment_service.urgent_orders(g.actor)
    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200


@fulfillment_bp.get("/unassigned")
@require_auth
@require_permission("VIEW_ALL_ORDERS")
def unassigned():
    items = fulfillment_service.unassigned_line_items(g.actor)
    return jsonify({"items": items, "count": len(items)}), 200


@fulfillment_bp.post("/orders/<int:order_id>/lines/<int:product_id>/found")
@require_auth
@require_permission("FULFILL_ORDERS")
def mark_found(order_id: int, product_id: int):
    data = request.get_json(silent=True) or {}
    line = fulfillment_service.mark_found(
        g.actor, order_id, product_id, expected_version=_expected_version(data),
    )
    return jsonify(line.to_dict()), 200


@fulfillment_bp.post("/orders/<int:order_id>/lines/<int:product_id>/not-found")
@require_auth
@require_permission("FULFILL_ORDERS")
def mark_not_found(order_id: int, product_id: int):
    data = request.get_json(silent=True) or {}
    line = fulfillment_service.mark_not_found(
        g.actor, order_id, product_id, expected_version=_expected_version(data),
    )
    return jsonify(line.to_dict()), 200


@fulfillment_bp.post("/orders/<int:order_id>/lines/<int:product_id>/substitute")
@require_auth
@require_permission("FULFILL_ORDERS")
def substitute(order_id: int, product_id: int):
    """Body: {"note": "what was delivered instead", "expected_version": int?}"""
    data = request.get_json(silent=True) or {}
    line = fulfillment_service.substitute(
        g.actor, order_id, product_id, data.get("note"),
        expected_version=_expected_version(data),
    )
    return jsonify(line.to_dict()), 200


@fulfillment_bp.put("/orders/<int:order_id>/lines/<int:product_id>/provider")
@require_auth
@require_permission("FULFILL_ORDERS")
def reassign_provider(order_id: int, product_id: int):
    """Body: {"provider_id": int | null, "expected_version": int?}; null unassigns."""
    data = request.get_json(silent=True) or {}
    provider_id = data.get("provider_id")
    line = fulfillment_service.reassign_provider(
        g.actor,
        order_id,
        product_id,
        parse_id(provider_id, "provider_id") if provider_id is not None else None,
        expected_version=_expected_version(data),
    )
    return jsonify(line.to_dict()), 200
