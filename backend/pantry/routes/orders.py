# Overview: Flask API routes for orders; draft preview, submission, history and status changes.

# backend/pantry/routes/orders.py
"""
Order routes.

Restaurant users submit orders and read their own history. Suppliers and
admins (VIEW_ALL_ORDERS) see every order of the organization and advance
their overall status (MANAGE_ORDERS).

Drafts live on the client; POST /preview runs the same validation and
totalling as submission without writing anything.
"""
from flask import Blueprint, request, jsonify, g

from ..services import order_service
from ..validation import parse_bool_arg
from ..decorators import require_auth, require_permission

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _expected_version(data: dict) -> int | None:
    value = data.get("expected_version")
    if value is None:
        return None
    return order_service.parse_order_quantity(value, "expected_version")


@orders_bp.post("/preview")
@require_auth
@require_permission("SUBMIT_ORDER")
def preview_order():
    data = request.get_json(silent=True) or {}
    draft = order_service.build_draft(g.actor, data.get("items"))
    return jsonify(draft.to_dict()), 200


@orders_bp.post("")
@require_auth
@require_permission("SUBMIT_ORDER")
def submit_order():
    """
    Submit an order.

    Body:
    - items: [{"product_id": int, "quantity": int, "provider_id": int?}, ...]
    - is_urgent: bool (default false)
    - week_of: YYYY-MM-DD (optional, normalized to the Sunday of that week)
    - notes: str (optional)

    An empty item list is rejected with 400 and nothing is stored.
    """
    data = request.get_json(silent=True) or {}
    draft = order_service.build_draft(g.actor, data.get("items"))
    order = order_service.submit_order(
        g.actor,
        draft,
        is_urgent=bool(parse_bool_arg(data.get("is_urgent"), "is_urgent")),
        week_of=data.get("week_of"),
        notes=data.get("notes"),
    )
    return jsonify(order.to_dict()), 201


@orders_bp.get("/mine")
@require_auth
def my_orders():
    """The caller's own order history, newest first."""
    orders = order_service.order_history(g.actor)
    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200


@orders_bp.get("/restaurant/<int:user_id>")
@require_auth
@require_permission("VIEW_ALL_ORDERS")
def restaurant_orders(user_id: int):
    orders = order_service.order_history(g.actor, restaurant_id=user_id)
    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200


@orders_bp.get("")
@require_auth
@require_permission("VIEW_ALL_ORDERS")
def list_orders():
    """
    Query params:
    - status: pending/processing/completed/delivered (optional)
    - urgent: bool (optional)
    - limit: int (default 100, max 500), offset: int (default 0)
    """
    limit = min(max(request.args.get("limit", 100, type=int), 1), 500)
    offset = max(request.args.get("offset", 0, type=int), 0)
    items, total = order_service.list_orders(
        g.actor,
        status=request.args.get("status") or None,
        is_urgent=parse_bool_arg(request.args.get("urgent"), "urgent"),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [o.to_dict() for o in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }), 200


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order(order_id: int):
    order = order_service.get_order(g.actor, order_id)
    return jsonify(order.to_dict()), 200


@orders_bp.post("/<int:order_id>/status")
@require_auth
@require_permission("MANAGE_ORDERS")
def advance_status(order_id: int):
    """Body: {"status": "...", "expected_version": int?}"""
    data = request.get_json(silent=True) or {}
    order = order_service.advance_order_status(
        g.actor,
        order_id,
        data.get("status"),
        expected_version=_expected_version(data),
    )
    return jsonify(order.to_dict()), 200
