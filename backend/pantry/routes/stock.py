# Overview: Flask API routes for stock movements; records entries/exits and reads the ledger.

# backend/pantry/routes/stock.py
"""
Stock ledger routes.

The ledger is append-only: there is no update or delete endpoint. Every
change of a product's stock level goes through POST /movements.
"""
from flask import Blueprint, request, jsonify, g

from ..services import stock_service
from ..validation import parse_bool_arg, parse_id
from ..decorators import require_auth, require_permission

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.post("/movements")
@require_auth
@require_permission("RECORD_STOCK_MOVEMENT")
def record_movement():
    """
    Record an entry ("in") or exit ("out").

    Body:
    - product_id: int
    - type: "in" | "out" (Spanish "entrada"/"salida" accepted)
    - quantity: number > 0
    - reason, notes: str (optional; reason defaults per type)
    - allow_partial: bool (optional) - clamp an oversized exit to the stock on hand

    Returns 409 with current_stock when an exit exceeds the stock on hand.
    """
    data = request.get_json(silent=True) or {}
    product, tx = stock_service.record_movement(
        g.actor,
        product_id=parse_id(data.get("product_id"), "product_id"),
        movement_type=data.get("type"),
        quantity=data.get("quantity"),
        reason=data.get("reason"),
        notes=data.get("notes"),
        allow_partial=bool(parse_bool_arg(data.get("allow_partial"), "allow_partial")),
    )
    return jsonify({"transaction": tx.to_dict(), "product": product.to_dict()}), 201


@stock_bp.get("/transactions")
@require_auth
@require_permission("VIEW_STOCK")
def list_transactions():
    """
    Ledger rows, newest first.

    Query params:
    - product_id: int (optional)
    - type: in/out (optional)
    - limit: int (default 100, max 500)
    - offset: int (default 0)
    """
    limit = min(max(request.args.get("limit", 100, type=int), 1), 500)
    offset = max(request.args.get("offset", 0, type=int), 0)
    items, total = stock_service.list_stock_transactions(
        g.actor,
        product_id=request.args.get("product_id", type=int),
        movement_type=request.args.get("type") or None,
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [tx.to_dict() for tx in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }), 200


@stock_bp.get("/summary")
@require_auth
@require_permission("VIEW_STOCK")
def summary():
    return jsonify(stock_service.stock_summary(g.actor)), 200


@stock_bp.get("/reasons")
@require_auth
@require_permission("VIEW_STOCK")
def reasons():
    return jsonify(stock_service.SUGGESTED_REASONS), 200
