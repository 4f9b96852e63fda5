# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/pantry/routes/products.py
"""
Product catalog routes with multi-tenant support.

MULTI-TENANT: All product operations are scoped to the caller's organization.
The org_id is derived from g.org_id (set by @require_auth).

SECURITY: All routes require authentication.
- Read operations require VIEW_CATALOG permission
- Write operations require MANAGE_PRODUCTS permission (admins)

STOCK: stock_level is accepted on create only (recorded as an opening
movement). Afterwards it changes exclusively through /api/stock/movements.
"""
from flask import Blueprint, request, jsonify, g

from ..models import Product
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    parse_bool_arg,
)
from ..decorators import require_auth, require_permission

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "unit", "category", "description", "default_provider_id",
        "stock_level", "min_stock_alert", "max_stock", "is_active",
    }),
    required_on_create=frozenset({"name"}),
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_products():
    """
    List the organization's products sorted by name.

    Query params (all optional, combined with AND):
    - active: true/false/all
    - category: exact category or "all"
    - search: substring of name or category
    - stock_status: empty/low/ok/all
    """
    products = catalog_service.list_products(
        g.actor,
        active=parse_bool_arg(request.args.get("active"), "active"),
        category=request.args.get("category"),
        search=request.args.get("search"),
        stock_status=request.args.get("stock_status"),
    )
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@products_bp.get("/options")
@require_auth
@require_permission("VIEW_CATALOG")
def product_options():
    """Fixed option lists for product and provider forms."""
    return jsonify(catalog_service.catalog_options()), 200


@products_bp.get("/categories")
@require_auth
@require_permission("VIEW_CATALOG")
def product_categories():
    """Categories currently in use, for the filter dropdown."""
    return jsonify({"items": catalog_service.list_categories(g.actor)}), 200


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_product(product_id: int):
    product = catalog_service.get_product(g.actor, product_id)
    return jsonify(product.to_dict()), 200


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    """Create a product; a positive stock_level becomes an opening stock entry."""
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    created = catalog_service.create_product(g.actor, **patch)
    return jsonify(created.to_dict()), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    updated = catalog_service.update_product(g.actor, product_id, patch)
    return jsonify(updated.to_dict()), 200


@products_bp.post("/<int:product_id>/activate")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def activate_product(product_id: int):
    product = catalog_service.set_product_active(g.actor, product_id, True)
    return jsonify(product.to_dict()), 200


@products_bp.post("/<int:product_id>/deactivate")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def deactivate_product(product_id: int):
    product = catalog_service.set_product_active(g.actor, product_id, False)
    return jsonify(product.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    """
    Delete a product that was never ordered nor moved.

    Products with history return 409; deactivate them instead.
    """
    catalog_service.delete_product(g.actor, product_id)
    return jsonify({"ok": True}), 200
