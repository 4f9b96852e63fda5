# Overview: Flask API routes for providers; parses input and returns JSON responses.

# backend/pantry/routes/providers.py
"""
Provider (supplier source) routes.

SECURITY:
- Listing requires VIEW_CATALOG (restaurants pick providers on their orders)
- Creating and deleting are admin-only (CREATE_PROVIDER, DELETE_PROVIDER)
- Editing and (de)activating is open to suppliers too (EDIT_PROVIDER)
"""
from flask import Blueprint, request, jsonify, g

from ..services import catalog_service
from ..errors import ValidationError
from ..validation import parse_bool_arg
from ..decorators import require_auth, require_permission

providers_bp = Blueprint("providers", __name__, url_prefix="/api/providers")

PROVIDER_FIELDS = {"name", "type", "description"}


def _provider_fields(data: dict) -> dict:
    unknown = sorted(set(data) - PROVIDER_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")
    return {
        "name": data.get("name"),
        "provider_type": data.get("type"),
        "description": data.get("description"),
    }


@providers_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_providers():
    """
    Query params:
    - include_inactive: bool (default true)
    - search: substring of the name
    - type: provider type key, e.g. supermercado
    """
    include_inactive = parse_bool_arg(request.args.get("include_inactive"), "include_inactive")
    providers = catalog_service.list_providers(
        g.actor,
        include_inactive=True if include_inactive is None else include_inactive,
        search=request.args.get("search"),
        provider_type=request.args.get("type") or None,
    )
    return jsonify({"items": [p.to_dict() for p in providers], "count": len(providers)}), 200


@providers_bp.get("/<int:provider_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_provider(provider_id: int):
    provider = catalog_service.get_provider(g.actor, provider_id)
    return jsonify(provider.to_dict()), 200


@providers_bp.post("")
@require_auth
@require_permission("CREATE_PROVIDER")
def create_provider():
    data = request.get_json(silent=True) or {}
    provider = catalog_service.create_provider(g.actor, **_provider_fields(data))
    return jsonify(provider.to_dict()), 201


@providers_bp.put("/<int:provider_id>")
@require_auth
@require_permission("EDIT_PROVIDER")
def update_provider(provider_id: int):
    data = request.get_json(silent=True) or {}
    provider = catalog_service.update_provider(g.actor, provider_id, **_provider_fields(data))
    return jsonify(provider.to_dict()), 200


@providers_bp.post("/<int:provider_id>/activate")
@require_auth
@require_permission("EDIT_PROVIDER")
def activate_provider(provider_id: int):
    provider = catalog_service.set_provider_active(g.actor, provider_id, True)
    return jsonify(provider.to_dict()), 200


@providers_bp.post("/<int:provider_id>/deactivate")
@require_auth
@require_permission("EDIT_PROVIDER")
def deactivate_provider(provider_id: int):
    provider = catalog_service.set_provider_active(g.actor, provider_id, False)
    return jsonify(provider.to_dict()), 200


@providers_bp.delete("/<int:provider_id>")
@require_auth
@require_permission("DELETE_PROVIDER")
def delete_provider(provider_id: int):
    """Products and order lines keep the provider's name but lose the link."""
    catalog_service.delete_provider(g.actor, provider_id)
    return jsonify({"ok": True}), 200
