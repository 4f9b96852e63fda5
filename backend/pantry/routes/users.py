# Overview: Flask API routes for staff accounts; listing, provisioning and activation.

# backend/pantry/routes/users.py
"""
User management routes.

MULTI-TENANT: Users are always looked up inside g.org_id; ids from another
organization return 404.

SECURITY:
- Read operations require VIEW_USERS
- Write operations require MANAGE_USERS
- Nobody can deactivate their own account (403, logged)
"""
from flask import Blueprint, request, jsonify, g

from ..models import User
from ..services import user_service
from ..services.tenant_service import get_in_org
from ..decorators import require_auth, require_permission
from ..errors import ValidationError
from ..validation import parse_bool_arg

users_bp = Blueprint("users", __name__, url_prefix="/api/users")

USER_UPDATE_FIELDS = {"name", "role", "restaurant", "capabilities", "is_active"}


@users_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_users():
    """
    Query params:
    - role: restaurant/supplier/admin (optional)
    - include_inactive: bool (default true)
    - search: substring of name, email or restaurant
    """
    include_inactive = parse_bool_arg(request.args.get("include_inactive"), "include_inactive")
    users = user_service.list_users(
        g.actor,
        role=request.args.get("role") or None,
        include_inactive=True if include_inactive is None else include_inactive,
        search=request.args.get("search"),
    )
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user():
    data = request.get_json(silent=True) or {}
    user = user_service.create_staff_user(
        g.actor,
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        role=data.get("role"),
        restaurant=data.get("restaurant"),
        capabilities=data.get("capabilities"),
    )
    return jsonify(user.to_dict()), 201


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission("VIEW_USERS")
def get_user(user_id: int):
    user = get_in_org(User, user_id, g.org_id, label="User")
    return jsonify(user.to_dict()), 200


@users_bp.put("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user(user_id: int):
    data = request.get_json(silent=True) or {}
    unknown = sorted(set(data) - USER_UPDATE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    user = user_service.update_user(
        g.actor,
        user_id,
        name=data.get("name"),
        role=data.get("role"),
        restaurant=data.get("restaurant"),
        capabilities=data.get("capabilities"),
        is_active=parse_bool_arg(data.get("is_active"), "is_active"),
    )
    return jsonify(user.to_dict()), 200


@users_bp.post("/<int:user_id>/activate")
@require_auth
@require_permission("MANAGE_USERS")
def activate_user(user_id: int):
    user = user_service.set_user_active(g.actor, user_id, True)
    return jsonify(user.to_dict()), 200


@users_bp.post("/<int:user_id>/deactivate")
@require_auth
@require_permission("MANAGE_USERS")
def deactivate_user(user_id: int):
    """Deactivate a user and revoke their sessions. Self-deactivation is refused."""
    user = user_service.set_user_active(g.actor, user_id, False)
    return jsonify(user.to_dict()), 200
