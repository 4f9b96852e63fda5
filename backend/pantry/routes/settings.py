# Overview: Flask API routes for organization settings; parses input and returns JSON responses.

# backend/pantry/routes/settings.py
"""
Organization settings routes.

MULTI-TENANT: Settings are per organization (g.org_id). Every authenticated
user can read them; only admins (MANAGE_SETTINGS) can change them.
"""
from flask import Blueprint, request, jsonify, g

from ..services import settings_service
from ..decorators import require_auth, require_permission

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
@require_permission("VIEW_SETTINGS")
def get_settings():
    return jsonify(settings_service.get_settings(g.org_id)), 200


@settings_bp.put("")
@require_auth
@require_permission("MANAGE_SETTINGS")
def update_settings():
    """Partial update; unknown keys or invalid values reject the whole request."""
    data = request.get_json(silent=True) or {}
    return jsonify(settings_service.update_settings(g.actor, data)), 200
