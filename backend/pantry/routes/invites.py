# Overview: Flask API routes for invite codes; creation, listing and public pre-check.

# backend/pantry/routes/invites.py
"""
Invite code routes.

MULTI-TENANT: Listing shows only codes created by, or targeting, the
caller's organization. The public check endpoint reveals nothing beyond
whether a code can still be redeemed and which organization it names.
"""
from flask import Blueprint, request, jsonify, g

from ..services import tenant_service
from ..decorators import require_auth, require_permission
from ..validation import parse_bool_arg

invites_bp = Blueprint("invites", __name__, url_prefix="/api/invites")


@invites_bp.get("")
@require_auth
@require_permission("MANAGE_INVITE_CODES")
def list_invites():
    codes = tenant_service.list_invite_codes(g.actor)
    return jsonify({"items": [c.to_dict() for c in codes], "count": len(codes)}), 200


@invites_bp.post("")
@require_auth
@require_permission("MANAGE_INVITE_CODES")
def create_invite():
    """
    Create a single-use invite code.

    Body:
    - code: str (optional) - generated when omitted
    - organization_name: str - required for new-organization codes
    - for_current_org: bool (default false) - branch code for the caller's org
    """
    data = request.get_json(silent=True) or {}
    invite = tenant_service.create_invite_code(
        g.actor,
        code=data.get("code"),
        organization_name=data.get("organization_name"),
        for_current_org=bool(parse_bool_arg(data.get("for_current_org"), "for_current_org")),
    )
    return jsonify(invite.to_dict()), 201


@invites_bp.get("/<code>")
def check_invite(code: str):
    """Pre-registration check; 404 unknown, 409 already used."""
    invite = tenant_service.check_invite_code(code)
    return jsonify({
        "code": invite.code,
        "organization_name": invite.organization_name,
        "joins_existing_organization": invite.org_id is not None,
    }), 200
