# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/pantry/routes/auth.py
"""
Authentication API routes

- Login/logout with bearer session tokens
- Registration is only possible with a valid single-use invite code
- Self-service profile and password changes
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..services import tenant_service
from ..services import user_service
from ..services.permission_service import actor_from_user
from ..permissions import describe_permissions
from ..decorators import require_auth, bearer_token
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, session, token) -> dict:
    actor = actor_from_user(user)
    return {
        "user": user.to_dict(),
        "organization": user.organization.to_dict() if user.organization else None,
        "role": actor.role,
        "can_admin": actor.can_admin,
        "permissions": sorted(actor.permissions),
        "token": token,
        "expires_at": to_utc_z(session.expires_at),
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in the Authorization header (Bearer) for
    protected routes. Failed attempts are written to security_events.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email") or data.get("username")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    user = auth_service.authenticate(email, password)
    if not user:
        permission_service.log_security_event(
            user_id=None,
            event_type="LOGIN_FAILED",
            success=False,
            action="LOGIN",
            reason=f"Invalid credentials for {str(email).strip().lower()}",
        )
        return jsonify({"error": "Invalid credentials"}), 401

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    permission_service.log_security_event(
        user_id=user.id,
        event_type="LOGIN_SUCCESS",
        success=True,
        action="LOGIN",
        org_id=user.org_id,
    )
    return jsonify(_session_payload(user, session, token)), 200


@auth_bp.post("/register")
def register_route():
    """
    Register with an invite code.

    A new-organization code makes the registrant the founding admin of a
    fresh tenant; a branch code adds them to the inviting organization with
    the role given in the payload. The response carries a session token so
    the client is logged in straight away.
    """
    data = request.get_json(silent=True) or {}
    user = tenant_service.redeem_invite_code(
        code=data.get("invite_code") or data.get("code"),
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        role=data.get("role"),
        restaurant=data.get("restaurant"),
    )
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify(_session_payload(user, session, token)), 201


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the current session token."""
    session_service.revoke_session(bearer_token(), reason="User logout")
    return jsonify({"ok": True}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user, organization and effective permissions."""
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "organization": user.organization.to_dict() if user.organization else None,
        "role": g.actor.role,
        "can_admin": g.actor.can_admin,
        "permissions": sorted(g.actor.permissions),
        "permission_details": describe_permissions(g.actor.permissions),
    }), 200


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    data = request.get_json(silent=True) or {}
    user = user_service.update_profile(g.actor, name=data.get("name"))
    return jsonify(user.to_dict()), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change own password. Other sessions of the user are revoked; the
    session making the request stays valid.
    """
    data = request.get_json(silent=True) or {}
    auth_service.change_password(
        g.current_user,
        data.get("current_password"),
        data.get("new_password"),
    )

    revoked = session_service.revoke_all_user_sessions(
        g.current_user.id,
        reason="Password changed",
        except_session_id=g.session_context.session.id,
    )
    current_app.logger.info("User %s changed password, %s other sessions revoked", g.current_user.id, revoked)
    return jsonify({"ok": True, "revoked_sessions": revoked}), 200
