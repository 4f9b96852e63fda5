# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .services import permission_service, session_service
from .services.permission_service import PermissionDeniedError


def bearer_token() -> str | None:
    """Token from `Authorization: Bearer <token>`, or None."""
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer":
        return None
    return token.strip() or None


def require_auth(f):
    """
    Resolve the bearer token into a tenant-scoped caller.

    MULTI-TENANT: On success the route sees
    - g.current_user: the User row
    - g.org_id: the organization fixed on the session at login
    - g.actor: the Actor handed to every service call
    - g.session_context: the SessionContext (used to keep the current
      session alive on password change)

    Anything else (missing header, unknown, expired, revoked or idle token,
    deactivated user or organization) answers 401.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if context is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.session_context = context
        g.current_user = context.user
        g.org_id = context.org_id
        g.actor = context.actor
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Reject the request with 403 unless the caller holds `permission_code`.

    Must sit below @require_auth. Services check again on their own; this
    one fails fast, before the body is parsed, and the denial is still
    written to security_events.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = getattr(g, "actor", None)
            if actor is None:
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_permission(actor, permission_code, resource=request.path)
            except PermissionDeniedError as exc:
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": exc.message,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
