# Overview: Service-layer operations for permission checks and security event logging.

"""
Permission Checking and Security Event Logging with Multi-Tenant Support

WHY: Enforce role-based access control and create an audit trail. Services
check permissions themselves (not only the route decorators) so that a
rejection is raised before any write, whatever the entry point (API, CLI,
tests).

MULTI-TENANT: Security events include org_id for tenant isolation.

DESIGN PRINCIPLES:
- Fail closed: deny by default, require an explicit grant in ROLE_PERMISSIONS
- Log denials only: permission grants are not logged
- One Actor per request, built once from the authenticated user
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import has_request_context, request

from ..errors import AuthorizationError
from ..extensions import db
from ..models import SecurityEvent, User
from ..permissions import resolve_role, permissions_for_role
from pantry.time_utils import utcnow


class PermissionDeniedError(AuthorizationError):
    """Raised when a user lacks a required permission."""
    pass


@dataclass(frozen=True)
class Actor:
    """
    The authenticated caller, as seen by business logic.

    Built once at the identity boundary; services never read role strings
    or organization ids off the User row directly.
    """
    user_id: int
    org_id: int
    name: str
    role: str
    can_admin: bool
    restaurant: str | None = None
    permissions: frozenset[str] = field(default_factory=frozenset)

    def has(self, permission_code: str) -> bool:
        return permission_code in self.permissions


def actor_from_user(user: User) -> Actor:
    resolved = resolve_role(user)
    return Actor(
        user_id=user.id,
        org_id=user.org_id,
        name=user.name,
        role=resolved.kind,
        can_admin=resolved.can_admin,
        restaurant=user.restaurant,
        permissions=frozenset(permissions_for_role(resolved)),
    )


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    org_id: int | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - INVITE_REDEMPTION_FAILED
    - CROSS_TENANT_ACCESS_DENIED
    - SELF_DEACTIVATION_DENIED
    """
    if has_request_context():
        resource = resource or request.path
        ip_address = ip_address or request.remote_addr
        user_agent = user_agent or request.headers.get("User-Agent")

    event = SecurityEvent(
        user_id=user_id,
        org_id=org_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_user_permissions(user: User) -> set[str]:
    """Permission codes granted to `user` by its role and capabilities."""
    return permissions_for_role(resolve_role(user))


def require_permission(actor: Actor, permission_code: str, resource: str | None = None) -> None:
    """
    Require the actor to hold `permission_code`, raise PermissionDeniedError if not.

    Denials are logged to security_events before raising.

    Usage:
        require_permission(actor, "CREATE_PROVIDER")
    """
    if actor.has(permission_code):
        return

    log_security_event(
        user_id=actor.user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Missing permission: {permission_code} (role={actor.role})",
        org_id=actor.org_id,
    )
    raise PermissionDeniedError(
        f"Permission denied: {permission_code}",
        required_permission=permission_code,
    )
