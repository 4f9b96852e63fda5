# Overview: Service-layer operations for staff accounts; listing, provisioning, role and activation changes.

from __future__ import annotations

from ..errors import AuthorizationError, ValidationError
from ..extensions import db
from ..models import User
from ..permissions import normalize_role, normalize_capabilities
from ..validation import search_term, text_matches
from . import auth_service, session_service
from .permission_service import Actor, log_security_event, require_permission
from .tenant_service import get_in_org


def list_users(
    actor: Actor,
    *,
    role: str | None = None,
    include_inactive: bool = True,
    search: str | None = None,
) -> list[User]:
    """Users of the actor's organization, newest first."""
    require_permission(actor, "VIEW_USERS")

    query = db.session.query(User).filter(User.org_id == actor.org_id)
    if role:
        query = query.filter(User.role == normalize_role(role))
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    users = query.order_by(User.created_at.desc(), User.id.desc()).all()

    term = search_term(search)
    if term:
        users = [u for u in users if text_matches(term, u.name, u.email, u.restaurant)]
    return users


def create_staff_user(
    actor: Actor,
    *,
    name: str,
    email: str,
    password: str,
    role: str,
    restaurant: str | None = None,
    capabilities=None,
) -> User:
    """Admin-provisioned account in the admin's own organization."""
    require_permission(actor, "MANAGE_USERS")
    return auth_service.create_user(
        org_id=actor.org_id,
        name=name,
        email=email,
        password=password,
        role=role,
        restaurant=restaurant,
        capabilities=capabilities,
        created_by_user_id=actor.user_id,
    )


def update_user(
    actor: Actor,
    user_id: int,
    *,
    name: str | None = None,
    role: str | None = None,
    restaurant: str | None = None,
    capabilities=None,
    is_active: bool | None = None,
) -> User:
    """
    Admin edit of another user's name, role, restaurant label or capabilities.

    The restaurant label rule is re-checked against the resulting role:
    switching to restaurant needs a label, switching away clears it.
    """
    require_permission(actor, "MANAGE_USERS")
    user = get_in_org(User, user_id, actor.org_id, label="User")

    if is_active is not None and is_active != user.is_active:
        _guard_self_deactivation(actor, user, is_active)

    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationError("name cannot be empty")

    new_role = normalize_role(role) if role is not None else user.role
    label = restaurant if restaurant is not None else user.restaurant
    label = auth_service.validate_restaurant_label(new_role, label)

    if user.id == actor.user_id and new_role != user.role:
        raise AuthorizationError("You cannot change your own role")

    if name is not None:
        user.name = name
    user.role = new_role
    user.restaurant = label
    if capabilities is not None:
        user.capabilities = normalize_capabilities(capabilities)
    if is_active is not None and is_active != user.is_active:
        user.is_active = is_active
        if not is_active:
            session_service.revoke_all_user_sessions(user.id, reason="User deactivated", commit=False)

    db.session.commit()
    return user


def set_user_active(actor: Actor, user_id: int, active: bool) -> User:
    """
    Activate or deactivate a user.

    A user may never deactivate their own account (AuthorizationError, the
    record is left untouched). Deactivation revokes the user's sessions.
    """
    require_permission(actor, "MANAGE_USERS")
    user = get_in_org(User, user_id, actor.org_id, label="User")

    _guard_self_deactivation(actor, user, active)

    if user.is_active == active:
        return user

    user.is_active = active
    if not active:
        session_service.revoke_all_user_sessions(user.id, reason="User deactivated", commit=False)
    db.session.commit()
    return user


def update_profile(actor: Actor, *, name: str | None = None) -> User:
    """Self-service profile edit; only the display name is editable."""
    user = get_in_org(User, actor.user_id, actor.org_id, label="User")
    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationError("name cannot be empty")
        user.name = name
    db.session.commit()
    return user


def _guard_self_deactivation(actor: Actor, user: User, active: bool) -> None:
    if user.id == actor.user_id and not active:
        log_security_event(
            user_id=actor.user_id,
            event_type="SELF_DEACTIVATION_DENIED",
            success=False,
            action="DEACTIVATE_USER",
            reason="Users cannot deactivate their own account",
            org_id=actor.org_id,
        )
        raise AuthorizationError("You cannot deactivate your own account")
