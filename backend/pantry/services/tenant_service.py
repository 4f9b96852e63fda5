"""
Multi-Tenant Service: organizations, invite codes and tenant scoping helpers

WHY: Every row belongs to one organization and cross-tenant access must be
explicitly denied. Onboarding (invite code redemption) is the only path
that creates organizations.

SECURITY INVARIANTS:
1. Every authenticated request carries an org_id from its session
2. Ids from client input are resolved with get_in_org(), never by id alone
3. Cross-tenant lookups are logged as security events and answered as 404
4. An invite code moves used=False -> used=True exactly once

USAGE:
    from pantry.services.tenant_service import get_in_org

    product = get_in_org(Product, product_id, actor.org_id, label="Product")
"""

from __future__ import annotations

import re
import secrets

from flask import current_app, g, has_request_context, request
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, PantryError, ValidationError
from ..extensions import db
from ..models import InviteCode, Organization, User
from ..permissions.roles import ADMIN
from . import auth_service
from .permission_service import Actor, log_security_event, require_permission
from pantry.time_utils import utcnow


CODE_RE = re.compile(r"^[a-z0-9][a-z0-9_-]{2,63}$")


def get_in_org(model, entity_id, org_id: int, label: str | None = None):
    """
    Load `model` by primary key, only if it belongs to `org_id`.

    Raises NotFoundError both when the row does not exist and when it belongs
    to another organization (the latter is also logged).
    """
    label = label or model.__name__
    entity = db.session.get(model, entity_id) if entity_id is not None else None

    if entity is None:
        raise NotFoundError(f"{label} not found")

    if entity.org_id != org_id:
        _log_cross_tenant_attempt(
            f"{label} {entity_id} belongs to org {entity.org_id}, not {org_id}",
            org_id=org_id,
        )
        raise NotFoundError(f"{label} not found")  # Don't reveal it exists in another org

    return entity


def validate_org_active(org_id: int) -> Organization:
    org = db.session.get(Organization, org_id)
    if not org:
        raise NotFoundError("Organization not found")
    if not org.is_active:
        raise ValidationError("Organization is not active")
    return org


def list_organizations() -> list[Organization]:
    return db.session.query(Organization).order_by(Organization.id.asc()).all()


# =============================================================================
# Invite codes
# =============================================================================

def normalize_code(code: str | None) -> str:
    """Invite codes are case-insensitive and stored lower-cased."""
    value = (code or "").strip().lower()
    if not value:
        raise ValidationError("Invite code is required")
    return value


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return slug[:40] or "org"


def create_invite_code(
    actor: Actor,
    *,
    code: str | None = None,
    organization_name: str | None = None,
    for_current_org: bool = False,
) -> InviteCode:
    """
    Create a single-use invite code.

    - for_current_org=False: redeeming the code creates a new organization
      called `organization_name`.
    - for_current_org=True: a branch/staff code; the redeemer joins the
      actor's organization. Code defaults to "<org code>-<random>".
    """
    require_permission(actor, "MANAGE_INVITE_CODES")

    target_org = None
    if for_current_org:
        target_org = validate_org_active(actor.org_id)
        organization_name = target_org.name
        if not code:
            code = f"{target_org.code or slugify(target_org.name)}-{secrets.token_hex(3)}"
    else:
        organization_name = (organization_name or "").strip()
        if not organization_name:
            raise ValidationError("organization_name is required")
        if not code:
            code = f"{slugify(organization_name)}-{secrets.token_hex(3)}"

    code = normalize_code(code)
    if not CODE_RE.match(code):
        raise ValidationError(
            "Invite code must be 3-64 characters of letters, digits, '-' or '_'"
        )

    if db.session.get(InviteCode, code) is not None:
        raise ConflictError(f"Invite code '{code}' already exists")

    invite = InviteCode(
        code=code,
        organization_name=organization_name,
        org_id=target_org.id if target_org else None,
        used=False,
        created_by_user_id=actor.user_id,
    )
    db.session.add(invite)
    db.session.commit()
    return invite


def list_invite_codes(actor: Actor) -> list[InviteCode]:
    """Codes created by anyone in the actor's organization or targeting it, newest first."""
    require_permission(actor, "MANAGE_INVITE_CODES")

    org_user_ids = db.session.query(User.id).filter(User.org_id == actor.org_id)
    return (
        db.session.query(InviteCode)
        .filter(
            db.or_(
                InviteCode.org_id == actor.org_id,
                InviteCode.created_by_user_id.in_(org_user_ids),
            )
        )
        .order_by(InviteCode.created_at.desc(), InviteCode.code.asc())
        .all()
    )


def check_invite_code(code: str) -> InviteCode:
    """Return the code if it can still be redeemed."""
    invite = db.session.get(InviteCode, normalize_code(code))
    if invite is None:
        raise NotFoundError("Invite code not found")
    if invite.used:
        raise ConflictError("Invite code has already been used")
    return invite


def redeem_invite_code(
    *,
    code: str,
    name: str,
    email: str,
    password: str,
    role: str | None = None,
    restaurant: str | None = None,
) -> User:
    """
    Register a new user with a single-use invite code.

    In one transaction: create the organization (first redemption of a
    non-branch code), create the user, and flip the code to used. The flip
    is a conditional UPDATE (used = false), so two concurrent redemptions of
    the same code cannot both succeed.

    The founding user of a new organization defaults to the admin role.

    Raises:
        NotFoundError: unknown code
        ConflictError: code already used, or email already registered
        ValidationError: bad registration fields
    """
    normalized = (code or "").strip().lower()

    try:
        invite = check_invite_code(normalized)

        if invite.org_id is not None:
            org = validate_org_active(invite.org_id)
            if not role:
                raise ValidationError("role is required")
        else:
            org = Organization(name=invite.organization_name, code=invite.code, is_active=True)
            db.session.add(org)
            db.session.flush()
            role = role or ADMIN

        user = auth_service.create_user(
            org_id=org.id,
            name=name,
            email=email,
            password=password,
            role=role,
            restaurant=restaurant,
            commit=False,
        )

        claimed = (
            db.session.query(InviteCode)
            .filter(InviteCode.code == invite.code, InviteCode.used.is_(False))
            .update(
                {"used": True, "used_by_user_id": user.id, "used_at": utcnow()},
                synchronize_session=False,
            )
        )
        if claimed != 1:
            raise ConflictError("Invite code has already been used")

        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Registration conflicts with an existing account") from exc
    except PantryError as exc:
        db.session.rollback()
        if isinstance(exc, (NotFoundError, ConflictError)):
            log_security_event(
                user_id=None,
                event_type="INVITE_REDEMPTION_FAILED",
                success=False,
                action="REDEEM_INVITE_CODE",
                reason=f"{normalized or '<blank>'}: {exc.message}",
            )
        raise

    db.session.refresh(invite)
    current_app.logger.info(
        "Invite code %s redeemed by user %s (org %s)", invite.code, user.id, org.id
    )
    return user


def _log_cross_tenant_attempt(reason: str, org_id: int | None = None) -> None:
    """
    Log a cross-tenant access attempt as a security event.

    SECURITY: Critical audit trail for detecting unauthorized access attempts.
    """
    user_id = None
    if has_request_context():
        actor = getattr(g, "actor", None)
        user_id = actor.user_id if actor else None

    log_security_event(
        user_id=user_id,
        event_type="CROSS_TENANT_ACCESS_DENIED",
        success=False,
        action=request.method if has_request_context() else None,
        reason=reason,
        org_id=org_id,
    )
