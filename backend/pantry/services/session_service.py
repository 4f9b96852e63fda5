# Overview: Service-layer operations for session tokens; creation, validation and revocation.

"""
Bearer Sessions

WHY: The API is stateless between requests; a session row is what ties a
bearer token to a user and, through it, to one organization.

MULTI-TENANT: org_id is copied onto the session at login and never changes.
If the user's org_id no longer matches, the session is revoked and the user
has to log in again.

SECURITY:
- The client gets 32 random bytes (hex); only their SHA-256 digest is stored
- Absolute lifetime SESSION_ABSOLUTE_TIMEOUT_HOURS (default 24)
- Idle lifetime SESSION_IDLE_TIMEOUT_HOURS (default 2)
- Revoked on logout, password change (other sessions) and deactivation
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..errors import AuthorizationError, NotFoundError
from ..extensions import db
from ..models import SessionToken, User
from .permission_service import Actor, actor_from_user
from pantry.time_utils import utcnow


@dataclass
class SessionContext:
    """What require_auth learns from a valid token."""
    user: User
    session: SessionToken
    org_id: int
    actor: Actor


def _hours(key: str, default: int) -> timedelta:
    return timedelta(hours=current_app.config.get(key, default))


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    # Tokens carry 256 bits of entropy, so an unsalted fast digest is enough
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _live_session(token: str) -> SessionToken | None:
    if not token:
        return None
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .first()
    )


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Open a session for an active user of an active organization.

    Returns (session row, plaintext token); the plaintext is never stored.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if not user.is_active:
        raise AuthorizationError("User account is deactivated")
    if user.organization is None or not user.organization.is_active:
        raise AuthorizationError("Organization is not active")

    token = generate_token()
    opened = utcnow()
    session = SessionToken(
        user_id=user.id,
        org_id=user.org_id,
        token_hash=hash_token(token),
        created_at=opened,
        last_used_at=opened,
        expires_at=opened + _hours("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24),
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def _rejection_reason(session: SessionToken, now) -> str | None:
    if now - session.last_used_at > _hours("SESSION_IDLE_TIMEOUT_HOURS", 2):
        return "Idle timeout"
    user = session.user
    if user is None or not user.is_active:
        return "User account deactivated"
    # Tenant context is fixed at login; a user moved between orgs must log in again
    if user.org_id != session.org_id:
        return "Organization mismatch"
    if session.organization is None or not session.organization.is_active:
        return "Organization deactivated"
    return None


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token, or None when it cannot be used.

    Expired tokens are simply refused; idle ones, and tokens whose user or
    organization went inactive, are revoked on the spot. A valid token has
    its last_used_at bumped.
    """
    session = _live_session(token)
    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    reason = _rejection_reason(session, now)
    if reason is not None:
        _revoke(session, reason)
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(
        user=session.user,
        session=session,
        org_id=session.org_id,
        actor=actor_from_user(session.user),
    )


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """True if a live session was revoked."""
    session = _live_session(token)
    if session is None:
        return False
    _revoke(session, reason)
    return True


def revoke_all_user_sessions(
    user_id: int,
    reason: str = "Revoke all sessions",
    commit: bool = True,
    except_session_id: int | None = None,
) -> int:
    """
    Revoke every live session of a user, optionally sparing one.

    Pass commit=False to fold the revocation into the caller's transaction
    (deactivation). Returns how many sessions were revoked.
    """
    query = db.session.query(SessionToken).filter(
        SessionToken.user_id == user_id,
        SessionToken.is_revoked.is_(False),
    )
    if except_session_id is not None:
        query = query.filter(SessionToken.id != except_session_id)

    revoked_at = utcnow()
    sessions = query.all()
    for session in sessions:
        session.is_revoked = True
        session.revoked_at = revoked_at
        session.revoked_reason = reason

    if commit:
        db.session.commit()
    return len(sessions)
