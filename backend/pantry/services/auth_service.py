# Overview: Service-layer operations for auth; password hashing, account creation and login.

"""
Authentication Service with Multi-Tenant Support

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

MULTI-TENANT: Users belong to exactly one organization (org_id), fixed at
creation. Email is globally unique because login is by email alone.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app, has_app_context

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User, Organization
from ..permissions import normalize_role, normalize_capabilities
from ..permissions.roles import RESTAURANT
from pantry.time_utils import utcnow


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt (cost factor from BCRYPT_ROUNDS, default 12).

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12) if has_app_context() else 12
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash is treated as a
    mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not EMAIL_RE.match(value):
        raise ValidationError("A valid email is required")
    return value


def validate_restaurant_label(role: str, restaurant: str | None) -> str | None:
    """Restaurant label is required for restaurant users and dropped for everyone else."""
    if role == RESTAURANT:
        label = (restaurant or "").strip()
        if not label:
            raise ValidationError("restaurant is required for restaurant users")
        return label
    return None


def create_user(
    *,
    org_id: int,
    name: str,
    email: str,
    password: str,
    role: str,
    restaurant: str | None = None,
    capabilities=None,
    created_by_user_id: int | None = None,
    commit: bool = True,
) -> User:
    """
    Create new user with bcrypt password hashing.

    `role` accepts any alias known to permissions.roles and is stored
    normalized. Pass commit=False to create the user inside a larger
    transaction (invite redemption).

    Raises:
        ValidationError: bad name/email/role/restaurant, weak password
        NotFoundError: organization missing
        ConflictError: email already registered
    """
    org = db.session.query(Organization).filter_by(id=org_id).first()
    if not org:
        raise NotFoundError("Organization not found")
    if not org.is_active:
        raise ValidationError("Organization is not active")

    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    email = normalize_email(email)
    kind = normalize_role(role)
    label = validate_restaurant_label(kind, restaurant)

    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("Email is already registered")

    user = User(
        org_id=org_id,
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=kind,
        restaurant=label,
        capabilities=normalize_capabilities(capabilities),
        is_active=True,
        created_by_user_id=created_by_user_id,
    )

    db.session.add(user)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials are valid and both the user and its
    organization are active, None otherwise. Updates last_login_at.
    """
    if not email or not password:
        return None

    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()
    if not user:
        return None

    if not user.organization or not user.organization.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password or "", user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()
