# Overview: Service-layer operations for organization settings; defaults, validation and lazy persistence.

"""
Organization Settings

Settings rows are created lazily: an organization that never edited its
settings has no rows and reads the defaults below. Writes store only the
keys that were sent; reads overlay stored values on the defaults.
"""

from __future__ import annotations

import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import OrganizationSetting
from .permission_service import Actor, require_permission


ORDER_FREQUENCIES = ("weekly", "biweekly", "monthly")

DEFAULT_SETTINGS = {
    "contact_email": "",
    "contact_phone": "",
    "address": "",
    "city": "",
    "country": "México",
    "timezone": "America/Mexico_City",
    "currency": "MXN",
    "order_frequency": "weekly",
    "default_order_time": "09:00",
    "minimum_order_value": 0,
    "urgent_notifications": True,
    "email_notifications": True,
    "auto_assign_providers": False,
}

TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def _as_bool(key, value):
    if isinstance(value, bool):
        return value
    raise ValidationError(f"{key} must be true or false")


def _as_text(key, value, max_len=255):
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if len(value) > max_len:
        raise ValidationError(f"{key} exceeds max length {max_len}")
    return value


def _validate_timezone(key, value):
    value = _as_text(key, value, 64)
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"{key} must be an IANA timezone name")
    return value


def _validate_currency(key, value):
    value = _as_text(key, value, 3).upper()
    if not CURRENCY_RE.match(value):
        raise ValidationError(f"{key} must be a 3-letter currency code")
    return value


def _validate_frequency(key, value):
    value = _as_text(key, value, 16).lower()
    if value not in ORDER_FREQUENCIES:
        raise ValidationError(f"{key} must be one of: {', '.join(ORDER_FREQUENCIES)}")
    return value


def _validate_time(key, value):
    value = _as_text(key, value, 5)
    if not TIME_RE.match(value):
        raise ValidationError(f"{key} must be HH:MM")
    return value


def _validate_min_order(key, value):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValidationError(f"{key} must be a number >= 0")
    return value


def _validate_email(key, value):
    value = _as_text(key, value)
    if value and "@" not in value:
        raise ValidationError(f"{key} must be an email address")
    return value.lower()


VALIDATORS = {
    "contact_email": _validate_email,
    "contact_phone": lambda k, v: _as_text(k, v, 32),
    "address": _as_text,
    "city": lambda k, v: _as_text(k, v, 120),
    "country": lambda k, v: _as_text(k, v, 120),
    "timezone": _validate_timezone,
    "currency": _validate_currency,
    "order_frequency": _validate_frequency,
    "default_order_time": _validate_time,
    "minimum_order_value": _validate_min_order,
    "urgent_notifications": _as_bool,
    "email_notifications": _as_bool,
    "auto_assign_providers": _as_bool,
}


def get_settings(org_id: int) -> dict:
    """Effective settings: defaults overlaid with whatever the org has stored."""
    settings = dict(DEFAULT_SETTINGS)
    rows = db.session.query(OrganizationSetting).filter_by(org_id=org_id).all()
    for row in rows:
        if row.key in settings:
            settings[row.key] = row.value
    return settings


def get_org_timezone(org_id: int) -> ZoneInfo:
    """The org's configured timezone, falling back to app config then UTC."""
    name = get_settings(org_id).get("timezone") or current_app.config.get("DEFAULT_TIMEZONE")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        current_app.logger.warning("Unknown timezone %r for org %s, using UTC", name, org_id)
        return ZoneInfo("UTC")


def update_settings(actor: Actor, changes: dict) -> dict:
    """
    Validate and persist a partial settings update for the actor's organization.

    Unknown keys are rejected; the whole update is validated before anything
    is written.
    """
    require_permission(actor, "MANAGE_SETTINGS")

    if not isinstance(changes, dict) or not changes:
        raise ValidationError("No settings provided")

    unknown = sorted(set(changes) - set(DEFAULT_SETTINGS))
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(unknown)}")

    cleaned = {key: VALIDATORS[key](key, value) for key, value in changes.items()}

    existing = {
        row.key: row
        for row in db.session.query(OrganizationSetting).filter(
            OrganizationSetting.org_id == actor.org_id,
            OrganizationSetting.key.in_(list(cleaned)),
        )
    }
    for key, value in cleaned.items():
        row = existing.get(key)
        if row is None:
            row = OrganizationSetting(org_id=actor.org_id, key=key)
            db.session.add(row)
        row.value = value
        row.updated_by_user_id = actor.user_id

    db.session.commit()
    return get_settings(actor.org_id)
