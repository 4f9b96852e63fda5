# Overview: Time helpers; UTC storage, organization-local calendar days and ISO serialization.

"""
All timestamps are stored as naive UTC. Calendar questions ("which day was
this order placed", "which week does it belong to") are answered in the
organization's timezone, converted at the edge with to_local().
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    """Naive UTC 'now', the only form written to the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _aware(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def to_utc_z(dt: datetime | None) -> str | None:
    """ISO-8601 with a trailing Z, second precision; None passes through."""
    if dt is None:
        return None
    stamp = _aware(dt).astimezone(timezone.utc).replace(microsecond=0)
    return stamp.strftime("%Y-%m-%dT%H:%M:%SZ")


def to_local(dt: datetime, tz) -> datetime:
    """Stored (naive UTC) datetime as an aware datetime in `tz`."""
    return _aware(dt).astimezone(tz)


def start_of_week(day: date) -> date:
    """Sunday that opens the week containing `day`."""
    # weekday(): Monday=0 ... Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)
