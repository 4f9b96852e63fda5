# Overview: Request payload validation; column-driven coercion plus quantity, id and flag parsers.

"""
Input validation shared by routes and services.

validate_payload() checks a JSON body against the target model's column
metadata (type, nullability, String length) and an explicit allowlist, so a
route never forwards a field the client is not allowed to set. The small
parse_* helpers cover values that do not map onto a column: stock
quantities, query-string flags and ids taken from request bodies.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Float, Integer, Numeric, String, Text

from .errors import ValidationError


# Upper bound for any single stock or order quantity; catches typos like 1e9
MAX_QUANTITY = 1_000_000

TRUE_WORDS = frozenset({"true", "1", "yes"})
FALSE_WORDS = frozenset({"false", "0", "no"})


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Which columns a client may write, and which a create must include."""
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = field(default_factory=frozenset)


def _as_number(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{name} must be a number")
    return number


def _as_integer(name: str, value: Any) -> int:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{name} must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    raise ValidationError(f"{name} must be a whole number")


def _as_flag(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_WORDS:
        return True
    if text in FALSE_WORDS:
        return False
    raise ValidationError(f"{name} must be true or false")


def _coerce(column, value: Any):
    kind = column.type
    if isinstance(kind, Integer):
        return _as_integer(column.key, value)
    if isinstance(kind, (Float, Numeric)):
        return _as_number(column.key, value)
    if isinstance(kind, Boolean):
        return _as_flag(column.key, value)
    if isinstance(kind, (String, Text)):
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValidationError(f"{column.key} must be text")
        text = str(value).strip()
        if not column.nullable and not text:
            raise ValidationError(f"{column.key} cannot be blank")
        if isinstance(kind, String) and kind.length and len(text) > kind.length:
            raise ValidationError(f"{column.key} exceeds max length {kind.length}")
        return text
    return value


def validate_payload(*, model, payload: Any, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Clean a JSON body for `model`.

    partial=False is create semantics: every field in required_on_create must
    be present. partial=True validates only the keys that were sent. Unknown
    or non-writable keys are rejected outright rather than ignored.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(policy.required_on_create - set(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}
    for key, raw in payload.items():
        if key not in policy.writable_fields or key not in columns:
            raise ValidationError(f"Field not allowed: {key}")
        column = columns[key]
        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _coerce(column, raw)
    return patch


def parse_positive_quantity(value: Any, name: str = "quantity") -> float:
    """Stock quantities: any number > 0; fractional units (kg, litro) allowed."""
    quantity = _as_number(name, value)
    if quantity <= 0:
        raise ValidationError(f"{name} must be greater than 0")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"{name} cannot exceed {MAX_QUANTITY}")
    return quantity


def parse_non_negative(value: Any, name: str) -> float:
    number = _as_number(name, value)
    if number < 0:
        raise ValidationError(f"{name} must be >= 0")
    if number > MAX_QUANTITY:
        raise ValidationError(f"{name} cannot exceed {MAX_QUANTITY}")
    return number


def enforce_rules_product(patch: dict) -> None:
    """Stock thresholds are non-negative, and max_stock cannot sit below the alert level."""
    for key in ("stock_level", "min_stock_alert", "max_stock"):
        if patch.get(key) is not None:
            patch[key] = parse_non_negative(patch[key], key)

    minimum = patch.get("min_stock_alert")
    maximum = patch.get("max_stock")
    if minimum is not None and maximum is not None and maximum < minimum:
        raise ValidationError("max_stock must be >= min_stock_alert")


def parse_bool_arg(value: Any, name: str) -> bool | None:
    """Query-string or body flag; missing, blank or "all" means no filter."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in ("", "all"):
        return None
    return _as_flag(name, value)


def parse_id(value: Any, name: str) -> int:
    """Positive integer id from JSON input ("12" is accepted, 12.5 is not)."""
    if value is None or value == "":
        raise ValidationError(f"{name} is required")
    try:
        parsed = _as_integer(name, value)
    except ValidationError:
        raise ValidationError(f"{name} must be an integer id")
    if parsed <= 0:
        raise ValidationError(f"{name} must be an integer id")
    return parsed


def search_term(value: Any) -> str | None:
    """Casefolded search text, or None when there is nothing to search for."""
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip().casefold()


def text_matches(term: str, *values) -> bool:
    """
    Case-insensitive substring match of `term` against any of `values`.

    Done in Python: SQLite LIKE folds ASCII only ("LÁCTEOS" would miss
    "Lácteos") and treats % and _ as wildcards.
    """
    return any(term in value.casefold() for value in values if value)
