# Overview: Permission lookups over the definition table.

from .definitions import PERMISSION_DEFINITIONS

_BY_CODE = {
    code: {"code": code, "name": name, "description": description, "category": category}
    for code, name, description, category in PERMISSION_DEFINITIONS
}


def get_all_permission_codes() -> list[str]:
    return list(_BY_CODE)


def get_permissions_by_category(category) -> list[tuple]:
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code) -> dict | None:
    definition = _BY_CODE.get(code)
    return dict(definition) if definition else None


def validate_permission_code(code) -> bool:
    return code in _BY_CODE


def describe_permissions(codes) -> list[dict]:
    """Definitions for `codes` in table order, unknown codes skipped."""
    wanted = set(codes)
    return [dict(_BY_CODE[code]) for code in _BY_CODE if code in wanted]
