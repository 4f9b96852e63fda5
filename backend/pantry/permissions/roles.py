# Overview: Role normalization and the role -> permission policy table.

"""
Roles

There are exactly three role kinds: restaurant, supplier and admin.
Stored users, invite registrations and admin edits may spell them in several
ways ("restaurante", "surtidor", "dispatcher", "administrador", ...); every
spelling is folded here and nowhere else.

A user may also carry capability flags. "admin" and "inventory.manage" grant
admin powers regardless of the base role.

All business code asks `resolve_role(user)` or `permissions_for(user)`; no
service compares role strings directly.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ValidationError


RESTAURANT = "restaurant"
SUPPLIER = "supplier"
ADMIN = "admin"
ROLE_KINDS = (RESTAURANT, SUPPLIER, ADMIN)

ROLE_ALIASES = {
    "restaurant": RESTAURANT,
    "restaurante": RESTAURANT,
    "sucursal": RESTAURANT,
    "supplier": SUPPLIER,
    "surtidor": SUPPLIER,
    "dispatcher": SUPPLIER,
    "proveedor": SUPPLIER,
    "admin": ADMIN,
    "administrador": ADMIN,
    "administrator": ADMIN,
}

ADMIN_CAPABILITIES = frozenset({"admin", "inventory.manage"})


ROLE_PERMISSIONS = {
    RESTAURANT: {
        "VIEW_CATALOG",
        "SUBMIT_ORDER",
        "VIEW_SETTINGS",
    },
    SUPPLIER: {
        "VIEW_CATALOG",
        "EDIT_PROVIDER",
        "VIEW_STOCK",
        "RECORD_STOCK_MOVEMENT",
        "VIEW_ALL_ORDERS",
        "FULFILL_ORDERS",
        "MANAGE_ORDERS",
        "VIEW_SETTINGS",
    },
    ADMIN: {
        "VIEW_CATALOG",
        "MANAGE_PRODUCTS",
        "CREATE_PROVIDER",
        "EDIT_PROVIDER",
        "DELETE_PROVIDER",
        "VIEW_STOCK",
        "RECORD_STOCK_MOVEMENT",
        "SUBMIT_ORDER",
        "VIEW_ALL_ORDERS",
        "FULFILL_ORDERS",
        "MANAGE_ORDERS",
        "VIEW_USERS",
        "MANAGE_USERS",
        "VIEW_SETTINGS",
        "MANAGE_SETTINGS",
        "MANAGE_INVITE_CODES",
        "VIEW_DASHBOARD",
    },
}


@dataclass(frozen=True)
class ResolvedRole:
    kind: str
    can_admin: bool


def normalize_role(raw: str | None) -> str:
    """Fold any accepted role spelling to one of ROLE_KINDS."""
    key = (raw or "").strip().lower()
    try:
        return ROLE_ALIASES[key]
    except KeyError:
        raise ValidationError(
            f"Unknown role '{raw}'. Expected one of: {', '.join(ROLE_KINDS)}"
        )


def normalize_capabilities(raw) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple, set)):
        raise ValidationError("capabilities must be a list of strings")
    return sorted({str(item).strip().lower() for item in raw if str(item).strip()})


def resolve_role(user) -> ResolvedRole:
    kind = normalize_role(user.role)
    capabilities = set(user.capabilities or [])
    can_admin = kind == ADMIN or bool(capabilities & ADMIN_CAPABILITIES)
    return ResolvedRole(kind=kind, can_admin=can_admin)


def permissions_for_role(resolved: ResolvedRole) -> set[str]:
    codes = set(ROLE_PERMISSIONS[resolved.kind])
    if resolved.can_admin:
        codes |= ROLE_PERMISSIONS[ADMIN]
    return codes
