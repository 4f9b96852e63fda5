# Overview: Permission system package.
# Re-exports all public APIs for convenient imports.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CATALOG_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    ORDER_PERMISSIONS,
    USER_PERMISSIONS,
    ORGANIZATION_PERMISSIONS,
)
from .roles import (
    ROLE_KINDS,
    ROLE_PERMISSIONS,
    ResolvedRole,
    normalize_role,
    normalize_capabilities,
    resolve_role,
    permissions_for_role,
)
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
    describe_permissions,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "CATALOG_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "ORDER_PERMISSIONS",
    "USER_PERMISSIONS",
    "ORGANIZATION_PERMISSIONS",
    "ROLE_KINDS",
    "ROLE_PERMISSIONS",
    "ResolvedRole",
    "normalize_role",
    "normalize_capabilities",
    "resolve_role",
    "permissions_for_role",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "describe_permissions",
]
