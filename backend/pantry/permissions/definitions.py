# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "VIEW_CATALOG",
        "View Catalog",
        "View products, categories and providers",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create, edit, activate/deactivate and delete products",
        PermissionCategory.CATALOG,
    ),
    (
        "CREATE_PROVIDER",
        "Create Provider",
        "Add a provider to the organization",
        PermissionCategory.CATALOG,
    ),
    (
        "EDIT_PROVIDER",
        "Edit Provider",
        "Edit provider details and toggle provider active state",
        PermissionCategory.CATALOG,
    ),
    (
        "DELETE_PROVIDER",
        "Delete Provider",
        "Remove a provider from the organization",
        PermissionCategory.CATALOG,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_STOCK",
        "View Stock",
        "View stock levels, stock summary and movement history",
        PermissionCategory.INVENTORY,
    ),
    (
        "RECORD_STOCK_MOVEMENT",
        "Record Stock Movement",
        "Record stock entries (in) and exits (out)",
        PermissionCategory.INVENTORY,
    ),
]


# -- ORDERS --

ORDER_PERMISSIONS = [
    (
        "SUBMIT_ORDER",
        "Submit Order",
        "Submit weekly or urgent orders for a restaurant",
        PermissionCategory.ORDERS,
    ),
    (
        "VIEW_ALL_ORDERS",
        "View All Orders",
        "View every order of the organization, not only your own",
        PermissionCategory.ORDERS,
    ),
    (
        "FULFILL_ORDERS",
        "Fulfill Orders",
        "Mark order lines found, not found or substituted and reassign providers",
        PermissionCategory.ORDERS,
    ),
    (
        "MANAGE_ORDERS",
        "Manage Orders",
        "Advance order status (processing, completed, delivered)",
        PermissionCategory.ORDERS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "View organization staff",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create users, change roles and activate/deactivate accounts",
        PermissionCategory.USERS,
    ),
]


# -- ORGANIZATION --

ORGANIZATION_PERMISSIONS = [
    (
        "VIEW_SETTINGS",
        "View Settings",
        "View organization settings",
        PermissionCategory.ORGANIZATION,
    ),
    (
        "MANAGE_SETTINGS",
        "Manage Settings",
        "Edit organization settings",
        PermissionCategory.ORGANIZATION,
    ),
    (
        "MANAGE_INVITE_CODES",
        "Manage Invite Codes",
        "Create and list invite codes",
        PermissionCategory.ORGANIZATION,
    ),
    (
        "VIEW_DASHBOARD",
        "View Dashboard",
        "View organization rollups",
        PermissionCategory.ORGANIZATION,
    ),
]


PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + ORDER_PERMISSIONS
    + USER_PERMISSIONS
    + ORGANIZATION_PERMISSIONS
)
