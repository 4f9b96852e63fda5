# Overview: Pytest coverage for role folding, capability flags, permissions and user management.

from types import SimpleNamespace

import pytest

from pantry.errors import AuthorizationError, ConflictError, ValidationError
from pantry.models import SecurityEvent, SessionToken
from pantry.permissions import (
    PermissionCategory,
    ROLE_PERMISSIONS,
    describe_permissions,
    get_all_permission_codes,
    get_permission_definition,
    get_permissions_by_category,
    normalize_capabilities,
    normalize_role,
    permissions_for_role,
    resolve_role,
    validate_permission_code,
)
from pantry.services import session_service, user_service
from pantry.services.permission_service import (
    PermissionDeniedError,
    actor_from_user,
    require_permission,
)
from pantry.services.auth_service import authenticate


def _user(role, capabilities=None):
    return SimpleNamespace(role=role, capabilities=capabilities)


class TestRoleFolding:
    @pytest.mark.parametrize("raw, expected", [
        ("restaurant", "restaurant"),
        ("Restaurante", "restaurant"),
        ("sucursal", "restaurant"),
        ("surtidor", "supplier"),
        ("dispatcher", "supplier"),
        (" PROVEEDOR ", "supplier"),
        ("administrador", "admin"),
        ("Admin", "admin"),
    ])
    def test_aliases(self, raw, expected):
        assert normalize_role(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "chef", "superuser"])
    def test_unknown_role(self, raw):
        with pytest.raises(ValidationError):
            normalize_role(raw)

    def test_capabilities_normalized(self):
        assert normalize_capabilities(None) == []
        assert normalize_capabilities("Admin") == ["admin"]
        assert normalize_capabilities(["inventory.manage", " ", "ADMIN", "admin"]) == ["admin", "inventory.manage"]
        with pytest.raises(ValidationError):
            normalize_capabilities(42)


class TestResolveRole:
    def test_plain_roles(self):
        assert resolve_role(_user("restaurante")).kind == "restaurant"
        assert resolve_role(_user("restaurant")).can_admin is False
        assert resolve_role(_user("administrador")).can_admin is True

    @pytest.mark.parametrize("capability", ["admin", "inventory.manage"])
    def test_capability_grants_admin(self, capability):
        resolved = resolve_role(_user("dispatcher", [capability]))
        assert resolved.kind == "supplier"
        assert resolved.can_admin is True
        assert permissions_for_role(resolved) == ROLE_PERMISSIONS["supplier"] | ROLE_PERMISSIONS["admin"]

    def test_unrelated_capability_changes_nothing(self):
        resolved = resolve_role(_user("restaurant", ["reports.view"]))
        assert resolved.can_admin is False
        assert permissions_for_role(resolved) == ROLE_PERMISSIONS["restaurant"]


class TestPermissionMatrix:
    @pytest.mark.parametrize("role, allowed, denied", [
        ("restaurant", {"VIEW_CATALOG", "SUBMIT_ORDER"}, {"VIEW_STOCK", "VIEW_ALL_ORDERS", "VIEW_DASHBOARD", "MANAGE_USERS"}),
        ("supplier", {"VIEW_STOCK", "RECORD_STOCK_MOVEMENT", "FULFILL_ORDERS", "EDIT_PROVIDER"},
         {"CREATE_PROVIDER", "DELETE_PROVIDER", "MANAGE_PRODUCTS", "VIEW_DASHBOARD", "SUBMIT_ORDER"}),
        ("admin", {"MANAGE_PRODUCTS", "DELETE_PROVIDER", "MANAGE_INVITE_CODES", "VIEW_DASHBOARD"}, set()),
    ])
    def test_role_permissions(self, role, allowed, denied):
        codes = permissions_for_role(resolve_role(_user(role)))
        assert allowed <= codes
        assert not (denied & codes)

    def test_every_granted_code_is_defined(self):
        defined = set(get_all_permission_codes())
        for codes in ROLE_PERMISSIONS.values():
            assert codes <= defined

    def test_admin_holds_every_permission(self):
        assert ROLE_PERMISSIONS["admin"] == set(get_all_permission_codes())

    def test_definition_lookup(self):
        definition = get_permission_definition("RECORD_STOCK_MOVEMENT")
        assert definition["category"] == PermissionCategory.INVENTORY
        assert get_permission_definition("LAUNCH_ROCKETS") is None
        assert validate_permission_code("VIEW_CATALOG")
        assert not validate_permission_code("view_catalog")
        codes = [perm[0] for perm in get_permissions_by_category(PermissionCategory.CATALOG)]
        assert "DELETE_PROVIDER" in codes

    def test_describe_permissions(self):
        details = describe_permissions({"VIEW_DASHBOARD", "VIEW_CATALOG", "NOT_A_CODE"})
        assert [d["code"] for d in details] == ["VIEW_CATALOG", "VIEW_DASHBOARD"]
        assert details[0]["category"] == PermissionCategory.CATALOG

    def test_denial_is_logged(self, db_session, restaurant):
        with pytest.raises(PermissionDeniedError):
            require_permission(restaurant, "VIEW_STOCK", resource="/api/stock/summary")

        event = db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert event.user_id == restaurant.user_id
        assert event.org_id == restaurant.org_id
        assert event.action == "VIEW_STOCK"
        assert event.resource == "/api/stock/summary"


class TestUserManagement:
    def test_create_staff_user(self, db_session, admin, org_a):
        user = user_service.create_staff_user(
            admin, name="Sofía", email="Sofia@Tacos.mx", password="Password123!",
            role="restaurante", restaurant="Sucursal Sur",
        )
        assert user.org_id == org_a.id
        assert user.email == "sofia@tacos.mx"
        assert user.role == "restaurant"
        assert user.created_by_user_id == admin.user_id

    def test_restaurant_label_dropped_for_other_roles(self, db_session, admin):
        user = user_service.create_staff_user(
            admin, name="Raúl", email="raul@tacos.mx", password="Password123!",
            role="surtidor", restaurant="Ignorado",
        )
        assert user.restaurant is None

    def test_duplicate_email(self, db_session, admin, supplier_a):
        with pytest.raises(ConflictError):
            user_service.create_staff_user(
                admin, name="Otro", email=supplier_a.email.upper(), password="Password123!", role="supplier",
            )

    def test_supplier_cannot_manage_users(self, db_session, supplier):
        with pytest.raises(PermissionDeniedError):
            user_service.create_staff_user(
                supplier, name="X", email="x@tacos.mx", password="Password123!", role="supplier",
            )

    def test_switch_to_restaurant_needs_label(self, db_session, admin, supplier_a):
        with pytest.raises(ValidationError):
            user_service.update_user(admin, supplier_a.id, role="restaurant")

        user = user_service.update_user(admin, supplier_a.id, role="restaurant", restaurant="Sucursal Sur")
        assert user.role == "restaurant"
        assert user.restaurant == "Sucursal Sur"

        user = user_service.update_user(admin, supplier_a.id, role="supplier")
        assert user.restaurant is None

    def test_capability_promotes_to_admin(self, db_session, admin, supplier_a):
        user = user_service.update_user(admin, supplier_a.id, capabilities=["inventory.manage"])
        assert actor_from_user(user).can_admin is True

    def test_cannot_change_own_role(self, db_session, admin, admin_a):
        with pytest.raises(AuthorizationError):
            user_service.update_user(admin, admin_a.id, role="supplier")

    def test_list_users_filters(self, db_session, admin, supplier_a, restaurant_a, admin_b):
        assert {u.email for u in user_service.list_users(admin)} == {
            "ana@tacos.mx", "samuel@tacos.mx", "centro@tacos.mx",
        }
        assert [u.email for u in user_service.list_users(admin, role="surtidor")] == ["samuel@tacos.mx"]
        assert [u.email for u in user_service.list_users(admin, search="centro")] == ["centro@tacos.mx"]
        assert [u.email for u in user_service.list_users(admin, search="CENTRO@")] == ["centro@tacos.mx"]
        assert user_service.list_users(admin, search="_") == []

        user_service.set_user_active(admin, supplier_a.id, False)
        emails = {u.email for u in user_service.list_users(admin, include_inactive=False)}
        assert "samuel@tacos.mx" not in emails


class TestActivation:
    def test_deactivation_revokes_sessions_and_blocks_login(self, db_session, admin, supplier_a):
        _, token = session_service.create_session(user_id=supplier_a.id)

        user_service.set_user_active(admin, supplier_a.id, False)

        assert session_service.validate_session(token) is None
        assert db_session.query(SessionToken).filter_by(user_id=supplier_a.id, is_revoked=False).count() == 0
        assert authenticate("samuel@tacos.mx", "Password123!") is None

        user_service.set_user_active(admin, supplier_a.id, True)
        assert authenticate("samuel@tacos.mx", "Password123!") is not None

    def test_self_deactivation_denied(self, db_session, admin, admin_a):
        with pytest.raises(AuthorizationError):
            user_service.set_user_active(admin, admin_a.id, False)

        db_session.refresh(admin_a)
        assert admin_a.is_active is True
        event = db_session.query(SecurityEvent).filter_by(event_type="SELF_DEACTIVATION_DENIED").one()
        assert event.user_id == admin_a.id

    def test_self_deactivation_via_update_denied(self, db_session, admin, admin_a):
        with pytest.raises(AuthorizationError):
            user_service.update_user(admin, admin_a.id, is_active=False)
        db_session.refresh(admin_a)
        assert admin_a.is_active is True

    def test_activation_is_idempotent(self, db_session, admin, supplier_a):
        assert user_service.set_user_active(admin, supplier_a.id, True).is_active is True

    def test_update_profile(self, db_session, restaurant, restaurant_a):
        user = user_service.update_profile(restaurant, name="  Rita R.  ")
        assert user.name == "Rita R."
        with pytest.raises(ValidationError):
            user_service.update_profile(restaurant, name="   ")
