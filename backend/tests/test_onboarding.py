# Overview: Pytest coverage for invite codes, registration and the first-tenant walkthrough.

"""
Onboarding Tests

Verifies:
- New-organization codes create a tenant whose founder is an admin
- Branch codes add users to the inviting organization with an explicit role
- A code can be redeemed once; failures leave it unused and are audited
- A fresh tenant can go from invite to a fulfilled order
"""

import pytest

from pantry.errors import ConflictError, NotFoundError, ValidationError
from pantry.models import InviteCode, Organization, Product, SecurityEvent, User
from pantry.services import (
    catalog_service,
    fulfillment_service,
    order_service,
    stock_service,
    tenant_service,
)
from pantry.services.permission_service import PermissionDeniedError, actor_from_user

PASSWORD = "Password123!"


def _redeem(code, email, **kwargs):
    kwargs.setdefault("name", "Nuevo Usuario")
    return tenant_service.redeem_invite_code(code=code, email=email, password=PASSWORD, **kwargs)


class TestInviteCreation:
    def test_new_org_code(self, db_session, admin):
        invite = tenant_service.create_invite_code(
            admin, code="Cafe-Luna", organization_name="Café Luna"
        )
        assert invite.code == "cafe-luna"
        assert invite.org_id is None
        assert invite.used is False

    def test_generated_code_uses_slug(self, db_session, admin):
        invite = tenant_service.create_invite_code(admin, organization_name="Café Luna")
        assert invite.code.startswith("caf-luna-")

    def test_branch_code_targets_current_org(self, db_session, admin, org_a):
        invite = tenant_service.create_invite_code(admin, for_current_org=True)
        assert invite.org_id == org_a.id
        assert invite.organization_name == "Tacos del Norte"
        assert invite.code.startswith("tacos-del-norte-")

    def test_organization_name_required(self, db_session, admin):
        with pytest.raises(ValidationError):
            tenant_service.create_invite_code(admin, code="sin-nombre")

    @pytest.mark.parametrize("code", ["ab", "con espacio", "-inicio"])
    def test_code_format(self, db_session, admin, code):
        with pytest.raises(ValidationError):
            tenant_service.create_invite_code(admin, code=code, organization_name="X")

    def test_duplicate_code(self, db_session, admin):
        tenant_service.create_invite_code(admin, code="repetido", organization_name="Uno")
        with pytest.raises(ConflictError):
            tenant_service.create_invite_code(admin, code="REPETIDO", organization_name="Dos")

    def test_requires_permission(self, db_session, supplier):
        with pytest.raises(PermissionDeniedError):
            tenant_service.create_invite_code(supplier, organization_name="Nope")

    def test_list_is_scoped(self, db_session, admin, other_admin):
        tenant_service.create_invite_code(admin, code="de-tacos", organization_name="Uno")
        tenant_service.create_invite_code(other_admin, code="de-mariscos", organization_name="Dos")

        codes = [invite.code for invite in tenant_service.list_invite_codes(admin)]
        assert codes == ["de-tacos"]


class TestRedemption:
    def test_new_org_founder_is_admin(self, db_session, admin):
        tenant_service.create_invite_code(admin, code="cafe-luna", organization_name="Café Luna")

        user = _redeem("CAFE-LUNA", "luna@cafe.mx", name="Lucía")

        org = db_session.get(Organization, user.org_id)
        assert org.name == "Café Luna"
        assert org.code == "cafe-luna"
        assert user.role == "admin"
        assert user.restaurant is None

        invite = db_session.get(InviteCode, "cafe-luna")
        assert invite.used is True
        assert invite.used_by_user_id == user.id
        assert invite.used_at is not None

    def test_branch_code_joins_existing_org(self, db_session, admin, org_a):
        invite = tenant_service.create_invite_code(admin, code="sucursal-norte", for_current_org=True)

        user = _redeem(invite.code, "norte@tacos.mx", role="restaurante", restaurant="Sucursal Norte")

        assert user.org_id == org_a.id
        assert user.role == "restaurant"
        assert user.restaurant == "Sucursal Norte"

    def test_branch_code_requires_role(self, db_session, admin):
        tenant_service.create_invite_code(admin, code="sin-rol", for_current_org=True)
        with pytest.raises(ValidationError):
            _redeem("sin-rol", "x@tacos.mx")
        assert db_session.get(InviteCode, "sin-rol").used is False

    def test_restaurant_role_requires_label(self, db_session, admin):
        tenant_service.create_invite_code(admin, code="sin-sucursal", for_current_org=True)
        with pytest.raises(ValidationError):
            _redeem("sin-sucursal", "x@tacos.mx", role="restaurant")
        assert db_session.get(InviteCode, "sin-sucursal").used is False

    def test_single_use(self, db_session, admin):
        tenant_service.create_invite_code(admin, code="una-vez", organization_name="Una Vez")
        _redeem("una-vez", "primero@una.mx")

        with pytest.raises(ConflictError):
            _redeem("una-vez", "segundo@una.mx")

        assert db_session.query(User).filter_by(email="segundo@una.mx").count() == 0
        assert db_session.query(Organization).filter_by(name="Una Vez").count() == 1
        event = db_session.query(SecurityEvent).filter_by(event_type="INVITE_REDEMPTION_FAILED").one()
        assert "una-vez" in event.reason
        assert event.success is False

    def test_unknown_code(self, db_session):
        with pytest.raises(NotFoundError):
            _redeem("no-existe", "x@y.mx")
        assert db_session.query(SecurityEvent).filter_by(event_type="INVITE_REDEMPTION_FAILED").count() == 1

    def test_blank_code(self, db_session):
        with pytest.raises(ValidationError):
            _redeem("   ", "x@y.mx")

    def test_duplicate_email_leaves_code_unused(self, db_session, admin, admin_a):
        tenant_service.create_invite_code(admin, code="correo-repetido", organization_name="Otra")

        with pytest.raises(ConflictError):
            _redeem("correo-repetido", admin_a.email)

        assert db_session.get(InviteCode, "correo-repetido").used is False
        assert db_session.query(Organization).filter_by(name="Otra").count() == 0

    def test_weak_password_leaves_code_unused(self, db_session, admin):
        tenant_service.create_invite_code(admin, code="clave-debil", organization_name="Débil")
        with pytest.raises(ValidationError):
            tenant_service.redeem_invite_code(
                code="clave-debil", name="X", email="x@debil.mx", password="corta"
            )
        assert db_session.get(InviteCode, "clave-debil").used is False

    def test_check_invite_code(self, db_session, admin):
        tenant_service.create_invite_code(admin, code="revisar", organization_name="Revisar")
        assert tenant_service.check_invite_code(" Revisar ").code == "revisar"

        _redeem("revisar", "r@revisar.mx")
        with pytest.raises(ConflictError):
            tenant_service.check_invite_code("revisar")


class TestFirstTenantWalkthrough:
    def test_invite_to_fulfilled_order(self, db_session, admin):
        tenant_service.create_invite_code(admin, code="el-fogon", organization_name="El Fogón")

        founder = _redeem("el-fogon", "dueno@fogon.mx", name="Dueño")
        boss = actor_from_user(founder)

        branch = tenant_service.create_invite_code(boss, code="fogon-centro", for_current_org=True)
        cook = actor_from_user(_redeem(
            branch.code, "cocina@fogon.mx", role="restaurant", restaurant="Fogón Centro",
        ))
        runner = actor_from_user(_redeem(
            tenant_service.create_invite_code(boss, code="fogon-surtido", for_current_org=True).code,
            "surtido@fogon.mx", role="surtidor",
        ))
        assert {cook.org_id, runner.org_id} == {founder.org_id}

        walmart = catalog_service.create_provider(boss, name="Walmart", provider_type="supermercado")
        pollo = catalog_service.create_product(
            boss, name="Pollo entero", unit="kg", category="Carnes",
            default_provider_id=walmart.id, min_stock_alert=5,
        )
        stock_service.record_movement(runner, pollo.id, "in", 12, reason="Compra/Recepción")

        draft = order_service.build_draft(cook, [{"product_id": pollo.id, "quantity": 3}])
        order = order_service.submit_order(cook, draft)

        groups = fulfillment_service.pending_grouped_by_provider(runner)
        assert [group.provider_name for group in groups] == ["Walmart"]

        fulfillment_service.mark_found(runner, order.id, pollo.id)
        stock_service.record_movement(runner, pollo.id, "out", 3, reason="Uso/Venta")
        order = order_service.advance_order_status(runner, order.id, "completed")

        assert order.status == "completed"
        assert db_session.get(Product, pollo.id).stock_level == 9
        assert stock_service.verify_stock_levels(founder.org_id) == []
