# Overview: Pytest coverage for organization settings; defaults, validation and per-org storage.

from zoneinfo import ZoneInfo

import pytest

from pantry.errors import ValidationError
from pantry.models import OrganizationSetting
from pantry.services import settings_service
from pantry.services.permission_service import PermissionDeniedError


class TestDefaults:
    def test_unsaved_org_reads_defaults(self, db_session, org_a):
        settings = settings_service.get_settings(org_a.id)
        assert settings == settings_service.DEFAULT_SETTINGS
        assert db_session.query(OrganizationSetting).count() == 0

    def test_default_timezone(self, db_session, org_a):
        assert settings_service.get_org_timezone(org_a.id) == ZoneInfo("America/Mexico_City")


class TestUpdate:
    def test_partial_update_persists_only_sent_keys(self, db_session, admin):
        settings = settings_service.update_settings(admin, {
            "currency": "usd",
            "order_frequency": "Biweekly",
            "contact_email": " Compras@Tacos.MX ",
        })

        assert settings["currency"] == "USD"
        assert settings["order_frequency"] == "biweekly"
        assert settings["contact_email"] == "compras@tacos.mx"
        assert settings["timezone"] == "America/Mexico_City"
        assert db_session.query(OrganizationSetting).count() == 3

    def test_update_overwrites_existing_row(self, db_session, admin):
        settings_service.update_settings(admin, {"minimum_order_value": 500})
        settings = settings_service.update_settings(admin, {"minimum_order_value": 750.5})
        assert settings["minimum_order_value"] == 750.5
        assert db_session.query(OrganizationSetting).count() == 1

    def test_settings_are_per_org(self, db_session, admin, other_admin):
        settings_service.update_settings(admin, {"city": "Monterrey"})
        assert settings_service.get_settings(other_admin.org_id)["city"] == ""

    @pytest.mark.parametrize("changes", [
        {},
        {"color": "rojo"},
        {"timezone": "Mars/Olympus_Mons"},
        {"currency": "PESOS"},
        {"order_frequency": "daily"},
        {"default_order_time": "25:00"},
        {"default_order_time": "9:00"},
        {"minimum_order_value": -1},
        {"minimum_order_value": True},
        {"urgent_notifications": "yes"},
        {"contact_email": "sin-arroba"},
        {"city": 12},
    ])
    def test_invalid_changes(self, db_session, admin, changes):
        with pytest.raises(ValidationError):
            settings_service.update_settings(admin, changes)

    def test_invalid_key_rejects_whole_update(self, db_session, admin):
        with pytest.raises(ValidationError):
            settings_service.update_settings(admin, {"city": "Monterrey", "currency": "pesos"})
        assert db_session.query(OrganizationSetting).count() == 0

    def test_timezone_change_is_used(self, db_session, admin):
        settings_service.update_settings(admin, {"timezone": "America/Tijuana"})
        assert settings_service.get_org_timezone(admin.org_id) == ZoneInfo("America/Tijuana")

    @pytest.mark.parametrize("actor_fixture", ["supplier", "restaurant"])
    def test_only_admins_update(self, db_session, request, actor_fixture):
        actor = request.getfixturevalue(actor_fixture)
        with pytest.raises(PermissionDeniedError):
            settings_service.update_settings(actor, {"city": "Monterrey"})
