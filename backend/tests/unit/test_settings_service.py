"""
Unit tests for studio settings loading and updates.
"""

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from core.constants import DEFAULT_WHATSAPP_TEMPLATE
from models import SettingsAuditLog, StudioSettings, SystemSetting
from services.settings_service import SettingsService
from tests.conftest import set_setting


class TestStudioSettingsModel:
    """Test the settings schema itself."""

    def test_defaults(self):
        settings = StudioSettings()
        assert settings.min_booking_notice == 1
        assert settings.max_booking_ahead == 90
        assert settings.whatsapp_admin_number is None
        assert settings.whatsapp_message_template == DEFAULT_WHATSAPP_TEMPLATE

    def test_max_must_cover_min(self):
        with pytest.raises(ValidationError):
            StudioSettings(min_booking_notice=10, max_booking_ahead=5)

    def test_bounds(self):
        with pytest.raises(ValidationError):
            StudioSettings(min_booking_notice=-1)
        with pytest.raises(ValidationError):
            StudioSettings(max_booking_ahead=400)


class TestGetStudioSettings:
    """Test materializing stored settings."""

    def test_empty_store_gives_defaults(self, db_session):
        assert SettingsService.get_studio_settings(db_session) == StudioSettings()

    def test_stored_values_applied(self, db_session):
        set_setting(db_session, "min_booking_notice", 2)
        set_setting(db_session, "whatsapp_admin_number", "081299990000")

        settings = SettingsService.get_studio_settings(db_session)

        assert settings.min_booking_notice == 2
        assert settings.whatsapp_admin_number == "081299990000"

    def test_invalid_value_falls_back_per_field(self, db_session, caplog):
        set_setting(db_session, "min_booking_notice", "soon")
        set_setting(db_session, "max_booking_ahead", 30)

        settings = SettingsService.get_studio_settings(db_session)

        assert settings.min_booking_notice == 1
        assert settings.max_booking_ahead == 30
        assert "Ignoring invalid stored setting min_booking_notice" in caplog.text

    def test_unknown_keys_ignored(self, db_session):
        set_setting(db_session, "legacy_theme", "dark")
        assert SettingsService.get_studio_settings(db_session) == StudioSettings()


class TestUpdateStudioSettings:
    """Test admin settings updates."""

    def test_update_writes_rows_and_audit(self, db_session):
        settings = SettingsService.update_studio_settings(
            db_session,
            {"min_booking_notice": 3, "site_name": "Lensa Studio"},
            updated_by="admin@studio.test",
        )

        assert settings.min_booking_notice == 3
        assert db_session.get(SystemSetting, "min_booking_notice").value == 3

        audit = db_session.execute(select(SettingsAuditLog).order_by(SettingsAuditLog.key)).scalars().all()
        assert [(row.key, row.old_value, row.new_value) for row in audit] == [
            ("min_booking_notice", None, 3),
            ("site_name", None, "Lensa Studio"),
        ]
        assert all(row.updated_by == "admin@studio.test" for row in audit)

    def test_unchanged_values_not_audited(self, db_session):
        SettingsService.update_studio_settings(db_session, {"max_booking_ahead": 90}, updated_by="admin@studio.test")
        assert db_session.execute(select(SettingsAuditLog)).scalars().all() == []

    def test_audit_keeps_old_value(self, db_session):
        SettingsService.update_studio_settings(db_session, {"max_booking_ahead": 60}, updated_by="a@studio.test")
        SettingsService.update_studio_settings(db_session, {"max_booking_ahead": 45}, updated_by="b@studio.test")

        latest = db_session.execute(
            select(SettingsAuditLog).order_by(SettingsAuditLog.id.desc())
        ).scalars().first()
        assert (latest.old_value, latest.new_value, latest.updated_by) == (60, 45, "b@studio.test")

    def test_invalid_merge_rejected_without_writes(self, db_session):
        with pytest.raises(ValueError):
            SettingsService.update_studio_settings(db_session, {"min_booking_notice": 100}, updated_by="admin@studio.test")
        assert db_session.execute(select(SystemSetting)).scalars().all() == []

    def test_unknown_key_rejected(self, db_session):
        with pytest.raises(ValueError, match="Unknown settings: colour"):
            SettingsService.update_studio_settings(db_session, {"colour": "red"}, updated_by="admin@studio.test")
