"""
Settings service for studio-wide settings management.

Settings are stored as key/value rows and materialized into a validated
StudioSettings object. Every read returns a complete, valid object: a
stored value that fails validation is logged and replaced by its default.
"""

import logging
from typing import Any, Dict

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from models import SystemSetting, SettingsAuditLog, StudioSettings
from utils.datetime_utils import studio_now

logger = logging.getLogger(__name__)


class SettingsService:
    """
    Service class for settings operations.

    Provides the booking flow and the admin back office with validated
    studio settings.
    """

    @staticmethod
    def _load_rows(db: Session) -> Dict[str, SystemSetting]:
        rows = db.execute(select(SystemSetting)).scalars().all()
        return {row.key: row for row in rows}

    @staticmethod
    def get_studio_settings(db: Session) -> StudioSettings:
        """
        Get validated studio settings.

        Stored values are applied one field at a time on top of the defaults;
        a value that breaks validation (alone or combined with the fields
        accepted so far) is skipped with a warning.

        Args:
            db: Database session

        Returns:
            StudioSettings object with validated settings
        """
        accepted: Dict[str, Any] = {}
        for key, row in SettingsService._load_rows(db).items():
            if key not in StudioSettings.model_fields:
                continue
            candidate = {**accepted, key: row.value}
            try:
                StudioSettings.model_validate(candidate)
            except ValidationError as e:
                logger.warning(f"Ignoring invalid stored setting {key}={row.value!r}, using default: {e.errors()}")
                continue
            accepted = candidate

        return StudioSettings.model_validate(accepted)

    @staticmethod
    def update_studio_settings(
        db: Session,
        updates: Dict[str, Any],
        updated_by: str
    ) -> StudioSettings:
        """
        Validate and persist a partial settings update.

        The merged result is validated as a whole before anything is written.
        Each changed key gets one audit row.

        Args:
            db: Database session
            updates: Field name to new value
            updated_by: Email of the admin making the change

        Returns:
            The updated StudioSettings

        Raises:
            ValueError: Unknown setting key or invalid merged settings
        """
        unknown = sorted(set(updates) - set(StudioSettings.model_fields))
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(unknown)}")

        current = SettingsService.get_studio_settings(db)
        merged = StudioSettings.model_validate({**current.model_dump(), **updates})
        merged_values = merged.model_dump()
        current_values = current.model_dump()

        rows = SettingsService._load_rows(db)
        now = studio_now()
        changed = [key for key in updates if merged_values[key] != current_values[key]]

        try:
            for key in changed:
                row = rows.get(key)
                old_value = row.value if row is not None else None
                if row is None:
                    row = SystemSetting(key=key)
                    db.add(row)
                row.value = merged_values[key]
                row.updated_by = updated_by
                db.add(SettingsAuditLog(
                    key=key,
                    old_value=old_value,
                    new_value=merged_values[key],
                    updated_by=updated_by,
                    updated_at=now,
                ))
            db.commit()
        except Exception:
            db.rollback()
            raise

        if changed:
            logger.info(f"Studio settings updated by {updated_by}: {', '.join(changed)}")
        return merged
