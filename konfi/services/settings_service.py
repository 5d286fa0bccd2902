"""Per-organization settings such as the yearly point targets."""

from typing import Dict, Optional

from sqlalchemy.orm import Session

from konfi.core.config import settings as app_settings
from konfi.core.exceptions import ResourceNotFoundError, ValidationError
from konfi.models.setting import Setting

TARGET_KEYS = ("target_gottesdienst", "target_gemeinde")


def default_settings() -> Dict[str, str]:
    return {
        "target_gottesdienst": str(app_settings.DEFAULT_TARGET_GOTTESDIENST),
        "target_gemeinde": str(app_settings.DEFAULT_TARGET_GEMEINDE),
    }


class SettingsService:

    @staticmethod
    def seed_defaults(db: Session, organization_id: int) -> None:
        """Add default settings for a new organization. Flushes, does not commit."""
        for key, value in default_settings().items():
            db.add(Setting(organization_id=organization_id, key=key, value=value))
        db.flush()

    @staticmethod
    def get_all(db: Session, organization_id: int) -> Dict[str, str]:
        rows = db.query(Setting).filter(Setting.organization_id == organization_id).all()
        return {s.key: s.value for s in rows}

    @staticmethod
    def get(db: Session, organization_id: int, key: str) -> Setting:
        setting = (
            db.query(Setting)
            .filter(Setting.organization_id == organization_id, Setting.key == key)
            .first()
        )
        if not setting:
            raise ResourceNotFoundError(f"Setting '{key}' not found")
        return setting

    @staticmethod
    def target(db: Session, organization_id: int, key: str) -> int:
        """Integer value of a target setting, falling back to the configured default."""
        row = (
            db.query(Setting.value)
            .filter(Setting.organization_id == organization_id, Setting.key == key)
            .first()
        )
        raw = row.value if row else default_settings()[key]
        try:
            return int(raw)
        except ValueError:
            return int(default_settings()[key])

    @staticmethod
    def update_targets(
        db: Session,
        organization_id: int,
        target_gottesdienst: Optional[int] = None,
        target_gemeinde: Optional[int] = None,
    ) -> Dict[str, str]:
        """Upsert the point targets in one transaction."""
        updates = {
            "target_gottesdienst": target_gottesdienst,
            "target_gemeinde": target_gemeinde,
        }
        updates = {k: v for k, v in updates.items() if v is not None}
        if not updates:
            raise ValidationError("No settings to update")

        try:
            for key, value in updates.items():
                setting = (
                    db.query(Setting)
                    .filter(Setting.organization_id == organization_id, Setting.key == key)
                    .first()
                )
                if setting:
                    setting.value = str(value)
                else:
                    db.add(Setting(organization_id=organization_id, key=key, value=str(value)))
            db.commit()
        except Exception:
            db.rollback()
            raise
        return SettingsService.get_all(db, organization_id)

    @staticmethod
    def set(db: Session, organization_id: int, key: str, value: str) -> Setting:
        """Change an existing setting. Unknown keys are 404."""
        setting = SettingsService.get(db, organization_id, key)
        if key in TARGET_KEYS and not value.strip().isdigit():
            raise ValidationError(f"Setting '{key}' must be a non-negative integer")
        setting.value = value.strip() if key in TARGET_KEYS else value
        db.commit()
        return setting


settings_service = SettingsService()
