"""
Shared policy settings store.

Reads and writes the ``system_settings`` key/value table. There is no
in-process cache: every policy decision reads the current values so that all
server instances observe an admin change immediately.
"""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import ALLOWED_DEVICE_LIMITS, SettingKey, settings
from academy.core.logging import get_logger
from academy.models.system_setting import SystemSettings
from academy.utils.timezone import utc_now

logger = get_logger(__name__)

SETTING_DESCRIPTIONS = {
    SettingKey.MAX_DEVICES_PER_STUDENT: "Maximum number of devices per student account",
    SettingKey.DEVICE_TRACKING_ENABLED: "Enable device tracking and enforcement",
}


@dataclass(frozen=True)
class DevicePolicy:
    """Snapshot of the global device policy for one decision."""

    max_devices_per_student: int
    enforcement_enabled: bool


def parse_device_limit(value: str | None) -> int:
    """Parse a stored device limit, falling back to the configured default."""
    try:
        limit = int(value) if value is not None else 0
    except ValueError:
        limit = 0
    if limit not in ALLOWED_DEVICE_LIMITS:
        return settings.DEFAULT_MAX_DEVICES_PER_STUDENT
    return limit


def parse_enforcement(value: str | None) -> bool:
    """Parse a stored enforcement flag ("true"/"false")."""
    if value is None:
        return settings.DEFAULT_DEVICE_ENFORCEMENT
    return value.strip().lower() == "true"


class SettingsStore:
    """Key/value access to the system_settings table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_values(self, *keys: str) -> dict[str, str]:
        result = await self.db.execute(
            select(SystemSettings).where(SystemSettings.setting_key.in_(keys))  # type: ignore[attr-defined]
        )
        return {row.setting_key: row.setting_value for row in result.scalars().all()}

    async def get(self, key: str) -> str | None:
        values = await self.get_values(key)
        return values.get(key)

    async def set(self, key: str, value: str, updated_by: int | None = None) -> None:
        """
        Upsert a setting and commit.

        The row may not exist yet; a concurrent insert of the same key loses
        on the unique index and is retried as an update.
        """
        if await self._update(key, value, updated_by):
            await self.db.commit()
            return

        self.db.add(
            SystemSettings(
                setting_key=key,
                setting_value=value,
                description=SETTING_DESCRIPTIONS.get(key),
                updated_by=updated_by,
            )
        )
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("setting_insert_conflict", key=key)
            await self._update(key, value, updated_by)
            await self.db.commit()

    async def _update(self, key: str, value: str, updated_by: int | None) -> bool:
        result = await self.db.execute(
            select(SystemSettings).where(SystemSettings.setting_key == key)  # type: ignore[arg-type]
        )
        row = result.scalar_one_or_none()
        if row is None:
            return False
        row.setting_value = value
        row.updated_by = updated_by
        row.updated_at = utc_now()
        return True

    async def get_policy(self) -> DevicePolicy:
        """Read the current device policy in a single query."""
        values = await self.get_values(
            SettingKey.MAX_DEVICES_PER_STUDENT, SettingKey.DEVICE_TRACKING_ENABLED
        )
        return DevicePolicy(
            max_devices_per_student=parse_device_limit(
                values.get(SettingKey.MAX_DEVICES_PER_STUDENT)
            ),
            enforcement_enabled=parse_enforcement(values.get(SettingKey.DEVICE_TRACKING_ENABLED)),
        )

    async def is_enforcement_enabled(self) -> bool:
        return parse_enforcement(await self.get(SettingKey.DEVICE_TRACKING_ENABLED))
