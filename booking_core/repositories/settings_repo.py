from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from booking_core.core.exceptions import StorageError
from booking_core.db.base import AppSetting
from booking_core.domain.interfaces import ISettingsRepository


class SettingsRepository(ISettingsRepository):
    """Key/value rows of the ``app_settings`` table."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_value(self, key: str) -> Optional[str]:
        try:
            setting = self.db.get(AppSetting, key)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read setting '{key}'") from e
        return setting.value if setting else None

    def set_value(self, key: str, value: str) -> None:
        try:
            setting = self.db.get(AppSetting, key)
            if setting is None:
                self.db.add(AppSetting(key=key, value=value))
            else:
                setting.value = value
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to save setting '{key}'") from e
