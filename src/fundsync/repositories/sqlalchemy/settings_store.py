"""SQLAlchemy implementation of SettingsStore."""

import json
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fundsync.core.exceptions import PersistenceError
from fundsync.repositories.sqlalchemy.orm_models import SettingORM

logger = logging.getLogger(__name__)


class SqlAlchemySettingsStore:
    """SQLAlchemy-backed key-value settings; values are stored as JSON."""

    def __init__(self, db: Session):
        self._db = db

    def get(self, key: str) -> Optional[Any]:
        orm_setting = self._db.get(SettingORM, key)
        if orm_setting is None or orm_setting.value is None:
            return None
        try:
            return json.loads(orm_setting.value)
        except ValueError:
            logger.warning("Ignoring unreadable setting %s", key)
            return None

    def put(self, key: str, value: Any) -> None:
        try:
            orm_setting = self._db.get(SettingORM, key)
            if orm_setting is None:
                orm_setting = SettingORM(key=key)
                self._db.add(orm_setting)
            orm_setting.value = json.dumps(value, ensure_ascii=False)
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise PersistenceError(f"Failed to save setting {key}: {exc}") from exc
