from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from booking_core.core.exceptions import StorageError
from booking_core.db.base import Service as DbService
from booking_core.domain.entities import Service
from booking_core.domain.interfaces import IServiceCatalog


class ServiceRepository(IServiceCatalog):
    """Read-only view of the service catalogue."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_service(self, service_id: int) -> Optional[Service]:
        try:
            db_service = self.db.query(DbService).filter_by(id=service_id).first()
        except SQLAlchemyError as e:
            raise StorageError("Failed to load service") from e
        return self._to_domain(db_service) if db_service else None

    def _to_domain(self, db_service: DbService) -> Service:
        return Service(
            id=db_service.id,
            name=db_service.name,
            duration_minutes=db_service.duration_minutes,
            is_archived=bool(db_service.is_archived),
        )
