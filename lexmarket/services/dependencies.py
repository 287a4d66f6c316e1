from fastapi import Depends
from sqlalchemy.orm import Session

from lexmarket.database import get_db
from lexmarket.repositories.base import CaseRepository
from lexmarket.repositories.sql import SqlAlchemyCaseRepository
from lexmarket.services.application_service import ApplicationService
from lexmarket.services.case_service import CaseService
from lexmarket.services.notification_service import NotificationService


def get_repository(db: Session = Depends(get_db)) -> CaseRepository:
    return SqlAlchemyCaseRepository(db)


def get_notification_service(repository: CaseRepository = Depends(get_repository)) -> NotificationService:
    return NotificationService(repository)


def get_case_service(
    repository: CaseRepository = Depends(get_repository),
    notifications: NotificationService = Depends(get_notification_service),
) -> CaseService:
    return CaseService(repository, notifications)


def get_application_service(
    repository: CaseRepository = Depends(get_repository),
    notifications: NotificationService = Depends(get_notification_service),
) -> ApplicationService:
    return ApplicationService(repository, notifications)
