from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional
import logging

from sqlalchemy import desc, func, select, update, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lexmarket.applications.schemas import Application
from lexmarket.cases.documents import prepare_case_for_store, parse_case_from_store
from lexmarket.cases.schemas import Case, CaseFilter, utcnow
from lexmarket.exceptions import ConflictError, LexmarketError, NotFoundError, OperationFailed
from lexmarket.models import (
    ApplicationRecord, ApplicationStatus, CaseRecord,
    NotificationRecord, NotificationType, new_id
)
from lexmarket.notifications.schemas import Notification
from lexmarket.repositories.base import CaseRepository

logger = logging.getLogger(__name__)


def _index_columns(case: Case) -> dict:
    """Scalar columns mirrored from the case document for querying."""
    return {
        "client_id": case.client_id,
        "status": case.status,
        "priority": case.priority,
        "category": case.category,
        "assigned_lawyer_id": case.assigned_lawyer_id,
        "created_at": case.created_at,
        "updated_at": case.updated_at,
    }


def _to_application(record: ApplicationRecord) -> Application:
    return Application(
        application_id=record.id,
        case_id=record.case_id,
        lawyer_id=record.lawyer_id,
        lawyer_name=record.lawyer_name,
        proposal=record.proposal,
        status=record.status,
        created_at=record.created_at,
    )


def _to_notification(record: NotificationRecord) -> Notification:
    return Notification(
        notification_id=record.id,
        user_id=record.user_id,
        type=record.type,
        case_id=record.case_id,
        milestone_id=record.milestone_id,
        message=record.message,
        created_at=record.created_at,
        read=record.read,
    )


class SqlAlchemyCaseRepository(CaseRepository):
    """``CaseRepository`` over a SQLAlchemy session.

    Cases are stored as JSON documents with indexed mirror columns. Writes
    to an existing case are compare-and-set on the ``version`` column.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _transaction(self, action: str):
        """Commit on success; roll back and translate store errors otherwise."""
        try:
            yield
            self.db.commit()
        except LexmarketError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception(f"Failed to {action}")
            raise OperationFailed() from exc

    def _case_record(self, case_id: str) -> Optional[CaseRecord]:
        stmt = (
            select(CaseRecord)
            .where(CaseRecord.id == case_id)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def _stale_case(self, case_id: str) -> LexmarketError:
        if self._case_record(case_id) is None:
            return NotFoundError("Case", case_id)
        return ConflictError(f"Case {case_id} was modified by another request")

    # =====================================================
    # CASES
    # =====================================================

    def add_case(self, case: Case) -> Case:
        stored = case.model_copy(update={"case_id": new_id(), "version": 1})
        with self._transaction("create case"):
            self.db.add(CaseRecord(
                id=stored.case_id,
                document=prepare_case_for_store(stored),
                version=stored.version,
                **_index_columns(stored)
            ))
        logger.info(f"Created case {stored.case_id} for client {stored.client_id}")
        return stored

    def get_case(self, case_id: str) -> Optional[Case]:
        record = self._case_record(case_id)
        if record is None:
            return None
        return parse_case_from_store(record.document, record.id)

    def save_case(self, case: Case) -> Case:
        stored = case.model_copy(update={"version": case.version + 1})
        with self._transaction(f"save case {case.case_id}"):
            result = self.db.execute(
                update(CaseRecord)
                .where(CaseRecord.id == case.case_id, CaseRecord.version == case.version)
                .values(
                    document=prepare_case_for_store(stored),
                    version=stored.version,
                    **_index_columns(stored)
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise self._stale_case(case.case_id)
        return stored

    def delete_case(self, case_id: str) -> bool:
        with self._transaction(f"delete case {case_id}"):
            self.db.execute(
                delete(ApplicationRecord)
                .where(ApplicationRecord.case_id == case_id)
                .execution_options(synchronize_session=False)
            )
            result = self.db.execute(
                delete(CaseRecord)
                .where(CaseRecord.id == case_id)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    def list_cases(self, filters: Optional[CaseFilter] = None) -> List[Case]:
        stmt = select(CaseRecord)
        if filters:
            if filters.client_id:
                stmt = stmt.where(CaseRecord.client_id == filters.client_id)
            if filters.assigned_lawyer_id:
                stmt = stmt.where(CaseRecord.assigned_lawyer_id == filters.assigned_lawyer_id)
            if filters.status:
                stmt = stmt.where(CaseRecord.status == filters.status)
            if filters.category:
                stmt = stmt.where(CaseRecord.category == filters.category)
            if filters.priority:
                stmt = stmt.where(CaseRecord.priority == filters.priority)

        stmt = stmt.order_by(desc(CaseRecord.created_at))
        if filters and filters.limit:
            stmt = stmt.limit(filters.limit)

        records = self.db.execute(stmt.execution_options(populate_existing=True)).scalars().all()
        return [parse_case_from_store(r.document, r.id) for r in records]

    # =====================================================
    # APPLICATIONS
    # =====================================================

    def add_application(self, case_id: str, lawyer_id: str, lawyer_name: str, proposal: str) -> Application:
        application = Application(
            application_id=new_id(),
            case_id=case_id,
            lawyer_id=lawyer_id,
            lawyer_name=lawyer_name,
            proposal=proposal,
            status=ApplicationStatus.PENDING,
            created_at=utcnow(),
        )
        with self._transaction("create application"):
            self.db.add(ApplicationRecord(
                id=application.application_id,
                case_id=application.case_id,
                lawyer_id=application.lawyer_id,
                lawyer_name=application.lawyer_name,
                proposal=application.proposal,
                status=application.status,
                created_at=application.created_at,
            ))
        return application

    def get_application(self, application_id: str) -> Optional[Application]:
        record = self.db.get(ApplicationRecord, application_id, populate_existing=True)
        return _to_application(record) if record else None

    def list_applications(
        self,
        case_id: Optional[str] = None,
        lawyer_id: Optional[str] = None,
    ) -> List[Application]:
        stmt = select(ApplicationRecord)
        if case_id:
            stmt = stmt.where(ApplicationRecord.case_id == case_id)
        if lawyer_id:
            stmt = stmt.where(ApplicationRecord.lawyer_id == lawyer_id)
        stmt = stmt.order_by(ApplicationRecord.created_at).execution_options(populate_existing=True)
        return [_to_application(r) for r in self.db.execute(stmt).scalars().all()]

    def set_application_status(self, application_id: str, status: ApplicationStatus) -> Application:
        with self._transaction(f"update application {application_id}"):
            record = self.db.get(ApplicationRecord, application_id)
            if record is None:
                raise NotFoundError("Application", application_id)
            record.status = status
            application = _to_application(record)
        return application

    def count_applications(self, case_ids: Iterable[str]) -> Dict[str, int]:
        counts = {case_id: 0 for case_id in case_ids}
        if not counts:
            return counts
        rows = self.db.execute(
            select(ApplicationRecord.case_id, func.count(ApplicationRecord.id))
            .where(ApplicationRecord.case_id.in_(list(counts)))
            .group_by(ApplicationRecord.case_id)
        ).all()
        for case_id, count in rows:
            counts[case_id] = count
        return counts

    def commit_approval(self, case: Case, application_id: str) -> Case:
        stored = case.model_copy(update={"version": case.version + 1})
        with self._transaction(f"approve application {application_id}"):
            assigned = self.db.execute(
                update(CaseRecord)
                .where(
                    CaseRecord.id == case.case_id,
                    CaseRecord.version == case.version,
                    CaseRecord.assigned_lawyer_id.is_(None),
                )
                .values(
                    document=prepare_case_for_store(stored),
                    version=stored.version,
                    **_index_columns(stored)
                )
                .execution_options(synchronize_session=False)
            )
            if assigned.rowcount != 1:
                raise self._stale_case(case.case_id)

            accepted = self.db.execute(
                update(ApplicationRecord)
                .where(
                    ApplicationRecord.id == application_id,
                    ApplicationRecord.case_id == case.case_id,
                    ApplicationRecord.status == ApplicationStatus.PENDING,
                )
                .values(status=ApplicationStatus.ACCEPTED)
                .execution_options(synchronize_session=False)
            )
            if accepted.rowcount != 1:
                raise ConflictError(f"Application {application_id} is no longer pending")

            self.db.execute(
                update(ApplicationRecord)
                .where(
                    ApplicationRecord.case_id == case.case_id,
                    ApplicationRecord.id != application_id,
                )
                .values(status=ApplicationStatus.DENIED)
                .execution_options(synchronize_session=False)
            )
        return stored

    # =====================================================
    # NOTIFICATIONS
    # =====================================================

    def add_notification(
        self,
        user_id: str,
        type: NotificationType,
        case_id: str,
        message: str,
        milestone_id: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            notification_id=new_id(),
            user_id=user_id,
            type=type,
            case_id=case_id,
            milestone_id=milestone_id,
            message=message,
            created_at=utcnow(),
            read=False,
        )
        with self._transaction("create notification"):
            self.db.add(NotificationRecord(
                id=notification.notification_id,
                user_id=notification.user_id,
                type=notification.type,
                case_id=notification.case_id,
                milestone_id=notification.milestone_id,
                message=notification.message,
                created_at=notification.created_at,
                read=False,
            ))
        return notification

    def list_notifications(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        stmt = select(NotificationRecord).where(NotificationRecord.user_id == user_id)
        if unread_only:
            stmt = stmt.where(NotificationRecord.read.is_(False))
        stmt = stmt.order_by(desc(NotificationRecord.created_at)).execution_options(populate_existing=True)
        return [_to_notification(r) for r in self.db.execute(stmt).scalars().all()]

    def mark_notification_read(self, notification_id: str) -> Notification:
        with self._transaction(f"mark notification {notification_id} read"):
            record = self.db.get(NotificationRecord, notification_id)
            if record is None:
                raise NotFoundError("Notification", notification_id)
            record.read = True
            notification = _to_notification(record)
        return notification
