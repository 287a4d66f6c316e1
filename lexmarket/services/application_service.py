"""
Lawyer applications to cases.

Approving an application is the one cross-document invariant in the
system: for a case at most one application is ``accepted``, and that
application's lawyer is the case's ``assigned_lawyer_id``. ``approve``
keeps it by handing the whole change to ``CaseRepository.commit_approval``
as a single conditional commit.
"""
from typing import Dict, Iterable, List, Optional
import logging

from lexmarket.applications.schemas import Application
from lexmarket.cases import utils
from lexmarket.cases.schemas import Case
from lexmarket.exceptions import ConflictError, NotFoundError, ValidationError
from lexmarket.models import ApplicationStatus, CaseStatus, NotificationType
from lexmarket.repositories.base import CaseRepository
from lexmarket.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class ApplicationService:
    def __init__(self, repository: CaseRepository, notifications: Optional[NotificationService] = None):
        self.repository = repository
        self.notifications = notifications or NotificationService(repository)

    def _get_case(self, case_id: str) -> Case:
        case = self.repository.get_case(case_id)
        if case is None:
            raise NotFoundError("Case", case_id)
        return case

    def get(self, application_id: str) -> Application:
        application = self.repository.get_application(application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        return application

    def apply(self, case_id: str, lawyer_id: str, lawyer_name: str, proposal: str) -> Application:
        """Submit a pending application and let the client know."""
        errors = []
        if not (lawyer_id or "").strip():
            errors.append("Lawyer ID is required")
        if not (lawyer_name or "").strip():
            errors.append("Lawyer name is required")
        if not (proposal or "").strip():
            errors.append("Proposal is required")
        if errors:
            raise ValidationError(f"Validation errors: {', '.join(errors)}", errors)

        case = self._get_case(case_id)
        if case.status != CaseStatus.OPEN or case.assigned_lawyer_id is not None:
            raise ConflictError(f"Case {case_id} is not open for applications")

        # One live application per lawyer and case
        existing = [
            a for a in self.repository.list_applications(case_id=case_id, lawyer_id=lawyer_id)
            if a.status != ApplicationStatus.DENIED
        ]
        if existing:
            raise ConflictError(f"Lawyer {lawyer_id} already applied to case {case_id}")

        application = self.repository.add_application(case_id, lawyer_id, lawyer_name, proposal)

        # An approval that committed after the check above never denied this one
        if self._get_case(case_id).assigned_lawyer_id is not None:
            self.repository.set_application_status(application.application_id, ApplicationStatus.DENIED)
            raise ConflictError(f"Case {case_id} is not open for applications")

        logger.info(f"Lawyer {lawyer_id} applied to case {case_id} ({application.application_id})")

        self.notifications.notify(
            case.client_id,
            NotificationType.LAWYER_APPLIED,
            case_id,
            f"Lawyer {lawyer_name} has applied to your case.",
        )
        return application

    def approve(self, case_id: str, application_id: str, lawyer_id: str) -> Case:
        """Accept one application, deny the rest and assign the lawyer.

        All three effects land in one commit or not at all. If another
        approval for the same case committed first, this one raises
        ``ConflictError``.
        """
        case = self._get_case(case_id)
        application = self.get(application_id)

        if application.case_id != case_id:
            raise ValidationError(f"Application {application_id} does not belong to case {case_id}")
        if application.lawyer_id != lawyer_id:
            raise ValidationError(f"Application {application_id} was not submitted by lawyer {lawyer_id}")
        if case.assigned_lawyer_id is not None:
            raise ConflictError(f"Case {case_id} already has an assigned lawyer")
        if application.status != ApplicationStatus.PENDING:
            raise ConflictError(f"Application {application_id} is already {application.status.value}")

        competing = [
            a for a in self.repository.list_applications(case_id=case_id)
            if a.application_id != application_id and a.status != ApplicationStatus.DENIED
        ]

        assigned = self.repository.commit_approval(utils.assign_lawyer(case, lawyer_id), application_id)
        logger.info(f"Approved application {application_id}; lawyer {lawyer_id} assigned to case {case_id}")

        self.notifications.notify(
            lawyer_id,
            NotificationType.APPLICATION_ACCEPTED,
            case_id,
            "Your application was accepted. You are now assigned to the case.",
        )
        for other in competing:
            self.notifications.notify(
                other.lawyer_id,
                NotificationType.APPLICATION_DENIED,
                case_id,
                "Another lawyer was selected for a case you applied to.",
            )
        return assigned

    def deny(self, application_id: str) -> Application:
        """Deny one application. The case itself is left untouched."""
        application = self.repository.set_application_status(application_id, ApplicationStatus.DENIED)
        logger.info(f"Denied application {application_id}")

        self.notifications.notify(
            application.lawyer_id,
            NotificationType.APPLICATION_DENIED,
            application.case_id,
            "Your application was declined.",
        )
        return application

    def list_for_case(self, case_id: str) -> List[Application]:
        self._get_case(case_id)
        return self.repository.list_applications(case_id=case_id)

    def list_for_lawyer(self, lawyer_id: str) -> List[Application]:
        return self.repository.list_applications(lawyer_id=lawyer_id)

    def application_counts(self, case_ids: Iterable[str]) -> Dict[str, int]:
        return self.repository.count_applications(case_ids)
