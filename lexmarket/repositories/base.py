"""
Contract the workflow services need from persistent storage.

Services receive a ``CaseRepository`` explicitly; nothing reaches for a
shared database handle. Every write either fully applies or raises.
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from lexmarket.applications.schemas import Application
from lexmarket.cases.schemas import Case, CaseFilter
from lexmarket.models import ApplicationStatus, NotificationType
from lexmarket.notifications.schemas import Notification


class CaseRepository(ABC):

    # =====================================================
    # CASES
    # =====================================================

    @abstractmethod
    def add_case(self, case: Case) -> Case:
        """Store a new case and return it with its assigned ``case_id``."""

    @abstractmethod
    def get_case(self, case_id: str) -> Optional[Case]:
        """Point lookup; ``None`` when the case does not exist."""

    @abstractmethod
    def save_case(self, case: Case) -> Case:
        """Write back a case read earlier.

        The write only succeeds if the stored version still equals
        ``case.version``; otherwise ``ConflictError`` is raised and nothing
        changes. Returns the case with its new version.
        """

    @abstractmethod
    def delete_case(self, case_id: str) -> bool:
        """Delete a case and its applications. ``False`` if it did not exist."""

    @abstractmethod
    def list_cases(self, filters: Optional[CaseFilter] = None) -> List[Case]:
        """Equality-filtered cases, newest first."""

    # =====================================================
    # APPLICATIONS
    # =====================================================

    @abstractmethod
    def add_application(self, case_id: str, lawyer_id: str, lawyer_name: str, proposal: str) -> Application:
        """Store a new pending application; the repository assigns ``application_id``."""

    @abstractmethod
    def get_application(self, application_id: str) -> Optional[Application]:
        pass

    @abstractmethod
    def list_applications(
        self,
        case_id: Optional[str] = None,
        lawyer_id: Optional[str] = None,
    ) -> List[Application]:
        pass

    @abstractmethod
    def set_application_status(self, application_id: str, status: ApplicationStatus) -> Application:
        """Overwrite one application's status. ``NotFoundError`` if absent."""

    @abstractmethod
    def count_applications(self, case_ids: Iterable[str]) -> Dict[str, int]:
        """Number of applications per case id; cases without any map to 0."""

    @abstractmethod
    def commit_approval(self, case: Case, application_id: str) -> Case:
        """Atomically apply an approval.

        ``case`` is the already-assigned case computed from the version that
        was read. In one all-or-nothing commit the case is written
        (conditional on that version and on no lawyer being assigned in
        the store), the application becomes ``accepted`` (conditional on it
        still being ``pending``) and every other application of the case
        becomes ``denied``. Raises ``ConflictError`` when a condition fails
        and ``OperationFailed`` on any store error.
        """

    # =====================================================
    # NOTIFICATIONS
    # =====================================================

    @abstractmethod
    def add_notification(
        self,
        user_id: str,
        type: NotificationType,
        case_id: str,
        message: str,
        milestone_id: Optional[str] = None,
    ) -> Notification:
        """Store an unread notification."""

    @abstractmethod
    def list_notifications(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        """A user's notifications, newest first."""

    @abstractmethod
    def mark_notification_read(self, notification_id: str) -> Notification:
        pass
