from typing import List, Optional
import logging

from lexmarket.cases import utils
from lexmarket.cases.schemas import (
    Case, CaseCreate, CaseUpdate, CaseFilter, CaseStats, CaseStatusCounts,
    MilestoneCreate, MilestoneUpdate
)
from lexmarket.exceptions import NotFoundError
from lexmarket.models import ApplicationStatus, CaseStatus, MilestoneStatus, NotificationType
from lexmarket.repositories.base import CaseRepository
from lexmarket.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class CaseService:
    """Case and milestone operations against a repository.

    Each mutation reads the current case, transforms it with the pure model
    functions in ``lexmarket.cases.utils`` and writes it back conditionally
    on the version it read. Notifications go out after the write.
    """

    def __init__(self, repository: CaseRepository, notifications: Optional[NotificationService] = None):
        self.repository = repository
        self.notifications = notifications or NotificationService(repository)

    # =====================================================
    # CASES
    # =====================================================

    def create_case(self, data: CaseCreate) -> Case:
        """Create a new case."""
        case = utils.create_case(data)
        return self.repository.add_case(case)

    def get_case(self, case_id: str) -> Case:
        case = self.repository.get_case(case_id)
        if case is None:
            raise NotFoundError("Case", case_id)
        return case

    def list_cases(self, filters: Optional[CaseFilter] = None) -> List[Case]:
        return self.repository.list_cases(filters)

    def list_client_cases(self, client_id: str) -> List[Case]:
        """Get all cases for a client, newest first."""
        return self.repository.list_cases(CaseFilter(client_id=client_id))

    def list_lawyer_cases(self, lawyer_id: str) -> List[Case]:
        """Get all cases assigned to a lawyer, newest first."""
        return self.repository.list_cases(CaseFilter(assigned_lawyer_id=lawyer_id))

    def list_open_cases_for_lawyer(self, lawyer_id: str) -> List[Case]:
        """Open, unassigned cases the lawyer holds no live application for."""
        applied = {
            a.case_id for a in self.repository.list_applications(lawyer_id=lawyer_id)
            if a.status != ApplicationStatus.DENIED
        }
        return [
            case for case in self.repository.list_cases(CaseFilter(status=CaseStatus.OPEN))
            if case.assigned_lawyer_id is None and case.case_id not in applied
        ]

    def search_cases(self, term: str, filters: Optional[CaseFilter] = None) -> List[Case]:
        """Case-insensitive match on title, description and tags."""
        needle = term.strip().lower()
        if not needle:
            return []
        return [
            case for case in self.repository.list_cases(filters)
            if needle in case.case_title.lower()
            or needle in case.case_description.lower()
            or any(needle in tag.lower() for tag in case.tags)
        ]

    def update_case(self, case_id: str, patch: CaseUpdate) -> Case:
        case = self.get_case(case_id)
        updated = self.repository.save_case(utils.update_case(case, patch))
        logger.info(f"Updated case {case_id}")
        return updated

    def delete_case(self, case_id: str) -> None:
        if not self.repository.delete_case(case_id):
            raise NotFoundError("Case", case_id)
        logger.info(f"Deleted case {case_id}")

    def get_case_stats(self, case_id: str) -> CaseStats:
        return utils.compute_stats(self.get_case(case_id))

    def case_statistics(self, client_id: Optional[str] = None) -> CaseStatusCounts:
        """Count cases by status, for one client or across all cases."""
        cases = self.repository.list_cases(CaseFilter(client_id=client_id))
        by_status = {status: 0 for status in CaseStatus}
        for case in cases:
            by_status[case.status] += 1
        return CaseStatusCounts(
            total=len(cases),
            open=by_status[CaseStatus.OPEN],
            in_progress=by_status[CaseStatus.IN_PROGRESS],
            closed=by_status[CaseStatus.CLOSED],
            on_hold=by_status[CaseStatus.ON_HOLD],
        )

    # =====================================================
    # MILESTONES
    # =====================================================

    def add_milestone(self, case_id: str, data: MilestoneCreate) -> Case:
        """Add a milestone and tell the assigned lawyer about it."""
        case = self.get_case(case_id)
        updated = self.repository.save_case(utils.add_milestone(case, data))
        milestone = updated.milestones[-1]
        logger.info(f"Added milestone {milestone.milestone_id} to case {case_id}")

        self.notifications.notify(
            updated.assigned_lawyer_id,
            NotificationType.MILESTONE_ADDED,
            case_id,
            f'A new milestone "{milestone.title}" was added to your assigned case.',
            milestone_id=milestone.milestone_id,
        )
        return updated

    def update_milestone(self, case_id: str, milestone_id: str, patch: MilestoneUpdate) -> Case:
        """Update a milestone; completing it notifies the client and the lawyer."""
        case = self.get_case(case_id)
        previous = utils.find_milestone(case, milestone_id)
        updated = self.repository.save_case(utils.update_milestone(case, milestone_id, patch))

        if patch.status == MilestoneStatus.COMPLETED and previous.status != MilestoneStatus.COMPLETED:
            logger.info(f"Milestone {milestone_id} of case {case_id} completed")
            self.notifications.notify(
                updated.client_id,
                NotificationType.MILESTONE_COMPLETED,
                case_id,
                "A milestone was marked completed in your case.",
                milestone_id=milestone_id,
            )
            self.notifications.notify(
                updated.assigned_lawyer_id,
                NotificationType.MILESTONE_COMPLETED,
                case_id,
                "A milestone was marked completed in your assigned case.",
                milestone_id=milestone_id,
            )
        return updated

    def update_milestone_status(self, case_id: str, milestone_id: str, status: MilestoneStatus) -> Case:
        return self.update_milestone(case_id, milestone_id, MilestoneUpdate(status=status))

    def start_milestone(self, case_id: str, milestone_id: str) -> Case:
        return self.update_milestone_status(case_id, milestone_id, MilestoneStatus.IN_PROGRESS)

    def complete_milestone(self, case_id: str, milestone_id: str) -> Case:
        return self.update_milestone_status(case_id, milestone_id, MilestoneStatus.COMPLETED)

    def reset_milestone(self, case_id: str, milestone_id: str) -> Case:
        return self.update_milestone_status(case_id, milestone_id, MilestoneStatus.PENDING)

    def remove_milestone(self, case_id: str, milestone_id: str) -> Case:
        """Remove a milestone; an unknown milestone id leaves the case as is."""
        case = self.get_case(case_id)
        updated = utils.remove_milestone(case, milestone_id)
        if updated is case:
            return case
        return self.repository.save_case(updated)
