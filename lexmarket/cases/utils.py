"""
Case model operations.

Every function here is pure: it takes a ``Case`` and returns a new one.
Persisting the result and any notifications are the case service's job.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from lexmarket.cases.milestones import create_milestone, update_milestone as apply_milestone_update, validate_milestone
from lexmarket.cases.schemas import (
    Case, CaseCreate, CaseUpdate, CaseStats, CaseResponse,
    Milestone, MilestoneCreate, MilestoneUpdate, utcnow
)
from lexmarket.exceptions import NotFoundError, ValidationError
from lexmarket.models import CaseStatus, CasePriority, MilestoneStatus

# Patch fields that cannot be cleared, only replaced
_REQUIRED_CASE_FIELDS = {"case_title", "case_description", "status", "priority"}
_LIST_CASE_FIELDS = {"tags", "documents"}


def validate_case(case) -> List[str]:
    """Validate case data; returns every violated rule, never raises."""
    errors = []

    if not (case.case_title or "").strip():
        errors.append("Case title is required")

    if not (case.case_description or "").strip():
        errors.append("Case description is required")

    if not (case.client_id or "").strip():
        errors.append("Client ID is required")

    for index, milestone in enumerate(case.milestones or [], start=1):
        errors.extend(validate_milestone(milestone, index))

    return errors


def create_case(data: CaseCreate, now: Optional[datetime] = None) -> Case:
    """Create a new case with default values. The repository assigns its id."""
    errors = validate_case(data)
    if errors:
        raise ValidationError(f"Validation errors: {', '.join(errors)}", errors)

    now = now or utcnow()
    milestones = [
        create_milestone(
            m.title, m.description, m.amount,
            status=m.status, due_date=m.due_date, now=now
        )
        for m in data.milestones
    ]

    return Case(
        client_id=data.client_id,
        case_title=data.case_title,
        case_description=data.case_description,
        milestones=milestones,
        status=data.status or CaseStatus.OPEN,
        priority=data.priority or CasePriority.MEDIUM,
        assigned_lawyer_id=data.assigned_lawyer_id or None,
        category=data.category or None,
        tags=data.tags or [],
        notes=data.notes or None,
        created_at=now,
        updated_at=now,
    )


def update_case(case: Case, patch: CaseUpdate) -> Case:
    """Apply owner edits. Client and assigned lawyer are not editable here."""
    changes = {}
    for field, value in patch.model_dump(exclude_unset=True).items():
        if value is None and field in _REQUIRED_CASE_FIELDS:
            continue
        if value is None and field in _LIST_CASE_FIELDS:
            value = []
        changes[field] = value

    updated = case.model_copy(update={**changes, "updated_at": utcnow()})
    errors = validate_case(updated)
    if errors:
        raise ValidationError(f"Validation errors: {', '.join(errors)}", errors)
    return updated


def add_milestone(case: Case, data: MilestoneCreate) -> Case:
    """Append a new milestone to the case."""
    milestone = create_milestone(
        data.title, data.description, data.amount,
        status=data.status, due_date=data.due_date
    )
    return case.model_copy(update={
        "milestones": [*case.milestones, milestone],
        "updated_at": milestone.created_at,
    })


def find_milestone(case: Case, milestone_id: str) -> Milestone:
    for milestone in case.milestones:
        if milestone.milestone_id == milestone_id:
            return milestone
    raise NotFoundError("Milestone", milestone_id)


def update_milestone(case: Case, milestone_id: str, patch: MilestoneUpdate) -> Case:
    """Update a specific milestone in a case; unknown ids raise NotFoundError."""
    current = find_milestone(case, milestone_id)
    updated = apply_milestone_update(current, patch)
    milestones = [
        updated if m.milestone_id == milestone_id else m
        for m in case.milestones
    ]
    return case.model_copy(update={"milestones": milestones, "updated_at": updated.updated_at})


def remove_milestone(case: Case, milestone_id: str) -> Case:
    """Remove a milestone. Removing an unknown id returns the case untouched."""
    remaining = [m for m in case.milestones if m.milestone_id != milestone_id]
    if len(remaining) == len(case.milestones):
        return case
    return case.model_copy(update={"milestones": remaining, "updated_at": utcnow()})


def assign_lawyer(case: Case, lawyer_id: str) -> Case:
    """Bind the lawyer to the case and move it into progress."""
    return case.model_copy(update={
        "assigned_lawyer_id": lawyer_id,
        "status": CaseStatus.IN_PROGRESS,
        "updated_at": utcnow(),
    })


def compute_stats(case: Case, now: Optional[datetime] = None) -> CaseStats:
    """Calculate case statistics and progress."""
    total_milestones = len(case.milestones)
    completed_milestones = len(milestones_by_status(case, MilestoneStatus.COMPLETED))
    pending_milestones = len(milestones_by_status(case, MilestoneStatus.PENDING))
    total_amount = sum((m.amount for m in case.milestones), Decimal("0.00"))

    progress_percentage = 0
    if total_milestones > 0:
        ratio = Decimal(completed_milestones * 100) / Decimal(total_milestones)
        progress_percentage = int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    return CaseStats(
        total_milestones=total_milestones,
        completed_milestones=completed_milestones,
        pending_milestones=pending_milestones,
        overdue_milestones=len(overdue_milestones(case, now)),
        total_amount=total_amount,
        progress_percentage=progress_percentage,
    )


def with_stats(case: Case) -> CaseResponse:
    return CaseResponse(**case.model_dump(), **compute_stats(case).model_dump())


def milestones_by_status(case: Case, status: MilestoneStatus) -> List[Milestone]:
    return [m for m in case.milestones if m.status == status]


def overdue_milestones(case: Case, now: Optional[datetime] = None) -> List[Milestone]:
    """Milestones past their due date that are not completed yet."""
    now = now or utcnow()
    return [
        m for m in case.milestones
        if m.due_date is not None
        and m.due_date < now
        and m.status != MilestoneStatus.COMPLETED
    ]
