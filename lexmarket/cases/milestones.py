"""
Milestone model operations.

A milestone is owned by its case and never stored on its own; these
functions only build and transform ``Milestone`` values.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from lexmarket.cases.schemas import Milestone, MilestoneCreate, MilestoneUpdate, utcnow
from lexmarket.exceptions import ValidationError
from lexmarket.models import MilestoneStatus

# Fields a patch may not clear
_REQUIRED_FIELDS = {"title", "description", "amount", "status"}

# Largest fee whose cents survive storage as a JSON number (15 significant digits)
MAX_AMOUNT = Decimal("9999999999999.99")


def generate_milestone_id() -> str:
    """Generate a unique milestone ID."""
    return f"milestone_{uuid.uuid4().hex}"


def validate_milestone(milestone, position: Optional[int] = None) -> List[str]:
    """Return every rule the milestone violates.

    Accepts anything with ``title``, ``description`` and ``amount``
    attributes, so creation inputs can be checked before a milestone exists.
    ``position`` is the 1-based index used to prefix messages.
    """
    prefix = f"Milestone {position}: " if position is not None else ""
    errors = []
    if not (milestone.title or "").strip():
        errors.append(f"{prefix}Title is required")
    if not (milestone.description or "").strip():
        errors.append(f"{prefix}Description is required")
    if milestone.amount is None:
        errors.append(f"{prefix}Amount is required")
    elif not Decimal(milestone.amount).is_finite():
        errors.append(f"{prefix}Amount must be a finite number")
    elif milestone.amount < 0:
        errors.append(f"{prefix}Amount cannot be negative")
    elif milestone.amount > MAX_AMOUNT:
        errors.append(f"{prefix}Amount cannot exceed {MAX_AMOUNT}")
    return errors


def create_milestone(
    title: str,
    description: str,
    amount: Decimal,
    status: Optional[MilestoneStatus] = None,
    due_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Milestone:
    """Create a new milestone with default values."""
    now = now or utcnow()
    candidate = MilestoneCreate.model_construct(title=title, description=description, amount=amount)
    errors = validate_milestone(candidate)
    if errors:
        raise ValidationError("Invalid milestone", errors)

    status = status or MilestoneStatus.PENDING
    return Milestone(
        milestone_id=generate_milestone_id(),
        title=title,
        description=description,
        amount=amount,
        status=status,
        created_at=now,
        updated_at=now,
        due_date=due_date,
        completed_at=now if status == MilestoneStatus.COMPLETED else None,
    )


def update_milestone(milestone: Milestone, patch: MilestoneUpdate) -> Milestone:
    """Merge ``patch`` into ``milestone``.

    ``updated_at`` is always refreshed. Moving into ``Completed`` from any
    other status stamps ``completed_at``; any status may follow any other.
    """
    now = utcnow()
    changes = {
        field: value
        for field, value in patch.model_dump(exclude_unset=True).items()
        if value is not None or field not in _REQUIRED_FIELDS
    }

    data = milestone.model_dump()
    data.update(changes)
    data["updated_at"] = now
    if changes.get("status") == MilestoneStatus.COMPLETED and milestone.status != MilestoneStatus.COMPLETED:
        data["completed_at"] = now

    errors = validate_milestone(Milestone.model_construct(**data))
    if errors:
        raise ValidationError("Invalid milestone", errors)
    return Milestone.model_validate(data)
