from pydantic import AfterValidator, BaseModel, ConfigDict, field_validator
from typing import Annotated, Optional, List
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from lexmarket.models import CaseStatus, CasePriority, MilestoneStatus

CENTS = Decimal("0.01")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]


def _to_cents(value: Decimal) -> Decimal:
    try:
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError("amount is out of range")


class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

# =====================================================
# MILESTONES
# =====================================================

class Milestone(DomainModel):
    milestone_id: str
    title: str
    description: str
    amount: Decimal
    status: MilestoneStatus = MilestoneStatus.PENDING
    created_at: UTCDateTime
    updated_at: UTCDateTime
    due_date: Optional[UTCDateTime] = None
    completed_at: Optional[UTCDateTime] = None

    @field_validator("amount")
    @classmethod
    def two_places(cls, value: Decimal) -> Decimal:
        return _to_cents(value)

class MilestoneCreate(BaseModel):
    title: str
    description: str
    amount: Decimal
    status: Optional[MilestoneStatus] = None
    due_date: Optional[UTCDateTime] = None

class MilestoneUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    status: Optional[MilestoneStatus] = None
    due_date: Optional[UTCDateTime] = None

class MilestoneStatusUpdate(BaseModel):
    status: MilestoneStatus

# =====================================================
# CASES
# =====================================================

class Case(DomainModel):
    case_id: Optional[str] = None
    client_id: str
    case_title: str
    case_description: str
    milestones: List[Milestone] = []
    status: CaseStatus = CaseStatus.OPEN
    priority: CasePriority = CasePriority.MEDIUM
    assigned_lawyer_id: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = []
    notes: Optional[str] = None
    documents: List[str] = []
    created_at: UTCDateTime
    updated_at: UTCDateTime
    version: int = 1

# Request bodies
class CaseBase(BaseModel):
    case_title: str
    case_description: str
    milestones: List[MilestoneCreate] = []
    status: Optional[CaseStatus] = None
    priority: Optional[CasePriority] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None

class CaseCreate(CaseBase):
    client_id: str
    assigned_lawyer_id: Optional[str] = None

class CaseUpdate(BaseModel):
    case_title: Optional[str] = None
    case_description: Optional[str] = None
    status: Optional[CaseStatus] = None
    priority: Optional[CasePriority] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    documents: Optional[List[str]] = None

# Derived values
class CaseStats(BaseModel):
    total_milestones: int
    completed_milestones: int
    pending_milestones: int
    overdue_milestones: int
    total_amount: Decimal
    progress_percentage: int

class CaseResponse(Case):
    total_milestones: int
    completed_milestones: int
    pending_milestones: int
    overdue_milestones: int
    total_amount: Decimal
    progress_percentage: int

# Search and filter schemas
class CaseFilter(BaseModel):
    client_id: Optional[str] = None
    assigned_lawyer_id: Optional[str] = None
    status: Optional[CaseStatus] = None
    category: Optional[str] = None
    priority: Optional[CasePriority] = None
    limit: Optional[int] = None

class CaseStatusCounts(BaseModel):
    total: int
    open: int
    in_progress: int
    closed: int
    on_hold: int
