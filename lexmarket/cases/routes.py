from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import List, Optional

from lexmarket.applications.schemas import Application, ApplicationCreate
from lexmarket.auth.dependencies import (
    CurrentUser, get_current_user, require_admin, require_client_or_admin, require_lawyer
)
from lexmarket.cases.schemas import (
    Case, CaseBase, CaseCreate, CaseUpdate, CaseResponse, CaseFilter, CaseStats,
    CaseStatusCounts, MilestoneCreate, MilestoneUpdate, MilestoneStatusUpdate
)
from lexmarket.cases.utils import with_stats
from lexmarket.models import CasePriority, CaseStatus, UserRole
from lexmarket.services.application_service import ApplicationService
from lexmarket.services.case_service import CaseService
from lexmarket.services.dependencies import get_application_service, get_case_service

router = APIRouter(prefix="/cases", tags=["Cases"])


def ensure_case_owner(case: Case, current_user: CurrentUser) -> None:
    """Only the client who posted the case (or an admin) may change it."""
    if current_user.role == UserRole.ADMIN:
        return
    if current_user.role != UserRole.CLIENT or case.client_id != current_user.id:
        raise HTTPException(status_code=403, detail="Access denied")


def ensure_case_visible(case: Case, current_user: CurrentUser) -> None:
    if current_user.role == UserRole.CLIENT and case.client_id != current_user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    if current_user.role == UserRole.LAWYER:
        # Lawyers see open cases they could apply to and cases assigned to them
        is_open = case.status == CaseStatus.OPEN and case.assigned_lawyer_id is None
        if not is_open and case.assigned_lawyer_id != current_user.id:
            raise HTTPException(status_code=403, detail="Access denied")

# =====================================================
# CASE CRUD OPERATIONS
# =====================================================

@router.post("/", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
async def create_case(
    case_data: CaseBase,
    current_user: CurrentUser = Depends(require_client_or_admin()),
    service: CaseService = Depends(get_case_service)
):
    """Create a new case owned by the calling client."""
    case = service.create_case(CaseCreate(client_id=current_user.id, **case_data.model_dump()))
    return with_stats(case)

@router.get("/", response_model=List[CaseResponse])
async def list_cases(
    status: Optional[CaseStatus] = None,
    category: Optional[str] = None,
    priority: Optional[CasePriority] = None,
    client_id: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service)
):
    """List cases with filtering, newest first."""
    filters = CaseFilter(status=status, category=category, priority=priority, limit=limit)

    # Apply role-based filtering
    if current_user.role == UserRole.CLIENT:
        filters.client_id = current_user.id
    elif current_user.role == UserRole.LAWYER:
        filters.assigned_lawyer_id = current_user.id
    else:
        filters.client_id = client_id

    return [with_stats(case) for case in service.list_cases(filters)]

@router.get("/open", response_model=List[CaseResponse])
async def list_open_cases(
    current_user: CurrentUser = Depends(require_lawyer()),
    service: CaseService = Depends(get_case_service)
):
    """Open cases the calling lawyer has not applied to yet."""
    return [with_stats(case) for case in service.list_open_cases_for_lawyer(current_user.id)]

@router.get("/search", response_model=List[CaseResponse])
async def search_cases(
    q: str = Query(..., min_length=1),
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service)
):
    """Search cases by title, description or tag."""
    filters = CaseFilter()
    if current_user.role == UserRole.CLIENT:
        filters.client_id = current_user.id
    elif current_user.role == UserRole.LAWYER:
        filters.status = CaseStatus.OPEN

    return [with_stats(case) for case in service.search_cases(q, filters)]

@router.get("/statistics", response_model=CaseStatusCounts)
async def get_case_statistics(
    client_id: Optional[str] = None,
    current_user: CurrentUser = Depends(require_client_or_admin()),
    service: CaseService = Depends(get_case_service)
):
    """Case counts by status."""
    if current_user.role == UserRole.CLIENT:
        client_id = current_user.id
    return service.case_statistics(client_id)

@router.get("/{case_id}", response_model=CaseResponse)
async def get_case(
    case_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service)
):
    """Get a specific case by ID."""
    case = service.get_case(case_id)
    ensure_case_visible(case, current_user)
    return with_stats(case)

@router.put("/{case_id}", response_model=CaseResponse)
async def update_case(
    case_id: str,
    case_update: CaseUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service)
):
    """Update a case."""
    ensure_case_owner(service.get_case(case_id), current_user)
    return with_stats(service.update_case(case_id, case_update))

@router.delete("/{case_id}")
async def delete_case(
    case_id: str,
    current_user: CurrentUser = Depends(require_admin()),
    service: CaseService = Depends(get_case_service)
):
    """Delete a case (admin only)."""
    service.delete_case(case_id)
    return {"message": "Case deleted successfully"}

@router.get("/{case_id}/stats", response_model=CaseStats)
async def get_case_stats(
    case_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service)
):
    case = service.get_case(case_id)
    ensure_case_visible(case, current_user)
    return service.get_case_stats(case_id)

# =====================================================
# MILESTONE OPERATIONS
# =====================================================

@router.post("/{case_id}/milestones", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
async def add_milestone(
    case_id: str,
    milestone_data: MilestoneCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service)
):
    """Add a milestone to a case."""
    ensure_case_owner(service.get_case(case_id), current_user)
    return with_stats(service.add_milestone(case_id, milestone_data))

@router.put("/{case_id}/milestones/{milestone_id}", response_model=CaseResponse)
async def update_milestone(
    case_id: str,
    milestone_id: str,
    milestone_update: MilestoneUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service)
):
    """Update a milestone in a case."""
    ensure_case_owner(service.get_case(case_id), current_user)
    return with_stats(service.update_milestone(case_id, milestone_id, milestone_update))

@router.patch("/{case_id}/milestones/{milestone_id}/status", response_model=CaseResponse)
async def update_milestone_status(
    case_id: str,
    milestone_id: str,
    status_update: MilestoneStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service)
):
    """Move a milestone to another status."""
    ensure_case_owner(service.get_case(case_id), current_user)
    return with_stats(service.update_milestone_status(case_id, milestone_id, status_update.status))

@router.delete("/{case_id}/milestones/{milestone_id}", response_model=CaseResponse)
async def remove_milestone(
    case_id: str,
    milestone_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service)
):
    """Remove a milestone from a case."""
    ensure_case_owner(service.get_case(case_id), current_user)
    return with_stats(service.remove_milestone(case_id, milestone_id))

# =====================================================
# APPLICATIONS
# =====================================================

@router.post("/{case_id}/applications", response_model=Application, status_code=status.HTTP_201_CREATED)
async def apply_to_case(
    case_id: str,
    application_data: ApplicationCreate,
    current_user: CurrentUser = Depends(require_lawyer()),
    applications: ApplicationService = Depends(get_application_service)
):
    """Submit the calling lawyer's application to an open case."""
    return applications.apply(
        case_id,
        current_user.id,
        application_data.lawyer_name,
        application_data.proposal,
    )

@router.get("/{case_id}/applications", response_model=List[Application])
async def list_case_applications(
    case_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service),
    applications: ApplicationService = Depends(get_application_service)
):
    """Applications submitted to a case (case owner only)."""
    ensure_case_owner(service.get_case(case_id), current_user)
    return applications.list_for_case(case_id)
