from fastapi import APIRouter, Depends
from typing import Dict, List

from lexmarket.applications.schemas import Application
from lexmarket.auth.dependencies import CurrentUser, get_current_user, require_client_or_admin, require_lawyer
from lexmarket.cases.routes import ensure_case_owner
from lexmarket.cases.schemas import CaseResponse
from lexmarket.cases.utils import with_stats
from lexmarket.services.application_service import ApplicationService
from lexmarket.services.case_service import CaseService
from lexmarket.services.dependencies import get_application_service, get_case_service

router = APIRouter(prefix="/applications", tags=["Applications"])

@router.get("/mine", response_model=List[Application])
async def list_my_applications(
    current_user: CurrentUser = Depends(require_lawyer()),
    applications: ApplicationService = Depends(get_application_service)
):
    """Applications submitted by the calling lawyer."""
    return applications.list_for_lawyer(current_user.id)

@router.get("/counts", response_model=Dict[str, int])
async def get_application_counts(
    current_user: CurrentUser = Depends(require_client_or_admin()),
    service: CaseService = Depends(get_case_service),
    applications: ApplicationService = Depends(get_application_service)
):
    """Number of applications for each of the calling client's cases."""
    case_ids = [case.case_id for case in service.list_client_cases(current_user.id)]
    return applications.application_counts(case_ids)

@router.post("/{application_id}/approve", response_model=CaseResponse)
async def approve_application(
    application_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service),
    applications: ApplicationService = Depends(get_application_service)
):
    """Accept an application, deny the others and assign its lawyer."""
    application = applications.get(application_id)
    ensure_case_owner(service.get_case(application.case_id), current_user)
    case = applications.approve(application.case_id, application_id, application.lawyer_id)
    return with_stats(case)

@router.post("/{application_id}/deny", response_model=Application)
async def deny_application(
    application_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: CaseService = Depends(get_case_service),
    applications: ApplicationService = Depends(get_application_service)
):
    """Decline a single application."""
    application = applications.get(application_id)
    ensure_case_owner(service.get_case(application.case_id), current_user)
    return applications.deny(application_id)
