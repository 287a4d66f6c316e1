from pydantic import BaseModel
from lexmarket.cases.schemas import DomainModel, UTCDateTime
from lexmarket.models import ApplicationStatus

class Application(DomainModel):
    application_id: str
    case_id: str
    lawyer_id: str
    lawyer_name: str
    proposal: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    created_at: UTCDateTime

class ApplicationCreate(BaseModel):
    lawyer_name: str
    proposal: str
