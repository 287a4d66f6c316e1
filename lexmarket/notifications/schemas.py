from typing import Optional
from lexmarket.cases.schemas import DomainModel, UTCDateTime
from lexmarket.models import NotificationType

class Notification(DomainModel):
    notification_id: str
    user_id: str
    type: NotificationType
    case_id: str
    milestone_id: Optional[str] = None
    message: str
    created_at: UTCDateTime
    read: bool = False
