"""
Notification emission.

Notifications are an inbox trail written after the triggering change has
been committed. Writing one is best-effort: a failure is logged and never
reaches the caller of the triggering operation.
"""
from typing import List, Optional
import logging

from lexmarket.models import NotificationType
from lexmarket.notifications.schemas import Notification
from lexmarket.repositories.base import CaseRepository

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, repository: CaseRepository):
        self.repository = repository

    def notify(
        self,
        user_id: Optional[str],
        type: NotificationType,
        case_id: str,
        message: str,
        milestone_id: Optional[str] = None,
    ) -> Optional[Notification]:
        """Write one notification; returns ``None`` if it could not be stored."""
        if not user_id:
            return None
        try:
            return self.repository.add_notification(
                user_id=user_id,
                type=type,
                case_id=case_id,
                message=message,
                milestone_id=milestone_id,
            )
        except Exception:
            logger.exception(f"Failed to send {type.value} notification to {user_id} for case {case_id}")
            return None

    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        return self.repository.list_notifications(user_id, unread_only=unread_only)

    def mark_read(self, notification_id: str) -> Notification:
        return self.repository.mark_notification_read(notification_id)
