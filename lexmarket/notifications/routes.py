from fastapi import APIRouter, Depends
from typing import List

from lexmarket.auth.dependencies import CurrentUser, get_current_user
from lexmarket.exceptions import NotFoundError
from lexmarket.notifications.schemas import Notification
from lexmarket.services.dependencies import get_notification_service
from lexmarket.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])

@router.get("/", response_model=List[Notification])
async def list_notifications(
    unread_only: bool = False,
    current_user: CurrentUser = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service)
):
    """The calling user's notifications, newest first."""
    return notifications.list_for_user(current_user.id, unread_only=unread_only)

@router.patch("/{notification_id}/read", response_model=Notification)
async def mark_notification_read(
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service)
):
    """Mark one of the calling user's notifications as read."""
    owned = {n.notification_id for n in notifications.list_for_user(current_user.id)}
    if notification_id not in owned:
        raise NotFoundError("Notification", notification_id)
    return notifications.mark_read(notification_id)
