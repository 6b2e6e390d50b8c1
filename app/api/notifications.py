"""
Notification API endpoints
"""

from typing import List, Optional
from fastapi import APIRouter, Depends

from ..models.notification_models import AppNotification, UnreadCountResponse
from ..models.user_models import AppUser
from .dependencies import get_current_user, get_notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[AppNotification])
async def list_notifications(
    unread_only: bool = False,
    actor: Optional[AppUser] = Depends(get_current_user),
    notifications=Depends(get_notification_service),
) -> List[AppNotification]:
    return await notifications.list_notifications(actor, unread_only=unread_only)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    actor: Optional[AppUser] = Depends(get_current_user),
    notifications=Depends(get_notification_service),
) -> UnreadCountResponse:
    return UnreadCountResponse(unread=await notifications.unread_count(actor))


@router.post("/read-all")
async def mark_all_read(
    actor: Optional[AppUser] = Depends(get_current_user),
    notifications=Depends(get_notification_service),
):
    marked = await notifications.mark_all_read(actor)
    return {"success": True, "marked": marked}


@router.post("/{notification_id}/read", response_model=AppNotification)
async def mark_read(
    notification_id: str,
    actor: Optional[AppUser] = Depends(get_current_user),
    notifications=Depends(get_notification_service),
) -> AppNotification:
    return await notifications.mark_read(actor, notification_id)


@router.delete("")
async def delete_all_notifications(
    actor: Optional[AppUser] = Depends(get_current_user),
    notifications=Depends(get_notification_service),
):
    deleted = await notifications.delete_all(actor)
    return {"success": True, "deleted": deleted}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    actor: Optional[AppUser] = Depends(get_current_user),
    notifications=Depends(get_notification_service),
):
    await notifications.delete(actor, notification_id)
    return {"success": True}
