from fastapi import APIRouter, Depends

from app.api.v1.endpoints.auth import get_current_user
from app.services import notifications

router = APIRouter()

@router.get("/")
async def get_my_notifications(user: dict = Depends(get_current_user)):
    """Fetches the current user's latest notifications."""
    return await notifications.list_for_user(user["uid"])

@router.post("/{notification_id}/read")
async def mark_notification_read(notification_id: str, user: dict = Depends(get_current_user)):
    """Marks a notification as read."""
    await notifications.mark_read(user["uid"], notification_id)
    return {"success": True}

@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, user: dict = Depends(get_current_user)):
    """Deletes a notification."""
    await notifications.delete_notification(user["uid"], notification_id)
    return {"success": True}
