from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.other import NotificationCreate, NotificationUpdate, NotificationResponse, EmailRequest
from app.services.notification_service import NotificationService, EmailService
from app.api.v1.websocket import broadcast_data_update
from app.models import User, NotificationType

router = APIRouter(prefix="/notifications", tags=["Notifications"])

def _payload(notification) -> dict:
    return NotificationResponse.model_validate(notification).model_dump(mode="json")

@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    notification_type: Optional[NotificationType] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Notifications for the current user plus the ones shared by everybody"""
    return await NotificationService(db).list_notifications(current_user.id, unread_only, notification_type)

@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    notification_data: NotificationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = await NotificationService(db).create_notification(
        title=notification_data.title,
        description=notification_data.description,
        notification_type=notification_data.type,
        priority=notification_data.priority,
        on_date=notification_data.date,
        link=notification_data.link,
        icon=notification_data.icon,
        user_id=notification_data.user_id,
        data=notification_data.data,
    )
    await broadcast_data_update("notification", "created", _payload(notification))
    return notification

@router.post("/generate-expiry", response_model=List[NotificationResponse])
async def generate_expiry_notifications(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create APK and warranty reminders that do not exist yet"""
    created = await NotificationService(db).generate_expiry_notifications()
    if created:
        await broadcast_data_update("notification", "created")
    return created

@router.post("/read-all")
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    count = await NotificationService(db).mark_all_read(current_user.id)
    await broadcast_data_update("notification", "updated")
    return {"updated": count}

@router.post("/send-email")
async def send_email(
    email: EmailRequest,
    current_user: User = Depends(get_current_user)
):
    sent = await EmailService().send_email(email.to, email.subject, email.body)
    return {"sent": sent}

@router.patch("/{notification_id}", response_model=NotificationResponse)
async def update_notification(
    notification_id: int,
    notification_data: NotificationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    changes = notification_data.model_dump(exclude_unset=True)
    notification = await NotificationService(db).update_notification(notification_id, changes)
    await broadcast_data_update("notification", "updated", _payload(notification))
    return notification

@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = await NotificationService(db).mark_notification_read(notification_id)
    await broadcast_data_update("notification", "updated", _payload(notification))
    return notification

@router.post("/{notification_id}/unread", response_model=NotificationResponse)
async def mark_unread(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = await NotificationService(db).mark_notification_read(notification_id, is_read=False)
    await broadcast_data_update("notification", "updated", _payload(notification))
    return notification

@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await NotificationService(db).delete_notification(notification_id)
    await broadcast_data_update("notification", "deleted", {"id": notification_id})
