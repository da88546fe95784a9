from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, or_
from datetime import date
from typing import Dict, List, Optional
from app.models import (
    Notification, NotificationType, NotificationPriority, Reservation, Vehicle, Customer,
)
from app.config import settings
from app.services.exceptions import NotFoundError, ValidationError
from app.services.availability_service import AvailabilityService
from app.utils.dates import today as current_date
import resend
import logging

logger = logging.getLogger(__name__)

class EmailService:
    """Outgoing email through the Resend API"""

    async def send_email(self, to: str, subject: str, html: str) -> bool:
        if not to:
            raise ValidationError("Recipient email address is required")

        if not settings.RESEND_API_KEY:
            logger.info(f"Email to {to} skipped (no RESEND_API_KEY configured): {subject}")
            return False

        resend.api_key = settings.RESEND_API_KEY
        try:
            resend.Emails.send({
                "from": settings.FROM_EMAIL,
                "to": to,
                "subject": subject,
                "html": html
            })
        except Exception as e:
            logger.error(f"Error sending email to {to}: {e}")
            return False

        logger.info(f"Email sent to {to}: {subject}")
        return True

    async def send_reservation_confirmation(self, reservation: Reservation) -> bool:
        customer: Optional[Customer] = reservation.customer
        vehicle: Optional[Vehicle] = reservation.vehicle
        if not customer or not customer.email:
            raise ValidationError("Customer has no email address")

        period = f"{reservation.start_date:%d-%m-%Y}"
        period += f" - {reservation.end_date:%d-%m-%Y}" if reservation.end_date else " (open-ended)"

        html = f"""
        <h2>Reservation confirmation</h2>
        <p>Dear {customer.name},</p>
        <p>Your reservation #{reservation.id} has been confirmed.</p>
        <ul>
            <li>Vehicle: {vehicle.display_name if vehicle else "to be assigned"}</li>
            <li>Period: {period}</li>
            <li>Contract: {reservation.contract_number or "-"}</li>
        </ul>
        """
        return await self.send_email(customer.email, f"Reservation #{reservation.id} confirmed", html)

    async def send_spare_assignment(self, reservation: Reservation) -> bool:
        """Tell the customer which spare vehicle was assigned to their placeholder"""
        customer: Optional[Customer] = reservation.customer
        vehicle: Optional[Vehicle] = reservation.vehicle
        if not customer or not customer.email or not vehicle:
            return False

        html = f"""
        <h2>Spare vehicle assigned</h2>
        <p>Dear {customer.name},</p>
        <p>While your own vehicle is being serviced you will drive
        <strong>{vehicle.display_name}</strong> from {reservation.start_date:%d-%m-%Y}.</p>
        """
        return await self.send_email(customer.email, "Your spare vehicle", html)

class NotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_notification(
        self,
        title: str,
        description: str,
        notification_type: NotificationType = NotificationType.CUSTOM,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        on_date: Optional[date] = None,
        link: Optional[str] = None,
        icon: Optional[str] = None,
        user_id: Optional[int] = None,
        data: Optional[Dict] = None,
        commit: bool = True
    ) -> Notification:
        """
        Store an in-app notification.
        Notifications without a user are shown to every back-office user.
        """
        notification = Notification(
            user_id=user_id,
            title=title,
            description=description,
            date=on_date or current_date(),
            type=notification_type,
            priority=priority,
            link=link,
            icon=icon,
            data=data or {},
            is_read=False
        )
        self.db.add(notification)

        if commit:
            await self.db.commit()
            await self.db.refresh(notification)
        else:
            await self.db.flush()

        logger.info(f"Notification created: [{notification_type.value}] {title}")
        return notification

    async def get(self, notification_id: int) -> Notification:
        notification = await self.db.get(Notification, notification_id)
        if not notification:
            raise NotFoundError(f"Notification {notification_id} not found")
        return notification

    async def list_notifications(
        self,
        user_id: Optional[int] = None,
        unread_only: bool = False,
        notification_type: Optional[NotificationType] = None
    ) -> List[Notification]:
        query = select(Notification)

        if user_id is not None:
            query = query.where(or_(Notification.user_id.is_(None), Notification.user_id == user_id))
        if unread_only:
            query = query.where(Notification.is_read == False)
        if notification_type:
            query = query.where(Notification.type == notification_type)

        result = await self.db.execute(query.order_by(Notification.created_at.desc(), Notification.id.desc()))
        return list(result.scalars().all())

    async def update_notification(self, notification_id: int, changes: Dict) -> Notification:
        notification = await self.get(notification_id)
        for key, value in changes.items():
            setattr(notification, key, value)
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    async def mark_notification_read(self, notification_id: int, is_read: bool = True) -> Notification:
        """Mark notification as read (or unread again)"""
        return await self.update_notification(notification_id, {"is_read": is_read})

    async def mark_all_read(self, user_id: Optional[int] = None) -> int:
        query = update(Notification).where(Notification.is_read == False)
        if user_id is not None:
            query = query.where(or_(Notification.user_id.is_(None), Notification.user_id == user_id))
        result = await self.db.execute(query.values(is_read=True))
        await self.db.commit()
        return result.rowcount or 0

    async def delete_notification(self, notification_id: int):
        notification = await self.get(notification_id)
        await self.db.delete(notification)
        await self.db.commit()

    async def resolve_spare_assignment(self, placeholder: Reservation) -> int:
        """Mark the open spare-assignment notifications for a placeholder as read"""
        result = await self.db.execute(
            select(Notification).where(
                Notification.type == NotificationType.SPARE_ASSIGNMENT,
                Notification.is_read == False,
            )
        )

        resolved = 0
        for notification in result.scalars().all():
            reservation_id = (notification.data or {}).get("reservation_id")
            if reservation_id == placeholder.id or (
                reservation_id is None and notification.date == placeholder.start_date
            ):
                notification.is_read = True
                resolved += 1
        return resolved

    async def generate_expiry_notifications(self) -> List[Notification]:
        """
        Create APK and warranty reminders for vehicles expiring within the
        warning window. A vehicle gets one reminder per expiry date.
        """
        availability = AvailabilityService(self.db)
        checks = [
            (NotificationType.APK, "apk_date", "APK inspection due",
             await availability.get_vehicles_with_apk_expiring_soon()),
            (NotificationType.WARRANTY, "warranty_end_date", "Warranty expiring",
             await availability.get_vehicles_with_warranty_expiring_soon()),
        ]

        existing = await self.db.execute(
            select(Notification).where(
                Notification.type.in_([NotificationType.APK, NotificationType.WARRANTY])
            )
        )
        seen = {
            (n.type, (n.data or {}).get("vehicle_id"), n.date)
            for n in existing.scalars().all()
        }

        created = []
        for notification_type, attribute, title, vehicles in checks:
            for vehicle in vehicles:
                due = getattr(vehicle, attribute)
                if (notification_type, vehicle.id, due) in seen:
                    continue
                created.append(await self.create_notification(
                    title=f"{title}: {vehicle.license_plate}",
                    description=f"{vehicle.display_name} expires on {due:%d-%m-%Y}",
                    notification_type=notification_type,
                    priority=NotificationPriority.HIGH,
                    on_date=due,
                    link=f"/vehicles/{vehicle.id}",
                    icon="Calendar",
                    data={"vehicle_id": vehicle.id},
                    commit=False
                ))

        await self.db.commit()
        for notification in created:
            await self.db.refresh(notification)
        logger.info(f"Generated {len(created)} expiry notification(s)")
        return created
