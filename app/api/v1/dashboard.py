from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.reservation import ReservationResponse
from app.schemas.vehicle import VehicleResponse
from app.services.availability_service import AvailabilityService
from app.services.spare_vehicle_service import SpareVehicleService
from app.services.notification_service import NotificationService
from app.models import User, Vehicle, AvailabilityStatus

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

def _dump(schema, items) -> list:
    return [schema.model_validate(item).model_dump(mode="json") for item in items]

@router.get("")
async def dashboard(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Everything the back-office start page shows in one call"""
    availability = AvailabilityService(db)

    result = await db.execute(
        select(Vehicle.availability_status, func.count(Vehicle.id)).group_by(Vehicle.availability_status)
    )
    counts = {s.value: 0 for s in AvailabilityStatus}
    for availability_status, count in result.all():
        counts[availability_status.value] = count

    unread = await NotificationService(db).list_notifications(current_user.id, unread_only=True)

    return {
        "vehicle_status_counts": counts,
        "upcoming_reservations": _dump(ReservationResponse, await availability.get_upcoming_reservations()),
        "upcoming_maintenance": _dump(ReservationResponse, await availability.get_upcoming_maintenance()),
        "overdue_reservations": _dump(ReservationResponse, await availability.get_overdue_reservations()),
        "apk_expiring": _dump(VehicleResponse, await availability.get_vehicles_with_apk_expiring_soon()),
        "warranty_expiring": _dump(VehicleResponse, await availability.get_vehicles_with_warranty_expiring_soon()),
        "placeholders_needing_assignment": _dump(
            ReservationResponse, await SpareVehicleService(db).get_placeholders_needing_assignment()
        ),
        "unread_notifications": len(unread),
    }
