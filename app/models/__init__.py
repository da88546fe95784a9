from app.models.user import User, UserRole
from app.models.vehicle import Vehicle, AvailabilityStatus, MaintenanceStatus, MANUAL_STATUSES
from app.models.driver import Customer, Driver
from app.models.reservation import (
    Reservation, ReservationStatus, ReservationType,
    MaintenanceState, MaintenanceCategory,
    CLOSED_STATUSES, ACTIVE_MAINTENANCE_STATES,
)
from app.models.other import (
    Expense,
    Document,
    Notification, NotificationType, NotificationPriority,
    AppSetting,
)

__all__ = [
    "User", "UserRole",
    "Vehicle", "AvailabilityStatus", "MaintenanceStatus", "MANUAL_STATUSES",
    "Customer", "Driver",
    "Reservation", "ReservationStatus", "ReservationType",
    "MaintenanceState", "MaintenanceCategory",
    "CLOSED_STATUSES", "ACTIVE_MAINTENANCE_STATES",
    "Expense",
    "Document",
    "Notification", "NotificationType", "NotificationPriority",
    "AppSetting",
]
