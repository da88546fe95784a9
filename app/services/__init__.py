from app.services.auth_service import AuthService, UserService
from app.services.availability_service import AvailabilityService
from app.services.vehicle_status import VehicleStatusService, StatusTransition, VehicleStatusContext
from app.services.reservation_service import ReservationService
from app.services.maintenance_service import MaintenanceService
from app.services.spare_vehicle_service import SpareVehicleService
from app.services.notification_service import NotificationService, EmailService
from app.services.vehicle_service import VehicleService
from app.services.customer_service import CustomerService
from app.services.record_service import ExpenseService, DocumentService
from app.services.settings_service import SettingsService
from app.services.backup_service import BackupService

__all__ = [
    "AuthService",
    "UserService",
    "AvailabilityService",
    "VehicleStatusService",
    "StatusTransition",
    "VehicleStatusContext",
    "ReservationService",
    "MaintenanceService",
    "SpareVehicleService",
    "NotificationService",
    "EmailService",
    "VehicleService",
    "CustomerService",
    "ExpenseService",
    "DocumentService",
    "SettingsService",
    "BackupService",
]
