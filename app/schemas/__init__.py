from app.schemas.user import (
    UserBase, UserCreate, UserLogin, UserUpdate, UserResponse,
    TokenResponse, PasswordChange,
)
from app.schemas.vehicle import (
    VehicleCreate, VehicleUpdate, VehicleResponse, VehicleSummary,
    VehicleStatusUpdate, VehicleStatusChange, VehicleServiceMark,
)
from app.schemas.driver import (
    CustomerCreate, CustomerUpdate, CustomerResponse, CustomerSummary,
    DriverCreate, DriverUpdate, DriverResponse,
)
from app.schemas.reservation import (
    ReservationCreate, ReservationUpdate, ReservationResponse,
    AvailabilityResponse, ReservationPickup, ReservationReturn, ReservationActionResponse,
    MaintenanceBlockCreate, MaintenanceBlockClose,
    ReplacementCreate, ReplacementClose, PlaceholderCreate, PlaceholderAssign,
)
from app.schemas.other import (
    ExpenseCreate, ExpenseUpdate, ExpenseResponse,
    DocumentCreate, DocumentUpdate, DocumentResponse,
    NotificationCreate, NotificationUpdate, NotificationResponse, EmailRequest,
    AppSettingCreate, AppSettingUpdate, AppSettingResponse,
    BackupManifest, BackupStatus,
)

__all__ = [
    "UserBase", "UserCreate", "UserLogin", "UserUpdate", "UserResponse",
    "TokenResponse", "PasswordChange",
    "VehicleCreate", "VehicleUpdate", "VehicleResponse", "VehicleSummary",
    "VehicleStatusUpdate", "VehicleStatusChange", "VehicleServiceMark",
    "CustomerCreate", "CustomerUpdate", "CustomerResponse", "CustomerSummary",
    "DriverCreate", "DriverUpdate", "DriverResponse",
    "ReservationCreate", "ReservationUpdate", "ReservationResponse",
    "AvailabilityResponse", "ReservationPickup", "ReservationReturn", "ReservationActionResponse",
    "MaintenanceBlockCreate", "MaintenanceBlockClose",
    "ReplacementCreate", "ReplacementClose", "PlaceholderCreate", "PlaceholderAssign",
    "ExpenseCreate", "ExpenseUpdate", "ExpenseResponse",
    "DocumentCreate", "DocumentUpdate", "DocumentResponse",
    "NotificationCreate", "NotificationUpdate", "NotificationResponse", "EmailRequest",
    "AppSettingCreate", "AppSettingUpdate", "AppSettingResponse",
    "BackupManifest", "BackupStatus",
]
