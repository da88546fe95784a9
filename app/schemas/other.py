from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime, date as DateType
from decimal import Decimal
from app.models.other import NotificationType, NotificationPriority

# Expenses
class ExpenseCreate(BaseModel):
    vehicle_id: int
    category: str = Field(..., min_length=1, max_length=100)
    amount: Decimal
    date: DateType
    description: Optional[str] = None
    receipt_path: Optional[str] = None

class ExpenseUpdate(BaseModel):
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[Decimal] = None
    date: Optional[DateType] = None
    description: Optional[str] = None
    receipt_path: Optional[str] = None

class ExpenseResponse(BaseModel):
    id: int
    vehicle_id: int
    category: str
    amount: Decimal
    date: DateType
    description: Optional[str]
    receipt_path: Optional[str]
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# Documents
class DocumentCreate(BaseModel):
    vehicle_id: int
    reservation_id: Optional[int] = None
    document_type: str = Field(..., min_length=1, max_length=100)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=500)
    file_size: int = Field(0, ge=0)
    content_type: str = "application/pdf"
    notes: Optional[str] = None

class DocumentUpdate(BaseModel):
    document_type: Optional[str] = Field(None, min_length=1, max_length=100)
    reservation_id: Optional[int] = None
    notes: Optional[str] = None

class DocumentResponse(BaseModel):
    id: int
    vehicle_id: int
    reservation_id: Optional[int]
    document_type: str
    file_name: str
    file_path: str
    file_size: int
    content_type: str
    notes: Optional[str]
    upload_date: Optional[datetime] = None
    created_by: Optional[str] = None

    class Config:
        from_attributes = True

# Notifications
class NotificationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str
    date: Optional[DateType] = None
    type: NotificationType = NotificationType.CUSTOM
    priority: NotificationPriority = NotificationPriority.NORMAL
    link: Optional[str] = None
    icon: Optional[str] = None
    user_id: Optional[int] = None
    data: Optional[Dict[str, Any]] = None

class NotificationUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    date: Optional[DateType] = None
    priority: Optional[NotificationPriority] = None
    link: Optional[str] = None
    is_read: Optional[bool] = None

class NotificationResponse(BaseModel):
    id: int
    title: str
    description: str
    date: Optional[DateType]
    type: NotificationType
    priority: NotificationPriority
    link: Optional[str]
    icon: Optional[str]
    user_id: Optional[int]
    data: Optional[Dict[str, Any]]
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class EmailRequest(BaseModel):
    to: str
    subject: str = Field(..., min_length=1, max_length=255)
    body: str

# App settings
class AppSettingCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=100)
    value: Any = None
    category: str = "general"
    description: Optional[str] = None

class AppSettingUpdate(BaseModel):
    value: Any = None
    category: Optional[str] = None
    description: Optional[str] = None

class AppSettingResponse(BaseModel):
    id: int
    key: str
    value: Any
    category: str
    description: Optional[str]
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# Backups
class BackupManifest(BaseModel):
    timestamp: datetime
    type: str
    filename: str
    size: int
    checksum: str
    file_count: Optional[int] = None

class BackupStatus(BaseModel):
    is_running: bool = False
    last_run: Optional[str] = None
    last_success: Optional[str] = None
    last_error: Optional[str] = None
