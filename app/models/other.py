from sqlalchemy import Column, String, Numeric, Integer, ForeignKey, DateTime, Date, Text, Boolean, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
from app.database import Base

# Expenses
class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(100), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    date = Column(Date, nullable=False)
    description = Column(Text)
    receipt_path = Column(String(500))

    created_by = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# Documents
class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="SET NULL"), index=True)
    document_type = Column(String(100), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    content_type = Column(String(100), nullable=False)
    notes = Column(Text)
    upload_date = Column(DateTime(timezone=True), server_default=func.now())

    created_by = Column(String(100))

# Notifications
class NotificationType(str, enum.Enum):
    CUSTOM = "custom"
    APK = "apk"
    WARRANTY = "warranty"
    MAINTENANCE = "maintenance"
    SPARE_ASSIGNMENT = "spare_assignment"
    SYSTEM = "system"

class NotificationPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"))  # NULL = system-wide
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    date = Column(Date)
    type = Column(SQLEnum(NotificationType), nullable=False, default=NotificationType.CUSTOM)
    priority = Column(SQLEnum(NotificationPriority), nullable=False, default=NotificationPriority.NORMAL)
    link = Column(String(255))
    icon = Column(String(50))
    data = Column(JSON)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

# Application settings
class AppSetting(Base):
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), unique=True, nullable=False)
    value = Column(JSON)
    category = Column(String(50), nullable=False, default="general")
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
