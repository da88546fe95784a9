from sqlalchemy import Column, String, Boolean, DateTime, Integer, Date, ForeignKey, Text
from sqlalchemy.sql import func
from app.database import Base

class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    debtor_number = Column(String(50))
    first_name = Column(String(100))
    last_name = Column(String(100))
    company_name = Column(String(200))
    contact_person = Column(String(200))

    # Communication
    email = Column(String(255))
    email_for_mot = Column(String(255))  # APK reminders
    email_for_invoices = Column(String(255))
    phone = Column(String(30))

    # Address
    street_name = Column(String(200))
    city = Column(String(100))
    postal_code = Column(String(20))
    country = Column(String(100), default="Nederland")

    # Identification
    driver_license_number = Column(String(50))
    chamber_of_commerce_number = Column(String(50))
    vat_number = Column(String(50))

    status = Column(String(50))
    notes = Column(Text)

    created_by = Column(String(100))
    updated_by = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class Driver(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    display_name = Column(String(200), nullable=False)
    email = Column(String(255))
    phone = Column(String(30))

    # License information
    driver_license_number = Column(String(50))
    license_expiry = Column(Date)

    is_primary_driver = Column(Boolean, default=False)
    status = Column(String(20), default="active")
    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
