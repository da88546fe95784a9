from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime, date

class CustomerBase(BaseModel):
    debtor_number: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[EmailStr] = None
    email_for_mot: Optional[EmailStr] = None
    email_for_invoices: Optional[EmailStr] = None
    phone: Optional[str] = None
    street_name: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = "Nederland"
    driver_license_number: Optional[str] = None
    chamber_of_commerce_number: Optional[str] = None
    vat_number: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None

class CustomerCreate(CustomerBase):
    name: str = Field(..., min_length=1, max_length=200)

class CustomerUpdate(CustomerBase):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    country: Optional[str] = None

class CustomerResponse(CustomerBase):
    id: int
    name: str
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CustomerSummary(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True

class DriverCreate(BaseModel):
    customer_id: int
    display_name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    driver_license_number: Optional[str] = None
    license_expiry: Optional[date] = None
    is_primary_driver: bool = False
    notes: Optional[str] = None

class DriverUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    driver_license_number: Optional[str] = None
    license_expiry: Optional[date] = None
    is_primary_driver: Optional[bool] = None
    status: Optional[str] = None
    notes: Optional[str] = None

class DriverResponse(BaseModel):
    id: int
    customer_id: int
    display_name: str
    email: Optional[str]
    phone: Optional[str]
    driver_license_number: Optional[str]
    license_expiry: Optional[date]
    is_primary_driver: bool
    status: Optional[str]
    notes: Optional[str]

    class Config:
        from_attributes = True
