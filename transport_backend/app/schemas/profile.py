"""
Driver and client profile schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from transport_backend.app.models.enums import DriverStatus


class DriverProfileUpdate(BaseModel):
    license_number: str = Field(..., min_length=1, description="License number is required!")
    experience_years: int = Field(..., ge=0, description="Experience years must be 0 or greater!")
    status: DriverStatus


class DriverStatusUpdate(BaseModel):
    status: DriverStatus


class ClientProfileUpdate(BaseModel):
    company_name: str = Field(..., min_length=1, description="Company name is required!")
    address: str = Field(..., min_length=1, description="Address is required!")
    vat_number: Optional[str] = None


class DriverProfileResponse(BaseModel):
    id: int
    user_id: str
    license_number: str
    experience_years: int
    status: DriverStatus
    created_at: datetime

    class Config:
        from_attributes = True


class ClientProfileResponse(BaseModel):
    id: int
    user_id: str
    company_name: str
    address: str
    vat_number: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class DriverSummary(DriverProfileResponse):
    """Driver profile joined with its user."""
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool


class ClientSummary(ClientProfileResponse):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool


class DriverListResponse(BaseModel):
    drivers: List[DriverSummary]
    total: int
    page: int
    page_size: int


class ClientListResponse(BaseModel):
    clients: List[ClientSummary]
    total: int
    page: int
    page_size: int
