"""
Vehicle schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from transport_backend.app.models.enums import VehicleStatus


class VehicleCreate(BaseModel):
    plate_number: str = Field(..., min_length=1, description="Plate number is required!")
    type: str = Field(..., min_length=1, description="e.g., Truck, Van")
    brand: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    status: Optional[VehicleStatus] = None
    image: Optional[str] = None
    mileage: Optional[float] = Field(default=None, ge=0)
    purchase_date: Optional[datetime] = None
    last_service_date: Optional[datetime] = None
    capacity_weight: Optional[float] = Field(default=None, gt=0)
    capacity_volume: Optional[float] = Field(default=None, gt=0)


class VehicleUpdate(BaseModel):
    """Partial update; only fields sent are applied."""
    plate_number: Optional[str] = Field(default=None, min_length=1)
    type: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    status: Optional[VehicleStatus] = None
    image: Optional[str] = None
    mileage: Optional[float] = Field(default=None, ge=0)
    purchase_date: Optional[datetime] = None
    last_service_date: Optional[datetime] = None
    capacity_weight: Optional[float] = Field(default=None, gt=0)
    capacity_volume: Optional[float] = Field(default=None, gt=0)


class VehicleStatusUpdate(BaseModel):
    status: VehicleStatus


class VehicleResponse(BaseModel):
    id: int
    plate_number: str
    type: str
    brand: str
    model: str
    status: VehicleStatus
    image: Optional[str] = None
    mileage: float
    purchase_date: Optional[datetime] = None
    last_service_date: Optional[datetime] = None
    capacity_weight: Optional[float] = None
    capacity_volume: Optional[float] = None
    created_at: datetime

    class Config:
        from_attributes = True


class VehicleSuggestion(BaseModel):
    """Vehicle ranked for a trip's time window."""
    id: int
    plate_number: str
    brand: str
    model: str
    type: str
    mileage: Optional[float] = None
    status: VehicleStatus
    capacity_weight: Optional[float] = None
    capacity_volume: Optional[float] = None
    score: int
    availability_status: str
    reasons: List[str]
    overlapping_trip_ids: List[int]
    total_trips: int


class VehicleListResponse(BaseModel):
    vehicles: List[VehicleResponse]
    total: int
    page: int
    page_size: int
