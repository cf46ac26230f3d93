"""
Trip schemas.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from transport_backend.app.models.enums import DriverStatus, TripStatus


class TripCreate(BaseModel):
    driver_id: int = Field(..., description="Driver profile ID")
    vehicle_id: int
    departure: str = Field(..., min_length=1, description="Departure location is required!")
    destination: str = Field(..., min_length=1, description="Destination location is required!")
    date_start: datetime
    date_end: Optional[datetime] = None
    estimated_duration: Optional[float] = Field(default=None, gt=0, description="Minutes")
    distance: Optional[float] = Field(default=None, gt=0, description="Kilometres")
    total_cost: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class TripUpdate(BaseModel):
    """Partial update; a status here goes through the trip status machine."""
    driver_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    departure: Optional[str] = Field(default=None, min_length=1)
    destination: Optional[str] = Field(default=None, min_length=1)
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    estimated_duration: Optional[float] = Field(default=None, gt=0)
    actual_duration: Optional[float] = Field(default=None, gt=0)
    distance: Optional[float] = Field(default=None, gt=0)
    status: Optional[TripStatus] = None
    total_cost: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class TripStatusUpdate(BaseModel):
    status: TripStatus


class TripResponse(BaseModel):
    id: int
    driver_id: int
    vehicle_id: int
    departure: str
    destination: str
    date_start: datetime
    date_end: Optional[datetime] = None
    estimated_duration: Optional[float] = None
    actual_duration: Optional[float] = None
    distance: Optional[float] = None
    status: TripStatus
    total_cost: float
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TripStatusChangeResponse(BaseModel):
    trip_id: int
    previous_status: TripStatus
    status: TripStatus
    shipments_updated: int


class SuggestionWindow(BaseModel):
    date_start: datetime
    date_end: Optional[datetime] = None


class DriverSuggestion(BaseModel):
    """Driver ranked for a trip's time window."""
    id: int
    name: str
    email: str
    license_number: str
    experience_years: int
    status: DriverStatus
    score: int
    availability_status: str
    reasons: List[str]
    overlapping_trip_ids: List[int]
    total_trips: int


class AssignableTrip(BaseModel):
    """PLANNED/ONGOING trip ranked by how well its route fits a shipment."""
    id: int
    label: str
    departure: str
    destination: str
    status: TripStatus
    date_start: datetime
    date_end: Optional[datetime] = None
    driver_id: int
    driver_name: Optional[str] = None
    vehicle_id: int
    plate_number: Optional[str] = None
    shipment_count: int
    match_score: int
    match_reason: str


class TripSummary(TripResponse):
    """Trip joined with its driver's name and vehicle plate."""
    driver_name: Optional[str] = None
    plate_number: Optional[str] = None


class TripListResponse(BaseModel):
    trips: List[TripSummary]
    total: int
    page: int
    page_size: int
