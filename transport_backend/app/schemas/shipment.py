"""
Shipment schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from transport_backend.app.models.enums import PriorityLevel, ShipmentStatus


class ShipmentCreate(BaseModel):
    client_id: int = Field(..., description="Client profile ID")
    trip_id: Optional[int] = None
    tracking_number: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    weight: Optional[float] = Field(default=None, gt=0)
    volume: Optional[float] = Field(default=None, gt=0)
    price: float = Field(..., ge=0, description="Price is required!")
    pickup_address: str = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    priority: Optional[PriorityLevel] = None
    status: Optional[ShipmentStatus] = None
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None


class ShipmentUpdate(BaseModel):
    """Partial update; a status here goes through the shipment status machine."""
    client_id: Optional[int] = None
    trip_id: Optional[int] = None
    tracking_number: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    weight: Optional[float] = Field(default=None, gt=0)
    volume: Optional[float] = Field(default=None, gt=0)
    price: Optional[float] = Field(default=None, ge=0)
    pickup_address: Optional[str] = Field(default=None, min_length=1)
    delivery_address: Optional[str] = Field(default=None, min_length=1)
    priority: Optional[PriorityLevel] = None
    status: Optional[ShipmentStatus] = None
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None


class ShipmentStatusUpdate(BaseModel):
    status: ShipmentStatus


class ShipmentRequest(BaseModel):
    """Shipment request submitted by a client; price and trip are set by an admin."""
    description: str = Field(..., min_length=1, description="Description is required!")
    weight: Optional[float] = Field(default=None, gt=0)
    volume: Optional[float] = Field(default=None, gt=0)
    pickup_address: str = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    priority: Optional[PriorityLevel] = None
    pickup_date: Optional[datetime] = None


class AssignShipmentRequest(BaseModel):
    trip_id: int


class ShipmentResponse(BaseModel):
    id: int
    client_id: int
    trip_id: Optional[int] = None
    tracking_number: str
    description: str
    weight: Optional[float] = None
    volume: Optional[float] = None
    price: float
    pickup_address: str
    delivery_address: str
    priority: PriorityLevel
    status: ShipmentStatus
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ShipmentSummary(ShipmentResponse):
    company_name: Optional[str] = None
    trip_label: Optional[str] = None


class ShipmentListResponse(BaseModel):
    shipments: List[ShipmentSummary]
    total: int
    page: int
    page_size: int
