"""
Shipment database model.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from transport_backend.app.db.session import Base
from transport_backend.app.models.enums import ShipmentStatus, PriorityLevel


class Shipment(Base):
    """
    Shipment model.

    A shipment belongs to a client and is carried by at most one trip.
    Its status follows the trip's status changes (see domain.trip_workflow).
    """
    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    client_id = Column(Integer, ForeignKey('client_profiles.id'), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=True, index=True)

    tracking_number = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=False)

    weight = Column(Float, nullable=True)
    volume = Column(Float, nullable=True)
    price = Column(Float, default=0, nullable=False)

    pickup_address = Column(String(500), nullable=False)
    delivery_address = Column(String(500), nullable=False)

    priority = Column(Enum(PriorityLevel), default=PriorityLevel.NORMAL, nullable=False)
    status = Column(Enum(ShipmentStatus), default=ShipmentStatus.PENDING, nullable=False, index=True)

    pickup_date = Column(DateTime(timezone=True), nullable=True)
    delivery_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Shipment(id={self.id}, tracking='{self.tracking_number}', status='{self.status.value}')>"
