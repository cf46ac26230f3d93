"""
Trip database model.

Trips are created by administrators and executed by the assigned driver.
"""

from sqlalchemy import Column, Integer, String, Float, Text, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from transport_backend.app.db.session import Base
from transport_backend.app.models.enums import TripStatus


class Trip(Base):
    """
    Trip model.

    Status only moves PLANNED -> ONGOING -> COMPLETED, or to CANCELLED
    from PLANNED/ONGOING (see domain.status_machine).
    """
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Assignment
    driver_id = Column(Integer, ForeignKey('driver_profiles.id'), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)

    # Route
    departure = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    date_start = Column(DateTime(timezone=True), nullable=False, index=True)
    date_end = Column(DateTime(timezone=True), nullable=True)

    # Durations in minutes, distance in km
    estimated_duration = Column(Float, nullable=True)
    actual_duration = Column(Float, nullable=True)
    distance = Column(Float, nullable=True)

    status = Column(Enum(TripStatus), default=TripStatus.PLANNED, nullable=False, index=True)
    total_cost = Column(Float, default=0, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def label(self) -> str:
        return f"{self.departure} → {self.destination}"

    def __repr__(self):
        return f"<Trip(id={self.id}, {self.departure}->{self.destination}, status='{self.status.value}')>"
