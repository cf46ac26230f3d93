"""
Vehicle database model.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum
from sqlalchemy.sql import func
from transport_backend.app.db.session import Base
from transport_backend.app.models.enums import VehicleStatus


class Vehicle(Base):
    """
    Vehicle model.

    Only ACTIVE vehicles can be put on new trips. INACTIVE is final.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identification
    plate_number = Column(String(50), unique=True, nullable=False, index=True)
    type = Column(String(100), nullable=False)  # e.g., "Truck", "Van"
    brand = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    image = Column(String(500), nullable=True)  # Image host URL

    # Condition
    mileage = Column(Float, default=0, nullable=False)
    purchase_date = Column(DateTime(timezone=True), nullable=True)
    last_service_date = Column(DateTime(timezone=True), nullable=True)

    # Capacity
    capacity_weight = Column(Float, nullable=True)
    capacity_volume = Column(Float, nullable=True)

    status = Column(Enum(VehicleStatus), default=VehicleStatus.ACTIVE, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.plate_number}', status='{self.status.value}')>"
