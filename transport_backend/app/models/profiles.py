"""
Driver and client profile models.

A profile extends a User with the data its role needs. Each user has at
most one profile, matching their role.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from transport_backend.app.db.session import Base
from transport_backend.app.models.enums import DriverStatus


class DriverProfile(Base):
    __tablename__ = "driver_profiles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey('users.id', ondelete="CASCADE"), unique=True, nullable=False, index=True)

    license_number = Column(String(100), unique=True, nullable=False, index=True)
    experience_years = Column(Integer, default=0, nullable=False)
    status = Column(Enum(DriverStatus), default=DriverStatus.ACTIVE, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<DriverProfile(id={self.id}, user_id='{self.user_id}', status='{self.status.value}')>"


class ClientProfile(Base):
    __tablename__ = "client_profiles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey('users.id', ondelete="CASCADE"), unique=True, nullable=False, index=True)

    company_name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=False)
    vat_number = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<ClientProfile(id={self.id}, company='{self.company_name}')>"
