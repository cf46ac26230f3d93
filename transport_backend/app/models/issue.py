"""
Issue database model.

Drivers report issues against their own trips; administrators resolve them.
"""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from transport_backend.app.db.session import Base
from transport_backend.app.models.enums import IssueType, IssueStatus, PriorityLevel


class Issue(Base):
    __tablename__ = "issues"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('driver_profiles.id'), nullable=False, index=True)

    type = Column(Enum(IssueType), nullable=False)
    severity = Column(Enum(PriorityLevel), default=PriorityLevel.NORMAL, nullable=False)
    description = Column(Text, nullable=False)

    status = Column(Enum(IssueStatus), default=IssueStatus.OPEN, nullable=False, index=True)
    resolution = Column(Text, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Issue(id={self.id}, trip={self.trip_id}, status='{self.status.value}')>"
