"""
Issue schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from transport_backend.app.models.enums import IssueStatus, IssueType, PriorityLevel


class IssueReport(BaseModel):
    type: IssueType
    severity: PriorityLevel = PriorityLevel.NORMAL
    description: str = Field(..., min_length=1)


class IssueStatusUpdate(BaseModel):
    status: IssueStatus
    resolution: Optional[str] = None


class IssueResponse(BaseModel):
    id: int
    trip_id: int
    driver_id: int
    type: IssueType
    severity: PriorityLevel
    description: str
    status: IssueStatus
    resolution: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class IssueSummary(IssueResponse):
    trip_label: str
    driver_name: str


class IssueListResponse(BaseModel):
    issues: List[IssueSummary]
    total: int
    page: int
    page_size: int
