"""
Notification Schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from transport_backend.app.models.enums import NotificationStatus, NotificationType


class NotificationResponse(BaseModel):
    id: int
    type: NotificationType
    title: str
    message: str
    link: Optional[str]
    status: NotificationStatus
    created_at: datetime
    read_at: Optional[datetime]

    class Config:
        from_attributes = True
