"""
Expense schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from transport_backend.app.models.enums import ExpenseType


class ExpenseCreate(BaseModel):
    trip_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    type: ExpenseType
    amount: float = Field(..., gt=0, description="Amount must be greater than 0!")
    date: datetime
    note: Optional[str] = None
    receipt_url: Optional[str] = None


class ExpenseUpdate(BaseModel):
    trip_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    type: Optional[ExpenseType] = None
    amount: Optional[float] = Field(default=None, gt=0)
    date: Optional[datetime] = None
    note: Optional[str] = None
    receipt_url: Optional[str] = None


class ExpenseResponse(BaseModel):
    id: int
    trip_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    created_by_id: str
    type: ExpenseType
    amount: float
    date: datetime
    note: Optional[str] = None
    receipt_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ExpenseListResponse(BaseModel):
    expenses: List[ExpenseResponse]
    total: int
    total_amount: float
    page: int
    page_size: int
