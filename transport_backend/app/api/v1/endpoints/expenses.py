"""
Expense API endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.dependencies import get_current_user
from transport_backend.app.db.session import get_db
from transport_backend.app.models.enums import ExpenseType
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.expense import ExpenseCreate, ExpenseUpdate
from transport_backend.app.services import expense_management

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.get("", response_model=ActionResult)
async def list_expenses(
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    trip_id: Optional[int] = Query(None),
    vehicle_id: Optional[int] = Query(None),
    type: Optional[ExpenseType] = Query(None),
    sort: str = Query("date", pattern="^(amount|date|type|created_at)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await expense_management.list_expenses(
        db, current_user,
        page=page, search=search, trip_id=trip_id, vehicle_id=vehicle_id, type=type, sort=sort, order=order,
    )


@router.post("", response_model=ActionResult)
async def create_expense(
    payload: ExpenseCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await expense_management.create_expense(db, current_user, payload)


@router.get("/{expense_id}", response_model=ActionResult)
async def get_expense(
    expense_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await expense_management.get_expense(db, current_user, expense_id)


@router.put("/{expense_id}", response_model=ActionResult)
async def update_expense(
    expense_id: int,
    payload: ExpenseUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await expense_management.update_expense(db, current_user, expense_id, payload)


@router.delete("/{expense_id}", response_model=ActionResult)
async def delete_expense(
    expense_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await expense_management.delete_expense(db, current_user, expense_id)
