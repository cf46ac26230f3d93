"""
Expense management actions.

Administrators book expenses against trips and vehicles. Drivers can list
the expenses booked on their own trips.
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from transport_backend.app.core.config import settings
from transport_backend.app.core.exceptions import ResourceNotFoundError
from transport_backend.app.core.rbac import ADMIN, DRIVER, require_any_role, require_role
from transport_backend.app.models.enums import ExpenseType
from transport_backend.app.models.expense import Expense
from transport_backend.app.models.trip import Trip
from transport_backend.app.models.vehicle import Vehicle
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.expense import ExpenseCreate, ExpenseListResponse, ExpenseResponse, ExpenseUpdate
from transport_backend.app.services.actions import action
from transport_backend.app.services.profile_management import driver_profile_for_user

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "amount": Expense.amount,
    "date": Expense.date,
    "type": Expense.type,
    "created_at": Expense.created_at,
}


async def _ensure_references(db: AsyncSession, trip_id: Optional[int], vehicle_id: Optional[int]) -> None:
    if trip_id and not await db.get(Trip, trip_id):
        raise ResourceNotFoundError("Trip", trip_id)
    if vehicle_id and not await db.get(Vehicle, vehicle_id):
        raise ResourceNotFoundError("Vehicle", vehicle_id)


async def get_expense_or_404(db: AsyncSession, expense_id: int) -> Expense:
    expense = await db.get(Expense, expense_id)
    if not expense:
        raise ResourceNotFoundError("Expense", expense_id)
    return expense


# Queries

@action("Failed to fetch expenses")
async def list_expenses(
    db: AsyncSession,
    identity: dict,
    page: int = 1,
    search: Optional[str] = None,
    trip_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
    type: Optional[ExpenseType] = None,
    sort: str = "date",
    order: str = "desc",
    page_size: Optional[int] = None,
) -> ActionResult:
    role = require_any_role(identity, [ADMIN, DRIVER])
    page_size = page_size or settings.items_per_page

    query = select(Expense)
    if role == DRIVER:
        profile = await driver_profile_for_user(db, identity["user_id"])
        own_trips = select(Trip.id).where(Trip.driver_id == (profile.id if profile else -1))
        query = query.where(Expense.trip_id.in_(own_trips))

    if search:
        query = query.where(Expense.note.ilike(f"%{search}%"))
    if trip_id:
        query = query.where(Expense.trip_id == trip_id)
    if vehicle_id:
        query = query.where(Expense.vehicle_id == vehicle_id)
    if type:
        query = query.where(Expense.type == type)

    filtered = query.subquery()
    totals = await db.execute(
        select(func.count(), func.coalesce(func.sum(filtered.c.amount), 0)).select_from(filtered)
    )
    total, total_amount = totals.one()

    column = SORT_COLUMNS.get(sort, Expense.created_at)
    ordering = column.asc() if order == "asc" else column.desc()
    result = await db.execute(
        query.order_by(ordering, Expense.id.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return ActionResult.ok(data=ExpenseListResponse(
        expenses=[ExpenseResponse.model_validate(e) for e in result.scalars().all()],
        total=total,
        total_amount=float(total_amount),
        page=page,
        page_size=page_size,
    ))


@action("Failed to fetch expense")
async def get_expense(db: AsyncSession, identity: dict, expense_id: int) -> ActionResult:
    require_role(identity, ADMIN)
    return ActionResult.ok(data=ExpenseResponse.model_validate(await get_expense_or_404(db, expense_id)))


# Mutations

@action("Failed to create expense")
async def create_expense(db: AsyncSession, identity: dict, payload: ExpenseCreate) -> ActionResult:
    require_role(identity, ADMIN)
    await _ensure_references(db, payload.trip_id, payload.vehicle_id)

    expense = Expense(
        trip_id=payload.trip_id or None,
        vehicle_id=payload.vehicle_id or None,
        created_by_id=identity["user_id"],
        type=payload.type,
        amount=payload.amount,
        date=payload.date,
        note=payload.note or None,
        receipt_url=payload.receipt_url or None,
    )
    db.add(expense)
    await db.commit()
    await db.refresh(expense)

    logger.info("Expense %s booked: %s %.2f", expense.id, expense.type.value, expense.amount)
    return ActionResult.ok("Expense created successfully", data=ExpenseResponse.model_validate(expense))


@action("Failed to update expense")
async def update_expense(db: AsyncSession, identity: dict, expense_id: int, payload: ExpenseUpdate) -> ActionResult:
    require_role(identity, ADMIN)
    expense = await get_expense_or_404(db, expense_id)

    changes = payload.model_dump(exclude_unset=True)
    await _ensure_references(db, changes.get("trip_id"), changes.get("vehicle_id"))

    for field, value in changes.items():
        if field in ("type", "amount", "date") and value is None:
            continue
        if field in ("trip_id", "vehicle_id", "note", "receipt_url"):
            value = value or None
        setattr(expense, field, value)

    await db.commit()
    await db.refresh(expense)
    return ActionResult.ok("Expense updated successfully", data=ExpenseResponse.model_validate(expense))


@action("Failed to delete expense")
async def delete_expense(db: AsyncSession, identity: dict, expense_id: int) -> ActionResult:
    require_role(identity, ADMIN)
    expense = await get_expense_or_404(db, expense_id)

    await db.delete(expense)
    await db.commit()

    logger.info("Expense %s deleted", expense_id)
    return ActionResult.ok("Expense deleted successfully")
