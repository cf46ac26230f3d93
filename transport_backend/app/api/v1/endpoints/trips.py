"""
Trip API endpoints.

Planning and lifecycle routes are admin-only; listing and reading are
scoped to the caller's role.
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.dependencies import get_current_user
from transport_backend.app.db.session import get_db
from transport_backend.app.models.enums import TripStatus
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.trip import TripCreate, TripStatusUpdate, TripUpdate
from transport_backend.app.services import trip_management
from transport_backend.app.services.email import EmailSender, get_email_sender

router = APIRouter(prefix="/trips", tags=["Trips"])


@router.get("", response_model=ActionResult)
async def list_trips(
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    status: Optional[TripStatus] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await trip_management.list_trips(db, current_user, page=page, search=search, status=status)


@router.post("", response_model=ActionResult)
async def create_trip(
    payload: TripCreate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender)
):
    """
    Plan a trip. The driver gets an in-app notification and, when they
    have an address, an e-mail sent after the response.
    """
    result = await trip_management.create_trip(db, current_user, payload)
    if result.success:
        driver = await trip_management.driver_contact(db, payload.driver_id)
        if driver and driver.email:
            trip = result.data
            background_tasks.add_task(
                email_sender.send_trip_assignment,
                driver.email,
                driver.name,
                f"{trip.departure} → {trip.destination}",
                trip_management.trip_link(trip.id),
            )
    return result


@router.get("/suggestions/drivers", response_model=ActionResult)
async def driver_suggestions(
    date_start: datetime = Query(...),
    date_end: Optional[datetime] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Active drivers ranked by availability in the window."""
    return await trip_management.get_driver_suggestions(db, current_user, date_start, date_end)


@router.get("/suggestions/vehicles", response_model=ActionResult)
async def vehicle_suggestions(
    date_start: datetime = Query(...),
    date_end: Optional[datetime] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await trip_management.get_vehicle_suggestions(db, current_user, date_start, date_end)


@router.get("/available", response_model=ActionResult)
async def available_trips(
    shipment_id: Optional[int] = Query(None, description="Rank trips by route match with this shipment"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await trip_management.get_available_trips_for_assignment(db, current_user, shipment_id)


@router.get("/{trip_id}", response_model=ActionResult)
async def get_trip(
    trip_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await trip_management.get_trip(db, current_user, trip_id)


@router.put("/{trip_id}", response_model=ActionResult)
async def update_trip(
    trip_id: int,
    payload: TripUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await trip_management.update_trip(db, current_user, trip_id, payload)


@router.delete("/{trip_id}", response_model=ActionResult)
async def delete_trip(
    trip_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await trip_management.delete_trip(db, current_user, trip_id)


@router.patch("/{trip_id}/status", response_model=ActionResult)
async def update_trip_status(
    trip_id: int,
    payload: TripStatusUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await trip_management.update_trip_status(db, current_user, trip_id, payload.status)
