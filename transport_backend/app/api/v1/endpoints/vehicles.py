"""
Vehicle API endpoints (admin-only).
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.dependencies import get_current_user
from transport_backend.app.db.session import get_db
from transport_backend.app.models.enums import VehicleStatus
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.vehicle import VehicleCreate, VehicleStatusUpdate, VehicleUpdate
from transport_backend.app.services import vehicle_management

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.get("", response_model=ActionResult)
async def list_vehicles(
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    status: Optional[VehicleStatus] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await vehicle_management.list_vehicles(db, current_user, page=page, search=search, status=status)


@router.post("", response_model=ActionResult)
async def create_vehicle(
    payload: VehicleCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await vehicle_management.create_vehicle(db, current_user, payload)


@router.get("/{vehicle_id}", response_model=ActionResult)
async def get_vehicle(
    vehicle_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await vehicle_management.get_vehicle(db, current_user, vehicle_id)


@router.put("/{vehicle_id}", response_model=ActionResult)
async def update_vehicle(
    vehicle_id: int,
    payload: VehicleUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await vehicle_management.update_vehicle(db, current_user, vehicle_id, payload)


@router.delete("/{vehicle_id}", response_model=ActionResult)
async def delete_vehicle(
    vehicle_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Refused while a planned or ongoing trip uses the vehicle."""
    return await vehicle_management.delete_vehicle(db, current_user, vehicle_id)


@router.patch("/{vehicle_id}/status", response_model=ActionResult)
async def update_vehicle_status(
    vehicle_id: int,
    payload: VehicleStatusUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await vehicle_management.update_vehicle_status(db, current_user, vehicle_id, payload.status)
