"""
Driver and client profile API endpoints (admin-only).
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.dependencies import get_current_user
from transport_backend.app.db.session import get_db
from transport_backend.app.models.enums import DriverStatus
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.profile import ClientProfileUpdate, DriverProfileUpdate, DriverStatusUpdate
from transport_backend.app.services import profile_management

drivers_router = APIRouter(prefix="/drivers", tags=["Drivers"])
clients_router = APIRouter(prefix="/clients", tags=["Clients"])


@drivers_router.get("", response_model=ActionResult)
async def list_drivers(
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    status: Optional[DriverStatus] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await profile_management.list_drivers(db, current_user, page=page, search=search, status=status)


@drivers_router.get("/{driver_id}", response_model=ActionResult)
async def get_driver(
    driver_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await profile_management.get_driver(db, current_user, driver_id)


@drivers_router.put("/{driver_id}", response_model=ActionResult)
async def update_driver_profile(
    driver_id: int,
    payload: DriverProfileUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await profile_management.update_driver_profile(db, current_user, driver_id, payload)


@drivers_router.patch("/{driver_id}/status", response_model=ActionResult)
async def update_driver_status(
    driver_id: int,
    payload: DriverStatusUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Move a driver through the driver status machine."""
    return await profile_management.update_driver_status(db, current_user, driver_id, payload.status)


@clients_router.get("", response_model=ActionResult)
async def list_clients(
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await profile_management.list_clients(db, current_user, page=page, search=search)


@clients_router.get("/{client_id}", response_model=ActionResult)
async def get_client(
    client_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await profile_management.get_client(db, current_user, client_id)


@clients_router.put("/{client_id}", response_model=ActionResult)
async def update_client_profile(
    client_id: int,
    payload: ClientProfileUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await profile_management.update_client_profile(db, current_user, client_id, payload)
