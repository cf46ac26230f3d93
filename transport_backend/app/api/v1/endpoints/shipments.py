"""
Shipment API endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.dependencies import get_current_user
from transport_backend.app.db.session import get_db
from transport_backend.app.models.enums import ShipmentStatus
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.shipment import (
    AssignShipmentRequest, ShipmentCreate, ShipmentRequest, ShipmentStatusUpdate, ShipmentUpdate,
)
from transport_backend.app.services import shipment_management

router = APIRouter(prefix="/shipments", tags=["Shipments"])


@router.get("", response_model=ActionResult)
async def list_shipments(
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    status: Optional[ShipmentStatus] = Query(None),
    trip_id: Optional[int] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await shipment_management.list_shipments(
        db, current_user, page=page, search=search, status=status, trip_id=trip_id
    )


@router.post("", response_model=ActionResult)
async def create_shipment(
    payload: ShipmentCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await shipment_management.create_shipment(db, current_user, payload)


@router.post("/request", response_model=ActionResult)
async def request_shipment(
    payload: ShipmentRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Client-side shipment request; starts PENDING with a generated tracking number."""
    return await shipment_management.request_shipment(db, current_user, payload)


@router.get("/{shipment_id}", response_model=ActionResult)
async def get_shipment(
    shipment_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await shipment_management.get_shipment(db, current_user, shipment_id)


@router.put("/{shipment_id}", response_model=ActionResult)
async def update_shipment(
    shipment_id: int,
    payload: ShipmentUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await shipment_management.update_shipment(db, current_user, shipment_id, payload)


@router.delete("/{shipment_id}", response_model=ActionResult)
async def delete_shipment(
    shipment_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await shipment_management.delete_shipment(db, current_user, shipment_id)


@router.patch("/{shipment_id}/status", response_model=ActionResult)
async def update_shipment_status(
    shipment_id: int,
    payload: ShipmentStatusUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await shipment_management.update_shipment_status(db, current_user, shipment_id, payload.status)


@router.post("/{shipment_id}/assign", response_model=ActionResult)
async def assign_shipment_to_trip(
    shipment_id: int,
    payload: AssignShipmentRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await shipment_management.assign_shipment_to_trip(db, current_user, shipment_id, payload.trip_id)
