"""
Vehicle management actions (admin-only).
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from transport_backend.app.core.config import settings
from transport_backend.app.core.exceptions import BusinessRuleError, ResourceNotFoundError
from transport_backend.app.core.rbac import ADMIN, require_role
from transport_backend.app.domain.status_machine import VEHICLE_STATUS_MACHINE
from transport_backend.app.models.enums import TripStatus, VehicleStatus
from transport_backend.app.models.trip import Trip
from transport_backend.app.models.vehicle import Vehicle
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.vehicle import (
    VehicleCreate, VehicleListResponse, VehicleResponse, VehicleUpdate
)
from transport_backend.app.services.actions import action

logger = logging.getLogger(__name__)

ACTIVE_TRIP_STATUSES = (TripStatus.PLANNED, TripStatus.ONGOING)


async def get_vehicle_or_404(db: AsyncSession, vehicle_id: int) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise ResourceNotFoundError("Vehicle", vehicle_id)
    return vehicle


async def _ensure_unique_plate(db: AsyncSession, plate_number: str, exclude_id: Optional[int] = None) -> None:
    query = select(Vehicle.id).where(Vehicle.plate_number == plate_number)
    if exclude_id is not None:
        query = query.where(Vehicle.id != exclude_id)
    if (await db.execute(query)).first():
        raise BusinessRuleError("A vehicle with this plate number already exists")


# Queries

@action("Failed to fetch vehicles")
async def list_vehicles(
    db: AsyncSession,
    identity: dict,
    page: int = 1,
    search: Optional[str] = None,
    status: Optional[VehicleStatus] = None,
    page_size: Optional[int] = None,
) -> ActionResult:
    require_role(identity, ADMIN)
    page_size = page_size or settings.items_per_page

    query = select(Vehicle)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Vehicle.plate_number.ilike(pattern), Vehicle.brand.ilike(pattern), Vehicle.model.ilike(pattern)
        ))
    if status:
        query = query.where(Vehicle.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(Vehicle.created_at.desc(), Vehicle.id.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return ActionResult.ok(data=VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(v) for v in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
    ))


@action("Failed to fetch vehicle")
async def get_vehicle(db: AsyncSession, identity: dict, vehicle_id: int) -> ActionResult:
    require_role(identity, ADMIN)
    return ActionResult.ok(data=VehicleResponse.model_validate(await get_vehicle_or_404(db, vehicle_id)))


# Mutations

@action("Failed to create vehicle")
async def create_vehicle(db: AsyncSession, identity: dict, payload: VehicleCreate) -> ActionResult:
    require_role(identity, ADMIN)
    await _ensure_unique_plate(db, payload.plate_number)

    vehicle = Vehicle(
        plate_number=payload.plate_number,
        type=payload.type,
        brand=payload.brand,
        model=payload.model,
        status=payload.status or VehicleStatus.ACTIVE,
        image=payload.image or None,
        mileage=payload.mileage or 0,
        purchase_date=payload.purchase_date,
        last_service_date=payload.last_service_date,
        capacity_weight=payload.capacity_weight,
        capacity_volume=payload.capacity_volume,
    )
    db.add(vehicle)
    await db.commit()
    await db.refresh(vehicle)

    logger.info("Vehicle %s created (%s)", vehicle.id, vehicle.plate_number)
    return ActionResult.ok("Vehicle created successfully", data=VehicleResponse.model_validate(vehicle))


@action("Failed to update vehicle")
async def update_vehicle(db: AsyncSession, identity: dict, vehicle_id: int, payload: VehicleUpdate) -> ActionResult:
    """
    Apply the fields present in the payload.

    A status change goes through the vehicle status machine.
    """
    require_role(identity, ADMIN)
    vehicle = await get_vehicle_or_404(db, vehicle_id)

    changes = payload.model_dump(exclude_unset=True)
    if changes.get("plate_number") and changes["plate_number"] != vehicle.plate_number:
        await _ensure_unique_plate(db, changes["plate_number"], exclude_id=vehicle_id)

    new_status = changes.pop("status", None)
    if new_status is not None and new_status != vehicle.status:
        vehicle.status = VEHICLE_STATUS_MACHINE.ensure_transition(vehicle.status, new_status)

    for field, value in changes.items():
        if field == "image":
            value = value or None
        setattr(vehicle, field, value)

    await db.commit()
    await db.refresh(vehicle)
    return ActionResult.ok("Vehicle updated successfully", data=VehicleResponse.model_validate(vehicle))


@action("Failed to delete vehicle")
async def delete_vehicle(db: AsyncSession, identity: dict, vehicle_id: int) -> ActionResult:
    require_role(identity, ADMIN)
    vehicle = await get_vehicle_or_404(db, vehicle_id)

    active_trips = await db.execute(
        select(func.count(Trip.id)).where(Trip.vehicle_id == vehicle_id, Trip.status.in_(ACTIVE_TRIP_STATUSES))
    )
    if active_trips.scalar():
        raise BusinessRuleError("Cannot delete vehicle with active or planned trips")

    await db.delete(vehicle)
    await db.commit()

    logger.info("Vehicle %s deleted", vehicle_id)
    return ActionResult.ok("Vehicle deleted successfully")


@action("Failed to update vehicle status")
async def update_vehicle_status(db: AsyncSession, identity: dict, vehicle_id: int, status: VehicleStatus) -> ActionResult:
    require_role(identity, ADMIN)
    vehicle = await get_vehicle_or_404(db, vehicle_id)

    previous = vehicle.status
    vehicle.status = VEHICLE_STATUS_MACHINE.ensure_transition(previous, status)
    await db.commit()

    logger.info("Vehicle %s status %s -> %s", vehicle_id, previous.value, vehicle.status.value)
    return ActionResult.ok(f"Vehicle status updated to {vehicle.status.value}")
