"""
Shipment management actions.

Administrators create, price and assign shipments; clients submit
shipment requests and follow their own shipments.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from transport_backend.app.core.config import settings
from transport_backend.app.core.exceptions import BusinessRuleError, InsufficientPermissionsError, ResourceNotFoundError
from transport_backend.app.core.rbac import ADMIN, CLIENT, DRIVER, require_any_role, require_role
from transport_backend.app.domain.status_machine import SHIPMENT_STATUS_MACHINE
from transport_backend.app.models.enums import PriorityLevel, ShipmentStatus, TripStatus
from transport_backend.app.models.profiles import ClientProfile
from transport_backend.app.models.shipment import Shipment
from transport_backend.app.models.trip import Trip
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.shipment import (
    ShipmentCreate, ShipmentListResponse, ShipmentRequest, ShipmentResponse, ShipmentSummary, ShipmentUpdate
)
from transport_backend.app.services.actions import action
from transport_backend.app.services.profile_management import client_profile_for_user, driver_profile_for_user

logger = logging.getLogger(__name__)

TRACKING_NUMBER_ATTEMPTS = 10

DELETABLE_STATUSES = (ShipmentStatus.PENDING, ShipmentStatus.CANCELLED)
ASSIGNABLE_TRIP_STATUSES = (TripStatus.PLANNED, TripStatus.ONGOING)


def generate_tracking_number(today: Optional[datetime] = None) -> str:
    """``TRK-YYYYMMDD-NNNN`` with a random four-digit suffix."""
    today = today or datetime.now(timezone.utc)
    return f"TRK-{today:%Y%m%d}-{secrets.randbelow(10000):04d}"


async def get_shipment_or_404(db: AsyncSession, shipment_id: int) -> Shipment:
    shipment = await db.get(Shipment, shipment_id)
    if not shipment:
        raise ResourceNotFoundError("Shipment", shipment_id)
    return shipment


async def _tracking_number_taken(db: AsyncSession, tracking_number: str, exclude_id: Optional[int] = None) -> bool:
    query = select(Shipment.id).where(Shipment.tracking_number == tracking_number)
    if exclude_id is not None:
        query = query.where(Shipment.id != exclude_id)
    return (await db.execute(query)).first() is not None


async def unique_tracking_number(db: AsyncSession) -> str:
    """
    Draw tracking numbers until one is free.

    Raises:
        BusinessRuleError: every attempt collided
    """
    for _ in range(TRACKING_NUMBER_ATTEMPTS):
        candidate = generate_tracking_number()
        if not await _tracking_number_taken(db, candidate):
            return candidate
    raise BusinessRuleError("Failed to generate unique tracking number. Please try again.")


async def _ensure_client(db: AsyncSession, client_id: int) -> ClientProfile:
    client = await db.get(ClientProfile, client_id)
    if not client:
        raise ResourceNotFoundError("Client", client_id)
    return client


async def _ensure_trip(db: AsyncSession, trip_id: int) -> Trip:
    trip = await db.get(Trip, trip_id)
    if not trip:
        raise ResourceNotFoundError("Trip", trip_id)
    return trip


async def ensure_shipment_visible(db: AsyncSession, identity: dict, shipment: Shipment) -> None:
    """
    Admins see every shipment, clients their own, drivers the shipments
    on their trips.
    """
    role = require_any_role(identity, [ADMIN, DRIVER, CLIENT])
    if role == ADMIN:
        return
    if role == CLIENT:
        profile = await client_profile_for_user(db, identity["user_id"])
        if profile and shipment.client_id == profile.id:
            return
    elif shipment.trip_id:
        profile = await driver_profile_for_user(db, identity["user_id"])
        trip = await db.get(Trip, shipment.trip_id)
        if profile and trip and trip.driver_id == profile.id:
            return
    raise InsufficientPermissionsError("Unauthorized")


def _summary_query():
    return (
        select(Shipment, ClientProfile.company_name, Trip.departure, Trip.destination)
        .join(ClientProfile, ClientProfile.id == Shipment.client_id)
        .outerjoin(Trip, Trip.id == Shipment.trip_id)
    )


def _summaries(rows: Sequence) -> List[ShipmentSummary]:
    return [
        ShipmentSummary(
            **ShipmentResponse.model_validate(shipment).model_dump(),
            company_name=company,
            trip_label=f"{departure} → {destination}" if departure else None,
        )
        for shipment, company, departure, destination in rows
    ]


# Queries

@action("Failed to fetch shipments")
async def list_shipments(
    db: AsyncSession,
    identity: dict,
    page: int = 1,
    search: Optional[str] = None,
    status: Optional[ShipmentStatus] = None,
    trip_id: Optional[int] = None,
    page_size: Optional[int] = None,
) -> ActionResult:
    role = require_any_role(identity, [ADMIN, DRIVER, CLIENT])
    page_size = page_size or settings.items_per_page

    query = _summary_query()
    if role == CLIENT:
        profile = await client_profile_for_user(db, identity["user_id"])
        query = query.where(Shipment.client_id == (profile.id if profile else -1))
    elif role == DRIVER:
        profile = await driver_profile_for_user(db, identity["user_id"])
        query = query.where(Trip.driver_id == (profile.id if profile else -1))

    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Shipment.tracking_number.ilike(pattern),
            Shipment.description.ilike(pattern),
            ClientProfile.company_name.ilike(pattern),
        ))
    if status:
        query = query.where(Shipment.status == status)
    if trip_id:
        query = query.where(Shipment.trip_id == trip_id)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(Shipment.created_at.desc(), Shipment.id.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return ActionResult.ok(data=ShipmentListResponse(
        shipments=_summaries(result.all()),
        total=total,
        page=page,
        page_size=page_size,
    ))


@action("Failed to fetch shipment")
async def get_shipment(db: AsyncSession, identity: dict, shipment_id: int) -> ActionResult:
    shipment = await get_shipment_or_404(db, shipment_id)
    await ensure_shipment_visible(db, identity, shipment)
    result = await db.execute(_summary_query().where(Shipment.id == shipment_id))
    return ActionResult.ok(data=_summaries(result.all())[0])


# Mutations

@action("Failed to create shipment")
async def create_shipment(db: AsyncSession, identity: dict, payload: ShipmentCreate) -> ActionResult:
    require_role(identity, ADMIN)

    await _ensure_client(db, payload.client_id)
    if await _tracking_number_taken(db, payload.tracking_number):
        raise BusinessRuleError("A shipment with this tracking number already exists")
    if payload.trip_id:
        await _ensure_trip(db, payload.trip_id)

    shipment = Shipment(
        client_id=payload.client_id,
        trip_id=payload.trip_id or None,
        tracking_number=payload.tracking_number,
        description=payload.description,
        weight=payload.weight,
        volume=payload.volume,
        price=payload.price,
        pickup_address=payload.pickup_address,
        delivery_address=payload.delivery_address,
        priority=payload.priority or PriorityLevel.NORMAL,
        status=payload.status or ShipmentStatus.PENDING,
        pickup_date=payload.pickup_date,
        delivery_date=payload.delivery_date,
    )
    db.add(shipment)
    await db.commit()
    await db.refresh(shipment)

    logger.info("Shipment %s created (%s)", shipment.id, shipment.tracking_number)
    return ActionResult.ok("Shipment created successfully", data=ShipmentResponse.model_validate(shipment))


@action("Failed to update shipment")
async def update_shipment(
    db: AsyncSession,
    identity: dict,
    shipment_id: int,
    payload: ShipmentUpdate,
) -> ActionResult:
    """
    Apply the fields present in the payload.

    ``trip_id: null`` detaches the shipment from its trip; a status change
    goes through the shipment status machine.
    """
    require_role(identity, ADMIN)
    shipment = await get_shipment_or_404(db, shipment_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("client_id"):
        await _ensure_client(db, changes["client_id"])
    if changes.get("trip_id"):
        await _ensure_trip(db, changes["trip_id"])
    tracking_number = changes.get("tracking_number")
    if tracking_number and tracking_number != shipment.tracking_number:
        if await _tracking_number_taken(db, tracking_number, exclude_id=shipment_id):
            raise BusinessRuleError("A shipment with this tracking number already exists")

    new_status = changes.pop("status", None)
    if new_status is not None and new_status != shipment.status:
        _apply_status(shipment, new_status)

    for field, value in changes.items():
        if field in ("client_id", "tracking_number", "description", "pickup_address",
                     "delivery_address", "priority", "price") and value is None:
            continue
        setattr(shipment, field, value)

    await db.commit()
    await db.refresh(shipment)
    return ActionResult.ok("Shipment updated successfully", data=ShipmentResponse.model_validate(shipment))


@action("Failed to delete shipment")
async def delete_shipment(db: AsyncSession, identity: dict, shipment_id: int) -> ActionResult:
    require_role(identity, ADMIN)
    shipment = await get_shipment_or_404(db, shipment_id)

    if shipment.status not in DELETABLE_STATUSES:
        raise BusinessRuleError("Cannot delete shipment that is not pending or cancelled")

    await db.delete(shipment)
    await db.commit()

    logger.info("Shipment %s deleted", shipment_id)
    return ActionResult.ok("Shipment deleted successfully")


def _apply_status(shipment: Shipment, status: ShipmentStatus) -> None:
    shipment.status = SHIPMENT_STATUS_MACHINE.ensure_transition(shipment.status, status)
    if shipment.status == ShipmentStatus.DELIVERED and not shipment.delivery_date:
        shipment.delivery_date = datetime.now(timezone.utc)


@action("Failed to update shipment status")
async def update_shipment_status(
    db: AsyncSession,
    identity: dict,
    shipment_id: int,
    status: ShipmentStatus,
) -> ActionResult:
    require_role(identity, ADMIN)
    shipment = await get_shipment_or_404(db, shipment_id)

    previous = shipment.status
    _apply_status(shipment, status)
    await db.commit()

    logger.info("Shipment %s status %s -> %s", shipment_id, previous.value, shipment.status.value)
    return ActionResult.ok(f"Shipment status updated to {shipment.status.value}")


@action("Failed to create shipment request")
async def request_shipment(db: AsyncSession, identity: dict, payload: ShipmentRequest) -> ActionResult:
    """
    Shipment request from a client.

    Starts PENDING with price 0 and no trip; an admin prices and assigns it.
    """
    require_role(identity, CLIENT)

    profile = await client_profile_for_user(db, identity["user_id"])
    if not profile:
        raise ResourceNotFoundError("Client profile")

    shipment = Shipment(
        client_id=profile.id,
        trip_id=None,
        tracking_number=await unique_tracking_number(db),
        description=payload.description,
        weight=payload.weight,
        volume=payload.volume,
        price=0,
        pickup_address=payload.pickup_address,
        delivery_address=payload.delivery_address,
        priority=payload.priority or PriorityLevel.NORMAL,
        status=ShipmentStatus.PENDING,
        pickup_date=payload.pickup_date,
        delivery_date=None,
    )
    db.add(shipment)
    await db.commit()
    await db.refresh(shipment)

    logger.info("Client %s requested shipment %s", profile.id, shipment.tracking_number)
    return ActionResult.ok(
        f"Shipment request submitted. Tracking number: {shipment.tracking_number}",
        data=ShipmentResponse.model_validate(shipment),
    )


@action("Failed to assign shipment to trip")
async def assign_shipment_to_trip(db: AsyncSession, identity: dict, shipment_id: int, trip_id: int) -> ActionResult:
    """Put a PENDING shipment on a PLANNED/ONGOING trip and add its price to the trip cost."""
    require_role(identity, ADMIN)

    shipment = await get_shipment_or_404(db, shipment_id)
    if shipment.status != ShipmentStatus.PENDING:
        raise BusinessRuleError("Only pending shipments can be assigned to trips")

    trip = await _ensure_trip(db, trip_id)
    if trip.status not in ASSIGNABLE_TRIP_STATUSES:
        raise BusinessRuleError("Shipments can only be assigned to planned or ongoing trips")

    shipment.trip_id = trip.id
    shipment.status = SHIPMENT_STATUS_MACHINE.ensure_transition(shipment.status, ShipmentStatus.ASSIGNED)
    trip.total_cost = (trip.total_cost or 0) + (shipment.price or 0)
    await db.commit()

    logger.info("Shipment %s assigned to trip %s", shipment_id, trip_id)
    return ActionResult.ok(f"Shipment assigned to trip {trip.label}")
