"""
Trip management actions.

Administrators plan trips and drive their whole lifecycle; drivers and
clients only read the trips that concern them (see ``driver_actions`` for
the driver's own status updates).
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_, or_
from transport_backend.app.core.config import settings
from transport_backend.app.core.exceptions import BusinessRuleError, InsufficientPermissionsError, ResourceNotFoundError
from transport_backend.app.core.rbac import ADMIN, CLIENT, DRIVER, require_any_role, require_role
from transport_backend.app.domain.trip_workflow import TripWorkflow
from transport_backend.app.models.enums import DriverStatus, NotificationType, TripStatus, VehicleStatus
from transport_backend.app.models.expense import Expense
from transport_backend.app.models.profiles import DriverProfile
from transport_backend.app.models.shipment import Shipment
from transport_backend.app.models.trip import Trip
from transport_backend.app.models.user import User
from transport_backend.app.models.vehicle import Vehicle
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.trip import (
    AssignableTrip, DriverSuggestion, TripCreate, TripListResponse, TripResponse,
    TripStatusChangeResponse, TripSummary, TripUpdate,
)
from transport_backend.app.schemas.vehicle import VehicleSuggestion
from transport_backend.app.services.actions import action
from transport_backend.app.services.notification_service import NotificationService
from transport_backend.app.services.profile_management import client_profile_for_user, driver_profile_for_user

logger = logging.getLogger(__name__)

ACTIVE_TRIP_STATUSES = (TripStatus.PLANNED, TripStatus.ONGOING)

OVERLAP_MESSAGE = "Driver or vehicle is already assigned to another trip during this time"


def trip_link(trip_id: int) -> str:
    return f"/list/trips/{trip_id}"


def overlaps_window(date_start: datetime, date_end: Optional[datetime]):
    """
    SQL condition for PLANNED/ONGOING trips overlapping a time window.

    A window (or trip) without an end is treated as the single instant
    of its start.
    """
    window_end = date_end or date_start
    return and_(
        Trip.status.in_(ACTIVE_TRIP_STATUSES),
        Trip.date_start <= window_end,
        func.coalesce(Trip.date_end, Trip.date_start) >= date_start,
    )


async def get_trip_or_404(db: AsyncSession, trip_id: int) -> Trip:
    trip = await db.get(Trip, trip_id)
    if not trip:
        raise ResourceNotFoundError("Trip", trip_id)
    return trip


async def _ensure_driver_available(db: AsyncSession, driver_id: int) -> DriverProfile:
    driver = await db.get(DriverProfile, driver_id)
    if not driver:
        raise ResourceNotFoundError("Driver", driver_id)
    if driver.status != DriverStatus.ACTIVE:
        raise BusinessRuleError("Driver is not active")
    return driver


async def _ensure_vehicle_available(db: AsyncSession, vehicle_id: int) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise ResourceNotFoundError("Vehicle", vehicle_id)
    if vehicle.status != VehicleStatus.ACTIVE:
        raise BusinessRuleError("Vehicle is not active")
    return vehicle


async def _ensure_no_overlap(
    db: AsyncSession,
    driver_id: int,
    vehicle_id: int,
    date_start: datetime,
    date_end: Optional[datetime],
    exclude_trip_id: Optional[int] = None,
) -> None:
    query = select(Trip.id).where(
        overlaps_window(date_start, date_end),
        or_(Trip.driver_id == driver_id, Trip.vehicle_id == vehicle_id),
    )
    if exclude_trip_id is not None:
        query = query.where(Trip.id != exclude_trip_id)
    if (await db.execute(query.limit(1))).first():
        raise BusinessRuleError(OVERLAP_MESSAGE)


async def driver_user_id(db: AsyncSession, driver_id: int) -> Optional[str]:
    result = await db.execute(select(DriverProfile.user_id).where(DriverProfile.id == driver_id))
    return result.scalar_one_or_none()


async def driver_contact(db: AsyncSession, driver_id: int) -> Optional[User]:
    """User behind a driver profile, for e-mail notifications."""
    result = await db.execute(
        select(User).join(DriverProfile, DriverProfile.user_id == User.id).where(DriverProfile.id == driver_id)
    )
    return result.scalar_one_or_none()


async def notify_trip_status(db: AsyncSession, trip: Trip, status: TripStatus) -> None:
    """Tell the trip's driver and every active admin about a status change."""
    title = "Trip Status Updated"
    message = f"Trip {trip.label} is now {status.value}"
    link = trip_link(trip.id)

    user_id = await driver_user_id(db, trip.driver_id)
    if user_id:
        await NotificationService.create_notification(
            db, user_id, title, message, type=NotificationType.TRIP_UPDATE, link=link
        )
    await NotificationService.notify_admins(db, title, message, type=NotificationType.TRIP_UPDATE, link=link)


async def change_trip_status(db: AsyncSession, trip: Trip, status: TripStatus) -> TripStatusChangeResponse:
    """Run the status workflow, notify, and commit in one transaction."""
    outcome = await TripWorkflow.apply_status_change(db, trip, status)
    await notify_trip_status(db, trip, outcome.current)
    await db.commit()

    logger.info(
        "Trip %s status %s -> %s (%s shipments updated)",
        trip.id, outcome.previous.value, outcome.current.value, outcome.shipments_updated,
    )
    return TripStatusChangeResponse(
        trip_id=outcome.trip_id,
        previous_status=outcome.previous,
        status=outcome.current,
        shipments_updated=outcome.shipments_updated,
    )


async def ensure_trip_visible(db: AsyncSession, identity: dict, trip: Trip) -> None:
    """
    Admins see every trip, drivers their own, clients the trips carrying
    one of their shipments.

    Raises:
        InsufficientPermissionsError: trip belongs to someone else
    """
    role = require_any_role(identity, [ADMIN, DRIVER, CLIENT])
    if role == ADMIN:
        return
    if role == DRIVER:
        profile = await driver_profile_for_user(db, identity["user_id"])
        if profile and trip.driver_id == profile.id:
            return
    else:
        profile = await client_profile_for_user(db, identity["user_id"])
        if profile:
            carried = await db.execute(
                select(Shipment.id).where(Shipment.trip_id == trip.id, Shipment.client_id == profile.id).limit(1)
            )
            if carried.first():
                return
    raise InsufficientPermissionsError("Unauthorized")


def _trip_summaries(rows: Sequence) -> List[TripSummary]:
    return [
        TripSummary(**TripResponse.model_validate(trip).model_dump(), driver_name=name, plate_number=plate)
        for trip, name, plate in rows
    ]


def _summary_query():
    return (
        select(Trip, User.name, Vehicle.plate_number)
        .join(DriverProfile, DriverProfile.id == Trip.driver_id)
        .join(User, User.id == DriverProfile.user_id)
        .join(Vehicle, Vehicle.id == Trip.vehicle_id)
    )


# Queries

@action("Failed to fetch trips")
async def list_trips(
    db: AsyncSession,
    identity: dict,
    page: int = 1,
    search: Optional[str] = None,
    status: Optional[TripStatus] = None,
    page_size: Optional[int] = None,
) -> ActionResult:
    """Trips visible to the caller, newest departure first."""
    role = require_any_role(identity, [ADMIN, DRIVER, CLIENT])
    page_size = page_size or settings.items_per_page

    query = _summary_query()
    if role == DRIVER:
        profile = await driver_profile_for_user(db, identity["user_id"])
        query = query.where(Trip.driver_id == (profile.id if profile else -1))
    elif role == CLIENT:
        profile = await client_profile_for_user(db, identity["user_id"])
        carried = select(Shipment.trip_id).where(Shipment.client_id == (profile.id if profile else -1))
        query = query.where(Trip.id.in_(carried))

    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Trip.departure.ilike(pattern), Trip.destination.ilike(pattern), User.name.ilike(pattern)
        ))
    if status:
        query = query.where(Trip.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(Trip.date_start.desc(), Trip.id.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return ActionResult.ok(data=TripListResponse(
        trips=_trip_summaries(result.all()),
        total=total,
        page=page,
        page_size=page_size,
    ))


@action("Failed to fetch trip")
async def get_trip(db: AsyncSession, identity: dict, trip_id: int) -> ActionResult:
    trip = await get_trip_or_404(db, trip_id)
    await ensure_trip_visible(db, identity, trip)

    result = await db.execute(_summary_query().where(Trip.id == trip_id))
    return ActionResult.ok(data=_trip_summaries(result.all())[0])


# Mutations

@action("Failed to create trip")
async def create_trip(db: AsyncSession, identity: dict, payload: TripCreate) -> ActionResult:
    require_role(identity, ADMIN)

    driver = await _ensure_driver_available(db, payload.driver_id)
    await _ensure_vehicle_available(db, payload.vehicle_id)
    if payload.date_end and payload.date_end < payload.date_start:
        raise BusinessRuleError("End date must be after start date")
    await _ensure_no_overlap(db, payload.driver_id, payload.vehicle_id, payload.date_start, payload.date_end)

    trip = Trip(
        driver_id=payload.driver_id,
        vehicle_id=payload.vehicle_id,
        departure=payload.departure,
        destination=payload.destination,
        date_start=payload.date_start,
        date_end=payload.date_end,
        estimated_duration=payload.estimated_duration,
        distance=payload.distance,
        total_cost=payload.total_cost or 0,
        notes=payload.notes or None,
        status=TripStatus.PLANNED,
    )
    db.add(trip)
    await db.flush()

    await NotificationService.create_notification(
        db,
        driver.user_id,
        "New Trip Assigned",
        f"You have been assigned a new trip: {trip.label}",
        type=NotificationType.TRIP_UPDATE,
        link=trip_link(trip.id),
    )
    await db.commit()
    await db.refresh(trip)

    logger.info("Trip %s created for driver %s", trip.id, driver.id)
    return ActionResult.ok("Trip created successfully", data=TripResponse.model_validate(trip))


@action("Failed to update trip")
async def update_trip(db: AsyncSession, identity: dict, trip_id: int, payload: TripUpdate) -> ActionResult:
    """
    Apply the fields present in the payload.

    Driver, vehicle and dates are re-checked for availability against
    every other trip; a status change runs the trip workflow.
    """
    require_role(identity, ADMIN)
    trip = await get_trip_or_404(db, trip_id)
    changes = payload.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)

    if changes.get("driver_id"):
        await _ensure_driver_available(db, changes["driver_id"])
    if changes.get("vehicle_id"):
        await _ensure_vehicle_available(db, changes["vehicle_id"])

    if {"driver_id", "vehicle_id", "date_start", "date_end"} & changes.keys():
        date_start = changes.get("date_start") or trip.date_start
        date_end = changes["date_end"] if "date_end" in changes else trip.date_end
        if date_end and date_end < date_start:
            raise BusinessRuleError("End date must be after start date")
        await _ensure_no_overlap(
            db,
            changes.get("driver_id") or trip.driver_id,
            changes.get("vehicle_id") or trip.vehicle_id,
            date_start,
            date_end,
            exclude_trip_id=trip_id,
        )

    for field, value in changes.items():
        if field in ("driver_id", "vehicle_id", "departure", "destination", "date_start") and not value:
            continue
        if field == "notes":
            value = value or None
        setattr(trip, field, value)

    if new_status is not None and new_status != trip.status:
        await change_trip_status(db, trip, new_status)
    else:
        await db.commit()

    await db.refresh(trip)
    return ActionResult.ok("Trip updated successfully", data=TripResponse.model_validate(trip))


@action("Failed to delete trip")
async def delete_trip(db: AsyncSession, identity: dict, trip_id: int) -> ActionResult:
    require_role(identity, ADMIN)
    trip = await get_trip_or_404(db, trip_id)

    shipments = await db.execute(select(func.count(Shipment.id)).where(Shipment.trip_id == trip_id))
    if shipments.scalar():
        raise BusinessRuleError("Cannot delete trip with assigned shipments")
    expenses = await db.execute(select(func.count(Expense.id)).where(Expense.trip_id == trip_id))
    if expenses.scalar():
        raise BusinessRuleError("Cannot delete trip with expenses")

    await db.delete(trip)
    await db.commit()

    logger.info("Trip %s deleted", trip_id)
    return ActionResult.ok("Trip deleted successfully")


@action("Failed to update trip status")
async def update_trip_status(db: AsyncSession, identity: dict, trip_id: int, status: TripStatus) -> ActionResult:
    require_role(identity, ADMIN)
    trip = await get_trip_or_404(db, trip_id)
    change = await change_trip_status(db, trip, status)
    return ActionResult.ok(f"Trip status updated to {change.status.value}", data=change)


# Assignment helpers

@action("Failed to fetch driver suggestions")
async def get_driver_suggestions(
    db: AsyncSession,
    identity: dict,
    date_start: datetime,
    date_end: Optional[datetime] = None,
) -> ActionResult:
    """
    Rank active drivers for a time window.

    Score starts at 100 and drops to 0 with any overlapping trip; drivers
    with no trips at all get +20, fewer than 5 trips +10. Ties sort by name.
    """
    require_role(identity, ADMIN)

    result = await db.execute(
        select(DriverProfile, User)
        .join(User, User.id == DriverProfile.user_id)
        .where(DriverProfile.status == DriverStatus.ACTIVE, User.is_active == True)
    )
    drivers = result.all()

    overlapping = await _overlapping_trip_ids(db, Trip.driver_id, date_start, date_end)
    totals = await _trip_counts(db, Trip.driver_id)

    suggestions = []
    for profile, user in drivers:
        score, availability, reasons = _availability(overlapping.get(profile.id, []))
        total_trips = totals.get(profile.id, 0)
        if total_trips == 0:
            score += 20
            reasons.append("No previous trips (fresh)")
        elif total_trips < 5:
            score += 10
            reasons.append("Low workload")

        suggestions.append(DriverSuggestion(
            id=profile.id,
            name=user.name,
            email=user.email or "",
            license_number=profile.license_number,
            experience_years=profile.experience_years,
            status=profile.status,
            score=score,
            availability_status=availability,
            reasons=reasons,
            overlapping_trip_ids=overlapping.get(profile.id, []),
            total_trips=total_trips,
        ))

    suggestions.sort(key=lambda s: (-s.score, s.name.lower()))
    return ActionResult.ok(data=suggestions)


@action("Failed to fetch vehicle suggestions")
async def get_vehicle_suggestions(
    db: AsyncSession,
    identity: dict,
    date_start: datetime,
    date_end: Optional[datetime] = None,
) -> ActionResult:
    """
    Rank active vehicles for a time window.

    Same availability rule as drivers; mileage under 50k gives +15, under
    100k +5, fewer than 10 trips +10. Ties sort by plate number.
    """
    require_role(identity, ADMIN)

    result = await db.execute(select(Vehicle).where(Vehicle.status == VehicleStatus.ACTIVE))
    vehicles = result.scalars().all()

    overlapping = await _overlapping_trip_ids(db, Trip.vehicle_id, date_start, date_end)
    totals = await _trip_counts(db, Trip.vehicle_id)

    suggestions = []
    for vehicle in vehicles:
        score, availability, reasons = _availability(overlapping.get(vehicle.id, []))
        if vehicle.mileage:
            if vehicle.mileage < 50000:
                score += 15
                reasons.append("Low mileage")
            elif vehicle.mileage < 100000:
                score += 5
                reasons.append("Moderate mileage")
        total_trips = totals.get(vehicle.id, 0)
        if total_trips < 10:
            score += 10
            reasons.append("Low usage")

        suggestions.append(VehicleSuggestion(
            id=vehicle.id,
            plate_number=vehicle.plate_number,
            brand=vehicle.brand,
            model=vehicle.model,
            type=vehicle.type,
            mileage=vehicle.mileage or None,
            status=vehicle.status,
            capacity_weight=vehicle.capacity_weight,
            capacity_volume=vehicle.capacity_volume,
            score=score,
            availability_status=availability,
            reasons=reasons,
            overlapping_trip_ids=overlapping.get(vehicle.id, []),
            total_trips=total_trips,
        ))

    suggestions.sort(key=lambda s: (-s.score, s.plate_number))
    return ActionResult.ok(data=suggestions)


@action("Failed to fetch available trips")
async def get_available_trips_for_assignment(
    db: AsyncSession,
    identity: dict,
    shipment_id: Optional[int] = None,
) -> ActionResult:
    """
    PLANNED/ONGOING trips a shipment can be put on.

    With a shipment, trips whose departure and destination both match its
    addresses score 100, one side 50; ties sort by start date.
    """
    require_role(identity, ADMIN)

    shipment = await db.get(Shipment, shipment_id) if shipment_id else None

    counts = (
        select(Shipment.trip_id, func.count(Shipment.id).label("shipment_count"))
        .where(Shipment.trip_id.isnot(None))
        .group_by(Shipment.trip_id)
        .subquery()
    )
    result = await db.execute(
        _summary_query()
        .add_columns(func.coalesce(counts.c.shipment_count, 0))
        .outerjoin(counts, counts.c.trip_id == Trip.id)
        .where(Trip.status.in_(ACTIVE_TRIP_STATUSES))
        .order_by(Trip.date_start.asc())
    )

    trips = []
    for trip, driver_name, plate, shipment_count in result.all():
        score, reason = _route_match(trip, shipment) if shipment else (0, "")
        trips.append(AssignableTrip(
            id=trip.id,
            label=trip.label,
            departure=trip.departure,
            destination=trip.destination,
            status=trip.status,
            date_start=trip.date_start,
            date_end=trip.date_end,
            driver_id=trip.driver_id,
            driver_name=driver_name,
            vehicle_id=trip.vehicle_id,
            plate_number=plate,
            shipment_count=shipment_count,
            match_score=score,
            match_reason=reason,
        ))

    # Stable sort keeps the date order within equal scores
    trips.sort(key=lambda t: -t.match_score)
    return ActionResult.ok(data=trips)


def _availability(overlapping_ids: List[int]):
    if overlapping_ids:
        return 0, "Unavailable", [f"Has {len(overlapping_ids)} overlapping trip(s)"]
    return 100, "Available", ["No overlapping trips"]


def _route_match(trip: Trip, shipment: Shipment):
    def fits(a: str, b: str) -> bool:
        a, b = a.lower(), b.lower()
        return a in b or b in a

    pickup = fits(trip.departure, shipment.pickup_address)
    delivery = fits(trip.destination, shipment.delivery_address)
    if pickup and delivery:
        return 100, "Perfect route match"
    if pickup:
        return 50, "Pickup location matches"
    if delivery:
        return 50, "Delivery location matches"
    return 0, ""


async def _overlapping_trip_ids(db: AsyncSession, column, date_start, date_end) -> Dict[int, List[int]]:
    result = await db.execute(
        select(column, Trip.id).where(overlaps_window(date_start, date_end)).order_by(Trip.id)
    )
    overlapping: Dict[int, List[int]] = {}
    for owner_id, trip_id in result.all():
        overlapping.setdefault(owner_id, []).append(trip_id)
    return overlapping


async def _trip_counts(db: AsyncSession, column) -> Dict[int, int]:
    result = await db.execute(select(column, func.count(Trip.id)).group_by(column))
    return {owner_id: count for owner_id, count in result.all()}
