"""
Trip Status Workflow.

Applies a validated trip status change together with its effect on the
shipments the trip carries:

1. PLANNED -> ONGOING: ASSIGNED shipments go IN_TRANSIT (pickup date set)
2. ONGOING -> COMPLETED: IN_TRANSIT shipments go DELIVERED (delivery date set)
3. -> CANCELLED: every shipment not yet DELIVERED/CANCELLED is cancelled

The caller owns the transaction and commits.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from transport_backend.app.domain.status_machine import TRIP_STATUS_MACHINE
from transport_backend.app.models.enums import ShipmentStatus, TripStatus
from transport_backend.app.models.shipment import Shipment
from transport_backend.app.models.trip import Trip

logger = logging.getLogger(__name__)

FINAL_SHIPMENT_STATUSES = (ShipmentStatus.DELIVERED, ShipmentStatus.CANCELLED)


@dataclass
class TransitionOutcome:
    trip_id: int
    previous: TripStatus
    current: TripStatus
    shipments_updated: int


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def compute_actual_duration(trip: Trip):
    """Minutes between start and end, or None if the trip has no end date."""
    if not trip.date_end or not trip.date_start:
        return None
    # SQLite hands back naive values, taken as UTC
    start, end = _naive_utc(trip.date_start), _naive_utc(trip.date_end)
    return round((end - start).total_seconds() / 60)


class TripWorkflow:

    @staticmethod
    async def apply_status_change(db: AsyncSession, trip: Trip, requested) -> TransitionOutcome:
        """
        Move a trip to a new status and cascade to its shipments.

        Raises:
            InvalidStatusTransitionError: transition not allowed
        """
        previous = TRIP_STATUS_MACHINE.coerce(trip.status)
        new_status = TRIP_STATUS_MACHINE.ensure_transition(previous, requested)

        trip.status = new_status
        if new_status == TripStatus.COMPLETED and not trip.actual_duration:
            trip.actual_duration = compute_actual_duration(trip)

        result = await db.execute(select(Shipment).where(Shipment.trip_id == trip.id))
        shipments = result.scalars().all()
        now = datetime.now(timezone.utc)
        updated = 0

        if previous == TripStatus.PLANNED and new_status == TripStatus.ONGOING:
            for shipment in shipments:
                if shipment.status == ShipmentStatus.ASSIGNED:
                    shipment.status = ShipmentStatus.IN_TRANSIT
                    if not shipment.pickup_date:
                        shipment.pickup_date = now
                    updated += 1
            if updated:
                logger.info("Trip %s: moved %s shipments from ASSIGNED to IN_TRANSIT", trip.id, updated)

        elif previous == TripStatus.ONGOING and new_status == TripStatus.COMPLETED:
            for shipment in shipments:
                if shipment.status == ShipmentStatus.IN_TRANSIT:
                    shipment.status = ShipmentStatus.DELIVERED
                    if not shipment.delivery_date:
                        shipment.delivery_date = now
                    updated += 1
            if updated:
                logger.info("Trip %s: moved %s shipments from IN_TRANSIT to DELIVERED", trip.id, updated)

        elif new_status == TripStatus.CANCELLED:
            for shipment in shipments:
                if shipment.status not in FINAL_SHIPMENT_STATUSES:
                    shipment.status = ShipmentStatus.CANCELLED
                    updated += 1
            if updated:
                logger.info("Trip %s: cancelled %s shipments", trip.id, updated)

        await db.flush()

        return TransitionOutcome(
            trip_id=trip.id,
            previous=previous,
            current=new_status,
            shipments_updated=updated,
        )
