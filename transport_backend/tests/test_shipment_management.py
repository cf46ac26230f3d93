"""
Shipment management tests.
"""

import re
import pytest
from datetime import datetime
from transport_backend.app.models.enums import PriorityLevel, ShipmentStatus, TripStatus
from transport_backend.app.models.shipment import Shipment
from transport_backend.app.models.trip import Trip
from transport_backend.app.schemas.shipment import ShipmentCreate, ShipmentRequest, ShipmentUpdate
from transport_backend.app.services import shipment_management
from transport_backend.app.services.shipment_management import generate_tracking_number


def test_tracking_number_format():
    number = generate_tracking_number(datetime(2030, 3, 7))
    assert re.fullmatch(r"TRK-20300307-\d{4}", number)


# TEST 1: Client requests
@pytest.mark.asyncio
async def test_client_request_starts_pending_and_unpriced(db_session, seed):
    _, profile, client_identity = await seed.client()

    result = await shipment_management.request_shipment(db_session, client_identity, ShipmentRequest(
        description="Ceramic tiles",
        weight=320,
        pickup_address="Fes workshop",
        delivery_address="Rabat showroom",
    ))

    assert result.success
    assert result.message.startswith("Shipment request submitted. Tracking number: TRK-")
    assert result.data.status == ShipmentStatus.PENDING
    assert result.data.price == 0
    assert result.data.trip_id is None
    assert result.data.client_id == profile.id
    assert result.data.priority == PriorityLevel.NORMAL


@pytest.mark.asyncio
async def test_only_clients_request_shipments(db_session, seed):
    _, admin = await seed.admin()

    result = await shipment_management.request_shipment(db_session, admin, ShipmentRequest(
        description="Boxes", pickup_address="A", delivery_address="B",
    ))

    assert result.error_code == "ERR_PERM_001"


# TEST 2: Admin create / update
@pytest.mark.asyncio
async def test_duplicate_tracking_number_is_rejected(db_session, seed):
    _, admin = await seed.admin()
    _, client, _ = await seed.client()
    existing = await seed.shipment(client)
    client_id, tracking = client.id, existing.tracking_number

    result = await shipment_management.create_shipment(db_session, admin, ShipmentCreate(
        client_id=client_id,
        tracking_number=tracking,
        description="Duplicate",
        price=50,
        pickup_address="A",
        delivery_address="B",
    ))

    assert result.message == "A shipment with this tracking number already exists"


@pytest.mark.asyncio
async def test_delivered_status_stamps_delivery_date(db_session, seed):
    _, admin = await seed.admin()
    _, client, _ = await seed.client()
    shipment = await seed.shipment(client, status=ShipmentStatus.IN_TRANSIT)

    result = await shipment_management.update_shipment_status(
        db_session, admin, shipment.id, ShipmentStatus.DELIVERED
    )

    assert result.success
    await db_session.refresh(shipment)
    assert shipment.status == ShipmentStatus.DELIVERED
    assert shipment.delivery_date is not None


@pytest.mark.asyncio
async def test_update_shipment_runs_status_machine(db_session, seed):
    _, admin = await seed.admin()
    _, client, _ = await seed.client()
    shipment = await seed.shipment(client)

    result = await shipment_management.update_shipment(
        db_session, admin, shipment.id, ShipmentUpdate(status=ShipmentStatus.DELIVERED)
    )

    assert result.error_code == "ERR_STATUS_001"


@pytest.mark.asyncio
async def test_update_shipment_can_detach_trip(db_session, seed):
    _, admin = await seed.admin()
    _, driver, _ = await seed.driver()
    _, client, _ = await seed.client()
    trip = await seed.trip(driver, await seed.vehicle())
    shipment = await seed.shipment(client, trip)

    result = await shipment_management.update_shipment(
        db_session, admin, shipment.id, ShipmentUpdate(trip_id=None, price=75)
    )

    assert result.success
    assert result.data.trip_id is None
    assert result.data.price == 75


# TEST 3: Assignment
@pytest.mark.asyncio
async def test_assign_pending_shipment_adds_price_to_trip(db_session, seed):
    _, admin = await seed.admin()
    _, driver, _ = await seed.driver()
    _, client, _ = await seed.client()
    trip = await seed.trip(driver, await seed.vehicle(), total_cost=200)
    shipment = await seed.shipment(client, price=150)

    result = await shipment_management.assign_shipment_to_trip(db_session, admin, shipment.id, trip.id)

    assert result.success
    assert result.message == "Shipment assigned to trip Casablanca → Marrakech"
    await db_session.refresh(shipment)
    await db_session.refresh(trip)
    assert shipment.status == ShipmentStatus.ASSIGNED
    assert shipment.trip_id == trip.id
    assert trip.total_cost == 350


@pytest.mark.asyncio
async def test_only_pending_shipments_are_assigned(db_session, seed):
    _, admin = await seed.admin()
    _, driver, _ = await seed.driver()
    _, client, _ = await seed.client()
    trip = await seed.trip(driver, await seed.vehicle())
    shipment = await seed.shipment(client, status=ShipmentStatus.CANCELLED)

    result = await shipment_management.assign_shipment_to_trip(db_session, admin, shipment.id, trip.id)

    assert result.message == "Only pending shipments can be assigned to trips"


@pytest.mark.asyncio
async def test_finished_trips_take_no_shipments(db_session, seed):
    _, admin = await seed.admin()
    _, driver, _ = await seed.driver()
    _, client, _ = await seed.client()
    trip = await seed.trip(driver, await seed.vehicle(), status=TripStatus.COMPLETED)
    shipment = await seed.shipment(client)
    trip_id, shipment_id = trip.id, shipment.id

    result = await shipment_management.assign_shipment_to_trip(db_session, admin, shipment_id, trip_id)

    assert result.message == "Shipments can only be assigned to planned or ongoing trips"
    stored = await db_session.get(Shipment, shipment_id)
    assert stored.trip_id is None
    assert (await db_session.get(Trip, trip_id)).total_cost == 0


# TEST 4: Deletion
@pytest.mark.asyncio
@pytest.mark.parametrize("status, allowed", [
    (ShipmentStatus.PENDING, True),
    (ShipmentStatus.CANCELLED, True),
    (ShipmentStatus.IN_TRANSIT, False),
    (ShipmentStatus.DELIVERED, False),
])
async def test_delete_only_pending_or_cancelled(db_session, seed, status, allowed):
    _, admin = await seed.admin()
    _, client, _ = await seed.client()
    shipment = await seed.shipment(client, status=status)

    result = await shipment_management.delete_shipment(db_session, admin, shipment.id)

    assert result.success is allowed
    if not allowed:
        assert result.message == "Cannot delete shipment that is not pending or cancelled"


# TEST 5: Visibility
@pytest.mark.asyncio
async def test_shipment_visibility_per_role(db_session, seed):
    _, admin = await seed.admin()
    _, driver, driver_identity = await seed.driver()
    _, client, client_identity = await seed.client()
    _, other_client, other_identity = await seed.client()
    trip = await seed.trip(driver, await seed.vehicle())
    carried = await seed.shipment(client, trip)
    waiting = await seed.shipment(client)
    foreign = await seed.shipment(other_client)
    carried_id, waiting_id, foreign_id = carried.id, waiting.id, foreign.id

    own = await shipment_management.list_shipments(db_session, client_identity)
    assert {s.id for s in own.data.shipments} == {carried_id, waiting_id}

    on_trip = await shipment_management.list_shipments(db_session, driver_identity)
    assert [s.id for s in on_trip.data.shipments] == [carried_id]
    assert on_trip.data.shipments[0].trip_label == "Casablanca → Marrakech"

    everything = await shipment_management.list_shipments(db_session, admin, status=ShipmentStatus.PENDING)
    assert everything.data.total == 2

    assert (await shipment_management.get_shipment(db_session, driver_identity, carried_id)).success
    assert (await shipment_management.get_shipment(db_session, driver_identity, waiting_id)).error_code == "ERR_PERM_001"
    assert (await shipment_management.get_shipment(db_session, other_identity, carried_id)).error_code == "ERR_PERM_001"
    assert (await shipment_management.get_shipment(db_session, other_identity, foreign_id)).success
