"""
Page view model tests: layout shells, dashboards, list and detail pages.
"""

import pytest
from datetime import datetime
from transport_backend.app.models.enums import ShipmentStatus, TripStatus, UserRole
from transport_backend.app.main import app
from transport_backend.app.services.dashboard import build_sidebar
from transport_backend.app.services.notification_service import NotificationService


def identity(role):
    return {"user_id": "user_1", "role": role.value, "requires_password_change": False, "claims": {}}


def nav(sidebar):
    return [item.name for item in sidebar.items]


# TEST 1: Sidebar
def test_driver_sidebar():
    sidebar = build_sidebar(identity(UserRole.DRIVER), "/list/trips/4")

    assert nav(sidebar) == ["Dashboard", "Trips", "Shipments", "Expenses", "Notifications"]
    assert sidebar.home == "/driver"
    assert [item.name for item in sidebar.items if item.active] == ["Trips"]


def test_client_sidebar():
    sidebar = build_sidebar(identity(UserRole.CLIENT), "/client")

    assert nav(sidebar) == ["Dashboard", "Trips", "Shipments", "Notifications"]
    assert sidebar.items[0].active
    assert sidebar.title == "TMS Client"


def test_admin_sidebar_has_everything():
    sidebar = build_sidebar(identity(UserRole.ADMIN), "/admin")

    assert len(sidebar.items) == 10
    assert "Vehicles" in nav(sidebar)


@pytest.mark.parametrize("role", list(UserRole))
def test_sidebar_links_point_at_pages(role):
    pages = {route.path for route in app.routes}
    sidebar = build_sidebar(identity(role), "/")

    assert [item.href for item in sidebar.items if item.href not in pages] == []


def test_sidebar_without_role_is_empty():
    assert build_sidebar(None, "/").items == []


# TEST 2: Public pages
@pytest.mark.asyncio
async def test_sign_in_page_for_visitors(client):
    response = await client.get("/sign-in")

    assert response.status_code == 200
    assert response.json()["page"] == "sign-in"


@pytest.mark.asyncio
@pytest.mark.parametrize("role, requires_change, target", [
    (UserRole.DRIVER, False, "/driver"),
    (UserRole.ADMIN, True, "/change-password"),
    (None, False, "/onboarding"),
])
async def test_signed_in_users_are_sent_on(client, auth_headers, role, requires_change, target):
    response = await client.get("/sign-in", headers=auth_headers("user_1", role, requires_change))

    assert response.status_code == 307
    assert response.headers["location"] == target


@pytest.mark.asyncio
async def test_onboarding_messages(client, auth_headers):
    anonymous = await client.get("/onboarding")
    assert anonymous.json()["content"]["title"] == "Please sign in"

    no_role = await client.get("/onboarding", headers=auth_headers("user_1"))
    assert no_role.json()["content"]["title"] == "We're almost ready"


@pytest.mark.asyncio
async def test_change_password_page(client, auth_headers):
    assert (await client.get("/change-password")).headers["location"] == "/sign-in"

    page = await client.get("/change-password", headers=auth_headers("user_1", UserRole.CLIENT, True))
    assert page.json()["content"]["continue_to"] == "/client"


# TEST 3: Dashboards
@pytest.mark.asyncio
async def test_admin_dashboard_stats(client, db_session, seed, auth_headers):
    admin_user, _ = await seed.admin()
    _, profile, _ = await seed.client()
    await seed.vehicle()
    await seed.shipment(profile)
    await seed.shipment(profile, status=ShipmentStatus.DELIVERED, price=250)
    await seed.shipment(profile, status=ShipmentStatus.CANCELLED, price=999)
    await NotificationService.notify_admins(db_session, "New Shipment Request", "Pallets to Marrakech")
    await db_session.commit()

    response = await client.get("/admin", headers=auth_headers(admin_user.id, UserRole.ADMIN))

    body = response.json()
    assert body["content"]["stats"] == {
        "total_users": 2,
        "active_vehicles": 1,
        "pending_shipments": 1,
        "monthly_revenue": 350.0,
    }
    assert [n["title"] for n in body["content"]["notifications"]] == ["New Shipment Request"]
    assert body["layout"]["header"]["name"] == admin_user.name
    assert body["layout"]["header"]["unread_notifications"] == 1


@pytest.mark.asyncio
async def test_driver_dashboard_prefers_ongoing_trip(client, seed, auth_headers):
    driver_user, driver, _ = await seed.driver()
    vehicle = await seed.vehicle()
    await seed.trip(driver, vehicle, start=datetime(2030, 1, 5, 8, 0))
    ongoing = await seed.trip(driver, vehicle, status=TripStatus.ONGOING, start=datetime(2030, 1, 20, 8, 0))
    await seed.trip(driver, vehicle, status=TripStatus.COMPLETED, start=datetime(2029, 12, 1, 8, 0))

    response = await client.get("/driver", headers=auth_headers(driver_user.id, UserRole.DRIVER))

    content = response.json()["content"]
    assert content["current_trip"]["id"] == ongoing.id
    assert len(content["upcoming_trips"]) == 1
    assert content["stats"]["total_trips"] == 3
    assert content["stats"]["active_trips"] == 2
    assert content["stats"]["completed_trips"] == 1


@pytest.mark.asyncio
async def test_driver_dashboard_without_profile(client, seed, auth_headers):
    user = await seed.user(UserRole.DRIVER)

    response = await client.get("/driver", headers=auth_headers(user.id, UserRole.DRIVER))

    assert response.status_code == 200
    assert response.json()["content"]["error"] == "Driver profile not found. Please contact administrator."


@pytest.mark.asyncio
async def test_client_dashboard(client, seed, auth_headers):
    client_user, profile, _ = await seed.client()
    await seed.shipment(profile)
    await seed.shipment(profile, status=ShipmentStatus.DELIVERED)

    response = await client.get("/client", headers=auth_headers(client_user.id, UserRole.CLIENT))

    content = response.json()["content"]
    assert content["stats"]["total_shipments"] == 2
    assert content["stats"]["active_shipments"] == 1
    assert content["stats"]["delivered_shipments"] == 1
    assert len(content["recent_shipments"]) == 2


# TEST 4: List and detail pages
@pytest.mark.asyncio
async def test_list_page_carries_result(client, seed, auth_headers):
    admin_user, _ = await seed.admin()
    await seed.vehicle()
    await seed.vehicle()

    response = await client.get("/list/vehicles", headers=auth_headers(admin_user.id, UserRole.ADMIN))

    body = response.json()
    assert body["page"] == "vehicles"
    assert body["content"]["result"]["data"]["total"] == 2
    active = [item["name"] for item in body["layout"]["sidebar"]["items"] if item["active"]]
    assert active == ["Vehicles"]


@pytest.mark.asyncio
async def test_trip_detail_includes_shipments(client, seed, auth_headers):
    admin_user, _ = await seed.admin()
    _, driver, _ = await seed.driver()
    _, profile, _ = await seed.client()
    trip = await seed.trip(driver, await seed.vehicle())
    await seed.shipment(profile, trip)

    response = await client.get(f"/list/trips/{trip.id}", headers=auth_headers(admin_user.id, UserRole.ADMIN))

    content = response.json()["content"]
    assert content["result"]["data"]["id"] == trip.id
    assert content["result"]["data"]["driver_name"] == "Driver 2"
    assert len(content["shipments"]["data"]["shipments"]) == 1


@pytest.mark.asyncio
async def test_foreign_trip_detail_redirects_home(client, seed, auth_headers):
    _, driver, _ = await seed.driver()
    other_user, _, _ = await seed.driver()
    trip = await seed.trip(driver, await seed.vehicle())

    response = await client.get(f"/list/trips/{trip.id}", headers=auth_headers(other_user.id, UserRole.DRIVER))

    assert response.status_code == 307
    assert response.headers["location"] == "/driver"


@pytest.mark.asyncio
async def test_missing_record_is_404(client, seed, auth_headers):
    admin_user, _ = await seed.admin()

    response = await client.get("/list/shipments/999", headers=auth_headers(admin_user.id, UserRole.ADMIN))

    assert response.status_code == 404
    assert response.json()["message"] == "Shipment not found"
