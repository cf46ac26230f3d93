"""
Role dashboard shells.

Builds the layout every signed-in page shares (sidebar and header) and
the overview content of the three role home pages.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from transport_backend.app.core.exceptions import ResourceNotFoundError
from transport_backend.app.core.rbac import ADMIN, CLIENT, DRIVER, decide_access, get_role_dashboard_path
from transport_backend.app.models.enums import ShipmentStatus, TripStatus, VehicleStatus
from transport_backend.app.models.shipment import Shipment
from transport_backend.app.models.trip import Trip
from transport_backend.app.models.user import User
from transport_backend.app.models.vehicle import Vehicle
from transport_backend.app.schemas.layout import Header, NavItem, PageLayout, Sidebar
from transport_backend.app.schemas.notification import NotificationResponse
from transport_backend.app.schemas.shipment import ShipmentResponse
from transport_backend.app.schemas.trip import TripResponse
from transport_backend.app.services.notification_service import NotificationService
from transport_backend.app.services.profile_management import client_profile_for_user, driver_profile_for_user

ALL_ROLES = (ADMIN, DRIVER, CLIENT)

SIDEBAR_TITLES = {
    ADMIN: "TMS Admin",
    DRIVER: "TMS Driver",
    CLIENT: "TMS Client",
}

# (name, href, icon, roles); "{home}" is the role's dashboard
NAVIGATION = [
    ("Dashboard", "{home}", "layout-dashboard", ALL_ROLES),
    ("Users", "/list/users", "users", (ADMIN,)),
    ("Drivers", "/list/drivers", "user-check", (ADMIN,)),
    ("Clients", "/list/clients", "building", (ADMIN,)),
    ("Vehicles", "/list/vehicles", "truck", (ADMIN,)),
    ("Trips", "/list/trips", "route", ALL_ROLES),
    ("Shipments", "/list/shipments", "package", ALL_ROLES),
    ("Issues", "/list/issues", "alert-circle", (ADMIN,)),
    ("Expenses", "/list/expenses", "dollar-sign", (ADMIN, DRIVER)),
    ("Notifications", "/notifications", "bell", ALL_ROLES),
]

ACTIVE_SHIPMENT_STATUSES = (ShipmentStatus.PENDING, ShipmentStatus.ASSIGNED, ShipmentStatus.IN_TRANSIT)


def is_active_link(path: str, href: str) -> bool:
    return path == href or path.startswith(href + "/")


def build_sidebar(identity: Optional[dict], path: str) -> Sidebar:
    """
    Navigation for the caller's role.

    Items the access gate would redirect away from are left out.
    """
    role = identity.get("role") if identity else None
    if not role:
        return Sidebar(title="TMS", home="/", items=[])

    home = get_role_dashboard_path(role)
    items = []
    for name, href, icon, roles in NAVIGATION:
        href = href.format(home=home)
        if role not in roles or not decide_access(href, identity).allowed:
            continue
        items.append(NavItem(name=name, href=href, icon=icon, active=is_active_link(path, href)))

    return Sidebar(title=SIDEBAR_TITLES.get(role, "TMS"), home=home, items=items)


async def build_header(db: AsyncSession, identity: Optional[dict]) -> Header:
    if not identity:
        return Header()

    user = await db.get(User, identity["user_id"])
    return Header(
        user_id=identity["user_id"],
        name=user.name if user else None,
        role=identity.get("role"),
        image=user.image if user else None,
        unread_notifications=await NotificationService.unread_count(db, identity["user_id"]),
    )


async def build_layout(db: AsyncSession, identity: Optional[dict], path: str) -> PageLayout:
    return PageLayout(sidebar=build_sidebar(identity, path), header=await build_header(db, identity))


def _month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _day_start(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


async def _count(db: AsyncSession, query) -> int:
    return (await db.execute(query)).scalar() or 0


async def _recent_notifications(db: AsyncSession, user_id: str, limit: int = 5) -> List[NotificationResponse]:
    notifications = await NotificationService.list_for_user(db, user_id, limit=limit)
    return [NotificationResponse.model_validate(n) for n in notifications]


async def admin_overview(db: AsyncSession, identity: dict) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    revenue = await db.execute(
        select(func.coalesce(func.sum(Shipment.price), 0)).where(
            Shipment.created_at >= _month_start(now),
            Shipment.status != ShipmentStatus.CANCELLED,
        )
    )
    return {
        "title": "Dashboard",
        "stats": {
            "total_users": await _count(db, select(func.count(User.id))),
            "active_vehicles": await _count(
                db, select(func.count(Vehicle.id)).where(Vehicle.status == VehicleStatus.ACTIVE)
            ),
            "pending_shipments": await _count(
                db, select(func.count(Shipment.id)).where(Shipment.status == ShipmentStatus.PENDING)
            ),
            "monthly_revenue": float(revenue.scalar() or 0),
        },
        "notifications": await _recent_notifications(db, identity["user_id"]),
    }


async def driver_overview(db: AsyncSession, identity: dict) -> Dict[str, Any]:
    """
    Current trip (the ONGOING one, else the next PLANNED from today),
    upcoming trips and trip counts for the signed-in driver.
    """
    profile = await driver_profile_for_user(db, identity["user_id"])
    if not profile:
        raise ResourceNotFoundError("Driver profile")

    now = datetime.now(timezone.utc)
    today = _day_start(now)
    own = Trip.driver_id == profile.id

    upcoming_result = await db.execute(
        select(Trip).where(own, Trip.status == TripStatus.PLANNED, Trip.date_start >= today)
        .order_by(Trip.date_start.asc()).limit(5)
    )
    upcoming = upcoming_result.scalars().all()

    current_result = await db.execute(select(Trip).where(own, Trip.status == TripStatus.ONGOING).limit(1))
    current = current_result.scalar_one_or_none() or (upcoming[0] if upcoming else None)

    return {
        "title": "Driver Dashboard",
        "stats": {
            "total_trips": await _count(db, select(func.count(Trip.id)).where(own)),
            "active_trips": await _count(
                db, select(func.count(Trip.id)).where(own, Trip.status.in_((TripStatus.PLANNED, TripStatus.ONGOING)))
            ),
            "completed_trips": await _count(
                db, select(func.count(Trip.id)).where(own, Trip.status == TripStatus.COMPLETED)
            ),
            "trips_this_month": await _count(
                db, select(func.count(Trip.id)).where(own, Trip.date_start >= _month_start(now))
            ),
        },
        "current_trip": TripResponse.model_validate(current) if current else None,
        "upcoming_trips": [TripResponse.model_validate(t) for t in upcoming],
        "notifications": await _recent_notifications(db, identity["user_id"]),
    }


async def client_overview(db: AsyncSession, identity: dict) -> Dict[str, Any]:
    profile = await client_profile_for_user(db, identity["user_id"])
    if not profile:
        raise ResourceNotFoundError("Client profile")

    now = datetime.now(timezone.utc)
    own = Shipment.client_id == profile.id

    active = await db.execute(
        select(Shipment).where(own, Shipment.status.in_(ACTIVE_SHIPMENT_STATUSES))
        .order_by(Shipment.created_at.desc(), Shipment.id.desc()).limit(5)
    )
    recent = await db.execute(
        select(Shipment).where(own).order_by(Shipment.created_at.desc(), Shipment.id.desc()).limit(10)
    )

    return {
        "title": "Client Dashboard",
        "stats": {
            "total_shipments": await _count(db, select(func.count(Shipment.id)).where(own)),
            "active_shipments": await _count(
                db, select(func.count(Shipment.id)).where(own, Shipment.status.in_(ACTIVE_SHIPMENT_STATUSES))
            ),
            "delivered_shipments": await _count(
                db, select(func.count(Shipment.id)).where(own, Shipment.status == ShipmentStatus.DELIVERED)
            ),
            "shipments_this_month": await _count(
                db, select(func.count(Shipment.id)).where(own, Shipment.created_at >= _month_start(now))
            ),
        },
        "active_shipments": [ShipmentResponse.model_validate(s) for s in active.scalars().all()],
        "recent_shipments": [ShipmentResponse.model_validate(s) for s in recent.scalars().all()],
        "notifications": await _recent_notifications(db, identity["user_id"]),
    }
