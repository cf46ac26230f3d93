"""
Centralized Test Configuration.
"""

import itertools
from datetime import datetime, timedelta
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from transport_backend.app.main import app
from transport_backend.app.db.session import get_db, Base
from transport_backend.app.core.jwt import create_session_token
from transport_backend.app.core.redis_client import get_redis
from transport_backend.app.models.enums import (
    DriverStatus, ShipmentStatus, TripStatus, UserRole, VehicleStatus,
)
from transport_backend.app.models.profiles import ClientProfile, DriverProfile
from transport_backend.app.models.shipment import Shipment
from transport_backend.app.models.trip import Trip
from transport_backend.app.models.user import User
from transport_backend.app.models.vehicle import Vehicle
from transport_backend.app.services.email import get_email_sender
from transport_backend.app.services.identity_provider import get_identity_provider

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def setex(self, key, seconds, value):
        self.store[key] = value
        self.ttls[key] = seconds
        return True

    async def delete(self, key):
        self.ttls.pop(key, None)
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store = {}
        self.ttls = {}

    async def aclose(self):
        self.store = {}


class FakeIdentityProvider:
    """Records provider calls; ``fail_with`` makes every call raise."""

    def __init__(self):
        self.calls = []
        self.users = []
        self.fail_with = None
        self._ids = itertools.count(1)

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail_with is not None:
            raise self.fail_with

    async def create_user(self, username, name, password, public_metadata, email=None):
        self._record("create_user", username, public_metadata)
        return {"id": f"user_invited_{next(self._ids)}", "username": username}

    async def get_user(self, user_id):
        self._record("get_user", user_id)
        return {"id": user_id}

    async def update_user(self, user_id, fields):
        self._record("update_user", user_id, fields)
        return {"id": user_id}

    async def update_user_metadata(self, user_id, public_metadata):
        self._record("update_user_metadata", user_id, public_metadata)
        return {"id": user_id, "public_metadata": public_metadata}

    async def delete_user(self, user_id):
        self._record("delete_user", user_id)

    async def find_users(self, email=None, username=None, limit=100, offset=0):
        self._record("find_users", email, username)
        matches = [
            u for u in self.users
            if (email is None or any(e.get("email_address") == email for e in u.get("email_addresses", [])))
            and (username is None or u.get("username") == username)
        ]
        return matches[offset:offset + limit]


class FakeEmailSender:

    def __init__(self):
        self.sent = []
        self.fail_with = None

    async def send(self, to, subject, html):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"to": to, "subject": subject, "html": html})
        return {"id": f"email_{len(self.sent)}"}

    async def send_quietly(self, to, subject, html):
        self.sent.append({"to": to, "subject": subject, "html": html})

    async def send_temporary_password(self, email, name, temporary_password):
        return await self.send(email, "Your Temporary Password", temporary_password)

    async def send_trip_assignment(self, email, name, trip_label, link):
        await self.send_quietly(email, "New Trip Assigned", f"{trip_label} {link}")


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def redis():
    return MockRedis()


@pytest.fixture
def provider():
    return FakeIdentityProvider()


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture(autouse=True)
def apply_overrides(session_factory, redis, provider, email_sender):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_redis():
        return redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_identity_provider] = lambda: provider
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def auth_headers():
    """Build a bearer header for a session with the given role."""
    def _headers(user_id, role=None, requires_password_change=False):
        metadata = {"requiresPasswordChange": requires_password_change}
        if role is not None:
            metadata["role"] = role.value if isinstance(role, UserRole) else role
        token = create_session_token({"sub": user_id, "metadata": metadata})
        return {"Authorization": f"Bearer {token}"}
    return _headers


def identity(user_id, role):
    return {"user_id": user_id, "role": role.value, "requires_password_change": False, "claims": {}}


class Seeder:
    """Creates committed rows for tests."""

    def __init__(self, db):
        self.db = db
        self._seq = itertools.count(1)

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def user(self, role=UserRole.ADMIN, user_id=None, **fields):
        n = next(self._seq)
        fields.setdefault("name", f"{role.value.title()} {n}")
        fields.setdefault("email", f"{role.value}{n}@example.com")
        fields.setdefault("username", f"{role.value}{n}")
        return await self._save(User(id=user_id or f"user_{role.value}_{n}", role=role, **fields))

    async def admin(self, **fields):
        user = await self.user(UserRole.ADMIN, **fields)
        return user, identity(user.id, UserRole.ADMIN)

    async def driver(self, status=DriverStatus.ACTIVE, **fields):
        user = await self.user(UserRole.DRIVER, **fields)
        profile = await self._save(DriverProfile(
            user_id=user.id,
            license_number=f"LIC-{user.id}",
            experience_years=3,
            status=status,
        ))
        return user, profile, identity(user.id, UserRole.DRIVER)

    async def client(self, **fields):
        user = await self.user(UserRole.CLIENT, **fields)
        profile = await self._save(ClientProfile(
            user_id=user.id,
            company_name=f"Company {user.id}",
            address="1 Harbour Road, Casablanca",
        ))
        return user, profile, identity(user.id, UserRole.CLIENT)

    async def vehicle(self, status=VehicleStatus.ACTIVE, **fields):
        n = next(self._seq)
        fields.setdefault("plate_number", f"PLT-{n:04d}")
        fields.setdefault("type", "Truck")
        fields.setdefault("brand", "Volvo")
        fields.setdefault("model", "FH16")
        return await self._save(Vehicle(status=status, **fields))

    async def trip(self, driver, vehicle, status=TripStatus.PLANNED, start=None, hours=4, **fields):
        start = start or datetime(2030, 1, 10, 8, 0)
        fields.setdefault("departure", "Casablanca")
        fields.setdefault("destination", "Marrakech")
        return await self._save(Trip(
            driver_id=driver.id,
            vehicle_id=vehicle.id,
            date_start=start,
            date_end=start + timedelta(hours=hours) if hours else None,
            status=status,
            **fields,
        ))

    async def shipment(self, client, trip=None, status=None, **fields):
        n = next(self._seq)
        fields.setdefault("tracking_number", f"TRK-20300101-{n:04d}")
        fields.setdefault("description", "Pallets")
        fields.setdefault("pickup_address", "Casablanca port")
        fields.setdefault("delivery_address", "Marrakech depot")
        fields.setdefault("price", 100.0)
        if status is None:
            status = ShipmentStatus.ASSIGNED if trip else ShipmentStatus.PENDING
        return await self._save(Shipment(
            client_id=client.id,
            trip_id=trip.id if trip else None,
            status=status,
            **fields,
        ))


@pytest.fixture
def seed(db_session):
    return Seeder(db_session)
