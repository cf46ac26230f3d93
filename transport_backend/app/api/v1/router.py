"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from transport_backend.app.api.v1.endpoints import (
    users, profiles, vehicles, trips, shipments,
    expenses, issues, notifications, driver
)

router = APIRouter()

# Admin management
router.include_router(users.router)
router.include_router(profiles.drivers_router)
router.include_router(profiles.clients_router)
router.include_router(vehicles.router)

# Operations
router.include_router(trips.router)
router.include_router(shipments.router)
router.include_router(expenses.router)
router.include_router(issues.router)

# Every role
router.include_router(notifications.router)
router.include_router(driver.router)
