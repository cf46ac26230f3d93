"""
Actions a driver runs on their own trips.
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.exceptions import InsufficientPermissionsError, ResourceNotFoundError
from transport_backend.app.core.rbac import DRIVER, require_role
from transport_backend.app.models.enums import IssueStatus, TripStatus
from transport_backend.app.models.issue import Issue
from transport_backend.app.models.profiles import DriverProfile
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.issue import IssueReport, IssueResponse
from transport_backend.app.services.actions import action
from transport_backend.app.services.profile_management import driver_profile_for_user
from transport_backend.app.services.trip_management import change_trip_status, get_trip_or_404

logger = logging.getLogger(__name__)


async def _own_driver_profile(db: AsyncSession, identity: dict) -> DriverProfile:
    require_role(identity, DRIVER)
    profile = await driver_profile_for_user(db, identity["user_id"])
    if not profile:
        raise ResourceNotFoundError("Driver profile")
    return profile


@action("Failed to update trip status")
async def driver_update_trip_status(db: AsyncSession, identity: dict, trip_id: int, status: TripStatus) -> ActionResult:
    profile = await _own_driver_profile(db, identity)
    trip = await get_trip_or_404(db, trip_id)

    if trip.driver_id != profile.id:
        raise InsufficientPermissionsError("You can only update your own trips")

    change = await change_trip_status(db, trip, status)
    return ActionResult.ok(f"Trip status updated to {change.status.value}", data=change)


@action("Failed to report issue")
async def report_trip_issue(db: AsyncSession, identity: dict, trip_id: int, payload: IssueReport) -> ActionResult:
    profile = await _own_driver_profile(db, identity)
    trip = await get_trip_or_404(db, trip_id)

    if trip.driver_id != profile.id:
        raise InsufficientPermissionsError("You can only report issues for your own trips")

    issue = Issue(
        trip_id=trip.id,
        driver_id=profile.id,
        type=payload.type,
        severity=payload.severity,
        description=payload.description.strip(),
        status=IssueStatus.OPEN,
    )
    db.add(issue)
    await db.commit()
    await db.refresh(issue)

    logger.info("Driver %s reported issue %s on trip %s", profile.id, issue.id, trip.id)
    return ActionResult.ok("Issue reported successfully", data=IssueResponse.model_validate(issue))
