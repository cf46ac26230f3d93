"""
Issue management actions.

Drivers report issues (``driver_actions.report_trip_issue``); administrators
triage and resolve them here.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from transport_backend.app.core.config import settings
from transport_backend.app.core.exceptions import InsufficientPermissionsError, ResourceNotFoundError
from transport_backend.app.core.rbac import ADMIN, DRIVER, require_any_role, require_role
from transport_backend.app.models.enums import IssueStatus, IssueType, NotificationType, PriorityLevel
from transport_backend.app.models.issue import Issue
from transport_backend.app.models.profiles import DriverProfile
from transport_backend.app.models.trip import Trip
from transport_backend.app.models.user import User
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.issue import IssueListResponse, IssueResponse, IssueSummary
from transport_backend.app.services.actions import action
from transport_backend.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

RESOLVED_STATUSES = (IssueStatus.RESOLVED, IssueStatus.CLOSED)


def _summary_query():
    return (
        select(Issue, Trip.departure, Trip.destination, User.name, User.id)
        .join(Trip, Trip.id == Issue.trip_id)
        .join(DriverProfile, DriverProfile.id == Issue.driver_id)
        .join(User, User.id == DriverProfile.user_id)
    )


def _summaries(rows: Sequence) -> List[IssueSummary]:
    return [
        IssueSummary(
            **IssueResponse.model_validate(issue).model_dump(),
            trip_label=f"{departure} → {destination}",
            driver_name=name,
        )
        for issue, departure, destination, name, _ in rows
    ]


@action("Failed to fetch issues")
async def list_issues(
    db: AsyncSession,
    identity: dict,
    page: int = 1,
    search: Optional[str] = None,
    status: Optional[IssueStatus] = None,
    severity: Optional[PriorityLevel] = None,
    type: Optional[IssueType] = None,
    page_size: Optional[int] = None,
) -> ActionResult:
    require_role(identity, ADMIN)
    page_size = page_size or settings.items_per_page

    query = _summary_query()
    if status:
        query = query.where(Issue.status == status)
    if severity:
        query = query.where(Issue.severity == severity)
    if type:
        query = query.where(Issue.type == type)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Issue.description.ilike(pattern),
            Trip.departure.ilike(pattern),
            Trip.destination.ilike(pattern),
            User.name.ilike(pattern),
            User.email.ilike(pattern),
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(Issue.created_at.desc(), Issue.id.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return ActionResult.ok(data=IssueListResponse(
        issues=_summaries(result.all()),
        total=total,
        page=page,
        page_size=page_size,
    ))


@action("Failed to fetch issue")
async def get_issue(db: AsyncSession, identity: dict, issue_id: int) -> ActionResult:
    """Admins read any issue, drivers only the ones they reported."""
    role = require_any_role(identity, [ADMIN, DRIVER])

    result = await db.execute(_summary_query().where(Issue.id == issue_id))
    rows = result.all()
    if not rows:
        raise ResourceNotFoundError("Issue", issue_id)

    reporter_id = rows[0][4]
    if role == DRIVER and reporter_id != identity["user_id"]:
        raise InsufficientPermissionsError("Unauthorized")

    return ActionResult.ok(data=_summaries(rows)[0])


@action("Failed to update issue status")
async def update_issue_status(
    db: AsyncSession,
    identity: dict,
    issue_id: int,
    status: IssueStatus,
    resolution: Optional[str] = None,
) -> ActionResult:
    """
    Move an issue to any status.

    RESOLVED/CLOSED stamp ``resolved_at`` and tell the driver; going back
    to OPEN/IN_PROGRESS clears the resolution.
    """
    require_role(identity, ADMIN)

    issue = await db.get(Issue, issue_id)
    if not issue:
        raise ResourceNotFoundError("Issue", issue_id)

    issue.status = status
    if status in RESOLVED_STATUSES:
        issue.resolved_at = datetime.now(timezone.utc)
        if resolution:
            issue.resolution = resolution

        driver = await db.get(DriverProfile, issue.driver_id)
        if driver:
            await NotificationService.create_notification(
                db,
                driver.user_id,
                "Issue Resolved",
                "Your reported issue has been resolved",
                type=NotificationType.SYSTEM,
                link=f"/list/trips/{issue.trip_id}",
            )
    else:
        issue.resolved_at = None
        issue.resolution = None

    await db.commit()

    logger.info("Issue %s moved to %s", issue_id, status.value)
    return ActionResult.ok(f"Issue status updated to {status.value}")
