"""
Driver self-service API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.dependencies import get_current_user
from transport_backend.app.db.session import get_db
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.issue import IssueReport
from transport_backend.app.schemas.trip import TripStatusUpdate
from transport_backend.app.services import driver_actions

router = APIRouter(prefix="/driver", tags=["Driver"])


@router.patch("/trips/{trip_id}/status", response_model=ActionResult)
async def update_own_trip_status(
    trip_id: int,
    payload: TripStatusUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Start, complete or cancel one of the caller's own trips."""
    return await driver_actions.driver_update_trip_status(db, current_user, trip_id, payload.status)


@router.post("/trips/{trip_id}/issues", response_model=ActionResult)
async def report_issue(
    trip_id: int,
    payload: IssueReport,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await driver_actions.report_trip_issue(db, current_user, trip_id, payload)
