"""
Issue API endpoints.

Drivers report issues through ``/driver/trips/{trip_id}/issues``.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.dependencies import get_current_user
from transport_backend.app.db.session import get_db
from transport_backend.app.models.enums import IssueStatus, IssueType, PriorityLevel
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.issue import IssueStatusUpdate
from transport_backend.app.services import issue_management

router = APIRouter(prefix="/issues", tags=["Issues"])


@router.get("", response_model=ActionResult)
async def list_issues(
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    status: Optional[IssueStatus] = Query(None),
    severity: Optional[PriorityLevel] = Query(None),
    type: Optional[IssueType] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await issue_management.list_issues(
        db, current_user, page=page, search=search, status=status, severity=severity, type=type
    )


@router.get("/{issue_id}", response_model=ActionResult)
async def get_issue(
    issue_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await issue_management.get_issue(db, current_user, issue_id)


@router.patch("/{issue_id}/status", response_model=ActionResult)
async def update_issue_status(
    issue_id: int,
    payload: IssueStatusUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await issue_management.update_issue_status(
        db, current_user, issue_id, payload.status, payload.resolution
    )
