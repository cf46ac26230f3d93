"""
Page routes.

Each page answers with its view model: the role's layout shell (sidebar
and header) plus the page content. Role checks already happened in the
access gate; detail pages additionally redirect a caller who may not see
the record back to their own dashboard.
"""

import logging
from typing import Awaitable, Callable, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.config import settings
from transport_backend.app.core.dependencies import get_page_identity, get_page_session
from transport_backend.app.core.exceptions import ResourceNotFoundError
from transport_backend.app.core.rbac import get_role_dashboard_path
from transport_backend.app.db.session import get_db
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.layout import Page
from transport_backend.app.services import (
    dashboard, expense_management, issue_management, notification_service, profile_management,
    shipment_management, trip_management, user_management, vehicle_management,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pages"])

DETAIL_NOT_FOUND = "ERR_NOT_FOUND_001"
DETAIL_FORBIDDEN = "ERR_PERM_001"


def landing_path(identity: dict) -> str:
    """Where a signed-in user goes from the sign-in page."""
    if identity.get("requires_password_change"):
        return "/change-password"
    if identity.get("role"):
        return get_role_dashboard_path(identity["role"])
    return settings.onboarding_path


def home_redirect(identity: Optional[dict]) -> RedirectResponse:
    target = get_role_dashboard_path(identity["role"]) if identity and identity.get("role") else settings.sign_in_path
    return RedirectResponse(url=target, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


async def render(db: AsyncSession, identity: Optional[dict], request: Request, name: str, **content) -> Page:
    layout = await dashboard.build_layout(db, identity, request.url.path)
    return Page(page=name, layout=layout, content=content)


async def render_detail(
    db: AsyncSession,
    identity: Optional[dict],
    request: Request,
    name: str,
    fetch: Callable[[], Awaitable[ActionResult]],
    **extra,
):
    """
    Render a detail page from a ``get_*`` action.

    Missing records are a 404; records the caller may not see send them
    to their dashboard.
    """
    result = await fetch()
    if not result.success:
        if result.error_code == DETAIL_NOT_FOUND:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
        if result.error_code == DETAIL_FORBIDDEN:
            return home_redirect(identity)
    return await render(db, identity, request, name, result=result, **extra)


# Public pages

@router.get("/", response_model=Page)
@router.get("/sign-in", response_model=Page)
async def sign_in_page(identity: Optional[dict] = Depends(get_page_identity)):
    """Signed-in users are sent on: password change, dashboard or onboarding."""
    if identity:
        return RedirectResponse(url=landing_path(identity), status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    return Page(
        page="sign-in",
        content={
            "title": "Sign in to TMS",
            "fields": ["identifier", "password"],
        },
    )


@router.get("/onboarding", response_model=Page)
async def onboarding_page(identity: Optional[dict] = Depends(get_page_identity)):
    if identity is None:
        return Page(page="onboarding", content={
            "title": "Please sign in",
            "message": "You need to sign in before we can complete your account setup.",
            "sign_in": settings.sign_in_path,
        })
    return Page(page="onboarding", content={
        "title": "We're almost ready",
        "message": (
            "Your account is missing a role assignment. Please contact an administrator "
            "so they can update your profile. You will be redirected automatically once "
            "the role is set."
        ),
    })


@router.get("/change-password", response_model=Page)
async def change_password_page(identity: Optional[dict] = Depends(get_page_identity)):
    if identity is None:
        return RedirectResponse(url=settings.sign_in_path, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    return Page(page="change-password", content={
        "title": "Change Your Password",
        "message": (
            "You must change your temporary password before continuing. "
            "Use the form below to update your password."
        ),
        "submit": "/api/user/change-password",
        "continue_to": get_role_dashboard_path(identity["role"]) if identity.get("role") else settings.onboarding_path,
    })


# Dashboards

@router.get("/admin", response_model=Page)
async def admin_dashboard(
    request: Request,
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    overview = await dashboard.admin_overview(db, identity)
    return await render(db, identity, request, "admin", **overview)


@router.get("/driver", response_model=Page)
async def driver_dashboard(
    request: Request,
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    try:
        overview = await dashboard.driver_overview(db, identity)
    except ResourceNotFoundError:
        overview = {"title": "Driver Dashboard", "error": "Driver profile not found. Please contact administrator."}
    return await render(db, identity, request, "driver", **overview)


@router.get("/client", response_model=Page)
async def client_dashboard(
    request: Request,
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    try:
        overview = await dashboard.client_overview(db, identity)
    except ResourceNotFoundError:
        overview = {"title": "Client Dashboard", "error": "Client profile not found. Please contact administrator."}
    return await render(db, identity, request, "client", **overview)


# List pages

@router.get("/list/users", response_model=Page)
async def users_page(
    request: Request,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    result = await user_management.list_users(db, identity, page=page, search=search)
    return await render(db, identity, request, "users", title="All Users", search=search, result=result)


@router.get("/list/drivers", response_model=Page)
async def drivers_page(
    request: Request,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    result = await profile_management.list_drivers(db, identity, page=page, search=search)
    return await render(db, identity, request, "drivers", title="All Drivers", search=search, result=result)


@router.get("/list/clients", response_model=Page)
async def clients_page(
    request: Request,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    result = await profile_management.list_clients(db, identity, page=page, search=search)
    return await render(db, identity, request, "clients", title="All Clients", search=search, result=result)


@router.get("/list/vehicles", response_model=Page)
async def vehicles_page(
    request: Request,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    result = await vehicle_management.list_vehicles(db, identity, page=page, search=search)
    return await render(db, identity, request, "vehicles", title="All Vehicles", search=search, result=result)


@router.get("/list/trips", response_model=Page)
async def trips_page(
    request: Request,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    """Drivers see their own trips, clients the trips carrying their shipments."""
    result = await trip_management.list_trips(db, identity, page=page, search=search)
    return await render(db, identity, request, "trips", title="All Trips", search=search, result=result)


@router.get("/list/shipments", response_model=Page)
async def shipments_page(
    request: Request,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    result = await shipment_management.list_shipments(db, identity, page=page, search=search)
    return await render(db, identity, request, "shipments", title="All Shipments", search=search, result=result)


@router.get("/list/issues", response_model=Page)
async def issues_page(
    request: Request,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    result = await issue_management.list_issues(db, identity, page=page, search=search)
    return await render(db, identity, request, "issues", title="All Issues", search=search, result=result)


@router.get("/list/expenses", response_model=Page)
async def expenses_page(
    request: Request,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    result = await expense_management.list_expenses(db, identity, page=page, search=search)
    return await render(db, identity, request, "expenses", title="All Expenses", search=search, result=result)


@router.get("/notifications", response_model=Page)
async def notifications_page(
    request: Request,
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    if identity is None:
        return RedirectResponse(url=settings.sign_in_path, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    result = await notification_service.get_notifications(db, identity)
    return await render(db, identity, request, "notifications", title="Notifications", result=result)


# Detail pages

@router.get("/list/users/{user_id}", response_model=Page)
async def user_detail_page(
    user_id: str,
    request: Request,
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    return await render_detail(
        db, identity, request, "user", lambda: user_management.get_user(db, identity, user_id)
    )


@router.get("/list/drivers/{driver_id}", response_model=Page)
async def driver_detail_page(
    driver_id: int,
    request: Request,
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    return await render_detail(
        db, identity, request, "driver-detail", lambda: profile_management.get_driver(db, identity, driver_id)
    )


@router.get("/list/clients/{client_id}", response_model=Page)
async def client_detail_page(
    client_id: int,
    request: Request,
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    return await render_detail(
        db, identity, request, "client-detail", lambda: profile_management.get_client(db, identity, client_id)
    )


@router.get("/list/vehicles/{vehicle_id}", response_model=Page)
async def vehicle_detail_page(
    vehicle_id: int,
    request: Request,
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    return await render_detail(
        db, identity, request, "vehicle", lambda: vehicle_management.get_vehicle(db, identity, vehicle_id)
    )


@router.get("/list/trips/{trip_id}", response_model=Page)
async def trip_detail_page(
    trip_id: int,
    request: Request,
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    """The trip plus the shipments it carries that the caller may see."""
    response = await render_detail(
        db, identity, request, "trip", lambda: trip_management.get_trip(db, identity, trip_id)
    )
    if isinstance(response, Page) and response.content["result"].success:
        response.content["shipments"] = await shipment_management.list_shipments(
            db, identity, trip_id=trip_id, page_size=100
        )
    return response


@router.get("/list/shipments/{shipment_id}", response_model=Page)
async def shipment_detail_page(
    shipment_id: int,
    request: Request,
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    return await render_detail(
        db, identity, request, "shipment", lambda: shipment_management.get_shipment(db, identity, shipment_id)
    )


@router.get("/list/issues/{issue_id}", response_model=Page)
async def issue_detail_page(
    issue_id: int,
    request: Request,
    identity: Optional[dict] = Depends(get_page_session),
    db: AsyncSession = Depends(get_db)
):
    return await render_detail(
        db, identity, request, "issue", lambda: issue_management.get_issue(db, identity, issue_id)
    )
