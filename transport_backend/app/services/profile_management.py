"""
Driver and client profile actions (admin-only).
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from transport_backend.app.core.config import settings
from transport_backend.app.core.exceptions import BusinessRuleError, ResourceNotFoundError
from transport_backend.app.core.rbac import ADMIN, require_role
from transport_backend.app.domain.status_machine import DRIVER_STATUS_MACHINE
from transport_backend.app.models.enums import DriverStatus
from transport_backend.app.models.profiles import ClientProfile, DriverProfile
from transport_backend.app.models.user import User
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.profile import (
    ClientListResponse, ClientProfileResponse, ClientProfileUpdate, ClientSummary,
    DriverListResponse, DriverProfileResponse, DriverProfileUpdate, DriverSummary,
)
from transport_backend.app.services.actions import action

logger = logging.getLogger(__name__)


def driver_summary(profile: DriverProfile, user: User) -> DriverSummary:
    return DriverSummary(
        **DriverProfileResponse.model_validate(profile).model_dump(),
        name=user.name,
        email=user.email,
        phone=user.phone,
        is_active=user.is_active,
    )


def client_summary(profile: ClientProfile, user: User) -> ClientSummary:
    return ClientSummary(
        **ClientProfileResponse.model_validate(profile).model_dump(),
        name=user.name,
        email=user.email,
        phone=user.phone,
        is_active=user.is_active,
    )


async def get_driver_profile(db: AsyncSession, driver_id: int) -> DriverProfile:
    profile = await db.get(DriverProfile, driver_id)
    if not profile:
        raise ResourceNotFoundError("Driver profile", driver_id)
    return profile


async def get_client_profile(db: AsyncSession, client_id: int) -> ClientProfile:
    profile = await db.get(ClientProfile, client_id)
    if not profile:
        raise ResourceNotFoundError("Client profile", client_id)
    return profile


async def driver_profile_for_user(db: AsyncSession, user_id: str) -> Optional[DriverProfile]:
    result = await db.execute(select(DriverProfile).where(DriverProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def client_profile_for_user(db: AsyncSession, user_id: str) -> Optional[ClientProfile]:
    result = await db.execute(select(ClientProfile).where(ClientProfile.user_id == user_id))
    return result.scalar_one_or_none()


# Queries

@action("Failed to fetch drivers")
async def list_drivers(
    db: AsyncSession,
    identity: dict,
    page: int = 1,
    search: Optional[str] = None,
    status: Optional[DriverStatus] = None,
    page_size: Optional[int] = None,
) -> ActionResult:
    require_role(identity, ADMIN)
    page_size = page_size or settings.items_per_page

    query = select(DriverProfile, User).join(User, User.id == DriverProfile.user_id)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            User.name.ilike(pattern), User.email.ilike(pattern), DriverProfile.license_number.ilike(pattern)
        ))
    if status:
        query = query.where(DriverProfile.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(DriverProfile.created_at.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return ActionResult.ok(data=DriverListResponse(
        drivers=[driver_summary(p, u) for p, u in result.all()],
        total=total,
        page=page,
        page_size=page_size,
    ))


@action("Failed to fetch driver")
async def get_driver(db: AsyncSession, identity: dict, driver_id: int) -> ActionResult:
    require_role(identity, ADMIN)
    profile = await get_driver_profile(db, driver_id)
    user = await db.get(User, profile.user_id)
    return ActionResult.ok(data=driver_summary(profile, user))


@action("Failed to fetch clients")
async def list_clients(
    db: AsyncSession,
    identity: dict,
    page: int = 1,
    search: Optional[str] = None,
    page_size: Optional[int] = None,
) -> ActionResult:
    require_role(identity, ADMIN)
    page_size = page_size or settings.items_per_page

    query = select(ClientProfile, User).join(User, User.id == ClientProfile.user_id)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            User.name.ilike(pattern), User.email.ilike(pattern), ClientProfile.company_name.ilike(pattern)
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(ClientProfile.created_at.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return ActionResult.ok(data=ClientListResponse(
        clients=[client_summary(p, u) for p, u in result.all()],
        total=total,
        page=page,
        page_size=page_size,
    ))


@action("Failed to fetch client")
async def get_client(db: AsyncSession, identity: dict, client_id: int) -> ActionResult:
    require_role(identity, ADMIN)
    profile = await get_client_profile(db, client_id)
    user = await db.get(User, profile.user_id)
    return ActionResult.ok(data=client_summary(profile, user))


# Mutations

@action("Failed to update driver profile")
async def update_driver_profile(
    db: AsyncSession,
    identity: dict,
    driver_id: int,
    payload: DriverProfileUpdate,
) -> ActionResult:
    require_role(identity, ADMIN)
    profile = await get_driver_profile(db, driver_id)

    if payload.license_number != profile.license_number:
        taken = await db.execute(
            select(DriverProfile.id).where(DriverProfile.license_number == payload.license_number)
        )
        if taken.first():
            raise BusinessRuleError("A driver with this license number already exists")

    if payload.status != profile.status:
        DRIVER_STATUS_MACHINE.ensure_transition(profile.status, payload.status)

    profile.license_number = payload.license_number
    profile.experience_years = payload.experience_years
    profile.status = payload.status
    await db.commit()
    await db.refresh(profile)

    return ActionResult.ok("Driver profile updated successfully", data=DriverProfileResponse.model_validate(profile))


@action("Failed to update driver status")
async def update_driver_status(
    db: AsyncSession,
    identity: dict,
    driver_id: int,
    status: DriverStatus,
) -> ActionResult:
    require_role(identity, ADMIN)
    profile = await get_driver_profile(db, driver_id)

    previous = profile.status
    profile.status = DRIVER_STATUS_MACHINE.ensure_transition(previous, status)
    await db.commit()

    logger.info("Driver %s status %s -> %s", driver_id, previous.value, profile.status.value)
    return ActionResult.ok(f"Driver status updated to {profile.status.value}")


@action("Failed to update client profile")
async def update_client_profile(
    db: AsyncSession,
    identity: dict,
    client_id: int,
    payload: ClientProfileUpdate,
) -> ActionResult:
    require_role(identity, ADMIN)
    profile = await get_client_profile(db, client_id)

    profile.company_name = payload.company_name
    profile.address = payload.address
    profile.vat_number = payload.vat_number or None
    await db.commit()
    await db.refresh(profile)

    return ActionResult.ok("Client profile updated successfully", data=ClientProfileResponse.model_validate(profile))
