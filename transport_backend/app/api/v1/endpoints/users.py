"""
User management API endpoints (admin-only).

Every route answers with an ActionResult; failures carry the reason in
``message`` instead of an HTTP error.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.dependencies import get_current_user
from transport_backend.app.core.redis_client import get_redis
from transport_backend.app.db.session import get_db
from transport_backend.app.models.enums import UserRole
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.user import AssignUserRoleRequest, InviteUserRequest, UserUpdate
from transport_backend.app.services import user_management
from transport_backend.app.services.email import EmailSender, get_email_sender
from transport_backend.app.services.identity_provider import IdentityProviderClient, get_identity_provider

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=ActionResult)
async def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    search: Optional[str] = Query(None),
    role: Optional[UserRole] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await user_management.list_users(db, current_user, page=page, search=search, role=role)


@router.post("/invite", response_model=ActionResult)
async def invite_user(
    payload: InviteUserRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    provider: IdentityProviderClient = Depends(get_identity_provider),
    email_sender: EmailSender = Depends(get_email_sender)
):
    """
    Create a user in the identity provider and locally.

    The temporary password is e-mailed when an address is given.
    """
    return await user_management.invite_user(db, current_user, payload, provider, email_sender)


@router.post("/assign-role", response_model=ActionResult)
async def assign_user_role(
    payload: AssignUserRoleRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    provider: IdentityProviderClient = Depends(get_identity_provider)
):
    return await user_management.assign_user_role(db, current_user, payload, provider)


@router.get("/{user_id}", response_model=ActionResult)
async def get_user(
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await user_management.get_user(db, current_user, user_id)


@router.put("/{user_id}", response_model=ActionResult)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    provider: IdentityProviderClient = Depends(get_identity_provider)
):
    return await user_management.update_user(db, current_user, user_id, payload, provider)


@router.delete("/{user_id}", response_model=ActionResult)
async def delete_user(
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    provider: IdentityProviderClient = Depends(get_identity_provider),
    redis=Depends(get_redis)
):
    return await user_management.delete_user(db, current_user, user_id, provider, redis)


@router.post("/{user_id}/deactivate", response_model=ActionResult)
async def deactivate_user(
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Deactivate a user and revoke their live sessions."""
    return await user_management.deactivate_user(db, current_user, user_id, redis)


@router.post("/{user_id}/activate", response_model=ActionResult)
async def activate_user(
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    return await user_management.activate_user(db, current_user, user_id, redis)
