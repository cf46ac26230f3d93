"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting JSON routes with the
identity provider's session.
"""

from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from transport_backend.app.core.config import settings
from transport_backend.app.core.exceptions import TokenRevokedError
from transport_backend.app.core.identity import resolve_identity
from transport_backend.app.core.redis_client import get_redis
from transport_backend.app.core.token_revocation import are_user_sessions_revoked
from transport_backend.app.db.session import get_db
from transport_backend.app.models.user import User


def get_optional_identity(request: Request) -> Optional[dict]:
    """
    Identity resolved by the access gate, or resolved here when the gate
    did not run (e.g. a router mounted without the middleware).
    """
    if hasattr(request.state, "identity"):
        return request.state.identity
    return resolve_identity(request)


def get_session_identity(identity: Optional[dict] = Depends(get_optional_identity)) -> dict:
    """
    Require a valid session, without touching the database.

    Raises:
        HTTPException: 401 if there is no valid session
    """
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


async def get_current_user(
    identity: dict = Depends(get_session_identity),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> dict:
    """
    FastAPI dependency for authenticated JSON routes.

    Security checks:
    1. Validates the session token signature and expiry
    2. Checks if the user's sessions have been revoked (user deactivated)
    3. Verifies the user exists and is still active (real-time check)

    Returns:
        Identity dict (user_id, role, claims)

    Raises:
        TokenRevokedError: the user was deactivated or deleted
        HTTPException: 401/403 for a missing or inactive user
    """
    user_id = identity["user_id"]

    if await are_user_sessions_revoked(redis, user_id):
        raise TokenRevokedError()

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    return identity


async def get_page_identity(
    identity: Optional[dict] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> Optional[dict]:
    """
    Identity for page routes, or None when the session has ended.

    A session ends when it was revoked or its user deactivated. A user not
    mirrored locally yet still counts as signed in so onboarding works.
    """
    if identity is None:
        return None

    if await are_user_sessions_revoked(redis, identity["user_id"]):
        return None

    user = await db.get(User, identity["user_id"])
    if user is not None and not user.is_active:
        return None
    return identity


async def get_page_session(
    raw_identity: Optional[dict] = Depends(get_optional_identity),
    identity: Optional[dict] = Depends(get_page_identity),
) -> Optional[dict]:
    """
    Identity for gated pages.

    Raises:
        HTTPException: 307 to the sign-in page when the session has ended
    """
    if raw_identity is not None and identity is None:
        raise HTTPException(
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
            detail="Session has ended",
            headers={"Location": settings.sign_in_path},
        )
    return identity
