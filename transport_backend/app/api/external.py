"""
External-facing API routes.

Upload signing for the image host, the password-change acknowledgement and
the identity provider webhook. These live outside the versioned API because
their paths are fixed by the provider and the frontend upload widget.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update
from transport_backend.app.core.config import settings
from transport_backend.app.core.dependencies import get_session_identity
from transport_backend.app.core.exceptions import AppException, ExternalServiceError
from transport_backend.app.db.session import get_db
from transport_backend.app.models.user import User
from transport_backend.app.schemas.external import (
    ChangePasswordRequest, ChangePasswordResponse, ImageCheckRequest, UploadSignatureResponse,
)
from transport_backend.app.services.identity_provider import IdentityProviderClient, get_identity_provider
from transport_backend.app.services.identity_sync import SVIX_HEADERS, IdentitySyncService, verify_event
from transport_backend.app.services.uploads import generate_upload_signature, validate_image_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["External"])


@router.get("/upload/signature", response_model=UploadSignatureResponse)
async def upload_signature(
    folder: Optional[str] = Query(None),
    public_id: Optional[str] = Query(None, alias="publicId"),
    identity: dict = Depends(get_session_identity)
):
    """
    Sign a client-side image upload for a signed-in user.

    Returns:
        signature, api_key, timestamp and the target folder
    """
    try:
        return generate_upload_signature(folder=folder or None, public_id=public_id or None)
    except ExternalServiceError as exc:
        logger.error("Upload signature for %s failed: %s", identity["user_id"], exc.message)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)


@router.post("/upload/validate")
async def validate_upload(
    payload: ImageCheckRequest,
    identity: dict = Depends(get_session_identity)
):
    """Check type and size of an image before the client uploads it."""
    validate_image_file(payload.content_type, payload.size)
    return {"valid": True}


@router.post("/user/change-password", response_model=ChangePasswordResponse)
async def change_password(
    payload: ChangePasswordRequest,
    identity: dict = Depends(get_session_identity),
    db: AsyncSession = Depends(get_db),
    provider: IdentityProviderClient = Depends(get_identity_provider)
):
    """
    Acknowledge a first-sign-in password change.

    The password itself is changed with the identity provider; this only
    clears the ``requiresPasswordChange`` flag there and locally.
    """
    if not payload.current_password or not payload.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password and new password are required"
        )

    user_id = identity["user_id"]
    try:
        await provider.update_user_metadata(user_id, {"requiresPasswordChange": False})
    except ExternalServiceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)

    await db.execute(update(User).where(User.id == user_id).values(requires_password_change=False))
    await db.commit()

    logger.info("Password change flag cleared for %s", user_id)
    return ChangePasswordResponse(
        success=True,
        message="Password change flag updated. Please use the account settings to change your password.",
    )


@router.post("/webhook/identity")
async def identity_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    provider: IdentityProviderClient = Depends(get_identity_provider)
):
    """
    Receive user lifecycle events from the identity provider.

    Only a missing or invalid signature fails the delivery; handler errors
    are logged and acknowledged.
    """
    if not all(request.headers.get(name) for name in SVIX_HEADERS):
        return JSONResponse({"message": "Missing Svix headers"}, status_code=status.HTTP_400_BAD_REQUEST)

    if not settings.identity_webhook_secret:
        logger.error("Identity webhook received but no webhook secret is configured")
        return JSONResponse(
            {"message": "Webhook secret not configured"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    payload = await request.body()
    try:
        event = verify_event(settings.identity_webhook_secret, payload, request.headers)
    except AppException as exc:
        return JSONResponse({"message": exc.message}, status_code=status.HTTP_400_BAD_REQUEST)

    await IdentitySyncService.handle_event(db, provider, event)
    return {"ok": True}
