"""
Identity provider webhook handling.

Keeps the local users table in step with the provider: new users are
mirrored, role changes synced and deleted users deactivated. Handler
errors are logged and never fail the webhook delivery.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update
from svix.webhooks import Webhook, WebhookVerificationError
from transport_backend.app.core.exceptions import AuthenticationError, BusinessRuleError, ExternalServiceError
from transport_backend.app.models.enums import UserRole
from transport_backend.app.models.user import User
from transport_backend.app.services.identity_provider import (
    IdentityProviderClient, full_name, primary_email, primary_phone
)

logger = logging.getLogger(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


def role_from_metadata(public_metadata: Optional[Dict[str, Any]]) -> Optional[UserRole]:
    role = (public_metadata or {}).get("role")
    if not role:
        return None
    try:
        return UserRole(str(role).lower())
    except ValueError:
        return None


def verify_event(secret: str, payload: bytes, headers: Mapping[str, str]) -> Dict[str, Any]:
    """
    Verify a webhook delivery and return the event.

    Raises:
        BusinessRuleError: signature headers missing
        AuthenticationError: signature invalid
    """
    svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
    if not all(svix_headers.values()):
        raise BusinessRuleError("Missing Svix headers")

    try:
        Webhook(secret).verify(payload, svix_headers)
    except WebhookVerificationError as exc:
        logger.warning("Identity webhook verification failed: %s", exc)
        raise AuthenticationError("Invalid signature")

    # Newer svix releases verify without returning the payload
    try:
        event = json.loads(payload)
    except ValueError:
        raise BusinessRuleError("Webhook payload is not valid JSON")
    if not isinstance(event, dict):
        raise BusinessRuleError("Webhook payload must be a JSON object")
    return event


class IdentitySyncService:

    @staticmethod
    async def handle_event(db: AsyncSession, provider: IdentityProviderClient, event: Dict[str, Any]) -> None:
        event_type = event.get("type")
        data = event.get("data") or {}

        handlers = {
            "user.created": IdentitySyncService.user_created,
            "user.updated": IdentitySyncService.user_updated,
            "user.deleted": IdentitySyncService.user_deleted,
        }
        handler = handlers.get(event_type)
        if handler is None:
            logger.debug("Ignoring identity event %s", event_type)
            return

        try:
            await handler(db, provider, data)
        except Exception:
            await db.rollback()
            logger.exception("%s: error handling identity event", event_type)

    @staticmethod
    async def user_created(db: AsyncSession, provider: IdentityProviderClient, data: Dict[str, Any]) -> None:
        user_id = data.get("id")
        if not user_id:
            logger.error("user.created: missing user ID")
            return

        if await db.get(User, user_id):
            logger.info("user.created: user %s already exists, skipping", user_id)
            return

        role = role_from_metadata(data.get("public_metadata")) or UserRole.CLIENT
        db.add(User(
            id=user_id,
            name=full_name(data),
            email=primary_email(data),
            username=data.get("username"),
            phone=primary_phone(data),
            image=data.get("image_url"),
            role=role,
            is_active=True,
        ))
        await db.commit()
        logger.info("user.created: synced user %s as %s", user_id, role.value)

    @staticmethod
    async def user_updated(db: AsyncSession, provider: IdentityProviderClient, data: Dict[str, Any]) -> None:
        user_id = data.get("id")
        if not user_id:
            return

        if data.get("password_enabled"):
            try:
                await provider.update_user_metadata(user_id, {"requiresPasswordChange": False})
            except ExternalServiceError as exc:
                logger.error("user.updated: could not clear password flag for %s: %s", user_id, exc.message)
            user = await db.get(User, user_id)
            if user and user.requires_password_change:
                user.requires_password_change = False
            logger.info("user.updated: cleared requiresPasswordChange for user %s", user_id)

        role = role_from_metadata(data.get("public_metadata"))
        if role:
            result = await db.execute(update(User).where(User.id == user_id).values(role=role))
            if result.rowcount:
                logger.info("user.updated: role set to %s for user %s", role.value, user_id)
            else:
                logger.info("user.updated: user %s not found, skipping role update", user_id)

        await db.commit()

    @staticmethod
    async def user_deleted(db: AsyncSession, provider: IdentityProviderClient, data: Dict[str, Any]) -> None:
        user_id = data.get("id")
        if not user_id:
            logger.error("user.deleted: missing user ID")
            return

        result = await db.execute(update(User).where(User.id == user_id).values(is_active=False))
        await db.commit()
        if result.rowcount:
            logger.info("user.deleted: deactivated user %s", user_id)
        else:
            logger.info("user.deleted: user %s not found, skipping", user_id)

