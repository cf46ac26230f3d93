"""
Session revocation using Redis.

Identity provider sessions stay valid until they expire, so deactivated or
deleted users are flagged here and rejected by the API dependencies.
"""

import logging
from transport_backend.app.core.config import settings

logger = logging.getLogger(__name__)

USER_SESSIONS_PREFIX = "user:sessions:"


def _revocation_key(user_id: str) -> str:
    return f"{USER_SESSIONS_PREFIX}{user_id}:revoked"


async def revoke_user_sessions(redis, user_id: str) -> bool:
    """
    Revoke every live session of a user.

    The flag outlives the longest possible session, after which the
    provider's own expiry takes over.

    Returns:
        True if the flag was stored
    """
    try:
        ttl_seconds = settings.access_token_expire_minutes * 60
        await redis.setex(_revocation_key(user_id), ttl_seconds, "1")
        return True
    except Exception:
        logger.exception("Error revoking sessions for user %s", user_id)
        return False


async def are_user_sessions_revoked(redis, user_id: str) -> bool:
    """
    Check whether a user's sessions have been revoked.

    Fails open when Redis is unreachable; the database ``is_active`` check
    still applies.
    """
    try:
        return await redis.exists(_revocation_key(user_id)) > 0
    except Exception:
        logger.exception("Error checking session revocation for user %s", user_id)
        return False


async def clear_user_session_revocation(redis, user_id: str) -> bool:
    """Called when a deactivated user is activated again."""
    try:
        await redis.delete(_revocation_key(user_id))
        return True
    except Exception:
        logger.exception("Error clearing session revocation for user %s", user_id)
        return False
