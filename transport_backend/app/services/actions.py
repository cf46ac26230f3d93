"""
Action boundary.

Management actions raise application exceptions internally; the ``action``
decorator catches them at the boundary, rolls back the session and returns
an ``ActionResult`` instead.
"""

import logging
from functools import wraps
from typing import Callable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.exceptions import AppException
from transport_backend.app.schemas.actions import ActionResult

logger = logging.getLogger(__name__)


def _find_session(args, kwargs) -> Optional[AsyncSession]:
    for value in list(args) + list(kwargs.values()):
        if isinstance(value, AsyncSession):
            return value
    return None


def action(failure_message: str) -> Callable:
    """
    Wrap an async action so it always returns an ActionResult.

    Usage:
        @action("Failed to create vehicle")
        async def create_vehicle(db, identity, payload):
            require_role(identity, ADMIN)
            ...
            return ActionResult.ok("Vehicle created", data=...)

    Args:
        failure_message: Message returned for unexpected errors

    Returns:
        Decorator producing the wrapped coroutine function
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> ActionResult:
            try:
                result = await func(*args, **kwargs)
            except AppException as exc:
                await _rollback(args, kwargs)
                logger.info("%s rejected: %s", func.__name__, exc.message)
                return ActionResult.fail(exc.message, exc.error_code)
            except Exception:
                await _rollback(args, kwargs)
                logger.exception("%s failed", func.__name__)
                return ActionResult.fail(failure_message, "ERR_INTERNAL_SERVER")

            if isinstance(result, ActionResult):
                return result
            return ActionResult.ok(data=result)

        return wrapper

    return decorator


async def _rollback(args, kwargs) -> None:
    db = _find_session(args, kwargs)
    if db is None:
        return
    try:
        await db.rollback()
    except Exception:
        logger.exception("Rollback after failed action raised")
