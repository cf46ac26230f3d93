"""
Access gate middleware.

Runs in front of every request, resolves the caller's identity and applies
the route access table from ``core.rbac``. Denied page requests are
redirected, never answered with an error.
"""

import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from transport_backend.app.core.identity import resolve_identity
from transport_backend.app.core.rbac import decide_access

logger = logging.getLogger(__name__)


class AccessGateMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        identity = resolve_identity(request)
        request.state.identity = identity

        decision = decide_access(request.url.path, identity)
        if not decision.allowed:
            logger.info(
                "Access gate redirect",
                extra={
                    "path": request.url.path,
                    "rule": decision.rule,
                    "reason": decision.reason,
                    "redirect_to": decision.redirect_to,
                    "user_id": identity["user_id"] if identity else None,
                },
            )
            return RedirectResponse(url=decision.redirect_to, status_code=307)

        return await call_next(request)
