"""
Session resolution.

Turns the incoming request into the caller's identity: a dict with
``user_id``, ``role`` and the raw ``claims``. Used by the access gate and by
the authentication dependencies, so both see the same identity.
"""

from typing import Any, Dict, Optional
from starlette.requests import Request
from transport_backend.app.core.config import settings
from transport_backend.app.core.jwt import decode_session_token
from transport_backend.app.models.enums import UserRole


def extract_token(request: Request) -> Optional[str]:
    """Bearer header wins over the session cookie."""
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
    return request.cookies.get(settings.session_cookie_name) or None


def normalize_role(claims: Dict[str, Any]) -> Optional[str]:
    """
    Read the role claim and normalize it to a known lower-case role.

    The provider keeps the role in public metadata, surfaced as
    ``claims["metadata"]["role"]``; a top-level ``role`` claim is accepted
    too. Unknown roles count as missing.
    """
    metadata = claims.get("metadata")
    role = metadata.get("role") if isinstance(metadata, dict) else None
    if role is None:
        role = claims.get("role")
    if not isinstance(role, str):
        return None

    role = role.strip().lower()
    try:
        return UserRole(role).value
    except ValueError:
        return None


def identity_from_claims(claims: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    user_id = claims.get("sub")
    if not user_id:
        return None

    metadata = claims.get("metadata") if isinstance(claims.get("metadata"), dict) else {}
    return {
        "user_id": str(user_id),
        "role": normalize_role(claims),
        "requires_password_change": bool(metadata.get("requiresPasswordChange", False)),
        "claims": claims,
    }


def resolve_identity(request: Request) -> Optional[Dict[str, Any]]:
    """
    Resolve the caller's identity from the request.

    Returns:
        Identity dict, or None when there is no valid session
    """
    token = extract_token(request)
    if not token:
        return None

    claims = decode_session_token(token)
    if claims is None:
        return None

    return identity_from_claims(claims)
