"""
JWT token utilities for session handling.

Sessions are JWTs issued by the identity provider. The role lives in the
``metadata`` claim, exactly as the provider's session template emits it.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from transport_backend.app.core.config import settings


def create_session_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed session token.

    Production sessions come from the identity provider; this signs
    tokens of the same shape for tests and local runs.

    Args:
        data: Claims to encode (should include: sub, metadata)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example payload:
        {
            "sub": "user_2abc",
            "metadata": {"role": "driver"},
            "exp": 1234567890
        }
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_session_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a session token.

    Args:
        token: JWT token string to decode

    Returns:
        Decoded claims if signature and expiry are valid, None otherwise
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
