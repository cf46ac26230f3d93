"""
Identity provider backend client.

Thin async wrapper over the provider's REST API (Clerk-compatible) for the
user lifecycle calls the admin actions need. Sessions themselves are
verified locally in ``core.identity``.
"""

import logging
from typing import Any, Dict, List, Optional
import httpx
from transport_backend.app.core.config import settings
from transport_backend.app.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


def split_name(name: str) -> Dict[str, str]:
    """First word is the first name, the rest the last name."""
    parts = name.split(" ")
    return {
        "first_name": parts[0] or name,
        "last_name": " ".join(parts[1:]),
    }


def provider_error_message(response: httpx.Response) -> str:
    """Join the provider's error entries into one message."""
    try:
        body = response.json()
    except ValueError:
        return f"Identity provider error HTTP_{response.status_code}"

    errors = body.get("errors") if isinstance(body, dict) else None
    if errors:
        return "; ".join(
            e.get("message") or e.get("long_message") or e.get("code") or "Unknown validation error"
            for e in errors
        )
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Identity provider error HTTP_{response.status_code}"


class IdentityProviderClient:

    def __init__(self, api_url: str = None, secret_key: str = None, timeout: float = 10.0):
        self.api_url = (api_url or settings.identity_api_url).rstrip("/")
        self.secret_key = secret_key or settings.identity_secret_key
        self.timeout = timeout

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        if not self.secret_key:
            raise ExternalServiceError("identity", "Identity provider secret key is not configured")

        headers = {"Authorization": f"Bearer {self.secret_key}"}
        async with httpx.AsyncClient(base_url=self.api_url, timeout=self.timeout) as client:
            try:
                response = await client.request(method, path, headers=headers, **kwargs)
            except httpx.HTTPError as exc:
                logger.error("Identity provider %s %s failed: %s", method, path, exc)
                raise ExternalServiceError("identity", "Identity provider is unreachable")

        if response.status_code >= 400:
            message = provider_error_message(response)
            logger.error("Identity provider %s %s HTTP_%s: %s", method, path, response.status_code, message)
            raise ExternalServiceError("identity", message)

        return response.json() if response.content else None

    async def create_user(
        self,
        username: str,
        name: str,
        password: str,
        public_metadata: Dict[str, Any],
        email: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {
            "username": username,
            "password": password,
            "public_metadata": public_metadata,
            "skip_password_checks": False,
            "skip_password_requirement": False,
            **split_name(name),
        }
        if email:
            body["email_address"] = [email]
        return await self._request("POST", "/users", json=body)

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/users/{user_id}")

    async def update_user(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PATCH", f"/users/{user_id}", json=fields)

    async def update_user_metadata(self, user_id: str, public_metadata: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "PATCH", f"/users/{user_id}/metadata", json={"public_metadata": public_metadata}
        )

    async def delete_user(self, user_id: str) -> None:
        await self._request("DELETE", f"/users/{user_id}")

    async def find_users(
        self,
        email: Optional[str] = None,
        username: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if email:
            params["email_address"] = [email]
        if username:
            params["username"] = [username]
        result = await self._request("GET", "/users", params=params)
        # The list endpoint answers with either a bare list or {"data": [...]}
        if isinstance(result, dict):
            return result.get("data", [])
        return result or []


_client: Optional[IdentityProviderClient] = None


def get_identity_provider() -> IdentityProviderClient:
    """FastAPI dependency returning the shared provider client."""
    global _client
    if _client is None:
        _client = IdentityProviderClient()
    return _client


def primary_email(provider_user: Dict[str, Any]) -> Optional[str]:
    addresses = provider_user.get("email_addresses") or []
    return addresses[0].get("email_address") if addresses else None


def primary_phone(provider_user: Dict[str, Any]) -> Optional[str]:
    numbers = provider_user.get("phone_numbers") or []
    return numbers[0].get("phone_number") if numbers else None


def full_name(provider_user: Dict[str, Any]) -> str:
    parts = [provider_user.get("first_name"), provider_user.get("last_name")]
    return " ".join(p for p in parts if p) or provider_user.get("username") or "User"
