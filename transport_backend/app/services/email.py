"""
Transactional email through the Resend REST API.
"""

import html
import logging
from typing import Optional
import httpx
from transport_backend.app.core.config import settings
from transport_backend.app.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class EmailSender:

    def __init__(self, api_key: str = None, api_url: str = None, sender: str = None):
        self.api_key = api_key or settings.resend_api_key
        self.api_url = api_url or settings.resend_api_url
        self.sender = sender or settings.resend_from_email

    async def send(self, to: str, subject: str, html: str) -> Optional[dict]:
        """
        Send one email.

        Raises:
            ExternalServiceError: provider not configured or request failed
        """
        if not self.api_key:
            raise ExternalServiceError("email", "Email service is not configured")

        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(timeout=10.0) as client:
            try:
                response = await client.post(self.api_url, json=payload, headers=headers)
            except httpx.HTTPError as exc:
                logger.error("Email to %s failed: %s", to, exc)
                raise ExternalServiceError("email", "Email service is unreachable")

        if response.status_code not in (200, 201):
            logger.error("Email send failed HTTP_%s body=%s", response.status_code, response.text)
            raise ExternalServiceError("email", f"Failed to send email: HTTP_{response.status_code}")

        return response.json()

    async def send_quietly(self, to: str, subject: str, html: str) -> None:
        """Fire-and-forget variant for background tasks."""
        try:
            await self.send(to, subject, html)
        except ExternalServiceError as exc:
            logger.warning("Dropped email to %s: %s", to, exc.message)

    async def send_temporary_password(self, email: str, name: str, temporary_password: str) -> Optional[dict]:
        sign_in_url = f"{settings.app_url.rstrip('/')}{settings.sign_in_path}"
        body = (
            "<h1>Welcome to Transport Management System</h1>"
            f"<p>Hello {html.escape(name)},</p>"
            "<p>Your account has been created by an administrator. "
            "Use the temporary password below to sign in for the first time.</p>"
            f"<p><strong>{html.escape(temporary_password)}</strong></p>"
            "<p>You will be required to change this password when you sign in.</p>"
            f'<p><a href="{sign_in_url}">Sign In Now</a></p>'
        )
        return await self.send(
            email,
            "Welcome to Transport Management System - Your Temporary Password",
            body,
        )

    async def send_trip_assignment(self, email: str, name: str, trip_label: str, link: str) -> None:
        """Tell a driver about a new trip. Failures are only logged."""
        trip_url = f"{settings.app_url.rstrip('/')}{link}"
        body = (
            f"<p>Hello {html.escape(name)},</p>"
            f"<p>You have been assigned to trip <strong>{html.escape(trip_label)}</strong>.</p>"
            f'<p><a href="{trip_url}">View Trip</a></p>'
        )
        await self.send_quietly(email, "New Trip Assigned", body)


_sender: Optional[EmailSender] = None


def get_email_sender() -> EmailSender:
    """FastAPI dependency returning the shared sender."""
    global _sender
    if _sender is None:
        _sender = EmailSender()
    return _sender
