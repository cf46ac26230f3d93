"""
Email body tests. Delivery is replaced so only the rendered HTML is checked.
"""

import pytest
from transport_backend.app.core.exceptions import ExternalServiceError
from transport_backend.app.services.email import EmailSender


@pytest.fixture
def outbox(monkeypatch):
    sender = EmailSender(api_key="re_test", api_url="https://mail.invalid/emails", sender="tms@example.com")
    sent = []

    async def send(to, subject, html):
        sent.append({"to": to, "subject": subject, "html": html})
        return {"id": "email_1"}

    monkeypatch.setattr(sender, "send", send)
    return sender, sent


# TEST 1: Escaping
@pytest.mark.asyncio
async def test_temporary_password_email_escapes_name(outbox):
    sender, sent = outbox

    await sender.send_temporary_password("eve@example.com", '<script>alert("x")</script>', "Ab1&cd<ef")

    body = sent[0]["html"]
    assert "<script>" not in body
    assert "&lt;script&gt;alert(&quot;x&quot;)&lt;/script&gt;" in body
    assert "<strong>Ab1&amp;cd&lt;ef</strong>" in body


@pytest.mark.asyncio
async def test_trip_assignment_email_escapes_name_and_label(outbox):
    sender, sent = outbox

    await sender.send_trip_assignment("d@example.com", "<b>Driver</b>", "Fes <> Oujda", "/list/trips/3")

    body = sent[0]["html"]
    assert "<b>Driver</b>" not in body
    assert "&lt;b&gt;Driver&lt;/b&gt;" in body
    assert "Fes &lt;&gt; Oujda" in body
    assert "/list/trips/3" in body


# TEST 2: Configuration
@pytest.mark.asyncio
async def test_unconfigured_sender_raises():
    sender = EmailSender(api_key="", sender="tms@example.com")
    sender.api_key = None

    with pytest.raises(ExternalServiceError):
        await sender.send("x@example.com", "Hi", "<p>Hi</p>")
