"""Tests for the notification service."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from changegate.core.config import Settings
from changegate.services import notifications
from changegate.services.notifications import NotificationEvent, NotificationService


@pytest.fixture
def request_obj():
    return SimpleNamespace(
        id=42,
        target_item_type="TODO",
        target_item_id=7,
        operation="UPDATE",
        status="REJECTED",
        status_reason="Too risky",
        requester_id=3,
        requested_data={"level": "HIGH"},
    )


@pytest.fixture
def recipient():
    return SimpleNamespace(id=3, username="dave", email="dave@example.com")


class TestRender:
    """Tests for message rendering."""

    def test_rejected_includes_reason(self, request_obj, recipient):
        """Test that a rejection carries its reason."""
        service = NotificationService(Settings(app_name="Gate"))
        context = service._build_context(request_obj, None)

        subject, body = service.render(NotificationEvent.REJECTED, context, recipient)

        assert subject == "[Gate] Request #42 rejected"
        assert "Hello dave" in body
        assert "UPDATE TODO #7" in body
        assert "Reason: Too risky" in body

    def test_extra_overrides_context(self, request_obj, recipient):
        """Test that extra values are available to templates."""
        service = NotificationService(Settings())
        context = service._build_context(request_obj, {"approver": "bob"})

        _, body = service.render(NotificationEvent.APPROVER_RESPONDED, context, recipient)

        assert "bob approved your request" in body

    def test_every_event_renders(self, request_obj, recipient):
        """Test that each event has a template."""
        service = NotificationService(Settings())
        context = service._build_context(request_obj, None)
        for event in NotificationEvent:
            subject, body = service.render(event, context, recipient)
            assert subject.startswith("[ChangeGate] ")
            assert body


class TestDelivery:
    """Tests for delivery channels."""

    def test_disabled_sends_nothing(self, request_obj, recipient, monkeypatch):
        """Test that disabled notifications skip every channel."""
        smtp = MagicMock()
        monkeypatch.setattr(notifications.smtplib, "SMTP", smtp)
        service = NotificationService(Settings(notifications_enabled=False, smtp_host="mail.local"))

        service.notify(NotificationEvent.REJECTED, request_obj, [recipient])

        smtp.assert_not_called()

    def test_email_sent_when_configured(self, request_obj, recipient, monkeypatch):
        """Test that email goes out through SMTP."""
        smtp = MagicMock()
        monkeypatch.setattr(notifications.smtplib, "SMTP", smtp)
        service = NotificationService(Settings(smtp_host="mail.local", smtp_port=2525, smtp_use_tls=False))

        service.notify(NotificationEvent.REJECTED, request_obj, [recipient])

        smtp.assert_called_once_with("mail.local", 2525, timeout=10)
        server = smtp.return_value.__enter__.return_value
        server.send_message.assert_called_once()
        server.starttls.assert_not_called()

    def test_email_failure_swallowed(self, request_obj, recipient, monkeypatch):
        """Test that an SMTP failure does not escape."""
        monkeypatch.setattr(notifications.smtplib, "SMTP", MagicMock(side_effect=OSError("refused")))
        service = NotificationService(Settings(smtp_host="mail.local"))

        service.notify(NotificationEvent.REJECTED, request_obj, [recipient])

    def test_recipient_without_email_skipped(self, request_obj, monkeypatch):
        """Test that recipients without an address get no email."""
        smtp = MagicMock()
        monkeypatch.setattr(notifications.smtplib, "SMTP", smtp)
        service = NotificationService(Settings(smtp_host="mail.local"))

        service.notify(NotificationEvent.REQUESTED, request_obj, [SimpleNamespace(id=1, username="bob", email=None)])

        smtp.assert_not_called()

    def test_webhook_payload(self, request_obj, recipient, monkeypatch):
        """Test that the webhook receives the event payload."""
        client = MagicMock()
        monkeypatch.setattr(notifications.httpx, "Client", client)
        service = NotificationService(Settings(webhook_url="http://hooks.local/events"))

        service.notify(NotificationEvent.APPROVED, request_obj, [recipient])

        post = client.return_value.__enter__.return_value.post
        post.assert_called_once()
        args, kwargs = post.call_args
        assert args[0] == "http://hooks.local/events"
        assert kwargs["json"]["event"] == "approved"
        assert kwargs["json"]["recipients"] == [3]
        assert kwargs["json"]["data"]["request_id"] == 42

    def test_webhook_failure_swallowed(self, request_obj, recipient, monkeypatch):
        """Test that a webhook failure does not escape."""
        monkeypatch.setattr(notifications.httpx, "Client", MagicMock(side_effect=RuntimeError("down")))
        service = NotificationService(Settings(webhook_url="http://hooks.local/events"))

        service.notify(NotificationEvent.WITHDRAWN, request_obj, [recipient])
