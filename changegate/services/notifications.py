"""Notification service for approval workflow events.

Handles:
- Rendering per-event messages from templates
- Logging every notification
- Email delivery over SMTP when configured
- Webhook delivery to an external system when configured
"""

import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

import httpx
from jinja2 import Template

from changegate.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class NotificationEvent(str, Enum):
    """Workflow events that produce notifications."""

    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    APPROVER_RESPONDED = "approver_responded"


# Message templates
MESSAGE_TEMPLATES = {
    NotificationEvent.REQUESTED: {
        "subject": "[{{ app_name }}] Approval needed: {{ operation }} {{ item_type }}",
        "body": """
Hello {{ recipient }},

A change needs your approval:

Request: #{{ request_id }}
Operation: {{ operation }} {{ item_type }}{% if item_id %} #{{ item_id }}{% endif %}
Requested by: user #{{ requester_id }}
Proposed data: {{ requested_data }}

---
{{ app_name }}
        """,
    },
    NotificationEvent.APPROVED: {
        "subject": "[{{ app_name }}] Request #{{ request_id }} approved",
        "body": """
Hello {{ recipient }},

Your request to {{ operation }} {{ item_type }}{% if item_id %} #{{ item_id }}{% endif %} was approved and the change has been applied.

---
{{ app_name }}
        """,
    },
    NotificationEvent.REJECTED: {
        "subject": "[{{ app_name }}] Request #{{ request_id }} rejected",
        "body": """
Hello {{ recipient }},

Your request to {{ operation }} {{ item_type }}{% if item_id %} #{{ item_id }}{% endif %} was rejected.
Reason: {{ reason or "No reason provided" }}

---
{{ app_name }}
        """,
    },
    NotificationEvent.WITHDRAWN: {
        "subject": "[{{ app_name }}] Request #{{ request_id }} withdrawn",
        "body": """
Hello {{ recipient }},

Request #{{ request_id }} to {{ operation }} {{ item_type }} was withdrawn by its requester. No action is needed.

---
{{ app_name }}
        """,
    },
    NotificationEvent.APPROVER_RESPONDED: {
        "subject": "[{{ app_name }}] Request #{{ request_id }} received an approval",
        "body": """
Hello {{ recipient }},

{% if approver %}{{ approver }} approved{% else %}An approver approved{% endif %} your request to {{ operation }} {{ item_type }}.
Further approvals are still required.

---
{{ app_name }}
        """,
    },
}


class Notifier:
    """Receives workflow events. Implementations must not block the engine."""

    def notify(
        self,
        event: NotificationEvent,
        request: Any,
        recipients: Iterable[Any],
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        raise NotImplementedError


class NotificationService(Notifier):
    """
    Sends workflow notifications through the log, email and webhooks.

    Delivery failures on one channel are logged and do not stop the others.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def notify(
        self,
        event: NotificationEvent,
        request: Any,
        recipients: Iterable[Any],
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Notify recipients of an event on a request.

        Args:
            event: Workflow event
            request: The ApprovalRequest the event concerns
            recipients: Users to notify
            extra: Additional template context (reason, approver, ...)
        """
        if not self.settings.notifications_enabled:
            return

        event = NotificationEvent(event)
        recipients = list(recipients)
        context = self._build_context(request, extra)

        for recipient in recipients:
            subject, body = self.render(event, context, recipient)
            logger.info(f"Notification [{event.value}] to {self._recipient_name(recipient)}: {subject}")

            email = getattr(recipient, "email", None)
            if self.settings.smtp_host and email:
                try:
                    self._deliver_email(email, subject, body)
                except Exception:
                    logger.exception(f"Failed to send email to {email}")

        if self.settings.webhook_url:
            payload = self._build_webhook_payload(event, context, recipients)
            try:
                self._deliver_webhook(payload)
            except Exception:
                logger.exception(f"Failed to send webhook to {self.settings.webhook_url}")

    def render(self, event: NotificationEvent, context: Dict[str, Any], recipient: Any) -> Tuple[str, str]:
        """Render the subject and body for one recipient."""
        template = MESSAGE_TEMPLATES[NotificationEvent(event)]
        values = dict(context, recipient=self._recipient_name(recipient))
        subject = Template(template["subject"]).render(**values)
        body = Template(template["body"]).render(**values).strip()
        return subject, body

    def _deliver_email(self, to_email: str, subject: str, body: str) -> None:
        """Deliver the email via SMTP."""
        msg = MIMEMultipart()
        msg["From"] = f"{self.settings.smtp_from_name} <{self.settings.smtp_from_email}>"
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        with smtplib.SMTP(
            self.settings.smtp_host, self.settings.smtp_port, timeout=self.settings.smtp_timeout
        ) as server:
            if self.settings.smtp_use_tls:
                server.starttls()
            if self.settings.smtp_user:
                server.login(self.settings.smtp_user, self.settings.smtp_password)
            server.send_message(msg)

    def _deliver_webhook(self, payload: Dict[str, Any]) -> None:
        """Deliver the webhook."""
        headers = {"Content-Type": "application/json"}
        with httpx.Client(timeout=self.settings.webhook_timeout) as client:
            response = client.post(self.settings.webhook_url, json=payload, headers=headers)
            response.raise_for_status()

    def _build_webhook_payload(
        self,
        event: NotificationEvent,
        context: Dict[str, Any],
        recipients: Iterable[Any],
    ) -> Dict[str, Any]:
        return {
            "event": event.value,
            "timestamp": datetime.utcnow().isoformat(),
            "recipients": [getattr(r, "id", None) for r in recipients],
            "data": context,
        }

    def _build_context(self, request: Any, extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        context = {
            "app_name": self.settings.app_name,
            "request_id": request.id,
            "item_type": request.target_item_type,
            "item_id": request.target_item_id,
            "operation": request.operation,
            "status": request.status,
            "requester_id": request.requester_id,
            "requested_data": request.requested_data,
            "reason": request.status_reason,
        }
        context.update(extra or {})
        return context

    @staticmethod
    def _recipient_name(recipient: Any) -> str:
        return getattr(recipient, "username", None) or f"user #{getattr(recipient, 'id', '?')}"

