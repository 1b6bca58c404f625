"""
Outbound notifications.

The workflow calls notify() after its transaction has committed and never
lets a notifier failure undo the transition; a notifier only has to report
transport errors as ExternalFailure.
"""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from enum import Enum
from typing import Any, Dict, Mapping, Tuple

from symposium.config import Settings
from symposium.kernel.errors import ExternalFailure
from symposium.logging_config import get_logger

logger = get_logger(__name__)


class NotificationKind(str, Enum):
    SUBMISSION_RECEIVED = "submission_received"
    REVIEWER_ASSIGNED = "reviewer_assigned"
    DECISION = "decision"
    EMAIL_VERIFICATION = "email_verification"


def render(kind: NotificationKind, payload: Mapping[str, Any], frontend_url: str) -> Tuple[str, str]:
    """Subject and plain text body for a notification."""
    name = payload.get("name") or "Author"
    title = payload.get("submission_title", "")
    event = payload.get("event_title", "")

    if kind == NotificationKind.SUBMISSION_RECEIVED:
        return (
            f"Submission Received: {title}",
            f"Dear {name},\n\n"
            f"Your paper \"{title}\" has been submitted to {event}.\n"
            f"Submission ID: {payload.get('submission_id', '')}\n\n"
            "You will be notified once the review process is complete.\n",
        )

    if kind == NotificationKind.REVIEWER_ASSIGNED:
        due = payload.get("due_date")
        due_line = f"Please complete your review by {due}.\n" if due else ""
        return (
            f"Review Assignment: {title}",
            f"Dear {name},\n\n"
            f"You have been assigned to review \"{title}\" for {event}.\n"
            f"{due_line}"
            f"Reviewer dashboard: {frontend_url}/reviewer\n",
        )

    if kind == NotificationKind.DECISION:
        decision = payload.get("decision", "")
        comments = payload.get("comments")
        comment_block = f"\nComments from the committee:\n{comments}\n" if comments else ""
        verdict = "accepted" if decision == "accepted" else "not accepted"
        return (
            f"Submission Decision: {title}",
            f"Dear {name},\n\n"
            f"Your paper \"{title}\" submitted to {event} has been {verdict}.\n"
            f"{comment_block}",
        )

    if kind == NotificationKind.EMAIL_VERIFICATION:
        link = f"{frontend_url}/verify-email?token={payload.get('token', '')}"
        return (
            "Verify Your Email",
            f"Dear {name},\n\n"
            f"Please verify your email address by visiting:\n{link}\n\n"
            "This link expires in 24 hours.\n",
        )

    raise ValueError(f"Unknown notification kind: {kind}")


class Notifier(ABC):
    """Interface for notification transports."""

    @abstractmethod
    async def notify(
        self,
        kind: NotificationKind,
        recipient: str,
        payload: Dict[str, Any],
    ) -> None:
        """
        Deliver one notification.

        Raises:
            ExternalFailure: the transport failed
        """


class SmtpNotifier(Notifier):
    """Sends plain text email through an SMTP relay."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _build_message(self, kind: NotificationKind, recipient: str, payload: Dict[str, Any]) -> EmailMessage:
        subject, body = render(kind, payload, self.settings.frontend_url)
        message = EmailMessage()
        message["From"] = self.settings.smtp_from_email
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=30) as smtp:
            if self.settings.smtp_use_tls:
                smtp.starttls()
            if self.settings.smtp_user:
                smtp.login(self.settings.smtp_user, self.settings.smtp_password)
            smtp.send_message(message)

    async def notify(self, kind: NotificationKind, recipient: str, payload: Dict[str, Any]) -> None:
        message = self._build_message(kind, recipient, payload)
        try:
            await asyncio.to_thread(self._send, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise ExternalFailure(
                f"Failed to send {kind.value} email",
                service="smtp",
                detail={"recipient": recipient},
            ) from exc
        logger.info("Email sent", extra={"kind": kind.value, "recipient": recipient})


class LoggingNotifier(Notifier):
    """Writes notifications to the log instead of sending them."""

    def __init__(self, frontend_url: str = ""):
        self.frontend_url = frontend_url

    async def notify(self, kind: NotificationKind, recipient: str, payload: Dict[str, Any]) -> None:
        subject, _ = render(kind, payload, self.frontend_url)
        logger.info(
            "Notification (email disabled)",
            extra={"kind": kind.value, "recipient": recipient, "subject": subject},
        )


def build_notifier(settings: Settings) -> Notifier:
    if settings.email_enabled:
        return SmtpNotifier(settings)
    return LoggingNotifier(settings.frontend_url)
