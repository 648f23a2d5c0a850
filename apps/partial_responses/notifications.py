"""
Resume notifications.

A notification is built when a respondent first saves progress with an email
address. Delivery happens out of band in a Celery task; dispatch failures are
logged and never reach the caller that saved progress.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.utils import timezone

from .models import PartialResponse
from .tasks import send_resume_email_task

logger = logging.getLogger(__name__)


def format_expiry(expires_at: datetime) -> str:
    """Human-readable expiry, e.g. 'Friday, October 23, 2026'."""
    local = timezone.localtime(expires_at)
    return f"{local:%A, %B} {local.day}, {local.year}"


@dataclass(frozen=True)
class ResumeNotification:
    recipient: str
    subject: str
    survey_title: str
    resume_url: str
    resume_code: str
    expires_at: datetime
    greeting_name: Optional[str] = None

    @property
    def greeting(self) -> str:
        return f"Hi {self.greeting_name}" if self.greeting_name else "Hi"

    def as_payload(self) -> dict:
        """JSON-safe payload handed to the delivery task."""
        return {
            "recipient": self.recipient,
            "subject": self.subject,
            "survey_title": self.survey_title,
            "greeting": self.greeting,
            "greeting_name": self.greeting_name,
            "resume_url": self.resume_url,
            "resume_code": self.resume_code,
            "expires_at": self.expires_at.isoformat(),
            "expires_on": format_expiry(self.expires_at),
        }


def build_resume_notification(partial: PartialResponse, survey_title: str, resume_url: str) -> ResumeNotification:
    if not partial.respondent_email:
        raise ValueError("Partial response has no respondent email")
    return ResumeNotification(
        recipient=partial.respondent_email,
        subject=f"Continue your survey: {survey_title}",
        survey_title=survey_title,
        resume_url=resume_url,
        resume_code=partial.resume_code,
        expires_at=partial.expires_at,
        greeting_name=(partial.respondent_name or "").strip() or None,
    )


def dispatch_resume_notification(notification: ResumeNotification) -> bool:
    """Queue delivery. Returns False (after logging) if the task could not be queued."""
    try:
        send_resume_email_task.delay(notification.as_payload())
    except Exception:
        logger.exception(
            "Failed to queue resume email",
            extra={"recipient": notification.recipient, "resume_code": notification.resume_code},
        )
        return False
    return True
