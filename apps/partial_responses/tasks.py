from __future__ import annotations

import logging
import smtplib
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

from resumable.celery import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    # Retry only on SMTP/network issues (avoid retrying on bad addresses)
    autoretry_for=(smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError, ConnectionError, TimeoutError),
    retry_backoff=10,
    retry_jitter=True,
    retry_kwargs={"max_retries": 3},
    acks_late=True,
)
def send_resume_email_task(self, payload: Dict[str, Any]) -> int:
    """
    Deliver a resume notification built by notifications.build_resume_notification.
    Returns the number of messages sent (0 or 1).
    """
    recipient = payload["recipient"]
    from_email = getattr(settings, "DEFAULT_FROM_EMAIL", None)

    text_body = render_to_string("emails/resume_progress.txt", payload)
    html_body = render_to_string("emails/resume_progress.html", payload)
    msg = EmailMultiAlternatives(
        subject=payload["subject"],
        body=text_body,
        from_email=from_email,
        to=[recipient],
    )
    msg.attach_alternative(html_body, "text/html")

    try:
        sent = msg.send(fail_silently=False) or 0
    except Exception:
        logger.exception(
            "Failed to send resume email. Host=%s Port=%s TLS=%s SSL=%s From=%s",
            getattr(settings, "EMAIL_HOST", None),
            getattr(settings, "EMAIL_PORT", None),
            getattr(settings, "EMAIL_USE_TLS", None),
            getattr(settings, "EMAIL_USE_SSL", None),
            from_email,
        )
        raise

    logger.info("Resume email sent", extra={"sent": sent, "resume_code": payload.get("resume_code")})
    return int(sent)


@celery_app.task(
    bind=True,
    autoretry_for=(Exception,),  # the sweep is idempotent
    retry_backoff=10,
    retry_jitter=True,
    retry_kwargs={"max_retries": 3},
    acks_late=True,
)
def sweep_expired_partial_responses_task(self, retention_days: Optional[int] = None, batch_size: int = 200) -> dict:
    """
    Expire overdue partial responses and purge those past the retention window.
    Returns {"expired": n, "deleted": m}.
    """
    from .services import sweep_expired  # local import: services -> notifications -> tasks

    result = sweep_expired(retention_days=retention_days, batch_size=batch_size)
    return {"expired": result.expired_count, "deleted": result.deleted_count}
