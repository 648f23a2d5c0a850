"""
Save & continue service layer.

Every operation takes an optional ``now`` so expiration can be driven by the
caller; it defaults to ``timezone.now()``.

Lazy expiry: any operation that loads an IN_PROGRESS session whose
``expires_at`` has passed moves it to EXPIRED and commits that transition
before rejecting the call. The transition is part of the contract of
``save_partial`` (update path), ``resume_by_token``, ``resume_by_code`` and
``complete_partial``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from apps.responses.models import SurveyResponse
from apps.responses.services import record_response
from apps.surveys.models import Survey
from apps.surveys.services import SavePolicy, get_save_policy, load_survey_definition

from .exceptions import (
    AlreadyCompleted, CommitFailure, EmailRequired, FeatureDisabled,
    GenerationExhausted, InvalidAnswer, NotFound, SessionExpired, SessionTerminal,
)
from .models import PartialResponse, PartialStatus
from .notifications import build_resume_notification, dispatch_resume_notification
from .tokens import RESUME_CODE_LENGTH, new_resume_code, new_resume_token, normalize_resume_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveInput:
    survey_id: int
    answers: Dict[str, Any]
    current_page_index: int
    last_question_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    resume_token: Optional[str] = None


@dataclass(frozen=True)
class SaveResult:
    resume_token: str
    resume_code: str
    resume_url: str
    expires_at: datetime
    created: bool


@dataclass(frozen=True)
class ResumeState:
    survey: Survey
    answers: Dict[str, Any]
    current_page_index: int
    last_question_id: Optional[str]
    resume_token: str
    last_saved_at: datetime


@dataclass(frozen=True)
class CodeMatch:
    resume_token: str
    resume_url: str


@dataclass(frozen=True)
class SweepResult:
    expired_count: int
    deleted_count: int


# ---- Helpers -------------------------------------------------------------------

def build_resume_url(survey_code: str, resume_token: str) -> str:
    base = getattr(settings, "SITE_URL", "http://localhost:8000").rstrip("/")
    return f"{base}/survey/{survey_code}/resume/{resume_token}"


def compute_expires_at(policy: SavePolicy, now: datetime) -> datetime:
    """Expiry for a new session; a policy of 0 days means a ten-year horizon."""
    days = policy.expiration_days
    if not days or days <= 0:
        days = getattr(settings, "PARTIAL_RESPONSE_NEVER_EXPIRES_DAYS", 3650)
    return now + timedelta(days=days)


def _load_policy(survey_id: int) -> SavePolicy:
    try:
        return get_save_policy(survey_id)
    except Survey.DoesNotExist:
        raise NotFound("Survey not found")


def _lock_by_token(resume_token: Optional[str]) -> PartialResponse:
    """Fetch and row-lock a session by token. Must run inside transaction.atomic()."""
    partial = None
    if resume_token:
        partial = PartialResponse.objects.select_for_update().filter(resume_token=resume_token).first()
    if partial is None:
        raise NotFound()
    return partial


def _terminal_failure(partial: PartialResponse, now: datetime) -> Optional[SessionTerminal]:
    """
    Return the error for a session that can no longer be used, or None.

    Expires an overdue IN_PROGRESS session as a side effect; callers must let
    the surrounding transaction commit before raising the returned error.
    """
    if partial.status == PartialStatus.COMPLETED:
        return AlreadyCompleted()
    if partial.status == PartialStatus.EXPIRED:
        return SessionExpired()
    if partial.is_past_expiry(now):
        partial.expire()
        logger.info("Partial response expired on access", extra={"partial_id": partial.id})
        return SessionExpired()
    return None


# ---- Save ----------------------------------------------------------------------

def save_partial(
    data: SaveInput,
    *,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SaveResult:
    """
    Create a partial response (no token) or overwrite an existing one (token).

    Raises:
        - NotFound for an unknown survey or token.
        - FeatureDisabled if the survey does not allow save & continue.
        - EmailRequired if the survey requires an email on first save.
        - SessionExpired / AlreadyCompleted for terminal sessions.
        - GenerationExhausted if no free resume code was found.
    """
    now = now or timezone.now()
    policy = _load_policy(data.survey_id)
    if not policy.enabled:
        raise FeatureDisabled()

    if data.resume_token:
        return _update_partial(policy, data, now)

    if policy.email_required and not data.email:
        raise EmailRequired()
    return _create_partial(policy, data, now, ip_address, user_agent)


def _create_partial(
    policy: SavePolicy,
    data: SaveInput,
    now: datetime,
    ip_address: Optional[str],
    user_agent: Optional[str],
) -> SaveResult:
    expires_at = compute_expires_at(policy, now)
    attempts = max(1, int(getattr(settings, "RESUME_CODE_MAX_ATTEMPTS", 5)))

    partial = None
    for attempt in range(1, attempts + 1):
        candidate = PartialResponse(
            survey_id=policy.survey_id,
            resume_token=new_resume_token(),
            resume_code=new_resume_code(),
            answers=data.answers or {},
            current_page_index=data.current_page_index,
            last_question_id=data.last_question_id,
            respondent_email=data.email or None,
            respondent_name=data.name or None,
            started_at=now,
            last_saved_at=now,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        try:
            # The partial unique constraint decides code collisions atomically with the insert.
            with transaction.atomic():
                candidate.save(force_insert=True)
        except IntegrityError:
            logger.warning(
                "Resume code collision; retrying",
                extra={"survey_id": policy.survey_id, "attempt": attempt},
            )
            continue
        partial = candidate
        break

    if partial is None:
        logger.error(
            "Resume code generation exhausted after %s attempts for survey %s",
            attempts, policy.survey_id,
        )
        raise GenerationExhausted()

    resume_url = build_resume_url(policy.code, partial.resume_token)
    if partial.respondent_email:
        notification = build_resume_notification(partial, policy.title, resume_url)
        transaction.on_commit(lambda: dispatch_resume_notification(notification))

    logger.info("Partial response created", extra={"partial_id": partial.id, "survey_id": policy.survey_id})
    return SaveResult(
        resume_token=partial.resume_token,
        resume_code=partial.resume_code,
        resume_url=resume_url,
        expires_at=partial.expires_at,
        created=True,
    )


def _update_partial(policy: SavePolicy, data: SaveInput, now: datetime) -> SaveResult:
    with transaction.atomic():
        partial = _lock_by_token(data.resume_token)
        if partial.survey_id != policy.survey_id:
            raise NotFound()

        failure = _terminal_failure(partial, now)
        if failure is None:
            partial.answers = data.answers or {}
            partial.current_page_index = data.current_page_index
            partial.last_question_id = data.last_question_id
            partial.last_saved_at = now
            fields = ["answers", "current_page_index", "last_question_id", "last_saved_at", "updated_at"]
            if data.email:
                partial.respondent_email = data.email
                fields.append("respondent_email")
            if data.name:
                partial.respondent_name = data.name
                fields.append("respondent_name")
            partial.save(update_fields=fields)

    if failure is not None:
        raise failure

    return SaveResult(
        resume_token=partial.resume_token,
        resume_code=partial.resume_code,
        resume_url=build_resume_url(policy.code, partial.resume_token),
        expires_at=partial.expires_at,
        created=False,
    )


# ---- Resume --------------------------------------------------------------------

def resume_by_token(resume_token: str, *, now: Optional[datetime] = None) -> ResumeState:
    """
    Return everything needed to re-render the survey where the respondent left off.

    Raises NotFound, SessionExpired (lazily expiring overdue sessions) or AlreadyCompleted.
    """
    now = now or timezone.now()
    with transaction.atomic():
        partial = _lock_by_token(resume_token)
        failure = _terminal_failure(partial, now)

    if failure is not None:
        raise failure

    return ResumeState(
        survey=load_survey_definition(partial.survey_id),
        answers=partial.answers or {},
        current_page_index=partial.current_page_index,
        last_question_id=partial.last_question_id,
        resume_token=partial.resume_token,
        last_saved_at=partial.last_saved_at,
    )


def resume_by_code(survey_id: int, code: str, *, now: Optional[datetime] = None) -> CodeMatch:
    """
    Exchange a manually entered code for the session's resume token.

    Only active sessions of the survey whose expires_at is still ahead of
    ``now`` match. Every failure is the
    same NotFound so codes cannot be probed for their state.
    """
    now = now or timezone.now()
    normalized = normalize_resume_code(code)
    if len(normalized) != RESUME_CODE_LENGTH:
        raise NotFound()
    policy = _load_policy(survey_id)

    with transaction.atomic():
        partial = (
            PartialResponse.objects.select_for_update()
            .filter(survey_id=policy.survey_id, resume_code=normalized, status=PartialStatus.IN_PROGRESS)
            .first()
        )
        # A code only matches while expires_at is still in the future.
        if partial is not None and partial.expires_at <= now:
            if partial.is_past_expiry(now):
                partial.expire()
                logger.info("Partial response expired on access", extra={"partial_id": partial.id})
            partial = None

    if partial is None:
        raise NotFound()
    return CodeMatch(
        resume_token=partial.resume_token,
        resume_url=build_resume_url(policy.code, partial.resume_token),
    )


# ---- Completion ----------------------------------------------------------------

def complete_partial(
    resume_token: str,
    final_answers: Dict[str, Any],
    *,
    now: Optional[datetime] = None,
    encryption_alias: Optional[str] = None,
) -> SurveyResponse:
    """
    Convert a partial response into a permanent SurveyResponse exactly once.

    The response, its answers and the COMPLETED transition are written in one
    transaction. On any failure nothing is written and the session stays
    IN_PROGRESS, so the call can be retried.

    Raises NotFound, SessionExpired, AlreadyCompleted, InvalidAnswer or CommitFailure.
    """
    now = now or timezone.now()
    partial = None
    try:
        with transaction.atomic():
            partial = _lock_by_token(resume_token)
            failure = _terminal_failure(partial, now)
            if failure is None:
                response = record_response(
                    partial.survey,
                    final_answers or {},
                    started_at=partial.started_at,
                    submitted_at=now,
                    ip_address=partial.ip_address,
                    user_agent=partial.user_agent,
                    respondent_email=partial.respondent_email,
                    metadata={
                        "resumed_from": partial.id,
                        "respondent_email": partial.respondent_email,
                        "respondent_name": partial.respondent_name,
                    },
                    encryption_alias=encryption_alias,
                )
                partial.mark_completed(response)
    except ValueError as exc:
        raise InvalidAnswer(str(exc)) from exc
    except DatabaseError as exc:
        logger.exception(
            "Completion commit failed",
            extra={"partial_id": getattr(partial, "id", None)},
        )
        raise CommitFailure() from exc

    if failure is not None:
        raise failure

    logger.info(
        "Partial response completed",
        extra={"partial_id": partial.id, "response_id": response.id},
    )
    return response


# ---- Sweeper -------------------------------------------------------------------

def _retention_cutoff(now: datetime, retention_days: Optional[int]) -> datetime:
    if retention_days is None:
        retention_days = getattr(settings, "PARTIAL_RESPONSE_RETENTION_DAYS", 30)
    return now - timedelta(days=retention_days)


def preview_sweep(*, now: Optional[datetime] = None, retention_days: Optional[int] = None) -> SweepResult:
    """Counts sweep_expired would report, without writing anything."""
    now = now or timezone.now()
    cutoff = _retention_cutoff(now, retention_days)
    overdue = PartialResponse.objects.filter(status=PartialStatus.IN_PROGRESS, expires_at__lt=now).count()
    purgeable = PartialResponse.objects.filter(
        status__in=[PartialStatus.IN_PROGRESS, PartialStatus.EXPIRED],
        expires_at__lt=cutoff,
    ).count()
    return SweepResult(expired_count=overdue, deleted_count=purgeable)


def sweep_expired(
    *,
    now: Optional[datetime] = None,
    retention_days: Optional[int] = None,
    batch_size: int = 200,
) -> SweepResult:
    """
    Expire overdue IN_PROGRESS sessions, then delete EXPIRED sessions whose
    expires_at is older than the retention window.

    Both passes gate only on status and expires_at, which never changes after
    creation, so they are safe alongside concurrent saves. Idempotent.
    """
    now = now or timezone.now()
    cutoff = _retention_cutoff(now, retention_days)

    expired = 0
    while True:
        ids = list(
            PartialResponse.objects.filter(
                status=PartialStatus.IN_PROGRESS,
                expires_at__lt=now,
            )
            .order_by("id")
            .values_list("id", flat=True)[:batch_size]
        )
        if not ids:
            break

        # Re-check status in the UPDATE so a concurrent completion is never overwritten.
        expired += PartialResponse.objects.filter(
            id__in=ids, status=PartialStatus.IN_PROGRESS,
        ).update(status=PartialStatus.EXPIRED, updated_at=now)
        if len(ids) < batch_size:
            break

    deleted = 0
    label = PartialResponse._meta.label
    while True:
        ids = list(
            PartialResponse.objects.filter(
                status=PartialStatus.EXPIRED,
                expires_at__lt=cutoff,
            )
            .order_by("id")
            .values_list("id", flat=True)[:batch_size]
        )
        if not ids:
            break

        _, per_model = PartialResponse.objects.filter(id__in=ids, status=PartialStatus.EXPIRED).delete()
        deleted += per_model.get(label, 0)
        if len(ids) < batch_size:
            break

    logger.info("Partial responses swept", extra={"expired": expired, "deleted": deleted})
    return SweepResult(expired_count=expired, deleted_count=deleted)
