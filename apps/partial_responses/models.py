from django.db import models
from django.db.models import F, Q
from apps.core.models import TimeStampedModel
from auditlog.registry import auditlog
from apps.surveys.models import Survey

class PartialStatus(models.TextChoices):
    IN_PROGRESS = "in_progress", "In Progress"
    EXPIRED = "expired", "Expired"
    COMPLETED = "completed", "Completed"

TERMINAL_STATUSES = (PartialStatus.EXPIRED, PartialStatus.COMPLETED)


class PartialResponse(TimeStampedModel):
    """
    A saved, not yet submitted survey response.

    States: IN_PROGRESS -> EXPIRED | COMPLETED. Both terminal states are final;
    answers and cursor are frozen once a session leaves IN_PROGRESS.
    """
    survey = models.ForeignKey(Survey, on_delete=models.CASCADE, related_name="partial_responses")
    resume_token = models.CharField(max_length=64, unique=True, editable=False)
    resume_code = models.CharField(max_length=6, editable=False)
    status = models.CharField(max_length=16, choices=PartialStatus.choices, default=PartialStatus.IN_PROGRESS)

    answers = models.JSONField(default=dict, blank=True)
    current_page_index = models.PositiveIntegerField(default=0)
    last_question_id = models.CharField(max_length=128, blank=True, null=True)

    respondent_email = models.EmailField(blank=True, null=True)
    respondent_name = models.CharField(max_length=255, blank=True, null=True)

    started_at = models.DateTimeField(editable=False)
    last_saved_at = models.DateTimeField()
    expires_at = models.DateTimeField(editable=False)

    converted_to_response = models.OneToOneField(
        "responses.SurveyResponse",
        on_delete=models.PROTECT,
        related_name="source_partial",
        blank=True,
        null=True,
    )

    ip_address = models.GenericIPAddressField(blank=True, null=True, editable=False)
    user_agent = models.TextField(blank=True, null=True, editable=False)

    class Meta:
        constraints = [
            # Codes only need to be unique while they can still be used.
            models.UniqueConstraint(
                fields=["survey", "resume_code"],
                condition=Q(status=PartialStatus.IN_PROGRESS),
                name="uniq_active_resume_code_per_survey",
            ),
            models.CheckConstraint(
                condition=Q(expires_at__gt=F("started_at")),
                name="partial_expires_after_start",
            ),
            models.CheckConstraint(
                condition=(
                    Q(status=PartialStatus.COMPLETED, converted_to_response__isnull=False)
                    | (~Q(status=PartialStatus.COMPLETED) & Q(converted_to_response__isnull=True))
                ),
                name="partial_converted_iff_completed",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "expires_at"], name="idx_partial_status_expiry"),
            models.Index(fields=["survey", "resume_code"], name="idx_partial_survey_code"),
        ]

    def __str__(self):
        return f"partial#{self.id} survey#{self.survey_id} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_past_expiry(self, now) -> bool:
        return now > self.expires_at

    def expire(self) -> None:
        """IN_PROGRESS -> EXPIRED."""
        if self.status != PartialStatus.IN_PROGRESS:
            raise ValueError(f"Cannot expire a {self.status} session")
        self.status = PartialStatus.EXPIRED
        self.save(update_fields=["status", "updated_at"])

    def mark_completed(self, response) -> None:
        """IN_PROGRESS -> COMPLETED, recording the permanent response."""
        if self.status != PartialStatus.IN_PROGRESS:
            raise ValueError(f"Cannot complete a {self.status} session")
        self.status = PartialStatus.COMPLETED
        self.converted_to_response = response
        self.save(update_fields=["status", "converted_to_response", "updated_at"])


auditlog.register(PartialResponse)
