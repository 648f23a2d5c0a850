from django.db import models
from apps.core.models import TimeStampedModel
from auditlog.registry import auditlog
from apps.surveys.models import Survey, SurveyQuestion, SurveyQuestionOption

class ResponseStatus(models.TextChoices):
    SUBMITTED = "submitted", "Submitted"
    REVISED   = "revised", "Revised"
    DELETED   = "deleted", "Deleted"

class SurveyResponse(TimeStampedModel):
    survey = models.ForeignKey(Survey, on_delete=models.CASCADE, related_name="responses")
    respondent_email = models.EmailField(blank=True, null=True)
    status = models.CharField(max_length=16, choices=ResponseStatus.choices, default=ResponseStatus.SUBMITTED)
    is_complete = models.BooleanField(default=True)
    started_at = models.DateTimeField(blank=True, null=True)
    submitted_at = models.DateTimeField()
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.TextField(blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["survey", "-submitted_at"], name="idx_response_survey_time"),
        ]

    def __str__(self):
        return f"response#{self.id} survey#{self.survey_id}"

class SurveyAnswer(TimeStampedModel):
    response = models.ForeignKey(SurveyResponse, on_delete=models.CASCADE, related_name="answers")
    question = models.ForeignKey(SurveyQuestion, on_delete=models.CASCADE, related_name="answers")

    # Typed values (at most one of these is set)
    option = models.ForeignKey(SurveyQuestionOption, on_delete=models.SET_NULL, blank=True, null=True, related_name="answers")
    value_text = models.TextField(blank=True, null=True)
    value_number = models.DecimalField(max_digits=30, decimal_places=10, blank=True, null=True)
    value_date = models.DateField(blank=True, null=True)
    file_url = models.URLField(max_length=1024, blank=True, null=True)
    encrypted_value = models.BinaryField(blank=True, null=True)
    metadata = models.JSONField(blank=True, null=True)

    class Meta:
        unique_together = ("response", "question")
        indexes = [
            models.Index(fields=["question"], name="idx_answer_question"),
        ]

    def __str__(self):
        return f"answer#{self.id} response#{self.response_id} question#{self.question_id}"


auditlog.register(SurveyResponse)
auditlog.register(SurveyAnswer)
