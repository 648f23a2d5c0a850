from django.db import models
from apps.core.models import TimeStampedModel
from auditlog.registry import auditlog

class SurveyStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    ACTIVE = "active", "Active"
    ARCHIVED = "archived", "Archived"

class Survey(TimeStampedModel):
    code = models.SlugField(max_length=128, unique=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=16, choices=SurveyStatus.choices, default=SurveyStatus.DRAFT)

    # Save & continue policy
    allow_save_and_continue = models.BooleanField(default=False)
    require_email_for_save = models.BooleanField(default=False)
    save_expiration_days = models.PositiveIntegerField(default=7)  # 0 = never

    class Meta:
        indexes = [
            models.Index(fields=["status"], name="idx_survey_status"),
        ]

    def __str__(self):
        return f"{self.code}"

class SurveySection(TimeStampedModel):
    """A page of the survey; respondents navigate sections in sort_order."""
    survey = models.ForeignKey(Survey, on_delete=models.CASCADE, related_name="sections")
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    sort_order = models.IntegerField()

    class Meta:
        unique_together = ("survey", "sort_order")
        ordering = ["sort_order"]

    def __str__(self):
        return f"{self.survey_id}:{self.title}"

class QuestionType(models.TextChoices):
    TEXT = "text", "Text"
    NUMBER = "number", "Number"
    DATE = "date", "Date"
    DROPDOWN = "dropdown", "Dropdown"
    CHECKBOX = "checkbox", "Checkbox"
    RADIO = "radio", "Radio"
    FILE = "file", "File"

class SurveyQuestion(TimeStampedModel):
    section = models.ForeignKey(SurveySection, on_delete=models.CASCADE, related_name="questions")
    code = models.CharField(max_length=128)              # stable code used in answers
    prompt = models.TextField()
    help_text = models.TextField(blank=True, null=True)
    type = models.CharField(max_length=24, choices=QuestionType.choices)
    required = models.BooleanField(default=False)
    sensitive = models.BooleanField(default=False)       # if true, answer will be encrypted
    constraints = models.JSONField(default=dict, blank=True)
    sort_order = models.IntegerField()
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        unique_together = (("section", "sort_order"), ("section", "code"))
        ordering = ["sort_order"]

    def __str__(self):
        return f"{self.section_id}:{self.code}"

class SurveyQuestionOption(TimeStampedModel):
    question = models.ForeignKey(SurveyQuestion, on_delete=models.CASCADE, related_name="options")
    value = models.CharField(max_length=255)
    label = models.CharField(max_length=255)
    sort_order = models.IntegerField()
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        unique_together = ("question", "sort_order")
        ordering = ["sort_order"]

    def __str__(self):
        return f"{self.question_id}:{self.value}"


# Register audit logging for survey models
auditlog.register(Survey)
auditlog.register(SurveySection)
auditlog.register(SurveyQuestion)
auditlog.register(SurveyQuestionOption)
