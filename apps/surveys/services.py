from __future__ import annotations

from dataclasses import dataclass

from django.db.models import Prefetch

from .models import Survey, SurveySection, SurveyQuestion


@dataclass(frozen=True)
class SavePolicy:
    survey_id: int
    title: str
    code: str
    enabled: bool
    email_required: bool
    expiration_days: int  # 0 means "never"


def get_save_policy(survey_id: int) -> SavePolicy:
    """
    Return the save & continue policy for a survey.

    Raises Survey.DoesNotExist for unknown ids.
    """
    row = Survey.objects.values(
        "id", "title", "code",
        "allow_save_and_continue", "require_email_for_save", "save_expiration_days",
    ).get(pk=survey_id)
    return SavePolicy(
        survey_id=row["id"],
        title=row["title"],
        code=row["code"],
        enabled=bool(row["allow_save_and_continue"]),
        email_required=bool(row["require_email_for_save"]),
        expiration_days=int(row["save_expiration_days"] or 0),
    )


def load_survey_definition(survey_id: int) -> Survey:
    """
    Load a survey with its pages, questions and options in display order.

    Raises Survey.DoesNotExist for unknown ids.
    """
    questions = SurveyQuestion.objects.order_by("sort_order").prefetch_related("options")
    sections = SurveySection.objects.order_by("sort_order").prefetch_related(
        Prefetch("questions", queryset=questions)
    )
    return Survey.objects.prefetch_related(Prefetch("sections", queryset=sections)).get(pk=survey_id)
