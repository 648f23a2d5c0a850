from apps.surveys.models import (
    Survey, SurveyStatus, SurveySection, SurveyQuestion, SurveyQuestionOption, QuestionType,
)


def make_survey(code="s1", *, enabled=True, email_required=False, expiration_days=7):
    survey = Survey.objects.create(
        code=code,
        title=f"Survey {code}",
        status=SurveyStatus.ACTIVE,
        allow_save_and_continue=enabled,
        require_email_for_save=email_required,
        save_expiration_days=expiration_days,
    )
    page1 = SurveySection.objects.create(survey=survey, title="About you", sort_order=1)
    page2 = SurveySection.objects.create(survey=survey, title="Feedback", sort_order=2)
    SurveyQuestion.objects.create(section=page1, code="q1", prompt="Name", type=QuestionType.TEXT, sort_order=1)
    colour = SurveyQuestion.objects.create(section=page1, code="q2", prompt="Colour", type=QuestionType.RADIO, sort_order=2)
    SurveyQuestionOption.objects.create(question=colour, value="red", label="Red", sort_order=1)
    SurveyQuestionOption.objects.create(question=colour, value="blue", label="Blue", sort_order=2)
    SurveyQuestion.objects.create(section=page2, code="q3", prompt="Score", type=QuestionType.NUMBER, sort_order=1)
    return survey
