from django.test import TestCase
from apps.surveys.models import Survey, SurveyStatus, SurveySection, SurveyQuestion, SurveyQuestionOption, QuestionType
from apps.surveys.serializers import SurveyDetailSerializer
from apps.surveys.services import get_save_policy, load_survey_definition


class SavePolicyTests(TestCase):
    def test_policy_reflects_survey_flags(self):
        survey = Survey.objects.create(
            code="policy", title="Policy", status=SurveyStatus.ACTIVE,
            allow_save_and_continue=True, require_email_for_save=True, save_expiration_days=0,
        )
        policy = get_save_policy(survey.id)
        self.assertEqual(policy.survey_id, survey.id)
        self.assertEqual(policy.code, "policy")
        self.assertEqual(policy.title, "Policy")
        self.assertTrue(policy.enabled)
        self.assertTrue(policy.email_required)
        self.assertEqual(policy.expiration_days, 0)

    def test_defaults_disable_save(self):
        survey = Survey.objects.create(code="plain", title="Plain")
        policy = get_save_policy(survey.id)
        self.assertFalse(policy.enabled)
        self.assertFalse(policy.email_required)
        self.assertEqual(policy.expiration_days, 7)

    def test_unknown_survey(self):
        with self.assertRaises(Survey.DoesNotExist):
            get_save_policy(424242)


class SurveyDefinitionTests(TestCase):
    def setUp(self):
        self.survey = Survey.objects.create(code="def", title="Definition", status=SurveyStatus.ACTIVE)
        # Created out of order on purpose.
        second = SurveySection.objects.create(survey=self.survey, title="Second", sort_order=2)
        first = SurveySection.objects.create(survey=self.survey, title="First", sort_order=1)
        SurveyQuestion.objects.create(section=first, code="b", prompt="B", type=QuestionType.TEXT, sort_order=2)
        pick = SurveyQuestion.objects.create(section=first, code="a", prompt="A", type=QuestionType.DROPDOWN, sort_order=1)
        SurveyQuestionOption.objects.create(question=pick, value="y", label="Y", sort_order=2)
        SurveyQuestionOption.objects.create(question=pick, value="x", label="X", sort_order=1)
        SurveyQuestion.objects.create(section=second, code="c", prompt="C", type=QuestionType.DATE, sort_order=1)

    def test_definition_is_ordered(self):
        survey = load_survey_definition(self.survey.id)
        with self.assertNumQueries(0):
            pages = list(survey.sections.all())
            self.assertEqual([p.title for p in pages], ["First", "Second"])
            self.assertEqual([q.code for q in pages[0].questions.all()], ["a", "b"])
            self.assertEqual([o.value for o in pages[0].questions.all()[0].options.all()], ["x", "y"])

    def test_serializer_exposes_pages(self):
        body = SurveyDetailSerializer(load_survey_definition(self.survey.id)).data
        self.assertEqual(body["code"], "def")
        self.assertEqual([p["title"] for p in body["pages"]], ["First", "Second"])
        self.assertEqual(body["pages"][0]["questions"][0]["type"], QuestionType.DROPDOWN)
        self.assertEqual([o["label"] for o in body["pages"][0]["questions"][0]["options"]], ["X", "Y"])
