from datetime import date
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from apps.surveys.models import Survey, SurveyStatus, SurveySection, SurveyQuestion, SurveyQuestionOption, QuestionType
from apps.responses.models import SurveyResponse, SurveyAnswer
from apps.responses.services import record_response, read_answer_value, encrypt_value, decrypt_value


class RecordResponseTests(TestCase):
    def setUp(self):
        self.survey = Survey.objects.create(code="sub-code", title="Submit Test", status=SurveyStatus.ACTIVE)
        sec = SurveySection.objects.create(survey=self.survey, title="Sec", sort_order=1)

        def q(code, qtype, order, **kw):
            return SurveyQuestion.objects.create(section=sec, code=code, prompt=code, type=qtype, sort_order=order, **kw)

        self.name = q("name", QuestionType.TEXT, 1)
        self.age = q("age", QuestionType.NUMBER, 2)
        self.born = q("born", QuestionType.DATE, 3)
        self.pet = q("pet", QuestionType.DROPDOWN, 4)
        self.cat = SurveyQuestionOption.objects.create(question=self.pet, value="cat", label="Cat", sort_order=1)
        self.tags = q("tags", QuestionType.CHECKBOX, 5)
        self.doc = q("doc", QuestionType.FILE, 6)
        self.ssn = q("ssn", QuestionType.TEXT, 7, sensitive=True)
        self.now = timezone.now()

    def _record(self, answers, **kw):
        return record_response(self.survey, answers, started_at=self.now, submitted_at=self.now, **kw)

    def _answer(self, response, question):
        return SurveyAnswer.objects.get(response=response, question=question)

    def test_bare_values_follow_question_type(self):
        response = self._record({
            "name": "Alice",
            "age": "42.5",
            "born": "1990-05-17",
            "pet": "cat",
            "tags": ["a", "b"],
            "doc": "https://files.example.com/cv.pdf",
        })
        self.assertEqual(self._answer(response, self.name).value_text, "Alice")
        self.assertEqual(self._answer(response, self.age).value_number, Decimal("42.5"))
        self.assertEqual(self._answer(response, self.born).value_date, date(1990, 5, 17))
        self.assertEqual(self._answer(response, self.pet).option_id, self.cat.id)
        self.assertEqual(self._answer(response, self.tags).value_text, "a,b")
        self.assertEqual(self._answer(response, self.doc).file_url, "https://files.example.com/cv.pdf")

    def test_structured_values_and_metadata(self):
        response = self._record({
            str(self.pet.id): {"optionId": self.cat.id},
            "born": {"dateValue": "2001-02-03T10:00:00Z"},
            "name": {"metadata": {"skipped": True}},
        }, respondent_email="a@b.com", metadata={"source": "test"})

        response.refresh_from_db()
        self.assertTrue(response.is_complete)
        self.assertEqual(response.respondent_email, "a@b.com")
        self.assertEqual(response.metadata, {"source": "test"})
        self.assertEqual(self._answer(response, self.pet).option, self.cat)
        self.assertEqual(self._answer(response, self.born).value_date, date(2001, 2, 3))
        blank = self._answer(response, self.name)
        self.assertIsNone(blank.value_text)
        self.assertEqual(blank.metadata, {"skipped": True})

    def test_sensitive_answers_are_encrypted(self):
        response = self._record({"ssn": {"textValue": "123-45-6789"}})
        ans = self._answer(response, self.ssn)
        self.assertIsNone(ans.value_text)
        self.assertNotIn(b"123-45-6789", bytes(ans.encrypted_value))
        self.assertEqual(read_answer_value(ans), "123-45-6789")

    def test_encryption_round_trip(self):
        self.assertIsNone(encrypt_value(None))
        self.assertEqual(decrypt_value(encrypt_value({"a": [1, 2]})), {"a": [1, 2]})

    def test_invalid_payloads_raise_value_error(self):
        cases = [
            {"missing": "x"},
            {"pet": "dog"},
            {"age": "old"},
            {"age": True},
            {"born": "yesterday"},
            {"tags": "a"},
            {"name": {"textValue": "a", "fileUrl": "b"}},
            {"name": {"value": "a"}},
            {"name": "a", str(self.name.id): "b"},
        ]
        for answers in cases:
            with self.subTest(answers=answers):
                with self.assertRaises(ValueError):
                    self._record(answers)

    def test_read_answer_value_by_column(self):
        response = self._record({"age": 3, "pet": "cat", "born": "2020-01-01"})
        self.assertEqual(read_answer_value(self._answer(response, self.age)), 3.0)
        self.assertEqual(read_answer_value(self._answer(response, self.pet)), "cat")
        self.assertEqual(read_answer_value(self._answer(response, self.born)), "2020-01-01")
        self.assertEqual(SurveyResponse.objects.count(), 1)
