from datetime import timedelta
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.partial_responses.exceptions import (
    AlreadyCompleted, CommitFailure, EmailRequired, FeatureDisabled, GenerationExhausted,
    InvalidAnswer, NotFound, SessionExpired,
)
from apps.partial_responses.models import PartialResponse, PartialStatus
from apps.partial_responses.services import (
    SaveInput, complete_partial, resume_by_code, resume_by_token, save_partial,
)
from apps.responses.models import SurveyAnswer, SurveyResponse
from .helpers import make_survey


def _input(survey, **overrides):
    data = {"survey_id": survey.id, "answers": {"q1": "A"}, "current_page_index": 0}
    data.update(overrides)
    return SaveInput(**data)


@override_settings(SITE_URL="https://surveys.example.com")
class SavePartialTests(TestCase):
    def setUp(self):
        self.survey = make_survey()
        self.now = timezone.now()

    def test_create_returns_token_code_url_and_expiry(self):
        result = save_partial(_input(self.survey), ip_address="10.0.0.1", user_agent="pytest", now=self.now)

        self.assertTrue(result.created)
        self.assertEqual(len(result.resume_code), 6)
        self.assertEqual(result.expires_at, self.now + timedelta(days=7))
        self.assertEqual(
            result.resume_url,
            f"https://surveys.example.com/survey/{self.survey.code}/resume/{result.resume_token}",
        )
        partial = PartialResponse.objects.get(resume_token=result.resume_token)
        self.assertEqual(partial.status, PartialStatus.IN_PROGRESS)
        self.assertEqual(partial.answers, {"q1": "A"})
        self.assertEqual(partial.started_at, self.now)
        self.assertEqual(partial.last_saved_at, self.now)
        self.assertEqual(partial.ip_address, "10.0.0.1")
        self.assertEqual(partial.user_agent, "pytest")
        self.assertIsNone(partial.converted_to_response)

    def test_zero_expiration_means_ten_year_horizon(self):
        survey = make_survey("forever", expiration_days=0)
        result = save_partial(_input(survey), now=self.now)
        self.assertEqual(result.expires_at, self.now + timedelta(days=3650))

    def test_unknown_survey_is_not_found(self):
        with self.assertRaises(NotFound):
            save_partial(SaveInput(survey_id=999999, answers={}, current_page_index=0))

    def test_disabled_survey_rejected(self):
        survey = make_survey("off", enabled=False)
        with self.assertRaises(FeatureDisabled):
            save_partial(_input(survey))
        self.assertFalse(PartialResponse.objects.exists())

    def test_email_required_on_create_only(self):
        survey = make_survey("mail", email_required=True)
        with self.assertRaises(EmailRequired):
            save_partial(_input(survey))

        created = save_partial(_input(survey, email="a@b.com"))
        updated = save_partial(_input(survey, answers={"q1": "B"}, resume_token=created.resume_token))
        self.assertFalse(updated.created)
        self.assertEqual(PartialResponse.objects.get().respondent_email, "a@b.com")

    def test_update_keeps_latest_payload_only(self):
        created = save_partial(_input(self.survey), now=self.now)
        later = self.now + timedelta(hours=1)
        updated = save_partial(
            _input(self.survey, answers={"q2": "red"}, current_page_index=1, last_question_id="q2",
                   resume_token=created.resume_token, name="Ada"),
            now=later,
        )

        self.assertEqual(updated.resume_token, created.resume_token)
        self.assertEqual(updated.resume_code, created.resume_code)
        self.assertEqual(updated.expires_at, created.expires_at)
        self.assertEqual(PartialResponse.objects.count(), 1)
        partial = PartialResponse.objects.get()
        self.assertEqual(partial.answers, {"q2": "red"})
        self.assertEqual(partial.current_page_index, 1)
        self.assertEqual(partial.last_question_id, "q2")
        self.assertEqual(partial.respondent_name, "Ada")
        self.assertEqual(partial.last_saved_at, later)
        self.assertEqual(partial.started_at, self.now)

    def test_update_with_unknown_token_is_not_found(self):
        with self.assertRaises(NotFound):
            save_partial(_input(self.survey, resume_token="missing"))

    def test_update_with_token_from_other_survey_is_not_found(self):
        other = make_survey("other")
        created = save_partial(_input(other))
        with self.assertRaises(NotFound):
            save_partial(_input(self.survey, resume_token=created.resume_token))

    def test_update_after_completion_is_rejected_and_frozen(self):
        created = save_partial(_input(self.survey))
        complete_partial(created.resume_token, {"q1": {"textValue": "A"}})

        with self.assertRaises(AlreadyCompleted):
            save_partial(_input(self.survey, answers={"q1": "changed"}, resume_token=created.resume_token))
        self.assertEqual(PartialResponse.objects.get().answers, {"q1": "A"})

    def test_update_past_expiry_expires_session(self):
        created = save_partial(_input(self.survey), now=self.now)
        with self.assertRaises(SessionExpired):
            save_partial(
                _input(self.survey, answers={"q1": "late"}, resume_token=created.resume_token),
                now=self.now + timedelta(days=8),
            )
        partial = PartialResponse.objects.get()
        self.assertEqual(partial.status, PartialStatus.EXPIRED)
        self.assertEqual(partial.answers, {"q1": "A"})

    def test_tokens_never_repeat(self):
        tokens = {save_partial(_input(self.survey)).resume_token for _ in range(100)}
        self.assertEqual(len(tokens), 100)

    def test_code_collision_retries_with_new_code(self):
        with mock.patch(
            "apps.partial_responses.services.new_resume_code",
            side_effect=["ABCDEF", "ABCDEF", "ABCDEF", "HJKMNP"],
        ):
            first = save_partial(_input(self.survey))
            second = save_partial(_input(self.survey))
        self.assertEqual(first.resume_code, "ABCDEF")
        self.assertEqual(second.resume_code, "HJKMNP")

    def test_code_may_repeat_across_surveys(self):
        other = make_survey("other")
        with mock.patch("apps.partial_responses.services.new_resume_code", return_value="ABCDEF"):
            a = save_partial(_input(self.survey))
            b = save_partial(_input(other))
        self.assertEqual(a.resume_code, b.resume_code)

    def test_code_reused_once_previous_session_completed(self):
        with mock.patch("apps.partial_responses.services.new_resume_code", return_value="ABCDEF"):
            first = save_partial(_input(self.survey))
            complete_partial(first.resume_token, {})
            second = save_partial(_input(self.survey))
        self.assertEqual(second.resume_code, "ABCDEF")
        self.assertNotEqual(second.resume_token, first.resume_token)

    def test_generation_exhausted_after_bounded_retries(self):
        with mock.patch("apps.partial_responses.services.new_resume_code", return_value="ABCDEF") as gen:
            save_partial(_input(self.survey))
            gen.reset_mock()
            with self.assertLogs("apps.partial_responses.services", level="ERROR"):
                with self.assertRaises(GenerationExhausted):
                    save_partial(_input(self.survey))
        self.assertEqual(gen.call_count, 5)
        self.assertEqual(PartialResponse.objects.count(), 1)


class ResumeByTokenTests(TestCase):
    def setUp(self):
        self.survey = make_survey()
        self.now = timezone.now()

    def test_round_trip_returns_saved_state_and_definition(self):
        saved = save_partial(
            _input(self.survey, answers={"q1": "A", "q2": "blue"}, current_page_index=1, last_question_id="q2"),
            now=self.now,
        )
        state = resume_by_token(saved.resume_token, now=self.now + timedelta(days=1))

        self.assertEqual(state.answers, {"q1": "A", "q2": "blue"})
        self.assertEqual(state.current_page_index, 1)
        self.assertEqual(state.last_question_id, "q2")
        self.assertEqual(state.resume_token, saved.resume_token)
        self.assertEqual(state.last_saved_at, self.now)
        pages = list(state.survey.sections.all())
        self.assertEqual([p.title for p in pages], ["About you", "Feedback"])
        self.assertEqual([q.code for q in pages[0].questions.all()], ["q1", "q2"])
        self.assertEqual([o.value for o in pages[0].questions.all()[1].options.all()], ["red", "blue"])

    def test_unknown_token(self):
        with self.assertRaises(NotFound):
            resume_by_token("nope")
        with self.assertRaises(NotFound):
            resume_by_token("")

    def test_expired_session_is_transitioned_and_stays_expired(self):
        saved = save_partial(_input(self.survey), now=self.now - timedelta(days=8))

        with self.assertRaises(SessionExpired):
            resume_by_token(saved.resume_token, now=self.now)
        self.assertEqual(PartialResponse.objects.get().status, PartialStatus.EXPIRED)

        # Second attempt reports the terminal state, not NotFound.
        with self.assertRaises(SessionExpired):
            resume_by_token(saved.resume_token)

    def test_completed_session(self):
        saved = save_partial(_input(self.survey))
        complete_partial(saved.resume_token, {"q1": {"textValue": "A"}})
        with self.assertRaises(AlreadyCompleted):
            resume_by_token(saved.resume_token)


class ResumeByCodeTests(TestCase):
    def setUp(self):
        self.survey = make_survey()
        self.now = timezone.now()

    def test_code_is_case_insensitive(self):
        saved = save_partial(_input(self.survey), now=self.now)
        match = resume_by_code(self.survey.id, f" {saved.resume_code.lower()} ", now=self.now)
        self.assertEqual(match.resume_token, saved.resume_token)
        self.assertEqual(match.resume_url, saved.resume_url)

    def test_code_is_scoped_to_survey(self):
        other = make_survey("other")
        saved = save_partial(_input(self.survey))
        with self.assertRaises(NotFound):
            resume_by_code(other.id, saved.resume_code)

    def test_unknown_code_and_unknown_survey(self):
        with self.assertRaises(NotFound):
            resume_by_code(self.survey.id, "ZZZZZZ")
        with self.assertRaises(NotFound):
            resume_by_code(999999, "ZZZZZZ")
        with self.assertRaises(NotFound):
            resume_by_code(self.survey.id, "ABC")

    def test_completed_and_expired_codes_look_like_unknown_codes(self):
        done = save_partial(_input(self.survey))
        complete_partial(done.resume_token, {})
        stale = save_partial(_input(self.survey), now=self.now - timedelta(days=8))
        with self.assertRaises(SessionExpired):
            resume_by_token(stale.resume_token)

        errors = []
        for code in (done.resume_code, stale.resume_code, "ZZZZZZ"):
            with self.assertRaises(NotFound) as ctx:
                resume_by_code(self.survey.id, code)
            errors.append((type(ctx.exception), ctx.exception.detail, ctx.exception.status_code))
        self.assertEqual(len(set(errors)), 1)

    def test_code_stops_matching_at_exact_expiry(self):
        saved = save_partial(_input(self.survey), now=self.now)
        with self.assertRaises(NotFound):
            resume_by_code(self.survey.id, saved.resume_code, now=saved.expires_at)
        # The token link still works at the boundary; only the code lookup requires a future expiry.
        self.assertEqual(PartialResponse.objects.get().status, PartialStatus.IN_PROGRESS)
        state = resume_by_token(saved.resume_token, now=saved.expires_at)
        self.assertEqual(state.resume_token, saved.resume_token)

        match = resume_by_code(self.survey.id, saved.resume_code, now=saved.expires_at - timedelta(seconds=1))
        self.assertEqual(match.resume_token, saved.resume_token)

    def test_overdue_code_is_expired_lazily(self):
        saved = save_partial(_input(self.survey), now=self.now - timedelta(days=8))
        with self.assertRaises(NotFound):
            resume_by_code(self.survey.id, saved.resume_code, now=self.now)
        self.assertEqual(PartialResponse.objects.get().status, PartialStatus.EXPIRED)


class CompletePartialTests(TestCase):
    def setUp(self):
        self.survey = make_survey(email_required=True)
        self.now = timezone.now()

    def _save(self, **overrides):
        return save_partial(
            _input(self.survey, email="a@b.com", name="Ada", **overrides),
            ip_address="10.0.0.2", user_agent="agent/1.0", now=self.now,
        )

    def test_scenario_save_resume_complete(self):
        saved = self._save()
        self.assertEqual(len(saved.resume_code), 6)

        state = resume_by_token(saved.resume_token)
        self.assertEqual(state.answers, {"q1": "A"})
        self.assertEqual(state.current_page_index, 0)

        response = complete_partial(saved.resume_token, {"q1": {"textValue": "A"}})
        self.assertIsNotNone(response.id)

        with self.assertRaises(AlreadyCompleted):
            resume_by_token(saved.resume_token)

    def test_response_carries_session_audit_data(self):
        saved = self._save()
        done_at = self.now + timedelta(hours=2)
        response = complete_partial(
            saved.resume_token,
            {"q1": {"textValue": "Ada"}, "q2": {"optionId": "red"}, "q3": {"numberValue": 7, "metadata": {"slider": True}}},
            now=done_at,
        )

        partial = PartialResponse.objects.get()
        self.assertEqual(partial.status, PartialStatus.COMPLETED)
        self.assertEqual(partial.converted_to_response_id, response.id)

        response.refresh_from_db()
        self.assertEqual(response.started_at, self.now)
        self.assertEqual(response.submitted_at, done_at)
        self.assertEqual(response.ip_address, "10.0.0.2")
        self.assertEqual(response.user_agent, "agent/1.0")
        self.assertTrue(response.is_complete)
        self.assertEqual(
            response.metadata,
            {"resumed_from": partial.id, "respondent_email": "a@b.com", "respondent_name": "Ada"},
        )

        answers = {a.question.code: a for a in response.answers.select_related("question", "option")}
        self.assertEqual(answers["q1"].value_text, "Ada")
        self.assertEqual(answers["q2"].option.value, "red")
        self.assertEqual(answers["q3"].value_number, 7)
        self.assertEqual(answers["q3"].metadata, {"slider": True})

    def test_completion_is_exactly_once(self):
        saved = self._save()
        complete_partial(saved.resume_token, {"q1": {"textValue": "A"}})
        with self.assertRaises(AlreadyCompleted):
            complete_partial(saved.resume_token, {"q1": {"textValue": "A"}})
        self.assertEqual(SurveyResponse.objects.count(), 1)
        self.assertEqual(SurveyAnswer.objects.count(), 1)

    def test_unknown_token(self):
        with self.assertRaises(NotFound):
            complete_partial("missing", {})

    def test_expired_session_cannot_complete(self):
        saved = self._save()
        with self.assertRaises(SessionExpired):
            complete_partial(saved.resume_token, {}, now=self.now + timedelta(days=30))
        self.assertEqual(PartialResponse.objects.get().status, PartialStatus.EXPIRED)
        self.assertFalse(SurveyResponse.objects.exists())

    def test_database_failure_rolls_back_everything(self):
        saved = self._save()
        with mock.patch.object(SurveyAnswer.objects, "bulk_create", side_effect=DatabaseError("disk full")):
            with self.assertLogs("apps.partial_responses.services", level="ERROR"):
                with self.assertRaises(CommitFailure):
                    complete_partial(saved.resume_token, {"q1": {"textValue": "A"}})

        self.assertFalse(SurveyResponse.objects.exists())
        partial = PartialResponse.objects.get()
        self.assertEqual(partial.status, PartialStatus.IN_PROGRESS)
        self.assertIsNone(partial.converted_to_response_id)

        # Retrying the same call succeeds.
        response = complete_partial(saved.resume_token, {"q1": {"textValue": "A"}})
        self.assertEqual(SurveyResponse.objects.get().id, response.id)

    def test_invalid_answer_leaves_no_records(self):
        saved = self._save()
        cases = [
            {"unknown": {"textValue": "x"}},
            {"q2": {"optionId": "green"}},
            {"q1": {"textValue": "A", "numberValue": 1}},
            {"q3": {"numberValue": "many"}},
        ]
        for final_answers in cases:
            with self.subTest(final_answers=final_answers):
                with self.assertRaises(InvalidAnswer):
                    complete_partial(saved.resume_token, final_answers)
        self.assertFalse(SurveyResponse.objects.exists())
        self.assertFalse(SurveyAnswer.objects.exists())
        self.assertEqual(PartialResponse.objects.get().status, PartialStatus.IN_PROGRESS)
