from rest_framework import serializers

from apps.surveys.serializers import SurveyDetailSerializer
from .tokens import RESUME_CODE_LENGTH


class SavePartialSerializer(serializers.Serializer):
    survey_id = serializers.IntegerField()
    answers = serializers.DictField(child=serializers.JSONField(allow_null=True), allow_empty=True)
    current_page_index = serializers.IntegerField(min_value=0)
    last_question_id = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=128)
    email = serializers.EmailField(required=False, allow_null=True, allow_blank=True)
    name = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    resume_token = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=64)


class SaveResultSerializer(serializers.Serializer):
    resume_token = serializers.CharField()
    resume_code = serializers.CharField()
    resume_url = serializers.CharField()
    expires_at = serializers.DateTimeField()


class ResumeStateSerializer(serializers.Serializer):
    survey = SurveyDetailSerializer()
    saved_answers = serializers.JSONField(source="answers")
    current_page_index = serializers.IntegerField()
    last_question_id = serializers.CharField(allow_null=True)
    resume_token = serializers.CharField()
    saved_at = serializers.DateTimeField(source="last_saved_at")


class ResumeByCodeSerializer(serializers.Serializer):
    survey_id = serializers.IntegerField()
    code = serializers.CharField(max_length=RESUME_CODE_LENGTH * 2, trim_whitespace=True)


class CodeMatchSerializer(serializers.Serializer):
    resume_token = serializers.CharField()
    resume_url = serializers.CharField()


class CompletePartialSerializer(serializers.Serializer):
    final_answers = serializers.DictField(child=serializers.JSONField(allow_null=True), allow_empty=True)


class SweepRequestSerializer(serializers.Serializer):
    retention_days = serializers.IntegerField(required=False, min_value=0)
