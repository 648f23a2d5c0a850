from rest_framework import serializers
from .models import Survey, SurveySection, SurveyQuestion, SurveyQuestionOption

# Read serializers for the nested survey definition
class OptionReadSerializer(serializers.ModelSerializer):
    class Meta:
        model = SurveyQuestionOption
        fields = ["id", "value", "label", "sort_order"]

class QuestionReadSerializer(serializers.ModelSerializer):
    options = OptionReadSerializer(many=True, read_only=True)
    class Meta:
        model = SurveyQuestion
        fields = [
            "id", "code", "prompt", "help_text", "type",
            "required", "constraints", "sort_order",
            "options"
        ]

class SectionReadSerializer(serializers.ModelSerializer):
    questions = QuestionReadSerializer(many=True, read_only=True)
    class Meta:
        model = SurveySection
        fields = ["id", "title", "description", "sort_order", "questions"]

class SurveyDetailSerializer(serializers.ModelSerializer):
    pages = SectionReadSerializer(source="sections", many=True, read_only=True)
    class Meta:
        model = Survey
        fields = ["id", "code", "title", "description", "pages"]
