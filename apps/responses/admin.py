from django.contrib import admin

from .models import SurveyResponse, SurveyAnswer
from .services import read_answer_value


class SurveyAnswerInline(admin.TabularInline):
    model = SurveyAnswer
    extra = 0
    fields = ("question", "stored_value", "metadata")
    readonly_fields = ("question", "stored_value", "metadata")
    can_delete = False

    @admin.display(description="Value")
    def stored_value(self, obj: SurveyAnswer):
        return read_answer_value(obj)


@admin.register(SurveyResponse)
class SurveyResponseAdmin(admin.ModelAdmin):
    list_display = ("id", "survey", "status", "respondent_email", "started_at", "submitted_at")
    list_filter = ("status",)
    search_fields = ("respondent_email",)
    inlines = [SurveyAnswerInline]
