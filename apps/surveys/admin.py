from django.contrib import admin
from .models import Survey, SurveySection, SurveyQuestion, SurveyQuestionOption


@admin.register(Survey)
class SurveyAdmin(admin.ModelAdmin):
    list_display = ("id", "code", "title", "status", "allow_save_and_continue", "save_expiration_days")
    list_filter = ("status", "allow_save_and_continue")
    search_fields = ("code", "title")


admin.site.register(SurveySection)
admin.site.register(SurveyQuestion)
admin.site.register(SurveyQuestionOption)
