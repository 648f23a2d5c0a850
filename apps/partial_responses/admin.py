from django.contrib import admin

from .models import PartialResponse


@admin.register(PartialResponse)
class PartialResponseAdmin(admin.ModelAdmin):
    list_display = ("id", "survey", "status", "resume_code", "respondent_email", "last_saved_at", "expires_at")
    list_filter = ("status",)
    search_fields = ("resume_code", "respondent_email")
    readonly_fields = (
        "survey", "resume_token", "resume_code", "status", "answers", "current_page_index",
        "last_question_id", "started_at", "last_saved_at", "expires_at", "converted_to_response",
        "ip_address", "user_agent",
    )

    def has_add_permission(self, request):
        return False
