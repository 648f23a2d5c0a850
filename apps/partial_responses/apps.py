from django.apps import AppConfig


class PartialResponsesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.partial_responses"
    verbose_name = "Saved progress"
