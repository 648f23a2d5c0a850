import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("surveys", "0001_initial"),
        ("responses", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PartialResponse",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("resume_token", models.CharField(editable=False, max_length=64, unique=True)),
                ("resume_code", models.CharField(editable=False, max_length=6)),
                ("status", models.CharField(choices=[("in_progress", "In Progress"), ("expired", "Expired"), ("completed", "Completed")], default="in_progress", max_length=16)),
                ("answers", models.JSONField(blank=True, default=dict)),
                ("current_page_index", models.PositiveIntegerField(default=0)),
                ("last_question_id", models.CharField(blank=True, max_length=128, null=True)),
                ("respondent_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("respondent_name", models.CharField(blank=True, max_length=255, null=True)),
                ("started_at", models.DateTimeField(editable=False)),
                ("last_saved_at", models.DateTimeField()),
                ("expires_at", models.DateTimeField(editable=False)),
                ("ip_address", models.GenericIPAddressField(blank=True, editable=False, null=True)),
                ("user_agent", models.TextField(blank=True, editable=False, null=True)),
                ("converted_to_response", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="source_partial", to="responses.surveyresponse")),
                ("survey", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="partial_responses", to="surveys.survey")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status", "expires_at"], name="idx_partial_status_expiry"),
                    models.Index(fields=["survey", "resume_code"], name="idx_partial_survey_code"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("status", "in_progress")), fields=("survey", "resume_code"), name="uniq_active_resume_code_per_survey"),
                    models.CheckConstraint(condition=models.Q(("expires_at__gt", models.F("started_at"))), name="partial_expires_after_start"),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("converted_to_response__isnull", False), ("status", "completed")),
                            models.Q(models.Q(("status", "completed"), _negated=True), ("converted_to_response__isnull", True)),
                            _connector="OR",
                        ),
                        name="partial_converted_iff_completed",
                    ),
                ],
            },
        ),
    ]
