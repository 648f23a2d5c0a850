import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("surveys", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SurveyResponse",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("respondent_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("status", models.CharField(choices=[("submitted", "Submitted"), ("revised", "Revised"), ("deleted", "Deleted")], default="submitted", max_length=16)),
                ("is_complete", models.BooleanField(default=True)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("submitted_at", models.DateTimeField()),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.TextField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("survey", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="responses", to="surveys.survey")),
            ],
            options={
                "indexes": [models.Index(fields=["survey", "-submitted_at"], name="idx_response_survey_time")],
            },
        ),
        migrations.CreateModel(
            name="SurveyAnswer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("value_text", models.TextField(blank=True, null=True)),
                ("value_number", models.DecimalField(blank=True, decimal_places=10, max_digits=30, null=True)),
                ("value_date", models.DateField(blank=True, null=True)),
                ("file_url", models.URLField(blank=True, max_length=1024, null=True)),
                ("encrypted_value", models.BinaryField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, null=True)),
                ("option", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="answers", to="surveys.surveyquestionoption")),
                ("question", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="answers", to="surveys.surveyquestion")),
                ("response", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="answers", to="responses.surveyresponse")),
            ],
            options={
                "indexes": [models.Index(fields=["question"], name="idx_answer_question")],
                "unique_together": {("response", "question")},
            },
        ),
    ]
