import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Survey",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("code", models.SlugField(max_length=128, unique=True)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, null=True)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("active", "Active"), ("archived", "Archived")], default="draft", max_length=16)),
                ("allow_save_and_continue", models.BooleanField(default=False)),
                ("require_email_for_save", models.BooleanField(default=False)),
                ("save_expiration_days", models.PositiveIntegerField(default=7)),
            ],
            options={
                "indexes": [models.Index(fields=["status"], name="idx_survey_status")],
            },
        ),
        migrations.CreateModel(
            name="SurveySection",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, null=True)),
                ("sort_order", models.IntegerField()),
                ("survey", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sections", to="surveys.survey")),
            ],
            options={
                "ordering": ["sort_order"],
                "unique_together": {("survey", "sort_order")},
            },
        ),
        migrations.CreateModel(
            name="SurveyQuestion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("code", models.CharField(max_length=128)),
                ("prompt", models.TextField()),
                ("help_text", models.TextField(blank=True, null=True)),
                ("type", models.CharField(choices=[("text", "Text"), ("number", "Number"), ("date", "Date"), ("dropdown", "Dropdown"), ("checkbox", "Checkbox"), ("radio", "Radio"), ("file", "File")], max_length=24)),
                ("required", models.BooleanField(default=False)),
                ("sensitive", models.BooleanField(default=False)),
                ("constraints", models.JSONField(blank=True, default=dict)),
                ("sort_order", models.IntegerField()),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("section", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="questions", to="surveys.surveysection")),
            ],
            options={
                "ordering": ["sort_order"],
                "unique_together": {("section", "sort_order"), ("section", "code")},
            },
        ),
        migrations.CreateModel(
            name="SurveyQuestionOption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("value", models.CharField(max_length=255)),
                ("label", models.CharField(max_length=255)),
                ("sort_order", models.IntegerField()),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("question", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="options", to="surveys.surveyquestion")),
            ],
            options={
                "ordering": ["sort_order"],
                "unique_together": {("question", "sort_order")},
            },
        ),
    ]
