"""
Expire overdue saved progress and purge expired records past the retention window.

Normally scheduled through Celery beat; this command is for cron or manual runs.

Usage:
    python manage.py sweep_partial_responses
    python manage.py sweep_partial_responses --dry-run
    python manage.py sweep_partial_responses --retention-days 14
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.partial_responses.services import preview_sweep, sweep_expired


class Command(BaseCommand):
    help = "Expire overdue partial responses and delete old expired ones"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be done without actually doing it",
        )
        parser.add_argument(
            "--retention-days",
            type=int,
            default=None,
            help="Days to keep expired records (defaults to PARTIAL_RESPONSE_RETENTION_DAYS)",
        )
        parser.add_argument(
            "--batch-size",
            type=int,
            default=200,
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        retention_days = options["retention_days"]

        self.stdout.write(
            self.style.SUCCESS(f"Starting partial response sweep at {timezone.now()}")
        )

        if dry_run:
            preview = preview_sweep(retention_days=retention_days)
            self.stdout.write(self.style.WARNING("DRY RUN MODE - No changes will be made"))
            self.stdout.write(
                self.style.WARNING(
                    f"Would expire {preview.expired_count} and delete {preview.deleted_count} partial responses"
                )
            )
            return

        result = sweep_expired(retention_days=retention_days, batch_size=options["batch_size"])
        self.stdout.write(
            self.style.SUCCESS(
                f"Expired {result.expired_count} and deleted {result.deleted_count} partial responses"
            )
        )
