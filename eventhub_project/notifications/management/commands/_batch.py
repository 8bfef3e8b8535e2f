"""
Shared driver for the notification batch commands.

Both commands run the same pipeline; they differ only in wording so
the two scheduler entries are easy to tell apart in the logs.
"""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from notifications.services.pipeline import run_notification_pipeline


class NotificationBatchCommand(BaseCommand):
    start_message = "Starting notification processing..."
    done_message = "Notification processing completed successfully!"
    failure_message = "Error processing notifications"

    stage_messages = {
        "reminders": "Processing event reminders...",
        "attendance": "Checking attendance notifications...",
        "completion": "Checking completed event notifications...",
        "scheduled": "Processing scheduled notifications...",
    }

    def handle(self, *args, **options):
        now = timezone.now()

        self.stdout.write(
            self.style.NOTICE(f"[{now:%Y-%m-%d %H:%M:%S}] {self.start_message}")
        )

        result = run_notification_pipeline(
            now=now,
            on_stage_start=self.stage_started,
            on_stage_finish=self.stage_finished,
        )

        if not result.ok:
            raise CommandError(
                f"{self.failure_message}: {result.error}",
                returncode=1,
            )

        failures = result.delivery_failures
        if failures:
            self.stdout.write(
                self.style.WARNING(
                    f"{len(failures)} notification(s) could not be delivered "
                    f"and remain pending"
                )
            )

        self.stdout.write(self.style.SUCCESS(self.done_message))

    def stage_started(self, name):
        self.stdout.write(self.stage_messages.get(name, f"Running {name}..."))

    def stage_finished(self, stage_result):
        self.stdout.write(f"  {stage_result.summary()}")
