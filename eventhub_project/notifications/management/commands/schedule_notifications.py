"""
notifications/management/commands/schedule_notifications.py

Periodic (every six hours) run of the notification batch. Same stages
as process_notifications.
"""

from ._batch import NotificationBatchCommand


class Command(NotificationBatchCommand):
    help = "Schedule and process all notification tasks"

    start_message = "Starting notification scheduling..."
    done_message = "Notification scheduling completed successfully!"
    failure_message = "Error scheduling notifications"

    stage_messages = {
        **NotificationBatchCommand.stage_messages,
        "reminders": "Scheduling event reminders...",
    }
