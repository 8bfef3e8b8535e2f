"""
notifications/management/commands/process_notifications.py

Manual / hourly run of the notification batch:
reminders -> attendance -> completion -> scheduled dispatch.

Every stage is idempotent, so running this any number of times never
sends a notification twice.
"""

from ._batch import NotificationBatchCommand


class Command(NotificationBatchCommand):
    help = "Process all notification tasks including reminders, attendance, and completed events"
