"""
Reminder notification service layer.

Time-based reminder emitters triggered by the notification batch
(management commands or the in-process scheduler). Reminder logic is
date-based and deduplicated on (type, recipient, event).
"""

from .upcoming import (
    send_event_reminders,
)

__all__ = [
    "send_event_reminders",
]
