"""
Notification service layer.

Batch stages (reminders, attendance, completion, scheduled dispatch)
create and deliver notifications idempotently; lifecycle helpers queue
in-app notifications for the next dispatch run.
"""

# =====================================================
# BATCH STAGES
# =====================================================
from .reminders import (
    send_event_reminders,
)
from .attendance import (
    send_attendance_notifications,
)
from .completion import (
    send_completion_notifications,
)
from .dispatch import (
    dispatch_scheduled_notifications,
)
from .pipeline import (
    run_notification_pipeline,
)

# =====================================================
# LIFECYCLE
# =====================================================
from .lifecycle import (
    notify_new_event,
    notify_event_registration,
    notify_certificate_generated,
    schedule_event_announcement,
)

# =====================================================
# PUBLIC EXPORTS
# =====================================================
__all__ = [
    # Batch
    "send_event_reminders",
    "send_attendance_notifications",
    "send_completion_notifications",
    "dispatch_scheduled_notifications",
    "run_notification_pipeline",

    # Lifecycle
    "notify_new_event",
    "notify_event_registration",
    "notify_certificate_generated",
    "schedule_event_announcement",
]
