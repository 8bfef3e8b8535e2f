import logging

from django.utils import timezone

from events.models import Event
from notifications.models import Notification
from notifications.services.delivery import create_and_deliver
from notifications.services.results import StageResult

logger = logging.getLogger(__name__)


def send_attendance_notifications(*, now=None, deliver=None):
    """
    Tells every registered participant that attendance is open, once per
    event, while the event's attendance window is open. The message
    carries the participant's attendance token.
    """
    now = now or timezone.now()
    result = StageResult("attendance")

    events = Event.objects.approved().attendance_open(now)

    for event in events:
        # The queryset matches whole local days; the model checks the exact window
        if not event.is_attendance_open(now):
            continue

        registrations = (
            event.registrations
            .select_related("participant")
            .filter(participant__is_active=True)
        )

        for registration in registrations:
            create_and_deliver(
                type=Notification.Type.ATTENDANCE_STARTED,
                registration=registration,
                result=result,
                title=f"Attendance open: {event.title}",
                message=(
                    f"Attendance for “{event.title}” is now open. "
                    f"Please confirm your attendance with your token."
                ),
                priority=Notification.Priority.WARNING,
                data={
                    "event_title": event.title,
                    "event_start": event.start_at.isoformat(),
                    "attendance_token": registration.attendance_token,
                },
                deliver=deliver,
                now=now,
            )

    logger.info("Attendance notifications: %s", result.summary())
    return result
