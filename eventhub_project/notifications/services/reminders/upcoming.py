"""
notifications/services/reminders/upcoming.py

Day-before reminders for registered participants.
Idempotent: safe to run any number of times per day.
"""

import logging
from datetime import timedelta

from django.utils import timezone

from events.models import Event
from notifications.models import Notification
from notifications.services.delivery import create_and_deliver, format_event_time
from notifications.services.results import StageResult

logger = logging.getLogger(__name__)


def send_event_reminders(*, now=None, deliver=None):
    """
    Sends one reminder per registered participant for every active,
    approved event whose start falls on tomorrow's local date.
    """
    now = now or timezone.now()
    tomorrow = timezone.localdate(now) + timedelta(days=1)
    result = StageResult("reminders")

    events = Event.objects.approved().starting_on(tomorrow)

    for event in events:
        registrations = (
            event.registrations
            .select_related("participant")
            .filter(participant__is_active=True)
        )

        for registration in registrations:
            create_and_deliver(
                type=Notification.Type.EVENT_REMINDER,
                registration=registration,
                result=result,
                title=f"Event reminder: {event.title}",
                message=(
                    f"“{event.title}” starts tomorrow, "
                    f"{format_event_time(event.start_at)}. Don't forget to attend!"
                ),
                priority=Notification.Priority.WARNING,
                data={
                    "event_title": event.title,
                    "event_start": event.start_at.isoformat(),
                    "event_location": event.location,
                },
                deliver=deliver,
                now=now,
            )

    logger.info(
        "Event reminders for %s: %s",
        tomorrow.isoformat(), result.summary(),
    )
    return result
