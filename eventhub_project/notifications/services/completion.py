import logging

from django.utils import timezone

from events.models import Event
from events.services.certificates import issue_certificate
from notifications.models import Notification
from notifications.services.delivery import create_and_deliver
from notifications.services.results import StageResult

logger = logging.getLogger(__name__)


def send_completion_notifications(*, now=None, deliver=None):
    """
    Notifies participants of every ended event, once per participant.

    Attendance-verified participants of certificate-bearing events get
    their certificate issued here and are told it is available; everyone
    else gets a plain thank-you.
    """
    now = now or timezone.now()
    result = StageResult("completion")

    events = Event.objects.approved().ended(now)

    for event in events:
        registrations = (
            event.registrations
            .select_related("participant", "event")
            .filter(participant__is_active=True)
        )

        for registration in registrations:
            already_notified = Notification.objects.filter(
                type=Notification.Type.EVENT_COMPLETED,
                recipient_id=registration.participant_id,
                event=event,
            ).exists()

            if already_notified:
                result.skipped += 1
                continue

            data = {
                "event_title": event.title,
                "has_certificate": event.has_certificate,
                "certificate_available": False,
            }
            message = (
                f"“{event.title}” has ended. "
                f"Thank you for participating!"
            )

            if registration.can_receive_certificate:
                certificate, _ = issue_certificate(registration, now=now, notify=False)
                data["certificate_available"] = True
                data["certificate_number"] = certificate.certificate_number
                message += " Your certificate is now available for download."

            create_and_deliver(
                type=Notification.Type.EVENT_COMPLETED,
                registration=registration,
                result=result,
                title=f"Event completed: {event.title}",
                message=message,
                data=data,
                deliver=deliver,
                now=now,
            )

    logger.info("Completion notifications: %s", result.summary())
    return result
