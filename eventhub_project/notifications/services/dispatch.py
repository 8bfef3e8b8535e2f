import logging

from django.utils import timezone

from notifications.models import Notification
from notifications.services.delivery import deliver_and_record
from notifications.services.results import StageResult

logger = logging.getLogger(__name__)


def dispatch_scheduled_notifications(*, now=None, deliver=None):
    """
    Delivers every pending notification whose due time has passed.

    Delivery is at-least-once: a failed attempt leaves the record pending
    for the next run, and a send that succeeded without its sent marker
    being saved will be repeated. Reminders and attendance notices that
    went stale while pending are expired instead of sent.
    """
    now = now or timezone.now()
    result = StageResult("scheduled")

    due = (
        Notification.objects
        .due(now)
        .select_related("recipient", "event")
        .order_by("due_at", "id")
    )

    for notification in due:
        if notification.is_stale(now):
            notification.expire(now)
            result.expired += 1
            logger.warning(
                "Expired %s notification %s for user %s after %s attempt(s)",
                notification.type, notification.pk,
                notification.recipient_id, notification.attempts,
            )
            continue

        deliver_and_record(notification, result=result, deliver=deliver, now=now)

    logger.info("Scheduled dispatch: %s", result.summary())
    return result
