"""
Outbound delivery of notifications.

The in-app record is the notification itself; delivery sends the email
copy. Callers pass ``deliver`` explicitly so the batch stages can be run
with a different transport (or a failing one in tests).
"""

import logging

from django.conf import settings
from django.core.mail import send_mail
from django.db import DatabaseError
from django.utils import timezone

from notifications.models import Notification

logger = logging.getLogger(__name__)


# ============================================================
# EMAIL CONTENT
# ============================================================

EMAIL_SUBJECTS = {
    Notification.Type.NEW_EVENT: "New Event: {event}",
    Notification.Type.EVENT_REGISTRATION: "Registration Confirmed: {event}",
    Notification.Type.EVENT_REMINDER: "Reminder: {event} Starts Tomorrow",
    Notification.Type.ATTENDANCE_STARTED: "Attendance Is Open: {event}",
    Notification.Type.EVENT_COMPLETED: "Event Completed: {event}",
    Notification.Type.CERTIFICATE_GENERATED: "Your Certificate Is Ready: {event}",
}


def format_event_time(value):
    if not value:
        return ""
    return f"{timezone.localtime(value):%A, %d %B %Y at %H:%M}"


def render_email(notification: Notification):
    """Returns ``(subject, body)`` for the email copy of a notification."""
    event = notification.event
    event_title = event.title if event else ""

    subject_template = EMAIL_SUBJECTS.get(notification.type)
    if subject_template and event:
        subject = subject_template.format(event=event_title)
    else:
        subject = notification.title

    lines = [
        f"Good day, {notification.recipient.display_name}.",
        "",
        notification.message,
    ]

    if event:
        lines += [
            "",
            f"Event: {event_title}",
            f"Schedule: {format_event_time(event.start_at)}",
        ]
        if event.location:
            lines.append(f"Location: {event.location}")

    data = notification.data or {}

    if notification.type == Notification.Type.ATTENDANCE_STARTED and data.get("attendance_token"):
        lines += [
            "",
            f"Your attendance token: {data['attendance_token']}",
        ]

    if data.get("certificate_number"):
        lines += [
            "",
            f"Certificate number: {data['certificate_number']}",
        ]

    lines += [
        "",
        "Regards,",
        getattr(settings, "SITE_NAME", "EventHub"),
    ]

    return subject, "\n".join(lines)


# ============================================================
# TRANSPORT
# ============================================================

def deliver_notification(notification: Notification):
    """
    Default transport: email via Django's mail backend.

    Recipients without an email address keep the in-app copy only,
    which counts as delivered. Transport errors propagate to the caller.
    """
    recipient = notification.recipient

    if not recipient.email:
        logger.info(
            "User %s has no email; notification %s kept in-app only",
            recipient.pk, notification.pk,
        )
        return

    subject, body = render_email(notification)

    send_mail(
        subject=subject,
        message=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[recipient.email],
        fail_silently=False,
    )


def deliver_and_record(notification: Notification, *, result, deliver=None, now=None):
    """
    Deliver one notification and record the outcome on it and on the
    stage ``result``. Returns True when delivered.

    Transport failures are per-recipient: logged, counted and left
    pending for the next run. Database errors are stage-level and
    propagate.
    """
    deliver = deliver or deliver_notification
    now = now or timezone.now()

    try:
        deliver(notification)
    except DatabaseError:
        raise
    except Exception as exc:
        logger.exception(
            "Failed to deliver %s notification %s to user %s",
            notification.type, notification.pk, notification.recipient_id,
        )

        dead_lettered = notification.record_failed_attempt(exc, now=now)
        if dead_lettered:
            logger.error(
                "Notification %s dead-lettered after %s attempts: %s",
                notification.pk, notification.attempts, notification.last_error,
            )

        result.record_failure(notification, exc, dead_lettered=dead_lettered)
        return False

    notification.mark_as_sent(now)
    result.sent += 1
    return True


def create_and_deliver(*, type, registration, result, title, message,
                       priority=Notification.Priority.INFO, data=None,
                       deliver=None, now=None):
    """
    Create the (type, participant, event) notification for a registration
    if it does not exist yet and deliver it. Existing records are skipped;
    a concurrent insert that loses the race on the unique constraint is
    read back by get_or_create and counted as skipped.
    """
    now = now or timezone.now()

    notification, created = Notification.objects.get_or_create(
        type=type,
        recipient_id=registration.participant_id,
        event_id=registration.event_id,
        defaults={
            "registration": registration,
            "priority": priority,
            "title": title,
            "message": message,
            "data": data or {},
            "due_at": now,
            "created_at": now,
        },
    )

    if not created:
        result.skipped += 1
        return notification, False

    result.created += 1
    deliver_and_record(notification, result=result, deliver=deliver, now=now)
    return notification, True
