"""
Event lifecycle notifications.

These are raised by signals and domain services at the moment something
happens. They only create the in-app record with ``due_at`` set; the
email copy goes out with the next scheduled dispatch run, so request
handling never waits on the mail transport.
"""

import logging

from django.contrib.auth import get_user_model
from django.utils import timezone

from notifications.models import Notification
from notifications.services.delivery import format_event_time

logger = logging.getLogger(__name__)

User = get_user_model()


# ============================================================
# NEW EVENT (BROADCAST ON APPROVAL)
# ============================================================

def notify_new_event(*, event, now=None):
    """
    Announce a newly approved event to every active, verified user
    except its organizer. Returns the number of new notifications.
    """
    now = now or timezone.now()

    recipients = (
        User.objects
        .filter(is_active=True, is_verified=True)
        .exclude(pk=event.organizer_id)
    )

    message = (
        f"“{event.title}” is now open for registration. "
        f"Register before the seats run out!"
    )

    created_count = 0
    for user in recipients:
        _, created = Notification.objects.get_or_create(
            type=Notification.Type.NEW_EVENT,
            recipient=user,
            event=event,
            defaults={
                "title": "New event available",
                "message": message,
                "data": {
                    "event_title": event.title,
                    "event_start": event.start_at.isoformat(),
                    "event_location": event.location,
                },
                "due_at": now,
            },
        )
        created_count += int(created)

    logger.info("Queued %s new-event notifications for event %s", created_count, event.pk)
    return created_count


# ============================================================
# REGISTRATION CONFIRMED
# ============================================================

def notify_event_registration(*, registration, now=None):
    now = now or timezone.now()
    event = registration.event

    notification, created = Notification.objects.get_or_create(
        type=Notification.Type.EVENT_REGISTRATION,
        recipient_id=registration.participant_id,
        event=event,
        defaults={
            "registration": registration,
            "title": "Registration successful",
            "message": (
                f"You are registered for “{event.title}” "
                f"({registration.registration_number}). "
                f"See you on {format_event_time(event.start_at)}!"
            ),
            "data": {
                "event_title": event.title,
                "event_start": event.start_at.isoformat(),
                "registration_number": registration.registration_number,
            },
            "due_at": now,
        },
    )
    return notification, created


# ============================================================
# CERTIFICATE GENERATED
# ============================================================

def notify_certificate_generated(*, certificate, now=None):
    now = now or timezone.now()
    event = certificate.event

    notification, created = Notification.objects.get_or_create(
        type=Notification.Type.CERTIFICATE_GENERATED,
        recipient_id=certificate.participant_id,
        event=event,
        defaults={
            "registration_id": certificate.registration_id,
            "title": "Certificate ready",
            "message": (
                f"Your certificate for “{event.title}” is ready. "
                f"You can download it from your account."
            ),
            "data": {
                "event_title": event.title,
                "certificate_number": certificate.certificate_number,
            },
            "due_at": now,
        },
    )
    return notification, created


# ============================================================
# SCHEDULED ANNOUNCEMENTS
# ============================================================

def schedule_event_announcement(*, event, title, message, due_at, data=None):
    """
    Queue a free-form announcement to every registered participant,
    delivered by the scheduled dispatcher once ``due_at`` has passed.
    """
    notifications = [
        Notification(
            type=Notification.Type.SCHEDULED,
            recipient_id=registration.participant_id,
            event=event,
            registration=registration,
            title=title,
            message=message,
            data=data or {},
            due_at=due_at,
        )
        for registration in event.registrations.filter(participant__is_active=True)
    ]

    created = Notification.objects.bulk_create(notifications)

    logger.info(
        "Scheduled %s announcement(s) for event %s at %s",
        len(created), event.pk, due_at.isoformat(),
    )
    return created
