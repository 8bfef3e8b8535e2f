import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from events.models import Event, Registration

logger = logging.getLogger(__name__)


def next_registration_number(event: Event):
    """EVT{event id}{sequence:04d}, unique across the platform."""
    sequence = event.registrations.count() + 1
    number = f"EVT{event.pk}{sequence:04d}"
    while Registration.objects.filter(registration_number=number).exists():
        sequence += 1
        number = f"EVT{event.pk}{sequence:04d}"
    return number


@transaction.atomic
def register_participant(*, event: Event, user, now=None):
    """
    Register a user for an approved event and hand out the attendance
    token. The EVENT_REGISTRATION notification is emitted by the
    post_save signal in notifications.signals.registrations.
    """
    now = now or timezone.now()

    if not event.is_active or event.status != Event.Status.APPROVED:
        raise ValidationError("This event is not open for registration.")

    if not event.is_registration_open(now):
        raise ValidationError("Registration for this event is closed.")

    if event.registrations.filter(participant=user).exists():
        raise ValidationError("You are already registered for this event.")

    if event.has_reached_capacity():
        raise ValidationError("This event has reached its maximum number of participants.")

    registration = Registration(
        event=event,
        participant=user,
        registration_number=next_registration_number(event),
        registered_at=now,
    )
    registration.generate_attendance_token(now=now)
    registration.save()

    logger.info(
        "User %s registered for event %s (%s)",
        user.pk, event.pk, registration.registration_number,
    )
    return registration
