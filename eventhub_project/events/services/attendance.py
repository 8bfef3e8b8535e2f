import logging

from django.core.exceptions import ValidationError
from django.utils import timezone

from events.models import Registration

logger = logging.getLogger(__name__)


def verify_attendance(*, token: str, user=None, now=None):
    """
    Mark a registration present using its attendance token.

    The token must belong to ``user`` (when given), must not have been
    used or have expired, and the event's attendance window must be open.
    """
    now = now or timezone.now()
    token = (token or "").strip()

    registration = (
        Registration.objects
        .select_related("event", "participant")
        .filter(attendance_token=token)
        .first()
    )

    if registration is None:
        raise ValidationError("Invalid attendance token.")

    if user is not None and registration.participant_id != user.pk:
        raise ValidationError("This attendance token belongs to another participant.")

    if registration.is_attendance_verified:
        raise ValidationError("Attendance has already been verified.")

    if not registration.is_token_valid(now):
        raise ValidationError("This attendance token has expired.")

    if not registration.event.is_attendance_open(now):
        raise ValidationError("Attendance is not open for this event.")

    registration.attendance_verified_at = now
    registration.attendance_status = Registration.AttendanceStatus.PRESENT
    registration.verification_method = "token"
    registration.save(update_fields=[
        "attendance_verified_at",
        "attendance_status",
        "verification_method",
    ])

    logger.info(
        "Attendance verified for registration %s (event %s)",
        registration.pk, registration.event_id,
    )
    return registration
