import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from events.models import Certificate, Registration

logger = logging.getLogger(__name__)


def certificate_number_for(registration: Registration):
    return f"CERT-{registration.event_id}-{registration.registration_number}"


@transaction.atomic
def issue_certificate(registration: Registration, *, now=None, notify=True):
    """
    Issue (or return the existing) certificate for a verified attendee.

    Returns ``(certificate, created)``. A CERTIFICATE_GENERATED
    notification is queued only when the certificate is new and
    ``notify`` is set.
    """
    now = now or timezone.now()

    if not registration.event.has_certificate:
        raise ValidationError("This event does not issue certificates.")

    if not registration.is_attendance_verified:
        raise ValidationError("Certificates require verified attendance.")

    certificate, created = Certificate.objects.get_or_create(
        registration=registration,
        defaults={
            "event_id": registration.event_id,
            "participant_id": registration.participant_id,
            "certificate_number": certificate_number_for(registration),
            "file_path": (
                f"certificates/{registration.event_id}/"
                f"{certificate_number_for(registration)}.pdf"
            ),
            "issued_at": now,
        },
    )

    if not created:
        return certificate, False

    registration.has_received_certificate = True
    registration.save(update_fields=["has_received_certificate"])

    logger.info(
        "Certificate %s issued for registration %s",
        certificate.certificate_number, registration.pk,
    )

    if notify:
        # Local import: notifications.services imports this module
        from notifications.services.lifecycle import notify_certificate_generated

        notify_certificate_generated(certificate=certificate, now=now)

    return certificate, True
