import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from events.models import Event

logger = logging.getLogger(__name__)


def submit_event_for_approval(event: Event):
    """
    Organizer hands a draft (or previously rejected) event to the admins.
    """
    if event.status not in {Event.Status.DRAFT, Event.Status.REJECTED}:
        raise ValidationError("Only draft or rejected events can be submitted.")

    event.status = Event.Status.PENDING
    event.submitted_at = timezone.now()
    event.rejected_at = None
    event.rejection_reason = ""
    event.save(update_fields=[
        "status",
        "submitted_at",
        "rejected_at",
        "rejection_reason",
        "updated_at",
    ])

    logger.info("Event %s submitted for approval", event.pk)
    return event


@transaction.atomic
def approve_event(event: Event, *, approved_by):
    """
    Approving an event publishes it. The NEW_EVENT broadcast is emitted
    by the post_save signal in notifications.signals.events.
    """
    if event.status != Event.Status.PENDING:
        raise ValidationError("Only events pending approval can be approved.")

    event.status = Event.Status.APPROVED
    event.approved_at = timezone.now()
    event.approved_by = approved_by
    event.save(update_fields=[
        "status",
        "approved_at",
        "approved_by",
        "updated_at",
    ])

    logger.info("Event %s approved by %s", event.pk, getattr(approved_by, "pk", None))
    return event


def reject_event(event: Event, *, rejected_by, reason: str):
    if event.status != Event.Status.PENDING:
        raise ValidationError("Only events pending approval can be rejected.")

    if not reason or not reason.strip():
        raise ValidationError("A rejection reason is required.")

    event.status = Event.Status.REJECTED
    event.rejected_at = timezone.now()
    event.rejection_reason = reason.strip()
    event.save(update_fields=[
        "status",
        "rejected_at",
        "rejection_reason",
        "updated_at",
    ])

    logger.info(
        "Event %s rejected by %s: %s",
        event.pk, getattr(rejected_by, "pk", None), event.rejection_reason,
    )
    return event
