"""
notifications/signals/events.py

Broadcast a NEW_EVENT notification when an event becomes approved.
"""

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from events.models import Event
from notifications.services.lifecycle import notify_new_event


# ============================================================
# PRE_SAVE: TRACK IF STATUS BECAME APPROVED
# ============================================================

@receiver(pre_save, sender=Event)
def track_event_approval(sender, instance, **kwargs):
    """
    Sets a flag that post_save can check.
    """
    if instance.status != Event.Status.APPROVED:
        instance._became_approved = False
        return

    if not instance.pk:
        instance._became_approved = True
        return

    old_status = (
        Event.objects
        .filter(pk=instance.pk)
        .values_list("status", flat=True)
        .first()
    )
    instance._became_approved = old_status != Event.Status.APPROVED


# ============================================================
# POST_SAVE: ANNOUNCE NEWLY APPROVED EVENTS
# ============================================================

@receiver(post_save, sender=Event)
def announce_approved_event(sender, instance, created, raw=False, **kwargs):
    if raw or not instance.is_active:
        return

    if not getattr(instance, "_became_approved", False):
        return

    notify_new_event(event=instance)
