"""
notifications/signals/registrations.py

Confirm a registration to the participant as soon as it is created.
"""

from django.db.models.signals import post_save
from django.dispatch import receiver

from events.models import Registration
from notifications.services.lifecycle import notify_event_registration


@receiver(post_save, sender=Registration)
def confirm_registration(sender, instance, created, raw=False, **kwargs):
    if raw or not created:
        return

    notify_event_registration(registration=instance, now=instance.registered_at)
