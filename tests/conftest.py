import itertools
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest

from events.models import Event, Registration

# Fixed clock shared by the batch tests (TIME_ZONE is UTC in settings)
NOW = datetime(2026, 3, 10, 9, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_user(django_user_model):
    counter = itertools.count(1)

    def factory(**kwargs):
        n = next(counter)
        kwargs.setdefault("username", f"user{n}")
        kwargs.setdefault("email", f"user{n}@example.com")
        kwargs.setdefault("password", "secret-password")
        # Unverified by default so approved events don't broadcast NEW_EVENT
        kwargs.setdefault("is_verified", False)
        return django_user_model.objects.create_user(**kwargs)

    return factory


@pytest.fixture
def make_event():
    def factory(**kwargs):
        kwargs.setdefault("title", "Python Meetup")
        kwargs.setdefault("location", "Main Hall")
        kwargs.setdefault("start_at", NOW + timedelta(days=1))
        kwargs.setdefault("status", Event.Status.APPROVED)
        return Event.objects.create(**kwargs)

    return factory


@pytest.fixture
def register():
    """
    Attach a participant to an event directly, bypassing the
    registration-window rules of register_participant().
    """
    counter = itertools.count(1)

    def factory(event, user, verified_at=None):
        registration = Registration(
            event=event,
            participant=user,
            registration_number=f"EVT{event.pk}{next(counter):04d}",
            registered_at=NOW - timedelta(days=7),
        )
        registration.generate_attendance_token(now=NOW - timedelta(days=7))
        if verified_at:
            registration.attendance_verified_at = verified_at
            registration.attendance_status = Registration.AttendanceStatus.PRESENT
        registration.save()
        return registration

    return factory


@pytest.fixture
def failing_for():
    """
    Build a deliver() callable that raises for the given email addresses
    and records everything it delivered.
    """
    def factory(*emails):
        delivered = []

        def deliver(notification):
            if notification.recipient.email in emails:
                raise ConnectionRefusedError(f"SMTP refused {notification.recipient.email}")
            delivered.append(notification)

        deliver.delivered = delivered
        return deliver

    return factory
