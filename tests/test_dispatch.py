from datetime import timedelta

import pytest

from notifications.models import Notification
from notifications.services import (
    dispatch_scheduled_notifications,
    schedule_event_announcement,
    send_attendance_notifications,
    send_event_reminders,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def make_notification(make_user):
    def factory(**kwargs):
        kwargs.setdefault("recipient", make_user())
        kwargs.setdefault("type", Notification.Type.SCHEDULED)
        kwargs.setdefault("title", "Heads up")
        kwargs.setdefault("message", "Doors open at nine.")
        return Notification.objects.create(**kwargs)

    return factory


def test_sends_all_and_only_pending_due_notifications(now, make_notification, mailoutbox):
    due = make_notification(due_at=now - timedelta(hours=1))
    due_exactly_now = make_notification(due_at=now)
    future = make_notification(due_at=now + timedelta(hours=1))
    already_sent = make_notification(
        due_at=now - timedelta(days=1),
        sent_at=now - timedelta(days=1),
    )
    dead = make_notification(
        due_at=now - timedelta(days=1),
        failed_at=now - timedelta(hours=2),
        attempts=5,
    )

    result = dispatch_scheduled_notifications(now=now)

    assert result.sent == 2
    assert len(mailoutbox) == 2

    for notification in (due, due_exactly_now, future, already_sent, dead):
        notification.refresh_from_db()

    assert due.sent_at == now
    assert due_exactly_now.sent_at == now
    assert future.sent_at is None
    assert already_sent.sent_at == now - timedelta(days=1)
    assert dead.sent_at is None


def test_never_resends_sent_notifications(now, make_notification, mailoutbox):
    make_notification(due_at=now - timedelta(hours=1))

    dispatch_scheduled_notifications(now=now)
    second = dispatch_scheduled_notifications(now=now + timedelta(hours=1))

    assert second.sent == 0
    assert len(mailoutbox) == 1


def test_failed_delivery_stays_pending_and_is_retried(
    now, make_user, make_notification, failing_for
):
    notification = make_notification(
        recipient=make_user(email="flaky@example.com"),
        due_at=now - timedelta(minutes=5),
    )

    first = dispatch_scheduled_notifications(now=now, deliver=failing_for("flaky@example.com"))
    notification.refresh_from_db()

    assert first.failed == 1
    assert notification.is_pending
    assert notification.attempts == 1

    later = now + timedelta(hours=1)
    second = dispatch_scheduled_notifications(now=later, deliver=failing_for())
    notification.refresh_from_db()

    assert second.sent == 1
    assert notification.sent_at == later
    assert notification.attempts == 2
    assert notification.last_error == ""


def test_skips_notifications_already_attempted_in_this_run(now, make_notification):
    make_notification(due_at=now - timedelta(hours=1), last_attempt_at=now, attempts=1)

    assert dispatch_scheduled_notifications(now=now).sent == 0


def test_dead_letters_after_max_attempts(now, settings, make_user, make_notification, failing_for):
    settings.NOTIFICATION_MAX_ATTEMPTS = 2
    notification = make_notification(
        recipient=make_user(email="gone@example.com"),
        due_at=now - timedelta(minutes=5),
    )
    deliver = failing_for("gone@example.com")

    dispatch_scheduled_notifications(now=now, deliver=deliver)
    result = dispatch_scheduled_notifications(now=now + timedelta(hours=1), deliver=deliver)
    notification.refresh_from_db()

    assert result.failures[0].dead_lettered is True
    assert notification.failed_at == now + timedelta(hours=1)
    assert Notification.objects.dead_lettered().get() == notification

    # Dead-lettered notifications are no longer picked up
    third = dispatch_scheduled_notifications(now=now + timedelta(hours=2), deliver=deliver)
    assert third.failed == 0

    notification.requeue(now=now + timedelta(hours=3))
    retried = dispatch_scheduled_notifications(now=now + timedelta(hours=3), deliver=failing_for())
    assert retried.sent == 1


def test_announcements_wait_until_due(now, make_user, make_event, register, mailoutbox):
    event = make_event(start_at=now + timedelta(days=3))
    register(event, make_user())
    register(event, make_user())
    # Only the announcements are under test here
    Notification.objects.all().delete()

    created = schedule_event_announcement(
        event=event,
        title="Venue change",
        message="We moved to Room 2.",
        due_at=now + timedelta(hours=6),
    )

    assert len(created) == 2
    assert dispatch_scheduled_notifications(now=now).sent == 0

    result = dispatch_scheduled_notifications(now=now + timedelta(hours=6))
    assert result.sent == 2
    assert {m.subject for m in mailoutbox} == {"Venue change"}


def test_announcements_may_repeat_for_the_same_event(now, make_user, make_event, register):
    event = make_event(start_at=now + timedelta(days=3))
    register(event, make_user())

    for title in ("First notice", "Second notice"):
        schedule_event_announcement(event=event, title=title, message=title, due_at=now)

    assert Notification.objects.filter(type=Notification.Type.SCHEDULED).count() == 2


def test_failed_attendance_notice_expires_once_the_window_closes(
    now, make_user, make_event, register, failing_for, mailoutbox
):
    # Window runs from the start until local midnight
    event = make_event(start_at=now - timedelta(hours=1))
    register(event, make_user(email="late@example.com"))
    Notification.objects.filter(type=Notification.Type.EVENT_REGISTRATION).delete()

    first = send_attendance_notifications(now=now, deliver=failing_for("late@example.com"))
    assert first.failed == 1

    closed = now + timedelta(days=1)
    result = dispatch_scheduled_notifications(now=closed)
    notification = Notification.objects.get(type=Notification.Type.ATTENDANCE_STARTED)

    assert result.sent == 0
    assert result.expired == 1
    assert "1 expired" in result.summary()
    assert mailoutbox == []
    assert notification.expired_at == closed
    assert notification.sent_at is None
    assert Notification.objects.expired().get() == notification

    # Expired notifications are never picked up again
    assert dispatch_scheduled_notifications(now=closed + timedelta(hours=1)).expired == 0


def test_failed_attendance_notice_is_retried_while_the_window_is_open(
    now, make_user, make_event, register, failing_for, mailoutbox
):
    event = make_event(start_at=now - timedelta(hours=1))
    register(event, make_user(email="late@example.com"))
    Notification.objects.filter(type=Notification.Type.EVENT_REGISTRATION).delete()
    send_attendance_notifications(now=now, deliver=failing_for("late@example.com"))

    result = dispatch_scheduled_notifications(now=now + timedelta(hours=1))

    assert result.sent == 1
    assert result.expired == 0
    assert len(mailoutbox) == 1


def test_failed_reminder_expires_once_the_event_has_started(
    now, make_user, make_event, register, failing_for, mailoutbox
):
    event = make_event(start_at=now + timedelta(days=1))
    register(event, make_user(email="late@example.com"))
    Notification.objects.filter(type=Notification.Type.EVENT_REGISTRATION).delete()

    first = send_event_reminders(now=now, deliver=failing_for("late@example.com"))
    assert first.failed == 1

    # Still ahead of the event: retried normally
    retry = dispatch_scheduled_notifications(
        now=now + timedelta(hours=1), deliver=failing_for("late@example.com"),
    )
    assert retry.failed == 1

    after_start = now + timedelta(days=3)
    result = dispatch_scheduled_notifications(now=after_start)
    notification = Notification.objects.get(type=Notification.Type.EVENT_REMINDER)

    assert result.sent == 0
    assert result.expired == 1
    assert mailoutbox == []
    assert notification.expired_at == after_start
    assert notification.attempts == 2
