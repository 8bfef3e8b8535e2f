from datetime import timedelta
from io import StringIO
from smtplib import SMTPRecipientsRefused

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import OperationalError
from django.utils import timezone

from notifications.models import Notification
from notifications.services import run_notification_pipeline
from notifications.services.results import StageResult

pytestmark = pytest.mark.django_db


def record_stage(name, calls):
    def stage(*, now, deliver):
        calls.append(name)
        return StageResult(name)

    return stage


def test_stages_run_in_order_with_a_shared_clock(now):
    calls = []
    seen = []

    def clocked(*, now, deliver):
        seen.append(now)
        return StageResult("clocked")

    stages = [
        ("reminders", record_stage("reminders", calls)),
        ("attendance", record_stage("attendance", calls)),
        ("clocked", clocked),
        ("scheduled", record_stage("scheduled", calls)),
    ]

    result = run_notification_pipeline(now=now, stages=stages)

    assert result.ok
    assert calls == ["reminders", "attendance", "scheduled"]
    assert seen == [now]
    assert [stage.name for stage in result.stages] == [
        "reminders", "attendance", "clocked", "scheduled",
    ]


def test_stage_failure_aborts_remaining_stages(now, monkeypatch):
    calls = []

    def outage(*, now, deliver):
        raise OperationalError("database is unreachable")

    monkeypatch.setattr("notifications.services.reminders.send_event_reminders", outage)
    monkeypatch.setattr(
        "notifications.services.attendance.send_attendance_notifications",
        record_stage("attendance", calls),
    )
    monkeypatch.setattr(
        "notifications.services.dispatch.dispatch_scheduled_notifications",
        record_stage("scheduled", calls),
    )

    result = run_notification_pipeline(now=now)

    assert not result.ok
    assert result.failed_stage == "reminders"
    assert isinstance(result.error, OperationalError)
    assert result.stages == []
    assert calls == []


def test_database_errors_are_not_swallowed_per_recipient(
    now, make_user, make_event, register
):
    event = make_event(start_at=now + timedelta(days=1))
    register(event, make_user())

    def deliver(notification):
        raise OperationalError("lost connection mid-batch")

    result = run_notification_pipeline(now=now, deliver=deliver)

    assert result.failed_stage == "reminders"
    assert result.delivery_failures == []


def test_recipient_failure_does_not_fail_the_pipeline(
    now, make_user, make_event, register, failing_for
):
    event = make_event(start_at=now + timedelta(days=1))
    register(event, make_user(email="broken@example.com"))
    register(event, make_user(email="ok@example.com"))

    result = run_notification_pipeline(now=now, deliver=failing_for("broken@example.com"))

    assert result.ok
    assert [stage.name for stage in result.stages] == [
        "reminders", "attendance", "completion", "scheduled",
    ]
    reminders = result.stage("reminders")
    assert (reminders.sent, reminders.failed) == (1, 1)

    # The scheduled stage delivers the registration confirmations but
    # does not retry the reminder that already failed in this run
    scheduled = result.stage("scheduled")
    assert (scheduled.sent, scheduled.failed) == (1, 1)
    assert {f.notification_id for f in result.delivery_failures} == set(
        Notification.objects.filter(
            recipient__email="broken@example.com"
        ).values_list("pk", flat=True)
    )


def test_pipeline_runs_are_idempotent(now, make_user, make_event, register):
    tomorrow = make_event(title="Tomorrow", start_at=now + timedelta(days=1))
    today = make_event(title="Today", start_at=now - timedelta(hours=1))
    finished = make_event(
        title="Finished",
        start_at=now - timedelta(days=2),
        end_at=now - timedelta(days=2) + timedelta(hours=3),
    )
    for event in (tomorrow, today, finished):
        register(event, make_user())

    run_notification_pipeline(now=now)
    state = sorted(
        Notification.objects.values_list("type", "recipient_id", "event_id", "sent_at")
    )

    run_notification_pipeline(now=now)
    again = sorted(
        Notification.objects.values_list("type", "recipient_id", "event_id", "sent_at")
    )

    assert again == state
    assert {row[0] for row in state} == {
        Notification.Type.EVENT_REGISTRATION,
        Notification.Type.EVENT_REMINDER,
        Notification.Type.ATTENDANCE_STARTED,
        Notification.Type.EVENT_COMPLETED,
    }
    # Registration confirmations are delivered by the scheduled stage
    assert all(row[3] == now for row in state)


# ============================================================
# MANAGEMENT COMMANDS
# ============================================================

def finished_event_with_participants(make_user, make_event, register, *emails):
    current = timezone.now()
    event = make_event(
        start_at=current - timedelta(days=2),
        end_at=current - timedelta(days=2) + timedelta(hours=2),
    )
    for email in emails:
        register(event, make_user(email=email))
    return event


@pytest.mark.parametrize(
    "command, first_line, last_line",
    [
        (
            "process_notifications",
            "Starting notification processing...",
            "Notification processing completed successfully!",
        ),
        (
            "schedule_notifications",
            "Starting notification scheduling...",
            "Notification scheduling completed successfully!",
        ),
    ],
)
def test_commands_report_each_stage(
    command, first_line, last_line, make_user, make_event, register, mailoutbox
):
    finished_event_with_participants(make_user, make_event, register, "a@example.com")
    out = StringIO()

    call_command(command, stdout=out, no_color=True)

    output = out.getvalue()
    assert first_line in output
    assert "Checking attendance notifications..." in output
    assert "Checking completed event notifications..." in output
    assert "Processing scheduled notifications..." in output
    assert "completion: 1 created, 1 sent, 0 skipped, 0 failed" in output
    assert output.rstrip().endswith(last_line)
    assert len(mailoutbox) == 2  # completion + registration confirmation


def test_running_commands_back_to_back_adds_no_duplicates(make_user, make_event, register):
    finished_event_with_participants(
        make_user, make_event, register, "a@example.com", "b@example.com"
    )

    call_command("process_notifications", stdout=StringIO())
    first = Notification.objects.count()
    call_command("schedule_notifications", stdout=StringIO())

    assert Notification.objects.count() == first
    assert not Notification.objects.pending().exists()


def test_command_fails_with_exit_code_one_on_stage_error(monkeypatch):
    def outage(*, now, deliver):
        raise OperationalError("database is unreachable")

    monkeypatch.setattr("notifications.services.reminders.send_event_reminders", outage)
    out = StringIO()

    with pytest.raises(CommandError) as excinfo:
        call_command("process_notifications", stdout=out, no_color=True)

    assert excinfo.value.returncode == 1
    assert "Error processing notifications: database is unreachable" in str(excinfo.value)
    assert "Checking attendance notifications..." not in out.getvalue()


def test_command_succeeds_despite_single_mail_failure(
    monkeypatch, make_user, make_event, register, mailoutbox
):
    from django.core import mail

    finished_event_with_participants(
        make_user, make_event, register, "broken@example.com", "ok@example.com"
    )
    real_send_mail = mail.send_mail

    def flaky_send_mail(*, recipient_list, **kwargs):
        if recipient_list == ["broken@example.com"]:
            raise SMTPRecipientsRefused({"broken@example.com": (550, b"No such user")})
        return real_send_mail(recipient_list=recipient_list, **kwargs)

    monkeypatch.setattr("notifications.services.delivery.send_mail", flaky_send_mail)
    out = StringIO()

    call_command("process_notifications", stdout=out, no_color=True)

    output = out.getvalue()
    assert "could not be delivered" in output
    assert "Notification processing completed successfully!" in output
    assert {m.to[0] for m in mailoutbox} == {"ok@example.com"}
