"""
The notification batch: reminders, attendance, completion, then the
scheduled dispatch, in that order and with one shared clock reading.

Stages do not depend on each other's output; the fixed order only keeps
the logs readable. A stage that raises stops the batch.
"""

import logging

from django.utils import timezone

from notifications.services import attendance, completion, dispatch, reminders
from notifications.services.results import PipelineResult

logger = logging.getLogger(__name__)


def default_stages():
    return [
        ("reminders", reminders.send_event_reminders),
        ("attendance", attendance.send_attendance_notifications),
        ("completion", completion.send_completion_notifications),
        ("scheduled", dispatch.dispatch_scheduled_notifications),
    ]


def run_notification_pipeline(*, now=None, deliver=None, stages=None,
                              on_stage_start=None, on_stage_finish=None):
    """
    Run every stage and return a PipelineResult.

    Per-recipient delivery failures are collected on each StageResult.
    An exception escaping a stage is logged, recorded as the pipeline
    error, and the remaining stages are skipped.
    """
    now = now or timezone.now()
    stages = stages if stages is not None else default_stages()
    result = PipelineResult()

    for name, stage in stages:
        if on_stage_start:
            on_stage_start(name)

        logger.info("Notification stage '%s' started at %s", name, now.isoformat())

        try:
            stage_result = stage(now=now, deliver=deliver)
        except Exception as exc:
            logger.exception(
                "Notification stage '%s' failed; skipping remaining stages", name
            )
            result.fail(name, exc)
            break

        result.stages.append(stage_result)

        if on_stage_finish:
            on_stage_finish(stage_result)

    return result
