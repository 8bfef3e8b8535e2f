import logging

from apscheduler.schedulers.background import BackgroundScheduler
from django.conf import settings
from django.core.management import call_command
from django.utils import timezone

logger = logging.getLogger(__name__)

# ============================================================
# GLOBAL SAFETY LOCK
# Prevents scheduler from starting more than once per process
# ============================================================
_scheduler = None


def start_scheduler():
    """
    Start the in-process notification scheduler.

    - Respects ENABLE_SCHEDULER setting
    - Prevents double start (autoreload, repeated imports)
    - process_notifications runs every NOTIFICATION_PROCESS_INTERVAL_MINUTES,
      schedule_notifications every NOTIFICATION_SCHEDULE_INTERVAL_HOURS

    Returns the running scheduler, or None when disabled.
    """
    global _scheduler

    if not getattr(settings, "ENABLE_SCHEDULER", False):
        logger.info("APScheduler disabled via settings (ENABLE_SCHEDULER=False)")
        return None

    if _scheduler is not None:
        logger.info("APScheduler already running, skipping initialization")
        return _scheduler

    process_minutes = getattr(settings, "NOTIFICATION_PROCESS_INTERVAL_MINUTES", 60)
    schedule_hours = getattr(settings, "NOTIFICATION_SCHEDULE_INTERVAL_HOURS", 6)

    logger.info("Starting APScheduler...")

    scheduler = BackgroundScheduler(timezone=settings.TIME_ZONE)

    # max_instances=1 keeps a slow run from overlapping the next tick;
    # coalesce merges runs missed while the process was down.
    scheduler.add_job(
        run_process_notifications,
        trigger="interval",
        minutes=process_minutes,
        id="process_notifications",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.add_job(
        run_schedule_notifications,
        trigger="interval",
        hours=schedule_hours,
        id="schedule_notifications",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    _scheduler = scheduler

    logger.info(
        "APScheduler started: process_notifications every %s minute(s), "
        "schedule_notifications every %s hour(s)",
        process_minutes, schedule_hours,
    )
    return _scheduler


def shutdown_scheduler():
    global _scheduler

    if _scheduler is None:
        return

    _scheduler.shutdown(wait=False)
    _scheduler = None
    logger.info("APScheduler stopped")


def _run_command(name):
    """
    Job wrapper around a management command. Keeps all business logic
    out of the scheduler; APScheduler logs a failed run and the next
    tick retries it.
    """
    logger.info(f"Running scheduled {name} at {timezone.now():%Y-%m-%d %H:%M:%S}")

    call_command(name)


def run_process_notifications():
    _run_command("process_notifications")


def run_schedule_notifications():
    _run_command("schedule_notifications")
