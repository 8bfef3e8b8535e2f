import os
import sys

from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"
    verbose_name = "Notifications"

    def ready(self):
        # Registers the lifecycle signal receivers
        import notifications.signals  # noqa: F401

        # Development server only; WSGI deployments start the scheduler
        # from eventhub_project/wsgi.py. The autoreloader imports the
        # project twice, only the child (RUN_MAIN) should run jobs.
        if "runserver" not in sys.argv or os.environ.get("RUN_MAIN") != "true":
            return

        from .scheduler import start_scheduler
        start_scheduler()
