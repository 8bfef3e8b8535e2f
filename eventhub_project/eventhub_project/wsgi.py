import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "eventhub_project.settings")

application = get_wsgi_application()

# No-op unless ENABLE_SCHEDULER is set
from notifications.scheduler import start_scheduler  # noqa: E402

start_scheduler()
