# Importing the modules registers their receivers
from . import events  # noqa: F401
from . import registrations  # noqa: F401
