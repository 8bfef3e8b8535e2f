from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from events.models import Event, Registration


class NotificationQuerySet(models.QuerySet):

    def pending(self):
        """Not yet delivered, dead-lettered or expired."""
        return self.filter(
            sent_at__isnull=True,
            failed_at__isnull=True,
            expired_at__isnull=True,
        )

    def due(self, now):
        """
        Pending notifications whose due time has come. Anything already
        attempted at ``now`` (earlier in the same batch run) is left for
        the next run.
        """
        return self.pending().filter(due_at__lte=now).filter(
            Q(last_attempt_at__isnull=True) | Q(last_attempt_at__lt=now)
        )

    def dead_lettered(self):
        return self.filter(sent_at__isnull=True, failed_at__isnull=False)

    def expired(self):
        return self.filter(sent_at__isnull=True, expired_at__isnull=False)

    def unread(self):
        return self.filter(is_read=False)


class Notification(models.Model):
    """
    A user-facing notification and, at the same time, the delivery log.

    A record is created the first time a condition is detected and is
    never deleted by the batch; ``sent_at`` stays empty until delivery
    succeeds. The (type, recipient, event) triple is the idempotency key.
    """

    # =====================================================
    # TYPE
    # =====================================================
    class Type(models.TextChoices):
        NEW_EVENT = "new_event", "New event"
        EVENT_REGISTRATION = "event_registration", "Event registration"
        EVENT_REMINDER = "event_reminder", "Event reminder"
        ATTENDANCE_STARTED = "attendance_started", "Attendance started"
        EVENT_COMPLETED = "event_completed", "Event completed"
        CERTIFICATE_GENERATED = "certificate_generated", "Certificate generated"
        SCHEDULED = "scheduled", "Scheduled"

    # =====================================================
    # SEVERITY / PRIORITY (UI + sorting)
    # =====================================================
    class Priority(models.TextChoices):
        INFO = "info", "Info"
        WARNING = "warning", "Warning"
        DANGER = "danger", "Danger"

    # =====================================================
    # CORE RELATIONSHIPS
    # =====================================================
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User who receives this notification"
    )

    event = models.ForeignKey(
        Event,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications"
    )

    registration = models.ForeignKey(
        Registration,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications"
    )

    # =====================================================
    # CLASSIFICATION
    # =====================================================
    type = models.CharField(
        max_length=30,
        choices=Type.choices,
        db_index=True
    )

    priority = models.CharField(
        max_length=20,
        choices=Priority.choices,
        default=Priority.INFO,
        db_index=True
    )

    # =====================================================
    # CONTENT
    # =====================================================
    title = models.CharField(
        max_length=200,
        help_text="Short headline shown in notification list"
    )

    message = models.TextField(
        help_text="Detailed message shown when expanded"
    )

    data = models.JSONField(default=dict, blank=True)

    # =====================================================
    # DELIVERY
    # =====================================================
    due_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="Earliest time the notification may be delivered"
    )

    sent_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Empty while the notification is pending"
    )

    attempts = models.PositiveIntegerField(default=0)
    last_attempt_at = models.DateTimeField(null=True, blank=True)
    last_error = models.TextField(blank=True)

    failed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set when delivery attempts are exhausted"
    )

    expired_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set when the notification went stale before it could be delivered"
    )

    # =====================================================
    # INBOX STATE
    # =====================================================
    is_read = models.BooleanField(
        default=False,
        db_index=True
    )

    read_at = models.DateTimeField(
        null=True,
        blank=True
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True
    )

    objects = NotificationQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
            models.Index(fields=["type", "due_at"], name="notif_type_due_idx"),
            models.Index(fields=["sent_at", "due_at"], name="notif_sent_due_idx"),
        ]
        constraints = [
            # Free-form scheduled announcements may repeat per event
            models.UniqueConstraint(
                fields=["type", "recipient", "event"],
                condition=~Q(type="scheduled"),
                name="unique_notification_per_type_recipient_event",
            ),
        ]

    def __str__(self):
        return (
            f"{self.recipient} | "
            f"{self.type.upper()} | "
            f"{self.title}"
        )

    @property
    def is_pending(self):
        return self.sent_at is None

    # =====================================================
    # DELIVERY BOOKKEEPING
    # =====================================================
    def mark_as_sent(self, now=None):
        now = now or timezone.now()
        self.sent_at = now
        self.attempts += 1
        self.last_attempt_at = now
        self.last_error = ""
        self.save(update_fields=["sent_at", "attempts", "last_attempt_at", "last_error"])

    def record_failed_attempt(self, error, now=None):
        """
        Count a failed delivery. Returns True when this attempt exhausted
        NOTIFICATION_MAX_ATTEMPTS and the notification was dead-lettered.
        """
        now = now or timezone.now()
        self.attempts += 1
        self.last_attempt_at = now
        self.last_error = str(error)[:2000]

        max_attempts = getattr(settings, "NOTIFICATION_MAX_ATTEMPTS", 5)
        exhausted = bool(max_attempts) and self.attempts >= max_attempts
        if exhausted:
            self.failed_at = now

        self.save(update_fields=["attempts", "last_attempt_at", "last_error", "failed_at"])
        return exhausted

    def requeue(self, now=None):
        """Put a dead-lettered notification back in the pending queue."""
        self.failed_at = None
        self.attempts = 0
        self.last_error = ""
        self.due_at = now or timezone.now()
        self.save(update_fields=["failed_at", "attempts", "last_error", "due_at"])

    def is_stale(self, now=None):
        """
        Reminders are only meaningful before the event starts and
        attendance notices only while the attendance window is open.
        """
        now = now or timezone.now()
        event = self.event

        if event is None:
            return False

        if self.type == self.Type.EVENT_REMINDER:
            return event.start_at <= now

        if self.type == self.Type.ATTENDANCE_STARTED:
            return not event.is_attendance_open(now)

        return False

    def expire(self, now=None):
        """Retire a stale notification; it stays in the inbox, unsent."""
        self.expired_at = now or timezone.now()
        self.save(update_fields=["expired_at"])

    # =====================================================
    # INBOX HELPERS
    # =====================================================
    def mark_as_read(self):
        """Safely mark notification as read."""
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=["is_read", "read_at"])

    @classmethod
    def mark_all_as_read(cls, user, type=None):
        """
        Mark all unread notifications (optionally of one type)
        as read for a user.
        """
        qs = cls.objects.filter(recipient=user, is_read=False)
        if type:
            qs = qs.filter(type=type)

        return qs.update(
            is_read=True,
            read_at=timezone.now()
        )
