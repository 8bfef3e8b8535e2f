import secrets
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone


def end_of_local_day(value):
    """Midnight following ``value`` in the current time zone."""
    local = timezone.localtime(value)
    next_day = local + timedelta(days=1)
    return next_day.replace(hour=0, minute=0, second=0, microsecond=0)


# ============================================================
# EVENT
# ============================================================

class EventQuerySet(models.QuerySet):

    def approved(self):
        """Active events that passed the approval workflow."""
        return self.filter(is_active=True, status=Event.Status.APPROVED)

    def starting_on(self, day):
        return self.filter(start_at__date=day)

    def attendance_open(self, now):
        today = timezone.localdate(now)
        return (
            self
            .filter(
                Q(attendance_opens_at__lte=now)
                | Q(attendance_opens_at__isnull=True, start_at__lte=now)
            )
            .filter(
                Q(attendance_closes_at__gt=now)
                | Q(attendance_closes_at__isnull=True, start_at__date__gte=today)
            )
        )

    def ended(self, now):
        today = timezone.localdate(now)
        return self.filter(
            Q(end_at__lte=now)
            | Q(end_at__isnull=True, start_at__date__lt=today)
        )


class Event(models.Model):

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        PENDING = "pending", "Pending approval"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"
        CANCELLED = "cancelled", "Cancelled"

    # =====================================================
    # DESCRIPTION
    # =====================================================
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=255, blank=True)

    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="organized_events",
    )

    # =====================================================
    # SCHEDULE
    # =====================================================
    start_at = models.DateTimeField(db_index=True)
    end_at = models.DateTimeField(null=True, blank=True, db_index=True)

    # Attendance window overrides. When empty, attendance opens at
    # start_at and closes at the end of the event's local day.
    attendance_opens_at = models.DateTimeField(null=True, blank=True)
    attendance_closes_at = models.DateTimeField(null=True, blank=True)

    registration_deadline = models.DateTimeField(null=True, blank=True)
    max_participants = models.PositiveIntegerField(null=True, blank=True)

    # =====================================================
    # APPROVAL WORKFLOW
    # =====================================================
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    is_active = models.BooleanField(default=True, db_index=True)

    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_events",
    )
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)

    # =====================================================
    # CERTIFICATES
    # =====================================================
    has_certificate = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = EventQuerySet.as_manager()

    class Meta:
        ordering = ["start_at"]

    def __str__(self):
        return self.title

    # =====================================================
    # TIME HELPERS
    # =====================================================
    def attendance_window(self):
        opens = self.attendance_opens_at or self.start_at
        closes = self.attendance_closes_at or end_of_local_day(self.start_at)
        return opens, closes

    def is_attendance_open(self, now=None):
        now = now or timezone.now()
        opens, closes = self.attendance_window()
        return opens <= now < closes

    def has_ended(self, now=None):
        now = now or timezone.now()
        if self.end_at:
            return self.end_at <= now
        return timezone.localdate(self.start_at) < timezone.localdate(now)

    def is_registration_open(self, now=None):
        now = now or timezone.now()
        if self.start_at <= now:
            return False
        if self.registration_deadline and self.registration_deadline < now:
            return False
        return True

    def has_reached_capacity(self):
        if not self.max_participants:
            return False
        return self.registrations.count() >= self.max_participants


# ============================================================
# REGISTRATION (EVENT PARTICIPANT)
# ============================================================

class Registration(models.Model):

    class AttendanceStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        PRESENT = "present", "Present"
        ABSENT = "absent", "Absent"

    event = models.ForeignKey(
        Event,
        on_delete=models.CASCADE,
        related_name="registrations",
    )
    participant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="event_registrations",
    )

    registration_number = models.CharField(max_length=30, unique=True)

    # =====================================================
    # ATTENDANCE
    # =====================================================
    attendance_token = models.CharField(
        max_length=10,
        unique=True,
        null=True,
        blank=True,
    )
    token_generated_at = models.DateTimeField(null=True, blank=True)
    token_expires_at = models.DateTimeField(null=True, blank=True)

    attendance_status = models.CharField(
        max_length=20,
        choices=AttendanceStatus.choices,
        default=AttendanceStatus.PENDING,
    )
    verification_method = models.CharField(max_length=20, blank=True)
    attendance_verified_at = models.DateTimeField(null=True, blank=True)

    has_received_certificate = models.BooleanField(default=False)

    registered_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["registered_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "participant"],
                name="unique_event_participant",
            ),
        ]

    def __str__(self):
        return f"{self.registration_number} | {self.participant} @ {self.event}"

    @property
    def is_attendance_verified(self):
        return self.attendance_verified_at is not None

    @property
    def can_receive_certificate(self):
        return (
            self.event.has_certificate
            and self.is_attendance_verified
        )

    def is_token_valid(self, now=None):
        now = now or timezone.now()
        if not self.attendance_token:
            return False
        return self.token_expires_at is None or self.token_expires_at > now

    def generate_attendance_token(self, now=None):
        """
        Assign a fresh 10-digit token. The token stays valid until the
        event's attendance window closes.
        """
        now = now or timezone.now()

        token = f"{secrets.randbelow(10**10):010d}"
        while Registration.objects.filter(attendance_token=token).exists():
            token = f"{secrets.randbelow(10**10):010d}"

        self.attendance_token = token
        self.token_generated_at = now
        self.token_expires_at = self.event.attendance_window()[1]
        self.attendance_status = self.AttendanceStatus.PENDING
        self.verification_method = "token"
        return token


# ============================================================
# CERTIFICATE
# ============================================================

class Certificate(models.Model):

    class Status(models.TextChoices):
        GENERATED = "generated", "Generated"
        DOWNLOADED = "downloaded", "Downloaded"
        REVOKED = "revoked", "Revoked"

    registration = models.OneToOneField(
        Registration,
        on_delete=models.CASCADE,
        related_name="certificate",
    )
    event = models.ForeignKey(
        Event,
        on_delete=models.CASCADE,
        related_name="certificates",
    )
    participant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="certificates",
    )

    certificate_number = models.CharField(max_length=60, unique=True)

    # Reference to the rendered artifact (storage path or URL)
    file_path = models.CharField(max_length=255, blank=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.GENERATED,
    )
    issued_at = models.DateTimeField(default=timezone.now)
    downloaded_at = models.DateTimeField(null=True, blank=True)
    download_count = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["-issued_at"]

    def __str__(self):
        return self.certificate_number

    def mark_as_downloaded(self):
        self.status = self.Status.DOWNLOADED
        self.downloaded_at = timezone.now()
        self.download_count += 1
        self.save(update_fields=["status", "downloaded_at", "download_count"])
