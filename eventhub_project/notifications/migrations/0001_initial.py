import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("events", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=[("new_event", "New event"), ("event_registration", "Event registration"), ("event_reminder", "Event reminder"), ("attendance_started", "Attendance started"), ("event_completed", "Event completed"), ("certificate_generated", "Certificate generated"), ("scheduled", "Scheduled")], db_index=True, max_length=30)),
                ("priority", models.CharField(choices=[("info", "Info"), ("warning", "Warning"), ("danger", "Danger")], db_index=True, default="info", max_length=20)),
                ("title", models.CharField(help_text="Short headline shown in notification list", max_length=200)),
                ("message", models.TextField(help_text="Detailed message shown when expanded")),
                ("data", models.JSONField(blank=True, default=dict)),
                ("due_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text="Earliest time the notification may be delivered")),
                ("sent_at", models.DateTimeField(blank=True, db_index=True, help_text="Empty while the notification is pending", null=True)),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("last_attempt_at", models.DateTimeField(blank=True, null=True)),
                ("last_error", models.TextField(blank=True)),
                ("failed_at", models.DateTimeField(blank=True, help_text="Set when delivery attempts are exhausted", null=True)),
                ("expired_at", models.DateTimeField(blank=True, help_text="Set when the notification went stale before it could be delivered", null=True)),
                ("is_read", models.BooleanField(db_index=True, default=False)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("event", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to="events.event")),
                ("recipient", models.ForeignKey(help_text="User who receives this notification", on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL)),
                ("registration", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="notifications", to="events.registration")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
                    models.Index(fields=["type", "due_at"], name="notif_type_due_idx"),
                    models.Index(fields=["sent_at", "due_at"], name="notif_sent_due_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("type", "scheduled"), _negated=True), fields=("type", "recipient", "event"), name="unique_notification_per_type_recipient_event"),
                ],
            },
        ),
    ]
