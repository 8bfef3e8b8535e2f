import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("start_at", models.DateTimeField(db_index=True)),
                ("end_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("attendance_opens_at", models.DateTimeField(blank=True, null=True)),
                ("attendance_closes_at", models.DateTimeField(blank=True, null=True)),
                ("registration_deadline", models.DateTimeField(blank=True, null=True)),
                ("max_participants", models.PositiveIntegerField(blank=True, null=True)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("pending", "Pending approval"), ("approved", "Approved"), ("rejected", "Rejected"), ("cancelled", "Cancelled")], db_index=True, default="draft", max_length=20)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True)),
                ("has_certificate", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("approved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="approved_events", to=settings.AUTH_USER_MODEL)),
                ("organizer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="organized_events", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["start_at"],
            },
        ),
        migrations.CreateModel(
            name="Registration",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("registration_number", models.CharField(max_length=30, unique=True)),
                ("attendance_token", models.CharField(blank=True, max_length=10, null=True, unique=True)),
                ("token_generated_at", models.DateTimeField(blank=True, null=True)),
                ("token_expires_at", models.DateTimeField(blank=True, null=True)),
                ("attendance_status", models.CharField(choices=[("pending", "Pending"), ("present", "Present"), ("absent", "Absent")], default="pending", max_length=20)),
                ("verification_method", models.CharField(blank=True, max_length=20)),
                ("attendance_verified_at", models.DateTimeField(blank=True, null=True)),
                ("has_received_certificate", models.BooleanField(default=False)),
                ("registered_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("event", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="registrations", to="events.event")),
                ("participant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="event_registrations", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["registered_at"],
            },
        ),
        migrations.AddConstraint(
            model_name="registration",
            constraint=models.UniqueConstraint(fields=("event", "participant"), name="unique_event_participant"),
        ),
        migrations.CreateModel(
            name="Certificate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("certificate_number", models.CharField(max_length=60, unique=True)),
                ("file_path", models.CharField(blank=True, max_length=255)),
                ("status", models.CharField(choices=[("generated", "Generated"), ("downloaded", "Downloaded"), ("revoked", "Revoked")], default="generated", max_length=20)),
                ("issued_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("downloaded_at", models.DateTimeField(blank=True, null=True)),
                ("download_count", models.PositiveIntegerField(default=0)),
                ("event", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="certificates", to="events.event")),
                ("participant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="certificates", to=settings.AUTH_USER_MODEL)),
                ("registration", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="certificate", to="events.registration")),
            ],
            options={
                "ordering": ["-issued_at"],
            },
        ),
    ]
