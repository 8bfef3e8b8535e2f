from django.contrib import admin, messages
from django.core.exceptions import ValidationError

from .models import Certificate, Event, Registration
from .services.approval import approve_event, reject_event
from .services.certificates import issue_certificate


# ============================================================
# INLINES
# ============================================================

class RegistrationInline(admin.TabularInline):
    model = Registration
    extra = 0
    fields = (
        "participant",
        "registration_number",
        "attendance_status",
        "attendance_verified_at",
        "has_received_certificate",
    )
    readonly_fields = (
        "registration_number",
        "attendance_verified_at",
    )
    show_change_link = True


# ============================================================
# EVENT ADMIN
# ============================================================

@admin.register(Event)
class EventAdmin(admin.ModelAdmin):

    list_display = (
        "id",
        "title",
        "organizer",
        "start_at",
        "end_at",
        "status",
        "is_active",
        "has_certificate",
    )

    list_filter = (
        "status",
        "is_active",
        "has_certificate",
        "start_at",
    )

    search_fields = (
        "title",
        "description",
        "location",
        "organizer__username",
    )

    ordering = ("-start_at",)
    list_per_page = 25

    fieldsets = (
        ("Event", {
            "fields": ("title", "description", "location", "organizer"),
        }),
        ("Schedule", {
            "fields": (
                "start_at",
                "end_at",
                "attendance_opens_at",
                "attendance_closes_at",
                "registration_deadline",
                "max_participants",
            ),
        }),
        ("Approval", {
            "fields": (
                "status",
                "is_active",
                "submitted_at",
                "approved_at",
                "approved_by",
                "rejected_at",
                "rejection_reason",
            ),
        }),
        ("Certificates", {
            "fields": ("has_certificate",),
        }),
    )

    readonly_fields = (
        "submitted_at",
        "approved_at",
        "approved_by",
        "rejected_at",
    )

    inlines = (RegistrationInline,)

    actions = (
        "approve_selected",
        "reject_selected",
    )

    @admin.action(description="Approve selected events")
    def approve_selected(self, request, queryset):
        approved = 0
        for event in queryset:
            try:
                approve_event(event, approved_by=request.user)
            except ValidationError as exc:
                self.message_user(request, f"{event}: {exc.messages[0]}", messages.WARNING)
                continue
            approved += 1

        self.message_user(request, f"{approved} event(s) approved.")

    @admin.action(description="Reject selected events")
    def reject_selected(self, request, queryset):
        rejected = 0
        for event in queryset:
            try:
                reject_event(
                    event,
                    rejected_by=request.user,
                    reason="Rejected by an administrator.",
                )
            except ValidationError as exc:
                self.message_user(request, f"{event}: {exc.messages[0]}", messages.WARNING)
                continue
            rejected += 1

        self.message_user(request, f"{rejected} event(s) rejected.")


# ============================================================
# REGISTRATION ADMIN
# ============================================================

@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):

    list_display = (
        "registration_number",
        "participant",
        "event",
        "attendance_status",
        "attendance_verified_at",
        "has_received_certificate",
    )

    list_filter = (
        "attendance_status",
        "has_received_certificate",
    )

    search_fields = (
        "registration_number",
        "participant__username",
        "participant__email",
        "event__title",
    )

    readonly_fields = (
        "attendance_token",
        "token_generated_at",
        "token_expires_at",
        "registered_at",
    )

    actions = ("issue_certificates",)

    @admin.action(description="Issue certificates for verified attendees")
    def issue_certificates(self, request, queryset):
        issued = 0
        for registration in queryset.select_related("event"):
            if not registration.can_receive_certificate:
                continue
            _, created = issue_certificate(registration)
            issued += int(created)

        self.message_user(request, f"{issued} certificate(s) issued.")


# ============================================================
# CERTIFICATE ADMIN
# ============================================================

@admin.register(Certificate)
class CertificateAdmin(admin.ModelAdmin):

    list_display = (
        "certificate_number",
        "participant",
        "event",
        "status",
        "issued_at",
        "download_count",
    )

    list_filter = ("status", "issued_at")

    search_fields = (
        "certificate_number",
        "participant__username",
        "event__title",
    )

    readonly_fields = ("issued_at", "downloaded_at", "download_count")
