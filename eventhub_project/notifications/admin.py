from django.contrib import admin
from django.utils import timezone
from django.utils.html import format_html

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """
    Inbox and delivery log in one place: pending, sent and
    dead-lettered notifications can all be filtered here.
    """

    # =====================================================
    # LIST VIEW
    # =====================================================
    list_display = (
        "id",
        "recipient",
        "type",
        "event",
        "colored_title",
        "delivery_state",
        "attempts",
        "due_at",
        "sent_at",
    )

    list_filter = (
        "type",
        "priority",
        "is_read",
        ("sent_at", admin.EmptyFieldListFilter),
        ("failed_at", admin.EmptyFieldListFilter),
        ("expired_at", admin.EmptyFieldListFilter),
        "due_at",
    )

    search_fields = (
        "title",
        "message",
        "recipient__username",
        "recipient__email",
        "event__title",
    )

    ordering = ("-created_at",)
    list_per_page = 25

    # =====================================================
    # FIELDSETS (DETAIL VIEW)
    # =====================================================
    fieldsets = (
        ("Recipient", {
            "fields": ("recipient",),
        }),
        ("Classification", {
            "fields": ("type", "priority"),
        }),
        ("Content", {
            "fields": ("title", "message", "data"),
        }),
        ("Context", {
            "fields": ("event", "registration"),
        }),
        ("Delivery", {
            "fields": (
                "due_at",
                "sent_at",
                "attempts",
                "last_attempt_at",
                "last_error",
                "failed_at",
                "expired_at",
            ),
        }),
        ("Inbox", {
            "fields": ("is_read", "read_at", "created_at"),
        }),
    )

    readonly_fields = (
        "created_at",
        "read_at",
        "sent_at",
        "attempts",
        "last_attempt_at",
        "last_error",
        "failed_at",
        "expired_at",
    )

    # =====================================================
    # ACTIONS
    # =====================================================
    actions = (
        "mark_as_read",
        "mark_as_unread",
        "requeue_failed",
    )

    # =====================================================
    # CUSTOM DISPLAY HELPERS
    # =====================================================
    def colored_title(self, obj):
        """
        Color the title based on type for fast scanning.
        """
        color_map = {
            Notification.Type.NEW_EVENT: "#2563eb",              # blue
            Notification.Type.EVENT_REGISTRATION: "#0ea5e9",     # sky
            Notification.Type.EVENT_REMINDER: "#f59e0b",         # orange
            Notification.Type.ATTENDANCE_STARTED: "#7c3aed",     # purple
            Notification.Type.EVENT_COMPLETED: "#16a34a",        # green
            Notification.Type.CERTIFICATE_GENERATED: "#16a34a",  # green
            Notification.Type.SCHEDULED: "#6b7280",              # gray
        }

        color = color_map.get(obj.type, "#000000")

        return format_html(
            '<span style="color:{}; font-weight:600;">{}</span>',
            color,
            obj.title,
        )

    colored_title.short_description = "Title"

    @admin.display(description="Delivery")
    def delivery_state(self, obj):
        if obj.sent_at:
            return "sent"
        if obj.failed_at:
            return "dead-lettered"
        if obj.expired_at:
            return "expired"
        return "pending"

    # =====================================================
    # ADMIN ACTIONS
    # =====================================================
    @admin.action(description="Mark selected notifications as READ")
    def mark_as_read(self, request, queryset):
        queryset.filter(is_read=False).update(is_read=True, read_at=timezone.now())

    @admin.action(description="Mark selected notifications as UNREAD")
    def mark_as_unread(self, request, queryset):
        queryset.update(is_read=False, read_at=None)

    @admin.action(description="Requeue selected dead-lettered notifications")
    def requeue_failed(self, request, queryset):
        requeued = 0
        for notification in queryset.dead_lettered():
            notification.requeue()
            requeued += 1

        self.message_user(request, f"{requeued} notification(s) requeued.")
