"""Admin configuration for incident models."""

from django.contrib import admin
from django.utils.html import format_html
from django_object_actions import DjangoObjectActions
from django_object_actions import action as object_action

from apps.incidents.exceptions import IncidentResponseError
from apps.incidents.models import Incident, IncidentSequence, IncidentStatus, TimelineEvent
from apps.incidents.services import IncidentOrchestrator
from config.admin import prettify_json

SEVERITY_BADGE_COLORS = {
    "P0": "#dc3545",
    "P1": "#fd7e14",
    "P2": "#ffc107",
    "P3": "#28a745",
}

STATUS_BADGE_COLORS = {
    "open": "#dc3545",
    "investigating": "#ffc107",
    "resolved": "#28a745",
    "closed": "#6c757d",
}


def _badge(color, text):
    return format_html(
        '<span style="background-color: {}; color: white; padding: 3px 8px; '
        'border-radius: 3px; font-size: 11px;">{}</span>',
        color,
        text,
    )


class TimelineEventInline(admin.TabularInline):
    """Read-only display of an incident's audit timeline."""

    model = TimelineEvent
    extra = 0
    ordering = ["sequence"]
    readonly_fields = ["sequence", "timestamp", "action_type", "pretty_details"]
    fields = ["sequence", "timestamp", "action_type", "pretty_details"]
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    @admin.display(description="Details")
    def pretty_details(self, obj):
        return prettify_json(obj.details)


@admin.register(Incident)
class IncidentAdmin(DjangoObjectActions, admin.ModelAdmin):
    """
    Admin for Incident model.

    Status buttons go through IncidentOrchestrator so only allowed transitions
    are applied and each one lands on the timeline.
    """

    list_display = [
        "id",
        "severity_badge",
        "status_badge",
        "service",
        "team",
        "reporter",
        "created_at",
        "resolved_at",
    ]
    list_filter = ["status", "severity", "team"]
    search_fields = ["id", "description", "service", "reporter"]
    readonly_fields = [
        "id",
        "severity",
        "status",
        "last_event_seq",
        "created_at",
        "updated_at",
        "resolved_at",
        "closed_at",
    ]
    date_hierarchy = "created_at"
    inlines = [TimelineEventInline]
    change_actions = [
        "investigate_incident",
        "resolve_incident",
        "close_incident",
        "reopen_incident",
    ]

    fieldsets = [
        (
            None,
            {
                "fields": ["id", "severity", "status", "service", "team", "reporter"],
            },
        ),
        (
            "Details",
            {
                "fields": ["description"],
            },
        ),
        (
            "Timestamps",
            {
                "fields": ["created_at", "updated_at", "resolved_at", "closed_at", "last_event_seq"],
            },
        ),
    ]

    def has_add_permission(self, request):
        # Incidents are created through the API or create_incident command
        return False

    def _transition(self, request, obj, new_status, verb):
        try:
            IncidentOrchestrator().update_status(
                obj.pk, new_status, notes=f"{verb} from admin by {request.user}"
            )
        except IncidentResponseError as e:
            self.message_user(request, e.message, level="warning")
            return
        self.message_user(request, f"Incident {obj.pk} {verb}.")

    @object_action(label="Investigate", description="Start investigating this incident")
    def investigate_incident(self, request, obj):
        self._transition(request, obj, IncidentStatus.INVESTIGATING, "moved to investigating")

    @object_action(label="Resolve", description="Mark this incident as resolved")
    def resolve_incident(self, request, obj):
        self._transition(request, obj, IncidentStatus.RESOLVED, "resolved")

    @object_action(label="Close", description="Mark this incident as closed")
    def close_incident(self, request, obj):
        self._transition(request, obj, IncidentStatus.CLOSED, "closed")

    @object_action(label="Reopen", description="Reopen a resolved incident")
    def reopen_incident(self, request, obj):
        self._transition(request, obj, IncidentStatus.INVESTIGATING, "reopened")

    @admin.display(description="Severity")
    def severity_badge(self, obj):
        return _badge(SEVERITY_BADGE_COLORS.get(obj.severity, "#6c757d"), obj.severity)

    @admin.display(description="Status")
    def status_badge(self, obj):
        return _badge(STATUS_BADGE_COLORS.get(obj.status, "#6c757d"), obj.status.upper())


@admin.register(TimelineEvent)
class TimelineEventAdmin(admin.ModelAdmin):
    """Read-only admin for timeline events."""

    list_display = ["incident", "sequence", "action_type", "timestamp"]
    list_filter = ["action_type"]
    search_fields = ["incident__id"]
    readonly_fields = ["incident", "sequence", "timestamp", "action_type", "pretty_details"]
    exclude = ["details"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description="Details")
    def pretty_details(self, obj):
        return prettify_json(obj.details)


@admin.register(IncidentSequence)
class IncidentSequenceAdmin(admin.ModelAdmin):
    list_display = ["name", "value"]
    readonly_fields = ["name", "value"]
