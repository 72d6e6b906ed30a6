"""
Incident and timeline models.

Incidents are created only through ``IncidentStore.create_incident``; status
changes go through ``IncidentStore.update_status`` so the state machine and the
audit timeline stay consistent.
"""

import threading

from django.db import models, transaction
from django.db.models import F


class Severity(models.TextChoices):
    """Severity tiers, P0 (critical) through P3 (low)."""

    P0 = "P0", "P0 - Critical"
    P1 = "P1", "P1 - High"
    P2 = "P2", "P2 - Medium"
    P3 = "P3", "P3 - Low"


class IncidentStatus(models.TextChoices):
    """Status of an incident."""

    OPEN = "open", "Open"
    INVESTIGATING = "investigating", "Investigating"
    RESOLVED = "resolved", "Resolved"
    CLOSED = "closed", "Closed"


class TimelineAction(models.TextChoices):
    """Kinds of timeline events."""

    CREATED = "created", "Created"
    NOTIFIED = "notified", "Notified"
    ESCALATED = "escalated", "Escalated"
    STATUS_CHANGED = "status_changed", "Status changed"
    RESOLVED = "resolved", "Resolved"
    NOTE = "note", "Note"


ACTIVE_STATUSES = [IncidentStatus.OPEN, IncidentStatus.INVESTIGATING]

# SQLite allows a single writer; write transactions on incident tables run
# under this lock within a process.
write_lock = threading.RLock()


class IncidentSequence(models.Model):
    """
    Named monotonic counter.

    Used to allocate incident IDs so that two incidents created within the
    same timestamp tick never collide.
    """

    name = models.CharField(max_length=50, primary_key=True)
    value = models.BigIntegerField(default=0)

    def __str__(self):
        return f"{self.name}={self.value}"

    @classmethod
    def next_value(cls, name: str = "incident") -> int:
        """Atomically increment and return the counter."""
        with write_lock, transaction.atomic():
            cls.objects.get_or_create(name=name)
            cls.objects.filter(name=name).update(value=F("value") + 1)
            return cls.objects.select_for_update().get(name=name).value


class Incident(models.Model):
    """
    A tracked operational problem with severity, service and lifecycle status.
    """

    id = models.CharField(
        max_length=64,
        primary_key=True,
        editable=False,
        help_text="Incident ID (INC-<created timestamp>-<sequence>).",
    )
    description = models.TextField(
        help_text="What is going wrong.",
    )
    severity = models.CharField(
        max_length=2,
        choices=Severity.choices,
        db_index=True,
    )
    service = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Affected service.",
    )
    reporter = models.CharField(
        max_length=255,
        help_text="Who reported the incident.",
    )
    team = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Owning team in the on-call directory (blank uses the default profile).",
    )
    status = models.CharField(
        max_length=20,
        choices=IncidentStatus.choices,
        default=IncidentStatus.OPEN,
        db_index=True,
    )

    # Timeline cursor, bumped under the incident row lock
    last_event_seq = models.PositiveIntegerField(default=0)

    # Timestamps
    created_at = models.DateTimeField(
        db_index=True,
        help_text="When the incident was reported.",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
    )
    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
    )
    closed_at = models.DateTimeField(
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "severity"], name="incident_status_severity_idx"),
        ]

    def __str__(self):
        return f"[{self.severity}/{self.status}] {self.id}"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "severity": self.severity,
            "service": self.service,
            "reporter": self.reporter,
            "team": self.team,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
        }


class TimelineEvent(models.Model):
    """
    Immutable audit record of an action taken against an incident.
    """

    incident = models.ForeignKey(
        Incident,
        on_delete=models.CASCADE,
        related_name="events",
    )
    sequence = models.PositiveIntegerField(
        help_text="1-based position in the incident's timeline.",
    )
    timestamp = models.DateTimeField()
    action_type = models.CharField(
        max_length=20,
        choices=TimelineAction.choices,
        db_index=True,
    )
    details = models.JSONField(
        default=dict,
        blank=True,
    )

    class Meta:
        ordering = ["incident", "sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["incident", "sequence"], name="unique_timeline_sequence"
            ),
        ]

    def __str__(self):
        return f"{self.incident_id}#{self.sequence}: {self.action_type}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Timeline events are append-only")
        super().save(*args, **kwargs)

    def to_dict(self) -> dict:
        return {
            "incident_id": self.incident_id,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat(),
            "action_type": self.action_type,
            "details": self.details,
        }
