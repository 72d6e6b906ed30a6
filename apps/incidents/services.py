"""
Incident lifecycle services.

IncidentStore owns the state machine and id allocation. IncidentOrchestrator
composes the store, escalation policy, on-call directory, notification router
and audit timeline into the operations used by views, the admin, management
commands and Celery tasks.
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone as dt_timezone
from typing import Any, Iterator

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from apps.incidents.escalation import TICKET_QUEUE, EscalationLevel, EscalationPolicy
from apps.incidents.exceptions import InvalidTransition, NotFoundError, ValidationError
from apps.incidents.models import (
    ACTIVE_STATUSES,
    Incident,
    IncidentSequence,
    IncidentStatus,
    TimelineAction,
    TimelineEvent,
    write_lock,
)
from apps.incidents.timeline import AuditTimeline
from apps.notify.drivers import NotificationRequest, NotificationResult
from apps.notify.drivers.war_room import war_room_url
from apps.notify.router import NotificationRouter
from apps.notify.templating import IncidentMessageRenderer
from apps.oncall.directory import OncallAssignment, OncallDirectory

logger = logging.getLogger(__name__)

DEFAULT_IMMEDIATE_CHANNELS = ["chat", "sms", "email"]
DEFAULT_DEFERRED_CHANNELS = ["chat"]
DEFAULT_WAR_ROOM_SEVERITIES = ["P0"]

# Action types only the store may write
RESERVED_ACTIONS = {TimelineAction.CREATED.value, TimelineAction.STATUS_CHANGED.value}


class KeyedLock:
    """Process-local mutex per key; entries are dropped once nobody holds or waits."""

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: dict[str, list] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


_incident_locks = KeyedLock()


def parse_timestamp(value: datetime | str | None) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime (now when missing)."""
    if value is None or value == "":
        return timezone.now()
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = parse_datetime(value.strip())
        except ValueError:
            parsed = None
        if parsed is None:
            raise ValidationError(f"Invalid timestamp: {value!r}", timestamp=value)
    else:
        raise ValidationError(f"Invalid timestamp: {value!r}", timestamp=str(value))

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def parse_details(details: Any) -> dict[str, Any]:
    """Normalize action details: dicts pass through, JSON objects are decoded, text is wrapped."""
    if details is None or details == "":
        return {}
    if isinstance(details, dict):
        return details
    if isinstance(details, str):
        try:
            decoded = json.loads(details)
        except json.JSONDecodeError:
            return {"text": details}
        if isinstance(decoded, dict):
            return decoded
        return {"text": details}
    raise ValidationError("Details must be an object or a string", details=str(details))


@dataclass
class StatusChange:
    """Outcome of IncidentStore.update_status."""

    incident: Incident
    previous: str
    event: TimelineEvent

    @property
    def changed(self) -> bool:
        return self.previous != self.incident.status


class IncidentStore:
    """
    Authoritative incident state with an explicit lifecycle.

    open -> investigating -> resolved -> closed, with resolved -> investigating
    as the only backward edge. investigating -> investigating records a note.
    """

    TRANSITIONS: dict[str, set[str]] = {
        "open": {"investigating"},
        "investigating": {"resolved", "investigating"},
        "resolved": {"closed", "investigating"},
        "closed": set(),
    }

    def __init__(
        self,
        timeline: AuditTimeline | None = None,
        policy: EscalationPolicy | None = None,
        locks: KeyedLock | None = None,
    ):
        self.timeline = timeline or AuditTimeline()
        self.policy = policy or EscalationPolicy()
        self.locks = locks or _incident_locks

    @staticmethod
    def make_incident_id(created_at: datetime, sequence: int) -> str:
        return f"INC-{created_at.strftime('%Y%m%d%H%M%S')}-{sequence:06d}"

    def create_incident(
        self,
        description: str,
        severity: str,
        service: str,
        reporter: str,
        timestamp: datetime | str | None = None,
        team: str | None = None,
    ) -> Incident:
        """Create an open incident and append its `created` event."""
        self.policy.validate_severity(severity)
        created_at = parse_timestamp(timestamp)

        with write_lock, transaction.atomic():
            sequence = IncidentSequence.next_value()
            incident = Incident.objects.create(
                id=self.make_incident_id(created_at, sequence),
                description=description,
                severity=severity,
                service=service,
                reporter=reporter,
                team=team or "",
                status=IncidentStatus.OPEN,
                created_at=created_at,
            )
            self.timeline.append(
                incident.id,
                TimelineAction.CREATED,
                {
                    "description": description,
                    "severity": severity,
                    "service": service,
                    "reporter": reporter,
                },
                timestamp=created_at,
            )
            incident.refresh_from_db()

        logger.info(f"Created incident {incident.id} ({severity}) for {service}")
        return incident

    def get(self, incident_id: str) -> Incident:
        try:
            return Incident.objects.get(pk=incident_id)
        except Incident.DoesNotExist:
            raise NotFoundError(incident_id)

    def active(self) -> list[Incident]:
        """Open and investigating incidents, newest first."""
        return list(Incident.objects.filter(status__in=ACTIVE_STATUSES).order_by("-created_at"))

    def update_status(self, incident_id: str, new_status: str, notes: str = "") -> StatusChange:
        """Move an incident along an allowed edge and append `status_changed`."""
        if new_status not in IncidentStatus.values:
            raise ValidationError(
                f"Unknown status: {new_status!r}",
                incident_id=incident_id,
                requested_status=new_status,
            )

        with self.locks.hold(incident_id), write_lock, transaction.atomic():
            try:
                incident = Incident.objects.select_for_update().get(pk=incident_id)
            except Incident.DoesNotExist:
                raise NotFoundError(incident_id)

            current = incident.status
            if new_status not in self.TRANSITIONS[current]:
                raise InvalidTransition(incident_id, current, new_status)

            if new_status == current:
                event = self.timeline.append(
                    incident_id, TimelineAction.NOTE, {"status": current, "notes": notes}
                )
                return StatusChange(incident=incident, previous=current, event=event)

            now = timezone.now()
            incident.status = new_status
            if new_status == IncidentStatus.RESOLVED:
                incident.resolved_at = now
            elif new_status == IncidentStatus.CLOSED:
                incident.closed_at = now
            elif current == IncidentStatus.RESOLVED:
                incident.resolved_at = None
            incident.save(update_fields=["status", "resolved_at", "closed_at", "updated_at"])

            event = self.timeline.append(
                incident_id,
                TimelineAction.STATUS_CHANGED,
                {"from": current, "to": new_status, "notes": notes},
                timestamp=now,
            )

        logger.info(f"Incident {incident_id}: {current} -> {new_status}")
        return StatusChange(incident=incident, previous=current, event=event)

    def log_action(
        self,
        incident_id: str,
        action_type: str,
        details: Any = None,
        timestamp: datetime | str | None = None,
    ) -> TimelineEvent:
        """Append an action to the timeline without touching status."""
        if action_type in RESERVED_ACTIONS:
            raise ValidationError(
                f"Action type {action_type!r} is recorded automatically",
                incident_id=incident_id,
                action_type=action_type,
            )
        if action_type not in TimelineAction.values:
            raise ValidationError(
                f"Unknown action type: {action_type!r}",
                incident_id=incident_id,
                action_type=action_type,
            )
        payload = parse_details(details)
        when = parse_timestamp(timestamp)

        with self.locks.hold(incident_id):
            return self.timeline.append(incident_id, action_type, payload, timestamp=when)


class IncidentOrchestrator:
    """
    Coordinates the incident response workflow.

    Usage:
        orchestrator = IncidentOrchestrator()
        result = orchestrator.create_incident("db down", "P0", "orders-api", "alice")
    """

    def __init__(
        self,
        store: IncidentStore | None = None,
        router: NotificationRouter | None = None,
        directory: OncallDirectory | None = None,
        policy: EscalationPolicy | None = None,
        renderer: IncidentMessageRenderer | None = None,
    ):
        self.policy = policy or EscalationPolicy()
        self.store = store or IncidentStore(policy=self.policy)
        self.timeline = self.store.timeline
        self.router = router or NotificationRouter()
        self.directory = directory or OncallDirectory(policy=self.policy)
        self.renderer = renderer or IncidentMessageRenderer()

    @property
    def immediate_channels(self) -> list[str]:
        return list(getattr(settings, "INCIDENT_IMMEDIATE_CHANNELS", DEFAULT_IMMEDIATE_CHANNELS))

    @property
    def deferred_channels(self) -> list[str]:
        return list(getattr(settings, "INCIDENT_DEFERRED_CHANNELS", DEFAULT_DEFERRED_CHANNELS))

    @property
    def war_room_severities(self) -> list[str]:
        return list(getattr(settings, "INCIDENT_WAR_ROOM_SEVERITIES", DEFAULT_WAR_ROOM_SEVERITIES))

    def create_incident(
        self,
        description: str,
        severity: str,
        service: str,
        reporter: str,
        timestamp: datetime | str | None = None,
        team: str | None = None,
    ) -> dict[str, Any]:
        """
        Create an incident and contact its delay-zero escalation levels.

        Returns:
            Dict with incident_id, status, notifications and the escalation chain.
        """
        incident = self.store.create_incident(
            description, severity, service, reporter, timestamp=timestamp, team=team
        )
        assignment = self.directory.get_assignment(incident.team)
        levels = self.policy.levels_for(severity)

        war_room = None
        if severity in self.war_room_severities:
            war_room = war_room_url(incident.id, self.router.config.get("war_room_base_url"))

        requests: list[NotificationRequest] = []
        for level in self.policy.immediate_levels(severity):
            channels = (
                self.immediate_channels if level.contact_immediately else self.deferred_channels
            )
            requests.extend(
                self._build_requests(incident, level, assignment, channels, war_room=war_room)
            )
        if war_room:
            requests.append(
                NotificationRequest(
                    channel="war_room",
                    target=incident.id,
                    severity=severity,
                    incident_id=incident.id,
                )
            )

        results = self.router.dispatch(requests)
        self._record_notifications(incident.id, results)

        return {
            "incident_id": incident.id,
            "status": incident.status,
            "severity": incident.severity,
            "created_at": incident.created_at.isoformat(),
            "war_room_url": war_room,
            "notifications": [result.to_dict() for result in results],
            "escalation": [level.to_dict() for level in levels],
        }

    def log_action(
        self,
        incident_id: str,
        action_type: str,
        details: Any = None,
        timestamp: datetime | str | None = None,
    ) -> dict[str, Any]:
        event = self.store.log_action(incident_id, action_type, details, timestamp=timestamp)
        return {
            "status": "logged",
            "incident_id": incident_id,
            "action_type": event.action_type,
            "sequence": event.sequence,
        }

    def update_status(self, incident_id: str, new_status: str, notes: str = "") -> dict[str, Any]:
        change = self.store.update_status(incident_id, new_status, notes)

        if change.changed and getattr(settings, "INCIDENT_ANNOUNCE_STATUS_CHANGES", False):
            self._announce_status(change.incident, notes)

        return {
            "status": "updated" if change.changed else "noted",
            "incident_id": incident_id,
            "previous_status": change.previous,
            "new_status": change.incident.status,
        }

    def get_incident(self, incident_id: str) -> dict[str, Any]:
        return self.store.get(incident_id).to_dict()

    def get_incident_timeline(self, incident_id: str) -> dict[str, Any]:
        events = self.timeline.read(incident_id)
        return {
            "incident_id": incident_id,
            "timeline": [event.to_dict() for event in events],
        }

    def get_active_incidents(self) -> dict[str, Any]:
        incidents = self.store.active()
        return {
            "count": len(incidents),
            "incidents": [incident.to_dict() for incident in incidents],
        }

    def get_escalation_schedule(self, incident_id: str) -> dict[str, Any]:
        """Delayed levels of the incident's chain with due time and whether each has fired."""
        incident = self.store.get(incident_id)
        escalated = self._escalated_roles(incident)

        schedule = []
        for level, due_at in self.policy.schedule(incident.severity, incident.created_at):
            if not level.delay:
                continue
            entry = level.to_dict()
            entry["due_at"] = due_at.isoformat()
            entry["escalated"] = level.role in escalated
            schedule.append(entry)

        return {
            "incident_id": incident.id,
            "severity": incident.severity,
            "status": incident.status,
            "schedule": schedule,
        }

    def escalate_due(self, now: datetime | None = None) -> dict[str, Any]:
        """
        Contact delayed levels that are due for every open incident.

        Incidents that moved to investigating or later count as acknowledged
        and are skipped.

        Returns:
            Dict with the number of incidents checked and the escalations made.
        """
        now = now or timezone.now()
        open_incidents = list(Incident.objects.filter(status=IncidentStatus.OPEN))
        escalations = []

        for incident in open_incidents:
            if not self.policy.due_levels(incident.severity, incident.created_at, now):
                continue

            with self.store.locks.hold(incident.id):
                escalations.extend(self._escalate_incident(incident, now))

        return {"checked": len(open_incidents), "escalations": escalations}

    def _escalate_incident(self, incident: Incident, now: datetime) -> list[dict[str, Any]]:
        """Contact the due, not yet escalated levels of one incident (caller holds its lock)."""
        incident.refresh_from_db()
        if incident.status != IncidentStatus.OPEN:
            return []

        escalated = self._escalated_roles(incident)
        due = [
            level
            for level in self.policy.due_levels(incident.severity, incident.created_at, now)
            if level.role not in escalated
        ]
        if not due:
            return []

        assignment = self.directory.get_assignment(incident.team)
        escalations = []
        for level in due:
            requests = self._build_requests(
                incident, level, assignment, self.immediate_channels, escalation=True
            )
            results = self.router.dispatch(requests)
            notifications = [result.to_dict() for result in results]
            self.timeline.append(
                incident.id,
                TimelineAction.ESCALATED,
                {
                    "role": level.role,
                    "contact_after": level.contact_after,
                    "notifications": notifications,
                },
            )
            logger.info(
                f"Escalated incident {incident.id} to {level.role} "
                f"({sum(1 for r in results if r.delivered)}/{len(results)} delivered)"
            )
            escalations.append(
                {"incident_id": incident.id, "role": level.role, "notifications": notifications}
            )
        return escalations

    def _escalated_roles(self, incident: Incident) -> set[str]:
        details = TimelineEvent.objects.filter(
            incident=incident, action_type=TimelineAction.ESCALATED
        ).values_list("details", flat=True)
        return {d.get("role") for d in details if isinstance(d, dict)}

    def _build_requests(
        self,
        incident: Incident,
        level: EscalationLevel,
        assignment: OncallAssignment,
        channels: list[str],
        war_room: str | None = None,
        escalation: bool = False,
    ) -> list[NotificationRequest]:
        """Requests contacting one escalation level on the given channels."""
        incident_data = incident.to_dict()
        context = {
            "role": level.role,
            "contact_after": level.contact_after,
            "war_room_url": war_room,
        }
        contact = None if level.role == TICKET_QUEUE else assignment.contact_for(level.role)

        requests = []
        for channel in channels:
            if channel not in self.router.drivers or channel == "war_room":
                logger.warning(f"Skipping unsupported incident channel {channel!r}")
                continue

            if channel == "chat":
                if level.role == TICKET_QUEUE:
                    target = assignment.channels.alerts
                else:
                    target = assignment.channels.primary
            elif channel == "discord":
                target = "webhook"
            elif contact is None:
                logger.info(f"No {channel} contact for {level.role} on {incident.id}; skipping")
                continue
            elif channel == "sms":
                target = contact.phone
            elif channel == "email":
                target = contact.email
            else:
                continue

            if not target:
                logger.info(f"No {channel} target for {level.role} on {incident.id}; skipping")
                continue

            if escalation and channel == "chat":
                payload = self.renderer.escalation(incident_data, **context)
            else:
                payload = self.renderer.for_channel(channel, incident_data, **context)

            requests.append(
                NotificationRequest(
                    channel=channel,
                    target=target,
                    payload=payload,
                    severity=incident.severity,
                    role=level.role,
                    incident_id=incident.id,
                )
            )
        return requests

    def _record_notifications(self, incident_id: str, results: list[NotificationResult]) -> None:
        for result in results:
            self.timeline.append(incident_id, TimelineAction.NOTIFIED, result.to_dict())

    def _announce_status(self, incident: Incident, notes: str) -> None:
        request = NotificationRequest(
            channel="discord",
            target="webhook",
            payload={
                "kind": "status_update",
                "incident_id": incident.id,
                "status": incident.status,
                "message": self.renderer.status_update(incident.to_dict(), notes)["text"],
            },
            severity=incident.severity,
            incident_id=incident.id,
        )
        self._record_notifications(incident.id, self.router.dispatch([request]))


__all__ = [
    "KeyedLock",
    "StatusChange",
    "IncidentStore",
    "IncidentOrchestrator",
    "parse_timestamp",
    "parse_details",
]
