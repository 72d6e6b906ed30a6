"""
Append-only audit timeline for incidents.
"""

import logging
from datetime import datetime
from typing import Any

from django.db import transaction
from django.utils import timezone

from apps.incidents.exceptions import NotFoundError, ValidationError
from apps.incidents.models import Incident, TimelineAction, TimelineEvent, write_lock

logger = logging.getLogger(__name__)


class AuditTimeline:
    """
    Per-incident event log supporting append and ordered replay.

    Events are numbered with a per-incident sequence allocated under the
    incident row lock, so the stored order is the call order. Timestamps are
    clamped to never run backwards.
    """

    def append(
        self,
        incident_id: str,
        action_type: str,
        details: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> TimelineEvent:
        """
        Append an event to an incident's timeline.

        Args:
            incident_id: ID of the incident.
            action_type: One of TimelineAction values.
            details: Free-form structured payload.
            timestamp: When the action happened (defaults to now).

        Returns:
            The stored TimelineEvent.
        """
        if action_type not in TimelineAction.values:
            raise ValidationError(
                f"Unknown action type: {action_type!r}",
                incident_id=incident_id,
                action_type=action_type,
            )

        details = dict(details or {})
        timestamp = timestamp or timezone.now()

        with write_lock, transaction.atomic():
            try:
                incident = Incident.objects.select_for_update().get(pk=incident_id)
            except Incident.DoesNotExist:
                raise NotFoundError(incident_id)

            previous = (
                TimelineEvent.objects.filter(incident=incident)
                .order_by("-sequence")
                .values_list("timestamp", flat=True)
                .first()
            )
            if previous is not None and timestamp < previous:
                details.setdefault("reported_at", timestamp.isoformat())
                timestamp = previous

            incident.last_event_seq += 1
            incident.save(update_fields=["last_event_seq"])

            event = TimelineEvent.objects.create(
                incident=incident,
                sequence=incident.last_event_seq,
                timestamp=timestamp,
                action_type=action_type,
                details=details,
            )

        logger.debug(f"Timeline append: {event}")
        return event

    def read(self, incident_id: str) -> list[TimelineEvent]:
        """Return the incident's events in insertion order."""
        if not Incident.objects.filter(pk=incident_id).exists():
            raise NotFoundError(incident_id)
        return list(TimelineEvent.objects.filter(incident_id=incident_id).order_by("sequence"))
