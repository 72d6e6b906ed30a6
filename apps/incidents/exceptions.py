"""
Error taxonomy for incident handling and notification delivery.

Every error carries enough context (incident id, channel, reason) to be
rendered as a structured error payload via ``to_dict()``.
"""

from __future__ import annotations

from typing import Any


class IncidentResponseError(Exception):
    """Base class for all errors surfaced by the incident response core."""

    error_type = "error"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "error",
            "error": self.error_type,
            "message": self.message,
            **self.context,
        }


class ValidationError(IncidentResponseError, ValueError):
    """Input outside the documented domain (severity, status, action, team, request)."""

    error_type = "validation_error"


class NotFoundError(IncidentResponseError, LookupError):
    """Unknown incident id."""

    error_type = "not_found"

    def __init__(self, incident_id: str):
        self.incident_id = incident_id
        super().__init__(f"Incident not found: {incident_id}", incident_id=incident_id)


class InvalidTransition(IncidentResponseError):
    """Illegal status edge for the incident state machine."""

    error_type = "invalid_transition"

    def __init__(self, incident_id: str, current: str, requested: str):
        self.incident_id = incident_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move incident {incident_id} from {current} to {requested}",
            incident_id=incident_id,
            current_status=current,
            requested_status=requested,
        )


class TransportError(IncidentResponseError):
    """Transient transport failure: timeout, connection error or 5xx response."""

    error_type = "transport_error"

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message, http_status=status)


class ChannelDeliveryError(IncidentResponseError):
    """A single channel's send failed (after the retry budget, when retryable)."""

    error_type = "channel_delivery_error"

    def __init__(
        self,
        channel: str,
        message: str,
        status: int | None = None,
        retryable: bool = False,
        attempts: int = 1,
    ):
        self.channel = channel
        self.status = status
        self.retryable = retryable
        self.attempts = attempts
        super().__init__(message, channel=channel, http_status=status)
