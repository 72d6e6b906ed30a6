"""
JSON API views for incidents.

All endpoints return JSON. Errors use the structured body
{"status": "error", "error": <type>, "message": ..., <context>} with:
- 400 ValidationError / malformed JSON
- 404 NotFoundError
- 409 InvalidTransition
- 502 ChannelDeliveryError
- 500 anything else
"""

import json
import logging
from typing import Any

from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.incidents.exceptions import (
    ChannelDeliveryError,
    IncidentResponseError,
    InvalidTransition,
    NotFoundError,
    ValidationError,
)
from apps.incidents.services import IncidentOrchestrator

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    InvalidTransition: 409,
    ChannelDeliveryError: 502,
}


def error_response(error: IncidentResponseError) -> JsonResponse:
    status = 500
    for error_class, code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_class):
            status = code
            break
    return JsonResponse(error.to_dict(), status=status)


@method_decorator(csrf_exempt, name="dispatch")
class ApiView(View):
    """Base view mapping the incident error taxonomy onto HTTP responses."""

    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except IncidentResponseError as e:
            if isinstance(e, ChannelDeliveryError):
                logger.warning(f"Channel delivery failed: {e.message}")
            return error_response(e)
        except Exception as e:
            logger.exception(f"Unexpected error handling {request.method} {request.path}")
            return JsonResponse(
                {"status": "error", "error": "internal_error", "message": str(e)},
                status=500,
            )

    def parse_json(self, request) -> dict[str, Any]:
        """Decode a JSON object body."""
        if not request.body:
            return {}
        try:
            payload = json.loads(request.body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Invalid JSON payload: {e}")
            raise ValidationError("Invalid JSON payload")
        if not isinstance(payload, dict):
            raise ValidationError("JSON payload must be an object")
        return payload

    @staticmethod
    def require_fields(payload: dict[str, Any], *fields: str) -> None:
        missing = [f for f in fields if payload.get(f) in (None, "")]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}", missing_fields=missing
            )


class IncidentCollectionView(ApiView):
    """
    POST /incidents/

    {
        "description": "db down",
        "severity": "P0",
        "service": "orders-api",
        "reporter": "alice",
        "timestamp": "2026-01-05T10:00:00Z",  // optional
        "team": "backend"                     // optional
    }
    """

    def post(self, request):
        payload = self.parse_json(request)
        self.require_fields(payload, "description", "severity", "service", "reporter")

        result = IncidentOrchestrator().create_incident(
            description=payload["description"],
            severity=payload["severity"],
            service=payload["service"],
            reporter=payload["reporter"],
            timestamp=payload.get("timestamp"),
            team=payload.get("team"),
        )
        return JsonResponse(result, status=201)


class ActiveIncidentsView(ApiView):
    """GET /incidents/active/"""

    def get(self, request):
        return JsonResponse(IncidentOrchestrator().get_active_incidents())


class IncidentDetailView(ApiView):
    """GET /incidents/<id>/"""

    def get(self, request, incident_id):
        return JsonResponse(IncidentOrchestrator().get_incident(incident_id))


class IncidentActionView(ApiView):
    """
    POST /incidents/<id>/actions/

    {"action_type": "note", "details": {...} | "text", "timestamp": "..."}
    """

    def post(self, request, incident_id):
        payload = self.parse_json(request)
        self.require_fields(payload, "action_type")

        result = IncidentOrchestrator().log_action(
            incident_id,
            payload["action_type"],
            payload.get("details"),
            timestamp=payload.get("timestamp"),
        )
        return JsonResponse(result, status=201)


class IncidentStatusView(ApiView):
    """
    POST /incidents/<id>/status/

    {"status": "investigating", "notes": "looking into it"}
    """

    def post(self, request, incident_id):
        payload = self.parse_json(request)
        self.require_fields(payload, "status")

        result = IncidentOrchestrator().update_status(
            incident_id, payload["status"], payload.get("notes") or ""
        )
        return JsonResponse(result)


class IncidentTimelineView(ApiView):
    """GET /incidents/<id>/timeline/"""

    def get(self, request, incident_id):
        return JsonResponse(IncidentOrchestrator().get_incident_timeline(incident_id))


class IncidentEscalationView(ApiView):
    """GET /incidents/<id>/escalation/"""

    def get(self, request, incident_id):
        return JsonResponse(IncidentOrchestrator().get_escalation_schedule(incident_id))
