"""
Views for the notify app.

Provides one API endpoint per notification operation:

    POST /notify/slack/           {"message", "severity"?, "channel"?}
    POST /notify/sms/             {"phone", "message"}
    POST /notify/email/           {"to", "subject", "body"}
    POST /notify/discord/         {"content", "username"?}
    POST /notify/incident-alert/  {"incident_id", "severity", "description", "service"}
    POST /notify/status-update/   {"incident_id", "status", "message"?}
    POST /notify/war-room/        {"incident_id"}
"""

import logging

from django.http import JsonResponse

from apps.incidents.views import ApiView
from apps.notify.services import NotificationHub

logger = logging.getLogger(__name__)


# operation -> (hub method, required fields, optional fields)
OPERATIONS = {
    "slack": ("send_slack", ("message",), ("severity", "channel")),
    "sms": ("send_sms", ("phone", "message"), ()),
    "email": ("send_email", ("to", "subject", "body"), ()),
    "discord": ("send_discord", ("content",), ("username",)),
    "incident-alert": (
        "send_incident_alert",
        ("incident_id", "severity", "description", "service"),
        (),
    ),
    "status-update": ("send_status_update", ("incident_id", "status"), ("message",)),
    "war-room": ("create_war_room", ("incident_id",), ()),
}


class NotifyOperationView(ApiView):
    """POST /notify/<operation>/"""

    def post(self, request, operation):
        if operation not in OPERATIONS:
            return JsonResponse(
                {
                    "status": "error",
                    "error": "not_found",
                    "message": f"Unknown notify operation: {operation}",
                    "available_operations": list(OPERATIONS),
                },
                status=404,
            )

        method_name, required, optional = OPERATIONS[operation]
        payload = self.parse_json(request)
        self.require_fields(payload, *required)

        kwargs = {name: payload[name] for name in required}
        kwargs.update({name: payload[name] for name in optional if payload.get(name)})

        result = getattr(NotificationHub(), method_name)(**kwargs)
        logger.info(f"Notify operation {operation} succeeded")
        return JsonResponse({"status": "success", "operation": operation, "result": result})
