"""Discord notification driver."""

import logging
from typing import Any

from django.utils import timezone

from apps.notify.drivers.base import BaseNotifyDriver, NotificationRequest, severity_color_int

logger = logging.getLogger(__name__)


class DiscordNotifyDriver(BaseNotifyDriver):
    """
    Driver for Discord webhooks.

    request.payload["kind"] selects the message shape:
    - "message" (default): {"content", "username"}
    - "incident_alert": rich embed with severity/service/incident fields
    - "status_update": embed coloured by the new incident status
    """

    name = "discord"
    service_name = "Discord"

    DEFAULT_USERNAME = "Incident Bot"
    FOOTER_TEXT = "Incident Response System"

    STATUS_COLORS = {
        "investigating": 0xFFFF00,
        "resolved": 0x00FF00,
        "closed": 0x808080,
    }
    STATUS_EMOJIS = {
        "investigating": "\U0001F50D",
        "resolved": "✅",
        "closed": "\U0001F512",
    }

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        kind = request.payload.get("kind", "message")
        if kind == "incident_alert":
            return self._incident_alert(request)
        if kind == "status_update":
            return self._status_update(request)
        return {
            "content": request.payload.get("content") or request.payload.get("text", ""),
            "username": request.payload.get("username") or self.DEFAULT_USERNAME,
        }

    def _incident_alert(self, request: NotificationRequest) -> dict[str, Any]:
        p = request.payload
        incident_id = p.get("incident_id") or request.incident_id
        severity = request.severity
        return {
            "username": "Incident Alert System",
            "embeds": [
                {
                    "title": f"\U0001F6A8 {severity} Incident: {incident_id}",
                    "description": p.get("description", ""),
                    "color": severity_color_int(severity),
                    "fields": [
                        {"name": "Severity", "value": severity, "inline": True},
                        {"name": "Service", "value": p.get("service", ""), "inline": True},
                        {"name": "Incident ID", "value": incident_id, "inline": True},
                    ],
                    "footer": {"text": self.FOOTER_TEXT},
                    "timestamp": timezone.now().isoformat(),
                }
            ],
        }

    def _status_update(self, request: NotificationRequest) -> dict[str, Any]:
        p = request.payload
        incident_id = p.get("incident_id") or request.incident_id
        status = p.get("status", "")
        emoji = self.STATUS_EMOJIS.get(status, "\U0001F4DD")
        return {
            "username": "Incident Updates",
            "embeds": [
                {
                    "title": f"{emoji} Status Update: {incident_id}",
                    "description": p.get("message", ""),
                    "color": self.STATUS_COLORS.get(status, 0x3498DB),
                    "fields": [
                        {"name": "New Status", "value": status.upper(), "inline": True},
                        {"name": "Incident ID", "value": incident_id, "inline": True},
                    ],
                    "footer": {"text": self.FOOTER_TEXT},
                    "timestamp": timezone.now().isoformat(),
                }
            ],
        }

    def send(self, request: NotificationRequest) -> dict[str, Any]:
        (webhook_url,) = self._require_config("discord_webhook_url")

        payload = self.build_payload(request)
        self._check_response(self.transport.post_json(webhook_url, payload, timeout=self.timeout))

        logger.info(f"Discord {request.payload.get('kind', 'message')} delivered")
        return {"status": "sent", "username": payload["username"]}
