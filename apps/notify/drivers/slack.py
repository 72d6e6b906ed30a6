"""Slack (chat) notification driver."""

import logging
from typing import Any

from apps.notify.drivers.base import BaseNotifyDriver, NotificationRequest, severity_color

logger = logging.getLogger(__name__)


class SlackNotifyDriver(BaseNotifyDriver):
    """
    Driver for posting chat messages to a Slack incoming webhook.

    Payload fields:
    - text: message body (required)
    - severity is taken from the request and drives the attachment colour

    A target starting with "#" or "@" is sent as the webhook `channel`
    override; any other target just uses the webhook's default channel.
    """

    name = "chat"
    service_name = "Slack"

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        text = request.payload.get("text") or request.payload.get("message") or ""
        payload: dict[str, Any] = {
            "attachments": [
                {
                    "color": severity_color(request.severity),
                    "text": text,
                    "footer": f"Severity: {request.severity or 'unknown'}",
                }
            ]
        }
        if request.target.startswith(("#", "@")):
            payload["channel"] = request.target
        return payload

    def send(self, request: NotificationRequest) -> dict[str, Any]:
        (webhook_url,) = self._require_config("slack_webhook_url")

        payload = self.build_payload(request)
        response = self._check_response(
            self.transport.post_json(webhook_url, payload, timeout=self.timeout)
        )

        logger.info(f"Slack notification sent to {request.target} ({request.severity})")
        return {
            "channel": payload.get("channel", "default"),
            "severity": request.severity,
            "color": payload["attachments"][0]["color"],
            "response": response.body,
        }
