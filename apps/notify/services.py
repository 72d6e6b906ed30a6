"""Single-channel notification surface.

NotificationHub wraps the NotificationRouter with one method per operation.
Each method delivers to exactly one channel and raises ChannelDeliveryError
when that channel fails after the retry budget.
"""

from __future__ import annotations

from typing import Any

from apps.notify.config import ConfigProvider, SettingsConfigProvider
from apps.notify.drivers import NotificationRequest
from apps.notify.router import NotificationRouter
from apps.notify.transport import HttpTransport


class NotificationHub:
    """Notification operations parameterized by transport and config."""

    def __init__(
        self,
        transport: HttpTransport | None = None,
        config: ConfigProvider | None = None,
        router: NotificationRouter | None = None,
    ):
        self.config = config or SettingsConfigProvider()
        self.router = router or NotificationRouter(transport=transport, config=self.config)

    def send_slack(self, message: str, severity: str = "P2", channel: str | None = None) -> dict[str, Any]:
        target = channel or self.config.get("slack_channel")
        return self.router.deliver(
            NotificationRequest(
                channel="chat", target=target, payload={"text": message}, severity=severity
            )
        )

    def send_sms(self, phone: str, message: str) -> dict[str, Any]:
        return self.router.deliver(
            NotificationRequest(channel="sms", target=phone, payload={"body": message})
        )

    def send_email(self, to: str, subject: str, body: str) -> dict[str, Any]:
        return self.router.deliver(
            NotificationRequest(
                channel="email", target=to, payload={"subject": subject, "body": body}
            )
        )

    def send_discord(self, content: str, username: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": "message", "content": content}
        if username:
            payload["username"] = username
        return self.router.deliver(
            NotificationRequest(channel="discord", target="webhook", payload=payload)
        )

    def send_incident_alert(
        self, incident_id: str, severity: str, description: str, service: str
    ) -> dict[str, Any]:
        return self.router.deliver(
            NotificationRequest(
                channel="discord",
                target="webhook",
                payload={
                    "kind": "incident_alert",
                    "incident_id": incident_id,
                    "description": description,
                    "service": service,
                },
                severity=severity,
                incident_id=incident_id,
            )
        )

    def send_status_update(self, incident_id: str, status: str, message: str = "") -> dict[str, Any]:
        return self.router.deliver(
            NotificationRequest(
                channel="discord",
                target="webhook",
                payload={
                    "kind": "status_update",
                    "incident_id": incident_id,
                    "status": status,
                    "message": message,
                },
                incident_id=incident_id,
            )
        )

    def create_war_room(self, incident_id: str) -> dict[str, Any]:
        return self.router.deliver(
            NotificationRequest(
                channel="war_room", target=incident_id, incident_id=incident_id
            )
        )
