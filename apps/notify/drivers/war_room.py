"""War room (voice bridge) driver."""

from typing import Any

from apps.notify.drivers.base import BaseNotifyDriver, NotificationRequest


def war_room_url(incident_id: str, base_url: str = "https://meet.google.com") -> str:
    """Deterministic meeting link for an incident ("INC-" prefix stripped)."""
    return f"{base_url.rstrip('/')}/incident-{incident_id.removeprefix('INC-')}"


class WarRoomDriver(BaseNotifyDriver):
    """Creates the war room link for the incident in request.target."""

    name = "war_room"
    service_name = "War room"

    def send(self, request: NotificationRequest) -> dict[str, Any]:
        url = war_room_url(request.target, self.config.get("war_room_base_url"))
        return {"war_room_url": url, "incident_id": request.target}
