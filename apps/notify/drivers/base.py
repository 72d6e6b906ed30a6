"""Base driver and data structures for notification delivery.

Drivers turn a NotificationRequest into one external call (chat webhook, SMS
API, email submission, war-room link) and normalize the outcome.

Driver contract:
- return a metadata dict on success
- raise TransportError for transient failures (connection, timeout, 5xx)
- raise ChannelDeliveryError for permanent failures (4xx, bad config/target)

Public API:
- NotificationRequest
- NotificationResult
- BaseNotifyDriver
- severity_color
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from apps.incidents.exceptions import ChannelDeliveryError, TransportError
from apps.notify.config import ConfigProvider
from apps.notify.transport import HttpResponse, HttpTransport

logger = logging.getLogger(__name__)

CHANNELS = ("chat", "sms", "email", "discord", "war_room")

DELIVERED = "delivered"
FAILED = "failed"

SEVERITY_COLORS = {
    "P0": "#FF0000",  # red
    "P1": "#FFA500",  # orange
    "P2": "#FFFF00",  # yellow
    "P3": "#00FF00",  # green
}
DEFAULT_COLOR = "#808080"  # gray


def severity_color(severity: str) -> str:
    """Hex colour for a severity tier; gray for anything unrecognised."""
    return SEVERITY_COLORS.get(severity, DEFAULT_COLOR)


def severity_color_int(severity: str) -> int:
    """Same colour as an integer (Discord embeds)."""
    return int(severity_color(severity).lstrip("#"), 16)


@dataclass
class NotificationRequest:
    """One logical notification for one channel. Built per dispatch, never persisted."""

    channel: str
    target: str
    payload: dict[str, Any] = field(default_factory=dict)
    severity: str = ""
    role: str = ""
    incident_id: str = ""

    def __post_init__(self) -> None:
        self.channel = (self.channel or "").lower()


@dataclass
class NotificationResult:
    """Outcome of one channel call."""

    channel: str
    target: str
    outcome: str
    reason: str = ""
    latency: float = 0.0
    attempts: int = 1
    role: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def delivered(self) -> bool:
        return self.outcome == DELIVERED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "channel": self.channel,
            "target": self.target,
            "outcome": self.outcome,
            "latency_ms": round(self.latency * 1000, 1),
            "attempts": self.attempts,
        }
        if self.role:
            data["role"] = self.role
        if self.reason:
            data["reason"] = self.reason
        if self.metadata:
            data["metadata"] = self.metadata
        return data


class BaseNotifyDriver(ABC):
    """Abstract base class for notification delivery drivers."""

    name: str = "base"
    service_name: str = "Notification"

    def __init__(self, transport: HttpTransport, config: ConfigProvider):
        self.transport = transport
        self.config = config

    @property
    def timeout(self) -> float:
        return self.config.get_float("timeout")

    @abstractmethod
    def send(self, request: NotificationRequest) -> dict[str, Any]:
        """Deliver a request and return result metadata."""

    def _require_config(self, *keys: str) -> list[Any]:
        values = [self.config.get(key) for key in keys]
        missing = [key for key, value in zip(keys, values) if not value]
        if missing:
            raise ChannelDeliveryError(
                self.name,
                f"{self.service_name} is not configured (missing {', '.join(missing)})",
            )
        return values

    def _check_response(self, response: HttpResponse) -> HttpResponse:
        """Classify an HTTP response: 5xx is transient, other non-2xx is permanent."""
        if response.ok:
            return response
        if response.status >= 500:
            raise TransportError(
                f"{self.service_name} API error ({response.status}): {response.body}",
                status=response.status,
            )
        logger.error(f"{self.service_name} HTTP error {response.status}: {response.body}")
        raise ChannelDeliveryError(
            self.name,
            f"{self.service_name} API error ({response.status}): {response.body}",
            status=response.status,
        )
