"""
Monitoring signals for notification delivery.

Emits structured signals around every channel call so delivery health can be
tracked per channel.

Signals:
- notify.channel.delivered
- notify.channel.failed (with retryable flag)
- notify.channel.retrying
- notify.dispatch.completed

Tags on every signal: channel, role, incident_id, severity, attempt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings

logger = logging.getLogger("apps.notify.signals")


@dataclass
class DeliveryTags:
    """Tags attached to every delivery signal."""

    channel: str
    role: str = ""
    incident_id: str = ""
    severity: str = ""
    attempt: int = 1
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        base = {
            "channel": self.channel,
            "role": self.role,
            "incident_id": self.incident_id,
            "severity": self.severity,
            "attempt": self.attempt,
        }
        base.update(self.extra)
        return base


class MonitoringBackend:
    """
    Abstract monitoring backend.

    Override emit() to send signals to your preferred monitoring system.
    """

    def emit(
        self,
        signal_name: str,
        tags: DeliveryTags,
        value: float | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        raise NotImplementedError


class LoggingBackend(MonitoringBackend):
    """Default backend: structured logging."""

    def emit(
        self,
        signal_name: str,
        tags: DeliveryTags,
        value: float | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        data = {
            "signal": signal_name,
            "value": value,
            **tags.to_dict(),
            **(extra or {}),
        }
        logger.info(f"[SIGNAL] {signal_name}", extra={"signal_data": data})


_backend: MonitoringBackend | None = None


def _get_backend() -> MonitoringBackend:
    global _backend
    if _backend is None:
        backend_path = getattr(settings, "NOTIFY_MONITORING_BACKEND", None)
        if backend_path:
            from django.utils.module_loading import import_string

            _backend = import_string(backend_path)()
        else:
            _backend = LoggingBackend()
    return _backend


def emit_delivered(tags: DeliveryTags, latency_ms: float) -> None:
    _get_backend().emit("notify.channel.delivered", tags, value=latency_ms)


def emit_failed(tags: DeliveryTags, reason: str, retryable: bool, latency_ms: float) -> None:
    _get_backend().emit(
        "notify.channel.failed",
        tags,
        value=latency_ms,
        extra={"reason": reason, "retryable": retryable},
    )


def emit_retrying(tags: DeliveryTags, reason: str, backoff_seconds: float) -> None:
    _get_backend().emit(
        "notify.channel.retrying",
        tags,
        extra={"reason": reason, "backoff_seconds": backoff_seconds},
    )


def emit_dispatch_completed(delivered: int, failed: int, duration_ms: float) -> None:
    _get_backend().emit(
        "notify.dispatch.completed",
        DeliveryTags(channel="*"),
        value=duration_ms,
        extra={"delivered": delivered, "failed": failed},
    )
