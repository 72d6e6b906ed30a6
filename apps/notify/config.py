"""Config providers for notification channels.

Channel credentials and tuning knobs reach drivers and the router through a
ConfigProvider so they can be injected (tests, alternative secret stores)
instead of being read from module-level globals.

Keys (lowercase, without the NOTIFY_ prefix):
- slack_webhook_url, slack_channel, discord_webhook_url
- twilio_account_sid, twilio_auth_token, twilio_from_number
- email_sender ("django" or "smtp"), email_from_address
- smtp_host, smtp_port, smtp_username, smtp_password, smtp_use_tls
- war_room_base_url
- timeout, max_retries, backoff_base, backoff_factor, dispatch_deadline
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

DEFAULTS: dict[str, Any] = {
    "slack_channel": "#incidents",
    "email_sender": "django",
    "email_from_address": "incidents@localhost",
    "smtp_port": 587,
    "smtp_use_tls": True,
    "war_room_base_url": "https://meet.google.com",
    "timeout": 10,
    "max_retries": 2,
    "backoff_base": 0.5,
    "backoff_factor": 2.0,
    "dispatch_deadline": 20,
}


class ConfigProvider(ABC):
    """Read-only source of channel configuration."""

    @abstractmethod
    def _lookup(self, key: str) -> Any:
        """Return the raw value for key, or None when unset."""

    def get(self, key: str, default: Any = None) -> Any:
        value = self._lookup(key)
        if value is None or value == "":
            return default if default is not None else DEFAULTS.get(key)
        return value

    def get_int(self, key: str) -> int:
        return int(self.get(key))

    def get_float(self, key: str) -> float:
        return float(self.get(key))


class SettingsConfigProvider(ConfigProvider):
    """Reads NOTIFY_<KEY> from Django settings."""

    def __init__(self, prefix: str = "NOTIFY_"):
        self.prefix = prefix

    def _lookup(self, key: str) -> Any:
        from django.conf import settings

        return getattr(settings, f"{self.prefix}{key.upper()}", None)


class DictConfigProvider(ConfigProvider):
    """Plain mapping, used for injection."""

    def __init__(self, values: dict[str, Any] | None = None):
        self.values = dict(values or {})

    def _lookup(self, key: str) -> Any:
        return self.values.get(key)


class LayeredConfigProvider(ConfigProvider):
    """Overrides on top of another provider (CLI flags over settings)."""

    def __init__(self, overrides: dict[str, Any], fallback: ConfigProvider):
        self.overrides = {k: v for k, v in overrides.items() if v not in (None, "")}
        self.fallback = fallback

    def _lookup(self, key: str) -> Any:
        if key in self.overrides:
            return self.overrides[key]
        return self.fallback._lookup(key)
