"""
Notification drivers for delivering to each channel.
"""

from apps.notify.config import ConfigProvider
from apps.notify.drivers.base import (
    CHANNELS,
    BaseNotifyDriver,
    NotificationRequest,
    NotificationResult,
    severity_color,
)
from apps.notify.drivers.discord import DiscordNotifyDriver
from apps.notify.drivers.email import EmailNotifyDriver
from apps.notify.drivers.slack import SlackNotifyDriver
from apps.notify.drivers.sms import SmsNotifyDriver
from apps.notify.drivers.war_room import WarRoomDriver
from apps.notify.transport import HttpTransport

__all__ = [
    "CHANNELS",
    "NotificationRequest",
    "NotificationResult",
    "BaseNotifyDriver",
    "DRIVER_REGISTRY",
    "severity_color",
    "build_drivers",
    "is_channel_enabled",
]

# Registry of available notification drivers, keyed by channel
DRIVER_REGISTRY: dict[str, type[BaseNotifyDriver]] = {
    "chat": SlackNotifyDriver,
    "sms": SmsNotifyDriver,
    "email": EmailNotifyDriver,
    "discord": DiscordNotifyDriver,
    "war_room": WarRoomDriver,
}


def is_channel_enabled(channel: str) -> bool:
    """
    Check if a channel is enabled.

    Disabled when:
    - NOTIFY_SKIP_ALL=True, or
    - channel is in NOTIFY_SKIP

    Args:
        channel: Channel name to check.

    Returns:
        True if the channel is enabled, False if skipped.
    """
    from django.conf import settings

    if getattr(settings, "NOTIFY_SKIP_ALL", False):
        return False

    skip_list = getattr(settings, "NOTIFY_SKIP", [])
    return channel not in skip_list


def build_drivers(
    transport: HttpTransport, config: ConfigProvider
) -> dict[str, BaseNotifyDriver]:
    """Instantiate one driver per registered channel sharing transport and config."""
    return {channel: cls(transport, config) for channel, cls in DRIVER_REGISTRY.items()}
