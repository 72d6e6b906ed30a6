"""
Management command to test notification delivery to a channel.

Usage:
    python manage.py test_notify chat --target "#incidents"
    python manage.py test_notify chat --webhook-url https://hooks.slack.com/...
    python manage.py test_notify sms --target +15550100 --twilio-sid AC... --twilio-token ...
    python manage.py test_notify email --target oncall@example.com --smtp-host smtp.example.com
    python manage.py test_notify war_room --target INC-20260105100000-000001
"""

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from apps.incidents.exceptions import ChannelDeliveryError, ValidationError
from apps.notify.config import LayeredConfigProvider, SettingsConfigProvider
from apps.notify.drivers import CHANNELS, NotificationRequest
from apps.notify.router import NotificationRouter

DEFAULT_TARGETS = {
    "chat": "#incidents",
    "discord": "webhook",
    "war_room": "INC-TEST",
}


class Command(BaseCommand):
    help = "Test notification delivery to a specific channel"

    def add_arguments(self, parser):
        parser.add_argument(
            "channel",
            type=str,
            choices=CHANNELS,
            help=f"Channel to test. Options: {', '.join(CHANNELS)}",
        )
        parser.add_argument(
            "--target",
            type=str,
            help="Destination (chat channel, phone number, email address or incident id)",
        )
        parser.add_argument(
            "--message",
            type=str,
            default="This is a test notification from the incident response coordinator.",
            help="Notification message",
        )
        parser.add_argument(
            "--subject",
            type=str,
            default="Test notification",
            help="Email subject (email channel)",
        )
        parser.add_argument(
            "--severity",
            type=str,
            choices=["P0", "P1", "P2", "P3"],
            default="P3",
            help="Notification severity (default: 'P3')",
        )
        parser.add_argument(
            "--json-config",
            type=str,
            help="Channel configuration overrides as JSON string",
        )

        # Chat options
        parser.add_argument("--webhook-url", type=str, help="Slack/Discord webhook URL")

        # SMS options
        parser.add_argument("--twilio-sid", type=str, help="Twilio account SID (sms channel)")
        parser.add_argument("--twilio-token", type=str, help="Twilio auth token (sms channel)")
        parser.add_argument("--from-number", type=str, help="Sender phone number (sms channel)")

        # Email options
        parser.add_argument("--smtp-host", type=str, help="SMTP host (email channel)")
        parser.add_argument("--smtp-port", type=int, help="SMTP port (email channel)")
        parser.add_argument("--from-address", type=str, help="From email address (email channel)")

    def handle(self, *args, **options):
        channel = options["channel"]
        target = options.get("target") or DEFAULT_TARGETS.get(channel)
        if not target:
            raise CommandError(f"--target is required for the {channel} channel")

        config = LayeredConfigProvider(
            self._build_overrides(channel, options), SettingsConfigProvider()
        )
        router = NotificationRouter(config=config)

        request = NotificationRequest(
            channel=channel,
            target=target,
            payload={
                "text": options["message"],
                "body": options["message"],
                "content": options["message"],
                "subject": options["subject"],
            },
            severity=options["severity"],
        )

        self.stdout.write(self.style.WARNING(f"Sending test notification via {channel}..."))

        try:
            metadata = router.deliver(request)
        except (ValidationError, ChannelDeliveryError) as e:
            self.stdout.write(self.style.ERROR("✗ Failed to send notification"))
            self.stdout.write(f"  Channel: {channel}")
            self.stdout.write(f"  Error: {e.message}")
            raise CommandError(e.message)

        self.stdout.write(self.style.SUCCESS("✓ Notification sent successfully!"))
        self.stdout.write(f"  Channel: {channel}")
        self.stdout.write(f"  Target: {target}")
        if metadata:
            self.stdout.write(f"  Metadata: {json.dumps(metadata, indent=2, default=str)}")

    def _build_overrides(self, channel: str, options: dict[str, Any]) -> dict[str, Any]:
        """Build config overrides from command options."""
        if options.get("json_config"):
            try:
                return json.loads(options["json_config"])
            except json.JSONDecodeError as e:
                raise CommandError(f"Invalid JSON config: {e}")

        overrides: dict[str, Any] = {}
        if options.get("webhook_url"):
            key = "discord_webhook_url" if channel == "discord" else "slack_webhook_url"
            overrides[key] = options["webhook_url"]
        if options.get("twilio_sid"):
            overrides["twilio_account_sid"] = options["twilio_sid"]
        if options.get("twilio_token"):
            overrides["twilio_auth_token"] = options["twilio_token"]
        if options.get("from_number"):
            overrides["twilio_from_number"] = options["from_number"]
        if options.get("smtp_host"):
            overrides["smtp_host"] = options["smtp_host"]
            overrides["email_sender"] = "smtp"
        if options.get("smtp_port"):
            overrides["smtp_port"] = options["smtp_port"]
        if options.get("from_address"):
            overrides["email_from_address"] = options["from_address"]
        return overrides
