"""
Management command to open an incident from the command line.

Usage:
    python manage.py create_incident "db down" --severity P0 --service orders-api --reporter alice
    python manage.py create_incident "slow checkout" --severity P2 --service checkout \
        --reporter bob --team frontend --timestamp 2026-01-05T10:00:00Z
    python manage.py create_incident "db down" --severity P0 --service orders-api \
        --reporter alice --json
"""

import json

from django.core.management.base import BaseCommand, CommandError

from apps.incidents.escalation import EscalationPolicy
from apps.incidents.exceptions import ValidationError
from apps.incidents.services import IncidentOrchestrator


class Command(BaseCommand):
    help = "Create an incident and notify its immediate escalation levels"

    def add_arguments(self, parser):
        parser.add_argument("description", type=str, help="What is going wrong")
        parser.add_argument(
            "--severity",
            type=str,
            required=True,
            choices=list(EscalationPolicy.POLICIES),
            help="Severity tier",
        )
        parser.add_argument("--service", type=str, required=True, help="Affected service")
        parser.add_argument(
            "--reporter", type=str, default="cli", help="Who is reporting (default: cli)"
        )
        parser.add_argument("--team", type=str, help="Owning team in the on-call directory")
        parser.add_argument("--timestamp", type=str, help="ISO-8601 report time (default: now)")
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the full result as JSON",
        )

    def handle(self, *args, **options):
        try:
            result = IncidentOrchestrator().create_incident(
                description=options["description"],
                severity=options["severity"],
                service=options["service"],
                reporter=options["reporter"],
                timestamp=options.get("timestamp"),
                team=options.get("team"),
            )
        except ValidationError as e:
            raise CommandError(e.message)

        if options["json"]:
            self.stdout.write(json.dumps(result, indent=2, default=str))
            return

        self.stdout.write(self.style.SUCCESS(f"✓ Created incident {result['incident_id']}"))
        self.stdout.write(f"  Severity: {result['severity']}")
        self.stdout.write(f"  Status: {result['status']}")
        if result.get("war_room_url"):
            self.stdout.write(f"  War room: {result['war_room_url']}")

        for notification in result["notifications"]:
            style = self.style.SUCCESS if notification["outcome"] == "delivered" else self.style.ERROR
            line = f"  {notification['channel']} -> {notification['target']}: {notification['outcome']}"
            if notification.get("reason"):
                line += f" ({notification['reason']})"
            self.stdout.write(style(line))
