"""
Management command to run one escalation sweep.

Same work as the dispatch_due_escalations Celery beat task, for environments
without a beat scheduler (cron) or for manual runs.

Usage:
    python manage.py escalate_incidents
    python manage.py escalate_incidents --dry-run
"""

from datetime import datetime

from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.incidents.models import Incident, IncidentStatus
from apps.incidents.services import IncidentOrchestrator


class Command(BaseCommand):
    help = "Escalate open incidents whose delayed escalation levels are due"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show the pending schedule without contacting anyone",
        )

    def handle(self, *args, **options):
        orchestrator = IncidentOrchestrator()

        if options["dry_run"]:
            now = timezone.now()
            for incident in Incident.objects.filter(status=IncidentStatus.OPEN):
                schedule = orchestrator.get_escalation_schedule(incident.id)["schedule"]
                for entry in schedule:
                    if entry["escalated"]:
                        continue
                    due = datetime.fromisoformat(entry["due_at"]) <= now
                    state = "due" if due else "pending"
                    self.stdout.write(
                        f"{incident.id} {entry['role']} at {entry['due_at']} ({state})"
                    )
            return

        result = orchestrator.escalate_due()
        self.stdout.write(
            self.style.SUCCESS(
                f"Checked {result['checked']} open incident(s), "
                f"{len(result['escalations'])} escalation(s) sent"
            )
        )
        for escalation in result["escalations"]:
            delivered = sum(1 for n in escalation["notifications"] if n["outcome"] == "delivered")
            self.stdout.write(
                f"  {escalation['incident_id']} -> {escalation['role']}: "
                f"{delivered}/{len(escalation['notifications'])} delivered"
            )
