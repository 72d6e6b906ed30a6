"""Celery app for the incident response coordinator.

Beat drives the escalation timer: CELERY_BEAT_SCHEDULE in config/settings.py
runs apps.incidents.tasks.dispatch_due_escalations every
INCIDENT_ESCALATION_SWEEP_SECONDS.

    celery -A config worker -l info
    celery -A config beat -l info
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("incident-response")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks(["apps.incidents"])
