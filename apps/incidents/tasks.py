"""Celery tasks for incident escalation.

dispatch_due_escalations is registered in the beat schedule (every minute,
see CELERY_BEAT_SCHEDULE in config/settings.py). It contacts the delayed
escalation levels of open incidents once their due time has passed.

Run beat with something like:
- celery -A config beat -l info
"""

from __future__ import annotations

import logging
from typing import Any

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def dispatch_due_escalations() -> dict[str, Any]:
    """Escalate every open incident whose next level is due."""
    from apps.incidents.services import IncidentOrchestrator

    result = IncidentOrchestrator().escalate_due()
    if result["escalations"]:
        logger.info(
            f"Escalation sweep: {len(result['escalations'])} escalation(s) "
            f"across {result['checked']} open incident(s)"
        )
    return result

