"""
Incident lifecycle app.

Owns incident records and their audit timeline, and coordinates escalation:
create → escalate (severity policy) → notify (fan-out) → record outcomes.

Key concepts:
- State machine: OPEN → INVESTIGATING → RESOLVED → CLOSED (RESOLVED → INVESTIGATING reopens)
- Collision-free incident IDs from a monotonic sequence plus creation time
- Append-only timeline per incident, ordered by insertion
"""

default_app_config = "apps.incidents.apps.IncidentsConfig"
