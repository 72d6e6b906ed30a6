"""
Severity-based escalation policy.

Maps a severity tier to a fixed, ordered escalation chain. The delay on each
level is data describing intended timing: delay-zero levels are contacted at
creation, later levels are a schedule consumed by the escalation timer task.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from apps.incidents.exceptions import ValidationError


@dataclass(frozen=True)
class EscalationLevel:
    """A single step of an escalation chain."""

    role: str
    delay: timedelta
    contact_immediately: bool = False

    @property
    def contact_after(self) -> str:
        """Delay rendered as a short string ("0min", "5min", ...)."""
        return f"{int(self.delay.total_seconds() // 60)}min"

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "delay_seconds": int(self.delay.total_seconds()),
            "contact_after": self.contact_after,
            "contact_immediately": self.contact_immediately,
        }


ON_CALL_ENGINEER = "on_call_engineer"
TEAM_LEAD = "team_lead"
VP_ENGINEERING = "vp_engineering"
TICKET_QUEUE = "ticket_queue"


class EscalationPolicy:
    """
    Pure mapping from severity to an ordered sequence of EscalationLevel.

    Usage:
        policy = EscalationPolicy()
        levels = policy.levels_for("P0")
    """

    POLICIES: dict[str, tuple[EscalationLevel, ...]] = {
        "P0": (
            EscalationLevel(ON_CALL_ENGINEER, timedelta(0), contact_immediately=True),
            EscalationLevel(TEAM_LEAD, timedelta(minutes=5)),
            EscalationLevel(VP_ENGINEERING, timedelta(minutes=15)),
        ),
        "P1": (
            EscalationLevel(ON_CALL_ENGINEER, timedelta(0), contact_immediately=True),
            EscalationLevel(TEAM_LEAD, timedelta(minutes=30)),
        ),
        "P2": (EscalationLevel(ON_CALL_ENGINEER, timedelta(0)),),
        "P3": (EscalationLevel(TICKET_QUEUE, timedelta(0)),),
    }

    @classmethod
    def validate_severity(cls, severity: str) -> str:
        """Return the severity unchanged, or raise ValidationError if unknown."""
        if severity not in cls.POLICIES:
            raise ValidationError(
                f"Unknown severity: {severity!r}. Expected one of {', '.join(cls.POLICIES)}",
                severity=severity,
            )
        return severity

    def levels_for(self, severity: str) -> list[EscalationLevel]:
        """Return the escalation chain for a severity, ascending by delay."""
        self.validate_severity(severity)
        return sorted(self.POLICIES[severity], key=lambda level: level.delay)

    def immediate_levels(self, severity: str) -> list[EscalationLevel]:
        """Levels contacted at creation time (zero delay)."""
        return [level for level in self.levels_for(severity) if not level.delay]

    def deferred_levels(self, severity: str) -> list[EscalationLevel]:
        """Levels that wait for their delay to elapse."""
        return [level for level in self.levels_for(severity) if level.delay]

    def schedule(
        self, severity: str, created_at: datetime
    ) -> list[tuple[EscalationLevel, datetime]]:
        """Return (level, due_at) pairs for every level of the chain."""
        return [(level, created_at + level.delay) for level in self.levels_for(severity)]

    def due_levels(
        self, severity: str, created_at: datetime, now: datetime
    ) -> list[EscalationLevel]:
        """Deferred levels whose due time has passed."""
        return [
            level
            for level, due_at in self.schedule(severity, created_at)
            if level.delay and due_at <= now
        ]
