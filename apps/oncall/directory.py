"""On-call directory: who to page for a team, and where the team talks.

Public API:
- Engineer, TeamChannels, OncallAssignment
- DirectoryBackend, StaticDirectoryBackend
- OncallDirectory
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any

from apps.incidents.escalation import ON_CALL_ENGINEER, TICKET_QUEUE, EscalationPolicy
from apps.incidents.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Engineer:
    name: str
    phone: str = ""
    email: str = ""
    chat_handle: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class TeamChannels:
    primary: str = "#incidents"
    general: str = "#engineering"
    alerts: str = "#alerts"

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class OncallAssignment:
    """Read-only snapshot of a team's on-call state at lookup time."""

    team: str
    engineer: Engineer
    channels: TeamChannels
    contacts: dict[str, Engineer] = field(default_factory=dict)
    is_default: bool = False

    def contact_for(self, role: str) -> Engineer | None:
        if role == ON_CALL_ENGINEER:
            return self.engineer
        return self.contacts.get(role)


DEFAULT_ENGINEER = Engineer(
    name="Default Oncall",
    phone="+1-555-0100",
    email="oncall@company.com",
    chat_handle="@oncall",
)
DEFAULT_CHANNELS = TeamChannels()

DEFAULT_ROSTER: dict[str, dict[str, Any]] = {
    "backend": {
        "engineer": {
            "name": "Alice Johnson",
            "phone": "+1-555-0101",
            "email": "alice@company.com",
            "chat_handle": "@alice",
        },
        "channels": {
            "primary": "#backend-incidents",
            "general": "#backend",
            "alerts": "#backend-alerts",
        },
    },
    "frontend": {
        "engineer": {
            "name": "Bob Smith",
            "phone": "+1-555-0102",
            "email": "bob@company.com",
            "chat_handle": "@bob",
        },
        "channels": {
            "primary": "#frontend-incidents",
            "general": "#frontend",
            "alerts": "#frontend-alerts",
        },
    },
    "infra": {
        "engineer": {
            "name": "Charlie Davis",
            "phone": "+1-555-0103",
            "email": "charlie@company.com",
            "chat_handle": "@charlie",
        },
    },
}


class DirectoryBackend(ABC):
    """System of record for on-call data."""

    @abstractmethod
    def lookup(self, team: str) -> OncallAssignment | None:
        """Return the team's assignment, or None if the team is unknown."""


class StaticDirectoryBackend(DirectoryBackend):
    """
    Directory backed by a roster mapping.

    Roster format (per team, every key optional):
    {
        "engineer": {"name": ..., "phone": ..., "email": ..., "chat_handle": ...},
        "channels": {"primary": "#...", "general": "#...", "alerts": "#..."},
        "contacts": {"team_lead": {...}, "vp_engineering": {...}}
    }
    """

    def __init__(self, roster: dict[str, dict[str, Any]] | None = None):
        self.roster = DEFAULT_ROSTER if roster is None else roster

    def lookup(self, team: str) -> OncallAssignment | None:
        entry = self.roster.get(team)
        if entry is None:
            return None

        engineer = entry.get("engineer")
        channels = entry.get("channels")
        return OncallAssignment(
            team=team,
            engineer=Engineer(**engineer) if engineer else DEFAULT_ENGINEER,
            channels=TeamChannels(**channels) if channels else DEFAULT_CHANNELS,
            contacts={
                role: Engineer(**contact)
                for role, contact in (entry.get("contacts") or {}).items()
            },
        )


class OncallDirectory:
    """
    Resolves a team name to its on-call contact, escalation chain and channels.

    Unknown teams resolve to the default profile rather than failing.

    Usage:
        directory = OncallDirectory()
        directory.get_team_channels("backend")
    """

    def __init__(
        self,
        backend: DirectoryBackend | None = None,
        policy: EscalationPolicy | None = None,
    ):
        if backend is None:
            from django.conf import settings

            backend = StaticDirectoryBackend(getattr(settings, "ONCALL_ROSTER", None))
        self.backend = backend
        self.policy = policy or EscalationPolicy()

    def get_assignment(self, team: str | None) -> OncallAssignment:
        """Return the assignment snapshot for a team (default profile when unknown)."""
        if not team:
            return self._default("")
        if not isinstance(team, str) or not team.strip():
            raise ValidationError("Team name must be a non-empty string", team=team)

        assignment = self.backend.lookup(team)
        if assignment is None:
            logger.info(f"Unknown team {team!r}; using default on-call profile")
            return self._default(team)
        return assignment

    def get_oncall_engineer(self, team: str) -> dict[str, str]:
        self._require_team(team)
        return self.get_assignment(team).engineer.to_dict()

    def get_team_channels(self, team: str) -> dict[str, str]:
        self._require_team(team)
        return self.get_assignment(team).channels.to_dict()

    def get_escalation_chain(self, team: str, severity: str) -> dict[str, Any]:
        """Compose the severity policy with the team's contacts."""
        self._require_team(team)
        levels = self.policy.levels_for(severity)
        assignment = self.get_assignment(team)

        chain = []
        for level in levels:
            entry = level.to_dict()
            if level.role == TICKET_QUEUE:
                entry["contact"] = {"channel": assignment.channels.alerts}
            else:
                contact = assignment.contact_for(level.role)
                entry["contact"] = contact.to_dict() if contact else None
            chain.append(entry)

        return {
            "team": assignment.team,
            "severity": severity,
            "levels": chain,
            "channels": assignment.channels.to_dict(),
            "is_default": assignment.is_default,
        }

    def _require_team(self, team: str) -> None:
        if not isinstance(team, str) or not team.strip():
            raise ValidationError("Team name must be a non-empty string", team=team)

    def _default(self, team: str) -> OncallAssignment:
        return OncallAssignment(
            team=team,
            engineer=DEFAULT_ENGINEER,
            channels=DEFAULT_CHANNELS,
            is_default=True,
        )


__all__ = [
    "Engineer",
    "TeamChannels",
    "OncallAssignment",
    "DirectoryBackend",
    "StaticDirectoryBackend",
    "OncallDirectory",
]
