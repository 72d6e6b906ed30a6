"""Tests for EscalationPolicy."""

from datetime import datetime, timedelta, timezone

import pytest
from django.test import SimpleTestCase

from apps.incidents.escalation import EscalationLevel, EscalationPolicy
from apps.incidents.exceptions import ValidationError

CREATED = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)


class EscalationPolicyTests(SimpleTestCase):
    def setUp(self):
        self.policy = EscalationPolicy()

    def test_p0_chain(self):
        levels = self.policy.levels_for("P0")
        assert [(l.role, l.delay, l.contact_immediately) for l in levels] == [
            ("on_call_engineer", timedelta(0), True),
            ("team_lead", timedelta(minutes=5), False),
            ("vp_engineering", timedelta(minutes=15), False),
        ]

    def test_p1_chain(self):
        levels = self.policy.levels_for("P1")
        assert [(l.role, l.contact_after) for l in levels] == [
            ("on_call_engineer", "0min"),
            ("team_lead", "30min"),
        ]

    def test_p2_and_p3(self):
        assert self.policy.levels_for("P2") == [EscalationLevel("on_call_engineer", timedelta(0))]
        assert self.policy.levels_for("P3") == [EscalationLevel("ticket_queue", timedelta(0))]

    def test_unknown_severity_raises(self):
        with pytest.raises(ValidationError):
            self.policy.levels_for("P5")
        with pytest.raises(ValidationError):
            self.policy.levels_for("critical")

    def test_chain_is_stable(self):
        assert self.policy.levels_for("P0") == self.policy.levels_for("P0")

    def test_immediate_and_deferred(self):
        assert [l.role for l in self.policy.immediate_levels("P0")] == ["on_call_engineer"]
        assert [l.role for l in self.policy.deferred_levels("P0")] == ["team_lead", "vp_engineering"]
        assert self.policy.deferred_levels("P3") == []

    def test_schedule(self):
        schedule = self.policy.schedule("P1", CREATED)
        assert [(level.role, due) for level, due in schedule] == [
            ("on_call_engineer", CREATED),
            ("team_lead", CREATED + timedelta(minutes=30)),
        ]

    def test_due_levels(self):
        now = CREATED + timedelta(minutes=10)
        assert [l.role for l in self.policy.due_levels("P0", CREATED, now)] == ["team_lead"]
        later = CREATED + timedelta(minutes=15)
        assert [l.role for l in self.policy.due_levels("P0", CREATED, later)] == [
            "team_lead",
            "vp_engineering",
        ]
        assert self.policy.due_levels("P0", CREATED, CREATED) == []

    def test_level_to_dict(self):
        level = self.policy.levels_for("P0")[1]
        assert level.to_dict() == {
            "role": "team_lead",
            "delay_seconds": 300,
            "contact_after": "5min",
            "contact_immediately": False,
        }
