"""Tests for IncidentStore: id allocation, state machine and action logging."""

import threading
from datetime import datetime, timezone

import pytest
from django.db import connection
from django.test import SimpleTestCase

from apps.incidents.exceptions import InvalidTransition, NotFoundError, ValidationError
from apps.incidents.models import Incident, IncidentStatus
from apps.incidents.services import IncidentStore, KeyedLock, parse_details, parse_timestamp


def _create(store, severity="P0", timestamp="2026-01-05T10:00:00Z", **kwargs):
    return store.create_incident("db down", severity, "orders-api", "alice", timestamp=timestamp, **kwargs)


@pytest.mark.django_db
class TestCreateIncident:
    def setup_method(self):
        self.store = IncidentStore()

    def test_creates_open_incident_with_created_event(self):
        incident = _create(self.store)

        assert incident.status == IncidentStatus.OPEN
        assert incident.id.startswith("INC-20260105100000-")
        assert incident.created_at == datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)

        events = self.store.timeline.read(incident.id)
        assert [e.action_type for e in events] == ["created"]
        assert events[0].details["severity"] == "P0"

    def test_same_second_ids_are_distinct(self):
        ids = {_create(self.store).id for _ in range(20)}
        assert len(ids) == 20

    def test_ids_sort_by_allocation(self):
        first = _create(self.store)
        second = _create(self.store)
        assert first.id < second.id

    def test_missing_timestamp_uses_now(self):
        incident = _create(self.store, timestamp=None)
        assert (datetime.now(timezone.utc) - incident.created_at).total_seconds() < 60

    def test_unknown_severity(self):
        with pytest.raises(ValidationError):
            _create(self.store, severity="SEV1")
        assert Incident.objects.count() == 0

    def test_bad_timestamp(self):
        with pytest.raises(ValidationError):
            _create(self.store, timestamp="yesterday-ish")
        assert Incident.objects.count() == 0

    def test_team_is_stored(self):
        assert _create(self.store, team="backend").team == "backend"


@pytest.mark.django_db
class TestUpdateStatus:
    def setup_method(self):
        self.store = IncidentStore()

    def test_full_lifecycle(self):
        incident = _create(self.store)
        for status in ("investigating", "resolved", "closed"):
            change = self.store.update_status(incident.id, status, notes=f"to {status}")
            assert change.incident.status == status

        incident.refresh_from_db()
        assert incident.resolved_at is not None
        assert incident.closed_at is not None

        events = self.store.timeline.read(incident.id)
        assert [e.action_type for e in events] == [
            "created",
            "status_changed",
            "status_changed",
            "status_changed",
        ]
        assert events[1].details == {"from": "open", "to": "investigating", "notes": "to investigating"}

    def test_open_to_closed_is_invalid(self):
        incident = _create(self.store)
        with pytest.raises(InvalidTransition) as exc_info:
            self.store.update_status(incident.id, "closed", "skip ahead")
        assert exc_info.value.current == "open"
        assert exc_info.value.requested == "closed"
        incident.refresh_from_db()
        assert incident.status == "open"
        assert len(self.store.timeline.read(incident.id)) == 1

    def test_open_to_resolved_is_invalid(self):
        incident = _create(self.store)
        with pytest.raises(InvalidTransition):
            self.store.update_status(incident.id, "resolved")

    def test_reopen_resolved(self):
        incident = _create(self.store)
        self.store.update_status(incident.id, "investigating")
        self.store.update_status(incident.id, "resolved")

        change = self.store.update_status(incident.id, "investigating", "regressed")

        assert change.incident.status == "investigating"
        assert change.incident.resolved_at is None

    def test_closed_is_terminal(self):
        incident = _create(self.store)
        for status in ("investigating", "resolved", "closed"):
            self.store.update_status(incident.id, status)
        for status in ("open", "investigating", "resolved", "closed"):
            with pytest.raises(InvalidTransition):
                self.store.update_status(incident.id, status)

    def test_investigating_self_loop_records_note(self):
        incident = _create(self.store)
        self.store.update_status(incident.id, "investigating")

        change = self.store.update_status(incident.id, "investigating", "still digging")

        assert not change.changed
        assert change.event.action_type == "note"
        assert change.event.details == {"status": "investigating", "notes": "still digging"}

    def test_open_self_loop_is_invalid(self):
        incident = _create(self.store)
        with pytest.raises(InvalidTransition):
            self.store.update_status(incident.id, "open")

    def test_unknown_status(self):
        incident = _create(self.store)
        with pytest.raises(ValidationError):
            self.store.update_status(incident.id, "acknowledged")

    def test_unknown_incident(self):
        with pytest.raises(NotFoundError):
            self.store.update_status("INC-missing", "investigating")


@pytest.mark.django_db
class TestLogAction:
    def setup_method(self):
        self.store = IncidentStore()

    def test_log_dict_details(self):
        incident = _create(self.store)
        event = self.store.log_action(incident.id, "note", {"text": "restarted pod"})
        assert event.sequence == 2
        assert event.details == {"text": "restarted pod"}
        incident.refresh_from_db()
        assert incident.status == "open"

    def test_log_json_string_details(self):
        incident = _create(self.store)
        event = self.store.log_action(incident.id, "escalated", '{"role": "team_lead"}')
        assert event.details == {"role": "team_lead"}

    def test_log_plain_string_details(self):
        incident = _create(self.store)
        event = self.store.log_action(incident.id, "resolved", "rolled back deploy")
        assert event.details == {"text": "rolled back deploy"}

    def test_reserved_actions_rejected(self):
        incident = _create(self.store)
        for action in ("created", "status_changed"):
            with pytest.raises(ValidationError):
                self.store.log_action(incident.id, action, {})

    def test_unknown_action_rejected(self):
        incident = _create(self.store)
        with pytest.raises(ValidationError):
            self.store.log_action(incident.id, "paged", {})

    def test_unknown_incident(self):
        with pytest.raises(NotFoundError):
            self.store.log_action("INC-missing", "note", {})


@pytest.mark.django_db
class TestQueries:
    def test_get_and_active(self):
        store = IncidentStore()
        first = _create(store, timestamp="2026-01-05T10:00:00Z")
        second = _create(store, timestamp="2026-01-05T11:00:00Z")
        third = _create(store, timestamp="2026-01-05T12:00:00Z")
        store.update_status(second.id, "investigating")
        for status in ("investigating", "resolved"):
            store.update_status(third.id, status)

        assert store.get(first.id).id == first.id
        assert [i.id for i in store.active()] == [second.id, first.id]

    def test_get_unknown(self):
        with pytest.raises(NotFoundError):
            IncidentStore().get("INC-missing")


@pytest.mark.django_db(transaction=True)
class TestConcurrentWrites:
    WORKERS = 8

    def _run_threads(self, target, args_list):
        barrier = threading.Barrier(len(args_list))
        results, errors = [], []
        lock = threading.Lock()

        def worker(*args):
            try:
                barrier.wait()
                value = target(*args)
                with lock:
                    results.append(value)
            except Exception as e:
                with lock:
                    errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=args) for args in args_list]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        return results, errors

    def test_concurrent_creates_get_distinct_ids(self):
        results, errors = self._run_threads(
            lambda: _create(IncidentStore()).id, [()] * self.WORKERS
        )

        assert errors == []
        assert len(set(results)) == self.WORKERS
        assert all(incident_id.startswith("INC-20260105100000-") for incident_id in results)
        assert Incident.objects.count() == self.WORKERS

    def test_concurrent_updates_on_different_incidents(self):
        store = IncidentStore()
        ids = [_create(store).id for _ in range(self.WORKERS)]

        results, errors = self._run_threads(
            lambda incident_id: IncidentStore().update_status(incident_id, "investigating").changed,
            [(incident_id,) for incident_id in ids],
        )

        assert errors == []
        assert results == [True] * self.WORKERS
        assert Incident.objects.filter(status="investigating").count() == self.WORKERS
        for incident_id in ids:
            assert [e.action_type for e in store.timeline.read(incident_id)] == [
                "created",
                "status_changed",
            ]


class KeyedLockTests(SimpleTestCase):
    def test_serializes_same_key(self):
        lock = KeyedLock()
        active = []
        overlaps = []

        def worker():
            with lock.hold("INC-1"):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(True)
                threading.Event().wait(0.01)
                active.pop()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlaps == []
        assert len(lock) == 0

    def test_different_keys_do_not_block(self):
        lock = KeyedLock()
        with lock.hold("INC-1"):
            acquired = threading.Event()

            def other():
                with lock.hold("INC-2"):
                    acquired.set()

            thread = threading.Thread(target=other)
            thread.start()
            assert acquired.wait(1)
            thread.join()


class ParsingTests(SimpleTestCase):
    def test_parse_timestamp_zulu(self):
        assert parse_timestamp("2026-01-05T10:00:00Z") == datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)

    def test_parse_naive_timestamp_is_utc(self):
        assert parse_timestamp("2026-01-05 10:00:00").tzinfo is not None

    def test_parse_invalid_timestamp(self):
        with pytest.raises(ValidationError):
            parse_timestamp("2026-13-45T99:00:00Z")
        with pytest.raises(ValidationError):
            parse_timestamp(12345)

    def test_parse_details(self):
        assert parse_details(None) == {}
        assert parse_details({"a": 1}) == {"a": 1}
        assert parse_details('{"a": 1}') == {"a": 1}
        assert parse_details("[1, 2]") == {"text": "[1, 2]"}
        assert parse_details("free text") == {"text": "free text"}
