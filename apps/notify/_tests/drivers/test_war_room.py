"""Tests for the war room driver."""

from django.test import SimpleTestCase

from apps.notify.config import DictConfigProvider
from apps.notify.drivers.base import NotificationRequest
from apps.notify.drivers.war_room import WarRoomDriver, war_room_url
from apps.notify._tests.fakes import FakeTransport


class WarRoomTests(SimpleTestCase):
    def test_url_strips_prefix(self):
        assert (
            war_room_url("INC-20260105100000-000001")
            == "https://meet.google.com/incident-20260105100000-000001"
        )

    def test_url_custom_base(self):
        assert war_room_url("INC-7", "https://zoom.example.com/") == "https://zoom.example.com/incident-7"

    def test_driver_makes_no_http_call(self):
        transport = FakeTransport()
        driver = WarRoomDriver(transport, DictConfigProvider({}))
        result = driver.send(NotificationRequest(channel="war_room", target="INC-7"))
        assert result == {"war_room_url": "https://meet.google.com/incident-7", "incident_id": "INC-7"}
        assert transport.calls == []
