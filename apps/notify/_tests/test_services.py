"""Tests for NotificationHub."""

import pytest
from django.test import SimpleTestCase

from apps.incidents.exceptions import ChannelDeliveryError
from apps.notify.services import NotificationHub
from apps.notify.transport import HttpResponse
from apps.notify._tests.fakes import FakeEmailSender, FakeTransport, make_router


class NotificationHubTests(SimpleTestCase):
    def setUp(self):
        self.transport = FakeTransport(
            {"api.twilio.com": [HttpResponse(status=201, body='{"sid": "SM9"}')]}
        )
        self.sender = FakeEmailSender()
        self.router = make_router(self.transport, sender=self.sender)
        self.hub = NotificationHub(router=self.router)

    def test_send_slack(self):
        result = self.hub.send_slack("db down", severity="P1")
        assert result["color"] == "#FFA500"
        call = self.transport.calls_to("hooks.slack.com")[0]
        assert call["json"]["channel"] == "#incidents"

    def test_send_slack_explicit_channel(self):
        self.hub.send_slack("db down", channel="#war-room")
        assert self.transport.calls[0]["json"]["channel"] == "#war-room"

    def test_send_sms(self):
        result = self.hub.send_sms("+15550100", "db down")
        assert result["message_id"] == "SM9"

    def test_send_email(self):
        result = self.hub.send_email("oncall@example.com", "subject", "body")
        assert result["to"] == "oncall@example.com"
        assert self.sender.sent[0]["subject"] == "subject"

    def test_send_discord(self):
        result = self.hub.send_discord("hello", username="Pager")
        assert result == {"status": "sent", "username": "Pager"}

    def test_send_incident_alert(self):
        self.hub.send_incident_alert("INC-1", "P0", "db down", "orders-api")
        embed = self.transport.calls_to("discord.com")[0]["json"]["embeds"][0]
        assert embed["color"] == 0xFF0000
        assert embed["fields"][1]["value"] == "orders-api"

    def test_send_status_update(self):
        self.hub.send_status_update("INC-1", "investigating", "looking")
        embed = self.transport.calls_to("discord.com")[0]["json"]["embeds"][0]
        assert embed["fields"][0]["value"] == "INVESTIGATING"

    def test_create_war_room(self):
        result = self.hub.create_war_room("INC-20260105100000-000001")
        assert result["war_room_url"] == "https://meet.google.com/incident-20260105100000-000001"

    def test_failure_raises_channel_delivery_error(self):
        transport = FakeTransport({"hooks.slack.com": [HttpResponse(status=400, body="invalid_payload")]})
        hub = NotificationHub(router=make_router(transport))
        with pytest.raises(ChannelDeliveryError) as exc_info:
            hub.send_slack("db down")
        assert exc_info.value.channel == "chat"
        assert exc_info.value.status == 400
