"""Tests for SlackNotifyDriver (chat channel)."""

import pytest
from django.test import SimpleTestCase

from apps.incidents.exceptions import ChannelDeliveryError, TransportError
from apps.notify.config import DictConfigProvider
from apps.notify.drivers.base import NotificationRequest
from apps.notify.drivers.slack import SlackNotifyDriver
from apps.notify.transport import HttpResponse
from apps.notify._tests.fakes import SLACK_WEBHOOK, TEST_CONFIG, FakeTransport


def _request(**kwargs):
    defaults = {
        "channel": "chat",
        "target": "#incidents",
        "payload": {"text": "db down"},
        "severity": "P0",
    }
    defaults.update(kwargs)
    return NotificationRequest(**defaults)


class SlackPayloadTests(SimpleTestCase):
    def setUp(self):
        self.driver = SlackNotifyDriver(FakeTransport(), DictConfigProvider(TEST_CONFIG))

    def test_attachment_shape(self):
        payload = self.driver.build_payload(_request())
        assert payload["attachments"] == [
            {"color": "#FF0000", "text": "db down", "footer": "Severity: P0"}
        ]
        assert payload["channel"] == "#incidents"

    def test_user_target_sets_channel(self):
        payload = self.driver.build_payload(_request(target="@alice"))
        assert payload["channel"] == "@alice"

    def test_plain_target_uses_webhook_default(self):
        payload = self.driver.build_payload(_request(target="default"))
        assert "channel" not in payload

    def test_unknown_severity_is_gray(self):
        payload = self.driver.build_payload(_request(severity="P7"))
        assert payload["attachments"][0]["color"] == "#808080"


class SlackSendTests(SimpleTestCase):
    def test_send_posts_to_webhook(self):
        transport = FakeTransport()
        driver = SlackNotifyDriver(transport, DictConfigProvider(TEST_CONFIG))

        result = driver.send(_request(severity="P1"))

        assert result["channel"] == "#incidents"
        assert result["color"] == "#FFA500"
        assert len(transport.calls) == 1
        call = transport.calls[0]
        assert call["url"] == SLACK_WEBHOOK
        assert call["json"]["attachments"][0]["footer"] == "Severity: P1"
        assert call["timeout"] == 2.0

    def test_missing_webhook_raises(self):
        driver = SlackNotifyDriver(FakeTransport(), DictConfigProvider({}))
        with pytest.raises(ChannelDeliveryError) as exc_info:
            driver.send(_request())
        assert "slack_webhook_url" in exc_info.value.message

    def test_server_error_is_transient(self):
        transport = FakeTransport({"hooks.slack.com": [HttpResponse(status=500, body="boom")]})
        driver = SlackNotifyDriver(transport, DictConfigProvider(TEST_CONFIG))
        with pytest.raises(TransportError):
            driver.send(_request())

    def test_client_error_is_permanent(self):
        transport = FakeTransport({"hooks.slack.com": [HttpResponse(status=403, body="invalid_token")]})
        driver = SlackNotifyDriver(transport, DictConfigProvider(TEST_CONFIG))
        with pytest.raises(ChannelDeliveryError) as exc_info:
            driver.send(_request())
        assert exc_info.value.status == 403
