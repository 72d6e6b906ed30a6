"""Tests for SmsNotifyDriver (Twilio)."""

import pytest
from django.test import SimpleTestCase

from apps.incidents.exceptions import ChannelDeliveryError
from apps.notify.config import DictConfigProvider
from apps.notify.drivers.base import NotificationRequest
from apps.notify.drivers.sms import SmsNotifyDriver
from apps.notify.transport import HttpResponse
from apps.notify._tests.fakes import TEST_CONFIG, FakeTransport


class SmsSendTests(SimpleTestCase):
    def test_posts_form_with_basic_auth(self):
        transport = FakeTransport(
            {"api.twilio.com": [HttpResponse(status=201, body='{"sid": "SM42"}')]}
        )
        driver = SmsNotifyDriver(transport, DictConfigProvider(TEST_CONFIG))

        result = driver.send(
            NotificationRequest(channel="sms", target="+15550100", payload={"body": "db down"})
        )

        assert result == {"message_id": "SM42", "to": "+15550100", "from": "+15550000000"}
        call = transport.calls[0]
        assert call["url"] == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
        assert call["form"] == {"To": "+15550100", "From": "+15550000000", "Body": "db down"}
        assert call["auth"] == ("AC123", "secret-token")

    def test_empty_body_raises(self):
        driver = SmsNotifyDriver(FakeTransport(), DictConfigProvider(TEST_CONFIG))
        with pytest.raises(ChannelDeliveryError):
            driver.send(NotificationRequest(channel="sms", target="+15550100", payload={}))

    def test_missing_credentials_raise(self):
        driver = SmsNotifyDriver(FakeTransport(), DictConfigProvider({"twilio_account_sid": "AC1"}))
        with pytest.raises(ChannelDeliveryError) as exc_info:
            driver.send(NotificationRequest(channel="sms", target="+1", payload={"body": "x"}))
        assert "twilio_auth_token" in exc_info.value.message
        assert "twilio_from_number" in exc_info.value.message

    def test_invalid_number_is_permanent(self):
        transport = FakeTransport(
            {"api.twilio.com": [HttpResponse(status=400, body='{"code": 21211}')]}
        )
        driver = SmsNotifyDriver(transport, DictConfigProvider(TEST_CONFIG))
        with pytest.raises(ChannelDeliveryError) as exc_info:
            driver.send(NotificationRequest(channel="sms", target="bogus", payload={"body": "x"}))
        assert exc_info.value.status == 400
