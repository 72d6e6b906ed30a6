"""Tests for EmailNotifyDriver and the EmailSender implementations."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest
from django.core import mail
from django.test import SimpleTestCase

from apps.incidents.exceptions import ChannelDeliveryError, TransportError
from apps.notify.config import DictConfigProvider
from apps.notify.drivers.base import NotificationRequest
from apps.notify.drivers.email import DjangoMailSender, EmailNotifyDriver, SmtpEmailSender
from apps.notify._tests.fakes import FakeEmailSender, FakeTransport


def _request(**payload):
    return NotificationRequest(
        channel="email",
        target="oncall@example.com",
        payload=payload or {"subject": "[P0] db down", "body": "details"},
    )


class EmailDriverTests(SimpleTestCase):
    def test_send_uses_sender(self):
        sender = FakeEmailSender()
        driver = EmailNotifyDriver(FakeTransport(), DictConfigProvider({}), sender=sender)

        result = driver.send(_request())

        assert result == {"message_id": "msg-1", "to": "oncall@example.com", "subject": "[P0] db down"}
        assert sender.sent == [
            {"to": "oncall@example.com", "subject": "[P0] db down", "body": "details"}
        ]

    def test_empty_subject_raises(self):
        driver = EmailNotifyDriver(FakeTransport(), DictConfigProvider({}), sender=FakeEmailSender())
        with pytest.raises(ChannelDeliveryError):
            driver.send(_request(body="no subject"))

    def test_default_sender_is_django(self):
        driver = EmailNotifyDriver(FakeTransport(), DictConfigProvider({}))
        assert isinstance(driver.sender, DjangoMailSender)
        assert driver.sender.from_address == "incidents@localhost"

    def test_smtp_sender_selected_by_config(self):
        driver = EmailNotifyDriver(
            FakeTransport(),
            DictConfigProvider({"email_sender": "smtp", "smtp_host": "smtp.example.com"}),
        )
        assert isinstance(driver.sender, SmtpEmailSender)
        assert driver.sender.host == "smtp.example.com"
        assert driver.sender.port == 587

    def test_smtp_sender_requires_host(self):
        driver = EmailNotifyDriver(FakeTransport(), DictConfigProvider({"email_sender": "smtp"}))
        with pytest.raises(ChannelDeliveryError):
            driver.send(_request())


class DjangoMailSenderTests(SimpleTestCase):
    def test_sends_through_configured_backend(self):
        sender = DjangoMailSender(from_address="incidents@example.com")

        message_id = sender.send("oncall@example.com", "subject", "body")

        assert message_id
        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.to == ["oncall@example.com"]
        assert message.from_email == "incidents@example.com"
        assert message.subject == "subject"


class SmtpEmailSenderTests(SimpleTestCase):
    def _sender(self):
        return SmtpEmailSender(
            host="smtp.example.com",
            port=587,
            from_address="incidents@example.com",
            username="user",
            password="pass",
        )

    @patch("apps.notify.drivers.email.smtplib.SMTP")
    def test_send_success(self, mock_smtp):
        server = MagicMock()
        mock_smtp.return_value = server

        message_id = self._sender().send("oncall@example.com", "subject", "body")

        assert message_id
        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=10)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "pass")
        server.sendmail.assert_called_once()
        server.quit.assert_called_once()

    @patch("apps.notify.drivers.email.smtplib.SMTP")
    def test_connection_refused_is_transient(self, mock_smtp):
        mock_smtp.side_effect = ConnectionRefusedError("refused")
        with pytest.raises(TransportError):
            self._sender().send("oncall@example.com", "subject", "body")

    @patch("apps.notify.drivers.email.smtplib.SMTP")
    def test_auth_failure_is_permanent(self, mock_smtp):
        server = MagicMock()
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        mock_smtp.return_value = server

        with pytest.raises(ChannelDeliveryError):
            self._sender().send("oncall@example.com", "subject", "body")
        server.quit.assert_called_once()

    @patch("apps.notify.drivers.email.smtplib.SMTP")
    def test_disconnect_is_transient(self, mock_smtp):
        server = MagicMock()
        server.sendmail.side_effect = smtplib.SMTPServerDisconnected("gone")
        mock_smtp.return_value = server

        with pytest.raises(TransportError):
            self._sender().send("oncall@example.com", "subject", "body")
