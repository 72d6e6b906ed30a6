"""Test doubles for notification delivery."""

import threading

from apps.notify.config import DictConfigProvider
from apps.notify.drivers import build_drivers
from apps.notify.drivers.email import EmailNotifyDriver, EmailSender
from apps.notify.router import NotificationRouter
from apps.notify.transport import HttpResponse, HttpTransport

SLACK_WEBHOOK = "https://hooks.slack.com/services/T00/B00/xxx"
DISCORD_WEBHOOK = "https://discord.com/api/webhooks/123/abc"

TEST_CONFIG = {
    "slack_webhook_url": SLACK_WEBHOOK,
    "discord_webhook_url": DISCORD_WEBHOOK,
    "twilio_account_sid": "AC123",
    "twilio_auth_token": "secret-token",
    "twilio_from_number": "+15550000000",
    "email_from_address": "incidents@example.com",
    "timeout": 2,
    "max_retries": 2,
    "backoff_base": 0.01,
    "backoff_factor": 2.0,
    "dispatch_deadline": 5,
}


class FakeTransport(HttpTransport):
    """
    Records requests and replays scripted outcomes.

    script maps a URL substring to a list of outcomes (HttpResponse or an
    exception instance). Outcomes are consumed in order; the last one repeats.
    Unmatched URLs get a 200.
    """

    def __init__(self, script=None):
        self.script = {key: list(outcomes) for key, outcomes in (script or {}).items()}
        self.calls = []
        self._lock = threading.Lock()

    def request(
        self,
        method,
        url,
        *,
        json_body=None,
        form=None,
        headers=None,
        auth=None,
        timeout=10,
    ):
        with self._lock:
            self.calls.append(
                {
                    "method": method,
                    "url": url,
                    "json": json_body,
                    "form": form,
                    "auth": auth,
                    "timeout": timeout,
                }
            )
            outcome = HttpResponse(status=200, body="ok")
            for key, outcomes in self.script.items():
                if key in url:
                    outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
                    break

        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def calls_to(self, fragment):
        return [call for call in self.calls if fragment in call["url"]]


class FakeEmailSender(EmailSender):
    """Records messages instead of sending them."""

    def __init__(self, error=None):
        self.error = error
        self.sent = []
        self._lock = threading.Lock()

    def send(self, to, subject, body):
        if self.error is not None:
            raise self.error
        with self._lock:
            self.sent.append({"to": to, "subject": subject, "body": body})
            return f"msg-{len(self.sent)}"


def make_router(transport=None, sender=None, config=None, **kwargs):
    """Router over fake transport/email with no real sleeping."""
    transport = transport or FakeTransport()
    provider = DictConfigProvider({**TEST_CONFIG, **(config or {})})
    drivers = build_drivers(transport, provider)
    drivers["email"] = EmailNotifyDriver(transport, provider, sender=sender or FakeEmailSender())
    kwargs.setdefault("sleep", lambda seconds: None)
    return NotificationRouter(transport=transport, config=provider, drivers=drivers, **kwargs)
