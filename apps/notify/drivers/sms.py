"""Twilio SMS notification driver."""

import logging
from typing import Any

from apps.incidents.exceptions import ChannelDeliveryError
from apps.notify.drivers.base import BaseNotifyDriver, NotificationRequest

logger = logging.getLogger(__name__)


class SmsNotifyDriver(BaseNotifyDriver):
    """
    Driver for sending SMS through the Twilio Messages API.

    Configuration:
    {
        "twilio_account_sid": "AC...",
        "twilio_auth_token": "...",
        "twilio_from_number": "+15550000000"
    }

    The request target is the destination phone number and payload["body"]
    (or payload["text"]) the message. Authentication is HTTP basic auth with
    the account SID and auth token.
    """

    name = "sms"
    service_name = "Twilio"

    MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"

    def build_form(self, request: NotificationRequest, from_number: str) -> dict[str, str]:
        body = request.payload.get("body") or request.payload.get("text") or ""
        if not body:
            raise ChannelDeliveryError(self.name, "SMS body is empty")
        return {"To": request.target, "From": from_number, "Body": body}

    def send(self, request: NotificationRequest) -> dict[str, Any]:
        sid, token, from_number = self._require_config(
            "twilio_account_sid", "twilio_auth_token", "twilio_from_number"
        )

        form = self.build_form(request, from_number)
        response = self._check_response(
            self.transport.request(
                "POST",
                self.MESSAGES_URL.format(sid=sid),
                form=form,
                auth=(sid, token),
                timeout=self.timeout,
            )
        )

        data = response.json() or {}
        logger.info(f"SMS sent to {request.target}")
        return {
            "message_id": data.get("sid", ""),
            "to": request.target,
            "from": from_number,
        }
