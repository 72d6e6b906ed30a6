"""Email notification driver."""

from __future__ import annotations

import logging
import smtplib
import uuid
from abc import ABC, abstractmethod
from email.mime.text import MIMEText
from typing import Any

from apps.incidents.exceptions import ChannelDeliveryError, TransportError
from apps.notify.config import ConfigProvider
from apps.notify.drivers.base import BaseNotifyDriver, NotificationRequest
from apps.notify.transport import HttpTransport

logger = logging.getLogger(__name__)


class EmailSender(ABC):
    """Generic send interface hiding the provider-specific transport."""

    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> str:
        """Submit one message and return its message id."""


class DjangoMailSender(EmailSender):
    """Sends through Django's configured EMAIL_BACKEND."""

    def __init__(self, from_address: str, timeout: float = 10):
        self.from_address = from_address
        self.timeout = timeout

    def send(self, to: str, subject: str, body: str) -> str:
        from django.core.mail import EmailMessage, get_connection

        message_id = str(uuid.uuid4())
        message = EmailMessage(
            subject=subject,
            body=body,
            from_email=self.from_address,
            to=[to],
            headers={"Message-ID": f"<{message_id}@incident-response>"},
            connection=get_connection(timeout=self.timeout),
        )
        try:
            message.send(fail_silently=False)
        except smtplib.SMTPRecipientsRefused as e:
            raise ChannelDeliveryError("email", f"Recipient refused: {e.recipients}")
        except (smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError) as e:
            raise TransportError(f"Failed to connect to mail server: {e}")
        except smtplib.SMTPException as e:
            raise ChannelDeliveryError("email", f"SMTP error: {e}")
        except OSError as e:
            raise TransportError(f"Mail server unreachable: {e}")
        return message_id


class SmtpEmailSender(EmailSender):
    """Sends directly over SMTP with smtplib."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        from_address: str = "",
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10,
    ):
        self.host = host
        self.port = port
        self.from_address = from_address
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def _build_email(self, to: str, subject: str, body: str, message_id: str) -> MIMEText:
        email = MIMEText(body, "plain")
        email["Subject"] = subject
        email["From"] = self.from_address
        email["To"] = to
        email["Message-ID"] = f"<{message_id}@{self.host}>"
        return email

    def send(self, to: str, subject: str, body: str) -> str:
        message_id = str(uuid.uuid4())
        email = self._build_email(to, subject, body, message_id)

        try:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        except OSError as e:
            raise TransportError(f"Failed to connect to SMTP {self.host}:{self.port}: {e}")

        try:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.sendmail(self.from_address, [to], email.as_string())
        except smtplib.SMTPAuthenticationError as e:
            raise ChannelDeliveryError("email", f"SMTP authentication failed: {e}")
        except smtplib.SMTPRecipientsRefused as e:
            raise ChannelDeliveryError("email", f"Recipient refused: {e.recipients}")
        except smtplib.SMTPServerDisconnected as e:
            raise TransportError(f"SMTP connection lost: {e}")
        except smtplib.SMTPException as e:
            raise ChannelDeliveryError("email", f"SMTP error: {e}")
        except OSError as e:
            raise TransportError(f"SMTP connection lost: {e}")
        finally:
            try:
                server.quit()
            except (smtplib.SMTPException, OSError):
                pass

        return message_id


class EmailNotifyDriver(BaseNotifyDriver):
    """
    Driver for sending email notifications.

    The request target is the recipient; payload carries "subject" and
    "body". Delivery goes through an EmailSender selected by the
    `email_sender` config key ("django" or "smtp").
    """

    name = "email"
    service_name = "Email"

    def __init__(
        self,
        transport: HttpTransport,
        config: ConfigProvider,
        sender: EmailSender | None = None,
    ):
        super().__init__(transport, config)
        self._sender = sender

    @property
    def sender(self) -> EmailSender:
        if self._sender is None:
            self._sender = self._build_sender()
        return self._sender

    def _build_sender(self) -> EmailSender:
        from_address = self.config.get("email_from_address")
        if self.config.get("email_sender") == "smtp":
            (host,) = self._require_config("smtp_host")
            return SmtpEmailSender(
                host=host,
                port=self.config.get_int("smtp_port"),
                from_address=from_address,
                username=self.config.get("smtp_username"),
                password=self.config.get("smtp_password"),
                use_tls=bool(self.config.get("smtp_use_tls")),
                timeout=self.timeout,
            )
        return DjangoMailSender(from_address=from_address, timeout=self.timeout)

    def send(self, request: NotificationRequest) -> dict[str, Any]:
        subject = request.payload.get("subject") or ""
        body = request.payload.get("body") or request.payload.get("text") or ""
        if not subject:
            raise ChannelDeliveryError(self.name, "Email subject is empty")

        message_id = self.sender.send(request.target, subject, body)

        logger.info(f"Email sent successfully: {message_id}")
        return {"message_id": message_id, "to": request.target, "subject": subject}
