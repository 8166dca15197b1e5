from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .settings import Settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class EmailChannel(ABC):
    """Outbound transactional-email transport. Implementations raise on failure."""

    @abstractmethod
    def send(self, *, source: str, to_address: str, subject: str, body: str) -> Optional[str]:
        """Send one plain-text message to one recipient. Return the provider message id if any."""


class SESEmailChannel(EmailChannel):
    """
    AWS SES transport via boto3.

    The client is built once and reused; boto3 low-level clients are safe to
    share between threads.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SESEmailChannel":
        """
        Build an SES client for settings.aws_region. Credentials come from the
        standard boto3 chain (env vars, shared config, instance role).
        Transport retries are disabled: one call is one delivery attempt.
        """
        config = Config(
            connect_timeout=settings.email_connect_timeout,
            read_timeout=settings.email_read_timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        client = boto3.client("ses", region_name=settings.aws_region, config=config)
        return cls(client)

    def send(self, *, source: str, to_address: str, subject: str, body: str) -> Optional[str]:
        response = self._client.send_email(
            Source=source,
            Destination={"ToAddresses": [to_address]},
            Message={
                "Subject": {"Data": subject},
                "Body": {"Text": {"Data": body}},
            },
        )
        return response.get("MessageId")


class LogEmailChannel(EmailChannel):
    """Development transport: writes each message to the log instead of sending it."""

    def send(self, *, source: str, to_address: str, subject: str, body: str) -> Optional[str]:
        logger.info("[email] from=%s to=%s subject=%r\n%s", source, to_address, subject, body)
        return None


# PUBLIC_INTERFACE
class NotificationDispatcher:
    """
    Sends one notification email per call from a fixed sender.

    send() never raises: provider and transport errors are logged and
    reported as False. There is no retry and no idempotency key, so
    calling it twice sends two emails.
    """

    def __init__(self, channel: EmailChannel, sender: str) -> None:
        self._channel = channel
        self._sender = sender

    @property
    def sender(self) -> str:
        return self._sender

    def send(self, to_address: str, subject: str, body: str) -> bool:
        """Return True if the channel accepted the message, False otherwise."""
        try:
            message_id = self._channel.send(
                source=self._sender,
                to_address=to_address,
                subject=subject,
                body=body,
            )
        except ClientError as exc:
            error = exc.response.get("Error", {})
            logger.error(
                "Email to %s rejected by provider: %s %s",
                to_address,
                error.get("Code"),
                error.get("Message"),
            )
            return False
        except BotoCoreError:
            logger.exception("Email transport failure sending to %s", to_address)
            return False
        except Exception:
            logger.exception("Unexpected error sending email to %s", to_address)
            return False

        logger.info("Email sent to %s message_id=%s", to_address, message_id)
        return True


# PUBLIC_INTERFACE
def get_email_channel(settings: Settings) -> EmailChannel:
    """
    Factory to return the configured email channel.
    - log: LogEmailChannel
    - ses: SESEmailChannel
    """
    if settings.email_backend == "ses":
        return SESEmailChannel.from_settings(settings)
    return LogEmailChannel()
