from __future__ import annotations

import logging

import boto3
import pytest
from botocore.exceptions import EndpointConnectionError
from botocore.stub import Stubber

from tasknotify.mailer import (
    EmailChannel,
    LogEmailChannel,
    NotificationDispatcher,
    SESEmailChannel,
    get_email_channel,
)

from .fakes import SENDER, make_settings


@pytest.fixture()
def ses_client():
    client = boto3.client(
        "ses",
        region_name="ap-southeast-2",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    with Stubber(client) as stubber:
        yield client, stubber


def _expected_params(to_address: str, subject: str, body: str) -> dict:
    return {
        "Source": SENDER,
        "Destination": {"ToAddresses": [to_address]},
        "Message": {
            "Subject": {"Data": subject},
            "Body": {"Text": {"Data": body}},
        },
    }


class _ExplodingChannel(EmailChannel):
    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    def send(self, *, source, to_address, subject, body):
        raise self._exc


class TestSESDispatch:
    def test_accepted_message_returns_true(self, ses_client):
        client, stubber = ses_client
        stubber.add_response(
            "send_email",
            {"MessageId": "0101-abc"},
            _expected_params("alice@example.com", "Hello", "Body text"),
        )
        dispatcher = NotificationDispatcher(SESEmailChannel(client), SENDER)

        assert dispatcher.send("alice@example.com", "Hello", "Body text") is True
        stubber.assert_no_pending_responses()

    def test_provider_rejection_returns_false(self, ses_client, caplog):
        client, stubber = ses_client
        stubber.add_client_error(
            "send_email",
            service_error_code="MessageRejected",
            service_message="Email address is not verified.",
            http_status_code=400,
            expected_params=_expected_params("bob@example.com", "Hi", "x"),
        )
        dispatcher = NotificationDispatcher(SESEmailChannel(client), SENDER)

        with caplog.at_level(logging.ERROR, logger="tasknotify.mailer"):
            assert dispatcher.send("bob@example.com", "Hi", "x") is False
        assert "MessageRejected" in caplog.text


class TestDispatcherBoundary:
    def test_transport_error_returns_false(self):
        exc = EndpointConnectionError(endpoint_url="https://email.ap-southeast-2.amazonaws.com")
        dispatcher = NotificationDispatcher(_ExplodingChannel(exc), SENDER)

        assert dispatcher.send("alice@example.com", "s", "b") is False

    def test_unexpected_error_returns_false(self):
        dispatcher = NotificationDispatcher(_ExplodingChannel(RuntimeError("boom")), SENDER)

        assert dispatcher.send("alice@example.com", "s", "b") is False

    def test_log_channel_accepts_everything(self, caplog):
        dispatcher = NotificationDispatcher(LogEmailChannel(), SENDER)

        with caplog.at_level(logging.INFO, logger="tasknotify.mailer"):
            assert dispatcher.send("alice@example.com", "Subject line", "Body line") is True
        assert "alice@example.com" in caplog.text
        assert "Body line" in caplog.text


class TestChannelFactory:
    def test_log_backend(self):
        assert isinstance(get_email_channel(make_settings(email_backend="log")), LogEmailChannel)

    def test_ses_backend(self):
        channel = get_email_channel(make_settings(email_backend="ses", aws_region="eu-west-1"))

        assert isinstance(channel, SESEmailChannel)
