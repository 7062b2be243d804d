"""
Tests for the Twilio SMS gateway adapter.

A stub stands in for twilio.rest.Client so no network call is made.
"""

from types import SimpleNamespace

import pytest
from twilio.base.exceptions import TwilioRestException

from app.config import Settings
from app.errors import DeliveryError
from app.sms_gateway import DeliveryReceipt, TwilioConfig, TwilioSmsGateway, build_sms_gateway


CONFIG = TwilioConfig(account_sid="ACtest", auth_token="secret", from_number="+15550000000")


class StubMessages:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


def stub_client(**kwargs):
    return SimpleNamespace(messages=StubMessages(**kwargs))


class TestTwilioSmsGateway:
    def test_send_returns_receipt(self):
        """Test a successful create() yields a receipt with the provider's sid and status."""
        client = stub_client(result=SimpleNamespace(sid="SM123", status="queued", to="+15551234567"))
        gateway = TwilioSmsGateway(CONFIG, client=client)

        receipt = gateway.send("+15551234567", "hello")

        assert receipt == DeliveryReceipt(sid="SM123", status="queued", to="+15551234567")

    def test_send_uses_configured_sender(self):
        """Test exactly one create() call with the configured from number."""
        client = stub_client(result=SimpleNamespace(sid="SM1", status="queued", to="+15551234567"))
        gateway = TwilioSmsGateway(CONFIG, client=client)

        gateway.send("+15551234567", "hello")

        assert client.messages.calls == [
            {"to": "+15551234567", "from_": "+15550000000", "body": "hello"}
        ]

    def test_provider_rejection_raises_delivery_error(self):
        """Test a TwilioRestException becomes DeliveryError with provider details."""
        error = TwilioRestException(400, "/Accounts/ACtest/Messages.json", msg="Invalid 'To' Phone Number", code=21211)
        gateway = TwilioSmsGateway(CONFIG, client=stub_client(error=error))

        with pytest.raises(DeliveryError) as exc_info:
            gateway.send("not-a-number", "hello")

        assert exc_info.value.message == "Failed to send SMS"
        assert exc_info.value.data["status"] == 400
        assert exc_info.value.data["code"] == 21211
        assert exc_info.value.__cause__ is error

    def test_transport_failure_raises_delivery_error(self):
        """Test transport errors collapse into DeliveryError too."""
        gateway = TwilioSmsGateway(CONFIG, client=stub_client(error=ConnectionError("connection reset")))

        with pytest.raises(DeliveryError) as exc_info:
            gateway.send("+15551234567", "hello")

        assert exc_info.value.data == {"type": "ConnectionError", "detail": "connection reset"}

    def test_no_retry_on_failure(self):
        client = stub_client(error=ConnectionError("connection reset"))
        gateway = TwilioSmsGateway(CONFIG, client=client)

        with pytest.raises(DeliveryError):
            gateway.send("+15551234567", "hello")

        assert len(client.messages.calls) == 1

    def test_builds_twilio_client_from_config(self):
        """Test the real Twilio client is built with the configured credentials."""
        gateway = TwilioSmsGateway(CONFIG)

        assert gateway.client.username == "ACtest"
        assert gateway.client.password == "secret"


class TestBuildSmsGateway:
    def test_configured_settings_build_gateway(self):
        settings = Settings(
            DATABASE_URL="sqlite://",
            SESSION_SECRET="s",
            TWILIO_ACCOUNT_SID="ACtest",
            TWILIO_AUTH_TOKEN="secret",
            TWILIO_FROM_NUMBER="+15550000000",
        )

        gateway = build_sms_gateway(settings)

        assert isinstance(gateway, TwilioSmsGateway)
        assert gateway.config == CONFIG

    def test_incomplete_settings_disable_gateway(self, monkeypatch):
        """Test a blank Twilio setting leaves the gateway unconfigured."""
        monkeypatch.delenv("TWILIO_FROM_NUMBER", raising=False)
        settings = Settings(
            DATABASE_URL="sqlite://",
            SESSION_SECRET="s",
            TWILIO_ACCOUNT_SID="ACtest",
            TWILIO_AUTH_TOKEN="secret",
            TWILIO_FROM_NUMBER="",
        )

        assert settings.twilio_configured is False
        assert build_sms_gateway(settings) is None
