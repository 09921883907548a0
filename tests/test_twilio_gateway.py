from types import SimpleNamespace

import pytest
from twilio.base.exceptions import TwilioRestException

from app.application.ports.sms_gateway import SmsDeliveryFailure
from app.infrastructure.sms.twilio_gateway import TwilioSmsGateway


class FakeMessages:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def create(self, body, from_, to):
        self.calls.append({"body": body, "from_": from_, "to": to})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(sid="SM123")


def _gateway(error=None, from_number="+15550009999"):
    messages = FakeMessages(error)
    return TwilioSmsGateway(client=SimpleNamespace(messages=messages), from_number=from_number), messages


def test_send_returns_message_sid():
    gateway, messages = _gateway()
    assert gateway.is_configured is True
    assert gateway.send("+15551234567", "hello") == "SM123"
    assert messages.calls == [{"body": "hello", "from_": "+15550009999", "to": "+15551234567"}]


def test_rest_error_keeps_provider_code():
    gateway, _ = _gateway(TwilioRestException(400, "/Messages", msg="Unverified number", code=21608))
    with pytest.raises(SmsDeliveryFailure) as exc:
        gateway.send("+15551234567", "hello")
    assert exc.value.code == 21608
    assert "Unverified" in str(exc.value)


def test_missing_sender_number_is_not_configured():
    gateway, messages = _gateway(from_number="")
    assert gateway.is_configured is False
    with pytest.raises(SmsDeliveryFailure):
        gateway.send("+15551234567", "hello")
    assert messages.calls == []
