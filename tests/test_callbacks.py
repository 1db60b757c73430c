from __future__ import annotations

import logging

import pytest

from nexmo_sms.callbacks import DeliveryCallbackHandler, InboundCallbackHandler, merge_params
from nexmo_sms.receipts import DeliveryReceipt, InboundMessage


def test_merge_params_body_wins() -> None:
    merged = merge_params({"a": "get", "b": "get"}, {"b": "post", "c": "post"})
    assert merged == {"a": "get", "b": "post", "c": "post"}


def test_delivery_receipt_notifies_subscribers() -> None:
    handler = DeliveryCallbackHandler()
    received: list[DeliveryReceipt] = []
    handler.subscribe(received.append)

    receipt = handler.handle({"msisdn": "123", "network-code": "234", "messageId": "abc", "status": "DELIVERED"})

    assert receipt is not None
    assert received == [receipt]
    assert receipt.status == "DELIVERED"
    assert receipt.error_message == ""


@pytest.mark.parametrize("missing", ["msisdn", "network-code", "messageId"])
def test_invalid_delivery_is_logged_and_dropped(missing: str, caplog: pytest.LogCaptureFixture) -> None:
    params = {"msisdn": "123", "network-code": "234", "messageId": "abc"}
    del params[missing]
    handler = DeliveryCallbackHandler()
    received: list[DeliveryReceipt] = []
    handler.subscribe(received.append)

    with caplog.at_level(logging.WARNING):
        assert handler.handle(params) is None

    assert received == []
    assert "Invalid nexmo delivery call" in caplog.text


def test_inbound_message_notifies_subscribers() -> None:
    handler = InboundCallbackHandler()
    received: list[InboundMessage] = []
    handler.subscribe(received.append)

    message = handler.handle({"text": "hi", "msisdn": "447525856424", "to": "447700900000"})

    assert message is not None
    assert received == [message]
    assert message.sender == "447525856424"


def test_inbound_missing_text_fires_nothing(caplog: pytest.LogCaptureFixture) -> None:
    handler = InboundCallbackHandler()
    received: list[InboundMessage] = []
    handler.subscribe(received.append)

    with caplog.at_level(logging.WARNING):
        assert handler.handle({"msisdn": "447525856424", "to": "447700900000"}) is None

    assert received == []
    assert "Invalid nexmo inbound call" in caplog.text


def test_failing_subscriber_does_not_stop_others(caplog: pytest.LogCaptureFixture) -> None:
    handler = InboundCallbackHandler()
    received: list[InboundMessage] = []

    @handler.subscribe
    def broken(message: InboundMessage) -> None:
        raise RuntimeError("boom")

    handler.subscribe(received.append)

    assert handler.handle({"text": "hi", "msisdn": "1", "to": "2"}) is not None
    assert len(received) == 1
    assert "subscriber" in caplog.text


def test_unsubscribe() -> None:
    handler = DeliveryCallbackHandler()
    received: list[DeliveryReceipt] = []
    handler.subscribe(received.append)
    handler.unsubscribe(received.append)
    handler.unsubscribe(received.append)

    handler.handle({"msisdn": "123", "network-code": "234", "messageId": "abc"})
    assert received == []
