from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, ClassVar, Generic, TypeVar

from .receipts import DeliveryReceipt, InboundMessage

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", DeliveryReceipt, InboundMessage)


def merge_params(query: Mapping[str, Any], form: Mapping[str, Any]) -> dict[str, Any]:
    """Webhook parameters from the query string and the body; body values win."""
    merged = dict(query)
    merged.update(form)
    return merged


class CallbackHandler(Generic[RecordT]):
    """
    Validates webhook parameters and notifies subscribers with a typed record.

    Invalid calls are logged and dropped. Nothing is raised back to the HTTP
    layer: Nexmo only needs to see a successful response.
    """

    required_fields: ClassVar[tuple[str, ...]] = ()
    record_type: ClassVar[type]
    kind: ClassVar[str] = "callback"

    def __init__(self) -> None:
        self._subscribers: list[Callable[[RecordT], None]] = []

    def subscribe(self, callback: Callable[[RecordT], None]) -> Callable[[RecordT], None]:
        """Register `callback`; returns it so this can be used as a decorator."""
        self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: Callable[[RecordT], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def is_valid(self, params: Mapping[str, Any]) -> bool:
        return all(params.get(field) is not None for field in self.required_fields)

    def handle(self, params: Mapping[str, Any]) -> RecordT | None:
        if not self.is_valid(params):
            logger.warning("Invalid nexmo %s call: %s", self.kind, sorted(params))
            return None

        record: RecordT = self.record_type.from_params(params)
        for callback in list(self._subscribers):
            try:
                callback(record)
            except Exception:
                logger.exception("Nexmo %s subscriber %r failed", self.kind, callback)
        return record


class DeliveryCallbackHandler(CallbackHandler[DeliveryReceipt]):
    required_fields = ("msisdn", "network-code", "messageId")
    record_type = DeliveryReceipt
    kind = "delivery"


class InboundCallbackHandler(CallbackHandler[InboundMessage]):
    required_fields = ("text", "msisdn", "to")
    record_type = InboundMessage
    kind = "inbound"
