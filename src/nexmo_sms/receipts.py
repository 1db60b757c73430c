from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import IntEnum, StrEnum
from typing import Any, Final, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

SCTS_FORMAT: Final[str] = "%y%m%d%H%M"


class DeliveryStatus(StrEnum):
    # Message arrived to handset
    DELIVERED = "DELIVERED"
    # No status from the mobile operator within 48h
    EXPIRED = "EXPIRED"
    FAILED = "FAILED"
    # Message is being delivered
    BUFFERED = "BUFFERED"


class ErrorCode(IntEnum):
    DELIVERED = 0
    UNKNOWN = 1
    ABSENT_SUBSCRIBER_TEMPORARY = 2
    ABSENT_SUBSCRIBER_PERMANENT = 3
    CALL_BARRED = 4
    PORTABILITY_ERROR = 5
    ANTI_SPAM_REJECTION = 6
    HANDSET_BUSY = 7
    NETWORK_ERROR = 8
    ILLEGAL_NUMBER = 9
    INVALID_MESSAGE = 10
    UNROUTABLE = 11
    GENERAL_ERROR = 99


ERROR_MESSAGES: Final[Mapping[int, str]] = {
    ErrorCode.DELIVERED: "Delivered",
    ErrorCode.UNKNOWN: "Unknown",
    ErrorCode.ABSENT_SUBSCRIBER_TEMPORARY: "Absent Subscriber - Temporary",
    ErrorCode.ABSENT_SUBSCRIBER_PERMANENT: "Absent Subscriber - Permenant",
    ErrorCode.CALL_BARRED: "Call barred by user",
    ErrorCode.PORTABILITY_ERROR: "Portability Error",
    ErrorCode.ANTI_SPAM_REJECTION: "Anti-Spam Rejection",
    ErrorCode.HANDSET_BUSY: "Handset Busy",
    ErrorCode.NETWORK_ERROR: "Network Error",
    ErrorCode.ILLEGAL_NUMBER: "Illegal Number",
    ErrorCode.INVALID_MESSAGE: "Invalid Message",
    ErrorCode.UNROUTABLE: "Unroutable",
    ErrorCode.GENERAL_ERROR: "General Error",
}


def error_message_for(code: str | int | None) -> str:
    """Human readable text for a DLR err-code; "" when absent or unknown."""
    if code is None:
        return ""
    try:
        return ERROR_MESSAGES.get(int(code), "")
    except ValueError:
        return ""


def parse_scts(value: str | None) -> datetime | None:
    """Convert a yyMMddHHmm status timestamp (UTC) to a datetime."""
    if not value:
        return None
    try:
        return datetime.strptime(value, SCTS_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        logger.debug("Unparsable scts value: %r", value)
        return None


def _to_int(value: str | None) -> int:
    try:
        return int(value) if value is not None else 0
    except ValueError:
        return 0


class _WebhookRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @field_validator("*", mode="before")
    @classmethod
    def as_text(cls, value: Any) -> Any:
        # Query/form values are text; tolerate numbers passed in directly
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> Self:
        return cls.model_validate(dict(params))


class DeliveryReceipt(_WebhookRecord):
    """
    Delivery receipt (DLR) posted by Nexmo to the callback URL.

    Raw fields keep the wire names as aliases; note that on a receipt "to" is
    the sender id and "msisdn" the handset the message went to.
    """

    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    to: str | None = None
    network_code: str | None = Field(default=None, alias="network-code")
    message_id: str | None = Field(default=None, alias="messageId")
    msisdn: str | None = None
    status: str | None = None
    err_code: str | None = Field(default=None, alias="err-code")
    scts: str | None = None
    client_ref: str | None = Field(default=None, alias="client-ref")

    @property
    def sender(self) -> str | None:
        return self.to

    @property
    def recipient(self) -> str | None:
        return self.msisdn

    @property
    def network(self) -> str | None:
        """Mobile network MCCMNC, when provided."""
        return self.network_code

    @property
    def error(self) -> str | None:
        return self.err_code

    @property
    def error_message(self) -> str:
        return error_message_for(self.err_code)

    @property
    def received_at(self) -> datetime | None:
        return parse_scts(self.scts)


class InboundMessage(_WebhookRecord):
    """An SMS received on one of the account's virtual numbers."""

    # "text" or "binary"
    type: str | None = None
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    to: str | None = None
    msisdn: str | None = None
    network_code: str | None = Field(default=None, alias="network-code")
    message_id: str | None = Field(default=None, alias="messageId")
    text: str | None = None
    concat: str | None = None
    concat_ref: str | None = Field(default=None, alias="concat-ref")
    concat_total: str | None = Field(default=None, alias="concat-total")
    concat_part: str | None = Field(default=None, alias="concat-part")
    # binary messages only, hex encoded
    data: str | None = None
    udh: str | None = None

    @property
    def sender(self) -> str | None:
        return self.msisdn

    @property
    def message_type(self) -> str | None:
        return self.type

    @property
    def concatenated(self) -> bool:
        # Any non-empty value other than "0" marks a concatenated part
        return bool(self.concat) and self.concat != "0"

    @property
    def concatenated_total(self) -> int:
        return _to_int(self.concat_total)

    @property
    def concatenated_part(self) -> int:
        return _to_int(self.concat_part)
