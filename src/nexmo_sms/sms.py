from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Final, Literal

from .errors import ValidationError

MessageType = Literal["text", "unicode"]

MAX_ALPHANUMERIC_ORIGINATOR: Final[int] = 11
MAX_NUMERIC_ORIGINATOR: Final[int] = 15

# 48 hours, in milliseconds
DEFAULT_WAP_VALIDITY: Final[int] = 172_800_000

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")
_HAS_LETTER = re.compile(r"[a-zA-Z]")
_NUMERIC = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def validate_originator(value: str) -> str:
    """
    Format a sender id ("from") so carriers will accept it.

    Some networks silently drop (and still bill) messages with a malformed
    originator. This cannot fix every case, but it tries:

    - anything outside [A-Za-z0-9] is removed
    - alphanumeric sender ids are cut to 11 characters
    - numeric ids written with the international "00" prefix lose the prefix
      and are cut to 15 digits

    The "00" cleanup only applies to purely numeric input. The result may be
    an empty string; no error is raised.
    """
    ret = _NON_ALPHANUMERIC.sub("", value)

    if _HAS_LETTER.search(value):
        return ret[:MAX_ALPHANUMERIC_ORIGINATOR]

    if ret.startswith("00"):
        ret = ret[2:][:MAX_NUMERIC_ORIGINATOR]
    return ret


def detect_message_type(text: str, unicode: bool | None = None) -> MessageType:
    """Return "unicode" when the text needs it (or the caller says so), else "text"."""
    if unicode is not None:
        return "unicode" if unicode else "text"
    return "unicode" if any(ord(ch) > 127 for ch in text) else "text"


def ensure_utf8(value: str | bytes) -> str:
    """
    All Nexmo requests must be UTF-8.

    Text is passed through; raw bytes are decoded as UTF-8, and bytes that are
    not valid UTF-8 are treated as ISO-8859-1 and re-encoded.
    """
    if isinstance(value, str):
        return value
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.decode("latin-1")


def is_numeric(value: str | bytes) -> bool:
    if isinstance(value, bytes):
        value = value.decode("latin-1")
    return bool(_NUMERIC.match(value))


def _hex(value: str | bytes) -> str:
    if isinstance(value, str):
        value = value.encode("utf-8")
    return value.hex()


def build_text_params(
    to: str | bytes,
    from_: str | bytes,
    text: str,
    unicode: bool | None = None,
    optional: Mapping[str, Any] | None = None,
    force_numeric_sender: bool = False,
) -> dict[str, Any]:
    """
    Parameters for a text message.

    Optional parameters (status-report-req, client-ref, ...) are merged first;
    the computed from/to/text/type always win.
    """
    if force_numeric_sender and not is_numeric(from_):
        raise ValidationError(f"{ensure_utf8(from_)} requires to be a numeric value.")

    params: dict[str, Any] = dict(optional or {})
    params.update(
        {
            "from": validate_originator(ensure_utf8(from_)),
            "to": ensure_utf8(to),
            "text": text,
            "type": detect_message_type(text, unicode),
        }
    )
    return params


def build_binary_params(
    to: str | bytes,
    from_: str | bytes,
    body: str | bytes,
    udh: str | bytes,
) -> dict[str, Any]:
    """Parameters for a binary message; body and UDH go over the wire hex encoded."""
    return {
        "from": validate_originator(ensure_utf8(from_)),
        "to": ensure_utf8(to),
        "type": "binary",
        "body": _hex(body),
        "udh": _hex(udh),
    }


def build_wap_push_params(
    to: str | bytes,
    from_: str | bytes,
    title: str | bytes,
    url: str | bytes,
    validity: int = DEFAULT_WAP_VALIDITY,
) -> dict[str, Any]:
    """Parameters for a WAP push; validity is how long it stays available, in ms."""
    return {
        "from": validate_originator(ensure_utf8(from_)),
        "to": ensure_utf8(to),
        "type": "wappush",
        "url": ensure_utf8(url),
        "title": ensure_utf8(title),
        "validity": validity,
    }
