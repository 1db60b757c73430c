from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Final

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .config import Settings, get_settings
from .sms import (
    DEFAULT_WAP_VALIDITY,
    build_binary_params,
    build_text_params,
    build_wap_push_params,
)

logger = logging.getLogger(__name__)

API_URL: Final[str] = "https://rest.nexmo.com/"
USER_AGENT: Final[str] = "nexmo-sms/0.1.0"
DEFAULT_TIMEOUT: Final[float] = 60.0


class ResponseFormat(StrEnum):
    JSON = "json"
    XML = "xml"

    @classmethod
    def parse(cls, value: str) -> ResponseFormat:
        """Case-insensitive; anything unknown falls back to JSON."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.JSON


class Credentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    secret: str = Field(repr=False)


def unwrap_body(response: httpx.Response | None) -> str | None:
    """Body of a successful response, None for any failure."""
    if response is None or not response.is_success:
        return None
    return response.text


class NexmoClient:
    """
    Shared transport for the Nexmo REST API.

    Every call carries the key/secret as username/password parameters and an
    Accept header matching the configured response format. Network errors are
    logged and reported as a None response; nothing here raises for them.
    """

    def __init__(
        self,
        key: str,
        secret: str,
        *,
        response_format: str = ResponseFormat.JSON,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.credentials = Credentials(key=key, secret=secret)
        self.format = response_format
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    @property
    def key(self) -> str:
        return self.credentials.key

    @property
    def secret(self) -> str:
        return self.credentials.secret

    @property
    def format(self) -> ResponseFormat:
        return self._format

    @format.setter
    def format(self, value: str) -> None:
        self._format = ResponseFormat.parse(value)

    @property
    def api_url(self) -> str:
        return API_URL

    def request(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
        method: str = "GET",
    ) -> httpx.Response | None:
        """
        Call `url` and return the raw response, or None if it never arrived.

        GET parameters go on the query string, POST parameters in a form body.
        """
        payload: dict[str, Any] = dict(params or {})
        payload.update({"username": self.key, "password": self.secret})
        headers = {"Accept": f"application/{self.format}", "User-Agent": USER_AGENT}

        try:
            if method.upper() == "POST":
                response = self._http.post(url, data=payload, headers=headers)
            else:
                response = self._http.get(url, params=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Nexmo request failed (%s %s): %s", method.upper(), _redact(url, self), e)
            return None

        if not response.is_success:
            logger.error(
                "Nexmo request returned %s (%s %s)",
                response.status_code,
                method.upper(),
                _redact(url, self),
            )
        return response

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> NexmoClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _redact(url: str, client: NexmoClient) -> str:
    # Account URLs carry the credentials in the path
    return url.replace(client.secret, "***") if client.secret else url


class SmsClient(NexmoClient):
    """Sends text, binary and WAP push messages."""

    @property
    def api_url(self) -> str:
        return f"{API_URL}sms/{self.format}"

    def send(self, params: Mapping[str, Any]) -> str | None:
        body = unwrap_body(self.request(self.api_url, params, "POST"))
        if body is not None:
            logger.info("Sent %s message to %s", params.get("type"), params.get("to"))
        return body

    def send_text_message(
        self,
        to: str | bytes,
        from_: str | bytes,
        message: str,
        unicode: bool | None = None,
        optional: Mapping[str, Any] | None = None,
        force_numeric_sender: bool = False,
    ) -> str | None:
        """
        Send a text message.

        `to` is in international format (447525856424 or 00447525856424).
        Leave `unicode` as None to detect the encoding from the text.
        With `force_numeric_sender`, a non-numeric `from_` raises
        ValidationError instead of being reformatted.

        Returns the JSON / XML response body, or None if the request failed.
        """
        params = build_text_params(
            to,
            from_,
            message,
            unicode=unicode,
            optional=optional,
            force_numeric_sender=force_numeric_sender,
        )
        return self.send(params)

    def send_binary(
        self,
        to: str | bytes,
        from_: str | bytes,
        body: str | bytes,
        udh: str | bytes,
    ) -> str | None:
        return self.send(build_binary_params(to, from_, body, udh))

    def push_wap(
        self,
        to: str | bytes,
        from_: str | bytes,
        title: str | bytes,
        url: str | bytes,
        validity: int = DEFAULT_WAP_VALIDITY,
    ) -> str | None:
        return self.send(build_wap_push_params(to, from_, title, url, validity))


def client_kwargs(settings: Settings) -> dict[str, Any]:
    if not settings.nexmo_api_key or not settings.nexmo_api_secret:
        raise RuntimeError("Nexmo credentials are not configured (NEXMO_API_KEY / NEXMO_API_SECRET)")

    return {
        "key": settings.nexmo_api_key,
        "secret": settings.nexmo_api_secret,
        "response_format": settings.nexmo_format,
        "timeout": settings.nexmo_timeout,
    }


def get_sms_client(settings: Settings | None = None) -> SmsClient:
    return SmsClient(**client_kwargs(settings or get_settings()))
