from __future__ import annotations

import logging
from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final
from urllib.parse import quote

import httpx

from .cache import ResponseCache, TTLCache
from .client import NexmoClient, client_kwargs, unwrap_body
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

MAX_SEARCH_IDS: Final[int] = 10


@dataclass(frozen=True)
class ApiCommand:
    method: str
    url: str


API_COMMANDS: Final[Mapping[str, ApiCommand]] = {
    "get_balance": ApiCommand("GET", "account/get-balance/{k}/{s}"),
    "get_pricing": ApiCommand("GET", "account/get-pricing/outbound/{k}/{s}/{country-code}"),
    "get_own_numbers": ApiCommand("GET", "account/numbers/{k}/{s}"),
    "search_numbers": ApiCommand("GET", "number/search/{k}/{s}/{country-code}"),
    "buy_number": ApiCommand("POST", "number/buy/{k}/{s}/{country-code}/{msisdn}"),
    "cancel_number": ApiCommand("POST", "number/cancel/{k}/{s}/{country-code}/{msisdn}"),
    "search_message": ApiCommand("GET", "search/message/{k}/{s}/{message-id}"),
    "search_messages": ApiCommand("GET", "search/messages/{k}/{s}"),
}


def substitute(template: str, tokens: Mapping[str, str]) -> str:
    """
    Token replacement for URL paths: {"{k}": "abc"} turns "a/{k}" into "a/abc".

    Values are percent-encoded as single path segments, so "/" or "?" in a
    message id cannot change the endpoint.
    """
    for token, value in tokens.items():
        template = template.replace(token, quote(value, safe=""))
    return template


class AccountClient(NexmoClient):
    """
    Account, number and message-search calls.

    Pricing, number search and single-message search results are kept in
    `cache` (a TTLCache by default). Failed calls are never cached.
    """

    def __init__(
        self,
        key: str,
        secret: str,
        *,
        cache: ResponseCache | None = None,
        cache_ttl: float = 300.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(key, secret, **kwargs)
        self.cache: ResponseCache = cache if cache is not None else TTLCache(cache_ttl)
        credentials = {"{k}": key, "{s}": secret}
        self.commands: dict[str, ApiCommand] = {
            name: ApiCommand(cmd.method, substitute(cmd.url, credentials))
            for name, cmd in API_COMMANDS.items()
        }

    def _call(
        self,
        name: str,
        tokens: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> httpx.Response | None:
        command = self.commands[name]
        url = self.api_url + substitute(command.url, tokens or {})
        return self.request(url, params, command.method)

    def _cached(
        self,
        key: Hashable,
        name: str,
        tokens: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> str | None:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        body = unwrap_body(self._call(name, tokens, params))
        if body is not None:
            self.cache.set(key, body)
        return body

    def get_balance(self) -> str | None:
        """Retrieve your account balance."""
        return unwrap_body(self._call("get_balance"))

    def get_sms_pricing(self, country_code: str) -> str | None:
        """Outbound SMS pricing for a country (ISO code, e.g. "ES")."""
        country_code = country_code.upper()
        return self._cached(
            ("pricing", country_code),
            "get_pricing",
            {"{country-code}": country_code},
        )

    def get_own_numbers(self) -> str | None:
        """All inbound numbers associated with the account."""
        return unwrap_body(self._call("get_own_numbers"))

    def search_numbers(self, country_code: str, pattern: str) -> str | None:
        """Available inbound numbers in a country matching `pattern`."""
        country_code = country_code.upper()
        return self._cached(
            ("search_numbers", country_code, pattern),
            "search_numbers",
            {"{country-code}": country_code},
            {"pattern": pattern},
        )

    def buy_number(self, country_code: str, msisdn: str) -> bool:
        response = self._call(
            "buy_number",
            {"{country-code}": country_code.upper(), "{msisdn}": msisdn},
        )
        return response is not None and response.status_code == 200

    def cancel_number(self, country_code: str, msisdn: str) -> bool:
        response = self._call(
            "cancel_number",
            {"{country-code}": country_code.upper(), "{msisdn}": msisdn},
        )
        return response is not None and response.status_code == 200

    def search_message(self, message_id: str) -> str | None:
        """
        Look up a previously sent message.

        Messages become searchable a few minutes after submission; use the
        delivery receipt callback for real-time status.
        """
        return self._cached(
            ("search_message", message_id),
            "search_message",
            {"{message-id}": message_id},
        )

    def search_messages_by_ids(self, ids: Sequence[str]) -> str | None:
        """Search up to 10 sent messages by id; None without a call otherwise."""
        if not ids or len(ids) > MAX_SEARCH_IDS:
            logger.warning("search_messages_by_ids needs 1 to %d ids, got %d", MAX_SEARCH_IDS, len(ids))
            return None
        return unwrap_body(self._call("search_messages", params={"ids": list(ids)}))

    def search_messages_by_date_and_recipient(self, date: str, to: str) -> str | None:
        """`date` is YYYY-MM-DD, `to` the recipient number."""
        return unwrap_body(self._call("search_messages", params={"date": date, "to": to}))


def get_account_client(settings: Settings | None = None) -> AccountClient:
    settings = settings or get_settings()
    return AccountClient(**client_kwargs(settings), cache_ttl=settings.nexmo_cache_ttl)
