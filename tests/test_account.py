from __future__ import annotations

import httpx
import pytest

from nexmo_sms.account import AccountClient, get_account_client, substitute
from nexmo_sms.cache import TTLCache
from nexmo_sms.config import Settings


class FakeNexmo:
    """Replies 200 with a body naming the path, unless told to fail."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text=f"body:{request.url.path}")


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def nexmo() -> FakeNexmo:
    return FakeNexmo()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def account(nexmo: FakeNexmo, clock: FakeClock) -> AccountClient:
    http = httpx.Client(transport=httpx.MockTransport(nexmo))
    return AccountClient("key123", "secret456", cache=TTLCache(60, clock=clock), http_client=http)


def test_substitute() -> None:
    assert substitute("a/{k}/{s}/{k}", {"{k}": "K", "{s}": "S"}) == "a/K/S/K"
    assert substitute("a/{x}", {}) == "a/{x}"
    assert substitute("m/{id}", {"{id}": "a/b?c d"}) == "m/a%2Fb%3Fc%20d"


def test_path_values_cannot_change_the_endpoint(account: AccountClient, nexmo: FakeNexmo) -> None:
    account.search_message("00A0/../x?y")
    request = nexmo.requests[-1]
    assert request.url.raw_path.startswith(b"/search/message/key123/secret456/00A0%2F..%2Fx%3Fy?")
    assert "y" not in request.url.params


def test_get_balance(account: AccountClient, nexmo: FakeNexmo) -> None:
    assert account.get_balance() == "body:/account/get-balance/key123/secret456"
    request = nexmo.requests[-1]
    assert request.method == "GET"
    assert request.headers["Accept"] == "application/json"


def test_get_own_numbers(account: AccountClient, nexmo: FakeNexmo) -> None:
    assert account.get_own_numbers() == "body:/account/numbers/key123/secret456"


def test_get_sms_pricing_is_cached(account: AccountClient, nexmo: FakeNexmo) -> None:
    first = account.get_sms_pricing("es")
    second = account.get_sms_pricing("ES")

    assert first == second == "body:/account/get-pricing/outbound/key123/secret456/ES"
    assert len(nexmo.requests) == 1


def test_cached_entries_expire(account: AccountClient, nexmo: FakeNexmo, clock: FakeClock) -> None:
    account.get_sms_pricing("ES")
    clock.now += 61
    account.get_sms_pricing("ES")
    assert len(nexmo.requests) == 2


def test_cached_entries_can_be_invalidated(account: AccountClient, nexmo: FakeNexmo) -> None:
    account.search_message("00A0B0C0")
    account.cache.invalidate(("search_message", "00A0B0C0"))
    account.search_message("00A0B0C0")
    assert len(nexmo.requests) == 2
    assert nexmo.requests[-1].url.path == "/search/message/key123/secret456/00A0B0C0"


def test_failures_are_not_cached(account: AccountClient, nexmo: FakeNexmo) -> None:
    nexmo.status_code = 500
    assert account.get_sms_pricing("ES") is None

    nexmo.status_code = 200
    assert account.get_sms_pricing("ES") is not None
    assert len(nexmo.requests) == 2


def test_search_numbers(account: AccountClient, nexmo: FakeNexmo) -> None:
    account.search_numbers("es", "3491")
    account.search_numbers("ES", "3491")
    account.search_numbers("ES", "3492")

    assert len(nexmo.requests) == 2
    request = nexmo.requests[0]
    assert request.url.path == "/number/search/key123/secret456/ES"
    assert request.url.params["pattern"] == "3491"


@pytest.mark.parametrize(("status_code", "expected"), [(200, True), (201, False), (420, False), (500, False)])
def test_buy_number(account: AccountClient, nexmo: FakeNexmo, status_code: int, expected: bool) -> None:
    nexmo.status_code = status_code
    assert account.buy_number("es", "34911067000") is expected
    request = nexmo.requests[-1]
    assert request.method == "POST"
    assert request.url.path == "/number/buy/key123/secret456/ES/34911067000"


def test_cancel_number(account: AccountClient, nexmo: FakeNexmo) -> None:
    assert account.cancel_number("ES", "34911067000") is True
    assert nexmo.requests[-1].url.path == "/number/cancel/key123/secret456/ES/34911067000"


def test_buy_number_transport_error_is_false() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    http = httpx.Client(transport=httpx.MockTransport(handler))
    account = AccountClient("k", "s", http_client=http)
    assert account.buy_number("ES", "34911067000") is False
    assert account.get_balance() is None


def test_search_messages_by_ids(account: AccountClient, nexmo: FakeNexmo) -> None:
    account.search_messages_by_ids(["00A0B0C0", "00A0B0C1"])
    request = nexmo.requests[-1]
    assert request.url.path == "/search/messages/key123/secret456"
    assert request.url.params.get_list("ids") == ["00A0B0C0", "00A0B0C1"]


@pytest.mark.parametrize("count", [0, 11])
def test_search_messages_by_ids_out_of_range(account: AccountClient, nexmo: FakeNexmo, count: int) -> None:
    ids = [f"id{i}" for i in range(count)]
    assert account.search_messages_by_ids(ids) is None
    assert nexmo.requests == []


def test_search_messages_by_date_and_recipient(account: AccountClient, nexmo: FakeNexmo) -> None:
    account.search_messages_by_date_and_recipient("2011-11-15", "1234567890")
    params = nexmo.requests[-1].url.params
    assert params["date"] == "2011-11-15"
    assert params["to"] == "1234567890"


def test_get_account_client_uses_configured_ttl() -> None:
    settings = Settings(nexmo_api_key="k", nexmo_api_secret="s", nexmo_cache_ttl=42)
    with get_account_client(settings) as account:
        assert isinstance(account.cache, TTLCache)
        assert account.cache.ttl == 42


def test_search_messages_by_ids_accepts_ten(account: AccountClient, nexmo: FakeNexmo) -> None:
    ids = [f"id{i}" for i in range(10)]
    assert account.search_messages_by_ids(ids) is not None
    assert nexmo.requests[-1].url.params.get_list("ids") == ids
