from decimal import Decimal

import httpx
import pytest

from backend.app.core.exceptions import ServiceUnavailableError
from backend.app.services.currency import CurrencyService

RATE_URL = "https://rates.example.com/latest"


def client_returning(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_same_currency_is_one():
    service = CurrencyService(base_url=RATE_URL, client=client_returning(lambda request: httpx.Response(500)))
    assert service.get_exchange_rate("NGN", "NGN") == Decimal("1")


def test_without_endpoint_the_configured_rate_is_used():
    service = CurrencyService(base_url="", default_rate=Decimal("1500"))
    assert service.get_exchange_rate("NGN", "USD") == Decimal("1500")


def test_rate_is_read_from_the_endpoint():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"rate": 1575.25})

    service = CurrencyService(base_url=RATE_URL, client=client_returning(handler))
    assert service.get_exchange_rate("NGN", "USD") == Decimal("1575.25")
    assert seen["params"] == {"from": "NGN", "to": "USD"}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503),
        httpx.Response(200, json={"unexpected": True}),
        httpx.Response(200, json={"rate": "not-a-number"}),
        httpx.Response(200, json={"rate": 0}),
    ],
)
def test_bad_responses_raise_service_unavailable(response):
    service = CurrencyService(base_url=RATE_URL, client=client_returning(lambda request: response))
    with pytest.raises(ServiceUnavailableError) as excinfo:
        service.get_exchange_rate("NGN", "USD")
    assert excinfo.value.status_code == 500


def test_transport_errors_raise_service_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = CurrencyService(base_url=RATE_URL, client=client_returning(handler))
    with pytest.raises(ServiceUnavailableError):
        service.get_exchange_rate("NGN", "USD")
