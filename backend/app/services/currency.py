"""Exchange-rate lookup used when locking booking prices."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from backend.app.core.exceptions import ServiceUnavailableError
from backend.app.core.settings import get_settings

logger = logging.getLogger(__name__)


class CurrencyService:
    """Fetches exchange rates from the configured endpoint.

    The endpoint is called as ``GET {url}?from=NGN&to=USD`` and must answer
    ``{"rate": <number>}``. Without an endpoint the configured default rate is used.
    """

    def __init__(self, client: Optional[httpx.Client] = None, base_url: Optional[str] = None, default_rate: Optional[Decimal] = None):
        settings = get_settings()
        self.base_url = settings.exchange_rate_url if base_url is None else base_url
        self.default_rate = settings.default_exchange_rate if default_rate is None else default_rate
        self.timeout = settings.exchange_rate_timeout_seconds
        self._client = client

    def get_exchange_rate(self, from_currency: str, to_currency: str) -> Decimal:
        if from_currency == to_currency:
            return Decimal("1")
        if not self.base_url:
            return Decimal(self.default_rate)

        params = {"from": from_currency, "to": to_currency}
        try:
            if self._client is not None:
                response = self._client.get(self.base_url, params=params, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.get(self.base_url, params=params)
            response.raise_for_status()
            rate = Decimal(str(response.json()["rate"]))
        except (httpx.HTTPError, KeyError, TypeError, ValueError, InvalidOperation) as exc:
            logger.error("Exchange rate lookup %s->%s failed: %s", from_currency, to_currency, exc)
            raise ServiceUnavailableError("Unable to fetch the current exchange rate.") from exc

        if rate <= 0:
            logger.error("Exchange rate service returned non-positive rate %s for %s->%s", rate, from_currency, to_currency)
            raise ServiceUnavailableError("Unable to fetch the current exchange rate.")
        return rate


def get_currency_service() -> CurrencyService:
    return CurrencyService()
