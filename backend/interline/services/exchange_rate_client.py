"""Exchange rate client — live rates with in-process caching and a static fallback."""

import logging
import time

import httpx

from interline.config import settings
from interline.data.currency import static_rate

logger = logging.getLogger(__name__)


class ExchangeRateClient:
    """Converts amounts between currencies. Never raises: degrades to static rates, then identity."""

    def __init__(self, base_url: str | None = None, api_key: str | None = None, ttl: int | None = None):
        self.base_url = (base_url or settings.exchange_rate_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.exchange_rate_api_key
        self.ttl = ttl if ttl is not None else settings.exchange_rate_ttl
        self._rates: dict[str, tuple[float, dict[str, float]]] = {}
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=10.0)
        return self._client

    async def get_latest_rates(self, base_currency: str) -> dict[str, float]:
        """Rates keyed by target currency for one unit of ``base_currency``."""
        cached = self._rates.get(base_currency)
        if cached and time.monotonic() - cached[0] < self.ttl:
            return cached[1]

        client = await self._get_client()
        path = f"/{self.api_key}/latest/{base_currency}" if self.api_key else f"/latest/{base_currency}"
        try:
            resp = await client.get(path)
            resp.raise_for_status()
            data = resp.json()
            rates = data.get("conversion_rates") or data.get("rates") or {}
            self._rates[base_currency] = (time.monotonic(), rates)
            return rates
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Exchange rate fetch failed for {base_currency}: {e}")
            if cached:
                logger.warning(f"Using expired {base_currency} rates")
                return cached[1]
            return {}

    async def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        if from_currency == to_currency:
            return amount

        rates = await self.get_latest_rates(from_currency)
        rate = rates.get(to_currency)
        if rate:
            return round(amount * rate, 2)

        fallback = static_rate(from_currency, to_currency)
        if fallback is not None:
            logger.info(f"Static rate used for {from_currency}->{to_currency}")
            return round(amount * fallback, 2)

        logger.warning(f"No conversion rate from {from_currency} to {to_currency}, keeping amount")
        return amount

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


exchange_rate_client = ExchangeRateClient()
