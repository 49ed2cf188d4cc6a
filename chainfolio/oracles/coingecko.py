"""CoinGecko market-data oracle."""
from __future__ import annotations

import logging
import ssl
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import aiohttp
import certifi

from ..config import PriceConfig
from ..errors import PriceUnavailableError
from ..models import Price, PricePoint

logger = logging.getLogger(__name__)


def _decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


class CoinGeckoOracle:
    """Fetch spot prices and daily history from the CoinGecko API."""

    def __init__(self, config: PriceConfig) -> None:
        self.base_url = config.base_url
        self.api_key = config.api_key
        self.timeout = config.timeout

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key
        return headers

    async def _get_json(self, path: str, params: dict[str, str]) -> Any:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.get(
                f"{self.base_url}{path}",
                params=params,
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    raise PriceUnavailableError(
                        f"CoinGecko {path} returned HTTP {response.status}"
                    )
                return await response.json()

    async def fetch_prices(self, feed_keys: list[str]) -> dict[str, Price]:
        """Fetch current USD prices for ``feed_keys`` in one request.

        Keys CoinGecko does not know are simply absent from the result.
        Failures are logged and yield an empty mapping.
        """
        keys = sorted({k for k in feed_keys if k})
        if not keys:
            return {}

        try:
            data = await self._get_json(
                "/simple/price",
                {
                    "ids": ",".join(keys),
                    "vs_currencies": "usd",
                    "include_24hr_change": "true",
                    "include_market_cap": "true",
                    "include_24hr_vol": "true",
                },
            )
        except Exception as e:
            logger.warning("Error fetching prices from CoinGecko: %s", e)
            return {}

        prices: dict[str, Price] = {}
        for key in keys:
            entry = data.get(key) if isinstance(data, dict) else None
            usd = _decimal(entry.get("usd")) if isinstance(entry, dict) else None
            if usd is None:
                logger.debug("No CoinGecko price for %s", key)
                continue
            prices[key] = Price(
                feed_key=key,
                usd=usd,
                usd_24h_change=_decimal(entry.get("usd_24h_change")),
                market_cap=_decimal(entry.get("usd_market_cap")),
                volume_24h=_decimal(entry.get("usd_24h_vol")),
            )

        logger.debug("Fetched %d/%d prices from CoinGecko", len(prices), len(keys))
        return prices

    async def fetch_history(self, feed_key: str, days: int) -> list[PricePoint]:
        """Fetch a daily USD price series.

        Raises:
            PriceUnavailableError: the request failed or returned no data.
        """
        try:
            data = await self._get_json(
                f"/coins/{feed_key}/market_chart",
                {"vs_currency": "usd", "days": str(days), "interval": "daily"},
            )
        except PriceUnavailableError:
            raise
        except Exception as e:
            raise PriceUnavailableError(
                f"History fetch for {feed_key} failed: {e}"
            ) from e

        points: list[PricePoint] = []
        for item in (data or {}).get("prices", []):
            try:
                ts_ms, usd = item
            except (TypeError, ValueError):
                continue
            value = _decimal(usd)
            if value is None:
                continue
            points.append(
                PricePoint(
                    timestamp=datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc),
                    usd=value,
                )
            )

        if not points:
            raise PriceUnavailableError(f"No price history for {feed_key}")
        return points
