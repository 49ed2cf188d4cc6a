"""Price enrichment — attaches USD valuations to portfolio lines."""
from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Mapping

from ..chains.registry import ChainRegistry
from ..config import PriceConfig
from ..errors import PriceUnavailableError
from ..interfaces.price_oracle import PriceOracle
from ..models import AssetKind, AssetLine, PortfolioSnapshot, Price, PricePoint
from ..oracles.cache import PriceCache
from ..oracles.coingecko import CoinGeckoOracle

logger = logging.getLogger(__name__)


class PriceEnricher:
    """Resolve feed keys, fetch prices through a TTL cache and value lines."""

    def __init__(
        self,
        oracle: PriceOracle,
        registry: ChainRegistry,
        symbol_feeds: Mapping[str, str] | None = None,
        cache: PriceCache | None = None,
        history_cache: PriceCache | None = None,
    ) -> None:
        self._oracle = oracle
        self._registry = registry
        self._symbol_feeds = {k.upper(): v for k, v in (symbol_feeds or {}).items()}
        self._cache = cache if cache is not None else PriceCache(300)
        self._history_cache = (
            history_cache if history_cache is not None else PriceCache(3600)
        )

    @classmethod
    def from_config(
        cls,
        config: PriceConfig,
        registry: ChainRegistry,
        oracle: PriceOracle | None = None,
    ) -> PriceEnricher:
        return cls(
            oracle or CoinGeckoOracle(config),
            registry,
            symbol_feeds=config.symbol_feeds,
            cache=PriceCache(config.ttl_seconds),
            history_cache=PriceCache(config.history_ttl_seconds),
        )

    def feed_key_for(self, line: AssetLine) -> str | None:
        """Native lines use the chain's feed; tokens the symbol map; NFTs none."""
        if line.kind is AssetKind.NATIVE:
            descriptor = self._registry.describe(line.chain_id)
            return descriptor.price_feed_key if descriptor else None
        if line.kind is AssetKind.TOKEN:
            return self._symbol_feeds.get(line.symbol.upper())
        return None

    async def prices_for(self, feed_keys: Iterable[str]) -> dict[str, Price]:
        """Cached prices for ``feed_keys``; misses are fetched in one batch."""
        found: dict[str, Price] = {}
        missing: list[str] = []
        for key in dict.fromkeys(k for k in feed_keys if k):
            cached = self._cache.get(key)
            if cached is not None:
                found[key] = cached
            else:
                missing.append(key)

        if missing:
            fetched = await self._oracle.fetch_prices(missing)
            for key, price in fetched.items():
                self._cache.set(key, price)
                found[key] = price
            for key in missing:
                if key not in fetched:
                    logger.debug("Price unavailable for %s", key)

        return found

    async def price_for(self, feed_key: str) -> Price | None:
        prices = await self.prices_for([feed_key])
        return prices.get(feed_key)

    async def price_history(self, feed_key: str, days: int = 30) -> list[PricePoint]:
        """Daily USD series; empty when the feed has no history."""
        cache_key = f"{feed_key}:{days}"
        cached = self._history_cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            points = await self._oracle.fetch_history(feed_key, days)
        except PriceUnavailableError as e:
            logger.debug("Price history unavailable for %s: %s", feed_key, e)
            return []

        self._history_cache.set(cache_key, points)
        return points

    async def enrich(self, snapshot: PortfolioSnapshot) -> PortfolioSnapshot:
        """Return a copy of ``snapshot`` with unit prices and USD values set.

        Lines without a price, without a balance or with a fetch error keep
        ``usd_value`` unset.
        """
        feed_keys = [self.feed_key_for(line) for line in snapshot.asset_lines]
        prices = await self.prices_for(k for k in feed_keys if k)

        lines: list[AssetLine] = []
        for line, key in zip(snapshot.asset_lines, feed_keys):
            price = prices.get(key) if key else None
            if price is None or line.fetch_error is not None:
                lines.append(line)
                continue
            lines.append(
                dataclasses.replace(
                    line,
                    usd_price=price.usd,
                    usd_value=line.amount * price.usd if line.has_balance else None,
                )
            )

        return dataclasses.replace(snapshot, asset_lines=tuple(lines))
