"""Price oracles."""
from .cache import PriceCache
from .coingecko import CoinGeckoOracle

__all__ = ["CoinGeckoOracle", "PriceCache"]
