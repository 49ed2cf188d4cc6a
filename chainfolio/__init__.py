"""Multi-chain crypto portfolio engine: RPC fallback, balances, prices, health score."""

__version__ = "0.1.0"
