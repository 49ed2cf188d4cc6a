"""Protocol interfaces for the portfolio engine."""
from .history_store import HistoryStore
from .insight_generator import InsightGenerator
from .price_oracle import PriceOracle
from .rpc_client import RpcClient

__all__ = ["HistoryStore", "InsightGenerator", "PriceOracle", "RpcClient"]
