"""Service modules"""
from .aggregator import BalanceAggregator
from .health import HealthScorer
from .orchestrator import InsightOrchestrator
from .pricing import PriceEnricher

__all__ = ["BalanceAggregator", "HealthScorer", "InsightOrchestrator", "PriceEnricher"]
