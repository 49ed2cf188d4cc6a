"""Top-level orchestration — portfolio, scoring, insights and history."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from ..chains.registry import ChainRegistry
from ..config import AppConfig
from ..errors import ChainfolioError, UpstreamGeneratorError
from ..history import build_history_store
from ..insights import select_generator
from ..interfaces.history_store import HistoryStore
from ..interfaces.insight_generator import InsightGenerator
from ..models import (
    Comparison,
    ComparisonChanges,
    HealthAssessment,
    HistoryPage,
    HistoryRecord,
    InsightAssessment,
    InsightStats,
    PortfolioSnapshot,
    RiskProfile,
    SaveConfirmation,
    TrendData,
    UserProfile,
)
from ..rpc.gateway import RpcGateway
from .aggregator import BalanceAggregator, validate_address
from .health import HealthScorer
from .pricing import PriceEnricher

logger = logging.getLogger(__name__)

RECENT_INSIGHT_WINDOW = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InsightOrchestrator:
    """Entry point used by the HTTP server and the CLI."""

    def __init__(
        self,
        registry: ChainRegistry,
        aggregator: BalanceAggregator,
        enricher: PriceEnricher,
        scorer: HealthScorer,
        generator: InsightGenerator,
        history: HistoryStore,
        retention_days: int = 90,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.registry = registry
        self._aggregator = aggregator
        self.enricher = enricher
        self._scorer = scorer
        self._generator = generator
        self._history = history
        self._retention = timedelta(days=retention_days)
        self._clock = clock

    @classmethod
    def from_config(
        cls, config: AppConfig, gateway: RpcGateway | None = None
    ) -> InsightOrchestrator:
        """Wire every component from configuration."""
        registry = ChainRegistry.from_config(config.chains)
        gateway = gateway or RpcGateway.from_config(config)
        return cls(
            registry=registry,
            aggregator=BalanceAggregator(gateway, registry, config.enrichment),
            enricher=PriceEnricher.from_config(config.prices, registry),
            scorer=HealthScorer(config.scoring),
            generator=select_generator(config.insights),
            history=build_history_store(config.history),
            retention_days=config.history.retention_days,
        )

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    async def get_portfolio(
        self,
        address: str,
        chain_ids: Iterable[int] | None = None,
        network: str = "mainnet",
    ) -> PortfolioSnapshot:
        """Aggregate balances and attach USD values.

        When ``chain_ids`` is omitted every chain of ``network`` is queried.
        """
        if chain_ids is None:
            chain_ids = self.registry.chain_ids(network)
        snapshot = await self._aggregator.aggregate(address, chain_ids)
        return await self.enricher.enrich(snapshot)

    def score_health(
        self, snapshot: PortfolioSnapshot, risk_profile: RiskProfile | str
    ) -> HealthAssessment:
        return self._scorer.score(snapshot, risk_profile)

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    async def generate_insight(
        self,
        portfolio: PortfolioSnapshot | Mapping[str, Any],
        profile: UserProfile,
    ) -> InsightAssessment:
        """Delegate to the configured generator; every failure is an UpstreamGeneratorError."""
        payload = (
            portfolio.to_dict()
            if isinstance(portfolio, PortfolioSnapshot)
            else dict(portfolio)
        )
        try:
            return await self._generator.generate(payload, profile)
        except UpstreamGeneratorError:
            raise
        except Exception as e:
            logger.error("Insight generation failed: %s", e)
            raise UpstreamGeneratorError(f"Insight generation failed: {e}") from e

    async def save_assessment(
        self,
        address: str,
        snapshot: PortfolioSnapshot | Mapping[str, Any],
        assessment: InsightAssessment,
        user_profile: UserProfile | None = None,
        market_context: Mapping[str, Any] | None = None,
    ) -> SaveConfirmation:
        wallet = validate_address(address)
        if isinstance(snapshot, PortfolioSnapshot):
            total_value = float(snapshot.total_usd_value)
            connected = snapshot.connected_chain_count
            balances = tuple(line.to_dict() for line in snapshot.asset_lines)
        else:
            total_value = float(snapshot.get("totalValue") or 0)
            connected = int(snapshot.get("connectedChains") or 0)
            balances = tuple(snapshot.get("balances") or ())

        now = self._clock()
        record = HistoryRecord(
            record_id="",
            wallet_address=wallet,
            timestamp=now,
            total_value=total_value,
            connected_chains=connected,
            balances=balances,
            assessment=assessment,
            user_profile=user_profile,
            market_context=dict(market_context or {}),
            expires_at=now + self._retention,
        )
        insight_id = await self._history.insert(record)
        logger.info("Saved insight %s for %s", insight_id, wallet)
        return SaveConfirmation(success=True, insight_id=insight_id, timestamp=now)

    # ------------------------------------------------------------------
    # History queries
    # ------------------------------------------------------------------

    async def query_history(
        self,
        address: str,
        limit: int = 10,
        offset: int = 0,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> HistoryPage:
        """Newest-first page of saved assessments."""
        wallet = validate_address(address)
        limit = max(1, limit)
        offset = max(0, offset)
        records = await self._history.find(
            wallet, start=start, end=end, limit=limit, offset=offset
        )
        total = await self._history.count(wallet, start=start, end=end)
        return HistoryPage(
            insights=tuple(records), total=total, limit=limit, offset=offset
        )

    async def query_trend(self, address: str, days: int = 30) -> TrendData:
        """Oldest-first series of score, risk level and value over ``days``."""
        wallet = validate_address(address)
        start = self._clock() - timedelta(days=days)
        records = await self._history.find(wallet, start=start, newest_first=False)
        return TrendData(
            health_score_trend=tuple(r.assessment.health_score for r in records),
            risk_trend=tuple(r.assessment.risk_level for r in records),
            value_trend=tuple(r.total_value for r in records),
            timestamps=tuple(r.timestamp for r in records),
        )

    async def compare_latest(self, address: str) -> Comparison:
        """Deltas between the two most recent assessments."""
        wallet = validate_address(address)
        records = await self._history.find(wallet, limit=2)
        if not records:
            return Comparison(message="No insights found for this wallet")
        if len(records) == 1:
            return Comparison(
                current=records[0], message="Not enough history to compare"
            )

        current, previous = records
        value_delta = current.total_value - previous.total_value
        percent = (
            value_delta / previous.total_value * 100 if previous.total_value else 0.0
        )
        cur_risk = current.assessment.risk_level
        prev_risk = previous.assessment.risk_level
        return Comparison(
            current=current,
            previous=previous,
            changes=ComparisonChanges(
                health_score=current.assessment.health_score
                - previous.assessment.health_score,
                risk_level=(
                    cur_risk if cur_risk == prev_risk else f"{prev_risk} -> {cur_risk}"
                ),
                total_value=value_delta,
                total_value_percent=f"{percent:.2f}",
                time_diff_seconds=(
                    current.timestamp - previous.timestamp
                ).total_seconds(),
            ),
        )

    async def insight_stats(self, address: str) -> InsightStats:
        wallet = validate_address(address)
        records = await self._history.find(wallet)
        if not records:
            return InsightStats()

        scores = [r.assessment.health_score for r in records]
        return InsightStats(
            total_insights=len(records),
            latest_insight=records[0],
            average_health_score=round(sum(scores) / len(scores), 1),
            max_health_score=max(scores),
            min_health_score=min(scores),
            first_insight_date=records[-1].timestamp,
        )

    async def has_recent_insight(self, address: str) -> bool:
        """True when the latest assessment is less than an hour old."""
        try:
            records = await self._history.find(validate_address(address), limit=1)
        except ChainfolioError as e:
            logger.debug("Recent-insight check failed for %s: %s", address, e)
            return False
        if not records:
            return False
        return self._clock() - records[0].timestamp < RECENT_INSIGHT_WINDOW
