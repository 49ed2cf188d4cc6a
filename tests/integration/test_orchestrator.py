"""Integration tests for the orchestrator — portfolio, insights and history."""
from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from chainfolio.config import AppConfig, EnrichmentConfig, HistoryConfig
from chainfolio.errors import InvalidAddressError, UpstreamGeneratorError
from chainfolio.history import InMemoryHistoryStore
from chainfolio.insights import MockInsightGenerator
from chainfolio.models import InsightAssessment, PortfolioSnapshot, RiskProfile, UserProfile
from chainfolio.services import (
    BalanceAggregator,
    HealthScorer,
    InsightOrchestrator,
    PriceEnricher,
)

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class DateClock:
    """Wall clock advanced by hand, shared by the orchestrator and the store."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> DateClock:
    return DateClock()


@pytest.fixture()
def orchestrator(fake_gateway, fake_oracle, registry, clock) -> InsightOrchestrator:
    return InsightOrchestrator(
        registry=registry,
        aggregator=BalanceAggregator(fake_gateway, registry, EnrichmentConfig(enabled=False)),
        enricher=PriceEnricher(fake_oracle, registry),
        scorer=HealthScorer(),
        generator=MockInsightGenerator(),
        history=InMemoryHistoryStore(clock=clock),
        retention_days=90,
        clock=clock,
    )


def _assessment(base: InsightAssessment, score: int, risk: str = "Medium") -> InsightAssessment:
    return dataclasses.replace(base, health_score=score, risk_level=risk)


class TestPortfolio:
    @pytest.mark.asyncio
    async def test_defaults_to_mainnet_chains(
        self, orchestrator: InsightOrchestrator, fake_gateway, wallet: str
    ) -> None:
        fake_gateway.responses = {
            (1, "eth_getBalance"): hex(2 * 10**18),
            (137, "eth_getBalance"): "0x0",
            (42161, "eth_getBalance"): "0x0",
            (10, "eth_getBalance"): "0x0",
        }

        snapshot = await orchestrator.get_portfolio(wallet)

        assert [line.chain_id for line in snapshot.asset_lines] == [1, 137, 42161, 10]
        assert snapshot.total_usd_value == Decimal("5000")
        assert snapshot.connected_chain_count == 4

    @pytest.mark.asyncio
    async def test_testnet_mode(
        self, orchestrator: InsightOrchestrator, fake_gateway, wallet: str
    ) -> None:
        fake_gateway.responses = {
            (11155111, "eth_getBalance"): "0x1",
            (424242, "eth_getBalance"): "0x1",
        }

        snapshot = await orchestrator.get_portfolio(wallet, network="testnet")

        assert [line.chain_id for line in snapshot.asset_lines] == [11155111, 424242]

    def test_score_health(
        self, orchestrator: InsightOrchestrator, two_chain_snapshot: PortfolioSnapshot
    ) -> None:
        result = orchestrator.score_health(two_chain_snapshot, RiskProfile.CONSERVATIVE)
        assert result.imbalance_detected is True
        assert result.score == 30


class TestGenerateInsight:
    @pytest.mark.asyncio
    async def test_accepts_snapshot(
        self, orchestrator: InsightOrchestrator, two_chain_snapshot: PortfolioSnapshot
    ) -> None:
        result = await orchestrator.generate_insight(
            two_chain_snapshot, UserProfile(risk_personality=RiskProfile.AGGRESSIVE)
        )
        assert result.risk_level == "High"

    @pytest.mark.asyncio
    async def test_generator_failure_wrapped(
        self, orchestrator: InsightOrchestrator
    ) -> None:
        failing = AsyncMock()
        failing.generate = AsyncMock(side_effect=RuntimeError("socket closed"))
        orchestrator._generator = failing

        with pytest.raises(UpstreamGeneratorError, match="socket closed"):
            await orchestrator.generate_insight({"totalValue": 0}, UserProfile())

    @pytest.mark.asyncio
    async def test_upstream_error_passes_through(
        self, orchestrator: InsightOrchestrator
    ) -> None:
        failing = AsyncMock()
        failing.generate = AsyncMock(side_effect=UpstreamGeneratorError("bad payload"))
        orchestrator._generator = failing

        with pytest.raises(UpstreamGeneratorError, match="^bad payload$"):
            await orchestrator.generate_insight({}, UserProfile())


class TestHistory:
    @pytest.mark.asyncio
    async def test_save_and_page(
        self,
        orchestrator: InsightOrchestrator,
        clock: DateClock,
        sample_assessment: InsightAssessment,
        two_chain_snapshot: PortfolioSnapshot,
        wallet: str,
    ) -> None:
        ids = []
        for score in (60, 65, 70):
            confirmation = await orchestrator.save_assessment(
                wallet, two_chain_snapshot, _assessment(sample_assessment, score)
            )
            ids.append(confirmation.insight_id)
            clock.advance(minutes=10)

        assert confirmation.success is True
        assert len(set(ids)) == 3

        page = await orchestrator.query_history(wallet, limit=2)
        assert page.total == 3
        assert page.has_more is True
        assert [r.assessment.health_score for r in page.insights] == [70, 65]
        assert page.insights[0].total_value == 5000.0
        assert page.insights[0].connected_chains == 1

        rest = await orchestrator.query_history(wallet, limit=2, offset=2)
        assert [r.assessment.health_score for r in rest.insights] == [60]
        assert rest.has_more is False

    @pytest.mark.asyncio
    async def test_save_from_mapping_lowercases_wallet(
        self, orchestrator: InsightOrchestrator, sample_assessment: InsightAssessment
    ) -> None:
        upper = "0x" + "AB" * 20
        await orchestrator.save_assessment(
            upper,
            {"totalValue": 12.5, "connectedChains": 2, "balances": [{"symbol": "ETH"}]},
            sample_assessment,
            user_profile=UserProfile(learning_mode="Expert"),
            market_context={"btcDominance": 52},
        )

        page = await orchestrator.query_history(upper.lower())
        record = page.insights[0]
        assert record.wallet_address == upper.lower()
        assert record.total_value == 12.5
        assert record.market_context == {"btcDominance": 52}
        assert record.expires_at == T0 + timedelta(days=90)

    @pytest.mark.asyncio
    async def test_expired_records_hidden(
        self,
        orchestrator: InsightOrchestrator,
        clock: DateClock,
        sample_assessment: InsightAssessment,
        wallet: str,
    ) -> None:
        await orchestrator.save_assessment(wallet, {}, sample_assessment)
        clock.advance(days=91)

        page = await orchestrator.query_history(wallet)
        assert page.total == 0

    @pytest.mark.asyncio
    async def test_invalid_address_rejected(
        self, orchestrator: InsightOrchestrator, sample_assessment: InsightAssessment
    ) -> None:
        with pytest.raises(InvalidAddressError):
            await orchestrator.save_assessment("nope", {}, sample_assessment)
        with pytest.raises(InvalidAddressError):
            await orchestrator.query_history("nope")

    @pytest.mark.asyncio
    async def test_trend_is_oldest_first_within_window(
        self,
        orchestrator: InsightOrchestrator,
        clock: DateClock,
        sample_assessment: InsightAssessment,
        wallet: str,
    ) -> None:
        await orchestrator.save_assessment(
            wallet, {"totalValue": 1}, _assessment(sample_assessment, 40, "High")
        )
        clock.advance(days=40)
        await orchestrator.save_assessment(
            wallet, {"totalValue": 2}, _assessment(sample_assessment, 50, "Medium")
        )
        clock.advance(days=1)
        await orchestrator.save_assessment(
            wallet, {"totalValue": 3}, _assessment(sample_assessment, 55, "Low")
        )

        trend = await orchestrator.query_trend(wallet, days=30)

        assert trend.health_score_trend == (50, 55)
        assert trend.risk_trend == ("Medium", "Low")
        assert trend.value_trend == (2.0, 3.0)
        assert trend.data_points == 2
        assert trend.timestamps[0] < trend.timestamps[1]


class TestCompare:
    @pytest.mark.asyncio
    async def test_no_history(self, orchestrator: InsightOrchestrator, wallet: str) -> None:
        result = await orchestrator.compare_latest(wallet)
        assert result.current is None
        assert result.message == "No insights found for this wallet"

    @pytest.mark.asyncio
    async def test_single_record(
        self,
        orchestrator: InsightOrchestrator,
        sample_assessment: InsightAssessment,
        wallet: str,
    ) -> None:
        await orchestrator.save_assessment(wallet, {}, sample_assessment)

        result = await orchestrator.compare_latest(wallet)

        assert result.current is not None
        assert result.previous is None
        assert result.message == "Not enough history to compare"

    @pytest.mark.asyncio
    async def test_deltas(
        self,
        orchestrator: InsightOrchestrator,
        clock: DateClock,
        sample_assessment: InsightAssessment,
        wallet: str,
    ) -> None:
        await orchestrator.save_assessment(
            wallet, {"totalValue": 200}, _assessment(sample_assessment, 60, "High")
        )
        clock.advance(hours=2)
        await orchestrator.save_assessment(
            wallet, {"totalValue": 250}, _assessment(sample_assessment, 72, "Medium")
        )

        result = await orchestrator.compare_latest(wallet)

        assert result.changes is not None
        assert result.changes.health_score == 12
        assert result.changes.risk_level == "High -> Medium"
        assert result.changes.total_value == 50.0
        assert result.changes.total_value_percent == "25.00"
        assert result.changes.time_diff_seconds == 7200.0
        assert result.to_dict()["message"] is None

    @pytest.mark.asyncio
    async def test_zero_previous_value(
        self,
        orchestrator: InsightOrchestrator,
        clock: DateClock,
        sample_assessment: InsightAssessment,
        wallet: str,
    ) -> None:
        await orchestrator.save_assessment(wallet, {"totalValue": 0}, sample_assessment)
        clock.advance(minutes=5)
        await orchestrator.save_assessment(wallet, {"totalValue": 10}, sample_assessment)

        result = await orchestrator.compare_latest(wallet)

        assert result.changes.total_value_percent == "0.00"
        assert result.changes.risk_level == "Medium"


class TestStatsAndRecent:
    @pytest.mark.asyncio
    async def test_stats(
        self,
        orchestrator: InsightOrchestrator,
        clock: DateClock,
        sample_assessment: InsightAssessment,
        wallet: str,
    ) -> None:
        for score in (50, 61, 70):
            await orchestrator.save_assessment(
                wallet, {}, _assessment(sample_assessment, score)
            )
            clock.advance(hours=1)

        stats = await orchestrator.insight_stats(wallet)

        assert stats.total_insights == 3
        assert stats.average_health_score == 60.3
        assert stats.max_health_score == 70
        assert stats.min_health_score == 50
        assert stats.first_insight_date == T0
        assert stats.latest_insight.assessment.health_score == 70

    @pytest.mark.asyncio
    async def test_stats_empty(self, orchestrator: InsightOrchestrator, wallet: str) -> None:
        stats = await orchestrator.insight_stats(wallet)
        assert stats.total_insights == 0
        assert stats.to_dict()["latestInsight"] is None

    @pytest.mark.asyncio
    async def test_recent_insight_window(
        self,
        orchestrator: InsightOrchestrator,
        clock: DateClock,
        sample_assessment: InsightAssessment,
        wallet: str,
    ) -> None:
        assert await orchestrator.has_recent_insight(wallet) is False

        await orchestrator.save_assessment(wallet, {}, sample_assessment)
        clock.advance(minutes=59)
        assert await orchestrator.has_recent_insight(wallet) is True

        clock.advance(minutes=1)
        assert await orchestrator.has_recent_insight(wallet) is False

    @pytest.mark.asyncio
    async def test_recent_insight_invalid_address(
        self, orchestrator: InsightOrchestrator
    ) -> None:
        assert await orchestrator.has_recent_insight("0x123") is False


class TestFromConfig:
    def test_wires_memory_store_and_mock_generator(self) -> None:
        orchestrator = InsightOrchestrator.from_config(
            AppConfig(history=HistoryConfig(retention_days=7))
        )
        assert len(orchestrator.registry) == 18
        assert isinstance(orchestrator._history, InMemoryHistoryStore)
        assert isinstance(orchestrator._generator, MockInsightGenerator)
        assert orchestrator._retention == timedelta(days=7)
