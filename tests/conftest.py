"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from chainfolio.chains.registry import ChainRegistry
from chainfolio.config import AppConfig, EnrichmentConfig, RpcConfig, _build_chains
from chainfolio.errors import (
    AllEndpointsFailedError,
    PriceUnavailableError,
    TransportError,
)
from chainfolio.models import (
    AssetLine,
    ChainDescriptor,
    InsightAssessment,
    NetworkClass,
    PortfolioSnapshot,
    Price,
    PricePoint,
    Recommendation,
)

WALLET = "0x" + "ab" * 20
ONE_ETH = 10**18


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeGateway:
    """Scripted RpcClient: ``responses[(chain_id, method)]`` is a value or an exception."""

    def __init__(self, responses: dict[tuple[int, str], Any] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[int, str, list[Any]]] = []

    async def call(
        self,
        chain_id: int,
        method: str,
        params: list[Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        self.calls.append((chain_id, method, list(params or [])))
        key = (chain_id, method)
        if key not in self.responses:
            raise TransportError("https://fake.example.com", f"no script for {key}")
        outcome = self.responses[key]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeOracle:
    """PriceOracle serving fixed prices and counting batched requests."""

    def __init__(
        self,
        prices: dict[str, str] | None = None,
        history: dict[str, list[PricePoint]] | None = None,
    ) -> None:
        self.prices = {k: Decimal(v) for k, v in (prices or {}).items()}
        self.history = history or {}
        self.price_requests: list[list[str]] = []
        self.history_requests: list[tuple[str, int]] = []

    async def fetch_prices(self, feed_keys: list[str]) -> dict[str, Price]:
        self.price_requests.append(list(feed_keys))
        return {
            k: Price(feed_key=k, usd=self.prices[k]) for k in feed_keys if k in self.prices
        }

    async def fetch_history(self, feed_key: str, days: int) -> list[PricePoint]:
        self.history_requests.append((feed_key, days))
        if feed_key not in self.history:
            raise PriceUnavailableError(f"No price history for {feed_key}")
        return self.history[feed_key]


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def app_config() -> AppConfig:
    return AppConfig(
        rpc=RpcConfig(timeout=5.0),
        chains=_build_chains({}),
        enrichment=EnrichmentConfig(enabled=False),
    )


@pytest.fixture()
def registry() -> ChainRegistry:
    return ChainRegistry(
        [
            ChainDescriptor(1, "Ethereum", "ETH", NetworkClass.MAINNET, "ethereum"),
            ChainDescriptor(137, "Polygon", "MATIC", NetworkClass.MAINNET, "matic-network"),
            ChainDescriptor(42161, "Arbitrum", "ETH", NetworkClass.MAINNET, "ethereum"),
            ChainDescriptor(10, "Optimism", "ETH", NetworkClass.MAINNET, "ethereum"),
            ChainDescriptor(11155111, "Sepolia", "ETH", NetworkClass.TESTNET, "ethereum"),
            ChainDescriptor(424242, "Devnet", "DEV", NetworkClass.TESTNET, None),
        ]
    )


@pytest.fixture()
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def fake_oracle() -> FakeOracle:
    return FakeOracle({"ethereum": "2500", "matic-network": "0.5", "usd-coin": "1"})


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def wallet() -> str:
    return WALLET


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


def native(
    chain_id: int,
    raw_amount: int,
    symbol: str = "ETH",
    usd_value: str | None = None,
    error: str | None = None,
) -> AssetLine:
    return AssetLine(
        chain_id=chain_id,
        symbol=symbol,
        raw_amount=raw_amount,
        usd_value=Decimal(usd_value) if usd_value is not None else None,
        fetch_error=error,
    )


@pytest.fixture()
def native_line():
    return native


@pytest.fixture()
def two_chain_snapshot() -> PortfolioSnapshot:
    """2 ETH on Ethereum worth $5000, Polygon failed on every endpoint."""
    return PortfolioSnapshot(
        wallet_address=WALLET,
        asset_lines=(
            native(1, 2 * ONE_ETH, usd_value="5000"),
            native(
                137,
                0,
                symbol="MATIC",
                error=str(AllEndpointsFailedError(137, TransportError("u", "down"))),
            ),
        ),
    )


@pytest.fixture()
def sample_assessment() -> InsightAssessment:
    return InsightAssessment(
        summary="Balanced spread across L2s.",
        health_score=72,
        risk_level="Medium",
        diversification="Good spread.",
        performance="Flat week.",
        volatility="Moderate.",
        recommendations=(
            Recommendation(type="Hold", asset="Ethereum (ETH)", reason="Core holding."),
        ),
        top_pick_asset="Arbitrum (ARB)",
        top_pick_reason="Fee growth.",
    )


@pytest.fixture()
def sample_insight_payload() -> dict[str, Any]:
    return {
        "summary": "Balanced spread across L2s.",
        "healthScore": 72,
        "riskLevel": "Medium",
        "analysis": {
            "diversification": "Good spread.",
            "performance": "Flat week.",
            "volatility": "Moderate.",
        },
        "recommendations": [
            {"type": "Hold", "asset": "Ethereum (ETH)", "reason": "Core holding."},
            {"type": "Moon", "asset": "DOGE", "reason": "ignored"},
        ],
        "topPick": {"asset": "Arbitrum (ARB)", "reason": "Fee growth."},
    }


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    rpc:
      timeout: 5
      alchemy_api_key: ""
    chains:
      1:
        rpc_endpoints:
          - https://rpc1.example.com
          - https://rpc2.example.com
      137:
        rpc_endpoints: https://polygon.example.com
      97:
        enabled: false
      999999:
        name: Localnet
        symbol: LOC
        network: testnet
        rpc_endpoints: http://127.0.0.1:8545
    enrichment:
      enabled: false
    prices:
      ttl_seconds: 60
      symbol_feeds:
        steth: staked-ether
    scoring:
      profiles:
        Balanced:
          max_concentration: 0.6
    insights:
      openai_api_key: "sk-placeholder"
    history:
      backend: memory
      retention_days: 30
    server:
      port: 4100
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
