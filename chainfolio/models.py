"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any


def _strict_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        return int(value)
    except (OverflowError, ValueError) as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


class NetworkClass(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"


class RiskProfile(str, Enum):
    CONSERVATIVE = "Conservative"
    BALANCED = "Balanced"
    AGGRESSIVE = "Aggressive"

    @classmethod
    def parse(cls, value: str | RiskProfile | None) -> RiskProfile:
        """Case-insensitive lookup; unknown or empty values fall back to BALANCED."""
        if isinstance(value, RiskProfile):
            return value
        if value:
            for member in cls:
                if member.value.lower() == str(value).strip().lower():
                    return member
        return cls.BALANCED


class AssetKind(str, Enum):
    NATIVE = "native"
    TOKEN = "token"
    NFT = "nft"


# ---------------------------------------------------------------------------
# Chains and endpoints
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainDescriptor:
    """Static description of a supported chain."""

    chain_id: int
    name: str
    native_symbol: str
    network_class: NetworkClass
    price_feed_key: str | None = None
    native_decimals: int = 18

    @property
    def is_mainnet(self) -> bool:
        return self.network_class is NetworkClass.MAINNET


@dataclass(frozen=True)
class EndpointSet:
    """Ordered, non-empty list of RPC URLs for one chain, tried first to last."""

    chain_id: int
    endpoints: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.endpoints:
            raise ValueError(f"Endpoint set for chain {self.chain_id} is empty")


# ---------------------------------------------------------------------------
# Portfolio
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AssetLine:
    """One holding on one chain: a native balance, a token or an NFT count."""

    chain_id: int
    symbol: str
    raw_amount: int
    decimals: int = 18
    kind: AssetKind = AssetKind.NATIVE
    contract_address: str | None = None
    usd_price: Decimal | None = None
    usd_value: Decimal | None = None
    fetch_error: str | None = None

    @property
    def is_native_asset(self) -> bool:
        return self.kind is AssetKind.NATIVE

    @property
    def amount(self) -> Decimal:
        """Human-readable amount; zero when the fetch failed."""
        if self.fetch_error is not None:
            return Decimal(0)
        return Decimal(self.raw_amount).scaleb(-self.decimals)

    @property
    def has_balance(self) -> bool:
        return self.fetch_error is None and self.raw_amount > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "chainId": self.chain_id,
            "symbol": self.symbol,
            "kind": self.kind.value,
            "isNative": self.is_native_asset,
            "contractAddress": self.contract_address,
            "rawAmount": str(self.raw_amount),
            "decimals": self.decimals,
            "balance": float(self.amount),
            "usdPrice": float(self.usd_price) if self.usd_price is not None else None,
            "usdValue": float(self.usd_value) if self.usd_value is not None else None,
            "error": self.fetch_error,
        }


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Result of one aggregation call for one wallet."""

    wallet_address: str
    asset_lines: tuple[AssetLine, ...] = ()
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_usd_value(self) -> Decimal:
        return sum(
            (line.usd_value for line in self.asset_lines if line.usd_value is not None),
            Decimal(0),
        )

    @property
    def connected_chain_count(self) -> int:
        return sum(
            1
            for line in self.asset_lines
            if line.is_native_asset and line.fetch_error is None
        )

    @property
    def native_lines(self) -> tuple[AssetLine, ...]:
        return tuple(line for line in self.asset_lines if line.is_native_asset)

    def lines_for_chain(self, chain_id: int) -> tuple[AssetLine, ...]:
        return tuple(line for line in self.asset_lines if line.chain_id == chain_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "walletAddress": self.wallet_address,
            "totalValue": float(self.total_usd_value),
            "connectedChains": self.connected_chain_count,
            "balances": [line.to_dict() for line in self.asset_lines],
            "lastUpdated": self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class HealthAssessment:
    """Health score of a snapshot under a risk profile."""

    score: int
    banner: str
    factors: tuple[str, ...] = ()
    imbalance_detected: bool = False

    @property
    def explanation(self) -> str:
        return " ".join((self.banner, *self.factors))

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "explanation": self.explanation,
            "factors": list(self.factors),
            "imbalanceDetected": self.imbalance_detected,
        }


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Price:
    feed_key: str
    usd: Decimal
    usd_24h_change: Decimal | None = None
    market_cap: Decimal | None = None
    volume_24h: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        def _f(value: Decimal | None) -> float | None:
            return float(value) if value is not None else None

        return {
            "usd": float(self.usd),
            "usd_24h_change": _f(self.usd_24h_change),
            "usd_market_cap": _f(self.market_cap),
            "usd_24h_vol": _f(self.volume_24h),
        }


@dataclass(frozen=True)
class PricePoint:
    timestamp: datetime
    usd: Decimal


# ---------------------------------------------------------------------------
# AI insights
# ---------------------------------------------------------------------------

RISK_LEVELS = ("Low", "Medium", "High")
RECOMMENDATION_TYPES = ("Buy", "Sell", "Hold")


@dataclass(frozen=True)
class UserProfile:
    """Caller preferences passed to the insight generator."""

    risk_personality: RiskProfile = RiskProfile.BALANCED
    learning_mode: str = "Beginner"
    health_score: int | None = None
    high_risk_alert: bool = True
    imbalance_alert: bool = True

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> UserProfile:
        """Build a profile from request JSON.

        Raises:
            ValueError: if the profile or one of its fields has the wrong type.
        """
        raw = raw or {}
        if not isinstance(raw, dict):
            raise ValueError("userProfile must be an object")
        notifications = raw.get("notifications") or {}
        if not isinstance(notifications, dict):
            raise ValueError("userProfile.notifications must be an object")
        health_score = raw.get("healthScore")
        if health_score is not None:
            health_score = _strict_int(health_score, "userProfile.healthScore")
        return cls(
            risk_personality=RiskProfile.parse(raw.get("riskPersonality")),
            learning_mode="Expert" if raw.get("learningMode") == "Expert" else "Beginner",
            health_score=health_score,
            high_risk_alert=bool(notifications.get("highRiskAlert", True)),
            imbalance_alert=bool(notifications.get("imbalanceAlert", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "riskPersonality": self.risk_personality.value,
            "learningMode": self.learning_mode,
            "healthScore": self.health_score,
            "notifications": {
                "highRiskAlert": self.high_risk_alert,
                "imbalanceAlert": self.imbalance_alert,
            },
        }


@dataclass(frozen=True)
class Recommendation:
    type: str
    asset: str
    reason: str
    priority: int = 1


@dataclass(frozen=True)
class InsightAssessment:
    """Structured output of the AI insight generator."""

    summary: str
    health_score: int
    risk_level: str
    diversification: str = ""
    performance: str = ""
    volatility: str = ""
    recommendations: tuple[Recommendation, ...] = ()
    top_pick_asset: str = ""
    top_pick_reason: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> InsightAssessment:
        """Parse the generator's JSON payload.

        Raises:
            ValueError: if a required field is missing or out of range.
        """
        if not isinstance(raw, dict):
            raise ValueError("Insight payload must be an object")
        summary = raw.get("summary")
        if not isinstance(summary, str) or not summary:
            raise ValueError("Insight payload has no summary")

        health_score = _strict_int(raw.get("healthScore"), "healthScore")
        if not 0 <= health_score <= 100:
            raise ValueError(f"healthScore out of range: {health_score}")

        risk_level = raw.get("riskLevel")
        if risk_level not in RISK_LEVELS:
            raise ValueError(f"Unknown riskLevel: {risk_level!r}")

        raw_recommendations = raw.get("recommendations") or []
        if not isinstance(raw_recommendations, list):
            raise ValueError("recommendations must be a list")
        recommendations: list[Recommendation] = []
        for rec in raw_recommendations:
            if not isinstance(rec, dict):
                raise ValueError(f"Recommendation must be an object: {rec!r}")
            if rec.get("type") not in RECOMMENDATION_TYPES:
                continue
            recommendations.append(
                Recommendation(
                    type=rec["type"],
                    asset=str(rec.get("asset", "")),
                    reason=str(rec.get("reason", "")),
                    priority=_strict_int(rec.get("priority", 1), "priority"),
                )
            )

        analysis = raw.get("analysis") or {}
        top_pick = raw.get("topPick") or {}
        if not isinstance(analysis, dict) or not isinstance(top_pick, dict):
            raise ValueError("analysis and topPick must be objects")
        return cls(
            summary=summary,
            health_score=health_score,
            risk_level=risk_level,
            diversification=str(analysis.get("diversification", "")),
            performance=str(analysis.get("performance", "")),
            volatility=str(analysis.get("volatility", "")),
            recommendations=tuple(recommendations),
            top_pick_asset=str(top_pick.get("asset", "")),
            top_pick_reason=str(top_pick.get("reason", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "healthScore": self.health_score,
            "riskLevel": self.risk_level,
            "analysis": {
                "diversification": self.diversification,
                "performance": self.performance,
                "volatility": self.volatility,
            },
            "recommendations": [
                {
                    "type": r.type,
                    "asset": r.asset,
                    "reason": r.reason,
                    "priority": r.priority,
                }
                for r in self.recommendations
            ],
            "topPick": {"asset": self.top_pick_asset, "reason": self.top_pick_reason},
        }


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistoryRecord:
    """One persisted assessment snapshot."""

    record_id: str
    wallet_address: str
    timestamp: datetime
    total_value: float
    connected_chains: int
    balances: tuple[dict[str, Any], ...]
    assessment: InsightAssessment
    user_profile: UserProfile | None = None
    market_context: dict[str, Any] = field(default_factory=dict)
    expires_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.record_id,
            "walletAddress": self.wallet_address,
            "timestamp": self.timestamp.isoformat(),
            "portfolioSnapshot": {
                "totalValue": self.total_value,
                "balances": list(self.balances),
                "connectedChains": self.connected_chains,
            },
            "analysis": self.assessment.to_dict(),
            "userProfile": self.user_profile.to_dict() if self.user_profile else None,
            "marketContext": dict(self.market_context),
        }


@dataclass(frozen=True)
class SaveConfirmation:
    success: bool
    insight_id: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "insightId": self.insight_id,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class HistoryPage:
    insights: tuple[HistoryRecord, ...]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.insights) < self.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "insights": [r.to_dict() for r in self.insights],
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "hasMore": self.has_more,
        }


@dataclass(frozen=True)
class TrendData:
    health_score_trend: tuple[int, ...] = ()
    risk_trend: tuple[str, ...] = ()
    value_trend: tuple[float, ...] = ()
    timestamps: tuple[datetime, ...] = ()

    @property
    def data_points(self) -> int:
        return len(self.timestamps)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthScoreTrend": list(self.health_score_trend),
            "riskTrend": list(self.risk_trend),
            "valueTrend": list(self.value_trend),
            "timestamps": [t.isoformat() for t in self.timestamps],
            "dataPoints": self.data_points,
        }


@dataclass(frozen=True)
class ComparisonChanges:
    health_score: int
    risk_level: str
    total_value: float
    total_value_percent: str
    time_diff_seconds: float


@dataclass(frozen=True)
class Comparison:
    current: HistoryRecord | None = None
    previous: HistoryRecord | None = None
    changes: ComparisonChanges | None = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        changes = None
        if self.changes is not None:
            changes = {
                "healthScore": self.changes.health_score,
                "riskLevel": self.changes.risk_level,
                "totalValue": self.changes.total_value,
                "totalValuePercent": self.changes.total_value_percent,
                "timeDiff": self.changes.time_diff_seconds,
            }
        return {
            "current": self.current.to_dict() if self.current else None,
            "previous": self.previous.to_dict() if self.previous else None,
            "changes": changes,
            "message": self.message or None,
        }


@dataclass(frozen=True)
class InsightStats:
    total_insights: int = 0
    latest_insight: HistoryRecord | None = None
    average_health_score: float = 0.0
    max_health_score: int = 0
    min_health_score: int = 0
    first_insight_date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalInsights": self.total_insights,
            "latestInsight": self.latest_insight.to_dict() if self.latest_insight else None,
            "averageHealthScore": self.average_health_score,
            "maxHealthScore": self.max_health_score,
            "minHealthScore": self.min_health_score,
            "firstInsightDate": (
                self.first_insight_date.isoformat() if self.first_insight_date else None
            ),
        }
