"""Offline insight generator used when no AI key is configured."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from ..models import InsightAssessment, Recommendation, RiskProfile, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_SCORE = 78

_RISK_LEVEL_BY_PROFILE = {
    RiskProfile.AGGRESSIVE: "High",
    RiskProfile.CONSERVATIVE: "Low",
    RiskProfile.BALANCED: "Medium",
}


class MockInsightGenerator:
    """Canned assessment tailored to the caller's profile and alert toggles."""

    def __init__(self, delay_seconds: float = 0.0) -> None:
        self.delay_seconds = delay_seconds

    async def generate(
        self, portfolio: dict[str, Any], profile: UserProfile
    ) -> InsightAssessment:
        personality = profile.risk_personality
        logger.info(
            "Returning mock insight (%s risk, %s style)",
            personality.value,
            profile.learning_mode,
        )
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        generated_at = datetime.now(timezone.utc).isoformat()
        recommendations = [
            Recommendation(
                type="Hold",
                asset="Ethereum (ETH)",
                reason="Core long-term hold, market dominance remains strong.",
            )
        ]
        if profile.imbalance_alert and personality is RiskProfile.CONSERVATIVE:
            recommendations.append(
                Recommendation(
                    type="Buy",
                    asset="Stablecoins (USDC)",
                    reason=(
                        "Increase cash reserves to reduce overall portfolio "
                        "volatility and rebalance for safety."
                    ),
                )
            )
        if profile.high_risk_alert:
            recommendations.append(
                Recommendation(
                    type="Sell",
                    asset="Small Caps",
                    reason=(
                        "Take profits on recent pumps to reduce risk exposure "
                        "as per your high-risk alert setting."
                    ),
                )
            )

        return InsightAssessment(
            summary=(
                f"[Mock Analysis for {personality.value} Risk Profile] Your portfolio "
                "shows a strong leaning towards Layer-2 scaling solutions. While this "
                "offers high growth potential, it increases volatility risk. Consider "
                "balancing with established Layer-1 assets. "
                f"(Generated on {generated_at})"
            ),
            health_score=(
                profile.health_score
                if profile.health_score is not None
                else DEFAULT_HEALTH_SCORE
            ),
            risk_level=_RISK_LEVEL_BY_PROFILE[personality],
            diversification=(
                "Moderate concentration in ETH-beta assets. Good spread across 3 chains."
            ),
            performance=(
                "Portfolio is outperforming BTC by 5% this week, driven by L2 activity."
            ),
            volatility=(
                "High volatility detected in smaller cap assets."
                if profile.high_risk_alert
                else "Volatility levels within expected parameters."
            ),
            recommendations=tuple(recommendations),
            top_pick_asset="Arbitrum (ARB)",
            top_pick_reason=(
                "Leading TVL growth and low transaction fees drive strong adoption metrics."
            ),
        )
