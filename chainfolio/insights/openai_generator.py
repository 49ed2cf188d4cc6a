"""Insight generator backed by the OpenAI chat completions API."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from ..errors import UpstreamGeneratorError
from ..models import InsightAssessment, RiskProfile, UserProfile

logger = logging.getLogger(__name__)

_RESPONSE_SHAPE = """{
  "summary": "2-3 sentence assessment",
  "healthScore": 0-100,
  "riskLevel": "Low/Medium/High",
  "analysis": {"diversification": "...", "performance": "...", "volatility": "..."},
  "recommendations": [{"type": "Buy/Sell/Hold", "asset": "...", "reason": "..."}],
  "topPick": {"asset": "...", "reason": "..."}
}"""


def build_prompt(portfolio: dict[str, Any], profile: UserProfile) -> str:
    tone = {
        RiskProfile.CONSERVATIVE: "conservative and cautious",
        RiskProfile.AGGRESSIVE: "bold and growth-oriented",
    }.get(profile.risk_personality, "balanced")
    detail = (
        "comprehensive and technical"
        if profile.learning_mode == "Expert"
        else "simple and easy to understand"
    )
    health = profile.health_score if profile.health_score is not None else "N/A"
    return (
        "You are an expert crypto portfolio advisor.\n"
        f"Portfolio:\n{json.dumps(portfolio, indent=2, default=str)}\n\n"
        f"Risk personality: {profile.risk_personality.value}\n"
        f"Learning mode: {profile.learning_mode}\n"
        f"Current health score: {health}\n"
        f"High-risk alerts: {'ON' if profile.high_risk_alert else 'OFF'}; "
        f"imbalance alerts: {'ON' if profile.imbalance_alert else 'OFF'}\n\n"
        "Only suggest rebalancing if imbalance alerts are ON. Only warn about "
        "volatility if high-risk alerts are ON. "
        f"Tone: {tone}. Detail: {detail}. "
        f"Generation time: {datetime.now(timezone.utc).isoformat()}.\n\n"
        f"Reply with JSON shaped like:\n{_RESPONSE_SHAPE}"
    )


class OpenAIInsightGenerator:
    """Ask a chat model for a JSON assessment and validate its shape."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout)

    async def generate(
        self, portfolio: dict[str, Any], profile: UserProfile
    ) -> InsightAssessment:
        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": build_prompt(portfolio, profile)}],
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            logger.error("OpenAI request failed: %s", e)
            raise UpstreamGeneratorError(f"OpenAI request failed: {e}") from e

        try:
            content = completion.choices[0].message.content or ""
            return InsightAssessment.from_dict(json.loads(content))
        except (IndexError, AttributeError, ValueError) as e:
            logger.error("Unusable OpenAI insight payload: %s", e)
            raise UpstreamGeneratorError(f"Unusable insight payload: {e}") from e
