"""AI insight generators and their startup selection."""
from __future__ import annotations

import logging

from ..config import InsightsConfig
from ..interfaces.insight_generator import InsightGenerator
from .mock import MockInsightGenerator
from .openai_generator import OpenAIInsightGenerator

logger = logging.getLogger(__name__)


def has_usable_key(api_key: str) -> bool:
    return bool(api_key) and "placeholder" not in api_key


def select_generator(config: InsightsConfig) -> InsightGenerator:
    """Pick the real generator when a usable key is configured, else the mock."""
    if has_usable_key(config.openai_api_key):
        logger.info("Using OpenAI insight generator (%s)", config.model)
        return OpenAIInsightGenerator(
            config.openai_api_key, model=config.model, timeout=config.timeout
        )
    logger.warning("No usable OpenAI key configured, using mock insights")
    return MockInsightGenerator(delay_seconds=config.mock_delay_seconds)


__all__ = [
    "MockInsightGenerator",
    "OpenAIInsightGenerator",
    "has_usable_key",
    "select_generator",
]
