"""Insight generator protocol — AI portfolio analysis abstraction."""
from typing import Any, Protocol

from ..models import InsightAssessment, UserProfile


class InsightGenerator(Protocol):
    """Produces a structured assessment of a portfolio for a user profile."""

    async def generate(
        self, portfolio: dict[str, Any], profile: UserProfile
    ) -> InsightAssessment: ...
