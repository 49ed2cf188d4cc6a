"""Portfolio health scoring."""
from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from ..config import ProfileThresholds, ScoringConfig
from ..models import AssetKind, HealthAssessment, PortfolioSnapshot, RiskProfile


class HealthScorer:
    """Deterministic 0-100 score of diversification and concentration risk.

    Three components are summed: diversification (max 40), cross-chain
    distribution (max 30) and concentration (max 30). A Conservative profile
    loses a further 10 points when an imbalance was detected.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self._config = config or ScoringConfig()

    def _thresholds(self, profile: RiskProfile) -> ProfileThresholds:
        profiles = self._config.profiles
        return profiles.get(profile.value) or profiles["Balanced"]

    def score(
        self, snapshot: PortfolioSnapshot, risk_profile: RiskProfile | str
    ) -> HealthAssessment:
        profile = RiskProfile.parse(risk_profile)
        conservative = profile is RiskProfile.CONSERVATIVE
        thresholds = self._thresholds(profile)
        cfg = self._config

        # NFT lines carry an item count, not a balance
        held = [
            line
            for line in snapshot.asset_lines
            if line.has_balance and line.kind is not AssetKind.NFT
        ]
        chains = list(dict.fromkeys(line.chain_id for line in held))
        chain_count = len(chains)

        points = 0
        imbalance = False
        factors: list[str] = []

        # Diversification
        if chain_count >= 3:
            points += cfg.diversification_full
            factors.append("Excellent asset diversification.")
        elif chain_count == 2:
            points += cfg.diversification_pair
            factors.append("Moderate diversification.")
        elif chain_count == 1:
            points += thresholds.single_asset_score
            factors.append(f"Highly concentrated portfolio ({profile.value} mode).")
            if conservative:
                imbalance = True
        else:
            factors.append("No assets found in the portfolio.")

        # Cross-chain distribution
        if chain_count >= thresholds.min_chains and chain_count > 0:
            points += cfg.distribution_full
            factors.append("Strong cross-chain presence.")
        elif chain_count >= 1:
            points += cfg.distribution_partial
            factors.append("Limited chain distribution may increase network risk.")
            if conservative and chain_count < 2:
                imbalance = True

        # Concentration
        total = snapshot.total_usd_value
        if total > 0:
            per_chain: dict[int, Decimal] = defaultdict(Decimal)
            for line in held:
                if line.usd_value is not None:
                    per_chain[line.chain_id] += line.usd_value
            largest_share = max(per_chain.values(), default=Decimal(0)) / total
            ceiling = Decimal(str(thresholds.max_concentration))
            if largest_share <= ceiling:
                points += cfg.concentration_full
                factors.append("Well-balanced asset allocation.")
            else:
                points += max(
                    cfg.concentration_floor,
                    cfg.concentration_full - thresholds.concentration_penalty,
                )
                factors.append(
                    "High asset concentration detected "
                    f"(> {thresholds.max_concentration * 100:g}%)."
                )
                imbalance = True
        elif chain_count > 0:
            points += cfg.concentration_unpriced
            factors.append("Concentration could not be assessed without prices.")

        if imbalance and conservative:
            points = max(0, points - cfg.conservative_penalty)
            factors.append("Significant risk exposure for a conservative profile.")

        points = min(100, points)
        return HealthAssessment(
            score=points,
            banner=self.banner_for(points),
            factors=tuple(factors),
            imbalance_detected=imbalance,
        )

    def banner_for(self, score: int) -> str:
        if score >= self._config.excellent_threshold:
            return "Excellent."
        if score >= self._config.good_threshold:
            return "Good."
        return "Needs attention."
