"""Scorer - weighted overall scores, score bands and peer comparison.

Reduces an entity's tier-specific dimension scores to a single 0-100 score,
classifies scores into qualitative bands and describes a score relative to
its tier average.
"""

from typing import Optional, Union

from .config import ScoreBandTable, ScorerConfig, get_config
from .dimensions import get_dimensions_for_tier
from .schema import (
    DimensionContribution,
    DimensionScore,
    Entity,
    ScoreBand,
    ScoreBreakdown,
    ScoreDelta,
    Tier,
)
from .stats import round_half_up, round_to_int


# =============================================================================
# Score Functions
# =============================================================================


def classify_score(
    score: Optional[float],
    table: Union[str, ScoreBandTable] = "card",
    config: Optional[ScorerConfig] = None,
) -> Optional[ScoreBand]:
    """Map a 0-100 score to a qualitative band.

    Args:
        score: The score to classify. None means not yet assessed.
        table: Band table name from the config ("card", "tooltip",
            "interpretation") or an explicit ScoreBandTable.
        config: Configuration to read named tables from.

    Returns:
        The matching band, or None when score is None.
    """
    if score is None:
        return None
    if isinstance(table, str):
        table = (config or get_config()).band_table(table)
    return table.classify(score)


def weighted_contribution(score: Optional[float], weight: Optional[float]) -> Optional[float]:
    """A dimension's share of the overall score, rounded to 1 decimal.

    Returns None when either the score or the weight is missing so callers
    can omit the figure.
    """
    if score is None or weight is None:
        return None
    return round_half_up(score * weight, 1)


def compare_to_peer_average(
    score: Optional[float],
    average: Optional[float],
    config: Optional[ScorerConfig] = None,
) -> Optional[str]:
    """Describe a score relative to its peer (tier) average.

    Returns None when either value is missing.
    """
    if score is None or average is None:
        return None

    cfg = (config or get_config()).peer_comparison
    diff = score - average
    if diff >= cfg.well_delta:
        return "Well above average"
    if diff >= cfg.delta:
        return "Above average"
    if diff >= -cfg.delta:
        return "Average"
    if diff >= -cfg.well_delta:
        return "Below average"
    return "Well below average"


def compare_scores(score_a: float, score_b: float) -> ScoreDelta:
    """Compare two scores and return the difference."""
    difference = score_a - score_b
    percent_change = (difference / score_b) * 100 if score_b != 0 else 0.0

    if difference > 0:
        direction = "up"
    elif difference < 0:
        direction = "down"
    else:
        direction = "unchanged"

    return ScoreDelta(
        difference=difference,
        percent_change=round_half_up(percent_change, 1),
        direction=direction,
    )


def validate_score(value: object) -> bool:
    """Check a value is a number within 0-100."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return 0 <= value <= 100


def format_score(score: Optional[float], config: Optional[ScorerConfig] = None) -> str:
    """Format a score for display."""
    if score is None:
        return (config or get_config()).comparison.placeholder
    return str(round_to_int(score))


def format_score_with_band(score: Optional[float], config: Optional[ScorerConfig] = None) -> str:
    """Format a score with its interpretation label, e.g. '87 - Distinguished'."""
    band = classify_score(score, "interpretation", config)
    if band is None:
        return format_score(score, config)
    return f"{format_score(score, config)} - {band.label}"


# =============================================================================
# Engine
# =============================================================================


class DestinationScorer:
    """Scores catalogued entities against their tier's dimension table.

    Scoring principles:
    - Only dimensions with both a score and a weight contribute
    - Missing scores are excluded, never counted as zero
    - Weights are normalized by the total that actually took part
    - Nothing is cached between calls
    """

    def __init__(self, config: Optional[ScorerConfig] = None):
        """Initialize scorer with optional configuration."""
        self.config = config or get_config()

    def compute_overall(
        self,
        tier: Tier,
        dimension_scores: list[DimensionScore],
    ) -> Optional[int]:
        """Compute the weighted overall score for a tier.

        Returns:
            The 0-100 score rounded to an integer, or None if no weighted
            dimension has a score.
        """
        scores = {ds.dimension: ds.score for ds in dimension_scores}
        total_weighted = 0.0
        total_weights = 0.0

        weights = self.config.weights.tier_weights(tier)
        for dimension in get_dimensions_for_tier(tier):
            score = scores.get(dimension.key)
            weight = weights[dimension.key]
            if score is None or weight is None:
                continue
            total_weighted += score * weight
            total_weights += weight

        if total_weights <= 0:
            return None
        return round_to_int(total_weighted / total_weights)

    def dimension_contributions(self, entity: Entity) -> list[DimensionContribution]:
        """Per-dimension contribution to the overall score.

        Scored dimensions are sorted by contribution (highest first);
        unscored dimensions follow in table order.
        """
        tooltip_table = self.config.band_table("tooltip")
        scored = []
        unscored = []

        weights = self.config.weights.tier_weights(entity.tier)
        for dimension in get_dimensions_for_tier(entity.tier):
            score = entity.get_dimension_score(dimension.key)
            weight = weights[dimension.key]
            contribution = DimensionContribution(
                dimension=dimension.key,
                label=dimension.label,
                description=dimension.description,
                score=score,
                weight=weight,
                contribution=weighted_contribution(score, weight),
                level=classify_score(score, tooltip_table),
            )
            if contribution.contribution is None:
                unscored.append(contribution)
            else:
                scored.append(contribution)

        scored.sort(key=lambda c: c.contribution, reverse=True)
        return scored + unscored

    def score(self, entity: Entity) -> ScoreBreakdown:
        """Score a single entity.

        The assessed overall score recorded on the entity wins; the computed
        score is reported alongside it and used when no assessment exists.
        """
        computed = self.compute_overall(entity.tier, entity.dimension_scores)
        overall = entity.overall_score if entity.overall_score is not None else computed
        tier_average = self.config.tier_averages.get(entity.tier)

        return ScoreBreakdown(
            entity_id=entity.id,
            name=entity.name,
            tier=entity.tier,
            overall_score=overall,
            computed_score=computed,
            band=classify_score(overall, "card", self.config),
            tier_average=tier_average,
            peer_comparison=compare_to_peer_average(overall, tier_average, self.config),
            contributions=self.dimension_contributions(entity),
        )

    def score_all(self, entities: list[Entity]) -> list[ScoreBreakdown]:
        """Score several entities, highest overall first. Unscored entities go last."""
        breakdowns = [self.score(e) for e in entities]
        breakdowns.sort(
            key=lambda b: (b.overall_score is None, -(b.overall_score or 0))
        )
        return breakdowns
