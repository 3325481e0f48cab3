"""Dimension Model - per-tier quality dimensions and weights.

One explicit (tier, dimension key) table. Each tier has its own ordered
dimension set; a key shared between tiers may carry a different description
per tier.
"""

import logging
from typing import Iterable, Mapping, Optional

from .schema import Dimension, DimensionKey, Tier

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when static scoring configuration is inconsistent."""


_VALUE_ALIGNMENT = Dimension(
    key=DimensionKey.VALUE_ALIGNMENT,
    label="Value Alignment",
    description="Price relative to what is delivered",
    weight=0.10,
)

TIER_DIMENSIONS: dict[Tier, tuple[Dimension, ...]] = {
    Tier.MEDICAL_LONGEVITY: (
        Dimension(
            key=DimensionKey.CLINICAL_RIGOR,
            label="Clinical Rigor",
            description="Medical credentials, diagnostic depth, evidence-based protocols, physician ratios",
            weight=0.30,
        ),
        Dimension(
            key=DimensionKey.OUTCOME_EVIDENCE,
            label="Outcome Evidence",
            description="Published results, guest-reported outcomes, follow-up protocols",
            weight=0.25,
        ),
        Dimension(
            key=DimensionKey.PROGRAM_DEPTH,
            label="Program Depth",
            description="Comprehensiveness, customization, duration options",
            weight=0.20,
        ),
        Dimension(
            key=DimensionKey.EXPERIENCE_QUALITY,
            label="Experience Quality",
            description="Facilities, service, accommodation, dining",
            weight=0.15,
        ),
        _VALUE_ALIGNMENT,
    ),
    Tier.INTEGRATED_WELLNESS: (
        Dimension(
            key=DimensionKey.PROGRAM_EFFECTIVENESS,
            label="Program Effectiveness",
            description="Guest-reported outcomes, expert assessment",
            weight=0.25,
        ),
        Dimension(
            key=DimensionKey.HOLISTIC_INTEGRATION,
            label="Holistic Integration",
            description="How well clinical and wellness elements combine",
            weight=0.25,
        ),
        Dimension(
            key=DimensionKey.PRACTITIONER_QUALITY,
            label="Practitioner Quality",
            description="Credentials, experience, guest feedback on individuals",
            weight=0.20,
        ),
        Dimension(
            key=DimensionKey.EXPERIENCE_QUALITY,
            label="Experience Quality",
            description="Facilities, service, accommodation, dining",
            weight=0.20,
        ),
        _VALUE_ALIGNMENT,
    ),
    Tier.LUXURY_DESTINATION: (
        Dimension(
            key=DimensionKey.EXPERIENCE_QUALITY,
            label="Experience Quality",
            description="Facilities, service, ambiance, accommodation",
            weight=0.35,
        ),
        Dimension(
            key=DimensionKey.WELLNESS_DEPTH,
            label="Wellness Offering Depth",
            description="Range and quality of treatments, practitioner skill",
            weight=0.25,
        ),
        Dimension(
            key=DimensionKey.TRANSFORMATIVE_POTENTIAL,
            label="Transformative Potential",
            description="Can this stay create lasting change?",
            weight=0.20,
        ),
        Dimension(
            key=DimensionKey.SETTING_ENVIRONMENT,
            label="Setting & Environment",
            description="Location, natural surroundings, sense of escape",
            weight=0.10,
        ),
        _VALUE_ALIGNMENT,
    ),
}

# Per-tier weight overrides: tier -> {dimension key: weight}
WeightOverrides = Mapping[Tier, Mapping[DimensionKey, float]]


def get_dimensions_for_tier(tier: Tier) -> tuple[Dimension, ...]:
    """Get the ordered dimension set for a tier."""
    return TIER_DIMENSIONS[tier]


def get_dimension(tier: Tier, key: DimensionKey) -> Optional[Dimension]:
    """Look up a dimension by (tier, key).

    Returns None if the key is not part of the tier's dimension set.
    """
    for dimension in TIER_DIMENSIONS[tier]:
        if dimension.key == key:
            return dimension
    return None


def dimension_keys_for_tiers(tiers: Iterable[Tier]) -> list[DimensionKey]:
    """Ordered union of dimension keys across several tiers.

    Keys keep the position of their first appearance, walking the tiers in
    the order given.
    """
    keys: list[DimensionKey] = []
    for tier in tiers:
        for dimension in TIER_DIMENSIONS[tier]:
            if dimension.key not in keys:
                keys.append(dimension.key)
    return keys


def dimension_label(key: DimensionKey, tiers: Iterable[Tier] = ()) -> str:
    """Human label for a key, preferring the first tier that defines it."""
    for tier in list(tiers) + list(Tier):
        dimension = get_dimension(tier, key)
        if dimension is not None:
            return dimension.label
    return key.value.replace("_", " ").title()


def tier_weights(
    tier: Tier, overrides: Optional[WeightOverrides] = None
) -> dict[DimensionKey, Optional[float]]:
    """Effective weight per dimension of a tier, in table order.

    Overridden keys replace the table weight; everything else keeps it.
    """
    tier_overrides = (overrides or {}).get(tier, {})
    return {
        d.key: tier_overrides.get(d.key, d.weight)
        for d in TIER_DIMENSIONS[tier]
    }


def weight_total(tier: Tier, overrides: Optional[WeightOverrides] = None) -> float:
    """Sum of the effective weights for a tier."""
    return sum(w for w in tier_weights(tier, overrides).values() if w is not None)


def check_weight_totals(
    tolerance: float = 0.01,
    strict: bool = False,
    overrides: Optional[WeightOverrides] = None,
) -> list[str]:
    """Check that each tier's effective weights sum to approximately 1.0.

    Unnormalized weights are supported by the scorer, so by default this
    only logs a warning per offending tier.

    Args:
        tolerance: Allowed absolute deviation from 1.0.
        strict: Raise ConfigError instead of warning.
        overrides: Configured per-tier weight overrides.

    Returns:
        List of issue messages (empty if all tiers are normalized).
    """
    issues = []
    for tier in Tier:
        total = weight_total(tier, overrides)
        if abs(total - 1.0) > tolerance:
            issues.append(f"Weights for tier {tier.value} sum to {total:.2f}, expected 1.0")

    if issues and strict:
        raise ConfigError("; ".join(issues))
    for issue in issues:
        logger.warning(issue)
    return issues
