"""Centralized configuration management for the destination scorer."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .dimensions import ConfigError, check_weight_totals, get_dimension, tier_weights
from .schema import DimensionKey, ScoreBand, Tier, Weight

logger = logging.getLogger(__name__)


class ScoreBandTable(BaseModel):
    """An ordered threshold table mapping scores to qualitative bands.

    Bands are kept sorted by descending min_score. The lowest band must
    start at 0 so every valid score lands somewhere.
    """
    name: str
    bands: list[ScoreBand]

    @field_validator("bands")
    @classmethod
    def _sort_and_check(cls, bands: list[ScoreBand]) -> list[ScoreBand]:
        if not bands:
            raise ValueError("A band table needs at least one band")
        keys = [b.key for b in bands]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate band keys: {keys}")
        ordered = sorted(bands, key=lambda b: b.min_score, reverse=True)
        if ordered[-1].min_score != 0:
            raise ValueError("The lowest band must have min_score 0")
        return ordered

    def classify(self, score: float) -> ScoreBand:
        """Return the first band whose threshold the score reaches."""
        for band in self.bands:
            if score >= band.min_score:
                return band
        return self.bands[-1]


def _band(key: str, label: str, min_score: float, color: str, description: str = "") -> ScoreBand:
    return ScoreBand(key=key, label=label, min_score=min_score, color=color, description=description)


def _default_band_tables() -> dict[str, ScoreBandTable]:
    return {
        # Property cards and badges
        "card": ScoreBandTable(name="card", bands=[
            _band("exceptional", "Exceptional", 90, "gold", "Among the finest wellness destinations globally"),
            _band("distinguished", "Distinguished", 80, "navy", "Excellent across all dimensions"),
            _band("notable", "Notable", 70, "slate", "Strong performance with notable strengths"),
            _band("curated", "Curated", 0, "stone", "Selected for specific areas of excellence"),
        ]),
        # Per-dimension tooltips
        "tooltip": ScoreBandTable(name="tooltip", bands=[
            _band("exceptional", "Exceptional", 90, "green"),
            _band("strong", "Strong", 75, "navy"),
            _band("good", "Good", 60, "slate"),
            _band("developing", "Developing", 45, "amber"),
            _band("needs_improvement", "Needs Improvement", 0, "red"),
        ]),
        # Score interpretation on property pages
        "interpretation": ScoreBandTable(name="interpretation", bands=[
            _band("exceptional", "Exceptional", 90, "gold", "Among the finest wellness destinations globally"),
            _band("distinguished", "Distinguished", 80, "white", "Excellent across all dimensions"),
            _band("notable", "Notable", 70, "white", "Strong performance with notable strengths"),
            _band("curated", "Curated", 60, "navy", "Selected for specific areas of excellence"),
            _band("developing", "Developing", 0, "slate", "Shows promise in specific areas"),
        ]),
    }


class PeerComparisonConfig(BaseModel):
    """Deltas used to describe a score against its tier average."""
    well_delta: float = Field(
        10.0,
        description="Difference at or beyond which a score is 'well' above/below average"
    )
    delta: float = Field(
        3.0,
        description="Difference at or beyond which a score is above/below average"
    )

    @model_validator(mode="after")
    def _ordered(self) -> "PeerComparisonConfig":
        if not 0 <= self.delta <= self.well_delta:
            raise ValueError("peer_comparison requires 0 <= delta <= well_delta")
        return self


class ComparisonConfig(BaseModel):
    """Configuration for side-by-side comparison rendering."""
    max_items: int = Field(4, ge=1, description="Maximum entities in a comparison set")
    placeholder: str = Field("—", description="Text shown for missing values and padded slots")
    present_indicator: str = Field("✓", description="Text shown for a true boolean value")
    array_display_limit: int = Field(3, ge=1, description="List items shown before the +N counter")
    matrix_display_limit: int = Field(15, ge=1, description="Offering rows shown before 'show all'")


class WeightsConfig(BaseModel):
    """Per-tier dimension weight overrides and their validation policy.

    Overrides replace the built-in weight for the named dimensions of a
    tier. Dimensions not listed keep their built-in weight.
    """
    overrides: dict[Tier, dict[DimensionKey, Weight]] = Field(
        default_factory=dict,
        description="tier -> {dimension: weight} replacing the built-in weights"
    )
    sum_tolerance: float = Field(
        0.01,
        ge=0,
        description="Allowed deviation of a tier's weight total from 1.0"
    )
    strict_sum: bool = Field(
        False,
        description="Fail configuration load instead of warning when weights are unnormalized"
    )

    @field_validator("overrides", mode="before")
    @classmethod
    def _parse_keys(cls, value):
        # Accept tier codes and camelCase dimension names as in entity files.
        if not isinstance(value, dict):
            return value
        parsed = {}
        for tier, weights in value.items():
            tier = Tier.from_string(tier) if isinstance(tier, str) else tier
            if isinstance(weights, dict):
                weights = {
                    DimensionKey.from_string(k) if isinstance(k, str) else k: w
                    for k, w in weights.items()
                }
            parsed[tier] = weights
        return parsed

    @model_validator(mode="after")
    def _check_membership(self) -> "WeightsConfig":
        for tier, weights in self.overrides.items():
            for key in weights:
                if get_dimension(tier, key) is None:
                    raise ValueError(
                        f"Dimension {key.value} is not scored for tier {tier.value}"
                    )
        return self

    def tier_weights(self, tier: Tier) -> dict[DimensionKey, Optional[float]]:
        """Effective weight per dimension of a tier."""
        return tier_weights(tier, self.overrides)


def _default_tier_averages() -> dict[Tier, float]:
    return {
        Tier.MEDICAL_LONGEVITY: 82.0,
        Tier.INTEGRATED_WELLNESS: 78.0,
        Tier.LUXURY_DESTINATION: 75.0,
    }


class ScorerConfig(BaseModel):
    """Complete configuration for the destination scorer."""
    score_bands: dict[str, ScoreBandTable] = Field(default_factory=_default_band_tables)
    peer_comparison: PeerComparisonConfig = Field(default_factory=PeerComparisonConfig)
    tier_averages: dict[Tier, float] = Field(default_factory=_default_tier_averages)
    comparison: ComparisonConfig = Field(default_factory=ComparisonConfig)
    weights: WeightsConfig = Field(default_factory=WeightsConfig)

    @field_validator("score_bands", mode="before")
    @classmethod
    def _merge_band_tables(cls, value):
        # Tables given in YAML replace defaults by name; the rest are kept.
        if not isinstance(value, dict):
            return value
        merged = {name: table.model_dump() for name, table in _default_band_tables().items()}
        for name, table in value.items():
            if isinstance(table, dict):
                table = {"name": name, **table}
            merged[name] = table
        return merged

    def band_table(self, name: str) -> ScoreBandTable:
        """Get a band table by name."""
        try:
            return self.score_bands[name]
        except KeyError:
            raise KeyError(
                f"Unknown score band table {name!r}; available: {sorted(self.score_bands)}"
            ) from None


# Global config instance
_config: Optional[ScorerConfig] = None


def get_config() -> ScorerConfig:
    """Get the current configuration.

    Returns the global config, initializing with defaults if not yet loaded.
    """
    global _config
    if _config is None:
        _config = ScorerConfig()
    return _config


def load_config(path: Path) -> ScorerConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        The loaded ScorerConfig.

    Raises:
        pydantic.ValidationError: If the file content is invalid.
        ConfigError: If weights are unnormalized and strict_sum is set.
    """
    global _config

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    config = ScorerConfig.model_validate(data or {})
    check_weight_totals(
        config.weights.sum_tolerance,
        config.weights.strict_sum,
        config.weights.overrides,
    )

    _config = config
    logger.info("Loaded scorer configuration from %s", path)
    return _config


def reset_config() -> None:
    """Reset configuration to defaults."""
    global _config
    _config = ScorerConfig()


def find_config_file() -> Optional[Path]:
    """Find a scorer configuration file.

    Looks in (order of priority):
    1. DESTINATION_SCORER_CONFIG environment variable
    2. ./destination-scorer.yaml
    3. ./destination-scorer.yml
    4. ~/.config/destination-scorer/config.yaml
    """
    # Environment variable
    env_path = os.environ.get("DESTINATION_SCORER_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path
        logger.warning("DESTINATION_SCORER_CONFIG points to a missing file: %s", env_path)

    # Current directory
    for name in ["destination-scorer.yaml", "destination-scorer.yml"]:
        path = Path(name)
        if path.exists():
            return path

    # User config directory
    user_config = Path.home() / ".config" / "destination-scorer" / "config.yaml"
    if user_config.exists():
        return user_config

    return None


def save_default_config(path: Path) -> None:
    """Save the default configuration to a YAML file.

    Args:
        path: Path where to save the configuration.
    """
    config = ScorerConfig()

    data = config.model_dump(mode="json")

    yaml_content = """# Destination Scorer Configuration
# =================================
#
# This file configures score bands, peer-average comparison deltas,
# tier averages, comparison rendering limits and weight validation.
#
# Copy this file to one of these locations:
#   - ./destination-scorer.yaml (current directory)
#   - ~/.config/destination-scorer/config.yaml (user config)
#
# Or set the DESTINATION_SCORER_CONFIG environment variable.

"""
    yaml_content += yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(yaml_content)
