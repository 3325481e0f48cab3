"""Scoring, review aggregation and comparison for wellness destinations."""

__version__ = "1.0.0"

from .aggregator import OutcomeAggregator, aggregate_reviews
from .comparison import (
    ComparisonSet,
    build_attribute_availability_matrix,
    build_comparison_row,
    classify_value,
)
from .config import ScorerConfig, get_config, load_config, reset_config
from .dimensions import ConfigError, get_dimension, get_dimensions_for_tier
from .normalizer import load_entities, validate_entities_file
from .report import ComparisonReportBuilder
from .schema import (
    DimensionKey,
    Entity,
    HighlightMode,
    MalformedInputError,
    ReviewRecord,
    Tier,
)
from .scorer import (
    DestinationScorer,
    classify_score,
    compare_to_peer_average,
    weighted_contribution,
)

__all__ = [
    "__version__",
    "OutcomeAggregator",
    "aggregate_reviews",
    "ComparisonSet",
    "build_attribute_availability_matrix",
    "build_comparison_row",
    "classify_value",
    "ScorerConfig",
    "get_config",
    "load_config",
    "reset_config",
    "ConfigError",
    "get_dimension",
    "get_dimensions_for_tier",
    "load_entities",
    "validate_entities_file",
    "ComparisonReportBuilder",
    "DimensionKey",
    "Entity",
    "HighlightMode",
    "MalformedInputError",
    "ReviewRecord",
    "Tier",
    "DestinationScorer",
    "classify_score",
    "compare_to_peer_average",
    "weighted_contribution",
]
