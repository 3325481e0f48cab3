"""Pydantic models for the Destination Scoring Engine.

Input schemas for catalogued entities (tiers, dimension scores, reviews,
offerings) and output schemas for score breakdowns, outcome summaries and
comparison matrices.
"""

import json
import math
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MalformedInputError(ValueError):
    """Raised when data entering the core has the wrong shape or type."""


# Strict finite numbers: ints are accepted for floats; strings, bools, inf and NaN are not.
Score = Annotated[float, Field(strict=True, allow_inf_nan=False, ge=0, le=100)]
Rating = Annotated[float, Field(strict=True, allow_inf_nan=False, ge=0, le=5)]
Delta = Annotated[float, Field(strict=True, allow_inf_nan=False)]
Weight = Annotated[float, Field(strict=True, allow_inf_nan=False, ge=0, le=1)]
Price = Annotated[float, Field(strict=True, allow_inf_nan=False, ge=0)]


# =============================================================================
# Classification Enums
# =============================================================================


class Tier(str, Enum):
    """Entity classification. Determines the dimension set and weights."""
    MEDICAL_LONGEVITY = "medical_longevity"
    INTEGRATED_WELLNESS = "integrated_wellness"
    LUXURY_DESTINATION = "luxury_destination"

    @classmethod
    def from_string(cls, value: str) -> "Tier":
        """Parse a tier from its scoring name or catalogue storage code."""
        if not isinstance(value, str):
            raise MalformedInputError(f"Tier must be a string, got {type(value).__name__}")
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        mapping = {
            "medical_longevity": cls.MEDICAL_LONGEVITY,
            "integrated_wellness": cls.INTEGRATED_WELLNESS,
            "luxury_destination": cls.LUXURY_DESTINATION,
            "tier_1": cls.MEDICAL_LONGEVITY,
            "tier1": cls.MEDICAL_LONGEVITY,
            "tier_2": cls.INTEGRATED_WELLNESS,
            "tier2": cls.INTEGRATED_WELLNESS,
            "tier_3": cls.LUXURY_DESTINATION,
            "tier3": cls.LUXURY_DESTINATION,
        }
        if normalized not in mapping:
            raise MalformedInputError(f"Unknown tier: {value!r}")
        return mapping[normalized]

    @property
    def label(self) -> str:
        return TIER_LABELS[self]


TIER_LABELS = {
    Tier.MEDICAL_LONGEVITY: "Medical Longevity",
    Tier.INTEGRATED_WELLNESS: "Integrated Wellness",
    Tier.LUXURY_DESTINATION: "Luxury Destination",
}


class DimensionKey(str, Enum):
    """Canonical quality dimensions across all tiers."""
    CLINICAL_RIGOR = "clinical_rigor"
    OUTCOME_EVIDENCE = "outcome_evidence"
    PROGRAM_DEPTH = "program_depth"
    EXPERIENCE_QUALITY = "experience_quality"
    VALUE_ALIGNMENT = "value_alignment"
    PROGRAM_EFFECTIVENESS = "program_effectiveness"
    HOLISTIC_INTEGRATION = "holistic_integration"
    PRACTITIONER_QUALITY = "practitioner_quality"
    WELLNESS_DEPTH = "wellness_depth"
    TRANSFORMATIVE_POTENTIAL = "transformative_potential"
    SETTING_ENVIRONMENT = "setting_environment"

    @classmethod
    def from_string(cls, value: str) -> "DimensionKey":
        """Parse a dimension key from snake_case, camelCase or a legacy alias."""
        if not isinstance(value, str):
            raise MalformedInputError(
                f"Dimension key must be a string, got {type(value).__name__}"
            )
        compact = value.strip().replace("_", "").replace("-", "").lower()
        aliases = {
            # Older tier-3 records
            "wellnessofferingdepth": cls.WELLNESS_DEPTH,
        }
        if compact in aliases:
            return aliases[compact]
        for key in cls:
            if key.value.replace("_", "") == compact:
                return key
        raise MalformedInputError(f"Unknown dimension: {value!r}")


class GoalAchievement(str, Enum):
    """Guest-reported goal achievement for a stay."""
    FULLY = "FULLY"
    PARTIALLY = "PARTIALLY"
    NOT_ACHIEVED = "NOT_ACHIEVED"


class PhysicianEndorsement(str, Enum):
    """Whether the guest's own physician would endorse the program."""
    YES = "YES"
    PROBABLY = "PROBABLY"
    UNSURE = "UNSURE"
    NO = "NO"


class ResultsSustained(str, Enum):
    """How well a guest's results held up at a follow-up check-in."""
    FULLY = "fully"
    MOSTLY = "mostly"
    PARTIALLY = "partially"
    NOT_SUSTAINED = "not_sustained"


class HighlightMode(str, Enum):
    """Which value(s) in a comparison row to highlight."""
    HIGHEST = "highest"
    LOWEST = "lowest"
    NONE = "none"


class ValueKind(str, Enum):
    """Tag for a comparison cell's value type."""
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    ARRAY = "array"
    TEXT = "text"
    EMPTY = "empty"


class Availability(str, Enum):
    """Tri-state availability of an offering at one entity."""
    SIGNATURE = "signature"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


# =============================================================================
# Input Models
# =============================================================================


class Dimension(BaseModel):
    """A named quality axis as configured for one tier."""
    model_config = ConfigDict(frozen=True)

    key: DimensionKey
    label: str
    description: str
    weight: Optional[Weight] = None


class DimensionScore(BaseModel):
    """One entity's score on one dimension."""
    model_config = ConfigDict(frozen=True)

    dimension: DimensionKey
    score: Optional[Score] = None

    @field_validator("dimension", mode="before")
    @classmethod
    def _parse_dimension(cls, v: Any) -> Any:
        if isinstance(v, str) and not isinstance(v, DimensionKey):
            return DimensionKey.from_string(v)
        return v

    @field_validator("score", mode="before")
    @classmethod
    def _nan_is_missing(cls, v: Any) -> Any:
        if isinstance(v, float) and math.isnan(v):
            return None
        return v


class BiomarkerChange(BaseModel):
    """A before/after biomarker measurement."""
    model_config = ConfigDict(frozen=True)

    name: str
    before: Delta
    after: Delta
    unit: Optional[str] = None

    @property
    def change(self) -> float:
        return self.after - self.before


class MeasurableOutcomes(BaseModel):
    """Optional objective and subjective outcome deltas from a review."""
    model_config = ConfigDict(frozen=True)

    biological_age_change: Optional[Delta] = None
    weight_change: Optional[Delta] = None
    energy_level_change: Optional[Delta] = None
    sleep_quality_change: Optional[Delta] = None
    stress_level_change: Optional[Delta] = None
    pain_level_change: Optional[Delta] = None
    biomarkers: list[BiomarkerChange] = Field(default_factory=list)


class FollowUp(BaseModel):
    """A guest's check-in some days after the stay.

    Catalogue exports store the check-in as a JSON string; that form is
    parsed here.
    """
    model_config = ConfigDict(frozen=True)

    results_sustained: ResultsSustained
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _parse_stored(cls, data: Any) -> Any:
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise ValueError(f"Follow-up is not valid JSON: {e}") from e
        if isinstance(data, dict) and "resultsSustained" in data:
            data = dict(data)
            data["results_sustained"] = data.pop("resultsSustained")
        return data


class ReviewRecord(BaseModel):
    """One guest or evaluator review of one entity.

    Any sub-rating may be absent. Absent means "excluded from that average",
    never zero.
    """
    model_config = ConfigDict(frozen=True)

    review_id: Optional[str] = None
    overall_rating: Rating
    service_rating: Optional[Rating] = None
    facilities_rating: Optional[Rating] = None
    dining_rating: Optional[Rating] = None
    value_rating: Optional[Rating] = None
    goal_achievement: Optional[GoalAchievement] = None
    protocol_quality_rating: Optional[Rating] = None
    followup_quality_rating: Optional[Rating] = None
    physician_endorsement: Optional[PhysicianEndorsement] = None
    outcomes: Optional[MeasurableOutcomes] = None
    follow_up_30_days: Optional[FollowUp] = None
    follow_up_90_days: Optional[FollowUp] = None
    follow_up_180_days: Optional[FollowUp] = None
    verified: bool = False
    is_team_review: bool = False


class AttributeOffering(BaseModel):
    """A treatment or service an entity offers. Identity is by key."""
    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1)
    label: str
    signature: bool = False
    category: Optional[str] = None


class OfferingSet(BaseModel):
    """The minimal shape needed to build an availability matrix."""
    model_config = ConfigDict(frozen=True)

    id: str
    offerings: list[AttributeOffering] = Field(default_factory=list)


class Entity(BaseModel):
    """A catalogued, comparable wellness property."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    tier: Tier
    slug: Optional[str] = None
    overall_score: Optional[Score] = None
    dimension_scores: list[DimensionScore] = Field(default_factory=list)
    reviews: list[ReviewRecord] = Field(default_factory=list)
    offerings: list[AttributeOffering] = Field(default_factory=list)

    # Attributes shown in the comparison overview
    location: Optional[str] = None
    price_min: Optional[Price] = None
    price_max: Optional[Price] = None
    currency: str = "USD"
    focus_areas: list[str] = Field(default_factory=list)
    programs_count: Optional[Annotated[int, Field(strict=True, ge=0)]] = None
    verified_excellence: bool = False

    @field_validator("tier", mode="before")
    @classmethod
    def _parse_tier(cls, v: Any) -> Any:
        if isinstance(v, str) and not isinstance(v, Tier):
            return Tier.from_string(v)
        return v

    @model_validator(mode="after")
    def _check_dimensions(self) -> "Entity":
        from .dimensions import get_dimension

        seen = set()
        for ds in self.dimension_scores:
            if ds.dimension in seen:
                raise ValueError(f"Duplicate dimension score: {ds.dimension.value}")
            if get_dimension(self.tier, ds.dimension) is None:
                raise ValueError(
                    f"Dimension {ds.dimension.value} is not scored for tier {self.tier.value}"
                )
            seen.add(ds.dimension)
        return self

    def get_dimension_score(self, key: DimensionKey) -> Optional[float]:
        """Return the score for a dimension, or None if absent or unassessed."""
        for ds in self.dimension_scores:
            if ds.dimension == key:
                return ds.score
        return None


# =============================================================================
# Scoring Output Models
# =============================================================================


class ScoreBand(BaseModel):
    """A qualitative band a numeric score falls into."""
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    min_score: float = Field(ge=0, le=100)
    color: str
    description: str = ""


class DimensionContribution(BaseModel):
    """One dimension's score and share of the overall score."""
    dimension: DimensionKey
    label: str
    description: str
    score: Optional[float] = None
    weight: Optional[float] = None
    contribution: Optional[float] = None
    level: Optional[ScoreBand] = None


class ScoreDelta(BaseModel):
    """Difference between two scores."""
    difference: float
    percent_change: float
    direction: str  # up, down, unchanged


class ScoreBreakdown(BaseModel):
    """Complete scoring result for one entity."""
    entity_id: str
    name: str
    tier: Tier
    overall_score: Optional[float] = None
    computed_score: Optional[int] = None
    band: Optional[ScoreBand] = None
    tier_average: Optional[float] = None
    peer_comparison: Optional[str] = None
    contributions: list[DimensionContribution] = Field(default_factory=list)


# =============================================================================
# Outcome Summary Models
# =============================================================================


class RatingAverages(BaseModel):
    """Per-category guest rating averages. None means no qualifying ratings."""
    service: Optional[float] = None
    facilities: Optional[float] = None
    dining: Optional[float] = None
    value: Optional[float] = None


class OutcomeStats(BaseModel):
    """Distribution of goal achievement among reviews that report it."""
    total_with_outcomes: int
    fully_achieved: int
    partially_achieved: int
    not_achieved: int


class OutcomeQualityAverages(BaseModel):
    """Averages of the outcome-focused review questions."""
    protocol_quality: Optional[float] = None
    followup_quality: Optional[float] = None
    goal_achievement_score: Optional[float] = None
    physician_endorsement_score: Optional[float] = None


class MetricSummary(BaseModel):
    """A flattened average together with how many samples produced it."""
    average: float
    sample_count: int


class MeasurableOutcomeSummary(BaseModel):
    """Averages of reported outcome deltas. Keys with no samples are omitted."""
    deltas: dict[str, MetricSummary] = Field(default_factory=dict)
    biomarkers: dict[str, MetricSummary] = Field(default_factory=dict)


class FollowUpPeriodSummary(BaseModel):
    """Follow-up check-ins for one period after the stay."""
    count: int = 0
    fully_sustained: int = 0


class FollowUpSummary(BaseModel):
    """Follow-up check-ins at 30, 90 and 180 days."""
    thirty_days: FollowUpPeriodSummary = Field(default_factory=FollowUpPeriodSummary)
    ninety_days: FollowUpPeriodSummary = Field(default_factory=FollowUpPeriodSummary)
    one_eighty_days: FollowUpPeriodSummary = Field(default_factory=FollowUpPeriodSummary)


class OutcomeSummary(BaseModel):
    """Null-safe statistical digest of a set of review records."""
    total_reviews: int = 0
    average_rating: Optional[float] = None
    ratings: Optional[RatingAverages] = None
    outcome_stats: Optional[OutcomeStats] = None
    sample_counts: dict[str, int] = Field(default_factory=dict)
    verified_count: int = 0
    team_review_count: int = 0
    goal_achievement_rate: Optional[int] = None
    outcome_quality: Optional[OutcomeQualityAverages] = None
    measurable_outcomes: Optional[MeasurableOutcomeSummary] = None
    follow_up: Optional[FollowUpSummary] = None

    @property
    def has_data(self) -> bool:
        return self.total_reviews > 0


# =============================================================================
# Comparison Output Models
# =============================================================================


class RenderCell(BaseModel):
    """One rendered cell of a comparison row."""
    display: str
    kind: ValueKind
    highlighted: bool = False
    placeholder: bool = False
    padding: bool = False
    items: list[str] = Field(default_factory=list)
    overflow: int = 0


class RenderRow(BaseModel):
    """A labelled comparison row with highlight state per cell."""
    label: str
    tooltip: Optional[str] = None
    highlight: HighlightMode = HighlightMode.NONE
    cells: list[RenderCell] = Field(default_factory=list)
    highlighted_indexes: list[int] = Field(default_factory=list)


class MatrixCell(BaseModel):
    """Availability of one offering at one entity (or a padded slot)."""
    entity_id: Optional[str] = None
    status: Optional[Availability] = None
    padding: bool = False


class MatrixRow(BaseModel):
    """One offering in the union across compared entities."""
    key: str
    label: str
    signature: bool = False
    cells: list[MatrixCell] = Field(default_factory=list)


class AvailabilityMatrix(BaseModel):
    """Offering availability across compared entities."""
    entity_ids: list[str] = Field(default_factory=list)
    rows: list[MatrixRow] = Field(default_factory=list)
    displayed_rows: list[MatrixRow] = Field(default_factory=list)
    total_rows: int = 0
    hidden_count: int = 0
    has_more: bool = False
    show_all: bool = False

    @property
    def is_empty(self) -> bool:
        return self.total_rows == 0


class ComparisonItem(BaseModel):
    """One member of a comparison set."""
    entity_id: str
    slug: Optional[str] = None
    name: Optional[str] = None
    added_at: datetime = Field(default_factory=datetime.now)


class ComparisonSection(BaseModel):
    """A titled group of comparison rows."""
    title: str
    rows: list[RenderRow] = Field(default_factory=list)


class ComparisonReport(BaseModel):
    """The full side-by-side comparison of a set of entities."""
    entity_ids: list[str] = Field(default_factory=list)
    entity_names: list[str] = Field(default_factory=list)
    pad_count: int = 0
    sections: list[ComparisonSection] = Field(default_factory=list)
    treatments: AvailabilityMatrix = Field(default_factory=AvailabilityMatrix)
