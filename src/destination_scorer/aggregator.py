"""Outcome Aggregator - null-safe summaries of guest review records.

Reduces a list of reviews to counts, rounded averages and outcome
distributions. Each sub-average has its own denominator: a review missing
a rating is excluded from that average, never counted as zero.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Optional

from pydantic import ValidationError

from .schema import (
    FollowUpPeriodSummary,
    FollowUpSummary,
    GoalAchievement,
    MalformedInputError,
    MeasurableOutcomeSummary,
    MetricSummary,
    OutcomeQualityAverages,
    OutcomeStats,
    OutcomeSummary,
    PhysicianEndorsement,
    RatingAverages,
    ResultsSustained,
    ReviewRecord,
)
from .stats import MetricAggregate, flatten, mean_of, round_to_int


# Rating category -> ReviewRecord attribute
RATING_FIELDS = {
    "service": "service_rating",
    "facilities": "facilities_rating",
    "dining": "dining_rating",
    "value": "value_rating",
}

# Outcome delta name -> MeasurableOutcomes attribute
OUTCOME_DELTA_FIELDS = {
    "biological_age": "biological_age_change",
    "weight": "weight_change",
    "energy": "energy_level_change",
    "sleep": "sleep_quality_change",
    "stress": "stress_level_change",
    "pain": "pain_level_change",
}

# Follow-up period -> ReviewRecord attribute
FOLLOW_UP_FIELDS = {
    "thirty_days": "follow_up_30_days",
    "ninety_days": "follow_up_90_days",
    "one_eighty_days": "follow_up_180_days",
}

GOAL_ACHIEVEMENT_POINTS = {
    GoalAchievement.FULLY: 5,
    GoalAchievement.PARTIALLY: 3,
    GoalAchievement.NOT_ACHIEVED: 1,
}

PHYSICIAN_ENDORSEMENT_POINTS = {
    PhysicianEndorsement.YES: 5,
    PhysicianEndorsement.PROBABLY: 4,
    PhysicianEndorsement.UNSURE: 2,
    PhysicianEndorsement.NO: 1,
}


def _summary(aggregate: Optional[MetricAggregate]) -> Optional[MetricSummary]:
    if aggregate is None:
        return None
    return MetricSummary(average=flatten(aggregate), sample_count=aggregate.sample_count)


class OutcomeAggregator:
    """Aggregates review records into an OutcomeSummary.

    Principles:
    - Empty input yields an explicit "no data" summary
    - Absent is never zero
    - Same records in any order give the same summary
    - Inputs are never mutated
    """

    def aggregate(self, records: Iterable[Any]) -> OutcomeSummary:
        """Aggregate review records.

        Args:
            records: ReviewRecord instances or mappings with the same fields.

        Returns:
            OutcomeSummary. With no records, counts are 0 and every average,
            the ratings block and the outcome stats are None.

        Raises:
            MalformedInputError: If records is not a list of reviews.
        """
        reviews = self._coerce(records)
        if not reviews:
            return OutcomeSummary()

        overall = mean_of(r.overall_rating for r in reviews)
        rating_aggregates = {
            name: mean_of(getattr(r, attr) for r in reviews)
            for name, attr in RATING_FIELDS.items()
        }

        return OutcomeSummary(
            total_reviews=len(reviews),
            average_rating=flatten(overall),
            ratings=RatingAverages(**{
                name: flatten(agg) for name, agg in rating_aggregates.items()
            }),
            outcome_stats=self._outcome_stats(reviews),
            sample_counts={
                name: agg.sample_count if agg is not None else 0
                for name, agg in rating_aggregates.items()
            },
            verified_count=sum(1 for r in reviews if r.verified),
            team_review_count=sum(1 for r in reviews if r.is_team_review),
            goal_achievement_rate=self._goal_achievement_rate(reviews),
            outcome_quality=self._outcome_quality(reviews),
            measurable_outcomes=self._measurable_outcomes(reviews),
            follow_up=self._follow_up(reviews),
        )

    def _coerce(self, records: Iterable[Any]) -> list[ReviewRecord]:
        """Validate input shape at the boundary."""
        if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
            raise MalformedInputError(
                f"Expected a list of review records, got {type(records).__name__}"
            )

        reviews = []
        for i, record in enumerate(records):
            if isinstance(record, ReviewRecord):
                reviews.append(record)
            elif isinstance(record, Mapping):
                try:
                    reviews.append(ReviewRecord.model_validate(record))
                except ValidationError as e:
                    raise MalformedInputError(f"Review {i} is invalid: {e}") from e
            else:
                raise MalformedInputError(
                    f"Review {i} must be a ReviewRecord or mapping, got {type(record).__name__}"
                )
        return reviews

    def _outcome_stats(self, reviews: list[ReviewRecord]) -> Optional[OutcomeStats]:
        """Goal achievement distribution among reviews that report it."""
        labelled = [r.goal_achievement for r in reviews if r.goal_achievement is not None]
        if not labelled:
            return None
        return OutcomeStats(
            total_with_outcomes=len(labelled),
            fully_achieved=labelled.count(GoalAchievement.FULLY),
            partially_achieved=labelled.count(GoalAchievement.PARTIALLY),
            not_achieved=labelled.count(GoalAchievement.NOT_ACHIEVED),
        )

    def _goal_achievement_rate(self, reviews: list[ReviewRecord]) -> Optional[int]:
        """Percent of goals achieved, counting partial achievement as half."""
        stats = self._outcome_stats(reviews)
        if stats is None:
            return None
        achieved = stats.fully_achieved + stats.partially_achieved * 0.5
        return round_to_int(achieved / stats.total_with_outcomes * 100)

    def _outcome_quality(self, reviews: list[ReviewRecord]) -> Optional[OutcomeQualityAverages]:
        protocol = mean_of(r.protocol_quality_rating for r in reviews)
        followup = mean_of(r.followup_quality_rating for r in reviews)
        goal = mean_of(
            GOAL_ACHIEVEMENT_POINTS[r.goal_achievement]
            for r in reviews if r.goal_achievement is not None
        )
        physician = mean_of(
            PHYSICIAN_ENDORSEMENT_POINTS[r.physician_endorsement]
            for r in reviews if r.physician_endorsement is not None
        )

        if all(agg is None for agg in (protocol, followup, goal, physician)):
            return None
        return OutcomeQualityAverages(
            protocol_quality=flatten(protocol),
            followup_quality=flatten(followup),
            goal_achievement_score=flatten(goal),
            physician_endorsement_score=flatten(physician),
        )

    def _measurable_outcomes(
        self, reviews: list[ReviewRecord]
    ) -> Optional[MeasurableOutcomeSummary]:
        outcomes = [r.outcomes for r in reviews if r.outcomes is not None]
        if not outcomes:
            return None

        deltas = {}
        for name, attr in OUTCOME_DELTA_FIELDS.items():
            summary = _summary(mean_of(getattr(o, attr) for o in outcomes))
            if summary is not None:
                deltas[name] = summary

        changes: dict[str, list[float]] = {}
        for o in outcomes:
            for biomarker in o.biomarkers:
                changes.setdefault(biomarker.name, []).append(biomarker.change)
        biomarkers = {
            name: _summary(mean_of(changes[name]))
            for name in sorted(changes)
        }

        if not deltas and not biomarkers:
            return None
        return MeasurableOutcomeSummary(deltas=deltas, biomarkers=biomarkers)

    def _follow_up(self, reviews: list[ReviewRecord]) -> Optional[FollowUpSummary]:
        """Check-in counts per period and how many fully sustained their results."""
        periods = {}
        for period, attr in FOLLOW_UP_FIELDS.items():
            follow_ups = [getattr(r, attr) for r in reviews if getattr(r, attr) is not None]
            periods[period] = FollowUpPeriodSummary(
                count=len(follow_ups),
                fully_sustained=sum(
                    1 for f in follow_ups if f.results_sustained == ResultsSustained.FULLY
                ),
            )

        if all(p.count == 0 for p in periods.values()):
            return None
        return FollowUpSummary(**periods)


def aggregate_reviews(records: Iterable[Any]) -> OutcomeSummary:
    """Aggregate review records into a null-safe OutcomeSummary."""
    return OutcomeAggregator().aggregate(records)
