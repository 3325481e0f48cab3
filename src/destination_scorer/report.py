"""Comparison report - the full side-by-side view of a comparison set.

Assembles overview, score and review rows for up to max_items entities,
plus the treatment availability matrix, all padded to a fixed width.
"""

from typing import Optional

from .aggregator import OutcomeAggregator
from .comparison import build_attribute_availability_matrix, build_comparison_row
from .config import ScorerConfig, get_config
from .dimensions import dimension_keys_for_tiers, dimension_label, get_dimension
from .schema import (
    ComparisonReport,
    ComparisonSection,
    Entity,
    HighlightMode,
    MalformedInputError,
    RenderRow,
)
from .scorer import DestinationScorer


class ComparisonReportBuilder:
    """Builds a ComparisonReport from already-validated entities.

    Principles:
    - Column order follows input order
    - Missing data renders as a placeholder and never wins a highlight
    - Rows are padded to the configured maximum so tables keep their width
    """

    def __init__(self, config: Optional[ScorerConfig] = None):
        """Initialize builder with configuration."""
        self.config = config or get_config()
        self.max_items = self.config.comparison.max_items
        self.scorer = DestinationScorer(self.config)
        self.aggregator = OutcomeAggregator()

    def build(self, entities: list[Entity], show_all_treatments: bool = False) -> ComparisonReport:
        """Build the comparison report.

        Args:
            entities: Entities to compare, in column order.
            show_all_treatments: Show every treatment row instead of the
                configured display limit.

        Returns:
            ComparisonReport with overview, scores and reviews sections.

        Raises:
            MalformedInputError: If more than max_items entities are given.
        """
        if len(entities) > self.max_items:
            raise MalformedInputError(
                f"At most {self.max_items} entities can be compared, got {len(entities)}"
            )

        pad = self.max_items - len(entities)
        return ComparisonReport(
            entity_ids=[e.id for e in entities],
            entity_names=[e.name for e in entities],
            pad_count=pad,
            sections=[
                ComparisonSection(title="Overview", rows=self._overview_rows(entities, pad)),
                ComparisonSection(title="Scores", rows=self._score_rows(entities, pad)),
                ComparisonSection(title="Reviews", rows=self._review_rows(entities, pad)),
            ],
            treatments=build_attribute_availability_matrix(
                entities,
                show_all=show_all_treatments,
                pad_count=pad,
                config=self.config,
            ),
        )

    def _row(self, label: str, values: list, highlight=HighlightMode.NONE, pad: int = 0,
             tooltip: Optional[str] = None) -> RenderRow:
        return build_comparison_row(
            label, values, highlight, pad_count=pad, tooltip=tooltip, config=self.config
        )

    def _overview_rows(self, entities: list[Entity], pad: int) -> list[RenderRow]:
        return [
            self._row("Property Tier", [e.tier.label for e in entities], pad=pad),
            self._row("Location", [e.location for e in entities], pad=pad),
            self._row(
                "Price From",
                [e.price_min for e in entities],
                HighlightMode.LOWEST,
                pad,
                tooltip="Lowest published price, in each property's currency",
            ),
            self._row("Focus Areas", [e.focus_areas for e in entities], pad=pad),
            self._row("Programs Available", [e.programs_count for e in entities],
                      HighlightMode.HIGHEST, pad),
            self._row("Verified Excellence", [e.verified_excellence for e in entities], pad=pad),
        ]

    def _score_rows(self, entities: list[Entity], pad: int) -> list[RenderRow]:
        breakdowns = [self.scorer.score(e) for e in entities]
        rows = [
            self._row("Overall Score", [b.overall_score for b in breakdowns],
                      HighlightMode.HIGHEST, pad),
            self._row(
                "Score Band",
                [b.band.label if b.band else None for b in breakdowns],
                pad=pad,
            ),
        ]

        tiers = [e.tier for e in entities]
        for key in dimension_keys_for_tiers(tiers):
            values = []
            for entity in entities:
                # Dimensions outside an entity's tier are missing, not zero
                if get_dimension(entity.tier, key) is None:
                    values.append(None)
                else:
                    values.append(entity.get_dimension_score(key))
            described = next(
                (get_dimension(t, key) for t in tiers if get_dimension(t, key) is not None),
                None,
            )
            rows.append(self._row(
                dimension_label(key, tiers),
                values,
                HighlightMode.HIGHEST,
                pad,
                tooltip=described.description if described else None,
            ))
        return rows

    def _review_rows(self, entities: list[Entity], pad: int) -> list[RenderRow]:
        summaries = [self.aggregator.aggregate(e.reviews) for e in entities]
        return [
            self._row("Review Count", [s.total_reviews for s in summaries],
                      HighlightMode.HIGHEST, pad),
            self._row("Average Rating", [s.average_rating for s in summaries],
                      HighlightMode.HIGHEST, pad),
            self._row(
                "Goal Achievement Rate",
                [s.goal_achievement_rate for s in summaries],
                HighlightMode.HIGHEST,
                pad,
                tooltip="Share of guests reporting their goals achieved; partial counts as half",
            ),
        ]

