"""CLI for the Destination Scoring Engine.

Provides command-line interface for scoring, review summaries and
side-by-side comparison of catalogued wellness destinations.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .aggregator import aggregate_reviews
from .config import find_config_file, load_config
from .normalizer import find_entity, load_entities, validate_entities_file
from .report import ComparisonReportBuilder
from .schema import Availability, ComparisonReport, OutcomeSummary, ScoreBreakdown
from .scorer import DestinationScorer, format_score

console = Console()
logger = logging.getLogger(__name__)

AVAILABILITY_MARKS = {
    Availability.SIGNATURE: "[yellow]★[/yellow]",
    Availability.AVAILABLE: "[green]✓[/green]",
    Availability.UNAVAILABLE: "[dim]—[/dim]",
}


@click.group()
@click.version_option(version=__version__, prog_name="destination-scorer")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True),
    help="Path to a scorer configuration YAML file"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable debug logging"
)
def main(config_path: Optional[str], verbose: bool):
    """Destination Scoring and Comparison Engine.

    Scores wellness destinations against their tier's quality dimensions,
    summarizes guest reviews and builds side-by-side comparisons.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    path = Path(config_path) if config_path else find_config_file()
    if path is None:
        logger.debug("No configuration file found, using defaults")
        return
    try:
        load_config(path)
    except Exception as e:
        console.print(f"[red]Error loading config {path}: {escape(str(e))}[/red]")
        sys.exit(1)


@main.command("score")
@click.option(
    "--entities", "-e",
    required=True,
    type=click.Path(exists=True),
    help="Path to entities JSON file"
)
@click.option(
    "--id", "entity_id",
    help="Score a single entity (id or slug)"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
def score_cmd(entities: str, entity_id: Optional[str], json_output: bool):
    """Score entities against their tier's dimensions.

    Examples:
        destination-scorer score -e entities.json
        destination-scorer score -e entities.json --id coastal-sanctuary
    """
    try:
        loaded = load_entities(entities)
        scorer = DestinationScorer()

        if entity_id:
            breakdowns = [scorer.score(find_entity(loaded, entity_id))]
        else:
            breakdowns = scorer.score_all(loaded)

        if json_output:
            print(json.dumps([b.model_dump(mode="json") for b in breakdowns], indent=2))
            return

        if entity_id:
            display_breakdown(breakdowns[0])
        else:
            display_ranking(breakdowns)

    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


@main.command("reviews")
@click.option(
    "--entities", "-e",
    required=True,
    type=click.Path(exists=True),
    help="Path to entities JSON file"
)
@click.option(
    "--id", "entity_id",
    required=True,
    help="Entity id or slug"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
def reviews_cmd(entities: str, entity_id: str, json_output: bool):
    """Summarize guest reviews for one entity."""
    try:
        entity = find_entity(load_entities(entities), entity_id)
        summary = aggregate_reviews(entity.reviews)

        if json_output:
            print(summary.model_dump_json(indent=2))
        else:
            display_summary(entity.name, summary)

    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


@main.command("compare")
@click.option(
    "--entities", "-e",
    required=True,
    type=click.Path(exists=True),
    help="Path to entities JSON file"
)
@click.argument("entity_ids", nargs=-1, required=True)
@click.option(
    "--show-all",
    is_flag=True,
    help="Show every treatment instead of the display limit"
)
@click.option(
    "--out", "-o",
    type=click.Path(),
    help="Also write the comparison report as JSON"
)
def compare_cmd(entities: str, entity_ids: tuple, show_all: bool, out: Optional[str]):
    """Compare entities side by side.

    Examples:
        destination-scorer compare -e entities.json alpine-longevity-clinic coastal-sanctuary
    """
    try:
        loaded = load_entities(entities)
        selected = [find_entity(loaded, key) for key in entity_ids]
        report = ComparisonReportBuilder().build(selected, show_all_treatments=show_all)

        display_report(report)
        if out:
            with open(out, "w", encoding="utf-8") as f:
                f.write(report.model_dump_json(indent=2))
            console.print(f"\n[green]Report saved to {out}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


@main.command("validate")
@click.option(
    "--entities", "-e",
    required=True,
    type=click.Path(),
    help="Path to entities JSON file"
)
def validate_cmd(entities: str):
    """Validate an entities file.

    Example:
        destination-scorer validate -e entities.json
    """
    is_valid, issues = validate_entities_file(entities)
    if is_valid:
        console.print(f"[green]✓ Entities valid: {entities}[/green]")
    else:
        console.print(f"[red]✗ Entities invalid: {entities}[/red]")
        for issue in issues:
            console.print(f"  - {escape(issue)}")

    sys.exit(0 if is_valid else 1)


@main.command("init-config")
@click.argument("out", type=click.Path(), default="destination-scorer.yaml")
@click.option(
    "--force", "-f",
    is_flag=True,
    help="Overwrite existing config file"
)
def init_config_cmd(out: str, force: bool):
    """Generate a default scorer configuration file.

    Example:
        destination-scorer init-config my-config.yaml
    """
    from .config import save_default_config

    out_path = Path(out)
    if out_path.exists() and not force:
        console.print(f"[red]Error:[/red] Config file already exists: {out}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        save_default_config(out_path)
        console.print(f"[green]✓[/green] Config file created: {out}")
        console.print("\nThis file configures:")
        console.print("  • score_bands - Thresholds for card, tooltip and interpretation labels")
        console.print("  • peer_comparison - Deltas for above/below tier average")
        console.print("  • tier_averages - Peer average score per tier")
        console.print("  • comparison - Compare limits and placeholder text")
        console.print("  • weights - Per-tier dimension weight overrides and sum validation")
        console.print("\nThe scorer will look for config in this order:")
        console.print("  1. DESTINATION_SCORER_CONFIG environment variable")
        console.print("  2. ./destination-scorer.yaml (current directory)")
        console.print("  3. ~/.config/destination-scorer/config.yaml")
    except Exception as e:
        console.print(f"[red]Error creating config:[/red] {e}")
        sys.exit(1)


# =============================================================================
# Display helpers
# =============================================================================


def display_ranking(breakdowns: list[ScoreBreakdown]):
    """Display a ranked table of scored entities."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Tier")
    table.add_column("Score", justify="right")
    table.add_column("Band")
    table.add_column("vs Tier")

    for i, b in enumerate(breakdowns, 1):
        table.add_row(
            str(i),
            b.entity_id,
            escape(b.name),
            b.tier.label,
            format_score(b.overall_score),
            b.band.label if b.band else "",
            b.peer_comparison or "",
        )

    console.print(table)


def display_breakdown(breakdown: ScoreBreakdown):
    """Display one entity's score and dimension contributions."""
    band = breakdown.band.label if breakdown.band else "Not yet scored"
    console.print(Panel(
        f"[bold]{escape(breakdown.name)}[/bold] ({breakdown.tier.label})\n\n"
        f"Overall: [bold cyan]{format_score(breakdown.overall_score)}[/bold cyan] {band}\n"
        f"Computed: {format_score(breakdown.computed_score)}\n"
        f"Tier average: {format_score(breakdown.tier_average)}"
        + (f" ({breakdown.peer_comparison})" if breakdown.peer_comparison else ""),
        title="Score Breakdown",
    ))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Dimension")
    table.add_column("Score", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Contribution", justify="right")
    table.add_column("Level")

    for c in breakdown.contributions:
        table.add_row(
            c.label,
            format_score(c.score),
            f"{c.weight:.0%}" if c.weight is not None else "",
            f"{c.contribution:.1f}" if c.contribution is not None else "",
            c.level.label if c.level else "",
        )

    console.print(table)


def display_summary(name: str, summary: OutcomeSummary):
    """Display an outcome summary."""
    if not summary.has_data:
        console.print(f"[yellow]No reviews for {escape(name)}[/yellow]")
        return

    lines = [
        f"[bold]{escape(name)}[/bold]\n",
        f"Reviews: {summary.total_reviews} "
        f"({summary.verified_count} verified, {summary.team_review_count} team)",
        f"Average rating: {summary.average_rating}",
    ]
    if summary.goal_achievement_rate is not None:
        lines.append(f"Goal achievement: {summary.goal_achievement_rate}%")
    console.print(Panel("\n".join(lines), title="Review Summary"))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Category")
    table.add_column("Average", justify="right")
    table.add_column("Samples", justify="right")
    for category, value in summary.ratings.model_dump().items():
        table.add_row(
            category.title(),
            format_score(None) if value is None else str(value),
            str(summary.sample_counts.get(category, 0)),
        )
    console.print(table)

    if summary.outcome_stats:
        stats = summary.outcome_stats
        console.print(
            f"\nGoals: [green]{stats.fully_achieved} fully[/green], "
            f"[yellow]{stats.partially_achieved} partially[/yellow], "
            f"[red]{stats.not_achieved} not achieved[/red] "
            f"of {stats.total_with_outcomes}"
        )

    if summary.measurable_outcomes:
        console.print("\n[bold]Measured Outcomes:[/bold]")
        for name_, metric in summary.measurable_outcomes.deltas.items():
            console.print(f"  • {escape(name_)}: {metric.average:+} (n={metric.sample_count})")
        for name_, metric in summary.measurable_outcomes.biomarkers.items():
            console.print(f"  • {escape(name_)}: {metric.average:+} (n={metric.sample_count})")

    if summary.follow_up:
        console.print("\n[bold]Follow-ups:[/bold]")
        for label, period in [
            ("30 days", summary.follow_up.thirty_days),
            ("90 days", summary.follow_up.ninety_days),
            ("180 days", summary.follow_up.one_eighty_days),
        ]:
            if period.count:
                console.print(f"  • {label}: {period.fully_sustained} of {period.count} fully sustained")


def display_report(report: ComparisonReport):
    """Display a comparison report as one table per section."""
    headers = [escape(name) for name in report.entity_names] + [""] * report.pad_count

    for section in report.sections:
        table = Table(title=section.title, show_header=True, header_style="bold")
        table.add_column("", style="bold")
        for header in headers:
            table.add_column(header)

        for row in section.rows:
            cells = []
            for cell in row.cells:
                if cell.highlighted:
                    cells.append(f"[bold green]{escape(cell.display)}[/bold green]")
                elif cell.placeholder:
                    cells.append(f"[dim]{escape(cell.display)}[/dim]")
                else:
                    cells.append(escape(cell.display))
            table.add_row(escape(row.label), *cells)

        console.print(table)

    matrix = report.treatments
    if matrix.is_empty:
        return

    table = Table(title="Treatments", show_header=True, header_style="bold")
    table.add_column("")
    for header in headers:
        table.add_column(header, justify="center")
    for row in matrix.displayed_rows:
        label = escape(row.label)
        if row.signature:
            label += " [yellow]★[/yellow]"
        marks = [
            "" if cell.padding else AVAILABILITY_MARKS[cell.status]
            for cell in row.cells
        ]
        table.add_row(label, *marks)
    console.print(table)

    if matrix.has_more and not matrix.show_all:
        console.print(f"[dim]... and {matrix.hidden_count} more (use --show-all)[/dim]")


if __name__ == "__main__":
    main()
