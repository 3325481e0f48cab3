"""Tests for the destination-scorer CLI."""

import json

import pytest
import yaml
from click.testing import CliRunner
from rich.console import Console

from destination_scorer import cli
from destination_scorer.cli import main as scorer_cli


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Render tables without wrapping so assertions see whole cells."""
    monkeypatch.setattr(cli, "console", Console(width=200))


# === score ===


class TestScoreCommand:
    """Tests for the 'score' command."""

    def test_help(self):
        result = CliRunner().invoke(scorer_cli, ["score", "--help"])
        assert result.exit_code == 0
        assert "Score entities against their tier's dimensions" in result.output

    def test_ranking_table(self, samples_path):
        result = CliRunner().invoke(scorer_cli, ["score", "-e", str(samples_path)])
        assert result.exit_code == 0
        assert "Alpine Longevity Clinic" in result.output
        assert "Distinguished" in result.output

    def test_json_output_ranked(self, samples_path):
        result = CliRunner().invoke(scorer_cli, ["score", "-e", str(samples_path), "-j"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [b["entity_id"] for b in data] == [
            "alpine-longevity-clinic",
            "lakeside-integrative-retreat",
            "coastal-sanctuary",
        ]
        assert data[0]["overall_score"] == 88

    def test_single_entity(self, samples_path):
        result = CliRunner().invoke(scorer_cli, [
            "score", "-e", str(samples_path), "--id", "coastal-sanctuary",
        ])
        assert result.exit_code == 0
        assert "Score Breakdown" in result.output
        assert "Wellness Offering Depth" in result.output

    def test_unknown_entity(self, samples_path):
        result = CliRunner().invoke(scorer_cli, ["score", "-e", str(samples_path), "--id", "x"])
        assert result.exit_code == 1
        assert "Error" in result.output


# === reviews ===


class TestReviewsCommand:
    """Tests for the 'reviews' command."""

    def test_json_summary(self, samples_path):
        result = CliRunner().invoke(scorer_cli, [
            "reviews", "-e", str(samples_path), "--id", "alpine-longevity-clinic", "-j",
        ])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["total_reviews"] == 3
        assert data["average_rating"] == 4.5
        assert data["goal_achievement_rate"] == 75
        assert data["follow_up"]["thirty_days"] == {"count": 2, "fully_sustained": 2}
        assert data["follow_up"]["ninety_days"] == {"count": 1, "fully_sustained": 0}

    def test_summary_shows_follow_ups(self, samples_path):
        result = CliRunner().invoke(scorer_cli, [
            "reviews", "-e", str(samples_path), "--id", "alpine-longevity-clinic",
        ])
        assert result.exit_code == 0
        assert "30 days: 2 of 2 fully sustained" in result.output
        assert "180 days" not in result.output

    def test_no_reviews(self, samples_path):
        result = CliRunner().invoke(scorer_cli, [
            "reviews", "-e", str(samples_path), "--id", "coastal-sanctuary",
        ])
        assert result.exit_code == 0
        assert "No reviews" in result.output


# === compare ===


class TestCompareCommand:
    """Tests for the 'compare' command."""

    def test_tables(self, samples_path):
        result = CliRunner().invoke(scorer_cli, [
            "compare", "-e", str(samples_path),
            "alpine-longevity-clinic", "coastal-sanctuary",
        ])
        assert result.exit_code == 0
        assert "Overview" in result.output
        assert "Treatments" in result.output

    def test_writes_report(self, samples_path, tmp_path):
        out = tmp_path / "report.json"
        result = CliRunner().invoke(scorer_cli, [
            "compare", "-e", str(samples_path), "--out", str(out),
            "alpine-longevity-clinic", "lakeside-integrative-retreat",
        ])
        assert result.exit_code == 0
        report = json.loads(out.read_text(encoding="utf-8"))
        assert report["pad_count"] == 2
        assert [s["title"] for s in report["sections"]] == ["Overview", "Scores", "Reviews"]

    def test_bracketed_text_printed_literally(self, tmp_path):
        path = tmp_path / "entities.json"
        path.write_text(json.dumps([
            {
                "id": "chalet", "name": "Chalet [/] Nord", "tier": "TIER_3",
                "location": "[/bold] Zermatt",
                "focusAreas": ["[red]Detox"],
                "offerings": [{"key": "spa", "label": "[spa] Circuit", "signature": True}],
                "reviews": [{"overall_rating": 4}],
            },
            {"id": "lodge", "name": "Lodge", "tier": "TIER_3"},
        ]), encoding="utf-8")

        result = CliRunner().invoke(scorer_cli, ["compare", "-e", str(path), "chalet", "lodge"])
        assert result.exit_code == 0, result.output
        assert "Chalet [/] Nord" in result.output
        assert "[/bold] Zermatt" in result.output
        assert "[red]Detox" in result.output
        assert "[spa] Circuit" in result.output

        result = CliRunner().invoke(scorer_cli, ["reviews", "-e", str(path), "--id", "chalet"])
        assert result.exit_code == 0, result.output
        assert "Chalet [/] Nord" in result.output

    def test_too_many(self, samples_path, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text(yaml.safe_dump({"comparison": {"max_items": 2}}), encoding="utf-8")
        result = CliRunner().invoke(scorer_cli, [
            "--config", str(config),
            "compare", "-e", str(samples_path),
            "alpine-longevity-clinic", "lakeside-integrative-retreat", "coastal-sanctuary",
        ])
        assert result.exit_code == 1
        assert "At most 2" in result.output


# === validate ===


class TestValidateCommand:
    """Tests for the 'validate' command."""

    def test_valid(self, samples_path):
        result = CliRunner().invoke(scorer_cli, ["validate", "-e", str(samples_path)])
        assert result.exit_code == 0
        assert "✓ Entities valid" in result.output

    def test_invalid(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"id": "a", "name": "A", "tier": "gold"}]), encoding="utf-8")
        result = CliRunner().invoke(scorer_cli, ["validate", "-e", str(path)])
        assert result.exit_code == 1
        assert "✗ Entities invalid" in result.output


# === init-config ===


class TestInitConfigCommand:
    """Tests for the 'init-config' command."""

    def test_writes_file(self, tmp_path):
        out = tmp_path / "scorer.yaml"
        result = CliRunner().invoke(scorer_cli, ["init-config", str(out)])
        assert result.exit_code == 0
        assert out.exists()
        assert "score_bands" in yaml.safe_load(out.read_text(encoding="utf-8"))

    def test_refuses_overwrite(self, tmp_path):
        out = tmp_path / "scorer.yaml"
        out.write_text("{}", encoding="utf-8")
        result = CliRunner().invoke(scorer_cli, ["init-config", str(out)])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_force(self, tmp_path):
        out = tmp_path / "scorer.yaml"
        out.write_text("{}", encoding="utf-8")
        result = CliRunner().invoke(scorer_cli, ["init-config", str(out), "--force"])
        assert result.exit_code == 0
