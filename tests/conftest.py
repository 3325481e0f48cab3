"""Shared fixtures and factories for the destination scorer tests."""

from pathlib import Path

import pytest

from destination_scorer.config import reset_config
from destination_scorer.schema import AttributeOffering, Entity, ReviewRecord, Tier


SAMPLES_PATH = Path(__file__).parent.parent / "samples" / "entities.json"


@pytest.fixture(autouse=True)
def default_config(monkeypatch, tmp_path):
    """Every test starts from the default configuration.

    Runs from an empty directory so no stray config file is picked up.
    """
    monkeypatch.delenv("DESTINATION_SCORER_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def samples_path() -> Path:
    return SAMPLES_PATH


def make_review(overall_rating=4.0, **kwargs) -> ReviewRecord:
    """Build a review with only the given fields set."""
    return ReviewRecord(overall_rating=overall_rating, **kwargs)


def make_offering(key: str, label: str = None, signature: bool = False) -> AttributeOffering:
    return AttributeOffering(key=key, label=label or key.replace("-", " ").title(), signature=signature)


def make_entity(
    entity_id: str = "e1",
    tier: Tier = Tier.MEDICAL_LONGEVITY,
    scores: dict = None,
    **kwargs,
) -> Entity:
    """Build an entity; scores maps dimension key -> score."""
    dimension_scores = [
        {"dimension": key, "score": value} for key, value in (scores or {}).items()
    ]
    return Entity(
        id=entity_id,
        name=kwargs.pop("name", entity_id.replace("-", " ").title()),
        tier=tier,
        dimension_scores=dimension_scores,
        **kwargs,
    )
