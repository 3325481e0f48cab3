"""Tests for loading and validating entity files."""

import json
import logging

import pytest

from destination_scorer.normalizer import (
    EntityNormalizer,
    find_entity,
    load_entities,
    validate_entities_file,
)
from destination_scorer.schema import DimensionKey, MalformedInputError, Tier


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


MINIMAL = {"id": "a", "name": "A", "tier": "TIER_3"}


class TestLoadEntities:
    """Entity files on disk."""

    def test_sample_file(self, samples_path):
        entities = load_entities(samples_path)
        assert [e.id for e in entities] == [
            "alpine-longevity-clinic",
            "lakeside-integrative-retreat",
            "coastal-sanctuary",
        ]
        assert [e.tier for e in entities] == [
            Tier.MEDICAL_LONGEVITY,
            Tier.INTEGRATED_WELLNESS,
            Tier.LUXURY_DESTINATION,
        ]

    def test_dimension_mapping_and_aliases(self, samples_path):
        coastal = load_entities(samples_path)[2]
        assert coastal.get_dimension_score(DimensionKey.WELLNESS_DEPTH) == 85
        assert coastal.get_dimension_score(DimensionKey.VALUE_ALIGNMENT) is None

    def test_plain_list(self, tmp_path):
        path = write_json(tmp_path / "e.json", [MINIMAL])
        assert load_entities(path)[0].tier == Tier.LUXURY_DESTINATION

    def test_camel_case_fields(self, tmp_path):
        record = dict(MINIMAL, priceMin=1200, focusAreas=["Spa"], verifiedExcellence=True)
        entity = load_entities(write_json(tmp_path / "e.json", [record]))[0]
        assert entity.price_min == 1200
        assert entity.focus_areas == ["Spa"]
        assert entity.verified_excellence

    def test_logs_count(self, samples_path, caplog):
        with caplog.at_level(logging.INFO, logger="destination_scorer.normalizer"):
            load_entities(samples_path)
        assert "Loaded 3 entities" in caplog.text

    def test_missing_file(self, tmp_path):
        with pytest.raises(MalformedInputError, match="not found"):
            load_entities(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(MalformedInputError, match="Invalid JSON"):
            load_entities(path)

    @pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN"])
    def test_non_finite_outcome_rejected(self, tmp_path, literal):
        path = tmp_path / "e.json"
        path.write_text(
            '[{"id": "a", "name": "A", "tier": "TIER_1", "reviews": '
            '[{"overall_rating": 5, "outcomes": {"weight_change": %s}}]}]' % literal,
            encoding="utf-8",
        )
        with pytest.raises(MalformedInputError, match="Entity a is invalid"):
            load_entities(path)

    @pytest.mark.parametrize("literal", ["Infinity", "NaN"])
    def test_non_finite_biomarker_rejected(self, tmp_path, literal):
        path = tmp_path / "e.json"
        path.write_text(
            '[{"id": "a", "name": "A", "tier": "TIER_1", "reviews": [{"overall_rating": 5, '
            '"outcomes": {"biomarkers": [{"name": "LDL", "before": %s, "after": 120}]}}]}]'
            % literal,
            encoding="utf-8",
        )
        with pytest.raises(MalformedInputError):
            load_entities(path)

    def test_non_finite_price_rejected(self, tmp_path):
        path = tmp_path / "e.json"
        path.write_text('[{"id": "a", "name": "A", "tier": "TIER_3", "priceMin": Infinity}]',
                        encoding="utf-8")
        with pytest.raises(MalformedInputError):
            load_entities(path)


class TestEntityValidation:
    """Records that do not fit the data model are rejected."""

    @pytest.mark.parametrize("record", [
        dict(MINIMAL, tier="TIER_9"),
        dict(MINIMAL, overall_score="90"),
        dict(MINIMAL, overall_score=101),
        dict(MINIMAL, dimension_scores={"clinicalRigor": 80}),
        dict(MINIMAL, dimension_scores=[
            {"dimension": "experience_quality", "score": 80},
            {"dimension": "experienceQuality", "score": 70},
        ]),
        dict(MINIMAL, reviews=[{"overall_rating": 4, "goal_achievement": "MOSTLY"}]),
        {"name": "no id", "tier": "TIER_1"},
    ])
    def test_rejected(self, record):
        with pytest.raises(MalformedInputError):
            EntityNormalizer().normalize([record])

    def test_duplicate_ids(self):
        with pytest.raises(MalformedInputError, match="Duplicate entity id"):
            EntityNormalizer().normalize([MINIMAL, MINIMAL])

    @pytest.mark.parametrize("document", [{"items": []}, "entities", [42]])
    def test_bad_document(self, document):
        with pytest.raises(MalformedInputError):
            EntityNormalizer().normalize(document)


class TestValidateEntitiesFile:
    """File validation used by the validate command."""

    def test_valid(self, samples_path):
        assert validate_entities_file(samples_path) == (True, [])

    def test_empty(self, tmp_path):
        is_valid, issues = validate_entities_file(write_json(tmp_path / "e.json", []))
        assert not is_valid
        assert issues == ["File contains no entities"]

    def test_invalid(self, tmp_path):
        path = write_json(tmp_path / "e.json", [dict(MINIMAL, tier="gold")])
        is_valid, issues = validate_entities_file(path)
        assert not is_valid
        assert "Entity a is invalid" in issues[0]


class TestFindEntity:
    """Lookup by id or slug."""

    def test_by_id_and_slug(self, samples_path):
        entities = load_entities(samples_path)
        assert find_entity(entities, "coastal-sanctuary").name == "Coastal Sanctuary"

    def test_missing(self, samples_path):
        with pytest.raises(KeyError):
            find_entity(load_entities(samples_path), "nowhere")
