"""Tests for the per-tier dimension tables."""

import logging

import pytest

from destination_scorer.dimensions import (
    ConfigError,
    check_weight_totals,
    dimension_keys_for_tiers,
    dimension_label,
    get_dimension,
    get_dimensions_for_tier,
    tier_weights,
    weight_total,
)
from destination_scorer.schema import DimensionKey, MalformedInputError, Tier


class TestTierTables:
    """Each tier has its own ordered, weighted dimension set."""

    def test_every_tier_has_five_dimensions(self):
        for tier in Tier:
            assert len(get_dimensions_for_tier(tier)) == 5

    def test_medical_longevity_order_and_weights(self):
        dims = get_dimensions_for_tier(Tier.MEDICAL_LONGEVITY)
        assert [d.key for d in dims] == [
            DimensionKey.CLINICAL_RIGOR,
            DimensionKey.OUTCOME_EVIDENCE,
            DimensionKey.PROGRAM_DEPTH,
            DimensionKey.EXPERIENCE_QUALITY,
            DimensionKey.VALUE_ALIGNMENT,
        ]
        assert [d.weight for d in dims] == [0.30, 0.25, 0.20, 0.15, 0.10]

    def test_default_weights_sum_to_one(self):
        for tier in Tier:
            assert weight_total(tier) == pytest.approx(1.0)

    def test_shared_key_has_tier_specific_description(self):
        t1 = get_dimension(Tier.MEDICAL_LONGEVITY, DimensionKey.EXPERIENCE_QUALITY)
        t3 = get_dimension(Tier.LUXURY_DESTINATION, DimensionKey.EXPERIENCE_QUALITY)
        assert t1.weight == 0.15
        assert t3.weight == 0.35
        assert "ambiance" in t3.description
        assert "ambiance" not in t1.description

    def test_get_dimension_outside_tier(self):
        assert get_dimension(Tier.LUXURY_DESTINATION, DimensionKey.CLINICAL_RIGOR) is None


class TestKeyUnion:
    """Mixed-tier comparisons need an ordered union of keys."""

    def test_union_keeps_first_appearance_order(self):
        keys = dimension_keys_for_tiers([Tier.LUXURY_DESTINATION, Tier.MEDICAL_LONGEVITY])
        assert keys[:5] == [d.key for d in get_dimensions_for_tier(Tier.LUXURY_DESTINATION)]
        assert keys[5:] == [
            DimensionKey.CLINICAL_RIGOR,
            DimensionKey.OUTCOME_EVIDENCE,
            DimensionKey.PROGRAM_DEPTH,
        ]

    def test_union_of_same_tier_has_no_duplicates(self):
        keys = dimension_keys_for_tiers([Tier.INTEGRATED_WELLNESS] * 3)
        assert len(keys) == len(set(keys)) == 5

    def test_label_prefers_given_tiers(self):
        assert dimension_label(DimensionKey.WELLNESS_DEPTH) == "Wellness Offering Depth"
        assert dimension_label(DimensionKey.SETTING_ENVIRONMENT, [Tier.LUXURY_DESTINATION]) == (
            "Setting & Environment"
        )


class TestDimensionKeyParsing:
    """Keys arrive in several spellings from catalogue exports."""

    @pytest.mark.parametrize("raw", ["clinical_rigor", "clinicalRigor", "clinical-rigor"])
    def test_spellings(self, raw):
        assert DimensionKey.from_string(raw) == DimensionKey.CLINICAL_RIGOR

    def test_legacy_alias(self):
        assert DimensionKey.from_string("wellnessOfferingDepth") == DimensionKey.WELLNESS_DEPTH

    def test_unknown_key(self):
        with pytest.raises(MalformedInputError):
            DimensionKey.from_string("vibes")


class TestWeightChecks:
    """Unnormalized weights warn by default and fail in strict mode."""

    SKEWED = {Tier.LUXURY_DESTINATION: {DimensionKey.EXPERIENCE_QUALITY: 0.65}}

    def test_defaults_have_no_issues(self):
        assert check_weight_totals() == []

    def test_overrides_replace_table_weights(self):
        weights = tier_weights(Tier.LUXURY_DESTINATION, self.SKEWED)
        assert weights[DimensionKey.EXPERIENCE_QUALITY] == 0.65
        assert weights[DimensionKey.VALUE_ALIGNMENT] == 0.10
        assert weight_total(Tier.LUXURY_DESTINATION, self.SKEWED) == pytest.approx(1.30)
        assert weight_total(Tier.LUXURY_DESTINATION) == pytest.approx(1.0)

    def test_unnormalized_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="destination_scorer.dimensions"):
            issues = check_weight_totals(overrides=self.SKEWED)
        assert len(issues) == 1
        assert "luxury_destination" in issues[0]
        assert "sum to 1.30" in caplog.text

    def test_within_tolerance(self):
        overrides = {Tier.LUXURY_DESTINATION: {DimensionKey.EXPERIENCE_QUALITY: 0.355}}
        assert check_weight_totals(tolerance=0.01, overrides=overrides) == []

    def test_strict_raises(self):
        with pytest.raises(ConfigError, match="luxury_destination"):
            check_weight_totals(strict=True, overrides=self.SKEWED)
