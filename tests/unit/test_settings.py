"""
Unit tests for detailing settings and zone configuration
"""

import pytest

from beamrebar.core.inputs import ExternalConstraints
from beamrebar.core.sections import SectionType
from beamrebar.design.settings import (
    DiscretizationConfig,
    ScoreWeights,
    Settings,
    parse_diameter_range,
    parse_leg_rules,
)


class TestParseDiameterRange:
    """Test diameter range expressions."""

    def test_inclusive_range(self):
        """Test "lo-hi" selects every inventory diameter inside the range."""
        assert parse_diameter_range("16-22", [12, 16, 18, 20, 22, 25]) == [16, 18, 20, 22]

    def test_reversed_range(self):
        """Test a reversed range is normalized."""
        assert parse_diameter_range("22-16", [12, 16, 18, 20, 22, 25]) == [16, 18, 20, 22]

    def test_list(self):
        """Test comma separated lists, with optional D prefix."""
        assert parse_diameter_range("16, D20,25", [16, 18, 20, 22, 25]) == [16, 20, 25]

    def test_single_value(self):
        """Test a single diameter."""
        assert parse_diameter_range("20", [16, 20, 25]) == [20]

    def test_empty_text_returns_inventory(self):
        """Test an empty expression keeps the whole inventory."""
        assert parse_diameter_range("", [20, 16]) == [16, 20]

    def test_no_match(self):
        """Test a range outside the inventory selects nothing."""
        assert parse_diameter_range("40-50", [16, 20, 25]) == []


class TestParseLegRules:
    """Test stirrup leg rule parsing."""

    def test_rules_sorted(self):
        """Test rules are parsed into sorted (width, legs) pairs."""
        assert parse_leg_rules("400-3 250-2 600-4") == [(250.0, 2), (400.0, 3), (600.0, 4)]

    def test_malformed_tokens_skipped(self):
        """Test malformed tokens are ignored."""
        assert parse_leg_rules("250-2 abc 400-x 1-2-3") == [(250.0, 2)]


class TestSettings:
    """Test Settings validation and derived values."""

    def test_defaults(self):
        """Test default values."""
        s = Settings()
        assert s.min_clear_spacing == 30.0
        assert s.max_clear_spacing == 200.0
        assert s.max_layers == 2
        assert s.safety_factor == 1.0
        assert s.failed_section_tolerance == pytest.approx(0.2)
        assert isinstance(s.score_weights, ScoreWeights)

    def test_diameter_lists_sorted_and_unique(self):
        """Test inventory lists are normalized."""
        s = Settings(available_diameters=[25, 16, 20, 16])
        assert s.available_diameters == [16, 20, 25]

    def test_non_positive_diameter_rejected(self):
        """Test non-positive diameters raise."""
        with pytest.raises(ValueError, match="must be positive"):
            Settings(available_diameters=[0, 16])

    def test_negative_cover_rejected(self):
        """Test cover must be positive."""
        with pytest.raises(ValueError):
            Settings(cover_top=-5.0)

    def test_max_spacing_below_min_rejected(self):
        """Test spacing bounds consistency."""
        with pytest.raises(ValueError, match="max_clear_spacing"):
            Settings(min_clear_spacing=50.0, max_clear_spacing=40.0)

    def test_bars_per_layer_bounds(self):
        """Test max_bars_per_layer >= min_bars_per_layer."""
        with pytest.raises(ValueError, match="max_bars_per_layer"):
            Settings(min_bars_per_layer=4, max_bars_per_layer=3)

    def test_torsion_ratio_range(self):
        """Test torsion ratios outside [0, 1] raise."""
        with pytest.raises(ValueError):
            Settings(torsion_ratio_top=1.5)

    def test_area_tolerance(self):
        """Test tolerance follows the safety factor."""
        assert Settings(safety_factor=1.0).area_tolerance == 0.0
        assert Settings(safety_factor=1.1).area_tolerance == 0.0
        assert Settings(safety_factor=0.95).area_tolerance == pytest.approx(0.05)

    def test_constructability_weight(self):
        """Test weights sum to one."""
        s = Settings(efficiency_weight=0.7)
        assert s.constructability_weight == pytest.approx(0.3)

    def test_required_clear_spacing(self):
        """Test spacing governed by minimum, bar diameter and aggregate size."""
        s = Settings()
        assert s.required_clear_spacing(20) == pytest.approx(30.0)
        assert s.required_clear_spacing(32) == pytest.approx(32.0)
        assert Settings(aggregate_size=30).required_clear_spacing(20) == pytest.approx(39.9)
        assert Settings(use_bar_diameter_for_spacing=False).required_clear_spacing(32) == pytest.approx(30.0)

    def test_lap_length(self):
        """Test lap splice length."""
        assert Settings().lap_length(20) == pytest.approx(800.0)

    def test_from_mapping(self):
        """Test loading from a dictionary."""
        s = Settings.from_mapping({"main_bar_range": "18-22", "max_layers": 3})
        assert s.max_layers == 3
        assert s.resolve_main_diameters() == [18, 20, 22]

    def test_from_json(self):
        """Test loading from JSON text."""
        s = Settings.from_json('{"safety_factor": 1.05, "score_weights": {"splice": 1.0}}')
        assert s.safety_factor == 1.05
        assert s.score_weights.splice == 1.0


class TestResolveDiameters:
    """Test diameter resolution against constraints."""

    def test_main_range(self):
        """Test the main bar range on the default inventory."""
        assert Settings().resolve_main_diameters() == [16, 18, 20, 22, 25]

    def test_even_preference(self):
        """Test odd diameters dropped when even ones exist."""
        s = Settings(available_diameters=[16, 18, 20, 22, 25], prefer_even_diameter=True)
        assert s.resolve_main_diameters() == [16, 18, 20, 22]

    def test_allowed_override(self):
        """Test allowed diameters restrict the range."""
        c = ExternalConstraints(allowed_diameters=[18, 22, 28])
        assert Settings().resolve_main_diameters(c) == [18, 22]

    def test_allowed_outside_range_falls_back_to_inventory(self):
        """Test allowed diameters outside the range are taken from the inventory."""
        c = ExternalConstraints(allowed_diameters=[28, 32])
        assert Settings().resolve_main_diameters(c) == [28, 32]

    def test_forced_diameter_added(self):
        """Test a forced diameter outside the range is still available."""
        c = ExternalConstraints(forced_diameter=28)
        assert 28 in Settings().resolve_main_diameters(c)

    def test_preferred_diameter(self):
        """Test constraint preference wins over settings preference."""
        s = Settings(preferred_diameter=20)
        assert s.resolve_preferred_diameter() == 20
        assert s.resolve_preferred_diameter(ExternalConstraints(preferred_diameter=18)) == 18

    def test_secondary_ranges(self):
        """Test stirrup and side bar ranges."""
        s = Settings()
        assert s.stirrup_diameters() == [8, 10]
        assert s.side_bar_diameters() == [12, 14]


class TestDiscretizationConfig:
    """Test zone configuration."""

    def test_default(self):
        """Test three-zone default."""
        config = DiscretizationConfig.default()
        assert config.zone_count == 3
        assert config.zone_names() == ["Left", "Mid", "Right"]
        assert config.section_types[1] == SectionType.MID_SPAN

    def test_detailed(self):
        """Test five-zone configuration."""
        config = DiscretizationConfig.detailed()
        assert config.zone_names() == ["Left", "QuarterLeft", "Mid", "QuarterRight", "Right"]
        assert config.section_types[1] == SectionType.QUARTER_SPAN

    def test_generic_names(self):
        """Test other zone counts use indexed names."""
        config = DiscretizationConfig(
            positions=[0.0, 0.5],
            section_types=[SectionType.SUPPORT, SectionType.MID_SPAN]
        )
        assert config.zone_names() == ["Z0", "Z1"]

    def test_unsorted_positions_rejected(self):
        """Test positions must be ascending."""
        with pytest.raises(ValueError, match="ascending"):
            DiscretizationConfig(
                positions=[0.5, 0.0],
                section_types=[SectionType.MID_SPAN, SectionType.SUPPORT]
            )

    def test_positions_outside_span_rejected(self):
        """Test positions must lie in [0, 1]."""
        with pytest.raises(ValueError, match=r"\[0, 1\]"):
            DiscretizationConfig(positions=[0.0, 1.5], section_types=[SectionType.SUPPORT] * 2)

    def test_length_mismatch_rejected(self):
        """Test positions and types must pair up."""
        with pytest.raises(ValueError, match="same length"):
            DiscretizationConfig(positions=[0.0, 1.0], section_types=[SectionType.SUPPORT])
