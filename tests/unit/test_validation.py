"""
Unit tests for fail-fast input validation
"""

from beamrebar.core.inputs import BeamGeometry, SpanForceResult, SpanGeometry, SupportInfo
from beamrebar.design.settings import Settings
from beamrebar.design.validation import (
    ValidationResult,
    cross_validate,
    validate_calculator_input,
    validate_forces,
    validate_geometry,
    validate_settings,
)

from conftest import make_beam, uniform_forces


class TestValidateSettings:
    """Test settings checks."""

    def test_defaults_valid(self):
        """Test default settings pass without warnings."""
        result = validate_settings(Settings())
        assert result.is_valid
        assert result.warnings == []

    def test_empty_inventory(self):
        """Test an empty inventory is invalid input."""
        result = validate_settings(Settings(available_diameters=[]))
        assert not result.is_valid
        assert "No bar diameters" in result.message

    def test_range_selects_nothing(self):
        """Test a main range outside the inventory."""
        result = validate_settings(Settings(main_bar_range="40-50"))
        assert not result.is_valid
        assert "40-50" in result.message

    def test_warnings(self):
        """Test suspicious but usable settings."""
        result = validate_settings(Settings(min_clear_spacing=20, max_layers=4, safety_factor=0.9))
        assert result.is_valid
        assert len(result.warnings) == 3

    def test_high_safety_factor_warns(self):
        """Test a wasteful safety factor."""
        result = validate_settings(Settings(safety_factor=1.2))
        assert any("waste" in w for w in result.warnings)


class TestValidateForces:
    """Test force result checks."""

    def test_no_forces(self):
        """Test missing analysis data."""
        result = validate_forces([])
        assert not result.is_valid

    def test_negative_area(self):
        """Test negative samples are rejected."""
        result = validate_forces([SpanForceResult(top_area=[100, -5], bot_area=[100])])
        assert not result.is_valid
        assert "negative top" in result.message

    def test_no_positive_demand(self):
        """Test all-zero demand."""
        result = validate_forces([SpanForceResult(top_area=[0, 0], bot_area=[0, 0])])
        assert not result.is_valid
        assert "No positive" in result.message

    def test_missing_face_warns(self):
        """Test missing bottom samples only warn."""
        result = validate_forces([SpanForceResult(top_area=[100, 200])])
        assert result.is_valid
        assert any("bottom" in w for w in result.warnings)


class TestValidateGeometry:
    """Test geometry checks."""

    def test_valid_geometry(self):
        """Test a regular beam."""
        result = validate_geometry(make_beam([300, 300]), [uniform_forces(100, 100)] * 2)
        assert result.is_valid
        assert result.warnings == []

    def test_non_positive_width(self):
        """Test zero width."""
        result = validate_geometry(make_beam([0.0]), [uniform_forces(100, 100)])
        assert not result.is_valid
        assert "width" in result.message

    def test_long_span_warns(self):
        """Test spans over 15 m."""
        result = validate_geometry(make_beam([300], length=18.0), [uniform_forces(100, 100)])
        assert result.is_valid
        assert any("15 m" in w for w in result.warnings)

    def test_few_supports_warn(self):
        """Test a beam with a single support."""
        beam = BeamGeometry(
            spans=[SpanGeometry(span_id="S1", length=3.0, width=300, height=500)],
            supports=[SupportInfo(position=0.0)]
        )
        result = validate_geometry(beam, [uniform_forces(100, 100)])
        assert any("fewer than 2 supports" in w for w in result.warnings)

    def test_dimensions_from_forces(self):
        """Test force results carrying their own dimensions."""
        forces = [uniform_forces(100, 100, width=300, height=500, length=6.0)]
        assert validate_geometry(None, forces).is_valid

    def test_missing_dimensions(self):
        """Test no geometry and no dimensions."""
        result = validate_geometry(None, [uniform_forces(100, 100)])
        assert not result.is_valid
        assert "no section dimensions" in result.message

    def test_extra_span_without_dimensions(self):
        """Test force spans beyond the geometry need dimensions."""
        result = validate_geometry(make_beam([300]), [uniform_forces(100, 100)] * 2)
        assert not result.is_valid


class TestCrossValidate:
    """Test consistency checks."""

    def test_span_count_mismatch(self):
        """Test geometry and forces disagreeing on span count."""
        forces = [uniform_forces(100, 100, width=300, height=500, length=6.0)] * 2
        result = cross_validate(make_beam([300]), forces, Settings())
        assert result.is_valid
        assert any("mismatch" in w for w in result.warnings)

    def test_excessive_demand_warns(self):
        """Test demand beyond three layers of the largest bar."""
        result = cross_validate(None, [uniform_forces(20000, 100)], Settings())
        assert any("exceeds" in w for w in result.warnings)


class TestValidateCalculatorInput:
    """Test the combined validation chain."""

    def test_stops_at_first_failure(self):
        """Test settings are checked before forces."""
        result = validate_calculator_input(None, [], Settings(available_diameters=[]))
        assert not result.is_valid
        assert "No bar diameters" in result.message

    def test_collects_warnings(self):
        """Test warnings of every check are kept."""
        result = validate_calculator_input(
            make_beam([300], length=18.0), [uniform_forces(100, 100)], Settings(safety_factor=1.2)
        )
        assert result.is_valid
        assert len(result.warnings) == 2

    def test_result_factories(self):
        """Test ValidationResult helpers."""
        assert ValidationResult.success(["w"]).warnings == ["w"]
        failure = ValidationResult.failure("bad")
        assert not failure.is_valid and failure.message == "bad"
