"""
Unit tests for beam discretization into design sections
"""

import pytest

from beamrebar.core.inputs import BeamGeometry, LengthUnit, SpanForceResult, SpanGeometry, SupportInfo
from beamrebar.core.sections import SectionType
from beamrebar.design.settings import DiscretizationConfig, Settings
from beamrebar.optimization.discretizer import Discretizer, scan_band

from conftest import make_beam, uniform_forces


class TestScanBand:
    """Test sample bands governing each zone."""

    def test_three_zone_bands(self):
        """Test left, mid and right bands of nine samples."""
        assert scan_band(9, 0, 3, 0.25, 0.25) == (0, 2)
        assert scan_band(9, 1, 3, 0.25, 0.25) == (2, 7)
        assert scan_band(9, 2, 3, 0.25, 0.25) == (7, 8)

    def test_coarse_samples(self):
        """Test left/mid/right samples map one to one."""
        assert scan_band(3, 0, 3, 0.25, 0.25) == (0, 0)
        assert scan_band(3, 1, 3, 0.25, 0.25) == (1, 1)
        assert scan_band(3, 2, 3, 0.25, 0.25) == (2, 2)

    def test_coarse_samples_five_zones(self):
        """Test quarter zones read the nearest support sample."""
        assert scan_band(3, 1, 5, 0.25, 0.25) == (0, 0)
        assert scan_band(3, 3, 5, 0.25, 0.25) == (2, 2)

    def test_generic_zone_radius(self):
        """Test a ten percent radius around the zone center."""
        assert scan_band(21, 2, 5, 0.25, 0.25) == (8, 12)

    def test_no_samples(self):
        """Test an empty band."""
        start, end = scan_band(0, 0, 3, 0.25, 0.25)
        assert end < start


class TestDiscretizer:
    """Test section generation."""

    def test_section_ids_and_order(self, three_span_beam, three_span_forces):
        """Test one section per zone, ordered by span."""
        sections = Discretizer(Settings()).discretize(three_span_beam, three_span_forces)
        assert [s.section_id for s in sections[:4]] == ["S1_Left", "S1_Mid", "S1_Right", "S2_Left"]
        assert len(sections) == 9
        assert [s.global_index for s in sections] == list(range(9))

    def test_positions(self, three_span_beam, three_span_forces):
        """Test absolute positions along the beam."""
        sections = Discretizer(Settings()).discretize(three_span_beam, three_span_forces)
        assert sections[1].position == pytest.approx(3.0)
        assert sections[2].position == pytest.approx(6.0)
        assert sections[3].position == pytest.approx(6.0)
        assert sections[-1].position == pytest.approx(18.0)

    def test_band_maxima(self, three_span_beam, three_span_forces):
        """Test each zone takes the peak of its band."""
        sections = Discretizer(Settings()).discretize(three_span_beam, three_span_forces)
        by_id = {s.section_id: s for s in sections}
        assert by_id["S1_Left"].req_top == pytest.approx(500.0)
        assert by_id["S1_Mid"].req_top == pytest.approx(300.0)
        assert by_id["S2_Mid"].req_bot == pytest.approx(1200.0)
        assert by_id["S2_Right"].req_bot == pytest.approx(200.0)

    def test_support_flags(self, three_span_beam, three_span_forces):
        """Test interior supports flagged on both sides, beam ends not."""
        sections = Discretizer(Settings()).discretize(three_span_beam, three_span_forces)
        by_id = {s.section_id: s for s in sections}
        assert not by_id["S1_Left"].is_support_left
        assert by_id["S1_Right"].is_support_right
        assert by_id["S2_Left"].is_support_left
        assert not by_id["S3_Right"].is_support_right

    def test_torsion_and_safety_factor(self, single_span_beam):
        """Test required area = (flex + torsion * ratio) * safety factor."""
        forces = [SpanForceResult(top_area=[400] * 5, bot_area=[200] * 5, torsion_area=[100] * 5)]
        sections = Discretizer(Settings(safety_factor=1.1)).discretize(single_span_beam, forces)
        assert sections[0].req_top == pytest.approx((400 + 25) * 1.1)
        assert sections[0].req_bot == pytest.approx((200 + 25) * 1.1)
        assert sections[0].req_torsion == pytest.approx(100.0)

    def test_arrays_of_different_lengths(self, single_span_beam):
        """Test each array is scanned over the band of its own length."""
        forces = [SpanForceResult(top_area=[100] * 3, bot_area=[0, 0, 0, 0, 900, 0, 0, 0, 0],
                                  torsion_area=[40] * 9)]
        sections = Discretizer(Settings()).discretize(single_span_beam, forces)
        assert sections[1].req_bot == pytest.approx(900 + 40 * 0.25)
        assert sections[0].req_bot == pytest.approx(40 * 0.25)
        assert sections[0].req_top == pytest.approx(100 + 40 * 0.25)
        assert sections[1].req_torsion == pytest.approx(40.0)

    def test_stirrup_demand(self, single_span_beam):
        """Test transverse demand includes twice the torsion stirrups."""
        forces = [SpanForceResult(top_area=[100] * 3, bot_area=[100] * 3,
                                  shear_area=[0.5, 0.2, 0.6], stirrup_torsion_area=[0.1, 0.1, 0.1])]
        sections = Discretizer(Settings()).discretize(single_span_beam, forces)
        assert sections[0].req_stirrup == pytest.approx(0.7)
        assert sections[1].req_stirrup == pytest.approx(0.4)
        assert sections[2].req_stirrup == pytest.approx(0.8)

    def test_usable_dimensions(self, single_span_beam):
        """Test covers and stirrups are subtracted."""
        sections = Discretizer(Settings()).discretize(single_span_beam, [uniform_forces(100, 100)])
        assert sections[0].usable_width == pytest.approx(230.0)
        assert sections[0].usable_height == pytest.approx(430.0)

    def test_dimensions_from_forces(self):
        """Test spans without geometry read force dimensions."""
        forces = [uniform_forces(100, 100, width=30, height=50, length=5.0, unit=LengthUnit.CM)]
        sections = Discretizer(Settings()).discretize(None, forces)
        assert sections[0].span_id == "S1"
        assert sections[0].width == pytest.approx(300.0)
        assert sections[0].span_length == pytest.approx(5.0)

    def test_free_end(self):
        """Test a cantilever end is typed as a free end."""
        beam = BeamGeometry(
            spans=[SpanGeometry(span_id="C1", length=2.0, width=300, height=500)],
            supports=[SupportInfo(position=0.0), SupportInfo(position=2.0, support_type="FreeEnd")]
        )
        sections = Discretizer(Settings()).discretize(beam, [uniform_forces(300, 100)])
        assert sections[0].section_type == SectionType.SUPPORT
        assert sections[-1].section_type == SectionType.FREE_END
        assert not sections[-1].is_support

    def test_detailed_zones(self, single_span_beam):
        """Test five-zone discretization."""
        forces = [SpanForceResult(top_area=[500, 100, 50, 100, 500], bot_area=[100, 300, 400, 300, 100])]
        sections = Discretizer(Settings(), DiscretizationConfig.detailed()).discretize(single_span_beam, forces)
        assert [s.zone_name for s in sections] == ["Left", "QuarterLeft", "Mid", "QuarterRight", "Right"]
        assert sections[1].position == pytest.approx(1.5)
        assert sections[2].req_bot == pytest.approx(400.0)
