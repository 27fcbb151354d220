"""
Shared fixtures: small beams with hand-checkable demand.
"""

import pytest

from beamrebar.core.inputs import BeamGeometry, SpanForceResult, SpanGeometry, SupportInfo
from beamrebar.core.sections import DesignSection, SectionType
from beamrebar.design.settings import Settings


def make_beam(widths, length=6.0, height=500.0, name="B1", support_width=300.0):
    """Beam with one span per width, equal lengths, columns at every support."""
    spans = [
        SpanGeometry(span_id=f"S{i + 1}", length=length, width=w, height=height)
        for i, w in enumerate(widths)
    ]
    supports = [
        SupportInfo(position=i * length, support_type="Column", width=support_width)
        for i in range(len(widths) + 1)
    ]
    return BeamGeometry(name=name, spans=spans, supports=supports)


def uniform_forces(top, bot, samples=9, **kwargs):
    """Constant demand along one span."""
    return SpanForceResult(top_area=[top] * samples, bot_area=[bot] * samples, **kwargs)


def make_section(req_top=0.0, req_bot=0.0, width=300.0, height=500.0, section_id="S1_Mid",
                 zone_index=1, relative_position=0.5, section_type=SectionType.MID_SPAN,
                 span_index=0, position=3.0, span_length=6.0, **kwargs):
    """Stand-alone design section with default covers."""
    span_id, _, zone_name = section_id.partition("_")
    return DesignSection(
        section_id=section_id,
        span_id=span_id,
        span_index=span_index,
        zone_index=zone_index,
        zone_name=zone_name,
        global_index=kwargs.pop("global_index", 0),
        position=position,
        relative_position=relative_position,
        span_length=span_length,
        width=width,
        height=height,
        cover_top=25.0,
        cover_bot=25.0,
        cover_side=25.0,
        stirrup_diameter=10.0,
        section_type=section_type,
        req_top=req_top,
        req_bot=req_bot,
        **kwargs
    )


@pytest.fixture
def settings():
    """Default settings with the 16-25 mm main bar inventory."""
    return Settings(available_diameters=[16, 18, 20, 22, 25])


@pytest.fixture
def single_span_beam():
    return make_beam([300.0])


@pytest.fixture
def three_span_beam():
    return make_beam([300.0, 300.0, 300.0])


@pytest.fixture
def three_span_forces():
    """Support peaks on top, span 2 carries a large mid-span bottom demand."""
    top = [500, 300, 100, 50, 50, 50, 100, 300, 500]
    bot_outer = [100, 200, 350, 350, 350, 350, 350, 200, 100]
    bot_middle = [100, 200, 350, 1200, 1200, 1200, 350, 200, 100]
    return [
        SpanForceResult(top_area=top, bot_area=bot_outer, shear_area=[0.8] * 9),
        SpanForceResult(top_area=top, bot_area=bot_middle, shear_area=[0.8] * 9),
        SpanForceResult(top_area=top, bot_area=bot_outer, shear_area=[0.8] * 9),
    ]
