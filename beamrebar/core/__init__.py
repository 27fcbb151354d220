"""Core data model: inputs, design sections, arrangements and solutions."""

from .inputs import (
    BeamGeometry,
    ExternalConstraints,
    LengthUnit,
    SpanForceResult,
    SpanGeometry,
    SupportInfo,
    SupportType,
)
from .sections import (
    BackboneCandidate,
    DesignSection,
    RebarPosition,
    SectionArrangement,
    SectionType,
    bar_area,
)
from .solution import ContinuousBeamSolution, RebarSpec, ResolutionKind, SpanRebarResult

__all__ = [
    'BeamGeometry',
    'ExternalConstraints',
    'LengthUnit',
    'SpanForceResult',
    'SpanGeometry',
    'SupportInfo',
    'SupportType',
    'BackboneCandidate',
    'DesignSection',
    'RebarPosition',
    'SectionArrangement',
    'SectionType',
    'bar_area',
    'ContinuousBeamSolution',
    'RebarSpec',
    'ResolutionKind',
    'SpanRebarResult',
]
