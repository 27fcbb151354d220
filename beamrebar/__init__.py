"""
pybeamrebar - Continuous RC beam rebar layout optimizer.

Turns sampled steel-area demand along a continuous beam into a buildable
layout: one running backbone per face plus local addon bars.
"""

from .core import (
    BeamGeometry,
    ContinuousBeamSolution,
    ExternalConstraints,
    LengthUnit,
    RebarPosition,
    SpanForceResult,
    SpanGeometry,
    SupportInfo,
    SupportType,
)
from .design import DiscretizationConfig, Settings
from .optimization import (
    BeamJob,
    ContinuousBeamCalculator,
    PipelineStage,
    calculate_beams,
    calculate_proposals,
)

__version__ = "0.1.0"

__all__ = [
    'BeamGeometry',
    'ContinuousBeamSolution',
    'ExternalConstraints',
    'LengthUnit',
    'RebarPosition',
    'SpanForceResult',
    'SpanGeometry',
    'SupportInfo',
    'SupportType',
    'DiscretizationConfig',
    'Settings',
    'BeamJob',
    'ContinuousBeamCalculator',
    'PipelineStage',
    'calculate_beams',
    'calculate_proposals',
]
