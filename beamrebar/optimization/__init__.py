"""
Rebar layout optimization pipeline.

Stages:
1. Discretizer: spans -> design sections with required areas
2. SectionSolver: valid bar arrangements per section face
3. TopologyMerger: shared support sections, stirrup and alignment rules
4. GlobalOptimizer: backbone + addons, ranked whole-beam solutions
"""

from .discretizer import Discretizer
from .section_solver import SectionSolver
from .topology_merger import TopologyMerger
from .global_optimizer import GlobalOptimizer
from .calculator import (
    ContinuousBeamCalculator,
    PipelineStage,
    BeamJob,
    BeamCalculationResult,
    calculate_beams,
    calculate_proposals,
)

__all__ = [
    'Discretizer',
    'SectionSolver',
    'TopologyMerger',
    'GlobalOptimizer',
    'ContinuousBeamCalculator',
    'PipelineStage',
    'BeamJob',
    'BeamCalculationResult',
    'calculate_beams',
    'calculate_proposals',
]
