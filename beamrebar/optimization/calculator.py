"""
Continuous Beam Calculator
==========================

Facade running the four pipeline stages for one beam:

    Validating -> Discretized -> LocallySolved -> TopologyMerged
               -> GloballyOptimized -> Done

Any stage may end in Failed; the caller then receives a single invalid
solution whose message names the failing section(s). Expected infeasibility
never raises.

Main functions: calculate_proposals() for one beam, calculate_beams() for
many independent beams in parallel.
"""

import logging
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from ..core.inputs import BeamGeometry, ExternalConstraints, SpanForceResult
from ..core.sections import DesignSection
from ..core.solution import ContinuousBeamSolution
from ..design.settings import DiscretizationConfig, Settings
from ..design.validation import validate_calculator_input
from .discretizer import Discretizer
from .global_optimizer import GlobalOptimizer
from .section_solver import SectionSolver
from .topology_merger import MergeReport, TopologyMerger

logger = logging.getLogger(__name__)


class PipelineStage(Enum):
    """Per-beam pipeline state."""
    IDLE = "idle"
    VALIDATING = "validating"
    DISCRETIZED = "discretized"
    LOCALLY_SOLVED = "locally_solved"
    TOPOLOGY_MERGED = "topology_merged"
    GLOBALLY_OPTIMIZED = "globally_optimized"
    DONE = "done"
    FAILED = "failed"


def _name_list(labels: Sequence[str], limit: int = 3) -> str:
    text = ", ".join(labels[:limit])
    if len(labels) > limit:
        text += f" (+{len(labels) - limit} more)"
    return text


class ContinuousBeamCalculator:
    """
    Runs the rebar layout pipeline for one beam at a time.

    Attributes:
        stage: Stage reached by the last run
        failure_reason: Message of the last failure, empty on success
        warnings: Validation warnings of the last run
        sections: Working set of the last run (after topology merge)
        merge_report: Support pairs and merge failures of the last run

    Example:
        >>> calculator = ContinuousBeamCalculator(Settings())
        >>> solutions = calculator.calculate(geometry, forces)
        >>> calculator.stage
        <PipelineStage.DONE: 'done'>
    """

    def __init__(self, settings: Settings, discretization: Optional[DiscretizationConfig] = None):
        if not isinstance(settings, Settings):
            raise TypeError(f"settings must be a Settings instance, got {type(settings).__name__}")
        self.settings = settings
        self.discretization = discretization or DiscretizationConfig.default()
        self._reset()

    def _reset(self) -> None:
        self.stage = PipelineStage.IDLE
        self.failure_reason = ""
        self.warnings: List[str] = []
        self.sections: List[DesignSection] = []
        self.merge_report: Optional[MergeReport] = None

    def _enter(self, stage: PipelineStage) -> None:
        logger.info("Pipeline stage: %s", stage.value)
        self.stage = stage

    def _fail(self, reason: str) -> List[ContinuousBeamSolution]:
        logger.error("Pipeline failed during %s: %s", self.stage.value, reason)
        self.stage = PipelineStage.FAILED
        self.failure_reason = reason
        return [ContinuousBeamSolution.error(reason)]

    def calculate(self, geometry: Optional[BeamGeometry], forces: Sequence[SpanForceResult],
                  constraints: Optional[ExternalConstraints] = None) -> List[ContinuousBeamSolution]:
        """
        Ranked rebar solutions for one continuous beam.

        Args:
            geometry: Spans and supports; None when the force results carry
                the section dimensions and span lengths
            forces: One SpanForceResult per span, left to right
            constraints: Optional external constraints

        Returns:
            Solutions best first, or a single invalid solution describing
            why the beam could not be designed

        Raises:
            TypeError: If geometry or constraints have the wrong type
        """
        if geometry is not None and not isinstance(geometry, BeamGeometry):
            raise TypeError(f"geometry must be a BeamGeometry, got {type(geometry).__name__}")
        if constraints is not None and not isinstance(constraints, ExternalConstraints):
            raise TypeError(f"constraints must be ExternalConstraints, got {type(constraints).__name__}")

        s = self.settings
        forces = list(forces or [])
        self._reset()

        self._enter(PipelineStage.VALIDATING)
        validation = validate_calculator_input(geometry, forces, s)
        self.warnings = validation.warnings
        for warning in validation.warnings:
            logger.warning(warning)
        if not validation.is_valid:
            return self._fail(f"Invalid input: {validation.message}")

        sections = Discretizer(s, self.discretization).discretize(geometry, forces)
        self.sections = sections
        if not sections:
            return self._fail("No design sections could be built")
        self._enter(PipelineStage.DISCRETIZED)

        unsolvable = SectionSolver(s, constraints).solve_all(sections)
        if unsolvable:
            return self._fail(f"No feasible bar arrangement at {_name_list(unsolvable)}")
        self._enter(PipelineStage.LOCALLY_SOLVED)

        merger = TopologyMerger(s)
        merged = merger.apply_constraints(sections)
        self.merge_report = merger.report
        if not merged:
            return self._fail(
                f"Topology merge failed at {_name_list(merger.report.failed + merger.report.empty_sections)}"
            )
        self._enter(PipelineStage.TOPOLOGY_MERGED)

        solutions = GlobalOptimizer(s, constraints).find_best_solutions(sections, geometry)
        if not solutions:
            return self._fail("No backbone candidate fits every section")
        self._enter(PipelineStage.GLOBALLY_OPTIMIZED)

        best = solutions[0]
        logger.info("Best of %d solutions: %s (score %.1f, %.1f kg%s)", len(solutions), best.option_name,
                    best.total_score, best.total_steel_weight, "" if best.is_valid else ", invalid")
        self._enter(PipelineStage.DONE)
        return solutions


def calculate_proposals(geometry: Optional[BeamGeometry], forces: Sequence[SpanForceResult],
                        settings: Optional[Settings] = None,
                        constraints: Optional[ExternalConstraints] = None,
                        discretization: Optional[DiscretizationConfig] = None) -> List[ContinuousBeamSolution]:
    """
    One-call entry point for a single beam with default settings.

    Example:
        >>> solutions = calculate_proposals(geometry, forces)
        >>> print(solutions[0].option_name)
    """
    calculator = ContinuousBeamCalculator(settings or Settings(), discretization)
    return calculator.calculate(geometry, forces, constraints)


class BeamJob(BaseModel):
    """One beam submitted to calculate_beams()."""
    name: str = Field(..., description="Beam name")
    geometry: Optional[BeamGeometry] = None
    forces: List[SpanForceResult] = Field(default_factory=list)
    constraints: Optional[ExternalConstraints] = None


class BeamCalculationResult(BaseModel):
    """Solutions and pipeline diagnostics for one beam."""
    name: str
    solutions: List[ContinuousBeamSolution] = Field(default_factory=list)
    stage: PipelineStage = PipelineStage.IDLE
    failure_reason: str = ""
    warnings: List[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.stage == PipelineStage.DONE

    @property
    def best(self) -> Optional[ContinuousBeamSolution]:
        return self.solutions[0] if self.solutions else None


def _calculate_job(args: Tuple[int, BeamJob, Settings, Optional[DiscretizationConfig]]) -> Tuple[int, BeamCalculationResult]:
    index, job, settings, discretization = args
    calculator = ContinuousBeamCalculator(settings, discretization)
    solutions = calculator.calculate(job.geometry, job.forces, job.constraints)
    return index, BeamCalculationResult(
        name=job.name,
        solutions=solutions,
        stage=calculator.stage,
        failure_reason=calculator.failure_reason,
        warnings=calculator.warnings,
    )


def calculate_beams(jobs: Sequence[BeamJob], settings: Optional[Settings] = None,
                    discretization: Optional[DiscretizationConfig] = None,
                    max_workers: Optional[int] = None) -> List[BeamCalculationResult]:
    """
    Design many independent beams, one pipeline per worker process.

    Args:
        jobs: Beams to design
        settings: Shared settings (defaults when None)
        discretization: Shared zone configuration
        max_workers: Worker processes; 1 runs in the calling process

    Returns:
        One result per job, in job order
    """
    settings = settings or Settings()
    if max_workers is None:
        cpu = os.cpu_count() or 1
        max_workers = max(1, min(cpu, 8))

    tasks = [(i, job, settings, discretization) for i, job in enumerate(jobs)]
    if max_workers == 1 or len(tasks) <= 1:
        return [_calculate_job(task)[1] for task in tasks]

    results = []
    with ProcessPoolExecutor(max_workers=max_workers) as ex:
        futures = [ex.submit(_calculate_job, task) for task in tasks]
        for future in as_completed(futures):
            results.append(future.result())

    results.sort(key=lambda item: item[0])
    logger.info("Designed %d beams with %d workers", len(results), max_workers)
    return [result for _, result in results]
