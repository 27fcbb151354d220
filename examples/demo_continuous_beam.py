"""
Continuous Beam Rebar Layout Demonstration
===========================================

This script demonstrates:
1. Designing one three-span beam from sampled steel-area demand
2. Inspecting the sections and the ranked layouts
3. Designing several beams in parallel
"""

import logging

from beamrebar import (
    BeamGeometry,
    BeamJob,
    ContinuousBeamCalculator,
    Settings,
    SpanForceResult,
    SpanGeometry,
    SupportInfo,
    calculate_beams,
)
from beamrebar.reporting import reinforcement_table, sections_to_dataframe, solutions_to_dataframe


def three_span_beam(name="B1", width=300.0):
    spans = [SpanGeometry(span_id=f"S{i + 1}", length=6.0, width=width, height=500.0) for i in range(3)]
    supports = [SupportInfo(position=6.0 * i, support_type="Column", width=300.0) for i in range(4)]
    return BeamGeometry(name=name, spans=spans, supports=supports)


def three_span_forces(mid_demand=1200.0):
    top = [500, 300, 100, 50, 50, 50, 100, 300, 500]
    outer = [100, 200, 350, 350, 350, 350, 350, 200, 100]
    middle = [100, 200, 350, mid_demand, mid_demand, mid_demand, 350, 200, 100]
    return [
        SpanForceResult(top_area=top, bot_area=outer, shear_area=[0.8] * 9),
        SpanForceResult(top_area=top, bot_area=middle, shear_area=[0.8] * 9),
        SpanForceResult(top_area=top, bot_area=outer, shear_area=[0.8] * 9),
    ]


def demo_single_beam(settings):
    """Design one beam and print the tables."""
    print("\n" + "=" * 70)
    print("SINGLE BEAM")
    print("=" * 70)

    calculator = ContinuousBeamCalculator(settings)
    solutions = calculator.calculate(three_span_beam(), three_span_forces())
    print(f"\nStage: {calculator.stage.value}")

    print("\n--- SECTIONS ---")
    print(sections_to_dataframe(calculator.sections).to_string(index=False))

    print("\n--- RANKED LAYOUTS ---")
    print(solutions_to_dataframe(solutions).to_string(index=False))

    best = solutions[0]
    print(f"\n--- ADDONS OF {best.option_name} ---")
    print(reinforcement_table(best).to_string(index=False))
    for span in best.span_results:
        print(f"{span.span_id}: stirrups {span.stirrups}, web bars {span.web_bars}")


def demo_many_beams(settings):
    """Design independent beams in worker processes."""
    print("\n" + "=" * 70)
    print("MULTIPLE BEAMS")
    print("=" * 70)

    jobs = [
        BeamJob(name="B1", geometry=three_span_beam("B1"), forces=three_span_forces(1200.0)),
        BeamJob(name="B2", geometry=three_span_beam("B2", 250.0), forces=three_span_forces(800.0)),
        BeamJob(name="B3", geometry=three_span_beam("B3"), forces=three_span_forces(20000.0)),
    ]
    for result in calculate_beams(jobs, settings, max_workers=2):
        if result.succeeded:
            print(f"{result.name}: {result.best.option_name} "
                  f"({result.best.total_score:.1f}, {result.best.total_steel_weight:.1f} kg)")
        else:
            print(f"{result.name}: FAILED - {result.failure_reason}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = Settings(available_diameters=[8, 10, 12, 14, 16, 18, 20, 22, 25])
    demo_single_beam(settings)
    demo_many_beams(settings)
