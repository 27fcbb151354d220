"""
Result Summaries
================

pandas tables of design sections and ranked solutions for inspection,
export (``df.to_csv``) or display.
"""

from typing import List

import pandas as pd

from .core.sections import DesignSection
from .core.solution import ContinuousBeamSolution


def sections_to_dataframe(sections: List[DesignSection]) -> pd.DataFrame:
    """
    One row per design section with demand and best local options.

    Returns:
        DataFrame with section ids, positions, required areas and the best
        top/bottom arrangement of each section
    """
    rows = []
    for section in sections:
        rows.append(
            {
                "Section": section.section_id,
                "Span": section.span_id,
                "Zone": section.zone_name,
                "Type": section.section_type.value,
                "X (m)": round(section.position, 3),
                "b (mm)": section.width,
                "h (mm)": section.height,
                "As_top (mm2)": round(section.req_top, 1),
                "As_bot (mm2)": round(section.req_bot, 1),
                "Top options": len(section.valid_top),
                "Bot options": len(section.valid_bot),
                "Best top": section.valid_top[0].describe() if section.valid_top else "",
                "Best bot": section.valid_bot[0].describe() if section.valid_bot else "",
            }
        )
    return pd.DataFrame(rows)


def solutions_to_dataframe(solutions: List[ContinuousBeamSolution]) -> pd.DataFrame:
    """One row per solution, in rank order."""
    rows = []
    for rank, solution in enumerate(solutions, start=1):
        rows.append(
            {
                "Rank": rank,
                "Option": solution.option_name,
                "Valid": solution.is_valid,
                "Score": solution.total_score,
                "Efficiency": solution.efficiency_score,
                "Constructability": solution.constructability_score,
                "Waste (%)": solution.waste_percentage,
                "Weight (kg)": solution.total_steel_weight,
                "Addons": solution.addon_count,
                "Splices": solution.splice_count,
                "Message": solution.validation_message,
            }
        )
    return pd.DataFrame(rows)


def reinforcement_table(solution: ContinuousBeamSolution) -> pd.DataFrame:
    """Addon entries of one solution keyed ``{span}_{Top|Bot}_{zone}``."""
    rows = []
    for key, spec in solution.reinforcements.items():
        rows.append(
            {
                "Key": key,
                "Bars": spec.display,
                "Layer": spec.layer,
                "Layers": "/".join(str(n) for n in spec.layer_breakdown),
                "Area (mm2)": round(spec.area, 1),
                "Length (mm)": round(spec.length, 0),
                "Running": spec.is_running_through,
                "Source": spec.source.value if spec.source else "",
            }
        )
    return pd.DataFrame(rows, columns=["Key", "Bars", "Layer", "Layers", "Area (mm2)",
                                       "Length (mm)", "Running", "Source"])
