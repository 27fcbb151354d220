"""
Whole-Beam Scoring
==================

Fitness of a complete backbone + addon layout:

- efficiency = 100 - waste percentage (provided vs. required, beam-wide)
- constructability = 100 - weighted penalties (bar count, diameter,
  top/bottom asymmetry, addon variety, failed faces, splices)
- native-match bonus for backbones needing few synthesized addons
- total = w * efficiency + (1 - w) * constructability + bonus, in [0, 100]
"""

from dataclasses import dataclass
from typing import Optional

from ..design.settings import Settings


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


@dataclass
class LayoutStats:
    """Aggregates of one evaluated layout."""
    diameter: int
    count_top: int
    count_bot: int
    required_area: float
    provided_area: float
    distinct_addons: int
    failed_faces: int
    synthesized_faces: int
    required_faces: int
    splices: int

    @property
    def waste_percentage(self) -> float:
        if self.required_area <= 0:
            return 0.0
        return (self.provided_area - self.required_area) / self.required_area * 100.0


def efficiency_score(stats: LayoutStats) -> float:
    return _clamp(100.0 - stats.waste_percentage)


def constructability_score(stats: LayoutStats, settings: Settings,
                           preferred_diameter: Optional[int] = None) -> float:
    """
    Constructability in [0, 100]; penalties are weighted by ``settings.score_weights``.

    Example:
        >>> stats = LayoutStats(20, 4, 4, 1000, 1200, 0, 0, 0, 6, 0)
        >>> constructability_score(stats, Settings())
        100.0
    """
    w = settings.score_weights
    score = 100.0
    for count in (stats.count_top, stats.count_bot):
        score -= w.bar_count * max(0, count - w.preferred_bar_count)
    score -= w.diameter * max(0, stats.diameter - w.soft_diameter_cap)
    score -= w.asymmetry * abs(stats.count_top - stats.count_bot)
    score -= w.addon_variety * stats.distinct_addons
    score -= w.failed_section * stats.failed_faces
    score -= w.splice * stats.splices
    if preferred_diameter and stats.diameter == preferred_diameter:
        score += w.preferred_diameter_bonus
    return _clamp(score)


def native_match_bonus(stats: LayoutStats, settings: Settings) -> float:
    """Bonus shrinking with the share of faces that needed synthesized steel."""
    if stats.required_faces <= 0:
        return settings.native_match_bonus
    ratio = stats.synthesized_faces / stats.required_faces
    return settings.native_match_bonus * max(0.0, 1.0 - ratio)


def total_score(efficiency: float, constructability: float, bonus: float, settings: Settings) -> float:
    w = settings.efficiency_weight
    return _clamp(w * efficiency + (1.0 - w) * constructability + bonus)
