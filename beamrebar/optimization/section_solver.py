"""
Section Solver
==============

Stage 2 of the pipeline: for each design section and each face, enumerate the
bar arrangements that satisfy the spacing, cover and layering rules, score
them and keep the best ones.

Search per diameter:
1. Minimum count from the required area, per-layer minimum, symmetry and
   maximum clear spacing
2. Layer capacity from the usable width, layer count from the usable height
3. Totals from the minimum up to a bounded number of extra bars, each split
   into pyramidal layer breakdowns
"""

import logging
import math
from typing import List, Optional, Tuple

from ..core.inputs import ExternalConstraints
from ..core.sections import DesignSection, RebarPosition, SectionArrangement, bar_area, waste_bars
from ..design import detailing
from ..design.settings import Settings

logger = logging.getLogger(__name__)


class SectionSolver:
    """
    Enumerates and ranks valid arrangements for one section face.

    Args:
        settings: Detailing settings
        constraints: Optional external constraints (allowed, forced and
            preferred diameters)

    Example:
        >>> solver = SectionSolver(Settings())
        >>> options = solver.solve(section, RebarPosition.TOP)
        >>> options[0].describe()
        '2D18'
    """

    def __init__(self, settings: Settings, constraints: Optional[ExternalConstraints] = None):
        self.settings = settings
        self.constraints = constraints
        self.diameters = settings.resolve_main_diameters(constraints)
        self.preferred_diameter = settings.resolve_preferred_diameter(constraints)

    def solve_all(self, sections: List[DesignSection]) -> List[str]:
        """
        Populate the arrangement lists of every section.

        Returns:
            Labels (``"{section_id}/{Top|Bot}"``) of faces with no valid
            arrangement. Empty when every face is solvable.
        """
        failed = []
        for section in sections:
            for position in RebarPosition:
                arrangements = self.solve(section, position)
                section.set_arrangements(position, arrangements)
                if not arrangements:
                    failed.append(section.label(position))
            logger.debug("%s: %d top / %d bottom arrangements", section.section_id,
                         len(section.valid_top), len(section.valid_bot))
        return failed

    def solve(self, section: DesignSection, position: RebarPosition) -> List[SectionArrangement]:
        """
        Ranked valid arrangements for one face of ``section``.

        Returns:
            Best arrangements first; a single empty arrangement when the
            requirement is negligible; an empty list when even the fallback
            cannot be placed.
        """
        s = self.settings
        required = section.required_area(position)

        if required <= s.negligible_area:
            return [SectionArrangement.empty()]

        width = section.usable_width
        height = section.usable_height
        if width <= 0 or height <= 0:
            logger.error("Invalid usable dimensions for %s: W=%.0f, H=%.0f",
                         section.section_id, width, height)
            return []

        candidates = self._single_diameter_arrangements(required, width, height)
        if s.allow_diameter_mixing and len(self.diameters) >= 2:
            candidates.extend(self._mixed_arrangements(required, width))

        minimum = required * (1.0 - s.area_tolerance)
        valid = [arr for arr in candidates if arr.total_area >= minimum - 1e-6]
        valid.sort(key=lambda arr: -arr.score)
        valid = valid[:s.max_arrangements_per_section]

        if not valid:
            logger.info("No valid arrangement for %s, trying fallback", section.label(position))
            fallback = self._fallback_arrangement(required, width, height)
            if fallback is None:
                logger.warning("Section %s is unsolvable (required %.0f mm²)",
                               section.label(position), required)
                return []
            valid = [fallback]

        return valid

    def ordered_diameters(self) -> List[int]:
        """Candidate diameters, largest first when fewer bars are preferred."""
        return sorted(self.diameters, reverse=self.settings.prefer_fewer_bars)

    def minimum_count(self, required: float, diameter: int, usable_width: float) -> int:
        """Smallest bar count worth enumerating for ``diameter``."""
        s = self.settings
        n = int(math.ceil(required / bar_area(diameter) - 1e-9))
        n = max(n, s.min_bars_per_layer)
        # Too few bars leave gaps wider than the maximum clear spacing
        if usable_width > s.max_clear_spacing:
            n = max(n, int(math.ceil((usable_width + s.max_clear_spacing)
                                     / (diameter + s.max_clear_spacing) - 1e-9)))
        if s.prefer_symmetric and n % 2:
            n += 1
        return n

    def layer_configurations(self, total: int, max_per_layer: int, max_layers: int) -> List[Tuple[int, ...]]:
        """
        Pyramidal splits of ``total`` bars, outermost layer first.

        Example:
            >>> SectionSolver(Settings()).layer_configurations(6, 4, 2)
            [(4, 2), (3, 3)]
        """
        results: List[Tuple[int, ...]] = []
        limit = self.settings.max_layer_configurations

        def build(remaining: int, current: List[int]) -> None:
            if len(results) >= limit:
                return
            if remaining == 0:
                if current:
                    results.append(tuple(current))
                return
            if len(current) >= max_layers:
                return
            low = self.settings.min_bars_per_layer if not current else 2
            high = min(remaining, max_per_layer)
            if current:
                high = min(high, current[-1])
            for n in range(high, low - 1, -1):
                current.append(n)
                build(remaining - n, current)
                current.pop()

        build(total, [])
        return results

    def score(self, arr: SectionArrangement, required: float) -> float:
        """Local preference score in [0, 100]."""
        s = self.settings
        score = 100.0

        if arr.efficiency > 1.0:
            score -= (arr.efficiency - 1.0) * 30.0
        score -= (arr.layer_count - 1) * 5.0
        for n in arr.layer_counts:
            if n > s.preferred_bars_per_layer:
                score -= (n - s.preferred_bars_per_layer) * 2.0

        dense_limit = (s.min_clear_spacing + s.max_clear_spacing) / 2.0
        if s.min_clear_spacing <= arr.clear_spacing <= dense_limit:
            score += 5.0
        elif dense_limit < arr.clear_spacing <= s.max_clear_spacing:
            score += 2.0

        if s.prefer_single_diameter and arr.is_single_diameter:
            score += 3.0
        if s.prefer_symmetric and arr.is_symmetric:
            score += 3.0
        if s.prefer_fewer_bars:
            score += max(0, 6 - arr.total_count)
        if self.preferred_diameter and arr.primary_diameter == self.preferred_diameter:
            score += 5.0

        score -= arr.waste_count * s.waste_penalty_score
        return max(0.0, min(100.0, score))

    def _single_diameter_arrangements(self, required: float, width: float,
                                      height: float) -> List[SectionArrangement]:
        s = self.settings
        results = []

        for d in self.ordered_diameters():
            per_layer = detailing.max_bars_in_layer(width, d, s)
            layers = detailing.max_layers_in_height(height, d, s)
            if per_layer < s.min_bars_per_layer or layers < 1:
                continue

            first = self.minimum_count(required, d, width)
            last = min(per_layer * layers, first + s.extra_bar_search_depth)
            found = []
            for total in range(first, last + 1):
                for config in self.layer_configurations(total, per_layer, layers):
                    arr = self._build(d, config, width, required)
                    if arr is not None:
                        found.append(arr)

            found.sort(key=lambda arr: -arr.score)
            results.extend(found[:s.max_arrangements_per_diameter])

        return results

    def _build(self, diameter: int, config: Tuple[int, ...], width: float,
               required: float) -> Optional[SectionArrangement]:
        s = self.settings
        for n in config:
            if not detailing.layer_fits(width, [diameter] * n, s):
                return None
        spacing = detailing.clear_spacing(width, [diameter] * config[0])
        if config[0] > 1 and spacing > s.max_clear_spacing:
            return None

        arr = SectionArrangement.single_diameter(
            diameter, config, required=required, clear_spacing=spacing,
            vertical_spacing=detailing.vertical_clear_spacing(diameter, s)
        )
        return arr.with_score(self.score(arr, required))

    def _mixed_arrangements(self, required: float, width: float) -> List[SectionArrangement]:
        s = self.settings
        results = []
        ordered = sorted(self.diameters, reverse=True)

        for i in range(min(2, len(ordered) - 1)):
            d1, d2 = ordered[i], ordered[i + 1]
            for n1 in range(2, 7):
                remaining = required - n1 * bar_area(d1)
                if remaining <= 0:
                    break
                n2 = max(2, int(math.ceil(remaining / bar_area(d2))))
                bars = (d1,) * n1 + (d2,) * n2
                if len(bars) > s.max_bars_per_layer or not detailing.layer_fits(width, bars, s):
                    continue
                spacing = detailing.clear_spacing(width, bars)
                if spacing > s.max_clear_spacing:
                    continue
                area = n1 * bar_area(d1) + n2 * bar_area(d2)
                arr = SectionArrangement(
                    total_count=n1 + n2,
                    primary_diameter=d1,
                    layer_counts=(n1 + n2,),
                    diameters=(d1, d2),
                    bar_diameters=bars,
                    total_area=area,
                    clear_spacing=spacing,
                    efficiency=area / required,
                    waste_count=waste_bars(area, required, d2),
                )
                results.append(arr.with_score(self.score(arr, required) - s.mixed_diameter_penalty))

        return results

    def _fallback_arrangement(self, required: float, width: float,
                              height: float) -> Optional[SectionArrangement]:
        """Largest diameter, layers filled greedily; None when it cannot fit."""
        s = self.settings
        if not self.diameters:
            return None
        d = max(self.diameters)
        per_layer = detailing.max_bars_in_layer(width, d, s)
        max_layers = detailing.max_layers_in_height(height, d, s)
        n = max(int(math.ceil(required / bar_area(d))), s.min_bars_per_layer)
        if per_layer < 1 or max_layers < 1 or (per_layer < 2 and n > 1):
            return None
        # Inner layers hold at least two bars
        if per_layer == 2 and n > 2 and n % 2:
            n += 1

        layers = []
        remaining = n
        while remaining > 0 and len(layers) < max_layers:
            placed = min(remaining, per_layer)
            layers.append(placed)
            remaining -= placed
        if remaining > 0:
            logger.debug("Fallback needs %dD%d, only %d fit", n, d, sum(layers))
            return None
        if len(layers) > 1 and layers[-1] == 1:
            layers[-2] -= 1
            layers[-1] = 2

        arr = SectionArrangement.single_diameter(
            d, tuple(layers), required=required,
            clear_spacing=detailing.clear_spacing(width, [d] * layers[0]),
            vertical_spacing=detailing.vertical_clear_spacing(d, s)
        )
        return arr.with_score(50.0)
