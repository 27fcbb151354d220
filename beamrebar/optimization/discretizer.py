"""
Discretizer
===========

Turns a continuous beam (spans, supports, sampled demand) into an ordered
list of DesignSection objects, one per zone per span. Each zone takes the
maximum demand found in its scan band of the sampled arrays:

    As_req = (As_flex + As_torsion * ratio) * safety_factor
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..core.inputs import BeamGeometry, SpanForceResult
from ..core.sections import DesignSection, SectionType
from ..design.settings import DiscretizationConfig, Settings

logger = logging.getLogger(__name__)


def _map_zone_to_sample(zone_index: int, zone_count: int) -> int:
    """Sample index (0=left, 1=mid, 2=right) for coarse L/M/R data."""
    if zone_count == 3:
        return zone_index
    if zone_count == 5:
        return [0, 0, 1, 2, 2][zone_index]
    if zone_count == 1:
        return 1
    ratio = zone_index / (zone_count - 1)
    if ratio <= 0.33:
        return 0
    if ratio >= 0.67:
        return 2
    return 1


def scan_band(sample_count: int, zone_index: int, zone_count: int,
              l1_ratio: float, l2_ratio: float) -> Tuple[int, int]:
    """
    Inclusive index band of the samples governing one zone.

    Example:
        >>> scan_band(9, 0, 3, 0.25, 0.25)
        (0, 2)
        >>> scan_band(9, 1, 3, 0.25, 0.25)
        (2, 7)
    """
    if sample_count <= 0:
        return 0, -1
    if sample_count <= 3:
        idx = min(_map_zone_to_sample(zone_index, zone_count), sample_count - 1)
        return idx, idx

    idx_l1 = int(sample_count * l1_ratio)
    idx_l2 = sample_count - int(sample_count * l2_ratio)

    if zone_count == 3:
        if zone_index == 0:
            return 0, idx_l1
        if zone_index == 2:
            return idx_l2, sample_count - 1
        return idx_l1, idx_l2

    center = int(sample_count * zone_index / max(1, zone_count - 1))
    radius = max(1, sample_count // 10)
    return max(0, center - radius), min(sample_count - 1, center + radius)


def zone_peak(values: Sequence[float], extra: Sequence[float], extra_factor: float,
              zone_index: int, zone_count: int, l1_ratio: float, l2_ratio: float,
              scale: float = 1.0) -> float:
    """
    Peak of (values + extra * factor) * scale over one zone.

    Each array is scanned over the band of its own length. Arrays of equal
    length combine sample by sample, otherwise their band peaks are added.
    """
    main = np.asarray(values, dtype=float)
    added = np.asarray(extra, dtype=float)
    start, end = scan_band(main.size, zone_index, zone_count, l1_ratio, l2_ratio)
    main_band = main[start:end + 1]

    if added.size == main.size:
        if main_band.size == 0:
            return 0.0
        total = main_band + added[start:end + 1] * extra_factor
        return max(0.0, float(total.max()) * scale)

    peak = float(main_band.max()) if main_band.size else 0.0
    if added.size:
        a_start, a_end = scan_band(added.size, zone_index, zone_count, l1_ratio, l2_ratio)
        peak += float(added[a_start:a_end + 1].max()) * extra_factor
    return max(0.0, peak * scale)


class Discretizer:
    """
    Stage 1: build design sections from geometry and force results.

    Example:
        >>> sections = Discretizer(Settings()).discretize(geometry, forces)
        >>> [s.section_id for s in sections[:3]]
        ['S1_Left', 'S1_Mid', 'S1_Right']
    """

    def __init__(self, settings: Settings, config: Optional[DiscretizationConfig] = None):
        self.settings = settings
        self.config = config or DiscretizationConfig.default()

    def discretize(self, geometry: Optional[BeamGeometry],
                   forces: List[SpanForceResult]) -> List[DesignSection]:
        """
        Build the ordered section list for the whole beam.

        Args:
            geometry: Beam geometry; span dimensions fall back to the
                force results for spans it does not describe
            forces: One SpanForceResult per span, left to right

        Returns:
            Sections ordered by span then zone, with global indices
        """
        s = self.settings
        zone_names = self.config.zone_names()
        zone_count = self.config.zone_count
        span_count = len(forces)
        sections: List[DesignSection] = []

        position = 0.0
        for span_index, result in enumerate(forces):
            span_id, length, width, height = self._span_dimensions(geometry, forces, span_index)

            for zone_index in range(zone_count):
                rel = self.config.positions[zone_index]
                section_type = self._section_type(geometry, span_index, span_count, zone_index,
                                                  zone_count, self.config.section_types[zone_index])
                zone = (zone_index, zone_count, s.zone_l1_ratio, s.zone_l2_ratio)

                req_top = zone_peak(result.top_area, result.torsion_area, s.torsion_ratio(top=True),
                                    *zone, scale=s.safety_factor)
                req_bot = zone_peak(result.bot_area, result.torsion_area, s.torsion_ratio(top=False),
                                    *zone, scale=s.safety_factor)
                req_torsion = zone_peak(result.torsion_area, (), 0.0, *zone)
                req_stirrup = zone_peak(result.shear_area, result.stirrup_torsion_area, 2.0, *zone)

                sections.append(DesignSection(
                    section_id=f"{span_id}_{zone_names[zone_index]}",
                    span_id=span_id,
                    span_index=span_index,
                    zone_index=zone_index,
                    zone_name=zone_names[zone_index],
                    global_index=len(sections),
                    position=position + length * rel,
                    relative_position=rel,
                    span_length=length,
                    width=width,
                    height=height,
                    cover_top=s.cover_top,
                    cover_bot=s.cover_bot,
                    cover_side=s.cover_side,
                    stirrup_diameter=s.stirrup_diameter,
                    section_type=section_type,
                    req_top=req_top,
                    req_bot=req_bot,
                    req_torsion=req_torsion,
                    req_stirrup=req_stirrup,
                    is_support_left=zone_index == 0 and span_index > 0,
                    is_support_right=zone_index == zone_count - 1 and span_index < span_count - 1,
                ))

            position += length

        logger.debug("Discretized %d spans into %d sections", span_count, len(sections))
        return sections

    @staticmethod
    def _span_dimensions(geometry: Optional[BeamGeometry], forces: List[SpanForceResult],
                         index: int) -> Tuple[str, float, float, float]:
        result = forces[index]
        if geometry is not None and index < len(geometry.spans):
            span = geometry.spans[index]
            width = span.width_mm if span.width > 0 else (result.width_mm or 0.0)
            height = span.height_mm if span.height > 0 else (result.height_mm or 0.0)
            return span.span_id, span.length, width, height
        return f"S{index + 1}", result.length or 0.0, result.width_mm or 0.0, result.height_mm or 0.0

    @staticmethod
    def _section_type(geometry: Optional[BeamGeometry], span_index: int, span_count: int,
                      zone_index: int, zone_count: int, zone_type: SectionType) -> SectionType:
        if geometry is None:
            return zone_type
        if span_index == 0 and zone_index == 0 and geometry.first_support_free():
            return SectionType.FREE_END
        if span_index == span_count - 1 and zone_index == zone_count - 1 and geometry.last_support_free():
            return SectionType.FREE_END
        return zone_type
