"""
Design Sections and Section Arrangements
========================================

Value types shared by every stage of the rebar layout pipeline:

- DesignSection: one checkpoint along the beam (support, quarter or mid-span)
  carrying its geometry, required areas and the candidate arrangements.
- SectionArrangement: one concrete way of placing bars in one face of a
  section. Immutable; score adjustments return a new value.
- BackboneCandidate: a (diameter, top count, bottom count) triple evaluated
  by the global optimizer.

Units: areas in mm², section dimensions in mm, positions in m.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple


STEEL_UNIT_WEIGHT_FACTOR = 0.00617  # kg/m per mm² of d² (7850 kg/m³ * pi / 4 / 1e6)


def bar_area(diameter: float) -> float:
    """Cross-sectional area of one bar (mm²)."""
    return math.pi * diameter * diameter / 4.0


def waste_bars(provided: float, required: float, diameter: float) -> int:
    """Bars of ``diameter`` that could be dropped while still covering ``required``."""
    if required <= 0 or diameter <= 0 or provided <= required:
        return 0
    return int(math.floor((provided - required) / bar_area(diameter) + 1e-9))


class SectionType(Enum):
    """Role of a design section along its span."""
    SUPPORT = "support"
    QUARTER_SPAN = "quarter_span"
    MID_SPAN = "mid_span"
    FREE_END = "free_end"


class RebarPosition(Enum):
    """Beam face carrying the longitudinal bars."""
    TOP = "Top"
    BOT = "Bot"


@dataclass(frozen=True)
class SectionArrangement:
    """
    One bar arrangement for one face of a design section.

    Attributes:
        total_count: Number of bars in the face
        primary_diameter: Diameter of the primary (largest) bars (mm)
        layer_counts: Bars per layer, bottom-most (outermost) layer first
        diameters: Distinct diameters used, descending
        bar_diameters: Diameter of each bar, outermost layer first
        total_area: Provided area (mm²)
        clear_spacing: Clear spacing between bars of the first layer (mm)
        vertical_spacing: Clear distance between layers (mm)
        efficiency: Provided / required area ratio
        waste_count: Bars that could be removed while still meeting the requirement
        score: Local preference score in [0, 100]
    """
    total_count: int
    primary_diameter: int
    layer_counts: Tuple[int, ...]
    diameters: Tuple[int, ...]
    bar_diameters: Tuple[int, ...]
    total_area: float
    clear_spacing: float = 0.0
    vertical_spacing: float = 0.0
    efficiency: float = 1.0
    waste_count: int = 0
    score: float = 0.0

    @classmethod
    def single_diameter(
        cls,
        diameter: int,
        layer_counts: Tuple[int, ...],
        required: float = 0.0,
        clear_spacing: float = 0.0,
        vertical_spacing: float = 0.0,
        score: float = 0.0
    ) -> "SectionArrangement":
        count = sum(layer_counts)
        area = count * bar_area(diameter)
        return cls(
            total_count=count,
            primary_diameter=diameter,
            layer_counts=tuple(layer_counts),
            diameters=(diameter,),
            bar_diameters=(diameter,) * count,
            total_area=area,
            clear_spacing=clear_spacing,
            vertical_spacing=vertical_spacing,
            efficiency=area / required if required > 0 else 1.0,
            waste_count=waste_bars(area, required, diameter),
            score=score
        )

    @classmethod
    def empty(cls) -> "SectionArrangement":
        """Arrangement used where the face needs no steel."""
        return cls(
            total_count=0,
            primary_diameter=0,
            layer_counts=(),
            diameters=(),
            bar_diameters=(),
            total_area=0.0,
            score=100.0
        )

    @property
    def is_empty(self) -> bool:
        return self.total_count == 0

    @property
    def layer_count(self) -> int:
        return len(self.layer_counts)

    @property
    def is_single_diameter(self) -> bool:
        return len(self.diameters) <= 1

    @property
    def is_symmetric(self) -> bool:
        return self.total_count % 2 == 0

    @property
    def signature(self) -> Tuple[int, int]:
        """(diameter, count) key used when intersecting arrangement lists."""
        return (self.primary_diameter, self.total_count)

    def count_of(self, diameter: int) -> int:
        return sum(1 for d in self.bar_diameters if d == diameter)

    def with_score(self, score: float) -> "SectionArrangement":
        return replace(self, score=max(0.0, min(100.0, score)))

    def describe(self) -> str:
        """Human readable form, e.g. ``4D20`` or ``2D22+2D20 (3/1)``."""
        if self.is_empty:
            return "-"
        parts = []
        for d in self.diameters:
            parts.append(f"{self.count_of(d)}D{d}")
        text = "+".join(parts)
        if self.layer_count > 1:
            text += " (" + "/".join(str(n) for n in self.layer_counts) + ")"
        return text


@dataclass
class DesignSection:
    """
    One design checkpoint of the continuous beam.

    Geometry is stored gross (mm); the usable width/height subtract covers and
    the estimated stirrup diameter. Required areas already include torsion
    distribution and the safety factor.
    """
    section_id: str
    span_id: str
    span_index: int
    zone_index: int
    zone_name: str
    global_index: int
    position: float
    relative_position: float
    span_length: float
    width: float
    height: float
    cover_top: float
    cover_bot: float
    cover_side: float
    stirrup_diameter: float
    section_type: SectionType
    req_top: float = 0.0
    req_bot: float = 0.0
    req_torsion: float = 0.0
    req_stirrup: float = 0.0
    is_support_left: bool = False
    is_support_right: bool = False
    valid_top: List[SectionArrangement] = field(default_factory=list)
    valid_bot: List[SectionArrangement] = field(default_factory=list)

    @property
    def usable_width(self) -> float:
        return self.width - 2 * self.cover_side - 2 * self.stirrup_diameter

    @property
    def usable_height(self) -> float:
        return self.height - self.cover_top - self.cover_bot - 2 * self.stirrup_diameter

    @property
    def is_support(self) -> bool:
        return self.section_type == SectionType.SUPPORT

    def required_area(self, position: RebarPosition) -> float:
        return self.req_top if position is RebarPosition.TOP else self.req_bot

    def arrangements(self, position: RebarPosition) -> List[SectionArrangement]:
        return self.valid_top if position is RebarPosition.TOP else self.valid_bot

    def set_arrangements(self, position: RebarPosition, arrangements: List[SectionArrangement]) -> None:
        if position is RebarPosition.TOP:
            self.valid_top = list(arrangements)
        else:
            self.valid_bot = list(arrangements)

    def label(self, position: RebarPosition) -> str:
        return f"{self.section_id}/{position.value}"

    def __repr__(self) -> str:
        return (f"DesignSection({self.section_id}, x={self.position:.2f}m, "
                f"top={self.req_top:.0f}, bot={self.req_bot:.0f}, "
                f"{len(self.valid_top)}/{len(self.valid_bot)} arrangements)")


@dataclass
class BackboneCandidate:
    """
    Continuous backbone shared by every section of the beam.

    The evaluation fields are filled by the global optimizer while the
    candidate is checked against every section.
    """
    diameter: int
    count_top: int
    count_bot: int
    is_valid: bool = True
    failed_sections: List[str] = field(default_factory=list)
    fit_count: int = 0
    estimated_weight: float = 0.0
    total_score: float = 0.0

    @property
    def key(self) -> Tuple[int, int, int]:
        return (self.diameter, self.count_top, self.count_bot)

    @property
    def area_top(self) -> float:
        return self.count_top * bar_area(self.diameter)

    @property
    def area_bot(self) -> float:
        return self.count_bot * bar_area(self.diameter)

    def count(self, position: RebarPosition) -> int:
        return self.count_top if position is RebarPosition.TOP else self.count_bot

    def area(self, position: RebarPosition) -> float:
        return self.area_top if position is RebarPosition.TOP else self.area_bot

    @property
    def option_name(self) -> str:
        return f"{self.count_top}D{self.diameter}/{self.count_bot}D{self.diameter}"


def arrangements_by_signature(arrangements: List[SectionArrangement]) -> Dict[Tuple[int, int], SectionArrangement]:
    """Index arrangements by (diameter, count), keeping the best scored one."""
    index: Dict[Tuple[int, int], SectionArrangement] = {}
    for arr in arrangements:
        current: Optional[SectionArrangement] = index.get(arr.signature)
        if current is None or arr.score > current.score:
            index[arr.signature] = arr
    return index
