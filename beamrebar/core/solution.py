"""
Beam Solutions
==============

Output models of the rebar layout calculator. A ContinuousBeamSolution is one
complete, ranked proposal for the whole beam: a continuous backbone on each
face, per-zone addon bars, stirrup and web-bar labels, steel weight and scores.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .sections import RebarPosition, bar_area


class ResolutionKind(Enum):
    """How a section face was satisfied for a given backbone."""
    NATIVE = "native"  # Backbone alone is a valid arrangement
    LOOKUP = "lookup"  # Addon taken from the section's own valid arrangements
    SYNTHESIZED = "synthesized"  # Addon built on the fly
    FORCED = "forced"  # Multi-layer addon built with the smallest diameter
    FAILED = "failed"


class RebarSpec(BaseModel):
    """
    A group of identical longitudinal bars.

    Attributes:
        diameter: Bar diameter (mm)
        count: Number of bars
        position: Beam face
        layer: 1 for the backbone, 2+ for addons
        layer_breakdown: Bars per layer, outermost first
        is_running_through: Bar continues past its zone (backbone or bridged addon)
        source: How the addon was resolved (None for backbone)
    """
    diameter: int = Field(..., gt=0)
    count: int = Field(..., ge=0)
    position: RebarPosition
    layer: int = Field(default=1, ge=1)
    layer_breakdown: List[int] = Field(default_factory=list)
    is_running_through: bool = False
    source: Optional[ResolutionKind] = None
    length: float = Field(default=0.0, ge=0, description="Bar length (mm)")

    @property
    def area(self) -> float:
        return self.count * bar_area(self.diameter)

    @property
    def display(self) -> str:
        return f"{self.count}D{self.diameter}"

    def matches(self, other: "RebarSpec") -> bool:
        return (self.diameter == other.diameter and self.count == other.count
                and self.layer == other.layer)


class SpanRebarResult(BaseModel):
    """Per-span breakdown of one solution."""
    span_index: int
    span_id: str
    length: float = Field(..., description="Span length (m)")
    top_backbone: RebarSpec
    bot_backbone: RebarSpec
    top_addons: Dict[str, RebarSpec] = Field(default_factory=dict, description="Zone name -> addon")
    bot_addons: Dict[str, RebarSpec] = Field(default_factory=dict, description="Zone name -> addon")
    required_top: Dict[str, float] = Field(default_factory=dict, description="Zone name -> mm²")
    required_bot: Dict[str, float] = Field(default_factory=dict, description="Zone name -> mm²")
    stirrups: Dict[str, str] = Field(default_factory=dict, description="Zone name -> stirrup label")
    web_bars: str = ""

    def addons(self, position: RebarPosition) -> Dict[str, RebarSpec]:
        return self.top_addons if position is RebarPosition.TOP else self.bot_addons

    def backbone(self, position: RebarPosition) -> RebarSpec:
        return self.top_backbone if position is RebarPosition.TOP else self.bot_backbone

    def required(self, position: RebarPosition) -> Dict[str, float]:
        return self.required_top if position is RebarPosition.TOP else self.required_bot

    def provided_area(self, position: RebarPosition, zone: str) -> float:
        """Backbone plus addon area at one zone (mm²); a span-long addon covers every zone."""
        area = self.backbone(position).area
        addons = self.addons(position)
        addon = addons.get(zone, addons.get("Full"))
        if addon is not None:
            area += addon.area
        return area


class ContinuousBeamSolution(BaseModel):
    """
    One ranked rebar proposal for a continuous beam.

    Example:
        >>> solution = solutions[0]
        >>> print(solution.option_name, solution.total_score)
        2D18/2D18 87.5
    """
    option_name: str
    description: str = ""
    backbone_diameter_top: int = 0
    backbone_diameter_bot: int = 0
    backbone_count_top: int = 0
    backbone_count_bot: int = 0
    as_backbone_top: float = 0.0
    as_backbone_bot: float = 0.0
    as_required_top_max: float = 0.0
    as_required_bot_max: float = 0.0
    span_results: List[SpanRebarResult] = Field(default_factory=list)
    reinforcements: Dict[str, RebarSpec] = Field(default_factory=dict)
    running_bars: List[str] = Field(default_factory=list)
    total_steel_weight: float = Field(default=0.0, description="kg")
    splice_count: int = 0
    waste_percentage: float = 0.0
    efficiency_score: float = 0.0
    constructability_score: float = 0.0
    total_score: float = 0.0
    is_valid: bool = True
    is_relaxed: bool = False
    validation_message: str = ""
    failed_sections: List[str] = Field(default_factory=list)

    @classmethod
    def error(cls, message: str) -> "ContinuousBeamSolution":
        """Single invalid solution reporting a pipeline failure."""
        return cls(option_name="ERROR", description=message, is_valid=False,
                   validation_message=message)

    @property
    def addon_count(self) -> int:
        return sum(1 for spec in self.reinforcements.values() if spec.layer > 1)

    def span(self, span_id: str) -> Optional[SpanRebarResult]:
        for result in self.span_results:
            if result.span_id == span_id:
                return result
        return None
