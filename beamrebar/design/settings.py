"""
Detailing Settings
==================

Resolved configuration for the rebar layout pipeline: bar inventory, covers,
spacing and layering rules, preferences, scoring weights and search caps.

Settings are validated once at construction and then read by every stage as
concrete values. Areas in mm², dimensions in mm.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.inputs import ExternalConstraints
from ..core.sections import SectionType


def parse_diameter_range(text: str, inventory: List[int]) -> List[int]:
    """
    Select inventory diameters matching a range or list expression.

    Args:
        text: "16-25" (inclusive range), "16,20,25" (list) or "20"
        inventory: Available diameters (mm)

    Returns:
        Matching diameters, ascending. Empty when nothing matches.

    Example:
        >>> parse_diameter_range("16-22", [12, 16, 18, 20, 22, 25])
        [16, 18, 20, 22]
    """
    available = sorted(set(int(d) for d in inventory))
    text = (text or "").strip()
    if not text:
        return available

    range_match = re.fullmatch(r"(\d+)\s*-\s*(\d+)", text)
    if range_match:
        lo, hi = sorted((int(range_match.group(1)), int(range_match.group(2))))
        return [d for d in available if lo <= d <= hi]

    wanted = set()
    for token in re.split(r"[,;\s]+", text):
        token = token.strip().upper().lstrip("DΦ")
        if token.isdigit():
            wanted.add(int(token))
    return [d for d in available if d in wanted]


def parse_leg_rules(text: str) -> List[Tuple[float, int]]:
    """
    Parse stirrup leg rules such as ``"250-2 400-3 600-4"``.

    Each token maps a maximum beam width (mm) to a number of stirrup legs.
    Malformed tokens are skipped.
    """
    rules = []
    for token in (text or "").split():
        parts = token.split("-")
        if len(parts) != 2:
            continue
        try:
            rules.append((float(parts[0]), int(parts[1])))
        except ValueError:
            continue
    return sorted(rules)


class ScoreWeights(BaseModel):
    """Penalty multipliers of the whole-beam constructability score."""
    bar_count: float = Field(default=1.5, ge=0, description="Per bar above preferred count")
    preferred_bar_count: int = Field(default=4, ge=1, description="Bars per face without penalty")
    diameter: float = Field(default=0.5, ge=0, description="Per mm above the soft diameter cap")
    soft_diameter_cap: int = Field(default=20, gt=0, description="Diameter without penalty (mm)")
    asymmetry: float = Field(default=3.0, ge=0, description="Per bar of top/bottom count difference")
    addon_variety: float = Field(default=2.0, ge=0, description="Per distinct addon layout")
    failed_section: float = Field(default=10.0, ge=0, description="Per unresolved section face")
    splice: float = Field(default=0.5, ge=0, description="Per lap splice")
    preferred_diameter_bonus: float = Field(default=5.0, ge=0)


class Settings(BaseModel):
    """
    Rebar detailing settings.

    Example:
        >>> settings = Settings(main_bar_range="16-22", max_layers=2)
        >>> settings.resolve_main_diameters()
        [16, 18, 20, 22]
        >>> settings.required_clear_spacing(22)
        30.0
    """
    # Inventory
    available_diameters: List[int] = Field(
        default_factory=lambda: [6, 8, 10, 12, 14, 16, 18, 20, 22, 25, 28, 32],
        description="Bar diameters in stock (mm)"
    )
    main_bar_range: str = Field(default="16-25", description="Longitudinal bar diameters")
    stirrup_bar_range: str = Field(default="8-10", description="Stirrup diameters")
    side_bar_range: str = Field(default="12-14", description="Web (side) bar diameters")

    # Cover
    cover_top: float = Field(default=25.0, gt=0, description="Top cover (mm)")
    cover_bot: float = Field(default=25.0, gt=0, description="Bottom cover (mm)")
    cover_side: float = Field(default=25.0, gt=0, description="Side cover (mm)")
    stirrup_diameter: float = Field(default=10.0, ge=0, description="Estimated stirrup diameter (mm)")

    # Spacing
    min_clear_spacing: float = Field(default=30.0, gt=0, description="Minimum clear spacing (mm)")
    max_clear_spacing: float = Field(default=200.0, gt=0, description="Maximum clear spacing (mm)")
    use_bar_diameter_for_spacing: bool = True
    bar_diameter_spacing_multiplier: float = Field(default=1.0, gt=0)
    min_layer_spacing: float = Field(default=25.0, gt=0, description="Clear distance between layers (mm)")
    aggregate_size: float = Field(default=20.0, ge=0, description="Maximum aggregate size (mm)")

    # Layering
    min_bars_per_layer: int = Field(default=2, ge=1)
    max_bars_per_layer: int = Field(default=10, ge=1)
    max_layers: int = Field(default=2, ge=1)
    preferred_bars_per_layer: int = Field(default=6, ge=1, description="Soft cap used in local scoring")

    # Safety and torsion
    safety_factor: float = Field(default=1.0, gt=0)
    torsion_ratio_top: float = Field(default=0.25, ge=0, le=1)
    torsion_ratio_bot: float = Field(default=0.25, ge=0, le=1)
    torsion_ratio_side: float = Field(default=0.5, ge=0, le=1)

    # Zones
    zone_l1_ratio: float = Field(default=0.25, ge=0, le=0.5, description="Left support zone / span")
    zone_l2_ratio: float = Field(default=0.25, ge=0, le=0.5, description="Right support zone / span")

    # Preferences
    prefer_symmetric: bool = True
    prefer_fewer_bars: bool = True
    prefer_single_diameter: bool = True
    prefer_even_diameter: bool = False
    prefer_vertical_alignment: bool = True
    allow_diameter_mixing: bool = False
    preferred_diameter: Optional[int] = Field(default=None, gt=0)

    # Stirrups and web bars
    enable_stirrup_leg_rules: bool = False
    auto_legs_rules: str = "250-2 400-3 600-4"
    allow_odd_legs: bool = False
    stirrup_spacings: List[int] = Field(default_factory=lambda: [100, 150, 200, 250])
    web_bar_min_height: float = Field(default=700.0, gt=0, description="Height requiring web bars (mm)")

    # Scoring
    efficiency_weight: float = Field(default=0.5, ge=0, le=1)
    waste_penalty_score: float = Field(default=2.0, ge=0)
    alignment_penalty_score: float = Field(default=25.0, ge=0)
    mixed_diameter_penalty: float = Field(default=5.0, ge=0)
    native_match_bonus: float = Field(default=10.0, ge=0)
    score_weights: ScoreWeights = Field(default_factory=ScoreWeights)

    # Detailing
    standard_bar_length: float = Field(default=11700.0, gt=0, description="Stock bar length (mm)")
    lap_splice_multiplier: float = Field(default=40.0, gt=0, description="Lap length / diameter")

    # Search caps
    max_arrangements_per_diameter: int = Field(default=20, ge=1)
    max_arrangements_per_section: int = Field(default=20, ge=1)
    max_layer_configurations: int = Field(default=100, ge=1)
    extra_bar_search_depth: int = Field(default=4, ge=0)
    max_backbone_candidates: int = Field(default=60, ge=1)
    max_solutions: int = Field(default=5, ge=1)

    # Tolerances
    failed_section_tolerance: float = Field(default=0.2, ge=0, le=1)
    support_position_tolerance: float = Field(default=0.02, ge=0, description="m")
    merge_bar_count_tolerance: int = Field(default=0, ge=0)
    merge_layer_count_tolerance: int = Field(default=1, ge=0)
    negligible_area: float = Field(default=1.0, ge=0, description="mm²")

    @field_validator('available_diameters', 'stirrup_spacings')
    @classmethod
    def validate_positive_list(cls, v: List[int]) -> List[int]:
        """Sizes must be positive."""
        if any(d <= 0 for d in v):
            raise ValueError(f"Values must be positive, got {v}")
        return sorted(set(v))

    @model_validator(mode='after')
    def check_consistency(self) -> "Settings":
        if self.max_clear_spacing < self.min_clear_spacing:
            raise ValueError(
                f"max_clear_spacing ({self.max_clear_spacing}) < "
                f"min_clear_spacing ({self.min_clear_spacing})"
            )
        if self.max_bars_per_layer < self.min_bars_per_layer:
            raise ValueError("max_bars_per_layer must be >= min_bars_per_layer")
        return self

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "Settings":
        """Build settings from a plain dictionary (e.g. parsed YAML/JSON)."""
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, text: str) -> "Settings":
        """Build settings from a JSON document."""
        return cls.model_validate_json(text)

    @property
    def area_tolerance(self) -> float:
        """Fractional shortfall accepted against required areas."""
        return max(0.0, 1.0 - self.safety_factor)

    @property
    def constructability_weight(self) -> float:
        return 1.0 - self.efficiency_weight

    def required_clear_spacing(self, diameter: float) -> float:
        """Minimum clear spacing between bars of ``diameter`` (mm)."""
        spacing = self.min_clear_spacing
        if self.use_bar_diameter_for_spacing:
            spacing = max(spacing, diameter * self.bar_diameter_spacing_multiplier)
        return float(max(spacing, 1.33 * self.aggregate_size))

    def resolve_main_diameters(self, constraints: Optional[ExternalConstraints] = None) -> List[int]:
        """
        Longitudinal diameters every stage may use.

        Applies the main-bar range, the even-diameter preference, the
        allowed-diameter override and the forced diameter of ``constraints``.
        """
        diameters = parse_diameter_range(self.main_bar_range, self.available_diameters)

        if self.prefer_even_diameter:
            even = [d for d in diameters if d % 2 == 0]
            if even:
                diameters = even

        if constraints is not None and constraints.allowed_diameters:
            allowed = set(constraints.allowed_diameters)
            filtered = [d for d in diameters if d in allowed]
            if not filtered:
                filtered = [d for d in self.available_diameters if d in allowed]
            diameters = filtered

        if constraints is not None and constraints.forced_diameter:
            forced = constraints.forced_diameter
            if forced in self.available_diameters and forced not in diameters:
                diameters.append(forced)

        return sorted(set(diameters))

    def resolve_preferred_diameter(self, constraints: Optional[ExternalConstraints] = None) -> Optional[int]:
        if constraints is not None and constraints.preferred_diameter:
            return constraints.preferred_diameter
        return self.preferred_diameter

    def stirrup_diameters(self) -> List[int]:
        return parse_diameter_range(self.stirrup_bar_range, self.available_diameters)

    def side_bar_diameters(self) -> List[int]:
        return parse_diameter_range(self.side_bar_range, self.available_diameters)

    def leg_rules(self) -> List[Tuple[float, int]]:
        return parse_leg_rules(self.auto_legs_rules)

    def lap_length(self, diameter: float) -> float:
        """Lap splice length (mm)."""
        return self.lap_splice_multiplier * diameter

    def torsion_ratio(self, top: bool) -> float:
        return self.torsion_ratio_top if top else self.torsion_ratio_bot

    class Config:
        """Pydantic configuration."""
        frozen = False


class DiscretizationConfig(BaseModel):
    """
    Relative zone positions along each span and their section types.

    Example:
        >>> DiscretizationConfig.default().zone_names()
        ['Left', 'Mid', 'Right']
    """
    positions: List[float] = Field(..., min_length=1, description="Relative positions in [0, 1]")
    section_types: List[SectionType] = Field(..., min_length=1)

    @field_validator('positions')
    @classmethod
    def validate_positions(cls, v: List[float]) -> List[float]:
        """Positions must be sorted and inside the span."""
        if any(p < 0 or p > 1 for p in v):
            raise ValueError(f"Zone positions must lie in [0, 1], got {v}")
        if list(v) != sorted(v):
            raise ValueError(f"Zone positions must be ascending, got {v}")
        return v

    @model_validator(mode='after')
    def check_lengths(self) -> "DiscretizationConfig":
        if len(self.positions) != len(self.section_types):
            raise ValueError("positions and section_types must have the same length")
        return self

    @classmethod
    def default(cls) -> "DiscretizationConfig":
        """Three zones: support, mid-span, support."""
        return cls(
            positions=[0.0, 0.5, 1.0],
            section_types=[SectionType.SUPPORT, SectionType.MID_SPAN, SectionType.SUPPORT]
        )

    @classmethod
    def detailed(cls) -> "DiscretizationConfig":
        """Five zones including quarter points."""
        return cls(
            positions=[0.0, 0.25, 0.5, 0.75, 1.0],
            section_types=[
                SectionType.SUPPORT, SectionType.QUARTER_SPAN, SectionType.MID_SPAN,
                SectionType.QUARTER_SPAN, SectionType.SUPPORT
            ]
        )

    @property
    def zone_count(self) -> int:
        return len(self.positions)

    def zone_names(self) -> List[str]:
        if self.zone_count == 3:
            return ["Left", "Mid", "Right"]
        if self.zone_count == 5:
            return ["Left", "QuarterLeft", "Mid", "QuarterRight", "Right"]
        return [f"Z{i}" for i in range(self.zone_count)]
