"""
Beam Geometry and Analysis Inputs
=================================

Typed inputs of the rebar layout calculator:

- BeamGeometry / SpanGeometry / SupportInfo: spans and supports of one
  continuous beam, with an explicit length unit for section dimensions.
- SpanForceResult: sampled reinforcement demand along one span
  (required steel areas from the structural analysis, mm²).
- ExternalConstraints: diameter/count constraints coming from a
  neighbouring beam or from the user.
"""

from enum import Enum
from typing import List, Optional

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator


class LengthUnit(Enum):
    """Unit of section dimensions supplied by the caller."""
    MM = "mm"
    CM = "cm"
    M = "m"
    AUTO = "auto"  # Legacy magnitude guess

    def to_mm(self, value: float) -> float:
        """
        Convert a section dimension to millimetres.

        Example:
            >>> LengthUnit.CM.to_mm(30)
            300.0
            >>> LengthUnit.AUTO.to_mm(0.3)
            300.0
        """
        if self is LengthUnit.MM:
            return float(value)
        if self is LengthUnit.CM:
            return float(value) * 10.0
        if self is LengthUnit.M:
            return float(value) * 1000.0
        if value <= 0:
            return float(value)
        if value < 5:
            return float(value) * 1000.0
        if value < 100:
            return float(value) * 10.0
        return float(value)


class SupportType(Enum):
    """Closed set of support kinds."""
    COLUMN = "column"
    WALL = "wall"
    BEAM = "beam"
    GIRDER = "girder"
    FREE_END = "free_end"

    @classmethod
    def from_label(cls, label: str) -> "SupportType":
        """
        Parse a support tag such as ``"Column"`` or ``"FreeEnd"``.

        Raises:
            ValueError: If the tag is not a known support type
        """
        key = label.strip().lower().replace(" ", "").replace("_", "").replace("-", "")
        for member in cls:
            if member.value.replace("_", "") == key:
                return member
        raise ValueError(f"Unknown support type: {label!r}")


class SupportInfo(BaseModel):
    """
    Support of a continuous beam.

    Attributes:
        position: Distance from the beam start (m)
        support_type: Kind of support
        width: Support width along the beam (mm), 0 if unknown
    """
    position: float = Field(..., ge=0, description="Position along the beam (m)")
    support_type: SupportType = Field(default=SupportType.COLUMN, description="Support kind")
    width: float = Field(default=0.0, ge=0, description="Support width (mm)")

    @field_validator('support_type', mode='before')
    @classmethod
    def parse_support_type(cls, v):
        """Accept textual tags, rejecting unknown ones."""
        if isinstance(v, str):
            return SupportType.from_label(v)
        return v

    @property
    def is_free_end(self) -> bool:
        return self.support_type == SupportType.FREE_END


class SpanGeometry(BaseModel):
    """
    One span of a continuous beam.

    Attributes:
        span_id: Span identifier used in output keys (e.g. "S1")
        length: Clear span length (m)
        width: Section width in ``unit``
        height: Section height in ``unit``
        unit: Unit of width and height
    """
    span_id: str = Field(..., min_length=1, description="Span identifier")
    length: float = Field(..., description="Span length (m)")
    width: float = Field(..., description="Section width")
    height: float = Field(..., description="Section height")
    unit: LengthUnit = Field(default=LengthUnit.MM, description="Unit of width/height")

    @property
    def width_mm(self) -> float:
        return self.unit.to_mm(self.width)

    @property
    def height_mm(self) -> float:
        return self.unit.to_mm(self.height)

    class Config:
        """Pydantic configuration."""
        frozen = False


class BeamGeometry(BaseModel):
    """Spans and supports of one continuous beam."""
    name: str = Field(default="Beam", description="Beam group name")
    spans: List[SpanGeometry] = Field(default_factory=list, description="Spans left to right")
    supports: List[SupportInfo] = Field(default_factory=list, description="Supports left to right")

    @property
    def total_length(self) -> float:
        """Total beam length (m)."""
        return sum(span.length for span in self.spans)

    def first_support_free(self) -> bool:
        return bool(self.supports) and self.supports[0].is_free_end

    def last_support_free(self) -> bool:
        return bool(self.supports) and self.supports[-1].is_free_end

    def support_width_at(self, span_index: int) -> float:
        """Width (mm) of the support at the right end of span ``span_index``."""
        if span_index + 1 < len(self.supports):
            return self.supports[span_index + 1].width
        return 0.0


class SpanForceResult(BaseModel):
    """
    Sampled reinforcement demand along one span.

    All arrays are sampled at equal spacing from the left end to the right end
    of the span. Areas are in mm², shear reinforcement in mm²/mm (Asw/s).
    Width/height are optional and only used when no BeamGeometry is given.
    """
    top_area: List[float] = Field(default_factory=list, description="Required top area (mm²)")
    bot_area: List[float] = Field(default_factory=list, description="Required bottom area (mm²)")
    torsion_area: List[float] = Field(default_factory=list, description="Torsion longitudinal area (mm²)")
    shear_area: List[float] = Field(default_factory=list, description="Shear reinforcement Asw/s (mm²/mm)")
    stirrup_torsion_area: List[float] = Field(default_factory=list, description="Torsion stirrup At/s (mm²/mm)")
    width: Optional[float] = Field(default=None, description="Section width")
    height: Optional[float] = Field(default=None, description="Section height")
    length: Optional[float] = Field(default=None, gt=0, description="Span length (m)")
    unit: LengthUnit = Field(default=LengthUnit.MM, description="Unit of width/height")

    @field_validator('top_area', 'bot_area', 'torsion_area', 'shear_area', 'stirrup_torsion_area', mode='before')
    @classmethod
    def coerce_array(cls, v):
        """Accept numpy arrays and other sequences."""
        if v is None:
            return []
        return np.asarray(v, dtype=float).ravel().tolist()

    @property
    def width_mm(self) -> Optional[float]:
        return None if self.width is None else self.unit.to_mm(self.width)

    @property
    def height_mm(self) -> Optional[float]:
        return None if self.height is None else self.unit.to_mm(self.height)

    @property
    def has_demand(self) -> bool:
        return any(v > 0 for v in self.top_area) or any(v > 0 for v in self.bot_area)


class ExternalConstraints(BaseModel):
    """
    Diameter and count constraints imposed from outside the beam.

    Attributes:
        forced_diameter: Backbone diameter that must be used (mm)
        forced_count_top: Backbone top count that must be used
        forced_count_bot: Backbone bottom count that must be used
        preferred_diameter: Diameter favoured in scoring (mm)
        allowed_diameters: Restricts every stage to these diameters
        source: Free text naming where the constraint came from
    """
    forced_diameter: Optional[int] = Field(default=None, gt=0)
    forced_count_top: Optional[int] = Field(default=None, gt=0)
    forced_count_bot: Optional[int] = Field(default=None, gt=0)
    preferred_diameter: Optional[int] = Field(default=None, gt=0)
    allowed_diameters: Optional[List[int]] = Field(default=None)
    source: str = Field(default="", description="Origin of the constraint")

    @model_validator(mode='after')
    def check_allowed(self) -> "ExternalConstraints":
        if self.allowed_diameters is not None and len(self.allowed_diameters) == 0:
            raise ValueError("allowed_diameters must not be empty when given")
        return self

    class Config:
        """Pydantic configuration."""
        frozen = True
