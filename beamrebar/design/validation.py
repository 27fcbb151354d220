"""
Input Validation
================

Fail-fast checks run before the pipeline starts. Invalid data produces a
ValidationResult with ``is_valid=False`` and a message; suspicious but usable
data produces warnings. Nothing here raises for bad data.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..core.inputs import BeamGeometry, SpanForceResult
from ..core.sections import bar_area
from .settings import Settings, parse_diameter_range


MAX_REASONABLE_SPAN = 15.0  # m
CAPACITY_CHECK_LAYERS = 3


@dataclass
class ValidationResult:
    """Outcome of input validation."""
    is_valid: bool = True
    message: str = ""
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def success(cls, warnings: Optional[List[str]] = None) -> "ValidationResult":
        return cls(is_valid=True, warnings=list(warnings or []))

    @classmethod
    def failure(cls, message: str) -> "ValidationResult":
        return cls(is_valid=False, message=message)


def validate_settings(settings: Settings) -> ValidationResult:
    """Check the bar inventory and the rules the solver depends on."""
    warnings = []

    if not settings.available_diameters:
        return ValidationResult.failure("No bar diameters available in the inventory")

    if not parse_diameter_range(settings.main_bar_range, settings.available_diameters):
        return ValidationResult.failure(
            f"Main bar range '{settings.main_bar_range}' selects no available diameter"
        )

    if settings.min_clear_spacing < 25:
        warnings.append(f"Minimum clear spacing {settings.min_clear_spacing:.0f} mm < 25 mm")
    if settings.max_layers > 3:
        warnings.append(f"{settings.max_layers} layers allowed; more than 3 is hard to build")
    if settings.safety_factor < 1.0:
        warnings.append(f"Safety factor {settings.safety_factor} < 1.0 accepts under-reinforcement")
    if settings.safety_factor > 1.1:
        warnings.append(f"Safety factor {settings.safety_factor} > 1.1 may waste steel")

    return ValidationResult.success(warnings)


def validate_forces(forces: List[SpanForceResult]) -> ValidationResult:
    """Check the sampled demand arrays."""
    warnings = []

    if not forces:
        return ValidationResult.failure("No force results supplied")

    for i, result in enumerate(forces):
        if not result.top_area:
            warnings.append(f"Span {i}: no top area samples, assuming 0")
        if not result.bot_area:
            warnings.append(f"Span {i}: no bottom area samples, assuming 0")
        arrays = (("top", result.top_area), ("bottom", result.bot_area),
                  ("torsion", result.torsion_area), ("shear", result.shear_area))
        for name, values in arrays:
            if any(v < 0 for v in values):
                return ValidationResult.failure(f"Span {i}: negative {name} area")

    if not any(result.has_demand for result in forces):
        return ValidationResult.failure("No positive required steel area in any span")

    return ValidationResult.success(warnings)


def validate_geometry(geometry: Optional[BeamGeometry], forces: List[SpanForceResult]) -> ValidationResult:
    """Check span dimensions, taken from the geometry or from the force results."""
    warnings = []

    if geometry is None or not geometry.spans:
        for i, result in enumerate(forces):
            if result.width is None or result.height is None:
                return ValidationResult.failure(f"Span {i}: no geometry and no section dimensions")
            if result.width_mm <= 0 or result.height_mm <= 0:
                return ValidationResult.failure(f"Span {i}: non-positive section dimensions")
            if result.length is None:
                return ValidationResult.failure(f"Span {i}: no geometry and no span length")
        return ValidationResult.success(warnings)

    for span in geometry.spans:
        if span.width_mm <= 0:
            return ValidationResult.failure(f"Span {span.span_id}: width must be positive")
        if span.height_mm <= 0:
            return ValidationResult.failure(f"Span {span.span_id}: height must be positive")
        if span.length <= 0:
            return ValidationResult.failure(f"Span {span.span_id}: length must be positive")
        if span.length > MAX_REASONABLE_SPAN:
            warnings.append(f"Span {span.span_id}: length {span.length:.1f} m > 15 m, check input")

    for i in range(len(geometry.spans), len(forces)):
        result = forces[i]
        if result.width is None or result.height is None or result.length is None:
            return ValidationResult.failure(f"Span {i}: not in the geometry and no section dimensions")

    if len(geometry.supports) < 2:
        warnings.append(f"Beam '{geometry.name}' has fewer than 2 supports")

    return ValidationResult.success(warnings)


def cross_validate(geometry: Optional[BeamGeometry], forces: List[SpanForceResult],
                   settings: Settings) -> ValidationResult:
    """Consistency checks between geometry, demand and inventory."""
    warnings = []

    if geometry is not None and geometry.spans and len(geometry.spans) != len(forces):
        warnings.append(
            f"Span count mismatch: geometry has {len(geometry.spans)} spans, "
            f"force results have {len(forces)}"
        )

    max_required = max(
        (v for result in forces for v in list(result.top_area) + list(result.bot_area)),
        default=0.0
    )
    max_diameter = max(settings.available_diameters)
    capacity = settings.min_bars_per_layer * bar_area(max_diameter) * CAPACITY_CHECK_LAYERS
    if max_required > capacity:
        warnings.append(
            f"Required area {max_required:.0f} mm² exceeds {capacity:.0f} mm² "
            f"({CAPACITY_CHECK_LAYERS} layers of {settings.min_bars_per_layer}D{max_diameter})"
        )

    return ValidationResult.success(warnings)


def validate_calculator_input(geometry: Optional[BeamGeometry], forces: List[SpanForceResult],
                              settings: Settings) -> ValidationResult:
    """
    Run every input check in order and stop at the first failure.

    Args:
        geometry: Beam geometry, or None when dimensions come with the forces
        forces: One SpanForceResult per span
        settings: Detailing settings

    Returns:
        ValidationResult with all collected warnings
    """
    warnings: List[str] = []
    for check in (
        lambda: validate_settings(settings),
        lambda: validate_forces(forces),
        lambda: validate_geometry(geometry, forces),
        lambda: cross_validate(geometry, forces, settings),
    ):
        result = check()
        if not result.is_valid:
            return result
        warnings.extend(result.warnings)
    return ValidationResult.success(warnings)
