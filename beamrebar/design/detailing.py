"""
Detailing Rules
===============

Geometric and constructive rules shared by the pipeline stages:

1. Clear spacing and layer capacity of longitudinal bars
2. Stirrup legs from beam width, stirrup and web-bar labels
3. Steel weight and lap splices

Areas in mm², dimensions in mm, lengths in mm unless noted.
"""

import math
from typing import List, Sequence

from ..core.sections import STEEL_UNIT_WEIGHT_FACTOR, SectionArrangement, bar_area
from .settings import Settings


def clear_spacing(usable_width: float, diameters: Sequence[float]) -> float:
    """
    Clear spacing between ``len(diameters)`` bars spread over ``usable_width``.

    A single bar reports the free width left beside it.
    """
    n = len(diameters)
    if n == 0:
        return usable_width
    free = usable_width - sum(diameters)
    if n == 1:
        return free
    return free / (n - 1)


def layer_fits(usable_width: float, diameters: Sequence[float], settings: Settings) -> bool:
    """Whether one layer of bars respects the minimum clear spacing."""
    if not diameters:
        return True
    return clear_spacing(usable_width, diameters) >= settings.required_clear_spacing(max(diameters)) - 1e-9


def max_bars_in_layer(usable_width: float, diameter: float, settings: Settings) -> int:
    """Largest number of ``diameter`` bars fitting in one layer."""
    s = settings.required_clear_spacing(diameter)
    if usable_width < diameter:
        return 0
    n = int(math.floor((usable_width + s) / (diameter + s) + 1e-9))
    return max(0, min(n, settings.max_bars_per_layer))


def max_layers_in_height(usable_height: float, diameter: float, settings: Settings) -> int:
    """Number of layers of ``diameter`` bars fitting in the usable height."""
    s = settings.min_layer_spacing
    if usable_height < diameter:
        return 0
    n = int(math.floor((usable_height + s) / (diameter + s) + 1e-9))
    return max(0, min(n, settings.max_layers))


def vertical_clear_spacing(diameter: float, settings: Settings) -> float:
    """Clear distance between two bar layers (mm)."""
    return max(settings.min_layer_spacing, float(diameter))


def stirrup_legs_for_width(width: float, settings: Settings) -> int:
    """
    Number of stirrup legs for a beam of ``width`` (mm) from the width rules.

    Example:
        >>> stirrup_legs_for_width(300, Settings())
        3
    """
    rules = settings.leg_rules()
    if not rules:
        if width <= 250:
            return 2
        if width <= 400:
            return 3
        if width <= 600:
            return 4
        return 5
    for max_width, legs in rules:
        if width <= max_width:
            return legs
    return rules[-1][1]


def max_bars_for_stirrup(legs: int) -> int:
    """Bars one stirrup cage can hold: two per cell plus the corners."""
    cells = max(1, legs - 1)
    return 2 * cells + 2


def stirrup_leg_options(width: float, settings: Settings) -> List[int]:
    base = stirrup_legs_for_width(width, settings)
    options = [base]
    if base - 1 >= 2:
        options.insert(0, base - 1)
    options.extend([base + 1, base + 2])
    if not settings.allow_odd_legs:
        options = [legs for legs in options if legs % 2 == 0]
    return options or [2, 4]


def stirrup_label(shear_per_length: float, torsion_per_length: float, width: float,
                  settings: Settings) -> str:
    """
    Select stirrups for a transverse demand.

    Args:
        shear_per_length: Shear reinforcement Asw/s (mm²/mm)
        torsion_per_length: Torsion stirrup At/s per leg (mm²/mm)
        width: Beam width (mm)
        settings: Detailing settings

    Returns:
        Label ``"{legs}-d{diameter}a{spacing}"``; ``"-"`` when no demand,
        and a ``*`` suffix when even the densest option is short.

    Example:
        >>> stirrup_label(0.8, 0.0, 300, Settings())
        '2-d8a100'
    """
    demand = shear_per_length + 2.0 * torsion_per_length
    if demand <= 1e-4:
        return "-"

    diameters = settings.stirrup_diameters() or [8, 10]
    spacings = sorted(settings.stirrup_spacings, reverse=True)
    min_spacing = 100
    legs_options = stirrup_leg_options(width, settings)

    for d in sorted(diameters):
        for legs in legs_options:
            max_spacing = bar_area(d) * legs / demand
            for s in spacings:
                if min_spacing <= s <= max_spacing:
                    return f"{legs}-d{d}a{s}"

    return f"{legs_options[-1]}-d{max(diameters)}a{min(spacings)}*"


def web_bar_label(torsion_area: float, height: float, settings: Settings) -> str:
    """
    Select web (side) bars from torsion and the constructive depth rule.

    Returns:
        Label ``"{count}d{diameter}"`` or ``"-"`` when none are needed
    """
    diameters = sorted(settings.side_bar_diameters()) or [12, 14]
    required = torsion_area * settings.torsion_ratio_side
    constructive = 2 if height >= settings.web_bar_min_height else 0

    for d in diameters:
        n_torsion = int(math.ceil(required / bar_area(d))) if required > 1.0 else 0
        n = max(n_torsion, constructive)
        if n % 2:
            n += 1
        if 0 < n <= 6:
            return f"{n}d{d}"

    d_max = diameters[-1]
    if required > 1.0:
        n = int(math.ceil(required / bar_area(d_max)))
    else:
        n = constructive
    if n % 2:
        n += 1
    return f"{n}d{d_max}" if n else "-"


def splice_count(length: float, settings: Settings) -> int:
    """Lap splices needed per bar of ``length`` (mm) cut from stock bars."""
    if length <= 0:
        return 0
    return max(0, int(math.ceil(length / settings.standard_bar_length)) - 1)


def bar_weight(diameter: float, length: float, count: int) -> float:
    """
    Weight (kg) of ``count`` bars of ``diameter`` mm and ``length`` mm.

    Example:
        >>> round(bar_weight(20, 1000, 1), 3)
        2.468
    """
    return diameter * diameter * STEEL_UNIT_WEIGHT_FACTOR * (length / 1000.0) * count


def spliced_length(diameter: float, length: float, settings: Settings) -> float:
    """Bar length including lap splices (mm)."""
    return length + splice_count(length, settings) * settings.lap_length(diameter)


def arrangement_fits(arrangement: SectionArrangement, usable_width: float, settings: Settings) -> bool:
    """
    Whether every layer of ``arrangement`` respects the clear-spacing bounds
    in a section of ``usable_width``.

    The minimum applies to every layer, the maximum to the outermost one.
    """
    if arrangement.is_empty:
        return True
    offset = 0
    for index, n in enumerate(arrangement.layer_counts):
        bars = arrangement.bar_diameters[offset:offset + n]
        offset += n
        if not layer_fits(usable_width, bars, settings):
            return False
        if index == 0 and n > 1 and clear_spacing(usable_width, bars) > settings.max_clear_spacing + 1e-9:
            return False
    return True
