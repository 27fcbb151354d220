"""
Global Optimizer
================

Stage 4 of the pipeline: choose the continuous backbone and the addon bars.

1. Harvest backbone candidates from (diameter, count) pairs the section
   solver already proved feasible, plus balanced combinations
2. Re-validate every candidate against the usable width of every section
3. Resolve each section face: native match, lookup in the section's own
   options, synthesized addon, forced smallest-diameter addon, or failure
4. Accept candidates within the failed-face tolerance (relaxed fallback to
   the best fit otherwise), score, post-process and rank them
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Set, Tuple

from ..core.inputs import BeamGeometry, ExternalConstraints
from ..core.sections import BackboneCandidate, DesignSection, RebarPosition, bar_area
from ..core.solution import ContinuousBeamSolution, RebarSpec, ResolutionKind, SpanRebarResult
from ..design import detailing
from ..design.settings import Settings
from . import scoring

logger = logging.getLogger(__name__)

EPS = 1e-6
BRIDGE_MIN_GAP = 1000.0  # mm
BRIDGE_GAP_DIAMETERS = 40.0


@dataclass
class FaceResolution:
    """How one section face is covered by a backbone candidate."""
    section: DesignSection
    position: RebarPosition
    required: float
    kind: ResolutionKind
    backbone_area: float
    addon_diameter: int = 0
    addon_layers: Tuple[int, ...] = ()
    addon_start_layer: int = 1

    @property
    def addon_count(self) -> int:
        return sum(self.addon_layers)

    @property
    def has_addon(self) -> bool:
        return self.addon_count > 0

    @property
    def addon_area(self) -> float:
        return self.addon_count * bar_area(self.addon_diameter) if self.has_addon else 0.0

    @property
    def provided(self) -> float:
        return self.backbone_area + self.addon_area

    @property
    def label(self) -> str:
        return self.section.label(self.position)


@dataclass
class CandidateEvaluation:
    """A backbone candidate resolved against every section face."""
    candidate: BackboneCandidate
    resolutions: List[FaceResolution]
    required_faces: int

    @property
    def failed(self) -> List[str]:
        return [r.label for r in self.resolutions if r.kind is ResolutionKind.FAILED]

    @property
    def failure_ratio(self) -> float:
        if self.required_faces == 0:
            return 0.0
        return len(self.failed) / self.required_faces


def solution_rank_key(solution: ContinuousBeamSolution) -> Tuple[bool, float, float, str]:
    """Valid first, then higher score, then lighter, then name."""
    return (not solution.is_valid, -round(solution.total_score, 6),
            round(solution.total_steel_weight, 6), solution.option_name)


class GlobalOptimizer:
    """
    Searches backbone candidates and builds ranked whole-beam solutions.

    Example:
        >>> optimizer = GlobalOptimizer(Settings())
        >>> solutions = optimizer.find_best_solutions(sections, geometry)
        >>> solutions[0].option_name
        '2D18/2D18'
    """

    def __init__(self, settings: Settings, constraints: Optional[ExternalConstraints] = None):
        self.settings = settings
        self.constraints = constraints
        self.diameters = settings.resolve_main_diameters(constraints)
        self.preferred_diameter = settings.resolve_preferred_diameter(constraints)
        self.candidates: List[BackboneCandidate] = []

    def find_best_solutions(self, sections: List[DesignSection],
                            geometry: Optional[BeamGeometry] = None) -> List[ContinuousBeamSolution]:
        """
        Ranked solutions for the beam, best first.

        Returns:
            Up to ``max_solutions`` solutions; an empty list when no
            backbone candidate fits the beam geometry at all
        """
        s = self.settings
        if not sections:
            return []

        harvested = self.harvest_candidates(sections)
        fitting = [c for c in harvested if self.passes_geometry(c, sections)]
        logger.debug("Harvested %d backbone candidates, %d pass geometry", len(harvested), len(fitting))
        if not fitting:
            logger.warning("No backbone candidate fits every section")
            self.candidates = []
            return []

        ranked = sorted(fitting, key=lambda c: (self.estimate_cost(c, sections), c.key))
        self.candidates = ranked[:s.max_backbone_candidates]
        evaluations = [self.evaluate(c, sections) for c in self.candidates]

        accepted = [e for e in evaluations if e.failure_ratio <= s.failed_section_tolerance + EPS]
        relaxed = False
        if not accepted:
            best = max(evaluations, key=lambda e: e.candidate.fit_count)
            logger.warning("No candidate within failure tolerance, relaxing to %s (%d faces fit)",
                           best.candidate.option_name, best.candidate.fit_count)
            accepted = [best]
            relaxed = True

        accepted_keys = {e.candidate.key for e in accepted}
        for evaluation in evaluations:
            evaluation.candidate.is_valid = evaluation.candidate.key in accepted_keys

        solutions = [self.build_solution(e, sections, geometry, relaxed) for e in accepted]
        solutions.sort(key=solution_rank_key)
        return solutions[:s.max_solutions]

    def base_count(self, diameter: int, sections: List[DesignSection]) -> int:
        """Lightest backbone count respecting the per-layer minimum and maximum spacing."""
        s = self.settings
        n = s.min_bars_per_layer
        widest = max(section.usable_width for section in sections)
        if widest > s.max_clear_spacing:
            n = max(n, int(math.ceil((widest + s.max_clear_spacing)
                                     / (diameter + s.max_clear_spacing) - 1e-9)))
        if s.prefer_symmetric and n % 2:
            n += 1
        return n

    def harvest_candidates(self, sections: List[DesignSection]) -> List[BackboneCandidate]:
        """
        Backbone candidates from the (diameter, count) pairs of the solved sections.

        When no section needs steel, every allowed diameter is offered at its
        base count.
        """
        allowed = set(self.diameters)
        counts: Dict[RebarPosition, Dict[int, Set[int]]] = {p: {} for p in RebarPosition}
        frequency: Dict[int, int] = {}

        for section in sections:
            for position in RebarPosition:
                for arr in section.arrangements(position):
                    if arr.is_empty or arr.primary_diameter not in allowed:
                        continue
                    d = arr.primary_diameter
                    counts[position].setdefault(d, set()).add(arr.count_of(d))
                    frequency[d] = frequency.get(d, 0) + 1

        c = self.constraints
        forced_top = c.forced_count_top if c is not None else None
        forced_bot = c.forced_count_bot if c is not None else None
        # Negligible demand everywhere leaves nothing to harvest
        diameters = sorted(frequency) or list(self.diameters)
        if c is not None and c.forced_diameter:
            diameters = [c.forced_diameter]

        keys: Set[Tuple[int, int, int]] = set()
        for d in diameters:
            base = self.base_count(d, sections)
            tops = {forced_top} if forced_top else counts[RebarPosition.TOP].get(d, set()) | {base}
            bots = {forced_bot} if forced_bot else counts[RebarPosition.BOT].get(d, set()) | {base}
            for n_top in tops:
                for n_bot in bots:
                    keys.add((d, n_top, n_bot))

        if not forced_top and not forced_bot:
            common = sorted(frequency, key=lambda d: (-frequency[d], -d))[:2]
            for d in common:
                if d not in diameters:
                    continue
                shared = counts[RebarPosition.TOP].get(d, set()) | counts[RebarPosition.BOT].get(d, set())
                for n in shared:
                    keys.add((d, n, n))

        return [BackboneCandidate(d, n_top, n_bot) for d, n_top, n_bot in sorted(keys)]

    def passes_geometry(self, candidate: BackboneCandidate, sections: List[DesignSection]) -> bool:
        """Whether the backbone fits one layer of every section within the spacing bounds."""
        s = self.settings
        d = candidate.diameter
        for section in sections:
            width = section.usable_width
            for position in RebarPosition:
                n = candidate.count(position)
                if n > s.max_bars_per_layer:
                    return False
                bars = [d] * n
                if not detailing.layer_fits(width, bars, s):
                    return False
                if n > 1 and detailing.clear_spacing(width, bars) > s.max_clear_spacing + EPS:
                    return False
        return True

    def estimate_cost(self, candidate: BackboneCandidate, sections: List[DesignSection]) -> float:
        """Cheap steel estimate used to pre-rank candidates before full evaluation."""
        tolerance = self.settings.area_tolerance
        cost = 0.0
        for section in sections:
            for position in RebarPosition:
                required = section.required_area(position)
                area = candidate.area(position)
                cost += max(area, required)
                if area < required * (1.0 - tolerance) - EPS:
                    cost += bar_area(candidate.diameter)
        return cost

    def evaluate(self, candidate: BackboneCandidate, sections: List[DesignSection]) -> CandidateEvaluation:
        s = self.settings
        resolutions = []
        required_faces = 0
        for section in sections:
            for position in RebarPosition:
                if section.required_area(position) > s.negligible_area:
                    required_faces += 1
                resolutions.append(self.resolve_face(candidate, section, position))

        evaluation = CandidateEvaluation(candidate, resolutions, required_faces)
        candidate.failed_sections = evaluation.failed
        candidate.fit_count = len(resolutions) - len(candidate.failed_sections)
        return evaluation

    def resolve_face(self, candidate: BackboneCandidate, section: DesignSection,
                     position: RebarPosition) -> FaceResolution:
        """
        Cover one face: native, lookup, synthesized, forced or failed.
        """
        s = self.settings
        required = section.required_area(position)
        needed = required * (1.0 - s.area_tolerance)
        d = candidate.diameter
        n = candidate.count(position)
        resolution = FaceResolution(section, position, required, ResolutionKind.NATIVE, candidate.area(position))

        if required <= s.negligible_area or resolution.backbone_area >= needed - EPS:
            return resolution

        # Stirrups enclose both layers symmetrically: even backbones take even addons
        even = n % 2 == 0

        found = self._lookup(section, position, d, n, needed, even)
        if found is not None:
            start, layers = found
            return replace(resolution, kind=ResolutionKind.LOOKUP, addon_diameter=d,
                           addon_layers=layers, addon_start_layer=start)

        deficit = needed - resolution.backbone_area
        addon_diameters = [d]
        if s.allow_diameter_mixing:
            addon_diameters += [x for x in sorted(self.diameters, reverse=True) if x < d]
        for addon_d in addon_diameters:
            layout = self._synthesize(section, d, n, addon_d, deficit, even, pyramidal=True)
            if layout is not None:
                return replace(resolution, kind=ResolutionKind.SYNTHESIZED, addon_diameter=addon_d,
                               addon_layers=layout[1], addon_start_layer=layout[0])

        smallest = min(self.diameters)
        layout = self._synthesize(section, d, n, smallest, deficit, even, pyramidal=False)
        if layout is not None:
            return replace(resolution, kind=ResolutionKind.FORCED, addon_diameter=smallest,
                           addon_layers=layout[1], addon_start_layer=layout[0])

        logger.debug("%s cannot be covered with backbone %s", section.label(position), candidate.option_name)
        return replace(resolution, kind=ResolutionKind.FAILED)

    def _lookup(self, section: DesignSection, position: RebarPosition, diameter: int, count: int,
                needed: float, even: bool) -> Optional[Tuple[int, Tuple[int, ...]]]:
        """Smallest approved arrangement containing the backbone in its first layer."""
        best = None
        best_key = None
        for arr in section.arrangements(position):
            if not arr.is_single_diameter or arr.primary_diameter != diameter:
                continue
            if arr.total_count <= count or arr.total_area < needed - EPS:
                continue
            if arr.layer_counts[0] < count:
                continue
            if even and (arr.total_count - count) % 2:
                continue
            key = (arr.total_area, arr.layer_count, -arr.score)
            if best_key is None or key < best_key:
                best, best_key = arr, key

        if best is None:
            return None
        layers = (best.layer_counts[0] - count,) + best.layer_counts[1:]
        if layers[0] == 0:
            return 2, layers[1:]
        return 1, layers

    def _synthesize(self, section: DesignSection, diameter: int, count: int, addon_diameter: int,
                    deficit: float, even: bool, pyramidal: bool) -> Optional[Tuple[int, Tuple[int, ...]]]:
        """
        Addon of ``addon_diameter`` covering ``deficit``.

        Tries the backbone layer first, then extra layers up to the layer limit.
        Pyramidal mode keeps every extra layer at or below the backbone count.

        Returns:
            (first layer index, bars per layer) or None
        """
        s = self.settings
        width = section.usable_width
        n = max(1, int(math.ceil(deficit / bar_area(addon_diameter) - 1e-9)))
        if even and n % 2:
            n += 1

        if count + n <= s.max_bars_per_layer and detailing.layer_fits(width, [diameter] * count + [addon_diameter] * n, s):
            return 1, (n,)

        layers_available = detailing.max_layers_in_height(section.usable_height, max(diameter, addon_diameter), s) - 1
        cap = detailing.max_bars_in_layer(width, addon_diameter, s)
        if pyramidal:
            cap = min(cap, count)
        if even and cap % 2:
            cap -= 1
        if layers_available < 1 or cap < 1 or n > cap * layers_available:
            return None

        layers = []
        remaining = n
        while remaining > 0:
            placed = min(cap, remaining)
            layers.append(placed)
            remaining -= placed
        return 2, tuple(layers)

    def addon_length(self, section: DesignSection, diameter: int) -> float:
        """Cut length (mm) of an addon bar anchored past its zone."""
        s = self.settings
        span = section.span_length * 1000.0
        lap = s.lap_length(diameter)
        if section.relative_position <= 0.0:
            return span * s.zone_l1_ratio + lap
        if section.relative_position >= 1.0:
            return span * s.zone_l2_ratio + lap
        return span * (1.0 - s.zone_l1_ratio - s.zone_l2_ratio) + 2 * lap

    def build_solution(self, evaluation: CandidateEvaluation, sections: List[DesignSection],
                       geometry: Optional[BeamGeometry], relaxed: bool) -> ContinuousBeamSolution:
        """Assemble, post-process, score and validate one solution."""
        s = self.settings
        candidate = evaluation.candidate
        d = candidate.diameter
        by_face = {(r.section.section_id, r.position): r for r in evaluation.resolutions}

        spans: Dict[int, List[DesignSection]] = {}
        for section in sections:
            spans.setdefault(section.span_index, []).append(section)
        beam_length = sum(group[0].span_length for group in spans.values()) * 1000.0
        backbone_length = detailing.spliced_length(d, beam_length, s)

        backbones = {
            position: RebarSpec(
                diameter=d, count=candidate.count(position), position=position, layer=1,
                layer_breakdown=[candidate.count(position)], is_running_through=True,
                length=backbone_length
            )
            for position in RebarPosition
        }

        span_results = []
        reinforcements: Dict[str, RebarSpec] = {}
        for span_index in sorted(spans):
            group = spans[span_index]
            first = group[0]
            addons: Dict[RebarPosition, Dict[str, RebarSpec]] = {p: {} for p in RebarPosition}
            required: Dict[RebarPosition, Dict[str, float]] = {p: {} for p in RebarPosition}
            stirrups = {}
            for section in group:
                for position in RebarPosition:
                    r = by_face[(section.section_id, position)]
                    required[position][section.zone_name] = round(r.required, 3)
                    if not r.has_addon:
                        continue
                    spec = RebarSpec(
                        diameter=r.addon_diameter, count=r.addon_count, position=position,
                        layer=r.addon_start_layer, layer_breakdown=list(r.addon_layers),
                        source=r.kind, length=self.addon_length(section, r.addon_diameter)
                    )
                    addons[position][section.zone_name] = spec
                    reinforcements[f"{section.span_id}_{position.value}_{section.zone_name}"] = spec
                stirrups[section.zone_name] = detailing.stirrup_label(section.req_stirrup, 0.0, section.width, s)

            span_results.append(SpanRebarResult(
                span_index=span_index,
                span_id=first.span_id,
                length=first.span_length,
                top_backbone=backbones[RebarPosition.TOP],
                bot_backbone=backbones[RebarPosition.BOT],
                top_addons=addons[RebarPosition.TOP],
                bot_addons=addons[RebarPosition.BOT],
                required_top=required[RebarPosition.TOP],
                required_bot=required[RebarPosition.BOT],
                stirrups=stirrups,
                web_bars=detailing.web_bar_label(max(x.req_torsion for x in group),
                                                 max(x.height for x in group), s),
            ))

        self.bridge_within_spans(reinforcements, span_results)
        running_bars = self.bridge_across_supports(reinforcements, span_results, geometry)

        weight = sum(detailing.bar_weight(d, spec.length, spec.count) for spec in backbones.values())
        weight += sum(detailing.bar_weight(spec.diameter, spec.length, spec.count)
                      for spec in reinforcements.values())
        splices = detailing.splice_count(beam_length, s) * (candidate.count_top + candidate.count_bot)

        tolerance = s.area_tolerance
        shortfalls = [r.label for r in evaluation.resolutions
                      if r.required > s.negligible_area and r.provided < r.required * (1.0 - tolerance) - EPS]
        counted = [r for r in evaluation.resolutions if r.required > s.negligible_area]
        stats = scoring.LayoutStats(
            diameter=d,
            count_top=candidate.count_top,
            count_bot=candidate.count_bot,
            required_area=sum(r.required for r in counted),
            provided_area=sum(r.provided for r in counted),
            distinct_addons=len({(r.addon_diameter, r.addon_count) for r in evaluation.resolutions if r.has_addon}),
            failed_faces=len(shortfalls),
            synthesized_faces=sum(1 for r in counted if r.kind in (
                ResolutionKind.SYNTHESIZED, ResolutionKind.FORCED, ResolutionKind.FAILED)),
            required_faces=evaluation.required_faces,
            splices=splices,
        )
        efficiency = scoring.efficiency_score(stats)
        constructability = scoring.constructability_score(stats, s, self.preferred_diameter)
        total = scoring.total_score(efficiency, constructability, scoring.native_match_bonus(stats, s), s)

        message = ""
        if shortfalls:
            message = "Insufficient steel at " + ", ".join(shortfalls[:3])
            if len(shortfalls) > 3:
                message += f" (+{len(shortfalls) - 3} more)"

        description = (f"Backbone top {candidate.count_top}D{d}, bottom {candidate.count_bot}D{d}; "
                       f"{len(reinforcements)} addon group(s)")
        if relaxed:
            description += " [relaxed]"

        candidate.estimated_weight = weight
        candidate.total_score = total

        return ContinuousBeamSolution(
            option_name=candidate.option_name,
            description=description,
            backbone_diameter_top=d,
            backbone_diameter_bot=d,
            backbone_count_top=candidate.count_top,
            backbone_count_bot=candidate.count_bot,
            as_backbone_top=candidate.area_top,
            as_backbone_bot=candidate.area_bot,
            as_required_top_max=max(x.req_top for x in sections),
            as_required_bot_max=max(x.req_bot for x in sections),
            span_results=span_results,
            reinforcements=reinforcements,
            running_bars=running_bars,
            total_steel_weight=round(weight, 3),
            splice_count=splices,
            waste_percentage=round(stats.waste_percentage, 3),
            efficiency_score=round(efficiency, 3),
            constructability_score=round(constructability, 3),
            total_score=round(total, 3),
            is_valid=not shortfalls,
            is_relaxed=relaxed,
            validation_message=message,
            failed_sections=shortfalls,
        )

    def _bridge_limit(self, diameter: int) -> float:
        return max(BRIDGE_MIN_GAP, BRIDGE_GAP_DIAMETERS * diameter)

    def bridge_within_spans(self, reinforcements: Dict[str, RebarSpec],
                            span_results: List[SpanRebarResult]) -> None:
        """
        Replace matching left/right addons of a short span by one running bar.
        """
        s = self.settings
        for span in span_results:
            zones = list(span.required_top)
            if len(zones) < 2:
                continue
            span_mm = span.length * 1000.0
            gap = span_mm * (1.0 - s.zone_l1_ratio - s.zone_l2_ratio)
            for position in RebarPosition:
                left_key = f"{span.span_id}_{position.value}_{zones[0]}"
                right_key = f"{span.span_id}_{position.value}_{zones[-1]}"
                left = reinforcements.get(left_key)
                right = reinforcements.get(right_key)
                if left is None or right is None or not left.matches(right):
                    continue
                if gap >= self._bridge_limit(left.diameter):
                    continue

                full = left.model_copy(update={
                    "is_running_through": True,
                    "length": span_mm + 2 * s.lap_length(left.diameter),
                })
                addons = span.addons(position)
                bridged = [zones[0], zones[-1]]
                for zone in zones[1:-1]:
                    inner = reinforcements.get(f"{span.span_id}_{position.value}_{zone}")
                    if inner is not None and inner.diameter == full.diameter and inner.area <= full.area:
                        bridged.append(zone)
                for zone in bridged:
                    reinforcements.pop(f"{span.span_id}_{position.value}_{zone}", None)
                    addons.pop(zone, None)
                reinforcements[f"{span.span_id}_{position.value}_Full"] = full
                addons["Full"] = full
                logger.debug("Bridged %s and %s into one running bar", left_key, right_key)

    def bridge_across_supports(self, reinforcements: Dict[str, RebarSpec], span_results: List[SpanRebarResult],
                               geometry: Optional[BeamGeometry]) -> List[str]:
        """
        Mark matching top addons on both sides of a support as one running bar.

        Returns:
            ``"{left key}+{right key}"`` for every bridged support
        """
        running = []
        top = RebarPosition.TOP.value
        for left_span, right_span in zip(span_results, span_results[1:]):
            left_zones = list(left_span.required_top)
            right_zones = list(right_span.required_top)
            left_key = next((k for k in (f"{left_span.span_id}_{top}_{left_zones[-1]}",
                                         f"{left_span.span_id}_{top}_Full") if k in reinforcements), None)
            right_key = next((k for k in (f"{right_span.span_id}_{top}_{right_zones[0]}",
                                          f"{right_span.span_id}_{top}_Full") if k in reinforcements), None)
            if left_key is None or right_key is None:
                continue
            left = reinforcements[left_key]
            right = reinforcements[right_key]
            if not left.matches(right):
                continue
            gap = geometry.support_width_at(left_span.span_index) if geometry is not None else 0.0
            if gap >= self._bridge_limit(left.diameter):
                continue
            left.is_running_through = True
            right.is_running_through = True
            running.append(f"{left_key}+{right_key}")
        return running
