"""
Topology Merger
===============

Stage 3 of the pipeline. Sections on both sides of one physical support
(right end of span i, left end of span i+1) must offer the same options, so
their arrangement lists are merged around the governing (larger) requirement.

Order of operations:
1. Stirrup compatibility pruning (optional, per section)
2. Support pair merge (top and bottom)
3. Vertical alignment penalty (score only, never prunes)
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..core.sections import DesignSection, RebarPosition, SectionArrangement, arrangements_by_signature
from ..design import detailing
from ..design.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class SupportPair:
    """Two sections sharing one support."""
    support_index: int
    left: DesignSection
    right: DesignSection
    position: float
    merged_top: bool = False
    merged_bot: bool = False

    @property
    def name(self) -> str:
        return f"{self.left.section_id}|{self.right.section_id}"


@dataclass
class MergeReport:
    """Outcome of one ``apply_constraints`` run."""
    pairs: List[SupportPair] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    empty_sections: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.empty_sections


class TopologyMerger:
    """
    Enforces shared options at supports plus stirrup and alignment rules.

    Example:
        >>> merger = TopologyMerger(Settings())
        >>> merger.apply_constraints(sections)
        True
        >>> [pair.name for pair in merger.report.pairs]
        ['S1_Right|S2_Left', 'S2_Right|S3_Left']
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.report = MergeReport()

    def apply_constraints(self, sections: List[DesignSection]) -> bool:
        """
        Run every topology rule in place.

        Returns:
            True when every support pair merged and every section face with
            a non-negligible requirement still has at least one option
        """
        self.report = MergeReport()

        if self.settings.enable_stirrup_leg_rules:
            self.apply_stirrup_compatibility(sections)

        self.report.pairs = self.identify_support_pairs(sections)
        for pair in self.report.pairs:
            self.merge_pair(pair)

        if self.settings.prefer_vertical_alignment:
            self.apply_vertical_alignment(sections)

        for section in sections:
            for position in RebarPosition:
                if (section.required_area(position) > self.settings.negligible_area
                        and not section.arrangements(position)):
                    self.report.empty_sections.append(section.label(position))

        if self.report.failed:
            logger.warning("Support merge failed for %s", ", ".join(self.report.failed))
        return self.report.ok

    def identify_support_pairs(self, sections: List[DesignSection]) -> List[SupportPair]:
        """
        Group support sections by position and link right-end/left-start pairs.
        """
        tolerance = self.settings.support_position_tolerance
        supports = sorted((s for s in sections if s.is_support), key=lambda s: (s.position, s.global_index))

        groups: List[List[DesignSection]] = []
        for section in supports:
            if groups and abs(groups[-1][0].position - section.position) <= tolerance:
                groups[-1].append(section)
            else:
                groups.append([section])

        pairs = []
        for index, group in enumerate(groups):
            left = next((s for s in group if s.is_support_right), None)
            right = next((s for s in group if s.is_support_left), None)
            if left is not None and right is not None and left is not right:
                pairs.append(SupportPair(index, left, right, group[0].position))
        return pairs

    def merge_pair(self, pair: SupportPair) -> None:
        for position in RebarPosition:
            merged = self.merge_lists(
                pair.left.arrangements(position), pair.right.arrangements(position),
                pair.left.required_area(position), pair.right.required_area(position),
                widths=(pair.left.usable_width, pair.right.usable_width)
            )
            if merged is None:
                self.report.failed.append(f"{pair.name}/{position.value}")
                continue
            # Arrangements are frozen; each section still gets its own list
            pair.left.set_arrangements(position, list(merged))
            pair.right.set_arrangements(position, list(merged))
            if position is RebarPosition.TOP:
                pair.merged_top = True
            else:
                pair.merged_bot = True
            logger.debug("Merged %s %s: %s", pair.name, position.value,
                         ", ".join(arr.describe() for arr in merged[:5]))

    def merge_lists(self, left: List[SectionArrangement], right: List[SectionArrangement],
                    req_left: float, req_right: float,
                    widths: Sequence[float] = ()) -> Optional[List[SectionArrangement]]:
        """
        Shared option list for one face of a support pair.

        Options must meet the governing requirement and fit every usable
        width in ``widths`` (the two sections may differ in width).

        Returns:
            The merged list, or None when no option satisfies the governing
            requirement
        """
        s = self.settings
        governing = max(req_left, req_right)
        minimum = governing * (1.0 - s.area_tolerance) - 1e-6

        def usable(arr: SectionArrangement) -> bool:
            return (arr.total_area >= minimum
                    and all(detailing.arrangement_fits(arr, w, s) for w in widths))

        valid_left = [arr for arr in left if usable(arr)]
        valid_right = [arr for arr in right if usable(arr)]

        merged = self.intersect(valid_left, valid_right)
        if not merged:
            pooled = arrangements_by_signature(valid_left + valid_right)
            merged = sorted(pooled.values(), key=lambda arr: (arr.total_area, -arr.score))

        if not merged and governing > s.negligible_area:
            return None
        if not merged:
            merged = [SectionArrangement.empty()]
        return merged

    def intersect(self, left: List[SectionArrangement],
                  right: List[SectionArrangement]) -> List[SectionArrangement]:
        """Options present on both sides, keeping the better scored member."""
        s = self.settings
        result = []
        seen = set()
        for a in left:
            match = next((b for b in right
                          if b.primary_diameter == a.primary_diameter
                          and abs(b.total_count - a.total_count) <= s.merge_bar_count_tolerance
                          and abs(b.layer_count - a.layer_count) <= s.merge_layer_count_tolerance), None)
            if match is None:
                continue
            best = a if a.score >= match.score else match
            if best.signature not in seen:
                seen.add(best.signature)
                result.append(best)
        result.sort(key=lambda arr: -arr.score)
        return result

    def apply_stirrup_compatibility(self, sections: List[DesignSection]) -> None:
        """Drop options whose bar count one stirrup cage cannot hold."""
        for section in sections:
            legs = detailing.stirrup_legs_for_width(section.width, self.settings)
            max_bars = detailing.max_bars_for_stirrup(legs)
            tops = [arr for arr in section.valid_top if arr.total_count <= max_bars]
            bots = [arr for arr in section.valid_bot if arr.total_count <= max_bars]
            # Never empty a list that had options
            if tops and bots:
                section.valid_top = tops
                section.valid_bot = bots

    def apply_vertical_alignment(self, sections: List[DesignSection]) -> None:
        """Penalize options with no parity-matched partner on the other face."""
        penalty = self.settings.alignment_penalty_score / 5.0
        for section in sections:
            tops, bots = section.valid_top, section.valid_bot
            if not tops or not bots:
                continue
            top_parities = {arr.total_count % 2 for arr in tops if not arr.is_empty}
            bot_parities = {arr.total_count % 2 for arr in bots if not arr.is_empty}
            if not top_parities or not bot_parities:
                continue
            section.valid_top = [
                arr if arr.is_empty or arr.total_count % 2 in bot_parities else arr.with_score(arr.score - penalty)
                for arr in tops
            ]
            section.valid_bot = [
                arr if arr.is_empty or arr.total_count % 2 in top_parities else arr.with_score(arr.score - penalty)
                for arr in bots
            ]
