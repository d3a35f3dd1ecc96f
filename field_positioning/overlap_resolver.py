"""
Overlap Resolver.
Detects same-page fields whose boxes intersect and decides, per pair, which one
keeps its place (keep), moves below the other (adjust), needs a human (flag),
or is dropped as a duplicate (remove).
Pairwise O(n^2) per page; pages carry tens of fields, not thousands.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple

from .config import PipelineConfig
from .types import Box, PositionedField, Resolution, ResolutionAction

logger = logging.getLogger(__name__)


def intersection_area(box1: Box, box2: Box) -> float:
    x_overlap = max(0.0, min(box1.right, box2.right) - max(box1.x, box2.x))
    y_overlap = max(0.0, min(box1.bottom, box2.bottom) - max(box1.y, box2.y))
    return x_overlap * y_overlap


def overlap_percentage(box1: Box, box2: Box) -> float:
    """Intersection as a percentage of the smaller box. Symmetric."""
    intersection = intersection_area(box1, box2)
    if intersection == 0:
        return 0.0
    smaller = min(box1.area, box2.area)
    if smaller <= 0:
        return 0.0
    return intersection / smaller * 100.0


def adjusted_position(moving: Box, blocking: Box, gap: float = 5.0) -> Box:
    """Push the moving box straight below the blocking one; size and x unchanged."""
    return Box(x=moving.x, y=blocking.bottom + gap, width=moving.width, height=moving.height)


def effective_box(field: PositionedField) -> Box:
    """Where the field ends up if its resolution is applied."""
    res = field.resolution
    if res is not None and res.action is ResolutionAction.ADJUST and res.adjusted_box is not None:
        return res.adjusted_box
    return field.box


def apply_adjustments(fields: List[PositionedField]) -> List[PositionedField]:
    """Move adjusted fields to their adjusted box."""
    out: List[PositionedField] = []
    for f in fields:
        target = effective_box(f)
        out.append(f if target == f.box else replace(f, box=target))
    return out


def surviving(fields: List[PositionedField]) -> List[PositionedField]:
    """Fields that go on to PDF synthesis: not removed, not invalid."""
    return [f for f in fields if not f.is_removed and not f.is_invalid]


class _PairState:
    """Per-field resolution slots for one resolve() call."""

    def __init__(self, fields: List[PositionedField]) -> None:
        self.fields = fields
        self.resolutions: List[Optional[Resolution]] = [f.resolution for f in fields]
        self.overlaps: List[bool] = [f.has_overlap for f in fields]

    def set_if_unset(self, idx: int, resolution: Resolution) -> None:
        if self.resolutions[idx] is None:
            self.resolutions[idx] = resolution

    def demote(self, idx: int, resolution: Resolution) -> None:
        current = self.resolutions[idx]
        if (
            current is not None
            and current.action is ResolutionAction.REMOVE
            and resolution.action is not ResolutionAction.REMOVE
        ):
            return
        self.resolutions[idx] = resolution

    def box(self, idx: int) -> Box:
        res = self.resolutions[idx]
        if res is not None and res.action is ResolutionAction.ADJUST and res.adjusted_box is not None:
            return res.adjusted_box
        return self.fields[idx].box

    def removed(self, idx: int) -> bool:
        res = self.resolutions[idx]
        return res is not None and res.action is ResolutionAction.REMOVE

    def build(self) -> List[PositionedField]:
        return [
            replace(f, resolution=self.resolutions[i], has_overlap=self.overlaps[i])
            for i, f in enumerate(self.fields)
        ]


class OverlapResolver:
    """Pairwise overlap detection and resolution."""

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self.config = config or PipelineConfig()

    def resolve(
        self,
        fields: List[PositionedField],
        threshold_pct: Optional[float] = None,
    ) -> List[PositionedField]:
        """
        Annotate every field with has_overlap / resolution. Boxes are not moved;
        use apply_adjustments() to realize 'adjust' decisions and surviving()
        to drop 'remove' decisions.
        """
        if not fields:
            return []
        threshold = self.config.overlap_threshold_pct if threshold_pct is None else threshold_pct
        state = _PairState(list(fields))

        n = len(fields)
        pairs: List[Tuple[int, int]] = [(i, j) for i in range(n) for j in range(i + 1, n)]
        moved = self._run_pass(state, pairs, threshold, cascade=False)

        # Later passes only re-check pairs touching a field that moved.
        for pass_no in range(2, self.config.overlap_max_passes + 1):
            if not moved:
                break
            pairs = [
                (i, j)
                for i in range(n)
                for j in range(i + 1, n)
                if (i in moved or j in moved) and not state.removed(i) and not state.removed(j)
            ]
            logger.debug("Overlap pass %d: %d pairs involve moved fields", pass_no, len(pairs))
            moved = self._run_pass(state, pairs, threshold, cascade=True)

        resolved = state.build()
        n_overlap = sum(1 for f in resolved if f.has_overlap)
        if n_overlap:
            counts: Dict[str, int] = {}
            for f in resolved:
                if f.resolution is not None:
                    counts[f.resolution.action.value] = counts.get(f.resolution.action.value, 0) + 1
            logger.info("Resolved overlaps among %d fields: %s", n_overlap, counts)
        return resolved

    def _run_pass(
        self,
        state: _PairState,
        pairs: List[Tuple[int, int]],
        threshold: float,
        cascade: bool,
    ) -> Set[int]:
        """Resolve the given pairs; return indices whose adjusted box changed."""
        before = [state.box(i) for i in range(len(state.fields))]
        for i, j in pairs:
            f1, f2 = state.fields[i], state.fields[j]
            if f1.page_number != f2.page_number:
                continue
            # First pass compares boxes as positioned; cascade passes use the moved boxes.
            box1 = state.box(i) if cascade else f1.box
            box2 = state.box(j) if cascade else f2.box
            pct = overlap_percentage(box1, box2)
            if pct < threshold:
                continue
            state.overlaps[i] = True
            state.overlaps[j] = True
            self._resolve_pair(state, i, j, box1, box2, pct)
        return {i for i in range(len(state.fields)) if state.box(i) != before[i]}

    def _resolve_pair(
        self, state: _PairState, i: int, j: int, box1: Box, box2: Box, pct: float
    ) -> None:
        f1, f2 = state.fields[i], state.fields[j]
        gap = self.config.adjust_gap
        # Rounded so 0.9 vs 0.8 counts as a 0.1 difference, not 0.0999...
        diff = round(abs(f1.confidence - f2.confidence), 9)

        if diff < self.config.confidence_similarity:
            only1 = f1.required and not f2.required
            only2 = f2.required and not f1.required
            if only1 or only2:
                keep_idx, move_idx = (i, j) if only1 else (j, i)
                keep_box, move_box = (box1, box2) if only1 else (box2, box1)
                state.set_if_unset(
                    keep_idx,
                    Resolution(ResolutionAction.KEEP, "Required field with similar confidence"),
                )
                state.demote(
                    move_idx,
                    Resolution(
                        ResolutionAction.ADJUST,
                        "Optional field with similar confidence",
                        adjusted_box=adjusted_position(move_box, keep_box, gap),
                    ),
                )
                logger.debug(
                    "Overlap %.0f%%: keep required %s, move %s",
                    pct, state.fields[keep_idx].name, state.fields[move_idx].name,
                )
            else:
                flag = Resolution(ResolutionAction.FLAG, "Similar confidence - manual review needed")
                state.set_if_unset(i, flag)
                state.set_if_unset(j, flag)
                logger.debug("Overlap %.0f%%: flag %s and %s", pct, f1.name, f2.name)
            return

        if f1.confidence > f2.confidence:
            hi, lo, hi_box, lo_box = i, j, box1, box2
        else:
            hi, lo, hi_box, lo_box = j, i, box2, box1
        higher, lower = state.fields[hi], state.fields[lo]
        state.set_if_unset(
            hi,
            Resolution(ResolutionAction.KEEP, "Higher confidence (%.2f)" % higher.confidence),
        )
        reason = "Lower confidence (%.2f)" % lower.confidence
        if pct > self.config.overlap_remove_pct:
            state.demote(lo, Resolution(ResolutionAction.REMOVE, reason))
            logger.debug("Overlap %.0f%%: remove %s (kept %s)", pct, lower.name, higher.name)
        else:
            state.demote(
                lo,
                Resolution(
                    ResolutionAction.ADJUST,
                    reason,
                    adjusted_box=adjusted_position(lo_box, hi_box, gap),
                ),
            )
            logger.debug("Overlap %.0f%%: move %s below %s", pct, lower.name, higher.name)
