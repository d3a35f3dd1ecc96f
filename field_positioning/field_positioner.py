"""
Field Positioner.
Turns a matched label box into the fillable area of its field.
Hebrew forms read right-to-left, so the input area sits immediately to the LEFT
of its label, on the same row.
"""

import logging
from typing import Optional, Sequence, Tuple

from .config import PipelineConfig
from .label_matcher import TRAILING_SEPARATORS_RE, is_hebrew_text
from .naming import CounterIdGenerator, IdGenerator, derive_field_name
from .types import (
    Box,
    Direction,
    FieldType,
    InputType,
    LabelDescriptor,
    LabelMatch,
    MatchProvenance,
    PageInfo,
    PositionedField,
    SelectionMark,
)

logger = logging.getLogger(__name__)

DEFAULT_LABEL_FIELD_TYPES = frozenset({
    FieldType.UNDERLINE,
    FieldType.BOX_WITH_TITLE,
    FieldType.TABLE_CELL,
    FieldType.TITLE_RIGHT,
})


def field_geometry(
    descriptor: LabelDescriptor, label_box: Box, config: PipelineConfig
) -> Tuple[float, float]:
    """(width cap, height) for a descriptor. Signatures win over the visual field type."""
    if descriptor.input_type is InputType.SIGNATURE:
        return config.signature_width_cap, config.signature_height
    kind = descriptor.field_type
    if kind is FieldType.DIGIT_BOXES:
        return config.digit_boxes_width_cap, config.digit_boxes_height
    if kind is FieldType.SELECTION_MARK:
        return config.selection_mark_size, config.selection_mark_size
    if kind in DEFAULT_LABEL_FIELD_TYPES:
        return config.default_width_cap, label_box.height
    raise ValueError("Unsupported field type: %r" % (kind,))


def compute_field_box(
    descriptor: LabelDescriptor,
    label_box: Box,
    page: PageInfo,
    config: Optional[PipelineConfig] = None,
) -> Box:
    """
    Box to the left of the label: width = min(cap, label.x - margin - gap),
    x = label.x - width - gap, y = label.y. Clamped horizontally to the page and
    rounded to 2 decimals. A label too close to the left margin yields a
    non-positive width, which the boundary validator marks invalid.
    """
    config = config or PipelineConfig()
    cap, height = field_geometry(descriptor, label_box, config)
    gap = config.label_gap
    width = min(cap, label_box.x - config.left_margin - gap)
    x = label_box.x - width - gap
    y = label_box.y

    if x < 0:
        width += x
        x = 0.0
    if x + width > page.width:
        width = page.width - x

    return Box(x=x, y=y, width=width, height=height).rounded(2)


def nearest_selection_mark(
    label_box: Box, marks: Sequence[SelectionMark]
) -> Optional[SelectionMark]:
    """Closest mark to the label origin by Manhattan distance; first wins on ties."""
    best: Optional[SelectionMark] = None
    best_dist = float("inf")
    for mark in marks:
        dist = abs(mark.box.x - label_box.x) + abs(mark.box.y - label_box.y)
        if dist < best_dist:
            best, best_dist = mark, dist
    return best


class FieldPositioner:
    """Builds PositionedField records from descriptor + label match."""

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        id_generator: Optional[IdGenerator] = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.id_generator = id_generator or CounterIdGenerator()

    def position(
        self,
        descriptor: LabelDescriptor,
        match: LabelMatch,
        page: PageInfo,
        selection_marks: Sequence[SelectionMark] = (),
    ) -> PositionedField:
        config = self.config
        confidence = (
            config.exact_match_confidence
            if match.score >= 1.0
            else config.partial_match_confidence
        )

        mark = None
        if descriptor.field_type is FieldType.SELECTION_MARK and selection_marks:
            mark = nearest_selection_mark(match.box, selection_marks)
        if mark is not None:
            size = config.selection_mark_size
            box = Box(
                x=mark.box.x,
                y=mark.box.y,
                width=max(mark.box.width, size),
                height=max(mark.box.height, size),
            ).rounded(2)
            confidence = mark.confidence
        else:
            box = compute_field_box(descriptor, match.box, page, config)

        label = TRAILING_SEPARATORS_RE.sub("", descriptor.label_text.strip())
        field = PositionedField(
            type=descriptor.input_type,
            name=derive_field_name(descriptor.label_text, self.id_generator),
            label=label,
            box=box,
            page_number=page.page_number,
            direction=Direction.RTL if is_hebrew_text(descriptor.label_text) else Direction.LTR,
            required=descriptor.required,
            confidence=confidence,
            section_name=descriptor.section or None,
            row_group=descriptor.row_group,
            has_visible_boundary=bool(descriptor.has_visible_boundary),
            provenance=MatchProvenance(
                matched_text=match.text,
                match_score=match.score,
                label_box=match.box,
                field_type=descriptor.field_type,
            ),
        )
        logger.debug(
            "%r (%s) -> %s at x=%.1f y=%.1f w=%.1f%s",
            descriptor.label_text,
            descriptor.field_type.value,
            field.type.value,
            box.x,
            box.y,
            box.width,
            " [selection mark]" if mark is not None else "",
        )
        return field
