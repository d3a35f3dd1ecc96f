"""
Boundary Validator.
Clamps fields into the page and marks what cannot be rescued.
Status: valid (untouched) | adjusted (clamped, original_box kept) | invalid (dropped downstream).
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Union

from .config import PipelineConfig
from .types import (
    Box,
    PageInfo,
    PositionedField,
    ValidationResult,
    ValidationStatus,
    Violation,
)

logger = logging.getLogger(__name__)


def clamp_box(box: Box, page: PageInfo) -> Box:
    """Apply the left/top/right/bottom clamps in order."""
    x, y, width, height = box.x, box.y, box.width, box.height
    if x < 0:
        width += x
        x = 0.0
    if y < 0:
        height += y
        y = 0.0
    if x + width > page.width:
        width = page.width - x
    if y + height > page.height:
        height = page.height - y
    return Box(x=x, y=y, width=width, height=height)


class BoundaryValidator:
    """Validates and fixes field boxes against one page's dimensions."""

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self.config = config or PipelineConfig()

    def validate(self, field: PositionedField, page: PageInfo) -> PositionedField:
        box = field.box
        if box.width <= 0 or box.height <= 0:
            logger.debug("Field %s invalid: zero/negative dimensions %s", field.name, box)
            return replace(field, validation_status=ValidationStatus.INVALID, original_box=None)

        clamped = clamp_box(box, page)
        adjusted = clamped != box

        # Anchored at or beyond the right/bottom edge: nothing left to rescue.
        if box.x >= page.width or box.y >= page.height:
            logger.debug("Field %s invalid: outside page %d", field.name, page.page_number)
            return replace(
                field,
                box=clamped,
                validation_status=ValidationStatus.INVALID,
                original_box=box,
            )

        if not adjusted:
            return replace(field, validation_status=ValidationStatus.VALID, original_box=None)

        floor = self.config.min_viable_size
        if clamped.width <= 0 or clamped.height <= 0 or (
            floor > 0 and (clamped.width < floor or clamped.height < floor)
        ):
            logger.debug("Field %s invalid: clamped to %s", field.name, clamped)
            return replace(
                field,
                box=clamped,
                validation_status=ValidationStatus.INVALID,
                original_box=box,
            )

        logger.debug("Field %s adjusted: %s -> %s", field.name, box, clamped)
        return replace(
            field,
            box=clamped,
            validation_status=ValidationStatus.ADJUSTED,
            original_box=box,
        )

    def validate_all(self, fields: List[PositionedField], page: PageInfo) -> List[PositionedField]:
        return [self.validate(f, page) for f in fields]


def audit_boundaries(
    fields: List[PositionedField],
    pages: Union[PageInfo, Dict[int, PageInfo]],
) -> ValidationResult:
    """
    Report boundary problems without changing any field.
    One violation per problem kind per field; suggested_fix is the clamped box
    when clamping would leave a usable field.
    """
    violations: List[Violation] = []
    for f in fields:
        page = pages if isinstance(pages, PageInfo) else pages.get(f.page_number)
        if page is None:
            violations.append(
                Violation(
                    field=f.name,
                    issue="out_of_bounds",
                    details="Page %d has no known dimensions" % f.page_number,
                )
            )
            continue
        box = f.box
        if box.width <= 0 or box.height <= 0:
            violations.append(
                Violation(
                    field=f.name,
                    issue="zero_dimensions",
                    details="width=%.2f height=%.2f" % (box.width, box.height),
                )
            )
            continue

        clamped = clamp_box(box, page)
        fix = clamped if clamped.width > 0 and clamped.height > 0 else None
        if box.x < 0 or box.y < 0:
            violations.append(
                Violation(
                    field=f.name,
                    issue="negative_coords",
                    details="x=%.2f y=%.2f" % (box.x, box.y),
                    suggested_fix=fix,
                )
            )
        if box.right > page.width or box.bottom > page.height:
            violations.append(
                Violation(
                    field=f.name,
                    issue="out_of_bounds",
                    details="right=%.2f bottom=%.2f exceeds page %.2fx%.2f"
                    % (box.right, box.bottom, page.width, page.height),
                    suggested_fix=fix,
                )
            )
    return ValidationResult(is_valid=not violations, violations=violations)
