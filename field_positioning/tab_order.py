"""
Tab Order Calculator.
Natural Hebrew form-filling flow: page by page, section by section,
top-to-bottom, right-to-left within a row (left-to-right for LTR forms).
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from functools import cmp_to_key
from typing import Dict, List, Sequence, Tuple, TypeVar, Union

from .label_matcher import strip_nikud
from .types import PositionedField, RadioGroupField

logger = logging.getLogger(__name__)

ROW_TOLERANCE = 10.0

FINAL_LETTERS = str.maketrans({
    "ם": "מ",
    "ן": "נ",
    "ך": "כ",
    "ף": "פ",
    "ץ": "צ",
})

AnyField = Union[PositionedField, RadioGroupField]
F = TypeVar("F", PositionedField, RadioGroupField)


def hebrew_collation_key(text: str) -> Tuple[str, str]:
    """Sort key approximating Hebrew collation: nikud ignored, final forms folded."""
    base = strip_nikud(text).translate(FINAL_LETTERS).casefold()
    return base, text


def _compare(a: AnyField, b: AnyField, direction: str, row_tolerance: float) -> int:
    if a.page_number != b.page_number:
        return -1 if a.page_number < b.page_number else 1

    if a.section_name and b.section_name and a.section_name != b.section_name:
        ka = hebrew_collation_key(a.section_name)
        kb = hebrew_collation_key(b.section_name)
        if ka != kb:
            return -1 if ka < kb else 1

    if abs(a.y - b.y) > row_tolerance:
        return -1 if a.y < b.y else 1

    if a.x == b.x:
        return 0
    if direction == "rtl":
        return -1 if a.x > b.x else 1
    return -1 if a.x < b.x else 1


def calculate_tab_order(
    fields: Sequence[F],
    direction: str = "rtl",
    row_tolerance: float = ROW_TOLERANCE,
) -> List[F]:
    """Return the fields sorted into navigation order with tab_index 1..N."""
    if not fields:
        return []
    ordered = sorted(
        fields,
        key=cmp_to_key(lambda a, b: _compare(a, b, direction, row_tolerance)),
    )
    result = [replace(f, tab_index=i + 1) for i, f in enumerate(ordered)]
    logger.debug(
        "Tab order (%s): %s", direction, [f.name for f in result][:20]
    )
    return result


@dataclass(frozen=True)
class RowInfo:
    row_number: int
    row_y: float  # mean y of the row's fields
    row_height: float  # tallest field in the row


def calculate_row_boundaries(
    fields: Sequence[AnyField],
    row_tolerance: float = ROW_TOLERANCE,
) -> Dict[str, RowInfo]:
    """
    Group fields into rows per page (chained y proximity) and number the rows
    top-to-bottom, continuing the count across pages. Keyed by field name.
    """
    by_page: Dict[int, List[AnyField]] = defaultdict(list)
    for f in fields:
        by_page[f.page_number].append(f)

    rows_out: Dict[str, RowInfo] = {}
    row_number = 1
    for page_number in sorted(by_page):
        page_fields = sorted(by_page[page_number], key=lambda f: f.y)
        rows: List[List[AnyField]] = []
        current = [page_fields[0]]
        for prev, f in zip(page_fields, page_fields[1:]):
            if abs(f.y - prev.y) <= row_tolerance:
                current.append(f)
            else:
                rows.append(current)
                current = [f]
        rows.append(current)

        for row in rows:
            info = RowInfo(
                row_number=row_number,
                row_y=sum(f.y for f in row) / len(row),
                row_height=max(f.box.height for f in row),
            )
            for f in row:
                rows_out[f.name] = info
            row_number += 1
    return rows_out
