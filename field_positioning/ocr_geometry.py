"""
OCR / PDF coordinate helpers.
OCR polygons come in inches (8 numbers, clockwise from top-left); the engine
works in points with a top-left origin; the PDF writer wants bottom-left.
"""

import logging
from typing import Optional, Sequence

from .types import Box, Direction

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0
DEFAULT_BOX = Box(x=0.0, y=0.0, width=50.0, height=20.0)

# PDF text-field quadding (/Q): 0 = left, 1 = centred, 2 = right
QUADDING_LEFT = 0
QUADDING_RIGHT = 2


def convert_polygon_to_box(polygon: Optional[Sequence[float]]) -> Box:
    """
    Bounding box of an OCR polygon, in points. Uses min/max over every vertex
    so skewed or rotated quads are fully covered.
    """
    if not polygon or len(polygon) < 8:
        logger.warning("Invalid polygon %r, using default box", polygon)
        return DEFAULT_BOX

    xs = [float(v) for v in polygon[0::2]]
    ys = [float(v) for v in polygon[1::2]]
    x_min, x_max = min(xs), max(xs)
    y_min, y_max = min(ys), max(ys)
    return Box(
        x=x_min * POINTS_PER_INCH,
        y=y_min * POINTS_PER_INCH,
        width=(x_max - x_min) * POINTS_PER_INCH,
        height=(y_max - y_min) * POINTS_PER_INCH,
    ).rounded(2)


def to_pdf_box(box: Box, page_height: float) -> Box:
    """Top-left frame -> PDF bottom-left frame (y is the box's bottom edge)."""
    return Box(x=box.x, y=page_height - box.y - box.height, width=box.width, height=box.height)


def quadding(direction: Direction) -> int:
    """Text alignment for a field's widget: Hebrew fields are right-aligned."""
    return QUADDING_RIGHT if Direction(direction) is Direction.RTL else QUADDING_LEFT
