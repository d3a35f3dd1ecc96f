"""
PDF Layout Reader.
Uses PyMuPDF for page sizes and the embedded text layer (words and lines with
coordinates). Coordinates come out in the top-left working frame the engine uses.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

try:
    import fitz  # PyMuPDF
except ImportError:
    fitz = None  # type: ignore

from .label_matcher import is_hebrew_text
from .types import Box, PageInfo, TextSpan

logger = logging.getLogger(__name__)


@dataclass
class PageText:
    """Text layer of one page."""

    page: PageInfo
    words: List[TextSpan] = field(default_factory=list)
    lines: List[TextSpan] = field(default_factory=list)


def _span_from_words(words: Sequence[Tuple[float, float, float, float, str]]) -> TextSpan:
    x0 = min(w[0] for w in words)
    y0 = min(w[1] for w in words)
    x1 = max(w[2] for w in words)
    y1 = max(w[3] for w in words)
    # PyMuPDF yields words in visual order; Hebrew reads right to left.
    ordered = sorted(words, key=lambda w: -w[0]) if any(is_hebrew_text(w[4]) for w in words) else list(words)
    text = " ".join(w[4] for w in ordered)
    return TextSpan(content=text, box=Box(x=x0, y=y0, width=x1 - x0, height=y1 - y0))


class PDFLayoutReader:
    """
    Extracts page dimensions and text spans from PDFs.
    """

    def __init__(self) -> None:
        if fitz is None:
            raise ImportError("PyMuPDF (fitz) is required. Install with: pip install PyMuPDF")

    def read(self, pdf_path: Path, pages: Optional[Sequence[int]] = None) -> Dict[int, PageText]:
        doc = fitz.open(pdf_path)
        try:
            numbers = list(pages) if pages is not None else list(range(1, len(doc) + 1))
            out: Dict[int, PageText] = {}
            for number in numbers:
                if not 1 <= number <= len(doc):
                    logger.warning("Page %d not in %s (%d pages)", number, pdf_path, len(doc))
                    continue
                out[number] = self._extract(doc[number - 1], number)
            return out
        finally:
            doc.close()

    def _extract(self, page: "fitz.Page", page_number: int) -> PageText:
        rect = page.rect
        info = PageInfo(page_number=page_number, width=rect.width, height=rect.height)
        # get_text("words") returns: (x0, y0, x1, y1, "word", block_no, line_no, word_no)
        raw_words = page.get_text("words", sort=True)

        words: List[TextSpan] = []
        line_groups: "OrderedDict[Tuple[int, int], List[Tuple[float, float, float, float, str]]]" = OrderedDict()
        for item in raw_words:
            if len(item) < 7:
                continue
            x0, y0, x1, y1 = float(item[0]), float(item[1]), float(item[2]), float(item[3])
            text = item[4].strip()
            if not text:
                continue
            words.append(TextSpan(content=text, box=Box(x=x0, y=y0, width=x1 - x0, height=y1 - y0)))
            line_groups.setdefault((item[5], item[6]), []).append((x0, y0, x1, y1, text))

        lines = [_span_from_words(group) for group in line_groups.values()]
        logger.debug(
            "Page %d text layer: %d words, %d lines", page_number, len(words), len(lines)
        )
        return PageText(page=info, words=words, lines=lines)
