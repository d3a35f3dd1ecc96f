"""
Position Verifier (optional, off by default).
Cross-checks field positions against the PDF's own text layer: if a field box
sits on top of its label instead of beside it, move it to the left of the label.
Conservative: only corrects when the label is found and the box clearly overlaps it.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence

try:
    from rapidfuzz.distance import Levenshtein
except ImportError:
    Levenshtein = None  # type: ignore

from .config import PipelineConfig
from .label_matcher import strip_nikud
from .layout_reader import PageText, PDFLayoutReader
from .tab_order import FINAL_LETTERS
from .types import Box, Direction, InputType, PageInfo, PositionedField, TextSpan

logger = logging.getLogger(__name__)

PUNCTUATION_RE = re.compile(r"[\s\-_:;,.!?()\[\]{}'\"״׳]")
CONTAINMENT_SCORE = 0.85
CORRECTION_BOOST = 0.2
CONFIRMED_BOOST = 0.15
NOT_FOUND_PENALTY = -0.1
LABEL_CLEARANCE = 30.0


def normalize_for_verification(text: str) -> str:
    """Nikud removed, final letters folded, punctuation and whitespace dropped, lowercased."""
    return PUNCTUATION_RE.sub("", strip_nikud(text or "").translate(FINAL_LETTERS)).strip().lower()


def verification_similarity(a: str, b: str) -> float:
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    n1 = normalize_for_verification(a)
    n2 = normalize_for_verification(b)
    if not n1 or not n2:
        return 0.0
    if n1 == n2:
        return 1.0
    if n1 in n2 or n2 in n1:
        return CONTAINMENT_SCORE
    if Levenshtein is None:
        raise ImportError("rapidfuzz is required. Install with: pip install rapidfuzz")
    return Levenshtein.normalized_similarity(n1, n2)


@dataclass(frozen=True)
class VerificationOutcome:
    field_name: str
    label_found: bool
    label_box: Optional[Box] = None
    corrected_box: Optional[Box] = None
    confidence_delta: float = 0.0


def _near(item: TextSpan, x: float, y: float, radius: float, direction: Direction) -> bool:
    dx = abs(item.box.x - x)
    dy = abs(item.box.y - y)
    # Labels of RTL fields sit to the right; widen the search that way.
    h_radius = radius * 2 if direction is Direction.RTL and item.box.x > x else radius
    return dx <= h_radius and dy <= radius


def corrected_input_box(
    label_box: Box, field: PositionedField, page_width: float
) -> Box:
    x = max(20.0, page_width * 0.05)
    gap_before_label = max(10.0, label_box.width * 0.2)
    width = max(50.0, label_box.x - x - gap_before_label)
    if field.type in (InputType.CHECKBOX, InputType.RADIO):
        width = min(width, 20.0)
    return Box(x=x, y=label_box.y, width=width, height=field.box.height).rounded(2)


class PositionVerifier:
    """Verifies RTL field positions page by page against extracted PDF text."""

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        reader: Optional[PDFLayoutReader] = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self._reader = reader

    @property
    def reader(self) -> PDFLayoutReader:
        if self._reader is None:
            self._reader = PDFLayoutReader()
        return self._reader

    def check_field(self, field: PositionedField, page_text: PageText) -> VerificationOutcome:
        if not field.label:
            return VerificationOutcome(field_name=field.name, label_found=False)

        items = list(page_text.lines) + list(page_text.words)
        threshold = self.config.verify_similarity_threshold
        anchor_x = field.box.right
        found: Optional[TextSpan] = None
        for item in items:
            if _near(item, anchor_x, field.box.y, self.config.verify_search_radius, field.direction):
                if verification_similarity(item.content, field.label) >= threshold:
                    found = item
                    break

        if found is None:
            best_score = 0.0
            for item in items:
                score = verification_similarity(item.content, field.label)
                if score >= threshold and score > best_score:
                    found, best_score = item, score

        if found is None:
            logger.debug("Field %r: label not found in PDF text", field.label)
            return VerificationOutcome(
                field_name=field.name, label_found=False, confidence_delta=NOT_FOUND_PENALTY
            )

        if field.direction is not Direction.RTL:
            return VerificationOutcome(field_name=field.name, label_found=True, label_box=found.box)

        if field.box.right > found.box.x - LABEL_CLEARANCE:
            corrected = corrected_input_box(found.box, field, page_text.page.width)
            logger.info(
                "Field %r: correcting position from x=%.1f to x=%.1f",
                field.label, field.box.x, corrected.x,
            )
            return VerificationOutcome(
                field_name=field.name,
                label_found=True,
                label_box=found.box,
                corrected_box=corrected,
                confidence_delta=CORRECTION_BOOST,
            )
        return VerificationOutcome(
            field_name=field.name,
            label_found=True,
            label_box=found.box,
            confidence_delta=CONFIRMED_BOOST,
        )

    def verify_page(
        self, fields: Sequence[PositionedField], page_text: PageText
    ) -> List[PositionedField]:
        out: List[PositionedField] = []
        corrected = 0
        for f in fields:
            outcome = self.check_field(f, page_text)
            updated = f
            if outcome.corrected_box is not None:
                updated = replace(updated, box=outcome.corrected_box, position_corrected=True)
                corrected += 1
            if outcome.confidence_delta:
                confidence = max(0.0, min(1.0, f.confidence + outcome.confidence_delta))
                updated = replace(updated, confidence=confidence)
            out.append(updated)
        logger.info(
            "Verified page %d: %d/%d fields corrected",
            page_text.page.page_number, corrected, len(fields),
        )
        return out

    def verify(
        self,
        fields: Sequence[PositionedField],
        pdf_path: Optional[Path] = None,
        page_texts: Optional[Dict[int, PageText]] = None,
    ) -> List[PositionedField]:
        """
        Verify all fields, in parallel across pages. Text is read from pdf_path
        unless page_texts is given. Output keeps the input order; fields on pages
        without text stay unchanged.
        """
        by_page: Dict[int, List[int]] = {}
        for i, f in enumerate(fields):
            by_page.setdefault(f.page_number, []).append(i)

        if page_texts is None:
            if pdf_path is None:
                raise ValueError("pdf_path or page_texts is required")
            # PyMuPDF is not thread-safe: extract once, verify concurrently.
            page_texts = self.reader.read(Path(pdf_path), sorted(by_page))

        result = list(fields)
        work = [(p, idx) for p, idx in sorted(by_page.items()) if p in page_texts]
        if not work:
            return result
        workers = max(1, min(self.config.verify_max_workers, len(work)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                (idx, pool.submit(self.verify_page, [fields[i] for i in idx], page_texts[p]))
                for p, idx in work
            ]
            for idx, future in futures:
                for i, updated in zip(idx, future.result()):
                    result[i] = updated
        return result


def should_verify(
    fields: Sequence[PositionedField],
    pages: Optional[Dict[int, PageInfo]] = None,
) -> bool:
    """
    Verification helps only when most RTL fields are low-confidence and most RTL
    text fields sit at the far right of the page (i.e. on top of their labels).
    """
    rtl = [f for f in fields if f.direction is Direction.RTL]
    if not rtl:
        return False
    low = sum(1 for f in rtl if f.confidence < 0.5)
    if low / len(rtl) < 0.5:
        logger.debug("Skipping verification: most fields have good confidence")
        return False
    text_fields = [f for f in rtl if f.type is InputType.TEXT]
    if not text_fields:
        return False

    def page_width(f: PositionedField) -> float:
        page = (pages or {}).get(f.page_number)
        return page.width if page is not None else 595.0

    far_right = sum(1 for f in text_fields if f.x > page_width(f) * 0.9)
    return far_right / len(text_fields) > 0.7
