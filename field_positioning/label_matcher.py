"""
Label Matcher.
Finds the OCR span that carries an AI-described field label.
Hebrew-aware: trailing colon variants and nikud (vowel points) are ignored.
"""

import logging
import re
from typing import List, Optional, Sequence

from .config import PipelineConfig
from .types import LabelMatch, TextSpan

logger = logging.getLogger(__name__)

TRAILING_SEPARATORS_RE = re.compile(r"[:\s\u05C3]+$")  # includes Hebrew sof pasuq
WHITESPACE_RE = re.compile(r"\s+")
NIKUD_RE = re.compile(r"[\u05B0-\u05BD\u05BF-\u05C7]")
HEBREW_RE = re.compile(r"[\u0590-\u05FF]")

EXACT_SCORE = 1.0
SUBSTRING_SCORE = 0.9
NIKUD_EXACT_SCORE = 0.95
NIKUD_SUBSTRING_SCORE = 0.85


def normalize_label(text: str) -> str:
    """Trim, drop trailing ':' / '׃' / whitespace, collapse inner whitespace."""
    cleaned = TRAILING_SEPARATORS_RE.sub("", text.strip())
    return WHITESPACE_RE.sub(" ", cleaned)


def strip_nikud(text: str) -> str:
    return NIKUD_RE.sub("", text)


def is_hebrew_text(text: str) -> bool:
    return bool(HEBREW_RE.search(text or ""))


def hebrew_text_similarity(a: str, b: str) -> float:
    """
    Score 0-1 for how well two label strings match.
    1.0 exact, 0.9 substring, 0.95 / 0.85 the same after removing nikud, else 0.
    Case-sensitive.
    """
    clean_a = normalize_label(a)
    clean_b = normalize_label(b)

    if not clean_a or not clean_b:
        return EXACT_SCORE if clean_a == clean_b else 0.0

    if clean_a == clean_b:
        return EXACT_SCORE
    if clean_b in clean_a or clean_a in clean_b:
        return SUBSTRING_SCORE

    norm_a = strip_nikud(clean_a)
    norm_b = strip_nikud(clean_b)
    if norm_a == norm_b:
        return NIKUD_EXACT_SCORE
    if norm_a and norm_b and (norm_b in norm_a or norm_a in norm_b):
        return NIKUD_SUBSTRING_SCORE
    return 0.0


def best_span_match(
    label: str, spans: Sequence[TextSpan], threshold: float
) -> Optional[LabelMatch]:
    """Highest-scoring span at or above threshold; first one wins on ties."""
    best: Optional[LabelMatch] = None
    for span in spans:
        score = hebrew_text_similarity(label, span.content)
        if score < threshold:
            continue
        if best is None or score > best.score:
            best = LabelMatch(text=span.content, box=span.box, score=score)
    return best


class LabelMatcher:
    """
    Two-pass matcher: word spans first (so "City: ___ Zip: ___" lines resolve
    to the right word), line spans when no word reaches the threshold.
    """

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self.config = config or PipelineConfig()

    def match(
        self,
        label: str,
        lines: List[TextSpan],
        words: Optional[List[TextSpan]] = None,
    ) -> Optional[LabelMatch]:
        """Return the best match or None when the label is not on the page."""
        threshold = self.config.match_threshold

        found = best_span_match(label, words or [], threshold)
        level = "word"
        if found is None:
            found = best_span_match(label, lines or [], threshold)
            level = "line"

        if found is None:
            logger.debug("No OCR match for label %r", label)
            return None
        logger.debug(
            "Label %r matched %s %r (score=%.2f)", label, level, found.text, found.score
        )
        return found
