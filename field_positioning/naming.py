"""
Field name derivation.
Names keep Hebrew letters and word characters so they stay readable in AcroForm
field trees; labels that reduce to nothing get an injected fallback ID.
"""

import hashlib
import itertools
import re
from typing import Callable, Iterator

from .label_matcher import TRAILING_SEPARATORS_RE

WHITESPACE_RE = re.compile(r"\s+")
DISALLOWED_NAME_CHARS_RE = re.compile(r"[^\u0590-\u05FF\w]")

IdGenerator = Callable[[str], str]


class CounterIdGenerator:
    """Sequential fallback names: field_1, field_2, ..."""

    def __init__(self, prefix: str = "field", start: int = 1) -> None:
        self.prefix = prefix
        self._counter: Iterator[int] = itertools.count(start)

    def __call__(self, label: str) -> str:
        return "%s_%d" % (self.prefix, next(self._counter))


def content_hash_id(label: str) -> str:
    """Stable fallback name from the raw label text."""
    digest = hashlib.sha1(label.encode("utf-8")).hexdigest()[:8]
    return "field_%s" % digest


def derive_field_name(label: str, id_generator: IdGenerator) -> str:
    cleaned = TRAILING_SEPARATORS_RE.sub("", label.strip())
    cleaned = WHITESPACE_RE.sub("_", cleaned)
    cleaned = DISALLOWED_NAME_CHARS_RE.sub("", cleaned)
    return cleaned or id_generator(label)


def unique_name(name: str, taken: set) -> str:
    """Append _2, _3, ... until the name is unused; records the result in taken."""
    candidate = name
    suffix = 2
    while candidate in taken:
        candidate = "%s_%d" % (name, suffix)
        suffix += 1
    taken.add(candidate)
    return candidate
