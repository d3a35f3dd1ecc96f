"""
Input loader: JSON documents (OCR layout + AI field descriptors) -> PageInput.

Document shape (camelCase, as produced by the extraction service):
    {"pages": [{"pageNumber": 1,
                "width": 595, "height": 842,      # or "dimensions": {...}
                "lines": [...], "words": [...],    # "textLines" also accepted
                "selectionMarks": [...],
                "fields": [{"labelText": ..., "fieldType": ..., "inputType": ...,
                            "section": ..., "required": ...}]}]}
Spans carry either a "box" {x, y, width, height} in points or an OCR
"polygon" in inches.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .ocr_geometry import convert_polygon_to_box
from .types import (
    Box,
    FieldType,
    InputFormatError,
    InputType,
    LabelDescriptor,
    PageInfo,
    PageInput,
    SelectionMark,
    TextSpan,
)

logger = logging.getLogger(__name__)


def _box(raw: Dict[str, Any], where: str) -> Box:
    if "box" in raw and raw["box"] is not None:
        b = raw["box"]
        try:
            return Box(
                x=float(b["x"]), y=float(b["y"]),
                width=float(b["width"]), height=float(b["height"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InputFormatError("%s: malformed box %r (%s)" % (where, b, e)) from e
    if "polygon" in raw:
        return convert_polygon_to_box(raw["polygon"])
    raise InputFormatError("%s: span has neither 'box' nor 'polygon'" % where)


def _spans(raw_list: Optional[List[Dict[str, Any]]], where: str) -> List[TextSpan]:
    spans: List[TextSpan] = []
    for i, raw in enumerate(raw_list or []):
        content = raw.get("content", raw.get("text"))
        if content is None:
            raise InputFormatError("%s[%d]: missing 'content'" % (where, i))
        spans.append(TextSpan(content=str(content), box=_box(raw, "%s[%d]" % (where, i))))
    return spans


def _enum(enum_cls, value: Any, default, where: str):
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError as e:
        raise InputFormatError("%s: unknown %s %r" % (where, enum_cls.__name__, value)) from e


def parse_descriptor(raw: Dict[str, Any], where: str = "field") -> LabelDescriptor:
    label = raw.get("labelText", raw.get("label"))
    if not isinstance(label, str):
        raise InputFormatError("%s: 'labelText' must be a string" % where)
    boundary = raw.get("hasVisibleBoundary")
    return LabelDescriptor(
        label_text=label,
        field_type=_enum(FieldType, raw.get("fieldType"), FieldType.UNDERLINE, where),
        input_type=_enum(InputType, raw.get("inputType"), InputType.TEXT, where),
        section=raw.get("section") or None,
        required=bool(raw.get("required", False)),
        row_group=raw.get("rowGroup") or None,
        related_fields=tuple(raw.get("relatedFields") or ()),
        has_visible_boundary=None if boundary is None else bool(boundary),
    )


def parse_page(raw: Dict[str, Any], index: int = 0) -> PageInput:
    """One page dict -> PageInput. Bad dimensions raise PageGeometryError."""
    where = "pages[%d]" % index
    if not isinstance(raw, dict):
        raise InputFormatError("%s: expected an object" % where)
    dims = raw.get("dimensions") or raw
    try:
        page = PageInfo(
            page_number=int(raw.get("pageNumber", index + 1)),
            width=float(dims["width"]),
            height=float(dims["height"]),
        )
    except (KeyError, TypeError) as e:
        raise InputFormatError("%s: missing page width/height" % where) from e

    marks = [
        SelectionMark(
            box=_box(m, "%s.selectionMarks[%d]" % (where, i)),
            state=str(m.get("state", "unselected")),
            confidence=float(m.get("confidence", 0.5)),
        )
        for i, m in enumerate(raw.get("selectionMarks") or [])
    ]
    descriptors = [
        parse_descriptor(f, "%s.fields[%d]" % (where, i))
        for i, f in enumerate(raw.get("fields") or [])
    ]
    return PageInput(
        page=page,
        descriptors=tuple(descriptors),
        lines=tuple(_spans(raw.get("lines", raw.get("textLines")), where + ".lines")),
        words=tuple(_spans(raw.get("words"), where + ".words")),
        selection_marks=tuple(marks),
    )


def parse_document(data: Union[Dict[str, Any], List[Any]]) -> List[PageInput]:
    pages = data.get("pages") if isinstance(data, dict) else data
    if not isinstance(pages, list):
        raise InputFormatError("Document must contain a 'pages' list")
    return [parse_page(p, i) for i, p in enumerate(pages)]


def load_document(path: Path) -> List[PageInput]:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InputFormatError("%s is not valid JSON: %s" % (path, e)) from e
    pages = parse_document(data)
    logger.info(
        "Loaded %s: %d pages, %d field descriptors",
        path.name, len(pages), sum(len(p.descriptors) for p in pages),
    )
    return pages
