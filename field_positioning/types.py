"""
Shared data types for the field positioning pipeline.
Immutable records: every stage returns new values via dataclasses.replace.
Coordinates are PDF points in a top-left working frame (y grows downward).
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class PageGeometryError(ValueError):
    """Raised when a page has unusable dimensions."""


class InputFormatError(ValueError):
    """Raised when an input document cannot be parsed into engine types."""


class FieldType(str, Enum):
    UNDERLINE = "underline"
    BOX_WITH_TITLE = "box_with_title"
    DIGIT_BOXES = "digit_boxes"
    TABLE_CELL = "table_cell"
    TITLE_RIGHT = "title_right"
    SELECTION_MARK = "selection_mark"


class InputType(str, Enum):
    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SIGNATURE = "signature"
    DROPDOWN = "dropdown"
    DATE = "date"
    NUMBER = "number"


class Direction(str, Enum):
    RTL = "rtl"
    LTR = "ltr"


class ValidationStatus(str, Enum):
    VALID = "valid"
    ADJUSTED = "adjusted"
    INVALID = "invalid"


class ResolutionAction(str, Enum):
    KEEP = "keep"
    ADJUST = "adjust"
    FLAG = "flag"
    REMOVE = "remove"


class Orientation(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class Box:
    """Axis-aligned rectangle in page points."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def rounded(self, ndigits: int = 2) -> "Box":
        return Box(
            x=round(self.x, ndigits),
            y=round(self.y, ndigits),
            width=round(self.width, ndigits),
            height=round(self.height, ndigits),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def union(cls, boxes: List["Box"]) -> "Box":
        x0 = min(b.x for b in boxes)
        y0 = min(b.y for b in boxes)
        x1 = max(b.right for b in boxes)
        y1 = max(b.bottom for b in boxes)
        return cls(x=x0, y=y0, width=x1 - x0, height=y1 - y0)


@dataclass(frozen=True)
class PageInfo:
    """Page number (1-based) and size in points."""

    page_number: int
    width: float
    height: float

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
                raise PageGeometryError(
                    "Page %s has invalid %s: %r" % (self.page_number, name, value)
                )
        if self.page_number < 1:
            raise PageGeometryError("Page number must be >= 1, got %r" % (self.page_number,))


@dataclass(frozen=True)
class TextSpan:
    """OCR text (line or word) with its bounding box."""

    content: str
    box: Box


@dataclass(frozen=True)
class SelectionMark:
    """OCR-detected checkbox/radio glyph."""

    box: Box
    state: str = "unselected"
    confidence: float = 0.5


@dataclass(frozen=True)
class LabelDescriptor:
    """AI description of one fillable field, identified by its printed label."""

    label_text: str
    field_type: FieldType = FieldType.UNDERLINE
    input_type: InputType = InputType.TEXT
    section: Optional[str] = None
    required: bool = False
    row_group: Optional[str] = None
    related_fields: Tuple[str, ...] = ()
    has_visible_boundary: Optional[bool] = None


@dataclass(frozen=True)
class LabelMatch:
    """Best OCR span for a label."""

    text: str
    box: Box
    score: float


@dataclass(frozen=True)
class MatchProvenance:
    matched_text: str
    match_score: float
    label_box: Box
    field_type: FieldType

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matchedText": self.matched_text,
            "matchScore": self.match_score,
            "labelBox": self.label_box.to_dict(),
            "fieldType": self.field_type.value,
        }


@dataclass(frozen=True)
class Resolution:
    action: ResolutionAction
    reason: str
    adjusted_box: Optional[Box] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"action": self.action.value, "reason": self.reason}
        if self.adjusted_box is not None:
            out["adjustedBox"] = self.adjusted_box.to_dict()
        return out


@dataclass(frozen=True)
class PositionedField:
    """A located form field plus the annotations later stages attach to it."""

    type: InputType
    name: str
    label: str
    box: Box
    page_number: int
    direction: Direction = Direction.RTL
    required: bool = False
    confidence: float = 0.0
    section_name: Optional[str] = None
    row_group: Optional[str] = None
    provenance: Optional[MatchProvenance] = None
    validation_status: Optional[ValidationStatus] = None
    original_box: Optional[Box] = None
    has_overlap: bool = False
    resolution: Optional[Resolution] = None
    tab_index: Optional[int] = None
    position_corrected: bool = False
    has_visible_boundary: bool = False

    @property
    def x(self) -> float:
        return self.box.x

    @property
    def y(self) -> float:
        return self.box.y

    @property
    def width(self) -> float:
        return self.box.width

    @property
    def height(self) -> float:
        return self.box.height

    @property
    def is_removed(self) -> bool:
        return self.resolution is not None and self.resolution.action is ResolutionAction.REMOVE

    @property
    def is_invalid(self) -> bool:
        return self.validation_status is ValidationStatus.INVALID

    @property
    def drop_reason(self) -> str:
        if self.is_invalid:
            if self.original_box is None:
                return "invalid: zero or negative dimensions"
            return "invalid: outside page bounds"
        if self.resolution is not None and self.resolution.action is ResolutionAction.REMOVE:
            return "removed: %s" % self.resolution.reason
        return ""

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "type": self.type.value,
            "name": self.name,
            "label": self.label,
            "x": self.box.x,
            "y": self.box.y,
            "width": self.box.width,
            "height": self.box.height,
            "pageNumber": self.page_number,
            "direction": self.direction.value,
            "required": self.required,
            "confidence": self.confidence,
        }
        if self.section_name:
            out["sectionName"] = self.section_name
        if self.provenance is not None:
            out["_source"] = self.provenance.to_dict()
        if self.validation_status is not None:
            out["validationStatus"] = self.validation_status.value
        if self.original_box is not None:
            out["originalBox"] = self.original_box.to_dict()
        if self.has_overlap:
            out["hasOverlap"] = True
        if self.resolution is not None:
            out["resolution"] = self.resolution.to_dict()
        if self.tab_index is not None:
            out["tabIndex"] = self.tab_index
        if self.position_corrected:
            out["positionCorrected"] = True
        if self.has_visible_boundary:
            out["hasVisibleBoundary"] = True
        return out


@dataclass(frozen=True)
class RadioGroupField:
    """Several checkbox/radio widgets merged into one mutually exclusive field."""

    name: str
    label: str
    box: Box
    page_number: int
    options: Tuple[str, ...]
    option_labels: Tuple[str, ...]
    orientation: Orientation
    members: Tuple[PositionedField, ...] = ()
    direction: Direction = Direction.RTL
    required: bool = False
    confidence: float = 0.0
    section_name: Optional[str] = None
    tab_index: Optional[int] = None

    @property
    def type(self) -> InputType:
        return InputType.RADIO

    @property
    def x(self) -> float:
        return self.box.x

    @property
    def y(self) -> float:
        return self.box.y

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "type": InputType.RADIO.value,
            "name": self.name,
            "label": self.label,
            "x": self.box.x,
            "y": self.box.y,
            "width": self.box.width,
            "height": self.box.height,
            "pageNumber": self.page_number,
            "direction": self.direction.value,
            "required": self.required,
            "confidence": self.confidence,
            "options": list(self.options),
            "optionLabels": list(self.option_labels),
            "orientation": self.orientation.value,
            "optionBoxes": [m.box.to_dict() for m in self.members],
        }
        if self.section_name:
            out["sectionName"] = self.section_name
        if self.tab_index is not None:
            out["tabIndex"] = self.tab_index
        return out


@dataclass(frozen=True)
class Violation:
    field: str
    issue: str  # "out_of_bounds" | "negative_coords" | "zero_dimensions"
    details: str
    suggested_fix: Optional[Box] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"field": self.field, "issue": self.issue, "details": self.details}
        if self.suggested_fix is not None:
            out["suggestedFix"] = self.suggested_fix.to_dict()
        return out


@dataclass
class ValidationResult:
    """Boundary audit of a field set. Does not modify the fields."""

    is_valid: bool
    violations: List[Violation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"isValid": self.is_valid, "violations": [v.to_dict() for v in self.violations]}


@dataclass(frozen=True)
class PageInput:
    """Everything the engine needs for one page."""

    page: PageInfo
    descriptors: Tuple[LabelDescriptor, ...] = ()
    lines: Tuple[TextSpan, ...] = ()
    words: Tuple[TextSpan, ...] = ()
    selection_marks: Tuple[SelectionMark, ...] = ()
