"""
Field Positioning Pipeline:
OCR layout + AI label descriptors → Label Match → Field Box → Boundary Validation
→ Overlap Resolution → Radio Grouping → (optional PDF text verification) → Tab Order.
Deterministic for a given input; every per-field decision is kept on the field.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Union

from .boundary_validator import BoundaryValidator, audit_boundaries
from .confidence import ConfidenceReport, calculate_confidence
from .config import PipelineConfig
from .excel_export import export_to_excel
from .field_positioner import FieldPositioner
from .input_loader import load_document
from .label_matcher import LabelMatcher
from .naming import IdGenerator, unique_name
from .overlap_resolver import OverlapResolver, apply_adjustments, surviving
from .position_verifier import PositionVerifier, should_verify
from .radio_groups import RadioGroupDetector
from .tab_order import RowInfo, calculate_row_boundaries, calculate_tab_order
from .types import (
    PageInfo,
    PageInput,
    PositionedField,
    RadioGroupField,
    ResolutionAction,
    ValidationResult,
    ValidationStatus,
)

logger = logging.getLogger(__name__)

OutputField = Union[PositionedField, RadioGroupField]


@dataclass
class PageResult:
    page: PageInfo
    fields: List[OutputField] = field(default_factory=list)
    dropped: List[PositionedField] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DocumentResult:
    fields: List[OutputField] = field(default_factory=list)
    dropped: List[PositionedField] = field(default_factory=list)
    unmatched: List[Dict[str, Any]] = field(default_factory=list)
    page_stats: List[Dict[str, Any]] = field(default_factory=list)
    audit: ValidationResult = field(default_factory=lambda: ValidationResult(is_valid=True))
    confidence: Dict[str, ConfidenceReport] = field(default_factory=dict)
    rows: Dict[str, RowInfo] = field(default_factory=dict)
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "fields": [f.to_dict() for f in self.fields],
            "dropped": [dict(f.to_dict(), dropReason=f.drop_reason) for f in self.dropped],
            "unmatched": self.unmatched,
            "pages": self.page_stats,
            "validation": self.audit.to_dict(),
            "confidence": {name: r.to_dict() for name, r in self.confidence.items()},
            "rows": {
                name: {"rowNumber": r.row_number, "rowY": r.row_y, "rowHeight": r.row_height}
                for name, r in self.rows.items()
            },
        }


def confidence_report(f: OutputField) -> ConfidenceReport:
    """Diagnostic confidence for a final field."""
    if isinstance(f, RadioGroupField):
        return calculate_confidence(f.confidence, 1.0, 1.0)
    label_score = f.provenance.match_score if f.provenance is not None else f.confidence
    position = 1.0
    if f.validation_status is ValidationStatus.ADJUSTED or f.position_corrected or (
        f.resolution is not None and f.resolution.action is ResolutionAction.ADJUST
    ):
        position = 0.8
    return calculate_confidence(
        label_score, position, 1.0, visual_boundary=f.has_visible_boundary
    )


class FieldPositioningPipeline:
    """
    Positions AI-described form fields on OCR'd pages.
    One instance per document: field names are kept unique across its pages.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        id_generator: Optional[IdGenerator] = None,
        verifier: Optional[PositionVerifier] = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.matcher = LabelMatcher(self.config)
        self.positioner = FieldPositioner(self.config, id_generator)
        self.validator = BoundaryValidator(self.config)
        self.resolver = OverlapResolver(self.config)
        self.radio_detector = RadioGroupDetector(self.config)
        self._verifier = verifier
        self._taken_names: Set[str] = set()

    @property
    def verifier(self) -> PositionVerifier:
        if self._verifier is None:
            self._verifier = PositionVerifier(self.config)
        return self._verifier

    def process_page(self, page_input: PageInput, direction: Optional[str] = None) -> PageResult:
        """Match, position, validate, resolve overlaps and group radios on one page."""
        page = page_input.page
        direction = direction or self.config.direction
        result = PageResult(page=page)

        # 1) Match + position + validate
        validated: List[PositionedField] = []
        for descriptor in page_input.descriptors:
            match = self.matcher.match(
                descriptor.label_text, page_input.lines, page_input.words
            )
            if match is None:
                logger.debug("Page %d: no OCR match for %r", page.page_number, descriptor.label_text)
                result.unmatched.append(descriptor.label_text)
                continue
            positioned = self.positioner.position(
                descriptor, match, page, page_input.selection_marks
            )
            positioned = replace(positioned, name=unique_name(positioned.name, self._taken_names))
            validated.append(self.validator.validate(positioned, page))

        # 2) Overlaps among fields that still have a usable box
        invalid = [f for f in validated if f.is_invalid]
        resolved = self.resolver.resolve([f for f in validated if not f.is_invalid])
        moved = apply_adjustments(resolved)
        # An adjusted box may have been pushed past the page bottom.
        rechecked: List[PositionedField] = []
        for before, after in zip(resolved, moved):
            if after.box == before.box:
                rechecked.append(after)
                continue
            check = self.validator.validate(after, page)
            if check.validation_status is ValidationStatus.VALID:
                check = replace(
                    check,
                    validation_status=before.validation_status,
                    original_box=before.original_box,
                )
            rechecked.append(check)

        result.dropped = invalid + [f for f in rechecked if f.is_removed or f.is_invalid]
        kept = surviving(rechecked)

        # 3) Radio grouping
        grouped = self.radio_detector.merge_radios_by_group(kept)
        grouped = self.radio_detector.detect_groups(grouped, direction)
        result.fields = [
            replace(f, name=unique_name(f.name, self._taken_names))
            if isinstance(f, RadioGroupField) else f
            for f in grouped
        ]

        result.stats = {
            "pageNumber": page.page_number,
            "descriptors": len(page_input.descriptors),
            "matched": len(validated),
            "unmatched": len(result.unmatched),
            "adjusted": sum(1 for f in rechecked if f.validation_status is ValidationStatus.ADJUSTED),
            "flagged": sum(
                1 for f in rechecked
                if f.resolution is not None and f.resolution.action is ResolutionAction.FLAG
            ),
            "dropped": len(result.dropped),
            "radioGroups": sum(1 for f in result.fields if isinstance(f, RadioGroupField)),
            "fields": len(result.fields),
        }
        logger.info(
            "Page %d: %d/%d labels matched, %d fields kept, %d dropped",
            page.page_number,
            len(validated),
            len(page_input.descriptors),
            len(result.fields),
            len(result.dropped),
        )
        return result

    def process_document(
        self,
        pages: Sequence[PageInput],
        direction: Optional[str] = None,
        pdf_path: Optional[Path] = None,
        source: Optional[str] = None,
    ) -> DocumentResult:
        """Run all pages, optionally verify against the PDF text layer, then tab-order."""
        direction = direction or self.config.direction
        page_infos = {p.page.page_number: p.page for p in pages}
        doc = DocumentResult(source=source)

        fields: List[OutputField] = []
        for page_input in pages:
            page_result = self.process_page(page_input, direction)
            fields.extend(page_result.fields)
            doc.dropped.extend(page_result.dropped)
            doc.unmatched.extend(
                {"pageNumber": page_input.page.page_number, "label": label}
                for label in page_result.unmatched
            )
            doc.page_stats.append(page_result.stats)

        positioned = [f for f in fields if isinstance(f, PositionedField)]
        if self.config.verify_positions and pdf_path is not None:
            fields = self._verify(fields, Path(pdf_path), page_infos)
        elif should_verify(positioned, page_infos):
            logger.info(
                "Most RTL fields sit at the right page edge with low confidence; "
                "PDF text verification is recommended"
            )

        doc.fields = calculate_tab_order(fields, direction, self.config.row_tolerance)
        doc.audit = audit_boundaries(doc.fields, page_infos)
        doc.confidence = {f.name: confidence_report(f) for f in doc.fields}
        doc.rows = calculate_row_boundaries(doc.fields, self.config.row_tolerance)
        logger.info(
            "Document %s: %d fields, %d dropped, %d unmatched labels",
            source or "<memory>", len(doc.fields), len(doc.dropped), len(doc.unmatched),
        )
        return doc

    def _verify(
        self,
        fields: List[OutputField],
        pdf_path: Path,
        page_infos: Dict[int, PageInfo],
    ) -> List[OutputField]:
        """Verify plain fields against the PDF; radio groups pass through."""
        positions = [i for i, f in enumerate(fields) if isinstance(f, PositionedField)]
        verified = self.verifier.verify([fields[i] for i in positions], pdf_path)
        out = list(fields)
        for i, f in zip(positions, verified):
            if f.position_corrected and not fields[i].position_corrected:
                f = self.validator.validate(f, page_infos[f.page_number])
            out[i] = f
        return out

    def write_debug_json(self, result: DocumentResult, debug_dir: Path, name: str) -> Path:
        """Write optional debug JSON per document."""
        debug_dir = Path(debug_dir)
        debug_dir.mkdir(parents=True, exist_ok=True)
        safe = "".join(c if c.isalnum() or c in "._-" else "_" for c in name)
        path = debug_dir / f"{safe}_debug.json"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
        logger.debug("Wrote debug JSON: %s", path)
        return path


def run_pipeline(
    input_path: Optional[Path] = None,
    output_excel_path: Optional[Path] = None,
    json_path: Optional[Path] = None,
    pdf_path: Optional[Path] = None,
    debug_dir: Optional[Path] = None,
    config: Optional[PipelineConfig] = None,
) -> DocumentResult:
    """Convenience entry: load a JSON document, position its fields, write reports."""
    config = config or PipelineConfig()
    if input_path is None and config.input_path is None:
        raise ValueError("input_path is required")
    input_path = Path(input_path or config.input_path)
    output_excel_path = Path(output_excel_path or config.output_excel_path)
    pipeline = FieldPositioningPipeline(config=config)
    pages = load_document(input_path)
    result = pipeline.process_document(pages, pdf_path=pdf_path, source=str(input_path))

    debug_dir = Path(debug_dir) if debug_dir else config.debug_output_dir
    if debug_dir:
        pipeline.write_debug_json(result, debug_dir, input_path.stem)
    if json_path:
        json_path = Path(json_path)
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info("Wrote %s", json_path)
    export_to_excel(result, output_excel_path, config)
    logger.info("Wrote %s with %d fields", output_excel_path, len(result.fields))
    return result
