"""
Excel export: one workbook per document.
Sheet "Fields": final fields in tab order.
Sheet "Dropped": removed / invalid fields with the reason.
Sheet "Violations": boundary audit of the final fields.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .config import PipelineConfig
from .types import RadioGroupField

if TYPE_CHECKING:
    from .pipeline import DocumentResult

logger = logging.getLogger(__name__)

try:
    import openpyxl
    from openpyxl import Workbook
    from openpyxl.utils import get_column_letter
except ImportError:
    Workbook = None  # type: ignore
    openpyxl = None  # type: ignore

FIELD_COLUMNS = [
    "Tab_Index", "Page", "Row", "Name", "Label", "Type", "X", "Y", "Width", "Height",
    "Direction", "Required", "Confidence", "Quality", "Section", "Status",
    "Resolution", "Options",
]


def _autosize(ws) -> None:
    for idx, column in enumerate(ws.columns, start=1):
        longest = max((len(str(c.value)) for c in column if c.value is not None), default=0)
        ws.column_dimensions[get_column_letter(idx)].width = min(60, max(10, longest + 2))


def export_to_excel(
    result: "DocumentResult",
    output_path: Path,
    config: Optional[PipelineConfig] = None,
) -> None:
    """Write the document's fields, dropped fields and violations to one workbook."""
    if openpyxl is None or Workbook is None:
        raise ImportError("openpyxl is required. Install with: pip install openpyxl")

    wb = Workbook()
    ws = wb.active
    ws.title = "Fields"
    ws.append(FIELD_COLUMNS)
    for f in result.fields:
        report = result.confidence.get(f.name)
        row = result.rows.get(f.name)
        if isinstance(f, RadioGroupField):
            status, resolution, options = "", "", " | ".join(f.option_labels)
        else:
            status = f.validation_status.value if f.validation_status else ""
            resolution = f.resolution.action.value if f.resolution else ""
            options = ""
        ws.append([
            f.tab_index, f.page_number, row.row_number if row else "", f.name, f.label, f.type.value,
            round(f.box.x, 2), round(f.box.y, 2), round(f.box.width, 2), round(f.box.height, 2),
            f.direction.value, f.required, round(f.confidence, 4),
            report.quality if report else "", f.section_name or "", status, resolution, options,
        ])
    _autosize(ws)

    dropped = wb.create_sheet("Dropped")
    dropped.append(["Page", "Name", "Label", "Type", "Confidence", "Reason"])
    for f in result.dropped:
        dropped.append([
            f.page_number, f.name, f.label, f.type.value, round(f.confidence, 4), f.drop_reason,
        ])
    for u in result.unmatched:
        dropped.append([u["pageNumber"], "", u["label"], "", "", "unmatched: no OCR text"])
    _autosize(dropped)

    violations = wb.create_sheet("Violations")
    violations.append(["Field", "Issue", "Details", "Suggested_Fix"])
    for v in result.audit.violations:
        fix = v.suggested_fix
        violations.append([
            v.field, v.issue, v.details,
            "" if fix is None else "%.2f,%.2f,%.2f,%.2f" % (fix.x, fix.y, fix.width, fix.height),
        ])
    _autosize(violations)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
    logger.info(
        "Saved Excel to %s (%d fields, %d dropped)",
        output_path, len(result.fields), len(result.dropped),
    )
