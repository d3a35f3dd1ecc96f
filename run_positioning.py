#!/usr/bin/env python3
"""
CLI entrypoint for the Field Positioning Engine.
Usage:
  python run_positioning.py <input.json> [--output fields_output.xlsx] [--json fields.json]
  python run_positioning.py <input.json> --pdf form.pdf --verify
  python run_positioning.py --help
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure package is importable when run from project root
sys.path.insert(0, str(Path(__file__).resolve().parent))

from field_positioning import run_pipeline
from field_positioning.config import PipelineConfig


def setup_logging(level: str = "INFO") -> None:
    """Configure logging: per-page summaries at INFO, per-field decisions at DEBUG."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Position form fields from OCR layout and AI label descriptors. "
        "Produces an Excel report and optional JSON."
    )
    parser.add_argument(
        "input_json",
        type=Path,
        help="JSON document with pages, OCR lines/words and field descriptors",
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=Path("fields_output.xlsx"),
        help="Output Excel file path (default: fields_output.xlsx)",
    )
    parser.add_argument(
        "--json",
        type=Path,
        default=None,
        help="If set, also write the positioned fields as JSON here",
    )
    parser.add_argument(
        "--pdf",
        type=Path,
        default=None,
        help="Source PDF (needed for --verify)",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Cross-check field positions against the PDF text layer",
    )
    parser.add_argument(
        "--direction",
        choices=["rtl", "ltr"],
        default="rtl",
        help="Reading direction for tab order (default: rtl)",
    )
    parser.add_argument(
        "--debug-dir",
        type=Path,
        default=None,
        help="If set, write per-document debug JSON here",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args()

    setup_logging(args.log_level)

    if not args.input_json.is_file():
        print(f"Error: input file does not exist: {args.input_json}", file=sys.stderr)
        return 1
    if args.verify and (args.pdf is None or not args.pdf.is_file()):
        print("Error: --verify needs an existing --pdf", file=sys.stderr)
        return 1

    config = PipelineConfig(
        input_path=args.input_json,
        output_excel_path=args.output,
        debug_output_dir=args.debug_dir,
        direction=args.direction,
        verify_positions=args.verify,
        log_level=args.log_level,
    )

    try:
        result = run_pipeline(
            args.input_json,
            output_excel_path=args.output,
            json_path=args.json,
            pdf_path=args.pdf,
            debug_dir=args.debug_dir,
            config=config,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(
        f"Done. {len(result.fields)} fields positioned, {len(result.dropped)} dropped, "
        f"{len(result.unmatched)} labels unmatched."
    )
    print(f"Output: {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
