"""
One-off script to dump a PDF's text layer as engine input JSON.
Output per PDF: <name>_layout.json ({"pages": [...]} with lines/words and an
empty "fields" list to fill with descriptors) and a readable <name>_lines.txt.
"""

import json
import sys
from pathlib import Path

from field_positioning.layout_reader import PDFLayoutReader


def dump_pdf(pdf_path: Path, out_dir: Path, reader: PDFLayoutReader) -> None:
    name = "".join(c if c.isalnum() or c in "._-" else "_" for c in pdf_path.stem)
    pages = []
    lines_out = []
    for number, text in sorted(reader.read(pdf_path).items()):
        info = text.page
        lines_out.append(f"\n=== Page {number} ({info.width:.0f}x{info.height:.0f}) ===\n")
        for line in text.lines[:60]:
            lines_out.append(f"y={line.box.y:.0f} x={line.box.x:.0f}: {line.content}\n")
        pages.append({
            "pageNumber": number,
            "width": info.width,
            "height": info.height,
            "lines": [{"content": s.content, "box": s.box.to_dict()} for s in text.lines],
            "words": [{"content": s.content, "box": s.box.to_dict()} for s in text.words],
            "selectionMarks": [],
            "fields": [],
        })
    out_dir.mkdir(parents=True, exist_ok=True)
    txt_path = out_dir / f"{name}_lines.txt"
    txt_path.write_text("".join(lines_out), encoding="utf-8")
    json_path = out_dir / f"{name}_layout.json"
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump({"pages": pages}, f, indent=2, ensure_ascii=False)
    print(f"Wrote {txt_path} and {json_path}")


if __name__ == "__main__":
    folder = Path(sys.argv[1] if len(sys.argv) > 1 else "forms")
    out = Path(sys.argv[2] if len(sys.argv) > 2 else "layout_out")
    reader = PDFLayoutReader()
    for f in sorted(folder.glob("*.pdf")) + sorted(folder.glob("*.PDF")):
        dump_pdf(f, out, reader)
