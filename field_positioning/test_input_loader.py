import json
import tempfile
import unittest
from pathlib import Path

from field_positioning.input_loader import load_document, parse_descriptor, parse_document
from field_positioning.types import (
    Box,
    FieldType,
    InputFormatError,
    InputType,
    PageGeometryError,
)

DOC = {
    "pages": [
        {
            "pageNumber": 1,
            "width": 595,
            "height": 842,
            "lines": [{"content": "שם פרטי:", "box": {"x": 400, "y": 100, "width": 60, "height": 12}}],
            "words": [{"content": "שם", "polygon": [6, 1, 6.5, 1, 6.5, 1.2, 6, 1.2]}],
            "selectionMarks": [
                {"state": "selected", "confidence": 0.95, "box": {"x": 300, "y": 200, "width": 9, "height": 9}}
            ],
            "fields": [
                {"labelText": "שם פרטי", "fieldType": "underline", "inputType": "text",
                 "section": "פרטים", "required": True},
                {"labelText": "זכר", "fieldType": "selection_mark", "inputType": "checkbox"},
            ],
        }
    ]
}


class TestInputLoader(unittest.TestCase):
    def test_parse_document(self) -> None:
        (page,) = parse_document(DOC)
        self.assertEqual(page.page.page_number, 1)
        self.assertEqual(page.lines[0].box, Box(x=400, y=100, width=60, height=12))
        self.assertEqual(page.words[0].box, Box(x=432, y=72, width=36, height=14.4))
        self.assertEqual(page.selection_marks[0].confidence, 0.95)
        first, second = page.descriptors
        self.assertTrue(first.required)
        self.assertEqual(first.section, "פרטים")
        self.assertEqual(second.field_type, FieldType.SELECTION_MARK)
        self.assertEqual(second.input_type, InputType.CHECKBOX)

    def test_dimensions_object_and_text_lines(self) -> None:
        (page,) = parse_document([{
            "dimensions": {"width": 612, "height": 792},
            "textLines": [{"content": "Name", "box": {"x": 1, "y": 2, "width": 3, "height": 4}}],
        }])
        self.assertEqual(page.page.width, 612)
        self.assertEqual(page.page.page_number, 1)
        self.assertEqual(page.lines[0].content, "Name")

    def test_bad_page_dimensions_raise(self) -> None:
        with self.assertRaises(PageGeometryError):
            parse_document({"pages": [{"width": 0, "height": 842}]})

    def test_missing_dimensions(self) -> None:
        with self.assertRaises(InputFormatError):
            parse_document({"pages": [{"pageNumber": 1}]})

    def test_unknown_field_type(self) -> None:
        with self.assertRaises(InputFormatError):
            parse_descriptor({"labelText": "x", "fieldType": "hologram"})

    def test_span_without_geometry(self) -> None:
        with self.assertRaises(InputFormatError):
            parse_document({"pages": [{"width": 595, "height": 842, "lines": [{"content": "x"}]}]})

    def test_missing_pages(self) -> None:
        with self.assertRaises(InputFormatError):
            parse_document({"document": {}})

    def test_descriptor_defaults(self) -> None:
        d = parse_descriptor({"labelText": "כתובת"})
        self.assertEqual(d.field_type, FieldType.UNDERLINE)
        self.assertEqual(d.input_type, InputType.TEXT)
        self.assertFalse(d.required)
        self.assertIsNone(d.section)

    def test_load_document(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "doc.json"
            path.write_text(json.dumps(DOC, ensure_ascii=False), encoding="utf-8")
            pages = load_document(path)
            self.assertEqual(len(pages[0].descriptors), 2)

            bad = Path(tmp) / "bad.json"
            bad.write_text("{not json", encoding="utf-8")
            with self.assertRaises(InputFormatError):
                load_document(bad)


if __name__ == "__main__":
    unittest.main()
