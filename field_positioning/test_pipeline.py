import json
import tempfile
import unittest
from pathlib import Path

from field_positioning.config import PipelineConfig
from field_positioning.layout_reader import PageText
from field_positioning.pipeline import FieldPositioningPipeline, run_pipeline
from field_positioning.position_verifier import PositionVerifier
from field_positioning.types import (
    Box,
    FieldType,
    InputType,
    LabelDescriptor,
    Orientation,
    PageInfo,
    PageInput,
    RadioGroupField,
    SelectionMark,
    TextSpan,
)


def _span(text, x, y, w=80, h=14) -> TextSpan:
    return TextSpan(content=text, box=Box(x=x, y=y, width=w, height=h))


def _mark(x, y, confidence=0.9) -> SelectionMark:
    return SelectionMark(box=Box(x=x, y=y, width=10, height=10), confidence=confidence)


def _choice(label: str) -> LabelDescriptor:
    return LabelDescriptor(label, field_type=FieldType.SELECTION_MARK, input_type=InputType.CHECKBOX)


def _page(number: int = 1) -> PageInput:
    return PageInput(
        page=PageInfo(page_number=number, width=595, height=842),
        descriptors=(
            LabelDescriptor("שם פרטי", required=True),
            LabelDescriptor("שם משפחה"),
            LabelDescriptor("שם"),
            LabelDescriptor("הערות"),
            LabelDescriptor("טלפון"),
            _choice("זכר"),
            _choice("נקבה"),
            _choice("אחר"),
        ),
        lines=(
            _span("שם פרטי:", 400, 100),
            _span("שם משפחה:", 400, 130),
            _span("הערות", 40, 300, w=50),
        ),
        words=(
            _span("זכר", 112, 200, w=20),
            _span("נקבה", 142, 200, w=20),
            _span("אחר", 172, 200, w=20),
        ),
        selection_marks=(_mark(100, 200), _mark(130, 200), _mark(160, 200)),
    )


class _StubReader:
    def __init__(self, texts):
        self.texts = texts

    def read(self, pdf_path, pages=None):
        return {p: t for p, t in self.texts.items() if pages is None or p in pages}


class TestFieldPositioningPipeline(unittest.TestCase):
    def test_process_page(self) -> None:
        result = FieldPositioningPipeline(PipelineConfig()).process_page(_page())
        self.assertEqual(result.unmatched, ["טלפון"])
        self.assertEqual(sorted(f.name for f in result.dropped), ["הערות", "שם"])
        names = [f.name for f in result.fields]
        self.assertEqual(names[:2], ["שם_פרטי", "שם_משפחה"])
        radio = result.fields[2]
        self.assertIsInstance(radio, RadioGroupField)
        self.assertEqual(radio.options, ("אחר", "נקבה", "זכר"))
        self.assertEqual(radio.orientation, Orientation.HORIZONTAL)
        self.assertEqual(result.stats["matched"], 7)
        self.assertEqual(result.stats["radioGroups"], 1)

    def test_first_name_box(self) -> None:
        result = FieldPositioningPipeline().process_page(_page())
        first = result.fields[0]
        self.assertEqual(first.box, Box(x=195, y=100, width=200, height=14))
        self.assertEqual(first.confidence, 0.9)
        self.assertTrue(first.required)

    def test_process_document_tab_order_and_names(self) -> None:
        doc = FieldPositioningPipeline().process_document([_page(1), _page(2)])
        self.assertEqual([f.tab_index for f in doc.fields], list(range(1, 7)))
        self.assertEqual(doc.fields[0].name, "שם_פרטי")
        self.assertEqual(doc.fields[3].name, "שם_פרטי_2")
        self.assertEqual(len({f.name for f in doc.fields}), len(doc.fields))
        self.assertEqual(len(doc.unmatched), 2)
        self.assertTrue(doc.audit.is_valid)
        self.assertEqual(set(doc.confidence), {f.name for f in doc.fields})
        self.assertEqual(doc.rows["שם_פרטי"].row_number, 1)
        self.assertEqual(doc.rows["שם_פרטי_2"].row_number, 4)

    def test_dropped_fields_have_reasons(self) -> None:
        doc = FieldPositioningPipeline().process_document([_page()])
        reasons = {f.name: f.drop_reason for f in doc.dropped}
        self.assertTrue(reasons["שם"].startswith("removed:"))
        self.assertTrue(reasons["הערות"].startswith("invalid:"))

    def test_to_dict_is_json_serializable(self) -> None:
        doc = FieldPositioningPipeline().process_document([_page()], source="form.json")
        data = json.loads(json.dumps(doc.to_dict(), ensure_ascii=False))
        self.assertEqual(data["source"], "form.json")
        self.assertEqual(data["fields"][0]["tabIndex"], 1)
        self.assertIn("dropReason", data["dropped"][0])
        self.assertEqual(data["fields"][2]["type"], "radio")

    def test_deterministic(self) -> None:
        a = FieldPositioningPipeline().process_document([_page()]).to_dict()
        b = FieldPositioningPipeline().process_document([_page()]).to_dict()
        self.assertEqual(a, b)

    def test_visible_boundary_raises_confidence_report(self) -> None:
        def doc_for(boundary):
            page = PageInput(
                page=PageInfo(page_number=1, width=595, height=842),
                descriptors=(LabelDescriptor("כתובת", has_visible_boundary=boundary),),
                lines=(_span("כתובת מגורים", 400, 100),),
            )
            return FieldPositioningPipeline().process_document([page])

        plain = doc_for(None)
        boxed = doc_for(True)
        self.assertFalse(plain.fields[0].has_visible_boundary)
        self.assertTrue(boxed.fields[0].has_visible_boundary)
        self.assertAlmostEqual(plain.confidence["כתובת"].overall, 0.97)
        self.assertEqual(boxed.confidence["כתובת"].overall, 1.0)
        self.assertTrue(boxed.to_dict()["fields"][0]["hasVisibleBoundary"])

    def test_ltr_direction(self) -> None:
        page = PageInput(
            page=PageInfo(page_number=1, width=595, height=842),
            descriptors=(LabelDescriptor("Left"), LabelDescriptor("Right")),
            lines=(_span("Right", 500, 100), _span("Left", 300, 104)),
        )
        doc = FieldPositioningPipeline().process_document([page], direction="ltr")
        self.assertEqual([f.name for f in doc.fields], ["Left", "Right"])

    def test_verification_moves_misplaced_field(self) -> None:
        page = PageInput(
            page=PageInfo(page_number=1, width=595, height=842),
            descriptors=(LabelDescriptor("כתובת"),),
            lines=(_span("כתובת", 400, 100),),
        )
        # The PDF text layer puts the label further left than the OCR did.
        texts = {1: PageText(page=page.page, lines=[_span("כתובת", 200, 100)])}
        config = PipelineConfig(verify_positions=True)
        verifier = PositionVerifier(config, reader=_StubReader(texts))
        doc = FieldPositioningPipeline(config, verifier=verifier).process_document(
            [page], pdf_path=Path("form.pdf")
        )
        (f,) = doc.fields
        self.assertTrue(f.position_corrected)
        self.assertEqual(f.box.x, 29.75)
        self.assertLessEqual(f.box.right, 200)

    def test_verification_off_by_default(self) -> None:
        page = PageInput(
            page=PageInfo(page_number=1, width=595, height=842),
            descriptors=(LabelDescriptor("כתובת"),),
            lines=(_span("כתובת", 400, 100),),
        )
        verifier = PositionVerifier(PipelineConfig(), reader=_StubReader({}))
        doc = FieldPositioningPipeline(verifier=verifier).process_document([page], pdf_path=Path("x.pdf"))
        self.assertFalse(doc.fields[0].position_corrected)


class TestRunPipeline(unittest.TestCase):
    def test_run_pipeline_writes_reports(self) -> None:
        document = {
            "pages": [{
                "pageNumber": 1, "width": 595, "height": 842,
                "lines": [{"content": "שם פרטי:", "box": {"x": 400, "y": 100, "width": 80, "height": 14}}],
                "fields": [{"labelText": "שם פרטי", "fieldType": "underline", "inputType": "text"},
                           {"labelText": "טלפון"}],
            }]
        }
        with tempfile.TemporaryDirectory() as tmp:
            tmp = Path(tmp)
            src = tmp / "form.json"
            src.write_text(json.dumps(document, ensure_ascii=False), encoding="utf-8")
            result = run_pipeline(
                src,
                output_excel_path=tmp / "out" / "fields.xlsx",
                json_path=tmp / "fields.json",
                debug_dir=tmp / "debug",
            )
            self.assertEqual(len(result.fields), 1)
            self.assertTrue((tmp / "out" / "fields.xlsx").exists())
            self.assertTrue((tmp / "debug" / "form_debug.json").exists())
            data = json.loads((tmp / "fields.json").read_text(encoding="utf-8"))
            self.assertEqual(data["unmatched"], [{"pageNumber": 1, "label": "טלפון"}])

            import openpyxl

            wb = openpyxl.load_workbook(tmp / "out" / "fields.xlsx")
            self.assertEqual(wb.sheetnames, ["Fields", "Dropped", "Violations"])
            self.assertEqual(wb["Fields"].cell(row=2, column=4).value, "שם_פרטי")


if __name__ == "__main__":
    unittest.main()
