import unittest

from field_positioning.boundary_validator import BoundaryValidator, audit_boundaries, clamp_box
from field_positioning.config import PipelineConfig
from field_positioning.types import (
    Box,
    PageGeometryError,
    PageInfo,
    PositionedField,
    InputType,
    ValidationStatus,
)

PAGE = PageInfo(page_number=1, width=595, height=842)


def _field(x: float, y: float, w: float, h: float, name: str = "f") -> PositionedField:
    return PositionedField(
        type=InputType.TEXT, name=name, label=name,
        box=Box(x=x, y=y, width=w, height=h), page_number=1, confidence=0.8,
    )


class TestBoundaryValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = BoundaryValidator(PipelineConfig())

    def test_inside_page_is_valid(self) -> None:
        f = self.validator.validate(_field(100, 100, 100, 20), PAGE)
        self.assertEqual(f.validation_status, ValidationStatus.VALID)
        self.assertIsNone(f.original_box)

    def test_revalidating_valid_field_is_noop(self) -> None:
        once = self.validator.validate(_field(100, 100, 100, 20), PAGE)
        twice = self.validator.validate(once, PAGE)
        self.assertEqual(once, twice)

    def test_right_overflow_is_adjusted(self) -> None:
        f = self.validator.validate(_field(500, 100, 200, 20), PAGE)
        self.assertEqual(f.validation_status, ValidationStatus.ADJUSTED)
        self.assertLessEqual(f.width, 95)
        self.assertEqual(f.original_box, Box(x=500, y=100, width=200, height=20))

    def test_at_right_edge_is_invalid(self) -> None:
        f = self.validator.validate(_field(595, 100, 50, 20), PAGE)
        self.assertEqual(f.validation_status, ValidationStatus.INVALID)
        self.assertIsNotNone(f.original_box)

    def test_below_page_is_invalid(self) -> None:
        f = self.validator.validate(_field(100, 900, 50, 20), PAGE)
        self.assertEqual(f.validation_status, ValidationStatus.INVALID)

    def test_zero_dimensions_invalid_without_original(self) -> None:
        f = self.validator.validate(_field(100, 100, 0, 20), PAGE)
        self.assertEqual(f.validation_status, ValidationStatus.INVALID)
        self.assertIsNone(f.original_box)

    def test_negative_coordinates_are_clamped(self) -> None:
        f = self.validator.validate(_field(-10, -5, 100, 20), PAGE)
        self.assertEqual(f.validation_status, ValidationStatus.ADJUSTED)
        self.assertEqual(f.box, Box(x=0, y=0, width=90, height=15))

    def test_clamped_to_nothing_is_invalid(self) -> None:
        f = self.validator.validate(_field(-30, 100, 20, 20), PAGE)
        self.assertEqual(f.validation_status, ValidationStatus.INVALID)

    def test_min_viable_size_floor(self) -> None:
        strict = BoundaryValidator(PipelineConfig(min_viable_size=10))
        f = strict.validate(_field(590, 100, 50, 20), PAGE)
        self.assertEqual(f.validation_status, ValidationStatus.INVALID)
        f = self.validator.validate(_field(590, 100, 50, 20), PAGE)
        self.assertEqual(f.validation_status, ValidationStatus.ADJUSTED)

    def test_non_invalid_fields_within_page(self) -> None:
        samples = [_field(x, y, 120, 30) for x in (-50, 0, 300, 540) for y in (-10, 400, 830)]
        for f in self.validator.validate_all(samples, PAGE):
            if f.validation_status is ValidationStatus.INVALID:
                continue
            self.assertGreaterEqual(f.x, 0)
            self.assertGreaterEqual(f.y, 0)
            self.assertLessEqual(f.box.right, PAGE.width)
            self.assertLessEqual(f.box.bottom, PAGE.height)
            self.assertGreater(f.width, 0)
            self.assertGreater(f.height, 0)


class TestAuditBoundaries(unittest.TestCase):
    def test_reports_without_mutating(self) -> None:
        fields = [_field(-5, 10, 50, 20, "neg"), _field(560, 10, 50, 20, "wide"), _field(10, 10, 0, 5, "flat")]
        result = audit_boundaries(fields, PAGE)
        self.assertFalse(result.is_valid)
        issues = {(v.field, v.issue) for v in result.violations}
        self.assertEqual(
            issues,
            {("neg", "negative_coords"), ("wide", "out_of_bounds"), ("flat", "zero_dimensions")},
        )
        wide = [v for v in result.violations if v.field == "wide"][0]
        self.assertEqual(wide.suggested_fix, Box(x=560, y=10, width=35, height=20))
        self.assertEqual(fields[0].box.x, -5)

    def test_clean_set_is_valid(self) -> None:
        self.assertTrue(audit_boundaries([_field(10, 10, 50, 20)], {1: PAGE}).is_valid)

    def test_unknown_page(self) -> None:
        result = audit_boundaries([_field(10, 10, 50, 20)], {2: PAGE})
        self.assertEqual(result.violations[0].issue, "out_of_bounds")


class TestPageGeometry(unittest.TestCase):
    def test_bad_dimensions_raise(self) -> None:
        with self.assertRaises(PageGeometryError):
            PageInfo(page_number=1, width=0, height=842)
        with self.assertRaises(PageGeometryError):
            PageInfo(page_number=1, width=595, height=float("nan"))
        with self.assertRaises(ValueError):
            PageInfo(page_number=0, width=595, height=842)

    def test_clamp_box(self) -> None:
        self.assertEqual(clamp_box(Box(x=580, y=830, width=30, height=30), PAGE), Box(x=580, y=830, width=15, height=12))


if __name__ == "__main__":
    unittest.main()
