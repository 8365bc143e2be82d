"""Tests für Excel- und PDF-Export der Zeugnisse."""

import pytest

from config.defaults import DEFAULT_WEIGHTS, default_categories, default_config
from export import ExcelExporter, PdfExporter
from export.helpers import build_report_cards, format_average, hex_to_rgb, letter_color
from export.pdf_export import _pdf_safe
from models.grade import Grade
from models.gradebook import Gradebook
from models.lesson import GradingPeriodMarker, Lesson
from models.student import Student
from models.subject import Subject


# ─── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture(scope="module")
def gradebook() -> Gradebook:
    math_lessons = [
        Lesson(id="m-l1", name="Lesson 1", subject_id="math", category_id="lesson", order_index=10),
        Lesson(id="m-l2", name="Lesson 2", subject_id="math", category_id="lesson", order_index=20),
        Lesson(id="m-t1", name="Test 1", subject_id="math", category_id="test", order_index=30),
    ]
    subjects = [
        Subject(id="math", name="Saxon Math", report_card_name="Mathematics",
                weights=dict(DEFAULT_WEIGHTS), lessons=math_lessons),
        Subject(id="reading", name="Reading", weights=dict(DEFAULT_WEIGHTS), lessons=[
            Lesson(id="r-l1", name="Lesson 1", subject_id="reading", category_id="lesson",
                   order_index=10),
        ]),
    ]
    grades = [
        Grade(id="g1", student_id="s1", lesson_id="m-l1", percentage=80),
        Grade(id="g2", student_id="s1", lesson_id="m-l2", percentage=90),
        Grade(id="g3", student_id="s1", lesson_id="m-t1", percentage=70),
        Grade(id="g4", student_id="s1", lesson_id="r-l1", percentage=95),
        Grade(id="g5", student_id="s2", lesson_id="m-l1", percentage=55),
    ]
    return Gradebook(
        user_id="u1",
        categories=default_categories(),
        subjects=subjects,
        students=[
            Student(id="s2", name="Liam Reed"),
            Student(id="s1", name="Ava Smith"),
            Student(id="s3", name="Noah Kim"),
        ],
        grades=grades,
        markers=[GradingPeriodMarker(id="mk1", subject_id="math", order_index=25)],
        comments={"s1": "Ava worked steadily — great progress."},
    )


@pytest.fixture(scope="module")
def config():
    return default_config()


# ─── HELPERS ──────────────────────────────────────────────────────────────────

class TestHelpers:
    def test_hex_to_rgb(self):
        assert hex_to_rgb("4472C4") == (0x44, 0x72, 0xC4)

    def test_letter_color_uses_band(self):
        assert letter_color("B+") == letter_color("B-")
        assert letter_color("N/A") != letter_color("A")

    def test_format_average(self):
        assert format_average(75.1) == "75.1"
        assert format_average(75.06, 0) == "75"
        assert format_average(None) == "–"

    def test_build_report_cards_sorted_and_filtered(self, gradebook):
        cards = build_report_cards(gradebook, "current")
        assert [name for name, _ in cards] == ["Ava Smith", "Liam Reed"]

    def test_build_report_cards_for_period(self, gradebook):
        """Periode 2 enthält nur die Lektionen nach dem Marker (Test 1)."""
        cards = dict(build_report_cards(gradebook, "sw2"))
        assert list(cards) == ["Ava Smith"]
        assert cards["Ava Smith"].overall_gpa == pytest.approx(70.0)

    def test_pdf_safe(self):
        assert _pdf_safe("a — b") == "a  -  b"
        assert _pdf_safe("Zoë") == "Zoë"


# ─── EXCEL ────────────────────────────────────────────────────────────────────

class TestExcelExport:
    def test_workbook_structure(self, gradebook, config, tmp_path):
        from openpyxl import load_workbook

        path = tmp_path / "out" / "zeugnisse.xlsx"
        ExcelExporter(gradebook, config).export(path, "current")
        assert path.exists()

        wb = load_workbook(path)
        assert wb.sheetnames == ["Übersicht", "Mathematics", "Reading"]

    def test_overview_values(self, gradebook, config, tmp_path):
        from openpyxl import load_workbook

        path = tmp_path / "zeugnisse.xlsx"
        ExcelExporter(gradebook, config).export(path, "current")
        ws = load_workbook(path)["Übersicht"]

        assert [ws.cell(row=4, column=c).value for c in range(1, 6)] == [
            "Name", "Mathematics", "Reading", "Gesamt", "Note",
        ]
        assert ws.cell(row=5, column=1).value == "Ava Smith"
        assert ws.cell(row=5, column=2).value == pytest.approx(75.1)
        assert ws.cell(row=5, column=3).value == pytest.approx(95.0)
        assert ws.cell(row=5, column=5).value == "B"
        assert ws.cell(row=6, column=1).value == "Liam Reed"
        assert ws.cell(row=6, column=3).value is None
        assert ws.cell(row=7, column=1).value is None

    def test_subject_sheet_breakdown(self, gradebook, config, tmp_path):
        from openpyxl import load_workbook

        path = tmp_path / "zeugnisse.xlsx"
        ExcelExporter(gradebook, config).export(path, "current")
        ws = load_workbook(path)["Mathematics"]

        assert ws.cell(row=2, column=1).value == "Ava Smith"
        assert ws.cell(row=2, column=2).value == "Lesson"
        assert ws.cell(row=2, column=4).value == pytest.approx(85.0)
        assert ws.cell(row=3, column=2).value == "Test"
        assert ws.cell(row=3, column=5).value == pytest.approx(0.66)
        assert ws.cell(row=4, column=2).value == "Gesamt"
        assert ws.cell(row=4, column=4).value == pytest.approx(75.1)
        assert ws.cell(row=6, column=1).value == "Liam Reed"

    def test_duplicate_sheet_titles(self, config, tmp_path):
        from openpyxl import load_workbook

        gb = Gradebook(subjects=[
            Subject(id="a", name="Math"),
            Subject(id="b", name="Math"),
        ])
        path = tmp_path / "dup.xlsx"
        ExcelExporter(gb, config).export(path)
        assert load_workbook(path).sheetnames == ["Übersicht", "Math", "Math (2)"]


# ─── PDF ──────────────────────────────────────────────────────────────────────

class TestPdfExport:
    def test_one_page_per_student(self, gradebook, config, tmp_path):
        path = tmp_path / "out" / "zeugnisse.pdf"
        count = PdfExporter(gradebook, config).export_report_cards(path, "current")
        assert count == 2
        assert path.exists()
        assert path.read_bytes().startswith(b"%PDF")

    def test_empty_gradebook_still_writes_file(self, config, tmp_path):
        path = tmp_path / "leer.pdf"
        count = PdfExporter(Gradebook(), config).export_report_cards(path, "sw1")
        assert count == 0
        assert path.read_bytes().startswith(b"%PDF")

    def test_without_letters_and_comments(self, gradebook, tmp_path):
        config = default_config()
        config = config.model_copy(update={
            "report": config.report.model_copy(update={
                "show_letter_grades": False, "include_comments": False,
            }),
        })
        path = tmp_path / "plain.pdf"
        assert PdfExporter(gradebook, config).export_report_cards(path, "q1") >= 1
        assert path.stat().st_size > 0
