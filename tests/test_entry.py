"""Tests für die Noteneingabe: Parser, Rundung, Upsert und Live-Vorschau."""

import pytest

from config.defaults import DEFAULT_WEIGHTS
from engine.aggregation import compute_subject_average
from engine.entry import (
    GradeEntryError,
    build_grade,
    format_percentage,
    parse_grade_input,
    preview_subject_average,
    round_to_nearest_half,
    upsert_grade,
)
from models.grade import Grade
from models.lesson import Lesson
from models.subject import Subject


def _subject() -> Subject:
    lessons = [
        Lesson(id="l1", name="Lesson 1", subject_id="math", category_id="lesson", order_index=1),
        Lesson(id="t1", name="Test 1", subject_id="math", category_id="test",
               max_points=20, order_index=2),
        Lesson(id="t2", name="Test 2", subject_id="math", category_id="test",
               max_points=20, order_index=3),
    ]
    return Subject(id="math", name="Math", weights=dict(DEFAULT_WEIGHTS), lessons=lessons)


def _grades() -> list[Grade]:
    return [
        Grade(id="g1", student_id="s1", lesson_id="l1", percentage=85),
        Grade(id="g2", student_id="s1", lesson_id="t1", percentage=70,
              max_points=20, errors=6, points=14),
    ]


# ─── PARSER ───────────────────────────────────────────────────────────────────

class TestParseGradeInput:
    def test_skip(self):
        entry = parse_grade_input("s", max_points=10)
        assert entry.skipped
        assert entry.percentage == 0
        assert entry.errors == 10

    def test_letter_grade(self):
        entry = parse_grade_input("B+", max_points=20)
        assert entry.percentage == 88.5
        assert entry.errors == 2

    def test_fraction_sets_max_points(self):
        entry = parse_grade_input("17/20")
        assert entry.percentage == 85.0
        assert entry.errors == 3
        assert entry.max_points == 20

    def test_fraction_rounds_to_half(self):
        assert parse_grade_input("2/3").percentage == 66.5

    def test_fraction_zero_denominator(self):
        with pytest.raises(GradeEntryError):
            parse_grade_input("3/0")

    def test_percentage_rounded(self):
        entry = parse_grade_input("87.3")
        assert entry.percentage == 87.5
        assert entry.errors == 0

    def test_percentage_errors_from_max_points(self):
        entry = parse_grade_input("75", max_points=10)
        assert entry.errors == 3   # 2.5 → aufgerundet

    def test_errors_mode(self):
        entry = parse_grade_input("2", max_points=10, mode="errors")
        assert entry.percentage == 80.0
        assert entry.errors == 2

    def test_errors_mode_requires_max_points(self):
        with pytest.raises(GradeEntryError):
            parse_grade_input("2", mode="errors")

    @pytest.mark.parametrize("raw", ["", "   ", "abc", "1/2/3"])
    def test_invalid_input(self, raw):
        with pytest.raises(GradeEntryError):
            parse_grade_input(raw)

    @pytest.mark.parametrize("raw", ["nan", "inf", "-inf", "1e400"])
    @pytest.mark.parametrize("mode", ["percentage", "errors"])
    def test_non_finite_numbers(self, raw, mode):
        with pytest.raises(GradeEntryError):
            parse_grade_input(raw, max_points=10, mode=mode)

    def test_skip_requires_max_points(self):
        """Auslassen ohne Maximalpunktzahl wird abgelehnt."""
        with pytest.raises(GradeEntryError, match="Maximalpunktzahl"):
            parse_grade_input("S")
        with pytest.raises(GradeEntryError):
            parse_grade_input("s", max_points=0)

    def test_error_is_value_error(self):
        assert issubclass(GradeEntryError, ValueError)


class TestRounding:
    @pytest.mark.parametrize("raw,expected", [
        (87.3, 87.5), (87.25, 87.5), (87.2, 87.0), (99.76, 100.0), (0.1, 0.0),
    ])
    def test_round_to_nearest_half(self, raw, expected):
        assert round_to_nearest_half(raw) == expected

    def test_format_percentage(self):
        assert format_percentage(90.0) == "90"
        assert format_percentage(87.5) == "87.5"


# ─── SPEICHERN & VORSCHAU ─────────────────────────────────────────────────────

class TestBuildAndPreview:
    def test_build_regular_grade(self):
        entry = parse_grade_input("17/20")
        grade = build_grade(entry, "g9", "s1", "t2", subject_id="math")
        assert grade.points == 17
        assert grade.percentage == 85.0
        assert not grade.skipped

    def test_build_skipped_grade(self):
        grade = build_grade(parse_grade_input("S", 20), "g9", "s1", "t2")
        assert grade.skipped
        assert grade.has_legacy_skip_encoding
        assert grade.points == 0

    def test_upsert_replaces_same_pair(self):
        grades = _grades()
        pending = Grade(id="g1", student_id="s1", lesson_id="l1", percentage=95)
        result = upsert_grade(grades, pending)
        assert len(result) == 2
        assert next(g for g in result if g.lesson_id == "l1").percentage == 95
        assert grades[0].percentage == 85   # Original unverändert

    def test_upsert_appends_new_pair(self):
        pending = Grade(id="g3", student_id="s1", lesson_id="t2", percentage=100)
        assert len(upsert_grade(_grades(), pending)) == 3

    def test_preview_matches_engine(self):
        subject = _subject()
        pending = build_grade(parse_grade_input("20/20"), "g3", "s1", "t2")
        preview = preview_subject_average("s1", "math", [subject], _grades(), pending)
        direct = compute_subject_average(
            "s1", "math", [subject], upsert_grade(_grades(), pending),
        )
        assert preview == direct
        assert preview.average == pytest.approx(85.0)

    def test_preview_skip_removes_grade(self):
        subject = _subject()
        pending = build_grade(parse_grade_input("S", 20), "g2", "s1", "t1")
        preview = preview_subject_average("s1", "math", [subject], _grades(), pending)
        assert preview.average == pytest.approx(85.0)
