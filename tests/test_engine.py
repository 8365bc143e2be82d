"""Tests für die Aggregations-Engine: Durchschnitt, Aufschlüsselung, Zeugnis, Notenskala."""

import logging
import math

import pytest

from config.defaults import DEFAULT_WEIGHTS, default_categories
from engine.aggregation import (
    AggregationUsageError,
    compute_subject_average,
    generate_report_card,
    get_subject_calculation_breakdown,
    resolve_weights,
)
from engine.letter_grades import distribution_band, get_letter_grade, letter_to_percentage
from models.category import GradeCategory
from models.grade import Grade
from models.lesson import Lesson
from models.student import Student
from models.subject import Subject


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _make_subject(
    sid: str = "math",
    weights: dict | None = None,
    report_card_name: str | None = None,
    lessons_per_category: dict[str, int] | None = None,
) -> Subject:
    lessons_per_category = lessons_per_category or {"lesson": 3, "test": 2}
    lessons = []
    order = 0
    for cid, count in lessons_per_category.items():
        for n in range(1, count + 1):
            order += 10
            lessons.append(Lesson(
                id=f"{sid}-{cid}-{n}", name=f"{cid} {n}", subject_id=sid,
                category_id=cid, order_index=order,
            ))
    return Subject(
        id=sid,
        name=sid.capitalize(),
        report_card_name=report_card_name,
        weights=dict(DEFAULT_WEIGHTS) if weights is None else weights,
        lessons=lessons,
    )


_counter = {"n": 0}


def _grade(student_id: str, lesson_id: str, pct, subject_id: str | None = None,
           **kw) -> Grade:
    _counter["n"] += 1
    return Grade(
        id=f"g{_counter['n']}", student_id=student_id, lesson_id=lesson_id,
        subject_id=subject_id, percentage=pct, **kw,
    )


def _scenario_grades(student_id: str = "s1") -> list[Grade]:
    """Lesson = [80, 90], Test = [70]."""
    return [
        _grade(student_id, "math-lesson-1", 80),
        _grade(student_id, "math-lesson-2", 90),
        _grade(student_id, "math-test-1", 70),
    ]


# ─── FACH-DURCHSCHNITT ────────────────────────────────────────────────────────

class TestComputeSubjectAverage:
    def test_weighted_scenario(self):
        """85 × 0.34 + 70 × 0.66 = 75.1 → C."""
        subject = _make_subject()
        result = compute_subject_average("s1", "math", [subject], _scenario_grades())
        assert result is not None
        assert result.average == pytest.approx(75.1)
        assert result.letter_grade == "C"
        assert len(result.grades) == 3

    def test_even_split_without_weights(self):
        """Ohne Gewichte: Mittel der Kategorie-Durchschnitte (100 + 50) / 2 = 75."""
        subject = _make_subject(weights={})
        grades = [
            _grade("s1", "math-lesson-1", 100),
            _grade("s1", "math-test-1", 50),
        ]
        result = compute_subject_average("s1", "math", [subject], grades)
        assert result.average == pytest.approx(75.0)
        assert result.letter_grade == "C"

    def test_weight_conservation(self):
        """Gewichte mit Summe 1.0 → Ergebnis ist die direkte gewichtete Summe."""
        subject = _make_subject(weights={"lesson": 0.25, "test": 0.75})
        grades = [
            _grade("s1", "math-lesson-1", 64.5),
            _grade("s1", "math-lesson-2", 99),
            _grade("s1", "math-test-1", 71),
            _grade("s1", "math-test-2", 88),
        ]
        expected = (64.5 + 99) / 2 * 0.25 + (71 + 88) / 2 * 0.75
        result = compute_subject_average("s1", "math", [subject], grades)
        assert abs(result.average - expected) < 1e-9

    def test_skipped_grade_ignored(self):
        """Ausgelassene Noten zählen nie, unabhängig vom gespeicherten Wert."""
        subject = _make_subject()
        base = compute_subject_average("s1", "math", [subject], _scenario_grades())
        with_skip = _scenario_grades() + [
            _grade("s1", "math-lesson-3", 5, skipped=True),
            _grade("s1", "math-test-2", 100, skipped=True),
        ]
        result = compute_subject_average("s1", "math", [subject], with_skip)
        assert result.average == pytest.approx(base.average)
        assert len(result.grades) == 3

    def test_placeholder_excluded(self):
        """0.5 % ist ein Platzhalter und zählt nicht."""
        subject = _make_subject(weights={"lesson": 1.0})
        grades = [
            _grade("s1", "math-lesson-1", 80),
            _grade("s1", "math-lesson-2", 0.5),
        ]
        result = compute_subject_average("s1", "math", [subject], grades)
        assert result.average == pytest.approx(80.0)

    def test_real_zero_drags_average(self):
        """Genau 0 % ist eine echte Null und zieht den Schnitt herunter."""
        subject = _make_subject(weights={"lesson": 1.0})
        grades = [
            _grade("s1", "math-lesson-1", 80),
            _grade("s1", "math-lesson-2", 0),
        ]
        result = compute_subject_average("s1", "math", [subject], grades)
        assert result.average == pytest.approx(40.0)

    def test_one_percent_counts(self):
        subject = _make_subject(weights={"lesson": 1.0})
        grades = [
            _grade("s1", "math-lesson-1", 80),
            _grade("s1", "math-lesson-2", 1),
        ]
        result = compute_subject_average("s1", "math", [subject], grades)
        assert result.average == pytest.approx(40.5)

    def test_no_grades_returns_none(self):
        subject = _make_subject()
        assert compute_subject_average("s1", "math", [subject], []) is None

    def test_only_skipped_returns_none(self):
        subject = _make_subject()
        grades = [_grade("s1", "math-lesson-1", 90, skipped=True)]
        assert compute_subject_average("s1", "math", [subject], grades) is None

    def test_unknown_subject_returns_none(self):
        subject = _make_subject()
        assert compute_subject_average("s1", "nope", [subject], _scenario_grades()) is None

    def test_only_placeholders_gives_zero(self):
        """Nur Platzhalter: Ergebnis existiert, Durchschnitt 0."""
        subject = _make_subject()
        grades = [_grade("s1", "math-lesson-1", 0.2)]
        result = compute_subject_average("s1", "math", [subject], grades)
        assert result is not None
        assert result.average == 0.0
        assert result.letter_grade == "F"

    def test_other_students_ignored(self):
        subject = _make_subject()
        grades = _scenario_grades() + [_grade("s2", "math-lesson-1", 10)]
        result = compute_subject_average("s1", "math", [subject], grades)
        assert result.average == pytest.approx(75.1)

    def test_invalid_percentage_counts_as_zero(self):
        """Nicht-numerische Prozentwerte und NaN werden als 0 gewertet."""
        subject = _make_subject(weights={"lesson": 1.0})
        grades = [
            _grade("s1", "math-lesson-1", 90),
            _grade("s1", "math-lesson-2", "abc"),
            _grade("s1", "math-lesson-3", float("nan")),
        ]
        result = compute_subject_average("s1", "math", [subject], grades)
        assert result.average == pytest.approx(30.0)

    def test_numeric_string_percentage(self):
        subject = _make_subject(weights={"lesson": 1.0})
        grades = [_grade("s1", "math-lesson-1", "85.5")]
        result = compute_subject_average("s1", "math", [subject], grades)
        assert result.average == pytest.approx(85.5)

    def test_report_card_name_used(self):
        subject = _make_subject(report_card_name="Mathematics")
        result = compute_subject_average("s1", "math", [subject], _scenario_grades())
        assert result.subject_name == "Mathematics"

    def test_blank_report_card_name_falls_back(self):
        subject = _make_subject(report_card_name="   ")
        result = compute_subject_average("s1", "math", [subject], _scenario_grades())
        assert result.subject_name == "Math"

    def test_idempotent(self):
        subject = _make_subject()
        grades = _scenario_grades()
        a = compute_subject_average("s1", "math", [subject], grades)
        b = compute_subject_average("s1", "math", [subject], grades)
        assert a == b
        assert a.average == b.average

    def test_inputs_not_mutated(self):
        subject = _make_subject()
        grades = _scenario_grades()
        before = [g.model_dump() for g in grades]
        compute_subject_average("s1", "math", [subject], grades)
        assert [g.model_dump() for g in grades] == before

    def test_lesson_ids_restrict_period(self):
        subject = _make_subject()
        result = compute_subject_average(
            "s1", "math", [subject], _scenario_grades(),
            lesson_ids={"math-lesson-1", "math-lesson-2"},
        )
        assert result.average == pytest.approx(85.0)

    def test_grade_without_subject_id_resolved_via_lesson(self):
        subject = _make_subject()
        grades = [_grade("s1", "math-lesson-1", 77)]
        assert grades[0].subject_id is None
        result = compute_subject_average("s1", "math", [subject], grades)
        assert result.average == pytest.approx(77.0)


# ─── GEWICHTE ─────────────────────────────────────────────────────────────────

class TestResolveWeights:
    def test_explicit_weights(self):
        subject = _make_subject()
        assert resolve_weights(subject, ["lesson", "test"]) == {"lesson": 0.34, "test": 0.66}

    def test_inactive_category_gets_zero(self):
        subject = _make_subject()
        cats = [
            GradeCategory(id="lesson", name="Lesson"),
            GradeCategory(id="test", name="Test", is_active=False),
        ]
        weights = resolve_weights(subject, ["lesson", "test"], cats)
        assert weights["test"] == 0.0
        assert weights["lesson"] == 0.34

    def test_inactive_category_excluded_from_average(self):
        subject = _make_subject()
        cats = [
            GradeCategory(id="lesson", name="Lesson"),
            GradeCategory(id="test", name="Test", is_active=False),
        ]
        result = compute_subject_average(
            "s1", "math", [subject], _scenario_grades(), categories=cats,
        )
        assert result.average == pytest.approx(85.0)

    def test_missing_entry_gets_average_share(self):
        """Kategorie ohne Eintrag: Σ(Gewichte > 0) / N vorhandene Kategorien."""
        subject = _make_subject(weights={"lesson": 0.5})
        assert resolve_weights(subject, ["lesson", "quiz"]) == {"lesson": 0.5, "quiz": 0.25}

    def test_explicit_zero_stays_zero(self):
        subject = _make_subject(weights={"lesson": 1.0, "test": 0.0})
        weights = resolve_weights(subject, ["lesson", "test"])
        assert weights == {"lesson": 1.0, "test": 0.0}

    def test_all_zero_weights_even_split(self):
        subject = _make_subject(weights={"lesson": 0, "test": 0})
        assert resolve_weights(subject, ["lesson", "test"]) == {"lesson": 0.5, "test": 0.5}

    def test_partial_weights_renormalized(self):
        """Nur eine Kategorie vorhanden → Ergebnis ist deren Durchschnitt."""
        subject = _make_subject()
        grades = [_grade("s1", "math-test-1", 70), _grade("s1", "math-test-2", 80)]
        result = compute_subject_average("s1", "math", [subject], grades)
        assert result.average == pytest.approx(75.0)


# ─── AUFSCHLÜSSELUNG ──────────────────────────────────────────────────────────

class TestCalculationBreakdown:
    def test_breakdown_matches_average(self):
        subject = _make_subject()
        grades = _scenario_grades()
        bd = get_subject_calculation_breakdown(
            "s1", "math", [subject], grades, categories=default_categories(),
        )
        avg = compute_subject_average(
            "s1", "math", [subject], grades, categories=default_categories(),
        )
        assert bd.final_average == avg.average
        assert bd.letter_grade == avg.letter_grade

    def test_breakdown_rows(self):
        subject = _make_subject()
        bd = get_subject_calculation_breakdown(
            "s1", "math", [subject], _scenario_grades(), categories=default_categories(),
        )
        rows = {c.category_id: c for c in bd.categories}
        assert rows["lesson"].category_name == "Lesson"
        assert rows["lesson"].grades == [80.0, 90.0]
        assert rows["lesson"].average == pytest.approx(85.0)
        assert rows["lesson"].weighted_value == pytest.approx(28.9)
        assert rows["test"].weight == 0.66
        assert bd.total_weight == pytest.approx(1.0)

    def test_breakdown_none_without_grades(self):
        subject = _make_subject()
        assert get_subject_calculation_breakdown("s1", "math", [subject], []) is None

    def test_orphan_grade_logged_and_ignored(self, caplog):
        subject = _make_subject()
        grades = _scenario_grades() + [_grade("s1", "ghost", 10, subject_id="math")]
        with caplog.at_level(logging.WARNING, logger="engine.aggregation"):
            bd = get_subject_calculation_breakdown("s1", "math", [subject], grades)
        assert bd.final_average == pytest.approx(75.1)
        assert any("ghost" in r.getMessage() for r in caplog.records)


# ─── ZEUGNIS ──────────────────────────────────────────────────────────────────

class TestReportCard:
    def _data(self):
        math_subject = _make_subject("math", report_card_name="Mathematics")
        reading = _make_subject("reading", weights={})
        students = [Student(id="s1", name="Ava Smith"), Student(id="s2", name="Liam Reed")]
        grades = _scenario_grades("s1") + [
            _grade("s1", "reading-lesson-1", 95),
            _grade("s2", "math-lesson-1", 60),
        ]
        return students, [math_subject, reading], grades

    def test_report_card_subjects_and_overall(self):
        students, subjects, grades = self._data()
        card = generate_report_card("s1", "sw1", {"s1": "Great work"},
                                    students, subjects, grades)
        assert card.student_id == "s1"
        assert card.period == "sw1"
        assert [r.subject_name for r in card.subjects] == ["Mathematics", "Reading"]
        assert card.overall_gpa == pytest.approx((75.1 + 95) / 2)
        assert card.comments == "Great work"

    def test_subject_without_result_excluded(self):
        students, subjects, grades = self._data()
        grades.append(_grade("s2", "reading-lesson-1", 90, skipped=True))
        card = generate_report_card("s2", "current", None, students, subjects, grades)
        assert [r.subject_id for r in card.subjects] == ["math"]
        assert card.overall_gpa == pytest.approx(60.0)
        assert card.comments is None

    def test_unknown_student_returns_none(self):
        students, subjects, grades = self._data()
        assert generate_report_card("zz", "current", {}, students, subjects, grades) is None

    def test_student_without_grades_returns_none(self):
        students, subjects, _ = self._data()
        assert generate_report_card("s2", "current", {}, students, subjects, []) is None

    def test_enrollment_not_required(self):
        """Noten belegen die Teilnahme, auch ohne Einschreibung."""
        students, subjects, grades = self._data()
        assert students[0].subjects == []
        card = generate_report_card("s1", "current", {}, students, subjects, grades)
        assert len(card.subjects) == 2


# ─── AUFRUFFEHLER ─────────────────────────────────────────────────────────────

class TestUsageErrors:
    def test_non_string_student_id(self):
        with pytest.raises(AggregationUsageError):
            compute_subject_average(1, "math", [_make_subject()], [])

    def test_grades_not_a_list(self):
        with pytest.raises(AggregationUsageError):
            compute_subject_average("s1", "math", [_make_subject()], {"g": 1})

    def test_comments_not_a_mapping(self):
        with pytest.raises(AggregationUsageError):
            generate_report_card("s1", "current", ["x"], [], [], [])

    def test_is_type_error(self):
        assert issubclass(AggregationUsageError, TypeError)


# ─── NOTENSKALA ───────────────────────────────────────────────────────────────

class TestLetterGrades:
    @pytest.mark.parametrize("pct,letter", [
        (100, "A+"), (97, "A+"), (96.99, "A"), (93, "A"), (92.999, "A-"),
        (90, "A-"), (87, "B+"), (80, "B-"), (75.1, "C"), (70, "C-"),
        (60, "D-"), (59.9, "F"), (0, "F"),
    ])
    def test_cutoffs(self, pct, letter):
        assert get_letter_grade(pct) == letter

    @pytest.mark.parametrize("value", [math.nan, None, "90", True])
    def test_not_available(self, value):
        assert get_letter_grade(value) == "N/A"

    def test_letter_to_percentage(self):
        assert letter_to_percentage("b+") == 88.5
        assert letter_to_percentage("Z") is None

    def test_distribution_band(self):
        assert distribution_band(95) == "A (90-100%)"
        assert distribution_band(79.99) == "C (70-79%)"
        assert distribution_band(12) == "F (Below 60%)"
