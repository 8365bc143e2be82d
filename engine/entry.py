"""Noteneingabe: Freitext → gespeicherte Notenwerte, plus Live-Vorschau.

Unterstützte Eingaben:
  S            Lektion ausgelassen (nur mit Maximalpunktzahl)
  A+ … F       Buchstabennote (Mitte des Bands)
  17/20        Bruch; die Lektion übernimmt 20 als Maximalpunktzahl
  87.3         Prozent (mode="percentage") oder Fehlerzahl (mode="errors")
"""

import math
import re
from typing import Literal, Optional

from pydantic import BaseModel

from engine.aggregation import SubjectResult, compute_subject_average
from engine.letter_grades import letter_to_percentage
from models.category import GradeCategory
from models.grade import Grade
from models.subject import Subject

EntryMode = Literal["percentage", "errors"]

_FRACTION_RE = re.compile(r"^(\d+(?:\.\d+)?)/(\d+(?:\.\d+)?)$")


class GradeEntryError(ValueError):
    """Ungültige Noteneingabe."""


class GradeEntryValue(BaseModel):
    """Ergebnis einer Noteneingabe, bereit zum Speichern als Grade."""

    percentage: float
    errors: float
    max_points: float
    skipped: bool = False


def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def round_to_nearest_half(percentage: float) -> float:
    """Rundet auf 0,5 %-Schritte (87.3 → 87.5, 87.25 → 87.5)."""
    return _round_half_up(percentage * 2) / 2


def format_percentage(percentage: float) -> str:
    """Ganze Zahlen ohne Nachkommastelle, sonst eine Stelle."""
    if percentage % 1 == 0:
        return str(int(percentage))
    return f"{percentage:.1f}"


def parse_grade_input(
    value: str, max_points: float = 0, mode: EntryMode = "percentage"
) -> GradeEntryValue:
    """Wandelt eine Eingabe in Prozent, Fehlerzahl und Maximalpunkte."""
    text = value.strip()
    if not text:
        raise GradeEntryError("Leere Eingabe.")

    if text.upper() == "S":
        if max_points <= 0:
            raise GradeEntryError(
                "Zum Auslassen braucht die Lektion eine Maximalpunktzahl."
            )
        return GradeEntryValue(
            percentage=0.0, errors=max_points, max_points=max_points, skipped=True,
        )

    letter_pct = letter_to_percentage(text)
    if letter_pct is not None:
        errors = _round_half_up(max_points * (1 - letter_pct / 100)) if max_points > 0 else 0
        return GradeEntryValue(percentage=letter_pct, errors=errors, max_points=max_points)

    m = _FRACTION_RE.match(text)
    if m:
        earned, total = float(m.group(1)), float(m.group(2))
        if total <= 0:
            raise GradeEntryError("Ungültiger Bruch – Nenner muss größer als 0 sein.")
        percentage = earned / total * 100
        if not math.isfinite(percentage):
            raise GradeEntryError(f"Unbekannte Eingabe: '{value}'")
        return GradeEntryValue(
            percentage=round_to_nearest_half(percentage),
            errors=max(0.0, total - earned),
            max_points=total,
        )

    try:
        number = float(text)
    except ValueError:
        raise GradeEntryError(f"Unbekannte Eingabe: '{value}'") from None
    if not math.isfinite(number):
        raise GradeEntryError(f"Unbekannte Eingabe: '{value}'")

    if mode == "errors":
        if max_points <= 0:
            raise GradeEntryError(
                "Im Fehler-Modus muss die Lektion eine Maximalpunktzahl haben."
            )
        correct = max(0.0, max_points - number)
        return GradeEntryValue(
            percentage=round_to_nearest_half(correct / max_points * 100),
            errors=number,
            max_points=max_points,
        )

    errors = _round_half_up(max_points * (1 - number / 100)) if max_points > 0 else 0
    return GradeEntryValue(
        percentage=round_to_nearest_half(number), errors=errors, max_points=max_points,
    )


def build_grade(
    entry: GradeEntryValue,
    grade_id: str,
    student_id: str,
    lesson_id: str,
    subject_id: Optional[str] = None,
) -> Grade:
    """Erzeugt die zu speichernde Note aus einem Eingabeergebnis."""
    if entry.skipped:
        return Grade.make_skipped(
            grade_id, student_id, lesson_id, entry.max_points, subject_id=subject_id,
        )
    return Grade(
        id=grade_id,
        student_id=student_id,
        lesson_id=lesson_id,
        subject_id=subject_id,
        points=max(0.0, entry.max_points - entry.errors),
        max_points=entry.max_points,
        percentage=entry.percentage,
        errors=entry.errors,
    )


def upsert_grade(grades: list[Grade], pending: Grade) -> list[Grade]:
    """Neue Liste mit 'pending' anstelle der Note desselben Kind/Lektion-Paars."""
    result = [
        g for g in grades
        if not (g.student_id == pending.student_id and g.lesson_id == pending.lesson_id)
    ]
    result.append(pending)
    return result


def preview_subject_average(
    student_id: str,
    subject_id: str,
    subjects: list[Subject],
    grades: list[Grade],
    pending: Grade,
    *,
    categories: Optional[list[GradeCategory]] = None,
) -> Optional[SubjectResult]:
    """Fach-Durchschnitt so, als wäre 'pending' bereits gespeichert."""
    return compute_subject_average(
        student_id, subject_id, subjects, upsert_grade(list(grades), pending),
        categories=categories,
    )
