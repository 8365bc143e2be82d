"""Gewichtete Notenaggregation: Fach-Durchschnitt, Aufschlüsselung, Zeugnis.

Einziger Rechenweg für Dashboard, Vorschau bei der Noteneingabe und
Zeugnis-Export. Alle Funktionen sind rein: keine I/O, kein Zustand, keine
Mutation der übergebenen Entitäten.

Ablauf pro Kind und Fach:
1. Noten des Kindes im Fach filtern, ausgelassene (skipped) verwerfen
2. Nach Kategorie der Lektion gruppieren (verwaiste Noten → Warnung)
3. Platzhalter (< 1 %) verwerfen, echte 0 % bleiben
4. Kategorie-Durchschnitt = einfacher Mittelwert
5. Gewicht je Kategorie über die Kategorie-ID auflösen
6. Σ(Durchschnitt × Gewicht) / Σ(Gewicht)
"""

import logging
import math
from collections.abc import Collection, Mapping
from typing import Optional

from pydantic import BaseModel

from engine.letter_grades import get_letter_grade
from models.category import GradeCategory
from models.grade import Grade
from models.student import Student
from models.subject import Subject

logger = logging.getLogger(__name__)

# Werte in (0, 1) gelten als "noch nicht bearbeitet"; genau 0 ist eine echte Null.
PLACEHOLDER_THRESHOLD = 1.0


class AggregationUsageError(TypeError):
    """Fehlerhafter Aufruf der Engine (falsche Argumenttypen)."""


# ─── Ergebnis-Modelle ─────────────────────────────────────────────────────────

class SubjectResult(BaseModel):
    """Durchschnitt eines Kindes in einem Fach."""

    subject_id: str
    subject_name: str      # Zeugnisname, falls gesetzt
    grades: list[Grade]    # berücksichtigte (nicht ausgelassene) Noten
    average: float         # 0–100
    letter_grade: str


class CategoryBreakdown(BaseModel):
    """Zwischenwerte einer Kategorie für Anzeige und Nachprüfung."""

    category_id: str
    category_name: str
    grades: list[float]
    average: float
    weight: float
    weighted_value: float


class CalculationBreakdown(BaseModel):
    """Vollständiger Rechenweg eines Fach-Durchschnitts."""

    subject_id: str
    subject_name: str
    categories: list[CategoryBreakdown]
    total_weight: float
    final_average: float
    letter_grade: str


class ReportCard(BaseModel):
    """Zeugnisdaten eines Kindes für eine Periode."""

    student_id: str
    period: str
    subjects: list[SubjectResult]
    overall_gpa: float     # Prozentwert 0–100 trotz des Namens
    comments: Optional[str] = None


# ─── Eingabeprüfung ───────────────────────────────────────────────────────────

def _require_id(name: str, value) -> None:
    if not isinstance(value, str):
        raise AggregationUsageError(
            f"{name} muss ein String sein, nicht {type(value).__name__}."
        )


def _require_list(name: str, value) -> None:
    if not isinstance(value, (list, tuple)):
        raise AggregationUsageError(
            f"{name} muss eine Liste sein, nicht {type(value).__name__}."
        )


def _to_float(value) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0.0
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0.0
    return float(value)


def coerce_percentage(value) -> float:
    """Wandelt einen gespeicherten Prozentwert in float; Ungültiges wird 0."""
    return _to_float(value)


# ─── Kern ─────────────────────────────────────────────────────────────────────

def _belongs_to_subject(grade: Grade, subject: Subject, lesson_ids: set[str]) -> bool:
    if grade.subject_id is not None:
        return grade.subject_id == subject.id
    return grade.lesson_id in lesson_ids


def _student_subject_grades(
    student_id: str,
    subject: Subject,
    grades,
    period_lessons: Optional[frozenset[str]],
) -> list[Grade]:
    """Schritt 1: Noten des Kindes im Fach ohne ausgelassene."""
    subject_lessons = {l.id for l in subject.lessons}
    return [
        g for g in grades
        if g.student_id == student_id
        and not g.skipped
        and _belongs_to_subject(g, subject, subject_lessons)
        and (period_lessons is None or g.lesson_id in period_lessons)
    ]


def _group_by_category(subject: Subject, grades: list[Grade]) -> dict[str, list[float]]:
    """Schritte 2–3: Prozentwerte je Kategorie-ID in Fundreihenfolge.

    Kategorien, in denen nach dem Platzhalter-Filter nichts übrig bleibt,
    tauchen im Ergebnis nicht auf.
    """
    lessons = {l.id: l for l in subject.lessons}
    grouped: dict[str, list[float]] = {}
    for g in grades:
        lesson = lessons.get(g.lesson_id)
        if lesson is None:
            logger.warning(
                f"Note {g.id}: Lektion {g.lesson_id} existiert nicht in Fach "
                f"{subject.id} – wird ignoriert."
            )
            continue
        pct = coerce_percentage(g.percentage)
        if 0 < pct < PLACEHOLDER_THRESHOLD:
            continue
        grouped.setdefault(lesson.category_id, []).append(pct)
    return grouped


def resolve_weights(
    subject: Subject,
    present: list[str],
    categories: Optional[list[GradeCategory]] = None,
) -> dict[str, float]:
    """Schritt 5: Gewicht je vorhandener Kategorie, strikt über die ID.

    - Eintrag in subject.weights → dieses Gewicht (inaktive Kategorien: 0)
    - gar kein nutzbares Gewicht definiert → 1/N für alle vorhandenen
    - sonst, Kategorie ohne Eintrag → Σ(Gewichte > 0) / N
    """
    inactive = {c.id for c in categories or [] if not c.is_active}
    usable = {
        cid: _to_float(w) for cid, w in subject.weights.items()
        if cid not in inactive and _to_float(w) > 0
    }
    candidates = [cid for cid in present if cid not in inactive]
    weights = {cid: 0.0 for cid in present if cid in inactive}

    if not candidates:
        return weights

    if not usable:
        share = 1 / len(candidates)
        for cid in candidates:
            weights[cid] = share
        return weights

    fallback = sum(usable.values()) / len(candidates)
    for cid in candidates:
        if cid in subject.weights:
            weights[cid] = usable.get(cid, 0.0)
        else:
            weights[cid] = fallback
    return weights


def _calculate(
    student_id: str,
    subject_id: str,
    subjects,
    grades,
    categories: Optional[list[GradeCategory]],
    lesson_ids: Optional[Collection[str]],
) -> Optional[tuple[Subject, list[Grade], list[CategoryBreakdown], float, float]]:
    """Gemeinsamer Rechenweg für Durchschnitt und Aufschlüsselung."""
    _require_id("student_id", student_id)
    _require_id("subject_id", subject_id)
    _require_list("subjects", subjects)
    _require_list("grades", grades)
    if categories is not None:
        _require_list("categories", categories)

    subject = next((s for s in subjects if s.id == subject_id), None)
    if subject is None:
        return None

    period_lessons = frozenset(lesson_ids) if lesson_ids is not None else None
    student_grades = _student_subject_grades(student_id, subject, grades, period_lessons)
    if not student_grades:
        return None

    grouped = _group_by_category(subject, student_grades)
    weights = resolve_weights(subject, list(grouped), categories)
    names = {c.id: c.name for c in categories or []}

    rows: list[CategoryBreakdown] = []
    weighted_total = 0.0
    total_weight = 0.0
    for cid, values in grouped.items():
        avg = sum(values) / len(values)
        weight = weights.get(cid, 0.0)
        rows.append(CategoryBreakdown(
            category_id=cid,
            category_name=names.get(cid, cid),
            grades=values,
            average=avg,
            weight=weight,
            weighted_value=avg * weight,
        ))
        if weight > 0:
            weighted_total += avg * weight
            total_weight += weight

    average = weighted_total / total_weight if total_weight > 0 else 0.0
    logger.debug(
        f"Schnitt {student_id}/{subject_id}: {average:.2f} "
        f"(Gewicht gesamt {total_weight:.4f}, {len(rows)} Kategorien)"
    )
    return subject, student_grades, rows, total_weight, average


# ─── Öffentliche API ──────────────────────────────────────────────────────────

def compute_subject_average(
    student_id: str,
    subject_id: str,
    subjects,
    grades,
    *,
    categories: Optional[list[GradeCategory]] = None,
    lesson_ids: Optional[Collection[str]] = None,
) -> Optional[SubjectResult]:
    """Gewichteter Durchschnitt eines Kindes in einem Fach.

    None, wenn das Fach fehlt oder keine nicht-ausgelassene Note vorliegt.
    lesson_ids schränkt auf eine Notenperiode ein.
    """
    calc = _calculate(student_id, subject_id, subjects, grades, categories, lesson_ids)
    if calc is None:
        return None
    subject, student_grades, _rows, _total, average = calc
    return SubjectResult(
        subject_id=subject_id,
        subject_name=subject.display_name,
        grades=student_grades,
        average=average,
        letter_grade=get_letter_grade(average),
    )


def get_subject_calculation_breakdown(
    student_id: str,
    subject_id: str,
    subjects,
    grades,
    *,
    categories: Optional[list[GradeCategory]] = None,
    lesson_ids: Optional[Collection[str]] = None,
) -> Optional[CalculationBreakdown]:
    """Wie compute_subject_average, aber mit Zwischenwerten je Kategorie."""
    calc = _calculate(student_id, subject_id, subjects, grades, categories, lesson_ids)
    if calc is None:
        return None
    subject, _grades, rows, total_weight, average = calc
    return CalculationBreakdown(
        subject_id=subject_id,
        subject_name=subject.display_name,
        categories=rows,
        total_weight=total_weight,
        final_average=average,
        letter_grade=get_letter_grade(average),
    )


def generate_report_card(
    student_id: str,
    period: str,
    comments: Optional[Mapping[str, str]],
    students,
    subjects,
    grades,
    *,
    categories: Optional[list[GradeCategory]] = None,
    lesson_ids: Optional[Collection[str]] = None,
) -> Optional[ReportCard]:
    """Zeugnisdaten eines Kindes.

    Fächer werden aus den Noten ermittelt, nicht aus der Einschreibung: eine
    Note belegt die Teilnahme. Fächer ohne Ergebnis entfallen; bleibt keines
    übrig, ist das Ergebnis None.
    """
    _require_id("student_id", student_id)
    _require_list("students", students)
    _require_list("subjects", subjects)
    _require_list("grades", grades)
    if comments is not None and not isinstance(comments, Mapping):
        raise AggregationUsageError(
            f"comments muss ein Mapping sein, nicht {type(comments).__name__}."
        )

    student: Optional[Student] = next((s for s in students if s.id == student_id), None)
    if student is None:
        return None

    lesson_subject = {l.id: s.id for s in subjects for l in s.lessons}
    subject_ids: list[str] = []
    for g in grades:
        if g.student_id != student_id:
            continue
        sid = g.subject_id or lesson_subject.get(g.lesson_id)
        if sid and sid not in subject_ids:
            subject_ids.append(sid)

    results = [
        r for r in (
            compute_subject_average(
                student_id, sid, subjects, grades,
                categories=categories, lesson_ids=lesson_ids,
            )
            for sid in subject_ids
        )
        if r is not None
    ]
    if not results:
        return None

    overall = sum(r.average for r in results) / len(results)
    return ReportCard(
        student_id=student_id,
        period=period,
        subjects=results,
        overall_gpa=overall,
        comments=(comments or {}).get(student_id),
    )
