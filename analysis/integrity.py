"""Datenintegritäts-Prüfung eines Gradebooks.

Prüft, was die Aggregation stillschweigend toleriert (verwaiste Noten,
kaputte Prozentwerte), und was beim Bearbeiten gelten muss
(Gewichtssumme 1.0, eine Default-Kategorie, Markerzahl).
"""

import math
from collections import Counter
from typing import Literal

from pydantic import BaseModel

from engine.periods import max_markers
from models.gradebook import Gradebook

WEIGHT_TOLERANCE = 1e-6


class IntegrityIssue(BaseModel):
    """Ein einzelner Befund."""

    severity: Literal["error", "warning"]
    check: str           # z.B. "orphan_grade"
    description: str
    entity: str          # grade_id / subject_id / student_id


class IntegrityReport(BaseModel):
    """Ergebnis der Integritäts-Prüfung."""

    issues: list[IntegrityIssue]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    @property
    def errors(self) -> list[IntegrityIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[IntegrityIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        status = (
            "[bold green]✓ KONSISTENT[/bold green]"
            if self.is_valid
            else "[bold red]✗ FEHLER GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(self.errors)} | Warnungen: {len(self.warnings)}"]
        console.print(Panel("\n".join(lines), title="Datenprüfung", border_style="cyan"))

        if not self.issues:
            console.print("[dim]Keine Probleme gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Prüfung", width=24)
        table.add_column("Entität", width=14)
        table.add_column("Beschreibung")
        for i in self.issues:
            color = "red" if i.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{i.severity.upper()}[/{color}]",
                i.check,
                i.entity,
                i.description,
            )
        console.print(table)


class IntegrityChecker:
    """Prüft ein Gradebook auf Inkonsistenzen."""

    def __init__(self, grading_periods: int = 6):
        self.grading_periods = grading_periods

    def check(self, gradebook: Gradebook) -> IntegrityReport:
        """Führt alle Prüfungen durch und gibt einen IntegrityReport zurück."""
        issues: list[IntegrityIssue] = []
        issues.extend(self._check_default_category(gradebook))
        issues.extend(self._check_weights(gradebook))
        issues.extend(self._check_lesson_categories(gradebook))
        issues.extend(self._check_orphan_grades(gradebook))
        issues.extend(self._check_skip_encoding(gradebook))
        issues.extend(self._check_percentages(gradebook))
        issues.extend(self._check_duplicates(gradebook))
        issues.extend(self._check_enrollment(gradebook))
        issues.extend(self._check_markers(gradebook))

        has_errors = any(i.severity == "error" for i in issues)
        return IntegrityReport(issues=issues, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_default_category(self, gb: Gradebook) -> list[IntegrityIssue]:
        defaults = [c.id for c in gb.categories if c.is_default]
        if len(defaults) <= 1:
            return []
        return [IntegrityIssue(
            severity="error",
            check="multiple_default_categories",
            entity=",".join(defaults),
            description=f"{len(defaults)} Kategorien sind als Default markiert (erlaubt: 1).",
        )]

    def _check_weights(self, gb: Gradebook) -> list[IntegrityIssue]:
        """Aktive Gewichte müssen 1.0 ergeben, sofern ein Fach Gewichte definiert."""
        issues: list[IntegrityIssue] = []
        known = {c.id: c for c in gb.categories}
        for subject in gb.subjects:
            if not subject.weights:
                continue
            for cid in subject.weights:
                if known and cid not in known:
                    issues.append(IntegrityIssue(
                        severity="error",
                        check="unknown_weight_category",
                        entity=subject.id,
                        description=f"Gewicht für unbekannte Kategorie '{cid}'.",
                    ))
            active_sum = sum(
                w for cid, w in subject.weights.items()
                if cid not in known or known[cid].is_active
            )
            if abs(active_sum - 1.0) > WEIGHT_TOLERANCE:
                issues.append(IntegrityIssue(
                    severity="error",
                    check="weights_not_normalized",
                    entity=subject.id,
                    description=(
                        f"Fach '{subject.name}': Summe der aktiven Gewichte ist "
                        f"{active_sum:.4f} statt 1.0."
                    ),
                ))
        return issues

    def _check_lesson_categories(self, gb: Gradebook) -> list[IntegrityIssue]:
        known = {c.id for c in gb.categories}
        if not known:
            return []
        return [
            IntegrityIssue(
                severity="warning",
                check="unknown_lesson_category",
                entity=lesson.id,
                description=(
                    f"Lektion '{lesson.name}': unbekannte Kategorie '{lesson.category_id}'."
                ),
            )
            for lesson in gb.lessons
            if lesson.category_id not in known
        ]

    def _check_orphan_grades(self, gb: Gradebook) -> list[IntegrityIssue]:
        lesson_ids = {l.id for l in gb.lessons}
        return [
            IntegrityIssue(
                severity="error",
                check="orphan_grade",
                entity=g.id,
                description=f"Lektion {g.lesson_id} existiert nicht – Note wird nicht gewertet.",
            )
            for g in gb.grades if g.lesson_id not in lesson_ids
        ]

    def _check_skip_encoding(self, gb: Gradebook) -> list[IntegrityIssue]:
        """Altmuster ohne Flag bzw. Flag ohne kanonische Kodierung."""
        issues: list[IntegrityIssue] = []
        for g in gb.grades:
            if not g.skipped and g.has_legacy_skip_encoding:
                issues.append(IntegrityIssue(
                    severity="warning",
                    check="legacy_skip_encoding",
                    entity=g.id,
                    description=(
                        "0 % mit errors = max_points, aber skipped=False – "
                        "wird als echte 0 gewertet (ggf. migrieren)."
                    ),
                ))
            elif g.skipped and not (g.percentage == 0 and g.errors == g.max_points):
                issues.append(IntegrityIssue(
                    severity="warning",
                    check="skip_not_normalized",
                    entity=g.id,
                    description="skipped=True, aber percentage/errors nicht kanonisch.",
                ))
        return issues

    def _check_percentages(self, gb: Gradebook) -> list[IntegrityIssue]:
        issues: list[IntegrityIssue] = []
        for g in gb.grades:
            value = g.percentage
            if isinstance(value, str):
                try:
                    value = float(value)
                except ValueError:
                    value = None
            if value is None or (isinstance(value, float) and math.isnan(value)):
                issues.append(IntegrityIssue(
                    severity="warning",
                    check="invalid_percentage",
                    entity=g.id,
                    description=f"Prozentwert {g.percentage!r} ist keine Zahl – zählt als 0.",
                ))
            elif not 0 <= value <= 100:
                issues.append(IntegrityIssue(
                    severity="warning",
                    check="percentage_out_of_range",
                    entity=g.id,
                    description=f"Prozentwert {value} liegt außerhalb 0–100.",
                ))
        return issues

    def _check_duplicates(self, gb: Gradebook) -> list[IntegrityIssue]:
        counts = Counter((g.student_id, g.lesson_id) for g in gb.grades)
        return [
            IntegrityIssue(
                severity="warning",
                check="duplicate_grade",
                entity=f"{student_id}/{lesson_id}",
                description=f"{n} Noten für dasselbe Kind/Lektion-Paar.",
            )
            for (student_id, lesson_id), n in counts.items() if n > 1
        ]

    def _check_enrollment(self, gb: Gradebook) -> list[IntegrityIssue]:
        """Noten in Fächern ohne Einschreibung (zählen trotzdem fürs Zeugnis)."""
        lesson_subject = {l.id: s.id for s in gb.subjects for l in s.lessons}
        students = {s.id: s for s in gb.students}
        seen: set[tuple[str, str]] = set()
        issues: list[IntegrityIssue] = []
        for g in gb.grades:
            sid = g.subject_id or lesson_subject.get(g.lesson_id)
            student = students.get(g.student_id)
            if not sid or student is None or (g.student_id, sid) in seen:
                continue
            seen.add((g.student_id, sid))
            if not student.is_enrolled(sid):
                issues.append(IntegrityIssue(
                    severity="warning",
                    check="grade_without_enrollment",
                    entity=student.id,
                    description=f"{student.name} hat Noten in Fach {sid} ohne Einschreibung.",
                ))
        return issues

    def _check_markers(self, gb: Gradebook) -> list[IntegrityIssue]:
        limit = max_markers(self.grading_periods)
        per_subject = Counter(m.subject_id for m in gb.markers)
        return [
            IntegrityIssue(
                severity="error",
                check="too_many_markers",
                entity=subject_id,
                description=(
                    f"{n} Perioden-Marker bei {self.grading_periods} Notenperioden "
                    f"(max. {limit})."
                ),
            )
            for subject_id, n in per_subject.items() if n > limit
        ]
