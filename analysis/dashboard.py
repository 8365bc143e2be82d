"""Dashboard-Übersicht eines Gradebooks.

Alle Durchschnitte kommen aus der Aggregations-Engine; das Dashboard
rechnet keine eigenen Gewichtungen.
"""

from collections import Counter
from typing import Optional

from pydantic import BaseModel

from engine.aggregation import compute_subject_average, generate_report_card
from engine.letter_grades import DISTRIBUTION_BANDS, distribution_band, get_letter_grade
from models.gradebook import Gradebook


# ─── Metriken-Modelle ─────────────────────────────────────────────────────────

class SubjectPerformance(BaseModel):
    """Leistung aller Kinder in einem Fach."""

    subject_id: str
    subject_name: str
    student_count: int          # Kinder mit Ergebnis
    grade_count: int            # nicht ausgelassene Noten
    average: Optional[float]    # Mittel der Kind-Durchschnitte


class StudentOverview(BaseModel):
    """Gesamtschnitt eines Kindes."""

    student_id: str
    name: str
    subject_count: int
    overall_average: Optional[float]
    letter_grade: str


class DashboardSummary(BaseModel):
    """Vollständige Dashboard-Übersicht."""

    total_students: int
    total_subjects: int
    total_lessons: int
    total_grades: int
    subject_performance: list[SubjectPerformance]
    students: list[StudentOverview]
    grade_distribution: dict[str, int]   # Band → Anzahl Kind/Fach-Durchschnitte

    def print_rich(self, decimals: int = 1) -> None:
        """Gibt die Übersicht formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        def fmt(v: Optional[float]) -> str:
            return "–" if v is None else f"{v:.{decimals}f}"

        console = Console()
        console.print(Panel(
            f"Kinder: {self.total_students} | Fächer: {self.total_subjects} | "
            f"Lektionen: {self.total_lessons} | Noten: {self.total_grades}",
            title="Dashboard", border_style="cyan",
        ))

        t1 = Table(title="Fächer", box=box.ROUNDED)
        t1.add_column("Fach", style="bold")
        t1.add_column("Kinder", justify="right")
        t1.add_column("Noten", justify="right")
        t1.add_column("Ø %", justify="right")
        for p in self.subject_performance:
            t1.add_row(p.subject_name, str(p.student_count), str(p.grade_count), fmt(p.average))
        console.print(t1)

        t2 = Table(title="Kinder", box=box.ROUNDED)
        t2.add_column("Name", style="bold")
        t2.add_column("Fächer", justify="right")
        t2.add_column("Ø %", justify="right")
        t2.add_column("Note")
        for s in self.students:
            t2.add_row(s.name, str(s.subject_count), fmt(s.overall_average), s.letter_grade)
        console.print(t2)

        t3 = Table(title="Verteilung", box=box.SIMPLE)
        t3.add_column("Band")
        t3.add_column("Anzahl", justify="right")
        for band, count in self.grade_distribution.items():
            t3.add_row(band, str(count))
        console.print(t3)


# ─── Analyzer ─────────────────────────────────────────────────────────────────

class DashboardAnalyzer:
    """Berechnet die Dashboard-Übersicht über die Engine."""

    def analyze(
        self, gradebook: Gradebook, lesson_ids: Optional[set[str]] = None
    ) -> DashboardSummary:
        """Hauptmethode; lesson_ids schränkt auf eine Notenperiode ein."""
        gb = gradebook
        distribution: Counter = Counter({label: 0 for _, label in DISTRIBUTION_BANDS})

        performance: list[SubjectPerformance] = []
        for subject in sorted(gb.subjects, key=lambda s: s.name):
            averages: list[float] = []
            grade_count = 0
            for student in gb.students:
                result = compute_subject_average(
                    student.id, subject.id, gb.subjects, gb.grades,
                    categories=gb.categories, lesson_ids=lesson_ids,
                )
                if result is None:
                    continue
                averages.append(result.average)
                grade_count += len(result.grades)
                distribution[distribution_band(result.average)] += 1
            performance.append(SubjectPerformance(
                subject_id=subject.id,
                subject_name=subject.display_name,
                student_count=len(averages),
                grade_count=grade_count,
                average=sum(averages) / len(averages) if averages else None,
            ))

        overviews: list[StudentOverview] = []
        for student in sorted(gb.students, key=lambda s: s.name):
            card = generate_report_card(
                student.id, "", gb.comments, gb.students, gb.subjects, gb.grades,
                categories=gb.categories, lesson_ids=lesson_ids,
            )
            overall = card.overall_gpa if card else None
            overviews.append(StudentOverview(
                student_id=student.id,
                name=student.name,
                subject_count=len(card.subjects) if card else 0,
                overall_average=overall,
                letter_grade=get_letter_grade(overall),
            ))

        return DashboardSummary(
            total_students=len(gb.students),
            total_subjects=len(gb.subjects),
            total_lessons=len(gb.lessons),
            total_grades=len(gb.grades),
            subject_performance=performance,
            students=overviews,
            grade_distribution=dict(distribution),
        )
