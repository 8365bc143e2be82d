"""Testdaten-Generator für GradeFlow.

Erzeugt ein reproduzierbares Gradebook mit realistischen Sonderfällen:

  1. Ausgelassene Noten: ca. 5 % der Einträge sind als skipped markiert.
  2. Platzhalter: einzelne Noten unter 1 % (noch nicht bewertet).
  3. Fehlende Einträge: nicht jedes Kind hat zu jeder Lektion eine Note.
  4. Zeugnisnamen: ein Teil der Fächer trägt einen abweichenden report_card_name.
  5. Perioden-Marker: jedes Fach ist in (grading_periods) Abschnitte geteilt.
"""

import random
from datetime import datetime, timezone
from typing import Optional

from config.defaults import DEFAULT_GROUPS, DEFAULT_WEIGHTS, default_categories
from config.schema import GradeFlowConfig
from engine.periods import max_markers
from models.grade import Grade
from models.gradebook import Gradebook
from models.lesson import GradingPeriodMarker, Lesson
from models.student import Student
from models.subject import Subject

# ─── Namens-Listen ────────────────────────────────────────────────────────────

_FIRST_NAMES = [
    "Ava", "Benjamin", "Chloe", "Daniel", "Emma", "Felix", "Grace", "Henry",
    "Isabella", "Jacob", "Kaylee", "Liam", "Mia", "Noah", "Olivia", "Parker",
    "Quinn", "Ruby", "Samuel", "Tessa", "Uma", "Violet", "Wyatt", "Zoe",
]

_LAST_NAMES = [
    "Anderson", "Brooks", "Carter", "Davis", "Edwards", "Foster", "Garcia",
    "Harris", "Jackson", "Kim", "Lopez", "Miller", "Nguyen", "Owens",
    "Patel", "Reed", "Smith", "Taylor", "Walker", "Young",
]

# (Name, Zeugnisname oder None)
_SUBJECTS: list[tuple[str, Optional[str]]] = [
    ("Saxon Math", "Mathematics"),
    ("Reading", None),
    ("Writing with Ease", "Language Arts"),
    ("History", None),
    ("Apologia Science", "Science"),
    ("Spelling", None),
]

SKIP_RATE        = 0.05
PLACEHOLDER_RATE = 0.02
MISSING_RATE     = 0.05


class FakeGradebookGenerator:
    """Generiert ein vollständiges Gradebook auf Basis der GradeFlowConfig."""

    def __init__(self, config: GradeFlowConfig, seed: Optional[int] = None) -> None:
        self.config = config
        self.rng = random.Random(seed)
        self.user_id = config.data.default_user_id or "demo"

    # ─── Fächer & Lektionen ───────────────────────────────────────────────────

    def _generate_subjects(self, num_subjects: int, lessons_per_subject: int) -> list[Subject]:
        """Fächer mit Standard-Gewichten; jede dritte Lektion ist ein Test."""
        subjects = []
        for i, (name, rc_name) in enumerate(_SUBJECTS[:num_subjects], 1):
            sid = f"sub-{i:02d}"
            lessons = []
            for n in range(1, lessons_per_subject + 1):
                is_test = n % 3 == 0
                lessons.append(Lesson(
                    id=f"{sid}-l{n:03d}",
                    name=f"Test {n // 3}" if is_test else f"Lesson {n}",
                    subject_id=sid,
                    category_id="test" if is_test else "lesson",
                    max_points=self.rng.choice([10, 20, 25]) if is_test else 0,
                    order_index=n * 10,
                ))
            subjects.append(Subject(
                id=sid,
                name=name,
                report_card_name=rc_name,
                user_id=self.user_id,
                weights=dict(DEFAULT_WEIGHTS),
                lessons=lessons,
            ))
        return subjects

    def _generate_markers(self, subjects: list[Subject]) -> list[GradingPeriodMarker]:
        """Teilt die Lektionen jedes Fachs gleichmäßig auf die Notenperioden auf."""
        periods = self.config.school_year.grading_periods
        markers = []
        for subject in subjects:
            lessons = subject.ordered_lessons
            per_period = max(1, len(lessons) // periods)
            for k in range(1, max_markers(periods) + 1):
                idx = k * per_period
                if idx >= len(lessons):
                    break
                # Marker liegt direkt vor der ersten Lektion der neuen Periode
                markers.append(GradingPeriodMarker(
                    id=f"{subject.id}-m{k}",
                    subject_id=subject.id,
                    name=f"End of period {k}",
                    order_index=lessons[idx].order_index - 5,
                ))
        return markers

    # ─── Kinder ───────────────────────────────────────────────────────────────

    def _generate_students(self, num_students: int, subjects: list[Subject]) -> list[Student]:
        used: set[str] = set()
        students = []
        for i in range(1, num_students + 1):
            name = self._unique_name(used)
            group = self.rng.choice(DEFAULT_GROUPS[2:8])
            students.append(Student(
                id=f"stu-{i:03d}",
                name=name,
                grade_level=group,
                group_name=group,
                user_id=self.user_id,
                subjects=[s.id for s in subjects],
            ))
        return students

    def _unique_name(self, used: set[str]) -> str:
        while True:
            name = f"{self.rng.choice(_FIRST_NAMES)} {self.rng.choice(_LAST_NAMES)}"
            if name not in used or len(used) >= len(_FIRST_NAMES) * len(_LAST_NAMES):
                used.add(name)
                return name

    # ─── Noten ────────────────────────────────────────────────────────────────

    def _generate_grades(self, students: list[Student], subjects: list[Subject]) -> list[Grade]:
        """Eine Note pro Kind und Lektion, mit Lücken, Auslassungen und Platzhaltern."""
        grades = []
        n = 0
        for student in students:
            # Grundniveau pro Kind, damit die Durchschnitte streuen
            base = self.rng.uniform(68, 96)
            for subject in subjects:
                for lesson in subject.ordered_lessons:
                    roll = self.rng.random()
                    if roll < MISSING_RATE:
                        continue
                    n += 1
                    gid = f"gr-{n:05d}"
                    if roll < MISSING_RATE + SKIP_RATE:
                        grades.append(Grade.make_skipped(
                            gid, student.id, lesson.id, lesson.max_points,
                            subject_id=subject.id,
                        ))
                        continue
                    if roll < MISSING_RATE + SKIP_RATE + PLACEHOLDER_RATE:
                        pct = 0.5
                    else:
                        pct = round(min(100.0, max(1.0, self.rng.gauss(base, 8))) * 2) / 2
                    errors = 0.0
                    points = pct
                    if lesson.max_points > 0:
                        points = round(lesson.max_points * pct / 100, 1)
                        errors = round(lesson.max_points - points, 1)
                    grades.append(Grade(
                        id=gid,
                        student_id=student.id,
                        lesson_id=lesson.id,
                        subject_id=subject.id,
                        points=points,
                        max_points=lesson.max_points,
                        percentage=pct,
                        errors=errors,
                    ))
        return grades

    # ─── Gesamt ───────────────────────────────────────────────────────────────

    def generate(
        self,
        num_students: int = 12,
        num_subjects: int = 5,
        lessons_per_subject: int = 24,
    ) -> Gradebook:
        """Erzeugt das vollständige Gradebook."""
        num_subjects = max(1, min(num_subjects, len(_SUBJECTS)))
        subjects = self._generate_subjects(num_subjects, lessons_per_subject)
        students = self._generate_students(num_students, subjects)
        grades = self._generate_grades(students, subjects)
        comments = {
            s.id: f"{s.name.split()[0]} worked steadily this term."
            for s in students[: max(1, num_students // 3)]
        }
        now = datetime.now(timezone.utc)
        return Gradebook(
            user_id=self.user_id,
            categories=default_categories(),
            subjects=subjects,
            students=students,
            grades=grades,
            markers=self._generate_markers(subjects),
            comments=comments,
            created_at=now,
            modified_at=now,
        )
