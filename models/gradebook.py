"""Gradebook: Vollständiger Notensatz eines Lehrerkontos (Pydantic v2)."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from models.category import GradeCategory
from models.grade import Grade
from models.lesson import GradingPeriodMarker, Lesson
from models.student import Student
from models.subject import Subject


class Gradebook(BaseModel):
    """Momentaufnahme aller Entitäten: Kategorien, Fächer, Kinder, Noten, Marker.

    Die Aggregation arbeitet immer auf genau einer solchen Momentaufnahme;
    gemischte Stände (alte Gewichte, neue Noten) entstehen so nicht.
    """

    user_id: Optional[str] = None
    categories: list[GradeCategory] = []
    subjects: list[Subject] = []
    students: list[Student] = []
    grades: list[Grade] = []
    markers: list[GradingPeriodMarker] = []
    comments: dict[str, str] = {}         # Student.id → Zeugnis-Kommentar
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    data_version: str = "1.0"

    # ─── Lookups ───

    @property
    def lessons(self) -> list[Lesson]:
        return [l for s in self.subjects for l in s.lessons]

    def student_by_id(self, student_id: str) -> Optional[Student]:
        return next((s for s in self.students if s.id == student_id), None)

    def subject_by_id(self, subject_id: str) -> Optional[Subject]:
        return next((s for s in self.subjects if s.id == subject_id), None)

    def find_student(self, key: str) -> Optional[Student]:
        """Sucht per ID, sonst per Name (ohne Groß-/Kleinschreibung)."""
        found = self.student_by_id(key)
        if found:
            return found
        key_lower = key.strip().lower()
        return next((s for s in self.students if s.name.lower() == key_lower), None)

    def find_subject(self, key: str) -> Optional[Subject]:
        """Sucht per ID, sonst per Name oder Zeugnisname."""
        found = self.subject_by_id(key)
        if found:
            return found
        key_lower = key.strip().lower()
        return next(
            (s for s in self.subjects
             if s.name.lower() == key_lower or s.display_name.lower() == key_lower),
            None,
        )

    # ─── Benutzerkontext ───

    def for_user(self, user_id: str) -> "Gradebook":
        """Gibt eine Kopie zurück, die nur Daten des angegebenen Kontos enthält.

        Entitäten ohne user_id erben das Konto des Gradebooks; Noten und Marker
        folgen den zugehörigen Kindern bzw. Fächern.
        """
        def owned(entity_user: Optional[str]) -> bool:
            return (entity_user or self.user_id) == user_id

        subjects = [s for s in self.subjects if owned(s.user_id)]
        students = [s for s in self.students if owned(s.user_id)]
        subject_ids = {s.id for s in subjects}
        student_ids = {s.id for s in students}
        lesson_ids = {l.id for s in subjects for l in s.lessons}
        return self.model_copy(update={
            "user_id": user_id,
            "subjects": subjects,
            "students": students,
            "grades": [
                g for g in self.grades
                if g.student_id in student_ids
                and (g.lesson_id in lesson_ids or g.subject_id in subject_ids)
            ],
            "markers": [m for m in self.markers if m.subject_id in subject_ids],
            "comments": {k: v for k, v in self.comments.items() if k in student_ids},
        })

    # ─── Übersicht ───

    def summary(self) -> str:
        """Mehrzeilige Kennzahlen für die CLI-Ausgabe."""
        skipped = sum(1 for g in self.grades if g.skipped)
        active = sum(1 for c in self.categories if c.is_active)
        lines = [
            f"Konto: {self.user_id}" if self.user_id else "",
            f"Kinder: {len(self.students)}",
            f"Fächer: {len(self.subjects)} ({len(self.lessons)} Lektionen)",
            f"Kategorien: {len(self.categories)} ({active} aktiv)",
            f"Noten: {len(self.grades)} ({skipped} ausgelassen)",
            f"Perioden-Marker: {len(self.markers)}",
        ]
        return "\n".join(l for l in lines if l)

    # ─── Persistenz ───

    def save_json(self, path: Path) -> None:
        """Schreibt das Notenbuch als JSON; setzt modified_at (und created_at beim ersten Mal)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        now = datetime.now(timezone.utc)
        updated = self.model_copy(update={
            "modified_at": now,
            "created_at": self.created_at or now,
        })
        path.write_text(updated.model_dump_json(indent=2), encoding="utf-8")

    @classmethod
    def load_json(cls, path: Path) -> "Gradebook":
        """Liest ein mit save_json geschriebenes Notenbuch."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Notenbuch fehlt: {path}")
        raw = path.read_text(encoding="utf-8")
        try:
            return cls.model_validate_json(raw)
        except ValueError as e:
            raise ValueError(f"Notendatei ungültig: {path}\nPydantic-Fehler: {e}") from e
