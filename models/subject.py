"""Datenmodell für ein Unterrichtsfach (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel

from models.lesson import Lesson


class Subject(BaseModel):
    """Repräsentiert ein Fach mit Kategorie-Gewichten und geordneten Lektionen."""

    id: str
    name: str
    report_card_name: Optional[str] = None
    description: Optional[str] = None
    group_name: Optional[str] = None
    user_id: Optional[str] = None
    weights: dict[str, float] = {}    # GradeCategory.id → Anteil (0–1)
    lessons: list[Lesson] = []

    @property
    def display_name(self) -> str:
        """Name auf dem Zeugnis: report_card_name, falls gesetzt, sonst name."""
        if self.report_card_name and self.report_card_name.strip():
            return self.report_card_name
        return self.name

    @property
    def ordered_lessons(self) -> list[Lesson]:
        """Lektionen nach order_index sortiert."""
        return sorted(self.lessons, key=lambda l: l.order_index)

    def lesson_by_id(self, lesson_id: str) -> Optional[Lesson]:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None
