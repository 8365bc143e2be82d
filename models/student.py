"""Datenmodell für eine Schülerin / einen Schüler (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel


class Student(BaseModel):
    """Repräsentiert ein Kind mit expliziter Fächer-Einschreibung."""

    id: str
    name: str
    grade_level: Optional[str] = None   # "Grade 5"
    group_name: Optional[str] = None
    user_id: Optional[str] = None
    subjects: list[str] = []            # eingeschriebene Subject.id

    def is_enrolled(self, subject_id: str) -> bool:
        return subject_id in self.subjects
