"""Datenmodell für eine Bewertungskategorie (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel


class GradeCategory(BaseModel):
    """Art der Leistungserhebung, z.B. "Lesson" oder "Test"."""

    id: str
    name: str
    is_active: bool = True
    is_default: bool = False      # max. eine Default-Kategorie pro Konto
    sort_order: int = 0
    description: Optional[str] = None
