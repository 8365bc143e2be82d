"""Datenmodelle für Lektionen und Notenperioden-Marker (Pydantic v2)."""

from pydantic import BaseModel, Field


class Lesson(BaseModel):
    """Eine bewertbare Einheit eines Fachs."""

    id: str
    name: str
    subject_id: str
    category_id: str              # Fremdschlüssel auf GradeCategory.id
    max_points: float = Field(0, ge=0)
    order_index: int = 0          # Position im gemeinsamen Ordnungsraum mit Markern


class GradingPeriodMarker(BaseModel):
    """Trennt zwei Notenperioden innerhalb der Lektionsreihenfolge eines Fachs.

    Lektionen vor dem ersten Marker gehören zu Periode 1, Lektionen zwischen
    Marker k und k+1 zu Periode k+1.
    """

    id: str
    subject_id: str
    name: str = ""
    order_index: int
