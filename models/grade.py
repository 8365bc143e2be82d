"""Datenmodell für eine einzelne Note (Pydantic v2)."""

from typing import Optional, Union

from pydantic import BaseModel


class Grade(BaseModel):
    """Ergebnis eines Kindes in einer Lektion.

    percentage wird unabhängig von points gespeichert (Buchstaben- und
    Bruch-Eingaben). Altdaten können hier Strings oder NaN enthalten;
    die Aggregation wertet solche Werte als 0.
    """

    id: str
    student_id: str
    lesson_id: str
    subject_id: Optional[str] = None    # abgeleitet aus der Lektion, falls None
    points: float = 0                   # erreichte Punkte
    max_points: float = 0               # Kopie von Lesson.max_points bei Eingabe
    percentage: Union[float, str, None] = 0.0
    errors: float = 0
    skipped: bool = False               # maßgeblich für "ausgelassen"
    notes: Optional[str] = None

    @property
    def has_legacy_skip_encoding(self) -> bool:
        """True für das Altmuster percentage=0 und errors=max_points (>0)."""
        return (
            isinstance(self.percentage, (int, float))
            and self.percentage == 0
            and self.max_points > 0
            and self.errors == self.max_points
        )

    @classmethod
    def make_skipped(cls, id: str, student_id: str, lesson_id: str,
                     max_points: float, subject_id: Optional[str] = None) -> "Grade":
        """Erzeugt eine ausgelassene Note in kanonischer Kodierung."""
        return cls(
            id=id, student_id=student_id, lesson_id=lesson_id,
            subject_id=subject_id, points=0, max_points=max_points,
            percentage=0.0, errors=max_points, skipped=True,
        )
