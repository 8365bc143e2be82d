"""Feste Notenskala: Prozentwert → Buchstabennote und zurück."""

import math

# (Untergrenze inklusiv, Buchstabe), absteigend
LETTER_GRADE_CUTOFFS: list[tuple[float, str]] = [
    (97, "A+"),
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (67, "D+"),
    (63, "D"),
    (60, "D-"),
]

FAILING_GRADE = "F"
NOT_AVAILABLE = "N/A"

# Prozentwert, der bei Eingabe einer Buchstabennote gespeichert wird
# (Mitte des jeweiligen Bands).
LETTER_GRADE_PERCENTAGES: dict[str, float] = {
    "A+": 98.5, "A": 95, "A-": 91.5,
    "B+": 88.5, "B": 85, "B-": 81.5,
    "C+": 78.5, "C": 75, "C-": 71.5,
    "D+": 68.5, "D": 65, "D-": 61.5,
    "F": 50,
}

# Grobe Bänder für Verteilungen im Dashboard
DISTRIBUTION_BANDS: list[tuple[float, str]] = [
    (90, "A (90-100%)"),
    (80, "B (80-89%)"),
    (70, "C (70-79%)"),
    (60, "D (60-69%)"),
    (0, "F (Below 60%)"),
]


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and not math.isnan(value)
    )


def get_letter_grade(percentage) -> str:
    """Buchstabennote zu einem Prozentwert.

    Nicht-numerische Werte und NaN ergeben 'N/A', alles unter 60 'F'.
    """
    if not _is_number(percentage):
        return NOT_AVAILABLE
    for cutoff, letter in LETTER_GRADE_CUTOFFS:
        if percentage >= cutoff:
            return letter
    return FAILING_GRADE


def letter_to_percentage(letter: str):
    """Gespeicherter Prozentwert zu einer Buchstabeneingabe oder None."""
    return LETTER_GRADE_PERCENTAGES.get(letter.strip().upper())


def distribution_band(percentage: float) -> str:
    """Dashboard-Band (A–F) zu einem Prozentwert."""
    for cutoff, label in DISTRIBUTION_BANDS:
        if percentage >= cutoff:
            return label
    return DISTRIBUTION_BANDS[-1][1]
