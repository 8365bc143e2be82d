"""Gemeinsame Hilfsfunktionen für Excel- und PDF-Export."""

from datetime import date
from typing import Optional

from engine.aggregation import ReportCard, generate_report_card
from engine.periods import lesson_ids_for_period
from models.gradebook import Gradebook

# ─── Farbpalette (RRGGBB, ohne #) ─────────────────────────────────────────────

COLORS: dict[str, str] = {
    "A":      "B3FFB3",
    "B":      "D4F0B3",
    "C":      "FFF2B3",
    "D":      "FFD4B3",
    "F":      "FF9999",
    "N/A":    "F5F5F5",
    "header": "4472C4",
    "zebra":  "F5F5F5",
}


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Wandelt RRGGBB-String in (r, g, b)-Tupel um."""
    h = hex_color.lstrip("#")
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def today_str() -> str:
    """Gibt das heutige Datum als DD.MM.YYYY zurück."""
    return date.today().strftime("%d.%m.%Y")


def letter_color(letter: str) -> str:
    """Hintergrundfarbe zu einer Buchstabennote ("B+" → Band B)."""
    return COLORS.get(letter[:1] if letter != "N/A" else letter, COLORS["N/A"])


def format_average(value: Optional[float], decimals: int = 1) -> str:
    """Durchschnitt mit fester Nachkommazahl; '–' für fehlende Werte."""
    if value is None:
        return "–"
    return f"{value:.{decimals}f}"


# ─── Zeugnisse sammeln ────────────────────────────────────────────────────────

def build_report_cards(gradebook: Gradebook, period: str) -> list[tuple[str, ReportCard]]:
    """(Name, ReportCard) für alle Kinder mit Ergebnis, nach Name sortiert.

    Die Periode schränkt die gewerteten Lektionen über die Marker ein.
    """
    lesson_ids = lesson_ids_for_period(gradebook.subjects, gradebook.markers, period)
    cards: list[tuple[str, ReportCard]] = []
    for student in sorted(gradebook.students, key=lambda s: s.name):
        card = generate_report_card(
            student.id, period, gradebook.comments,
            gradebook.students, gradebook.subjects, gradebook.grades,
            categories=gradebook.categories, lesson_ids=lesson_ids,
        )
        if card is not None:
            cards.append((student.name, card))
    return cards
