"""Notenperioden: Perioden-Tokens, Marker-Grenzen und aktuelle Periode.

Marker und Lektionen teilen sich denselben order_index-Raum eines Fachs.
Bei N Perioden gibt es höchstens N-1 Marker pro Fach.
"""

import re
from collections import defaultdict
from datetime import date
from typing import Optional

from models.lesson import GradingPeriodMarker, Lesson
from models.subject import Subject

CURRENT_PERIOD = "current"

# Anzahl Perioden → (Token-Präfix, Bezeichnungen)
PERIOD_SCHEMES: dict[int, tuple[str, list[str]]] = {
    3: ("t", ["1st Trimester", "2nd Trimester", "3rd Trimester"]),
    4: ("q", ["1st Quarter", "2nd Quarter", "3rd Quarter", "4th Quarter"]),
    6: ("sw", ["1st Six Weeks", "2nd Six Weeks", "3rd Six Weeks",
               "4th Six Weeks", "5th Six Weeks", "6th Six Weeks"]),
}

# Periodenlänge in Tagen für die automatische Auswahl
PERIOD_LENGTH_DAYS: dict[int, int] = {3: 120, 4: 90, 6: 42}
DEFAULT_PERIOD_LENGTH_DAYS = 42

_TOKEN_RE = re.compile(r"^(sw|t|q)(\d+)$")
_PREFIX_TOTAL = {"sw": 6, "t": 3, "q": 4}


def reporting_period_options(grading_periods: int) -> list[tuple[str, str]]:
    """(Token, Bezeichnung) aller Perioden eines Schemas."""
    scheme = PERIOD_SCHEMES.get(grading_periods)
    if scheme is None:
        return [(CURRENT_PERIOD, "Current Period")]
    prefix, labels = scheme
    return [(f"{prefix}{i}", label) for i, label in enumerate(labels, 1)]


def max_markers(grading_periods: int) -> int:
    """Maximale Markerzahl pro Fach (N Perioden → N-1 Marker)."""
    return max(grading_periods - 1, 0)


def period_number(token: str) -> Optional[int]:
    """Periodennummer eines Tokens ("sw2" → 2); None für 'current' und Unbekanntes."""
    m = _TOKEN_RE.match(token.strip().lower())
    if not m:
        return None
    return int(m.group(2))


def format_report_period(token: str) -> str:
    """Anzeigeform für Zeugnisse: "sw2" → "2 of 6", "t1" → "1 of 3"."""
    m = _TOKEN_RE.match(token)
    if m:
        return f"{m.group(2)} of {_PREFIX_TOTAL[m.group(1)]}"
    if token == CURRENT_PERIOD:
        return "Current Semester"
    return token


def current_reporting_period(
    first_day_of_school: Optional[date],
    grading_periods: int,
    today: Optional[date] = None,
) -> str:
    """Token der Periode, in die 'today' fällt (auf 1..N begrenzt)."""
    options = reporting_period_options(grading_periods)
    if first_day_of_school is None:
        return options[0][0]
    today = today or date.today()
    days = (today - first_day_of_school).days
    if days < 0:
        return options[0][0]

    length = PERIOD_LENGTH_DAYS.get(grading_periods, DEFAULT_PERIOD_LENGTH_DAYS)
    current = days // length + 1
    safe = min(max(current, 1), len(options))
    return options[safe - 1][0]


def lessons_by_period(
    subject: Subject, markers: list[GradingPeriodMarker]
) -> dict[int, list[Lesson]]:
    """Ordnet die Lektionen eines Fachs ihren Perioden zu (1-basiert).

    Jeder Marker mit order_index < Lektion.order_index schiebt die Lektion
    eine Periode weiter.
    """
    bounds = sorted(m.order_index for m in markers if m.subject_id == subject.id)
    result: dict[int, list[Lesson]] = defaultdict(list)
    for lesson in subject.ordered_lessons:
        passed = sum(1 for b in bounds if b < lesson.order_index)
        result[passed + 1].append(lesson)
    return dict(result)


def lesson_ids_for_period(
    subjects: list[Subject],
    markers: list[GradingPeriodMarker],
    token: str,
) -> Optional[set[str]]:
    """Lektions-IDs aller Fächer in der Periode eines Tokens.

    None bedeutet "keine Einschränkung" ('current' oder unbekanntes Token).
    """
    number = period_number(token)
    if number is None:
        return None
    ids: set[str] = set()
    for subject in subjects:
        for lesson in lessons_by_period(subject, markers).get(number, []):
            ids.add(lesson.id)
    return ids
