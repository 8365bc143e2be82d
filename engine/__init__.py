"""Engine-Modul: gewichtete Notenaggregation, Notenskala, Perioden, Eingabe."""

from .aggregation import (
    AggregationUsageError,
    CalculationBreakdown,
    CategoryBreakdown,
    ReportCard,
    SubjectResult,
    compute_subject_average,
    generate_report_card,
    get_subject_calculation_breakdown,
)
from .letter_grades import get_letter_grade
from .periods import format_report_period, lesson_ids_for_period
from .entry import GradeEntryError, parse_grade_input, preview_subject_average

__all__ = [
    "AggregationUsageError",
    "CalculationBreakdown",
    "CategoryBreakdown",
    "ReportCard",
    "SubjectResult",
    "compute_subject_average",
    "generate_report_card",
    "get_subject_calculation_breakdown",
    "get_letter_grade",
    "format_report_period",
    "lesson_ids_for_period",
    "GradeEntryError",
    "parse_grade_input",
    "preview_subject_average",
]
