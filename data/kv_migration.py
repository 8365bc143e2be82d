"""Migration alter Key-Value-Dumps in Gradebooks.

Ein Dump ist eine Liste von Zeilen ``{"key", "value", "user_id"}`` mit
Schlüsseln der Form ``user:{id}:{students|subjects|grades|lessons|student_groups}``.
Werte sind JSON-Arrays (als String oder bereits geparst). Unlesbare Werte und
unbekannte Schlüssel werden übersprungen; doppelte IDs behalten den ersten Eintrag.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from config.defaults import default_categories
from models.category import GradeCategory
from models.grade import Grade
from models.gradebook import Gradebook
from models.lesson import Lesson
from models.student import Student
from models.subject import Subject

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(
    r"^user:([\w-]+):(students|subjects|grades|lessons|student_groups)$"
)
DATA_TYPES = ("students", "subjects", "grades", "lessons", "student_groups")


class MigrationError(Exception):
    """Fehler beim Lesen eines Key-Value-Dumps."""


class MigrationReport(BaseModel):
    """Zählerstände einer Migration."""

    users: int = 0
    students: int = 0
    subjects: int = 0
    lessons: int = 0
    grades: int = 0
    student_groups: int = 0
    skipped_rows: int = 0
    normalized_skips: int = 0
    warnings: list[str] = []

    def print_rich(self) -> None:
        """Gibt die Zählerstände formatiert über Rich aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title="Migration", box=box.ROUNDED)
        table.add_column("Typ")
        table.add_column("Anzahl", justify="right")
        for label, value in [
            ("Konten", self.users),
            ("Kinder", self.students),
            ("Fächer", self.subjects),
            ("Lektionen", self.lessons),
            ("Noten", self.grades),
            ("Lerngruppen", self.student_groups),
            ("Übersprungene Zeilen", self.skipped_rows),
            ("Normalisierte Auslassungen", self.normalized_skips),
        ]:
            table.add_row(label, str(value))
        console.print(table)
        for w in self.warnings:
            console.print(f"  [yellow]⚠[/yellow] {w}")


# ─── Auslassungs-Kodierung ────────────────────────────────────────────────────

def normalize_skip_encoding(grades: list[Grade]) -> tuple[list[Grade], int]:
    """Vereinheitlicht die Kodierung ausgelassener Noten.

    Altmuster (percentage 0, errors = max_points > 0) wird zu skipped=True;
    ausgelassene Noten bekommen percentage 0, points 0 und errors = max_points.
    Gibt (neue Liste, Anzahl geänderter Noten) zurück.
    """
    result: list[Grade] = []
    changed = 0
    for g in grades:
        if g.skipped or g.has_legacy_skip_encoding:
            canonical = Grade.make_skipped(
                g.id, g.student_id, g.lesson_id, g.max_points, subject_id=g.subject_id,
            ).model_copy(update={"notes": g.notes})
            if canonical != g:
                changed += 1
            result.append(canonical)
        else:
            result.append(g)
    return result, changed


# ─── Migrator ─────────────────────────────────────────────────────────────────

def _first(item: dict, *keys: str, default: Any = None) -> Any:
    """Erster vorhandener Wert unter mehreren Schreibweisen (snake/camel)."""
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return default


class KvMigrator:
    """Baut aus einem Key-Value-Dump ein Gradebook pro Konto."""

    def __init__(self) -> None:
        self._warnings: list[str] = []
        self.report = MigrationReport()

    def _parse_value(self, key: str, value: Any) -> Optional[list]:
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                logger.debug(f"Kein JSON unter {key} – übersprungen")
                return None
        if not isinstance(value, list):
            self._warnings.append(f"{key}: Wert ist keine Liste – übersprungen")
            return None
        return value

    def _collect(self, rows: list[dict]) -> dict[str, dict[str, list[dict]]]:
        """Gruppiert die Einträge nach Konto und Datentyp."""
        collected: dict[str, dict[str, list[dict]]] = {}
        for i, row in enumerate(rows):
            if not isinstance(row, dict) or "key" not in row:
                raise MigrationError(f"Zeile {i}: Erwartet ein Objekt mit 'key' und 'value'")
            key = str(row["key"])
            match = KEY_PATTERN.match(key)
            if not match:
                self.report.skipped_rows += 1
                continue
            items = self._parse_value(key, row.get("value"))
            if items is None:
                self.report.skipped_rows += 1
                continue
            user_id = str(row.get("user_id") or match.group(1))
            per_user = collected.setdefault(user_id, {t: [] for t in DATA_TYPES})
            per_user[match.group(2)].extend(item for item in items if isinstance(item, dict))
        return collected

    def _dedupe(self, items: list[dict], kind: str) -> list[dict]:
        seen: set[str] = set()
        result = []
        for item in items:
            item_id = item.get("id")
            if item_id is None:
                self._warnings.append(f"{kind}: Eintrag ohne id – übersprungen")
                continue
            if str(item_id) in seen:
                continue
            seen.add(str(item_id))
            result.append(item)
        return result

    def _validate(self, model: type[BaseModel], data: dict, kind: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            self._warnings.append(
                f"{kind} {data.get('id')}: ungültig – übersprungen ({e.error_count()} Fehler)"
            )
            return None

    # ── Einzelne Datentypen ─────────────────────────────────────────────────

    def _build_lessons(
        self, items: list[dict], categories: list[GradeCategory]
    ) -> list[Lesson]:
        # Alte Daten speichern den Kategorienamen ("Lesson", "Test") statt der ID
        by_key = {c.id.lower(): c.id for c in categories}
        by_key.update({c.name.lower(): c.id for c in categories})
        fallback = next((c.id for c in categories if c.is_default), categories[0].id)

        lessons = []
        for item in self._dedupe(items, "Lektion"):
            lesson = self._validate(Lesson, {
                "id": str(item["id"]),
                "name": _first(item, "name", "title", default=""),
                "subject_id": str(_first(item, "subject_id", "subjectId", default="")),
                "category_id": self._resolve_category(item, by_key, fallback),
                "max_points": _first(item, "max_points", "maxPoints", default=0),
                "order_index": _first(item, "order_index", "orderIndex", default=0),
            }, "Lektion")
            if lesson is not None:
                lessons.append(lesson)
        return lessons

    def _resolve_category(self, item: dict, by_key: dict[str, str], fallback: str) -> str:
        raw = _first(item, "category_id", "categoryId", "type")
        if raw is None or str(raw).strip() == "":
            return fallback
        resolved = by_key.get(str(raw).strip().lower())
        if resolved is None:
            self._warnings.append(
                f"Lektion {item.get('id')}: unbekannte Kategorie '{raw}' → {fallback}"
            )
            return fallback
        return resolved

    def _build_subjects(
        self, items: list[dict], lessons: list[Lesson], user_id: str
    ) -> list[Subject]:
        by_subject: dict[str, list[Lesson]] = {}
        for lesson in lessons:
            by_subject.setdefault(lesson.subject_id, []).append(lesson)

        subjects = []
        for item in self._dedupe(items, "Fach"):
            sid = str(item["id"])
            subject = self._validate(Subject, {
                "id": sid,
                "name": _first(item, "name", default=sid),
                "report_card_name": _first(item, "report_card_name", "reportCardName"),
                "description": item.get("description"),
                "group_name": _first(item, "group_name", "groupName"),
                "user_id": user_id,
                "weights": _first(item, "weights", "category_weights", default={}),
                "lessons": by_subject.pop(sid, []),
            }, "Fach")
            if subject is not None:
                subjects.append(subject)

        for sid, orphaned in by_subject.items():
            self._warnings.append(
                f"{len(orphaned)} Lektion(en) mit unbekanntem Fach '{sid}' – verworfen"
            )
        return subjects

    def _build_students(
        self, items: list[dict], groups: dict[str, str], user_id: str
    ) -> list[Student]:
        students = []
        for item in self._dedupe(items, "Kind"):
            group_id = _first(item, "group_id", "groupId")
            group_name = _first(item, "group_name", "groupName")
            if group_name is None and group_id is not None:
                group_name = groups.get(str(group_id))
            student = self._validate(Student, {
                "id": str(item["id"]),
                "name": _first(item, "name", default=""),
                "grade_level": _first(item, "grade_level", "gradeLevel"),
                "group_name": group_name,
                "user_id": user_id,
                "subjects": [str(s) for s in _first(item, "subjects", default=[])],
            }, "Kind")
            if student is not None:
                students.append(student)
        return students

    def _build_grades(self, items: list[dict]) -> list[Grade]:
        grades = []
        for item in self._dedupe(items, "Note"):
            grade = self._validate(Grade, {
                "id": str(item["id"]),
                "student_id": str(_first(item, "student_id", "studentId", default="")),
                "lesson_id": str(_first(item, "lesson_id", "lessonId", default="")),
                "subject_id": _first(item, "subject_id", "subjectId"),
                "points": _first(item, "points", default=0),
                "max_points": _first(item, "max_points", "maxPoints", default=0),
                "percentage": _first(item, "percentage", "value", default=0.0),
                "errors": _first(item, "errors", default=0),
                "skipped": bool(_first(item, "skipped", default=False)),
                "notes": item.get("notes"),
            }, "Note")
            if grade is not None:
                grades.append(grade)
        return grades

    # ── Gesamt ──────────────────────────────────────────────────────────────

    def migrate(self, rows: list[dict]) -> tuple[dict[str, Gradebook], MigrationReport]:
        """Führt die Migration durch und gibt (Konto → Gradebook, Report) zurück."""
        if not isinstance(rows, list):
            raise MigrationError("Dump muss eine Liste von Zeilen sein")

        self._warnings = []
        self.report = MigrationReport()
        result: dict[str, Gradebook] = {}

        for user_id, data in self._collect(rows).items():
            groups = {
                str(g["id"]): str(g.get("name", ""))
                for g in self._dedupe(data["student_groups"], "Lerngruppe")
            }
            categories = default_categories()
            lessons = self._build_lessons(data["lessons"], categories)
            subjects = self._build_subjects(data["subjects"], lessons, user_id)
            students = self._build_students(data["students"], groups, user_id)
            grades, normalized = normalize_skip_encoding(self._build_grades(data["grades"]))

            result[user_id] = Gradebook(
                user_id=user_id,
                categories=categories,
                subjects=subjects,
                students=students,
                grades=grades,
            )
            self.report.students += len(students)
            self.report.subjects += len(subjects)
            self.report.lessons += sum(len(s.lessons) for s in subjects)
            self.report.grades += len(grades)
            self.report.student_groups += len(groups)
            self.report.normalized_skips += normalized
            logger.info(
                f"Konto {user_id}: {len(students)} Kinder, {len(subjects)} Fächer, "
                f"{len(grades)} Noten"
            )

        self.report.users = len(result)
        self.report.warnings = list(self._warnings)
        for w in self._warnings:
            logger.warning(w)
        return result, self.report


def load_kv_dump(path: Path) -> list[dict]:
    """Liest einen Dump aus einer JSON-Datei."""
    path = Path(path)
    if not path.exists():
        raise MigrationError(f"Datei nicht gefunden: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
    except json.JSONDecodeError as e:
        raise MigrationError(f"Dump ist kein gültiges JSON: {path} ({e})") from e
    if not isinstance(rows, list):
        raise MigrationError(f"Dump muss eine Liste von Zeilen sein: {path}")
    return rows


def migrate_kv_dump(rows: list[dict]) -> tuple[dict[str, Gradebook], MigrationReport]:
    """Migriert einen Key-Value-Dump.

    Returns:
        (Konto-ID → Gradebook, MigrationReport)

    Raises:
        MigrationError: Wenn der Dump strukturell unlesbar ist.
    """
    return KvMigrator().migrate(rows)
