"""Excel-Export der Zeugnisdaten (openpyxl)."""

from pathlib import Path

from config.schema import GradeFlowConfig
from engine.aggregation import CalculationBreakdown, get_subject_calculation_breakdown
from engine.letter_grades import get_letter_grade
from engine.periods import format_report_period, lesson_ids_for_period
from models.gradebook import Gradebook
from models.subject import Subject

from export.helpers import (
    COLORS, letter_color, build_report_cards, today_str,
)


class ExcelExporter:
    """Exportiert ein Gradebook in eine Excel-Datei.

    Blatt "Übersicht": Kinder × Fächer mit Gesamtschnitt.
    Je Fach ein Blatt mit der Kategorie-Aufschlüsselung jedes Kindes.
    """

    # Spaltenbreiten (Excel-Einheiten)
    COL_NAME_W    = 24
    COL_SUBJECT_W = 14
    COL_DETAIL_W  = 16

    # Zeilenhöhen (Punkte)
    ROW_HEADER_H = 30

    def __init__(self, gradebook: Gradebook, config: GradeFlowConfig):
        self.data     = gradebook
        self.config   = config
        self.decimals = config.report.decimals

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def export(self, output_path: Path, period: str = "current") -> None:
        """Erstellt die Excel-Datei mit Übersicht und Fachblättern."""
        from openpyxl import Workbook
        wb = Workbook()
        wb.remove(wb.active)   # Leeres Standard-Sheet entfernen

        subjects = sorted(self.data.subjects, key=lambda s: s.display_name)
        self._sheet_uebersicht(wb, subjects, period)

        lesson_ids = lesson_ids_for_period(self.data.subjects, self.data.markers, period)
        used_titles: set[str] = {"Übersicht"}
        for subject in subjects:
            self._sheet_fach(wb, subject, lesson_ids, used_titles)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)

    # ─── Style-Helpers ────────────────────────────────────────────────────────

    def _fill(self, hex_color: str):
        from openpyxl.styles import PatternFill
        return PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")

    def _center_align(self, wrap: bool = True):
        from openpyxl.styles import Alignment
        return Alignment(wrap_text=wrap, horizontal="center", vertical="center")

    def _thin_border(self):
        from openpyxl.styles import Border, Side
        s = Side(border_style="thin", color="BBBBBB")
        return Border(left=s, right=s, top=s, bottom=s)

    def _number_format(self) -> str:
        return "0" if self.decimals == 0 else "0." + "0" * self.decimals

    def _write_header_row(self, ws, headers: list[str], row: int = 1) -> None:
        """Schreibt eine blaue Kopfzeile."""
        from openpyxl.styles import Font
        fill = self._fill(COLORS["header"])
        border = self._thin_border()
        for col, text in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=text)
            cell.fill = fill
            cell.font = Font(bold=True, color="FFFFFF", size=10)
            cell.alignment = self._center_align()
            cell.border = border
        ws.row_dimensions[row].height = self.ROW_HEADER_H

    def _write_average(self, ws, row: int, col: int, value, letter: str) -> None:
        """Schreibt einen Durchschnitt mit Notenfarbe."""
        cell = ws.cell(row=row, column=col, value=round(value, self.decimals))
        cell.number_format = self._number_format()
        cell.fill = self._fill(letter_color(letter))
        cell.alignment = self._center_align(wrap=False)
        cell.border = self._thin_border()

    def _sheet_title(self, name: str, used: set[str]) -> str:
        """Eindeutiger, Excel-tauglicher Blattname (max. 31 Zeichen)."""
        clean = "".join(ch for ch in name if ch not in '[]:*?/\\')[:31] or "Fach"
        title, n = clean, 2
        while title in used:
            suffix = f" ({n})"
            title = clean[: 31 - len(suffix)] + suffix
            n += 1
        used.add(title)
        return title

    # ─── Sheet: Übersicht ─────────────────────────────────────────────────────

    def _sheet_uebersicht(self, wb, subjects: list[Subject], period: str) -> None:
        """Kinder × Fächer mit Gesamtschnitt und optional Buchstabennote."""
        from openpyxl.styles import Font
        from openpyxl.utils import get_column_letter

        ws = wb.create_sheet("Übersicht")
        show_letter = self.config.report.show_letter_grades

        ws.cell(row=1, column=1, value=self.config.school_name).font = Font(bold=True, size=13)
        ws.cell(row=2, column=1,
                value=f"Periode: {format_report_period(period)}  |  Stand: {today_str()}")

        headers = ["Name"] + [s.display_name for s in subjects] + ["Gesamt"]
        if show_letter:
            headers.append("Note")
        self._write_header_row(ws, headers, row=4)

        ws.column_dimensions["A"].width = self.COL_NAME_W
        for col in range(2, len(headers) + 1):
            ws.column_dimensions[get_column_letter(col)].width = self.COL_SUBJECT_W

        border = self._thin_border()
        col_of = {s.id: i for i, s in enumerate(subjects, 2)}
        total_col = len(subjects) + 2

        row = 5
        for name, card in build_report_cards(self.data, period):
            name_cell = ws.cell(row=row, column=1, value=name)
            name_cell.border = border
            if row % 2 == 0:
                name_cell.fill = self._fill(COLORS["zebra"])
            for result in card.subjects:
                col = col_of.get(result.subject_id)
                if col is None:
                    continue
                self._write_average(ws, row, col, result.average, result.letter_grade)
            overall_letter = get_letter_grade(card.overall_gpa)
            self._write_average(ws, row, total_col, card.overall_gpa, overall_letter)
            ws.cell(row=row, column=total_col).font = Font(bold=True)
            if show_letter:
                cell = ws.cell(row=row, column=total_col + 1, value=overall_letter)
                cell.alignment = self._center_align(wrap=False)
                cell.border = border
            row += 1

        ws.freeze_panes = "B5"

    # ─── Sheet: Fach ──────────────────────────────────────────────────────────

    def _sheet_fach(self, wb, subject: Subject, lesson_ids, used_titles: set[str]) -> None:
        """Kategorie-Aufschlüsselung je Kind für ein Fach."""
        from openpyxl.styles import Font
        from openpyxl.utils import get_column_letter

        ws = wb.create_sheet(self._sheet_title(subject.display_name, used_titles))
        headers = ["Name", "Kategorie", "Noten", "Schnitt", "Gewicht", "Beitrag"]
        self._write_header_row(ws, headers)
        ws.column_dimensions["A"].width = self.COL_NAME_W
        for col in range(2, len(headers) + 1):
            ws.column_dimensions[get_column_letter(col)].width = self.COL_DETAIL_W

        border = self._thin_border()
        row = 2
        for student in sorted(self.data.students, key=lambda s: s.name):
            bd = get_subject_calculation_breakdown(
                student.id, subject.id, self.data.subjects, self.data.grades,
                categories=self.data.categories, lesson_ids=lesson_ids,
            )
            if bd is None:
                continue
            row = self._write_breakdown(ws, row, student.name, bd, border)
            total = ws.cell(row=row, column=2, value="Gesamt")
            total.font = Font(bold=True)
            self._write_average(ws, row, 4, bd.final_average, bd.letter_grade)
            ws.cell(row=row, column=5, value=round(bd.total_weight, 4)).border = border
            ws.cell(row=row, column=6, value=bd.letter_grade).border = border
            row += 2

    def _write_breakdown(self, ws, row: int, name: str,
                         bd: CalculationBreakdown, border) -> int:
        """Schreibt die Kategoriezeilen; gibt die nächste freie Zeile zurück."""
        ws.cell(row=row, column=1, value=name).border = border
        for cat in bd.categories:
            values = [
                cat.category_name,
                len(cat.grades),
                round(cat.average, self.decimals),
                round(cat.weight, 4),
                round(cat.weighted_value, self.decimals),
            ]
            for col, value in enumerate(values, 2):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = border
                cell.alignment = self._center_align(wrap=False)
            row += 1
        return row
