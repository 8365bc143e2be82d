"""PDF-Export der Zeugnisse (fpdf2)."""

from pathlib import Path

from config.schema import GradeFlowConfig
from engine.aggregation import ReportCard
from engine.letter_grades import get_letter_grade
from engine.periods import format_report_period
from models.gradebook import Gradebook

from export.helpers import (
    COLORS, hex_to_rgb, letter_color, format_average, build_report_cards, today_str,
)


def _pdf_safe(text: str) -> str:
    """Ersetzt nicht-latin-1-fähige Zeichen für fpdf2-Built-in-Fonts."""
    return (
        text
        .replace("—", " - ")   # em dash
        .replace("–", "-")      # en dash
        .replace("─", "-")      # BOX DRAWINGS LIGHT HORIZONTAL
        .encode("latin-1", "replace").decode("latin-1")
    )


# ─── A4-Hochformat-Dimensionen ────────────────────────────────────────────────
# Portrait A4: 210 × 297 mm, nutzbare Breite (Margin 15 links+rechts): 180 mm
# Spalten: Fach(110) + Schnitt(40) + Note(30) = 180 mm

_COLS = {
    "subject": 110,
    "average": 40,
    "letter":  30,
}
_ROW_H        = 8     # mm
_FONT_HEADER  = 10    # pt
_FONT_CONTENT = 10    # pt
_LEFT         = 15.0


class _ReportPdf:
    """Interner Wrapper um fpdf.FPDF für Zeugnis-Seiten."""

    def __init__(self, school_name: str):
        from fpdf import FPDF

        class _Pdf(FPDF):
            def __init__(inner, sn):
                super().__init__(orientation="P", unit="mm", format="A4")
                inner._school_name = sn
                inner._entity_title = ""
                inner.alias_nb_pages()
                inner.set_auto_page_break(auto=True, margin=20)
                inner.set_margins(left=_LEFT, top=28, right=_LEFT)

            def header(inner):
                inner.set_font("Helvetica", "B", 13)
                inner.set_xy(_LEFT, 10)
                inner.cell(110, 8, _pdf_safe(inner._school_name), border=0, align="L")
                inner.set_font("Helvetica", "", 10)
                inner.cell(0, 8, _pdf_safe(inner._entity_title), border=0, align="R")
                inner.ln(0)
                inner.set_draw_color(150, 150, 150)
                inner.line(_LEFT, 20, inner.w - _LEFT, 20)

            def footer(inner):
                inner.set_y(-15)
                inner.set_font("Helvetica", "I", 7)
                inner.cell(
                    0, 8,
                    f"{today_str()}  |  Seite {inner.page_no()}/{{nb}}",
                    border=0, align="C",
                )

        self._pdf = _Pdf(school_name)

    def set_entity(self, title: str) -> None:
        self._pdf._entity_title = title

    def add_page(self) -> None:
        self._pdf.add_page()

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._pdf.output(str(path))

    # ─── Zellen-Zeichnung ─────────────────────────────────────────────────────

    def draw_cell(
        self,
        x: float, y: float,
        w: float, h: float,
        text: str = "",
        bg_hex: str | None = None,
        bold: bool = False,
        font_size: int = _FONT_CONTENT,
        text_color: tuple[int, int, int] = (0, 0, 0),
        align: str = "C",
    ) -> None:
        """Zeichnet eine Zelle mit Hintergrund, Rand und Text."""
        pdf = self._pdf

        if bg_hex:
            r, g, b = hex_to_rgb(bg_hex)
            pdf.set_fill_color(r, g, b)
            pdf.rect(x, y, w, h, style="F")

        pdf.set_draw_color(180, 180, 180)
        pdf.rect(x, y, w, h, style="D")

        if text:
            pdf.set_font("Helvetica", "B" if bold else "", font_size)
            pdf.set_text_color(*text_color)
            pdf.set_xy(x + 1, y)
            pdf.cell(w - 2, h, _pdf_safe(text)[:60], border=0, align=align)
            pdf.set_text_color(0, 0, 0)

    def draw_text(self, x: float, y: float, text: str, size: int = 10,
                  style: str = "") -> None:
        pdf = self._pdf
        pdf.set_font("Helvetica", style, size)
        pdf.set_xy(x, y)
        pdf.cell(0, 6, _pdf_safe(text), border=0, align="L")

    def draw_paragraph(self, x: float, y: float, w: float, text: str) -> None:
        pdf = self._pdf
        pdf.set_font("Helvetica", "", 9)
        pdf.set_xy(x, y)
        pdf.multi_cell(w, 5, _pdf_safe(text), border=1, align="L")


class PdfExporter:
    """Exportiert Zeugnisse eines Gradebooks in eine PDF-Datei."""

    def __init__(self, gradebook: Gradebook, config: GradeFlowConfig):
        self.data = gradebook
        self.config = config
        self.decimals = config.report.decimals
        self._total_w = sum(_COLS.values())

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def export_report_cards(self, output_path: Path, period: str) -> int:
        """Erzeugt eine PDF mit je einer Seite pro Kind; gibt die Seitenzahl zurück."""
        pdf = _ReportPdf(self.config.school_name)
        cards = build_report_cards(self.data, period)
        for name, card in cards:
            pdf.set_entity(f"Report Card - {format_report_period(period)}")
            pdf.add_page()
            self._draw_card(pdf, name, card)
        if not cards:
            pdf.set_entity("Report Card")
            pdf.add_page()
            pdf.draw_text(_LEFT, 30, "Keine Zeugnisdaten für diese Periode.", style="I")
        pdf.save(output_path)
        return len(cards)

    # ─── Zeugnis-Seite ────────────────────────────────────────────────────────

    def _draw_card(self, pdf: _ReportPdf, name: str, card: ReportCard) -> None:
        x = _LEFT
        y = 26.0
        pdf.draw_text(x, y, name, size=14, style="B")
        y += 8
        pdf.draw_text(x, y, f"Reporting Period: {format_report_period(card.period)}")
        y += 10

        show_letter = self.config.report.show_letter_grades
        header = [("Subject", _COLS["subject"]), ("Average", _COLS["average"])]
        if show_letter:
            header.append(("Grade", _COLS["letter"]))
        cx = x
        for label, w in header:
            pdf.draw_cell(cx, y, w, _ROW_H, label, bg_hex=COLORS["header"],
                          bold=True, font_size=_FONT_HEADER, text_color=(255, 255, 255))
            cx += w
        y += _ROW_H

        for i, result in enumerate(card.subjects):
            bg = COLORS["zebra"] if i % 2 else None
            pdf.draw_cell(x, y, _COLS["subject"], _ROW_H, result.subject_name,
                          bg_hex=bg, align="L")
            pdf.draw_cell(x + _COLS["subject"], y, _COLS["average"], _ROW_H,
                          f"{format_average(result.average, self.decimals)}%", bg_hex=bg)
            if show_letter:
                pdf.draw_cell(x + _COLS["subject"] + _COLS["average"], y,
                              _COLS["letter"], _ROW_H, result.letter_grade,
                              bg_hex=letter_color(result.letter_grade), bold=True)
            y += _ROW_H

        overall = format_average(card.overall_gpa, self.decimals)
        pdf.draw_cell(x, y, _COLS["subject"], _ROW_H, "Overall Average",
                      bold=True, align="L")
        pdf.draw_cell(x + _COLS["subject"], y, _COLS["average"], _ROW_H,
                      f"{overall}%", bold=True)
        if show_letter:
            letter = get_letter_grade(card.overall_gpa)
            pdf.draw_cell(x + _COLS["subject"] + _COLS["average"], y, _COLS["letter"],
                          _ROW_H, letter, bg_hex=letter_color(letter), bold=True)
        y += _ROW_H + 8

        if self.config.report.include_comments and card.comments:
            pdf.draw_text(x, y, "Comments", style="B")
            pdf.draw_paragraph(x, y + 7, self._total_w, card.comments)

        if self.config.teacher_name:
            pdf.draw_text(x, 265, f"Teacher: {self.config.teacher_name}", size=9)
