"""GradeFlow — Haupt-CLI.

Verwendung:
  python main.py init                         Konfiguration anlegen
  python main.py config edit                  Konfiguration bearbeiten
  python main.py config show                  Konfiguration anzeigen
  python main.py generate                     Demo-Notensatz erzeugen
  python main.py validate                     Datenprüfung
  python main.py periods                      Notenperioden und Marker anzeigen
  python main.py report <kind>                Zeugnis eines Kindes
  python main.py breakdown <kind> <fach>      Berechnungsweg eines Fachs
  python main.py grade <kind> <lektion> <wert>  Note eingeben (mit Vorschau)
  python main.py dashboard                    Übersicht aller Kinder/Fächer
  python main.py export                       Excel + PDF exportieren
  python main.py migrate <dump.json>          Key-Value-Dump migrieren

Alle Datenbefehle arbeiten im Kontext genau eines Kontos (--user).
"""

import logging
import sys
import uuid
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()
logger = logging.getLogger("gradeflow")

_user_option = click.option(
    "--user", "-u", "user_id", default=None,
    help="Konto-ID (Standard: data.default_user_id aus der Konfiguration).",
)
_data_option = click.option(
    "--data", "data_path", default=None,
    help="Pfad zur Gradebook-JSON-Datei (Standard: aus der Konfiguration).",
)
_period_option = click.option(
    "--period", "-p", default=None,
    help="Periode, z.B. sw2, q1, t3 oder current (Standard: nach Datum).",
)


def _setup_logging(level: str) -> None:
    """Leitet Log-Ausgaben über Rich auf die Konsole."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config_or_abort():
    """Lädt die Konfiguration oder bricht mit Fehlermeldung ab."""
    from config.manager import ConfigManager
    mgr = ConfigManager()
    try:
        config = mgr.load_or_default()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    _setup_logging(config.logging.level)
    return mgr, config


def _load_gradebook_or_abort(config, data_path: Optional[str], user_id: Optional[str]):
    """Lädt den Notensatz und schränkt ihn auf das handelnde Konto ein."""
    from models.gradebook import Gradebook

    path = Path(data_path or config.data.gradebook_path)
    try:
        gradebook = Gradebook.load_json(path)
    except FileNotFoundError:
        console.print(
            f"[red]Keine Notendatei gefunden: {path}[/red]\n"
            "Verwenden Sie [bold]python main.py generate[/bold] oder "
            "[bold]python main.py migrate[/bold]."
        )
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    user = user_id or config.data.default_user_id or gradebook.user_id
    if not user:
        console.print(
            "[red]Kein Konto angegeben.[/red] Verwenden Sie [bold]--user[/bold]."
        )
        sys.exit(1)
    logger.debug(f"Konto {user}, Datei {path}")
    return path, gradebook.for_user(user)


def _resolve_period(config, period: Optional[str]) -> str:
    from engine.periods import current_reporting_period
    if period:
        return period.strip().lower()
    if config.school_year.first_day_of_school is None:
        return "current"
    return current_reporting_period(
        config.school_year.first_day_of_school, config.school_year.grading_periods
    )


def _find_student_or_abort(gradebook, key: str):
    student = gradebook.find_student(key)
    if student is None:
        console.print(f"[red]Kind nicht gefunden: {key}[/red]")
        sys.exit(1)
    return student


def _find_subject_or_abort(gradebook, key: str):
    subject = gradebook.find_subject(key)
    if subject is None:
        console.print(f"[red]Fach nicht gefunden: {key}[/red]")
        sys.exit(1)
    return subject


# ─── INIT ─────────────────────────────────────────────────────────────────────

@click.command("init")
@click.option("--school", default=None, help="Name der Schule.")
@click.option("--user", "-u", "user_id", default=None, help="Standard-Konto.")
def cmd_init(school: Optional[str], user_id: Optional[str]):
    """Legt die Konfiguration mit Standardwerten an."""
    from config.defaults import default_config
    from config.manager import ConfigManager

    mgr = ConfigManager()
    if not mgr.first_run_check():
        console.print(
            "[yellow]Eine Konfiguration existiert bereits.[/yellow]\n"
            "Verwenden Sie [bold]python main.py config edit[/bold] zum Bearbeiten."
        )
        if not click.confirm("Trotzdem neu anlegen?", default=False):
            return

    config = default_config()
    if school:
        config = config.model_copy(update={"school_name": school})
    if user_id:
        config = config.model_copy(update={
            "data": config.data.model_copy(update={"default_user_id": user_id})
        })
    mgr.save(config)
    console.print("Führen Sie jetzt [bold]python main.py generate[/bold] aus.")


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anzeigen oder bearbeiten."""


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration an."""
    from engine.periods import reporting_period_options

    mgr, config = _load_config_or_abort()
    sy = config.school_year
    console.print(Panel(
        f"[bold]{config.school_name}[/bold]"
        + (f"  |  {config.teacher_name}" if config.teacher_name else ""),
        title="Konfiguration",
        border_style="cyan",
    ))

    table = Table(title="Schuljahr", box=box.ROUNDED)
    table.add_column("Einstellung")
    table.add_column("Wert")
    table.add_row("Erster Schultag",
                  sy.first_day_of_school.isoformat() if sy.first_day_of_school else "–")
    table.add_row("Notenperioden", str(sy.grading_periods))
    table.add_row("Perioden",
                  ", ".join(t for t, _ in reporting_period_options(sy.grading_periods)))
    console.print(table)

    rc = config.report
    console.print(
        f"\n[bold]Zeugnis:[/bold] {rc.decimals} Nachkommastellen | "
        f"Buchstabennoten: {'ja' if rc.show_letter_grades else 'nein'} | "
        f"Kommentare: {'ja' if rc.include_comments else 'nein'} | "
        f"Ausgabe: {rc.output_dir}"
    )
    console.print(
        f"[bold]Daten:[/bold] {config.data.gradebook_path} | "
        f"Standard-Konto: {config.data.default_user_id or '–'} | "
        f"Log-Level: {config.logging.level}"
    )


@cmd_config.command("edit")
def config_edit():
    """Bearbeitet die Konfiguration interaktiv."""
    mgr, config = _load_config_or_abort()
    mgr.edit_interactive(config)


# ─── GENERATE ─────────────────────────────────────────────────────────────────

@click.command("generate")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--students", "num_students", default=12, help="Anzahl Kinder.")
@click.option("--subjects", "num_subjects", default=5, help="Anzahl Fächer (max. 6).")
@click.option("--lessons", "lessons_per_subject", default=24, help="Lektionen pro Fach.")
@_data_option
def cmd_generate(seed: int, num_students: int, num_subjects: int,
                 lessons_per_subject: int, data_path: Optional[str]):
    """Erzeugt einen Demo-Notensatz und speichert ihn als JSON."""
    mgr, config = _load_config_or_abort()
    from data.fake_data import FakeGradebookGenerator

    console.print("[bold]Demo-Notensatz wird generiert...[/bold]")
    gradebook = FakeGradebookGenerator(config, seed=seed).generate(
        num_students=num_students,
        num_subjects=num_subjects,
        lessons_per_subject=lessons_per_subject,
    )
    console.print(f"\n[dim]{gradebook.summary()}[/dim]")

    out_path = Path(data_path or config.data.gradebook_path)
    gradebook.save_json(out_path)
    console.print(f"[green]✓[/green] Gespeichert: {out_path}")


# ─── VALIDATE ─────────────────────────────────────────────────────────────────

@click.command("validate")
@_user_option
@_data_option
def cmd_validate(user_id: Optional[str], data_path: Optional[str]):
    """Prüft den Notensatz auf Inkonsistenzen."""
    from analysis.integrity import IntegrityChecker

    mgr, config = _load_config_or_abort()
    _, gradebook = _load_gradebook_or_abort(config, data_path, user_id)

    console.print(f"\n{gradebook.summary()}\n")
    report = IntegrityChecker(config.school_year.grading_periods).check(gradebook)
    report.print_rich()

    sys.exit(0 if report.is_valid else 1)


# ─── PERIODS ──────────────────────────────────────────────────────────────────

@click.command("periods")
@_user_option
@_data_option
def cmd_periods(user_id: Optional[str], data_path: Optional[str]):
    """Zeigt die Notenperioden und die Lektionsverteilung je Fach."""
    from engine.periods import (
        current_reporting_period, lessons_by_period, reporting_period_options,
    )

    mgr, config = _load_config_or_abort()
    sy = config.school_year
    current = current_reporting_period(sy.first_day_of_school, sy.grading_periods)

    table = Table(title="Notenperioden", box=box.ROUNDED)
    table.add_column("Token")
    table.add_column("Bezeichnung")
    for token, label in reporting_period_options(sy.grading_periods):
        marker = " [green]◀ aktuell[/green]" if token == current else ""
        table.add_row(token, label + marker)
    console.print(table)

    _, gradebook = _load_gradebook_or_abort(config, data_path, user_id)
    dist = Table(title="Lektionen pro Periode", box=box.ROUNDED)
    dist.add_column("Fach", style="bold")
    for i in range(1, sy.grading_periods + 1):
        dist.add_column(str(i), justify="right")
    for subject in sorted(gradebook.subjects, key=lambda s: s.name):
        per = lessons_by_period(subject, gradebook.markers)
        dist.add_row(subject.name, *[
            str(len(per.get(i, []))) for i in range(1, sy.grading_periods + 1)
        ])
    console.print(dist)


# ─── REPORT ───────────────────────────────────────────────────────────────────

@click.command("report")
@click.argument("student")
@_period_option
@_user_option
@_data_option
def cmd_report(student: str, period: Optional[str], user_id: Optional[str],
               data_path: Optional[str]):
    """Zeigt das Zeugnis eines Kindes (ID oder Name)."""
    from engine.aggregation import generate_report_card
    from engine.letter_grades import get_letter_grade
    from engine.periods import format_report_period, lesson_ids_for_period
    from export.helpers import format_average

    mgr, config = _load_config_or_abort()
    _, gb = _load_gradebook_or_abort(config, data_path, user_id)
    kid = _find_student_or_abort(gb, student)
    token = _resolve_period(config, period)

    card = generate_report_card(
        kid.id, token, gb.comments, gb.students, gb.subjects, gb.grades,
        categories=gb.categories,
        lesson_ids=lesson_ids_for_period(gb.subjects, gb.markers, token),
    )
    if card is None:
        console.print(f"[yellow]Keine Noten für {kid.name} in dieser Periode.[/yellow]")
        return

    dec = config.report.decimals
    table = Table(
        title=f"{kid.name} – Reporting Period {format_report_period(card.period)}",
        box=box.ROUNDED,
    )
    table.add_column("Fach", style="bold")
    table.add_column("Noten", justify="right")
    table.add_column("Ø %", justify="right")
    if config.report.show_letter_grades:
        table.add_column("Note")
    for r in card.subjects:
        row = [r.subject_name, str(len(r.grades)), format_average(r.average, dec)]
        if config.report.show_letter_grades:
            row.append(r.letter_grade)
        table.add_row(*row)
    overall = ["[bold]Gesamt[/bold]", "", f"[bold]{format_average(card.overall_gpa, dec)}[/bold]"]
    if config.report.show_letter_grades:
        overall.append(f"[bold]{get_letter_grade(card.overall_gpa)}[/bold]")
    table.add_row(*overall)
    console.print(table)
    if card.comments and config.report.include_comments:
        console.print(Panel(card.comments, title="Kommentar", border_style="dim"))


# ─── BREAKDOWN ────────────────────────────────────────────────────────────────

@click.command("breakdown")
@click.argument("student")
@click.argument("subject")
@_period_option
@_user_option
@_data_option
def cmd_breakdown(student: str, subject: str, period: Optional[str],
                  user_id: Optional[str], data_path: Optional[str]):
    """Zeigt den Berechnungsweg eines Fach-Durchschnitts."""
    from engine.aggregation import get_subject_calculation_breakdown
    from engine.periods import lesson_ids_for_period

    mgr, config = _load_config_or_abort()
    _, gb = _load_gradebook_or_abort(config, data_path, user_id)
    kid = _find_student_or_abort(gb, student)
    subj = _find_subject_or_abort(gb, subject)
    token = _resolve_period(config, period)

    bd = get_subject_calculation_breakdown(
        kid.id, subj.id, gb.subjects, gb.grades,
        categories=gb.categories,
        lesson_ids=lesson_ids_for_period(gb.subjects, gb.markers, token),
    )
    if bd is None:
        console.print(f"[yellow]Keine Noten für {kid.name} in {subj.name}.[/yellow]")
        return

    dec = config.report.decimals
    table = Table(title=f"{kid.name} – {bd.subject_name}", box=box.ROUNDED)
    table.add_column("Kategorie", style="bold")
    table.add_column("Noten", justify="right")
    table.add_column("Schnitt", justify="right")
    table.add_column("Gewicht", justify="right")
    table.add_column("Beitrag", justify="right")
    for c in bd.categories:
        table.add_row(
            c.category_name, str(len(c.grades)), f"{c.average:.{dec}f}",
            f"{c.weight:.2f}", f"{c.weighted_value:.{dec}f}",
        )
    console.print(table)
    console.print(
        f"Summe Gewichte: {bd.total_weight:.2f}  →  "
        f"[bold]{bd.final_average:.{dec}f} %[/bold] ({bd.letter_grade})"
    )


# ─── GRADE ────────────────────────────────────────────────────────────────────

@click.command("grade")
@click.argument("student")
@click.argument("lesson")
@click.argument("value")
@click.option("--mode", type=click.Choice(["percentage", "errors"]), default="percentage",
              help="Zahlen als Prozent oder als Fehlerzahl interpretieren.")
@click.option("--save", is_flag=True, default=False, help="Note im Notensatz speichern.")
@_user_option
@_data_option
def cmd_grade(student: str, lesson: str, value: str, mode: str, save: bool,
              user_id: Optional[str], data_path: Optional[str]):
    """Gibt eine Note ein (Prozent, Buchstabe, Bruch oder S) und zeigt die Vorschau."""
    from engine.aggregation import compute_subject_average
    from engine.entry import (
        GradeEntryError, build_grade, format_percentage, parse_grade_input,
        preview_subject_average, upsert_grade,
    )
    from models.gradebook import Gradebook

    mgr, config = _load_config_or_abort()
    path, gb = _load_gradebook_or_abort(config, data_path, user_id)
    kid = _find_student_or_abort(gb, student)
    found = next(
        ((s, l) for s in gb.subjects for l in s.lessons if lesson in (l.id, l.name)),
        None,
    )
    if found is None:
        console.print(f"[red]Lektion nicht gefunden: {lesson}[/red]")
        sys.exit(1)
    subj, les = found

    try:
        entry = parse_grade_input(value, les.max_points, mode)
    except GradeEntryError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    existing = next(
        (g for g in gb.grades if g.student_id == kid.id and g.lesson_id == les.id), None
    )
    pending = build_grade(
        entry, existing.id if existing else str(uuid.uuid4()), kid.id, les.id,
        subject_id=subj.id,
    )
    before = compute_subject_average(
        kid.id, subj.id, gb.subjects, gb.grades, categories=gb.categories,
    )
    after = preview_subject_average(
        kid.id, subj.id, gb.subjects, gb.grades, pending, categories=gb.categories,
    )

    shown = "ausgelassen" if pending.skipped else f"{format_percentage(entry.percentage)} %"
    console.print(f"{kid.name} · {subj.name} · {les.name}: [bold]{shown}[/bold]")
    if before is not None:
        console.print(f"  vorher: {before.average:.1f} % ({before.letter_grade})")
    if after is not None:
        console.print(f"  [bold]neu: {after.average:.1f} % ({after.letter_grade})[/bold]")

    if save:
        full = Gradebook.load_json(path)
        full = full.model_copy(update={"grades": upsert_grade(full.grades, pending)})
        full.save_json(path)
        console.print(f"[green]✓[/green] Gespeichert: {path}")


# ─── DASHBOARD ────────────────────────────────────────────────────────────────

@click.command("dashboard")
@_period_option
@_user_option
@_data_option
def cmd_dashboard(period: Optional[str], user_id: Optional[str], data_path: Optional[str]):
    """Zeigt die Übersicht aller Kinder und Fächer."""
    from analysis.dashboard import DashboardAnalyzer
    from engine.periods import lesson_ids_for_period

    mgr, config = _load_config_or_abort()
    _, gb = _load_gradebook_or_abort(config, data_path, user_id)
    token = _resolve_period(config, period)
    summary = DashboardAnalyzer().analyze(
        gb, lesson_ids=lesson_ids_for_period(gb.subjects, gb.markers, token),
    )
    summary.print_rich(config.report.decimals)


# ─── EXPORT ───────────────────────────────────────────────────────────────────

@click.command("export")
@click.option("--format", "fmt", type=click.Choice(["all", "excel", "pdf"]),
              default="all", help="Ausgabeformat.")
@click.option("--output-dir", default=None, help="Zielverzeichnis (Standard: aus Config).")
@_period_option
@_user_option
@_data_option
def cmd_export(fmt: str, output_dir: Optional[str], period: Optional[str],
               user_id: Optional[str], data_path: Optional[str]):
    """Exportiert Zeugnisse als Excel und/oder PDF."""
    from export import ExcelExporter, PdfExporter

    mgr, config = _load_config_or_abort()
    _, gb = _load_gradebook_or_abort(config, data_path, user_id)
    token = _resolve_period(config, period)
    out_dir = Path(output_dir or config.report.output_dir)
    stem = f"zeugnisse_{gb.user_id}_{token}"

    if fmt in ("all", "excel"):
        xlsx = out_dir / f"{stem}.xlsx"
        ExcelExporter(gb, config).export(xlsx, token)
        console.print(f"[green]✓[/green] Excel gespeichert: {xlsx}")
    if fmt in ("all", "pdf"):
        pdf = out_dir / f"{stem}.pdf"
        pages = PdfExporter(gb, config).export_report_cards(pdf, token)
        console.print(f"[green]✓[/green] PDF gespeichert: {pdf} ({pages} Zeugnisse)")


# ─── MIGRATE ──────────────────────────────────────────────────────────────────

@click.command("migrate")
@click.argument("dump", type=click.Path(exists=True, path_type=Path))
@click.option("--output-dir", default="output",
              help="Zielverzeichnis für gradebook_<konto>.json.")
def cmd_migrate(dump: Path, output_dir: str):
    """Migriert einen Key-Value-Dump in einen Notensatz pro Konto."""
    from data.kv_migration import MigrationError, load_kv_dump, migrate_kv_dump

    mgr, config = _load_config_or_abort()
    console.print(f"[bold]Migriere:[/bold] {dump}")
    try:
        gradebooks, report = migrate_kv_dump(load_kv_dump(dump))
    except MigrationError as e:
        console.print(f"[red bold]Migration fehlgeschlagen:[/red bold]\n{e}")
        sys.exit(1)

    report.print_rich()
    for user, gradebook in gradebooks.items():
        out_path = Path(output_dir) / f"gradebook_{user}.json"
        gradebook.save_json(out_path)
        console.print(f"[green]✓[/green] {user}: {out_path}")


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
def cli():
    """GradeFlow – gewichtete Notenberechnung und Zeugnisse.

    Starten Sie mit: python main.py init
    """


def main():
    """Einstiegspunkt. Legt beim ersten Aufruf ohne Argumente die Konfiguration an."""
    from config.manager import ConfigManager
    mgr = ConfigManager()

    if len(sys.argv) == 1 and mgr.first_run_check():
        console.print(Panel(
            "[bold]Willkommen bei GradeFlow![/bold]\n\n"
            "Keine Konfiguration gefunden.\n"
            "Die Standard-Konfiguration wird jetzt angelegt...",
            border_style="cyan",
        ))
        sys.argv.append("init")

    cli()


# Befehle registrieren
cli.add_command(cmd_init)
cli.add_command(cmd_config)
cli.add_command(cmd_generate)
cli.add_command(cmd_validate)
cli.add_command(cmd_periods)
cli.add_command(cmd_report)
cli.add_command(cmd_breakdown)
cli.add_command(cmd_grade)
cli.add_command(cmd_dashboard)
cli.add_command(cmd_export)
cli.add_command(cmd_migrate)


if __name__ == "__main__":
    main()
