"""GradeFlow-Konfiguration als kommentierte YAML-Datei (ruamel.yaml).

Die Datei wird beim Laden über das Pydantic-Schema validiert.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.schema import GradeFlowConfig, SchoolYearConfig

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── Kopf- und Abschnittskommentare ───

_YAML_HEADER = f"""\
# ============================================
# GradeFlow — Konfiguration
# Version: 1.0
# Stand: {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "school_year": (
        "Schuljahr & Notenperioden",
        "grading_periods: 3 = Trimester, 4 = Quartale, 6 = Six Weeks.\n"
        "Bei N Perioden sind pro Fach höchstens N-1 Marker erlaubt.",
    ),
    "report": (
        "Zeugnis",
        None,
    ),
    "data": (
        "Daten",
        "Jeder Befehl arbeitet im Kontext genau eines Kontos (--user).",
    ),
    "logging": (
        "Protokoll",
        None,
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "gradeflow.yaml"

    def first_run_check(self) -> bool:
        """True, solange noch keine Konfigurationsdatei angelegt wurde."""
        return not self.DEFAULT_CONFIG.exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> GradeFlowConfig:
        """Liest die YAML-Datei und validiert sie gegen GradeFlowConfig."""
        target = path or self.DEFAULT_CONFIG
        if not target.exists():
            raise FileNotFoundError(
                f"Keine Konfiguration unter {target}\n"
                f"Führen Sie 'python main.py init' aus, um GradeFlow einzurichten."
            )
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        try:
            return GradeFlowConfig.model_validate(dict(raw or {}))
        except ValueError as e:
            raise ValueError(
                f"Konfigurationsdatei ungültig: {target}\n"
                f"Pydantic-Fehler: {e}"
            ) from e

    def load_or_default(self, path: Optional[Path] = None) -> GradeFlowConfig:
        """Wie load(), aber Standardwerte statt Fehler, wenn die Datei fehlt."""
        target = path or self.DEFAULT_CONFIG
        if not target.exists():
            return GradeFlowConfig()
        return self.load(target)

    # ─── Speichern ───

    def save(self, config: GradeFlowConfig, path: Optional[Path] = None) -> None:
        """Schreibt die Konfiguration mit Kopf- und Abschnittskommentaren."""
        target = path or self.DEFAULT_CONFIG
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_YAML_HEADER + "\n")
            yaml.dump(data, f)

        console.print(f"[green]✓[/green] Konfiguration geschrieben: {target}")

    def _build_commented_yaml(self, config: GradeFlowConfig) -> CommentedMap:
        """CommentedMap mit Abschnittsüberschriften je Top-Level-Feld."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        if "report" in cm:
            report_map = CommentedMap(cm["report"])
            report_map.yaml_add_eol_comment("0–3", "decimals")
            cm["report"] = report_map

        return cm

    # ─── Interaktives Bearbeiten ───

    def edit_interactive(self, config: GradeFlowConfig) -> GradeFlowConfig:
        """Menü zum Bearbeiten; speichert beim Verlassen."""
        while True:
            console.print()
            console.print(Panel(
                "[bold]Konfiguration bearbeiten[/bold]",
                border_style="cyan",
            ))
            console.print("  [bold]1.[/bold] Schule & Lehrkraft")
            console.print("  [bold]2.[/bold] Schuljahr & Notenperioden")
            console.print("  [bold]3.[/bold] Standard-Konto")
            console.print("  [bold]0.[/bold] Speichern & Zurück")

            choice = Prompt.ask("\nAuswahl", default="0")

            if choice == "1":
                config = config.model_copy(update={
                    "school_name": Prompt.ask("Name der Schule",
                                              default=config.school_name),
                    "teacher_name": Prompt.ask("Name der Lehrkraft",
                                               default=config.teacher_name),
                })
            elif choice == "2":
                config = config.model_copy(
                    update={"school_year": self._edit_school_year(config.school_year)}
                )
            elif choice == "3":
                user = Prompt.ask("Konto-ID",
                                  default=config.data.default_user_id or "")
                data = config.data.model_copy(
                    update={"default_user_id": user or None}
                )
                config = config.model_copy(update={"data": data})
            elif choice == "0":
                self.save(config)
                break
            else:
                console.print("[yellow]Ungültige Auswahl.[/yellow]")

        return config

    def _edit_school_year(self, sy: SchoolYearConfig) -> SchoolYearConfig:
        """Notenperioden und ersten Schultag abfragen."""
        periods = IntPrompt.ask("Notenperioden (3/4/6)", default=sy.grading_periods)
        first_day = sy.first_day_of_school
        if Confirm.ask("Ersten Schultag ändern?", default=first_day is None):
            raw = Prompt.ask(
                "Erster Schultag (YYYY-MM-DD)",
                default=first_day.isoformat() if first_day else "",
            )
            first_day = date.fromisoformat(raw) if raw else None
        return SchoolYearConfig(grading_periods=periods, first_day_of_school=first_day)
