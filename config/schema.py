from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# ─── SCHULJAHR & NOTENPERIODEN ───

class SchoolYearConfig(BaseModel):
    """Schuljahr und Notenperioden."""
    # Erster Schultag, Grundlage für die automatische Periodenwahl
    first_day_of_school: Optional[date] = Field(None,
        description="Erster Schultag (YYYY-MM-DD)")
    # Anzahl Notenperioden pro Schuljahr: 3 (Trimester), 4 (Quartale), 6 (Six Weeks)
    grading_periods: int = Field(6, ge=1, le=12,
        description="Notenperioden pro Schuljahr")

    @field_validator("grading_periods")
    @classmethod
    def _known_scheme(cls, v: int) -> int:
        if v not in (1, 3, 4, 6):
            raise ValueError(
                f"grading_periods={v} wird nicht unterstützt (erlaubt: 1, 3, 4, 6)")
        return v


# ─── ZEUGNIS ───

class ReportConfig(BaseModel):
    """Darstellung von Zeugnissen und Exporten."""
    # Nachkommastellen bei Durchschnitten in Tabellen und Exporten
    decimals: int = Field(1, ge=0, le=3,
        description="Nachkommastellen bei Durchschnitten")
    # Buchstabennote neben dem Prozentwert anzeigen
    show_letter_grades: bool = Field(True,
        description="Buchstabennote anzeigen")
    # Kommentarfeld auf dem PDF-Zeugnis drucken
    include_comments: bool = Field(True,
        description="Kommentare auf dem Zeugnis drucken")
    # Ausgabeverzeichnis für PDF/Excel
    output_dir: str = Field("output",
        description="Ausgabeverzeichnis für Exporte")


# ─── DATEN ───

class DataConfig(BaseModel):
    """Speicherort des Notensatzes."""
    # Pfad zur Gradebook-JSON-Datei
    gradebook_path: str = Field("output/gradebook.json",
        description="Pfad zur Gradebook-JSON-Datei")
    # Standard-Konto, falls --user nicht angegeben wird
    default_user_id: Optional[str] = Field(None,
        description="Standard-Konto für CLI-Befehle")


# ─── PROTOKOLL ───

class LoggingConfig(BaseModel):
    """Protokollierung."""
    # Log-Level: DEBUG, INFO, WARNING, ERROR
    level: str = Field("WARNING",
        description="Log-Level (DEBUG/INFO/WARNING/ERROR)")

    @field_validator("level")
    @classmethod
    def _valid_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"Unbekanntes Log-Level: {v}")
        return v


# ─── GESAMT-CONFIG ───

class GradeFlowConfig(BaseModel):
    """Gesamtkonfiguration von GradeFlow."""
    # Name der Schule (Kopfzeile der Zeugnisse)
    school_name: str = Field("GradeFlow Academy",
        description="Name der Schule")
    # Name der Lehrkraft (Unterschriftszeile)
    teacher_name: str = Field("",
        description="Name der Lehrkraft")
    # Schuljahr und Notenperioden
    school_year: SchoolYearConfig = Field(default_factory=SchoolYearConfig)
    # Zeugnis-Darstellung
    report: ReportConfig = Field(default_factory=ReportConfig)
    # Speicherort der Daten
    data: DataConfig = Field(default_factory=DataConfig)
    # Protokollierung
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
