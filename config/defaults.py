from config.schema import GradeFlowConfig, SchoolYearConfig
from models.category import GradeCategory


# Standard-Kategorien eines neuen Kontos: Lesson ist Default,
# Project und Quiz sind angelegt, aber inaktiv.
DEFAULT_CATEGORIES: list[dict] = [
    {"id": "lesson",  "name": "Lesson",  "is_default": True,  "is_active": True},
    {"id": "test",    "name": "Test",    "is_default": False, "is_active": True},
    {"id": "project", "name": "Project", "is_default": False, "is_active": False},
    {"id": "quiz",    "name": "Quiz",    "is_default": False, "is_active": False},
]

# Standard-Gewichte neuer Fächer (nur aktive Kategorien, Summe 1.0)
DEFAULT_WEIGHTS: dict[str, float] = {"lesson": 0.34, "test": 0.66}

# Standard-Lerngruppen
DEFAULT_GROUPS: list[str] = [f"Grade {i}" for i in range(1, 11)]


def default_categories() -> list[GradeCategory]:
    """Standard-Kategorien mit fortlaufender Sortierung."""
    return [
        GradeCategory(sort_order=i, **c)
        for i, c in enumerate(DEFAULT_CATEGORIES)
    ]


def default_config() -> GradeFlowConfig:
    """Standard-Konfiguration: sechs Notenperioden, Schulstart offen."""
    return GradeFlowConfig(
        school_name="GradeFlow Academy",
        school_year=SchoolYearConfig(grading_periods=6),
    )
