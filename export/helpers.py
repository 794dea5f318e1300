"""Gemeinsame Hilfsfunktionen für den Export."""

from collections import Counter
from datetime import date

from config.defaults import ACADEMIC_ORDER, BEHAVIOR_ORDER, GENDER_CATEGORIES
from models.student import Student

# ─── Farbpalette (RRGGBB, ohne #) ─────────────────────────────────────────────

COLORS: dict[str, str] = {
    "header":  "4472C4",
    "good":    "CCFFCC",
    "medium":  "FFFFCC",
    "bad":     "FFCCCC",
    "special": "FFE4B3",
    "new":     "E0E0E0",
}

GENDER_LABELS = {"male": "m", "female": "w", "other": "d/k.A."}


def today_str() -> str:
    """Gibt das heutige Datum als DD.MM.YYYY zurück."""
    return date.today().strftime("%d.%m.%Y")


def score_color(score: int) -> str:
    """Ampel für einen Balance-Score (0–100)."""
    if score >= 80:
        return COLORS["good"]
    if score >= 60:
        return COLORS["medium"]
    return COLORS["bad"]


def class_composition(students: list[Student]) -> dict[str, int]:
    """Zählt eine Klasse nach Geschlecht, Leistung, Verhalten und Förderbedarf.

    Schlüssel in fester Reihenfolge, damit Exporttabellen stabile Spalten haben.
    """
    gender = Counter(s.gender_category for s in students)
    academic = Counter(s.academic_level for s in students)
    behavior = Counter(s.behavior_level for s in students)
    result: dict[str, int] = {}
    for category in GENDER_CATEGORIES:
        result[GENDER_LABELS[category]] = gender[category]
    for level in ACADEMIC_ORDER:
        result[level.value] = academic[level]
    for level in BEHAVIOR_ORDER:
        result[f"Verhalten {level.value}"] = behavior[level]
    result["Förderbedarf"] = sum(1 for s in students if s.special_needs)
    return result
