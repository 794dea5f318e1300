from pydantic import BaseModel, Field, field_validator
from enum import Enum
import re


def _norm_key(value: str) -> str:
    """'Below Basic' / 'below_basic' / 'BELOW-BASIC' → 'belowbasic'."""
    return re.sub(r"[\s_\-]", "", value).lower()


class Factor(str, Enum):
    """Ausgleichsdimension, pro Lauf einzeln zuschaltbar."""
    GENDER = "gender"
    ACADEMIC_LEVEL = "academicLevel"
    BEHAVIOR_LEVEL = "behaviorLevel"
    SPECIAL_NEEDS = "specialNeeds"
    TEACHER_COMPATIBILITY = "teacherCompatibility"
    PARENT_REQUESTS = "parentRequests"

    @classmethod
    def parse(cls, raw: str) -> "Factor":
        """Akzeptiert camelCase, snake_case und Kleinschreibung."""
        key = _norm_key(raw)
        for member in cls:
            if _norm_key(member.value) == key:
                return member
        raise ValueError(
            f"Unbekannter Faktor '{raw}'. Erlaubt: {', '.join(f.value for f in cls)}"
        )


class Strategy(str, Enum):
    """Gewichtungsprofil für die Auswertung."""
    BALANCED = "balanced"
    ACADEMIC = "academic"
    BEHAVIOR = "behavior"
    REQUESTS = "requests"


class StrategyWeights(BaseModel):
    """Faktor-Gewichte einer Strategie (nur für die Auswertung relevant)."""
    gender: float = 1.0
    academic_level: float = 1.0
    behavior_level: float = 1.0
    special_needs: float = 1.0
    parent_requests: float = 1.0
    teacher_compatibility: float = 1.0

    def weight_for(self, factor: Factor) -> float:
        return {
            Factor.GENDER: self.gender,
            Factor.ACADEMIC_LEVEL: self.academic_level,
            Factor.BEHAVIOR_LEVEL: self.behavior_level,
            Factor.SPECIAL_NEEDS: self.special_needs,
            Factor.PARENT_REQUESTS: self.parent_requests,
            Factor.TEACHER_COMPATIBILITY: self.teacher_compatibility,
        }[factor]


# ─── OPTIMIERUNG ───

class OptimizerConfig(BaseModel):
    """Standardwerte für Optimierungsläufe."""
    # Faktoren, die ohne explizite Angabe verwendet werden
    default_factors: list[Factor] = Field(
        default_factory=lambda: list(Factor),
        description="Standard-Faktoren eines Laufs")
    # Strategie, die ohne explizite Angabe verwendet wird
    default_strategy: Strategy = Field(Strategy.BALANCED,
        description="Standard-Strategie")
    # Richtwert für die Klassengröße (wird NICHT hart erzwungen)
    class_capacity: int = Field(30, ge=1, le=60,
        description="Richtwert Klassengröße")
    # Größendifferenz (max - min), ab der Phase 7 umverteilt
    rebalance_threshold: int = Field(2, ge=0,
        description="Größendifferenz, ab der umverteilt wird")
    # Bezeichnung neu angelegter Klassen; {n} = laufende Nummer
    new_class_label: str = Field("Klasse {n}",
        description="Bezeichnung neu angelegter Klassen")

    @field_validator("default_factors", mode="before")
    @classmethod
    def _parse_factors(cls, v):
        if isinstance(v, (list, tuple, set)):
            return [f if isinstance(f, Factor) else Factor.parse(str(f)) for f in v]
        return v

    @field_validator("new_class_label")
    @classmethod
    def _check_label(cls, v: str) -> str:
        if "{n}" not in v:
            raise ValueError("new_class_label muss den Platzhalter {n} enthalten")
        return v


# ─── SPEICHER ───

class StorageConfig(BaseModel):
    """Ablage des Datensatzes."""
    # JSON-Datei mit Klassenlisten, Lehrer-Umfragen und Elternwünschen
    data_path: str = Field("output/class_lists.json",
        description="Pfad zur JSON-Datendatei")


# ─── LOGGING ───

class LoggingConfig(BaseModel):
    """Log-Ausgabe der CLI."""
    level: str = Field("INFO", description="DEBUG, INFO, WARNING oder ERROR")

    @field_validator("level")
    @classmethod
    def _check_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"Ungültiges Log-Level: {v}")
        return v


# ─── GESAMT-CONFIG ───

class SchoolConfig(BaseModel):
    """Gesamtkonfiguration."""
    # Name der Schule
    school_name: str = Field("Muster-Grundschule",
        description="Name der Schule")
    # Optimierungs-Standardwerte
    optimizer: OptimizerConfig = Field(default_factory=OptimizerConfig)
    # Ablage des Datensatzes
    storage: StorageConfig = Field(default_factory=StorageConfig)
    # Log-Ausgabe
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
