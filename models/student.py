"""Datenmodell für eine Schülerin / einen Schüler (Pydantic v2)."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from config.schema import _norm_key


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"
    PREFER_NOT_TO_SAY = "PreferNotToSay"


class AcademicLevel(str, Enum):
    ADVANCED = "Advanced"
    PROFICIENT = "Proficient"
    BASIC = "Basic"
    BELOW_BASIC = "BelowBasic"


class BehaviorLevel(str, Enum):
    """Förderbedarf im Verhalten (High = hoher Bedarf, keine Bewertung)."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RequestKind(str, Enum):
    TEACHER = "teacher"
    CLASSMATE = "classmate"
    SEPARATION = "separation"


def normalize_enum(value, enum_cls):
    """Bildet Schreibvarianten auf den kanonischen Enum-Wert ab.

    'Below Basic', 'below_basic', 'BELOWBASIC' → AcademicLevel.BELOW_BASIC
    Unbekannte Werte werden unverändert durchgereicht (Pydantic meldet den Fehler).
    """
    if isinstance(value, enum_cls) or not isinstance(value, str):
        return value
    key = _norm_key(value)
    for member in enum_cls:
        if _norm_key(member.value) == key or _norm_key(member.name) == key:
            return member
    return value


class PlacementRequest(BaseModel):
    """Ein genehmigter Elternwunsch, als Markierung am Schüler."""

    kind: RequestKind
    target_teacher_id: Optional[str] = None
    target_student_id: Optional[str] = None

    @model_validator(mode="after")
    def _check_target(self):
        if self.kind == RequestKind.TEACHER and not self.target_teacher_id:
            raise ValueError("Lehrkraft-Wunsch ohne target_teacher_id")
        if self.kind == RequestKind.CLASSMATE and not self.target_student_id:
            raise ValueError("Mitschüler-Wunsch ohne target_student_id")
        if self.kind == RequestKind.SEPARATION:
            raise ValueError("Trennungswünsche werden bei der Platzierung nicht geführt")
        return self


class Student(BaseModel):
    """Repräsentiert ein Kind der Klassenliste.

    teacher_compatibility und parent_requests sind abgeleitete Felder; sie
    werden pro Lauf vom CompatibilityScorer befüllt und nicht gespeichert.
    """

    id: str
    first_name: str = ""
    last_name: str = ""
    gender: Gender
    academic_level: AcademicLevel = AcademicLevel.PROFICIENT
    behavior_level: BehaviorLevel = BehaviorLevel.LOW
    special_needs: bool = False
    notes: str = ""
    # Abgeleitet, wird nicht mit serialisiert
    teacher_compatibility: dict[str, int] = Field(default_factory=dict, exclude=True)
    parent_requests: list[PlacementRequest] = Field(default_factory=list, exclude=True)

    @field_validator("id")
    @classmethod
    def _strip_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Schüler-ID darf nicht leer sein")
        return v

    @field_validator("gender", mode="before")
    @classmethod
    def _norm_gender(cls, v):
        return normalize_enum(v, Gender)

    @field_validator("academic_level", mode="before")
    @classmethod
    def _norm_academic(cls, v):
        return normalize_enum(v, AcademicLevel)

    @field_validator("behavior_level", mode="before")
    @classmethod
    def _norm_behavior(cls, v):
        return normalize_enum(v, BehaviorLevel)

    @field_validator("teacher_compatibility")
    @classmethod
    def _check_compat(cls, v: dict[str, int]) -> dict[str, int]:
        for teacher_id, score in v.items():
            if score not in (-1, 0, 1):
                raise ValueError(f"Kompatibilität für {teacher_id} muss -1, 0 oder 1 sein")
        return v

    @property
    def name(self) -> str:
        return f"{self.last_name}, {self.first_name}".strip(", ")

    @property
    def gender_category(self) -> str:
        """Pool-Schlüssel: male / female / other (Other + PreferNotToSay)."""
        if self.gender == Gender.MALE:
            return "male"
        if self.gender == Gender.FEMALE:
            return "female"
        return "other"

    @property
    def has_requests(self) -> bool:
        return bool(self.parent_requests)
