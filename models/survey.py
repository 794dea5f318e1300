"""Lehrer-Umfrage und Elternwünsche (Pydantic v2)."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

from models.student import RequestKind, normalize_enum


class SurveyStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    REVIEWED = "reviewed"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class TeacherSurvey(BaseModel):
    """Einschätzung einer Lehrkraft zu den Kindern einer Klassenliste."""

    teacher_id: str
    class_list_id: str
    status: SurveyStatus = SurveyStatus.SUBMITTED
    preferred_students: list[str] = []
    challenging_students: list[str] = []
    general_notes: str = ""

    @property
    def is_submitted(self) -> bool:
        return self.status != SurveyStatus.DRAFT


class ParentRequest(BaseModel):
    """Platzierungswunsch der Eltern (wie im Wunsch-Verzeichnis gespeichert).

    Das Modell ist absichtlich tolerant: fehlende Zielangaben werden erst vom
    CompatibilityScorer als "kein Wunsch" aussortiert.
    """

    id: str
    student_id: str
    class_list_id: str
    kind: RequestKind
    target_teacher_id: Optional[str] = None
    target_student_id: Optional[str] = None
    reason: str = ""
    status: RequestStatus = RequestStatus.PENDING

    @field_validator("kind", mode="before")
    @classmethod
    def _norm_kind(cls, v):
        return normalize_enum(v, RequestKind)

    @field_validator("status", mode="before")
    @classmethod
    def _norm_status(cls, v):
        return normalize_enum(v, RequestStatus)

    @property
    def is_approved(self) -> bool:
        return self.status == RequestStatus.APPROVED
