"""Datenmodell für eine Lehrkraft (Pydantic v2)."""

from pydantic import BaseModel, field_validator


class Teacher(BaseModel):
    """Lehrkraft, die eine Klasse der Klassenliste übernimmt."""

    id: str
    name: str = ""
    email: str = ""

    @field_validator("id")
    @classmethod
    def _strip_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Lehrer-ID darf nicht leer sein")
        return v
