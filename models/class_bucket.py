"""Datenmodell für eine Klasse in Bildung (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel, Field


class ClassBucket(BaseModel):
    """Eine Klasse während der Optimierung (eine pro Lehrkraft)."""

    id: str                           # "cl-4-k1" oder "new-1" (noch nicht gespeichert)
    name: str = ""                    # "Klasse 1", "4a"
    teacher_id: Optional[str] = None
    student_ids: list[str] = []
    capacity: int = Field(30, ge=1)   # Richtwert, wird nicht erzwungen
    room_number: Optional[str] = None
    is_new: bool = False              # True = im Lauf erzeugt, noch nicht gespeichert

    @property
    def size(self) -> int:
        return len(self.student_ids)

    @property
    def is_over_capacity(self) -> bool:
        return self.size > self.capacity

    def emptied(self) -> "ClassBucket":
        """Frische Kopie ohne Schüler (Startzustand eines Laufs)."""
        return self.model_copy(update={"student_ids": []})
