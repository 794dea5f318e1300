"""SchoolData: Vollständiger Datensatz (Klassenlisten, Umfragen, Elternwünsche)."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from models.class_list import ClassList
from models.survey import ParentRequest, TeacherSurvey


class SchoolData(BaseModel):
    """Alle Daten, die eine Optimierung braucht, in einer Datei."""

    school_name: str = ""
    class_lists: list[ClassList] = []
    surveys: list[TeacherSurvey] = []
    requests: list[ParentRequest] = []
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    data_version: str = "1.0"

    def get_class_list(self, class_list_id: str) -> Optional[ClassList]:
        return next((cl for cl in self.class_lists if cl.id == class_list_id), None)

    def summary(self) -> str:
        """Mehrzeilige Kurzfassung für die CLI."""
        n_students = sum(len(cl.students) for cl in self.class_lists)
        n_approved = sum(1 for r in self.requests if r.is_approved)
        lines = [
            f"Schule: {self.school_name}" if self.school_name else "",
            f"Klassenlisten: {len(self.class_lists)}",
            f"Schüler gesamt: {n_students}",
            f"Lehrer-Umfragen: {len(self.surveys)}",
            f"Elternwünsche: {len(self.requests)} ({n_approved} genehmigt)",
        ]
        return "\n".join(l for l in lines if l)

    # ─── Persistenz ────────────────────────────────────────────────────────

    def stamped(self) -> "SchoolData":
        """Kopie mit aktualisierten Zeitstempeln."""
        now = datetime.now(timezone.utc)
        return self.model_copy(update={
            "modified_at": now,
            "created_at": self.created_at or now,
        })

    def save_json(self, path: Path) -> None:
        """Schreibt den Datensatz (mit neuem Zeitstempel) als JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.stamped().model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "SchoolData":
        """Gegenstück zu save_json."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Datendatei fehlt: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())
