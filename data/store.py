"""Datenablage: Klassenlisten, Lehrer-Umfragen, Elternwünsche in einer JSON-Datei.

Stellt die vier Schnittstellen bereit, die der OptimizationService braucht.
Schreibvorgänge sind atomar (temporäre Datei + os.replace). Alle Klassenlisten
teilen sich eine Datei, daher läuft jedes Lesen-Ändern-Schreiben unter einer
storeweiten Sperre.
"""

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol

from models.class_bucket import ClassBucket
from models.class_list import ClassList
from models.school_data import SchoolData
from models.survey import ParentRequest, TeacherSurvey
from placement.errors import PersistenceError

logger = logging.getLogger(__name__)


# ─── Schnittstellen ──────────────────────────────────────────────────────────

class RosterRepository(Protocol):
    def get_class_list(self, class_list_id: str) -> Optional[ClassList]: ...


class SurveyRepository(Protocol):
    def find_surveys_for_class_list(self, class_list_id: str) -> list[TeacherSurvey]: ...


class RequestRepository(Protocol):
    def find_approved_requests(self, class_list_id: str) -> list[ParentRequest]: ...


class ClassPersistence(Protocol):
    def upsert_classes(
        self, class_list_id: str, buckets: list[ClassBucket]
    ) -> list[ClassBucket]: ...


# ─── Implementierung ─────────────────────────────────────────────────────────

class ClassListStore:
    """SchoolData im Speicher, optional an eine JSON-Datei gebunden.

    Verwendung:
        store = ClassListStore.open(Path("output/class_lists.json"))
        service = OptimizationService(store, store, store, store)
    """

    def __init__(self, data: Optional[SchoolData] = None, path: Optional[Path] = None) -> None:
        self._data = data or SchoolData()
        self.path = Path(path) if path is not None else None
        self._lock = threading.RLock()

    @classmethod
    def open(cls, path: Path) -> "ClassListStore":
        """Lädt die Datei, falls vorhanden; sonst leerer Datensatz."""
        path = Path(path)
        data = SchoolData.load_json(path) if path.exists() else SchoolData()
        return cls(data, path)

    @property
    def data(self) -> SchoolData:
        return self._data

    # ─── Lesen ───────────────────────────────────────────────────────────────

    def get_class_list(self, class_list_id: str) -> Optional[ClassList]:
        class_list = self._data.get_class_list(class_list_id)
        return class_list.model_copy(deep=True) if class_list is not None else None

    def find_surveys_for_class_list(self, class_list_id: str) -> list[TeacherSurvey]:
        return [s.model_copy() for s in self._data.surveys if s.class_list_id == class_list_id]

    def find_approved_requests(self, class_list_id: str) -> list[ParentRequest]:
        return [
            r.model_copy() for r in self._data.requests
            if r.class_list_id == class_list_id and r.is_approved
        ]

    def list_class_lists(self) -> list[ClassList]:
        return list(self._data.class_lists)

    # ─── Schreiben ───────────────────────────────────────────────────────────

    def upsert_classes(
        self, class_list_id: str, buckets: list[ClassBucket]
    ) -> list[ClassBucket]:
        """Ersetzt die Klassen einer Klassenliste als Ganzes.

        Neue Klassen (is_new) erhalten eine dauerhafte ID `<liste>-k<n>`,
        vorhandene werden in ihrer Mitgliedschaft ersetzt. Entweder wird alles
        übernommen oder nichts.
        """
        with self._lock:
            current = self._data.get_class_list(class_list_id)
            if current is None:
                raise PersistenceError(f"Klassenliste {class_list_id} existiert nicht (mehr).")

            existing = {c.id: c for c in current.classes}
            next_number = len(current.classes) + 1
            saved: list[ClassBucket] = []
            for bucket in buckets:
                if bucket.is_new:
                    new_id = f"{class_list_id}-k{next_number}"
                    while new_id in existing:
                        next_number += 1
                        new_id = f"{class_list_id}-k{next_number}"
                    next_number += 1
                    saved.append(bucket.model_copy(update={"id": new_id, "is_new": False}))
                elif bucket.id in existing:
                    saved.append(existing[bucket.id].model_copy(
                        update={"student_ids": list(bucket.student_ids)}))
                else:
                    raise PersistenceError(
                        f"Klasse {bucket.id} gehört nicht zu Klassenliste {class_list_id}.")

            saved_ids = {b.id for b in saved}
            untouched = [c for c in current.classes if c.id not in saved_ids]
            updated_list = current.model_copy(update={"classes": saved + untouched})
            updated = self._data.model_copy(update={
                "class_lists": [
                    updated_list if cl.id == class_list_id else cl
                    for cl in self._data.class_lists
                ],
            }).stamped()

            if self.path is not None:
                try:
                    self._write(updated)
                except OSError as e:
                    raise PersistenceError(f"Speichern fehlgeschlagen: {e}") from e
            self._data = updated
            logger.info(f"{len(saved)} Klassen für {class_list_id} gespeichert")
            return [b.model_copy() for b in saved]

    def _write(self, data: SchoolData) -> None:
        """Schreibt atomar: erst temporäre Datei, dann Austausch."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.stem}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data.model_dump_json(indent=2))
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def merge(self, imported: SchoolData) -> list[str]:
        """Übernimmt Klassenlisten aus einem Import oder einer Generierung.

        Gleichnamige Klassenlisten werden samt Umfragen und Wünschen ersetzt.
        Gibt die IDs der ersetzten Listen zurück; gespeichert wird erst mit save().
        """
        incoming = {cl.id for cl in imported.class_lists}
        with self._lock:
            current = self._data
            replaced = [cl.id for cl in current.class_lists if cl.id in incoming]
            self._data = current.model_copy(update={
                "school_name": current.school_name or imported.school_name,
                "class_lists": [
                    cl for cl in current.class_lists if cl.id not in incoming
                ] + list(imported.class_lists),
                "surveys": [
                    s for s in current.surveys if s.class_list_id not in incoming
                ] + list(imported.surveys),
                "requests": [
                    r for r in current.requests if r.class_list_id not in incoming
                ] + list(imported.requests),
            })
        if replaced:
            logger.info(f"Klassenlisten ersetzt: {', '.join(replaced)}")
        return replaced

    def save(self) -> None:
        """Speichert den ganzen Datensatz (z.B. nach Import oder Generierung)."""
        if self.path is None:
            raise PersistenceError("Keine Datei angegeben.")
        with self._lock:
            updated = self._data.stamped()
            try:
                self._write(updated)
            except OSError as e:
                raise PersistenceError(f"Speichern fehlgeschlagen: {e}") from e
            self._data = updated
