"""Kompatibilität: Lehrer-Einschätzungen und Elternwünsche an die Schüler heften.

Reine Funktion über Kopien – die Eingabe-Schüler werden nicht verändert,
und es findet keine Platzierung statt.
"""

import logging
from collections import defaultdict
from typing import Optional

from models.student import PlacementRequest, RequestKind, Student
from models.survey import ParentRequest, TeacherSurvey

logger = logging.getLogger(__name__)

PREFERRED = 1
NEUTRAL = 0
CHALLENGING = -1


def build_preference_table(
    surveys: list[TeacherSurvey],
) -> dict[str, dict[str, set[str]]]:
    """teacher_id → {"preferred": {...}, "challenging": {...}} aus allen abgegebenen Umfragen.

    Mehrere Umfragen derselben Lehrkraft werden zusammengeführt.
    Entwürfe (status=draft) zählen nicht.
    """
    table: dict[str, dict[str, set[str]]] = {}
    for survey in surveys:
        if not survey.is_submitted:
            logger.debug(f"Umfrage von {survey.teacher_id} ist ein Entwurf – ignoriert")
            continue
        entry = table.setdefault(
            survey.teacher_id, {"preferred": set(), "challenging": set()}
        )
        entry["preferred"].update(survey.preferred_students)
        entry["challenging"].update(survey.challenging_students)
    return table


def _to_placement_request(request: ParentRequest) -> Optional[PlacementRequest]:
    """Wandelt einen gespeicherten Wunsch in eine Markierung um (None = kein Wunsch)."""
    if request.kind == RequestKind.TEACHER and request.target_teacher_id:
        return PlacementRequest(kind=RequestKind.TEACHER,
                                target_teacher_id=request.target_teacher_id)
    if request.kind == RequestKind.CLASSMATE and request.target_student_id:
        return PlacementRequest(kind=RequestKind.CLASSMATE,
                                target_student_id=request.target_student_id)
    return None


class CompatibilityScorer:
    """Leitet teacher_compatibility und parent_requests pro Schüler ab."""

    def __init__(self, class_list_id: Optional[str] = None) -> None:
        # Wenn gesetzt, zählen nur Wünsche dieser Klassenliste
        self.class_list_id = class_list_id

    def tag(
        self,
        roster: list[Student],
        surveys: list[TeacherSurvey],
        approved_requests: list[ParentRequest],
    ) -> list[Student]:
        """Gibt markierte Kopien der Schüler in unveränderter Reihenfolge zurück."""
        preferences = build_preference_table(surveys)
        requests_by_student = self._collect_requests(roster, approved_requests)

        unknown = {
            sid
            for entry in preferences.values()
            for sid in entry["preferred"] | entry["challenging"]
        } - {s.id for s in roster}
        if unknown:
            logger.debug(f"Umfragen nennen {len(unknown)} unbekannte Schüler – ignoriert")

        tagged = []
        for student in roster:
            compatibility = {
                teacher_id: self.score(student.id, entry)
                for teacher_id, entry in preferences.items()
            }
            tagged.append(student.model_copy(update={
                "teacher_compatibility": compatibility,
                "parent_requests": requests_by_student.get(student.id, []),
            }))
        return tagged

    @staticmethod
    def score(student_id: str, entry: dict[str, set[str]]) -> int:
        """+1 bevorzugt, -1 herausfordernd, sonst 0. Bevorzugt hat Vorrang."""
        if student_id in entry["preferred"]:
            return PREFERRED
        if student_id in entry["challenging"]:
            return CHALLENGING
        return NEUTRAL

    def _collect_requests(
        self, roster: list[Student], requests: list[ParentRequest]
    ) -> dict[str, list[PlacementRequest]]:
        roster_ids = {s.id for s in roster}
        result: dict[str, list[PlacementRequest]] = defaultdict(list)
        for request in requests:
            if not request.is_approved:
                logger.debug(f"Wunsch {request.id} nicht genehmigt – ignoriert")
                continue
            if self.class_list_id is not None and request.class_list_id != self.class_list_id:
                logger.debug(f"Wunsch {request.id} gehört zu {request.class_list_id} – ignoriert")
                continue
            if request.student_id not in roster_ids:
                logger.debug(f"Wunsch {request.id}: Schüler {request.student_id} unbekannt")
                continue
            tag = _to_placement_request(request)
            if tag is None:
                logger.debug(f"Wunsch {request.id} ({request.kind.value}) ohne verwertbares Ziel")
                continue
            result[request.student_id].append(tag)
        return dict(result)
