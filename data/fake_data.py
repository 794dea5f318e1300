"""Testdaten-Generator für die Klassenbildung.

Erzeugt eine realistische Klassenliste mit Lehrer-Umfragen und Elternwünschen,
inklusive absichtlicher Sonderfälle für robuste Tests.

Absichtliche Sonderfälle:
  1. Förderbedarf-Cluster: mehr Kinder mit Förderbedarf als Klassen
  2. Entwurf: eine Lehrer-Umfrage bleibt im Status "draft" (wird ignoriert)
  3. Wunsch-Kette: Mitschüler-Wunsch auf ein Kind, das erst spät platziert wird
  4. Offene Wünsche: ein Teil der Elternwünsche ist nicht genehmigt
  5. Trennungswunsch: wird gespeichert, bei der Platzierung aber übergangen
  6. Widerspruch: ein Kind ist bei einer Lehrkraft bevorzugt UND herausfordernd
"""

import random
from typing import Optional

from config.schema import SchoolConfig
from models.class_list import ClassList
from models.school_data import SchoolData
from models.student import AcademicLevel, BehaviorLevel, Gender, RequestKind, Student
from models.survey import ParentRequest, RequestStatus, SurveyStatus, TeacherSurvey
from models.teacher import Teacher

# ─── Namens-Listen ────────────────────────────────────────────────────────────

_FIRST_NAMES_M = [
    "Ben", "Elias", "Emil", "Felix", "Finn", "Henry", "Jonas", "Leon",
    "Luca", "Noah", "Paul", "Theo", "Yusuf", "Anton", "Mats", "Jakob",
]

_FIRST_NAMES_F = [
    "Anna", "Clara", "Ella", "Emilia", "Hannah", "Ida", "Lea", "Lina",
    "Mia", "Mila", "Sophie", "Zoe", "Leni", "Marie", "Frieda", "Aylin",
]

_FIRST_NAMES_X = ["Alex", "Kim", "Robin", "Charlie"]

_LAST_NAMES = [
    "Müller", "Schmidt", "Schneider", "Fischer", "Weber", "Meyer",
    "Wagner", "Becker", "Schulz", "Hoffmann", "Schäfer", "Koch",
    "Bauer", "Richter", "Klein", "Wolf", "Schröder", "Neumann",
    "Schwarz", "Zimmermann", "Braun", "Krüger", "Hofmann", "Hartmann",
    "Lange", "Krause", "Lehmann", "Kaiser", "Fuchs", "Vogel", "Beck",
]

_TEACHER_NAMES = [
    "Frau Berger", "Herr Engel", "Frau Roth", "Herr Simon", "Frau Huber",
    "Herr Frank", "Frau Lang", "Herr Weiß",
]

# ─── Verteilungen (gewichtet) ────────────────────────────────────────────────

_GENDERS: list[tuple[Gender, int]] = [
    (Gender.MALE, 48), (Gender.FEMALE, 48),
    (Gender.OTHER, 2), (Gender.PREFER_NOT_TO_SAY, 2),
]
_ACADEMIC: list[tuple[AcademicLevel, int]] = [
    (AcademicLevel.ADVANCED, 20), (AcademicLevel.PROFICIENT, 40),
    (AcademicLevel.BASIC, 28), (AcademicLevel.BELOW_BASIC, 12),
]
_BEHAVIOR: list[tuple[BehaviorLevel, int]] = [
    (BehaviorLevel.HIGH, 15), (BehaviorLevel.MEDIUM, 25), (BehaviorLevel.LOW, 60),
]


def _weighted(rng: random.Random, table):
    values = [v for v, _ in table]
    weights = [w for _, w in table]
    return rng.choices(values, weights=weights)[0]


class FakeRosterGenerator:
    """Generiert einen vollständigen Datensatz für eine Klassenliste."""

    def __init__(self, config: SchoolConfig, seed: Optional[int] = None) -> None:
        self.config = config
        self.rng = random.Random(seed)

    def _make_student(self, index: int) -> Student:
        gender = _weighted(self.rng, _GENDERS)
        if gender == Gender.MALE:
            first = self.rng.choice(_FIRST_NAMES_M)
        elif gender == Gender.FEMALE:
            first = self.rng.choice(_FIRST_NAMES_F)
        else:
            first = self.rng.choice(_FIRST_NAMES_X)
        return Student(
            id=f"s{index:03d}",
            first_name=first,
            last_name=self.rng.choice(_LAST_NAMES),
            gender=gender,
            academic_level=_weighted(self.rng, _ACADEMIC),
            behavior_level=_weighted(self.rng, _BEHAVIOR),
            special_needs=self.rng.random() < 0.08,
        )

    def _generate_students(self, n_students: int, n_teachers: int) -> list[Student]:
        students = [self._make_student(i + 1) for i in range(n_students)]
        # Sonderfall 1: mindestens eine Klasse mehr Förderkinder als Klassen
        needed = n_teachers + 1 - sum(1 for s in students if s.special_needs)
        candidates = [s for s in students if not s.special_needs]
        for s in self.rng.sample(candidates, max(0, min(needed, len(candidates)))):
            s.special_needs = True
        return students

    def _generate_teachers(self, n_teachers: int) -> list[Teacher]:
        names = self.rng.sample(_TEACHER_NAMES, min(n_teachers, len(_TEACHER_NAMES)))
        while len(names) < n_teachers:
            names.append(f"Lehrkraft {len(names) + 1}")
        teachers = []
        for i, name in enumerate(names, start=1):
            local = name.split()[-1].lower().replace("ß", "ss")
            teachers.append(Teacher(id=f"t{i}", name=name, email=f"{local}@schule.example"))
        return teachers

    def _generate_surveys(
        self, class_list_id: str, students: list[Student], teachers: list[Teacher]
    ) -> list[TeacherSurvey]:
        surveys = []
        ids = [s.id for s in students]
        for i, teacher in enumerate(teachers):
            sample = self.rng.sample(ids, min(len(ids), 8))
            preferred, challenging = sample[:5], sample[5:]
            if i == 0 and challenging:
                # Sonderfall 6: Widerspruch, "bevorzugt" gewinnt beim Markieren
                preferred.append(challenging[0])
            surveys.append(TeacherSurvey(
                teacher_id=teacher.id,
                class_list_id=class_list_id,
                # Sonderfall 2: letzte Umfrage ist noch ein Entwurf
                status=SurveyStatus.DRAFT if i == len(teachers) - 1 and i > 0
                else SurveyStatus.SUBMITTED,
                preferred_students=preferred,
                challenging_students=challenging,
            ))
        return surveys

    def _generate_requests(
        self, class_list_id: str, students: list[Student], teachers: list[Teacher]
    ) -> list[ParentRequest]:
        requests: list[ParentRequest] = []
        if len(students) < 4 or not teachers:
            return requests

        def add(student_id: str, kind: RequestKind, status: RequestStatus, **target) -> None:
            requests.append(ParentRequest(
                id=f"r{len(requests) + 1}",
                student_id=student_id,
                class_list_id=class_list_id,
                kind=kind,
                status=status,
                **target,
            ))

        requesters = self.rng.sample(students, max(4, len(students) // 6))
        for student in requesters:
            status = (
                RequestStatus.APPROVED if self.rng.random() < 0.75
                # Sonderfall 4
                else self.rng.choice([RequestStatus.PENDING, RequestStatus.DECLINED])
            )
            if self.rng.random() < 0.5:
                add(student.id, RequestKind.TEACHER, status,
                    target_teacher_id=self.rng.choice(teachers).id)
            else:
                friend = self.rng.choice([s for s in students if s.id != student.id])
                add(student.id, RequestKind.CLASSMATE, status, target_student_id=friend.id)

        # Sonderfall 3: erstes Kind wünscht sich das letzte Kind als Mitschüler
        add(students[0].id, RequestKind.CLASSMATE, RequestStatus.APPROVED,
            target_student_id=students[-1].id)
        # Sonderfall 5
        add(students[1].id, RequestKind.SEPARATION, RequestStatus.APPROVED,
            target_student_id=students[2].id, reason="Konflikt im Kindergarten")
        return requests

    def generate(
        self,
        n_students: int = 52,
        n_teachers: int = 3,
        class_list_id: str = "cl-1",
        grade_level: str = "1",
        academic_year: str = "2026/27",
    ) -> SchoolData:
        """Generiert den kompletten Datensatz (ohne vorhandene Klassen)."""
        students = self._generate_students(n_students, n_teachers)
        teachers = self._generate_teachers(n_teachers)
        class_list = ClassList(
            id=class_list_id,
            name=f"Jahrgang {grade_level}",
            grade_level=grade_level,
            academic_year=academic_year,
            students=students,
            teachers=teachers,
        )
        return SchoolData(
            school_name=self.config.school_name,
            class_lists=[class_list],
            surveys=self._generate_surveys(class_list_id, students, teachers),
            requests=self._generate_requests(class_list_id, students, teachers),
        )
