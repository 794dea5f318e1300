"""Greedy-Klassenbildung in sieben festen Phasen.

Ablauf (streng sequenziell, keine Phase kehrt zurück):
  1. Förderbedarf verteilen    (specialNeeds)
  2. Elternwünsche erfüllen    (parentRequests: erst Lehrkraft, dann Mitschüler)
  3. Geschlecht ausgleichen    (gender)
  4. Leistungsniveau           (academicLevel)
  5. Verhaltens-Förderbedarf   (behaviorLevel)
  6. Rest auffüllen            (immer, nur Klassengröße)
  7. Größen nachjustieren      (immer, ein Durchgang)

Jede Phase überspringt bereits platzierte Schüler. Ein Mitschüler-Wunsch
wird nur erfüllt, wenn das Ziel in Phase 2 schon platziert ist; er wird
später nicht erneut versucht.
"""

import heapq
import logging
import math
from collections.abc import Iterable
from typing import Callable, Optional

from pydantic import BaseModel

from config.defaults import ACADEMIC_ORDER, BEHAVIOR_ORDER, GENDER_CATEGORIES, strategy_weights
from config.schema import Factor, Strategy, StrategyWeights
from models.class_bucket import ClassBucket
from models.class_list import ClassList
from models.student import RequestKind, Student
from placement.errors import InvalidInputError
from placement.pools import PoolSet, build_pools

logger = logging.getLogger(__name__)

PHASES = (
    "special_needs",
    "teacher_requests",
    "classmate_requests",
    "gender",
    "academic_level",
    "behavior_level",
    "residual_fill",
)


# ─── Ergebnis-Modelle ─────────────────────────────────────────────────────────

class Transfer(BaseModel):
    """Eine Umsetzung aus Phase 7."""

    student_id: str
    from_class_id: str
    to_class_id: str


class PlacementResult(BaseModel):
    """Endgültige Zuordnung eines Laufs."""

    buckets: list[ClassBucket]
    strategy: Strategy
    weights: StrategyWeights
    factors: list[Factor]
    phase_counts: dict[str, int]   # Phase → Anzahl dort platzierter Schüler
    transfers: list[Transfer] = []

    @property
    def new_buckets(self) -> list[ClassBucket]:
        return [b for b in self.buckets if b.is_new]

    @property
    def existing_buckets(self) -> list[ClassBucket]:
        return [b for b in self.buckets if not b.is_new]

    def bucket_of(self, student_id: str) -> Optional[ClassBucket]:
        return next((b for b in self.buckets if student_id in b.student_ids), None)


# ─── Klassen ableiten ─────────────────────────────────────────────────────────

def build_buckets(
    class_list: ClassList,
    capacity: int = 30,
    label: str = "Klasse {n}",
) -> list[ClassBucket]:
    """Leere Startklassen eines Laufs.

    Vorhandene Klassen werden geleert übernommen; gibt es keine, wird pro
    Lehrkraft eine neue Klasse angelegt (fortlaufend benannt).
    """
    if class_list.classes:
        return [c.emptied() for c in class_list.classes]
    return [
        ClassBucket(
            id=f"new-{i}",
            name=label.format(n=i),
            teacher_id=teacher.id,
            capacity=capacity,
            is_new=True,
        )
        for i, teacher in enumerate(class_list.teachers, 1)
    ]


# ─── Engine ───────────────────────────────────────────────────────────────────

class PlacementEngine:
    """Verteilt Schüler deterministisch auf Klassen.

    Verwendung:
        engine = PlacementEngine(buckets, tagged_students, factors, strategy)
        result = engine.run()

    Jeder Aufruf von run() beginnt mit leeren Klassen; Eingabe-Klassen
    werden nicht verändert.
    """

    def __init__(
        self,
        buckets: list[ClassBucket],
        students: list[Student],
        factors: Iterable[Factor],
        strategy: Strategy = Strategy.BALANCED,
        rebalance_threshold: int = 2,
    ) -> None:
        if not students:
            raise InvalidInputError("Keine Schüler zu verteilen.")
        if not buckets:
            raise InvalidInputError("Keine Klassen vorhanden oder ableitbar.")

        self.students = list(students)
        self.factors = set(factors)
        self.strategy = Strategy(strategy)
        self.rebalance_threshold = rebalance_threshold

        self._buckets = [b.emptied() for b in buckets]
        self._by_id = {s.id: s for s in self.students}
        self._reset()

    def _reset(self) -> None:
        """Leere Klassen, nichts platziert. Jeder run() beginnt hier."""
        self._members: list[list[str]] = [[] for _ in self._buckets]
        self._placed: dict[str, int] = {}   # student_id → Bucket-Index
        self._phase_counts = {p: 0 for p in PHASES}
        self._transfers: list[Transfer] = []

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def run(self) -> PlacementResult:
        """Führt alle Phasen aus und gibt die endgültige Zuordnung zurück."""
        self._reset()
        pools = build_pools(self.students, self.factors)

        if Factor.SPECIAL_NEEDS in self.factors:
            self._seed_special_needs(pools)
        if Factor.PARENT_REQUESTS in self.factors:
            self._honor_teacher_requests()
            self._honor_classmate_requests()
        if Factor.GENDER in self.factors:
            for category in GENDER_CATEGORIES:
                self._balance(
                    "gender", pools.get(Factor.GENDER, category),
                    lambda s, c=category: s.gender_category == c,
                )
        if Factor.ACADEMIC_LEVEL in self.factors:
            for level in ACADEMIC_ORDER:
                self._balance(
                    "academic_level", pools.get(Factor.ACADEMIC_LEVEL, level.value),
                    lambda s, l=level: s.academic_level == l,
                )
        if Factor.BEHAVIOR_LEVEL in self.factors:
            for level in BEHAVIOR_ORDER:
                self._balance(
                    "behavior_level", pools.get(Factor.BEHAVIOR_LEVEL, level.value),
                    lambda s, l=level: s.behavior_level == l,
                )
        self._fill_residual()
        self._rebalance()

        for phase in PHASES:
            if self._phase_counts[phase]:
                logger.info(f"Phase {phase}: {self._phase_counts[phase]} Schüler platziert")

        return PlacementResult(
            buckets=[
                b.model_copy(update={"student_ids": list(members)})
                for b, members in zip(self._buckets, self._members)
            ],
            strategy=self.strategy,
            weights=strategy_weights(self.strategy),
            factors=[f for f in Factor if f in self.factors],
            phase_counts=dict(self._phase_counts),
            transfers=list(self._transfers),
        )

    # ─── Grundoperationen ─────────────────────────────────────────────────────

    def is_placed(self, student_id: str) -> bool:
        return student_id in self._placed

    def _place(self, student: Student, index: int, phase: str) -> bool:
        """Setzt einen Schüler in Klasse `index`. Bereits platzierte bleiben, wo sie sind."""
        if student.id in self._placed:
            return False
        self._members[index].append(student.id)
        self._placed[student.id] = index
        self._phase_counts[phase] += 1
        return True

    def _count(self, index: int, predicate: Callable[[Student], bool]) -> int:
        return sum(1 for sid in self._members[index] if predicate(self._by_id[sid]))

    # ─── Phase 1: Förderbedarf ───────────────────────────────────────────────

    def _seed_special_needs(self, pools: PoolSet) -> None:
        """Zerlegt den Förderbedarf-Pool in zusammenhängende Blöcke je Klasse.

        k = ceil(n / m); die ersten (n mod m) Klassen erhalten k, die übrigen
        k-1 Schüler. Damit unterscheiden sich die Klassen um höchstens einen.
        """
        pool = pools.get(Factor.SPECIAL_NEEDS, "special")
        n, m = len(pool), len(self._buckets)
        if n == 0:
            return
        k = math.ceil(n / m)
        big = n % m or m   # Anzahl Klassen mit k Schülern
        for i, student in enumerate(pool):
            if i < big * k:
                index = i // k
            else:
                index = big + (i - big * k) // (k - 1)
            self._place(student, min(index, m - 1), "special_needs")

    # ─── Phase 2: Elternwünsche ──────────────────────────────────────────────

    def _honor_teacher_requests(self) -> None:
        teacher_index: dict[str, int] = {}
        for i, b in enumerate(self._buckets):
            if b.teacher_id is not None:
                teacher_index.setdefault(b.teacher_id, i)

        for student in self.students:
            if self.is_placed(student.id):
                continue
            request = next(
                (r for r in student.parent_requests if r.kind == RequestKind.TEACHER), None)
            if request is None:
                continue
            index = teacher_index.get(request.target_teacher_id)
            if index is None:
                logger.debug(
                    f"Lehrkraft-Wunsch von {student.id}: keine Klasse für "
                    f"{request.target_teacher_id}")
                continue
            self._place(student, index, "teacher_requests")

    def _honor_classmate_requests(self) -> None:
        for student in self.students:
            if self.is_placed(student.id):
                continue
            request = next(
                (r for r in student.parent_requests if r.kind == RequestKind.CLASSMATE), None)
            if request is None:
                continue
            index = self._placed.get(request.target_student_id)
            if index is None:
                # Ziel (noch) nicht platziert – kein späterer Versuch
                logger.debug(
                    f"Mitschüler-Wunsch von {student.id}: {request.target_student_id} "
                    f"noch nicht platziert")
                continue
            self._place(student, index, "classmate_requests")

    # ─── Phasen 3–5: Ausgleich je Kategorie ──────────────────────────────────

    def _balance(
        self, phase: str, pool: list[Student], predicate: Callable[[Student], bool]
    ) -> None:
        """Jeder noch freie Schüler kommt in die Klasse mit den wenigsten
        Mitgliedern seiner Kategorie (Gleichstand → niedrigster Index)."""
        pending = [s for s in pool if not self.is_placed(s.id)]
        if not pending:
            return
        heap = [(self._count(i, predicate), i) for i in range(len(self._buckets))]
        heapq.heapify(heap)
        for student in pending:
            count, index = heapq.heappop(heap)
            self._place(student, index, phase)
            heapq.heappush(heap, (count + 1, index))

    # ─── Phase 6: Rest auffüllen ─────────────────────────────────────────────

    def _fill_residual(self) -> None:
        pending = [s for s in self.students if not self.is_placed(s.id)]
        if not pending:
            return
        heap = [(len(members), i) for i, members in enumerate(self._members)]
        heapq.heapify(heap)
        for student in pending:
            size, index = heapq.heappop(heap)
            self._place(student, index, "residual_fill")
            heapq.heappush(heap, (size + 1, index))

    # ─── Phase 7: Größen nachjustieren ───────────────────────────────────────

    def _rebalance(self) -> None:
        """Ein Durchgang: höchstens eine Umsetzung je (zu groß, zu klein)-Paar.

        Restungleichgewicht ist zulässig.
        """
        sizes = [len(m) for m in self._members]
        smallest, largest = min(sizes), max(sizes)
        if largest - smallest <= self.rebalance_threshold:
            return

        oversized = [i for i, n in enumerate(sizes) if n > smallest + 1]
        undersized = [i for i, n in enumerate(sizes) if n < largest - 1]

        for src in oversized:
            for dst in undersized:
                if src == dst:
                    continue
                if len(self._members[src]) <= len(self._members[dst]) + 1:
                    continue
                student_id = self._pick_movable(src)
                self._members[src].remove(student_id)
                self._members[dst].append(student_id)
                self._placed[student_id] = dst
                self._transfers.append(Transfer(
                    student_id=student_id,
                    from_class_id=self._buckets[src].id,
                    to_class_id=self._buckets[dst].id,
                ))
                logger.info(
                    f"Umsetzung: {student_id} {self._buckets[src].id} → {self._buckets[dst].id}")

    def _pick_movable(self, index: int) -> str:
        """Bevorzugt Schüler ohne Elternwunsch (und ohne Förderbedarf, falls
        dieser Faktor aktiv ist); sonst das zuletzt eingefügte Kind."""
        members = self._members[index]
        free = [sid for sid in members if not self._by_id[sid].has_requests]
        if Factor.SPECIAL_NEEDS in self.factors:
            regular = [sid for sid in free if not self._by_id[sid].special_needs]
            if regular:
                return regular[0]
        if free:
            return free[0]
        return members[-1]
