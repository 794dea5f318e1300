"""Balance-Auswertung für fertige Klassenzuordnungen.

Berechnet pro Klasse Scores zwischen 0 und 100 (100 = ideal) für Geschlecht,
Leistungsniveau, Verhalten und Lehrer-Kompatibilität sowie die Quote der
vollständig erfüllten Elternwünsche.
"""

import math
from collections.abc import Iterable
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from config.defaults import (
    ACADEMIC_IDEAL_RATIO,
    ACADEMIC_ORDER,
    BEHAVIOR_DEVIATION_WEIGHTS,
    BEHAVIOR_IDEAL_RATIOS,
    GENDER_IDEAL_RATIOS,
    strategy_weights,
)
from config.schema import Factor, Strategy
from models.class_bucket import ClassBucket
from models.student import RequestKind, Student


def round_half_up(value: float) -> int:
    """Kaufmännisch runden (0.5 → 1), unabhängig von Pythons Banker's Rounding."""
    return int(math.floor(value + 0.5))


# ─── Metriken-Modell ─────────────────────────────────────────────────────────

class Statistics(BaseModel):
    """Kennzahlen eines Laufs. Optionale Felder nur bei angefordertem Faktor."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_students: int
    students_placed: int
    class_count: int
    average_class_size: int
    gender_balance: Optional[list[int]] = None
    academic_balance: Optional[list[int]] = None
    behavior_balance: Optional[list[int]] = None
    requests_fulfilled: Optional[int] = None
    teacher_compatibility: Optional[list[int]] = None
    factor_weights: dict[str, float] = {}
    overall_score: Optional[int] = None


# ─── Einzel-Scores ───────────────────────────────────────────────────────────

def gender_balance_score(students: list[Student]) -> int:
    total = len(students)
    if total == 0:
        return 100
    deviation = 0.0
    for category, ideal in GENDER_IDEAL_RATIOS.items():
        ratio = sum(1 for s in students if s.gender_category == category) / total
        deviation += abs(ratio - ideal)
    return round_half_up((1 - deviation / 2) * 100)


def academic_balance_score(students: list[Student]) -> int:
    total = len(students)
    if total == 0:
        return 100
    deviation = 0.0
    for level in ACADEMIC_ORDER:
        ratio = sum(1 for s in students if s.academic_level == level) / total
        deviation += abs(ratio - ACADEMIC_IDEAL_RATIO)
    return round_half_up((1 - deviation / 4) * 100)


def behavior_balance_score(students: list[Student]) -> int:
    total = len(students)
    if total == 0:
        return 100
    weighted = 0.0
    for level, ideal in BEHAVIOR_IDEAL_RATIOS.items():
        ratio = sum(1 for s in students if s.behavior_level == level) / total
        weighted += abs(ratio - ideal) * BEHAVIOR_DEVIATION_WEIGHTS[level]
    return round_half_up((1 - weighted / 3) * 100)


def compatibility_score(students: list[Student], teacher_id: Optional[str]) -> int:
    """Anteil der von der Lehrkraft eingeschätzten Kinder, die nicht als
    herausfordernd markiert sind. Ohne Einschätzungen: 100."""
    if teacher_id is None:
        return 100
    rated = [s.teacher_compatibility[teacher_id] for s in students
             if teacher_id in s.teacher_compatibility]
    if not rated:
        return 100
    challenging = sum(1 for score in rated if score < 0)
    return round_half_up((1 - challenging / len(rated)) * 100)


def requests_fulfilled(students: list[Student], buckets: list[ClassBucket]) -> int:
    """Prozent der Kinder mit Wünschen, deren Wünsche ALLE erfüllt sind."""
    with_requests = [s for s in students if s.parent_requests]
    if not with_requests:
        return 100

    bucket_of: dict[str, ClassBucket] = {}
    for b in buckets:
        for sid in b.student_ids:
            bucket_of[sid] = b

    fulfilled = 0
    for student in with_requests:
        bucket = bucket_of.get(student.id)
        if bucket is None:
            continue
        ok = True
        for request in student.parent_requests:
            if request.kind == RequestKind.TEACHER:
                ok = ok and bucket.teacher_id == request.target_teacher_id
            elif request.kind == RequestKind.CLASSMATE:
                ok = ok and request.target_student_id in bucket.student_ids
        if ok:
            fulfilled += 1
    return round_half_up(fulfilled / len(with_requests) * 100)


# ─── Scorer ──────────────────────────────────────────────────────────────────

class BalanceScorer:
    """Berechnet die Statistics für eine fertige Zuordnung."""

    def score(
        self,
        buckets: list[ClassBucket],
        students: list[Student],
        factors: Iterable[Factor],
        strategy: Strategy = Strategy.BALANCED,
    ) -> Statistics:
        factors = set(factors)
        by_id = {s.id: s for s in students}
        members = [
            [by_id[sid] for sid in b.student_ids if sid in by_id] for b in buckets
        ]
        class_count = len(buckets)
        weights = strategy_weights(strategy)

        stats = Statistics(
            total_students=len(students),
            students_placed=sum(b.size for b in buckets),
            class_count=class_count,
            average_class_size=round_half_up(len(students) / class_count) if class_count else 0,
            factor_weights={f.value: weights.weight_for(f) for f in Factor if f in factors},
        )

        # Faktor → Mittelwert seiner Scores, für den Gesamtscore
        means: dict[Factor, float] = {}
        if Factor.GENDER in factors:
            stats.gender_balance = [gender_balance_score(m) for m in members]
            means[Factor.GENDER] = _mean(stats.gender_balance)
        if Factor.ACADEMIC_LEVEL in factors:
            stats.academic_balance = [academic_balance_score(m) for m in members]
            means[Factor.ACADEMIC_LEVEL] = _mean(stats.academic_balance)
        if Factor.BEHAVIOR_LEVEL in factors:
            stats.behavior_balance = [behavior_balance_score(m) for m in members]
            means[Factor.BEHAVIOR_LEVEL] = _mean(stats.behavior_balance)
        if Factor.PARENT_REQUESTS in factors:
            stats.requests_fulfilled = requests_fulfilled(students, buckets)
            means[Factor.PARENT_REQUESTS] = stats.requests_fulfilled
        if Factor.TEACHER_COMPATIBILITY in factors:
            stats.teacher_compatibility = [
                compatibility_score(m, b.teacher_id) for m, b in zip(members, buckets)
            ]
            means[Factor.TEACHER_COMPATIBILITY] = _mean(stats.teacher_compatibility)

        if means:
            total_weight = sum(weights.weight_for(f) for f in means)
            stats.overall_score = round_half_up(
                sum(weights.weight_for(f) * v for f, v in means.items()) / total_weight
            )
        return stats

    def print_rich(self, stats: Statistics, buckets: list[ClassBucket]) -> None:
        """Gibt die Kennzahlen formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()

        lines = [
            f"Schüler: [bold]{stats.students_placed}/{stats.total_students}[/bold] platziert | "
            f"Klassen: [bold]{stats.class_count}[/bold] | "
            f"Ø Klassengröße: [bold]{stats.average_class_size}[/bold]",
        ]
        if stats.requests_fulfilled is not None:
            color = _score_color(stats.requests_fulfilled)
            lines.append(
                f"Elternwünsche erfüllt: [{color}]{stats.requests_fulfilled}%[/{color}]")
        if stats.overall_score is not None:
            color = _score_color(stats.overall_score)
            lines.append(f"Gesamtscore: [{color}]{stats.overall_score}[/{color}] (100 = ideal)")
        if stats.factor_weights:
            lines.append("[dim]Gewichte: " + ", ".join(
                f"{k}={v:g}" for k, v in stats.factor_weights.items()) + "[/dim]")
        console.print(Panel("\n".join(lines), title="Klassenbildung – Übersicht",
                            border_style="cyan"))

        table = Table(title="Balance pro Klasse", box=box.ROUNDED)
        table.add_column("Klasse", width=14)
        table.add_column("Lehrkraft", width=10)
        table.add_column("Schüler", justify="right", width=8)
        columns = [
            ("Geschlecht", stats.gender_balance),
            ("Leistung", stats.academic_balance),
            ("Verhalten", stats.behavior_balance),
            ("Kompatibilität", stats.teacher_compatibility),
        ]
        columns = [(title, values) for title, values in columns if values is not None]
        for title, _ in columns:
            table.add_column(title, justify="right", width=14)

        for i, b in enumerate(buckets):
            cells = []
            for _, values in columns:
                color = _score_color(values[i])
                cells.append(f"[{color}]{values[i]}[/{color}]")
            table.add_row(b.name or b.id, b.teacher_id or "–", str(b.size), *cells)
        console.print(table)


def _mean(values: list[int]) -> float:
    return sum(values) / len(values) if values else 100.0


def _score_color(score: int) -> str:
    return "green" if score >= 80 else "yellow" if score >= 60 else "red"
