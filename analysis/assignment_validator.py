"""Prüfung einer fertigen Klassenzuordnung.

Sicherheitsnetz unabhängig von der PlacementEngine: jeder Schüler genau
einmal, keine Fremden, Förderbedarf und Klassengrößen gleichmäßig.
"""

from collections import Counter
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel

from config.schema import Factor
from models.class_bucket import ClassBucket
from models.student import Student


class ValidationViolation(BaseModel):
    """Eine einzelne Verletzung."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "student_conservation"
    description: str
    entity: str          # student_id / class_id / "*"


class ValidationReport(BaseModel):
    """Ergebnis der Prüfung."""

    violations: list[ValidationViolation]
    is_valid: bool       # Warnungen allein machen eine Zuordnung nicht ungültig

    def count(self, severity: str) -> int:
        return sum(1 for v in self.violations if v.severity == severity)

    def print_rich(self) -> None:
        """Zusammenfassung als Panel, Einzelbefunde nach Regel sortiert."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        verdict = (
            "[bold green]Zuordnung in Ordnung[/bold green]" if self.is_valid
            else "[bold red]Zuordnung fehlerhaft[/bold red]"
        )
        console.print(Panel(
            f"{verdict}\n{self.count('error')} Fehler, {self.count('warning')} Hinweise",
            title="Zuordnungs-Prüfung",
            border_style="green" if self.is_valid else "red",
        ))
        if not self.violations:
            return

        table = Table(box=box.SIMPLE_HEAD)
        table.add_column("", width=2)
        table.add_column("Regel", style="bold")
        table.add_column("Betrifft")
        table.add_column("Befund")
        for v in sorted(self.violations, key=lambda v: (v.severity != "error", v.constraint)):
            marker = "[red]✗[/red]" if v.severity == "error" else "[yellow]![/yellow]"
            table.add_row(marker, v.constraint, v.entity, v.description)
        console.print(table)


class AssignmentValidator:
    """Prüft Klassen gegen die Schülerliste."""

    def __init__(self, size_spread_limit: int = 2) -> None:
        self.size_spread_limit = size_spread_limit

    def validate(
        self,
        buckets: list[ClassBucket],
        students: list[Student],
        factors: Iterable[Factor] = (),
    ) -> ValidationReport:
        """Führt alle Prüfungen durch und gibt einen ValidationReport zurück."""
        factors = set(factors)
        violations: list[ValidationViolation] = []

        violations.extend(self._check_duplicates(buckets))
        violations.extend(self._check_conservation(buckets, students))
        violations.extend(self._check_size_spread(buckets))
        violations.extend(self._check_capacity(buckets))
        if Factor.SPECIAL_NEEDS in factors:
            violations.extend(self._check_special_needs_spread(buckets, students))

        has_errors = any(v.severity == "error" for v in violations)
        return ValidationReport(violations=violations, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_duplicates(self, buckets: list[ClassBucket]) -> list[ValidationViolation]:
        """Kein Schüler darf in zwei Klassen (oder zweimal in einer) stehen."""
        counts = Counter(sid for b in buckets for sid in b.student_ids)
        return [
            ValidationViolation(
                severity="error",
                constraint="student_duplicate",
                entity=sid,
                description=f"{n}-mal zugeordnet.",
            )
            for sid, n in counts.items() if n > 1
        ]

    def _check_conservation(
        self, buckets: list[ClassBucket], students: list[Student]
    ) -> list[ValidationViolation]:
        """Jeder Schüler der Liste ist platziert, und nur diese."""
        violations: list[ValidationViolation] = []
        roster = {s.id for s in students}
        placed = {sid for b in buckets for sid in b.student_ids}

        for sid in sorted(roster - placed):
            violations.append(ValidationViolation(
                severity="error",
                constraint="student_conservation",
                entity=sid,
                description="Keiner Klasse zugeordnet.",
            ))
        for b in buckets:
            for sid in b.student_ids:
                if sid not in roster:
                    violations.append(ValidationViolation(
                        severity="error",
                        constraint="unknown_student",
                        entity=sid,
                        description=f"In Klasse {b.id}, aber nicht in der Schülerliste.",
                    ))
        return violations

    def _check_size_spread(self, buckets: list[ClassBucket]) -> list[ValidationViolation]:
        """Klassengrößen sollen sich um höchstens size_spread_limit unterscheiden."""
        if not buckets:
            return []
        sizes = [b.size for b in buckets]
        spread = max(sizes) - min(sizes)
        if spread <= self.size_spread_limit:
            return []
        return [ValidationViolation(
            severity="warning",
            constraint="class_size_spread",
            entity="*",
            description=(
                f"Klassengrößen {min(sizes)}–{max(sizes)} "
                f"(Differenz {spread} > {self.size_spread_limit})."
            ),
        )]

    def _check_capacity(self, buckets: list[ClassBucket]) -> list[ValidationViolation]:
        """Richtwert je Klasse (nicht hart)."""
        return [
            ValidationViolation(
                severity="warning",
                constraint="class_capacity",
                entity=b.id,
                description=f"{b.size} Schüler bei Richtwert {b.capacity}.",
            )
            for b in buckets if b.is_over_capacity
        ]

    def _check_special_needs_spread(
        self, buckets: list[ClassBucket], students: list[Student]
    ) -> list[ValidationViolation]:
        """Kinder mit Förderbedarf: Klassen unterscheiden sich um höchstens eins."""
        special = {s.id for s in students if s.special_needs}
        if not special or not buckets:
            return []
        counts = [sum(1 for sid in b.student_ids if sid in special) for b in buckets]
        if max(counts) - min(counts) <= 1:
            return []
        return [ValidationViolation(
            severity="warning",
            constraint="special_needs_spread",
            entity="*",
            description=f"Förderbedarf pro Klasse ungleich verteilt: {counts}.",
        )]
