"""ClassList: Klassenliste mit Schülern, Klassen, Lehrkräften + Bereitschafts-Check."""

from typing import Optional

from pydantic import BaseModel, model_validator

from models.class_bucket import ClassBucket
from models.student import Student
from models.teacher import Teacher


class ReadinessReport(BaseModel):
    """Ergebnis des Bereitschafts-Checks vor einer Optimierung."""

    is_ready: bool
    errors: list[str]      # Optimierung unmöglich
    warnings: list[str]    # Optimierung möglich, Ergebnis evtl. unbefriedigend

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel

        console = Console()
        if self.is_ready:
            status = "[bold green]✓ BEREIT[/bold green]"
        else:
            status = "[bold red]✗ NICHT BEREIT[/bold red]"

        lines = [status]
        if self.errors:
            lines.append("\n[red bold]Fehler (kritisch):[/red bold]")
            for e in self.errors:
                lines.append(f"  [red]• {e}[/red]")
        if self.warnings:
            lines.append("\n[yellow bold]Warnungen:[/yellow bold]")
            for w in self.warnings:
                lines.append(f"  [yellow]• {w}[/yellow]")
        if not self.errors and not self.warnings:
            lines.append("[dim]Keine Probleme gefunden.[/dim]")

        console.print(Panel("\n".join(lines), title="Bereitschafts-Check", border_style="cyan"))


class ClassList(BaseModel):
    """Klassenliste eines Jahrgangs: Schüler, (vorhandene) Klassen, Lehrkräfte."""

    id: str
    name: str = ""
    grade_level: str = ""
    academic_year: str = ""
    students: list[Student] = []
    classes: list[ClassBucket] = []
    teachers: list[Teacher] = []

    @model_validator(mode="after")
    def _check_unique_ids(self):
        seen: set[str] = set()
        for s in self.students:
            if s.id in seen:
                raise ValueError(f"Schüler-ID doppelt in Klassenliste {self.id}: {s.id}")
            seen.add(s.id)
        class_ids = [c.id for c in self.classes]
        if len(class_ids) != len(set(class_ids)):
            raise ValueError(f"Klassen-ID doppelt in Klassenliste {self.id}")
        return self

    # ─── Lookups ───

    def student(self, student_id: str) -> Optional[Student]:
        return next((s for s in self.students if s.id == student_id), None)

    def teacher(self, teacher_id: str) -> Optional[Teacher]:
        return next((t for t in self.teachers if t.id == teacher_id), None)

    # ─── Übersicht ───

    def summary(self) -> str:
        """Kurze Übersicht über die Klassenliste."""
        n_special = sum(1 for s in self.students if s.special_needs)
        assigned = sum(c.size for c in self.classes)
        lines = [
            f"Klassenliste: {self.name or self.id} ({self.grade_level} {self.academic_year})".rstrip(),
            f"Schüler: {len(self.students)} (davon {n_special} mit Förderbedarf)",
            f"Lehrkräfte: {len(self.teachers)}",
            f"Klassen: {len(self.classes)}" + (f" ({assigned} Schüler zugeordnet)" if self.classes else ""),
        ]
        return "\n".join(lines)

    # ─── Bereitschafts-Check ───

    def check_readiness(self, class_capacity: int = 30) -> ReadinessReport:
        """Prüft ob die Klassenliste optimiert werden kann.

        Prüfungen:
        1. Mindestens ein Schüler
        2. Klassen vorhanden oder aus Lehrkräften ableitbar
        3. Kapazität: Summe der Richtwerte ≥ Schülerzahl
        4. Klassen ohne Lehrkraft / mit unbekannter Lehrkraft
        """
        errors: list[str] = []
        warnings: list[str] = []

        if not self.students:
            errors.append("Keine Schüler in der Klassenliste.")

        if not self.classes and not self.teachers:
            errors.append(
                "Weder Klassen noch Lehrkräfte vorhanden – es können keine Klassen gebildet werden."
            )

        if self.classes:
            capacity = sum(c.capacity for c in self.classes)
            n_classes = len(self.classes)
        else:
            capacity = class_capacity * len(self.teachers)
            n_classes = len(self.teachers)
        if n_classes and len(self.students) > capacity:
            warnings.append(
                f"Kapazität: {len(self.students)} Schüler bei {capacity} Plätzen "
                f"in {n_classes} Klassen – Richtwert wird überschritten."
            )

        teacher_ids = {t.id for t in self.teachers}
        for c in self.classes:
            if c.teacher_id is None:
                warnings.append(
                    f"Klasse {c.name or c.id} hat keine Lehrkraft – Lehrkraft-Wünsche "
                    f"können dort nicht erfüllt werden."
                )
            elif c.teacher_id not in teacher_ids:
                warnings.append(
                    f"Klasse {c.name or c.id}: Lehrkraft {c.teacher_id} gehört nicht zur Klassenliste."
                )

        return ReadinessReport(
            is_ready=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )
