"""Vergleich zweier Klassenzuordnungen (vorher / nachher).

Gibt strukturierte Unterschiede zurück, die als Rich-Tabelle oder JSON
ausgegeben werden können.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from models.class_bucket import ClassBucket


@dataclass
class StudentMove:
    """Ein Kind, das seine Klasse gewechselt hat (None = vorher/nachher ohne Klasse)."""

    student_id: str
    old_class_id: Optional[str]
    new_class_id: Optional[str]


@dataclass
class AssignmentDiff:
    """Unterschied zwischen zwei Zuordnungen derselben Klassenliste."""

    moves: list[StudentMove] = field(default_factory=list)
    classes_added: list[str] = field(default_factory=list)
    classes_removed: list[str] = field(default_factory=list)
    unchanged: int = 0

    def is_empty(self) -> bool:
        """Gibt True zurück wenn kein Unterschied gefunden wurde."""
        return not self.moves and not self.classes_added and not self.classes_removed

    def to_dict(self) -> dict:
        """Serialisiert den Diff als Dictionary (für JSON-Ausgabe)."""
        return {
            "moves": [
                {
                    "student_id": m.student_id,
                    "old_class_id": m.old_class_id,
                    "new_class_id": m.new_class_id,
                }
                for m in self.moves
            ],
            "classes_added": self.classes_added,
            "classes_removed": self.classes_removed,
            "unchanged": self.unchanged,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def print_rich(self) -> None:
        """Gibt den Diff als Rich-Tabelle aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        if self.is_empty():
            console.print("[dim]Keine Änderungen gegenüber der gespeicherten Zuordnung.[/dim]")
            return
        console.print(
            f"[bold]{len(self.moves)}[/bold] Wechsel, {self.unchanged} unverändert"
            + (f", neue Klassen: {', '.join(self.classes_added)}" if self.classes_added else "")
        )
        table = Table(title="Klassenwechsel", box=box.SIMPLE)
        table.add_column("Schüler")
        table.add_column("Vorher")
        table.add_column("Nachher")
        for m in self.moves:
            table.add_row(m.student_id, m.old_class_id or "–", m.new_class_id or "–")
        console.print(table)


def _membership(buckets: list[ClassBucket]) -> dict[str, str]:
    return {sid: b.id for b in buckets for sid in b.student_ids}


def diff_assignments(before: list[ClassBucket], after: list[ClassBucket]) -> AssignmentDiff:
    """Vergleicht zwei Zuordnungen schülerweise."""
    diff = AssignmentDiff()
    old = _membership(before)
    new = _membership(after)

    before_ids = {b.id for b in before}
    after_ids = {b.id for b in after}
    diff.classes_added = sorted(after_ids - before_ids)
    diff.classes_removed = sorted(before_ids - after_ids)

    for sid in sorted(old.keys() | new.keys()):
        if old.get(sid) == new.get(sid):
            diff.unchanged += 1
        else:
            diff.moves.append(StudentMove(sid, old.get(sid), new.get(sid)))
    return diff
