"""Fehlerarten der Klassenbildung.

Jeder Fehler trägt eine stabile, maschinenlesbare Art (`kind`) und eine
lesbare Meldung. Alle anderen Ausnahmen sind Programmfehler.
"""


class PlacementError(Exception):
    """Basisklasse aller erwarteten Fehler eines Optimierungslaufs."""

    kind = "placement_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class NotFoundError(PlacementError):
    """Klassenliste existiert nicht – es wurde nichts berechnet."""

    kind = "not_found"


class InvalidInputError(PlacementError):
    """Keine Schüler oder keine Klassen ableitbar – keine Phase wurde ausgeführt."""

    kind = "invalid_input"


class PersistenceError(PlacementError):
    """Berechnung erfolgreich, Speichern fehlgeschlagen – nichts wurde übernommen."""

    kind = "persistence_error"
