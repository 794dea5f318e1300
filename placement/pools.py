"""Pool-Bildung: zerlegt die Schülerliste je Faktor in disjunkte Teilmengen."""

from collections.abc import Iterable

from pydantic import BaseModel

from config.defaults import (
    ACADEMIC_ORDER,
    BEHAVIOR_ORDER,
    GENDER_CATEGORIES,
    SPECIAL_NEEDS_POOLS,
)
from config.schema import Factor
from models.student import Student
from placement.errors import InvalidInputError


class PoolSet(BaseModel):
    """Pools pro Faktor: Faktor → Schlüssel → Schüler (in Listen-Reihenfolge)."""

    pools: dict[Factor, dict[str, list[Student]]] = {}

    def get(self, factor: Factor, key: str) -> list[Student]:
        """Pool eines Faktors; leere Liste wenn der Faktor nicht angefordert war."""
        return self.pools.get(factor, {}).get(key, [])

    def keys(self, factor: Factor) -> list[str]:
        return list(self.pools.get(factor, {}))

    def has(self, factor: Factor) -> bool:
        return factor in self.pools


def _partition(roster: list[Student], keys: Iterable[str], key_fn) -> dict[str, list[Student]]:
    result: dict[str, list[Student]] = {k: [] for k in keys}
    for s in roster:
        result[key_fn(s)].append(s)
    return result


def build_pools(roster: list[Student], factors: Iterable[Factor]) -> PoolSet:
    """Bildet die Pools für alle angeforderten Faktoren.

    gender         → male / female / other (Other + PreferNotToSay)
    academicLevel  → Advanced / Proficient / Basic / BelowBasic
    behaviorLevel  → High / Medium / Low
    specialNeeds   → special / regular

    teacherCompatibility und parentRequests erzeugen keine Pools.
    """
    if not roster:
        raise InvalidInputError("Keine Schüler für die Pool-Bildung vorhanden.")

    factors = set(factors)
    pools: dict[Factor, dict[str, list[Student]]] = {}

    if Factor.GENDER in factors:
        pools[Factor.GENDER] = _partition(
            roster, GENDER_CATEGORIES, lambda s: s.gender_category)
    if Factor.ACADEMIC_LEVEL in factors:
        pools[Factor.ACADEMIC_LEVEL] = _partition(
            roster, [lvl.value for lvl in ACADEMIC_ORDER], lambda s: s.academic_level.value)
    if Factor.BEHAVIOR_LEVEL in factors:
        pools[Factor.BEHAVIOR_LEVEL] = _partition(
            roster, [lvl.value for lvl in BEHAVIOR_ORDER], lambda s: s.behavior_level.value)
    if Factor.SPECIAL_NEEDS in factors:
        pools[Factor.SPECIAL_NEEDS] = _partition(
            roster, SPECIAL_NEEDS_POOLS,
            lambda s: "special" if s.special_needs else "regular")

    return PoolSet(pools=pools)
