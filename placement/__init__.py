"""Platzierungs-Modul (Greedy-Klassenbildung in festen Phasen)."""

from .errors import PlacementError, NotFoundError, InvalidInputError, PersistenceError
from .pools import PoolSet, build_pools
from .compatibility import CompatibilityScorer
from .engine import PlacementEngine, PlacementResult, Transfer, build_buckets

__all__ = [
    "PlacementError",
    "NotFoundError",
    "InvalidInputError",
    "PersistenceError",
    "PoolSet",
    "build_pools",
    "CompatibilityScorer",
    "PlacementEngine",
    "PlacementResult",
    "Transfer",
    "build_buckets",
]
