"""OptimizationService: Klassenliste laden → markieren → verteilen → bewerten → speichern."""

import logging
from collections.abc import Iterable
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from analysis.assignment_validator import AssignmentValidator
from analysis.balance import BalanceScorer, Statistics
from config.schema import Factor, OptimizerConfig, Strategy
from data.store import ClassPersistence, RequestRepository, RosterRepository, SurveyRepository
from models.class_bucket import ClassBucket
from placement.compatibility import CompatibilityScorer
from placement.engine import PlacementEngine, PlacementResult, build_buckets
from placement.errors import InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


class ClassAssignment(BaseModel):
    """Eine Klasse im Ergebnis."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    teacher_id: Optional[str] = None
    student_ids: list[str]
    is_new: bool = False


class OptimizationResult(BaseModel):
    """Ergebnis eines optimize()-Aufrufs."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    class_list_id: str
    classes: list[ClassAssignment]
    statistics: Statistics
    persisted: bool = False
    placement: Optional[PlacementResult] = None

    def to_payload(self) -> dict:
        """Ausgabeformat mit camelCase-Schlüsseln, ohne leere optionale Felder."""
        return {
            "classes": [c.model_dump(by_alias=True) for c in self.classes],
            "statistics": self.statistics.model_dump(by_alias=True, exclude_none=True),
        }


class OptimizationService:
    """Führt einen kompletten Optimierungslauf für eine Klassenliste aus.

    Verwendung:
        store = ClassListStore.open(path)
        service = OptimizationService(store, store, store, store)
        result = service.optimize("cl-4", {Factor.GENDER}, Strategy.BALANCED)
    """

    def __init__(
        self,
        rosters: RosterRepository,
        surveys: SurveyRepository,
        requests: RequestRepository,
        persistence: ClassPersistence,
        config: Optional[OptimizerConfig] = None,
    ) -> None:
        self.rosters = rosters
        self.surveys = surveys
        self.requests = requests
        self.persistence = persistence
        self.config = config or OptimizerConfig()

    def optimize(
        self,
        class_list_id: str,
        factors: Optional[Iterable[Factor]] = None,
        strategy: Optional[Strategy] = None,
        persist: bool = True,
    ) -> OptimizationResult:
        """Verteilt die Schüler neu.

        Raises:
            NotFoundError:     Klassenliste existiert nicht.
            InvalidInputError: Keine Schüler oder keine Klassen ableitbar.
            PersistenceError:  Speichern fehlgeschlagen (Ergebnis verworfen).
        """
        factors = set(self.config.default_factors if factors is None else factors)
        strategy = Strategy(strategy or self.config.default_strategy)

        class_list = self.rosters.get_class_list(class_list_id)
        if class_list is None:
            raise NotFoundError(f"Klassenliste {class_list_id} nicht gefunden.")
        if not class_list.students:
            raise InvalidInputError(f"Klassenliste {class_list_id} enthält keine Schüler.")

        buckets = build_buckets(
            class_list, self.config.class_capacity, self.config.new_class_label)
        if not buckets:
            raise InvalidInputError(
                f"Klassenliste {class_list_id}: keine Klassen und keine Lehrkräfte.")

        surveys = (
            self.surveys.find_surveys_for_class_list(class_list_id)
            if Factor.TEACHER_COMPATIBILITY in factors else []
        )
        approved = (
            self.requests.find_approved_requests(class_list_id)
            if Factor.PARENT_REQUESTS in factors else []
        )
        students = CompatibilityScorer(class_list_id).tag(class_list.students, surveys, approved)

        logger.info(
            f"Optimiere {class_list_id}: {len(students)} Schüler, {len(buckets)} Klassen, "
            f"Strategie {strategy.value}, Faktoren {sorted(f.value for f in factors)}"
        )
        placement = PlacementEngine(
            buckets, students, factors, strategy,
            rebalance_threshold=self.config.rebalance_threshold,
        ).run()

        report = AssignmentValidator(self.config.rebalance_threshold).validate(
            placement.buckets, students, factors)
        for v in report.violations:
            log = logger.error if v.severity == "error" else logger.warning
            log(f"{v.constraint} ({v.entity}): {v.description}")

        statistics = BalanceScorer().score(placement.buckets, students, factors, strategy)

        final_buckets: list[ClassBucket] = placement.buckets
        if persist:
            final_buckets = self.persistence.upsert_classes(class_list_id, placement.buckets)

        return OptimizationResult(
            class_list_id=class_list_id,
            classes=[
                ClassAssignment(
                    id=b.id,
                    name=b.name,
                    teacher_id=b.teacher_id,
                    student_ids=list(b.student_ids),
                    is_new=placed.is_new,
                )
                for b, placed in zip(final_buckets, placement.buckets)
            ],
            statistics=statistics,
            persisted=persist,
            placement=placement,
        )
