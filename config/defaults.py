from config.schema import (
    Factor,
    LoggingConfig,
    OptimizerConfig,
    SchoolConfig,
    StorageConfig,
    Strategy,
    StrategyWeights,
)
from models.student import AcademicLevel, BehaviorLevel


# ─── Strategie → Gewichte ─────────────────────────────────────────────────────
# Die Gewichte steuern ausschließlich die Auswertung, nie die Phasenreihenfolge.

STRATEGY_WEIGHTS: dict[Strategy, StrategyWeights] = {
    Strategy.BALANCED: StrategyWeights(),
    Strategy.ACADEMIC: StrategyWeights(academic_level=2),
    Strategy.BEHAVIOR: StrategyWeights(behavior_level=2, special_needs=1.5),
    Strategy.REQUESTS: StrategyWeights(parent_requests=2, teacher_compatibility=1.5),
}


def strategy_weights(strategy: Strategy) -> StrategyWeights:
    """Gewichtstabelle einer Strategie (Kopie, darf verändert werden)."""
    return STRATEGY_WEIGHTS[Strategy(strategy)].model_copy()


# ─── Kategorien und Reihenfolgen ──────────────────────────────────────────────

GENDER_CATEGORIES: tuple[str, ...] = ("male", "female", "other")
ACADEMIC_ORDER: tuple[AcademicLevel, ...] = (
    AcademicLevel.ADVANCED,
    AcademicLevel.PROFICIENT,
    AcademicLevel.BASIC,
    AcademicLevel.BELOW_BASIC,
)
BEHAVIOR_ORDER: tuple[BehaviorLevel, ...] = (
    BehaviorLevel.HIGH,
    BehaviorLevel.MEDIUM,
    BehaviorLevel.LOW,
)
SPECIAL_NEEDS_POOLS: tuple[str, ...] = ("special", "regular")

# ─── Ideal-Verhältnisse der Balance-Scores ───────────────────────────────────

# Vereinfachung: nur männlich/weiblich werden gleich gewichtet
GENDER_IDEAL_RATIOS: dict[str, float] = {"male": 0.5, "female": 0.5, "other": 0.0}
ACADEMIC_IDEAL_RATIO = 0.25
BEHAVIOR_IDEAL_RATIOS: dict[BehaviorLevel, float] = {
    BehaviorLevel.HIGH: 0.2,
    BehaviorLevel.MEDIUM: 0.3,
    BehaviorLevel.LOW: 0.5,
}
# Abweichungen bei hohem Förderbedarf zählen stärker
BEHAVIOR_DEVIATION_WEIGHTS: dict[BehaviorLevel, float] = {
    BehaviorLevel.HIGH: 1.5,
    BehaviorLevel.MEDIUM: 1.0,
    BehaviorLevel.LOW: 0.5,
}


def default_optimizer() -> OptimizerConfig:
    """Alle Faktoren aktiv, Strategie 'balanced', Richtwert 30 Schüler."""
    return OptimizerConfig(
        default_factors=list(Factor),
        default_strategy=Strategy.BALANCED,
        class_capacity=30,
        rebalance_threshold=2,
    )


def default_school_config() -> SchoolConfig:
    """Vollständige Standard-Konfiguration."""
    return SchoolConfig(
        school_name="Muster-Grundschule",
        optimizer=default_optimizer(),
        storage=StorageConfig(),
        logging=LoggingConfig(),
    )
