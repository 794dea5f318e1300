"""Tests für Balance-Scores, Zuordnungs-Prüfung und Zuordnungs-Diff."""

import json

import pytest

from analysis.assignment_validator import AssignmentValidator
from analysis.balance import (
    BalanceScorer,
    academic_balance_score,
    behavior_balance_score,
    compatibility_score,
    gender_balance_score,
    requests_fulfilled,
    round_half_up,
)
from analysis.diff import diff_assignments
from config.schema import Factor, Strategy
from models.class_bucket import ClassBucket
from models.student import (
    AcademicLevel,
    BehaviorLevel,
    Gender,
    PlacementRequest,
    RequestKind,
    Student,
)


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def _make_student(sid: str, gender: Gender = Gender.MALE, **kwargs) -> Student:
    return Student(id=sid, gender=gender, **kwargs)


def _make_bucket(bid: str, student_ids: list[str], teacher_id: str = None,
                 capacity: int = 30) -> ClassBucket:
    return ClassBucket(id=bid, teacher_id=teacher_id, student_ids=student_ids,
                       capacity=capacity)


# ─── RUNDUNG ──────────────────────────────────────────────────────────────────

class TestRounding:
    @pytest.mark.parametrize("value,expected", [
        (0.5, 1), (1.5, 2), (2.5, 3), (62.5, 63), (71.49, 71), (100.0, 100), (0.0, 0),
    ])
    def test_half_up(self, value, expected):
        """x.5 wird immer aufgerundet (nicht Banker's Rounding)."""
        assert round_half_up(value) == expected


# ─── EINZEL-SCORES ────────────────────────────────────────────────────────────

class TestScores:
    def test_empty_bucket_is_ideal(self):
        """Leere Klasse → 100 auf jedem Faktor."""
        assert gender_balance_score([]) == 100
        assert academic_balance_score([]) == 100
        assert behavior_balance_score([]) == 100
        assert compatibility_score([], "t1") == 100

    def test_gender_even_split(self):
        students = ([_make_student(f"m{i}", Gender.MALE) for i in range(5)]
                    + [_make_student(f"w{i}", Gender.FEMALE) for i in range(5)])
        assert gender_balance_score(students) == 100

    def test_gender_one_sided(self):
        """Nur Jungen → Abweichung 1.0 → Score 50."""
        assert gender_balance_score([_make_student(f"m{i}") for i in range(4)]) == 50

    def test_gender_other_counts_as_deviation(self):
        """Divers/keine Angabe weicht vom Ideal 0 ab."""
        students = [_make_student("a", Gender.MALE), _make_student("b", Gender.FEMALE),
                    _make_student("c", Gender.PREFER_NOT_TO_SAY)]
        # |1/3-.5| + |1/3-.5| + |1/3-0| = 2/3 → (1 - 1/3) * 100
        assert gender_balance_score(students) == 67

    def test_academic_even(self):
        students = [_make_student(f"s{i}", academic_level=level)
                    for i, level in enumerate(AcademicLevel)]
        assert academic_balance_score(students) == 100

    def test_academic_one_level(self):
        """Nur 'Advanced' → Abweichung 1.5 → 62.5 → 63."""
        students = [_make_student(f"s{i}", academic_level=AcademicLevel.ADVANCED)
                    for i in range(4)]
        assert academic_balance_score(students) == 63

    def test_behavior_ideal_mix(self):
        """2 hoch, 3 mittel, 5 niedrig → Ideal."""
        levels = ([BehaviorLevel.HIGH] * 2 + [BehaviorLevel.MEDIUM] * 3
                  + [BehaviorLevel.LOW] * 5)
        students = [_make_student(f"s{i}", behavior_level=lvl) for i, lvl in enumerate(levels)]
        assert behavior_balance_score(students) == 100

    def test_behavior_all_low(self):
        """Nur niedrig: 0.2*1.5 + 0.3*1.0 + 0.5*0.5 = 0.85 → 71.67 → 72."""
        students = [_make_student(f"s{i}", behavior_level=BehaviorLevel.LOW) for i in range(3)]
        assert behavior_balance_score(students) == 72

    def test_compatibility_share_not_challenging(self):
        students = [
            _make_student("a", teacher_compatibility={"t1": 1}),
            _make_student("b", teacher_compatibility={"t1": 0}),
            _make_student("c", teacher_compatibility={"t1": -1}),
            _make_student("d", teacher_compatibility={"t1": 0}),
            _make_student("e"),
        ]
        assert compatibility_score(students, "t1") == 75
        assert compatibility_score(students, None) == 100

    def test_requests_fulfilled_all_or_nothing(self):
        """Ein Kind zählt nur, wenn ALLE seine Wünsche erfüllt sind."""
        students = [
            _make_student("a", parent_requests=[
                PlacementRequest(kind=RequestKind.TEACHER, target_teacher_id="t1"),
                PlacementRequest(kind=RequestKind.CLASSMATE, target_student_id="b"),
            ]),
            _make_student("b", parent_requests=[
                PlacementRequest(kind=RequestKind.TEACHER, target_teacher_id="t1"),
            ]),
            _make_student("c"),
        ]
        buckets = [_make_bucket("k1", ["a", "b"], "t1"), _make_bucket("k2", ["c"], "t2")]
        assert requests_fulfilled(students, buckets) == 100

        buckets = [_make_bucket("k1", ["a", "c"], "t1"), _make_bucket("k2", ["b"], "t2")]
        assert requests_fulfilled(students, buckets) == 0

    def test_requests_fulfilled_without_requests(self):
        assert requests_fulfilled([_make_student("a")], [_make_bucket("k1", ["a"])]) == 100


# ─── BALANCE-SCORER ───────────────────────────────────────────────────────────

class TestBalanceScorer:
    def _setup(self):
        students = [
            _make_student("m1", Gender.MALE, academic_level=AcademicLevel.ADVANCED),
            _make_student("w1", Gender.FEMALE, academic_level=AcademicLevel.ADVANCED),
            _make_student("m2", Gender.MALE, academic_level=AcademicLevel.ADVANCED),
            _make_student("w2", Gender.FEMALE, academic_level=AcademicLevel.ADVANCED),
        ]
        buckets = [_make_bucket("k1", ["m1", "w1"]), _make_bucket("k2", ["m2", "w2"])]
        return students, buckets

    def test_only_requested_factors(self):
        """Optionale Kennzahlen nur für angeforderte Faktoren."""
        students, buckets = self._setup()
        stats = BalanceScorer().score(buckets, students, {Factor.GENDER})
        assert stats.gender_balance == [100, 100]
        assert stats.academic_balance is None
        assert stats.behavior_balance is None
        assert stats.requests_fulfilled is None
        assert stats.teacher_compatibility is None
        assert stats.overall_score == 100

    def test_counts(self):
        students, buckets = self._setup()
        stats = BalanceScorer().score(buckets, students, set())
        assert stats.total_students == 4
        assert stats.students_placed == 4
        assert stats.class_count == 2
        assert stats.average_class_size == 2
        assert stats.overall_score is None

    def test_strategy_weights_overall(self):
        """'academic' gewichtet Leistung doppelt: (100 + 2*63) / 3 → 75."""
        students, buckets = self._setup()
        stats = BalanceScorer().score(
            buckets, students, {Factor.GENDER, Factor.ACADEMIC_LEVEL}, Strategy.ACADEMIC)
        assert stats.academic_balance == [63, 63]
        assert stats.factor_weights == {"gender": 1.0, "academicLevel": 2.0}
        assert stats.overall_score == 75

    def test_scores_within_bounds(self):
        """Alle Scores liegen in [0, 100]."""
        students = [_make_student(f"s{i}", Gender.OTHER, behavior_level=BehaviorLevel.HIGH,
                                  academic_level=AcademicLevel.BELOW_BASIC,
                                  teacher_compatibility={"t1": -1})
                    for i in range(6)]
        buckets = [_make_bucket("k1", [s.id for s in students], "t1"), _make_bucket("k2", [])]
        stats = BalanceScorer().score(buckets, students, set(Factor))
        for values in (stats.gender_balance, stats.academic_balance,
                       stats.behavior_balance, stats.teacher_compatibility):
            assert all(0 <= v <= 100 for v in values)
        assert stats.teacher_compatibility == [0, 100]
        assert 0 <= stats.overall_score <= 100

    def test_camel_case_dump(self):
        students, buckets = self._setup()
        stats = BalanceScorer().score(buckets, students, {Factor.GENDER})
        dumped = stats.model_dump(by_alias=True, exclude_none=True)
        assert "genderBalance" in dumped
        assert "averageClassSize" in dumped
        assert "academicBalance" not in dumped


# ─── ZUORDNUNGS-PRÜFUNG ───────────────────────────────────────────────────────

class TestAssignmentValidator:
    def test_valid_assignment(self):
        students = [_make_student(f"s{i}") for i in range(4)]
        buckets = [_make_bucket("k1", ["s0", "s1"]), _make_bucket("k2", ["s2", "s3"])]
        report = AssignmentValidator().validate(buckets, students, set(Factor))
        assert report.is_valid
        assert report.violations == []

    def test_missing_student_is_error(self):
        students = [_make_student("a"), _make_student("b")]
        report = AssignmentValidator().validate([_make_bucket("k1", ["a"])], students)
        assert not report.is_valid
        assert [v.constraint for v in report.violations] == ["student_conservation"]
        assert report.violations[0].entity == "b"

    def test_duplicate_student_is_error(self):
        students = [_make_student("a")]
        buckets = [_make_bucket("k1", ["a"]), _make_bucket("k2", ["a"])]
        report = AssignmentValidator().validate(buckets, students)
        assert not report.is_valid
        assert any(v.constraint == "student_duplicate" for v in report.violations)

    def test_unknown_student_is_error(self):
        report = AssignmentValidator().validate(
            [_make_bucket("k1", ["a", "x"])], [_make_student("a")])
        assert any(v.constraint == "unknown_student" and v.entity == "x"
                   for v in report.violations)

    def test_size_spread_is_warning(self):
        students = [_make_student(f"s{i}") for i in range(6)]
        buckets = [_make_bucket("k1", [f"s{i}" for i in range(5)]), _make_bucket("k2", ["s5"])]
        report = AssignmentValidator(size_spread_limit=2).validate(buckets, students)
        assert report.is_valid
        assert [v.constraint for v in report.violations] == ["class_size_spread"]

    def test_over_capacity_is_warning(self):
        students = [_make_student(f"s{i}") for i in range(3)]
        report = AssignmentValidator().validate(
            [_make_bucket("k1", ["s0", "s1", "s2"], capacity=2)], students)
        assert report.is_valid
        assert report.violations[0].constraint == "class_capacity"

    def test_special_needs_spread_only_with_factor(self):
        students = [_make_student(f"sn{i}", special_needs=True) for i in range(2)]
        students += [_make_student(f"r{i}") for i in range(2)]
        buckets = [_make_bucket("k1", ["sn0", "sn1"]), _make_bucket("k2", ["r0", "r1"])]
        assert AssignmentValidator().validate(buckets, students).violations == []
        report = AssignmentValidator().validate(buckets, students, {Factor.SPECIAL_NEEDS})
        assert [v.constraint for v in report.violations] == ["special_needs_spread"]


# ─── DIFF ─────────────────────────────────────────────────────────────────────

class TestAssignmentDiff:
    def test_identical_is_empty(self):
        buckets = [_make_bucket("k1", ["a", "b"]), _make_bucket("k2", ["c"])]
        diff = diff_assignments(buckets, buckets)
        assert diff.is_empty()
        assert diff.unchanged == 3

    def test_moves_detected(self):
        before = [_make_bucket("k1", ["a", "b"]), _make_bucket("k2", ["c"])]
        after = [_make_bucket("k1", ["a"]), _make_bucket("k2", ["c", "b"])]
        diff = diff_assignments(before, after)
        assert len(diff.moves) == 1
        move = diff.moves[0]
        assert (move.student_id, move.old_class_id, move.new_class_id) == ("b", "k1", "k2")
        assert diff.unchanged == 2

    def test_new_class_and_new_student(self):
        before = [_make_bucket("k1", ["a"])]
        after = [_make_bucket("k1", ["a"]), _make_bucket("k2", ["z"])]
        diff = diff_assignments(before, after)
        assert diff.classes_added == ["k2"]
        assert diff.moves[0].old_class_id is None

    def test_json_serializable(self):
        diff = diff_assignments([_make_bucket("k1", ["a"])], [_make_bucket("k2", ["a"])])
        data = json.loads(diff.to_json())
        assert data["classes_removed"] == ["k1"]
        assert data["moves"][0]["new_class_id"] == "k2"
