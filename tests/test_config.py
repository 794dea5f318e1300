"""Tests für das Konfigurationssystem und die Datenmodelle."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from config.defaults import (
    STRATEGY_WEIGHTS,
    default_school_config,
    strategy_weights,
)
from config.manager import ConfigManager
from config.schema import (
    Factor,
    LoggingConfig,
    OptimizerConfig,
    Strategy,
)
from models.class_bucket import ClassBucket
from models.class_list import ClassList
from models.school_data import SchoolData
from models.student import (
    AcademicLevel,
    BehaviorLevel,
    Gender,
    PlacementRequest,
    RequestKind,
    Student,
)
from models.survey import ParentRequest, RequestStatus
from models.teacher import Teacher


# ─── DEFAULT-KONFIGURATION ────────────────────────────────────────────────────

class TestDefaultConfig:
    def test_default_school_config_valid(self):
        """Standard-Konfiguration lässt sich ohne Fehler erstellen."""
        config = default_school_config()
        assert config.optimizer.class_capacity == 30
        assert config.optimizer.rebalance_threshold == 2
        assert config.optimizer.default_strategy == Strategy.BALANCED
        assert set(config.optimizer.default_factors) == set(Factor)

    def test_every_strategy_has_weights(self):
        assert set(STRATEGY_WEIGHTS) == set(Strategy)

    def test_balanced_weights_uniform(self):
        weights = strategy_weights(Strategy.BALANCED)
        assert {weights.weight_for(f) for f in Factor} == {1.0}

    def test_strategy_weights_returns_copy(self):
        """Änderungen an der Kopie wirken nicht auf die Tabelle zurück."""
        weights = strategy_weights(Strategy.ACADEMIC)
        weights.academic_level = 99
        assert strategy_weights(Strategy.ACADEMIC).academic_level == 2


# ─── SCHEMA-VALIDIERUNG ───────────────────────────────────────────────────────

class TestSchema:
    @pytest.mark.parametrize("raw", ["academicLevel", "academic_level", "ACADEMIC-LEVEL"])
    def test_factor_parse_variants(self, raw):
        assert Factor.parse(raw) == Factor.ACADEMIC_LEVEL

    def test_factor_parse_unknown(self):
        with pytest.raises(ValueError, match="Unbekannter Faktor"):
            Factor.parse("shoeSize")

    def test_default_factors_parsed(self):
        oc = OptimizerConfig(default_factors=["gender", "special_needs"])
        assert oc.default_factors == [Factor.GENDER, Factor.SPECIAL_NEEDS]

    def test_label_requires_placeholder(self):
        with pytest.raises(ValidationError):
            OptimizerConfig(new_class_label="Klasse")

    def test_capacity_bounds(self):
        with pytest.raises(ValidationError):
            OptimizerConfig(class_capacity=0)

    def test_logging_level_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")


# ─── CONFIG-MANAGER ───────────────────────────────────────────────────────────

class TestConfigManager:
    def test_save_and_load_roundtrip(self, tmp_path: Path):
        """Config speichern und wieder laden ergibt identische Werte."""
        config = default_school_config().model_copy(update={
            "school_name": "Grundschule am See",
            "optimizer": OptimizerConfig(
                default_factors=[Factor.GENDER], default_strategy=Strategy.REQUESTS,
                class_capacity=24),
        })
        mgr = ConfigManager(tmp_path / "klassenbildung.yaml")
        mgr.save(config)
        loaded = mgr.load()
        assert loaded == config

    def test_saved_file_has_comments(self, tmp_path: Path):
        mgr = ConfigManager(tmp_path / "klassenbildung.yaml")
        mgr.save(default_school_config())
        text = (tmp_path / "klassenbildung.yaml").read_text(encoding="utf-8")
        assert "Klassenbildung" in text
        assert "─── Optimierung ───" in text

    def test_first_run_check(self, tmp_path: Path):
        mgr = ConfigManager(tmp_path / "klassenbildung.yaml")
        assert mgr.first_run_check() is True
        mgr.save(default_school_config())
        assert mgr.first_run_check() is False

    def test_load_nonexistent_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            ConfigManager().load(tmp_path / "not_there.yaml")

    def test_load_invalid_raises_value_error(self, tmp_path: Path):
        path = tmp_path / "broken.yaml"
        path.write_text("optimizer:\n  class_capacity: 0\n", encoding="utf-8")
        with pytest.raises(ValueError, match="ungültig"):
            ConfigManager().load(path)


# ─── DATENMODELLE ─────────────────────────────────────────────────────────────

class TestModels:
    @pytest.mark.parametrize("raw,expected", [
        ("Below Basic", AcademicLevel.BELOW_BASIC),
        ("below_basic", AcademicLevel.BELOW_BASIC),
        ("BELOWBASIC", AcademicLevel.BELOW_BASIC),
        ("advanced", AcademicLevel.ADVANCED),
    ])
    def test_student_enum_normalization(self, raw, expected):
        """Schreibvarianten werden auf einen kanonischen Wert abgebildet."""
        s = Student(id="a", gender="prefer_not_to_say", academic_level=raw)
        assert s.academic_level == expected
        assert s.gender == Gender.PREFER_NOT_TO_SAY

    def test_student_defaults(self):
        s = Student(id=" a ", gender="female")
        assert s.id == "a"
        assert s.academic_level == AcademicLevel.PROFICIENT
        assert s.behavior_level == BehaviorLevel.LOW
        assert s.gender_category == "female"
        assert not s.has_requests

    def test_student_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            Student(id="  ", gender="male")

    def test_compatibility_values_checked(self):
        with pytest.raises(ValidationError):
            Student(id="a", gender="male", teacher_compatibility={"t1": 2})

    def test_derived_fields_not_serialized(self):
        """Kompatibilität und Wünsche werden nicht mit gespeichert."""
        s = Student(
            id="a", gender="male", teacher_compatibility={"t1": 1},
            parent_requests=[PlacementRequest(kind=RequestKind.TEACHER, target_teacher_id="t1")],
        )
        dumped = s.model_dump()
        assert "teacher_compatibility" not in dumped
        assert "parent_requests" not in dumped

    def test_placement_request_needs_target(self):
        with pytest.raises(ValidationError):
            PlacementRequest(kind=RequestKind.CLASSMATE)
        with pytest.raises(ValidationError):
            PlacementRequest(kind=RequestKind.SEPARATION, target_student_id="b")

    def test_parent_request_status_normalized(self):
        r = ParentRequest(id="r1", student_id="a", class_list_id="cl-1",
                          kind="Teacher", status="APPROVED", target_teacher_id="t1")
        assert r.kind == RequestKind.TEACHER
        assert r.status == RequestStatus.APPROVED
        assert r.is_approved

    def test_class_list_duplicate_student_rejected(self):
        with pytest.raises(ValidationError):
            ClassList(id="cl-1", students=[Student(id="a", gender="male"),
                                           Student(id="a", gender="female")])

    def test_bucket_over_capacity(self):
        b = ClassBucket(id="k1", capacity=2, student_ids=["a", "b", "c"])
        assert b.size == 3
        assert b.is_over_capacity
        assert b.emptied().student_ids == []
        assert b.student_ids == ["a", "b", "c"]


# ─── BEREITSCHAFTS-CHECK ──────────────────────────────────────────────────────

class TestReadiness:
    def test_empty_roster_not_ready(self):
        report = ClassList(id="cl-1", teachers=[Teacher(id="t1")]).check_readiness()
        assert not report.is_ready
        assert any("Keine Schüler" in e for e in report.errors)

    def test_no_classes_no_teachers_not_ready(self):
        report = ClassList(id="cl-1", students=[Student(id="a", gender="male")]).check_readiness()
        assert not report.is_ready

    def test_capacity_warning(self):
        students = [Student(id=f"s{i}", gender="male") for i in range(5)]
        cl = ClassList(id="cl-1", students=students, teachers=[Teacher(id="t1")])
        report = cl.check_readiness(class_capacity=4)
        assert report.is_ready
        assert any("Kapazität" in w for w in report.warnings)

    def test_class_teacher_warnings(self):
        cl = ClassList(
            id="cl-1",
            students=[Student(id="a", gender="male")],
            teachers=[Teacher(id="t1")],
            classes=[ClassBucket(id="k1"), ClassBucket(id="k2", teacher_id="tx")],
        )
        report = cl.check_readiness()
        assert report.is_ready
        assert len(report.warnings) == 2


# ─── DATENSATZ ────────────────────────────────────────────────────────────────

class TestSchoolData:
    def test_json_roundtrip(self, tmp_path: Path):
        data = SchoolData(
            school_name="Test",
            class_lists=[ClassList(id="cl-1", students=[Student(id="a", gender="male")])],
        )
        path = tmp_path / "data.json"
        data.save_json(path)
        loaded = SchoolData.load_json(path)
        assert loaded.get_class_list("cl-1").students[0].id == "a"
        assert loaded.modified_at is not None

    def test_load_missing_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            SchoolData.load_json(tmp_path / "missing.json")
