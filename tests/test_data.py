"""Tests für Testdaten-Generator und Excel-Import."""

from pathlib import Path

import pytest

from config.defaults import default_school_config
from data.excel_import import (
    ExcelImportError,
    _fuzzy_enum,
    _split_ids,
    generate_template,
    import_from_excel,
)
from data.fake_data import FakeRosterGenerator
from models.student import AcademicLevel, BehaviorLevel, Gender, RequestKind
from models.survey import RequestStatus, SurveyStatus


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def _fill_template(path: Path, rows: dict[str, list[list]]) -> None:
    """Hängt Zeilen an die Blätter einer erzeugten Vorlage an."""
    import openpyxl
    wb = openpyxl.load_workbook(str(path))
    for sheet, lines in rows.items():
        for line in lines:
            wb[sheet].append(line)
    wb.save(str(path))


def _make_workbook(tmp_path: Path, rows: dict[str, list[list]]) -> Path:
    path = tmp_path / "klassenliste.xlsx"
    generate_template(default_school_config(), path)
    _fill_template(path, rows)
    return path


_TEACHERS = [["t1", "Frau Berger", "berger@schule.example"], ["t2", "Herr Engel", ""]]


# ─── TESTDATEN-GENERATOR ──────────────────────────────────────────────────────

class TestFakeData:
    def test_deterministic_with_seed(self):
        """Gleicher Seed → identischer Datensatz."""
        a = FakeRosterGenerator(default_school_config(), seed=42).generate()
        b = FakeRosterGenerator(default_school_config(), seed=42).generate()
        assert a.model_dump() == b.model_dump()

    def test_sizes(self):
        data = FakeRosterGenerator(default_school_config(), seed=1).generate(
            n_students=40, n_teachers=2, class_list_id="cl-7")
        class_list = data.get_class_list("cl-7")
        assert len(class_list.students) == 40
        assert [t.id for t in class_list.teachers] == ["t1", "t2"]
        assert class_list.classes == []
        assert all(r.class_list_id == "cl-7" for r in data.requests)

    def test_special_needs_cluster(self):
        """Mehr Kinder mit Förderbedarf als Klassen."""
        data = FakeRosterGenerator(default_school_config(), seed=3).generate(n_teachers=3)
        students = data.class_lists[0].students
        assert sum(1 for s in students if s.special_needs) >= 4

    def test_survey_edge_cases(self):
        data = FakeRosterGenerator(default_school_config(), seed=5).generate(n_teachers=3)
        assert data.surveys[-1].status == SurveyStatus.DRAFT
        assert all(s.is_submitted for s in data.surveys[:-1])
        first = data.surveys[0]
        assert set(first.preferred_students) & set(first.challenging_students)

    def test_request_edge_cases(self):
        data = FakeRosterGenerator(default_school_config(), seed=7).generate()
        students = data.class_lists[0].students
        chain = [r for r in data.requests
                 if r.student_id == students[0].id and r.kind == RequestKind.CLASSMATE
                 and r.target_student_id == students[-1].id]
        assert chain and chain[0].is_approved
        separations = [r for r in data.requests if r.kind == RequestKind.SEPARATION]
        assert separations[0].student_id == students[1].id
        assert separations[0].target_student_id == students[2].id

    def test_single_teacher_has_no_draft(self):
        data = FakeRosterGenerator(default_school_config(), seed=9).generate(n_teachers=1)
        assert data.surveys[0].is_submitted


# ─── FUZZY-MATCHING ───────────────────────────────────────────────────────────

class TestFuzzyEnum:
    @pytest.mark.parametrize("raw,expected", [
        ("Female", Gender.FEMALE),
        ("weiblich", Gender.FEMALE),
        ("w", Gender.FEMALE),
        ("k.A.", Gender.PREFER_NOT_TO_SAY),
        ("prefer not to say", Gender.PREFER_NOT_TO_SAY),
    ])
    def test_exact_and_alias(self, raw, expected):
        assert _fuzzy_enum(raw, Gender) == (expected, False)

    def test_typo_is_guessed(self):
        assert _fuzzy_enum("femal", Gender) == (Gender.FEMALE, True)
        assert _fuzzy_enum("Profficient", AcademicLevel) == (AcademicLevel.PROFICIENT, True)

    def test_german_levels(self):
        assert _fuzzy_enum("mittel", BehaviorLevel)[0] == BehaviorLevel.MEDIUM
        assert _fuzzy_enum("genehmigt", RequestStatus)[0] == RequestStatus.APPROVED

    def test_no_match(self):
        assert _fuzzy_enum("xyz", Gender) == (None, False)

    def test_split_ids(self):
        assert _split_ids("s1, s2;s3 ,, ") == ["s1", "s2", "s3"]


# ─── EXCEL-IMPORT ─────────────────────────────────────────────────────────────

class TestExcelImport:
    def test_template_sheets(self, tmp_path: Path):
        import openpyxl
        path = tmp_path / "vorlage.xlsx"
        generate_template(default_school_config(), path)
        wb = openpyxl.load_workbook(str(path))
        assert wb.sheetnames == ["Info", "Schüler", "Lehrkräfte", "Klassen",
                                 "Umfragen", "Wünsche"]

    def test_empty_template_not_ready(self, tmp_path: Path):
        """Nur Beispielzeilen → keine Schüler, nicht bereit."""
        path = tmp_path / "vorlage.xlsx"
        generate_template(default_school_config(), path)
        data, report = import_from_excel(path, default_school_config())
        assert data.class_lists[0].students == []
        assert data.class_lists[0].teachers == []
        assert not report.is_ready

    def test_full_import(self, tmp_path: Path):
        path = _make_workbook(tmp_path, {
            "Schüler": [
                ["s1", "Mia", "Müller", "weiblich", "Advanced", "Low", "ja", ""],
                ["s2", "Ben", "Koch", "m", "sicher", "mittel", "nein", ""],
                ["s3", "Kim", "Wolf", "femal", "", "", "", "neu zugezogen"],
            ],
            "Lehrkräfte": _TEACHERS,
            "Umfragen": [["t1", "abgegeben", "s1", "s3", ""]],
            "Wünsche": [
                ["r1", "s1", "Mitschüler", "", "s2", "Nachbarskinder", "genehmigt"],
                ["r2", "s9", "Lehrkraft", "t1", "", "", "genehmigt"],
            ],
        })
        data, report = import_from_excel(path, default_school_config(), "cl-3",
                                         name="Jahrgang 1", academic_year="2026/27")

        class_list = data.get_class_list("cl-3")
        assert class_list.name == "Jahrgang 1"
        s1, s2, s3 = class_list.students
        assert s1.special_needs and s1.academic_level == AcademicLevel.ADVANCED
        assert s2.gender == Gender.MALE
        assert s2.academic_level == AcademicLevel.PROFICIENT
        assert s2.behavior_level == BehaviorLevel.MEDIUM
        assert s3.gender == Gender.FEMALE
        assert s3.academic_level == AcademicLevel.PROFICIENT
        assert [t.id for t in class_list.teachers] == ["t1", "t2"]

        assert len(data.surveys) == 1
        assert data.surveys[0].challenging_students == ["s3"]
        assert [r.id for r in data.requests] == ["r1"]
        assert data.requests[0].is_approved

        assert report.is_ready
        assert any("femal" in w for w in report.warnings)
        assert any("s9" in w for w in report.warnings)

    def test_classes_sheet(self, tmp_path: Path):
        path = _make_workbook(tmp_path, {
            "Schüler": [["s1", "", "", "m", "", "", "", ""]],
            "Lehrkräfte": _TEACHERS,
            "Klassen": [["1a", "", "t1", "A101"], ["1b", "Klasse 1b", "t2", ""]],
        })
        data, _ = import_from_excel(path, default_school_config())
        classes = data.class_lists[0].classes
        assert [c.name for c in classes] == ["1a", "Klasse 1b"]
        assert classes[0].room_number == "A101"
        assert classes[1].room_number is None

    def test_invalid_rows_raise(self, tmp_path: Path):
        path = _make_workbook(tmp_path, {
            "Schüler": [
                ["s1", "", "", "xyz", "", "", "", ""],
                ["s2", "", "", "w", "", "", "", ""],
                ["s2", "", "", "m", "", "", "", ""],
                ["s3", "", "", "", "", "", "", ""],
            ],
            "Lehrkräfte": _TEACHERS,
        })
        with pytest.raises(ExcelImportError) as exc:
            import_from_excel(path, default_school_config())
        message = str(exc.value)
        assert "3 Fehlern" in message
        assert "xyz" in message
        assert "Doppelte ID 's2'" in message
        assert "Geschlecht fehlt" in message

    def test_missing_student_sheet(self, tmp_path: Path):
        import openpyxl
        path = tmp_path / "ohne_schueler.xlsx"
        wb = openpyxl.Workbook()
        wb.active.title = "Lehrkräfte"
        wb.save(str(path))
        with pytest.raises(ExcelImportError, match="Schüler"):
            import_from_excel(path, default_school_config())

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ExcelImportError):
            import_from_excel(tmp_path / "gibtsnicht.xlsx", default_school_config())
