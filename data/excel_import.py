"""Excel-Import und Template-Generator für Klassenlisten.

Template-Generator: Leere Excel-Vorlage mit Beispielzeilen und Auswahllisten.
Import-Funktion:    Excel → SchoolData mit Validierung und ReadinessReport.
"""

import difflib
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from config.schema import SchoolConfig, _norm_key
from models.class_bucket import ClassBucket
from models.class_list import ClassList, ReadinessReport
from models.school_data import SchoolData
from models.student import (
    AcademicLevel,
    BehaviorLevel,
    Gender,
    RequestKind,
    Student,
    normalize_enum,
)
from models.survey import ParentRequest, RequestStatus, SurveyStatus, TeacherSurvey
from models.teacher import Teacher


class ExcelImportError(Exception):
    """Fehler beim Excel-Import."""


# ─── Deutsche Bezeichnungen ──────────────────────────────────────────────────
# Schlüssel sind bereits normalisiert (_norm_key).

_GERMAN_ALIASES: dict[type, dict[str, object]] = {
    Gender: {
        "m": Gender.MALE, "männlich": Gender.MALE, "junge": Gender.MALE,
        "w": Gender.FEMALE, "weiblich": Gender.FEMALE, "mädchen": Gender.FEMALE,
        "d": Gender.OTHER, "divers": Gender.OTHER,
        "keineangabe": Gender.PREFER_NOT_TO_SAY, "k.a.": Gender.PREFER_NOT_TO_SAY,
    },
    AcademicLevel: {
        "fortgeschritten": AcademicLevel.ADVANCED, "sehrgut": AcademicLevel.ADVANCED,
        "sicher": AcademicLevel.PROFICIENT, "gut": AcademicLevel.PROFICIENT,
        "grundlegend": AcademicLevel.BASIC,
        "unterdurchschnittlich": AcademicLevel.BELOW_BASIC,
        "förderbedarf": AcademicLevel.BELOW_BASIC,
    },
    BehaviorLevel: {
        "hoch": BehaviorLevel.HIGH, "mittel": BehaviorLevel.MEDIUM,
        "niedrig": BehaviorLevel.LOW, "gering": BehaviorLevel.LOW,
    },
    RequestKind: {
        "lehrkraft": RequestKind.TEACHER, "lehrer": RequestKind.TEACHER,
        "mitschüler": RequestKind.CLASSMATE, "freund": RequestKind.CLASSMATE,
        "trennung": RequestKind.SEPARATION,
    },
    RequestStatus: {
        "offen": RequestStatus.PENDING, "genehmigt": RequestStatus.APPROVED,
        "abgelehnt": RequestStatus.DECLINED,
    },
    SurveyStatus: {
        "entwurf": SurveyStatus.DRAFT, "abgegeben": SurveyStatus.SUBMITTED,
        "geprüft": SurveyStatus.REVIEWED,
    },
}

_YES = {"ja", "j", "x", "1", "true", "yes", "wahr"}

_EXAMPLE_ID = "BEISPIEL"


def _fuzzy_enum(raw: str, enum_cls) -> tuple[Optional[object], bool]:
    """Findet den passenden Enum-Wert. Rückgabe: (Wert, war_geraten)."""
    direct = normalize_enum(raw, enum_cls)
    if isinstance(direct, enum_cls):
        return direct, False
    key = _norm_key(raw)
    aliases = _GERMAN_ALIASES.get(enum_cls, {})
    if key in aliases:
        return aliases[key], False

    candidates: dict[str, object] = dict(aliases)
    for member in enum_cls:
        candidates[_norm_key(member.value)] = member
    matches = difflib.get_close_matches(key, list(candidates), n=1, cutoff=0.6)
    if matches:
        return candidates[matches[0]], True
    return None, False


def _split_ids(raw: str) -> list[str]:
    return [t.strip() for t in raw.replace(";", ",").split(",") if t.strip()]


# ─── Blatt-Definitionen ──────────────────────────────────────────────────────

_SHEETS: dict[str, list[tuple[str, float]]] = {
    "Schüler": [
        ("ID", 10), ("Vorname", 16), ("Nachname", 18), ("Geschlecht", 14),
        ("Leistung", 16), ("Verhalten", 12), ("Förderbedarf", 14), ("Notizen", 30),
    ],
    "Lehrkräfte": [("ID", 10), ("Name", 24), ("E-Mail", 30)],
    "Klassen": [("ID", 12), ("Name", 14), ("Lehrkraft", 12), ("Raum", 10)],
    "Umfragen": [
        ("Lehrkraft", 12), ("Status", 12),
        ("Bevorzugt (kommagetrennt)", 30), ("Herausfordernd (kommagetrennt)", 30),
        ("Notizen", 30),
    ],
    "Wünsche": [
        ("ID", 10), ("Schüler", 10), ("Art", 14), ("Lehrkraft", 12),
        ("Mitschüler", 12), ("Begründung", 30), ("Status", 12),
    ],
}

_EXAMPLES: dict[str, list] = {
    "Schüler": [_EXAMPLE_ID, "Mia", "Müller", "weiblich", "Proficient", "Low", "nein", ""],
    "Lehrkräfte": [_EXAMPLE_ID, "Frau Berger", "berger@schule.example"],
    "Klassen": [_EXAMPLE_ID, "1a", "t1", "A101"],
    "Umfragen": [_EXAMPLE_ID, "abgegeben", "s001, s007", "s012", ""],
    "Wünsche": [_EXAMPLE_ID, "s001", "Mitschüler", "", "s002", "Nachbarskinder", "genehmigt"],
}

_CHOICES: dict[tuple[str, str], list[str]] = {
    ("Schüler", "Geschlecht"): [g.value for g in Gender],
    ("Schüler", "Leistung"): [a.value for a in AcademicLevel],
    ("Schüler", "Verhalten"): [b.value for b in BehaviorLevel],
    ("Schüler", "Förderbedarf"): ["ja", "nein"],
    ("Umfragen", "Status"): [s.value for s in SurveyStatus],
    ("Wünsche", "Art"): [k.value for k in RequestKind],
    ("Wünsche", "Status"): [s.value for s in RequestStatus],
}


# ─── TEMPLATE-GENERATOR ───────────────────────────────────────────────────────

def generate_template(config: SchoolConfig, path: Path) -> None:
    """Erzeugt eine leere Excel-Vorlage.

    Blätter:
      - Schüler:     eine Zeile pro Kind (Pflicht)
      - Lehrkräfte:  eine Zeile pro Lehrkraft
      - Klassen:     vorhandene Klassen (optional, sonst eine pro Lehrkraft)
      - Umfragen:    Einschätzungen der Lehrkräfte (optional)
      - Wünsche:     Elternwünsche (optional)

    Die kursive Zeile mit ID "BEISPIEL" wird beim Import übersprungen.
    """
    try:
        import openpyxl
        from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
        from openpyxl.utils import get_column_letter
        from openpyxl.worksheet.datavalidation import DataValidation
    except ImportError:
        raise ImportError("openpyxl nicht installiert. Bitte: pip install openpyxl")

    wb = openpyxl.Workbook()
    wb.remove(wb.active)

    hdr_font = Font(bold=True, color="FFFFFF", size=11)
    hdr_fill = PatternFill("solid", fgColor="2E6DA4")
    ex_font = Font(italic=True, color="888888")
    ex_fill = PatternFill("solid", fgColor="F5F5F5")
    center = Alignment(horizontal="center", vertical="center")
    thin = Side(style="thin", color="BBBBBB")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)

    for title, columns in _SHEETS.items():
        ws = wb.create_sheet(title)
        for col, (header, width) in enumerate(columns, 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = hdr_font
            cell.fill = hdr_fill
            cell.alignment = center
            cell.border = border
            ws.column_dimensions[get_column_letter(col)].width = width

            choices = _CHOICES.get((title, header))
            if choices:
                dv = DataValidation(
                    type="list", formula1='"' + ",".join(choices) + '"', allow_blank=True)
                dv.add(f"{get_column_letter(col)}2:{get_column_letter(col)}500")
                ws.add_data_validation(dv)

        for col, value in enumerate(_EXAMPLES[title], 1):
            cell = ws.cell(row=2, column=col, value=value)
            cell.font = ex_font
            cell.fill = ex_fill
            cell.border = border
        ws.freeze_panes = "A2"

    info = wb.create_sheet("Info", 0)
    info["A1"] = f"Klassenbildung – {config.school_name}"
    info["A1"].font = Font(bold=True, size=14)
    info["A3"] = "Klassengröße (Richtwert):"
    info["B3"] = config.optimizer.class_capacity
    info["A4"] = "Geschlecht:"
    info["B4"] = "Male / Female / Other / PreferNotToSay (auch m / w / d)"
    info["A5"] = "Beispielzeilen:"
    info["B5"] = f"Zeilen mit ID '{_EXAMPLE_ID}' werden ignoriert."
    info.column_dimensions["A"].width = 28
    info.column_dimensions["B"].width = 60

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(str(path))


# ─── IMPORT ───────────────────────────────────────────────────────────────────

class ExcelImporter:
    """Importiert eine Klassenliste aus einer Excel-Vorlage."""

    def __init__(self, path: Path, config: SchoolConfig, class_list_id: str = "cl-1") -> None:
        self.path = Path(path)
        self.config = config
        self.class_list_id = class_list_id
        self._wb = None
        self._errors: list[str] = []
        self._warnings: list[str] = []

    def _open(self):
        try:
            import openpyxl
            self._wb = openpyxl.load_workbook(
                str(self.path), read_only=True, data_only=True
            )
        except FileNotFoundError:
            raise ExcelImportError(f"Datei nicht gefunden: {self.path}")
        except Exception as e:
            raise ExcelImportError(f"Fehler beim Öffnen der Excel-Datei: {e}")

    def _get_sheet(self, name: str):
        if self._wb is None:
            self._open()
        for sn in self._wb.sheetnames:
            if sn.strip().lower() == name.strip().lower():
                return self._wb[sn]
        return None

    def _sheet_rows(self, sheet) -> list[tuple[int, dict]]:
        """Tabellenblatt → (Zeilennummer, Dict) ohne Leer- und Beispielzeilen."""
        rows = list(sheet.iter_rows(values_only=True))
        if not rows:
            return []
        headers = [
            str(h).strip().lower() if h is not None else f"col_{i}"
            for i, h in enumerate(rows[0])
        ]
        result = []
        for line, row in enumerate(rows[1:], 2):
            if all(v is None or v == "" for v in row):
                continue
            values = {
                headers[i]: (str(v).strip() if v is not None else "")
                for i, v in enumerate(row)
                if i < len(headers)
            }
            if _EXAMPLE_ID in (values.get("id"), values.get("lehrkraft")):
                continue
            result.append((line, values))
        return result

    def _parse_enum(self, raw: str, enum_cls, where: str, default=None):
        """Normalisiert einen Enum-Wert. Fuzzy-matching bei Tippfehlern."""
        if not raw:
            return default
        value, guessed = _fuzzy_enum(raw, enum_cls)
        if value is None:
            self._errors.append(
                f"{where}: Unbekannter Wert '{raw}'. "
                f"Erlaubt: {', '.join(m.value for m in enum_cls)}"
            )
            return default
        if guessed:
            self._warnings.append(
                f"{where}: '{raw}' unbekannt → wird als '{value.value}' importiert.")
        return value

    # ── Schüler ─────────────────────────────────────────────────────────────

    def import_students(self) -> list[Student]:
        sheet = self._get_sheet("Schüler")
        if sheet is None:
            raise ExcelImportError("Tabellenblatt 'Schüler' nicht gefunden.")

        students = []
        used_ids: set[str] = set()
        for line, row in self._sheet_rows(sheet):
            where = f"Schüler Zeile {line}"
            sid = row.get("id", "")
            if not sid:
                self._errors.append(f"{where}: ID fehlt")
                continue
            if sid in used_ids:
                self._errors.append(f"{where}: Doppelte ID '{sid}'")
                continue
            used_ids.add(sid)

            gender = self._parse_enum(row.get("geschlecht", ""), Gender, where)
            if gender is None:
                if not row.get("geschlecht"):
                    self._errors.append(f"{where}: Geschlecht fehlt")
                continue
            try:
                students.append(Student(
                    id=sid,
                    first_name=row.get("vorname", ""),
                    last_name=row.get("nachname", ""),
                    gender=gender,
                    academic_level=self._parse_enum(
                        row.get("leistung", ""), AcademicLevel, where,
                        default=AcademicLevel.PROFICIENT),
                    behavior_level=self._parse_enum(
                        row.get("verhalten", ""), BehaviorLevel, where,
                        default=BehaviorLevel.LOW),
                    special_needs=row.get("förderbedarf", "").lower() in _YES,
                    notes=row.get("notizen", ""),
                ))
            except ValidationError as e:
                self._errors.append(f"{where}: {e.errors()[0]['msg']}")
        return students

    # ── Lehrkräfte und Klassen ──────────────────────────────────────────────

    def import_teachers(self) -> list[Teacher]:
        sheet = self._get_sheet("Lehrkräfte")
        if sheet is None:
            raise ExcelImportError("Tabellenblatt 'Lehrkräfte' nicht gefunden.")
        teachers = []
        used_ids: set[str] = set()
        for line, row in self._sheet_rows(sheet):
            tid = row.get("id", "")
            if not tid:
                self._errors.append(f"Lehrkräfte Zeile {line}: ID fehlt")
                continue
            if tid in used_ids:
                self._errors.append(f"Lehrkräfte Zeile {line}: Doppelte ID '{tid}'")
                continue
            used_ids.add(tid)
            teachers.append(Teacher(id=tid, name=row.get("name", ""),
                                    email=row.get("e-mail", "")))
        return teachers

    def import_classes(self) -> list[ClassBucket]:
        """Optionales Blatt 'Klassen'; fehlt es, werden Klassen pro Lehrkraft gebildet."""
        sheet = self._get_sheet("Klassen")
        if sheet is None:
            return []
        classes = []
        used_ids: set[str] = set()
        for line, row in self._sheet_rows(sheet):
            cid = row.get("id", "")
            if not cid or cid in used_ids:
                self._errors.append(f"Klassen Zeile {line}: ID fehlt oder doppelt")
                continue
            used_ids.add(cid)
            classes.append(ClassBucket(
                id=cid,
                name=row.get("name", "") or cid,
                teacher_id=row.get("lehrkraft") or None,
                room_number=row.get("raum") or None,
                capacity=self.config.optimizer.class_capacity,
            ))
        return classes

    # ── Umfragen und Wünsche ────────────────────────────────────────────────

    def import_surveys(self, teacher_ids: set[str]) -> list[TeacherSurvey]:
        sheet = self._get_sheet("Umfragen")
        if sheet is None:
            return []
        surveys = []
        for line, row in self._sheet_rows(sheet):
            where = f"Umfragen Zeile {line}"
            tid = row.get("lehrkraft", "")
            if tid not in teacher_ids:
                self._warnings.append(f"{where}: Lehrkraft '{tid}' unbekannt, übersprungen")
                continue
            surveys.append(TeacherSurvey(
                teacher_id=tid,
                class_list_id=self.class_list_id,
                status=self._parse_enum(row.get("status", ""), SurveyStatus, where,
                                        default=SurveyStatus.SUBMITTED),
                preferred_students=_split_ids(row.get("bevorzugt (kommagetrennt)", "")),
                challenging_students=_split_ids(row.get("herausfordernd (kommagetrennt)", "")),
                general_notes=row.get("notizen", ""),
            ))
        return surveys

    def import_requests(self, student_ids: set[str]) -> list[ParentRequest]:
        sheet = self._get_sheet("Wünsche")
        if sheet is None:
            return []
        requests = []
        for line, row in self._sheet_rows(sheet):
            where = f"Wünsche Zeile {line}"
            sid = row.get("schüler", "")
            if sid not in student_ids:
                self._warnings.append(f"{where}: Schüler '{sid}' unbekannt, übersprungen")
                continue
            kind = self._parse_enum(row.get("art", ""), RequestKind, where)
            if kind is None:
                continue
            requests.append(ParentRequest(
                id=row.get("id", "") or f"r{len(requests) + 1}",
                student_id=sid,
                class_list_id=self.class_list_id,
                kind=kind,
                target_teacher_id=row.get("lehrkraft") or None,
                target_student_id=row.get("mitschüler") or None,
                reason=row.get("begründung", ""),
                status=self._parse_enum(row.get("status", ""), RequestStatus, where,
                                        default=RequestStatus.PENDING),
            ))
        return requests

    def import_all(
        self, name: str = "", grade_level: str = "", academic_year: str = ""
    ) -> tuple[SchoolData, ReadinessReport]:
        """Importiert alle Blätter → SchoolData + ReadinessReport."""
        self._open()
        self._errors = []
        self._warnings = []

        students = self.import_students()
        try:
            teachers = self.import_teachers()
        except ExcelImportError as e:
            self._warnings.append(str(e))
            teachers = []
        classes = self.import_classes()
        surveys = self.import_surveys({t.id for t in teachers})
        requests = self.import_requests({s.id for s in students})

        if self._errors:
            raise ExcelImportError(
                f"Import mit {len(self._errors)} Fehlern:\n"
                + "\n".join(f"  • {e}" for e in self._errors)
            )

        class_list = ClassList(
            id=self.class_list_id,
            name=name or self.path.stem,
            grade_level=grade_level,
            academic_year=academic_year,
            students=students,
            classes=classes,
            teachers=teachers,
        )
        school_data = SchoolData(
            school_name=self.config.school_name,
            class_lists=[class_list],
            surveys=surveys,
            requests=requests,
        )

        readiness = class_list.check_readiness(self.config.optimizer.class_capacity)
        readiness = ReadinessReport(
            is_ready=readiness.is_ready,
            errors=readiness.errors,
            warnings=readiness.warnings + self._warnings,
        )
        return school_data, readiness


def import_from_excel(
    path: Path, config: SchoolConfig, class_list_id: str = "cl-1", **meta
) -> tuple[SchoolData, ReadinessReport]:
    """Importiert eine Klassenliste aus einer Excel-Vorlage.

    Args:
        path:          Pfad zur Excel-Datei (.xlsx)
        config:        Konfiguration (Klassengröße, Schulname)
        class_list_id: ID der neuen Klassenliste
        **meta:        name, grade_level, academic_year

    Returns:
        (SchoolData, ReadinessReport)

    Raises:
        ExcelImportError: Bei kritischen Import-Fehlern.
    """
    importer = ExcelImporter(path, config, class_list_id)
    return importer.import_all(**meta)
