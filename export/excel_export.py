"""Excel-Export der gebildeten Klassen (openpyxl)."""

from pathlib import Path
from typing import Optional

from analysis.balance import Statistics
from models.class_bucket import ClassBucket
from models.class_list import ClassList

from export.helpers import COLORS, class_composition, score_color, today_str


class ExcelExporter:
    """Exportiert Klassen einer Klassenliste: Übersicht, je Klasse ein Blatt, Statistik."""

    def __init__(
        self,
        class_list: ClassList,
        classes: list[ClassBucket],
        statistics: Optional[Statistics] = None,
        school_name: str = "",
    ):
        self.class_list = class_list
        self.classes = classes
        self.statistics = statistics
        self.school_name = school_name
        self._students = {s.id: s for s in class_list.students}

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def export(self, output_path: Path) -> None:
        """Erstellt die Excel-Datei mit allen Sheets."""
        from openpyxl import Workbook
        wb = Workbook()
        wb.remove(wb.active)   # Leeres Standard-Sheet entfernen

        self._sheet_uebersicht(wb)
        for bucket in self.classes:
            self._sheet_klasse(wb, bucket)
        if self.statistics is not None:
            self._sheet_statistik(wb)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)

    # ─── Style-Helpers ────────────────────────────────────────────────────────

    def _fill(self, hex_color: str):
        from openpyxl.styles import PatternFill
        return PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")

    def _thin_border(self):
        from openpyxl.styles import Border, Side
        s = Side(border_style="thin", color="BBBBBB")
        return Border(left=s, right=s, top=s, bottom=s)

    def _write_headers(self, ws, row: int, headers: list[str]) -> None:
        from openpyxl.styles import Font
        fill = self._fill(COLORS["header"])
        border = self._thin_border()
        for col, h in enumerate(headers, 1):
            c = ws.cell(row=row, column=col, value=h)
            c.fill = fill
            c.font = Font(bold=True, color="FFFFFF")
            c.border = border

    def _members(self, bucket: ClassBucket):
        return [self._students[sid] for sid in bucket.student_ids if sid in self._students]

    def _teacher_name(self, teacher_id: Optional[str]) -> str:
        if teacher_id is None:
            return "–"
        teacher = self.class_list.teacher(teacher_id)
        return teacher.name if teacher and teacher.name else teacher_id

    # ─── Sheets ───────────────────────────────────────────────────────────────

    def _sheet_uebersicht(self, wb) -> None:
        from openpyxl.styles import Font
        ws = wb.create_sheet(title="Übersicht", index=0)
        border = self._thin_border()

        row = 1
        title = self.school_name or self.class_list.name or self.class_list.id
        ws.cell(row=row, column=1, value=title).font = Font(bold=True, size=14)
        row += 1
        ws.cell(row=row, column=1, value=f"Erstellt: {today_str()}")
        ws.cell(row=row, column=3,
                value=f"Klassenliste: {self.class_list.name or self.class_list.id}")
        row += 2

        composition_keys = list(class_composition([]).keys())
        self._write_headers(ws, row, ["Klasse", "Lehrkraft", "Schüler", *composition_keys])
        row += 1

        for bucket in self.classes:
            counts = class_composition(self._members(bucket))
            values = [bucket.name or bucket.id, self._teacher_name(bucket.teacher_id),
                      bucket.size, *counts.values()]
            for col, value in enumerate(values, 1):
                ws.cell(row=row, column=col, value=value).border = border
            if bucket.is_over_capacity:
                ws.cell(row=row, column=3).fill = self._fill(COLORS["bad"])
            row += 1

        ws.column_dimensions["A"].width = 14
        ws.column_dimensions["B"].width = 24

    def _sheet_klasse(self, wb, bucket: ClassBucket) -> None:
        # Blattnamen: max. 31 Zeichen, keine Sonderzeichen wie / oder :
        title = "".join(ch for ch in (bucket.name or bucket.id) if ch not in "[]:*?/\\")[:31]
        ws = wb.create_sheet(title=title or bucket.id[:31])
        border = self._thin_border()

        ws.cell(row=1, column=1, value=f"Lehrkraft: {self._teacher_name(bucket.teacher_id)}")
        if bucket.room_number:
            ws.cell(row=1, column=4, value=f"Raum: {bucket.room_number}")
        self._write_headers(ws, 3, ["ID", "Nachname", "Vorname", "Geschlecht",
                                    "Leistung", "Verhalten", "Förderbedarf"])
        row = 4
        for s in sorted(self._members(bucket), key=lambda s: (s.last_name, s.first_name)):
            values = [s.id, s.last_name, s.first_name, s.gender.value,
                      s.academic_level.value, s.behavior_level.value,
                      "ja" if s.special_needs else ""]
            for col, value in enumerate(values, 1):
                c = ws.cell(row=row, column=col, value=value)
                c.border = border
                if s.special_needs:
                    c.fill = self._fill(COLORS["special"])
            row += 1

        for letter, width in zip("ABCDEFG", [10, 18, 16, 14, 14, 12, 14]):
            ws.column_dimensions[letter].width = width

    def _sheet_statistik(self, wb) -> None:
        """Kennzahlen und Balance-Scores pro Klasse."""
        from openpyxl.styles import Font
        stats = self.statistics
        ws = wb.create_sheet(title="Statistik")
        border = self._thin_border()

        row = 1
        ws.cell(row=row, column=1, value="Auswertung").font = Font(bold=True, size=13)
        row += 2
        self._write_headers(ws, row, ["Kennzahl", "Wert"])
        row += 1
        kpis = [
            ("Schüler gesamt", stats.total_students),
            ("Platziert", stats.students_placed),
            ("Klassen", stats.class_count),
            ("Ø Klassengröße", stats.average_class_size),
        ]
        if stats.requests_fulfilled is not None:
            kpis.append(("Elternwünsche erfüllt (%)", stats.requests_fulfilled))
        if stats.overall_score is not None:
            kpis.append(("Gesamtscore", stats.overall_score))
        for name, value in kpis:
            ws.cell(row=row, column=1, value=name).border = border
            ws.cell(row=row, column=2, value=value).border = border
            row += 1

        columns = [
            ("Geschlecht", stats.gender_balance),
            ("Leistung", stats.academic_balance),
            ("Verhalten", stats.behavior_balance),
            ("Kompatibilität", stats.teacher_compatibility),
        ]
        columns = [(t, v) for t, v in columns if v is not None]
        if not columns:
            return

        row += 2
        self._write_headers(ws, row, ["Klasse", *(t for t, _ in columns)])
        row += 1
        for i, bucket in enumerate(self.classes):
            ws.cell(row=row, column=1, value=bucket.name or bucket.id).border = border
            for col, (_, values) in enumerate(columns, 2):
                c = ws.cell(row=row, column=col, value=values[i])
                c.border = border
                c.fill = self._fill(score_color(values[i]))
            row += 1

        ws.column_dimensions["A"].width = 28
        for letter in "BCDE":
            ws.column_dimensions[letter].width = 14
