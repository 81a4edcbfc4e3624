"""Excel-Export des Stundenplans (openpyxl)."""

from pathlib import Path
from typing import Optional

from config.schema import SchoolConfig
from models.grade_section import GradeSection
from models.schedule_entry import ScheduleEntry
from models.teacher import Teacher
from models.timeslot import DAYS_OF_WEEK
from scheduling.grouping import entries_for_grade_section, entries_for_teacher, group_entries

from export.helpers import (
    COLORS, build_week_grid, class_color, cohorts_in, format_cohorts,
    format_days, format_entries, format_slots, time_rows, today_str,
)


class ExcelExporter:
    """Exportiert die Eintragssammlung: Übersicht, je Lerngruppe und je Lehrkraft ein Blatt."""

    # Spaltenbreiten (Excel-Einheiten)
    COL_ZEIT_W = 15
    COL_DAY_W  = 22

    # Zeilenhöhen (Punkte)
    ROW_HEADER_H  = 22
    ROW_LESSON_H  = 48

    def __init__(
        self,
        entries: list[ScheduleEntry],
        config: Optional[SchoolConfig] = None,
        teachers: Optional[list[Teacher]] = None,
    ):
        self.entries   = list(entries)
        self.config    = config
        self.teachers  = list(teachers or [])
        self.days      = list(config.calendar.days_of_week) if config else list(DAYS_OF_WEEK)

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def export(self, output_path: Path, include_teachers: bool = True) -> None:
        """Erstellt die Excel-Datei mit allen Sheets."""
        from openpyxl import Workbook
        wb = Workbook()
        wb.remove(wb.active)   # Leeres Standard-Sheet entfernen

        self._sheet_uebersicht(wb)

        for gs in cohorts_in(self.entries):
            self._sheet_lerngruppe(wb, gs)

        if include_teachers:
            for teacher_id, name in self._teachers_with_entries():
                self._sheet_lehrer(wb, teacher_id, name)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)

    def _teachers_with_entries(self) -> list[tuple[str, str]]:
        names = {t.id: t.name for t in self.teachers}
        seen: dict[str, str] = {}
        for e in self.entries:
            if e.teacher_id not in seen:
                seen[e.teacher_id] = names.get(e.teacher_id) or e.teacher_name or e.teacher_id
        return sorted(seen.items(), key=lambda kv: kv[1])

    # ─── Style-Helpers ────────────────────────────────────────────────────────

    def _fill(self, hex_color: str):
        from openpyxl.styles import PatternFill
        return PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")

    def _center_align(self, wrap: bool = True):
        from openpyxl.styles import Alignment
        return Alignment(wrap_text=wrap, horizontal="center", vertical="center")

    def _thin_border(self):
        from openpyxl.styles import Border, Side
        s = Side(border_style="thin", color="BBBBBB")
        return Border(left=s, right=s, top=s, bottom=s)

    def _write_header(self, ws, row: int, headers: list[str]) -> None:
        from openpyxl.styles import Font
        fill = self._fill(COLORS["header"])
        border = self._thin_border()
        for col, text in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=text)
            cell.fill = fill
            cell.font = Font(bold=True, color="FFFFFF", size=10)
            cell.alignment = self._center_align(wrap=False)
            cell.border = border
        ws.row_dimensions[row].height = self.ROW_HEADER_H

    # ─── Wochenraster ─────────────────────────────────────────────────────────

    def _write_week_table(self, ws, entries: list[ScheduleEntry], mode: str) -> int:
        """Schreibt das Wochenraster; gibt die letzte verwendete Excel-Zeile zurück.

        mode: 'cohort' | 'teacher'
        """
        from openpyxl.utils import get_column_letter

        ws.column_dimensions["A"].width = self.COL_ZEIT_W
        for col in range(2, 2 + len(self.days)):
            ws.column_dimensions[get_column_letter(col)].width = self.COL_DAY_W
        self._write_header(ws, 1, ["Zeit"] + self.days)

        grid = build_week_grid(entries)
        border = self._thin_border()
        row = 2
        for tr in time_rows(entries):
            c = ws.cell(row=row, column=1, value=str(tr))
            c.alignment = self._center_align(wrap=False)
            c.border = border
            for col, day in enumerate(self.days, 2):
                cell_entries = grid.get((day, tr), [])
                cell = ws.cell(row=row, column=col, value=format_entries(cell_entries, mode))
                cell.alignment = self._center_align()
                cell.border = border
                if len(cell_entries) > 1 and mode == "cohort":
                    # Zwei Einträge im selben Fenster einer Lerngruppe = Doppelbuchung
                    cell.fill = self._fill(COLORS["conflict"])
                elif cell_entries:
                    cell.fill = self._fill(class_color(cell_entries[0].class_name))
                else:
                    cell.fill = self._fill(COLORS["free"])
            ws.row_dimensions[row].height = self.ROW_LESSON_H
            row += 1
        ws.freeze_panes = "B2"
        return row

    # ─── Sheet: Übersicht ─────────────────────────────────────────────────────

    def _sheet_uebersicht(self, wb) -> None:
        from openpyxl.styles import Font
        ws = wb.create_sheet(title="Übersicht", index=0)

        row = 1
        school = self.config.school_name if self.config else "Stundenplan"
        ws.cell(row=row, column=1, value=school).font = Font(bold=True, size=14)
        row += 1
        ws.cell(row=row, column=1, value=f"Erstellt: {today_str()}")
        ws.cell(row=row, column=3, value=f"Einträge: {len(self.entries)}")
        row += 2

        headers = ["Klasse", "Lehrkraft", "Lerngruppen", "Tage", "Zeitfenster", "Schüler"]
        self._write_header(ws, row, headers)
        row += 1

        border = self._thin_border()
        for lc in group_entries(self.entries):
            values = [
                lc.class_name,
                lc.teacher_name or lc.teacher_id,
                format_cohorts(lc.cohorts),
                format_days(lc),
                format_slots(lc),
                lc.student_count,
            ]
            for col, value in enumerate(values, 1):
                c = ws.cell(row=row, column=col, value=value)
                c.border = border
                if col == 6:
                    c.alignment = self._center_align(wrap=False)
            ws.cell(row=row, column=1).fill = self._fill(class_color(lc.class_name))
            row += 1

        ws.column_dimensions["A"].width = 28
        ws.column_dimensions["B"].width = 24
        ws.column_dimensions["C"].width = 30
        ws.column_dimensions["D"].width = 16
        ws.column_dimensions["E"].width = 48
        ws.column_dimensions["F"].width = 10

    # ─── Sheet: Lerngruppe ────────────────────────────────────────────────────

    def _sheet_lerngruppe(self, wb, gs: GradeSection) -> None:
        title = f"{gs.grade} {gs.section}"[:31]
        ws = wb.create_sheet(title=title)
        entries = entries_for_grade_section(self.entries, gs.grade, gs.section)
        self._write_week_table(ws, entries, mode="cohort")

    # ─── Sheet: Lehrkraft ─────────────────────────────────────────────────────

    def _sheet_lehrer(self, wb, teacher_id: str, name: str) -> None:
        from openpyxl.styles import Font
        # Blatttitel: max. 31 Zeichen, keine Sonderzeichen wie ":" oder "/"
        safe = "".join(ch for ch in name if ch not in "[]:*?/\\")
        ws = wb.create_sheet(title=f"L {safe}"[:31])
        entries = entries_for_teacher(self.entries, teacher_id)
        last_row = self._write_week_table(ws, entries, mode="teacher")

        last_row += 1
        ws.cell(row=last_row, column=1, value="Einträge:").font = Font(bold=True)
        ws.cell(row=last_row, column=2, value=len(entries))
