"""Gemeinsamer Renderer für die Terminal-Anzeige (rich-Tabellen).

Liefert reine Tabellenzeilen; main.py baut daraus die rich-Tabellen.
"""

from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from models.logical_class import LogicalClass
    from models.schedule_entry import ScheduleEntry


CLASS_HEADERS = ["Klasse", "Lehrkraft", "Lerngruppen", "Tage", "Zeitfenster", "Schüler"]


def render_class_rows(classes: Iterable["LogicalClass"]) -> list[list[str]]:
    """Eine Zeile pro logischer Klasse für die Klassenverwaltung."""
    from export.helpers import format_cohorts, format_days, format_slots

    rows: list[list[str]] = []
    for lc in classes:
        rows.append([
            lc.class_name,
            lc.teacher_name or lc.teacher_id,
            format_cohorts(lc.cohorts),
            format_days(lc) or "—",
            format_slots(lc),
            str(lc.student_count),
        ])
    return rows


def render_entry_rows(entries: Iterable["ScheduleEntry"]) -> list[list[str]]:
    """Physische Einträge (ID, Lerngruppe, Tag, Zeit) einer Klasse."""
    from export.helpers import day_short, format_cohorts
    from scheduling.grouping import sort_entries

    return [
        [
            e.id,
            format_cohorts(e.grade_sections),
            day_short(e.day_of_week),
            str(e.time_range),
            str(e.student_count),
        ]
        for e in sort_entries(entries)
    ]


def render_week_rows(
    entries: Iterable["ScheduleEntry"],
    days: list[str],
    mode: str = "cohort",
    twelve_hour: bool = False,
) -> list[list[str]]:
    """Wochenraster: eine Zeile pro vorkommendem Zeitfenster.

    Jede Zeile: [time_label, <Tag 1>, <Tag 2>, …]. Freie Zellen sind '—'.
    mode wie export.helpers.format_entry.
    """
    from export.helpers import build_week_grid, format_entries, format_range, time_rows

    entries = list(entries)
    grid = build_week_grid(entries)
    rows: list[list[str]] = []
    for tr in time_rows(entries):
        cells = [format_range(tr.start_time, tr.end_time, twelve_hour)]
        for day in days:
            cell_entries = grid.get((day, tr), [])
            cells.append(format_entries(cell_entries, mode) if cell_entries else "—")
        rows.append(cells)
    return rows


def week_title(
    grade: Optional[str] = None,
    section: Optional[str] = None,
    teacher_name: Optional[str] = None,
) -> str:
    if teacher_name:
        return f"Wochenplan {teacher_name}"
    if grade and section:
        return f"Wochenplan {grade} - {section}"
    return "Wochenplan"
