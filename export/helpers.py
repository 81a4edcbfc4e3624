"""Gemeinsame Hilfsfunktionen für Terminal- und Excel-Ausgabe."""

import zlib
from collections import defaultdict
from datetime import date
from typing import Iterable

from models.grade_section import GradeSection
from models.logical_class import LogicalClass
from models.schedule_entry import ScheduleEntry
from models.timeslot import TimeRange, day_index, to_minutes

# ─── Farbpalette (RRGGBB, ohne #) ─────────────────────────────────────────────

COLORS: dict[str, str] = {
    "header":   "4472C4",
    "free":     "F5F5F5",
    "conflict": "FF9999",
    "legacy":   "FFF2B3",
}

# Zellfarben für Klassen; Zuordnung stabil über den Klassennamen
CLASS_PALETTE = [
    "B3D4FF", "B3FFB3", "FFB3E6", "FFD4B3", "D4B3FF",
    "B3FFF2", "FFFFB3", "E0E0E0", "C6E0B4", "F8CBAD",
]

DAY_SHORT: dict[str, str] = {
    "Monday": "Mo", "Tuesday": "Di", "Wednesday": "Mi", "Thursday": "Do",
    "Friday": "Fr", "Saturday": "Sa", "Sunday": "So",
}


def today_str() -> str:
    """Gibt das heutige Datum als DD.MM.YYYY zurück."""
    return date.today().strftime("%d.%m.%Y")


def class_color(class_name: str) -> str:
    """Hex-Farbe für eine Klasse (gleicher Name → gleiche Farbe)."""
    return CLASS_PALETTE[zlib.crc32(class_name.encode("utf-8")) % len(CLASS_PALETTE)]


def day_short(day: str) -> str:
    return DAY_SHORT.get(day, day[:2])


# ─── Uhrzeiten ────────────────────────────────────────────────────────────────

def format_time_12h(value: str) -> str:
    """"13:05" → "1:05 PM"; ungültige Werte werden unverändert zurückgegeben."""
    try:
        minutes = to_minutes(value)
    except ValueError:
        return value
    hours, mins = divmod(minutes, 60)
    suffix = "AM" if hours < 12 else "PM"
    hours12 = hours % 12 or 12
    return f"{hours12}:{mins:02d} {suffix}"


def format_range(start: str, end: str, twelve_hour: bool = False) -> str:
    if twelve_hour:
        return f"{format_time_12h(start)} – {format_time_12h(end)}"
    return str(TimeRange(start, end))


# ─── Klassen-Zusammenfassungen ────────────────────────────────────────────────

def format_cohorts(grade_sections: Iterable[GradeSection]) -> str:
    """"Grade 5 - A, Grade 5 - B"."""
    return ", ".join(gs.label for gs in grade_sections)


def format_days(lc: LogicalClass) -> str:
    """Belegte Wochentage einer Klasse, z.B. "Mo, Mi, Fr"."""
    return ", ".join(day_short(d) for d in lc.days)


def format_slots(lc: LogicalClass) -> str:
    """Alle Zeitfenster einer Klasse, pro Lerngruppe eine Zeile.

    Identische Zeitfenster mehrerer Lerngruppen werden zusammengefasst.
    """
    by_slots: dict[tuple, list[str]] = defaultdict(list)
    for gs in lc.grade_sections:
        slots = tuple(
            (s.day_of_week, s.start_time, s.end_time) for s in gs.sorted_schedules()
        )
        by_slots[slots].append(gs.label)

    lines = []
    for slots, labels in by_slots.items():
        times = ", ".join(f"{day_short(d)} {TimeRange(s, e)}" for d, s, e in slots) or "—"
        lines.append(f"{' / '.join(labels)}: {times}")
    return "\n".join(lines)


# ─── Wochenraster ─────────────────────────────────────────────────────────────

def time_rows(entries: Iterable[ScheduleEntry]) -> list[TimeRange]:
    """Alle vorkommenden Zeitfenster, sortiert nach Beginn und Ende.

    Es gibt kein festes Stundenraster; die Zeilen ergeben sich aus den Einträgen.
    """
    ranges = {TimeRange(e.start_time, e.end_time) for e in entries}
    return sorted(ranges, key=lambda r: (to_minutes(r.start_time), to_minutes(r.end_time)))


def build_week_grid(
    entries: Iterable[ScheduleEntry],
) -> dict[tuple[str, TimeRange], list[ScheduleEntry]]:
    """Baut {(day, TimeRange): [entries]} auf."""
    grid: dict[tuple[str, TimeRange], list[ScheduleEntry]] = defaultdict(list)
    for e in sorted(entries, key=lambda x: day_index(x.day_of_week)):
        grid[(e.day_of_week, e.time_range)].append(e)
    return grid


def format_entry(entry: ScheduleEntry, mode: str = "cohort") -> str:
    """Formatiert einen Eintrag als Zelleninhalt.

    mode='cohort':  "Klasse\nLehrkraft"
    mode='teacher': "Klasse\nLerngruppe(n)"
    """
    if mode == "teacher":
        return f"{entry.class_name}\n{format_cohorts(entry.grade_sections)}"
    return f"{entry.class_name}\n{entry.teacher_name or entry.teacher_id}"


def format_entries(entries: list[ScheduleEntry], mode: str = "cohort") -> str:
    """Mehrere Einträge in einer Zelle (getrennt durch ──)."""
    if not entries:
        return ""
    return "\n──\n".join(format_entry(e, mode) for e in entries)


def cohorts_in(entries: Iterable[ScheduleEntry]) -> list[GradeSection]:
    """Alle Lerngruppen mit Unterricht, in Reihenfolge des ersten Auftretens."""
    seen: dict[tuple[str, str], GradeSection] = {}
    for e in entries:
        for gs in e.grade_sections:
            seen.setdefault((gs.grade, gs.section), gs)
    return list(seen.values())
