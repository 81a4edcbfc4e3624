"""Gruppierung der flachen Eintragsliste zu logischen Klassen.

Reine, reihenfolgeerhaltende Aggregation ohne Seiteneffekte. Wird für die
Klassenübersicht (eine Zeile pro logischer Klasse) und zum Öffnen des Editors
mit allen Geschwister-Einträgen verwendet.
"""

from collections import defaultdict
from typing import Iterable, Optional

from models.logical_class import GradeSectionSchedule, LogicalClass, Schedule
from models.schedule_entry import ScheduleEntry
from models.timeslot import DAYS_OF_WEEK, day_index, to_minutes

# (class_name, teacher_id)
ClassKey = tuple[str, str]


def class_key(entry: ScheduleEntry) -> ClassKey:
    """Identitätsschlüssel der logischen Klasse eines Eintrags."""
    return entry.class_name, entry.teacher_id


def group_entries(entries: Iterable[ScheduleEntry]) -> list[LogicalClass]:
    """Gruppiert Einträge nach (class_name, teacher_id).

    Klassen und Lerngruppen erscheinen in der Reihenfolge ihres ersten
    Auftretens; Zeitfenster werden in Wochenreihenfolge Mo..So sortiert.
    Alt-Einträge mit mehreren Lerngruppen erscheinen in jeder ihrer Lerngruppen.
    """
    groups: dict[ClassKey, list[ScheduleEntry]] = {}
    for entry in entries:
        groups.setdefault(class_key(entry), []).append(entry)

    result: list[LogicalClass] = []
    for (class_name, teacher_id), members in groups.items():
        buckets: dict[tuple[str, str], GradeSectionSchedule] = {}
        for entry in members:
            for gs in entry.grade_sections:
                bucket = buckets.get((gs.grade, gs.section))
                if bucket is None:
                    bucket = GradeSectionSchedule(
                        grade=gs.grade, section=gs.section, teacher_id=entry.teacher_id,
                    )
                    buckets[(gs.grade, gs.section)] = bucket
                # Die Editor-ID ist die Eintrags-ID, damit Änderungen zuordenbar bleiben
                bucket.schedules.append(Schedule(
                    id=entry.id,
                    day_of_week=entry.day_of_week,
                    start_time=entry.start_time,
                    end_time=entry.end_time,
                ))

        grade_sections = []
        for bucket in buckets.values():
            grade_sections.append(bucket.model_copy(
                update={"schedules": bucket.sorted_schedules()}
            ))

        student_ids = {sid for e in members for sid in e.student_ids}
        result.append(LogicalClass(
            class_name=class_name,
            teacher_id=teacher_id,
            teacher_name=next((e.teacher_name for e in members if e.teacher_name), None),
            grade_sections=grade_sections,
            entry_ids=[e.id for e in members],
            student_count=len(student_ids),
        ))
    return result


def find_related_entries(
    entries: Iterable[ScheduleEntry], entry_id: str
) -> list[ScheduleEntry]:
    """Alle Einträge derselben logischen Klasse wie der angeklickte Eintrag."""
    entries = list(entries)
    clicked = next((e for e in entries if e.id == entry_id), None)
    if clicked is None:
        return []
    key = class_key(clicked)
    return [e for e in entries if class_key(e) == key]


def entries_for_class(
    entries: Iterable[ScheduleEntry], class_name: str, teacher_id: str
) -> list[ScheduleEntry]:
    """Alle gespeicherten Einträge mit dem Klassenschlüssel (class_name, teacher_id)."""
    key = (class_name, teacher_id)
    return [e for e in entries if class_key(e) == key]


def find_logical_class(
    entries: Iterable[ScheduleEntry], entry_id: str
) -> Optional[LogicalClass]:
    """Logische Klasse zu einem Eintrag (für "Bearbeiten" einer Tabellenzeile)."""
    related = find_related_entries(entries, entry_id)
    if not related:
        return None
    return group_entries(related)[0]


def sort_entries(entries: Iterable[ScheduleEntry]) -> list[ScheduleEntry]:
    """Sortiert nach Wochentag (Mo..So) und Beginn."""
    return sorted(
        entries,
        key=lambda e: (day_index(e.day_of_week), to_minutes(e.start_time)),
    )


def entries_for_grade_section(
    entries: Iterable[ScheduleEntry], grade: str, section: str
) -> list[ScheduleEntry]:
    """Wochenplan einer Lerngruppe, sortiert nach Tag und Beginn."""
    return sort_entries(
        e for e in entries
        if any(gs.grade == grade and gs.section == section for gs in e.grade_sections)
    )


def entries_for_teacher(entries: Iterable[ScheduleEntry], teacher_id: str) -> list[ScheduleEntry]:
    """Wochenplan einer Lehrkraft, sortiert nach Tag und Beginn."""
    return sort_entries(e for e in entries if e.teacher_id == teacher_id)


def filter_entries(
    entries: Iterable[ScheduleEntry],
    search: str = "",
    days: Optional[Iterable[str]] = None,
    grade: Optional[str] = None,
    section: Optional[str] = None,
    teacher_id: Optional[str] = None,
) -> list[ScheduleEntry]:
    """Filter der Klassenverwaltung (Suche, Tage, Jahrgang, Klasse, Lehrkraft)."""
    result = list(entries)
    if search:
        needle = search.lower()
        result = [
            e for e in result
            if needle in e.class_name.lower()
            or (e.teacher_name is not None and needle in e.teacher_name.lower())
        ]
    if days:
        day_set = set(days)
        result = [e for e in result if e.day_of_week in day_set]
    if grade:
        result = [e for e in result if any(gs.grade == grade for gs in e.grade_sections)]
    if section:
        result = [e for e in result if any(gs.section == section for gs in e.grade_sections)]
    if teacher_id:
        result = [e for e in result if e.teacher_id == teacher_id]
    return result


def count_by_day(entries: Iterable[ScheduleEntry]) -> dict[str, int]:
    """Anzahl Einträge pro Wochentag, in fester Reihenfolge Mo..So."""
    counts: dict[str, int] = defaultdict(int)
    for e in entries:
        counts[e.day_of_week] += 1
    return {day: counts.get(day, 0) for day in DAYS_OF_WEEK}
