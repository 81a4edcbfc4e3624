"""Konfliktprüfung für einzelne Zeitfenster vor dem Speichern.

Zwei unabhängige Regeln (pro Eintrag wird die Lehrkraft-Regel zuerst geprüft):

  1. Lehrkraft doppelt gebucht: gleiche Lehrkraft, gleicher Tag, überlappende
     Zeit – außer es ist dieselbe Klasse für dieselbe Lerngruppe.
  2. Lerngruppe doppelt gebucht: gleiche Lerngruppe, gleicher Tag,
     überlappende Zeit, aber anderer Klassenname.

Die Prüfung ist ein Gate der Anwendung, keine Store-Constraint: sie sieht nur
den Stand des übergebenen Snapshots.
"""

from collections import defaultdict
from typing import Iterable, Literal, Optional, Sequence

from pydantic import BaseModel

from models.grade_section import GradeSection
from models.schedule_entry import NewScheduleEntry, ScheduleEntry, SlotKey
from models.timeslot import TimeRange

ConflictKind = Literal["teacher_double_booking", "cohort_double_booking"]


def time_ranges_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    """Halboffene Überschneidung; symmetrisch, berührende Enden zählen nicht."""
    return TimeRange(start1, end1).overlaps(TimeRange(start2, end2))


class SlotCandidate(BaseModel):
    """Ein Zeitfenster, das angelegt oder erneut geprüft werden soll."""

    class_name: str
    teacher_id: str
    grade: str
    section: str
    day_of_week: str
    start_time: str
    end_time: str

    @property
    def grade_section(self) -> GradeSection:
        return GradeSection(grade=self.grade, section=self.section)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.start_time, self.end_time)

    @property
    def key(self) -> SlotKey:
        return (
            self.teacher_id, self.grade, self.section,
            self.day_of_week, self.start_time, self.end_time,
        )

    def to_new_entry(self) -> NewScheduleEntry:
        return NewScheduleEntry(
            class_name=self.class_name,
            teacher_id=self.teacher_id,
            grade_sections=[self.grade_section],
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
        )

    def describe(self) -> str:
        return (
            f"{self.class_name} ({self.grade_section.label}, "
            f"{self.day_of_week} {self.time_range})"
        )


class ConflictReport(BaseModel):
    """Beschreibt eine Doppelbuchung so genau, dass der Nutzer sie beheben kann."""

    kind: ConflictKind
    candidate: SlotCandidate
    conflicting_entry_id: Optional[str] = None   # None: Kandidat aus demselben Speichervorgang
    conflicting_class_name: str
    conflicting_teacher_id: str
    conflicting_teacher_name: Optional[str] = None
    conflicting_grade_sections: list[GradeSection]
    day_of_week: str
    start_time: str
    end_time: str

    @property
    def description(self) -> str:
        window = f"am {self.day_of_week} von {self.start_time} bis {self.end_time}"
        cand = self.candidate
        if self.kind == "teacher_double_booking":
            teacher = self.conflicting_teacher_name or self.conflicting_teacher_id
            cohorts = ", ".join(gs.label for gs in self.conflicting_grade_sections)
            return (
                f"Lehrkraft {teacher} ist {window} bereits für "
                f"\"{self.conflicting_class_name}\" ({cohorts}) eingeplant – "
                f"Konflikt mit {cand.describe()}."
            )
        return (
            f"{cand.grade_section.label} hat {window} bereits "
            f"\"{self.conflicting_class_name}\" – Konflikt mit {cand.describe()}."
        )


def _match_rule(
    candidate: SlotCandidate,
    class_name: str,
    teacher_id: str,
    grade_sections: Sequence[GradeSection],
    day_of_week: str,
    start_time: str,
    end_time: str,
) -> Optional[ConflictKind]:
    """Wendet beide Regeln auf ein einzelnes Gegenüber an."""
    if day_of_week != candidate.day_of_week:
        return None
    if not time_ranges_overlap(candidate.start_time, candidate.end_time, start_time, end_time):
        return None

    same_cohort = candidate.grade_section in grade_sections
    if teacher_id == candidate.teacher_id and not (
        same_cohort and class_name == candidate.class_name
    ):
        return "teacher_double_booking"
    if same_cohort and class_name != candidate.class_name:
        return "cohort_double_booking"
    return None


def _check_entry(candidate: SlotCandidate, entry: ScheduleEntry) -> Optional[ConflictReport]:
    kind = _match_rule(
        candidate, entry.class_name, entry.teacher_id, entry.grade_sections,
        entry.day_of_week, entry.start_time, entry.end_time,
    )
    if kind is None:
        return None
    return ConflictReport(
        kind=kind,
        candidate=candidate,
        conflicting_entry_id=entry.id,
        conflicting_class_name=entry.class_name,
        conflicting_teacher_id=entry.teacher_id,
        conflicting_teacher_name=entry.teacher_name,
        conflicting_grade_sections=list(entry.grade_sections),
        day_of_week=entry.day_of_week,
        start_time=entry.start_time,
        end_time=entry.end_time,
    )


def _check_pending(
    candidate: SlotCandidate, pending: Iterable[SlotCandidate]
) -> Optional[ConflictReport]:
    for other in pending:
        # Geschwister derselben logischen Klasse = gemeinsamer Unterricht
        if other.class_name == candidate.class_name and other.teacher_id == candidate.teacher_id:
            continue
        kind = _match_rule(
            candidate, other.class_name, other.teacher_id, [other.grade_section],
            other.day_of_week, other.start_time, other.end_time,
        )
        if kind is not None:
            return ConflictReport(
                kind=kind,
                candidate=candidate,
                conflicting_class_name=other.class_name,
                conflicting_teacher_id=other.teacher_id,
                conflicting_grade_sections=[other.grade_section],
                day_of_week=other.day_of_week,
                start_time=other.start_time,
                end_time=other.end_time,
            )
    return None


def detect_conflict(
    candidate: SlotCandidate,
    existing_entries: Iterable[ScheduleEntry],
    exclude_ids: Iterable[str] = (),
    pending: Iterable[SlotCandidate] = (),
) -> Optional[ConflictReport]:
    """Prüft einen Kandidaten gegen alle gespeicherten Einträge (lineare Suche).

    Args:
        candidate: Das zu prüfende Zeitfenster.
        existing_entries: Kompletter Store-Snapshot, in Store-Reihenfolge.
        exclude_ids: IDs der gerade bearbeiteten logischen Klasse.
        pending: Bereits zur Anlage vorgemerkte Kandidaten desselben Speichervorgangs.

    Returns:
        Den ersten gefundenen Konflikt oder None.
    """
    excluded = set(exclude_ids)
    for entry in existing_entries:
        if entry.id in excluded:
            continue
        report = _check_entry(candidate, entry)
        if report is not None:
            return report
    return _check_pending(candidate, pending)


class ConflictIndex:
    """Index über (Lehrkraft, Tag) und (Lerngruppe, Tag) statt Volltabellen-Scan.

    Liefert exakt denselben ersten Konflikt wie detect_conflict(): ein Treffer
    setzt gleiche Lehrkraft oder gleiche Lerngruppe am gleichen Tag voraus,
    und die Kandidaten werden in Store-Reihenfolge geprüft.
    """

    def __init__(self, entries: Iterable[ScheduleEntry] = ()) -> None:
        self._entries: list[ScheduleEntry] = []
        self._by_teacher_day: dict[tuple[str, str], list[int]] = defaultdict(list)
        self._by_cohort_day: dict[tuple[str, str, str], list[int]] = defaultdict(list)
        for entry in entries:
            self.add(entry)

    def add(self, entry: ScheduleEntry) -> None:
        pos = len(self._entries)
        self._entries.append(entry)
        self._by_teacher_day[(entry.teacher_id, entry.day_of_week)].append(pos)
        for gs in entry.grade_sections:
            self._by_cohort_day[(gs.grade, gs.section, entry.day_of_week)].append(pos)

    def _positions(self, candidate: SlotCandidate) -> list[int]:
        positions = set(self._by_teacher_day.get((candidate.teacher_id, candidate.day_of_week), ()))
        positions.update(self._by_cohort_day.get(
            (candidate.grade, candidate.section, candidate.day_of_week), ()
        ))
        return sorted(positions)

    def detect(
        self,
        candidate: SlotCandidate,
        exclude_ids: Iterable[str] = (),
        pending: Iterable[SlotCandidate] = (),
    ) -> Optional[ConflictReport]:
        """Wie detect_conflict(), aber nur über die relevanten Index-Buckets."""
        excluded = set(exclude_ids)
        for pos in self._positions(candidate):
            entry = self._entries[pos]
            if entry.id in excluded:
                continue
            report = _check_entry(candidate, entry)
            if report is not None:
                return report
        return _check_pending(candidate, pending)

    def __len__(self) -> int:
        return len(self._entries)
