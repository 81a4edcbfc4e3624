"""In-Memory-Implementierung des ScheduleEntry-Stores.

Vergibt zufällige Dokument-IDs (20 Zeichen); Lehrkraft-Name und Schülerliste
werden beim Anlegen denormalisiert.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from models.grade_section import GradeSection
from models.schedule_entry import NewScheduleEntry, ScheduleEntry, ScheduleEntryPatch
from models.student import Student
from models.subject import Subject
from models.teacher import Teacher
from scheduling.errors import EntryNotFoundError, StoreError
from store.base import ScheduleStore

logger = logging.getLogger(__name__)


class StoreData(BaseModel):
    """Kompletter Store-Inhalt (Einträge + Stammdaten zum Nachschlagen)."""

    entries: list[ScheduleEntry] = []
    teachers: list[Teacher] = []
    students: list[Student] = []
    subjects: list[Subject] = []
    revision: int = 0
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    data_version: str = "1.0"

    def summary(self) -> str:
        """Kurze Übersicht über den Datensatz."""
        cohorts = {(gs.grade, gs.section) for e in self.entries for gs in e.grade_sections}
        lines = [
            f"Einträge: {len(self.entries)}",
            f"Lerngruppen mit Unterricht: {len(cohorts)}",
            f"Lehrkräfte: {len(self.teachers)}",
            f"Schüler: {len(self.students)}",
            f"Fächer: {len(self.subjects)}",
            f"Revision: {self.revision}",
        ]
        return "\n".join(lines)


def _new_id() -> str:
    return uuid.uuid4().hex[:20]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryScheduleStore(ScheduleStore):
    """Store im Arbeitsspeicher; Grundlage für JsonScheduleStore und Tests."""

    def __init__(self, data: Optional[StoreData] = None) -> None:
        self._data = data if data is not None else StoreData()
        self._entries: dict[str, ScheduleEntry] = {e.id: e for e in self._data.entries}

    # ─── Hilfsfunktionen ───

    @property
    def data(self) -> StoreData:
        """Aktueller Inhalt als StoreData (Einträge in Store-Reihenfolge)."""
        return self._data.model_copy(update={"entries": list(self._entries.values())})

    def _get(self, entry_id: str) -> ScheduleEntry:
        entry = self._entries.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    def _teacher(self, teacher_id: str) -> Optional[Teacher]:
        return next((t for t in self._data.teachers if t.id == teacher_id), None)

    def _matching_students(self, grade_sections: list[GradeSection]) -> list[str]:
        """Schüler, deren aktuelle Lerngruppe zu einer der Lerngruppen passt."""
        wanted = set(grade_sections)
        return [s.id for s in self._data.students if s.grade_section in wanted]

    def _touch(self) -> None:
        self._data.revision += 1
        self._data.modified_at = _now()
        if self._data.created_at is None:
            self._data.created_at = self._data.modified_at

    # ─── ScheduleStore ───

    @property
    def revision(self) -> int:
        return self._data.revision

    def fetch_all_schedule_entries(self) -> list[ScheduleEntry]:
        return [e.model_copy(deep=True) for e in self._entries.values()]

    def create_schedule_entry(self, entry: NewScheduleEntry) -> ScheduleEntry:
        teacher = self._teacher(entry.teacher_id)
        if self._data.teachers and teacher is None:
            raise StoreError(f"Lehrkraft nicht gefunden: {entry.teacher_id}")
        student_ids = self._matching_students(entry.grade_sections)
        now = _now()
        created = ScheduleEntry(
            id=_new_id(),
            teacher_name=teacher.name if teacher else None,
            student_ids=student_ids,
            student_count=len(student_ids),
            created_at=now,
            updated_at=now,
            **entry.model_dump(),
        )
        self._entries[created.id] = created
        self._touch()
        logger.debug(f"Eintrag angelegt: {created.id} {created.describe()}")
        return created.model_copy(deep=True)

    def update_schedule_entry(self, entry_id: str, patch: ScheduleEntryPatch) -> ScheduleEntry:
        current = self._get(entry_id)
        changes = patch.model_dump(exclude_none=True)
        updated = current.model_copy(update={**changes, "updated_at": _now()})
        self._entries[entry_id] = updated
        self._touch()
        logger.debug(f"Eintrag geändert: {entry_id} {changes}")
        return updated.model_copy(deep=True)

    def delete_schedule_entry(self, entry_id: str) -> None:
        self._get(entry_id)
        del self._entries[entry_id]
        self._touch()
        logger.debug(f"Eintrag gelöscht: {entry_id}")

    def fetch_teachers_eligible_for_subject(self, subject_id: str) -> list[Teacher]:
        return [t for t in self._data.teachers if t.can_teach(subject_id)]

    def fetch_enrolled_students(self, entry_id: str) -> list[Student]:
        entry = self._get(entry_id)
        by_id = {s.id: s for s in self._data.students}
        return [by_id[sid] for sid in entry.student_ids if sid in by_id]

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self._entries)} entries, rev {self.revision})"
