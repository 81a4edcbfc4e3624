"""Logische Klasse und Bearbeitungszustand des Klassen-Editors (Pydantic v2).

Die logische Klasse wird nie gespeichert; sie entsteht durch Gruppierung der
ScheduleEntries nach (class_name, teacher_id).
"""

import uuid
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from models.grade_section import GradeSection
from models.timeslot import day_index, to_minutes, is_valid_time


def _local_id() -> str:
    return uuid.uuid4().hex[:12]


class Schedule(BaseModel):
    """Ein wöchentliches Zeitfenster im Editor (ID nur clientseitig gültig)."""

    id: str = Field(default_factory=_local_id)
    day_of_week: str
    start_time: str = ""
    end_time: str = ""

    def sort_key(self) -> tuple[int, int]:
        start = to_minutes(self.start_time) if is_valid_time(self.start_time) else 0
        return day_index(self.day_of_week), start


class GradeSectionSchedule(BaseModel):
    """Eine Lerngruppe mit zugewiesener Lehrkraft und ihren Wochen-Zeitfenstern."""

    grade: str
    section: str
    teacher_id: str = ""
    schedules: list[Schedule] = []

    @property
    def grade_section(self) -> GradeSection:
        return GradeSection(grade=self.grade, section=self.section)

    @property
    def label(self) -> str:
        return self.grade_section.label

    def sorted_schedules(self) -> list[Schedule]:
        """Zeitfenster in Wochenreihenfolge (Mo..So), innerhalb des Tages nach Beginn."""
        return sorted(self.schedules, key=lambda s: s.sort_key())


class LogicalClassEdit(BaseModel):
    """Gewünschter Zustand einer logischen Klasse, wie ihn der Editor abschickt."""

    class_name: str = ""
    teacher_id: str = ""
    # Fach dient nur der Lehrkraft-Auswahl, wird am Eintrag nicht gespeichert
    subject_id: Optional[str] = None
    grade_sections: list[GradeSectionSchedule] = []

    @model_validator(mode="after")
    def _inherit_class_teacher(self):
        # Lerngruppen ohne eigene Lehrkraft übernehmen die Lehrkraft der Klasse;
        # als Kopie, damit die Instanzen des Aufrufers unverändert bleiben
        if self.teacher_id:
            self.grade_sections = [
                gs if gs.teacher_id else gs.model_copy(update={"teacher_id": self.teacher_id})
                for gs in self.grade_sections
            ]
        return self

    @property
    def slot_count(self) -> int:
        return sum(len(gs.schedules) for gs in self.grade_sections)


class LogicalClass(BaseModel):
    """Abgeleitete Sicht: eine Zeile der Klassenverwaltung."""

    class_name: str
    teacher_id: str
    teacher_name: Optional[str] = None
    grade_sections: list[GradeSectionSchedule]
    entry_ids: list[str]                 # IDs aller zugehörigen ScheduleEntries
    student_count: int = 0

    @property
    def cohorts(self) -> list[GradeSection]:
        return [gs.grade_section for gs in self.grade_sections]

    @property
    def days(self) -> list[str]:
        """Alle belegten Wochentage in fester Reihenfolge Mo..So."""
        found = {s.day_of_week for gs in self.grade_sections for s in gs.schedules}
        return sorted(found, key=day_index)

    @property
    def entry_count(self) -> int:
        return len(self.entry_ids)

    def to_edit(self, subject_id: Optional[str] = None) -> LogicalClassEdit:
        """Baut den Editor-Zustand (mit allen Geschwister-Einträgen) auf."""
        return LogicalClassEdit(
            class_name=self.class_name,
            teacher_id=self.teacher_id,
            subject_id=subject_id,
            grade_sections=[gs.model_copy(deep=True) for gs in self.grade_sections],
        )
