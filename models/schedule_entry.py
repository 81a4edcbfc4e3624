"""Datenmodell für gespeicherte Stundenplan-Einträge (Pydantic v2).

Eine logische Klasse (Fach + Lehrkraft über mehrere Lerngruppen) wird
denormalisiert gespeichert: pro (Lerngruppe × Wochentag × Zeitfenster)
genau ein ScheduleEntry.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from models.grade_section import GradeSection
from models.timeslot import DAYS_OF_WEEK, TimeRange, is_valid_time, to_minutes

# (teacher_id, grade, section, day_of_week, start_time, end_time)
SlotKey = tuple[str, str, str, str, str, str]


class ScheduleEntryBase(BaseModel):
    """Gemeinsame Felder aller Eintragsformen."""

    class_name: str                      # Anzeigename des Fachs, z.B. "Algebra"
    teacher_id: str
    grade_sections: list[GradeSection]   # physisch: genau eine Lerngruppe
    day_of_week: str                     # "Monday" .. "Sunday"
    start_time: str                      # "HH:MM"
    end_time: str                        # "HH:MM"

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.start_time, self.end_time)

    @property
    def grade_section(self) -> GradeSection:
        """Die (einzige) Lerngruppe des Eintrags."""
        return self.grade_sections[0]

    @property
    def is_normalized(self) -> bool:
        """True wenn der Eintrag genau eine Lerngruppe trägt."""
        return len(self.grade_sections) == 1

    @property
    def slot_key(self) -> Optional[SlotKey]:
        """Identitätsschlüssel für den Abgleich; None bei Alt-Einträgen mit mehreren Lerngruppen."""
        if not self.is_normalized:
            return None
        gs = self.grade_section
        return (
            self.teacher_id, gs.grade, gs.section,
            self.day_of_week, self.start_time, self.end_time,
        )

    def describe(self) -> str:
        """Kurzbeschreibung für Meldungen: "Algebra (Grade 5 - A, Monday 09:00–10:00)"."""
        cohorts = ", ".join(gs.label for gs in self.grade_sections)
        return f"{self.class_name} ({cohorts}, {self.day_of_week} {self.time_range})"


class NewScheduleEntry(ScheduleEntryBase):
    """Ein neu anzulegender Eintrag. Die ID vergibt der Store."""

    @field_validator("class_name", "teacher_id")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("darf nicht leer sein.")
        return v

    @field_validator("day_of_week")
    @classmethod
    def _known_day(cls, v: str) -> str:
        if v not in DAYS_OF_WEEK:
            raise ValueError(f"Unbekannter Wochentag: {v!r}")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def _time_format(cls, v: str) -> str:
        if not is_valid_time(v):
            raise ValueError(f"Uhrzeit muss im Format HH:MM (24h) sein: {v!r}")
        return v

    @model_validator(mode="after")
    def _check_invariants(self):
        if len(self.grade_sections) != 1:
            raise ValueError(
                f"Ein Eintrag muss genau eine Lerngruppe haben "
                f"(erhalten: {len(self.grade_sections)})."
            )
        if to_minutes(self.start_time) >= to_minutes(self.end_time):
            raise ValueError(
                f"Beginn ({self.start_time}) muss vor Ende ({self.end_time}) liegen."
            )
        return self


class ScheduleEntry(ScheduleEntryBase):
    """Ein gespeicherter Eintrag, so wie der Store ihn liefert.

    Bewusst ohne Invarianten-Validierung: Alt-Daten (mehrere Lerngruppen pro
    Eintrag) müssen lesbar bleiben, damit sie geprüft und beim nächsten
    Speichern normalisiert werden können.
    """

    id: str
    teacher_name: Optional[str] = None   # vom Store denormalisiert
    student_ids: list[str] = []          # vom Store abgeleitet, nie von der Engine geschrieben
    student_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ScheduleEntryPatch(BaseModel):
    """Teil-Update eines Eintrags. Die Engine ändert ausschließlich class_name."""

    class_name: Optional[str] = None

    def is_empty(self) -> bool:
        return self.class_name is None
