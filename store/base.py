"""Schnittstelle des ScheduleEntry-Stores (externer Kollaborateur).

Transport-unabhängig: jede REST-/RPC-/Datei-Anbindung, die diese Methoden
erfüllt, kann verwendet werden. Der Store kennt keine Konflikte; er wendet
jede Operation einzeln an (keine Transaktion über mehrere Operationen).
"""

from abc import ABC, abstractmethod

from models.schedule_entry import NewScheduleEntry, ScheduleEntry, ScheduleEntryPatch
from models.student import Student
from models.teacher import Teacher


class ScheduleStore(ABC):
    """Lesende und schreibende Operationen auf der Eintragssammlung."""

    @property
    @abstractmethod
    def revision(self) -> int:
        """Monoton steigender Änderungszähler (jede Schreiboperation +1)."""

    @abstractmethod
    def fetch_all_schedule_entries(self) -> list[ScheduleEntry]:
        """Vollständiger Snapshot in Store-Reihenfolge."""

    @abstractmethod
    def create_schedule_entry(self, entry: NewScheduleEntry) -> ScheduleEntry:
        """Legt einen Eintrag an; der Store vergibt die ID."""

    @abstractmethod
    def update_schedule_entry(self, entry_id: str, patch: ScheduleEntryPatch) -> ScheduleEntry:
        """Teil-Update. Raises EntryNotFoundError."""

    @abstractmethod
    def delete_schedule_entry(self, entry_id: str) -> None:
        """Löscht einen Eintrag. Raises EntryNotFoundError."""

    @abstractmethod
    def fetch_teachers_eligible_for_subject(self, subject_id: str) -> list[Teacher]:
        """Lehrkräfte, die für das Fach auswählbar sind."""

    @abstractmethod
    def fetch_enrolled_students(self, entry_id: str) -> list[Student]:
        """Schüler eines Eintrags (nur Anzeige). Raises EntryNotFoundError."""
