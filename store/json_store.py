"""Datei-basierter ScheduleEntry-Store (JSON, Pydantic-Serialisierung).

Schreibt nach jeder Operation den kompletten Inhalt zurück. Mehrere Prozesse
auf derselben Datei sind NICHT abgesichert (last writer wins).
"""

import logging
from pathlib import Path

from models.schedule_entry import NewScheduleEntry, ScheduleEntry, ScheduleEntryPatch
from scheduling.errors import StoreError
from store.memory import InMemoryScheduleStore, StoreData

logger = logging.getLogger(__name__)


class JsonScheduleStore(InMemoryScheduleStore):
    """Persistiert den Store-Inhalt als JSON-Datei."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(self._read() if self.path.exists() else StoreData())

    def _read(self) -> StoreData:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return StoreData.model_validate_json(f.read())
        except (OSError, ValueError) as e:
            raise StoreError(f"Store-Datei nicht lesbar: {self.path}\n{e}") from e

    @property
    def revision(self) -> int:
        # Schreibzugriffe anderer Prozesse auf dieselbe Datei sichtbar machen
        if self.path.exists():
            return max(super().revision, self._read().revision)
        return super().revision

    def save(self) -> None:
        """Schreibt den aktuellen Inhalt in die Datei."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(self.data.model_dump_json(indent=2))
        except OSError as e:
            raise StoreError(f"Store-Datei nicht schreibbar: {self.path}\n{e}") from e
        logger.debug(f"Store gespeichert: {self.path} (Revision {self.revision})")

    def create_schedule_entry(self, entry: NewScheduleEntry) -> ScheduleEntry:
        created = super().create_schedule_entry(entry)
        self.save()
        return created

    def update_schedule_entry(self, entry_id: str, patch: ScheduleEntryPatch) -> ScheduleEntry:
        updated = super().update_schedule_entry(entry_id, patch)
        self.save()
        return updated

    def delete_schedule_entry(self, entry_id: str) -> None:
        super().delete_schedule_entry(entry_id)
        self.save()

    @classmethod
    def initialize(cls, path: Path, data: StoreData) -> "JsonScheduleStore":
        """Legt eine neue Store-Datei mit vorgegebenem Inhalt an (überschreibt)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(data.model_dump_json(indent=2))
        return cls(path)
