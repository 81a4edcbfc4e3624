"""Datenmodell für eine Lehrkraft (Pydantic v2)."""

from pydantic import BaseModel, field_validator


class Teacher(BaseModel):
    """Repräsentiert eine einzelne Lehrkraft (nur lesend, aus der Lehrerverwaltung)."""

    id: str                       # Dokument-ID im Store
    name: str                     # "Müller, Hans"
    subject_ids: list[str] = []   # Fächer, für die die Lehrkraft wählbar ist

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return v.strip()

    def can_teach(self, subject_id: str) -> bool:
        return subject_id in self.subject_ids
