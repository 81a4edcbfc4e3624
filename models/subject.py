"""Datenmodell für ein Unterrichtsfach (Pydantic v2)."""

from pydantic import BaseModel


class Subject(BaseModel):
    """Repräsentiert ein Unterrichtsfach (nur lesend, aus der Fächerverwaltung)."""

    id: str
    name: str           # "Mathematik", "Biology"
