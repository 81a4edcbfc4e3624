"""Datenmodell für eine Schülerin / einen Schüler (Pydantic v2)."""

from pydantic import BaseModel

from models.grade_section import GradeSection


class Student(BaseModel):
    """Repräsentiert einen Schüler mit aktueller Lerngruppe (nur lesend)."""

    id: str
    name: str
    grade: str
    section: str

    @property
    def grade_section(self) -> GradeSection:
        return GradeSection(grade=self.grade, section=self.section)
