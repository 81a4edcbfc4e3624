"""Datenmodell für eine Lerngruppe (Jahrgang + Klasse, Pydantic v2)."""

from pydantic import BaseModel, ConfigDict


class GradeSection(BaseModel):
    """Eine Lerngruppe, z.B. Jahrgang "Grade 5", Klasse "A".

    Gleichheit über das Wertepaar (grade, section); hashbar, damit es als
    Dict-Key / Set-Element nutzbar ist.
    """

    model_config = ConfigDict(frozen=True)

    grade: str      # "Kindergarten", "Grade 1" .. "Grade 12"
    section: str    # "A" .. "F"

    @property
    def label(self) -> str:
        """Anzeigename wie in der Klassenverwaltung ("Grade 5 - A")."""
        return f"{self.grade} - {self.section}"

    def __str__(self) -> str:
        return self.label
