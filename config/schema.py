from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from models.timeslot import DAYS_OF_WEEK


class StoreBackend(str, Enum):
    JSON = "json"
    MEMORY = "memory"


class ConcurrencyMode(str, Enum):
    # Standard: Snapshot laden, prüfen, schreiben – parallele Editoren können sich überholen
    OPTIMISTIC = "optimistic"
    # Vor dem Commit wird die Store-Revision verglichen (StaleSnapshotError)
    STRICT = "strict"


# ─── KALENDER ───

class CalendarConfig(BaseModel):
    """Wochentage und auswählbare Lerngruppen."""
    # Wochentage in Anzeigereihenfolge
    days_of_week: list[str] = Field(
        default_factory=lambda: list(DAYS_OF_WEEK),
        description="Wochentage in Anzeigereihenfolge")
    # Auswählbare Jahrgänge
    grades: list[str] = Field(
        description="Auswählbare Jahrgänge")
    # Auswählbare Klassenbuchstaben
    sections: list[str] = Field(
        description="Auswählbare Klassen (Buchstaben)")

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, v: list[str]) -> list[str]:
        unknown = [d for d in v if d not in DAYS_OF_WEEK]
        if unknown:
            raise ValueError(f"Unbekannte Wochentage: {unknown}")
        if len(set(v)) != len(v):
            raise ValueError("Wochentage dürfen nicht doppelt vorkommen")
        return v

    @model_validator(mode='after')
    def validate_catalog(self):
        if not self.grades:
            raise ValueError("Mindestens ein Jahrgang muss definiert sein")
        if not self.sections:
            raise ValueError("Mindestens eine Klasse muss definiert sein")
        return self

    @property
    def cohort_count(self) -> int:
        """Anzahl möglicher Lerngruppen (Jahrgang × Klasse)."""
        return len(self.grades) * len(self.sections)


# ─── STORE ───

class StoreConfig(BaseModel):
    """Wo die Stundenplan-Einträge gespeichert werden."""
    # Backend: json (Datei) oder memory (nur für Tests/Demos)
    backend: StoreBackend = Field(StoreBackend.JSON)
    # Pfad der JSON-Datei
    path: Path = Field(Path("output/schedule_store.json"),
        description="Pfad der Store-Datei")


# ─── KONFLIKTPRÜFUNG ───

class ConflictConfig(BaseModel):
    """Konfliktprüfung vor dem Speichern."""
    # Index über (Lehrkraft, Tag) und (Lerngruppe, Tag) statt Volltabellen-Scan
    use_index: bool = Field(True,
        description="Index statt linearer Suche verwenden")


class ConcurrencyConfig(BaseModel):
    """Verhalten bei parallelen Bearbeitungen."""
    mode: ConcurrencyMode = Field(ConcurrencyMode.OPTIMISTIC,
        description="optimistic (Standard) oder strict (Revisionsprüfung)")


class LoggingConfig(BaseModel):
    """Log-Ausgabe der CLI."""
    level: str = Field("INFO",
        description="DEBUG / INFO / WARNING / ERROR")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unbekanntes Log-Level: {v}")
        return v


# ─── GESAMT-CONFIG ───

class SchoolConfig(BaseModel):
    """Gesamtkonfiguration der Stundenplan-Verwaltung."""
    # Name der Schule
    school_name: str = Field("Muster-Schule",
        description="Name der Schule")
    # Wochentage, Jahrgänge und Klassen
    calendar: CalendarConfig
    # Speicherort der Einträge
    store: StoreConfig = Field(default_factory=StoreConfig)
    # Konfliktprüfung
    conflicts: ConflictConfig = Field(default_factory=ConflictConfig)
    # Parallele Bearbeitung
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    # Log-Ausgabe
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
