"""Fehlerklassen der Stundenplan-Engine.

Validierungs- und Konfliktfehler sind lokal behebbar (Eingabe korrigieren,
erneut speichern). Store-Fehler während eines Commits lassen den Store
ggf. teilweise geändert zurück; der Aufrufer muss neu laden.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scheduling.conflicts import ConflictReport


class SchedulingError(Exception):
    """Basisklasse aller Fehler der Engine."""


@dataclass(frozen=True)
class FieldIssue:
    """Ein einzelnes Validierungsproblem an einem konkreten Feld."""

    field: str       # z.B. "Grade 5 - A.schedules[Monday 09:00–10:00]"
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ValidationError(SchedulingError):
    """Eingabe unvollständig oder ungültig; es wurde nichts gespeichert."""

    def __init__(self, issues: list[FieldIssue]):
        self.issues = list(issues)
        lines = "\n".join(f"  • {i}" for i in self.issues)
        super().__init__(f"Eingabe ungültig ({len(self.issues)} Problem(e)):\n{lines}")


class ConflictError(SchedulingError):
    """Ein Zeitfenster kollidiert mit einer bestehenden Belegung; nichts gespeichert."""

    def __init__(self, report: "ConflictReport"):
        self.report = report
        super().__init__(report.description)


class StoreError(SchedulingError):
    """Der Store hat eine Operation abgelehnt."""


class EntryNotFoundError(StoreError):
    """Eintrag mit dieser ID existiert nicht (mehr)."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Stundenplan-Eintrag nicht gefunden: {entry_id}")


class PartialCommitError(StoreError):
    """Ein Store-Fehler hat einen Commit unterbrochen.

    Bereits ausgeführte Operationen werden NICHT zurückgerollt.
    """

    USER_MESSAGE = (
        "Einige Ihrer Änderungen wurden möglicherweise nicht gespeichert. "
        "Bitte neu laden und erneut versuchen."
    )

    def __init__(self, failed_operation: str, applied: list[str],
                 not_applied: list[str], cause: StoreError):
        self.failed_operation = failed_operation
        self.applied = list(applied)
        self.not_applied = list(not_applied)
        self.cause = cause
        super().__init__(
            f"{self.USER_MESSAGE}\n"
            f"Fehlgeschlagen: {failed_operation} ({cause})\n"
            f"Ausgeführt: {len(self.applied)} | Nicht ausgeführt: {len(self.not_applied)}"
        )


class StaleSnapshotError(SchedulingError):
    """Der Store wurde seit dem Laden des Snapshots verändert (nur im strikten Modus)."""

    def __init__(self, snapshot_revision: int, current_revision: int):
        self.snapshot_revision = snapshot_revision
        self.current_revision = current_revision
        super().__init__(
            f"Der Stundenplan wurde zwischenzeitlich geändert "
            f"(Stand {snapshot_revision}, aktuell {current_revision}). "
            f"Bitte neu laden und erneut speichern."
        )
