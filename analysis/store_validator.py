"""Prüfung des gespeicherten Stundenplans.

Sicherheitsnetz unabhängig von der Konfliktprüfung beim Speichern: findet
Doppelbuchungen, die durch parallele Bearbeitung oder Alt-Daten entstanden
sind, sowie Einträge, die nicht dem normalisierten Format entsprechen.
"""

from collections import defaultdict
from itertools import combinations
from typing import Iterable, Literal, Optional

from pydantic import BaseModel

from models.schedule_entry import ScheduleEntry
from models.teacher import Teacher
from models.timeslot import DAYS_OF_WEEK, is_valid_time
from scheduling.conflicts import time_ranges_overlap


class ValidationViolation(BaseModel):
    """Eine einzelne Verletzung."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "teacher_double_booking"
    description: str
    entity: str          # entry_id / teacher_id / Lerngruppe


class ValidationReport(BaseModel):
    """Ergebnis der Store-Prüfung."""

    violations: list[ValidationViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)
    entry_count: int = 0

    @property
    def errors(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.severity == "error"]

    @property
    def warnings(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.severity == "warning"]

    def by_constraint(self, constraint: str) -> list[ValidationViolation]:
        return [v for v in self.violations if v.constraint == constraint]

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        status = (
            "[bold green]✓ KONSISTENT[/bold green]"
            if self.is_valid
            else "[bold red]✗ VERLETZUNGEN GEFUNDEN[/bold red]"
        )
        lines = [
            status,
            f"Einträge: {self.entry_count} | "
            f"Fehler: {len(self.errors)} | Warnungen: {len(self.warnings)}",
        ]
        console.print(Panel("\n".join(lines), title="Stundenplan-Prüfung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Verletzungen gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Regel", width=26)
        table.add_column("Entität", width=22)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.constraint,
                v.entity,
                v.description,
            )
        console.print(table)


def _overlap(a: ScheduleEntry, b: ScheduleEntry) -> bool:
    return time_ranges_overlap(a.start_time, a.end_time, b.start_time, b.end_time)


class StoreValidator:
    """Prüft eine Eintragssammlung auf Verletzungen der Stundenplan-Regeln."""

    def validate(
        self,
        entries: Iterable[ScheduleEntry],
        teachers: Optional[Iterable[Teacher]] = None,
    ) -> ValidationReport:
        """Führt alle Prüfungen durch und gibt einen ValidationReport zurück."""
        entries = list(entries)
        violations: list[ValidationViolation] = []

        violations.extend(self._check_entry_format(entries))
        # Überschneidungen nur für Einträge mit gültigen Zeiten
        timed = [e for e in entries if self._has_valid_times(e)]
        violations.extend(self._check_teacher_double_booking(timed))
        violations.extend(self._check_cohort_double_booking(timed))
        violations.extend(self._check_legacy_entries(entries))
        violations.extend(self._check_student_counts(entries))
        if teachers is not None:
            violations.extend(self._check_unknown_teachers(entries, list(teachers)))

        has_errors = any(v.severity == "error" for v in violations)
        return ValidationReport(
            violations=violations, is_valid=not has_errors, entry_count=len(entries),
        )

    @staticmethod
    def _has_valid_times(e: ScheduleEntry) -> bool:
        return (
            e.day_of_week in DAYS_OF_WEEK
            and is_valid_time(e.start_time)
            and is_valid_time(e.end_time)
            and e.start_time < e.end_time
        )

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_entry_format(self, entries: list[ScheduleEntry]) -> list[ValidationViolation]:
        """Wochentag bekannt, Uhrzeiten HH:MM, Beginn vor Ende, Name gesetzt."""
        violations: list[ValidationViolation] = []
        for e in entries:
            problems = []
            if e.day_of_week not in DAYS_OF_WEEK:
                problems.append(f"unbekannter Wochentag {e.day_of_week!r}")
            if not is_valid_time(e.start_time) or not is_valid_time(e.end_time):
                problems.append(f"ungültige Uhrzeit {e.start_time!r}–{e.end_time!r}")
            elif e.start_time >= e.end_time:
                problems.append(f"Beginn {e.start_time} nicht vor Ende {e.end_time}")
            if not e.class_name.strip():
                problems.append("leerer Klassenname")
            if not e.grade_sections:
                problems.append("keine Lerngruppe")
            if problems:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="invalid_entry",
                    entity=e.id,
                    description="; ".join(problems),
                ))
        return violations

    def _check_teacher_double_booking(
        self, entries: list[ScheduleEntry]
    ) -> list[ValidationViolation]:
        """Keine Lehrkraft darf zur selben Zeit zwei verschiedene Klassen halten.

        Einträge derselben logischen Klasse (gemeinsamer Unterricht mehrerer
        Lerngruppen) dürfen sich überschneiden.
        """
        violations: list[ValidationViolation] = []
        buckets: dict[tuple[str, str], list[ScheduleEntry]] = defaultdict(list)
        for e in entries:
            buckets[(e.teacher_id, e.day_of_week)].append(e)

        for (teacher_id, day), bucket in buckets.items():
            for a, b in combinations(bucket, 2):
                if a.class_name == b.class_name or not _overlap(a, b):
                    continue
                name = a.teacher_name or teacher_id
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="teacher_double_booking",
                    entity=teacher_id,
                    description=(
                        f"{name} am {day}: {a.describe()} überschneidet sich mit "
                        f"{b.describe()}."
                    ),
                ))
        return violations

    def _check_cohort_double_booking(
        self, entries: list[ScheduleEntry]
    ) -> list[ValidationViolation]:
        """Eine Lerngruppe darf zu jeder Zeit höchstens eine Klasse haben.

        Gleichnamige Einträge (Teamteaching, gemeinsamer Unterricht) sind erlaubt,
        wie bei der Konfliktprüfung vor dem Speichern.
        """
        violations: list[ValidationViolation] = []
        buckets: dict[tuple[str, str, str], list[ScheduleEntry]] = defaultdict(list)
        for e in entries:
            for gs in e.grade_sections:
                buckets[(gs.grade, gs.section, e.day_of_week)].append(e)

        for (grade, section, day), bucket in buckets.items():
            for a, b in combinations(bucket, 2):
                if a.class_name == b.class_name or not _overlap(a, b):
                    continue
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="cohort_double_booking",
                    entity=f"{grade} - {section}",
                    description=(
                        f"{day}: {a.class_name} ({a.time_range}) überschneidet sich mit "
                        f"{b.class_name} ({b.time_range})."
                    ),
                ))
        return violations

    def _check_legacy_entries(self, entries: list[ScheduleEntry]) -> list[ValidationViolation]:
        """Alt-Einträge mit mehreren Lerngruppen werden beim nächsten Speichern normalisiert."""
        return [
            ValidationViolation(
                severity="warning",
                constraint="not_normalized",
                entity=e.id,
                description=(
                    f"{e.class_name}: {len(e.grade_sections)} Lerngruppen in einem Eintrag; "
                    f"wird beim nächsten Speichern aufgeteilt."
                ),
            )
            for e in entries
            if len(e.grade_sections) > 1
        ]

    def _check_student_counts(self, entries: list[ScheduleEntry]) -> list[ValidationViolation]:
        return [
            ValidationViolation(
                severity="warning",
                constraint="student_count_mismatch",
                entity=e.id,
                description=(
                    f"{e.class_name}: student_count={e.student_count}, "
                    f"aber {len(e.student_ids)} Schüler-IDs."
                ),
            )
            for e in entries
            if e.student_count != len(e.student_ids)
        ]

    def _check_unknown_teachers(
        self, entries: list[ScheduleEntry], teachers: list[Teacher]
    ) -> list[ValidationViolation]:
        known = {t.id for t in teachers}
        violations: list[ValidationViolation] = []
        reported: set[str] = set()
        for e in entries:
            if e.teacher_id in known or e.teacher_id in reported:
                continue
            reported.add(e.teacher_id)
            violations.append(ValidationViolation(
                severity="warning",
                constraint="unknown_teacher",
                entity=e.teacher_id,
                description=f"Lehrkraft unbekannt (z.B. in {e.class_name}).",
            ))
        return violations
