"""Abgleich zwischen bearbeiteter logischer Klasse und gespeicherten Einträgen.

Berechnet die minimale Menge an Anlagen, Umbenennungen und Löschungen, um den
Store vom aktuellen in den gewünschten Zustand zu bringen. Jedes neue oder
geänderte Zeitfenster passiert vorher die Konfliktprüfung; ein einziger
Konflikt bricht den gesamten Abgleich ab (alles oder nichts).
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from models.logical_class import GradeSectionSchedule, LogicalClassEdit, Schedule
from models.schedule_entry import (
    NewScheduleEntry,
    ScheduleEntry,
    ScheduleEntryPatch,
    SlotKey,
)
from models.timeslot import DAYS_OF_WEEK, TimeRange, is_valid_time, to_minutes
from scheduling.conflicts import (
    ConflictIndex,
    SlotCandidate,
    detect_conflict,
)
from scheduling.errors import ConflictError, FieldIssue, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class EntryUpdate:
    """Umbenennung eines bestehenden Eintrags (Schlüssel unverändert)."""

    entry_id: str
    patch: ScheduleEntryPatch
    old_class_name: str


@dataclass
class ReconciliationPlan:
    """Ergebnis des Abgleichs: drei disjunkte Warteschlangen."""

    to_create: list[NewScheduleEntry] = field(default_factory=list)
    to_update: list[EntryUpdate] = field(default_factory=list)
    to_delete: list[str] = field(default_factory=list)
    retained: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        """Gibt True zurück wenn nichts geschrieben werden muss."""
        return not self.to_create and not self.to_update and not self.to_delete

    @property
    def operation_count(self) -> int:
        return len(self.to_create) + len(self.to_update) + len(self.to_delete)

    def to_dict(self) -> dict:
        """Serialisiert den Plan als Dictionary (für JSON-Ausgabe)."""
        return {
            "to_create": [e.model_dump(mode="json") for e in self.to_create],
            "to_update": [
                {
                    "id": u.entry_id,
                    "patch": u.patch.model_dump(exclude_none=True),
                    "old_class_name": u.old_class_name,
                }
                for u in self.to_update
            ],
            "to_delete": self.to_delete,
            "retained": self.retained,
        }

    def to_json(self, indent: int = 2) -> str:
        """Gibt den Plan als JSON-String zurück."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def print_rich(self) -> None:
        """Gibt den Plan formatiert über Rich aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        if self.is_empty():
            console.print("[dim]Keine Änderungen – nichts zu speichern.[/dim]")
            return

        table = Table(title="Geplante Änderungen", box=box.ROUNDED)
        table.add_column("Aktion", width=10)
        table.add_column("Eintrag")
        for entry_id in self.to_delete:
            table.add_row("[red]löschen[/red]", entry_id)
        for u in self.to_update:
            table.add_row(
                "[yellow]umbenennen[/yellow]",
                f"{u.entry_id}: {u.old_class_name!r} → {u.patch.class_name!r}",
            )
        for e in self.to_create:
            table.add_row("[green]anlegen[/green]", e.describe())
        console.print(table)
        console.print(f"[dim]Unverändert: {len(self.retained)} Eintrag/Einträge[/dim]")


# ─── Validierung ──────────────────────────────────────────────────────────────

def _slot_field(gs: GradeSectionSchedule, slot: Schedule) -> str:
    start = slot.start_time or "?"
    end = slot.end_time or "?"
    return f"{gs.label}.schedules[{slot.day_of_week} {start}–{end}]"


def validate_edit(desired: LogicalClassEdit) -> list[FieldIssue]:
    """Prüft den Editor-Zustand vor jedem Store-Zugriff.

    Sammelt alle Probleme (statt beim ersten abzubrechen), damit der Nutzer
    alle betroffenen Lerngruppen und Zeitfenster auf einmal sieht.
    """
    issues: list[FieldIssue] = []

    if not desired.class_name.strip():
        issues.append(FieldIssue("class_name", "Bitte einen Klassennamen angeben."))
    if not desired.subject_id:
        issues.append(FieldIssue("subject_id", "Bitte ein Fach auswählen."))
    if not desired.grade_sections:
        issues.append(FieldIssue(
            "grade_sections", "Bitte mindestens eine Lerngruppe (Jahrgang + Klasse) auswählen."
        ))

    # Eine logische Klasse hat genau eine Lehrkraft (Teil des Klassenschlüssels)
    class_teacher = desired.teacher_id.strip() or next(
        (gs.teacher_id.strip() for gs in desired.grade_sections if gs.teacher_id.strip()), ""
    )

    seen_cohorts: set[tuple[str, str]] = set()
    for gs in desired.grade_sections:
        cohort = (gs.grade, gs.section)
        if cohort in seen_cohorts:
            issues.append(FieldIssue(gs.label, "Lerngruppe ist mehrfach ausgewählt."))
            continue
        seen_cohorts.add(cohort)

        if not gs.teacher_id.strip():
            issues.append(FieldIssue(
                f"{gs.label}.teacher_id", "Bitte eine Lehrkraft zuweisen."
            ))
        elif gs.teacher_id.strip() != class_teacher:
            issues.append(FieldIssue(
                f"{gs.label}.teacher_id",
                f"Alle Lerngruppen einer Klasse haben dieselbe Lehrkraft "
                f"({class_teacher}), nicht {gs.teacher_id.strip()}.",
            ))
        if not gs.schedules:
            issues.append(FieldIssue(
                f"{gs.label}.schedules",
                "Bitte mindestens ein Zeitfenster (Tag + Uhrzeit) hinzufügen.",
            ))

        valid_slots: list[Schedule] = []
        for slot in gs.schedules:
            slot_issues = _validate_slot(gs, slot)
            issues.extend(slot_issues)
            if not slot_issues:
                valid_slots.append(slot)
        issues.extend(_overlapping_slots(gs, valid_slots))

    return issues


def _validate_slot(gs: GradeSectionSchedule, slot: Schedule) -> list[FieldIssue]:
    where = _slot_field(gs, slot)
    if slot.day_of_week not in DAYS_OF_WEEK:
        return [FieldIssue(where, f"Unbekannter Wochentag: {slot.day_of_week!r}.")]
    if not slot.start_time or not slot.end_time:
        return [FieldIssue(where, "Bitte Beginn und Ende ausfüllen.")]
    for value in (slot.start_time, slot.end_time):
        if not is_valid_time(value):
            return [FieldIssue(where, f"Uhrzeit muss im Format HH:MM (24h) sein: {value!r}.")]
    if to_minutes(slot.start_time) >= to_minutes(slot.end_time):
        return [FieldIssue(
            where,
            f"Ungültiger Zeitraum am {slot.day_of_week}: Beginn muss vor Ende liegen.",
        )]
    return []


def _overlapping_slots(gs: GradeSectionSchedule, slots: list[Schedule]) -> list[FieldIssue]:
    """Zwei Zeitfenster derselben Lerngruppe am selben Tag dürfen sich nicht überschneiden."""
    issues: list[FieldIssue] = []
    by_day: dict[str, list[Schedule]] = defaultdict(list)
    for slot in slots:
        by_day[slot.day_of_week].append(slot)

    for day, day_slots in by_day.items():
        ordered = sorted(day_slots, key=lambda s: to_minutes(s.start_time))
        for prev, curr in zip(ordered, ordered[1:]):
            a = TimeRange(prev.start_time, prev.end_time)
            b = TimeRange(curr.start_time, curr.end_time)
            if a.overlaps(b):
                issues.append(FieldIssue(
                    _slot_field(gs, curr),
                    f"Überschneidet sich mit {a} am {day}.",
                ))
    return issues


# ─── Abgleich ─────────────────────────────────────────────────────────────────

class ClassReconciler:
    """Berechnet Anlage-/Umbenennungs-/Lösch-Pläne für eine logische Klasse."""

    def __init__(self, use_index: bool = True) -> None:
        self.use_index = use_index

    def reconcile(
        self,
        desired: LogicalClassEdit,
        existing_physical_entries: Iterable[ScheduleEntry],
        store_entries: Iterable[ScheduleEntry],
    ) -> ReconciliationPlan:
        """Gleicht den gewünschten Zustand mit den bisherigen Einträgen ab.

        Args:
            desired: Vollständiger Editor-Zustand der logischen Klasse.
            existing_physical_entries: Bisherige Einträge dieser Klasse (leer bei Neuanlage).
            store_entries: Kompletter Store-Snapshot für die Konfliktprüfung
                (enthält in der Regel auch existing_physical_entries).

        Raises:
            ValidationError: Eingabe unvollständig (vor jedem Store-Zugriff).
            ConflictError: Ein Zeitfenster würde eine Doppelbuchung erzeugen.
        """
        issues = validate_edit(desired)
        if issues:
            raise ValidationError(issues)

        existing = list(existing_physical_entries)
        snapshot = list(store_entries)
        own_ids = {e.id for e in existing}
        index = ConflictIndex(snapshot) if self.use_index else None

        by_key: dict[SlotKey, ScheduleEntry] = {}
        for entry in existing:
            key = entry.slot_key
            # Alt-Einträge ohne Schlüssel und Duplikate werden ersetzt
            if key is not None and key not in by_key:
                by_key[key] = entry

        plan = ReconciliationPlan()
        batch: list[SlotCandidate] = []
        class_name = desired.class_name.strip()

        for gs in desired.grade_sections:
            for slot in gs.schedules:
                candidate = SlotCandidate(
                    class_name=class_name,
                    teacher_id=gs.teacher_id.strip(),
                    grade=gs.grade,
                    section=gs.section,
                    day_of_week=slot.day_of_week,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                )
                match = by_key.pop(candidate.key, None)
                if match is not None:
                    plan.retained.append(match.id)
                    if match.class_name != class_name:
                        # Umbenennung kann eine Lerngruppen-Kollision erzeugen
                        self._gate(candidate, snapshot, own_ids, batch, index)
                        plan.to_update.append(EntryUpdate(
                            entry_id=match.id,
                            patch=ScheduleEntryPatch(class_name=class_name),
                            old_class_name=match.class_name,
                        ))
                else:
                    self._gate(candidate, snapshot, own_ids, batch, index)
                    plan.to_create.append(candidate.to_new_entry())
                batch.append(candidate)

        retained = set(plan.retained)
        plan.to_delete = [e.id for e in existing if e.id not in retained]

        logger.info(
            f"Abgleich '{class_name}': {len(plan.to_create)} neu, "
            f"{len(plan.to_update)} umbenannt, {len(plan.to_delete)} gelöscht, "
            f"{len(plan.retained)} unverändert"
        )
        return plan

    def _gate(
        self,
        candidate: SlotCandidate,
        snapshot: list[ScheduleEntry],
        own_ids: set[str],
        batch: list[SlotCandidate],
        index: Optional[ConflictIndex],
    ) -> None:
        if index is not None:
            report = index.detect(candidate, exclude_ids=own_ids, pending=batch)
        else:
            report = detect_conflict(candidate, snapshot, exclude_ids=own_ids, pending=batch)
        if report is not None:
            logger.warning(f"Konflikt: {report.description}")
            raise ConflictError(report)


def reconcile(
    desired: LogicalClassEdit,
    existing_physical_entries: Iterable[ScheduleEntry],
    store_entries: Iterable[ScheduleEntry],
) -> ReconciliationPlan:
    """Kurzform für ClassReconciler().reconcile(...)."""
    return ClassReconciler().reconcile(desired, existing_physical_entries, store_entries)

