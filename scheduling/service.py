"""Speichern und Löschen logischer Klassen gegen einen ScheduleStore.

Ablauf beim Speichern: Snapshot laden → Abgleich (Validierung + Konflikt-
prüfung) → Commit in der Reihenfolge Löschen, Umbenennen, Anlegen. Der Store
bietet keine Transaktion; bricht eine Operation ab, bleibt der Store teilweise
geändert und der Aufrufer erhält einen PartialCommitError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from models.logical_class import LogicalClass, LogicalClassEdit
from models.schedule_entry import ScheduleEntry
from models.student import Student
from models.teacher import Teacher
from scheduling.errors import (
    EntryNotFoundError,
    PartialCommitError,
    StaleSnapshotError,
    StoreError,
)
from scheduling.grouping import entries_for_class, find_related_entries, group_entries
from scheduling.reconciler import ClassReconciler, ReconciliationPlan
from store.base import ScheduleStore

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """Store-Zustand zum Zeitpunkt des Ladens."""

    entries: list[ScheduleEntry]
    revision: int

    def related(self, entry_id: str) -> list[ScheduleEntry]:
        return find_related_entries(self.entries, entry_id)


@dataclass
class CommitResult:
    """Was beim Speichern tatsächlich geschrieben wurde."""

    plan: ReconciliationPlan
    created: list[ScheduleEntry] = field(default_factory=list)
    updated: list[ScheduleEntry] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.deleted)

    def summary(self) -> str:
        return (
            f"{len(self.created)} angelegt, {len(self.updated)} umbenannt, "
            f"{len(self.deleted)} gelöscht, {len(self.plan.retained)} unverändert"
        )


class ScheduleService:
    """Klassenverwaltung über einem ScheduleStore.

    Args:
        store: Beliebige ScheduleStore-Implementierung.
        use_index: Konfliktprüfung über ConflictIndex statt linearer Suche.
        strict: Vor dem Commit die Store-Revision mit dem Snapshot vergleichen.
    """

    def __init__(self, store: ScheduleStore, use_index: bool = True, strict: bool = False) -> None:
        self.store = store
        self.strict = strict
        self.reconciler = ClassReconciler(use_index=use_index)

    @classmethod
    def from_config(cls, store: ScheduleStore, config) -> "ScheduleService":
        """Erzeugt den Service mit den Einstellungen aus einer SchoolConfig."""
        from config.schema import ConcurrencyMode

        return cls(
            store,
            use_index=config.conflicts.use_index,
            strict=config.concurrency.mode == ConcurrencyMode.STRICT,
        )

    # ─── Lesen ───

    def fetch_snapshot(self) -> Snapshot:
        # Revision vor den Einträgen lesen: ein Schreibzugriff dazwischen macht
        # den Snapshot im strikten Modus ungültig statt ihn zu verdecken
        revision = self.store.revision
        return Snapshot(entries=self.store.fetch_all_schedule_entries(), revision=revision)

    def list_classes(self, snapshot: Optional[Snapshot] = None) -> list[LogicalClass]:
        """Eine Zeile pro logischer Klasse, in Store-Reihenfolge."""
        snapshot = snapshot or self.fetch_snapshot()
        return group_entries(snapshot.entries)

    def open_class(self, entry_id: str, snapshot: Optional[Snapshot] = None) -> LogicalClass:
        """Logische Klasse zum angeklickten Eintrag inklusive aller Geschwister.

        Raises:
            EntryNotFoundError: Eintrag ist nicht (mehr) im Store.
        """
        snapshot = snapshot or self.fetch_snapshot()
        related = snapshot.related(entry_id)
        if not related:
            raise EntryNotFoundError(entry_id)
        return group_entries(related)[0]

    def eligible_teachers(self, subject_id: Optional[str]) -> list[Teacher]:
        if not subject_id:
            return []
        return self.store.fetch_teachers_eligible_for_subject(subject_id)

    def enrolled_students(self, entry_id: str) -> list[Student]:
        return self.store.fetch_enrolled_students(entry_id)

    # ─── Schreiben ───

    def plan_save(
        self,
        desired: LogicalClassEdit,
        original: Optional[LogicalClass],
        snapshot: Snapshot,
    ) -> ReconciliationPlan:
        """Berechnet den Plan ohne zu schreiben (Trockenlauf)."""
        if original is not None and original.entry_ids:
            # Geschwister aus dem Snapshot neu bestimmen, nicht aus dem Editor übernehmen
            existing = snapshot.related(original.entry_ids[0])
        else:
            # Neuanlage unter einem bereits vorhandenen Klassenschlüssel gilt als
            # Bearbeitung dieser Klasse (sonst entstünden doppelte Einträge)
            existing = entries_for_class(
                snapshot.entries, desired.class_name.strip(), desired.teacher_id.strip()
            )
        return self.reconciler.reconcile(desired, existing, snapshot.entries)

    def save_class(
        self,
        desired: LogicalClassEdit,
        original: Optional[LogicalClass] = None,
        snapshot: Optional[Snapshot] = None,
    ) -> CommitResult:
        """Speichert eine neue oder bearbeitete logische Klasse.

        Raises:
            ValidationError / ConflictError: nichts wurde geschrieben.
            StaleSnapshotError: nur im strikten Modus, nichts wurde geschrieben.
            PartialCommitError: der Store hat eine Operation abgelehnt.
        """
        snapshot = snapshot or self.fetch_snapshot()
        plan = self.plan_save(desired, original, snapshot)
        if plan.is_empty():
            logger.info(f"Keine Änderungen an '{desired.class_name}'")
            return CommitResult(plan=plan)

        if self.strict and self.store.revision != snapshot.revision:
            logger.warning(
                f"Speichern von '{desired.class_name}' abgelehnt: "
                f"Store-Revision {self.store.revision} ≠ Snapshot {snapshot.revision}"
            )
            raise StaleSnapshotError(snapshot.revision, self.store.revision)

        result = self.apply_plan(plan)
        logger.info(f"'{desired.class_name}' gespeichert: {result.summary()}")
        return result

    def apply_plan(self, plan: ReconciliationPlan) -> CommitResult:
        """Führt einen Plan aus: erst Löschen, dann Umbenennen, dann Anlegen."""
        result = CommitResult(plan=plan)
        operations: list[tuple[str, object]] = (
            [(f"löschen {eid}", ("delete", eid)) for eid in plan.to_delete]
            + [(f"umbenennen {u.entry_id}", ("update", u)) for u in plan.to_update]
            + [(f"anlegen {e.describe()}", ("create", e)) for e in plan.to_create]
        )
        applied: list[str] = []

        for position, (label, (kind, payload)) in enumerate(operations):
            try:
                if kind == "delete":
                    self.store.delete_schedule_entry(payload)
                    result.deleted.append(payload)
                elif kind == "update":
                    result.updated.append(
                        self.store.update_schedule_entry(payload.entry_id, payload.patch)
                    )
                else:
                    result.created.append(self.store.create_schedule_entry(payload))
            except StoreError as exc:
                not_applied = [lbl for lbl, _ in operations[position + 1:]]
                logger.error(
                    f"Commit abgebrochen bei '{label}': {exc} "
                    f"({len(applied)} ausgeführt, {len(not_applied)} ausstehend)"
                )
                raise PartialCommitError(label, applied, not_applied, exc) from exc
            applied.append(label)
            logger.info(f"Aktivität: {label}")

        return result

    def delete_class(self, entry_id: str, snapshot: Optional[Snapshot] = None) -> list[str]:
        """Löscht alle Einträge der logischen Klasse des angeklickten Eintrags.

        Returns:
            IDs der gelöschten Einträge.
        """
        snapshot = snapshot or self.fetch_snapshot()
        related = snapshot.related(entry_id)
        if not related:
            raise EntryNotFoundError(entry_id)
        if self.strict and self.store.revision != snapshot.revision:
            raise StaleSnapshotError(snapshot.revision, self.store.revision)

        plan = ReconciliationPlan(to_delete=[e.id for e in related])
        result = self.apply_plan(plan)
        logger.info(
            f"Klasse '{related[0].class_name}' gelöscht ({len(result.deleted)} Einträge)"
        )
        return result.deleted
