"""Tests für den ScheduleService: Speichern, Löschen, Parallelität und Teil-Commits."""

import logging

import pytest

from config.defaults import default_school_config
from config.schema import ConcurrencyMode
from models.logical_class import GradeSectionSchedule, LogicalClassEdit, Schedule
from models.schedule_entry import NewScheduleEntry
from models.student import Student
from models.teacher import Teacher
from scheduling.errors import (
    ConflictError,
    EntryNotFoundError,
    PartialCommitError,
    StaleSnapshotError,
    StoreError,
    ValidationError,
)
from scheduling.service import ScheduleService
from store import InMemoryScheduleStore, StoreData
from analysis.store_validator import StoreValidator


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _make_store() -> InMemoryScheduleStore:
    return InMemoryScheduleStore(StoreData(
        teachers=[
            Teacher(id="t1", name="Müller, Anna", subject_ids=["math"]),
            Teacher(id="t2", name="Weber, Eva", subject_ids=["bio"]),
        ],
        students=[
            Student(id="s1", name="Koch, Lena", grade="Grade 5", section="A"),
            Student(id="s2", name="Klein, Zoe", grade="Grade 5", section="B"),
        ],
    ))


def _make_edit(
    class_name: str = "Algebra",
    teacher_id: str = "t1",
    sections: tuple[str, ...] = ("A", "B"),
    days: tuple[str, ...] = ("Monday", "Wednesday"),
    start: str = "09:00",
    end: str = "10:00",
    subject_id: str = "math",
) -> LogicalClassEdit:
    return LogicalClassEdit(
        class_name=class_name,
        teacher_id=teacher_id,
        subject_id=subject_id,
        grade_sections=[
            GradeSectionSchedule(
                grade="Grade 5", section=section,
                schedules=[Schedule(day_of_week=d, start_time=start, end_time=end) for d in days],
            )
            for section in sections
        ],
    )


class FailingStore(InMemoryScheduleStore):
    """Lehnt die n-te Anlage ab (für Teil-Commit-Tests)."""

    def __init__(self, data: StoreData, fail_on_create: int):
        super().__init__(data)
        self.fail_on_create = fail_on_create
        self.creates = 0

    def create_schedule_entry(self, entry: NewScheduleEntry):
        self.creates += 1
        if self.creates == self.fail_on_create:
            raise StoreError("Schreibzugriff verweigert")
        return super().create_schedule_entry(entry)


@pytest.fixture
def store() -> InMemoryScheduleStore:
    return _make_store()


@pytest.fixture
def service(store) -> ScheduleService:
    return ScheduleService(store)


# ─── SPEICHERN ────────────────────────────────────────────────────────────────

class TestSaveClass:
    def test_create_new_class(self, service, store):
        result = service.save_class(_make_edit())
        assert len(result.created) == 4
        assert result.changed
        classes = service.list_classes()
        assert len(classes) == 1
        assert classes[0].teacher_name == "Müller, Anna"
        assert classes[0].student_count == 2
        assert store.revision == 4

    def test_resave_unchanged_writes_nothing(self, service, store):
        service.save_class(_make_edit())
        lc = service.list_classes()[0]
        revision = store.revision
        result = service.save_class(lc.to_edit("math"), original=lc)
        assert not result.changed
        assert result.plan.is_empty()
        assert store.revision == revision

    def test_resave_without_original_matches_stored_class(self, service, store):
        """Erneutes Anlegen unter demselben Klassenschlüssel erzeugt keine Duplikate."""
        service.save_class(_make_edit())
        revision = store.revision
        result = service.save_class(_make_edit())
        assert not result.changed
        assert store.revision == revision
        assert len(store) == 4

    def test_save_without_original_replaces_slots_of_stored_class(self, service, store):
        service.save_class(_make_edit(sections=("A",), days=("Monday",)))
        result = service.save_class(_make_edit(sections=("A",), days=("Tuesday",)))
        assert len(result.deleted) == 1
        assert [e.day_of_week for e in result.created] == ["Tuesday"]
        assert [e.day_of_week for e in store.fetch_all_schedule_entries()] == ["Tuesday"]

    def test_mixed_cohort_teachers_are_rejected(self, service, store):
        edit = _make_edit()
        edit.grade_sections[1] = edit.grade_sections[1].model_copy(update={"teacher_id": "t2"})
        with pytest.raises(ValidationError) as exc_info:
            service.save_class(edit)
        assert exc_info.value.issues[0].field == "Grade 5 - B.teacher_id"
        assert store.revision == 0

    def test_edit_removes_cohort_and_adds_day(self, service):
        service.save_class(_make_edit())
        lc = service.list_classes()[0]
        result = service.save_class(
            _make_edit(sections=("A",), days=("Monday", "Wednesday", "Friday")), original=lc,
        )
        assert len(result.deleted) == 2
        assert len(result.created) == 1
        assert result.created[0].day_of_week == "Friday"
        assert service.list_classes()[0].entry_count == 3

    def test_rename_keeps_entry_ids(self, service):
        service.save_class(_make_edit())
        lc = service.list_classes()[0]
        result = service.save_class(_make_edit(class_name="Algebra I"), original=lc)
        assert len(result.updated) == 4
        renamed = service.list_classes()[0]
        assert renamed.class_name == "Algebra I"
        assert renamed.entry_ids == lc.entry_ids

    def test_conflict_writes_nothing(self, service, store):
        service.save_class(_make_edit())
        revision = store.revision
        with pytest.raises(ConflictError) as exc_info:
            service.save_class(_make_edit(class_name="Biology", teacher_id="t2",
                                          sections=("B",), days=("Wednesday",),
                                          start="09:30", end="10:30", subject_id="bio"))
        assert exc_info.value.report.kind == "cohort_double_booking"
        assert store.revision == revision

    def test_validation_error_writes_nothing(self, service, store):
        with pytest.raises(ValidationError):
            service.save_class(_make_edit(subject_id=""))
        assert store.revision == 0

    def test_commit_order_deletes_first(self, service, store):
        """Verschieben auf eine Zeit, die vorher ein eigener Eintrag belegte."""
        service.save_class(_make_edit(sections=("A",), days=("Monday",)))
        lc = service.list_classes()[0]
        order = []
        original_delete = store.delete_schedule_entry
        original_create = store.create_schedule_entry
        store.delete_schedule_entry = lambda eid: (order.append("delete"), original_delete(eid))[1]
        store.create_schedule_entry = lambda e: (order.append("create"), original_create(e))[1]

        service.save_class(_make_edit(sections=("A",), days=("Tuesday",)), original=lc)
        assert order == ["delete", "create"]

    def test_plan_save_is_dry_run(self, service, store):
        snapshot = service.fetch_snapshot()
        plan = service.plan_save(_make_edit(), None, snapshot)
        assert len(plan.to_create) == 4
        assert store.revision == 0

    def test_activity_is_logged(self, service, caplog):
        with caplog.at_level(logging.INFO, logger="scheduling.service"):
            service.save_class(_make_edit(sections=("A",), days=("Monday",)))
        assert any("Aktivität: anlegen" in r.message for r in caplog.records)
        assert any("gespeichert" in r.message for r in caplog.records)


# ─── LESEN / LÖSCHEN ──────────────────────────────────────────────────────────

class TestOpenAndDelete:
    def test_open_class_finds_all_siblings(self, service):
        service.save_class(_make_edit())
        some_id = service.fetch_snapshot().entries[2].id
        lc = service.open_class(some_id)
        assert lc.entry_count == 4
        assert [gs.section for gs in lc.grade_sections] == ["A", "B"]

    def test_open_unknown_entry(self, service):
        with pytest.raises(EntryNotFoundError):
            service.open_class("missing")

    def test_delete_class_removes_all_siblings(self, service, store):
        service.save_class(_make_edit())
        service.save_class(_make_edit(class_name="Biology", teacher_id="t2", days=("Friday",),
                                      subject_id="bio"))
        algebra_id = service.list_classes()[0].entry_ids[0]
        deleted = service.delete_class(algebra_id)
        assert len(deleted) == 4
        remaining = service.list_classes()
        assert [c.class_name for c in remaining] == ["Biology"]

    def test_eligible_teachers_and_students(self, service):
        assert [t.id for t in service.eligible_teachers("bio")] == ["t2"]
        assert service.eligible_teachers(None) == []
        service.save_class(_make_edit(sections=("B",), days=("Monday",)))
        entry_id = service.fetch_snapshot().entries[0].id
        assert [s.id for s in service.enrolled_students(entry_id)] == ["s2"]


# ─── PARALLELITÄT ─────────────────────────────────────────────────────────────

class TestConcurrency:
    def test_race_window_in_optimistic_mode(self, store):
        """Zwei Editoren mit demselben Snapshot können gemeinsam eine Doppelbuchung erzeugen.

        Im Standardmodus wird das bewusst hingenommen; die Store-Prüfung findet sie.
        """
        editor_a = ScheduleService(store)
        editor_b = ScheduleService(store)
        snap_a = editor_a.fetch_snapshot()
        snap_b = editor_b.fetch_snapshot()

        editor_a.save_class(_make_edit(sections=("A",), days=("Monday",)), snapshot=snap_a)
        editor_b.save_class(
            _make_edit(class_name="Biology", teacher_id="t2", sections=("A",),
                       days=("Monday",), subject_id="bio"),
            snapshot=snap_b,
        )
        assert len(store.fetch_all_schedule_entries()) == 2

        report = StoreValidator().validate(store.fetch_all_schedule_entries())
        assert not report.is_valid
        assert len(report.by_constraint("cohort_double_booking")) == 1

    def test_strict_mode_rejects_stale_snapshot(self, store):
        editor_a = ScheduleService(store, strict=True)
        editor_b = ScheduleService(store, strict=True)
        snap_b = editor_b.fetch_snapshot()

        editor_a.save_class(_make_edit(sections=("A",), days=("Monday",)))
        with pytest.raises(StaleSnapshotError) as exc_info:
            editor_b.save_class(
                _make_edit(class_name="Biology", teacher_id="t2", sections=("A",),
                           days=("Monday",), subject_id="bio"),
                snapshot=snap_b,
            )
        assert exc_info.value.snapshot_revision == 0
        assert exc_info.value.current_revision == 1
        assert len(store) == 1

    def test_strict_mode_with_fresh_snapshot_detects_conflict(self, store):
        editor_a = ScheduleService(store, strict=True)
        editor_a.save_class(_make_edit(sections=("A",), days=("Monday",)))
        with pytest.raises(ConflictError):
            ScheduleService(store, strict=True).save_class(
                _make_edit(class_name="Biology", teacher_id="t2", sections=("A",),
                           days=("Monday",), subject_id="bio"),
            )

    def test_from_config(self, store):
        config = default_school_config()
        assert not ScheduleService.from_config(store, config).strict
        config.concurrency.mode = ConcurrencyMode.STRICT
        config.conflicts.use_index = False
        service = ScheduleService.from_config(store, config)
        assert service.strict
        assert not service.reconciler.use_index


# ─── TEIL-COMMITS ─────────────────────────────────────────────────────────────

class TestPartialCommit:
    def test_store_error_reports_applied_and_pending(self):
        store = FailingStore(_make_store().data, fail_on_create=3)
        service = ScheduleService(store)
        with pytest.raises(PartialCommitError) as exc_info:
            service.save_class(_make_edit())
        err = exc_info.value
        assert len(err.applied) == 2
        assert len(err.not_applied) == 1
        assert err.failed_operation.startswith("anlegen")
        assert isinstance(err.cause, StoreError)
        assert err.USER_MESSAGE in str(err)
        # Keine Rückabwicklung: die ersten beiden Einträge bleiben gespeichert
        assert len(store) == 2

    def test_partial_commit_is_a_store_error(self):
        store = FailingStore(_make_store().data, fail_on_create=1)
        with pytest.raises(StoreError):
            ScheduleService(store).save_class(_make_edit(sections=("A",), days=("Monday",)))

    def test_reload_and_retry_completes(self):
        """Nach einem Teil-Commit: neu laden, erneut speichern → vollständig."""
        store = FailingStore(_make_store().data, fail_on_create=2)
        service = ScheduleService(store)
        with pytest.raises(PartialCommitError):
            service.save_class(_make_edit(sections=("A",)))
        lc = service.list_classes()[0]
        result = service.save_class(_make_edit(sections=("A",)), original=lc)
        assert len(result.created) == 1
        assert service.list_classes()[0].entry_count == 2

    def test_delete_missing_entry_is_partial_commit(self, service, store):
        service.save_class(_make_edit(sections=("A",), days=("Monday",)))
        snapshot = service.fetch_snapshot()
        entry_id = snapshot.entries[0].id
        store.delete_schedule_entry(entry_id)
        with pytest.raises(PartialCommitError) as exc_info:
            service.delete_class(entry_id, snapshot)
        assert isinstance(exc_info.value.cause, EntryNotFoundError)
