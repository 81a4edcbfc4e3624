"""Tests für den Abgleich logische Klasse ↔ gespeicherte Einträge."""

import json

import pytest

from models.grade_section import GradeSection
from models.logical_class import GradeSectionSchedule, LogicalClassEdit, Schedule
from models.schedule_entry import ScheduleEntry
from scheduling.errors import ConflictError, ValidationError
from scheduling.reconciler import ClassReconciler, ReconciliationPlan, reconcile, validate_edit


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _slot(day: str = "Monday", start: str = "09:00", end: str = "10:00") -> Schedule:
    return Schedule(day_of_week=day, start_time=start, end_time=end)


def _make_edit(
    class_name: str = "Algebra",
    teacher_id: str = "t1",
    cohorts: dict[tuple[str, str], list[Schedule]] | None = None,
    subject_id: str | None = "math",
) -> LogicalClassEdit:
    if cohorts is None:
        cohorts = {("Grade 5", "A"): [_slot()]}
    return LogicalClassEdit(
        class_name=class_name,
        teacher_id=teacher_id,
        subject_id=subject_id,
        grade_sections=[
            GradeSectionSchedule(grade=g, section=s, schedules=slots)
            for (g, s), slots in cohorts.items()
        ],
    )


def _make_entry(
    entry_id: str,
    class_name: str = "Algebra",
    teacher_id: str = "t1",
    grade: str = "Grade 5",
    section: str = "A",
    day: str = "Monday",
    start: str = "09:00",
    end: str = "10:00",
) -> ScheduleEntry:
    return ScheduleEntry(
        id=entry_id, class_name=class_name, teacher_id=teacher_id,
        grade_sections=[GradeSection(grade=grade, section=section)],
        day_of_week=day, start_time=start, end_time=end,
    )


# ─── VALIDIERUNG ──────────────────────────────────────────────────────────────

class TestValidateEdit:
    def test_valid_edit_has_no_issues(self):
        assert validate_edit(_make_edit()) == []

    def test_missing_everything(self):
        """Alle Probleme werden gesammelt, nicht nur das erste."""
        edit = LogicalClassEdit(class_name=" ", teacher_id="", subject_id=None)
        fields = {i.field for i in validate_edit(edit)}
        assert fields == {"class_name", "subject_id", "grade_sections"}

    def test_cohort_without_teacher_and_slots(self):
        edit = LogicalClassEdit(
            class_name="Algebra", subject_id="math",
            grade_sections=[GradeSectionSchedule(grade="Grade 5", section="A")],
        )
        fields = {i.field for i in validate_edit(edit)}
        assert "Grade 5 - A.teacher_id" in fields
        assert "Grade 5 - A.schedules" in fields

    def test_cohort_inherits_class_teacher(self):
        edit = _make_edit(teacher_id="t7")
        assert edit.grade_sections[0].teacher_id == "t7"

    def test_inherited_teacher_leaves_caller_cohort_untouched(self):
        cohort = GradeSectionSchedule(grade="Grade 5", section="A", schedules=[_slot()])
        edit = LogicalClassEdit(
            class_name="Algebra", teacher_id="t7", subject_id="math", grade_sections=[cohort],
        )
        assert edit.grade_sections[0].teacher_id == "t7"
        assert cohort.teacher_id == ""

    def test_cohort_with_other_teacher_is_rejected(self):
        """Eine Klasse hat genau eine Lehrkraft; abweichende Lerngruppe → Fehler."""
        edit = LogicalClassEdit(
            class_name="Algebra", teacher_id="t1", subject_id="math",
            grade_sections=[
                GradeSectionSchedule(grade="Grade 5", section="A", schedules=[_slot()]),
                GradeSectionSchedule(
                    grade="Grade 5", section="B", teacher_id="t2", schedules=[_slot()],
                ),
            ],
        )
        issues = validate_edit(edit)
        assert [i.field for i in issues] == ["Grade 5 - B.teacher_id"]
        assert "t1" in issues[0].message and "t2" in issues[0].message

        with pytest.raises(ValidationError):
            reconcile(edit, [], [])

    def test_cohort_teachers_agree_without_class_teacher(self):
        edit = LogicalClassEdit(
            class_name="Algebra", subject_id="math",
            grade_sections=[
                GradeSectionSchedule(grade="Grade 5", section=s, teacher_id="t1",
                                     schedules=[_slot()])
                for s in ("A", "B")
            ],
        )
        assert validate_edit(edit) == []

    def test_start_after_end_names_the_slot(self):
        edit = _make_edit(cohorts={("Grade 5", "A"): [_slot(start="10:00", end="09:00")]})
        issues = validate_edit(edit)
        assert len(issues) == 1
        assert issues[0].field.startswith("Grade 5 - A.schedules[Monday")
        assert "Beginn muss vor Ende" in issues[0].message

    def test_bad_time_format_and_unknown_day(self):
        edit = _make_edit(cohorts={("Grade 5", "A"): [
            _slot(start="9:00"),
            _slot(day="Funday"),
            _slot(day="Tuesday", start=""),
        ]})
        assert len(validate_edit(edit)) == 3

    def test_duplicate_cohort(self):
        edit = LogicalClassEdit(
            class_name="Algebra", teacher_id="t1", subject_id="math",
            grade_sections=[
                GradeSectionSchedule(grade="Grade 5", section="A", schedules=[_slot()]),
                GradeSectionSchedule(grade="Grade 5", section="A", schedules=[_slot("Friday")]),
            ],
        )
        issues = validate_edit(edit)
        assert [i.field for i in issues] == ["Grade 5 - A"]

    def test_overlapping_and_duplicate_slots_in_one_cohort(self):
        edit = _make_edit(cohorts={("Grade 5", "A"): [
            _slot(start="09:00", end="10:00"),
            _slot(start="09:30", end="10:30"),
            _slot(day="Tuesday"),
            _slot(day="Tuesday"),
        ]})
        assert len(validate_edit(edit)) == 2

    def test_touching_slots_are_valid(self):
        edit = _make_edit(cohorts={("Grade 5", "A"): [
            _slot(start="08:00", end="09:00"), _slot(start="09:00", end="10:00"),
        ]})
        assert validate_edit(edit) == []

    def test_reconcile_raises_validation_error_before_store_access(self):
        with pytest.raises(ValidationError) as exc_info:
            reconcile(_make_edit(subject_id=None), [], [])
        assert exc_info.value.issues[0].field == "subject_id"


# ─── NEUANLAGE ────────────────────────────────────────────────────────────────

class TestReconcileCreate:
    def test_new_class_creates_one_entry_per_cohort_and_slot(self):
        edit = _make_edit(cohorts={
            ("Grade 5", "A"): [_slot("Monday"), _slot("Wednesday")],
            ("Grade 5", "B"): [_slot("Monday"), _slot("Wednesday")],
        })
        plan = reconcile(edit, [], [])
        assert len(plan.to_create) == 4
        assert plan.to_update == [] and plan.to_delete == []
        assert all(len(e.grade_sections) == 1 for e in plan.to_create)
        cohorts = [(e.grade_section.grade, e.grade_section.section) for e in plan.to_create]
        assert cohorts.count(("Grade 5", "A")) == 2

    def test_class_name_is_trimmed(self):
        plan = reconcile(_make_edit(class_name="  Algebra "), [], [])
        assert plan.to_create[0].class_name == "Algebra"

    def test_conflict_aborts_whole_batch(self):
        """Ein einziger Konflikt bricht den Abgleich ab; kein Teilplan."""
        store = [_make_entry("x1", class_name="Biology", teacher_id="t2",
                             section="B", day="Wednesday")]
        edit = _make_edit(cohorts={
            ("Grade 5", "A"): [_slot("Monday"), _slot("Wednesday")],
            ("Grade 5", "B"): [_slot("Monday"), _slot("Wednesday")],
        })
        with pytest.raises(ConflictError) as exc_info:
            reconcile(edit, [], store)
        report = exc_info.value.report
        assert report.kind == "cohort_double_booking"
        assert report.conflicting_entry_id == "x1"
        assert report.candidate.section == "B"

    def test_per_cohort_teacher_conflicts_inside_batch(self):
        """Zwei Lerngruppen, gleiche Lehrkraft, verschiedene Klassennamen → erkannt."""
        existing_other_class = [_make_entry("y1", class_name="Geometry", section="C")]
        with pytest.raises(ConflictError) as exc_info:
            reconcile(_make_edit(), [], existing_other_class)
        assert exc_info.value.report.kind == "teacher_double_booking"

    def test_teacher_busy_in_other_cohort_at_overlapping_time(self):
        """Algebra 5-A Mo 09:00–10:00 gespeichert; Biology 6-B Mo 09:30–10:30, gleiche Lehrkraft."""
        store = [_make_entry("a1")]
        edit = _make_edit(class_name="Biology", subject_id="bio", cohorts={
            ("Grade 6", "B"): [_slot(start="09:30", end="10:30")],
        })
        with pytest.raises(ConflictError) as exc_info:
            reconcile(edit, [], store)
        report = exc_info.value.report
        assert report.kind == "teacher_double_booking"
        assert report.conflicting_entry_id == "a1"
        assert report.conflicting_class_name == "Algebra"

    def test_cohort_busy_with_other_teacher_at_overlapping_time(self):
        store = [_make_entry("a1")]
        edit = _make_edit(class_name="Biology", teacher_id="t2", subject_id="bio", cohorts={
            ("Grade 5", "A"): [_slot(start="09:30", end="10:30")],
        })
        with pytest.raises(ConflictError) as exc_info:
            reconcile(edit, [], store)
        assert exc_info.value.report.kind == "cohort_double_booking"

    def test_store_snapshot_is_required(self):
        with pytest.raises(TypeError):
            reconcile(_make_edit(), [])

    def test_index_and_scan_give_same_plan(self):
        store = [_make_entry("z1", class_name="Art", teacher_id="t3", section="C")]
        edit = _make_edit(cohorts={("Grade 5", "A"): [_slot(), _slot("Friday")]})
        with_index = ClassReconciler(use_index=True).reconcile(edit, [], store)
        without = ClassReconciler(use_index=False).reconcile(edit, [], store)
        assert with_index.to_dict() == without.to_dict()


# ─── BEARBEITEN ───────────────────────────────────────────────────────────────

class TestReconcileEdit:
    def test_unchanged_class_is_empty_plan(self):
        """Minimalität: gespeicherter Zustand erneut speichern → keine Operation."""
        existing = [
            _make_entry("e1", section="A"),
            _make_entry("e2", section="B"),
        ]
        edit = _make_edit(cohorts={("Grade 5", "A"): [_slot()], ("Grade 5", "B"): [_slot()]})
        plan = reconcile(edit, existing, existing)
        assert plan.is_empty()
        assert plan.retained == ["e1", "e2"]
        assert plan.operation_count == 0

    def test_minimal_plan_keeps_renames_drops_and_adds(self):
        """E1 bleibt, E2 wird umbenannt, E3 entfällt, ein Donnerstag kommt hinzu."""
        existing = [
            _make_entry("E1", day="Monday"),
            _make_entry("E2", class_name="Algebra (alt)", day="Tuesday"),
            _make_entry("E3", day="Wednesday"),
        ]
        edit = _make_edit(cohorts={
            ("Grade 5", "A"): [_slot("Monday"), _slot("Tuesday"), _slot("Thursday")],
        })
        plan = reconcile(edit, existing, existing)
        assert [u.entry_id for u in plan.to_update] == ["E2"]
        assert plan.to_update[0].patch.class_name == "Algebra"
        assert plan.to_delete == ["E3"]
        assert [e.day_of_week for e in plan.to_create] == ["Thursday"]
        assert plan.retained == ["E1", "E2"]
        assert plan.operation_count == 3

    def test_added_slot_only_creates_that_slot(self):
        existing = [_make_entry("e1")]
        edit = _make_edit(cohorts={("Grade 5", "A"): [_slot(), _slot("Thursday")]})
        plan = reconcile(edit, existing, existing)
        assert [e.day_of_week for e in plan.to_create] == ["Thursday"]
        assert plan.to_delete == []
        assert plan.retained == ["e1"]

    def test_removed_cohort_is_deleted(self):
        existing = [_make_entry("e1", section="A"), _make_entry("e2", section="B")]
        plan = reconcile(_make_edit(), existing, existing)
        assert plan.to_delete == ["e2"]
        assert plan.to_create == []

    def test_changed_time_is_delete_plus_create(self):
        existing = [_make_entry("e1")]
        edit = _make_edit(cohorts={("Grade 5", "A"): [_slot(start="10:00", end="11:00")]})
        plan = reconcile(edit, existing, existing)
        assert plan.to_delete == ["e1"]
        assert len(plan.to_create) == 1
        assert plan.to_create[0].start_time == "10:00"

    def test_moving_slot_onto_own_old_time_is_no_conflict(self):
        """Eigene Einträge der Klasse werden bei der Prüfung ausgenommen."""
        existing = [_make_entry("e1", start="09:00", end="10:00")]
        edit = _make_edit(cohorts={("Grade 5", "A"): [_slot(start="09:30", end="10:30")]})
        plan = reconcile(edit, existing, existing)
        assert plan.to_delete == ["e1"]

    def test_rename_updates_retained_entries(self):
        existing = [_make_entry("e1", class_name="Algebra"), _make_entry("e2", section="B")]
        edit = _make_edit(class_name="Algebra I", cohorts={
            ("Grade 5", "A"): [_slot()], ("Grade 5", "B"): [_slot()],
        })
        plan = reconcile(edit, existing, existing)
        assert [u.entry_id for u in plan.to_update] == ["e1", "e2"]
        assert plan.to_update[0].patch.class_name == "Algebra I"
        assert plan.to_update[0].old_class_name == "Algebra"
        assert plan.to_create == [] and plan.to_delete == []

    def test_rename_into_cohort_collision_is_rejected(self):
        """Umbenennung wird erneut geprüft: anderer Eintrag gleicher Name → kein Konflikt,
        anderer Name in gleicher Lerngruppe → Konflikt."""
        existing = [_make_entry("e1", class_name="Algebra")]
        other = _make_entry("o1", class_name="Algebra I", teacher_id="t2")
        store = existing + [other]
        # Vorher: "Algebra" vs "Algebra I" in derselben Lerngruppe wäre ein Konflikt,
        # nach der Umbenennung heißen beide gleich.
        plan = reconcile(_make_edit(class_name="Algebra I"), existing, store)
        assert len(plan.to_update) == 1

        with pytest.raises(ConflictError):
            reconcile(_make_edit(class_name="Algebra II"), existing, store)

    def test_legacy_multi_cohort_entry_is_normalized(self):
        """Alt-Eintrag mit zwei Lerngruppen wird gelöscht und zweimal neu angelegt."""
        legacy = _make_entry("old").model_copy(update={"grade_sections": [
            GradeSection(grade="Grade 5", section="A"),
            GradeSection(grade="Grade 5", section="B"),
        ]})
        edit = _make_edit(cohorts={("Grade 5", "A"): [_slot()], ("Grade 5", "B"): [_slot()]})
        plan = reconcile(edit, [legacy], [legacy])
        assert plan.to_delete == ["old"]
        assert len(plan.to_create) == 2

    def test_duplicate_stored_entries_keep_one(self):
        existing = [_make_entry("e1"), _make_entry("e2")]
        plan = reconcile(_make_edit(), existing, existing)
        assert plan.retained == ["e1"]
        assert plan.to_delete == ["e2"]

    def test_queues_are_disjoint(self):
        existing = [_make_entry("e1"), _make_entry("e2", day="Tuesday")]
        edit = _make_edit(class_name="Algebra I", cohorts={
            ("Grade 5", "A"): [_slot(), _slot("Friday")],
        })
        plan = reconcile(edit, existing, existing)
        updated = {u.entry_id for u in plan.to_update}
        assert updated.isdisjoint(plan.to_delete)
        assert set(plan.retained).isdisjoint(plan.to_delete)


class TestReconciliationPlan:
    def test_to_json_roundtrip_structure(self):
        existing = [_make_entry("e1")]
        edit = _make_edit(class_name="Algebra I", cohorts={
            ("Grade 5", "A"): [_slot(), _slot("Friday")],
        })
        data = json.loads(reconcile(edit, existing, existing).to_json())
        assert set(data) == {"to_create", "to_update", "to_delete", "retained"}
        assert data["to_update"][0] == {
            "id": "e1", "patch": {"class_name": "Algebra I"}, "old_class_name": "Algebra",
        }
        assert data["to_create"][0]["day_of_week"] == "Friday"

    def test_empty_plan(self):
        plan = ReconciliationPlan()
        assert plan.is_empty()
        assert plan.to_dict()["to_create"] == []
