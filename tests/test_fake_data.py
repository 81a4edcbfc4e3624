"""Tests für den Demo-Daten-Generator."""

import pytest

from analysis.store_validator import StoreValidator
from config.defaults import default_school_config
from scheduling.grouping import group_entries
from store import InMemoryScheduleStore
from store.fake_data import FakeDataGenerator


@pytest.fixture(scope="module")
def demo_data():
    gen = FakeDataGenerator(default_school_config(), seed=42, max_grades=2)
    return gen, gen.generate()


class TestFakeDataGenerator:
    def test_master_data(self, demo_data):
        _, data = demo_data
        assert len(data.subjects) == 9
        assert len(data.teachers) == 18
        # 2 Jahrgänge × 6 Klassen × 4 Schüler
        assert len(data.students) == 48

    def test_every_subject_has_two_teachers(self, demo_data):
        _, data = demo_data
        store = InMemoryScheduleStore(data)
        for subject in data.subjects:
            assert len(store.fetch_teachers_eligible_for_subject(subject.id)) >= 2

    def test_classes_saved(self, demo_data):
        gen, data = demo_data
        classes = group_entries(data.entries)
        assert len(classes) + len(gen.skipped) == 2 * 9
        assert all(e.is_normalized for e in data.entries)
        assert all(e.teacher_name for e in data.entries)

    def test_demo_schedule_is_consistent(self, demo_data):
        _, data = demo_data
        report = StoreValidator().validate(data.entries, data.teachers)
        assert report.is_valid
        assert report.warnings == []

    def test_same_seed_same_schedule(self):
        def _slots(seed):
            data = FakeDataGenerator(default_school_config(), seed=seed, max_grades=1).generate()
            return [
                (e.class_name, e.teacher_id, e.grade_section.section,
                 e.day_of_week, e.start_time)
                for e in data.entries
            ]
        assert _slots(7) == _slots(7)

    def test_populate_existing_store(self):
        gen = FakeDataGenerator(default_school_config(), seed=1, max_grades=1)
        store = InMemoryScheduleStore(gen.generate_master_data())
        saved = gen.populate(store)
        assert saved == len(group_entries(store.fetch_all_schedule_entries()))
        assert store.revision == len(store)

    def test_print_summary_runs(self, demo_data, capsys):
        gen, data = demo_data
        gen.print_summary(data)
        assert "Demo-Daten" in capsys.readouterr().out
