"""Demo-Daten-Generator für die Klassenverwaltung.

Erzeugt Fächer, Lehrkräfte, Schüler und konfliktfreie logische Klassen.
Die Klassen werden über den ScheduleService gespeichert, durchlaufen also
dieselbe Validierung und Konfliktprüfung wie Eingaben im Editor.
"""

import logging
import random
from typing import Optional

from config.schema import SchoolConfig
from models.logical_class import GradeSectionSchedule, LogicalClassEdit, Schedule
from models.student import Student
from models.subject import Subject
from models.teacher import Teacher
from scheduling.errors import ConflictError
from scheduling.service import ScheduleService
from store.memory import InMemoryScheduleStore, StoreData

logger = logging.getLogger(__name__)

# ─── Namens-Listen ────────────────────────────────────────────────────────────

_FIRST_NAMES = [
    "Andreas", "Anna", "Bernd", "Birgit", "Christian", "Christine", "Eva",
    "Franz", "Iris", "Jürgen", "Kathrin", "Klaus", "Lena", "Maria", "Markus",
    "Olga", "Peter", "Renate", "Sandra", "Stefan", "Tobias", "Ulrike", "Yusuf", "Zoe",
]

_LAST_NAMES = [
    "Müller", "Schmidt", "Schneider", "Fischer", "Weber", "Meyer",
    "Wagner", "Becker", "Schulz", "Hoffmann", "Schäfer", "Koch",
    "Bauer", "Richter", "Klein", "Wolf", "Schröder", "Neumann",
    "Schwarz", "Zimmermann", "Braun", "Krüger", "Hartmann", "Lange",
]

# (ID, Name)
_SUBJECTS: list[tuple[str, str]] = [
    ("math", "Mathematik"),
    ("deu", "Deutsch"),
    ("eng", "Englisch"),
    ("bio", "Biologie"),
    ("phy", "Physik"),
    ("ges", "Geschichte"),
    ("kun", "Kunst"),
    ("mus", "Musik"),
    ("spo", "Sport"),
]

# Stundenbeginn im Demo-Raster (60-Minuten-Stunden)
_DEMO_HOURS = ["08:00", "09:00", "10:00", "11:00", "12:00", "13:00"]
_DEMO_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


def _end_of(start: str) -> str:
    hour = int(start[:2]) + 1
    return f"{hour:02d}{start[2:]}"


class FakeDataGenerator:
    """Generiert einen vollständigen Demo-Store auf Basis der SchoolConfig.

    Args:
        config: Liefert Jahrgänge und Klassen.
        seed: Gleicher Seed → gleiche Stammdaten und gleiche Stundenpläne.
        max_grades: Nur die ersten N Jahrgänge erhalten Unterricht.
        students_per_cohort: Schüler pro Lerngruppe.
    """

    MAX_ATTEMPTS = 8

    def __init__(
        self,
        config: SchoolConfig,
        seed: Optional[int] = None,
        max_grades: int = 4,
        students_per_cohort: int = 4,
    ) -> None:
        self.config = config
        self.rng = random.Random(seed)
        self.max_grades = max_grades
        self.students_per_cohort = students_per_cohort
        self._next_id = 0
        self.skipped: list[str] = []

    def _id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id:03d}"

    def _name(self) -> str:
        return f"{self.rng.choice(_LAST_NAMES)}, {self.rng.choice(_FIRST_NAMES)}"

    # ─── Stammdaten ───────────────────────────────────────────────────────────

    def _generate_subjects(self) -> list[Subject]:
        return [Subject(id=sid, name=name) for sid, name in _SUBJECTS]

    def _generate_teachers(self, subjects: list[Subject]) -> list[Teacher]:
        """Zwei Lehrkräfte pro Fach, jeweils mit einem Zweitfach."""
        teachers = []
        for i, subject in enumerate(subjects):
            for _ in range(2):
                second = subjects[(i + self.rng.randint(1, len(subjects) - 1)) % len(subjects)]
                teachers.append(Teacher(
                    id=self._id("t"),
                    name=self._name(),
                    subject_ids=[subject.id, second.id],
                ))
        return teachers

    def _generate_students(self) -> list[Student]:
        students = []
        for grade in self.config.calendar.grades[:self.max_grades]:
            for section in self.config.calendar.sections:
                for _ in range(self.students_per_cohort):
                    students.append(Student(
                        id=self._id("s"), name=self._name(), grade=grade, section=section,
                    ))
        return students

    def generate_master_data(self) -> StoreData:
        """Stammdaten ohne Stundenplan-Einträge."""
        subjects = self._generate_subjects()
        return StoreData(
            subjects=subjects,
            teachers=self._generate_teachers(subjects),
            students=self._generate_students(),
        )

    # ─── Klassen ──────────────────────────────────────────────────────────────

    def _random_schedules(self, count: int) -> list[Schedule]:
        days = self.rng.sample(_DEMO_DAYS, count)
        schedules = []
        for day in days:
            start = self.rng.choice(_DEMO_HOURS)
            schedules.append(Schedule(day_of_week=day, start_time=start, end_time=_end_of(start)))
        return schedules

    def _class_edit(self, subject: Subject, teacher: Teacher, grade: str) -> LogicalClassEdit:
        """Eine Klasse über 1–2 Parallelklassen mit identischen Zeitfenstern."""
        sections = self.rng.sample(self.config.calendar.sections,
                                   min(len(self.config.calendar.sections), self.rng.randint(1, 2)))
        schedules = self._random_schedules(2)
        return LogicalClassEdit(
            class_name=f"{subject.name} ({grade})",
            teacher_id=teacher.id,
            subject_id=subject.id,
            grade_sections=[
                GradeSectionSchedule(
                    grade=grade, section=section,
                    schedules=[s.model_copy() for s in schedules],
                )
                for section in sections
            ],
        )

    def populate(self, store: InMemoryScheduleStore) -> int:
        """Speichert pro Jahrgang und Fach eine logische Klasse.

        Kollidiert ein Versuch, werden neue Zeitfenster gewürfelt; nach
        MAX_ATTEMPTS Versuchen wird die Klasse ausgelassen.

        Returns:
            Anzahl gespeicherter logischer Klassen.
        """
        service = ScheduleService(store)
        saved = 0
        subjects = store.data.subjects
        for grade in self.config.calendar.grades[:self.max_grades]:
            for subject in subjects:
                teachers = store.fetch_teachers_eligible_for_subject(subject.id)
                if not teachers:
                    continue
                for _ in range(self.MAX_ATTEMPTS):
                    edit = self._class_edit(subject, self.rng.choice(teachers), grade)
                    try:
                        service.save_class(edit)
                    except ConflictError as e:
                        logger.debug(f"Neuer Versuch für '{edit.class_name}': {e}")
                        continue
                    saved += 1
                    break
                else:
                    self.skipped.append(f"{subject.name} ({grade})")
                    logger.info(f"Kein freies Zeitfenster für {subject.name} ({grade})")
        return saved

    def generate(self) -> StoreData:
        """Stammdaten plus Stundenplan als StoreData."""
        store = InMemoryScheduleStore(self.generate_master_data())
        self.populate(store)
        return store.data

    def print_summary(self, data: StoreData) -> None:
        from rich.console import Console
        from rich.panel import Panel

        Console().print(Panel(
            data.summary()
            + (f"\nAusgelassen: {', '.join(self.skipped)}" if self.skipped else ""),
            title="Demo-Daten",
            border_style="cyan",
        ))
