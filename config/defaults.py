from config.schema import (
    CalendarConfig,
    ConcurrencyConfig,
    ConflictConfig,
    LoggingConfig,
    SchoolConfig,
    StoreConfig,
)
from models.timeslot import DAYS_OF_WEEK

# Auswahl im Klassen-Editor
GRADES = [
    "Kindergarten",
    "Grade 1", "Grade 2", "Grade 3", "Grade 4", "Grade 5", "Grade 6",
    "Grade 7", "Grade 8", "Grade 9", "Grade 10", "Grade 11", "Grade 12",
]
SECTIONS = ["A", "B", "C", "D", "E", "F"]

# Vorbelegung für "+ Zeit hinzufügen"
DEFAULT_SLOT_START = "08:00"
DEFAULT_SLOT_END = "09:00"


def default_calendar() -> CalendarConfig:
    """Sieben Wochentage, Kindergarten bis Grade 12, Klassen A–F."""
    return CalendarConfig(
        days_of_week=list(DAYS_OF_WEEK),
        grades=list(GRADES),
        sections=list(SECTIONS),
    )


def default_school_config() -> SchoolConfig:
    """Vollständige Standard-Konfiguration."""
    return SchoolConfig(
        school_name="Muster-Schule",
        calendar=default_calendar(),
        store=StoreConfig(),
        conflicts=ConflictConfig(use_index=True),
        concurrency=ConcurrencyConfig(),
        logging=LoggingConfig(level="INFO"),
    )
