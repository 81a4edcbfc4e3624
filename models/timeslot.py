"""Wochentage und Uhrzeiten im Wochenraster."""

import re
from dataclasses import dataclass

# Feste Reihenfolge für Anzeige und Sortierung (nicht lexikographisch!)
DAYS_OF_WEEK = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
]

# 24-Stunden-Format, immer zweistellig ("07:05", nicht "7:05")
TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


def is_valid_time(value: str) -> bool:
    """Gibt True zurück wenn value eine gültige Uhrzeit im Format HH:MM ist."""
    return bool(value) and TIME_PATTERN.match(value) is not None


def to_minutes(value: str) -> int:
    """Wandelt "HH:MM" in Minuten seit Mitternacht um."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def day_index(day: str) -> int:
    """Position des Wochentags (0=Montag); unbekannte Tage werden hinten einsortiert."""
    try:
        return DAYS_OF_WEEK.index(day)
    except ValueError:
        return len(DAYS_OF_WEEK)


@dataclass(frozen=True)
class TimeRange:
    """Halboffenes Zeitfenster [start_time, end_time) an einem Tag.

    Immutable (frozen=True) damit es als Dict-Key / Set-Element nutzbar ist.
    """

    start_time: str
    end_time: str

    def overlaps(self, other: "TimeRange") -> bool:
        """Zwei Fenster überschneiden sich, wenn jedes vor dem Ende des anderen beginnt.

        Berührende Fenster (08:00–09:00 und 09:00–10:00) überschneiden sich NICHT.
        """
        return (
            to_minutes(self.start_time) < to_minutes(other.end_time)
            and to_minutes(other.start_time) < to_minutes(self.end_time)
        )

    @property
    def duration_minutes(self) -> int:
        return to_minutes(self.end_time) - to_minutes(self.start_time)

    def __str__(self) -> str:
        return f"{self.start_time}–{self.end_time}"
