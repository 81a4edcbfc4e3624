"""Store-Modul: Schnittstelle und Implementierungen für ScheduleEntries."""

from store.base import ScheduleStore
from store.memory import InMemoryScheduleStore, StoreData
from store.json_store import JsonScheduleStore

__all__ = [
    "ScheduleStore",
    "InMemoryScheduleStore",
    "StoreData",
    "JsonScheduleStore",
]
