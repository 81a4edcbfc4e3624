"""Konfigurationsmanager: Laden, Speichern und Validieren der Schulkonfiguration.

Nutzt ruamel.yaml für YAML-Serialisierung mit Kommentaren.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich import box
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.schema import SchoolConfig
from models.logical_class import LogicalClassEdit

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── YAML-KOMMENTAR-AUFBAU ───

_YAML_HEADER = f"""\
# ============================================
# Klassenplan — Schulkonfiguration
# Erstellt: {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "calendar": (
        "Kalender",
        "Wochentage sowie auswählbare Jahrgänge und Klassen.",
    ),
    "store": (
        "Speicher",
        "backend: json (Datei) oder memory (nur Demo, nichts wird gespeichert).",
    ),
    "conflicts": (
        "Konfliktprüfung",
        None,
    ),
    "concurrency": (
        "Parallele Bearbeitung",
        "optimistic: keine Revisionsprüfung. strict: Speichern wird abgelehnt,\n"
        "wenn der Stundenplan seit dem Laden verändert wurde.",
    ),
    "logging": (
        "Protokoll",
        None,
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "school_config.yaml"

    def __init__(self, path: Optional[Path] = None) -> None:
        if path is not None:
            self.DEFAULT_CONFIG = Path(path)

    def first_run_check(self) -> bool:
        """Gibt True zurück wenn noch keine Config existiert (Erstaufruf)."""
        return not self.DEFAULT_CONFIG.exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> SchoolConfig:
        """Lade Config aus YAML. Validiert automatisch via Pydantic."""
        target = path or self.DEFAULT_CONFIG
        if not target.exists():
            raise FileNotFoundError(
                f"Konfigurationsdatei nicht gefunden: {target}\n"
                f"Führen Sie 'python main.py setup' aus, um die Schule einzurichten."
            )
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        try:
            return SchoolConfig.model_validate(dict(raw or {}))
        except Exception as e:
            raise ValueError(
                f"Konfigurationsdatei ungültig: {target}\n"
                f"Pydantic-Fehler: {e}"
            ) from e

    # ─── Speichern ───

    def save(self, config: SchoolConfig, path: Optional[Path] = None) -> None:
        """Speichere Config als YAML mit deutschen Kommentaren."""
        target = path or self.DEFAULT_CONFIG
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_YAML_HEADER + "\n")
            yaml.dump(data, f)

        console.print(f"[green]✓[/green] Konfiguration gespeichert: {target}")

    def _build_commented_yaml(self, config: SchoolConfig) -> CommentedMap:
        """Baut die YAML-Struktur mit Kommentaren auf."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        if "conflicts" in cm:
            conflicts_map = CommentedMap(cm["conflicts"])
            conflicts_map.yaml_add_eol_comment("false = lineare Suche", "use_index")
            cm["conflicts"] = conflicts_map

        return cm

    # ─── Anzeige ───

    def show(self, config: SchoolConfig) -> None:
        """Gibt die Konfiguration als Tabelle aus."""
        table = Table(title=f"Konfiguration: {config.school_name}", box=box.ROUNDED)
        table.add_column("Bereich", style="bold")
        table.add_column("Wert")
        cal = config.calendar
        table.add_row("Wochentage", ", ".join(cal.days_of_week))
        table.add_row("Jahrgänge", f"{cal.grades[0]} … {cal.grades[-1]} ({len(cal.grades)})")
        table.add_row("Klassen", ", ".join(cal.sections))
        table.add_row("Speicher", f"{config.store.backend.value} ({config.store.path})")
        table.add_row("Konfliktindex", "✓" if config.conflicts.use_index else "✗")
        table.add_row("Parallelität", config.concurrency.mode.value)
        table.add_row("Log-Level", config.logging.level)
        console.print(table)


# ─── Klassen-Dateien ───

def load_class_edit(path: Path) -> LogicalClassEdit:
    """Liest einen Editor-Zustand (logische Klasse) aus einer YAML-Datei.

    Erwartetes Format::

        class_name: Algebra
        teacher_id: t-001
        subject_id: math
        grade_sections:
          - grade: Grade 5
            section: A
            schedules:
              - {day_of_week: Monday, start_time: "09:00", end_time: "10:00"}
    """
    if not path.exists():
        raise FileNotFoundError(f"Klassen-Datei nicht gefunden: {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.load(f)
    try:
        # Roundtrip über JSON entfernt ruamel-spezifische Typen
        return LogicalClassEdit.model_validate(json.loads(json.dumps(raw or {})))
    except Exception as e:
        raise ValueError(f"Klassen-Datei ungültig: {path}\n{e}") from e


def dump_class_edit(edit: LogicalClassEdit, path: Path) -> None:
    """Schreibt einen Editor-Zustand als YAML (Vorlage zum Bearbeiten)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = CommentedMap(json.loads(edit.model_dump_json()))
    data.yaml_set_start_comment(
        "Logische Klasse – nach dem Bearbeiten mit 'classes save' speichern"
    )
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f)
