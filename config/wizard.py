"""Interaktiver Setup-Wizard für die Ersteinrichtung.

Fragt Schulname, Kalender, Speicherort und Parallelitätsmodus ab.
"""

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich import box

from config.defaults import GRADES, SECTIONS, default_school_config
from config.schema import (
    CalendarConfig,
    ConcurrencyConfig,
    ConcurrencyMode,
    SchoolConfig,
    StoreBackend,
    StoreConfig,
)
from models.timeslot import DAYS_OF_WEEK

console = Console()


def _header(title: str) -> None:
    console.print()
    console.print(Panel(f"[bold cyan]{title}[/bold cyan]", expand=False))


def _info(text: str) -> None:
    console.print(f"[dim]{text}[/dim]")


def _split(value: str) -> list[str]:
    return [p.strip() for p in value.split(",") if p.strip()]


# ─── SCHRITT 1: Kalender ───

def _wizard_calendar() -> CalendarConfig:
    _header("Schritt 1 — Kalender")
    _info("Kommagetrennte Listen; Enter übernimmt den Standard.")

    days = Prompt.ask("Wochentage", default=", ".join(DAYS_OF_WEEK))
    grades = Prompt.ask("Jahrgänge", default=", ".join(GRADES))
    sections = Prompt.ask("Klassen", default=", ".join(SECTIONS))
    return CalendarConfig(
        days_of_week=_split(days),
        grades=_split(grades),
        sections=_split(sections),
    )


# ─── SCHRITT 2: Speicher ───

def _wizard_store() -> StoreConfig:
    _header("Schritt 2 — Speicher")
    backend = Prompt.ask(
        "Backend", choices=[b.value for b in StoreBackend], default=StoreBackend.JSON.value
    )
    path = Prompt.ask("Store-Datei", default=str(StoreConfig().path))
    return StoreConfig(backend=StoreBackend(backend), path=Path(path))


# ─── SCHRITT 3: Parallelität ───

def _wizard_concurrency() -> ConcurrencyConfig:
    _header("Schritt 3 — Parallele Bearbeitung")
    _info("strict lehnt das Speichern ab, wenn jemand anderes zwischenzeitlich gespeichert hat.")
    mode = Prompt.ask(
        "Modus", choices=[m.value for m in ConcurrencyMode],
        default=ConcurrencyMode.OPTIMISTIC.value,
    )
    return ConcurrencyConfig(mode=ConcurrencyMode(mode))


def _show_summary(config: SchoolConfig) -> None:
    _header("Zusammenfassung")
    table = Table(box=box.ROUNDED, show_header=False)
    table.add_column("Bereich", style="bold")
    table.add_column("Wert")
    table.add_row("Schule", config.school_name)
    table.add_row("Wochentage", str(len(config.calendar.days_of_week)))
    table.add_row("Lerngruppen", str(config.calendar.cohort_count))
    table.add_row("Speicher", f"{config.store.backend.value} → {config.store.path}")
    table.add_row("Parallelität", config.concurrency.mode.value)
    console.print(table)


# ─── HAUPT-WIZARD ───

def run_wizard() -> Optional[SchoolConfig]:
    """Führt den interaktiven Setup-Wizard aus.

    Returns:
        Fertige SchoolConfig oder None, wenn der Nutzer abbricht.
    """
    console.print()
    console.print(Panel(
        "[bold]Willkommen bei der Klassenplan-Verwaltung![/bold]\n\n"
        "Der Wizard richtet Kalender, Speicher und Parallelitätsmodus ein.\n"
        "[dim]Standard-Werte können mit Enter übernommen werden.[/dim]",
        title="[bold cyan]Klassenplan[/bold cyan]",
        border_style="cyan",
    ))

    if not Confirm.ask("\nMöchten Sie jetzt die Schule einrichten?", default=True):
        console.print("[yellow]Einrichtung abgebrochen.[/yellow]")
        return None

    try:
        defaults = default_school_config()
        name = Prompt.ask("Name der Schule", default=defaults.school_name)
        config = defaults.model_copy(update={
            "school_name": name,
            "calendar": _wizard_calendar(),
            "store": _wizard_store(),
            "concurrency": _wizard_concurrency(),
        })
        # Erneut validieren: model_copy prüft die übernommenen Werte nicht
        config = SchoolConfig.model_validate(config.model_dump())
    except KeyboardInterrupt:
        console.print("\n[yellow]Wizard abgebrochen.[/yellow]")
        return None
    except ValueError as e:
        console.print(f"\n[red]Fehler während der Konfiguration: {e}[/red]")
        return None

    _show_summary(config)
    if not Confirm.ask("\nKonfiguration speichern?", default=True):
        console.print("[yellow]Konfiguration wird nicht gespeichert.[/yellow]")
        return None
    return config
