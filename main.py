"""Klassenplan — Haupt-CLI.

Verwendung:
  python main.py setup                        Ersteinrichtung (Wizard)
  python main.py config show                  Konfiguration anzeigen
  python main.py seed                         Demo-Daten in den Store schreiben
  python main.py classes list                 Logische Klassen auflisten
  python main.py classes show <eintrag-id>    Klasse mit allen Einträgen anzeigen
  python main.py classes save <datei.yaml>    Klasse anlegen / bearbeiten
  python main.py classes delete <eintrag-id>  Klasse mit allen Einträgen löschen
  python main.py classes students <id>        Schüler eines Eintrags
  python main.py teachers                     Lehrkräfte (optional je Fach)
  python main.py week                         Wochenplan einer Lerngruppe / Lehrkraft
  python main.py check                        Gespeicherten Stundenplan prüfen
  python main.py export                       Excel exportieren
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()


def _setup_logging(level: str) -> None:
    """Leitet alle Logger über rich aus (einmalig pro Prozess)."""
    root = logging.getLogger()
    if any(isinstance(h, RichHandler) for h in root.handlers):
        root.setLevel(level)
        return
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
    )


def _load_config_or_abort():
    """Lädt die Konfiguration oder bricht mit Fehlermeldung ab."""
    from config.manager import ConfigManager
    mgr = ConfigManager()
    if mgr.first_run_check():
        console.print(
            "[red]Keine Konfiguration gefunden.[/red]\n"
            "Führen Sie zunächst [bold]python main.py setup[/bold] aus."
        )
        sys.exit(1)
    try:
        config = mgr.load()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    _setup_logging(config.logging.level)
    return mgr, config


def _open_store(config):
    """Öffnet den konfigurierten Store."""
    from config.schema import StoreBackend
    from store import InMemoryScheduleStore, JsonScheduleStore
    from store.fake_data import FakeDataGenerator

    if config.store.backend == StoreBackend.MEMORY:
        # Nur Demo: jeder Aufruf beginnt mit denselben Daten
        return InMemoryScheduleStore(FakeDataGenerator(config, seed=42).generate())

    path = Path(config.store.path)
    if not path.exists():
        console.print(
            f"[red]Store-Datei nicht gefunden: {path}[/red]\n"
            "Führen Sie [bold]python main.py seed[/bold] aus."
        )
        sys.exit(1)
    return JsonScheduleStore(path)


def _open_service():
    from scheduling.errors import StoreError
    from scheduling.service import ScheduleService

    _, config = _load_config_or_abort()
    try:
        store = _open_store(config)
    except StoreError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    return config, store, ScheduleService.from_config(store, config)


def _abort_with(error: Exception) -> None:
    """Gibt einen Engine-Fehler mit allen Details aus und beendet mit Code 1."""
    from scheduling.errors import (
        ConflictError, PartialCommitError, StaleSnapshotError, ValidationError,
    )

    if isinstance(error, ValidationError):
        table = Table(title="Eingabe ungültig", box=box.ROUNDED)
        table.add_column("Feld", style="bold")
        table.add_column("Problem")
        for issue in error.issues:
            table.add_row(issue.field, issue.message)
        console.print(table)
    elif isinstance(error, ConflictError):
        r = error.report
        lines = [
            f"[bold red]{r.description}[/bold red]",
            "",
            f"Neues Zeitfenster: {r.candidate.describe()}",
            f"Belegt durch:      {r.conflicting_class_name} "
            f"({r.conflicting_teacher_name or r.conflicting_teacher_id})",
        ]
        if r.conflicting_entry_id:
            lines.append(f"Eintrag:           {r.conflicting_entry_id}")
        else:
            lines.append("Eintrag:           (gleiche Speicherung)")
        console.print(Panel("\n".join(lines), title="Konflikt – nichts gespeichert",
                            border_style="red"))
    elif isinstance(error, PartialCommitError):
        lines = [f"[bold red]{error.USER_MESSAGE}[/bold red]", "",
                 f"Fehlgeschlagen: {error.failed_operation} ({error.cause})"]
        lines += [f"  [green]✓[/green] {op}" for op in error.applied]
        lines += [f"  [dim]✗ {op}[/dim]" for op in error.not_applied]
        console.print(Panel("\n".join(lines), title="Speichern unvollständig",
                            border_style="red"))
    elif isinstance(error, StaleSnapshotError):
        console.print(Panel(str(error), title="Veralteter Stand", border_style="yellow"))
    else:
        console.print(f"[red]{error}[/red]")
    sys.exit(1)


# ─── SETUP ────────────────────────────────────────────────────────────────────

@click.command("setup")
def cmd_setup():
    """Ersteinrichtung: Schulkonfiguration mit dem Setup-Wizard anlegen."""
    from config.wizard import run_wizard
    from config.manager import ConfigManager

    mgr = ConfigManager()
    if not mgr.first_run_check():
        console.print("[yellow]Eine Konfiguration existiert bereits.[/yellow]")
        if not click.confirm("Trotzdem neu einrichten?", default=False):
            return

    config = run_wizard()
    if config is not None:
        mgr.save(config)
        console.print("[bold green]Einrichtung abgeschlossen![/bold green]")
        console.print("Führen Sie jetzt [bold]python main.py seed[/bold] aus.")


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anzeigen."""


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration."""
    mgr, config = _load_config_or_abort()
    mgr.show(config)


# ─── SEED ─────────────────────────────────────────────────────────────────────

@click.command("seed")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--grades", "max_grades", default=4, help="Anzahl Jahrgänge mit Unterricht.")
@click.option("--force", is_flag=True, default=False, help="Bestehenden Store überschreiben.")
def cmd_seed(seed: int, max_grades: int, force: bool):
    """Erzeugt Demo-Daten (Fächer, Lehrkräfte, Schüler, Klassen) im Store."""
    _, config = _load_config_or_abort()
    from store import JsonScheduleStore
    from store.fake_data import FakeDataGenerator

    path = Path(config.store.path)
    if path.exists() and not force:
        if not click.confirm(f"{path} existiert bereits. Überschreiben?", default=False):
            return

    console.print("[bold]Demo-Daten werden erzeugt...[/bold]")
    gen = FakeDataGenerator(config, seed=seed, max_grades=max_grades)
    data = gen.generate()
    JsonScheduleStore.initialize(path, data)
    gen.print_summary(data)
    console.print(f"[green]✓[/green] Store gespeichert: {path}")


# ─── CLASSES ──────────────────────────────────────────────────────────────────

@click.group("classes")
def cmd_classes():
    """Logische Klassen anzeigen, speichern und löschen."""


@cmd_classes.command("list")
@click.option("--search", "-s", default="", help="Suche in Klassenname und Lehrkraft.")
@click.option("--day", "days", multiple=True, help="Nur diese Wochentage (mehrfach möglich).")
@click.option("--grade", default=None)
@click.option("--section", default=None)
@click.option("--teacher", "teacher_id", default=None, help="Lehrkraft-ID")
def classes_list(search: str, days: tuple, grade: Optional[str],
                 section: Optional[str], teacher_id: Optional[str]):
    """Eine Zeile pro logischer Klasse."""
    from export.tui_renderer import CLASS_HEADERS, render_class_rows
    from scheduling.grouping import filter_entries, group_entries

    _, store, service = _open_service()
    snapshot = service.fetch_snapshot()
    entries = filter_entries(snapshot.entries, search, days, grade, section, teacher_id)
    classes = group_entries(entries)

    table = Table(title=f"Klassen ({len(classes)})", box=box.ROUNDED, show_lines=True)
    table.add_column("Eintrag", style="dim")
    for h in CLASS_HEADERS:
        table.add_column(h)
    for lc, row in zip(classes, render_class_rows(classes)):
        table.add_row(lc.entry_ids[0], *row)
    console.print(table)


@cmd_classes.command("show")
@click.argument("entry_id")
@click.option("--template", "template_path", type=click.Path(path_type=Path), default=None,
              help="Editor-Zustand als YAML-Vorlage speichern.")
@click.option("--subject", "subject_id", default=None, help="Fach-ID für die Vorlage.")
def classes_show(entry_id: str, template_path: Optional[Path], subject_id: Optional[str]):
    """Zeigt die logische Klasse zu einem Eintrag mit allen Geschwister-Einträgen."""
    from config.manager import dump_class_edit
    from export.helpers import format_cohorts, format_slots
    from export.tui_renderer import render_entry_rows
    from scheduling.errors import SchedulingError

    _, store, service = _open_service()
    snapshot = service.fetch_snapshot()
    try:
        lc = service.open_class(entry_id, snapshot)
    except SchedulingError as e:
        _abort_with(e)

    console.print(Panel(
        f"[bold]{lc.class_name}[/bold]\n"
        f"Lehrkraft: {lc.teacher_name or lc.teacher_id}\n"
        f"Lerngruppen: {format_cohorts(lc.cohorts)}\n"
        f"Schüler: {lc.student_count}\n\n"
        f"{format_slots(lc)}",
        title="Klasse", border_style="cyan",
    ))
    table = Table(box=box.SIMPLE)
    for h in ["ID", "Lerngruppe", "Tag", "Zeit", "Schüler"]:
        table.add_column(h)
    for row in render_entry_rows(snapshot.related(entry_id)):
        table.add_row(*row)
    console.print(table)

    if template_path is not None:
        dump_class_edit(lc.to_edit(subject_id), template_path)
        console.print(f"[green]✓[/green] Vorlage gespeichert: {template_path}")


@cmd_classes.command("save")
@click.argument("datei", type=click.Path(exists=True, path_type=Path))
@click.option("--entry", "entry_id", default=None,
              help="Eintrag der bearbeiteten Klasse (leer = Zuordnung über Name und Lehrkraft).")
@click.option("--dry-run", is_flag=True, default=False, help="Nur den Plan anzeigen.")
def classes_save(datei: Path, entry_id: Optional[str], dry_run: bool):
    """Speichert eine logische Klasse aus einer YAML-Datei."""
    from config.manager import load_class_edit
    from scheduling.errors import SchedulingError

    _, store, service = _open_service()
    try:
        desired = load_class_edit(datei)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    try:
        snapshot = service.fetch_snapshot()
        original = service.open_class(entry_id, snapshot) if entry_id else None
        if dry_run:
            service.plan_save(desired, original, snapshot).print_rich()
            return
        result = service.save_class(desired, original, snapshot)
    except SchedulingError as e:
        _abort_with(e)

    result.plan.print_rich()
    if result.changed:
        console.print(f"[green]✓[/green] Gespeichert: {result.summary()}")


@cmd_classes.command("delete")
@click.argument("entry_id")
@click.option("--yes", "-y", is_flag=True, default=False, help="Ohne Rückfrage löschen.")
def classes_delete(entry_id: str, yes: bool):
    """Löscht die logische Klasse zu einem Eintrag (alle Geschwister-Einträge)."""
    from scheduling.errors import SchedulingError

    _, store, service = _open_service()
    try:
        snapshot = service.fetch_snapshot()
        lc = service.open_class(entry_id, snapshot)
        if not yes and not click.confirm(
            f"'{lc.class_name}' mit {lc.entry_count} Einträgen löschen?", default=False
        ):
            return
        deleted = service.delete_class(entry_id, snapshot)
    except SchedulingError as e:
        _abort_with(e)
    console.print(f"[green]✓[/green] {len(deleted)} Einträge gelöscht.")


@cmd_classes.command("students")
@click.argument("entry_id")
def classes_students(entry_id: str):
    """Schüler eines Eintrags (nur Anzeige)."""
    from scheduling.errors import SchedulingError

    _, store, service = _open_service()
    try:
        students = service.enrolled_students(entry_id)
    except SchedulingError as e:
        _abort_with(e)
    table = Table(title=f"Schüler ({len(students)})", box=box.SIMPLE)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Lerngruppe")
    for s in students:
        table.add_row(s.id, s.name, s.grade_section.label)
    console.print(table)


# ─── TEACHERS ─────────────────────────────────────────────────────────────────

@click.command("teachers")
@click.option("--subject", "subject_id", default=None, help="Nur für dieses Fach wählbare.")
def cmd_teachers(subject_id: Optional[str]):
    """Listet Lehrkräfte (optional nur die für ein Fach wählbaren)."""
    _, store, service = _open_service()
    teachers = service.eligible_teachers(subject_id) if subject_id else store.data.teachers
    table = Table(title="Lehrkräfte", box=box.ROUNDED)
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Fächer")
    for t in teachers:
        table.add_row(t.id, t.name, ", ".join(t.subject_ids))
    console.print(table)


# ─── WEEK ─────────────────────────────────────────────────────────────────────

@click.command("week")
@click.option("--grade", default=None)
@click.option("--section", default=None)
@click.option("--teacher", "teacher_id", default=None, help="Lehrkraft-ID")
@click.option("--12h", "twelve_hour", is_flag=True, default=False, help="Uhrzeiten im 12h-Format.")
def cmd_week(grade: Optional[str], section: Optional[str],
             teacher_id: Optional[str], twelve_hour: bool):
    """Wochenplan einer Lerngruppe (--grade/--section) oder Lehrkraft (--teacher)."""
    from export.tui_renderer import render_week_rows, week_title
    from scheduling.grouping import entries_for_grade_section, entries_for_teacher

    config, store, service = _open_service()
    entries = service.fetch_snapshot().entries
    if teacher_id:
        selected = entries_for_teacher(entries, teacher_id)
        name = next((e.teacher_name for e in selected if e.teacher_name), teacher_id)
        title, mode = week_title(teacher_name=name), "teacher"
    elif grade and section:
        selected = entries_for_grade_section(entries, grade, section)
        title, mode = week_title(grade, section), "cohort"
    else:
        raise click.UsageError("Entweder --teacher oder --grade und --section angeben.")

    days = config.calendar.days_of_week
    table = Table(title=title, box=box.ROUNDED, show_lines=True)
    table.add_column("Zeit", style="bold")
    for day in days:
        table.add_column(day)
    for row in render_week_rows(selected, days, mode=mode, twelve_hour=twelve_hour):
        table.add_row(*row)
    console.print(table)
    if not selected:
        console.print("[dim]Keine Einträge.[/dim]")


# ─── CHECK ────────────────────────────────────────────────────────────────────

@click.command("check")
def cmd_check():
    """Prüft den gespeicherten Stundenplan auf Doppelbuchungen und Alt-Einträge."""
    from analysis.store_validator import StoreValidator

    _, store, service = _open_service()
    report = StoreValidator().validate(
        service.fetch_snapshot().entries, teachers=store.data.teachers,
    )
    report.print_rich()
    if not report.is_valid:
        sys.exit(1)


# ─── EXPORT ───────────────────────────────────────────────────────────────────

@click.command("export")
@click.option("--output", "-o", default="output/klassenplan.xlsx", help="Ziel-Datei.")
@click.option("--no-teachers", is_flag=True, default=False, help="Keine Lehrkraft-Blätter.")
def cmd_export(output: str, no_teachers: bool):
    """Exportiert Übersicht und Wochenpläne nach Excel."""
    from export import ExcelExporter

    config, store, service = _open_service()
    exporter = ExcelExporter(
        service.fetch_snapshot().entries, config=config, teachers=store.data.teachers,
    )
    exporter.export(Path(output), include_teachers=not no_teachers)
    console.print(f"[green]✓[/green] Excel exportiert: {output}")


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
def cli():
    """Klassenplan: logische Klassen über mehrere Lerngruppen verwalten.

    Starten Sie mit: python main.py setup
    """


def main():
    """Einstiegspunkt. Startet automatisch den Wizard beim ersten Aufruf."""
    from config.manager import ConfigManager
    mgr = ConfigManager()

    if len(sys.argv) == 1 and mgr.first_run_check():
        console.print(Panel(
            "[bold]Willkommen bei Klassenplan![/bold]\n\n"
            "Keine Konfiguration gefunden.\n"
            "Der Setup-Wizard wird jetzt gestartet...",
            border_style="cyan",
        ))
        sys.argv.append("setup")

    cli()


# Befehle registrieren
cli.add_command(cmd_setup)
cli.add_command(cmd_config)
cli.add_command(cmd_seed)
cli.add_command(cmd_classes)
cli.add_command(cmd_teachers)
cli.add_command(cmd_week)
cli.add_command(cmd_check)
cli.add_command(cmd_export)


if __name__ == "__main__":
    main()
