"""Klassenbildung — Haupt-CLI.

Verwendung:
  python main.py setup                        Ersteinrichtung (Wizard)
  python main.py config edit                  Konfiguration bearbeiten
  python main.py config show                  Konfiguration anzeigen
  python main.py generate                     Fake-Klassenliste erzeugen
  python main.py template                     Excel-Import-Vorlage erzeugen
  python main.py import <datei.xlsx>          Excel importieren
  python main.py list                         Klassenlisten auflisten
  python main.py optimize <liste>             Klassen bilden und speichern
  python main.py optimize <liste> --dry-run   Klassen bilden, nicht speichern
  python main.py validate <liste>             Bereitschafts- und Zuordnungs-Check
  python main.py export <liste>               Klassen als Excel exportieren
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
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


def _open_store(config, data_path: Optional[str]):
    from data.store import ClassListStore
    return ClassListStore.open(Path(data_path or config.storage.data_path))


def _abort(error) -> None:
    """Gibt einen PlacementError als `[kind] message` aus und beendet mit Status 1."""
    console.print(f"[red bold]\\[{error.kind}][/red bold] {escape(error.message)}")
    sys.exit(1)


_data_option = click.option(
    "--data", "data_path", default=None,
    help="JSON-Datendatei (Standard: storage.data_path aus der Config).")


# ─── SETUP ────────────────────────────────────────────────────────────────────

@click.command("setup")
def cmd_setup():
    """Ersteinrichtung: Schulkonfiguration mit dem Setup-Wizard anlegen."""
    from config.wizard import run_wizard
    from config.manager import ConfigManager

    mgr = ConfigManager()
    if not mgr.first_run_check():
        console.print(
            "[yellow]Eine Konfiguration existiert bereits.[/yellow]\n"
            "Verwenden Sie [bold]python main.py config edit[/bold] zum Bearbeiten."
        )
        if not click.confirm("Trotzdem neu einrichten?", default=False):
            return

    config = run_wizard()
    if config is not None:
        mgr.save(config)
        console.print("[bold green]Einrichtung abgeschlossen![/bold green]")
        console.print("Führen Sie jetzt [bold]python main.py generate[/bold] "
                      "oder [bold]python main.py template[/bold] aus.")


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anzeigen oder bearbeiten."""


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration an."""
    from config.defaults import strategy_weights
    from config.schema import Factor, Strategy
    from config.wizard import _show_optimizer_table

    mgr, config = _load_config_or_abort()

    console.print(Panel(
        f"[bold]{config.school_name}[/bold]  |  Daten: {config.storage.data_path}  |  "
        f"Log-Level: {config.logging.level}",
        title="Schulkonfiguration",
        border_style="cyan",
    ))
    _show_optimizer_table(config.optimizer)

    table = Table(title="Gewichte je Strategie", box=box.ROUNDED)
    table.add_column("Faktor")
    for strategy in Strategy:
        table.add_column(strategy.value, justify="right")
    for factor in Factor:
        table.add_row(factor.value, *(
            f"{strategy_weights(s).weight_for(factor):g}" for s in Strategy))
    console.print(table)


@cmd_config.command("edit")
def config_edit():
    """Bearbeitet die Konfiguration interaktiv."""
    mgr, config = _load_config_or_abort()
    mgr.edit_interactive(config)


# ─── GENERATE ─────────────────────────────────────────────────────────────────

@click.command("generate")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--students", default=52, help="Anzahl Schüler.")
@click.option("--teachers", default=3, help="Anzahl Lehrkräfte (= Klassen).")
@click.option("--id", "class_list_id", default="cl-1", help="ID der Klassenliste.")
@_data_option
def cmd_generate(seed: int, students: int, teachers: int, class_list_id: str,
                 data_path: Optional[str]):
    """Erzeugt eine Test-Klassenliste mit Umfragen und Elternwünschen."""
    mgr, config = _load_config_or_abort()
    from data.fake_data import FakeRosterGenerator
    from placement.errors import PersistenceError

    console.print("[bold]Testdaten werden generiert...[/bold]")
    data = FakeRosterGenerator(config, seed=seed).generate(
        n_students=students, n_teachers=teachers, class_list_id=class_list_id)
    console.print(f"\n[dim]{data.summary()}[/dim]\n")
    data.class_lists[0].check_readiness(config.optimizer.class_capacity).print_rich()

    store = _open_store(config, data_path)
    store.merge(data)
    try:
        store.save()
    except PersistenceError as e:
        _abort(e)
    console.print(f"[green]✓[/green] Gespeichert: {store.path}")


# ─── TEMPLATE ─────────────────────────────────────────────────────────────────

@click.command("template")
@click.option("--output", "-o", default="output/klassenliste_vorlage.xlsx",
              help="Ausgabepfad für die Excel-Vorlage.")
def cmd_template(output: str):
    """Erzeugt eine leere Excel-Import-Vorlage."""
    mgr, config = _load_config_or_abort()
    from data.excel_import import generate_template

    out_path = Path(output)
    console.print("[bold]Excel-Vorlage wird erzeugt...[/bold]")
    generate_template(config, out_path)
    console.print(f"[green]✓[/green] Vorlage gespeichert: {out_path}")
    console.print(
        "\nBlätter in der Vorlage:\n"
        "  [cyan]Schüler[/cyan]     – ID, Name, Geschlecht, Leistung, Verhalten, Förderbedarf\n"
        "  [cyan]Lehrkräfte[/cyan]  – ID, Name, E-Mail\n"
        "  [cyan]Klassen[/cyan]     – vorhandene Klassen (optional)\n"
        "  [cyan]Umfragen[/cyan]    – bevorzugte / herausfordernde Kinder je Lehrkraft\n"
        "  [cyan]Wünsche[/cyan]     – Elternwünsche (Lehrkraft, Mitschüler, Trennung)"
    )


# ─── IMPORT ───────────────────────────────────────────────────────────────────

@click.command("import")
@click.argument("datei", type=click.Path(exists=True, path_type=Path))
@click.option("--id", "class_list_id", default="cl-1", help="ID der Klassenliste.")
@click.option("--name", default="", help="Name der Klassenliste.")
@click.option("--grade", "grade_level", default="", help="Jahrgang.")
@click.option("--year", "academic_year", default="", help="Schuljahr, z.B. 2026/27.")
@_data_option
def cmd_import(datei: Path, class_list_id: str, name: str, grade_level: str,
               academic_year: str, data_path: Optional[str]):
    """Importiert eine Klassenliste aus einer Excel-Datei."""
    mgr, config = _load_config_or_abort()
    from data.excel_import import import_from_excel, ExcelImportError
    from placement.errors import PersistenceError

    console.print(f"[bold]Importiere:[/bold] {datei}")
    try:
        school_data, report = import_from_excel(
            datei, config, class_list_id,
            name=name, grade_level=grade_level, academic_year=academic_year)
    except ExcelImportError as e:
        console.print(f"[red bold]Import fehlgeschlagen:[/red bold]\n{e}")
        sys.exit(1)

    console.print("[green]✓[/green] Import erfolgreich!")
    console.print(f"\n{school_data.summary()}")
    report.print_rich()

    store = _open_store(config, data_path)
    if store.merge(school_data):
        console.print(f"[yellow]Klassenliste {class_list_id} wurde ersetzt.[/yellow]")
    try:
        store.save()
    except PersistenceError as e:
        _abort(e)
    console.print(f"[green]✓[/green] Daten gespeichert: {store.path}")


# ─── LIST ─────────────────────────────────────────────────────────────────────

@click.command("list")
@_data_option
def cmd_list(data_path: Optional[str]):
    """Listet alle Klassenlisten der Datendatei auf."""
    mgr, config = _load_config_or_abort()
    store = _open_store(config, data_path)

    class_lists = store.list_class_lists()
    if not class_lists:
        console.print("[dim]Keine Klassenlisten vorhanden.[/dim]")
        return

    table = Table(title=f"Klassenlisten ({store.path})", box=box.ROUNDED)
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Jahrgang")
    table.add_column("Schuljahr")
    table.add_column("Schüler", justify="right")
    table.add_column("Lehrkräfte", justify="right")
    table.add_column("Klassen", justify="right")
    for cl in class_lists:
        table.add_row(cl.id, cl.name, cl.grade_level, cl.academic_year,
                      str(len(cl.students)), str(len(cl.teachers)), str(len(cl.classes)))
    console.print(table)


# ─── OPTIMIZE ─────────────────────────────────────────────────────────────────

@click.command("optimize")
@click.argument("class_list_id")
@click.option("--factor", "-f", "factors", multiple=True,
              help="Faktor (mehrfach möglich). Standard: optimizer.default_factors.")
@click.option("--strategy", "-s", default=None,
              help="balanced, academic, behavior oder requests.")
@click.option("--dry-run", is_flag=True, default=False,
              help="Nur berechnen, nichts speichern.")
@click.option("--json", "as_json", is_flag=True, default=False,
              help="Ergebnis als JSON ausgeben.")
@_data_option
def cmd_optimize(class_list_id: str, factors: tuple[str, ...], strategy: Optional[str],
                 dry_run: bool, as_json: bool, data_path: Optional[str]):
    """Bildet die Klassen einer Klassenliste neu."""
    mgr, config = _load_config_or_abort()
    from analysis.balance import BalanceScorer
    from analysis.diff import diff_assignments
    from config.schema import Factor, Strategy
    from models.class_bucket import ClassBucket
    from placement.errors import PlacementError
    from placement.service import OptimizationService

    try:
        selected = [Factor.parse(f) for f in factors] if factors else None
        chosen = Strategy(strategy.lower()) if strategy else None
    except ValueError as e:
        console.print(f"[red bold]\\[invalid_input][/red bold] {e}")
        sys.exit(1)

    store = _open_store(config, data_path)
    before = store.get_class_list(class_list_id)
    service = OptimizationService(store, store, store, store, config.optimizer)
    try:
        result = service.optimize(class_list_id, selected, chosen, persist=not dry_run)
    except PlacementError as e:
        _abort(e)

    if as_json:
        click.echo(json.dumps(result.to_payload(), indent=2, ensure_ascii=False))
        return

    BalanceScorer().print_rich(result.statistics, result.placement.buckets)
    for transfer in result.placement.transfers:
        console.print(f"[dim]Ausgleich: {transfer.student_id} "
                      f"{transfer.from_class_id} → {transfer.to_class_id}[/dim]")

    if before is not None and before.classes:
        after = [
            ClassBucket(id=c.id, name=c.name, teacher_id=c.teacher_id,
                        student_ids=c.student_ids)
            for c in result.classes
        ]
        diff_assignments(before.classes, after).print_rich()

    if dry_run:
        console.print("[yellow]Probelauf – nichts gespeichert.[/yellow]")
    else:
        console.print(f"[green]✓[/green] {len(result.classes)} Klassen gespeichert: {store.path}")


# ─── VALIDATE ─────────────────────────────────────────────────────────────────

@click.command("validate")
@click.argument("class_list_id")
@_data_option
def cmd_validate(class_list_id: str, data_path: Optional[str]):
    """Bereitschafts-Check und Prüfung der gespeicherten Klassen."""
    mgr, config = _load_config_or_abort()
    from analysis.assignment_validator import AssignmentValidator

    store = _open_store(config, data_path)
    class_list = store.get_class_list(class_list_id)
    if class_list is None:
        console.print(f"[red bold]\\[not_found][/red bold] "
                      f"Klassenliste {class_list_id} nicht gefunden.")
        sys.exit(1)

    console.print(f"\n{class_list.summary()}\n")
    readiness = class_list.check_readiness(config.optimizer.class_capacity)
    readiness.print_rich()

    ok = readiness.is_ready
    if any(c.student_ids for c in class_list.classes):
        report = AssignmentValidator(config.optimizer.rebalance_threshold).validate(
            class_list.classes, class_list.students, config.optimizer.default_factors)
        report.print_rich()
        ok = ok and report.is_valid

    sys.exit(0 if ok else 1)


# ─── EXPORT ───────────────────────────────────────────────────────────────────

@click.command("export")
@click.argument("class_list_id")
@click.option("--output", "-o", default=None, help="Ausgabepfad (.xlsx).")
@_data_option
def cmd_export(class_list_id: str, output: Optional[str], data_path: Optional[str]):
    """Exportiert die gespeicherten Klassen einer Klassenliste als Excel."""
    mgr, config = _load_config_or_abort()
    from analysis.balance import BalanceScorer
    from export.excel_export import ExcelExporter

    store = _open_store(config, data_path)
    class_list = store.get_class_list(class_list_id)
    if class_list is None:
        console.print(f"[red bold]\\[not_found][/red bold] "
                      f"Klassenliste {class_list_id} nicht gefunden.")
        sys.exit(1)
    if not class_list.classes:
        console.print("[yellow]Noch keine Klassen gespeichert. "
                      "Zuerst [bold]python main.py optimize[/bold] ausführen.[/yellow]")
        sys.exit(1)

    stats = BalanceScorer().score(
        class_list.classes, class_list.students,
        config.optimizer.default_factors, config.optimizer.default_strategy)
    out_path = Path(output or f"output/klassen_{class_list_id}.xlsx")
    ExcelExporter(class_list, class_list.classes, stats, config.school_name).export(out_path)
    console.print(f"[green]✓[/green] Excel gespeichert: {out_path}")


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
def cli():
    """Klassenbildung: ausgewogene Klassen aus einer Schülerliste.

    Starten Sie mit: python main.py setup
    """


def main():
    """Einstiegspunkt. Startet automatisch den Wizard beim ersten Aufruf."""
    from config.manager import ConfigManager
    mgr = ConfigManager()

    if len(sys.argv) == 1 and mgr.first_run_check():
        console.print(Panel(
            "[bold]Willkommen bei der Klassenbildung![/bold]\n\n"
            "Keine Konfiguration gefunden.\n"
            "Der Setup-Wizard wird jetzt gestartet...",
            border_style="cyan",
        ))
        sys.argv.append("setup")

    cli()


# Befehle registrieren
cli.add_command(cmd_setup)
cli.add_command(cmd_config)
cli.add_command(cmd_generate)
cli.add_command(cmd_template)
cli.add_command(cmd_import)
cli.add_command(cmd_list)
cli.add_command(cmd_optimize)
cli.add_command(cmd_validate)
cli.add_command(cmd_export)


if __name__ == "__main__":
    main()
