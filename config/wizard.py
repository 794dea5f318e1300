"""Interaktiver Setup-Wizard für die Ersteinrichtung der Klassenbildung.

Führt den Nutzer Schritt für Schritt durch Schule, Optimierung und Ablage.
Nutzt rich für schöne Konsolenausgabe.
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table
from rich import box

from config.defaults import default_optimizer
from config.schema import (
    Factor,
    LoggingConfig,
    OptimizerConfig,
    SchoolConfig,
    StorageConfig,
    Strategy,
)

console = Console()


def _header(title: str) -> None:
    console.print()
    console.print(Panel(f"[bold cyan]{title}[/bold cyan]", expand=False))


def _info(text: str) -> None:
    console.print(f"[dim]{text}[/dim]")


def _success(text: str) -> None:
    console.print(f"[green]✓[/green] {text}")


def _show_optimizer_table(oc: OptimizerConfig) -> None:
    table = Table(box=box.SIMPLE)
    table.add_column("Parameter", style="bold")
    table.add_column("Aktuell")
    table.add_row("Faktoren", ", ".join(f.value for f in oc.default_factors) or "–")
    table.add_row("Strategie", oc.default_strategy.value)
    table.add_row("Klassengröße (Richtwert)", str(oc.class_capacity))
    table.add_row("Ausgleichs-Schwelle", str(oc.rebalance_threshold))
    table.add_row("Name neuer Klassen", oc.new_class_label)
    console.print(table)


# ─── SCHRITTE ───

def _wizard_school() -> str:
    _header("Schritt 1: Schule")
    return Prompt.ask("Name der Schule", default="Muster-Grundschule")


def _wizard_optimizer() -> OptimizerConfig:
    _header("Schritt 2: Optimierung")
    _info("Faktoren: " + ", ".join(f.value for f in Factor))

    if Confirm.ask("Standard übernehmen (alle Faktoren, Strategie 'balanced')?", default=True):
        return default_optimizer()

    factors = []
    for factor in Factor:
        if Confirm.ask(f"  Faktor '{factor.value}' berücksichtigen?", default=True):
            factors.append(factor)
    strategy = Prompt.ask(
        "Strategie", choices=[s.value for s in Strategy], default=Strategy.BALANCED.value)
    capacity = IntPrompt.ask("Klassengröße (Richtwert)", default=30)
    threshold = IntPrompt.ask("Ausgleich ab Größenunterschied von", default=2)
    return OptimizerConfig(
        default_factors=factors,
        default_strategy=Strategy(strategy),
        class_capacity=capacity,
        rebalance_threshold=threshold,
    )


def _wizard_storage() -> StorageConfig:
    _header("Schritt 3: Datenablage")
    path = Prompt.ask("JSON-Datei für Klassenlisten", default=StorageConfig().data_path)
    return StorageConfig(data_path=path)


def _show_summary(config: SchoolConfig) -> None:
    _header("Zusammenfassung")
    table = Table(box=box.ROUNDED, show_header=False)
    table.add_column("Bereich", style="bold")
    table.add_column("Wert")
    table.add_row("Schule", config.school_name)
    table.add_row("Faktoren", ", ".join(f.value for f in config.optimizer.default_factors))
    table.add_row("Strategie", config.optimizer.default_strategy.value)
    table.add_row("Klassengröße", str(config.optimizer.class_capacity))
    table.add_row("Datenablage", config.storage.data_path)
    console.print(table)


# ─── HAUPT-WIZARD ───

def run_wizard() -> Optional[SchoolConfig]:
    """Führt den interaktiven Setup-Wizard aus.

    Returns:
        Fertige SchoolConfig oder None, wenn der Nutzer abbricht.
    """
    console.print()
    console.print(Panel(
        "[bold]Willkommen bei der Klassenbildung![/bold]\n\n"
        "Der Wizard richtet Schule, Optimierung und Datenablage ein.\n"
        "[dim]Standard-Werte können mit Enter übernommen werden.[/dim]",
        title="[bold cyan]Klassenbildung[/bold cyan]",
        border_style="cyan",
    ))

    if not Confirm.ask("\nMöchten Sie jetzt die Schule einrichten?", default=True):
        console.print("[yellow]Einrichtung abgebrochen.[/yellow]")
        return None

    try:
        config = SchoolConfig(
            school_name=_wizard_school(),
            optimizer=_wizard_optimizer(),
            storage=_wizard_storage(),
            logging=LoggingConfig(),
        )
        _show_summary(config)

        if not Confirm.ask("\nKonfiguration speichern?", default=True):
            console.print("[yellow]Konfiguration wird nicht gespeichert.[/yellow]")
            return None

        _success("Konfiguration wird gespeichert...")
        return config

    except KeyboardInterrupt:
        console.print("\n[yellow]Wizard abgebrochen.[/yellow]")
        return None
    except ValueError as e:
        console.print(f"\n[red]Fehler während der Konfiguration: {e}[/red]")
        return None
