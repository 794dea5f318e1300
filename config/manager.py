"""Schulkonfiguration als kommentierte YAML-Datei (ruamel.yaml).

Die Datei bleibt von Hand editierbar; beim Laden prüft Pydantic alle Werte.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.schema import LoggingConfig, SchoolConfig, StorageConfig

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── YAML-KOMMENTAR-AUFBAU ───

_YAML_HEADER = f"""\
# ============================================
# Klassenbildung: Schulkonfiguration
# Erstellt: {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "optimizer": (
        "Optimierung",
        "Faktoren: gender, academicLevel, behaviorLevel, specialNeeds,\n"
        "teacherCompatibility, parentRequests.\n"
        "Strategien: balanced, academic, behavior, requests.",
    ),
    "storage": (
        "Datenablage",
        None,
    ),
    "logging": (
        "Protokollierung",
        "DEBUG, INFO, WARNING oder ERROR",
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "klassenbildung.yaml"

    def __init__(self, path: Optional[Path] = None) -> None:
        if path is not None:
            self.DEFAULT_CONFIG = Path(path)

    def first_run_check(self) -> bool:
        """True, solange noch keine Konfigurationsdatei angelegt wurde."""
        return not self.DEFAULT_CONFIG.exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> SchoolConfig:
        """Liest die YAML-Datei und validiert sie als SchoolConfig."""
        target = Path(path) if path else self.DEFAULT_CONFIG
        if not target.exists():
            raise FileNotFoundError(
                f"Konfigurationsdatei nicht gefunden: {target}\n"
                f"Zuerst 'python main.py setup' ausführen."
            )
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        try:
            return SchoolConfig.model_validate(dict(raw or {}))
        except ValidationError as e:
            raise ValueError(
                f"Konfiguration in {target} ist ungültig:\n{e}"
            ) from e

    # ─── Speichern ───

    def save(self, config: SchoolConfig, path: Optional[Path] = None) -> None:
        """Schreibt die Konfiguration mit Kopfzeile und Abschnittskommentaren."""
        target = Path(path) if path else self.DEFAULT_CONFIG
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_YAML_HEADER + "\n")
            yaml.dump(data, f)

        console.print(f"[green]✓[/green] Gespeichert: {target}")

    def _build_commented_yaml(self, config: SchoolConfig) -> CommentedMap:
        """SchoolConfig → CommentedMap mit Abschnitts- und Zeilenkommentaren."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        optimizer_map = CommentedMap(cm["optimizer"])
        optimizer_map.yaml_add_eol_comment("Richtwert, wird nicht erzwungen", "class_capacity")
        optimizer_map.yaml_add_eol_comment("{n} = laufende Nummer", "new_class_label")
        cm["optimizer"] = optimizer_map
        return cm

    # ─── Interaktives Bearbeiten ───

    def edit_interactive(self, config: SchoolConfig) -> SchoolConfig:
        """Menü zum Ändern einzelner Abschnitte; 0 speichert."""
        while True:
            console.print()
            console.print(Panel(
                "[bold]Konfiguration bearbeiten[/bold]",
                border_style="cyan",
            ))
            console.print("  [bold]1.[/bold] Schulname")
            console.print("  [bold]2.[/bold] Optimierung (Faktoren, Strategie, Klassengröße)")
            console.print("  [bold]3.[/bold] Datenablage")
            console.print("  [bold]4.[/bold] Protokollierung")
            console.print("  [bold]0.[/bold] Speichern & Zurück")

            choice = Prompt.ask("\nAuswahl", default="0")

            if choice == "1":
                name = Prompt.ask("Name der Schule", default=config.school_name)
                config = config.model_copy(update={"school_name": name})
            elif choice == "2":
                from config.wizard import _show_optimizer_table, _wizard_optimizer
                console.print("\n[bold]Aktuelle Optimierung:[/bold]")
                _show_optimizer_table(config.optimizer)
                config = config.model_copy(update={"optimizer": _wizard_optimizer()})
            elif choice == "3":
                path = Prompt.ask("JSON-Datei", default=config.storage.data_path)
                config = config.model_copy(update={"storage": StorageConfig(data_path=path)})
            elif choice == "4":
                level = Prompt.ask("Level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                                   default=config.logging.level)
                config = config.model_copy(update={"logging": LoggingConfig(level=level)})
            elif choice == "0":
                self.save(config)
                break
            else:
                console.print("[yellow]Bitte 0 bis 4 wählen.[/yellow]")

        return config
