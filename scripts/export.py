#!/usr/bin/env python3
"""
Export the inventory.

Writes all resentments to CSV or JSON for external review.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from stepfour.core.config import Config
from stepfour.core.errors import StorageError
from stepfour.journal.store import EntryStore, LoadStatus
from stepfour.review.export import default_export_path, export_csv, export_json
from stepfour.storage.kv import SQLiteKeyValueStorage

app = typer.Typer(help="Export resentments")
console = Console()

load_dotenv()


def load_entries(config: Config):
    try:
        storage = SQLiteKeyValueStorage.from_config(config)
    except StorageError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    with EntryStore(storage, key=config.storage_key) as store:
        if store.load_status in (LoadStatus.CORRUPT, LoadStatus.UNAVAILABLE):
            console.print("[red]Stored inventory could not be read. Nothing exported.[/red]")
            raise typer.Exit(1)
        return store.entries


@app.command()
def csv(
    output: str = typer.Option(None, "--output", "-o", help="Output file path"),
):
    """
    Export all resentments to CSV.
    """
    config = Config.from_env()
    path = Path(output) if output else default_export_path(config.export_dir, "csv")

    count = export_csv(load_entries(config), path)
    console.print(f"[green]Exported {count} resentments to {path}[/green]")


@app.command()
def json(
    output: str = typer.Option(None, "--output", "-o", help="Output file path"),
):
    """
    Export all resentments to JSON.
    """
    config = Config.from_env()
    path = Path(output) if output else default_export_path(config.export_dir, "json")

    count = export_json(load_entries(config), path)
    console.print(f"[green]Exported {count} resentments to {path}[/green]")


if __name__ == "__main__":
    app()
