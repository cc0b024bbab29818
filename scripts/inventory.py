#!/usr/bin/env python3
"""
Resentment inventory.

Add, review and delete entries. Run `app` for the interactive
list/form screen, or use the single-shot commands.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from stepfour.core.config import Config
from stepfour.core.errors import StorageError, ValidationError
from stepfour.core.models import Draft
from stepfour.journal.store import CORRUPT_SUFFIX, EntryStore, LoadStatus
from stepfour.review.summary import format_summary, summarize
from stepfour.storage.kv import MemoryKeyValueStorage, SQLiteKeyValueStorage
from stepfour.view import render
from stepfour.view.controller import ViewController
from stepfour.view.session import run_session

app = typer.Typer(help="Step 4 resentment inventory")
console = Console()

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("inventory")

state = {"memory": False}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    memory: bool = typer.Option(False, "--memory", help="Use throwaway in-memory storage"),
):
    """
    Step 4 resentment inventory.
    """
    config = Config.from_env()
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.WARNING)
    logging.getLogger().setLevel(level)
    state["memory"] = memory


def open_store(config: Config) -> EntryStore:
    """Build and open the entry store for this run."""
    if state["memory"]:
        storage = MemoryKeyValueStorage()
    else:
        try:
            storage = SQLiteKeyValueStorage.from_config(config)
        except StorageError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(1)

    store = EntryStore(storage, key=config.storage_key).open()
    warn_load_status(store)
    return store


def warn_load_status(store: EntryStore) -> None:
    if store.load_status is LoadStatus.CORRUPT:
        console.print(
            "[yellow]Stored inventory could not be read. Starting empty; "
            f"the unreadable data will be kept under '{store.key}{CORRUPT_SUFFIX}' "
            "on the next save.[/yellow]"
        )
    elif store.load_status is LoadStatus.UNAVAILABLE:
        console.print("[red]Could not read storage. Starting empty.[/red]")


@app.command("app")
def interactive():
    """
    Open the interactive inventory screen.
    """
    config = Config.from_env()
    store = open_store(config)
    try:
        run_session(ViewController(store, date_format=config.date_format), console)
    finally:
        store.close()


@app.command("list")
def list_entries():
    """
    Show all resentments.
    """
    config = Config.from_env()
    store = open_store(config)
    try:
        console.print(render.render_list(store.entries, date_format=config.date_format))
    finally:
        store.close()


@app.command()
def add(
    who: str = typer.Option(None, "--who", "-w", help="Who or what am I resentful at?"),
    what: str = typer.Option(None, "--what", help="What happened? (The cause)"),
    affects: str = typer.Option("", "--affects", "-a", help="How does it affect me?"),
    my_part: str = typer.Option("", "--my-part", "-m", help="What was my part?"),
):
    """
    Add a resentment.

    Prompts for who and what if not given.
    """
    config = Config.from_env()

    if who is None:
        who = Prompt.ask(render.FORM_FIELDS[0][1], default="", show_default=False, console=console)
    if what is None:
        what = Prompt.ask(render.FORM_FIELDS[1][1], default="", show_default=False, console=console)

    store = open_store(config)
    try:
        entry = store.add(Draft(who=who, what=what, affects=affects, my_part=my_part))
    except ValidationError:
        console.print("[red]Required Fields: Please fill in who and what happened[/red]")
        raise typer.Exit(1)
    except StorageError:
        console.print("[red]Error: Failed to save resentment[/red]")
        raise typer.Exit(1)
    finally:
        store.close()

    console.print(f"\n[green]Resentment {entry.id} saved.[/green]\n")


@app.command()
def remove(
    target: str = typer.Argument(..., help="Entry id, or its number in the list"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """
    Delete a resentment after confirmation.
    """
    config = Config.from_env()
    store = open_store(config)
    try:
        entry = store.get(target)
        is_number = target.isascii() and target.isdigit()
        if entry is None and is_number and 1 <= int(target) <= store.count:
            entry = store.entries[int(target) - 1]

        if entry is None:
            console.print(f"[yellow]Resentment {escape(target)} not found.[/yellow]")
            return

        console.print(render.render_entry_card(entry, date_format=config.date_format))
        if not yes and not Confirm.ask(
            "Are you sure you want to delete this?", default=False, console=console
        ):
            console.print("Cancelled.")
            return

        try:
            store.remove(entry.id)
        except StorageError:
            console.print("[red]Error: Failed to delete resentment[/red]")
            raise typer.Exit(1)

        console.print(f"[green]Resentment {entry.id} deleted.[/green]")
    finally:
        store.close()


@app.command()
def summary(
    top: int = typer.Option(5, "--top", "-t", help="How many names to list"),
):
    """
    Show counts across the inventory.
    """
    config = Config.from_env()
    store = open_store(config)
    try:
        typer.echo(format_summary(summarize(store.entries), top=top))
    finally:
        store.close()


@app.command()
def info():
    """
    Show current settings and storage status.
    """
    config = Config.from_env()
    typer.echo(config.get_summary())

    store = open_store(config)
    try:
        typer.echo(f"Load Status: {store.load_status.value}")
        typer.echo(f"Entries: {store.count}")
    finally:
        store.close()


if __name__ == "__main__":
    app()
