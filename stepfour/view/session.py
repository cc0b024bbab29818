"""
Interactive terminal session.

Alternates between the list and the form until the user quits.
"""

import logging

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from stepfour.view import render
from stepfour.view.controller import ViewController, ViewMode

logger = logging.getLogger(__name__)

LIST_PROMPT = "[bold]a[/bold]dd, [bold]d[/bold] <number> to delete, [bold]q[/bold]uit"


def _show_alert(console: Console, controller: ViewController) -> None:
    if controller.alert is not None:
        console.print(render.render_alert(controller.alert.title, controller.alert.message))
        controller.alert = None


def _handle_delete(console: Console, controller: ViewController, arg: str) -> None:
    entries = controller.store.entries
    if not (arg.isascii() and arg.isdigit()) or not 1 <= int(arg) <= len(entries):
        console.print(f"[red]No resentment numbered {escape(arg) or '?'}.[/red]")
        return

    entry = entries[int(arg) - 1]
    confirm = controller.request_delete(entry.id)
    if confirm is None:
        return

    console.print(render.render_entry_card(entry, date_format=controller.date_format))
    if Confirm.ask(f"[bold]{confirm.title}[/bold] {confirm.message}", default=False, console=console):
        if controller.confirm_delete():
            console.print("[green]Deleted.[/green]")
    else:
        controller.cancel_delete()
    _show_alert(console, controller)


def _run_form(console: Console, controller: ViewController) -> None:
    while controller.mode is ViewMode.FORM:
        console.print(controller.render())

        for field, label, hint in render.FORM_FIELDS:
            console.print(f"[dim]{hint}[/dim]")
            value = Prompt.ask(
                label,
                default=getattr(controller.draft, field),
                show_default=False,
                console=console,
            )
            controller.update_field(field, value)

        # Nothing typed: leave quietly
        if controller.draft.is_blank():
            controller.cancel_form()
            return

        if not Confirm.ask("Save resentment?", default=True, console=console):
            controller.cancel_form()
            return

        if controller.submit() is not None:
            console.print("[green]Saved.[/green]")
            return

        _show_alert(console, controller)
        if not Confirm.ask("Edit and try again?", default=True, console=console):
            controller.cancel_form()


def run_session(controller: ViewController, console: Console) -> None:
    """Run the list/form loop until the user quits or input ends."""
    try:
        while True:
            console.print(controller.render())
            choice = Prompt.ask(LIST_PROMPT, default="q", console=console).strip()
            command, _, arg = choice.partition(" ")
            command = command.lower()

            if command in ("q", "quit"):
                break
            elif command in ("a", "add", "+"):
                controller.open_form()
                _run_form(console, controller)
            elif command in ("d", "delete"):
                _handle_delete(console, controller, arg.strip())
            else:
                console.print(f"[yellow]Unknown command: {escape(choice)}[/yellow]")
    except (KeyboardInterrupt, EOFError):
        console.print()
        logger.debug("Session ended by user")
