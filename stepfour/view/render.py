"""
Rich renderables for the inventory screens.
"""

from datetime import datetime
from typing import Optional, Sequence

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from stepfour.core.models import Draft, Entry

ACCENT = "#5e3aa1"

TITLE = "Step 4: Resentments"
FORM_TITLE = "Add Resentment"

EMPTY_TEXT = "No resentments added yet"
EMPTY_SUBTEXT = "Use [bold]add[/bold] to start your inventory"

# (field, label, hint) in form order
FORM_FIELDS = (
    ("who", "Who or what am I resentful at? *", "Person, institution, or principle"),
    ("what", "What happened? (The cause) *", "Describe what they did..."),
    ("affects", "How does it affect me?", "My self-esteem, security, ambitions, relationships..."),
    ("my_part", "What was my part?", "Where was I selfish, dishonest, self-seeking, or frightened?"),
)


def format_added_date(created_at: str, date_format: str = "%Y-%m-%d") -> str:
    """
    Format a stored createdAt for display in local time.

    Falls back to the raw string if it isn't a timestamp we can parse.
    """
    if not created_at:
        return "unknown"
    try:
        moment = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except ValueError:
        return created_at
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.strftime(date_format)


def entry_count_label(count: int) -> str:
    return f"{count} entries"


def render_header(count: int) -> RenderableType:
    """Title bar with entry count."""
    return Group(
        Text(TITLE, style=f"bold {ACCENT}"),
        Text(entry_count_label(count), style="dim"),
    )


def render_empty_state() -> RenderableType:
    return Panel(
        Group(Text(EMPTY_TEXT, style="bold", justify="center"),
              Text.from_markup(EMPTY_SUBTEXT, style="dim", justify="center")),
        border_style="dim",
    )


def render_entry_card(
    entry: Entry,
    number: Optional[int] = None,
    date_format: str = "%Y-%m-%d",
) -> RenderableType:
    """
    One resentment as a card.

    "How it affects me" and "My part" only appear when filled in.
    """
    body = Table.grid(padding=(0, 1))
    body.add_column(style="bold", no_wrap=True)
    body.add_column()

    body.add_row("What happened:", Text(entry.what))
    if entry.affects:
        body.add_row("How it affects me:", Text(entry.affects))
    if entry.my_part:
        body.add_row("My part:", Text(entry.my_part))

    title = Text(entry.who, style=f"bold {ACCENT}")
    if number is not None:
        title = Text.assemble((f"{number}. ", "dim"), title)

    return Panel(
        body,
        title=title,
        title_align="left",
        subtitle=f"Added: {format_added_date(entry.created_at, date_format)}",
        subtitle_align="right",
    )


def render_list(entries: Sequence[Entry], date_format: str = "%Y-%m-%d") -> RenderableType:
    """The list screen: header, then cards or the empty state."""
    if not entries:
        return Group(render_header(0), render_empty_state())

    cards = [
        render_entry_card(entry, number=i, date_format=date_format)
        for i, entry in enumerate(entries, start=1)
    ]
    return Group(render_header(len(entries)), *cards)


def render_form(draft: Draft) -> RenderableType:
    """The add screen, showing what has been typed so far."""
    table = Table.grid(padding=(0, 1))
    table.add_column(style="bold")
    table.add_column()

    for field, label, hint in FORM_FIELDS:
        value = getattr(draft, field)
        table.add_row(label, Text(value) if value else Text(hint, style="dim italic"))

    return Group(
        Text(FORM_TITLE, style=f"bold {ACCENT}"),
        Panel(table, border_style=ACCENT),
    )


def render_alert(title: str, message: str, style: str = "yellow") -> RenderableType:
    return Panel(Text(message), title=Text(title, style=f"bold {style}"), border_style=style)
