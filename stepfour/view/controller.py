"""
View controller.

Presentation state for the inventory: which screen is showing, what has
been typed into the form, and whether a delete is waiting for
confirmation. All data changes go through the EntryStore.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from rich.console import RenderableType

from stepfour.core.errors import StorageError, ValidationError
from stepfour.core.models import Draft, Entry
from stepfour.journal.store import EntryStore
from stepfour.view import render

logger = logging.getLogger(__name__)


class ViewMode(str, Enum):
    """Which screen is active. Exactly one at a time."""
    LIST = "list"
    FORM = "form"


@dataclass(frozen=True)
class Alert:
    """A dismissable message for the user."""
    title: str
    message: str

    def __str__(self) -> str:
        return f"{self.title}: {self.message}"


REQUIRED_FIELDS_ALERT = Alert("Required Fields", "Please fill in who and what happened")
SAVE_FAILED_ALERT = Alert("Error", "Failed to save resentment")
DELETE_FAILED_ALERT = Alert("Error", "Failed to delete resentment")
CONFIRM_DELETE_ALERT = Alert("Delete Resentment", "Are you sure you want to delete this?")

FIELD_NAMES = ("who", "what", "affects", "my_part")


class ViewController:
    """Drives the list and form screens on top of an EntryStore."""

    def __init__(self, store: EntryStore, date_format: str = "%Y-%m-%d"):
        self.store = store
        self.date_format = date_format
        self.mode = ViewMode.LIST
        self.draft = Draft()
        self.pending_delete: Optional[str] = None
        self.alert: Optional[Alert] = None

    # ── Form ──────────────────────────────────────────────────

    def open_form(self) -> None:
        self.draft = Draft()
        self.alert = None
        self.mode = ViewMode.FORM

    def cancel_form(self) -> None:
        self.draft = Draft()
        self.alert = None
        self.mode = ViewMode.LIST

    def update_field(self, name: str, value: str) -> None:
        if name not in FIELD_NAMES:
            raise ValueError(f"Unknown form field: {name}")
        setattr(self.draft, name, value)

    def submit(self) -> Optional[Entry]:
        """
        Save the draft.

        On success the form is cleared and the list is shown. On failure
        the form stays open with the draft intact and self.alert is set.
        """
        try:
            entry = self.store.add(self.draft)
        except ValidationError as e:
            logger.debug(f"Rejected draft: {e}")
            self.alert = REQUIRED_FIELDS_ALERT
            return None
        except StorageError:
            self.alert = SAVE_FAILED_ALERT
            return None

        self.draft = Draft()
        self.alert = None
        self.mode = ViewMode.LIST
        return entry

    # ── Delete ────────────────────────────────────────────────

    def request_delete(self, entry_id: str) -> Optional[Alert]:
        """
        First step of a delete. Returns the confirmation prompt, or None
        if there is no such entry.
        """
        if self.store.get(entry_id) is None:
            self.pending_delete = None
            return None
        self.pending_delete = entry_id
        return CONFIRM_DELETE_ALERT

    def confirm_delete(self) -> bool:
        """Second step of a delete. No-op if nothing is pending."""
        if self.pending_delete is None:
            return False

        entry_id = self.pending_delete
        self.pending_delete = None
        try:
            return self.store.remove(entry_id)
        except StorageError:
            self.alert = DELETE_FAILED_ALERT
            return False

    def cancel_delete(self) -> None:
        self.pending_delete = None

    # ── Rendering ─────────────────────────────────────────────

    def render(self) -> RenderableType:
        if self.mode is ViewMode.FORM:
            return render.render_form(self.draft)
        return render.render_list(self.store.entries, date_format=self.date_format)
