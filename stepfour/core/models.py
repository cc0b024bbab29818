"""
Data models for StepFour.

Models: KeyValue (database table), Entry and Draft (journal records).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class KeyValue(Base):
    """
    A single durable key-value pair.

    The whole resentment inventory lives under one key as a JSON array.
    """

    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<KeyValue {self.key}: {len(self.value)} chars>"


# Field names as they appear in the persisted payload
ENTRY_FIELDS = ("id", "who", "what", "affects", "myPart", "createdAt")


@dataclass(frozen=True)
class Entry:
    """
    One resentment in the inventory.

    Immutable once created. Deleted only by explicit user action.
    """

    id: str
    who: str
    what: str
    affects: str
    my_part: str
    created_at: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to the persisted field layout."""
        return {
            "id": self.id,
            "who": self.who,
            "what": self.what,
            "affects": self.affects,
            "myPart": self.my_part,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entry":
        """
        Create from a persisted record.

        Raises:
            ValueError: If the record is not a mapping, lacks id/who/what,
                or has a non-string optional field.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Entry record must be an object, got {type(data).__name__}")

        for name in ("id", "who", "what"):
            value = data.get(name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"Entry record has invalid '{name}': {value!r}")

        for name in ("affects", "myPart", "createdAt"):
            value = data.get(name)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Entry record has non-string '{name}': {value!r}")

        return cls(
            id=data["id"],
            who=data["who"],
            what=data["what"],
            affects=data.get("affects") or "",
            my_part=data.get("myPart") or "",
            created_at=data.get("createdAt") or "",
        )


@dataclass
class Draft:
    """User-entered field values, not yet validated."""

    who: str = ""
    what: str = ""
    affects: str = ""
    my_part: str = ""

    def missing_fields(self) -> List[str]:
        """Return the required fields that are empty, in form order."""
        missing = []
        if not (self.who or "").strip():
            missing.append("who")
        if not (self.what or "").strip():
            missing.append("what")
        return missing

    def is_blank(self) -> bool:
        """True if nothing has been typed into any field."""
        return not any((self.who, self.what, self.affects, self.my_part))
