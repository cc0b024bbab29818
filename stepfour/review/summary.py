"""
Inventory summary.

Simple counts over the collection for a quick look back.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from stepfour.core.models import Entry

logger = logging.getLogger(__name__)


@dataclass
class InventorySummary:
    """Aggregate view of the inventory."""

    total: int = 0
    with_my_part: int = 0
    with_affects: int = 0
    by_who: List[Tuple[str, int]] = field(default_factory=list)
    first_created: Optional[str] = None
    last_created: Optional[str] = None

    @property
    def my_part_pct(self) -> float:
        """Share of entries where my part has been written down."""
        if self.total == 0:
            return 0.0
        return self.with_my_part / self.total * 100


def summarize(entries: Sequence[Entry]) -> InventorySummary:
    """
    Summarize a collection.

    Names are grouped case-insensitively and reported with the spelling
    used first. Most frequent first, ties in first-seen order.
    """
    if not entries:
        return InventorySummary()

    counts: Counter = Counter()
    spelling = {}
    for entry in entries:
        name = entry.who.strip()
        folded = name.casefold()
        spelling.setdefault(folded, name)
        counts[folded] += 1

    by_who = [(spelling[folded], n) for folded, n in counts.most_common()]

    stamps = sorted(e.created_at for e in entries if e.created_at)

    return InventorySummary(
        total=len(entries),
        with_my_part=sum(1 for e in entries if e.my_part),
        with_affects=sum(1 for e in entries if e.affects),
        by_who=by_who,
        first_created=stamps[0] if stamps else None,
        last_created=stamps[-1] if stamps else None,
    )


def format_summary(summary: InventorySummary, top: int = 5) -> str:
    """Plain-text report."""
    if summary.total == 0:
        return "No resentments added yet."

    lines = [
        f"Entries: {summary.total}",
        f"How it affects me filled in: {summary.with_affects}/{summary.total}",
        f"My part filled in: {summary.with_my_part}/{summary.total} ({summary.my_part_pct:.0f}%)",
    ]
    if summary.first_created:
        lines.append(f"First added: {summary.first_created}")
        lines.append(f"Last added: {summary.last_created}")

    lines.append("")
    lines.append("Most frequent:")
    for name, n in summary.by_who[:top]:
        lines.append(f"  {name}: {n}")

    return "\n".join(lines)
