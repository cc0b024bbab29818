"""
Export the inventory to CSV or JSON for use outside StepFour.
"""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Sequence

from stepfour.core.models import ENTRY_FIELDS, Entry

logger = logging.getLogger(__name__)


def default_export_path(export_dir: str, extension: str) -> Path:
    """Timestamped file name in the export directory."""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path(export_dir) / f"resentments_export_{stamp}.{extension}"


def export_csv(entries: Sequence[Entry], output: Path) -> int:
    """
    Write entries to CSV in insertion order.

    Returns the number of rows written.
    """
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)

    with open(output, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(ENTRY_FIELDS)
        for entry in entries:
            record = entry.to_dict()
            writer.writerow([record[name] for name in ENTRY_FIELDS])

    logger.info(f"Exported {len(entries)} resentment(s) to {output}")
    return len(entries)


def export_json(entries: Sequence[Entry], output: Path) -> int:
    """
    Write entries to a JSON array using the stored field layout.

    Returns the number of records written.
    """
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)

    with open(output, "w", encoding="utf-8") as f:
        json.dump([entry.to_dict() for entry in entries], f, indent=2, ensure_ascii=False)

    logger.info(f"Exported {len(entries)} resentment(s) to {output}")
    return len(entries)
