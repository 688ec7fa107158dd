"""
Reads sound ID lists from CSV or plain line-delimited files.
"""

import csv
import logging
from collections.abc import Iterable
from pathlib import Path

log = logging.getLogger(__name__)


def parse_sound_ids(lines: Iterable[str]) -> list[str]:
    """
    Extracts sound IDs from text lines.

    The first CSV column of each row is used; blank rows and rows starting
    with '#' are ignored. Duplicates are kept in first-seen order only once.
    """
    ids = []
    for row in csv.reader(lines):
        if not row:
            continue
        value = row[0].strip()
        if value and not value.startswith("#"):
            ids.append(value)
    return list(dict.fromkeys(ids))


def read_sound_ids(path: Path) -> list[str]:
    """Reads sound IDs from a file, one per line or one per CSV row."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        ids = parse_sound_ids(f)
    log.debug(f"Read {len(ids)} sound IDs from {path}")
    return ids
