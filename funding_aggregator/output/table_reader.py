"""
Read side of the persisted tables, used by the dashboard API
"""

import csv
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List


class TableUnavailableError(Exception):
    """Raised when a table file is missing, unreadable or has no header"""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Table {path} unavailable: {reason}")
        self.path = path
        self.reason = reason


@dataclass
class TableSnapshot:
    """A parsed table file"""
    path: Path
    columns: List[str]
    rows: List[Dict[str, str]]
    modified_at: datetime


def read_table(path: Path, delimiter: str = ",") -> TableSnapshot:
    """
    Parse a persisted table into one dict per row.

    An existing table without data rows parses to an empty ``rows`` list;
    that is a different outcome from the file being unavailable.

    Raises:
        TableUnavailableError: If the file is missing, unreadable or empty
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.DictReader(handle, delimiter=delimiter, restval="")
            columns = list(reader.fieldnames or [])
            rows = [
                {column: row.get(column) or "" for column in columns}
                for row in reader
            ]
        modified_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except FileNotFoundError as e:
        raise TableUnavailableError(path, "not found") from e
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise TableUnavailableError(path, str(e)) from e

    if not columns:
        raise TableUnavailableError(path, "no header row")

    return TableSnapshot(path=path, columns=columns, rows=rows, modified_at=modified_at)
