"""
Tabular Writer

Renders funding tables as comma-separated text and replaces the target file
atomically, so readers only ever see a complete previous or a complete new
table.
"""

import csv
import io
import os
import stat
import tempfile
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from exchange_adapters.base_models import FundingObservation
from funding_aggregator.core.formatting import (
    format_decimal,
    format_percentage,
    format_timestamp,
)
from funding_aggregator.models.funding_rate import WINDOW_DAYS, CombinedRecord


COMBINED_COLUMNS = [
    "exchange",
    "symbol",
    *[f"{days}d" for days in WINDOW_DAYS],
    "datetime",
    "fundingRate",
    "interval",
    "markPrice",
]

MATRIX_DECIMALS = 2
COMBINED_DECIMALS = 4

# Permissions for a newly created table
TABLE_FILE_MODE = 0o644

Table = Tuple[List[str], List[List[str]]]


class WriteError(Exception):
    """Raised when a table could not be persisted; the previous file is intact"""

    def __init__(self, path: Path, cause: Exception):
        super().__init__(f"Failed to write {path}: {cause}")
        self.path = path
        self.cause = cause


def matrix_table(
    observations: Iterable[FundingObservation],
    exchange_ids: Sequence[str],
) -> Table:
    """
    Symbol × exchange percentage matrix.

    Columns follow ``exchange_ids`` order, rows are symbols sorted
    lexicographically, cells carry 2 decimals. Later duplicates win.
    """
    rates = {}
    for observation in observations:
        if observation.funding_rate is None:
            continue
        rates.setdefault(observation.symbol, {})[observation.exchange] = observation.funding_rate

    header = ["symbol", *exchange_ids]
    rows = [
        [symbol, *(format_percentage(rates[symbol].get(exchange), MATRIX_DECIMALS) for exchange in exchange_ids)]
        for symbol in sorted(rates)
    ]
    return header, rows


def combined_table(
    records: Iterable[CombinedRecord],
    display_timezone: str,
) -> Table:
    """Combined history + live table, rows in the order given."""
    rows = []
    for record in records:
        rows.append([
            record.exchange,
            record.symbol,
            *(format_percentage(record.averages.get(days), COMBINED_DECIMALS) for days in WINDOW_DAYS),
            format_timestamp(record.observed_at, display_timezone),
            format_percentage(record.funding_rate, COMBINED_DECIMALS),
            record.funding_interval or "",
            format_decimal(record.mark_price, COMBINED_DECIMALS),
        ])
    return list(COMBINED_COLUMNS), rows


class TableWriter:
    """
    Writes one delimited table file

    Usage:
        writer = TableWriter(Path("data/all_funding_rates.csv"))
        writer.write(*matrix_table(observations, exchange_ids))
    """

    def __init__(self, path: Path, delimiter: str = ","):
        self.path = Path(path)
        self.delimiter = delimiter

    def render(self, header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
        """
        Render header and rows as delimited text.

        Cells containing the delimiter, a quote or a line break are quoted
        with internal quotes doubled.
        """
        buffer = io.StringIO()
        writer = csv.writer(
            buffer,
            delimiter=self.delimiter,
            quoting=csv.QUOTE_MINIMAL,
            lineterminator="\n",
        )
        writer.writerow(header)
        writer.writerows(rows)
        return buffer.getvalue()

    def _target_mode(self) -> int:
        """Mode of the file being replaced, or TABLE_FILE_MODE for a new one."""
        try:
            return stat.S_IMODE(self.path.stat().st_mode)
        except FileNotFoundError:
            return TABLE_FILE_MODE

    def write(self, header: Sequence[str], rows: Iterable[Sequence[str]]) -> int:
        """
        Replace the table file with a freshly rendered one.

        Returns:
            Number of bytes written

        Raises:
            WriteError: On any filesystem failure; the previous file is untouched
        """
        payload = self.render(header, rows).encode("utf-8")
        tmp_path = None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=self.path.parent,
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_path, self._target_mode())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise WriteError(self.path, e) from e

        return len(payload)
