"""
Table output: rendering, atomic persistence and read-back
"""

from funding_aggregator.output.table_reader import TableSnapshot, TableUnavailableError, read_table
from funding_aggregator.output.table_writer import (
    COMBINED_COLUMNS,
    TableWriter,
    WriteError,
    combined_table,
    matrix_table,
)

__all__ = [
    "COMBINED_COLUMNS",
    "TableSnapshot",
    "TableUnavailableError",
    "TableWriter",
    "WriteError",
    "combined_table",
    "matrix_table",
    "read_table",
]
