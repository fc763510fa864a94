"""
Bulk loading of delimited source files into bronze tables.

The file is split with the csv module: rows whose field count does not match
the header are diverted to the entry's error-capture file, and the remaining
rows are buffered through a DataFrame and streamed into the destination with
PostgreSQL COPY. Type conversion is left to the destination columns: a value
COPY cannot coerce fails the load.
"""

import csv
import io
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from salesdwh.bronze.manifest import ResolvedEntry
from salesdwh.config import Config
from salesdwh.exceptions import MalformedRecordLimitExceeded


@dataclass(frozen=True)
class BulkLoadOptions:
    """Format options for one bulk load."""

    format: str = "csv"
    first_row: int = 2
    field_terminator: str = ","
    row_terminator: str = "\n"
    encoding: str = "utf-8"
    max_errors: int = 10
    table_lock: bool = True

    def __post_init__(self):
        if self.format != "csv":
            raise ValueError(f"Unsupported bulk load format: {self.format}")
        if self.first_row < 2:
            raise ValueError("first_row must skip the header row (>= 2)")
        if len(self.field_terminator) != 1:
            raise ValueError("field_terminator must be a single character")
        # The parser splits records on universal newlines.
        if self.row_terminator not in ("\n", "\r\n"):
            raise ValueError("row_terminator must be a newline")
        if self.max_errors < 0:
            raise ValueError("max_errors must not be negative")

    @classmethod
    def from_config(cls, max_errors: Optional[int] = None) -> "BulkLoadOptions":
        return cls(
            encoding=Config.SOURCE_ENCODING,
            max_errors=Config.get_max_errors() if max_errors is None else max_errors,
        )


@dataclass(frozen=True)
class LoadStats:
    rows_read: int
    rows_rejected: int
    error_path: Optional[Path] = None

    @property
    def rows_accepted(self) -> int:
        return self.rows_read - self.rows_rejected


def split_source_file(
    source_path: Path, options: BulkLoadOptions
) -> Tuple[pd.DataFrame, List[List[str]]]:
    """
    Parse a delimited source file into well-formed and malformed rows.

    A row is well-formed when its field count equals the header's. Every value
    is kept as text; empty fields stay empty strings so COPY can turn them
    into NULLs. Blank lines are ignored. Rows before ``first_row`` other than
    the header are skipped.

    Args:
        source_path: CSV file to parse.
        options: Format options.

    Returns:
        Tuple of (well-formed rows, raw fields of each malformed row).
    """
    rejected: List[List[str]] = []
    accepted: List[List[str]] = []

    with open(source_path, newline="", encoding=options.encoding) as f:
        reader = csv.reader(f, delimiter=options.field_terminator)
        header = next(reader, None)
        if header is None:
            return pd.DataFrame(), rejected

        for line_number, fields in enumerate(reader, start=2):
            if line_number < options.first_row or not fields:
                continue
            if len(fields) == len(header):
                accepted.append(fields)
            else:
                rejected.append(fields)

    return pd.DataFrame(accepted, columns=header, dtype=str), rejected


def write_error_file(error_path: Path, header: List[str], rejected: List[List[str]]) -> None:
    """Write malformed rows, under the source header, to the error-capture file."""
    with open(error_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        writer.writerows(rejected)


def bulk_load(session, resolved: ResolvedEntry, options: BulkLoadOptions) -> LoadStats:
    """
    Load one source file into its bronze table.

    The destination must already be truncated by the caller; this function
    only appends. A stale error-capture file from an earlier run is removed
    first so the file always describes the current load. The whole file is
    held in memory (parsed rows, DataFrame and COPY buffer) before streaming;
    nothing is read incrementally.

    Args:
        session: WarehouseSession inside the caller's transaction.
        resolved: Manifest entry with its paths for this run.
        options: Format options.

    Returns:
        LoadStats for the load.

    Raises:
        MalformedRecordLimitExceeded: If more rows are malformed than options.max_errors.
    """
    resolved.error_path.unlink(missing_ok=True)

    df, rejected = split_source_file(resolved.source_path, options)

    error_path = None
    if rejected:
        write_error_file(resolved.error_path, list(df.columns), rejected)
        error_path = resolved.error_path
        if len(rejected) > options.max_errors:
            raise MalformedRecordLimitExceeded(
                resolved.qualified_table, len(rejected), options.max_errors, error_path
            )

    if options.table_lock:
        session.lock(resolved.table)

    if len(df) > 0:
        buffer = io.StringIO()
        # COPY reads comma separated, newline terminated text whatever the source used.
        df.to_csv(buffer, index=False, header=False, sep=",", lineterminator="\n")
        buffer.seek(0)
        session.copy_csv(resolved.table, buffer)

    return LoadStats(
        rows_read=len(df) + len(rejected),
        rows_rejected=len(rejected),
        error_path=error_path,
    )
