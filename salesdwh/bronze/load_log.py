"""
Append-only load log kept in bronze.load_log.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Optional

from salesdwh.config import Config

BATCH_TABLE_NAME = "bronze_layer"
BULK_OPERATION = "BULK INSERT"
BATCH_OPERATION = "FULL LOAD"

LOG_COLUMNS = (
    "table_name",
    "operation",
    "row_count",
    "duration_seconds",
    "status",
    "error_message",
    "log_date",
)


class LoadStatus(str, Enum):
    SUCCESS = "Success"
    FAILED = "Failed"


@dataclass(frozen=True)
class LoadLogRecord:
    table_name: str
    operation: str
    status: LoadStatus
    row_count: Optional[int] = None
    duration_seconds: Optional[float] = None
    error_message: Optional[str] = None
    log_date: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def success(cls, table_name: str, row_count: int, duration_seconds: float) -> "LoadLogRecord":
        return cls(
            table_name=table_name,
            operation=BULK_OPERATION,
            status=LoadStatus.SUCCESS,
            row_count=row_count,
            duration_seconds=duration_seconds,
        )

    @classmethod
    def failure(cls, error_message: str) -> "LoadLogRecord":
        return cls(
            table_name=BATCH_TABLE_NAME,
            operation=BATCH_OPERATION,
            status=LoadStatus.FAILED,
            error_message=error_message,
        )

    def as_row(self) -> tuple:
        return (
            self.table_name,
            self.operation,
            self.row_count,
            self.duration_seconds,
            self.status.value,
            self.error_message,
            self.log_date,
        )


class LoadLogWriter:
    """Inserts LoadLogRecords through a WarehouseSession; never reads or deletes."""

    def __init__(self, session):
        self.session = session

    def append(self, record: LoadLogRecord) -> None:
        self.session.insert(Config.LOAD_LOG_TABLE, LOG_COLUMNS, record.as_row())
