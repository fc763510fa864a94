"""
Error taxonomy for bronze ingestion.

A missing source file is not an error and has no class here: the
orchestrator skips it. Malformed rows are diverted to the entry's
error-capture file and only surface as an exception once they exceed the
loader's threshold.
"""

from dataclasses import dataclass
from typing import Optional

import psycopg2

# Numbers in the user-defined range, so they never collide with driver codes.
UNCLASSIFIED_ERROR_NUMBER = 50000
LOAD_FAILURE_NUMBER = 50001
TRANSACTION_FAILURE_NUMBER = 50002
MALFORMED_LIMIT_NUMBER = 50003

# PostgreSQL SQLSTATE for internal_error, used when no better state exists.
UNKNOWN_STATE = "XX000"


class IngestionError(Exception):
    """Base class for errors that abort a bronze batch."""

    error_number = UNCLASSIFIED_ERROR_NUMBER

    def __init__(self, message: str, state: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.state = state or UNKNOWN_STATE


class LoadFailure(IngestionError):
    """Destination unreachable, permission denied, or a fatal loader fault."""

    error_number = LOAD_FAILURE_NUMBER


class MalformedRecordLimitExceeded(LoadFailure):
    """More malformed rows than the loader tolerates for a single file."""

    error_number = MALFORMED_LIMIT_NUMBER

    def __init__(self, table: str, rejected: int, max_errors: int, error_path=None):
        super().__init__(
            f"{rejected} malformed rows in source for {table} "
            f"exceed the limit of {max_errors}",
            state="22P04",
        )
        self.table = table
        self.rejected = rejected
        self.max_errors = max_errors
        self.error_path = error_path


class TransactionFailure(IngestionError):
    """Commit or rollback of the batch transaction failed."""

    error_number = TRANSACTION_FAILURE_NUMBER


@dataclass(frozen=True)
class ErrorDetails:
    message: str
    number: int
    state: str

    def format(self) -> str:
        return f"{self.message} (Error Number: {self.number}, State: {self.state})"


def _psycopg2_message(error: psycopg2.Error) -> str:
    diag = getattr(error, "diag", None)
    primary = getattr(diag, "message_primary", None) if diag is not None else None
    if primary:
        return primary
    if error.pgerror:
        return error.pgerror.strip()
    return str(error).strip()


def describe_error(error: BaseException) -> ErrorDetails:
    """
    Extract message, error number and state from any exception.

    Wrapped errors are described by their own message; their state falls back
    to the SQLSTATE of the driver error they were raised from.

    Args:
        error: The exception that aborted the batch.

    Returns:
        ErrorDetails for the failure log record and console output.
    """
    if isinstance(error, IngestionError):
        state = error.state
        cause = error.__cause__
        if state == UNKNOWN_STATE and isinstance(cause, psycopg2.Error) and cause.pgcode:
            state = cause.pgcode
        return ErrorDetails(error.message, error.error_number, state)

    if isinstance(error, psycopg2.Error):
        return ErrorDetails(
            _psycopg2_message(error),
            LOAD_FAILURE_NUMBER,
            error.pgcode or UNKNOWN_STATE,
        )

    if isinstance(error, OSError):
        return ErrorDetails(
            str(error),
            error.errno if error.errno is not None else LOAD_FAILURE_NUMBER,
            "OS",
        )

    return ErrorDetails(str(error) or type(error).__name__, UNCLASSIFIED_ERROR_NUMBER, UNKNOWN_STATE)
