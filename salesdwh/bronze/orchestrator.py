"""
Bronze layer load: truncate and bulk reload every manifest table in one transaction.

Either every table in the manifest is reloaded and committed together, or the
whole batch is rolled back, a single failure record is appended to the load
log, and the error is raised to the caller. Tables whose source file is absent
are truncated and left empty; that is not a failure.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import Iterable, List, Optional, Union

import psycopg2

from salesdwh.bronze.bulk_loader import BulkLoadOptions, bulk_load
from salesdwh.bronze.load_log import LoadLogRecord, LoadLogWriter, LoadStatus
from salesdwh.bronze.manifest import (
    MANIFEST,
    SOURCE_TITLES,
    LoadManifestEntry,
    ResolvedEntry,
    resolve_entry,
    resolve_source_dirs,
)
from salesdwh.exceptions import (
    IngestionError,
    LoadFailure,
    TransactionFailure,
    describe_error,
)
from salesdwh.utils.logging_utils import log_banner, log_error, log_progress
from salesdwh.warehouse.connection import WarehouseSession, open_session

BATCH_SECTION = "Bronze Load"


@dataclass(frozen=True)
class BatchOutcome:
    started_at: datetime
    finished_at: datetime
    status: LoadStatus
    records: List[LoadLogRecord] = field(default_factory=list)
    skipped_tables: List[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def loaded_tables(self) -> List[str]:
        return [record.table_name for record in self.records]


def _load_entry(
    session: WarehouseSession,
    resolved: ResolvedEntry,
    options: BulkLoadOptions,
    log_writer: Optional[LoadLogWriter],
) -> Optional[LoadLogRecord]:
    """
    Truncate one destination and reload it from its source file.

    Returns:
        The success record, or None when the source file is absent.
    """
    table = resolved.qualified_table
    start = time.perf_counter()

    log_progress(BATCH_SECTION, f">> Truncating Table: {table}")
    session.truncate(resolved.table)

    if not resolved.source_path.is_file():
        log_progress(table, f"Source file {resolved.source_path} not found, skipping load")
        return None

    log_progress(BATCH_SECTION, f">> Inserting Data Into: {table}")
    stats = bulk_load(session, resolved, options)
    if stats.rows_rejected:
        log_progress(
            table,
            f"Diverted {stats.rows_rejected} malformed rows to {stats.error_path}",
        )

    row_count = session.count_rows(resolved.table)
    duration = round(time.perf_counter() - start, 3)
    record = LoadLogRecord.success(table, row_count, duration)
    if log_writer is not None:
        log_writer.append(record)

    log_progress(table, f"Load duration: {duration} seconds")
    log_progress(table, f"Rows loaded: {row_count}")
    return record


def _commit(session: WarehouseSession) -> None:
    try:
        session.commit()
    except Exception as e:
        raise TransactionFailure(f"Commit of bronze batch failed: {e}") from e


def _as_ingestion_error(error: Exception, state: str) -> IngestionError:
    if isinstance(error, IngestionError):
        return error
    return LoadFailure(f"Bronze batch failed: {error}", state=state)


def _write_failure_record(session: WarehouseSession, message: str) -> None:
    """Append the batch failure record in its own transaction."""
    try:
        LoadLogWriter(session).append(LoadLogRecord.failure(message))
        session.commit()
    except Exception as e:
        log_error(BATCH_SECTION, f"Could not write failure record to load log: {e}")
        try:
            session.rollback()
        except Exception as rollback_error:
            log_error(BATCH_SECTION, f"Rollback after log failure failed: {rollback_error}")


def _report_failure(details) -> None:
    log_banner("ERROR OCCURRED DURING LOADING BRONZE LAYER")
    log_error(BATCH_SECTION, details.message)
    log_progress(BATCH_SECTION, f"Error Number: {details.number}")
    log_progress(BATCH_SECTION, f"Error State: {details.state}")


def _run_batch(
    session: WarehouseSession,
    entries: Iterable[LoadManifestEntry],
    source_dirs,
    options: BulkLoadOptions,
    log_to_store: bool,
) -> BatchOutcome:
    started_at = datetime.now(UTC)
    batch_start = time.perf_counter()
    log_writer = LoadLogWriter(session) if log_to_store else None
    records: List[LoadLogRecord] = []
    skipped: List[str] = []

    try:
        log_banner("Loading Bronze Layer")
        current_source = None
        for entry in entries:
            if entry.source != current_source:
                current_source = entry.source
                log_banner(SOURCE_TITLES.get(entry.source, entry.source), char="-")

            record = _load_entry(
                session, resolve_entry(entry, source_dirs), options, log_writer
            )
            if record is None:
                skipped.append(entry.qualified_table)
            else:
                records.append(record)

        _commit(session)
    except Exception as e:
        details = describe_error(e)
        try:
            session.rollback()
        except Exception as rollback_error:
            _report_failure(details)
            log_error(BATCH_SECTION, f"Rollback failed: {rollback_error}")
            raise TransactionFailure(
                f"Rollback failed ({rollback_error}) after: {details.message}"
            ) from rollback_error

        if log_to_store:
            _write_failure_record(session, details.format())
        _report_failure(details)

        error = _as_ingestion_error(e, details.state)
        if error is e:
            raise
        raise error from e
    except BaseException:
        # Interrupted mid-batch: nothing may stay pending on the session.
        try:
            session.rollback()
        except Exception as rollback_error:
            log_error(BATCH_SECTION, f"Rollback after interrupt failed: {rollback_error}")
        raise

    finished_at = datetime.now(UTC)
    log_banner(
        "Loading Bronze Layer is Completed\n"
        f"Total Load Duration: {round(time.perf_counter() - batch_start, 1)} seconds"
    )
    return BatchOutcome(
        started_at=started_at,
        finished_at=finished_at,
        status=LoadStatus.SUCCESS,
        records=records,
        skipped_tables=skipped,
    )


def run(
    base_path: Union[str, Path],
    log_to_store: bool = True,
    *,
    session: Optional[WarehouseSession] = None,
    entries: Iterable[LoadManifestEntry] = MANIFEST,
    max_errors: Optional[int] = None,
) -> BatchOutcome:
    """
    Truncate and reload every bronze table listed in the manifest.

    Runs synchronously in a single transaction. Concurrent runs against the
    same tables are not coordinated here.

    Args:
        base_path: Directory holding the source_crm/ and source_erp/ folders.
        log_to_store: Append LoadLogRecords to bronze.load_log.
        session: Open WarehouseSession to use; one is opened (and closed) from
            Config when omitted.
        entries: Manifest entries to load, in order.
        max_errors: Malformed-row threshold per file, defaults to Config.

    Returns:
        BatchOutcome of the committed batch.

    Raises:
        LoadFailure: If truncating, loading, counting or logging fails.
        TransactionFailure: If the batch cannot be committed or rolled back.
    """
    source_dirs = resolve_source_dirs(base_path)
    options = BulkLoadOptions.from_config(max_errors)

    owns_session = session is None
    if owns_session:
        try:
            session = open_session()
        except psycopg2.Error as e:
            # No connection means no load log either; report and raise.
            details = describe_error(e)
            log_error(BATCH_SECTION, f"Cannot connect to warehouse: {details.message}")
            raise LoadFailure(
                f"Cannot connect to warehouse: {details.message}", state=details.state
            ) from e
    try:
        return _run_batch(session, tuple(entries), source_dirs, options, log_to_store)
    finally:
        if owns_session:
            session.close()
