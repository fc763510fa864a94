"""
Unit tests for load log records.
"""

from unittest.mock import MagicMock

from salesdwh.bronze.load_log import LOG_COLUMNS, LoadLogRecord, LoadLogWriter, LoadStatus


class TestLoadLogRecord:
    """Test record construction and persistence."""

    def test_success_record(self):
        """Test success records carry metrics and no error."""
        record = LoadLogRecord.success("bronze.crm_cust_info", 18494, 1.25)
        assert record.status is LoadStatus.SUCCESS
        assert record.operation == "BULK INSERT"
        assert record.row_count == 18494
        assert record.error_message is None
        assert record.log_date.tzinfo is not None

    def test_failure_record(self):
        """Test the failure record uses the batch sentinel and no metrics."""
        record = LoadLogRecord.failure("boom (Error Number: 50001, State: XX000)")
        assert record.table_name == "bronze_layer"
        assert record.operation == "FULL LOAD"
        assert record.status is LoadStatus.FAILED
        assert record.row_count is None
        assert record.duration_seconds is None

    def test_writer_inserts_row(self):
        """Test the writer inserts every column into bronze.load_log."""
        session = MagicMock()
        record = LoadLogRecord.success("bronze.erp_loc_a101", 3, 0.5)

        LoadLogWriter(session).append(record)

        session.insert.assert_called_once_with("load_log", LOG_COLUMNS, record.as_row())
        assert record.as_row()[4] == "Success"
