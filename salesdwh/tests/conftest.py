"""
Shared fixtures for the SalesDwh tests.

FakeWarehouse stands in for WarehouseSession: committed state and the
in-flight transaction are kept apart so rollback can be asserted on.
"""

import copy
import csv
from pathlib import Path

import psycopg2
import pytest

from salesdwh.bronze.manifest import MANIFEST


class InvalidTextRepresentation(psycopg2.DataError):
    pgcode = "22P02"


class UndefinedTable(psycopg2.ProgrammingError):
    pgcode = "42P01"


class FakeWarehouse:
    """In-memory bronze schema with transactional semantics."""

    def __init__(self, tables=None, column_types=None):
        self.committed = {entry.table: [] for entry in MANIFEST}
        self.committed.update(copy.deepcopy(tables or {}))
        self.committed.setdefault("load_log", [])
        self.pending = copy.deepcopy(self.committed)
        self.column_types = column_types or {}
        self.locked = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self.fail_commit = False
        self.fail_rollback = False

    def _table(self, table):
        if table not in self.pending:
            raise UndefinedTable(f'relation "bronze.{table}" does not exist')
        return self.pending[table]

    def truncate(self, table):
        self._table(table).clear()

    def lock(self, table):
        self._table(table)
        self.locked.append(table)

    def copy_csv(self, table, buffer):
        rows = self._table(table)
        types = self.column_types.get(table, ())
        for raw in csv.reader(buffer):
            row = []
            for index, value in enumerate(raw):
                if value == "":
                    row.append(None)
                    continue
                cast = types[index] if index < len(types) else str
                try:
                    row.append(cast(value))
                except ValueError:
                    raise InvalidTextRepresentation(
                        f'invalid input syntax for type integer: "{value}"'
                    )
            rows.append(tuple(row))

    def count_rows(self, table):
        return len(self._table(table))

    def insert(self, table, columns, values):
        self._table(table).append(dict(zip(columns, values)))

    def commit(self):
        if self.fail_commit:
            raise psycopg2.OperationalError("server closed the connection unexpectedly")
        self.committed = copy.deepcopy(self.pending)
        self.commits += 1

    def rollback(self):
        if self.fail_rollback:
            raise psycopg2.InterfaceError("connection already closed")
        self.pending = copy.deepcopy(self.committed)
        self.rollbacks += 1

    def close(self):
        self.closed = True

    def rows(self, table):
        return self.committed[table]

    @property
    def load_log(self):
        return self.committed["load_log"]


@pytest.fixture
def warehouse():
    return FakeWarehouse(column_types={"crm_cust_info": (int, str, str)})


@pytest.fixture
def source_root(tmp_path):
    """Base directory with empty source_crm/ and source_erp/ folders."""
    (tmp_path / "source_crm").mkdir()
    (tmp_path / "source_erp").mkdir()
    return tmp_path


@pytest.fixture
def write_csv():
    """Write lines to a CSV file, newline terminated."""

    def _write(path: Path, lines):
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_warehouse():
    """Factory for FakeWarehouse instances with seeded tables."""
    return FakeWarehouse
