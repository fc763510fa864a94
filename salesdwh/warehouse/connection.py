"""
PostgreSQL access for the warehouse jobs.

WarehouseSession wraps one psycopg2 connection. Statements run inside the
connection's implicit transaction until commit() or rollback() is called, so
a caller can group truncates, COPY loads and log inserts into one unit.
"""

from typing import IO, Optional, Sequence

import psycopg2
from psycopg2 import sql

from salesdwh.config import Config


def get_db_connection(database: Optional[str] = None):
    """
    Open a psycopg2 connection to the warehouse.

    No statement timeout is set: bulk loads block until they finish or fail.

    Args:
        database: Database name, defaults to Config.DWH_DATABASE.
    """
    return psycopg2.connect(**Config.get_connection_details(database))


def table_identifier(table: str) -> sql.Identifier:
    """Identifier for a bronze table given its unqualified name."""
    return sql.Identifier(Config.BRONZE_SCHEMA, table)


class WarehouseSession:
    """Transaction-scoped operations on bronze tables."""

    def __init__(self, conn):
        self.conn = conn

    def __enter__(self) -> "WarehouseSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _execute(self, query, params=None) -> None:
        with self.conn.cursor() as cursor:
            cursor.execute(query, params)

    def truncate(self, table: str) -> None:
        self._execute(sql.SQL("TRUNCATE TABLE {}").format(table_identifier(table)))

    def lock(self, table: str) -> None:
        self._execute(
            sql.SQL("LOCK TABLE {} IN ACCESS EXCLUSIVE MODE").format(
                table_identifier(table)
            )
        )

    def copy_csv(self, table: str, buffer: IO[str]) -> None:
        """Stream header-less CSV from buffer into a bronze table."""
        query = sql.SQL(
            "COPY {} FROM STDIN WITH (FORMAT csv, DELIMITER ',', NULL '')"
        ).format(table_identifier(table))
        with self.conn.cursor() as cursor:
            cursor.copy_expert(query, buffer)

    def count_rows(self, table: str) -> int:
        with self.conn.cursor() as cursor:
            cursor.execute(
                sql.SQL("SELECT COUNT(*) FROM {}").format(table_identifier(table))
            )
            return cursor.fetchone()[0]

    def insert(self, table: str, columns: Sequence[str], values: Sequence) -> None:
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            table_identifier(table),
            sql.SQL(", ").join(sql.Identifier(column) for column in columns),
            sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )
        self._execute(query, tuple(values))

    def commit(self) -> None:
        self.conn.commit()

    def rollback(self) -> None:
        self.conn.rollback()

    def close(self) -> None:
        if not self.conn.closed:
            self.conn.close()


def open_session(database: Optional[str] = None) -> WarehouseSession:
    """Open a connection and wrap it in a WarehouseSession."""
    return WarehouseSession(get_db_connection(database))
