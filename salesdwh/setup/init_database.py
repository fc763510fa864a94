"""
Create the SalesDwh database, its bronze/silver/gold schemas and the load log table.

WARNING: with reset=True the existing warehouse database is dropped and all
of its data is permanently deleted.
"""

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

from salesdwh.config import Config
from salesdwh.utils.logging_utils import (
    log_error,
    log_progress,
    log_section_complete,
    log_section_start,
)
from salesdwh.warehouse.connection import get_db_connection

SECTION = "Warehouse Bootstrap"


def database_exists(cursor, name: str) -> bool:
    cursor.execute("SELECT 1 FROM pg_database WHERE datname = %s", (name,))
    return cursor.fetchone() is not None


def init_database(reset: bool = False) -> bool:
    """
    Create the warehouse database, dropping it first when reset is requested.

    CREATE/DROP DATABASE cannot run inside a transaction, so this connects to
    the maintenance database in autocommit mode.

    Args:
        reset: Drop and recreate the database if it already exists.

    Returns:
        bool: True if the database was created by this call.
    """
    name = Config.DWH_DATABASE
    conn = get_db_connection(Config.MAINTENANCE_DATABASE)
    try:
        conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
        with conn.cursor() as cursor:
            exists = database_exists(cursor, name)
            if exists and reset:
                log_progress(SECTION, f"Dropping database {name}")
                cursor.execute(
                    "SELECT pg_terminate_backend(pid) FROM pg_stat_activity "
                    "WHERE datname = %s AND pid <> pg_backend_pid()",
                    (name,),
                )
                cursor.execute(
                    sql.SQL("DROP DATABASE {}").format(sql.Identifier(name))
                )
                exists = False

            if exists:
                log_progress(SECTION, f"Database {name} already exists")
                return False

            log_progress(SECTION, f"Creating database {name}")
            cursor.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(name)))
            return True
    finally:
        conn.close()


def create_schemas(conn) -> None:
    """Create the bronze, silver and gold schemas if missing."""
    with conn.cursor() as cursor:
        for schema in Config.schemas():
            cursor.execute(
                sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema))
            )
    conn.commit()


def create_load_log_table(conn) -> None:
    """Create the append-only bronze load log if missing."""
    with conn.cursor() as cursor:
        cursor.execute(
            sql.SQL(
                """
                CREATE TABLE IF NOT EXISTS {} (
                    log_id BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
                    table_name VARCHAR(100) NOT NULL,
                    operation VARCHAR(50) NOT NULL,
                    row_count INTEGER,
                    duration_seconds NUMERIC(12, 3),
                    status VARCHAR(20) NOT NULL,
                    error_message TEXT,
                    log_date TIMESTAMPTZ NOT NULL DEFAULT now()
                )
                """
            ).format(sql.Identifier(Config.BRONZE_SCHEMA, Config.LOAD_LOG_TABLE))
        )
    conn.commit()


def bootstrap(reset: bool = False) -> None:
    """Create database, schemas and load log table."""
    log_section_start(SECTION)
    try:
        created = init_database(reset=reset)
        conn = get_db_connection()
        try:
            create_schemas(conn)
            log_progress(SECTION, f"Schemas ready: {', '.join(Config.schemas())}")
            create_load_log_table(conn)
            log_progress(
                SECTION, f"Load log ready: {Config.BRONZE_SCHEMA}.{Config.LOAD_LOG_TABLE}"
            )
        finally:
            conn.close()
    except psycopg2.Error as e:
        log_error(SECTION, e)
        raise

    log_section_complete(
        SECTION, f"database {Config.DWH_DATABASE} {'created' if created else 'reused'}"
    )
