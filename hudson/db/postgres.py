"""
Direct Postgres access for the setup and admin scripts.
The services never use this; they go through the Supabase record stores.

Usage:
    from hudson.db.postgres import get_postgres_connection, count_records

    conn = get_postgres_connection()
    print(count_records(conn, "subscription_records"))
"""

import os

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import connection

from .schema import INDEXES_SQL, RECORD_TABLES, SCHEMA_SQL

# Checked in order
DATABASE_URL_VARS = ("DATABASE_URL", "SUPABASE_DB_URL")


def get_database_url() -> str:
    """
    Postgres connection string from DATABASE_URL or SUPABASE_DB_URL.

    Raises:
        ValueError: neither is set
    """
    for var in DATABASE_URL_VARS:
        if url := os.environ.get(var):
            return url

    raise ValueError(
        "No database connection configured. Set DATABASE_URL or SUPABASE_DB_URL "
        "(Supabase dashboard > Project Settings > Database > Connection string)."
    )


def get_postgres_connection() -> connection:
    try:
        return psycopg2.connect(get_database_url())
    except psycopg2.OperationalError as e:
        raise psycopg2.OperationalError(f"Could not reach the Hudson database: {e}") from e


def check_table_exists(conn: connection, table_name: str) -> bool:
    with conn.cursor() as cur:
        cur.execute(
            "SELECT to_regclass(%s) IS NOT NULL",
            (f"public.{table_name}",),
        )
        return cur.fetchone()[0]


def apply_schema(conn: connection) -> list:
    """Create any missing record tables and indexes. Returns the tables created."""
    missing = [table for table in RECORD_TABLES if not check_table_exists(conn, table)]
    if not missing:
        return []
    if len(missing) != len(RECORD_TABLES):
        # Policies in SCHEMA_SQL are not idempotent
        raise ValueError(f"Partial schema found, missing: {', '.join(missing)}. Apply SQL manually.")

    with conn.cursor() as cur:
        cur.execute(SCHEMA_SQL)
        cur.execute(INDEXES_SQL)
    conn.commit()
    return missing


def count_records(conn: connection, table_name: str) -> int:
    if table_name not in RECORD_TABLES:
        raise ValueError(f"Unknown record table: {table_name}")

    with conn.cursor() as cur:
        cur.execute(sql.SQL("SELECT COUNT(*) FROM {}").format(sql.Identifier(table_name)))
        return cur.fetchone()[0]
