#!/usr/bin/env python3
"""
Set up the database schema.
Run this once to create the record tables and indexes.

Usage:
    python scripts/setup_database.py           - Print the SQL
    python scripts/setup_database.py --apply   - Create missing tables directly

Note: For production, you may want to run the SQL directly in the
Supabase SQL editor for more control.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv


def print_schema():
    """Print the schema SQL for manual execution."""
    from hudson.db.schema import SCHEMA_SQL, INDEXES_SQL

    print("=" * 60)
    print("DATABASE SCHEMA")
    print("=" * 60)
    print("\nCopy and paste this SQL into Supabase SQL Editor:\n")
    print("-" * 60)
    print(SCHEMA_SQL)
    print("-" * 60)
    print("\nINDEXES:")
    print("-" * 60)
    print(INDEXES_SQL)
    print("-" * 60)


def apply():
    """Create the record tables over a direct Postgres connection."""
    from hudson.db.postgres import apply_schema, get_postgres_connection

    load_dotenv()
    conn = get_postgres_connection()
    try:
        created = apply_schema(conn)
    finally:
        conn.close()

    if created:
        print(f"✓ Created: {', '.join(created)}")
    else:
        print("✓ All record tables already exist")


def main():
    parser = argparse.ArgumentParser(description="Hudson database setup")
    parser.add_argument("--apply", action="store_true", help="Create missing tables directly")
    args = parser.parse_args()

    print("Hudson - Database Setup")
    print("=" * 40)
    print()

    if args.apply:
        apply()
        return

    print("This script outputs the SQL schema for your database.")
    print("For safety, please run the SQL manually in Supabase.")
    print()

    print_schema()

    print()
    print("Next steps:")
    print("1. Go to your Supabase project dashboard")
    print("2. Open the SQL Editor")
    print("3. Paste the schema SQL above and run it")
    print("4. Then check it with: python scripts/admin.py stats")


if __name__ == "__main__":
    main()
