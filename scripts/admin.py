#!/usr/bin/env python3
"""
Admin utilities for the Hudson record stores.

Commands:
    python scripts/admin.py stats                  - Row counts per record table
    python scripts/admin.py show TABLE KEY         - Dump one stored aggregate
    python scripts/admin.py unread PROPERTY ROLE   - Unread blueprint notifications
"""

import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv


def cmd_stats(args):
    """Show database statistics."""
    from hudson.db import RECORD_TABLES, get_postgres_connection
    from hudson.db.postgres import check_table_exists, count_records

    print("\n📊 Database Statistics")
    print("=" * 40)

    conn = get_postgres_connection()
    try:
        for table in RECORD_TABLES:
            if not check_table_exists(conn, table):
                print(f"  {table:25} missing")
                continue
            print(f"  {table:25} {count_records(conn, table):6}")
    finally:
        conn.close()


def cmd_show(args):
    """Print one stored aggregate as JSON."""
    from hudson.db import SupabaseRecordStore

    row = SupabaseRecordStore(args.table).get(args.key)
    if row is None:
        print(f"✗ {args.table}/{args.key} not found")
        return

    print(f"\n{args.table}/{args.key} (version {row['version']}, owner {row.get('owner_id')})")
    print(json.dumps(row["data"], indent=2, sort_keys=True))


def cmd_unread(args):
    """List unread blueprint notifications for a role."""
    from hudson.db import SUBSCRIPTION_TABLE, SupabaseRecordStore
    from hudson.lib import BlueprintService, SubscriptionService
    from hudson.models import Role

    subscriptions = SubscriptionService(SupabaseRecordStore(SUBSCRIPTION_TABLE))
    service = BlueprintService(subscriptions)

    print(f"\n🔔 Unread for {args.role} on {args.property}")
    print("=" * 60)

    notifications = service.get_unread_notifications(args.property, Role(args.role))
    if not notifications:
        print("  (none)")
    for n in notifications:
        created = n.created_at.isoformat()[:16]
        print(f"  [{n.type.value:17}] {n.message} ({n.user_name}, {created})")


def main():
    parser = argparse.ArgumentParser(description="Admin utilities")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Stats command
    subparsers.add_parser("stats", help="Show record counts")

    # Show command
    show_parser = subparsers.add_parser("show", help="Dump one aggregate")
    show_parser.add_argument(
        "table",
        choices=["property_records", "subscription_records", "inspection_records"],
        help="Record table",
    )
    show_parser.add_argument("key", help="Aggregate key (property or inspection id)")

    # Unread command
    unread_parser = subparsers.add_parser("unread", help="Unread blueprint notifications")
    unread_parser.add_argument("property", help="Property ID")
    unread_parser.add_argument("role", choices=["tech", "homeowner", "admin"], help="Recipient role")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    load_dotenv()

    commands = {
        "stats": cmd_stats,
        "show": cmd_show,
        "unread": cmd_unread,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
