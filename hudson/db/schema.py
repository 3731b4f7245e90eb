"""
Database schema for the Hudson record stores.
Designed for Supabase (Postgres) with Row Level Security.

Tables (one per bounded context, one row per aggregate):
- property_records: a property with its insights and reminders
- subscription_records: a subscription with visits, score and blueprint
- inspection_records: a snapshot inspection with its rooms

Key design decisions:
1. Each aggregate is written as a whole, in one statement
2. Every row carries a version; writes are conditional on it
3. Record payloads use snake_case field names
"""

RECORD_TABLES = ("property_records", "subscription_records", "inspection_records")

_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    key TEXT PRIMARY KEY,
    owner_id TEXT,
    version INTEGER NOT NULL DEFAULT 1 CHECK (version > 0),
    data JSONB NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;
"""

SCHEMA_SQL = "\n".join(_TABLE_SQL.format(table=table) for table in RECORD_TABLES) + """
-- Homeowners can read their own property records
CREATE POLICY property_records_select_own ON property_records
    FOR SELECT USING (auth.uid()::text = owner_id);

-- Techs can read the inspections they own
CREATE POLICY inspection_records_select_own ON inspection_records
    FOR SELECT USING (auth.uid()::text = owner_id);

-- Subscription records are written by the service role only
"""

INDEXES_SQL = "\n".join(
    f"CREATE INDEX IF NOT EXISTS idx_{table}_owner ON {table}(owner_id);"
    for table in RECORD_TABLES
) + """
CREATE INDEX IF NOT EXISTS idx_inspection_records_property ON inspection_records((data->>'property_id'));
CREATE INDEX IF NOT EXISTS idx_subscription_records_status ON subscription_records((data->>'status'));
"""
