from .schema import SCHEMA_SQL, INDEXES_SQL, RECORD_TABLES
from .client import get_supabase_client, get_admin_client
from .postgres import get_postgres_connection, get_database_url, check_table_exists
from .mapping import to_record, from_record, to_api, from_api_updates
from .store import (
    RecordStore,
    InMemoryRecordStore,
    SupabaseRecordStore,
    AggregateRepository,
    PROPERTY_TABLE,
    SUBSCRIPTION_TABLE,
    INSPECTION_TABLE,
)

__all__ = [
    "SCHEMA_SQL",
    "INDEXES_SQL",
    "RECORD_TABLES",
    "get_supabase_client",
    "get_admin_client",
    "get_postgres_connection",
    "get_database_url",
    "check_table_exists",
    "to_record",
    "from_record",
    "to_api",
    "from_api_updates",
    "RecordStore",
    "InMemoryRecordStore",
    "SupabaseRecordStore",
    "AggregateRepository",
    "PROPERTY_TABLE",
    "SUBSCRIPTION_TABLE",
    "INSPECTION_TABLE",
]
