"""
Keyed record store with optimistic concurrency.

Each aggregate (a property, a subscription, an inspection) is one row:
key, owner_id, version, data. A write names the version it was based on;
if the stored version moved on, the write is rejected with
VersionConflictError instead of silently overwriting.

Two implementations:
- SupabaseRecordStore: the remote store (one table per bounded context)
- InMemoryRecordStore: same contract, for tests and local development
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Dict, Generic, List, Optional, Protocol, Type, TypeVar

from postgrest.exceptions import APIError
from pydantic import BaseModel

from ..errors import PersistenceError, VersionConflictError
from .client import get_admin_client
from .mapping import from_record, to_record

logger = logging.getLogger(__name__)

PROPERTY_TABLE = "property_records"
SUBSCRIPTION_TABLE = "subscription_records"
INSPECTION_TABLE = "inspection_records"

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


class RecordStore(Protocol):
    def get(self, key: str) -> Optional[dict]: ...

    def put(self, key: str, data: dict, expected_version: int, owner_id: Optional[str] = None) -> int: ...

    def delete(self, key: str, expected_version: int) -> None: ...

    def list(self, owner_id: Optional[str] = None) -> List[dict]: ...


class InMemoryRecordStore:
    """Dict-backed store. Copies on the way in and out so callers never share state."""

    def __init__(self):
        self._rows: Dict[str, dict] = {}

    def get(self, key: str) -> Optional[dict]:
        row = self._rows.get(key)
        return copy.deepcopy(row) if row else None

    def put(self, key: str, data: dict, expected_version: int, owner_id: Optional[str] = None) -> int:
        current = self._rows.get(key)
        current_version = current["version"] if current else 0
        if current_version != expected_version:
            raise VersionConflictError(key, expected_version)

        new_version = expected_version + 1
        self._rows[key] = {
            "key": key,
            "owner_id": owner_id if owner_id is not None else (current or {}).get("owner_id"),
            "version": new_version,
            "data": copy.deepcopy(data),
        }
        return new_version

    def delete(self, key: str, expected_version: int) -> None:
        current = self._rows.get(key)
        if current is None:
            return
        if current["version"] != expected_version:
            raise VersionConflictError(key, expected_version)
        del self._rows[key]

    def list(self, owner_id: Optional[str] = None) -> List[dict]:
        return [
            copy.deepcopy(row) for row in self._rows.values()
            if owner_id is None or row["owner_id"] == owner_id
        ]


class SupabaseRecordStore:
    """Record store backed by a Supabase table (see db/schema.py)."""

    def __init__(self, table: str, client=None):
        self.table = table
        self.client = client or get_admin_client()

    def get(self, key: str) -> Optional[dict]:
        try:
            result = (
                self.client.table(self.table)
                .select("key, owner_id, version, data")
                .eq("key", key)
                .limit(1)
                .execute()
            )
        except APIError as e:
            raise PersistenceError(f"Failed to load {self.table}/{key}: {e.message}") from e

        return result.data[0] if result.data else None

    def put(self, key: str, data: dict, expected_version: int, owner_id: Optional[str] = None) -> int:
        new_version = expected_version + 1
        row = {
            "data": data,
            "version": new_version,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        if owner_id is not None:
            row["owner_id"] = owner_id

        try:
            if expected_version == 0:
                result = self.client.table(self.table).insert({"key": key, **row}).execute()
            else:
                # Conditional write: only succeeds if nobody else wrote in between
                result = (
                    self.client.table(self.table)
                    .update(row)
                    .eq("key", key)
                    .eq("version", expected_version)
                    .execute()
                )
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise VersionConflictError(key, expected_version) from e
            raise PersistenceError(f"Failed to save {self.table}/{key}: {e.message}") from e

        if not result.data:
            raise VersionConflictError(key, expected_version)

        return new_version

    def delete(self, key: str, expected_version: int) -> None:
        try:
            result = (
                self.client.table(self.table)
                .delete()
                .eq("key", key)
                .eq("version", expected_version)
                .execute()
            )
        except APIError as e:
            raise PersistenceError(f"Failed to delete {self.table}/{key}: {e.message}") from e

        if not result.data and self.get(key) is not None:
            raise VersionConflictError(key, expected_version)

    def list(self, owner_id: Optional[str] = None) -> List[dict]:
        query = self.client.table(self.table).select("key, owner_id, version, data")
        if owner_id is not None:
            query = query.eq("owner_id", owner_id)

        try:
            result = query.order("key").execute()
        except APIError as e:
            raise PersistenceError(f"Failed to list {self.table}: {e.message}") from e

        return result.data or []


ModelT = TypeVar("ModelT", bound=BaseModel)


class AggregateRepository(Generic[ModelT]):
    """
    In-memory view over a record store.

    The view only changes after the store confirms a write, so a failed
    write leaves readers on the last persisted state.
    """

    def __init__(self, store: RecordStore, model_cls: Type[ModelT]):
        self.store = store
        self.model_cls = model_cls
        self._cache: Dict[str, ModelT] = {}
        self._versions: Dict[str, int] = {}

    def _remember(self, row: dict) -> ModelT:
        model = from_record(self.model_cls, row["data"])
        self._cache[row["key"]] = model
        self._versions[row["key"]] = row["version"]
        return model

    def load(self, key: str) -> Optional[ModelT]:
        if key in self._cache:
            return self._cache[key]

        row = self.store.get(key)
        if row is None:
            return None
        return self._remember(row)

    def refresh(self, key: str) -> Optional[ModelT]:
        self.forget(key)
        return self.load(key)

    def forget(self, key: str) -> None:
        self._cache.pop(key, None)
        self._versions.pop(key, None)

    def version_of(self, key: str) -> int:
        return self._versions.get(key, 0)

    def save(self, key: str, model: ModelT, owner_id: Optional[str] = None) -> ModelT:
        base_version = self._versions.get(key, 0)
        try:
            new_version = self.store.put(key, to_record(model), base_version, owner_id=owner_id)
        except VersionConflictError:
            logger.warning("Version conflict saving %s (base version %s)", key, base_version)
            # Next read picks up the other writer's state
            self.forget(key)
            raise
        except PersistenceError:
            logger.exception("Failed to persist %s", key)
            raise

        self._cache[key] = model
        self._versions[key] = new_version
        return model

    def remove(self, key: str) -> None:
        base_version = self._versions.get(key)
        if base_version is None:
            if self.load(key) is None:
                return
            base_version = self._versions[key]

        try:
            self.store.delete(key, base_version)
        except VersionConflictError:
            logger.warning("Version conflict deleting %s (base version %s)", key, base_version)
            self.forget(key)
            raise

        self.forget(key)

    def list(self, owner_id: Optional[str] = None) -> List[ModelT]:
        return [self._remember(row) for row in self.store.list(owner_id)]
