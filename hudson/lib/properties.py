"""
Property service.
Properties, their service insights and their reminders.

Key design:
- One record per property, written as a whole
- At most one primary property per owner
- Reminder recurrence lives in recurrence.py; this class only loads,
  applies and persists
- "today" is the calendar date in the property's own timezone
"""

import logging
import os
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from ..db import AggregateRepository, PROPERTY_TABLE, RecordStore, SupabaseRecordStore
from ..errors import PreconditionError
from ..models import (
    Actor,
    Insight,
    InsightInput,
    Property,
    PropertyInput,
    Reminder,
    ReminderInput,
)
from . import recurrence
from .recurrence import ReminderPartition
from .timeutils import get_today_date, new_id, utc_now

logger = logging.getLogger(__name__)

PROPERTY_FIELDS = frozenset(PropertyInput.model_fields)
INSIGHT_FIELDS = frozenset(InsightInput.model_fields)
# Completion goes through complete_reminder only
REMINDER_FIELDS = frozenset(ReminderInput.model_fields)


def _check_fields(kind: str, updates: Dict[str, Any], allowed: frozenset) -> None:
    unknown = set(updates) - allowed
    if unknown:
        raise PreconditionError(f"Unknown {kind} fields: {sorted(unknown)}")


class PropertyService:
    """Handles properties, insights and reminders."""

    def __init__(self, store: Optional[RecordStore] = None):
        self.repo = AggregateRepository(store or SupabaseRecordStore(PROPERTY_TABLE), Property)
        self.horizon_days = int(os.environ.get("HUDSON_REMINDER_HORIZON_DAYS", "30"))

    # -- Properties -----------------------------------------------------------

    def list_properties(self, owner_id: str) -> List[Property]:
        return sorted(self.repo.list(owner_id), key=lambda p: p.created_at)

    def get_property(self, property_id: str) -> Optional[Property]:
        return self.repo.load(property_id)

    def get_primary_property(self, owner_id: str) -> Optional[Property]:
        """The owner's primary property, else their first, else None."""
        properties = self.list_properties(owner_id)
        primary = next((p for p in properties if p.is_primary), None)
        return primary or (properties[0] if properties else None)

    def _save(self, prop: Property, now: Optional[datetime] = None) -> Property:
        prop = prop.model_copy(update={"updated_at": now or utc_now()})
        return self.repo.save(prop.id, prop, owner_id=prop.owner_id)

    def _clear_other_primaries(self, owner_id: str, keep_id: str, now: datetime) -> None:
        # Cleared before the new primary is written: a failure in between
        # leaves no primary (reads fall back to the first property), never two.
        for other in self.list_properties(owner_id):
            if other.id != keep_id and other.is_primary:
                self._save(other.model_copy(update={"is_primary": False}), now)

    def add_property(self, owner_id: str, data: PropertyInput, now: Optional[datetime] = None) -> Property:
        now = now or utc_now()
        existing = self.list_properties(owner_id)

        prop = Property(
            id=new_id("property"),
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        if not existing:
            prop = prop.model_copy(update={"is_primary": True})

        if prop.is_primary:
            self._clear_other_primaries(owner_id, prop.id, now)

        saved = self._save(prop, now)
        logger.info("Added property %s for owner %s", saved.id, owner_id)
        return saved

    def update_property(
        self, property_id: str, updates: Dict[str, Any], now: Optional[datetime] = None
    ) -> Optional[Property]:
        prop = self.get_property(property_id)
        if prop is None:
            return None

        _check_fields("property", updates, PROPERTY_FIELDS)
        now = now or utc_now()
        updated = Property.model_validate({**prop.model_dump(), **updates})

        if updates.get("is_primary"):
            self._clear_other_primaries(prop.owner_id, prop.id, now)

        return self._save(updated, now)

    def delete_property(self, property_id: str, now: Optional[datetime] = None) -> bool:
        prop = self.get_property(property_id)
        if prop is None:
            return False

        self.repo.remove(property_id)
        logger.info("Deleted property %s", property_id)

        remaining = self.list_properties(prop.owner_id)
        if prop.is_primary and remaining and not any(p.is_primary for p in remaining):
            self._save(remaining[0].model_copy(update={"is_primary": True}), now)
        return True

    def get_today(self, prop: Property, now: Optional[datetime] = None) -> date:
        return get_today_date(prop.timezone, now)

    def _mutate(
        self,
        property_id: str,
        change: Callable[[Property], Property],
        now: Optional[datetime] = None,
    ) -> Optional[Property]:
        prop = self.get_property(property_id)
        if prop is None:
            logger.debug("Property %s not found", property_id)
            return None

        updated = change(prop)
        if updated is prop:
            return prop
        return self._save(updated, now)

    # -- Insights -------------------------------------------------------------

    def add_insight(
        self,
        property_id: str,
        data: InsightInput,
        actor: Optional[Actor] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Property]:
        def change(prop: Property) -> Property:
            insight = Insight(
                id=new_id("insight"),
                property_id=prop.id,
                updated_by=actor.user_id if actor else None,
                updated_by_role=actor.user_role if actor else None,
                **data.model_dump(),
            )
            return prop.model_copy(update={"insights": [*prop.insights, insight]})

        return self._mutate(property_id, change, now)

    def update_insight(
        self,
        property_id: str,
        insight_id: str,
        updates: Dict[str, Any],
        actor: Optional[Actor] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Property]:
        _check_fields("insight", updates, INSIGHT_FIELDS)

        def change(prop: Property) -> Property:
            if not any(i.id == insight_id for i in prop.insights):
                return prop

            stamp = {}
            if actor:
                stamp = {"updated_by": actor.user_id, "updated_by_role": actor.user_role}
            insights = [
                Insight.model_validate({**i.model_dump(), **updates, **stamp}) if i.id == insight_id else i
                for i in prop.insights
            ]
            return prop.model_copy(update={"insights": insights})

        return self._mutate(property_id, change, now)

    def delete_insight(self, property_id: str, insight_id: str, now: Optional[datetime] = None) -> Optional[Property]:
        def change(prop: Property) -> Property:
            if not any(i.id == insight_id for i in prop.insights):
                return prop
            return prop.model_copy(update={"insights": [i for i in prop.insights if i.id != insight_id]})

        return self._mutate(property_id, change, now)

    def get_due_insights(self, property_id: str, now: Optional[datetime] = None) -> List[Insight]:
        """Insights whose recommended service interval has run out."""
        prop = self.get_property(property_id)
        if prop is None:
            return []

        today = self.get_today(prop, now)
        return [
            i for i in prop.insights
            if i.last_updated + timedelta(days=i.recommended_interval) <= today
        ]

    # -- Reminders ------------------------------------------------------------

    def add_reminder(
        self,
        property_id: str,
        data: ReminderInput,
        actor: Optional[Actor] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Property]:
        recurrence.validate_recurrence(data.recurring, data.recurring_interval)

        def change(prop: Property) -> Property:
            reminder = Reminder(
                id=new_id("reminder"),
                property_id=prop.id,
                created_by=actor.user_id if actor else None,
                created_by_role=actor.user_role if actor else None,
                **data.model_dump(),
            )
            return prop.model_copy(update={"reminders": [*prop.reminders, reminder]})

        return self._mutate(property_id, change, now)

    def update_reminder(
        self,
        property_id: str,
        reminder_id: str,
        updates: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> Optional[Property]:
        """Edit reminder details. completed / completed_date are rejected; use complete_reminder."""
        _check_fields("reminder", updates, REMINDER_FIELDS)

        def change(prop: Property) -> Property:
            current = next((r for r in prop.reminders if r.id == reminder_id), None)
            if current is None:
                return prop

            updated = Reminder.model_validate({**current.model_dump(), **updates})
            recurrence.validate_recurrence(updated.recurring, updated.recurring_interval)
            reminders = [updated if r.id == reminder_id else r for r in prop.reminders]
            return prop.model_copy(update={"reminders": reminders})

        return self._mutate(property_id, change, now)

    def delete_reminder(self, property_id: str, reminder_id: str, now: Optional[datetime] = None) -> Optional[Property]:
        def change(prop: Property) -> Property:
            if not any(r.id == reminder_id for r in prop.reminders):
                return prop
            return prop.model_copy(update={"reminders": [r for r in prop.reminders if r.id != reminder_id]})

        return self._mutate(property_id, change, now)

    def complete_reminder(
        self, property_id: str, reminder_id: str, now: Optional[datetime] = None
    ) -> Optional[Property]:
        """
        Complete a reminder; a recurring one gets exactly one successor.
        The original stays in the list as completed history.
        """
        now = now or utc_now()

        def change(prop: Property) -> Property:
            if not any(r.id == reminder_id for r in prop.reminders):
                return prop
            reminders = recurrence.complete_reminder(prop.reminders, reminder_id, now)
            return prop.model_copy(update={"reminders": reminders})

        updated = self._mutate(property_id, change, now)
        if updated is not None:
            logger.info("Completed reminder %s on property %s", reminder_id, property_id)
        return updated

    def get_upcoming_reminders(
        self,
        property_id: str,
        horizon_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[Reminder]:
        prop = self.get_property(property_id)
        if prop is None:
            return []
        days = self.horizon_days if horizon_days is None else horizon_days
        return recurrence.get_upcoming_reminders(prop.reminders, self.get_today(prop, now), days)

    def get_overdue_reminders(self, property_id: str, now: Optional[datetime] = None) -> List[Reminder]:
        prop = self.get_property(property_id)
        if prop is None:
            return []
        return recurrence.get_overdue_reminders(prop.reminders, self.get_today(prop, now))

    def partition_reminders(
        self,
        property_id: str,
        horizon_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[ReminderPartition]:
        prop = self.get_property(property_id)
        if prop is None:
            return None
        days = self.horizon_days if horizon_days is None else horizon_days
        return recurrence.partition_reminders(prop.reminders, self.get_today(prop, now), days)
