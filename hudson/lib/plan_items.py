"""
Plan item lifecycle.

    planned -> in-progress -> completed
    planned | in-progress -> skipped
    planned -> completed

Completed and skipped are terminal. Staying in the same status is always
allowed, so other fields can be edited without a transition.
"""

import re
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..models import (
    Actor,
    ChangeRecord,
    HistoryAction,
    PlanItemInput,
    PlanItemStatus,
    YearlyPlanItem,
)
from .audit import diff_changes
from ..errors import InvalidTransitionError, PreconditionError
from .timeutils import new_id

ALLOWED_TRANSITIONS = {
    PlanItemStatus.PLANNED: {
        PlanItemStatus.IN_PROGRESS,
        PlanItemStatus.COMPLETED,
        PlanItemStatus.SKIPPED,
    },
    PlanItemStatus.IN_PROGRESS: {PlanItemStatus.COMPLETED, PlanItemStatus.SKIPPED},
    PlanItemStatus.COMPLETED: set(),
    PlanItemStatus.SKIPPED: set(),
}

TERMINAL_STATES = frozenset({PlanItemStatus.COMPLETED, PlanItemStatus.SKIPPED})

EDITABLE_FIELDS = frozenset({
    "year", "month", "title", "description", "category", "estimated_cost",
    "priority", "dependencies", "notes", "status", "actual_cost", "photos",
    "tech_notes", "homeowner_notes",
})

_AMOUNT = re.compile(r"\d[\d,]*(?:\.\d+)?")


def can_transition(current: PlanItemStatus, target: PlanItemStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def validate_transition(current: PlanItemStatus, target: PlanItemStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError("plan item", current.value, target.value)


def build_plan_item(
    data: PlanItemInput,
    actor: Actor,
    now: datetime,
    id_factory: Callable[[str], str] = new_id,
) -> YearlyPlanItem:
    """New item at the caller-supplied status (normally planned)."""
    return YearlyPlanItem(
        id=id_factory("plan-item"),
        created_by=actor.user_id,
        created_by_role=actor.user_role,
        created_at=now,
        completed_date=now if data.status == PlanItemStatus.COMPLETED else None,
        **data.model_dump(),
    )


def apply_item_update(
    item: YearlyPlanItem, updates: Dict[str, Any], now: datetime
) -> Tuple[YearlyPlanItem, List[ChangeRecord]]:
    """
    Apply an edit to one item.
    Returns the new item and the field-level changes.
    Moving to completed stamps completed_date.
    """
    unknown = set(updates) - EDITABLE_FIELDS
    if unknown:
        raise PreconditionError(f"Plan item fields cannot be edited: {sorted(unknown)}")

    validated = YearlyPlanItem.model_validate({**item.model_dump(), **updates})
    updates = {field: getattr(validated, field) for field in updates}

    target = updates.get("status", item.status)
    validate_transition(item.status, target)

    changes = diff_changes(item, updates)
    merged = dict(updates)
    if target == PlanItemStatus.COMPLETED and item.status != PlanItemStatus.COMPLETED:
        merged["completed_date"] = now
    merged["updated_at"] = now

    return item.model_copy(update=merged), changes


def history_action_for(previous: PlanItemStatus, current: PlanItemStatus) -> HistoryAction:
    if current == PlanItemStatus.COMPLETED and previous != PlanItemStatus.COMPLETED:
        return HistoryAction.PLAN_ITEM_COMPLETED
    return HistoryAction.PLAN_ITEM_UPDATED


def sort_items(items: Iterable[YearlyPlanItem]) -> List[YearlyPlanItem]:
    return sorted(items, key=lambda item: (item.year, item.month))


def parse_cost(text: Optional[str]) -> float:
    """Leading amount of a free-text cost ("$5,000 - $7,000" -> 5000.0)."""
    if not text:
        return 0.0
    match = _AMOUNT.search(text)
    if not match:
        return 0.0
    return float(match.group().replace(",", ""))


def total_estimated_cost(items: Iterable[YearlyPlanItem]) -> str:
    total = sum(
        parse_cost(item.estimated_cost)
        for item in items
        if item.status != PlanItemStatus.SKIPPED
    )
    return f"${total:,.0f}"
