"""
Reminder recurrence engine.

Key design:
- Completing a recurring reminder keeps the original (marked completed)
  and appends exactly one successor.
- Successor due date = old due date + interval days (calendar days).
- Nothing here reads the clock except the completion stamp, which
  callers pass in.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, NamedTuple, Optional, Sequence

from ..models import Reminder
from ..errors import PreconditionError
from .timeutils import new_id

logger = logging.getLogger(__name__)


class ReminderPartition(NamedTuple):
    """Disjoint split of a property's reminders relative to today."""
    overdue: List[Reminder]
    upcoming: List[Reminder]
    later: List[Reminder]
    completed: List[Reminder]


def validate_recurrence(recurring: bool, recurring_interval: Optional[int]) -> None:
    """Reject recurring reminders without a positive interval at input time."""
    if recurring and (recurring_interval is None or recurring_interval <= 0):
        raise PreconditionError("Recurring reminders need a recurring interval of at least 1 day")


def compute_next_occurrence(due_date: date, recurring_interval: Optional[int]) -> Optional[date]:
    """Next due date for a recurring reminder, or None when it does not recur."""
    if not recurring_interval or recurring_interval <= 0:
        return None
    return due_date + timedelta(days=recurring_interval)


def complete_reminder(
    reminders: Sequence[Reminder],
    reminder_id: str,
    completed_at: datetime,
    id_factory: Callable[[str], str] = new_id,
) -> List[Reminder]:
    """
    Mark a reminder completed and generate its successor if it recurs.

    Returns a new list; the input is never mutated.
    Unknown ids return the reminders unchanged.
    Completing an already-completed reminder is rejected so a reminder
    can never spawn two successors.
    """
    target = next((r for r in reminders if r.id == reminder_id), None)
    if target is None:
        logger.debug("Reminder %s not found, nothing to complete", reminder_id)
        return list(reminders)

    if target.completed:
        raise PreconditionError(f"Reminder {reminder_id} is already completed")

    completed = target.model_copy(update={"completed": True, "completed_date": completed_at})
    updated = [completed if r.id == reminder_id else r for r in reminders]

    next_due = None
    if target.recurring:
        next_due = compute_next_occurrence(target.due_date, target.recurring_interval)
        if next_due is None:
            logger.warning(
                "Recurring reminder %s has no usable interval, no successor generated",
                reminder_id,
            )

    if next_due is not None:
        successor = Reminder(
            id=id_factory("reminder"),
            property_id=target.property_id,
            title=target.title,
            description=target.description,
            due_date=next_due,
            type=target.type,
            priority=target.priority,
            completed=False,
            recurring=target.recurring,
            recurring_interval=target.recurring_interval,
            created_by=target.created_by,
            created_by_role=target.created_by_role,
        )
        updated.append(successor)

    return updated


def _by_due_date(reminders: List[Reminder]) -> List[Reminder]:
    return sorted(reminders, key=lambda r: r.due_date)


def get_upcoming_reminders(
    reminders: Sequence[Reminder], today: date, horizon_days: int = 30
) -> List[Reminder]:
    """Open reminders due between today and today + horizon, inclusive."""
    horizon = today + timedelta(days=horizon_days)
    return _by_due_date([
        r for r in reminders
        if not r.completed and today <= r.due_date <= horizon
    ])


def get_overdue_reminders(reminders: Sequence[Reminder], today: date) -> List[Reminder]:
    """Open reminders whose due date has passed."""
    return _by_due_date([r for r in reminders if not r.completed and r.due_date < today])


def partition_reminders(
    reminders: Sequence[Reminder], today: date, horizon_days: int = 30
) -> ReminderPartition:
    horizon = today + timedelta(days=horizon_days)
    return ReminderPartition(
        overdue=get_overdue_reminders(reminders, today),
        upcoming=get_upcoming_reminders(reminders, today, horizon_days),
        later=_by_due_date([r for r in reminders if not r.completed and r.due_date > horizon]),
        completed=[r for r in reminders if r.completed],
    )
