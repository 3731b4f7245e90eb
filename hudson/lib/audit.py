"""
Audited blueprint updates.

Every blueprint mutation goes through apply_blueprint_update:
- field updates are shallow-merged onto the blueprint
- an optional history entry is appended (write-once, never edited)
- optional notifications are appended unread
- the result is a new blueprint; the input is untouched

Who gets notified is decided by a RecipientRule (role -> recipient roles).
The default rule is the fixed two-party complement: tech actions notify
the homeowner, everyone else's actions notify the tech.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

from ..models import (
    Actor,
    BlueprintHistoryEntry,
    BlueprintNotification,
    ChangeRecord,
    HistoryAction,
    MyHomeBlueprint,
    NotificationType,
    Role,
)
from ..errors import PreconditionError
from .timeutils import new_id, utc_now

RecipientRule = Callable[[Role], FrozenSet[Role]]

# Logs that only grow through the history/notification arguments.
PROTECTED_FIELDS = frozenset({"id", "property_id", "created_at", "history", "notifications"})


class HistoryDraft(BaseModel):
    """A history entry before it gets an id and timestamp."""
    action: HistoryAction
    description: str
    user_id: str
    user_name: str
    user_role: Role
    related_item_id: Optional[str] = None
    related_item_type: Optional[str] = None
    changes: Optional[List[ChangeRecord]] = None


class NotificationDraft(BaseModel):
    """A notification before it gets an id, timestamp and read flag."""
    type: NotificationType
    message: str
    user_id: str
    user_name: str
    user_role: Role
    recipient_role: Role


def complement_role(role: Role) -> Role:
    return Role.HOMEOWNER if role == Role.TECH else Role.TECH


def complement_recipients(role: Role) -> FrozenSet[Role]:
    """Default rule. Admin edits notify the tech (two-party model)."""
    return frozenset({complement_role(role)})


def history_draft(
    actor: Actor,
    action: HistoryAction,
    description: str,
    related_item_id: Optional[str] = None,
    related_item_type: Optional[str] = None,
    changes: Optional[List[ChangeRecord]] = None,
) -> HistoryDraft:
    return HistoryDraft(
        action=action,
        description=description,
        user_id=actor.user_id,
        user_name=actor.user_name,
        user_role=actor.user_role,
        related_item_id=related_item_id,
        related_item_type=related_item_type,
        changes=changes or None,
    )


def notification_drafts(
    actor: Actor,
    notification_type: NotificationType,
    message: str,
    recipient_rule: RecipientRule = complement_recipients,
) -> List[NotificationDraft]:
    """One draft per recipient role, in a stable order."""
    recipients = sorted(recipient_rule(actor.user_role), key=lambda role: role.value)
    return [
        NotificationDraft(
            type=notification_type,
            message=message,
            user_id=actor.user_id,
            user_name=actor.user_name,
            user_role=actor.user_role,
            recipient_role=recipient,
        )
        for recipient in recipients
    ]


def diff_changes(current: BaseModel, updates: Mapping[str, Any]) -> List[ChangeRecord]:
    """Field-level changes that `updates` would make to `current`."""
    changes = []
    for field, new_value in updates.items():
        old_value = getattr(current, field, None)
        if old_value != new_value:
            changes.append(ChangeRecord(
                field=field,
                old_value=_plain(old_value),
                new_value=_plain(new_value),
            ))
    return changes


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def apply_blueprint_update(
    blueprint: Optional[MyHomeBlueprint],
    field_updates: Optional[Dict[str, Any]] = None,
    history_entry: Optional[HistoryDraft] = None,
    notification: Union[NotificationDraft, Sequence[NotificationDraft], None] = None,
    now: Optional[datetime] = None,
    id_factory: Callable[[str], str] = new_id,
) -> MyHomeBlueprint:
    """
    Merge, append and return a new blueprint in one step.

    Raises PreconditionError if there is no blueprint, or if the updates
    try to overwrite the identity or the audit logs directly.
    """
    if blueprint is None:
        raise PreconditionError("Cannot update a blueprint that does not exist yet")

    field_updates = dict(field_updates or {})
    forbidden = PROTECTED_FIELDS.intersection(field_updates)
    if forbidden:
        raise PreconditionError(f"Fields cannot be replaced directly: {sorted(forbidden)}")

    unknown = set(field_updates) - set(MyHomeBlueprint.model_fields)
    if unknown:
        raise PreconditionError(f"Unknown blueprint fields: {sorted(unknown)}")

    now = now or utc_now()
    history = list(blueprint.history)
    notifications = list(blueprint.notifications)

    if history_entry is not None:
        history.append(BlueprintHistoryEntry(
            id=id_factory("history"),
            timestamp=now,
            **history_entry.model_dump(),
        ))

    if isinstance(notification, NotificationDraft):
        notification = [notification]
    for draft in notification or []:
        notifications.append(BlueprintNotification(
            id=id_factory("notification"),
            blueprint_id=blueprint.id,
            property_id=blueprint.property_id,
            created_at=now,
            read=False,
            **draft.model_dump(),
        ))

    return blueprint.model_copy(update={
        **field_updates,
        "history": history,
        "notifications": notifications,
        "updated_at": now,
    })


def audited_update(
    blueprint: Optional[MyHomeBlueprint],
    actor: Actor,
    action: HistoryAction,
    description: str,
    notification_type: NotificationType,
    field_updates: Optional[Dict[str, Any]] = None,
    related_item_id: Optional[str] = None,
    related_item_type: Optional[str] = None,
    changes: Optional[List[ChangeRecord]] = None,
    recipient_rule: RecipientRule = complement_recipients,
    now: Optional[datetime] = None,
    id_factory: Callable[[str], str] = new_id,
) -> MyHomeBlueprint:
    """History entry and role-targeted notifications for one actor's change."""
    return apply_blueprint_update(
        blueprint,
        field_updates,
        history_entry=history_draft(
            actor, action, description,
            related_item_id=related_item_id,
            related_item_type=related_item_type,
            changes=changes,
        ),
        notification=notification_drafts(actor, notification_type, description, recipient_rule),
        now=now,
        id_factory=id_factory,
    )


def get_unread_notifications(blueprint: MyHomeBlueprint, role: Role) -> List[BlueprintNotification]:
    return [n for n in blueprint.notifications if not n.read and n.recipient_role == role]


def mark_notification_as_read(blueprint: MyHomeBlueprint, notification_id: str) -> MyHomeBlueprint:
    """Flip one notification's read flag. Order and every other entry stay as they were."""
    if not any(n.id == notification_id for n in blueprint.notifications):
        return blueprint

    notifications = [
        n.model_copy(update={"read": True}) if n.id == notification_id else n
        for n in blueprint.notifications
    ]
    return blueprint.model_copy(update={"notifications": notifications})


def mark_all_notifications_as_read(blueprint: MyHomeBlueprint, role: Role) -> MyHomeBlueprint:
    unread_ids = {n.id for n in get_unread_notifications(blueprint, role)}
    if not unread_ids:
        return blueprint

    notifications = [
        n.model_copy(update={"read": True}) if n.id in unread_ids else n
        for n in blueprint.notifications
    ]
    return blueprint.model_copy(update={"notifications": notifications})


def history_newest_first(entries: Iterable[BlueprintHistoryEntry]) -> List[BlueprintHistoryEntry]:
    # The log is appended in order, so reversing it is newest first.
    return list(reversed(list(entries)))
