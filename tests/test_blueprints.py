#!/usr/bin/env python3
"""
Blueprint Audit Tests

The blueprint is edited by two parties at once (homeowner and tech). Every
edit must leave a trail and tell the other side.

Validates:
1. Each audited edit appends exactly one history entry and one
   notification; earlier entries never change
2. Notifications go to the complement of the acting role
   (tech -> homeowner, homeowner/admin -> tech)
3. Plan item lifecycle: planned -> in-progress -> completed, skipped;
   completed and skipped are terminal
4. Concurrent writers are rejected instead of clobbering each other

Usage:
    pytest tests/test_blueprints.py -v
    python tests/test_blueprints.py
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytz

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hudson.db import InMemoryRecordStore
from hudson.errors import (
    BlueprintNotFoundError,
    InvalidTransitionError,
    PreconditionError,
    SubscriptionNotFoundError,
    VersionConflictError,
    VisitRequestLimitError,
)
from hudson.lib import audit, plan_items
from hudson.lib.blueprints import BlueprintService
from hudson.lib.subscriptions import SubscriptionService
from hudson.models import (
    Actor,
    BlueprintInput,
    CustomProjectInput,
    HistoryAction,
    MyHomeBlueprint,
    NotificationType,
    PlanItemInput,
    PlanItemStatus,
    Role,
    VisitRequestInput,
)


NOW = datetime(2024, 3, 15, 14, 0, tzinfo=pytz.UTC)
LATER = NOW + timedelta(hours=2)

TECH = Actor(user_id="tech-1", user_name="Sam Tech", user_role=Role.TECH)
OWNER = Actor(user_id="owner-1", user_name="Dana Owner", user_role=Role.HOMEOWNER)
ADMIN = Actor(user_id="admin-1", user_name="Alex Admin", user_role=Role.ADMIN)


def empty_blueprint():
    return MyHomeBlueprint(id="blueprint-1", property_id="property-1", created_at=NOW, updated_at=NOW)


def plan_item(year=2025, month=6, title="Replace water heater", estimated_cost="$1,800", **extra):
    return PlanItemInput(year=year, month=month, title=title, estimated_cost=estimated_cost, **extra)


# =============================================================================
# Audited update primitive
# =============================================================================

class TestApplyBlueprintUpdate:
    """Merge + append in one step."""

    def test_appends_one_history_entry_and_notification(self):
        blueprint = empty_blueprint()

        updated = audit.audited_update(
            blueprint, OWNER, HistoryAction.UPDATED, "Dana updated goals",
            NotificationType.USER_UPDATE,
            field_updates={"five_year_goals": ["Finish basement"]},
            now=NOW,
        )

        assert len(updated.history) == 1
        assert len(updated.notifications) == 1
        assert updated.five_year_goals == ["Finish basement"]
        assert updated.updated_at == NOW

        entry = updated.history[0]
        assert entry.action == HistoryAction.UPDATED
        assert entry.user_id == "owner-1"
        assert entry.timestamp == NOW

        notification = updated.notifications[0]
        assert notification.read is False
        assert notification.recipient_role == Role.TECH
        assert notification.blueprint_id == "blueprint-1"

    def test_logs_are_append_only(self):
        blueprint = empty_blueprint()
        snapshots = []

        for i in range(4):
            actor = TECH if i % 2 else OWNER
            blueprint = audit.audited_update(
                blueprint, actor, HistoryAction.UPDATED, f"edit {i}",
                NotificationType.PLAN_MODIFIED, now=NOW + timedelta(minutes=i),
            )
            assert len(blueprint.history) == i + 1
            assert len(blueprint.notifications) == i + 1
            snapshots.append([h.model_dump() for h in blueprint.history])

        final = [h.model_dump() for h in blueprint.history]
        for earlier in snapshots:
            assert final[:len(earlier)] == earlier, "A history entry changed after it was written"

    def test_input_blueprint_is_untouched(self):
        blueprint = empty_blueprint()

        audit.apply_blueprint_update(
            blueprint,
            {"timeline": "5 years"},
            history_entry=audit.history_draft(OWNER, HistoryAction.UPDATED, "timeline"),
        )

        assert blueprint.timeline is None
        assert blueprint.history == []

    def test_missing_blueprint_is_rejected(self):
        with pytest.raises(PreconditionError):
            audit.apply_blueprint_update(None, {"timeline": "soon"})

    @pytest.mark.parametrize("field", ["history", "notifications", "id", "property_id"])
    def test_protected_fields_cannot_be_replaced(self, field):
        with pytest.raises(PreconditionError):
            audit.apply_blueprint_update(empty_blueprint(), {field: []})

    def test_history_is_frozen(self):
        updated = audit.audited_update(
            empty_blueprint(), OWNER, HistoryAction.UPDATED, "x", NotificationType.USER_UPDATE, now=NOW,
        )
        with pytest.raises(Exception):
            updated.history[0].description = "rewritten"


class TestRecipients:
    """Who gets told about a change."""

    @pytest.mark.parametrize("actor_role,recipient", [
        (Role.TECH, Role.HOMEOWNER),
        (Role.HOMEOWNER, Role.TECH),
        (Role.ADMIN, Role.TECH),
    ])
    def test_complement_mapping(self, actor_role, recipient):
        assert audit.complement_recipients(actor_role) == frozenset({recipient})

    def test_custom_rule_notifies_each_recipient(self):
        def everyone_else(role):
            return frozenset(r for r in Role if r != role)

        updated = audit.audited_update(
            empty_blueprint(), ADMIN, HistoryAction.UPDATED, "Admin edit",
            NotificationType.PLAN_MODIFIED, recipient_rule=everyone_else, now=NOW,
        )

        assert len(updated.history) == 1
        assert [n.recipient_role for n in updated.notifications] == [Role.HOMEOWNER, Role.TECH]

    def test_unread_and_mark_read(self):
        blueprint = empty_blueprint()
        blueprint = audit.audited_update(
            blueprint, TECH, HistoryAction.UPDATED, "a", NotificationType.TECH_UPDATE, now=NOW)
        blueprint = audit.audited_update(
            blueprint, TECH, HistoryAction.UPDATED, "b", NotificationType.TECH_UPDATE, now=NOW)
        blueprint = audit.audited_update(
            blueprint, OWNER, HistoryAction.UPDATED, "c", NotificationType.USER_UPDATE, now=NOW)

        unread = audit.get_unread_notifications(blueprint, Role.HOMEOWNER)
        assert [n.message for n in unread] == ["a", "b"]

        marked = audit.mark_notification_as_read(blueprint, unread[0].id)
        assert [n.read for n in marked.notifications] == [True, False, False]
        assert [n.id for n in marked.notifications] == [n.id for n in blueprint.notifications]

        assert audit.mark_notification_as_read(marked, "missing") is marked

        all_read = audit.mark_all_notifications_as_read(marked, Role.HOMEOWNER)
        assert audit.get_unread_notifications(all_read, Role.HOMEOWNER) == []
        assert len(audit.get_unread_notifications(all_read, Role.TECH)) == 1


# =============================================================================
# Plan item lifecycle
# =============================================================================

class TestPlanItemLifecycle:
    """planned -> in-progress -> completed, planned/in-progress -> skipped."""

    @pytest.mark.parametrize("current,target", [
        (PlanItemStatus.PLANNED, PlanItemStatus.IN_PROGRESS),
        (PlanItemStatus.PLANNED, PlanItemStatus.COMPLETED),
        (PlanItemStatus.PLANNED, PlanItemStatus.SKIPPED),
        (PlanItemStatus.IN_PROGRESS, PlanItemStatus.COMPLETED),
        (PlanItemStatus.IN_PROGRESS, PlanItemStatus.SKIPPED),
        (PlanItemStatus.COMPLETED, PlanItemStatus.COMPLETED),
    ])
    def test_allowed(self, current, target):
        assert plan_items.can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        (PlanItemStatus.COMPLETED, PlanItemStatus.PLANNED),
        (PlanItemStatus.COMPLETED, PlanItemStatus.IN_PROGRESS),
        (PlanItemStatus.SKIPPED, PlanItemStatus.PLANNED),
        (PlanItemStatus.SKIPPED, PlanItemStatus.COMPLETED),
        (PlanItemStatus.IN_PROGRESS, PlanItemStatus.PLANNED),
    ])
    def test_rejected(self, current, target):
        with pytest.raises(InvalidTransitionError):
            plan_items.validate_transition(current, target)

    def test_completion_stamps_date_and_records_changes(self):
        item = plan_items.build_plan_item(plan_item(), OWNER, NOW)

        updated, changes = plan_items.apply_item_update(item, {"status": "completed"}, LATER)

        assert updated.status == PlanItemStatus.COMPLETED
        assert updated.completed_date == LATER
        assert [(c.field, c.old_value, c.new_value) for c in changes] == [
            ("status", "planned", "completed"),
        ]

    def test_total_cost_skips_skipped_items(self):
        items = [
            plan_items.build_plan_item(plan_item(), OWNER, NOW),
            plan_items.build_plan_item(
                PlanItemInput(year=2025, month=1, title="Roof", estimated_cost="$5,000 - $7,000"), OWNER, NOW),
            plan_items.build_plan_item(
                PlanItemInput(year=2025, month=2, title="Deck", estimated_cost="$900",
                              status=PlanItemStatus.SKIPPED), OWNER, NOW),
        ]
        assert plan_items.parse_cost("$5,000 - $7,000") == 5000.0
        assert plan_items.total_estimated_cost(items) == "$6,800"


# =============================================================================
# Blueprint service
# =============================================================================

@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def subscriptions(store):
    service = SubscriptionService(store)
    service.create_subscription("property-1", now=NOW)
    return service


@pytest.fixture
def blueprints(subscriptions):
    service = BlueprintService(subscriptions)
    service.create_blueprint(
        "property-1", OWNER,
        BlueprintInput(five_year_goals=["Finish basement"], budget_range="$20k-$40k"),
        now=NOW,
    )
    return service


class TestBlueprintService:
    """Audited edits through the service, persisted on the subscription."""

    def test_create_logs_and_notifies(self, blueprints):
        blueprint = blueprints.get_blueprint("property-1")

        assert blueprint.five_year_plan is not None
        assert blueprint.five_year_plan.items == []
        assert [h.action for h in blueprint.history] == [HistoryAction.CREATED]
        assert blueprint.notifications[0].type == NotificationType.PLAN_MODIFIED
        assert blueprint.notifications[0].recipient_role == Role.TECH

    def test_create_needs_subscription(self, subscriptions):
        service = BlueprintService(subscriptions)

        with pytest.raises(SubscriptionNotFoundError):
            service.create_blueprint("property-unknown", OWNER, BlueprintInput())

    def test_create_twice_is_rejected(self, blueprints):
        with pytest.raises(PreconditionError):
            blueprints.create_blueprint("property-1", OWNER, BlueprintInput())

    def test_mutating_missing_blueprint_is_rejected(self, store):
        subscriptions = SubscriptionService(store)
        subscriptions.create_subscription("property-2", now=NOW)
        service = BlueprintService(subscriptions)

        with pytest.raises(BlueprintNotFoundError):
            service.add_plan_item("property-2", OWNER, plan_item())

    def test_tech_completes_plan_item(self, blueprints):
        """Tech moves an item planned -> completed: plan_item_completed, homeowner notified."""
        blueprint = blueprints.add_plan_item("property-1", OWNER, plan_item(), now=NOW)
        item_id = blueprint.five_year_plan.items[0].id

        blueprint = blueprints.update_plan_item("property-1", TECH, item_id, {"status": "completed"}, now=LATER)

        entry = blueprint.history[-1]
        notification = blueprint.notifications[-1]
        assert entry.action == HistoryAction.PLAN_ITEM_COMPLETED, f"Got {entry.action}"
        assert entry.related_item_id == item_id
        assert notification.recipient_role == Role.HOMEOWNER, f"Got {notification.recipient_role}"
        assert notification.type == NotificationType.PLAN_MODIFIED
        assert blueprint.five_year_plan.items[0].completed_date == LATER

    def test_each_edit_adds_exactly_one_entry(self, blueprints):
        before = blueprints.get_blueprint("property-1")
        history, notifications = len(before.history), len(before.notifications)

        blueprint = blueprints.add_plan_item("property-1", OWNER, plan_item(), now=NOW)
        item_id = blueprint.five_year_plan.items[0].id
        steps = [
            lambda: blueprints.update_plan_item("property-1", TECH, item_id, {"status": "in-progress"}),
            lambda: blueprints.update_plan_item("property-1", OWNER, item_id, {"notes": "Call plumber"}),
            lambda: blueprints.remove_plan_item("property-1", ADMIN, item_id),
            lambda: blueprints.update_blueprint("property-1", OWNER, {"timeline": "3 years"}),
        ]
        assert len(blueprint.history) == history + 1

        for offset, step in enumerate(steps, start=2):
            blueprint = step()
            assert len(blueprint.history) == history + offset
            assert len(blueprint.notifications) == notifications + offset

        actions = [h.action for h in blueprint.history[history:]]
        assert actions == [
            HistoryAction.PLAN_ITEM_ADDED,
            HistoryAction.PLAN_ITEM_UPDATED,
            HistoryAction.PLAN_ITEM_UPDATED,
            HistoryAction.PLAN_ITEM_REMOVED,
            HistoryAction.UPDATED,
        ]
        recipients = [n.recipient_role for n in blueprint.notifications[notifications:]]
        assert recipients == [Role.TECH, Role.HOMEOWNER, Role.TECH, Role.TECH, Role.TECH]

    def test_invalid_transition_leaves_state_unchanged(self, blueprints):
        blueprint = blueprints.add_plan_item("property-1", OWNER, plan_item(), now=NOW)
        item_id = blueprint.five_year_plan.items[0].id
        blueprints.update_plan_item("property-1", TECH, item_id, {"status": "skipped"})
        before = blueprints.get_blueprint("property-1")

        with pytest.raises(InvalidTransitionError):
            blueprints.update_plan_item("property-1", OWNER, item_id, {"status": "planned"})

        assert blueprints.get_blueprint("property-1") == before

    def test_unknown_item_is_a_no_op(self, blueprints):
        before = blueprints.get_blueprint("property-1")

        after = blueprints.update_plan_item("property-1", TECH, "plan-item-missing", {"status": "completed"})

        assert after == before

    def test_items_sorted_and_cost_totalled(self, blueprints):
        blueprints.add_plan_item("property-1", OWNER, plan_item(2026, 3, "Paint", estimated_cost="$2,000"))
        blueprints.add_plan_item("property-1", OWNER, plan_item(2025, 9, "Gutters", estimated_cost="$400"))
        blueprint = blueprints.add_plan_item("property-1", TECH, plan_item(2025, 2, "Furnace"))

        plan = blueprint.five_year_plan
        assert [(i.year, i.month) for i in plan.items] == [(2025, 2), (2025, 9), (2026, 3)]
        assert plan.total_estimated_cost == "$4,200"

    def test_replace_five_year_plan(self, blueprints):
        blueprint = blueprints.replace_five_year_plan(
            "property-1", TECH,
            [plan_item(2027, 1, "Roof"), plan_item(2025, 5, "HVAC")],
            summary="Five-year outlook",
            key_milestones=["New roof by 2027"],
        )

        assert [i.title for i in blueprint.five_year_plan.items] == ["HVAC", "Roof"]
        assert blueprint.five_year_plan.summary == "Five-year outlook"
        assert blueprint.history[-1].action == HistoryAction.UPDATED
        assert blueprint.notifications[-1].recipient_role == Role.HOMEOWNER

    def test_update_blueprint_records_changes(self, blueprints):
        blueprint = blueprints.update_blueprint("property-1", OWNER, {"budget_range": "$30k-$50k"})

        changes = blueprint.history[-1].changes
        assert [(c.field, c.old_value, c.new_value) for c in changes] == [
            ("budget_range", "$20k-$40k", "$30k-$50k"),
        ]
        assert blueprint.notifications[-1].type == NotificationType.USER_UPDATE

    def test_update_blueprint_rejects_audit_fields(self, blueprints):
        with pytest.raises(PreconditionError):
            blueprints.update_blueprint("property-1", OWNER, {"history": []})

    def test_custom_project_lifecycle(self, blueprints):
        blueprint = blueprints.add_custom_project(
            "property-1", OWNER, CustomProjectInput(title="Build shed", estimated_cost="$3,000"))
        project_id = blueprint.custom_projects[0].id
        assert blueprint.history[-1].action == HistoryAction.PROJECT_ADDED
        assert blueprint.notifications[-1].type == NotificationType.PROJECT_ADDED

        blueprint = blueprints.update_custom_project(
            "property-1", TECH, project_id, {"status": "completed"}, now=LATER)
        assert blueprint.history[-1].action == HistoryAction.PROJECT_COMPLETED
        assert blueprint.notifications[-1].type == NotificationType.PROJECT_COMPLETED
        assert blueprint.notifications[-1].recipient_role == Role.HOMEOWNER
        assert blueprint.custom_projects[0].completed_date == LATER

        blueprint = blueprints.remove_custom_project("property-1", OWNER, project_id)
        assert blueprint.custom_projects == []
        assert blueprint.history[-1].action == HistoryAction.PROJECT_REMOVED

    def test_visit_request_limit(self, blueprints):
        for i in range(5):
            blueprint = blueprints.add_visit_request(
                "property-1", OWNER, VisitRequestInput(title=f"Check item {i}"))

        assert len(blueprint.monthly_visit_requests) == 5
        assert blueprint.notifications[-1].type == NotificationType.USER_UPDATE

        with pytest.raises(VisitRequestLimitError):
            blueprints.add_visit_request("property-1", TECH, VisitRequestInput(title="One too many"))

        assert len(blueprints.get_blueprint("property-1").monthly_visit_requests) == 5

    def test_history_newest_first(self, blueprints):
        blueprints.add_plan_item("property-1", OWNER, plan_item(title="First"), now=NOW)
        blueprints.add_plan_item("property-1", OWNER, plan_item(title="Second"), now=NOW)

        history = blueprints.get_history("property-1")

        assert history[0].description.endswith("\"Second\" to 6/2025")
        assert history[-1].action == HistoryAction.CREATED

    def test_notifications_through_service(self, blueprints):
        blueprints.add_plan_item("property-1", TECH, plan_item())

        unread = blueprints.get_unread_notifications("property-1", Role.HOMEOWNER)
        assert len(unread) == 1

        blueprints.mark_notification_as_read("property-1", unread[0].id)
        assert blueprints.get_unread_notifications("property-1", Role.HOMEOWNER) == []

        blueprints.mark_all_notifications_as_read("property-1", Role.TECH)
        assert blueprints.get_unread_notifications("property-1", Role.TECH) == []

    def test_concurrent_writers_conflict(self, store, blueprints):
        """Second writer on a stale version is rejected, not silently merged."""
        other = BlueprintService(SubscriptionService(store))
        other.get_blueprint("property-1")

        blueprints.add_plan_item("property-1", OWNER, plan_item(title="Owner edit"))

        with pytest.raises(VersionConflictError):
            other.add_plan_item("property-1", TECH, plan_item(title="Tech edit"))

        # The rejected writer reloads and sees the other edit
        reloaded = other.get_blueprint("property-1")
        assert [i.title for i in reloaded.five_year_plan.items] == ["Owner edit"]

        retried = other.add_plan_item("property-1", TECH, plan_item(title="Tech edit"))
        assert sorted(i.title for i in retried.five_year_plan.items) == ["Owner edit", "Tech edit"]


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
