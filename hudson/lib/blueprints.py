"""
MyHome Blueprint service.

The blueprint lives on the subscription record. Every change goes through
audit.audited_update, so each call appends one history entry and one
notification per recipient, then writes the whole subscription once.
"""

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..errors import BlueprintNotFoundError, PreconditionError, VisitRequestLimitError
from ..models import (
    Actor,
    BlueprintHistoryEntry,
    BlueprintInput,
    BlueprintNotification,
    CustomProject,
    CustomProjectInput,
    FiveYearPlan,
    HistoryAction,
    MonthlyVisitRequest,
    MyHomeBlueprint,
    NotificationType,
    PlanItemInput,
    ProjectStatus,
    Role,
    Subscription,
    VisitRequestInput,
    YearlyPlanItem,
)
from . import audit, plan_items
from .audit import RecipientRule, complement_recipients
from .subscriptions import SubscriptionService
from .timeutils import new_id, utc_now

logger = logging.getLogger(__name__)

BLUEPRINT_FIELDS = frozenset(BlueprintInput.model_fields)
PROJECT_FIELDS = frozenset(CustomProjectInput.model_fields) | {"status", "actual_cost"}


def _update_type(actor: Actor) -> NotificationType:
    return NotificationType.TECH_UPDATE if actor.user_role == Role.TECH else NotificationType.USER_UPDATE


class BlueprintService:
    """Audited edits to a property's blueprint and five-year plan."""

    def __init__(
        self,
        subscriptions: SubscriptionService,
        recipient_rule: RecipientRule = complement_recipients,
    ):
        self.subscriptions = subscriptions
        self.recipient_rule = recipient_rule
        self.max_visit_requests = int(os.environ.get("HUDSON_MAX_VISIT_REQUESTS", "5"))

    def get_blueprint(self, property_id: str) -> Optional[MyHomeBlueprint]:
        subscription = self.subscriptions.get_subscription(property_id)
        return subscription.blueprint if subscription else None

    def _require(self, property_id: str) -> Tuple[Subscription, MyHomeBlueprint]:
        subscription = self.subscriptions.require_subscription(property_id)
        if subscription.blueprint is None:
            raise BlueprintNotFoundError(property_id)
        return subscription, subscription.blueprint

    def _commit(self, subscription: Subscription, blueprint: MyHomeBlueprint) -> MyHomeBlueprint:
        self.subscriptions.commit(subscription.model_copy(update={"blueprint": blueprint}))
        return blueprint

    def _audit(
        self,
        blueprint: MyHomeBlueprint,
        actor: Actor,
        action: HistoryAction,
        description: str,
        notification_type: NotificationType,
        now: datetime,
        field_updates: Optional[Dict[str, Any]] = None,
        related_item_id: Optional[str] = None,
        related_item_type: Optional[str] = None,
        changes=None,
    ) -> MyHomeBlueprint:
        return audit.audited_update(
            blueprint,
            actor,
            action,
            description,
            notification_type,
            field_updates=field_updates,
            related_item_id=related_item_id,
            related_item_type=related_item_type,
            changes=changes,
            recipient_rule=self.recipient_rule,
            now=now,
        )

    # -- Blueprint ------------------------------------------------------------

    def create_blueprint(
        self,
        property_id: str,
        actor: Actor,
        data: BlueprintInput,
        now: Optional[datetime] = None,
    ) -> MyHomeBlueprint:
        subscription = self.subscriptions.require_subscription(property_id)
        if subscription.blueprint is not None:
            raise PreconditionError(f"Property {property_id} already has a blueprint")

        now = now or utc_now()
        blueprint_id = new_id("blueprint")
        blueprint = MyHomeBlueprint(
            id=blueprint_id,
            property_id=property_id,
            created_at=now,
            updated_at=now,
            five_year_plan=self._empty_plan(property_id, blueprint_id, now),
            **data.model_dump(),
        )
        blueprint = self._audit(
            blueprint, actor, HistoryAction.CREATED,
            f"{actor.user_name} created the MyHome Blueprint",
            NotificationType.PLAN_MODIFIED, now,
        )

        self._commit(subscription, blueprint)
        logger.info("Created blueprint %s for property %s", blueprint_id, property_id)
        return blueprint

    def update_blueprint(
        self,
        property_id: str,
        actor: Actor,
        updates: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> MyHomeBlueprint:
        """Edit goals, priority areas, budget or timeline."""
        unknown = set(updates) - BLUEPRINT_FIELDS
        if unknown:
            raise PreconditionError(f"Blueprint fields cannot be edited here: {sorted(unknown)}")

        subscription, blueprint = self._require(property_id)
        validated = BlueprintInput.model_validate({
            **{field: getattr(blueprint, field) for field in BLUEPRINT_FIELDS},
            **updates,
        })
        updates = {field: getattr(validated, field) for field in updates}
        changes = audit.diff_changes(blueprint, updates)
        if not changes:
            return blueprint

        now = now or utc_now()
        fields = ", ".join(c.field for c in changes)
        blueprint = self._audit(
            blueprint, actor, HistoryAction.UPDATED,
            f"{actor.user_name} updated {fields}",
            _update_type(actor), now,
            field_updates=updates,
            changes=changes,
        )
        return self._commit(subscription, blueprint)

    def _empty_plan(self, property_id: str, blueprint_id: str, now: datetime) -> FiveYearPlan:
        return FiveYearPlan(
            id=new_id("plan"),
            property_id=property_id,
            blueprint_id=blueprint_id,
            created_at=now,
            updated_at=now,
            total_estimated_cost=plan_items.total_estimated_cost([]),
        )

    def _plan_with(
        self,
        blueprint: MyHomeBlueprint,
        items: Sequence[YearlyPlanItem],
        now: datetime,
    ) -> FiveYearPlan:
        plan = blueprint.five_year_plan or self._empty_plan(blueprint.property_id, blueprint.id, now)
        ordered = plan_items.sort_items(items)
        return plan.model_copy(update={
            "items": ordered,
            "total_estimated_cost": plan_items.total_estimated_cost(ordered),
            "updated_at": now,
        })

    def replace_five_year_plan(
        self,
        property_id: str,
        actor: Actor,
        items: Sequence[PlanItemInput],
        summary: str = "",
        key_milestones: Optional[List[str]] = None,
        generated_by_ai: bool = False,
        now: Optional[datetime] = None,
    ) -> MyHomeBlueprint:
        subscription, blueprint = self._require(property_id)
        now = now or utc_now()

        built = [plan_items.build_plan_item(data, actor, now) for data in items]
        plan = self._plan_with(blueprint, built, now).model_copy(update={
            "summary": summary,
            "key_milestones": list(key_milestones or []),
            "generated_by_ai": generated_by_ai,
        })

        blueprint = self._audit(
            blueprint, actor, HistoryAction.UPDATED,
            f"{actor.user_name} replaced the five-year plan ({len(built)} items)",
            NotificationType.PLAN_MODIFIED, now,
            field_updates={"five_year_plan": plan},
            related_item_id=plan.id,
            related_item_type="five_year_plan",
        )
        return self._commit(subscription, blueprint)

    # -- Plan items -----------------------------------------------------------

    def add_plan_item(
        self,
        property_id: str,
        actor: Actor,
        data: PlanItemInput,
        now: Optional[datetime] = None,
    ) -> MyHomeBlueprint:
        subscription, blueprint = self._require(property_id)
        now = now or utc_now()

        item = plan_items.build_plan_item(data, actor, now)
        existing = blueprint.five_year_plan.items if blueprint.five_year_plan else []
        plan = self._plan_with(blueprint, [*existing, item], now)

        blueprint = self._audit(
            blueprint, actor, HistoryAction.PLAN_ITEM_ADDED,
            f"{actor.user_name} added \"{item.title}\" to {item.month}/{item.year}",
            NotificationType.PLAN_MODIFIED, now,
            field_updates={"five_year_plan": plan},
            related_item_id=item.id,
            related_item_type="plan_item",
        )
        return self._commit(subscription, blueprint)

    def update_plan_item(
        self,
        property_id: str,
        actor: Actor,
        item_id: str,
        updates: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> MyHomeBlueprint:
        subscription, blueprint = self._require(property_id)
        existing = blueprint.five_year_plan.items if blueprint.five_year_plan else []
        current = next((i for i in existing if i.id == item_id), None)
        if current is None:
            logger.debug("Plan item %s not found on property %s", item_id, property_id)
            return blueprint

        now = now or utc_now()
        updated, changes = plan_items.apply_item_update(current, updates, now)
        action = plan_items.history_action_for(current.status, updated.status)
        verb = "completed" if action == HistoryAction.PLAN_ITEM_COMPLETED else "updated"

        plan = self._plan_with(blueprint, [updated if i.id == item_id else i for i in existing], now)
        blueprint = self._audit(
            blueprint, actor, action,
            f"{actor.user_name} {verb} \"{updated.title}\"",
            NotificationType.PLAN_MODIFIED, now,
            field_updates={"five_year_plan": plan},
            related_item_id=item_id,
            related_item_type="plan_item",
            changes=changes,
        )
        result = self._commit(subscription, blueprint)
        logger.info("Plan item %s %s on property %s", item_id, verb, property_id)
        return result

    def remove_plan_item(
        self,
        property_id: str,
        actor: Actor,
        item_id: str,
        now: Optional[datetime] = None,
    ) -> MyHomeBlueprint:
        subscription, blueprint = self._require(property_id)
        existing = blueprint.five_year_plan.items if blueprint.five_year_plan else []
        current = next((i for i in existing if i.id == item_id), None)
        if current is None:
            logger.debug("Plan item %s not found on property %s", item_id, property_id)
            return blueprint

        now = now or utc_now()
        plan = self._plan_with(blueprint, [i for i in existing if i.id != item_id], now)
        blueprint = self._audit(
            blueprint, actor, HistoryAction.PLAN_ITEM_REMOVED,
            f"{actor.user_name} removed \"{current.title}\"",
            NotificationType.PLAN_MODIFIED, now,
            field_updates={"five_year_plan": plan},
            related_item_id=item_id,
            related_item_type="plan_item",
        )
        return self._commit(subscription, blueprint)

    # -- Custom projects ------------------------------------------------------

    def add_custom_project(
        self,
        property_id: str,
        actor: Actor,
        data: CustomProjectInput,
        now: Optional[datetime] = None,
    ) -> MyHomeBlueprint:
        subscription, blueprint = self._require(property_id)
        now = now or utc_now()

        project = CustomProject(
            id=new_id("project"),
            created_at=now,
            created_by=actor.user_id,
            created_by_role=actor.user_role,
            **data.model_dump(),
        )
        blueprint = self._audit(
            blueprint, actor, HistoryAction.PROJECT_ADDED,
            f"{actor.user_name} added project \"{project.title}\"",
            NotificationType.PROJECT_ADDED, now,
            field_updates={"custom_projects": [*blueprint.custom_projects, project]},
            related_item_id=project.id,
            related_item_type="custom_project",
        )
        return self._commit(subscription, blueprint)

    def update_custom_project(
        self,
        property_id: str,
        actor: Actor,
        project_id: str,
        updates: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> MyHomeBlueprint:
        unknown = set(updates) - PROJECT_FIELDS
        if unknown:
            raise PreconditionError(f"Project fields cannot be edited: {sorted(unknown)}")

        subscription, blueprint = self._require(property_id)
        current = next((p for p in blueprint.custom_projects if p.id == project_id), None)
        if current is None:
            logger.debug("Project %s not found on property %s", project_id, property_id)
            return blueprint

        now = now or utc_now()
        validated = CustomProject.model_validate({**current.model_dump(), **updates})
        updates = {field: getattr(validated, field) for field in updates}
        changes = audit.diff_changes(current, updates)

        completing = (
            validated.status == ProjectStatus.COMPLETED
            and current.status != ProjectStatus.COMPLETED
        )
        merged = {**updates, "updated_at": now}
        if completing:
            merged["completed_date"] = now
        project = current.model_copy(update=merged)

        if completing:
            action, notification_type = HistoryAction.PROJECT_COMPLETED, NotificationType.PROJECT_COMPLETED
            description = f"{actor.user_name} completed project \"{project.title}\""
        else:
            action, notification_type = HistoryAction.PROJECT_UPDATED, _update_type(actor)
            description = f"{actor.user_name} updated project \"{project.title}\""

        projects = [project if p.id == project_id else p for p in blueprint.custom_projects]
        blueprint = self._audit(
            blueprint, actor, action, description, notification_type, now,
            field_updates={"custom_projects": projects},
            related_item_id=project_id,
            related_item_type="custom_project",
            changes=changes,
        )
        return self._commit(subscription, blueprint)

    def remove_custom_project(
        self,
        property_id: str,
        actor: Actor,
        project_id: str,
        now: Optional[datetime] = None,
    ) -> MyHomeBlueprint:
        subscription, blueprint = self._require(property_id)
        current = next((p for p in blueprint.custom_projects if p.id == project_id), None)
        if current is None:
            logger.debug("Project %s not found on property %s", project_id, property_id)
            return blueprint

        now = now or utc_now()
        blueprint = self._audit(
            blueprint, actor, HistoryAction.PROJECT_REMOVED,
            f"{actor.user_name} removed project \"{current.title}\"",
            _update_type(actor), now,
            field_updates={"custom_projects": [p for p in blueprint.custom_projects if p.id != project_id]},
            related_item_id=project_id,
            related_item_type="custom_project",
        )
        return self._commit(subscription, blueprint)

    # -- Monthly visit requests -----------------------------------------------

    def add_visit_request(
        self,
        property_id: str,
        actor: Actor,
        data: VisitRequestInput,
        now: Optional[datetime] = None,
    ) -> MyHomeBlueprint:
        subscription, blueprint = self._require(property_id)
        if len(blueprint.monthly_visit_requests) >= self.max_visit_requests:
            raise VisitRequestLimitError(self.max_visit_requests)

        now = now or utc_now()
        request = MonthlyVisitRequest(id=new_id("request"), created_at=now, **data.model_dump())
        blueprint = self._audit(
            blueprint, actor, HistoryAction.UPDATED,
            f"{actor.user_name} requested \"{request.title}\" for monthly visits",
            _update_type(actor), now,
            field_updates={"monthly_visit_requests": [*blueprint.monthly_visit_requests, request]},
            related_item_id=request.id,
            related_item_type="visit_request",
        )
        return self._commit(subscription, blueprint)

    def remove_visit_request(
        self,
        property_id: str,
        actor: Actor,
        request_id: str,
        now: Optional[datetime] = None,
    ) -> MyHomeBlueprint:
        subscription, blueprint = self._require(property_id)
        current = next((r for r in blueprint.monthly_visit_requests if r.id == request_id), None)
        if current is None:
            return blueprint

        now = now or utc_now()
        remaining = [r for r in blueprint.monthly_visit_requests if r.id != request_id]
        blueprint = self._audit(
            blueprint, actor, HistoryAction.UPDATED,
            f"{actor.user_name} removed visit request \"{current.title}\"",
            _update_type(actor), now,
            field_updates={"monthly_visit_requests": remaining},
            related_item_id=request_id,
            related_item_type="visit_request",
        )
        return self._commit(subscription, blueprint)

    # -- History and notifications --------------------------------------------

    def get_history(self, property_id: str) -> List[BlueprintHistoryEntry]:
        blueprint = self.get_blueprint(property_id)
        if blueprint is None:
            return []
        return audit.history_newest_first(blueprint.history)

    def get_unread_notifications(self, property_id: str, role: Role) -> List[BlueprintNotification]:
        blueprint = self.get_blueprint(property_id)
        if blueprint is None:
            return []
        return audit.get_unread_notifications(blueprint, role)

    def mark_notification_as_read(self, property_id: str, notification_id: str) -> MyHomeBlueprint:
        subscription, blueprint = self._require(property_id)
        updated = audit.mark_notification_as_read(blueprint, notification_id)
        if updated is blueprint:
            return blueprint
        return self._commit(subscription, updated)

    def mark_all_notifications_as_read(self, property_id: str, role: Role) -> MyHomeBlueprint:
        subscription, blueprint = self._require(property_id)
        updated = audit.mark_all_notifications_as_read(blueprint, role)
        if updated is blueprint:
            return blueprint
        return self._commit(subscription, updated)
