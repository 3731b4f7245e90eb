"""
Subscription management service.
One subscription per property: visits, the current MyHome Score and the
blueprint all live on the subscription record.

Key design:
- Flat monthly price (HUDSON_MONTHLY_PRICE, default $299)
- A new subscription is seeded with five completed monthly visits and one
  scheduled visit a month out, plus an initial quarterly score
- Cancelling never deletes history; re-subscribing starts a new
  subscription that carries the old visits, score and blueprint forward
- Writes are versioned; see db/store.py
"""

import logging
import os
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..db import AggregateRepository, RecordStore, SUBSCRIPTION_TABLE, SupabaseRecordStore
from ..errors import ActiveSubscriptionExistsError, PreconditionError, SubscriptionNotFoundError
from ..models import (
    CategoryScores,
    HudsonVisit,
    MyHomeScore,
    PersonalDirector,
    Subscription,
    SubscriptionStatus,
    VisitStatus,
    VisitType,
)
from .maintenance_tasks import get_monthly_tasks
from .scoring import compute_overall_score
from .timeutils import add_months, localize, new_id, quarter_label, utc_now

logger = logging.getLogger(__name__)

DEFAULT_DIRECTOR = {
    "name": "James Mitchell",
    "phone": "1-800-HUDSON",
    "email": "james.mitchell@hudson.com",
    "photo": "https://images.unsplash.com/photo-1472099645785-5658abf4ff4e?w=400",
}

SEED_VISIT_MONTHS = 5
SEED_VISIT_NOTES = "All tasks completed successfully. Property in excellent condition."

SEED_CATEGORIES = {
    "structural": 90,
    "mechanical": 85,
    "aesthetic": 88,
    "efficiency": 82,
    "safety": 95,
}
SEED_IMPROVEMENTS = [
    "HVAC system efficiency improved by 15%",
    "Resolved minor plumbing issues",
    "Enhanced outdoor lighting",
]
SEED_RECOMMENDATIONS = [
    "Consider upgrading to smart thermostat",
    "Schedule gutter cleaning before winter",
    "Plan for deck refinishing next spring",
]

VISIT_FIELDS = frozenset({
    "scheduled_date", "completed_date", "status", "type", "hudson_name",
    "tasks", "notes", "photos", "next_visit_date",
})


def build_visit(
    property_id: str,
    scheduled_date: datetime,
    hudson_name: str,
    completed: bool = False,
    notes: Optional[str] = None,
) -> HudsonVisit:
    """Monthly maintenance visit with the checklist for its month."""
    visit_id = new_id("visit")
    return HudsonVisit(
        id=visit_id,
        property_id=property_id,
        scheduled_date=scheduled_date,
        completed_date=scheduled_date if completed else None,
        status=VisitStatus.COMPLETED if completed else VisitStatus.SCHEDULED,
        type=VisitType.MONTHLY_MAINTENANCE,
        hudson_name=hudson_name,
        tasks=get_monthly_tasks(scheduled_date.month, id_prefix=f"{visit_id}-task", completed=completed),
        notes=notes,
        next_visit_date=None if completed else add_months(scheduled_date, 1),
    )


def seed_visits(property_id: str, now: datetime, hudson_name: str) -> List[HudsonVisit]:
    """Five completed visits for the past months and one scheduled next month, oldest first."""
    visits = [
        build_visit(
            property_id,
            add_months(now, -offset),
            hudson_name,
            completed=True,
            notes=SEED_VISIT_NOTES,
        )
        for offset in range(SEED_VISIT_MONTHS, 0, -1)
    ]
    visits.append(build_visit(property_id, add_months(now, 1), hudson_name))
    return visits


def seed_score(property_id: str, now: datetime) -> MyHomeScore:
    categories = CategoryScores(**SEED_CATEGORIES)
    local = localize(now)
    return MyHomeScore(
        id=new_id("score"),
        property_id=property_id,
        score=compute_overall_score(categories),
        quarter=quarter_label(local),
        year=local.year,
        categories=categories,
        improvements=list(SEED_IMPROVEMENTS),
        recommendations=list(SEED_RECOMMENDATIONS),
        created_at=now,
    )


class SubscriptionService:
    """Handles subscriptions, their visits and the current score."""

    def __init__(self, store: Optional[RecordStore] = None):
        self.repo = AggregateRepository(store or SupabaseRecordStore(SUBSCRIPTION_TABLE), Subscription)
        self.monthly_price = float(os.environ.get("HUDSON_MONTHLY_PRICE", "299"))

    def get_subscription(self, property_id: str) -> Optional[Subscription]:
        return self.repo.load(property_id)

    def has_active_subscription(self, property_id: str) -> bool:
        subscription = self.get_subscription(property_id)
        return subscription is not None and subscription.status == SubscriptionStatus.ACTIVE

    def require_subscription(self, property_id: str) -> Subscription:
        subscription = self.get_subscription(property_id)
        if subscription is None:
            raise SubscriptionNotFoundError(property_id)
        return subscription

    def commit(self, subscription: Subscription) -> Subscription:
        """Persist a whole subscription aggregate. Shared with the blueprint service."""
        return self.repo.save(subscription.property_id, subscription)

    def create_subscription(self, property_id: str, now: Optional[datetime] = None) -> Subscription:
        """
        Start a subscription for a property.

        Raises ActiveSubscriptionExistsError if one is already active.
        A cancelled subscription is replaced by a new one that keeps the
        prior visits, score and blueprint.
        """
        now = now or utc_now()
        existing = self.get_subscription(property_id)

        if existing is not None and existing.status == SubscriptionStatus.ACTIVE:
            raise ActiveSubscriptionExistsError(property_id)

        director = PersonalDirector(**DEFAULT_DIRECTOR)

        if existing is None:
            visits = seed_visits(property_id, now, director.name)
            score = seed_score(property_id, now)
            blueprint = None
            has_snapshot = False
        else:
            visits = list(existing.visits)
            if not any(v.status == VisitStatus.SCHEDULED for v in visits):
                visits.append(build_visit(property_id, add_months(now, 1), existing.personal_director.name))
            score = existing.current_score
            blueprint = existing.blueprint
            has_snapshot = existing.has_completed_snapshot
            director = existing.personal_director

        subscription = Subscription(
            id=new_id("sub"),
            property_id=property_id,
            status=SubscriptionStatus.ACTIVE,
            start_date=now,
            next_billing_date=add_months(now, 1),
            monthly_price=self.monthly_price,
            blueprint=blueprint,
            current_score=score,
            visits=visits,
            has_completed_snapshot=has_snapshot,
            personal_director=director,
        )

        saved = self.commit(subscription)
        if existing is None:
            logger.info("Created subscription %s for property %s", saved.id, property_id)
        else:
            logger.info(
                "Re-subscribed property %s (previous subscription %s)", property_id, existing.id
            )
        return saved

    def cancel_subscription(self, property_id: str, now: Optional[datetime] = None) -> Subscription:
        """Set status to cancelled. Visits, score and blueprint stay."""
        subscription = self.require_subscription(property_id)
        if subscription.status == SubscriptionStatus.CANCELLED:
            return subscription

        cancelled = subscription.model_copy(update={
            "status": SubscriptionStatus.CANCELLED,
            "cancelled_at": now or utc_now(),
        })
        saved = self.commit(cancelled)
        logger.info("Cancelled subscription %s for property %s", saved.id, property_id)
        return saved

    def record_score(self, property_id: str, score: MyHomeScore) -> Optional[Subscription]:
        """Replace the current score. No-op without a subscription."""
        subscription = self.get_subscription(property_id)
        if subscription is None:
            logger.info("No subscription for property %s, score %s not recorded", property_id, score.id)
            return None

        return self.commit(subscription.model_copy(update={
            "current_score": score,
            "has_completed_snapshot": True,
        }))

    # -- Visits ---------------------------------------------------------------

    def _update_visits(
        self,
        property_id: str,
        visit_id: str,
        change: Callable[[HudsonVisit], HudsonVisit],
    ) -> Optional[Subscription]:
        subscription = self.get_subscription(property_id)
        if subscription is None:
            return None

        if not any(v.id == visit_id for v in subscription.visits):
            logger.debug("Visit %s not found on property %s", visit_id, property_id)
            return subscription

        visits = [change(v) if v.id == visit_id else v for v in subscription.visits]
        return self.commit(subscription.model_copy(update={"visits": visits}))

    def add_visit(self, property_id: str, visit: HudsonVisit) -> Subscription:
        subscription = self.require_subscription(property_id)
        if visit.property_id != property_id:
            raise PreconditionError(f"Visit {visit.id} belongs to property {visit.property_id}")

        return self.commit(subscription.model_copy(update={"visits": [*subscription.visits, visit]}))

    def update_visit(
        self,
        property_id: str,
        visit_id: str,
        updates: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> Optional[Subscription]:
        """
        Edit a visit.
        Marking it completed stamps completed_date when absent; any other
        status clears it.
        """
        unknown = set(updates) - VISIT_FIELDS
        if unknown:
            raise PreconditionError(f"Visit fields cannot be edited: {sorted(unknown)}")

        def change(visit: HudsonVisit) -> HudsonVisit:
            updated = HudsonVisit.model_validate({**visit.model_dump(), **updates})
            if updated.status == VisitStatus.COMPLETED:
                if updated.completed_date is None:
                    updated = updated.model_copy(update={"completed_date": now or utc_now()})
            elif updated.completed_date is not None:
                updated = updated.model_copy(update={"completed_date": None})
            return updated

        return self._update_visits(property_id, visit_id, change)

    def complete_task(self, property_id: str, visit_id: str, task_id: str) -> Optional[Subscription]:
        def change(visit: HudsonVisit) -> HudsonVisit:
            if not any(t.id == task_id for t in visit.tasks):
                return visit
            tasks = [t.model_copy(update={"completed": True}) if t.id == task_id else t for t in visit.tasks]
            return visit.model_copy(update={"tasks": tasks})

        return self._update_visits(property_id, visit_id, change)

    def complete_visit(
        self,
        property_id: str,
        visit_id: str,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Subscription]:
        """
        Close a visit: every task done, date stamped, and the next month's
        visit scheduled unless one is already on the books.
        """
        subscription = self.get_subscription(property_id)
        if subscription is None:
            return None

        visit = next((v for v in subscription.visits if v.id == visit_id), None)
        if visit is None:
            logger.debug("Visit %s not found on property %s", visit_id, property_id)
            return subscription
        if visit.status == VisitStatus.COMPLETED:
            raise PreconditionError(f"Visit {visit_id} is already completed")

        now = now or utc_now()
        next_date = add_months(visit.scheduled_date, 1)
        completed = visit.model_copy(update={
            "status": VisitStatus.COMPLETED,
            "completed_date": now,
            "tasks": [t.model_copy(update={"completed": True}) for t in visit.tasks],
            "notes": notes if notes is not None else visit.notes,
            "next_visit_date": next_date,
        })
        visits = [completed if v.id == visit_id else v for v in subscription.visits]

        already_scheduled = any(
            v.status == VisitStatus.SCHEDULED and v.scheduled_date > visit.scheduled_date
            for v in visits
        )
        if not already_scheduled and subscription.status == SubscriptionStatus.ACTIVE:
            visits.append(build_visit(property_id, next_date, visit.hudson_name))

        saved = self.commit(subscription.model_copy(update={"visits": visits}))
        logger.info("Completed visit %s on property %s", visit_id, property_id)
        return saved

    def get_next_visit(self, property_id: str) -> Optional[HudsonVisit]:
        subscription = self.get_subscription(property_id)
        if subscription is None:
            return None
        scheduled = [v for v in subscription.visits if v.status == VisitStatus.SCHEDULED]
        return min(scheduled, key=lambda v: v.scheduled_date, default=None)

    def get_recent_visits(self, property_id: str, count: int = 3) -> List[HudsonVisit]:
        """Completed visits, newest first."""
        subscription = self.get_subscription(property_id)
        if subscription is None:
            return []
        completed = [v for v in subscription.visits if v.status == VisitStatus.COMPLETED]
        completed.sort(key=lambda v: v.completed_date or v.scheduled_date, reverse=True)
        return completed[:count]
