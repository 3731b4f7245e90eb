#!/usr/bin/env python3
"""
Subscription Lifecycle Tests

Validates:
1. A new subscription is seeded with five completed visits, one visit
   scheduled a month out and an initial quarterly score
2. Only one active subscription per property
3. Cancelling keeps history; re-subscribing carries it forward
4. Visit and task completion, next/recent visit queries

Usage:
    pytest tests/test_subscriptions.py -v
    python tests/test_subscriptions.py
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest
import pytz

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hudson.db import InMemoryRecordStore
from hudson.errors import ActiveSubscriptionExistsError, PreconditionError, SubscriptionNotFoundError
from hudson.lib.maintenance_tasks import STANDARD_TASKS, get_monthly_tasks
from hudson.lib.subscriptions import SubscriptionService
from hudson.lib.timeutils import add_months
from hudson.models import (
    Actor,
    BlueprintInput,
    CategoryScores,
    MyHomeScore,
    Role,
    SubscriptionStatus,
    VisitStatus,
)


NOW = datetime(2024, 3, 15, 14, 0, tzinfo=pytz.UTC)
LATER = datetime(2024, 9, 2, 10, 0, tzinfo=pytz.UTC)


@pytest.fixture
def service():
    return SubscriptionService(InMemoryRecordStore())


@pytest.fixture
def subscription(service):
    return service.create_subscription("property-1", now=NOW)


# =============================================================================
# Creation and seeding
# =============================================================================

class TestCreateSubscription:
    """Seeded history on a brand new subscription."""

    def test_active_with_billing_date(self, subscription):
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.start_date == NOW
        assert subscription.next_billing_date == add_months(NOW, 1)
        assert subscription.monthly_price == 299.0
        assert subscription.personal_director.name == "James Mitchell"

    def test_seeds_six_months_of_visits(self, subscription):
        visits = subscription.visits

        assert len(visits) == 6, f"Expected 6 seeded visits, got {len(visits)}"
        assert [v.status for v in visits] == [VisitStatus.COMPLETED] * 5 + [VisitStatus.SCHEDULED]
        assert [v.scheduled_date for v in visits] == [add_months(NOW, m) for m in (-5, -4, -3, -2, -1, 1)]

    def test_seeded_checklists_match_the_month(self, subscription):
        for visit in subscription.visits:
            expected = [t.name for t in get_monthly_tasks(visit.scheduled_date.month)]
            assert [t.name for t in visit.tasks] == expected
            assert len(visit.tasks) >= len(STANDARD_TASKS)
            done = visit.status == VisitStatus.COMPLETED
            assert all(t.completed == done for t in visit.tasks)

    def test_seeded_task_ids_are_unique(self, subscription):
        ids = [t.id for v in subscription.visits for t in v.tasks]
        assert len(ids) == len(set(ids))

    def test_initial_score(self, subscription):
        score = subscription.current_score

        assert score.categories == CategoryScores(
            structural=90, mechanical=85, aesthetic=88, efficiency=82, safety=95)
        assert score.score == 88
        assert score.quarter == "Q1"
        assert score.year == 2024
        assert subscription.has_completed_snapshot is False

    def test_price_from_env(self, monkeypatch):
        monkeypatch.setenv("HUDSON_MONTHLY_PRICE", "349")
        service = SubscriptionService(InMemoryRecordStore())

        assert service.create_subscription("property-1", now=NOW).monthly_price == 349.0

    def test_only_one_active_subscription(self, service, subscription):
        with pytest.raises(ActiveSubscriptionExistsError):
            service.create_subscription("property-1", now=NOW)


# =============================================================================
# Cancel and re-subscribe
# =============================================================================

class TestCancelSubscription:
    """History survives cancellation."""

    def test_cancel_keeps_history(self, service, subscription):
        cancelled = service.cancel_subscription("property-1", now=LATER)

        assert cancelled.status == SubscriptionStatus.CANCELLED
        assert cancelled.cancelled_at == LATER
        assert cancelled.visits == subscription.visits
        assert cancelled.current_score == subscription.current_score
        assert service.has_active_subscription("property-1") is False

    def test_cancel_without_subscription(self, service):
        with pytest.raises(SubscriptionNotFoundError):
            service.cancel_subscription("property-unknown")

    def test_resubscribe_carries_history_forward(self, service, subscription):
        from hudson.lib.blueprints import BlueprintService

        owner = Actor(user_id="owner-1", user_name="Dana Owner", user_role=Role.HOMEOWNER)
        BlueprintService(service).create_blueprint("property-1", owner, BlueprintInput(), now=NOW)
        service.cancel_subscription("property-1", now=LATER)

        renewed = service.create_subscription("property-1", now=LATER)

        assert renewed.id != subscription.id
        assert renewed.status == SubscriptionStatus.ACTIVE
        assert renewed.cancelled_at is None
        assert renewed.start_date == LATER
        assert renewed.current_score == subscription.current_score
        assert renewed.blueprint is not None
        assert len(renewed.blueprint.history) == 1
        # The seeded scheduled visit is still open, so nothing new is added
        assert len(renewed.visits) == 6

    def test_resubscribe_schedules_a_visit_when_none_open(self, service, subscription):
        scheduled = service.get_next_visit("property-1")
        service.update_visit("property-1", scheduled.id, {"status": "cancelled"})
        service.cancel_subscription("property-1", now=LATER)

        renewed = service.create_subscription("property-1", now=LATER)

        assert len(renewed.visits) == 7
        assert renewed.visits[-1].status == VisitStatus.SCHEDULED
        assert renewed.visits[-1].scheduled_date == add_months(LATER, 1)


# =============================================================================
# Visits
# =============================================================================

class TestVisits:
    """Task and visit completion, queries."""

    def test_complete_task(self, service, subscription):
        visit = service.get_next_visit("property-1")
        task_id = visit.tasks[0].id

        updated = service.complete_task("property-1", visit.id, task_id)

        tasks = next(v for v in updated.visits if v.id == visit.id).tasks
        assert tasks[0].completed is True
        assert not any(t.completed for t in tasks[1:])

    def test_complete_visit_schedules_next_month(self, service, subscription):
        visit = service.get_next_visit("property-1")

        updated = service.complete_visit("property-1", visit.id, notes="All good", now=LATER)

        completed = next(v for v in updated.visits if v.id == visit.id)
        assert completed.status == VisitStatus.COMPLETED
        assert completed.completed_date == LATER
        assert completed.notes == "All good"
        assert all(t.completed for t in completed.tasks)

        following = service.get_next_visit("property-1")
        assert following.scheduled_date == add_months(visit.scheduled_date, 1)
        assert [t.name for t in following.tasks] == [
            t.name for t in get_monthly_tasks(following.scheduled_date.month)
        ]

    def test_complete_visit_twice_is_rejected(self, service, subscription):
        visit = service.get_next_visit("property-1")
        service.complete_visit("property-1", visit.id, now=LATER)

        with pytest.raises(PreconditionError):
            service.complete_visit("property-1", visit.id, now=LATER)

    def test_update_visit_stamps_and_clears_completion(self, service, subscription):
        visit = service.get_next_visit("property-1")

        updated = service.update_visit("property-1", visit.id, {"status": "completed"}, now=LATER)
        assert next(v for v in updated.visits if v.id == visit.id).completed_date == LATER

        updated = service.update_visit("property-1", visit.id, {"status": "scheduled"})
        assert next(v for v in updated.visits if v.id == visit.id).completed_date is None

    def test_unknown_visit_is_a_no_op(self, service, subscription):
        before = service.get_subscription("property-1")

        after = service.complete_task("property-1", "visit-missing", "task-1")

        assert after == before

    def test_recent_visits_newest_first(self, service, subscription):
        recent = service.get_recent_visits("property-1")

        assert len(recent) == 3
        assert [v.scheduled_date for v in recent] == [add_months(NOW, m) for m in (-1, -2, -3)]

    def test_record_score(self, service, subscription):
        score = MyHomeScore(
            id="score-new",
            property_id="property-1",
            score=70,
            quarter="Q3",
            year=2024,
            categories=CategoryScores(structural=70, mechanical=70, aesthetic=70, efficiency=70, safety=70),
            created_at=LATER,
        )

        updated = service.record_score("property-1", score)

        assert updated.current_score == score
        assert updated.has_completed_snapshot is True

    def test_record_score_without_subscription(self, service, subscription):
        score = subscription.current_score.model_copy(update={"property_id": "property-2"})

        assert service.record_score("property-2", score) is None
        assert service.get_subscription("property-2") is None


class TestMaintenanceTasks:
    """Monthly checklist catalogue."""

    @pytest.mark.parametrize("month", range(1, 13))
    def test_standard_tasks_every_month(self, month):
        tasks = get_monthly_tasks(month)

        assert [t.name for t in tasks[:len(STANDARD_TASKS)]] == [name for name, _, _ in STANDARD_TASKS]
        assert all(t.month == month for t in tasks)

    def test_ids_use_prefix(self):
        tasks = get_monthly_tasks(1, id_prefix="visit-9-task")

        assert tasks[0].id == "visit-9-task-0"


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
