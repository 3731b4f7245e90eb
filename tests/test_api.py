#!/usr/bin/env python3
"""
API Tests

Validates:
1. Payloads are camelCase in and out
2. Precondition failures are 400 with the reason
3. Store conflicts and failures show the generic notice (409 / 503)
4. Inspection routes are tech-only
5. Blueprint edits notify the other side

Services run on in-memory stores; auth is overridden with a fixed actor.

Usage:
    pytest tests/test_api.py -v
    python tests/test_api.py
"""

import sys
from pathlib import Path
from unittest import mock

import pytest
from fastapi.testclient import TestClient

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hudson.api import deps
from hudson.api.main import app
from hudson.db import InMemoryRecordStore
from hudson.errors import GENERIC_NOTICE, PersistenceError, VersionConflictError
from hudson.lib import (
    BlueprintService,
    InspectionService,
    PropertyService,
    SubscriptionService,
    get_current_actor,
)
from hudson.models import Actor, Role


OWNER = Actor(user_id="owner-1", user_name="Dana Owner", user_role=Role.HOMEOWNER)
TECH = Actor(user_id="tech-1", user_name="Sam Tech", user_role=Role.TECH)

HOUSE = {
    "name": "Main House",
    "address": "12 Elm Street",
    "city": "Hudson",
    "state": "NY",
    "zipCode": "12534",
}


class Session:
    """Whoever the next request is made as."""

    def __init__(self):
        self.actor = OWNER

    def current(self):
        return self.actor


@pytest.fixture
def property_store():
    return InMemoryRecordStore()


@pytest.fixture
def session():
    return Session()


@pytest.fixture
def client(session, property_store):
    properties = PropertyService(property_store)
    subscriptions = SubscriptionService(InMemoryRecordStore())
    blueprints = BlueprintService(subscriptions)
    inspections = InspectionService(subscriptions, InMemoryRecordStore(), properties)

    app.dependency_overrides[get_current_actor] = session.current
    app.dependency_overrides[deps.get_property_service] = lambda: properties
    app.dependency_overrides[deps.get_subscription_service] = lambda: subscriptions
    app.dependency_overrides[deps.get_blueprint_service] = lambda: blueprints
    app.dependency_overrides[deps.get_inspection_service] = lambda: inspections

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def house(client):
    response = client.post("/properties/", json=HOUSE)
    assert response.status_code == 200, response.text
    return response.json()


# =============================================================================
# Properties and reminders
# =============================================================================

class TestPropertyRoutes:
    """Property and reminder endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_add_property_is_camel_case(self, house):
        assert house["ownerId"] == "owner-1"
        assert house["zipCode"] == "12534"
        assert house["isPrimary"] is True

    def test_unknown_property_is_404(self, client):
        assert client.get("/properties/property-missing").status_code == 404

    def test_complete_recurring_reminder(self, client, house):
        response = client.post(f"/properties/{house['id']}/reminders", json={
            "title": "Replace HVAC filter",
            "dueDate": "2024-03-11",
            "recurring": True,
            "recurringInterval": 30,
        })
        assert response.status_code == 200, response.text
        reminder = response.json()["reminders"][0]
        assert reminder["createdByRole"] == "homeowner"

        response = client.post(f"/properties/{house['id']}/reminders/{reminder['id']}/complete")

        assert response.status_code == 200, response.text
        reminders = response.json()["reminders"]
        assert [r["completed"] for r in reminders] == [True, False]
        assert reminders[1]["dueDate"] == "2024-04-10"

    def test_recurring_without_interval_is_400(self, client, house):
        response = client.post(f"/properties/{house['id']}/reminders", json={
            "title": "Flush water heater",
            "dueDate": "2024-03-11",
            "recurring": True,
        })

        assert response.status_code == 400
        assert "interval" in response.json()["detail"]

    def test_reminder_edit_cannot_set_completed(self, client, house):
        response = client.post(f"/properties/{house['id']}/reminders", json={
            "title": "Replace HVAC filter",
            "dueDate": "2024-03-11",
            "recurring": True,
            "recurringInterval": 30,
        })
        reminder_id = response.json()["reminders"][0]["id"]

        response = client.put(f"/properties/{house['id']}/reminders/{reminder_id}", json={"completed": True})

        assert response.status_code == 400
        reminders = client.get(f"/properties/{house['id']}").json()["reminders"]
        assert [r["completed"] for r in reminders] == [False]

    def test_update_with_camel_case_fields(self, client, house):
        response = client.put(f"/properties/{house['id']}", json={"squareFeet": 2400})

        assert response.status_code == 200, response.text
        assert response.json()["squareFeet"] == 2400

    def test_conflict_is_409_with_generic_notice(self, client, property_store, house):
        conflict = VersionConflictError(house["id"], 1)

        with mock.patch.object(property_store, "put", side_effect=conflict):
            response = client.put(f"/properties/{house['id']}", json={"name": "Renamed"})

        assert response.status_code == 409
        assert response.json()["detail"] == GENERIC_NOTICE

    def test_store_failure_is_503(self, client, property_store, house):
        with mock.patch.object(property_store, "put", side_effect=PersistenceError("timeout")):
            response = client.put(f"/properties/{house['id']}", json={"name": "Renamed"})

        assert response.status_code == 503
        assert response.json()["detail"] == GENERIC_NOTICE


# =============================================================================
# Subscriptions and blueprints
# =============================================================================

class TestBlueprintRoutes:
    """Collaborative blueprint editing over HTTP."""

    def test_blueprint_needs_subscription(self, client):
        response = client.post("/blueprints/property-1/", json={})

        assert response.status_code == 400

    def test_tech_edit_notifies_homeowner(self, client, session):
        assert client.post("/subscriptions/property-1/").status_code == 200
        assert client.post("/blueprints/property-1/", json={"budgetRange": "$20k-$40k"}).status_code == 200

        session.actor = TECH
        response = client.post("/blueprints/property-1/plan/items", json={
            "year": 2025,
            "month": 6,
            "title": "Replace water heater",
            "estimatedCost": "$1,800",
        })
        assert response.status_code == 200, response.text
        assert response.json()["fiveYearPlan"]["totalEstimatedCost"] == "$1,800"

        session.actor = OWNER
        unread = client.get("/blueprints/property-1/notifications").json()

        assert len(unread) == 1
        assert unread[0]["type"] == "plan_modified"
        assert unread[0]["recipientRole"] == "homeowner"
        assert unread[0]["userName"] == "Sam Tech"

        assert client.post("/blueprints/property-1/notifications/read-all").status_code == 200
        assert client.get("/blueprints/property-1/notifications").json() == []

        history = client.get("/blueprints/property-1/history").json()
        assert [h["action"] for h in history] == ["plan_item_added", "created"]

    def test_second_subscription_is_400(self, client):
        client.post("/subscriptions/property-1/")

        response = client.post("/subscriptions/property-1/")

        assert response.status_code == 400


# =============================================================================
# Inspections
# =============================================================================

class TestInspectionRoutes:
    """Tech-only inspection flow."""

    def test_homeowner_cannot_create(self, client):
        response = client.post("/inspections/", json={"propertyId": "property-1"})

        assert response.status_code == 403

    def test_complete_inspection(self, client, session):
        client.post("/subscriptions/property-1/")
        session.actor = TECH

        inspection = client.post("/inspections/", json={"propertyId": "property-1"}).json()
        base = f"/inspections/{inspection['id']}"
        client.post(f"{base}/rooms", json={"roomName": "Kitchen", "roomType": "kitchen", "score": 80})
        client.put(f"{base}/scores", json={
            "structural": 95, "mechanical": 85, "aesthetic": 88, "efficiency": 82, "safety": 95,
        })

        response = client.post(f"{base}/complete")

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["score"]["score"] == 89
        assert body["inspection"]["status"] == "completed"

        response = client.post(f"{base}/rooms", json={"roomName": "Garage", "score": 70})
        assert response.status_code == 400


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
