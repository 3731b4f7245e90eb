"""
Subscription routes.
One subscription per property.

Endpoints:
- GET / - Subscription with visits, score and blueprint
- POST / - Start (or restart) the subscription
- POST /cancel - Cancel; history is kept
- GET /visits/next - Next scheduled visit
- GET /visits/recent - Last completed visits
- POST /visits - Add a visit
- PUT /visits/{visit_id} - Edit a visit
- POST /visits/{visit_id}/tasks/{task_id}/complete
- POST /visits/{visit_id}/complete - Close the visit, schedule the next one
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ...db import from_api_updates, to_api
from ...lib import SubscriptionService, get_current_actor
from ...models import Actor, HudsonVisit, Subscription
from ..deps import get_subscription_service


router = APIRouter()


def _found(subscription: Optional[Subscription]) -> dict:
    if subscription is None:
        raise HTTPException(status_code=404, detail="No subscription for this property")
    return to_api(subscription)


@router.get("/")
async def get_subscription(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return _found(service.get_subscription(property_id))


@router.post("/")
async def create_subscription(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Start a subscription.

    A brand new subscription comes with six months of visit history
    (five completed, one scheduled next month) and an initial score.
    Restarting after a cancel keeps the earlier history.

    400 if the property already has an active subscription.
    """
    return to_api(service.create_subscription(property_id))


@router.post("/cancel")
async def cancel_subscription(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Cancel. Visits, score and blueprint are kept."""
    return to_api(service.cancel_subscription(property_id))


@router.get("/visits/next")
async def get_next_visit(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SubscriptionService = Depends(get_subscription_service),
):
    visit = service.get_next_visit(property_id)
    return to_api(visit) if visit else None


@router.get("/visits/recent")
async def get_recent_visits(
    property_id: str,
    count: int = 3,
    actor: Actor = Depends(get_current_actor),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return [to_api(v) for v in service.get_recent_visits(property_id, count)]


@router.post("/visits")
async def add_visit(
    property_id: str,
    body: HudsonVisit,
    actor: Actor = Depends(get_current_actor),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return to_api(service.add_visit(property_id, body))


@router.put("/visits/{visit_id}")
async def update_visit(
    property_id: str,
    visit_id: str,
    body: dict,
    actor: Actor = Depends(get_current_actor),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return _found(service.update_visit(property_id, visit_id, from_api_updates(HudsonVisit, body)))


@router.post("/visits/{visit_id}/tasks/{task_id}/complete")
async def complete_task(
    property_id: str,
    visit_id: str,
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return _found(service.complete_task(property_id, visit_id, task_id))


@router.post("/visits/{visit_id}/complete")
async def complete_visit(
    property_id: str,
    visit_id: str,
    body: Optional[dict] = None,
    actor: Actor = Depends(get_current_actor),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Complete a visit.

    Body (optional):
    - notes: Visit notes from the technician
    """
    notes = (body or {}).get("notes")
    return _found(service.complete_visit(property_id, visit_id, notes=notes))
