"""
MyHome Blueprint routes.
Homeowner and tech edit the same plan; every change is logged and the
other side is notified.

Endpoints:
- GET / - Blueprint with five-year plan
- POST / - Create the blueprint
- PUT / - Edit goals, priority areas, budget, timeline
- PUT /plan - Replace the five-year plan
- POST /plan/items, PUT/DELETE /plan/items/{item_id}
- POST /projects, PUT/DELETE /projects/{project_id}
- POST /visit-requests, DELETE /visit-requests/{request_id}
- GET /history - Change log, newest first
- GET /notifications - My unread notifications
- POST /notifications/{notification_id}/read
- POST /notifications/read-all
"""

from fastapi import APIRouter, Depends, HTTPException

from ...db import from_api_updates, to_api
from ...lib import BlueprintService, get_current_actor
from ...models import (
    Actor,
    BlueprintInput,
    CustomProject,
    CustomProjectInput,
    FiveYearPlanInput,
    PlanItemInput,
    VisitRequestInput,
    YearlyPlanItem,
)
from ..deps import get_blueprint_service


router = APIRouter()


@router.get("/")
async def get_blueprint(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    blueprint = service.get_blueprint(property_id)
    if blueprint is None:
        raise HTTPException(status_code=404, detail="No blueprint for this property")
    return to_api(blueprint)


@router.post("/")
async def create_blueprint(
    property_id: str,
    body: BlueprintInput,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    """Create the blueprint. Needs a subscription; 400 if one already exists."""
    return to_api(service.create_blueprint(property_id, actor, body))


@router.put("/")
async def update_blueprint(
    property_id: str,
    body: dict,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    """
    Edit the blueprint.

    Body (any of):
    - fiveYearGoals, priorityAreas, budgetRange, timeline
    """
    return to_api(service.update_blueprint(property_id, actor, from_api_updates(BlueprintInput, body)))


@router.put("/plan")
async def replace_five_year_plan(
    property_id: str,
    body: FiveYearPlanInput,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    return to_api(service.replace_five_year_plan(
        property_id,
        actor,
        body.items,
        summary=body.summary,
        key_milestones=body.key_milestones,
        generated_by_ai=body.generated_by_ai,
    ))


# -- Plan items ---------------------------------------------------------------

@router.post("/plan/items")
async def add_plan_item(
    property_id: str,
    body: PlanItemInput,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    return to_api(service.add_plan_item(property_id, actor, body))


@router.put("/plan/items/{item_id}")
async def update_plan_item(
    property_id: str,
    item_id: str,
    body: dict,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    """
    Edit a plan item.

    Status moves: planned -> in-progress -> completed, planned/in-progress
    -> skipped. Completed and skipped items cannot change status (400).
    """
    return to_api(service.update_plan_item(
        property_id, actor, item_id, from_api_updates(YearlyPlanItem, body)
    ))


@router.delete("/plan/items/{item_id}")
async def remove_plan_item(
    property_id: str,
    item_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    return to_api(service.remove_plan_item(property_id, actor, item_id))


# -- Custom projects ----------------------------------------------------------

@router.post("/projects")
async def add_custom_project(
    property_id: str,
    body: CustomProjectInput,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    return to_api(service.add_custom_project(property_id, actor, body))


@router.put("/projects/{project_id}")
async def update_custom_project(
    property_id: str,
    project_id: str,
    body: dict,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    return to_api(service.update_custom_project(
        property_id, actor, project_id, from_api_updates(CustomProject, body)
    ))


@router.delete("/projects/{project_id}")
async def remove_custom_project(
    property_id: str,
    project_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    return to_api(service.remove_custom_project(property_id, actor, project_id))


# -- Monthly visit requests ---------------------------------------------------

@router.post("/visit-requests")
async def add_visit_request(
    property_id: str,
    body: VisitRequestInput,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    """Add something for the tech to look at every visit. Capped (400 when full)."""
    return to_api(service.add_visit_request(property_id, actor, body))


@router.delete("/visit-requests/{request_id}")
async def remove_visit_request(
    property_id: str,
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    return to_api(service.remove_visit_request(property_id, actor, request_id))


# -- History and notifications ------------------------------------------------

@router.get("/history")
async def get_history(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    return [to_api(entry) for entry in service.get_history(property_id)]


@router.get("/notifications")
async def get_unread_notifications(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    """Unread notifications addressed to the caller's role."""
    return [to_api(n) for n in service.get_unread_notifications(property_id, actor.user_role)]


@router.post("/notifications/read-all")
async def mark_all_notifications_as_read(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    service.mark_all_notifications_as_read(property_id, actor.user_role)
    return {"success": True}


@router.post("/notifications/{notification_id}/read")
async def mark_notification_as_read(
    property_id: str,
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BlueprintService = Depends(get_blueprint_service),
):
    service.mark_notification_as_read(property_id, notification_id)
    return {"success": True}
