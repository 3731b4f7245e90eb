"""
Snapshot inspection routes.
Techs walk the property room by room, enter the five category scores and
complete the inspection to publish a MyHome Score.

Endpoints:
- POST / - Create an inspection (property optional)
- GET /mine - My inspections
- GET /unassigned - Inspections waiting for a property
- GET /property/{property_id} - Inspections for a property
- GET /property/{property_id}/active - Inspection in progress
- GET /{inspection_id}
- PUT /{inspection_id} - Notes, media, homeowner priorities
- POST /{inspection_id}/assign - Assign to a property
- POST /{inspection_id}/start
- POST /{inspection_id}/rooms, PUT/DELETE /{inspection_id}/rooms/{room_id}
- PUT /{inspection_id}/scores - Category scores
- GET /{inspection_id}/report - Pass/warn/fail per category
- POST /{inspection_id}/complete
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ...db import from_api_updates, to_api
from ...lib import InspectionService, get_current_actor, require_tech
from ...models import (
    Actor,
    CategoryScores,
    InspectionCreateRequest,
    RoomInput,
    RoomInspection,
    SnapshotInspection,
)
from ..deps import get_inspection_service


router = APIRouter()


def _found(inspection: Optional[SnapshotInspection]) -> dict:
    if inspection is None:
        raise HTTPException(status_code=404, detail="Inspection not found")
    return to_api(inspection)


@router.post("/")
async def create_inspection(
    body: InspectionCreateRequest,
    actor: Actor = Depends(require_tech),
    service: InspectionService = Depends(get_inspection_service),
):
    return to_api(service.create_inspection(actor, body.property_id, body.scheduled_date))


@router.get("/mine")
async def list_my_inspections(
    actor: Actor = Depends(require_tech),
    service: InspectionService = Depends(get_inspection_service),
):
    return [to_api(i) for i in service.list_for_tech(actor.user_id)]


@router.get("/unassigned")
async def list_unassigned(
    actor: Actor = Depends(require_tech),
    service: InspectionService = Depends(get_inspection_service),
):
    return [to_api(i) for i in service.list_unassigned()]


@router.get("/property/{property_id}")
async def list_for_property(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: InspectionService = Depends(get_inspection_service),
):
    return [to_api(i) for i in service.list_for_property(property_id)]


@router.get("/property/{property_id}/active")
async def get_active_inspection(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: InspectionService = Depends(get_inspection_service),
):
    inspection = service.get_active_inspection(property_id)
    return to_api(inspection) if inspection else None


@router.get("/{inspection_id}")
async def get_inspection(
    inspection_id: str,
    actor: Actor = Depends(get_current_actor),
    service: InspectionService = Depends(get_inspection_service),
):
    return _found(service.get_inspection(inspection_id))


@router.put("/{inspection_id}")
async def update_details(
    inspection_id: str,
    body: dict,
    actor: Actor = Depends(require_tech),
    service: InspectionService = Depends(get_inspection_service),
):
    return _found(service.update_details(inspection_id, from_api_updates(SnapshotInspection, body)))


@router.post("/{inspection_id}/assign")
async def assign_to_property(
    inspection_id: str,
    body: dict,
    actor: Actor = Depends(require_tech),
    service: InspectionService = Depends(get_inspection_service),
):
    """
    Body:
    - propertyId: Property to attach the inspection to
    """
    property_id = body.get("propertyId") or body.get("property_id")
    if not property_id:
        raise HTTPException(status_code=400, detail="propertyId required")
    return _found(service.assign_to_property(inspection_id, property_id))


@router.post("/{inspection_id}/start")
async def start_inspection(
    inspection_id: str,
    actor: Actor = Depends(require_tech),
    service: InspectionService = Depends(get_inspection_service),
):
    return _found(service.start_inspection(inspection_id))


@router.post("/{inspection_id}/rooms")
async def add_room(
    inspection_id: str,
    body: RoomInput,
    actor: Actor = Depends(require_tech),
    service: InspectionService = Depends(get_inspection_service),
):
    return _found(service.add_room(inspection_id, body))


@router.put("/{inspection_id}/rooms/{room_id}")
async def update_room(
    inspection_id: str,
    room_id: str,
    body: dict,
    actor: Actor = Depends(require_tech),
    service: InspectionService = Depends(get_inspection_service),
):
    return _found(service.update_room(inspection_id, room_id, from_api_updates(RoomInspection, body)))


@router.delete("/{inspection_id}/rooms/{room_id}")
async def remove_room(
    inspection_id: str,
    room_id: str,
    actor: Actor = Depends(require_tech),
    service: InspectionService = Depends(get_inspection_service),
):
    return _found(service.remove_room(inspection_id, room_id))


@router.put("/{inspection_id}/scores")
async def update_category_scores(
    inspection_id: str,
    body: CategoryScores,
    actor: Actor = Depends(require_tech),
    service: InspectionService = Depends(get_inspection_service),
):
    """All five scores, each 0-100. The overall score is their rounded mean."""
    return _found(service.update_category_scores(inspection_id, body))


@router.get("/{inspection_id}/report")
async def get_score_report(
    inspection_id: str,
    actor: Actor = Depends(get_current_actor),
    service: InspectionService = Depends(get_inspection_service),
):
    report = service.score_report(inspection_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Inspection not found")
    return report


@router.post("/{inspection_id}/complete")
async def complete_inspection(
    inspection_id: str,
    actor: Actor = Depends(require_tech),
    service: InspectionService = Depends(get_inspection_service),
):
    """
    Complete the inspection.

    Needs at least one room and an assigned property (400 otherwise).
    Returns the locked inspection and the new MyHome Score.
    """
    result = service.complete_inspection(inspection_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Inspection not found")

    inspection, score = result
    return {"inspection": to_api(inspection), "score": to_api(score)}
